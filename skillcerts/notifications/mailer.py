"""
Transactional email via the Resend HTTP API
File: skillcerts/notifications/mailer.py

Sending is best-effort: failures are logged and reported in the return
value, never raised, so no state transition ever depends on email.
"""

import logging
from typing import Optional

import httpx

from skillcerts.config import Settings

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


class Mailer:
    def __init__(self, api_key: Optional[str], sender: str, timeout: float = 10.0):
        self.api_key = api_key
        self.sender = sender
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "Mailer":
        return cls(settings.resend_api_key, settings.mail_from, settings.email_timeout_seconds)

    async def send(self, to: str, subject: str, html: str) -> dict:
        """Returns {"success": True, "data": ...} or {"success": False, "error": ...}"""
        if not self.api_key:
            logger.warning("RESEND_API_KEY not set, skipping email to %s", to)
            return {"success": False, "error": "Email service not configured"}

        payload = {"from": self.sender, "to": [to], "subject": subject, "html": html}
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(RESEND_API_URL, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("Email sending exception to %s: %s", to, exc)
            return {"success": False, "error": str(exc)}

        if response.status_code >= 400:
            logger.error("Email sending error to %s: %s %s", to, response.status_code, response.text)
            return {"success": False, "error": response.text}

        data = response.json()
        logger.info("Email sent to %s (%s)", to, data.get("id"))
        return {"success": True, "data": data}
