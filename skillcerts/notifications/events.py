"""
Email notifications for lifecycle events. Meant to be scheduled as
background tasks after the state change has been committed.
"""

import logging

from skillcerts.notifications.mailer import Mailer
from skillcerts.notifications.templates import (
    render_certificate_issued_email, render_payment_done_email
)

logger = logging.getLogger(__name__)


def certificate_url(frontend_url: str, certificate_id: str) -> str:
    """Public verification link"""
    return f"{frontend_url}/certificates/{certificate_id}"


async def notify_payment_done(mailer: Mailer, frontend_url: str, user: dict, course: dict, payment: dict):
    html = render_payment_done_email(
        user_name=user.get("name", ""),
        course_title=course.get("title", ""),
        course_url=f"{frontend_url}/courses/{course.get('slug', course['_id'])}",
        amount=payment.get("amount"),
        currency=payment.get("currency", "INR"),
    )
    result = await mailer.send(user["email"], f"Payment Successful - {course.get('title', '')}", html)
    if not result["success"]:
        logger.warning("Payment email not delivered for payment %s", payment.get("_id"))
    return result


async def notify_certificate_issued(mailer: Mailer, frontend_url: str, user: dict, course: dict, certificate: dict):
    code = certificate["certificate_id"]
    html = render_certificate_issued_email(
        user_name=user.get("name", ""),
        course_title=course.get("title", ""),
        certificate_url=certificate_url(frontend_url, code),
        certificate_id=code,
    )
    result = await mailer.send(user["email"], f"Your Certificate is Ready - {course.get('title', '')}", html)
    if not result["success"]:
        logger.warning("Certificate email not delivered for %s", code)
    return result
