"""
SkillCerts Configuration
File: skillcerts/config.py

Built once at startup and handed to every stage via app.state.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional


class ConfigError(RuntimeError):
    """Raised when required environment variables are missing or invalid"""

    def __init__(self, problems: List[str]):
        self.problems = problems
        super().__init__("Invalid configuration: " + "; ".join(problems))


def _split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return ["*"]
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    mongo_url: str = "mongodb://localhost:27017"
    mongo_db_name: str = "skillcerts"

    jwt_secret_key: str = ""
    jwt_algorithm: str = "HS256"

    # Razorpay
    razorpay_key_id: str = ""
    razorpay_key_secret: str = ""
    payment_currency: str = "INR"
    gateway_timeout_seconds: float = 10.0

    # Email (Resend)
    resend_api_key: Optional[str] = None
    mail_from: str = "SkillCerts <no-reply@skillcerts.dev>"
    email_timeout_seconds: float = 10.0

    frontend_url: str = "http://localhost:3000"
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "Settings":
        """Read settings from the environment and fail fast on bad secrets"""
        settings = cls(
            mongo_url=os.getenv("MONGO_URL", "mongodb://localhost:27017"),
            mongo_db_name=os.getenv("MONGO_DB_NAME", "skillcerts"),
            jwt_secret_key=os.getenv("JWT_SECRET_KEY", ""),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
            razorpay_key_id=os.getenv("RAZORPAY_KEY_ID", ""),
            razorpay_key_secret=os.getenv("RAZORPAY_KEY_SECRET", ""),
            payment_currency=os.getenv("PAYMENT_CURRENCY", "INR"),
            gateway_timeout_seconds=float(os.getenv("GATEWAY_TIMEOUT_SECONDS", "10")),
            resend_api_key=os.getenv("RESEND_API_KEY") or None,
            mail_from=os.getenv("MAIL_FROM", "SkillCerts <no-reply@skillcerts.dev>"),
            email_timeout_seconds=float(os.getenv("EMAIL_TIMEOUT_SECONDS", "10")),
            frontend_url=os.getenv("FRONTEND_URL", "http://localhost:3000").rstrip("/"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            cors_origins=_split_csv(os.getenv("CORS_ORIGINS")),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        problems = []
        if len(self.jwt_secret_key) < 32:
            problems.append("JWT_SECRET_KEY must be at least 32 characters")
        if not self.razorpay_key_id:
            problems.append("RAZORPAY_KEY_ID is required")
        if not self.razorpay_key_secret:
            problems.append("RAZORPAY_KEY_SECRET is required")
        if self.gateway_timeout_seconds <= 0:
            problems.append("GATEWAY_TIMEOUT_SECONDS must be positive")
        if problems:
            raise ConfigError(problems)
