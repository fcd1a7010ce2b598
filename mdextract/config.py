from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Tuple

# --------------------------------
# Settings

DEFAULT_FROM_NAME = "mdextract"

DEFAULT_SMTP_HOST = "smtp.gmail.com"

# Submission port; the connection is upgraded with STARTTLS.
DEFAULT_SMTP_PORT = 587

MAIL_TIMEOUT_SECONDS = 20.0

# Subject used when a markdown document has no heading
DEFAULT_SUBJECT = "Markdown document"

TEST_SUBJECT = "Test Email"
TEST_BODY = "This is a test email sent using mdextract."
# --------------------------------


@dataclass
class Settings:
    from_email: str
    to_emails: Tuple[str, ...]
    smtp_password: str | None
    brevo_api_key: str | None
    sendgrid_api_key: str | None
    from_name: str = DEFAULT_FROM_NAME
    smtp_host: str = DEFAULT_SMTP_HOST
    smtp_port: int = DEFAULT_SMTP_PORT
    smtp_username: str | None = None

    @staticmethod
    def from_env() -> "Settings":
        def require(name: str) -> str:
            value = os.getenv(name)
            if value is None or not value.strip():
                raise ValueError(f"Environment variable {name} is required.")
            return value.strip()

        def optional_with_default(name: str, default: str) -> str:
            value = os.getenv(name)
            if value is None or not value.strip():
                return default
            return value.strip()

        def optional(name: str) -> str | None:
            value = os.getenv(name)
            if value is None or not value.strip():
                return None
            return value.strip()

        smtp_password = optional("SMTP_PASSWORD")
        brevo_api_key = optional("BREVO_API_KEY")
        sendgrid_api_key = optional("SENDGRID_API_KEY")
        if smtp_password is None and brevo_api_key is None and sendgrid_api_key is None:
            raise ValueError("One of SMTP_PASSWORD, BREVO_API_KEY or SENDGRID_API_KEY is required.")

        raw_port = optional_with_default("SMTP_PORT", str(DEFAULT_SMTP_PORT))
        try:
            smtp_port = int(raw_port)
        except ValueError as exc:
            raise ValueError(f"Environment variable SMTP_PORT must be an integer: {raw_port!r}") from exc

        from_email = require("FROM_EMAIL")
        to_emails = tuple(addr.strip() for addr in require("TO_EMAIL").split(",") if addr.strip())
        if not to_emails:
            raise ValueError("Environment variable TO_EMAIL is required.")

        return Settings(
            from_email=from_email,
            to_emails=to_emails,
            smtp_password=smtp_password,
            brevo_api_key=brevo_api_key,
            sendgrid_api_key=sendgrid_api_key,
            from_name=optional_with_default("FROM_NAME", DEFAULT_FROM_NAME),
            smtp_host=optional_with_default("SMTP_HOST", DEFAULT_SMTP_HOST),
            smtp_port=smtp_port,
            smtp_username=optional_with_default("SMTP_USERNAME", from_email),
        )
