from __future__ import annotations

import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr
from typing import Any, Callable, Optional, Protocol, Sequence, Tuple

import httpx
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Email, Mail

from .config import MAIL_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

TRANSIENT_STATUS_CODES = frozenset({502, 503, 504})

BREVO_ENDPOINT = "https://api.brevo.com/v3/smtp/email"


class MailError(Exception):
    """Raised when mail sending fails."""


class MailSender(Protocol):
    provider: str

    def send(self, subject: str, text_body: str, html_body: str | None = None) -> None: ...


@dataclass(frozen=True)
class MailConfig:
    from_email: str
    from_name: str
    to_emails: Tuple[str, ...]


class _StatusError(Exception):
    def __init__(self, provider: str, status_code: int):
        super().__init__(f"{provider} returned error status: {status_code}")
        self.status_code = status_code


class _RetryOnceMailer:
    """Sends through `_deliver`, retrying a single time on a transient failure."""

    provider = ""

    def send(self, subject: str, text_body: str, html_body: str | None = None) -> None:
        last_exc: Exception | None = None
        for attempt in range(2):
            try:
                status = self._deliver(subject, text_body, html_body)
            except Exception as exc:  # noqa: BLE001
                last_exc = exc
                if attempt == 0 and self._is_transient(exc):
                    logger.warning("%s transient failure (%s); retrying once", self.provider, exc)
                    continue
                break
            logger.info("Mail sent via %s with status %s", self.provider, status)
            return
        raise MailError(f"Failed to send email: {last_exc}") from last_exc

    def _deliver(self, subject: str, text_body: str, html_body: str | None) -> Any:
        raise NotImplementedError

    def _is_transient(self, exc: Exception) -> bool:
        return getattr(exc, "status_code", None) in TRANSIENT_STATUS_CODES


class SMTPMailer(_RetryOnceMailer):
    provider = "smtp"

    def __init__(
        self,
        *,
        host: str,
        port: int,
        username: str,
        password: str,
        config: MailConfig,
        smtp_factory: Callable[..., smtplib.SMTP] = smtplib.SMTP,
    ):
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._config = config
        self._smtp_factory = smtp_factory

    def _build_message(self, subject: str, text_body: str, html_body: str | None = None) -> EmailMessage:
        message = EmailMessage()
        message["From"] = formataddr((self._config.from_name, self._config.from_email))
        message["To"] = ", ".join(self._config.to_emails)
        message["Subject"] = subject
        message.set_content(text_body)
        if html_body:
            message.add_alternative(html_body, subtype="html")
        return message

    def _deliver(self, subject: str, text_body: str, html_body: str | None) -> Any:
        message = self._build_message(subject, text_body, html_body)
        with self._smtp_factory(self._host, self._port, timeout=MAIL_TIMEOUT_SECONDS) as server:
            server.starttls(context=ssl.create_default_context())
            server.login(self._username, self._password)
            refused = server.send_message(message)
        if refused:
            logger.warning("SMTP relay refused recipients: %s", sorted(refused))
        return "accepted"

    def _is_transient(self, exc: Exception) -> bool:
        if isinstance(exc, smtplib.SMTPResponseException):
            return 400 <= exc.smtp_code < 500
        if isinstance(exc, smtplib.SMTPServerDisconnected):
            return True
        if isinstance(exc, smtplib.SMTPException):
            return False
        return isinstance(exc, OSError)


class BrevoMailer(_RetryOnceMailer):
    provider = "brevo"

    def __init__(self, api_key: str, config: MailConfig, *, transport: httpx.BaseTransport | None = None):
        self._api_key = api_key
        self._config = config
        self._transport = transport

    def _deliver(self, subject: str, text_body: str, html_body: str | None) -> Any:
        payload = {
            "sender": {"name": self._config.from_name, "email": self._config.from_email},
            "to": [{"email": address} for address in self._config.to_emails],
            "subject": subject,
            "textContent": text_body,
        }
        if html_body:
            payload["htmlContent"] = html_body

        headers = {"api-key": self._api_key, "content-type": "application/json"}
        with httpx.Client(timeout=MAIL_TIMEOUT_SECONDS, transport=self._transport) as client:
            response = client.post(BREVO_ENDPOINT, json=payload, headers=headers)
        if response.status_code >= 400:
            raise _StatusError(self.provider, response.status_code)
        return response.status_code

    def _is_transient(self, exc: Exception) -> bool:
        return isinstance(exc, httpx.RequestError) or super()._is_transient(exc)


class SendGridMailer(_RetryOnceMailer):
    provider = "sendgrid"

    def __init__(self, api_key: str, config: MailConfig, *, client: Any = None):
        self._client = client if client is not None else SendGridAPIClient(api_key)
        self._from_email = Email(email=config.from_email, name=config.from_name)
        self._to_emails = list(config.to_emails)

    def _deliver(self, subject: str, text_body: str, html_body: str | None) -> Any:
        mail = Mail(
            from_email=self._from_email,
            to_emails=self._to_emails,
            subject=subject,
            plain_text_content=text_body,
            html_content=html_body,
        )
        response = self._client.send(mail)
        if response.status_code >= 400:
            raise _StatusError(self.provider, response.status_code)
        return response.status_code


def build_mailer(
    *,
    smtp_password: Optional[str],
    brevo_api_key: Optional[str],
    sendgrid_api_key: Optional[str],
    from_email: str,
    from_name: str,
    to_emails: Sequence[str],
    smtp_host: str,
    smtp_port: int,
    smtp_username: Optional[str] = None,
) -> MailSender:
    """
    Provider selection:
    - SMTP when an SMTP password is set.
    - Otherwise Brevo, then SendGrid, whichever key is set first.
    """
    config = MailConfig(from_email=from_email, from_name=from_name, to_emails=tuple(to_emails))
    if smtp_password and smtp_password.strip():
        return SMTPMailer(
            host=smtp_host,
            port=smtp_port,
            username=(smtp_username or from_email).strip(),
            password=smtp_password.strip(),
            config=config,
        )
    if brevo_api_key and brevo_api_key.strip():
        return BrevoMailer(brevo_api_key.strip(), config)
    if sendgrid_api_key and sendgrid_api_key.strip():
        return SendGridMailer(sendgrid_api_key.strip(), config)
    raise MailError("No mail provider configured: set SMTP_PASSWORD, BREVO_API_KEY or SENDGRID_API_KEY.")
