from __future__ import annotations

import json
import smtplib
from typing import Any, List

import httpx
import pytest

from mdextract.mailer import BrevoMailer, MailConfig, MailError, SendGridMailer, SMTPMailer

CONFIG = MailConfig(
    from_email="from@example.com",
    from_name="From",
    to_emails=("a@example.com", "b@example.com"),
)


class FakeSMTP:
    def __init__(self, failures: List[Exception]):
        self.failures = failures
        self.connections: List[tuple] = []
        self.logins: List[tuple] = []
        self.sent: List[Any] = []

    def __call__(self, host, port, timeout):
        self.connections.append((host, port))
        return self

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def starttls(self, context=None):
        pass

    def login(self, username, password):
        self.logins.append((username, password))

    def send_message(self, message):
        if self.failures:
            raise self.failures.pop(0)
        self.sent.append(message)
        return {}


def _smtp_mailer(fake: FakeSMTP) -> SMTPMailer:
    return SMTPMailer(
        host="smtp.example.com",
        port=587,
        username="user@example.com",
        password="secret",
        config=CONFIG,
        smtp_factory=fake,
    )


def test_smtp_sends_plain_and_html_parts():
    fake = FakeSMTP([])
    _smtp_mailer(fake).send("Subject", "plain body", "<p>html body</p>")

    assert fake.connections == [("smtp.example.com", 587)]
    assert fake.logins == [("user@example.com", "secret")]
    message = fake.sent[0]
    assert message["Subject"] == "Subject"
    assert message["To"] == "a@example.com, b@example.com"
    assert "from@example.com" in message["From"]
    assert message.get_body(preferencelist=("plain",)).get_content().strip() == "plain body"
    assert message.get_body(preferencelist=("html",)).get_content().strip() == "<p>html body</p>"


def test_smtp_retries_once_after_disconnect():
    fake = FakeSMTP([smtplib.SMTPServerDisconnected("gone")])
    _smtp_mailer(fake).send("Subject", "body")

    assert len(fake.connections) == 2
    assert len(fake.sent) == 1


def test_smtp_does_not_retry_authentication_failure():
    fake = FakeSMTP([smtplib.SMTPAuthenticationError(535, b"bad credentials")])
    with pytest.raises(MailError):
        _smtp_mailer(fake).send("Subject", "body")

    assert len(fake.connections) == 1


def test_smtp_gives_up_after_second_transient_failure():
    fake = FakeSMTP([smtplib.SMTPServerDisconnected("gone"), smtplib.SMTPServerDisconnected("gone")])
    with pytest.raises(MailError) as excinfo:
        _smtp_mailer(fake).send("Subject", "body")

    assert isinstance(excinfo.value.__cause__, smtplib.SMTPServerDisconnected)


def test_brevo_retries_once_on_503():
    requests: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if len(requests) == 1:
            return httpx.Response(503)
        return httpx.Response(201, json={"messageId": "x"})

    mailer = BrevoMailer("brevo-key", CONFIG, transport=httpx.MockTransport(handler))
    mailer.send("Subject", "body", "<p>body</p>")

    assert len(requests) == 2
    payload = json.loads(requests[-1].content)
    assert payload["to"] == [{"email": "a@example.com"}, {"email": "b@example.com"}]
    assert payload["htmlContent"] == "<p>body</p>"
    assert requests[-1].headers["api-key"] == "brevo-key"


def test_brevo_does_not_retry_client_errors():
    calls: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(400)

    mailer = BrevoMailer("brevo-key", CONFIG, transport=httpx.MockTransport(handler))
    with pytest.raises(MailError):
        mailer.send("Subject", "body")

    assert len(calls) == 1
    assert "htmlContent" not in json.loads(calls[0].content)


class FakeSendGridClient:
    def __init__(self, statuses: List[int]):
        self.statuses = statuses
        self.mails: List[Any] = []

    def send(self, mail):
        self.mails.append(mail)
        status = self.statuses.pop(0)
        return type("Response", (), {"status_code": status})()


def test_sendgrid_sends_once_on_success():
    client = FakeSendGridClient([202])
    SendGridMailer("sendgrid-key", CONFIG, client=client).send("Subject", "body")
    assert len(client.mails) == 1


def test_sendgrid_raises_after_two_gateway_errors():
    client = FakeSendGridClient([502, 504])
    with pytest.raises(MailError):
        SendGridMailer("sendgrid-key", CONFIG, client=client).send("Subject", "body")
    assert len(client.mails) == 2
