from __future__ import annotations

from .config import DEFAULT_SUBJECT, TEST_BODY, TEST_SUBJECT
from .extractor import extract
from .models import MailMessage
from .parser import render_html


def build_test_message() -> MailMessage:
    return MailMessage(subject=TEST_SUBJECT, text_body=TEST_BODY)


def build_email_subject(markdown: str, default: str = DEFAULT_SUBJECT) -> str:
    """Use the first heading of the document, or `default` when it has none."""
    headings = extract(markdown, "Heading")
    if not headings:
        return default
    return headings[0].strip() or default


def build_markdown_message(markdown: str, subject: str | None = None) -> MailMessage:
    resolved_subject = subject.strip() if subject and subject.strip() else build_email_subject(markdown)
    html_body = wrap_in_email_shell(title=resolved_subject, body_html=render_html(markdown))
    return MailMessage(subject=resolved_subject, text_body=markdown, html_body=html_body)


def wrap_in_email_shell(*, title: str, body_html: str) -> str:
    """Place rendered markdown inside a minimal standalone HTML page titled after the subject."""

    return (
        """<!doctype html>
<html>
<head>
  <meta charset=\"UTF-8\" />
  <meta name=\"viewport\" content=\"width=device-width, initial-scale=1.0\" />
  <title>{title}</title>
</head>
<body style=\"margin:0;padding:0;background:#f7f8fb;color:#14161b;\">
  <div style=\"max-width:720px;margin:0 auto;padding:22px 14px 40px;line-height:1.6;\">
{body}
  </div>
</body>
</html>"""
    ).format(title=_escape_title(title), body=body_html)


def _escape_title(title: str) -> str:
    return (
        title.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )
