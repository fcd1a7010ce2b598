from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from . import config
from .email_formatter import build_markdown_message, build_test_message
from .extractor import ALLOWED_NODE_TYPES, ExtractionError, extract
from .mailer import MailError, build_mailer

logger = logging.getLogger(__name__)


def _read_source(path: str | None) -> str:
    if path is None or path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _run_extract(args: argparse.Namespace) -> int:
    try:
        markdown = _read_source(args.file)
    except (OSError, UnicodeDecodeError) as exc:
        logger.error("Failed to read %s: %s", args.file, exc)
        return 1
    try:
        values = extract(markdown, args.node_type)
    except ExtractionError as exc:
        logger.error("%s", exc)
        return 1

    if args.json:
        print(json.dumps(values, ensure_ascii=False))
    else:
        for value in values:
            print(value)
    return 0


def _run_send(args: argparse.Namespace) -> int:
    try:
        settings = config.Settings.from_env()
    except ValueError as exc:
        logger.error("Missing configuration: %s", exc)
        return 1

    if args.markdown:
        try:
            markdown = _read_source(args.markdown)
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("Failed to read %s: %s", args.markdown, exc)
            return 1
        message = build_markdown_message(markdown, subject=args.subject)
    else:
        message = build_test_message()

    try:
        mailer = build_mailer(
            smtp_password=settings.smtp_password,
            brevo_api_key=settings.brevo_api_key,
            sendgrid_api_key=settings.sendgrid_api_key,
            from_email=settings.from_email,
            from_name=settings.from_name,
            to_emails=settings.to_emails,
            smtp_host=settings.smtp_host,
            smtp_port=settings.smtp_port,
            smtp_username=settings.smtp_username,
        )
        logger.info("Using mail provider=%s", mailer.provider)
        mailer.send(message.subject, message.text_body, message.html_body)
    except MailError as exc:
        logger.error("Mail sending failed: %s", exc)
        return 1

    print("Email sent successfully!")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mdextract",
        description="Extract node text from markdown documents and send mail.",
    )
    parser.add_argument("--verbose", action="store_true", help="enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    extract_parser = subparsers.add_parser("extract", help="print the text of matching markdown nodes")
    extract_parser.add_argument("file", nargs="?", default=None, help="markdown file (default: stdin)")
    extract_parser.add_argument(
        "--node-type",
        required=True,
        help="one of: " + ", ".join(sorted(ALLOWED_NODE_TYPES)),
    )
    extract_parser.add_argument("--json", action="store_true", help="print a JSON array")
    extract_parser.set_defaults(handler=_run_extract)

    send_parser = subparsers.add_parser("send", help="send a test email or a markdown document")
    send_parser.add_argument("--markdown", default=None, help="markdown file to send (default: test message)")
    send_parser.add_argument("--subject", default=None, help="override the subject (default: first heading)")
    send_parser.set_defaults(handler=_run_send)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    return args.handler(args)
