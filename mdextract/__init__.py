"""Markdown node extraction and mail delivery."""

from .extractor import (
    ExtractionError,
    InvalidNodeTypeError,
    UnsupportedNodeTypeError,
    extract,
)

__all__ = [
    "config",
    "models",
    "parser",
    "extractor",
    "mailer",
    "email_formatter",
    "cli",
    "ExtractionError",
    "InvalidNodeTypeError",
    "UnsupportedNodeTypeError",
    "extract",
]
