"""Logging filters that scrub credentials from log records."""

from __future__ import annotations

import logging
import re

_REDACTED = "**REDACTED**"

_SENSITIVE_PATTERNS = (
    re.compile(r"(Bearer\s+)[\w\.-]+", re.IGNORECASE),
    re.compile(r"((?:^|[;\s])session=)[\w\.-]+", re.IGNORECASE),
    re.compile(r"((?:access_token|password)\"?\s*[:=]\s*\"?)[^\"&\s,}]+", re.IGNORECASE),
)


def scrub(text: str) -> str:
    """Mask bearer tokens, session cookies and passwords in ``text``."""
    for pattern in _SENSITIVE_PATTERNS:
        text = pattern.sub(lambda match: match.group(1) + _REDACTED, text)
    return text


class SensitiveFilter(logging.Filter):
    """Rewrite log records so credentials never reach a handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = scrub(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(
                scrub(arg) if isinstance(arg, str) else arg for arg in record.args
            )
        return True


__all__ = ["SensitiveFilter", "scrub"]
