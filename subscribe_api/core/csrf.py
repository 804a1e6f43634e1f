"""CSRF helpers for the double-submit cookie pattern.

The browser stores the token in the ``csrf_token`` cookie and echoes it in the
``X-CSRF-Token`` header. A cross-origin page can make the browser send the
cookie but cannot read it to set the header.
"""

from __future__ import annotations

import secrets

CSRF_COOKIE_NAME = "csrf_token"
CSRF_HEADER_NAME = "X-CSRF-Token"
CSRF_TOKEN_BYTES = 32
CSRF_MIN_LENGTH = 32


def generate_csrf_token() -> str:
    """Return 32 random bytes hex-encoded (64 characters)."""
    return secrets.token_hex(CSRF_TOKEN_BYTES)


def validate_double_submit(
    cookie_token: str | None,
    header_token: str | None,
    *,
    min_length: int = CSRF_MIN_LENGTH,
) -> bool:
    cookie_value = cookie_token or ""
    header_value = header_token or ""
    if not cookie_value or not header_value:
        return False
    if len(cookie_value) < min_length or len(header_value) < min_length:
        return False
    return secrets.compare_digest(cookie_value.encode("utf-8"), header_value.encode("utf-8"))
