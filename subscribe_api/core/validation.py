from __future__ import annotations

import re
from typing import Any

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
EMAIL_MAX_LENGTH = 254


def normalize_email(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip().lower()


def is_valid_email(email: Any, *, max_length: int = EMAIL_MAX_LENGTH) -> bool:
    if not isinstance(email, str):
        return False
    if len(email) > max_length:
        return False
    return bool(EMAIL_PATTERN.fullmatch(email))
