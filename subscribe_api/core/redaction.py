from typing import Any

_SENSITIVE_EXACT_KEYS = {
    "api_key",
    "api_secret",
    "secret",
    "token",
    "csrf_token",
    "email",
    "email_address",
    "first_name",
    "last_name",
}
_SENSITIVE_KEY_FRAGMENTS = (
    "password",
    "token",
    "secret",
    "api_key",
    "authorization",
    "cookie",
    "email",
)


def _is_sensitive_key(key: str) -> bool:
    lowered = (key or "").strip().lower()
    if not lowered:
        return False
    if lowered in _SENSITIVE_EXACT_KEYS:
        return True
    return any(fragment in lowered for fragment in _SENSITIVE_KEY_FRAGMENTS)


def _redact_mapping(payload: dict[Any, Any], *, _depth: int) -> dict[str, Any]:
    redacted: dict[str, Any] = {}
    for idx, (k, v) in enumerate(payload.items()):
        if idx >= 80:
            redacted["..."] = "truncated"
            break
        key = str(k)
        if _is_sensitive_key(key):
            redacted[key] = "***"
        else:
            redacted[key] = redact_payload(v, _depth=_depth + 1)
    return redacted


def _redact_sequence(payload: list[Any], *, _depth: int) -> list[Any]:
    items: list[Any] = []
    for idx, item in enumerate(payload):
        if idx >= 80:
            items.append("...truncated")
            break
        items.append(redact_payload(item, _depth=_depth + 1))
    return items


def redact_payload(payload: Any, *, _depth: int = 0) -> Any:
    """Mask secrets and subscriber PII before a provider payload is logged."""
    if _depth >= 6:
        return "***"
    if isinstance(payload, dict):
        return _redact_mapping(payload, _depth=_depth)
    if isinstance(payload, list):
        return _redact_sequence(payload, _depth=_depth)
    if isinstance(payload, str) and len(payload) > 2000:
        return payload[:2000]
    return payload


def mask_email(email: str) -> str:
    local, sep, domain = (email or "").partition("@")
    if not sep:
        return "***"
    return f"{local[:1]}***@{domain}"
