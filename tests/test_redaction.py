from subscribe_api.core.redaction import mask_email, redact_payload


def test_redact_payload_masks_secrets_and_pii() -> None:
    payload = {
        "error": "Authorization Failed",
        "api_key": "ck-secret",
        "subscriber": {"email_address": "user@example.com", "state": "active"},
        "items": [{"token": "abc"}, "plain"],
    }

    redacted = redact_payload(payload)

    assert redacted == {
        "error": "Authorization Failed",
        "api_key": "***",
        "subscriber": {"email_address": "***", "state": "active"},
        "items": [{"token": "***"}, "plain"],
    }


def test_mask_email() -> None:
    assert mask_email("reader@example.com") == "r***@example.com"
    assert mask_email("not-an-email") == "***"
