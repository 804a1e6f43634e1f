import pytest

from subscribe_api.client.controller import validate_email as client_validate_email
from subscribe_api.core.errors import ClientValidationError
from subscribe_api.core.validation import is_valid_email, normalize_email

INVALID_EMAILS = [
    "",
    "plainaddress",
    "missing-at.example.com",
    "user@",
    "@example.com",
    "user@example",
    "user@@example.com",
    "user name@example.com",
    "user@exa mple.com",
    "user@example.",
    "user@.com@x",
]

VALID_EMAILS = [
    "user@example.com",
    "first.last+tag@sub.example.co.uk",
    "a@b.c",
]


@pytest.mark.parametrize("email", INVALID_EMAILS)
def test_server_and_client_reject_malformed_emails(email: str) -> None:
    assert is_valid_email(email) is False
    with pytest.raises(ClientValidationError):
        client_validate_email(email)


@pytest.mark.parametrize("email", VALID_EMAILS)
def test_server_and_client_accept_well_formed_emails(email: str) -> None:
    assert is_valid_email(email) is True
    assert client_validate_email(email) == email


def test_server_caps_email_length_at_254() -> None:
    domain = "@example.com"
    at_limit = "a" * (254 - len(domain)) + domain
    assert len(at_limit) == 254
    assert is_valid_email(at_limit) is True
    assert is_valid_email("a" + at_limit) is False


def test_non_string_values_are_not_emails() -> None:
    assert is_valid_email(None) is False
    assert is_valid_email(12345) is False
    assert normalize_email(["user@example.com"]) == ""


def test_normalize_email_trims_and_lowercases() -> None:
    assert normalize_email("  Foo@Bar.COM \n") == "foo@bar.com"
    assert normalize_email("Foo@Bar.com") == normalize_email("foo@bar.com")
