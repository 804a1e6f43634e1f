"""Error taxonomy for the subscription endpoint.

Every error carries the HTTP status and the short, user-safe message sent to
the caller. Diagnostics belong in the logs, never in ``public_message``.
"""

from fastapi import status


class SubscriptionError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    public_message: str = "Invalid request"

    def __init__(self, detail: str | None = None, *, headers: dict[str, str] | None = None) -> None:
        super().__init__(detail or self.public_message)
        self.detail = detail
        self.headers = dict(headers or {})


class MethodNotAllowedError(SubscriptionError):
    status_code = status.HTTP_405_METHOD_NOT_ALLOWED
    public_message = "Method not allowed"


class MalformedRequestError(SubscriptionError):
    status_code = status.HTTP_400_BAD_REQUEST
    public_message = "Invalid request format"


class PayloadTooLargeError(MalformedRequestError):
    status_code = status.HTTP_413_CONTENT_TOO_LARGE
    public_message = "Payload too large"


class AuthenticityError(SubscriptionError):
    status_code = status.HTTP_403_FORBIDDEN
    public_message = "Invalid request"


class RateLimitError(SubscriptionError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    public_message = "Too many requests. Please try again later."


class MissingEmailError(SubscriptionError):
    public_message = "Email is required"


class InvalidEmailError(SubscriptionError):
    public_message = "Please provide a valid email address"


class UpstreamConfigurationError(SubscriptionError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message = "Service temporarily unavailable"


class UpstreamFailureError(SubscriptionError):
    """The provider answered but did not accept the subscription."""

    status_code = status.HTTP_400_BAD_REQUEST
    public_message = "Subscription failed. Please try again or use a different email address."


class UpstreamUnavailableError(UpstreamFailureError):
    """The provider could not be reached or returned an unreadable answer."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message = "Service temporarily unavailable"


class GuardFailureError(SubscriptionError):
    """A stage failed in a way no other error describes."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message = "Service temporarily unavailable"


class ClientValidationError(ValueError):
    """Raised by the form controller before any network call is made."""
