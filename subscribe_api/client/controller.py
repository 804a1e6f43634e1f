from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from http.cookies import SimpleCookie
from typing import Any

import anyio
import httpx

from subscribe_api.client.cookies import cookie_header, get_or_create_csrf_token
from subscribe_api.client.view import SubscribeForm
from subscribe_api.core.csrf import CSRF_HEADER_NAME
from subscribe_api.core.errors import ClientValidationError
from subscribe_api.core.validation import EMAIL_PATTERN
from subscribe_api.schemas.subscribe import SubscriptionRequest
from subscribe_api.services.honeypot import Sleep

logger = logging.getLogger(__name__)

INVALID_EMAIL_MESSAGE = "Please enter a valid email address."
SUCCESS_MESSAGE = "Success! Thank you for subscribing to the Blue Beacon newsletter."
FAILURE_MESSAGE = "Subscription failed. Please try again."
GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."

BUTTON_RESET_DELAY_SECONDS = 3.0
MESSAGE_HIDE_DELAY_SECONDS = 5.0
MAX_SERVER_MESSAGE_LENGTH = 200

_UNSAFE_CHARS = re.compile(r"[<>&\"']")


class SubmissionRejected(Exception):
    """The endpoint answered with a non-2xx status."""


@dataclass(frozen=True)
class SubmissionOutcome:
    ok: bool
    message: str
    status_code: int | None = None


def validate_email(email: str) -> str:
    if not email or not EMAIL_PATTERN.fullmatch(email):
        raise ClientValidationError(INVALID_EMAIL_MESSAGE)
    return email


def safe_error_message(data: Any) -> str:
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, str) and error and len(error) < MAX_SERVER_MESSAGE_LENGTH:
        return _UNSAFE_CHARS.sub("", error)
    return FAILURE_MESSAGE


class SubscriptionFormController:
    """Drives the subscribe form: validation, CSRF token, request, UI state.

    The CSRF token is read or created once, when the controller is built, the
    same way the page does it on load.
    """

    def __init__(
        self,
        form: SubscribeForm,
        client: httpx.AsyncClient,
        *,
        endpoint: str = "/api/subscribe",
        cookies: SimpleCookie | None = None,
        sleep: Sleep = anyio.sleep,
        button_reset_delay: float = BUTTON_RESET_DELAY_SECONDS,
        message_hide_delay: float = MESSAGE_HIDE_DELAY_SECONDS,
    ) -> None:
        self.form = form
        self.client = client
        self.endpoint = endpoint
        self.cookies = cookies if cookies is not None else SimpleCookie()
        self.sleep = sleep
        self.button_reset_delay = button_reset_delay
        self.message_hide_delay = message_hide_delay
        self.csrf_token = get_or_create_csrf_token(self.cookies)
        self.pending_reset: asyncio.Task[None] | None = None

    async def submit(self) -> SubmissionOutcome:
        email = self.form.current_email()
        try:
            validate_email(email)
        except ClientValidationError as exc:
            self.form.message.show("error", str(exc))
            return SubmissionOutcome(ok=False, message=str(exc))

        original_labels = self.form.set_buttons_loading()
        try:
            status_code = await self._post(email, self.form.honeypot.value)
        except SubmissionRejected as exc:
            return self._fail(str(exc) or GENERIC_ERROR_MESSAGE, original_labels, exc)
        except Exception as exc:
            return self._fail(GENERIC_ERROR_MESSAGE, original_labels, exc)
        except BaseException:
            self.form.reset_buttons(original_labels)
            raise

        self.form.message.show("success", SUCCESS_MESSAGE)
        self.form.clear_inputs()
        self.form.set_buttons_success()
        self.pending_reset = asyncio.create_task(self._restore_after_success(original_labels))
        return SubmissionOutcome(ok=True, message=SUCCESS_MESSAGE, status_code=status_code)

    async def _post(self, email: str, honeypot_value: str) -> int:
        resp = await self.client.post(
            self.endpoint,
            json=SubscriptionRequest(email=email, website=honeypot_value).model_dump(),
            headers={
                CSRF_HEADER_NAME: self.csrf_token,
                "Cookie": cookie_header(self.cookies),
            },
        )
        data = resp.json()
        if not resp.is_success:
            raise SubmissionRejected(safe_error_message(data))
        return resp.status_code

    def _fail(self, message: str, original_labels: list[str], exc: BaseException) -> SubmissionOutcome:
        logger.error("subscribe_submit_failed", extra={"error": str(exc) or type(exc).__name__})
        self.form.message.show("error", message)
        self.form.reset_buttons(original_labels)
        return SubmissionOutcome(ok=False, message=message)

    async def _restore_after_success(self, original_labels: list[str]) -> None:
        await self.sleep(self.button_reset_delay)
        self.form.reset_buttons(original_labels)
        await self.sleep(self.message_hide_delay)
        self.form.message.hide()
