from __future__ import annotations

import logging
import random
from typing import Sequence

import anyio

from subscribe_api.core import metrics
from subscribe_api.core.config import Settings
from subscribe_api.core.errors import GuardFailureError, SubscriptionError
from subscribe_api.core.rate_limit import RateLimiter
from subscribe_api.guard.context import GuardContext, GuardRequest, GuardResponse
from subscribe_api.guard.stages import STAGES, Stage
from subscribe_api.services.convertkit import SubscriptionProvider
from subscribe_api.services.honeypot import Sleep

logger = logging.getLogger(__name__)


class SubscriptionGuard:
    """Runs a subscribe request through the gate stages in order.

    Each stage either returns ``None`` to continue, returns a terminal
    ``GuardResponse``, or raises a ``SubscriptionError`` which becomes the
    terminal error response. Any other exception is logged and answered with
    a generic 500. Headers collected before the failure (CORS, rate-limit)
    are kept on every response.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        rate_limiter: RateLimiter,
        provider: SubscriptionProvider,
        sleep: Sleep = anyio.sleep,
        rng: random.Random | None = None,
        stages: Sequence[tuple[str, Stage]] = STAGES,
    ) -> None:
        self.settings = settings
        self.rate_limiter = rate_limiter
        self.provider = provider
        self.sleep = sleep
        self.rng = rng
        self.stages = tuple(stages)

    @property
    def stage_names(self) -> tuple[str, ...]:
        return tuple(name for name, _ in self.stages)

    async def handle(self, request: GuardRequest) -> GuardResponse:
        ctx = GuardContext(request=request)
        for name, stage in self.stages:
            try:
                outcome = await stage(self, ctx)
            except SubscriptionError as exc:
                return self._error_response(ctx, exc, stage=name)
            except Exception as exc:
                failure = GuardFailureError(f"{type(exc).__name__} in {name} stage")
                return self._error_response(ctx, failure, stage=name, cause=exc)
            if outcome is not None:
                outcome.stage = name
                outcome.client = ctx.identifier
                return outcome
        raise RuntimeError("subscribe pipeline finished without a response")

    def _error_response(
        self,
        ctx: GuardContext,
        exc: SubscriptionError,
        *,
        stage: str,
        cause: BaseException | None = None,
    ) -> GuardResponse:
        metrics.record_rejection(stage)
        log = logger.error if exc.status_code >= 500 else logger.info
        log(
            "subscribe_rejected",
            extra={
                "stage": stage,
                "status_code": exc.status_code,
                "reason": exc.detail or type(exc).__name__,
                "client": ctx.identifier,
            },
            exc_info=cause,
        )
        headers = {**ctx.response_headers, **exc.headers}
        return GuardResponse(
            status_code=exc.status_code,
            body={"error": exc.public_message},
            headers=headers,
            stage=stage,
            client=ctx.identifier,
        )
