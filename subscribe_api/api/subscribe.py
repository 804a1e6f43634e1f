from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from subscribe_api.core.config import settings
from subscribe_api.core.rate_limit import build_rate_limiter
from subscribe_api.guard import GuardRequest, SubscriptionGuard
from subscribe_api.schemas.error import ErrorResponse
from subscribe_api.schemas.subscribe import SubscribeResponse
from subscribe_api.services.convertkit import ConvertKitProvider

router = APIRouter(tags=["subscribe"])

# Every method reaches the guard so that its method stage answers 405 itself.
_ROUTED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

_guard: SubscriptionGuard | None = None


def get_subscription_guard() -> SubscriptionGuard:
    """Process-wide guard; the rate limiter state lives as long as the process."""
    global _guard
    if _guard is None:
        _guard = SubscriptionGuard(
            settings,
            rate_limiter=build_rate_limiter(settings),
            provider=ConvertKitProvider(settings),
        )
    return _guard


def reset_subscription_guard() -> None:
    global _guard
    _guard = None


@router.api_route(
    "/subscribe",
    methods=_ROUTED_METHODS,
    response_model=None,
    responses={
        200: {"model": SubscribeResponse},
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        405: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def subscribe(request: Request, guard: SubscriptionGuard = Depends(get_subscription_guard)) -> Response:
    body = await request.body()
    guard_request = GuardRequest.build(
        request.method,
        headers=dict(request.headers.items()),
        cookies=request.cookies,
        body=body,
    )
    result = await guard.handle(guard_request)
    request.state.guard_stage = result.stage
    request.state.guard_client = result.client
    if result.body is None:
        return Response(status_code=result.status_code, headers=result.headers)
    return JSONResponse(status_code=result.status_code, content=result.body, headers=result.headers)
