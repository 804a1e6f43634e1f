from subscribe_api.guard.context import GuardContext, GuardRequest, GuardResponse  # noqa: F401
from subscribe_api.guard.pipeline import SubscriptionGuard  # noqa: F401
from subscribe_api.guard.stages import STAGES, SUCCESS_MESSAGE  # noqa: F401
