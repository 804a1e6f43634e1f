from subscribe_api.middleware.request_log import RequestLoggingMiddleware  # noqa: F401
from subscribe_api.middleware.security import SecurityHeadersMiddleware  # noqa: F401
