from subscribe_api.api.routes import api_router  # noqa: F401
