from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.router import api_router
from api.dependencies.rate_limits import setup_rate_limiter
from infrastructure.logging import get_module_logger
from infrastructure.services import get_settings
from server.lifespan import lifespan
from server.middleware import RequestContextMiddleware

logger = get_module_logger()

LOCAL_ORIGINS = [
    "http://localhost:8000",
    "http://127.0.0.1:8000",
]


def create_app() -> FastAPI:
    """Build the FastAPI application with middleware and routes."""
    settings = get_settings()
    app = FastAPI(title="Webhook Retry Service", lifespan=lifespan)
    setup_rate_limiter(app)

    allow_origins = settings.server.allowed_origins or (
        [] if settings.is_production else LOCAL_ORIGINS
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware)

    app.include_router(api_router)
    return app


handler = create_app()
