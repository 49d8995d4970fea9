"""Server infrastructure settings."""

from typing import List

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class ServerSettings(InfrastructureSettings):
    """Server and application runtime configuration.

    Environment Variables:
        BACKEND_URL: Backend API base URL (default: http://127.0.0.1:8000)
        CRON_SECRET: Bearer secret expected on cron-triggered endpoints
        ADMIN_API_TOKEN: Bearer token for the webhook admin endpoints
        ALLOWED_ORIGINS: Comma-separated list of CORS origins

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        cron_secret = settings.server.CRON_SECRET
        origins = settings.server.allowed_origins
        ```
    """

    BACKEND_URL: str = Field(default="http://127.0.0.1:8000", alias="BACKEND_URL")
    CRON_SECRET: str | None = Field(default=None, alias="CRON_SECRET")
    ADMIN_API_TOKEN: str | None = Field(default=None, alias="ADMIN_API_TOKEN")
    ALLOWED_ORIGINS: str = Field(default="", alias="ALLOWED_ORIGINS")

    @property
    def allowed_origins(self) -> List[str]:
        """CORS origins parsed from ALLOWED_ORIGINS."""
        return [
            origin.strip()
            for origin in self.ALLOWED_ORIGINS.split(",")
            if origin.strip()
        ]
