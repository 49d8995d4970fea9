"""Authentication dependencies for the webhook retry endpoints.

Cron endpoints expect ``Authorization: Bearer <CRON_SECRET>``; admin endpoints
expect ``Authorization: Bearer <ADMIN_API_TOKEN>`` and take the acting user
from the ``X-Admin-User`` header.
"""

import hmac
from typing import Optional

from fastapi import Header, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from infrastructure.logging import get_module_logger
from infrastructure.services import SettingsDep

logger = get_module_logger()
security = HTTPBearer(auto_error=False)

DEFAULT_ADMIN_USER = "admin"


def _token_matches(
    credentials: Optional[HTTPAuthorizationCredentials], expected: str
) -> bool:
    if credentials is None or not credentials.credentials:
        return False
    return hmac.compare_digest(
        credentials.credentials.encode("utf-8"), expected.encode("utf-8")
    )


def verify_cron_secret(
    settings: SettingsDep,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
) -> None:
    """Reject cron calls that do not carry the configured secret.

    With no CRON_SECRET configured, calls are only accepted outside production.

    Raises:
        HTTPException: 401 when the secret is missing or wrong
    """
    secret = settings.server.CRON_SECRET
    if not secret:
        if settings.is_production:
            logger.error("cron_secret_not_configured")
            raise HTTPException(status_code=401, detail="Unauthorized")
        return

    if not _token_matches(credentials, secret):
        logger.warning("cron_request_unauthorized")
        raise HTTPException(status_code=401, detail="Unauthorized")


def require_admin(
    settings: SettingsDep,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    x_admin_user: Optional[str] = Header(default=None),
) -> str:
    """Validate the admin bearer token and return the acting user id.

    Raises:
        HTTPException: 401 when ADMIN_API_TOKEN is unset or does not match
    """
    token = settings.server.ADMIN_API_TOKEN
    if not token:
        logger.error("admin_api_token_not_configured")
        raise HTTPException(status_code=401, detail="Unauthorized")

    if not _token_matches(credentials, token):
        logger.warning("admin_request_unauthorized")
        raise HTTPException(status_code=401, detail="Unauthorized")

    return x_admin_user or DEFAULT_ADMIN_USER
