import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from api.dependencies.auth import require_admin, verify_cron_secret
from infrastructure.configuration import Settings
from infrastructure.configuration.infrastructure import ServerSettings


def bearer(token):
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


def make_settings(prefix="test-", **server):
    return Settings(PREFIX=prefix, server=ServerSettings(**server))


class TestVerifyCronSecret:
    def test_accepts_matching_secret(self):
        settings = make_settings(CRON_SECRET="s3cret")
        assert verify_cron_secret(settings, bearer("s3cret")) is None

    @pytest.mark.parametrize("credentials", [None, bearer("wrong"), bearer("")])
    def test_rejects_missing_or_wrong_secret(self, credentials):
        settings = make_settings(CRON_SECRET="s3cret")

        with pytest.raises(HTTPException) as exc_info:
            verify_cron_secret(settings, credentials)

        assert exc_info.value.status_code == 401

    def test_unset_secret_allowed_outside_production(self):
        assert verify_cron_secret(make_settings(prefix="dev-"), None) is None

    def test_unset_secret_rejected_in_production(self):
        with pytest.raises(HTTPException) as exc_info:
            verify_cron_secret(make_settings(prefix=""), None)

        assert exc_info.value.status_code == 401


class TestRequireAdmin:
    def test_returns_acting_user(self):
        settings = make_settings(ADMIN_API_TOKEN="tok")
        assert require_admin(settings, bearer("tok"), "alice") == "alice"

    def test_defaults_acting_user(self):
        settings = make_settings(ADMIN_API_TOKEN="tok")
        assert require_admin(settings, bearer("tok"), None) == "admin"

    def test_rejects_wrong_token(self):
        settings = make_settings(ADMIN_API_TOKEN="tok")

        with pytest.raises(HTTPException) as exc_info:
            require_admin(settings, bearer("nope"), "alice")

        assert exc_info.value.status_code == 401

    def test_unset_token_fails_closed(self):
        with pytest.raises(HTTPException) as exc_info:
            require_admin(make_settings(prefix="dev-"), bearer("anything"), None)

        assert exc_info.value.status_code == 401
