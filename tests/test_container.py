"""
Tests for wiring the service container from settings.
"""

import pytest

from practicum.config import DEV_JWT_SECRET, Settings
from practicum.services.container import build_services


def production_settings(tmp_path, **overrides) -> Settings:
    return Settings(
        _env_file=None,
        environment="production",
        database_path=str(tmp_path / "prod.db"),
        password_hash_iterations=1_000,
        **overrides,
    )


# =============================================================================
# JWT secret at startup
# =============================================================================


class TestBuildServices:
    @pytest.mark.parametrize("secret", ["", DEV_JWT_SECRET])
    def test_production_refuses_default_secret(self, tmp_path, secret):
        settings = production_settings(tmp_path, jwt_secret_key=secret)

        with pytest.raises(ValueError, match="JWT_SECRET_KEY"):
            build_services(settings)

    def test_production_with_real_secret(self, tmp_path):
        settings = production_settings(tmp_path, jwt_secret_key="a-long-random-secret")

        services = build_services(settings)

        assert services.tokens.secret == "a-long-random-secret"

    def test_development_keeps_default_secret(self, settings):
        dev = settings.model_copy(update={"jwt_secret_key": DEV_JWT_SECRET})

        assert build_services(dev).settings.jwt_secret_key == DEV_JWT_SECRET
