"""Tests de configuración: variables de entorno, .env y flags de la CLI."""

import pytest

from common.config import get_settings
from pantheon_exporter.cli import build_fetcher, build_parser
from pantheon_exporter.refresh import RefreshConfig
from pantheon_exporter.upstream import FixtureFetcher, PantheonClient

ENV_VARS = (
    "PANTHEON_MACHINE_TOKENS", "PANTHEON_ENV", "EXPORTER_PORT", "REFRESH_INTERVAL_MINUTES",
    "SITE_LIMIT", "PANTHEON_ORG_ID", "EXPORTER_DEBUG", "METRICS_TICK_SECONDS",
    "FETCH_MAX_WORKERS", "EXPORTER_WARM_UP", "PANTHEON_API_URL", "PANTHEON_REQUEST_TIMEOUT",
    "EXPORTER_FIXTURES_DIR",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("EXPORTER_ENV_FILE", str(tmp_path / "missing.env"))
    return monkeypatch


class TestSettings:

    def test_defaults(self, clean_env):
        settings = get_settings()

        assert settings.machine_tokens == ()
        assert settings.environment == "live"
        assert settings.port == 8080
        assert settings.refresh_interval_minutes == 60
        assert settings.site_limit == 0
        assert settings.debug is False
        assert settings.warm_up is True
        assert settings.api_url == "https://terminus.pantheon.io/api"

    def test_tokens_split_on_whitespace(self, clean_env):
        clean_env.setenv("PANTHEON_MACHINE_TOKENS", "tok-1  tok-2\ntok-3")

        assert get_settings().machine_tokens == ("tok-1", "tok-2", "tok-3")

    def test_env_overrides(self, clean_env):
        clean_env.setenv("PANTHEON_ENV", "dev")
        clean_env.setenv("SITE_LIMIT", "5")
        clean_env.setenv("EXPORTER_DEBUG", "yes")
        clean_env.setenv("EXPORTER_WARM_UP", "false")

        settings = get_settings()

        assert settings.environment == "dev"
        assert settings.site_limit == 5
        assert settings.debug is True
        assert settings.warm_up is False

    def test_env_file(self, clean_env, tmp_path):
        env_file = tmp_path / "exporter.env"
        env_file.write_text("PANTHEON_ORG_ID=org-from-file\nEXPORTER_PORT=9100\n")
        clean_env.setenv("EXPORTER_ENV_FILE", str(env_file))
        clean_env.setenv("EXPORTER_PORT", "9200")

        settings = get_settings()

        assert settings.org_id == "org-from-file"
        assert settings.port == 9200

    def test_refresh_config_from_settings(self, clean_env):
        clean_env.setenv("PANTHEON_MACHINE_TOKENS", "tok-1")
        clean_env.setenv("METRICS_TICK_SECONDS", "15")

        config = RefreshConfig.from_settings(get_settings())

        assert config.tokens == ("tok-1",)
        assert config.tick_seconds == 15.0
        assert config.refresh_interval_seconds == 3600.0


class TestCli:

    def test_flags_override_settings(self, clean_env):
        args = build_parser(get_settings()).parse_args([
            "--env", "test", "--port", "9000", "--refreshInterval", "30",
            "--siteLimit", "3", "--orgID", "org-1", "--debug", "--no-warm-up",
        ])

        assert (args.env, args.port, args.refresh_interval) == ("test", 9000, 30)
        assert (args.site_limit, args.org_id) == (3, "org-1")
        assert args.debug is True
        assert args.warm_up is False

    def test_defaults_come_from_settings(self, clean_env):
        clean_env.setenv("REFRESH_INTERVAL_MINUTES", "15")

        args = build_parser(get_settings()).parse_args([])

        assert args.refresh_interval == 15
        assert args.warm_up is True

    def test_build_fetcher(self, clean_env, tmp_path):
        settings = get_settings()

        assert isinstance(build_fetcher(settings, ""), PantheonClient)
        assert isinstance(build_fetcher(settings, str(tmp_path)), FixtureFetcher)
