"""Tests for environment-driven settings."""

from canpay.config import Settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("DATABASE_URL", "DEFAULT_TAX_YEAR", "RATE_TABLE_DIR", "DEBUG"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setattr("canpay.config.load_dotenv", lambda: None)

        settings = Settings.from_env()

        assert settings.database_url == ""
        assert not settings.uses_database
        assert settings.default_tax_year == 2024
        assert settings.rate_table_dir is None
        assert settings.DEBUG is False

    def test_from_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://payroll@localhost/payroll")
        monkeypatch.setenv("DEFAULT_TAX_YEAR", "2025")
        monkeypatch.setenv("RATE_TABLE_DIR", str(tmp_path))
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("PORT", "9000")

        settings = Settings.from_env()

        assert settings.uses_database
        assert settings.default_tax_year == 2025
        assert settings.rate_table_dir == str(tmp_path)
        assert settings.log_level == "DEBUG"
        assert settings.PORT == 9000
