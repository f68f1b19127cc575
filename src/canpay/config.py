"""Configuration management for the payroll engine."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment."""

    database_url: str
    engine_version: str
    default_tax_year: int
    rate_table_dir: str | None
    host: str
    port: int
    debug: bool
    log_level: str

    @property
    def HOST(self) -> str:
        """Alias for host."""
        return self.host

    @property
    def PORT(self) -> int:
        """Alias for port."""
        return self.port

    @property
    def DEBUG(self) -> bool:
        """Alias for debug."""
        return self.debug

    @property
    def uses_database(self) -> bool:
        """True when pay run history and YTD ledgers live in a SQL database."""
        return bool(self.database_url)

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment variables."""
        load_dotenv()

        return cls(
            # Empty means the in-memory store
            database_url=os.getenv("DATABASE_URL", ""),
            engine_version=os.getenv("ENGINE_VERSION", "1.0.0"),
            default_tax_year=int(os.getenv("DEFAULT_TAX_YEAR", "2024")),
            rate_table_dir=os.getenv("RATE_TABLE_DIR") or None,
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
            debug=os.getenv("DEBUG", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.from_env()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for the service process."""
    logging.basicConfig(
        level=level or get_settings().log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


settings = get_settings()
