"""
ingest/config.py

Environment-driven settings shared by the scheduler and the importer.

Environment Variables
---------------------
DB_HOST, DB_PORT, DB_NAME, DB_USER, DB_PASSWORD
    PostgreSQL connection parameters. The scheduler falls back to local
    defaults; the importer only defaults the port.
CARBON_API_URL
    Regional endpoint of the Carbon Intensity API.
FETCH_DELAY_SECONDS
    Courtesy pause before each live fetch.
LOG_LEVEL
    Root logging level for the entry points (default INFO).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv
from sqlalchemy.engine import URL

# Load `.env` for local development so shells do not need to export
# environment variables manually.
load_dotenv()

CARBON_API_URL = os.getenv("CARBON_API_URL", "https://api.carbonintensity.org.uk/regional")
FETCH_DELAY_SECONDS = float(os.getenv("FETCH_DELAY_SECONDS", "3"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

LOG_FORMAT = "%(asctime)s %(name)s - %(levelname)s - %(message)s"

DEFAULTS = {
    "host": "localhost",
    "port": "5432",
    "database": "postgres",
    "user": "postgres",
    "password": "postgres",
}


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection parameters for the warehouse database."""

    host: str | None
    port: int
    database: str | None
    user: str | None
    password: str | None

    @classmethod
    def from_env(cls, use_defaults: bool = True) -> DatabaseSettings:
        """Read settings from ``DB_*`` environment variables.

        Args:
            use_defaults: When True every missing value falls back to
                :data:`DEFAULTS`. When False only the port is defaulted and
                the rest stay ``None``, so a missing value shows up as a
                connection failure rather than a validation error.
        """

        def pick(env_key: str, key: str):
            value = os.environ.get(env_key)
            if value:
                return value
            if use_defaults or key == "port":
                return DEFAULTS[key]
            return None

        return cls(
            host=pick("DB_HOST", "host"),
            port=int(pick("DB_PORT", "port")),
            database=pick("DB_NAME", "database"),
            user=pick("DB_USER", "user"),
            password=pick("DB_PASSWORD", "password"),
        )

    def url(self) -> URL:
        return URL.create(
            "postgresql+psycopg2",
            username=self.user,
            password=self.password,
            host=self.host,
            port=self.port,
            database=self.database,
        )


def configure_logging(level: str | None = None) -> None:
    """Apply the process-wide logging format used by the entry points."""
    logging.basicConfig(level=(level or LOG_LEVEL).upper(), format=LOG_FORMAT)
