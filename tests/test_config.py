"""Tests for environment-driven settings."""

from __future__ import annotations

import pytest

from ingest.config import DatabaseSettings

DB_VARS = ("DB_HOST", "DB_PORT", "DB_NAME", "DB_USER", "DB_PASSWORD")


@pytest.fixture
def clean_env(monkeypatch):
    for key in DB_VARS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


def test_from_env_defaults(clean_env):
    settings = DatabaseSettings.from_env()

    assert settings == DatabaseSettings("localhost", 5432, "postgres", "postgres", "postgres")


def test_from_env_without_defaults_only_defaults_port(clean_env):
    settings = DatabaseSettings.from_env(use_defaults=False)

    assert settings.port == 5432
    assert settings.host is None
    assert settings.database is None
    assert settings.user is None
    assert settings.password is None


def test_from_env_reads_variables(clean_env):
    clean_env.setenv("DB_HOST", "warehouse")
    clean_env.setenv("DB_PORT", "6000")
    clean_env.setenv("DB_NAME", "carbon")
    clean_env.setenv("DB_USER", "etl")
    clean_env.setenv("DB_PASSWORD", "pw")

    settings = DatabaseSettings.from_env(use_defaults=False)
    url = settings.url()

    assert url.host == "warehouse"
    assert url.port == 6000
    assert url.database == "carbon"
    assert url.username == "etl"
    assert url.password == "pw"
