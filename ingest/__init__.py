"""Ingestion modules for regional carbon intensity and generation mix data."""

from . import client, config, import_day, jobs, load, scheduler, transform, validate

__all__ = [
    "client",
    "config",
    "import_day",
    "jobs",
    "load",
    "scheduler",
    "transform",
    "validate",
]
