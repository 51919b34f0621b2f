"""
ingest/jobs.py

The two recurring jobs driven by `ingest/scheduler.py`.

Responsibilities
----------------
- `run_live_update`: fetch the current regional snapshot, normalise each
  region's generation mix and insert one `live` row per region.
- `run_daily_totals`: for every region seen in `live`, average the previous
  day's rows into one `day` row.

Conventions
-----------
- Failures are contained per region: a malformed entry or a failed insert is
  logged, counted, and the loop moves on. Neither job raises to the scheduler.
- Both jobs return a small stats dict for logging and tests.
"""

from __future__ import annotations

import logging
import time
from datetime import date, datetime, timedelta

import requests
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from . import client
from .config import FETCH_DELAY_SECONDS
from .load import Datastore
from .transform import LONDON, format_date, format_time, normalize
from .validate import RegionalSnapshot, RegionEntry, validate_snapshot

logger = logging.getLogger(__name__)


def build_live_row(entry: RegionEntry, snapshot: RegionalSnapshot) -> dict:
    """Map one region entry to a `live` row.

    `from`/`to` are London civil times of the validity window; `date` and
    `created` both come from the window end.
    """
    row = {
        "region": entry.regionid,
        "carbon_forecast": entry.intensity.forecast,
        "carbon_index": entry.intensity.index,
        "from": format_time(snapshot.valid_from),
        "to": format_time(snapshot.valid_to),
        "date": format_date(snapshot.valid_to),
        "created": snapshot.valid_to,
    }
    row.update(normalize(entry.mix()).as_columns())
    return row


def run_live_update(store: Datastore, delay: float | None = None) -> dict[str, int]:
    """Fetch the regional snapshot and insert one `live` row per region.

    Args:
        store: Open datastore handle.
        delay: Seconds to wait before fetching; defaults to
            :data:`ingest.config.FETCH_DELAY_SECONDS`.

    Returns:
        dict[str, int]: ``{"regions": ..., "inserted": ..., "failed": ...}``.
    """
    logger.info("Starting regional update job")
    stats = {"regions": 0, "inserted": 0, "failed": 0}

    # Don't hit the API right on the half-hour boundary.
    time.sleep(FETCH_DELAY_SECONDS if delay is None else delay)

    try:
        snapshot = validate_snapshot(client.fetch_regional())
    except (requests.RequestException, ValueError, KeyError, IndexError) as exc:
        logger.error("Regional update job failed to fetch snapshot: %s", exc)
        return stats

    stats["regions"] = len(snapshot.regions)
    logger.info("Fetched %d regions", stats["regions"])

    for raw in snapshot.regions:
        try:
            entry = RegionEntry.model_validate(raw)
        except ValidationError as exc:
            stats["failed"] += 1
            logger.error("Skipping malformed region entry: %s", exc)
            continue
        try:
            store.insert_live(build_live_row(entry, snapshot))
        except SQLAlchemyError as exc:
            stats["failed"] += 1
            logger.error("Failed to insert live row for region %s: %s", entry.regionid, exc)
            continue
        stats["inserted"] += 1

    logger.info("Regional update job completed: %s", stats)
    return stats


def run_daily_totals(store: Datastore, day: date | None = None) -> dict[str, int]:
    """Roll up one day of `live` rows into `day`, region by region.

    Args:
        store: Open datastore handle.
        day: Data day to aggregate; defaults to yesterday in London.

    Returns:
        dict[str, int]: ``{"regions": ..., "inserted": ..., "failed": ...}``.
    """
    day = day or (datetime.now(LONDON).date() - timedelta(days=1))
    logger.info("Starting daily totals job for %s", day.isoformat())
    stats = {"regions": 0, "inserted": 0, "failed": 0}

    try:
        regions = store.distinct_regions()
    except SQLAlchemyError as exc:
        logger.error("Daily totals job failed to list regions: %s", exc)
        return stats

    stats["regions"] = len(regions)
    logger.info("Processing %d regions for daily totals", stats["regions"])

    for region in regions:
        try:
            stats["inserted"] += store.rollup_region(region, day)
        except SQLAlchemyError as exc:
            stats["failed"] += 1
            logger.error("Failed to roll up region %s: %s", region, exc)

    logger.info("Daily totals job completed: %s", stats)
    return stats
