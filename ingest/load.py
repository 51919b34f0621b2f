"""
ingest/load.py

Database layer for the ingestion jobs and the bulk importer.

Responsibilities
----------------
- Wrap a SQLAlchemy Engine in an explicitly constructed `Datastore` handle
  with an open/close lifecycle (no module-level pool).
- Initialise the warehouse schema by executing `db/ddl.sql`.
- Insert single rows into `live` and `day`.
- Run the aggregate queries behind the daily rollup.
- Provide a small CLI for one-off DB initialisation (`--init-db`).

Notes
-----
- Every write runs in its own `engine.begin()` transaction, so a job that
  fails part way leaves the rows it already wrote committed.
"""

from __future__ import annotations

import argparse
import logging
import os
from datetime import date

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from db.models import day as day_table
from db.models import live as live_table

from .config import DatabaseSettings, configure_logging

logger = logging.getLogger(__name__)

DISTINCT_REGIONS_SQL = "SELECT DISTINCT region FROM public.live ORDER BY region ASC"

# Averages one region's live rows for a single London creation day, the same
# day boundary `format_date` uses for the `date` column. Fuels keep two
# decimals, totals are rounded to whole numbers, and the result is stamped
# one day after the data day.
ROLLUP_SQL = """
    INSERT INTO public.day (
        region, date, biomass, nuclear, hydro, solar, wind, cleaner_total,
        gas, coal, imports, other, fossil_total, created
    )
    SELECT
        region,
        date,
        ROUND(AVG(biomass)::NUMERIC, 2) AS biomass,
        ROUND(AVG(nuclear)::NUMERIC, 2) AS nuclear,
        ROUND(AVG(hydro)::NUMERIC, 2) AS hydro,
        ROUND(AVG(solar)::NUMERIC, 2) AS solar,
        ROUND(AVG(wind)::NUMERIC, 2) AS wind,
        ROUND(AVG(cleaner_total)::NUMERIC) AS cleaner_total,
        ROUND(AVG(gas)::NUMERIC, 2) AS gas,
        ROUND(AVG(coal)::NUMERIC, 2) AS coal,
        ROUND(AVG(imports)::NUMERIC, 2) AS imports,
        ROUND(AVG(other)::NUMERIC, 2) AS other,
        ROUND(AVG(fossil_total)::NUMERIC) AS fossil_total,
        (CAST(created AT TIME ZONE 'Europe/London' AS DATE) + INTERVAL '1 day')
            AT TIME ZONE 'Europe/London' AS created
    FROM public.live
    WHERE CAST(created AT TIME ZONE 'Europe/London' AS DATE) = :day
      AND region = :region
    GROUP BY region, date, CAST(created AT TIME ZONE 'Europe/London' AS DATE)
"""


def get_engine(settings: DatabaseSettings) -> Engine:
    """Create a SQLAlchemy engine for ``settings``.

    Returns:
        Engine: A pooled engine with `pool_pre_ping=True` to guard against
        stale connections.
    """
    return create_engine(settings.url(), pool_pre_ping=True)


class Datastore:
    """Handle on the warehouse database.

    Construct it once at process start, pass it to the jobs, and call
    :meth:`close` at shutdown to drain the connection pool.
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    @classmethod
    def from_settings(cls, settings: DatabaseSettings) -> Datastore:
        return cls(get_engine(settings))

    def ping(self):
        """Round-trip ``SELECT NOW()`` and return the server time."""
        with self.engine.begin() as cx:
            return cx.execute(text("SELECT NOW()")).scalar()

    def init_db(self):
        """Initialise the schema by executing ``db/ddl.sql``.

        Safe to run multiple times: the DDL only creates missing objects.
        """
        ddl_path = os.path.join(os.path.dirname(__file__), "..", "db", "ddl.sql")
        with open(ddl_path, encoding="utf-8") as f:
            ddl = f.read()

        with self.engine.begin() as cx:
            cx.execute(text(ddl))

    def insert_live(self, row: dict):
        """Insert one row into ``live``. Keys must match column names."""
        with self.engine.begin() as cx:
            cx.execute(live_table.insert(), row)

    def insert_day(self, row: dict):
        """Insert one row into ``day``. Keys must match column names."""
        with self.engine.begin() as cx:
            cx.execute(day_table.insert(), row)

    def distinct_regions(self) -> list[int]:
        """Return every region present in ``live``, ascending."""
        with self.engine.begin() as cx:
            return list(cx.execute(text(DISTINCT_REGIONS_SQL)).scalars())

    def rollup_region(self, region: int, day: date) -> int:
        """Write the averaged ``day`` row(s) for ``region`` on ``day``.

        Returns:
            int: Number of rows inserted; 0 when the region has no live rows
            for that day.
        """
        with self.engine.begin() as cx:
            result = cx.execute(text(ROLLUP_SQL), {"region": region, "day": day})
        return result.rowcount

    def close(self):
        """Dispose of the engine's connection pool."""
        self.engine.dispose()


def main(argv=None):
    """CLI entry point for DB utilities.

    Supported actions:
        --init-db  Create tables and indexes by executing ``db/ddl.sql``.

    Args:
        argv: Optional list of CLI arguments for testing.

    Returns:
        int: Process exit code (0 for success).
    """
    parser = argparse.ArgumentParser()
    parser.add_argument("--init-db", action="store_true", help="Create tables and indexes")
    args, _ = parser.parse_known_args(argv)

    configure_logging()
    store = Datastore.from_settings(DatabaseSettings.from_env())

    try:
        if args.init_db:
            store.init_db()
            print("DB initialised.")
            return 0
    finally:
        store.close()

    print("Nothing to do. Use --init-db from this module or run ingest.scheduler.")
    return 0


if __name__ == "__main__":
    # Delegate to `main()` and convert its return value to a process exit code.
    raise SystemExit(main())
