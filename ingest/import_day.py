"""
ingest/import_day.py

One-shot importer loading historical per-day regional records into `day`.

Responsibilities
----------------
- Read a headerless, tab-delimited file whose columns follow the fixed
  `COLUMNS` order.
- Normalise each row with the same logic as the live job, recomputing the
  cleaner/fossil totals when the file gives zero.
- Skip rows with an invalid region or missing date, count insert errors,
  and abandon the run once errors exceed `MAX_ERRORS`.

Usage
-----
    python -m ingest.import_day historical-data.tsv

Environment Variables
---------------------
DB_HOST, DB_PORT, DB_NAME, DB_USER, DB_PASSWORD
    Only the port has a default here; anything else missing surfaces as a
    connection error on the first insert.
"""

from __future__ import annotations

import argparse
import csv
import json
import logging
import os
import sys
import warnings
from dataclasses import dataclass

import pandas as pd
from dateutil import parser as dtp
from sqlalchemy.exc import SQLAlchemyError

from .config import DatabaseSettings, configure_logging
from .load import Datastore
from .transform import Fuel, normalize_fields

logger = logging.getLogger(__name__)

# Column order of the source file (it has no header row).
COLUMNS = [
    "region",
    "date",
    "biomass",
    "nuclear",
    "hydro",
    "solar",
    "wind",
    "cleaner_total",
    "gas",
    "coal",
    "imports",
    "other",
    "fossil_total",
    "created",
]

MAX_ERRORS = 10
PROGRESS_EVERY = 100


class RowSkipped(ValueError):
    """Raised when a row lacks a usable region or date."""


@dataclass
class ImportStats:
    total: int = 0
    imported: int = 0
    skipped: int = 0
    errors: int = 0

    @property
    def aborted(self) -> bool:
        return self.errors > MAX_ERRORS


def _clean(value) -> str:
    """Return a trimmed string with double quotes removed; NaN becomes ''."""
    if not isinstance(value, str):
        return ""
    return value.replace('"', "").strip()


def read_rows(path: str) -> list[dict[str, str]]:
    """Parse ``path`` into a list of string dicts keyed by `COLUMNS`.

    Blank lines are skipped, short rows are padded with '' and rows with
    extra fields are truncated to the known columns.

    Raises:
        pandas.errors.ParserError: If the file cannot be tokenised.
    """
    # Extra fields on the first row (e.g. a trailing tab) must not become
    # an implicit index.
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", pd.errors.ParserWarning)
            df = pd.read_csv(
                path,
                sep="\t",
                header=None,
                names=COLUMNS,
                dtype=str,
                quotechar='"',
                skip_blank_lines=True,
                keep_default_na=False,
                index_col=False,
                engine="python",
                on_bad_lines=lambda fields: fields[: len(COLUMNS)],
            )
    except pd.errors.EmptyDataError:
        return []
    df = df.fillna("")
    return [{col: _clean(rec[col]) for col in COLUMNS} for rec in df.to_dict("records")]


def build_day_row(row: dict[str, str]) -> dict:
    """Map one parsed file row to a `day` row.

    Raises:
        RowSkipped: If the region is not an integer or the date is blank.
        ValueError: If the `created` timestamp cannot be parsed.
    """
    try:
        region = int(float(row.get("region", "")))
    except (ValueError, OverflowError):
        raise RowSkipped("Invalid region") from None

    date_str = row.get("date", "")
    if not date_str:
        raise RowSkipped("No date found")

    mix = normalize_fields(
        cleaner_total=row.get("cleaner_total"),
        fossil_total=row.get("fossil_total"),
        **{fuel.value: row.get(fuel.value) for fuel in Fuel},
    )

    out = {"region": region, "date": date_str}
    out.update(mix.as_columns())
    out["created"] = dtp.parse(row.get("created", ""))
    return out


def import_rows(store: Datastore, rows: list[dict[str, str]]) -> ImportStats:
    """Insert ``rows`` into `day`, counting imports, skips and errors.

    Processing stops as soon as the error count exceeds `MAX_ERRORS`.
    """
    stats = ImportStats(total=len(rows))

    for row in rows:
        position = stats.imported + stats.skipped + 1
        try:
            store.insert_day(build_day_row(row))
        except RowSkipped as exc:
            logger.warning("Row %d: %s, skipping", position, exc)
            stats.skipped += 1
            continue
        except (SQLAlchemyError, ValueError, OverflowError) as exc:
            stats.errors += 1
            logger.error("Error importing row %d: %s", position, exc)
            logger.error("Row data: %s", json.dumps(row))
            if stats.aborted:
                logger.error("Too many errors, stopping import")
                break
            continue

        stats.imported += 1
        if stats.imported % PROGRESS_EVERY == 0:
            print(f"Imported {stats.imported} records...")

    return stats


def print_summary(stats: ImportStats):
    print()
    print("=" * 39)
    print("Import Complete")
    print("=" * 39)
    print(f"Total rows in file: {stats.total}")
    print(f"Successfully imported: {stats.imported}")
    print(f"Skipped: {stats.skipped}")
    print(f"Errors: {stats.errors}")
    print()


def main(argv=None):
    """CLI entry point for the historical importer.

    Args:
        argv: Optional list of CLI arguments (useful for testing).

    Returns:
        int: 0 on success or a tolerable error count, 1 on a missing file,
        unreadable input, or when the error ceiling is exceeded.
    """
    parser = argparse.ArgumentParser(
        prog="python -m ingest.import_day",
        description="Import historical daily regional generation mix into `day`.",
    )
    parser.add_argument("path", nargs="?", help="Tab-delimited file without a header row")
    args = parser.parse_args(argv)

    if not args.path:
        print("Usage: python -m ingest.import_day <path-to-file>", file=sys.stderr)
        print("Example: python -m ingest.import_day historical-data.tsv", file=sys.stderr)
        return 1

    if not os.path.exists(args.path):
        print(f"Error: File not found: {args.path}", file=sys.stderr)
        return 1

    configure_logging()
    print(f"Reading file: {args.path}")

    try:
        rows = read_rows(args.path)
    except (pd.errors.ParserError, csv.Error, UnicodeDecodeError) as exc:
        print(f"Parsing error: {exc}", file=sys.stderr)
        return 1

    print(f"Parsed {len(rows)} rows")
    if rows:
        print("Sample row (first record):")
        print(json.dumps(rows[0], indent=2))

    store = Datastore.from_settings(DatabaseSettings.from_env(use_defaults=False))
    try:
        stats = import_rows(store, rows)
    finally:
        store.close()

    print_summary(stats)
    return 1 if stats.aborted else 0


if __name__ == "__main__":
    raise SystemExit(main())
