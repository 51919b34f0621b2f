"""
db/models.py

SQLAlchemy table definitions mirroring the warehouse schema.

Responsibilities
----------------
- Provide a programmatic (SQLAlchemy Core) representation of the `live`
  and `day` tables so the ingestion jobs and importer can build INSERT
  statements without hand-written column lists.
- Keep column names/types aligned with `db/ddl.sql`.

Conventions
-----------
- Fuel columns store percentage share of regional generation.
- `from`, `to` and `date` are human-readable strings (Europe/London civil
  time) exactly as written by the live job; `created` is the instant.
- `json` holds the serialized non-zero contribution list, sorted high to low.

Notes
-----
- Neither table has a primary key; rows are append-only and never updated.
"""

from sqlalchemy import TIMESTAMP, Column, Integer, MetaData, Numeric, Table, Text

metadata = MetaData()

FUEL_COLUMNS = (
    "biomass",
    "nuclear",
    "hydro",
    "solar",
    "wind",
    "gas",
    "coal",
    "imports",
    "other",
)


def _fuel_columns():
    return [Column(name, Numeric) for name in FUEL_COLUMNS]


# Half-hourly regional snapshot written by the live ingestion job.
live = Table(
    "live",
    metadata,
    Column("region", Integer, nullable=False),
    Column("carbon_forecast", Numeric),
    *_fuel_columns(),
    Column("cleaner_total", Numeric),
    Column("fossil_total", Numeric),
    Column("from", Text),
    Column("to", Text),
    Column("date", Text),
    Column("carbon_index", Text),
    Column("json", Text),
    Column("created", TIMESTAMP(timezone=True)),
)

# Daily regional averages, either rolled up from `live` or imported from file.
day = Table(
    "day",
    metadata,
    Column("region", Integer, nullable=False),
    Column("date", Text),
    *_fuel_columns(),
    Column("cleaner_total", Numeric),
    Column("fossil_total", Numeric),
    Column("json", Text),
    Column("created", TIMESTAMP(timezone=True)),
)
