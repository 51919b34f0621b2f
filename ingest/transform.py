"""
ingest/transform.py

Normalisation layer turning a generation mix into the warehouse row shape.

Responsibilities
----------------
- Define the fixed `Fuel` set and its cleaner/fossil grouping.
- Coerce raw percentages to floats, degrading anything unparsable to 0.
- Derive the cleaner and fossil totals and the sparse, descending
  contribution list stored in the `json` column.
- Format the validity window as London civil time/date strings.

Notes
-----
- Nothing in this module raises on bad input; it is shared by the live job
  and the bulk importer, and both expect a fully populated result.
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from zoneinfo import ZoneInfo

LONDON = ZoneInfo("Europe/London")


class Fuel(str, Enum):
    BIOMASS = "biomass"
    NUCLEAR = "nuclear"
    HYDRO = "hydro"
    SOLAR = "solar"
    WIND = "wind"
    GAS = "gas"
    COAL = "coal"
    IMPORTS = "imports"
    OTHER = "other"


CLEANER_FUELS = (Fuel.BIOMASS, Fuel.NUCLEAR, Fuel.HYDRO, Fuel.SOLAR, Fuel.WIND)
FOSSIL_FUELS = (Fuel.GAS, Fuel.COAL, Fuel.IMPORTS, Fuel.OTHER)


def to_number(value) -> float:
    """Coerce a raw percentage to ``float``; blanks and garbage become 0.

    Strings may carry stray double quotes and whitespace from the source
    file, which are removed before parsing.
    """
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, str):
        value = value.replace('"', "").strip()
        if not value:
            return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number):
        return 0.0
    return number


def group_total(supplied, values) -> float:
    """Return the supplied total when nonzero, otherwise the rounded sum.

    Args:
        supplied: A total provided by the source (may be None/blank/garbage).
        values: The component percentages making up the group.

    Returns:
        float: ``supplied`` unchanged if it parses to a nonzero number; the
        component sum rounded to 2 decimals if that sum is positive; else 0.
    """
    total = to_number(supplied)
    if total != 0:
        return total
    component_sum = sum(values)
    if component_sum > 0:
        return round(component_sum, 2)
    return 0.0


def contributions(values: Mapping[Fuel, float]) -> list[dict]:
    """Build the non-zero contribution list, highest percentage first.

    Ties keep the `Fuel` declaration order (``sorted`` is stable).
    """
    items = [{"fuel": fuel.value, "perc": values[fuel]} for fuel in Fuel if values[fuel] > 0]
    return sorted(items, key=lambda item: item["perc"], reverse=True)


@dataclass
class GenerationMix:
    """Fully populated generation mix for one region and period."""

    values: dict[Fuel, float]
    cleaner_total: float
    fossil_total: float
    contributions: list[dict] = field(default_factory=list)

    def as_columns(self) -> dict:
        """Return the mix keyed by warehouse column name, `json` serialized."""
        row = {fuel.value: self.values[fuel] for fuel in Fuel}
        row["cleaner_total"] = self.cleaner_total
        row["fossil_total"] = self.fossil_total
        row["json"] = json.dumps(self.contributions)
        return row


def _build(values: dict[Fuel, float], cleaner_total, fossil_total) -> GenerationMix:
    return GenerationMix(
        values=values,
        cleaner_total=group_total(cleaner_total, [values[f] for f in CLEANER_FUELS]),
        fossil_total=group_total(fossil_total, [values[f] for f in FOSSIL_FUELS]),
        contributions=contributions(values),
    )


def normalize(
    mix: Mapping[str, object],
    cleaner_total=None,
    fossil_total=None,
) -> GenerationMix:
    """Normalise a fuel name -> percentage mapping.

    Unknown fuel names are ignored and missing fuels count as 0.
    """
    values = {fuel: to_number(mix.get(fuel.value)) for fuel in Fuel}
    return _build(values, cleaner_total, fossil_total)


def normalize_fields(cleaner_total=None, fossil_total=None, **fuels) -> GenerationMix:
    """Normalise already-separated fuel fields (e.g. an importer row).

    Keyword names must be `Fuel` values; extras are ignored.
    """
    return normalize(fuels, cleaner_total=cleaner_total, fossil_total=fossil_total)


def format_time(instant: datetime) -> str:
    """Return ``HH:MM`` (24-hour, zero padded) in London civil time."""
    return instant.astimezone(LONDON).strftime("%H:%M")


def format_date(instant: datetime) -> str:
    """Return ``DD/MM/YYYY`` for the London civil date of ``instant``."""
    return instant.astimezone(LONDON).strftime("%d/%m/%Y")
