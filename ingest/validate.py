"""
ingest/validate.py

Validation and typing layer for the Carbon Intensity regional payload.

Responsibilities
----------------
- Define models for the parts of the response the live job consumes:
  * `RegionalSnapshot`: the validity window (`from`, `to`) and its raw
    region entries.
  * `RegionEntry`: region id, intensity forecast/index and generation mix.
- Provide `validate_snapshot` to pull the first snapshot out of the
  response envelope (`{"data": [...]}`).

Conventions
-----------
- Upstream instants look like "2024-01-01T12:00Z"; they are parsed into
  timezone-aware UTC datetimes.
- Percentages in the generation mix are kept as raw values here; numeric
  coercion happens in `ingest/transform.py` so bad values degrade to 0.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from dateutil import parser as dtp
from pydantic import BaseModel, ConfigDict, Field, field_validator


class FuelShare(BaseModel):
    fuel: str
    perc: Any = None


class Intensity(BaseModel):
    forecast: float | None = None
    index: str | None = None


class RegionEntry(BaseModel):
    """One region within a snapshot."""

    model_config = ConfigDict(extra="ignore")

    regionid: int = Field(ge=0)
    intensity: Intensity = Field(default_factory=Intensity)
    generationmix: list[FuelShare] = Field(default_factory=list)

    def mix(self) -> dict[str, Any]:
        """Return the generation mix as a fuel name -> percentage mapping.

        If a fuel is listed twice the first entry wins.
        """
        out: dict[str, Any] = {}
        for share in self.generationmix:
            out.setdefault(share.fuel, share.perc)
        return out


class RegionalSnapshot(BaseModel):
    """Validity window plus the per-region entries for that window."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    valid_from: datetime = Field(alias="from")
    valid_to: datetime = Field(alias="to")
    # Raw entries; callers validate each one with `RegionEntry.model_validate`.
    regions: list[Any] = Field(default_factory=list)

    @field_validator("valid_from", "valid_to", mode="before")
    @classmethod
    def parse_dt(cls, v):
        """Normalise ISO-8601 strings into aware UTC datetimes.

        Naive values are assumed to be UTC, which is what the upstream
        API uses even when it omits the offset.
        """
        if isinstance(v, str):
            v = dtp.isoparse(v)
        if isinstance(v, datetime):
            if v.tzinfo is None:
                return v.replace(tzinfo=timezone.utc)
            return v.astimezone(timezone.utc)
        return v


def validate_snapshot(payload: dict[str, Any]) -> RegionalSnapshot:
    """Validate the first snapshot of a `/regional` response.

    Args:
        payload: Parsed JSON body as returned by the API.

    Returns:
        RegionalSnapshot: The validated window and its raw region entries.

    Raises:
        KeyError: If the ``data`` envelope is missing.
        IndexError: If ``data`` is empty.
        pydantic.ValidationError: If the snapshot shape is invalid.
    """
    return RegionalSnapshot.model_validate(payload["data"][0])
