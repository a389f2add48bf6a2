"""Base model and shared annotated types for backend rows.

Every persisted-row model inherits from :class:`FleetBaseModel` which
provides:

* A ``model_validator(mode="before")`` that drops empty-string and
  ``None`` values so the field default is used.
* A ``raw`` dict that captures the original row.

:data:`PeriodDate` coerces month-like values to the first day of the month.
"""

from __future__ import annotations

import math
from datetime import date
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator

from fleetgps.ingestion.normalize import normalize_period

_SENTINELS = frozenset({"", "--", "NaN", "nan"})


PeriodDate = Annotated[date, BeforeValidator(normalize_period)]
"""Annotated type: a calendar month stored as its first day."""


class FleetBaseModel(BaseModel):
    """Base for rows read from the backend tables."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    raw: dict[str, Any] = Field(default_factory=dict)
    """Original row dict."""

    @staticmethod
    def _clean_dict(values: dict[str, Any]) -> dict[str, Any]:
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and value.strip() in _SENTINELS:
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            cleaned[key] = value
        return cleaned

    @model_validator(mode="before")
    @classmethod
    def _clean_row_values(cls, values: Any) -> Any:
        """Strip sentinel values and stash the raw row."""
        if not isinstance(values, dict):
            return values
        original = dict(values)
        cleaned = FleetBaseModel._clean_dict(original)
        # Keep an explicit raw= when constructing with kwargs.
        if "raw" not in values:
            cleaned["raw"] = original
        return cleaned
