"""Vehicle model."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from fleetgps.ingestion.normalize import safe_float
from fleetgps.models._base import FleetBaseModel


class Vehicle(FleetBaseModel):
    """A fleet vehicle as stored in the ``vehicles`` table.

    Only the fields the mileage pipeline reads are modelled; the rest of
    the row is available through ``raw``.
    """

    id: str
    """Row identifier (UUID)."""
    plate: str = ""
    """License plate."""
    vin: str = ""
    """Vehicle Identification Number."""
    make: str | None = None
    model: str | None = None
    year: int | None = None
    branch_id: str | None = None
    status: str | None = None
    odometer_km: float = Field(default=0.0, ge=0)
    """Running odometer total in km (a mutable accumulator, not a ledger)."""

    @property
    def make_model(self) -> str:
        """``make`` and ``model`` concatenated, empty unless both are set."""
        if self.make and self.model:
            return f"{self.make}{self.model}"
        return ""

    @property
    def label(self) -> str:
        """Display label, e.g. ``"Ford Transit (ABC-123)"``."""
        name = " ".join(part for part in (self.make, self.model) if part)
        return f"{name} ({self.plate})" if name else self.plate

    @field_validator("odometer_km", mode="before")
    @classmethod
    def _coerce_odometer(cls, value: Any) -> float:
        parsed = safe_float(value)
        return 0.0 if parsed is None else max(0.0, parsed)
