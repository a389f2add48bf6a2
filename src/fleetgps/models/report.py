"""GPS mileage report model."""

from __future__ import annotations

from datetime import date
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from fleetgps.models.gps import GpsUploadRecord


class ReportSort(StrEnum):
    DATE = "date"
    VEHICLE = "vehicle"
    KM = "km"


class GpsReport(BaseModel):
    """Filtered, sorted view over the GPS upload history.

    Unmatched records are part of every total.
    """

    model_config = ConfigDict(frozen=True)

    records: list[GpsUploadRecord] = Field(default_factory=list)
    vehicle_filter: str = "all"
    period_from: date | None = None
    period_to: date | None = None
    sort_by: ReportSort = ReportSort.DATE

    @property
    def total_km(self) -> float:
        return sum(record.kilometers for record in self.records)

    @property
    def matched_count(self) -> int:
        return sum(1 for record in self.records if record.is_matched)

    @property
    def unmatched_count(self) -> int:
        return sum(1 for record in self.records if not record.is_matched)

    def selected_km(self, ids: set[str]) -> float:
        """Kilometers of the records in *ids* that are visible in this report."""
        return sum(record.kilometers for record in self.records if record.id in ids)

    def totals_by_period(self) -> dict[date, float]:
        totals: dict[date, float] = {}
        for record in self.records:
            totals[record.upload_period] = totals.get(record.upload_period, 0.0) + record.kilometers
        return totals
