"""GPS mileage models: parsed entries, preview entries and audit records."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime
from enum import StrEnum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from fleetgps.models._base import FleetBaseModel, PeriodDate
from fleetgps.models.vehicle import Vehicle


def format_km(value: float) -> str:
    """Render a distance like ``1,234.5`` (no trailing zeros)."""
    return f"{value:,.2f}".rstrip("0").rstrip(".")


class GpsUploadRecord(FleetBaseModel):
    """One committed row of GPS mileage history (``gps_uploads`` table).

    ``vehicle_id`` is ``None`` for unmatched rows; ``gps_vehicle_name``
    always keeps the label from the source file.
    """

    id: str
    vehicle_id: str | None = None
    gps_vehicle_name: str | None = None
    file_name: str = ""
    file_path: str = ""
    upload_period: PeriodDate = Field(validation_alias=AliasChoices("upload_month", "upload_period"))
    """Calendar month of the upload, stored as its first day."""
    kilometers: float = Field(default=0.0, ge=0)
    created_at: datetime | None = None
    uploaded_by: str | None = None
    notes: str | None = None

    @property
    def is_matched(self) -> bool:
        return self.vehicle_id is not None


class ParseWarning(BaseModel):
    """A non-fatal problem with one row of the export."""

    model_config = ConfigDict(frozen=True)

    row_number: int
    """1-based line number among the non-blank lines of the file."""
    vehicle_name: str
    raw_value: str
    issue: str


class ParsedVehicleEntry(BaseModel):
    """Per-vehicle kilometer total extracted from one file."""

    model_config = ConfigDict(frozen=True)

    vehicle_name: str
    kilometers: float = Field(default=0.0, ge=0)
    row_number: int | None = None
    """Line of the first row that contributed to this entry."""
    corrected: bool = False
    """A cell needed cleaning (units, separators) or clamping to be read."""
    raw_value: str | None = None
    """Original cell text when ``corrected`` is set."""
    has_data: bool = True
    """``False`` when no row for this vehicle held a readable distance."""


class ParseResult(BaseModel):
    """Everything the parser extracted from one file."""

    model_config = ConfigDict(frozen=True)

    entries: list[ParsedVehicleEntry] = Field(default_factory=list)
    warnings: list[ParseWarning] = Field(default_factory=list)
    period_start: date | None = None
    period_end: date | None = None
    distance_column: str | None = None
    vehicle_column: str | None = None
    used_fallback: bool = False
    """The total came from the last-line heuristic, not a column."""
    manual_entry_required: bool = False
    """The file was accepted for storage but not parsed (Excel)."""

    @property
    def total_km(self) -> float:
        return sum(entry.kilometers for entry in self.entries)


class PreviewEntry(BaseModel):
    """A parsed entry plus its (user-editable) vehicle match."""

    model_config = ConfigDict(validate_assignment=True)

    vehicle_name: str
    kilometers: float = Field(default=0.0, ge=0)
    row_number: int | None = None
    corrected: bool = False
    raw_value: str | None = None
    has_data: bool = True
    matched_vehicle: Vehicle | None = None

    @classmethod
    def from_parsed(cls, entry: ParsedVehicleEntry, matched_vehicle: Vehicle | None) -> PreviewEntry:
        return cls(**entry.model_dump(), matched_vehicle=matched_vehicle)

    @property
    def vehicle_id(self) -> str | None:
        return self.matched_vehicle.id if self.matched_vehicle is not None else None


class CommitResult(BaseModel):
    """Outcome of committing a confirmed batch."""

    model_config = ConfigDict(frozen=True)

    records: list[GpsUploadRecord] = Field(default_factory=list)
    file_path: str | None = None
    upload_period: date

    @property
    def matched_count(self) -> int:
        return sum(1 for record in self.records if record.is_matched)

    @property
    def unmatched_count(self) -> int:
        return sum(1 for record in self.records if not record.is_matched)

    @property
    def total_km(self) -> float:
        return sum(record.kilometers for record in self.records)

    def summary(self) -> str:
        return (
            f"Processed {len(self.records)} vehicles: {self.matched_count} matched, "
            f"{self.unmatched_count} unmatched. Total: {format_km(self.total_km)} km"
        )


class DeletionScope(StrEnum):
    SINGLE = "single"
    SELECTED = "selected"
    ALL = "all"


class DeletionPlan(BaseModel):
    """A set of audit records staged for deletion, pending confirmation.

    Deletion is irreversible, so executing a plan requires
    :meth:`confirm` to have been called first.
    """

    scope: DeletionScope
    records: list[GpsUploadRecord]
    confirmed: bool = False

    @property
    def record_ids(self) -> list[str]:
        return [record.id for record in self.records]

    @property
    def total_km(self) -> float:
        return sum(record.kilometers for record in self.records)

    @property
    def km_by_vehicle(self) -> dict[str, float]:
        """Kilometers to subtract per matched vehicle, in first-seen order."""
        return group_km_by_vehicle(self.records)

    @property
    def message(self) -> str:
        """Confirmation prompt shown before the destructive action."""
        if self.scope == DeletionScope.SINGLE and len(self.records) == 1:
            record = self.records[0]
            if record.vehicle_id:
                return (
                    f"Delete GPS data for {record.gps_vehicle_name or 'this vehicle'}? This will subtract "
                    f"{format_km(record.kilometers)} km from the vehicle's odometer."
                )
            return f"Delete GPS data for {record.gps_vehicle_name or 'this entry'}?"
        if self.scope == DeletionScope.ALL:
            head = f"This will permanently delete all {len(self.records)} GPS entries"
        else:
            head = f"This will permanently delete {len(self.records)} GPS entries ({format_km(self.total_km)} km)"
        return f"{head} and subtract the corresponding kilometers from vehicle odometers. This action cannot be undone."

    def confirm(self) -> DeletionPlan:
        self.confirmed = True
        return self


def group_km_by_vehicle(records: Iterable[GpsUploadRecord]) -> dict[str, float]:
    """Sum kilometers per non-null ``vehicle_id``."""
    totals: dict[str, float] = {}
    for record in records:
        if record.vehicle_id:
            totals[record.vehicle_id] = totals.get(record.vehicle_id, 0.0) + record.kilometers
    return totals
