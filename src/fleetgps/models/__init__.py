"""Data models for fleet vehicles and GPS mileage."""

from fleetgps.models._base import FleetBaseModel, PeriodDate
from fleetgps.models.gps import (
    CommitResult,
    DeletionPlan,
    DeletionScope,
    GpsUploadRecord,
    ParsedVehicleEntry,
    ParseResult,
    ParseWarning,
    PreviewEntry,
    format_km,
    group_km_by_vehicle,
)
from fleetgps.models.report import GpsReport, ReportSort
from fleetgps.models.vehicle import Vehicle

__all__ = [
    "CommitResult",
    "DeletionPlan",
    "DeletionScope",
    "FleetBaseModel",
    "GpsReport",
    "GpsUploadRecord",
    "ParseResult",
    "ParseWarning",
    "ParsedVehicleEntry",
    "PeriodDate",
    "PreviewEntry",
    "ReportSort",
    "Vehicle",
    "format_km",
    "group_km_by_vehicle",
]
