"""fleetgps - Async GPS mileage import and odometer reconciliation for fleets."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("fleetgps")
except PackageNotFoundError:
    __version__ = "0+local"
from fleetgps.backup import BackupDocument
from fleetgps.client import FleetClient
from fleetgps.config import FleetConfig
from fleetgps.exceptions import (
    BackupFormatError,
    CommitError,
    DeletionError,
    DeletionNotConfirmedError,
    EmptyFileError,
    FleetApiError,
    FleetConfigError,
    FleetError,
    FleetNotFoundError,
    FleetTransportError,
    GpsParseError,
    NoDistanceDataError,
    PreviewStateError,
    RestoreError,
    UnsupportedFileTypeError,
)
from fleetgps.ingestion.matcher import match_vehicle
from fleetgps.ingestion.parser import parse_gps_export
from fleetgps.models import (
    CommitResult,
    DeletionPlan,
    DeletionScope,
    GpsReport,
    GpsUploadRecord,
    ParsedVehicleEntry,
    ParseResult,
    ParseWarning,
    PreviewEntry,
    ReportSort,
    Vehicle,
)
from fleetgps.state.preview import PreviewSession, PreviewState

__all__ = [
    "BackupDocument",
    "BackupFormatError",
    "CommitError",
    "CommitResult",
    "DeletionError",
    "DeletionNotConfirmedError",
    "DeletionPlan",
    "DeletionScope",
    "EmptyFileError",
    "FleetApiError",
    "FleetClient",
    "FleetConfig",
    "FleetConfigError",
    "FleetError",
    "FleetNotFoundError",
    "FleetTransportError",
    "GpsParseError",
    "GpsReport",
    "GpsUploadRecord",
    "NoDistanceDataError",
    "ParseResult",
    "ParseWarning",
    "ParsedVehicleEntry",
    "PreviewEntry",
    "PreviewSession",
    "PreviewState",
    "PreviewStateError",
    "ReportSort",
    "RestoreError",
    "UnsupportedFileTypeError",
    "Vehicle",
    "match_vehicle",
    "parse_gps_export",
    "__version__",
]
