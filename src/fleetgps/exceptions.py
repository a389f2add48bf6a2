"""Custom exception hierarchy for fleetgps."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from fleetgps.models.gps import GpsUploadRecord, PreviewEntry


class FleetError(Exception):
    """Base exception for all fleetgps errors."""


class FleetConfigError(FleetError):
    """Invalid or missing configuration."""


class FleetTransportError(FleetError):
    """HTTP-level failure (network, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class FleetApiError(FleetError):
    """The backend rejected a request (application-level error)."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "",
        endpoint: str = "",
    ) -> None:
        self.code = code
        self.endpoint = endpoint
        super().__init__(message)


class FleetNotFoundError(FleetApiError):
    """A single-row read matched no row."""


class GpsParseError(FleetError):
    """The GPS export could not be turned into any usable total.

    Raised before anything is persisted; no vehicle or audit state is
    touched when a file fails to parse.
    """


class EmptyFileError(GpsParseError):
    """Fewer than two non-blank lines (header plus one data row)."""


class NoDistanceDataError(GpsParseError):
    """No distance column and no plausible total, or a total of zero."""


class UnsupportedFileTypeError(GpsParseError):
    """The file is neither a CSV export nor an Excel workbook."""


class PreviewStateError(FleetError):
    """An operation was attempted in the wrong preview-session state."""


class CommitError(FleetError):
    """A commit batch stopped part-way.

    ``committed`` holds the audit records written (with their odometer
    deltas applied) before the failure. They are not rolled back.
    """

    def __init__(
        self,
        message: str,
        *,
        committed: list[GpsUploadRecord] | None = None,
        failed_entry: PreviewEntry | None = None,
    ) -> None:
        self.committed = list(committed or [])
        self.failed_entry = failed_entry
        super().__init__(message)


class DeletionError(FleetError):
    """A deletion stopped part-way (no retry, no rollback)."""

    def __init__(self, message: str, *, deleted_ids: list[str] | None = None) -> None:
        self.deleted_ids = list(deleted_ids or [])
        super().__init__(message)


class DeletionNotConfirmedError(FleetError):
    """A deletion plan was executed without user confirmation."""


class BackupFormatError(FleetError):
    """A backup document is missing ``version`` or ``tables``."""

    def __init__(self, message: str, *, detail: Any = None) -> None:
        self.detail = detail
        super().__init__(message)


class RestoreError(FleetError):
    """Restoring one table from a backup failed; later tables were not touched."""

    def __init__(self, message: str, *, table: str) -> None:
        self.table = table
        super().__init__(message)
