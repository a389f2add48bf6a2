"""Preview/edit session for a scanned GPS export.

A session moves through ``idle -> scanning -> ready`` and ends in either
``confirmed`` or ``cancelled``. Terminal sessions are not reusable; a new
file needs a new session.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date
from enum import StrEnum

from fleetgps._constants import FALLBACK_TOTAL_THRESHOLD
from fleetgps.exceptions import PreviewStateError
from fleetgps.ingestion.matcher import DEFAULT_MATCH_FIELDS, match_vehicle
from fleetgps.ingestion.normalize import normalize_period, parse_kilometers
from fleetgps.ingestion.parser import parse_gps_export
from fleetgps.models.gps import ParseResult, ParseWarning, PreviewEntry
from fleetgps.models.vehicle import Vehicle

_logger = logging.getLogger(__name__)


class PreviewState(StrEnum):
    IDLE = "idle"
    SCANNING = "scanning"
    READY = "ready"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class PreviewSession:
    """In-memory staging area between parsing a file and committing it.

    Usage::

        session = PreviewSession()
        session.scan(data, file_name="march.csv", vehicles=vehicles, selected_month=date(2024, 3, 1))
        session.reassign(0, None)
        session.set_kilometers(1, 42.0)
        entries = session.confirm()
    """

    def __init__(
        self,
        *,
        fallback_threshold: float = FALLBACK_TOTAL_THRESHOLD,
        match_fields: Sequence[str] = DEFAULT_MATCH_FIELDS,
    ) -> None:
        self._fallback_threshold = fallback_threshold
        self._match_fields = tuple(match_fields)
        self._state = PreviewState.IDLE
        self._entries: list[PreviewEntry] = []
        self._result: ParseResult | None = None
        self._vehicles: list[Vehicle] = []
        self.file_name = ""
        self.file_data = b""
        self.media_type: str | None = None
        self.upload_period: date | None = None
        self.vehicle_context: Vehicle | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> PreviewState:
        return self._state

    @property
    def entries(self) -> list[PreviewEntry]:
        """Current entries (a copy of the list; the entries themselves are live)."""
        return list(self._entries)

    @property
    def warnings(self) -> list[ParseWarning]:
        return list(self._result.warnings) if self._result is not None else []

    @property
    def parse_result(self) -> ParseResult | None:
        return self._result

    @property
    def vehicles(self) -> list[Vehicle]:
        """Vehicle snapshot used for automatic matching."""
        return list(self._vehicles)

    @property
    def manual_entry_required(self) -> bool:
        return self._result is not None and self._result.manual_entry_required

    @property
    def total_km(self) -> float:
        return sum(entry.kilometers for entry in self._entries)

    @property
    def matched_count(self) -> int:
        return sum(1 for entry in self._entries if entry.matched_vehicle is not None)

    @property
    def unmatched_count(self) -> int:
        return sum(1 for entry in self._entries if entry.matched_vehicle is None)

    def _require(self, *states: PreviewState) -> None:
        if self._state not in states:
            expected = " or ".join(state.value for state in states)
            raise PreviewStateError(f"Preview session is {self._state.value}, expected {expected}")

    def _entry_at(self, index: int) -> PreviewEntry:
        if not 0 <= index < len(self._entries):
            raise IndexError(f"No preview entry at index {index}")
        return self._entries[index]

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def scan(
        self,
        data: bytes | str,
        *,
        file_name: str,
        vehicles: Sequence[Vehicle],
        media_type: str | None = None,
        selected_month: date | str | None = None,
        vehicle_context: Vehicle | None = None,
    ) -> list[PreviewEntry]:
        """Parse *data* and auto-match every entry against *vehicles*.

        Parameters
        ----------
        selected_month
            Period to use when the file has no ``From:`` line. Defaults
            to the current month.
        vehicle_context
            Single-vehicle upload: all rows sum into one entry that is
            pre-matched to this vehicle.

        Raises
        ------
        GpsParseError
            The file could not be parsed. The session returns to ``idle``
            and may be scanned again.
        """
        self._require(PreviewState.IDLE)
        self._state = PreviewState.SCANNING
        try:
            result = parse_gps_export(
                data,
                file_name=file_name,
                media_type=media_type,
                vehicle_name=vehicle_context.label if vehicle_context is not None else None,
                fallback_threshold=self._fallback_threshold,
            )
            period = normalize_period(result.period_start or selected_month or date.today())
        except Exception:
            self._state = PreviewState.IDLE
            raise

        self._vehicles = list(vehicles)
        self._result = result
        self.file_name = file_name
        self.file_data = data.encode() if isinstance(data, str) else bytes(data)
        self.media_type = media_type
        self.upload_period = period
        self.vehicle_context = vehicle_context
        self._entries = [
            PreviewEntry.from_parsed(
                entry,
                vehicle_context
                if vehicle_context is not None
                else match_vehicle(entry.vehicle_name, self._vehicles, fields=self._match_fields),
            )
            for entry in result.entries
        ]
        self._state = PreviewState.READY
        _logger.debug(
            "Scanned %s: %d entries, %d matched, %d warnings, period=%s",
            file_name,
            len(self._entries),
            self.matched_count,
            len(result.warnings),
            period,
        )
        return self.entries

    def reassign(self, index: int, vehicle: Vehicle | None) -> PreviewEntry:
        """Point entry *index* at another vehicle, or at none (unmatched)."""
        self._require(PreviewState.READY)
        entry = self._entry_at(index)
        entry.matched_vehicle = vehicle
        return entry

    def set_kilometers(self, index: int, value: float | str) -> bool:
        """Edit an entry's kilometers.

        Returns ``False`` and keeps the previous value when *value* is not
        a finite, non-negative number.
        """
        self._require(PreviewState.READY)
        entry = self._entry_at(index)
        kilometers = parse_kilometers(value)
        if kilometers is None:
            return False
        entry.kilometers = kilometers
        entry.has_data = True
        return True

    def add_manual_entry(
        self,
        vehicle_name: str,
        kilometers: float | str,
        *,
        vehicle: Vehicle | None = None,
    ) -> PreviewEntry:
        """Add an entry by hand, for files that could not be parsed (Excel).

        Without an explicit *vehicle* the name is auto-matched like a
        parsed row.

        Raises
        ------
        ValueError
            *kilometers* is not a finite, non-negative number.
        """
        self._require(PreviewState.READY)
        if not self.manual_entry_required:
            raise PreviewStateError("Manual entries are only accepted for files that were not parsed")
        value = parse_kilometers(kilometers)
        if value is None:
            raise ValueError(f"kilometers must be a finite, non-negative number (got {kilometers!r})")
        matched = vehicle if vehicle is not None else match_vehicle(vehicle_name, self._vehicles, fields=self._match_fields)
        entry = PreviewEntry(vehicle_name=vehicle_name, kilometers=value, matched_vehicle=matched)
        self._entries.append(entry)
        return entry

    def confirm(self) -> list[PreviewEntry]:
        """Freeze the session and hand back every entry for commit."""
        self._require(PreviewState.READY)
        if not self._entries:
            raise PreviewStateError("Nothing to commit: the preview has no entries")
        self._state = PreviewState.CONFIRMED
        return self.entries

    def cancel(self) -> None:
        """Discard the session. Nothing has been persisted."""
        self._require(PreviewState.READY)
        self._entries = []
        self.file_data = b""
        self._state = PreviewState.CANCELLED
        _logger.debug("Preview of %s cancelled", self.file_name)
