"""High-level async client for the GPS mileage pipeline."""

from __future__ import annotations

import logging
from collections.abc import Collection
from datetime import date
from typing import Any

import aiohttp

from fleetgps import backup as _backup
from fleetgps import reporting as _reporting
from fleetgps._api import gps_uploads as _uploads_api
from fleetgps._api import vehicles as _vehicles_api
from fleetgps._transport import RestTransport, Transport
from fleetgps.config import FleetConfig
from fleetgps.exceptions import FleetError, FleetNotFoundError
from fleetgps.ingestion.normalize import parse_kilometers
from fleetgps.ingestion.parser import detect_file_kind, parse_gps_export
from fleetgps.models.gps import CommitResult, DeletionPlan, DeletionScope, GpsUploadRecord
from fleetgps.models.report import GpsReport, ReportSort
from fleetgps.models.vehicle import Vehicle
from fleetgps.reconcile import commit as _commit
from fleetgps.reconcile import deletion as _deletion
from fleetgps.state.odometer import OdometerLedger
from fleetgps.state.preview import PreviewSession

_logger = logging.getLogger(__name__)


def _content_type(file_name: str, media_type: str | None) -> str:
    if media_type:
        return media_type
    if detect_file_kind(file_name, None) == "excel":
        return "application/vnd.ms-excel"
    return "text/csv"


class FleetClient:
    """Async client for GPS mileage import, reconciliation and reporting.

    Usage::

        async with FleetClient(FleetConfig.from_env()) as client:
            session = await client.scan_file(data, file_name="march.csv")
            result = await client.commit_preview(session)
    """

    def __init__(
        self,
        config: FleetConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._injected_transport = transport
        self._transport: Transport | None = None
        self._ledger: OdometerLedger | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> FleetClient:
        if self._injected_transport is not None:
            self._transport = self._injected_transport
        else:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = RestTransport(self._config, self._http_session)
        self._ledger = OdometerLedger(self._config, self._transport)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._transport = None
        self._ledger = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @property
    def config(self) -> FleetConfig:
        return self._config

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise FleetError("Client not initialized. Use 'async with FleetClient(...) as client:'")
        return self._transport

    def _require_ledger(self) -> OdometerLedger:
        if self._ledger is None:
            raise FleetError("Client not initialized. Use 'async with FleetClient(...) as client:'")
        return self._ledger

    async def _find_vehicle(self, vehicle_id: str) -> Vehicle:
        for vehicle in await self.get_vehicles():
            if vehicle.id == vehicle_id:
                return vehicle
        raise FleetNotFoundError(f"vehicle {vehicle_id} not found", code="not_found")

    async def _find_upload(self, upload_id: str) -> GpsUploadRecord:
        records = await _uploads_api.fetch_uploads_by_ids(self._config, self._require_transport(), [upload_id])
        if not records:
            raise FleetNotFoundError(f"GPS upload {upload_id} not found", code="not_found")
        return records[0]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_vehicles(self) -> list[Vehicle]:
        """Fetch all fleet vehicles."""
        return await _vehicles_api.fetch_vehicle_list(self._config, self._require_transport())

    async def get_odometer(self, vehicle_id: str) -> float:
        return await self._require_ledger().read(vehicle_id)

    async def list_uploads(self, *, vehicle_id: str | None = None) -> list[GpsUploadRecord]:
        """Fetch GPS upload history, newest period first."""
        return await _uploads_api.list_uploads(self._config, self._require_transport(), vehicle_id=vehicle_id)

    async def report(
        self,
        *,
        vehicle_filter: str = _reporting.FILTER_ALL,
        period_from: date | str | None = None,
        period_to: date | str | None = None,
        sort_by: ReportSort | str = ReportSort.DATE,
    ) -> GpsReport:
        """Build a filtered, sorted report over the whole upload history."""
        records = await self.list_uploads()
        vehicles = await self.get_vehicles() if ReportSort(sort_by) == ReportSort.VEHICLE else []
        return _reporting.build_report(
            records,
            vehicle_filter=vehicle_filter,
            period_from=period_from,
            period_to=period_to,
            sort_by=sort_by,
            vehicles=vehicles,
        )

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    async def scan_file(
        self,
        data: bytes,
        *,
        file_name: str,
        media_type: str | None = None,
        selected_month: date | str | None = None,
        vehicle_id: str | None = None,
    ) -> PreviewSession:
        """Parse a GPS export against a fresh vehicle snapshot.

        With *vehicle_id* the whole file is attributed to that vehicle.
        The returned session is ``ready`` for edits, then
        :meth:`commit_preview` or ``session.cancel()``.
        """
        vehicles = await self.get_vehicles()
        context = None
        if vehicle_id is not None:
            context = next((vehicle for vehicle in vehicles if vehicle.id == vehicle_id), None)
            if context is None:
                raise FleetNotFoundError(f"vehicle {vehicle_id} not found", code="not_found")
        session = PreviewSession(fallback_threshold=self._config.fallback_total_threshold)
        session.scan(
            data,
            file_name=file_name,
            media_type=media_type,
            vehicles=vehicles,
            selected_month=selected_month,
            vehicle_context=context,
        )
        return session

    async def commit_preview(self, session: PreviewSession, *, notes: str | None = None) -> CommitResult:
        """Confirm *session* and commit all of its entries."""
        entries = session.confirm()
        assert session.upload_period is not None  # noqa: S101
        return await _commit.commit_entries(
            self._config,
            self._require_transport(),
            self._require_ledger(),
            entries,
            file_name=session.file_name,
            file_data=session.file_data,
            upload_period=session.upload_period,
            content_type=_content_type(session.file_name, session.media_type),
            storage_vehicle_id=session.vehicle_context.id if session.vehicle_context is not None else None,
            notes=notes,
        )

    async def upload_vehicle_kilometers(
        self,
        vehicle_id: str,
        *,
        file_name: str,
        data: bytes,
        upload_period: date | str,
        kilometers: float | str | None = None,
        media_type: str | None = None,
        notes: str | None = None,
    ) -> CommitResult:
        """Record one vehicle's kilometers for a month and archive the file.

        Without *kilometers* the file is parsed and its total used; a
        ``From:`` date in the file overrides *upload_period*. Excel files
        are never parsed, so *kilometers* is required for them.

        Raises
        ------
        ValueError
            *kilometers* is not a finite, non-negative number, or an Excel
            file was given without it.
        """
        if kilometers is not None:
            value = parse_kilometers(kilometers)
            if value is None:
                raise ValueError(f"kilometers must be a finite, non-negative number (got {kilometers!r})")
            kilometers = value
        vehicle = await self._find_vehicle(vehicle_id)
        period: date | str = upload_period
        if kilometers is None:
            result = parse_gps_export(
                data,
                file_name=file_name,
                media_type=media_type,
                vehicle_name=vehicle.label,
                fallback_threshold=self._config.fallback_total_threshold,
            )
            if result.manual_entry_required:
                raise ValueError(f"{file_name} is not parsed automatically; pass kilometers")
            kilometers = result.total_km
            period = result.period_start or upload_period
        return await _commit.commit_vehicle_kilometers(
            self._config,
            self._require_transport(),
            self._require_ledger(),
            vehicle=vehicle,
            kilometers=kilometers,
            upload_period=period,
            file_name=file_name,
            file_data=data,
            content_type=_content_type(file_name, media_type),
            notes=notes,
        )

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    async def plan_deletion(
        self,
        scope: DeletionScope | str,
        *,
        record_ids: Collection[str] = (),
        vehicle_id: str | None = None,
    ) -> DeletionPlan:
        """Stage records for deletion. Call ``plan.confirm()`` before executing.

        ``single`` takes exactly one id, ``selected`` any number, ``all``
        none (optionally limited to one vehicle's uploads).
        """
        scope = DeletionScope(scope)
        if scope == DeletionScope.SINGLE:
            if len(record_ids) != 1:
                raise ValueError("single deletion takes exactly one record id")
            return _deletion.plan_single(await self._find_upload(next(iter(record_ids))))
        records = await self.list_uploads(vehicle_id=vehicle_id)
        if scope == DeletionScope.SELECTED:
            return _deletion.plan_selected(records, record_ids)
        return _deletion.plan_all(records)

    async def execute_deletion(self, plan: DeletionPlan) -> list[GpsUploadRecord]:
        """Delete a confirmed plan's records and reverse their odometer deltas."""
        return await _deletion.execute_plan(self._config, self._require_transport(), self._require_ledger(), plan)

    # ------------------------------------------------------------------
    # Backup
    # ------------------------------------------------------------------

    async def export_backup(self) -> _backup.BackupDocument:
        return await _backup.export_backup(self._config, self._require_transport())

    async def restore_backup(self, document: _backup.BackupDocument | str | bytes) -> dict[str, int]:
        """Restore from a document or its JSON text."""
        if not isinstance(document, _backup.BackupDocument):
            document = _backup.load_backup(document)
        return await _backup.restore_backup(self._config, self._require_transport(), document)
