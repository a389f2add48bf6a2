"""Commit confirmed preview entries.

Per entry, in list order:

1. insert one ``gps_uploads`` row (``vehicle_id`` is ``None`` when unmatched);
2. for a matched entry with kilometers > 0, add the kilometers to the
   vehicle's odometer through the :class:`OdometerLedger`.

If step 2 fails, the row from step 1 is deleted again before
:class:`CommitError` is raised. Entries committed earlier in the batch
stay committed. Entries naming the same vehicle are not merged; each one
adds to the odometer.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date

from fleetgps._api import gps_uploads as _uploads_api
from fleetgps._api import storage as _storage_api
from fleetgps._transport import Transport
from fleetgps.config import FleetConfig
from fleetgps.exceptions import CommitError, FleetError
from fleetgps.ingestion.normalize import normalize_period
from fleetgps.models.gps import CommitResult, GpsUploadRecord, PreviewEntry
from fleetgps.models.vehicle import Vehicle
from fleetgps.state.odometer import OdometerLedger

_logger = logging.getLogger(__name__)


async def _compensate(config: FleetConfig, transport: Transport, record: GpsUploadRecord) -> bool:
    """Delete an audit row whose odometer delta could not be applied."""
    try:
        await _uploads_api.delete_uploads(config, transport, [record.id])
    except FleetError as exc:
        _logger.warning("Could not remove GPS upload %s after odometer failure: %s", record.id, exc)
        return False
    _logger.warning("Removed GPS upload %s after odometer failure", record.id)
    return True


async def commit_entries(
    config: FleetConfig,
    transport: Transport,
    ledger: OdometerLedger,
    entries: Sequence[PreviewEntry],
    *,
    file_name: str,
    file_data: bytes,
    upload_period: date,
    content_type: str = "text/csv",
    storage_vehicle_id: str | None = None,
    notes: str | None = None,
) -> CommitResult:
    """Archive the source file, then write every entry.

    Parameters
    ----------
    storage_vehicle_id
        Vehicle segment of the storage path; ``None`` files the upload
        under the fleet-wide folder.

    Raises
    ------
    FleetError
        The file could not be archived. Nothing was written.
    CommitError
        An entry failed. ``committed`` lists the records written before it.
    """
    period = normalize_period(upload_period)
    file_path = _storage_api.build_storage_path(
        vehicle_id=storage_vehicle_id,
        upload_period=period,
        file_name=file_name,
    )
    await _storage_api.upload_file(config, transport, file_path, file_data, content_type=content_type)

    committed: list[GpsUploadRecord] = []
    for entry in entries:
        row = _uploads_api.build_upload_row(
            vehicle_id=entry.vehicle_id,
            gps_vehicle_name=entry.vehicle_name,
            file_name=file_name,
            file_path=file_path,
            upload_period=period,
            kilometers=entry.kilometers,
            uploaded_by=config.user_id,
            notes=notes,
        )
        try:
            record = await _uploads_api.insert_upload(config, transport, row)
        except FleetError as exc:
            raise CommitError(
                f"Failed to save GPS entry for {entry.vehicle_name}: {exc}",
                committed=committed,
                failed_entry=entry,
            ) from exc

        if record.vehicle_id is not None and record.kilometers > 0:
            try:
                await ledger.add(record.vehicle_id, record.kilometers)
            except FleetError as exc:
                removed = await _compensate(config, transport, record)
                detail = "" if removed else f" (GPS upload {record.id} was kept without its odometer update)"
                raise CommitError(
                    f"Failed to update odometer for {entry.vehicle_name}: {exc}{detail}",
                    committed=committed,
                    failed_entry=entry,
                ) from exc

        committed.append(record)

    result = CommitResult(records=committed, file_path=file_path, upload_period=period)
    _logger.info("%s (%s)", result.summary(), file_name)
    return result


async def commit_vehicle_kilometers(
    config: FleetConfig,
    transport: Transport,
    ledger: OdometerLedger,
    *,
    vehicle: Vehicle,
    kilometers: float,
    upload_period: date,
    file_name: str,
    file_data: bytes,
    content_type: str = "text/csv",
    gps_vehicle_name: str | None = None,
    notes: str | None = None,
) -> CommitResult:
    """Single-vehicle upload: one resolved vehicle, one total, one period."""
    entry = PreviewEntry(
        vehicle_name=gps_vehicle_name or vehicle.label,
        kilometers=kilometers,
        matched_vehicle=vehicle,
    )
    return await commit_entries(
        config,
        transport,
        ledger,
        [entry],
        file_name=file_name,
        file_data=file_data,
        upload_period=upload_period,
        content_type=content_type,
        storage_vehicle_id=vehicle.id,
        notes=notes,
    )
