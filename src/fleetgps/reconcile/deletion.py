"""Deletion of committed GPS uploads and reversal of their odometer deltas.

Deletion always goes through a :class:`DeletionPlan` that the caller must
confirm. Executing a plan deletes every targeted row in one batch, then
applies one clamped decrement per affected vehicle with the summed
kilometers of that vehicle's deleted rows.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Sequence

from fleetgps._api import gps_uploads as _uploads_api
from fleetgps._transport import Transport
from fleetgps.config import FleetConfig
from fleetgps.exceptions import DeletionError, DeletionNotConfirmedError, FleetError
from fleetgps.models.gps import DeletionPlan, DeletionScope, GpsUploadRecord, group_km_by_vehicle
from fleetgps.state.odometer import OdometerLedger

_logger = logging.getLogger(__name__)


def plan_single(record: GpsUploadRecord) -> DeletionPlan:
    return DeletionPlan(scope=DeletionScope.SINGLE, records=[record])


def plan_selected(records: Sequence[GpsUploadRecord], selected_ids: Collection[str]) -> DeletionPlan:
    """Plan the deletion of the records whose id is in *selected_ids*.

    Raises
    ------
    ValueError
        None of *records* is selected.
    """
    wanted = set(selected_ids)
    chosen = [record for record in records if record.id in wanted]
    if not chosen:
        raise ValueError("No GPS entries selected")
    return DeletionPlan(scope=DeletionScope.SELECTED, records=chosen)


def plan_all(records: Sequence[GpsUploadRecord]) -> DeletionPlan:
    return DeletionPlan(scope=DeletionScope.ALL, records=list(records))


async def execute_plan(
    config: FleetConfig,
    transport: Transport,
    ledger: OdometerLedger,
    plan: DeletionPlan,
) -> list[GpsUploadRecord]:
    """Delete a confirmed plan's records and reverse their odometer deltas.

    Only rows the backend reports as deleted are reversed, so a row that
    was already gone is not subtracted twice.

    Returns
    -------
    list[GpsUploadRecord]
        The rows actually deleted.

    Raises
    ------
    DeletionNotConfirmedError
        ``plan.confirm()`` was not called.
    DeletionError
        The batch delete or an odometer update failed. Nothing already
        applied is rolled back.
    """
    if not plan.confirmed:
        raise DeletionNotConfirmedError("Deletion must be confirmed before it is executed")
    if not plan.records:
        return []

    try:
        deleted = await _uploads_api.delete_uploads(config, transport, plan.record_ids)
    except FleetError as exc:
        raise DeletionError(f"Failed to delete GPS entries: {exc}") from exc

    deleted_ids = [record.id for record in deleted]
    if len(deleted) != len(plan.records):
        _logger.warning(
            "Deletion requested %d GPS entries but %d were removed", len(plan.records), len(deleted)
        )

    for vehicle_id, kilometers in group_km_by_vehicle(deleted).items():
        if kilometers <= 0:
            continue
        try:
            await ledger.subtract(vehicle_id, kilometers)
        except FleetError as exc:
            raise DeletionError(
                f"Deleted {len(deleted)} GPS entries but failed to update odometer for vehicle {vehicle_id}: {exc}",
                deleted_ids=deleted_ids,
            ) from exc

    _logger.info(
        "Deleted %d GPS entries (%s), %s km reversed", len(deleted), plan.scope.value, sum(r.kilometers for r in deleted)
    )
    return deleted
