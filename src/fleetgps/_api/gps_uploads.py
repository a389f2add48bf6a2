"""GPS upload audit-record endpoints (``gps_uploads`` table)."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date
from typing import Any

from fleetgps._api._common import RETURN_REPRESENTATION, eq, expect_rows, in_list, single_row, table_path
from fleetgps._transport import Transport
from fleetgps.config import FleetConfig
from fleetgps.models.gps import GpsUploadRecord

_logger = logging.getLogger(__name__)


def build_upload_row(
    *,
    vehicle_id: str | None,
    gps_vehicle_name: str,
    file_name: str,
    file_path: str,
    upload_period: date,
    kilometers: float,
    uploaded_by: str | None,
    notes: str | None = None,
) -> dict[str, Any]:
    """Build the insert payload for one audit row."""
    row: dict[str, Any] = {
        "vehicle_id": vehicle_id,
        "gps_vehicle_name": gps_vehicle_name,
        "file_name": file_name,
        "file_path": file_path,
        "upload_month": upload_period.replace(day=1).isoformat(),
        "kilometers": kilometers,
        "uploaded_by": uploaded_by,
    }
    if notes:
        row["notes"] = notes
    return row


async def insert_upload(config: FleetConfig, transport: Transport, row: dict[str, Any]) -> GpsUploadRecord:
    """Insert one audit row and return it as stored."""
    endpoint = table_path(config.uploads_table)
    decoded = await transport.request("POST", endpoint, json_body=row, headers=RETURN_REPRESENTATION)
    record = GpsUploadRecord.model_validate(single_row(endpoint, decoded, what="inserted gps upload"))
    _logger.debug("GPS upload inserted id=%s vehicle=%s km=%s", record.id, record.vehicle_id, record.kilometers)
    return record


async def list_uploads(
    config: FleetConfig,
    transport: Transport,
    *,
    vehicle_id: str | None = None,
) -> list[GpsUploadRecord]:
    """List audit rows, newest period first, optionally for one vehicle."""
    endpoint = table_path(config.uploads_table)
    params = {"select": "*", "order": "upload_month.desc"}
    if vehicle_id:
        params["vehicle_id"] = eq(vehicle_id)
    decoded = await transport.request("GET", endpoint, params=params)
    return [GpsUploadRecord.model_validate(row) for row in expect_rows(endpoint, decoded)]


async def fetch_uploads_by_ids(
    config: FleetConfig,
    transport: Transport,
    upload_ids: Sequence[str],
) -> list[GpsUploadRecord]:
    if not upload_ids:
        return []
    endpoint = table_path(config.uploads_table)
    decoded = await transport.request(
        "GET",
        endpoint,
        params={"select": "*", "id": in_list(upload_ids)},
    )
    return [GpsUploadRecord.model_validate(row) for row in expect_rows(endpoint, decoded)]


async def delete_uploads(
    config: FleetConfig,
    transport: Transport,
    upload_ids: Sequence[str],
) -> list[GpsUploadRecord]:
    """Delete audit rows in one batch and return the rows actually removed."""
    if not upload_ids:
        return []
    endpoint = table_path(config.uploads_table)
    decoded = await transport.request(
        "DELETE",
        endpoint,
        params={"id": in_list(upload_ids)},
        headers=RETURN_REPRESENTATION,
    )
    deleted = [GpsUploadRecord.model_validate(row) for row in expect_rows(endpoint, decoded)]
    _logger.debug("GPS uploads deleted requested=%d deleted=%d", len(upload_ids), len(deleted))
    return deleted
