"""Vehicle registry endpoints.

Only the reads and writes the mileage pipeline needs: the vehicle list
used for matching, and the ``odometer_km`` read/write pair.
"""

from __future__ import annotations

import logging

from fleetgps._api._common import RETURN_MINIMAL, eq, expect_rows, single_row, table_path
from fleetgps._transport import Transport
from fleetgps.config import FleetConfig
from fleetgps.ingestion.normalize import safe_float
from fleetgps.models.vehicle import Vehicle

_logger = logging.getLogger(__name__)

_VEHICLE_COLUMNS = "id,plate,vin,make,model,year,branch_id,status,odometer_km"


async def fetch_vehicle_list(config: FleetConfig, transport: Transport) -> list[Vehicle]:
    """Fetch all fleet vehicles ordered by plate."""
    endpoint = table_path(config.vehicles_table)
    decoded = await transport.request(
        "GET",
        endpoint,
        params={"select": _VEHICLE_COLUMNS, "order": "plate.asc"},
    )
    return [Vehicle.model_validate(row) for row in expect_rows(endpoint, decoded)]


async def fetch_odometer(config: FleetConfig, transport: Transport, vehicle_id: str) -> float:
    """Read a vehicle's current ``odometer_km`` (``NULL`` reads as 0).

    Raises
    ------
    FleetNotFoundError
        If no vehicle has *vehicle_id*.
    """
    endpoint = table_path(config.vehicles_table)
    decoded = await transport.request(
        "GET",
        endpoint,
        params={"select": "odometer_km", "id": eq(vehicle_id)},
    )
    row = single_row(endpoint, decoded, what=f"vehicle {vehicle_id}")
    return safe_float(row.get("odometer_km")) or 0.0


async def update_odometer(config: FleetConfig, transport: Transport, vehicle_id: str, odometer_km: float) -> None:
    """Overwrite a vehicle's ``odometer_km``."""
    endpoint = table_path(config.vehicles_table)
    await transport.request(
        "PATCH",
        endpoint,
        params={"id": eq(vehicle_id)},
        json_body={"odometer_km": odometer_km},
        headers=RETURN_MINIMAL,
    )
    _logger.debug("Odometer set vehicle=%s odometer_km=%s", vehicle_id, odometer_km)
