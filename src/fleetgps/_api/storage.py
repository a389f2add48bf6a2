"""Object-storage archival of raw GPS exports.

Files live under ``gps/{vehicle_id}/{YYYY-MM}-{timestamp_ms}-{file_name}``;
batch uploads that span the whole fleet use ``fleet`` as the vehicle segment.
"""

from __future__ import annotations

import logging
import time
from datetime import date
from urllib.parse import quote

from fleetgps._constants import STORAGE_PREFIX
from fleetgps._transport import Transport
from fleetgps.config import FleetConfig

_logger = logging.getLogger(__name__)

FLEET_SEGMENT = "fleet"


def build_storage_path(
    *,
    vehicle_id: str | None,
    upload_period: date,
    file_name: str,
    now_ms: int | None = None,
) -> str:
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"gps/{vehicle_id or FLEET_SEGMENT}/{upload_period:%Y-%m}-{now_ms}-{file_name}"


async def upload_file(
    config: FleetConfig,
    transport: Transport,
    path: str,
    data: bytes,
    *,
    content_type: str = "application/octet-stream",
) -> str:
    """Store *data* at *path* in the configured bucket and return the path."""
    endpoint = f"{STORAGE_PREFIX}/{config.storage_bucket}/{quote(path)}"
    await transport.request(
        "POST",
        endpoint,
        data=data,
        headers={"content-type": content_type, "x-upsert": "false"},
    )
    _logger.debug("Stored %d bytes at %s", len(data), path)
    return path
