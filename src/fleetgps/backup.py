"""JSON backup and restore of the vehicle and GPS upload tables.

A backup document looks like::

    {
        "version": "2.0",
        "created_at": "2024-03-31T12:00:00+00:00",
        "tables": {"vehicles": [...], "gps_uploads": [...]}
    }

Restore clears ``gps_uploads`` and then upserts ``vehicles`` followed by
``gps_uploads``. Vehicles are upserted, never cleared, because other
tables reference them.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from fleetgps._api._common import MERGE_DUPLICATES, fetch_table, neq, table_path
from fleetgps._constants import BACKUP_VERSION, NIL_UUID
from fleetgps._transport import Transport
from fleetgps.config import FleetConfig
from fleetgps.exceptions import BackupFormatError, FleetError, RestoreError

_logger = logging.getLogger(__name__)

VEHICLES_KEY = "vehicles"
UPLOADS_KEY = "gps_uploads"

_LABELS = {VEHICLES_KEY: "Vehicles", UPLOADS_KEY: "GPS uploads"}


def _utcnow() -> datetime:
    return datetime.now(UTC)


class BackupDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")

    version: str
    created_at: datetime | None = None
    tables: dict[str, list[dict[str, Any]]] = Field(...)

    def rows(self, key: str) -> list[dict[str, Any]]:
        return self.tables.get(key) or []

    def to_json(self) -> str:
        return self.model_dump_json(indent=2)


def load_backup(data: str | bytes) -> BackupDocument:
    """Parse and validate a backup document.

    Raises
    ------
    BackupFormatError
        Not JSON, or ``version``/``tables`` missing or malformed.
    """
    try:
        document = BackupDocument.model_validate_json(data)
    except ValidationError as exc:
        raise BackupFormatError("Invalid backup file format", detail=exc.errors()) from exc
    if not document.version:
        raise BackupFormatError("Invalid backup file format", detail="empty version")
    return document


async def export_backup(
    config: FleetConfig,
    transport: Transport,
    *,
    clock: Callable[[], datetime] = _utcnow,
) -> BackupDocument:
    """Read both tables into a new backup document."""
    vehicles = await fetch_table(transport, config.vehicles_table)
    uploads = await fetch_table(transport, config.uploads_table)
    document = BackupDocument(
        version=BACKUP_VERSION,
        created_at=clock(),
        tables={VEHICLES_KEY: vehicles, UPLOADS_KEY: uploads},
    )
    _logger.info("Backup created: %d vehicles, %d GPS uploads", len(vehicles), len(uploads))
    return document


async def _upsert(transport: Transport, table: str, rows: list[dict[str, Any]]) -> None:
    await transport.request(
        "POST",
        table_path(table),
        params={"on_conflict": "id"},
        json_body=rows,
        headers=MERGE_DUPLICATES,
    )


async def restore_backup(
    config: FleetConfig,
    transport: Transport,
    document: BackupDocument,
) -> dict[str, int]:
    """Replace the GPS history and upsert vehicles from *document*.

    Returns
    -------
    dict[str, int]
        Rows written per table key.

    Raises
    ------
    RestoreError
        A table failed; ``table`` names it. Earlier steps stay applied.
    """
    try:
        await transport.request(
            "DELETE",
            table_path(config.uploads_table),
            params={"id": neq(NIL_UUID)},
        )
    except FleetError as exc:
        raise RestoreError(f"Clearing GPS uploads failed: {exc}", table=UPLOADS_KEY) from exc

    restored: dict[str, int] = {}
    for key, table in ((VEHICLES_KEY, config.vehicles_table), (UPLOADS_KEY, config.uploads_table)):
        rows = document.rows(key)
        if rows:
            try:
                await _upsert(transport, table, rows)
            except FleetError as exc:
                raise RestoreError(f"{_LABELS[key]} restore failed: {exc}", table=key) from exc
        restored[key] = len(rows)

    _logger.info(
        "Backup restored: %d vehicles, %d GPS uploads", restored[VEHICLES_KEY], restored[UPLOADS_KEY]
    )
    return restored
