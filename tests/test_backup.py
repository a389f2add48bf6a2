from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest
from fakes import FakeBackend

from fleetgps.backup import BackupDocument, export_backup, load_backup, restore_backup
from fleetgps.config import FleetConfig
from fleetgps.exceptions import BackupFormatError, RestoreError


def _fixed_clock() -> datetime:
    return datetime(2024, 4, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def populated(backend: FakeBackend) -> FakeBackend:
    backend.add_vehicle("v1", "AB-1", odometer_km=500)
    backend.add_vehicle("v2", "CD-2", odometer_km=0)
    backend.add_upload("u1", vehicle_id="v1", kilometers=100)
    return backend


@pytest.mark.asyncio
async def test_export_contains_both_tables(config: FleetConfig, populated: FakeBackend) -> None:
    document = await export_backup(config, populated, clock=_fixed_clock)

    assert document.version == "2.0"
    assert document.created_at == _fixed_clock()
    assert [row["id"] for row in document.rows("vehicles")] == ["v1", "v2"]
    assert [row["id"] for row in document.rows("gps_uploads")] == ["u1"]

    reloaded = load_backup(document.to_json())
    assert reloaded.tables == document.tables


@pytest.mark.asyncio
async def test_restore_replaces_uploads_and_upserts_vehicles(config: FleetConfig, populated: FakeBackend) -> None:
    populated.add_upload("stale", vehicle_id="v2", kilometers=5)
    document = BackupDocument(
        version="2.0",
        tables={
            "vehicles": [{"id": "v1", "plate": "AB-1", "odometer_km": 700}, {"id": "v3", "plate": "EF-3"}],
            "gps_uploads": [{"id": "u9", "vehicle_id": "v3", "upload_month": "2024-01-01", "kilometers": 20}],
        },
    )

    restored = await restore_backup(config, populated, document)

    assert restored == {"vehicles": 2, "gps_uploads": 1}
    assert set(populated.uploads) == {"u9"}
    assert set(populated.vehicles) == {"v1", "v2", "v3"}
    assert populated.odometer("v1") == 700

    methods = [(method, path.rsplit("/", 1)[-1]) for method, path, _ in populated.calls]
    assert methods == [("DELETE", "gps_uploads"), ("POST", "vehicles"), ("POST", "gps_uploads")]
    delete_params = populated.calls[0][2]
    assert delete_params == {"id": "neq.00000000-0000-0000-0000-000000000000"}


@pytest.mark.asyncio
async def test_restore_aborts_with_table_name(config: FleetConfig, populated: FakeBackend) -> None:
    populated.fail_when = lambda method, path, _params: method == "POST" and path.endswith("vehicles")
    document = BackupDocument(
        version="2.0",
        tables={"vehicles": [{"id": "v1"}], "gps_uploads": [{"id": "u1"}]},
    )

    with pytest.raises(RestoreError) as exc_info:
        await restore_backup(config, populated, document)

    assert exc_info.value.table == "vehicles"
    assert str(exc_info.value).startswith("Vehicles restore failed")
    assert populated.count("POST", "gps_uploads") == 0


@pytest.mark.asyncio
async def test_empty_tables_skip_upserts(config: FleetConfig, populated: FakeBackend) -> None:
    restored = await restore_backup(config, populated, BackupDocument(version="2.0", tables={}))

    assert restored == {"vehicles": 0, "gps_uploads": 0}
    assert populated.uploads == {}
    assert populated.count("POST", "vehicles") == 0


@pytest.mark.parametrize(
    "payload",
    [
        "not json",
        json.dumps({"tables": {}}),
        json.dumps({"version": "2.0"}),
        json.dumps({"version": "", "tables": {}}),
        json.dumps({"version": "2.0", "tables": {"vehicles": "oops"}}),
    ],
)
def test_invalid_documents_are_rejected(payload: str) -> None:
    with pytest.raises(BackupFormatError):
        load_backup(payload)
