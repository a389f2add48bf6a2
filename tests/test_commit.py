from __future__ import annotations

from datetime import date

import pytest
from fakes import FakeBackend

from fleetgps.config import FleetConfig
from fleetgps.exceptions import CommitError, FleetApiError
from fleetgps.models.gps import PreviewEntry
from fleetgps.models.vehicle import Vehicle
from fleetgps.reconcile.commit import commit_entries, commit_vehicle_kilometers
from fleetgps.state.odometer import OdometerLedger

TRUCK = Vehicle(id="v-truck", plate="TRUCK1")
VAN = Vehicle(id="v-van", plate="VAN2")


def _entry(name: str, km: float, vehicle: Vehicle | None) -> PreviewEntry:
    return PreviewEntry(vehicle_name=name, kilometers=km, matched_vehicle=vehicle)


@pytest.fixture
def fleet(backend: FakeBackend) -> FakeBackend:
    backend.add_vehicle("v-truck", "TRUCK1", odometer_km=1000)
    backend.add_vehicle("v-van", "VAN2", odometer_km=None)
    return backend


async def _commit(config: FleetConfig, backend: FakeBackend, ledger: OdometerLedger, entries: list[PreviewEntry]):
    return await commit_entries(
        config,
        backend,
        ledger,
        entries,
        file_name="march.csv",
        file_data=b"vehicle,km\n",
        upload_period=date(2024, 3, 15),
    )


@pytest.mark.asyncio
async def test_commit_writes_audit_rows_and_odometer_deltas(
    config: FleetConfig, fleet: FakeBackend, ledger: OdometerLedger
) -> None:
    entries = [_entry("Truck1", 150, TRUCK), _entry("Forklift", 12, None), _entry("Van2", 40.5, VAN)]

    result = await _commit(config, fleet, ledger, entries)

    assert [record.gps_vehicle_name for record in result.records] == ["Truck1", "Forklift", "Van2"]
    assert [record.vehicle_id for record in result.records] == ["v-truck", None, "v-van"]
    assert all(record.upload_period == date(2024, 3, 1) for record in result.records)
    assert all(record.uploaded_by == "user-1" for record in result.records)
    assert fleet.odometer("v-truck") == 1150
    assert fleet.odometer("v-van") == 40.5
    assert result.matched_count == 2
    assert result.unmatched_count == 1
    assert result.total_km == pytest.approx(202.5)
    assert result.summary() == "Processed 3 vehicles: 2 matched, 1 unmatched. Total: 202.5 km"

    stored = fleet.uploads[result.records[0].id]
    assert stored["upload_month"] == "2024-03-01"
    assert stored["file_path"] == result.file_path


@pytest.mark.asyncio
async def test_file_is_archived_before_any_row(config: FleetConfig, fleet: FakeBackend, ledger: OdometerLedger) -> None:
    result = await _commit(config, fleet, ledger, [_entry("Truck1", 1, TRUCK)])

    assert result.file_path is not None
    assert result.file_path.startswith("gps/fleet/2024-03-")
    assert result.file_path.endswith("-march.csv")
    assert fleet.storage[f"vehicle-documents/{result.file_path}"] == b"vehicle,km\n"
    first_method, first_path, _ = fleet.calls[0]
    assert first_method == "POST"
    assert first_path.startswith("/storage/v1/object/vehicle-documents/")


@pytest.mark.asyncio
async def test_storage_failure_writes_nothing(config: FleetConfig, fleet: FakeBackend, ledger: OdometerLedger) -> None:
    fleet.fail_when = lambda method, path, _params: path.startswith("/storage/")

    with pytest.raises(FleetApiError):
        await _commit(config, fleet, ledger, [_entry("Truck1", 1, TRUCK)])

    assert fleet.uploads == {}
    assert fleet.odometer("v-truck") == 1000


@pytest.mark.asyncio
async def test_same_vehicle_twice_adds_twice(config: FleetConfig, fleet: FakeBackend, ledger: OdometerLedger) -> None:
    await _commit(config, fleet, ledger, [_entry("Truck1 a", 100, TRUCK), _entry("Truck1 b", 50, TRUCK)])

    assert len(fleet.uploads) == 2
    assert fleet.odometer("v-truck") == 1150


@pytest.mark.asyncio
async def test_zero_km_entry_is_recorded_without_odometer_write(
    config: FleetConfig, fleet: FakeBackend, ledger: OdometerLedger
) -> None:
    await _commit(config, fleet, ledger, [_entry("Truck1", 0, TRUCK)])

    assert len(fleet.uploads) == 1
    assert fleet.count("PATCH", "vehicles") == 0


@pytest.mark.asyncio
async def test_insert_failure_stops_batch_and_reports_committed(
    config: FleetConfig, fleet: FakeBackend, ledger: OdometerLedger
) -> None:
    inserts = {"n": 0}

    def fail_second_insert(method: str, path: str, _params: dict) -> bool:
        if method == "POST" and path.endswith("gps_uploads"):
            inserts["n"] += 1
            return inserts["n"] == 2
        return False

    fleet.fail_when = fail_second_insert
    entries = [_entry("Truck1", 100, TRUCK), _entry("Van2", 10, VAN), _entry("Forklift", 5, None)]

    with pytest.raises(CommitError) as exc_info:
        await _commit(config, fleet, ledger, entries)

    error = exc_info.value
    assert [record.gps_vehicle_name for record in error.committed] == ["Truck1"]
    assert error.failed_entry is entries[1]
    assert isinstance(error.__cause__, FleetApiError)
    assert "Van2" in str(error)
    assert len(fleet.uploads) == 1
    assert fleet.odometer("v-truck") == 1100
    assert fleet.odometer("v-van") is None


@pytest.mark.asyncio
async def test_odometer_failure_removes_that_entrys_row(
    config: FleetConfig, fleet: FakeBackend, ledger: OdometerLedger
) -> None:
    fleet.fail_when = lambda method, path, params: method == "PATCH" and params.get("id") == "eq.v-van"
    entries = [_entry("Truck1", 100, TRUCK), _entry("Van2", 10, VAN)]

    with pytest.raises(CommitError) as exc_info:
        await _commit(config, fleet, ledger, entries)

    assert [record.vehicle_id for record in exc_info.value.committed] == ["v-truck"]
    assert [row["vehicle_id"] for row in fleet.uploads.values()] == ["v-truck"]
    assert fleet.odometer("v-truck") == 1100


@pytest.mark.asyncio
async def test_failed_compensation_is_reported(config: FleetConfig, fleet: FakeBackend, ledger: OdometerLedger) -> None:
    fleet.fail_when = lambda method, path, _params: method in {"PATCH", "DELETE"}

    with pytest.raises(CommitError) as exc_info:
        await _commit(config, fleet, ledger, [_entry("Truck1", 100, TRUCK)])

    assert "kept without its odometer update" in str(exc_info.value)
    assert len(fleet.uploads) == 1


@pytest.mark.asyncio
async def test_single_vehicle_upload(config: FleetConfig, fleet: FakeBackend, ledger: OdometerLedger) -> None:
    result = await commit_vehicle_kilometers(
        config,
        fleet,
        ledger,
        vehicle=VAN,
        kilometers=321,
        upload_period=date(2024, 2, 10),
        file_name="van.xlsx",
        file_data=b"PK",
        notes="entered by hand",
    )

    (record,) = result.records
    assert record.vehicle_id == "v-van"
    assert record.gps_vehicle_name == "VAN2"
    assert record.notes == "entered by hand"
    assert result.file_path is not None
    assert result.file_path.startswith("gps/v-van/2024-02-")
    assert fleet.odometer("v-van") == 321
