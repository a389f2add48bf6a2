"""GPS mileage report: filtering, sorting and totals over upload history."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date

from fleetgps.ingestion.normalize import end_of_month, fold, normalize_period
from fleetgps.models.gps import GpsUploadRecord
from fleetgps.models.report import GpsReport, ReportSort
from fleetgps.models.vehicle import Vehicle

FILTER_ALL = "all"
FILTER_UNMATCHED = "unmatched"


def _matches_vehicle(record: GpsUploadRecord, vehicle_filter: str) -> bool:
    if vehicle_filter == FILTER_ALL:
        return True
    if vehicle_filter == FILTER_UNMATCHED:
        return record.vehicle_id is None
    return record.vehicle_id == vehicle_filter


def _sort_name(record: GpsUploadRecord, vehicles: Mapping[str, Vehicle]) -> str:
    vehicle = vehicles.get(record.vehicle_id) if record.vehicle_id else None
    return fold((vehicle.plate if vehicle is not None else "") or record.gps_vehicle_name or "")


def build_report(
    records: Iterable[GpsUploadRecord],
    *,
    vehicle_filter: str = FILTER_ALL,
    period_from: date | str | None = None,
    period_to: date | str | None = None,
    sort_by: ReportSort | str = ReportSort.DATE,
    vehicles: Iterable[Vehicle] = (),
) -> GpsReport:
    """Filter and sort upload records into a :class:`GpsReport`.

    Parameters
    ----------
    vehicle_filter : str
        ``"all"``, ``"unmatched"`` or a vehicle id.
    period_from, period_to : date, str or None
        Inclusive month range. ``period_to`` defaults to ``period_from``
        and extends to the last day of its month. No ``period_from``
        means no date filter.
    sort_by : ReportSort or str
        ``date`` (newest first), ``vehicle`` (plate, else GPS name,
        ascending) or ``km`` (largest first).
    vehicles : iterable of Vehicle
        Used to sort matched records by plate.
    """
    order = ReportSort(sort_by)
    selected = [record for record in records if _matches_vehicle(record, vehicle_filter)]

    start: date | None = None
    end: date | None = None
    if period_from is not None:
        start = normalize_period(period_from)
        end = end_of_month(normalize_period(period_to if period_to is not None else period_from))
        selected = [record for record in selected if start <= record.upload_period <= end]

    if order == ReportSort.VEHICLE:
        by_id = {vehicle.id: vehicle for vehicle in vehicles}
        selected.sort(key=lambda record: _sort_name(record, by_id))
    elif order == ReportSort.KM:
        selected.sort(key=lambda record: record.kilometers, reverse=True)
    else:
        selected.sort(key=lambda record: record.upload_period, reverse=True)

    return GpsReport(
        records=selected,
        vehicle_filter=vehicle_filter,
        period_from=start,
        period_to=end,
        sort_by=order,
    )
