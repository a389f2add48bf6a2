from __future__ import annotations

import math
from datetime import date, datetime

import pytest

from fleetgps.ingestion.normalize import (
    clean_cell,
    end_of_month,
    normalize_period,
    parse_distance,
    safe_float,
    strip_to_numeric,
)
from fleetgps.models.gps import GpsUploadRecord, format_km
from fleetgps.models.vehicle import Vehicle


def test_safe_float_handles_sentinels() -> None:
    assert safe_float("1.5") == 1.5
    assert safe_float(None) is None
    assert safe_float("") is None
    assert safe_float("--") is None
    assert safe_float("nan") is None
    assert safe_float(math.inf) is None


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1,234.5", 1234.5),
        ("  88 km", 88.0),
        ("$12", 12.0),
        ("-3", -3.0),
        ("abc", None),
        ("-", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_distance(raw: str | None, expected: float | None) -> None:
    assert parse_distance(raw) == expected


def test_strip_to_numeric_keeps_digits_dot_minus() -> None:
    assert strip_to_numeric("≈ 1 234,5 km.") == "12345."


def test_clean_cell_strips_one_layer_of_quotes() -> None:
    assert clean_cell('  "Van 1" ') == "Van 1"
    assert clean_cell("'x'") == "x"
    assert clean_cell('"') == '"'


@pytest.mark.parametrize(
    "value",
    [date(2024, 3, 17), datetime(2024, 3, 17, 8, 30), "2024-03", "2024-03-17", "2024-3", "2024-03-17T08:30:00Z"],
)
def test_normalize_period_returns_first_of_month(value: object) -> None:
    assert normalize_period(value) == date(2024, 3, 1)


@pytest.mark.parametrize("value", ["March", "2024-13", None, 202403])
def test_normalize_period_rejects_non_months(value: object) -> None:
    with pytest.raises(ValueError):
        normalize_period(value)


def test_end_of_month() -> None:
    assert end_of_month(date(2024, 2, 1)) == date(2024, 2, 29)
    assert end_of_month(date(2023, 12, 5)) == date(2023, 12, 31)


def test_upload_record_normalizes_period_and_keeps_raw() -> None:
    row = {
        "id": "u1",
        "vehicle_id": None,
        "gps_vehicle_name": "Van 3",
        "upload_month": "2024-03-15",
        "kilometers": 12.5,
        "notes": "",
    }
    record = GpsUploadRecord.model_validate(row)
    assert record.upload_period == date(2024, 3, 1)
    assert record.is_matched is False
    assert record.notes is None
    assert record.raw == row


def test_vehicle_null_odometer_reads_as_zero() -> None:
    vehicle = Vehicle.model_validate({"id": "v1", "plate": "AB-1", "odometer_km": None, "make": "Ford", "model": "Ka"})
    assert vehicle.odometer_km == 0
    assert vehicle.make_model == "FordKa"


def test_format_km() -> None:
    assert format_km(1234.5) == "1,234.5"
    assert format_km(150.0) == "150"
    assert format_km(0.25) == "0.25"
