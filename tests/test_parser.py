from __future__ import annotations

from datetime import date

import pytest

from fleetgps.exceptions import EmptyFileError, NoDistanceDataError, UnsupportedFileTypeError
from fleetgps.ingestion.columns import DISTANCE_COLUMN, keyword_predicate
from fleetgps.ingestion.parser import ISSUE_UNPARSABLE, detect_file_kind, parse_gps_export


def test_sums_rows_per_vehicle_and_warns_on_unparsable_cells() -> None:
    result = parse_gps_export(b"vehicle,km\nTruck1,120\nTruck1,30\nVan2,abc\n", file_name="march.csv")

    by_name = {entry.vehicle_name: entry for entry in result.entries}
    assert by_name["Truck1"].kilometers == 150
    assert by_name["Truck1"].has_data is True
    assert by_name["Van2"].kilometers == 0
    assert by_name["Van2"].has_data is False

    assert len(result.warnings) == 1
    warning = result.warnings[0]
    assert warning.row_number == 4
    assert warning.vehicle_name == "Van2"
    assert warning.raw_value == "abc"
    assert warning.issue == ISSUE_UNPARSABLE

    assert result.distance_column == "km"
    assert result.vehicle_column == "vehicle"
    assert result.total_km == 150


def test_entries_keep_first_seen_order() -> None:
    result = parse_gps_export("Unit,Distance\nB-2,10\nA-1,5\nB-2,1\n")
    assert [entry.vehicle_name for entry in result.entries] == ["B-2", "A-1"]
    assert result.entries[0].row_number == 2


def test_strips_separators_and_units_and_marks_correction() -> None:
    result = parse_gps_export(b'Target Name,Mileage\nVan 7,"1,234.5 km"\nVan 8,10\n')

    van7, van8 = result.entries
    assert van7.kilometers == pytest.approx(1234.5)
    assert van7.corrected is True
    assert van7.raw_value == "1,234.5 km"
    assert van8.corrected is False
    assert van8.raw_value is None


def test_negative_total_is_clamped_to_zero() -> None:
    result = parse_gps_export("vehicle,km\nA,-50\nB,100\n")
    a = result.entries[0]
    assert a.kilometers == 0
    assert a.corrected is True


def test_single_vehicle_context_sums_every_row() -> None:
    result = parse_gps_export("date,distance\n2024-03-01,12.5\n2024-03-02,7.5\n", vehicle_name="ABC-123")
    assert len(result.entries) == 1
    assert result.entries[0].vehicle_name == "ABC-123"
    assert result.entries[0].kilometers == 20
    assert result.vehicle_column is None


def test_all_zero_column_raises_no_distance_data() -> None:
    with pytest.raises(NoDistanceDataError):
        parse_gps_export("vehicle,km\nA,0\nB,0\n")


def test_all_unparsable_column_raises_no_distance_data() -> None:
    with pytest.raises(NoDistanceDataError):
        parse_gps_export("vehicle,km\nA,n/a\nB,--\n")


@pytest.mark.parametrize("data", [b"", b"\n\n", b"vehicle,km\n", b"   \nvehicle,km\n\n"])
def test_fewer_than_two_lines_raises_empty_file(data: bytes) -> None:
    with pytest.raises(EmptyFileError):
        parse_gps_export(data)


def test_fallback_uses_first_token_above_threshold_on_last_line() -> None:
    result = parse_gps_export("Daily trips report\nTrips 12\nSum 4 trips 2450.5\n")

    assert result.used_fallback is True
    assert len(result.entries) == 1
    assert result.entries[0].kilometers == pytest.approx(2450.5)
    assert result.warnings == []


def test_fallback_without_plausible_total_raises() -> None:
    with pytest.raises(NoDistanceDataError):
        parse_gps_export("Daily trips report\nTrips 12 stops 99\n")


def test_fallback_threshold_is_configurable() -> None:
    result = parse_gps_export("Daily trips report\nTrips 12 stops 99\n", fallback_threshold=50)
    assert result.entries[0].kilometers == 99


def test_preamble_and_period_lines_are_skipped() -> None:
    data = (
        "Mileage Report\n"
        "From: 2024-03-01 To: 2024-03-31\n"
        "Group,Fleet A\n"
        "Target Name,Mileage (km)\n"
        "AB-123,100\n"
        "CD-456,250.5\n"
    )
    result = parse_gps_export(data)

    assert result.period_start == date(2024, 3, 1)
    assert result.period_end == date(2024, 3, 31)
    assert [entry.vehicle_name for entry in result.entries] == ["AB-123", "CD-456"]
    assert result.entries[0].row_number == 5


def test_summary_last_line_is_never_taken_as_header() -> None:
    result = parse_gps_export(b"Fleet summary March\nTotal distance: 1,234 km\n", file_name="summary.csv")

    assert result.used_fallback is True
    assert result.entries[0].kilometers == 1234
    assert result.entries[0].raw_value == "1,234"


def test_title_line_with_total_keyword_does_not_shadow_real_header() -> None:
    result = parse_gps_export(b"Report, total vehicles: 2\nvehicle,km\nTruck1,120\nVan2,80\n")

    assert {entry.vehicle_name: entry.kilometers for entry in result.entries} == {"Truck1": 120, "Van2": 80}
    assert result.distance_column == "km"
    assert result.vehicle_column == "vehicle"
    assert result.warnings == []


def test_title_line_is_skipped_when_first_data_row_is_unreadable() -> None:
    result = parse_gps_export(b"Report, total vehicles: 2\nvehicle,km\nVan2,abc\nTruck1,120\n")

    assert [entry.vehicle_name for entry in result.entries] == ["Van2", "Truck1"]
    assert result.distance_column == "km"
    assert [warning.raw_value for warning in result.warnings] == ["abc"]


def test_full_width_colon_period_is_detected() -> None:
    result = parse_gps_export("From：2024-02-01\nvehicle,km\nA,10\n")
    assert result.period_start == date(2024, 2, 1)
    assert result.period_end is None


def test_repeated_header_rows_are_skipped() -> None:
    result = parse_gps_export("vehicle,km\nA,10\nVehicle,KM\nB,20\n")
    assert [entry.vehicle_name for entry in result.entries] == ["A", "B"]
    assert result.warnings == []


def test_missing_vehicle_name_is_a_warning() -> None:
    result = parse_gps_export("vehicle,km\n,40\nA,10\n")
    assert [entry.vehicle_name for entry in result.entries] == ["A"]
    assert result.warnings[0].row_number == 2
    assert result.warnings[0].raw_value == "40"


def test_custom_distance_synonym_via_strategy() -> None:
    strategy = DISTANCE_COLUMN.with_predicate(keyword_predicate(["strecke"]))
    result = parse_gps_export("fahrzeug,strecke\nA,12\n", distance_columns=strategy)
    assert result.entries[0].kilometers == 12


def test_excel_is_accepted_for_manual_entry() -> None:
    result = parse_gps_export(b"PK\x03\x04binary", file_name="march.xlsx")
    assert result.manual_entry_required is True
    assert result.entries == []


@pytest.mark.parametrize(
    ("file_name", "media_type", "expected"),
    [
        ("a.csv", None, "csv"),
        ("A.XLSX", None, "excel"),
        ("a.xltx", "text/csv", "excel"),
        ("", "text/csv; charset=utf-8", "csv"),
        ("", None, "csv"),
    ],
)
def test_detect_file_kind(file_name: str, media_type: str | None, expected: str) -> None:
    assert detect_file_kind(file_name, media_type) == expected


def test_unsupported_file_type_raises() -> None:
    with pytest.raises(UnsupportedFileTypeError):
        parse_gps_export(b"%PDF-1.4", file_name="report.pdf")
