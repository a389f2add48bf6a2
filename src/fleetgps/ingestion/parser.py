"""GPS tracking export parser.

Turns the loosely-structured CSV export of a vehicle-tracking service
into per-vehicle kilometer totals:

1. Drop blank lines; a header plus one data row is the minimum.
2. Find the header line and its distance column (see
   :mod:`fleetgps.ingestion.columns`).
3. With a distance column, sum each row's cleaned numeric value per
   vehicle. Unreadable cells become :class:`ParseWarning` values and the
   batch carries on.
4. Without one, take the first number above the fallback threshold on
   the last line as the total.

Excel workbooks are accepted but not parsed; the caller is told that
kilometers must be entered by hand.
"""

from __future__ import annotations

import csv
import logging
import re
from datetime import date
from pathlib import PurePath

from fleetgps._constants import (
    CSV_EXTENSIONS,
    CSV_MEDIA_TYPES,
    DEFAULT_TOTAL_LABEL,
    EXCEL_EXTENSIONS,
    EXCEL_MEDIA_TYPES,
    FALLBACK_TOTAL_THRESHOLD,
    HEADER_SCAN_LINES,
)
from fleetgps.exceptions import EmptyFileError, NoDistanceDataError, UnsupportedFileTypeError
from fleetgps.ingestion.columns import DISTANCE_COLUMN, VEHICLE_COLUMN, ColumnStrategy
from fleetgps.ingestion.normalize import clean_cell, fold, parse_distance, safe_float, strip_to_numeric
from fleetgps.models.gps import ParsedVehicleEntry, ParseResult, ParseWarning

_logger = logging.getLogger(__name__)

_FROM_RE = re.compile(r"\bFrom\s*[:：]\s*(\d{4}-\d{2}-\d{2})", re.IGNORECASE)
_TO_RE = re.compile(r"\bTo\s*[:：]\s*(\d{4}-\d{2}-\d{2})", re.IGNORECASE)
# Whitespace, or a comma that is not a thousands separator.
_TOKEN_SPLIT = re.compile(r"\s+|,(?!\d{3}(?:\D|$))")

ISSUE_UNPARSABLE = "could not parse distance value"
ISSUE_MISSING_NAME = "missing vehicle name"


def detect_file_kind(file_name: str = "", media_type: str | None = None) -> str:
    """Classify an upload as ``"csv"`` or ``"excel"``.

    The extension wins over the declared media type; with neither the
    file is assumed to be CSV text.

    Raises
    ------
    UnsupportedFileTypeError
        If the extension or media type is known to be something else.
    """
    suffix = PurePath(file_name).suffix.lower() if file_name else ""
    if suffix in CSV_EXTENSIONS:
        return "csv"
    if suffix in EXCEL_EXTENSIONS:
        return "excel"
    kind = (media_type or "").split(";", 1)[0].strip().lower()
    if kind in CSV_MEDIA_TYPES:
        return "csv"
    if kind in EXCEL_MEDIA_TYPES:
        return "excel"
    if not suffix and not kind:
        return "csv"
    raise UnsupportedFileTypeError(f"Please upload a CSV or Excel file (got {file_name or media_type!r})")


def _split_cells(line: str) -> list[str]:
    row = next(csv.reader([line]), [])
    return [clean_cell(cell) for cell in row]


def _looks_like_header(cells: list[str]) -> bool:
    return not any(safe_float(cell) is not None for cell in cells)


def _header_candidates(lines: list[str], distance_columns: ColumnStrategy) -> list[tuple[int, list[str], int]]:
    # The last line has no data row below it, so it is never a header.
    candidates = []
    for index, line in enumerate(lines[: min(HEADER_SCAN_LINES, len(lines) - 1)]):
        if "," not in line:
            continue
        cells = _split_cells(line)
        if not _looks_like_header(cells):
            continue
        headers = [cell.lower() for cell in cells]
        column = distance_columns.locate(headers)
        if column is not None:
            candidates.append((index, headers, column))
    return candidates


def _locate_header(lines: list[str], distance_columns: ColumnStrategy) -> tuple[int, list[str], int | None]:
    """Return ``(line index, lower-cased headers, distance column index)``.

    A keyword hit alone is weak evidence (``"total vehicles: 2"`` matches
    ``total``). Candidates are ranked:

    1. the first whose next line has a readable distance cell;
    2. the first whose next line is not itself a candidate;
    3. the first candidate.

    Without any candidate line 1 is returned with no distance column.
    """
    candidates = _header_candidates(lines, distance_columns)
    for index, headers, column in candidates:
        cells = _split_cells(lines[index + 1])
        if column < len(cells) and parse_distance(cells[column]) is not None:
            return index, headers, column
    candidate_lines = {index for index, _, _ in candidates}
    for index, headers, column in candidates:
        if index + 1 not in candidate_lines:
            return index, headers, column
    if candidates:
        return candidates[0]
    return 0, [cell.lower() for cell in _split_cells(lines[0])], None


def _detect_period(lines: list[str]) -> tuple[date | None, date | None]:
    period_start: date | None = None
    period_end: date | None = None
    for line in lines[:HEADER_SCAN_LINES]:
        if period_start is None and (match := _FROM_RE.search(line)):
            period_start = _to_date(match.group(1))
        if period_end is None and (match := _TO_RE.search(line)):
            period_end = _to_date(match.group(1))
    return period_start, period_end


def _to_date(text: str) -> date | None:
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


class _Accumulator:
    """Running total for one vehicle label."""

    __slots__ = ("name", "total", "row_number", "corrected", "raw_value", "has_data")

    def __init__(self, name: str, row_number: int) -> None:
        self.name = name
        self.total = 0.0
        self.row_number = row_number
        self.corrected = False
        self.raw_value: str | None = None
        self.has_data = False

    def add(self, value: float, raw: str) -> None:
        self.total += value
        self.has_data = True
        if strip_to_numeric(raw) != raw:
            self.corrected = True
            self.raw_value = raw

    def to_entry(self) -> ParsedVehicleEntry:
        kilometers = self.total
        corrected = self.corrected
        raw_value = self.raw_value
        if kilometers < 0:
            corrected = True
            raw_value = raw_value or str(kilometers)
            kilometers = 0.0
        return ParsedVehicleEntry(
            vehicle_name=self.name,
            kilometers=kilometers,
            row_number=self.row_number,
            corrected=corrected,
            raw_value=raw_value if corrected else None,
            has_data=self.has_data,
        )


def _decode(data: bytes | str) -> str:
    if isinstance(data, str):
        return data
    return data.decode("utf-8-sig", errors="replace")


def parse_gps_export(
    data: bytes | str,
    *,
    file_name: str = "",
    media_type: str | None = None,
    vehicle_name: str | None = None,
    fallback_threshold: float = FALLBACK_TOTAL_THRESHOLD,
    distance_columns: ColumnStrategy = DISTANCE_COLUMN,
    vehicle_columns: ColumnStrategy = VEHICLE_COLUMN,
) -> ParseResult:
    """Parse a GPS export into per-vehicle kilometer totals.

    Parameters
    ----------
    data : bytes or str
        File contents.
    file_name : str
        Original file name, used to tell CSV from Excel.
    media_type : str or None
        Declared media type, used when the name has no known extension.
    vehicle_name : str or None
        Single-vehicle context. When set, every row is summed into one
        entry under this label and any vehicle column is ignored.
    fallback_threshold : float
        Smallest number the last-line fallback accepts as a total.

    Returns
    -------
    ParseResult
        Entries in first-seen order plus per-row warnings.

    Raises
    ------
    UnsupportedFileTypeError
        Neither CSV nor Excel.
    EmptyFileError
        Fewer than two non-blank lines.
    NoDistanceDataError
        No usable distance data, including a located column whose values
        sum to zero.
    """
    if detect_file_kind(file_name, media_type) == "excel":
        _logger.info("Excel file %s stored without parsing; kilometers need manual entry", file_name)
        return ParseResult(manual_entry_required=True)

    lines = [line.rstrip("\r") for line in _decode(data).split("\n") if line.strip()]
    if len(lines) < 2:
        raise EmptyFileError("File appears to be empty or invalid")

    period_start, period_end = _detect_period(lines)
    header_index, headers, distance_index = _locate_header(lines, distance_columns)

    if distance_index is None:
        entry = _fallback_total(lines, vehicle_name=vehicle_name, threshold=fallback_threshold)
        return ParseResult(
            entries=[entry],
            period_start=period_start,
            period_end=period_end,
            used_fallback=True,
        )

    vehicle_index: int | None = None
    if vehicle_name is None:
        vehicle_index = vehicle_columns.locate(headers, exclude={distance_index})
    context_label = vehicle_name or DEFAULT_TOTAL_LABEL

    totals: dict[str, _Accumulator] = {}
    warnings: list[ParseWarning] = []

    for offset, line in enumerate(lines[header_index + 1 :], start=header_index + 2):
        cells = _split_cells(line)

        if vehicle_index is not None:
            name = cells[vehicle_index] if vehicle_index < len(cells) else ""
            if fold(name) == fold(headers[vehicle_index]):
                continue  # repeated header row
        else:
            name = context_label

        raw = cells[distance_index] if distance_index < len(cells) else ""

        if not name:
            warnings.append(ParseWarning(row_number=offset, vehicle_name="", raw_value=raw, issue=ISSUE_MISSING_NAME))
            continue

        accumulator = totals.get(name)
        if accumulator is None:
            accumulator = _Accumulator(name, offset)
            totals[name] = accumulator

        value = parse_distance(raw)
        if value is None:
            warnings.append(ParseWarning(row_number=offset, vehicle_name=name, raw_value=raw, issue=ISSUE_UNPARSABLE))
            continue
        accumulator.add(value, raw)

    for warning in warnings:
        _logger.warning("Row %d (%s): %s %r", warning.row_number, warning.vehicle_name, warning.issue, warning.raw_value)

    entries = [accumulator.to_entry() for accumulator in totals.values()]
    if not any(entry.kilometers > 0 for entry in entries):
        raise NoDistanceDataError(
            f"Found distance column {headers[distance_index]!r} but no non-zero distance values"
        )

    return ParseResult(
        entries=entries,
        warnings=warnings,
        period_start=period_start,
        period_end=period_end,
        distance_column=headers[distance_index],
        vehicle_column=headers[vehicle_index] if vehicle_index is not None else None,
    )


def _fallback_total(lines: list[str], *, vehicle_name: str | None, threshold: float) -> ParsedVehicleEntry:
    """First numeric token above *threshold* on the last non-blank line."""
    for token in _TOKEN_SPLIT.split(lines[-1]):
        value = parse_distance(token)
        if value is not None and value > threshold:
            corrected = strip_to_numeric(token) != token
            return ParsedVehicleEntry(
                vehicle_name=vehicle_name or DEFAULT_TOTAL_LABEL,
                kilometers=value,
                row_number=len(lines),
                corrected=corrected,
                raw_value=token if corrected else None,
            )
    raise NoDistanceDataError("No distance column and no plausible total found in the last line")
