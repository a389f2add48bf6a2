"""Shared helpers for REST endpoint modules.

This module centralizes the most repeated patterns:
- building table paths and PostgREST filter values
- normalizing row payloads
- reading whole tables

It is internal to fleetgps and may change at any time.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from fleetgps._constants import REST_PREFIX
from fleetgps._transport import Transport
from fleetgps.exceptions import FleetApiError, FleetNotFoundError

RETURN_REPRESENTATION: dict[str, str] = {"prefer": "return=representation"}
RETURN_MINIMAL: dict[str, str] = {"prefer": "return=minimal"}
MERGE_DUPLICATES: dict[str, str] = {"prefer": "resolution=merge-duplicates,return=minimal"}


def table_path(table: str) -> str:
    return f"{REST_PREFIX}/{table}"


def eq(value: Any) -> str:
    return f"eq.{value}"


def neq(value: Any) -> str:
    return f"neq.{value}"


def in_list(values: Iterable[Any]) -> str:
    """PostgREST ``in`` filter with each value double-quoted."""
    quoted = ",".join('"{}"'.format(str(value).replace('"', '\\"')) for value in values)
    return f"in.({quoted})"


def expect_rows(endpoint: str, decoded: Any) -> list[dict[str, Any]]:
    """Coerce a response body into a list of row dicts."""
    if decoded is None:
        return []
    if isinstance(decoded, dict):
        return [decoded]
    if isinstance(decoded, list):
        return [row for row in decoded if isinstance(row, dict)]
    raise FleetApiError(
        f"{endpoint} returned an unexpected payload: {str(decoded)[:128]}",
        code="unexpected_payload",
        endpoint=endpoint,
    )


def single_row(endpoint: str, decoded: Any, *, what: str) -> dict[str, Any]:
    rows = expect_rows(endpoint, decoded)
    if not rows:
        raise FleetNotFoundError(f"{what} not found", code="not_found", endpoint=endpoint)
    return rows[0]


async def fetch_table(transport: Transport, table: str, *, order: str | None = "id.asc") -> list[dict[str, Any]]:
    """Read every row of *table*."""
    endpoint = table_path(table)
    params = {"select": "*"}
    if order:
        params["order"] = order
    decoded = await transport.request("GET", endpoint, params=params)
    return expect_rows(endpoint, decoded)
