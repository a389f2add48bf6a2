"""Vehicle matching for free-text GPS labels.

Matching is deliberately permissive: a vehicle matches when one of its
identifying fields contains the GPS label or the label contains the
field (case-insensitive). The first vehicle in iteration order wins;
there is no scoring. Short plates can produce false positives, which is
what the preview session's manual re-matching is for.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence

from fleetgps.ingestion.normalize import fold
from fleetgps.models.vehicle import Vehicle

MatchField = Callable[[Vehicle], str]

_FIELDS: dict[str, MatchField] = {
    "plate": lambda vehicle: vehicle.plate,
    "vin": lambda vehicle: vehicle.vin,
    "make_model": lambda vehicle: vehicle.make_model,
}

DEFAULT_MATCH_FIELDS: tuple[str, ...] = ("plate", "vin", "make_model")


def _contains_either_way(needle: str, haystack: str) -> bool:
    if not needle or not haystack:
        return False
    return needle in haystack or haystack in needle


def match_vehicle(
    gps_name: str,
    vehicles: Iterable[Vehicle],
    *,
    fields: Sequence[str] = DEFAULT_MATCH_FIELDS,
) -> Vehicle | None:
    """Return the first vehicle whose plate, VIN or make+model matches *gps_name*.

    Pure and deterministic. Empty labels and empty fields never match.

    Parameters
    ----------
    fields
        Field names to compare, from ``"plate"``, ``"vin"`` and
        ``"make_model"``, checked in order for each vehicle.
    """
    key = fold(gps_name)
    if not key:
        return None
    getters = [_FIELDS[name] for name in fields]
    for vehicle in vehicles:
        for getter in getters:
            if _contains_either_way(key, fold(getter(vehicle))):
                return vehicle
    return None
