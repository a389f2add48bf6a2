"""Header-column discovery.

A :class:`ColumnStrategy` is an ordered list of predicates over
lower-cased header cells. Predicates are tried in sequence and, for each
one, the first matching header wins, so new header synonyms can be added
without touching the parsing control flow.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Collection, Sequence

from fleetgps._constants import DISTANCE_KEYWORDS, VEHICLE_NAME_KEYWORDS

ColumnPredicate = Callable[[str], bool]


def keyword_predicate(keywords: Sequence[str]) -> ColumnPredicate:
    """Match headers containing any of *keywords* as a substring."""
    lowered = tuple(keyword.lower() for keyword in keywords)

    def _predicate(header: str) -> bool:
        return any(keyword in header for keyword in lowered)

    return _predicate


@dataclasses.dataclass(frozen=True)
class ColumnStrategy:
    predicates: tuple[ColumnPredicate, ...]

    def locate(self, headers: Sequence[str], *, exclude: Collection[int] = ()) -> int | None:
        """Return the index of the column to use, or ``None``."""
        for predicate in self.predicates:
            for index, header in enumerate(headers):
                if index in exclude:
                    continue
                if predicate(header):
                    return index
        return None

    def with_predicate(self, predicate: ColumnPredicate, *, first: bool = False) -> ColumnStrategy:
        """Return a copy with *predicate* tried first or last."""
        if first:
            return ColumnStrategy((predicate, *self.predicates))
        return ColumnStrategy((*self.predicates, predicate))


DISTANCE_COLUMN = ColumnStrategy((keyword_predicate(DISTANCE_KEYWORDS),))

# Specific labels beat generic ones like "name" or "unit".
VEHICLE_COLUMN = ColumnStrategy(
    (
        keyword_predicate(VEHICLE_NAME_KEYWORDS[:2]),
        keyword_predicate(VEHICLE_NAME_KEYWORDS[2:]),
    )
)
