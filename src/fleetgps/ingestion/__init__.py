"""Ingestion layer.

This package turns raw GPS tracking exports into parsed per-vehicle
totals and suggests which fleet vehicle each row belongs to.
"""

__all__: list[str] = []
