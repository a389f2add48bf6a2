"""Serialized read-modify-write of vehicle odometers.

Every adjustment of ``odometer_km`` goes through an :class:`OdometerLedger`,
which holds one ``asyncio.Lock`` per vehicle. Two adjustments of the same
vehicle made through the same ledger never interleave their read and
write. Writers outside this process (other ledgers, other users) are not
covered; the stored value is a running total, not derived from the
audit log.
"""

from __future__ import annotations

import asyncio
import logging
import weakref

from fleetgps._api import vehicles as _vehicles_api
from fleetgps._transport import Transport
from fleetgps.config import FleetConfig

_logger = logging.getLogger(__name__)


class OdometerLedger:
    def __init__(self, config: FleetConfig, transport: Transport) -> None:
        self._config = config
        self._transport = transport
        # A lock lives only while an adjustment holds or awaits it.
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, vehicle_id: str) -> asyncio.Lock:
        lock = self._locks.get(vehicle_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[vehicle_id] = lock
        return lock

    async def read(self, vehicle_id: str) -> float:
        return await _vehicles_api.fetch_odometer(self._config, self._transport, vehicle_id)

    async def add(self, vehicle_id: str, kilometers: float) -> float:
        """Add *kilometers* and return the new odometer value."""
        if kilometers < 0:
            raise ValueError("kilometers must be non-negative; use subtract()")
        async with self._lock_for(vehicle_id):
            current = await self.read(vehicle_id)
            updated = current + kilometers
            await _vehicles_api.update_odometer(self._config, self._transport, vehicle_id, updated)
        _logger.debug("Odometer vehicle=%s %s -> %s (+%s)", vehicle_id, current, updated, kilometers)
        return updated

    async def subtract(self, vehicle_id: str, kilometers: float) -> float:
        """Subtract *kilometers*, saturating at zero, and return the new value."""
        if kilometers < 0:
            raise ValueError("kilometers must be non-negative; use add()")
        async with self._lock_for(vehicle_id):
            current = await self.read(vehicle_id)
            updated = max(0.0, current - kilometers)
            await _vehicles_api.update_odometer(self._config, self._transport, vehicle_id, updated)
        if current - kilometers < 0:
            _logger.info(
                "Odometer vehicle=%s clamped at 0 (had %s, subtracting %s)", vehicle_id, current, kilometers
            )
        else:
            _logger.debug("Odometer vehicle=%s %s -> %s (-%s)", vehicle_id, current, updated, kilometers)
        return updated
