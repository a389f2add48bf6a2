from __future__ import annotations

import pytest
from fakes import FakeBackend

from fleetgps.config import FleetConfig
from fleetgps.state.odometer import OdometerLedger


@pytest.fixture
def config() -> FleetConfig:
    return FleetConfig(base_url="https://fleet.example.test", api_key="anon-key", user_id="user-1")


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def ledger(config: FleetConfig, backend: FakeBackend) -> OdometerLedger:
    return OdometerLedger(config, backend)
