"""Client configuration for fleetgps."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from fleetgps._constants import (
    DEFAULT_STORAGE_BUCKET,
    DEFAULT_UPLOADS_TABLE,
    DEFAULT_VEHICLES_TABLE,
    FALLBACK_TOTAL_THRESHOLD,
)
from fleetgps.exceptions import FleetConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class FleetConfig:
    """Client configuration.

    Parameters
    ----------
    base_url : str
        Backend project URL (e.g. ``"https://abc.supabase.co"``).
    api_key : str
        Project API key, sent as the ``apikey`` header.
    access_token : str or None
        Bearer token of the signed-in user. Falls back to *api_key*.
    user_id : str or None
        Profile id stamped on committed records as ``uploaded_by``.
    storage_bucket : str
        Bucket that archives raw GPS exports.
    vehicles_table : str
        Table holding vehicle rows and their ``odometer_km``.
    uploads_table : str
        Table holding GPS upload audit rows.
    request_timeout : float
        Total per-request timeout in seconds.
    fallback_total_threshold : float
        Smallest number the last-line fallback accepts as a total.
    api_trace_enabled : bool
        Log redacted request/response bodies at DEBUG level.
    """

    base_url: str
    api_key: str
    access_token: str | None = None
    user_id: str | None = None
    storage_bucket: str = DEFAULT_STORAGE_BUCKET
    vehicles_table: str = DEFAULT_VEHICLES_TABLE
    uploads_table: str = DEFAULT_UPLOADS_TABLE
    request_timeout: float = 30.0
    fallback_total_threshold: float = FALLBACK_TOTAL_THRESHOLD
    api_trace_enabled: bool = False

    def __post_init__(self) -> None:
        if not self.base_url or not self.base_url.strip():
            raise FleetConfigError("base_url must be set")
        if not self.api_key or not self.api_key.strip():
            raise FleetConfigError("api_key must be set")
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @property
    def bearer_token(self) -> str:
        return self.access_token or self.api_key

    @classmethod
    def from_env(cls, **overrides: Any) -> FleetConfig:
        """Create configuration from environment variables.

        Reads ``FLEET_BASE_URL``, ``FLEET_API_KEY`` and optional
        ``FLEET_*`` variables. Explicit keyword arguments override
        environment values.

        Raises
        ------
        FleetConfigError
            If the URL or API key is missing or a numeric value is malformed.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "FLEET_BASE_URL": "base_url",
            "FLEET_API_KEY": "api_key",
            "FLEET_ACCESS_TOKEN": "access_token",
            "FLEET_USER_ID": "user_id",
            "FLEET_STORAGE_BUCKET": "storage_bucket",
            "FLEET_VEHICLES_TABLE": "vehicles_table",
            "FLEET_UPLOADS_TABLE": "uploads_table",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        # numeric settings are handled separately
        _ENV_FLOAT_MAP = {
            "FLEET_REQUEST_TIMEOUT": "request_timeout",
            "FLEET_FALLBACK_TOTAL_THRESHOLD": "fallback_total_threshold",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = float(val)
            except ValueError as exc:
                raise FleetConfigError(f"{env_key} must be a number, got {val!r}") from exc

        if "api_trace_enabled" not in overrides:
            config_kwargs["api_trace_enabled"] = _env_bool(
                env.get("FLEET_API_TRACE_ENABLED"),
                False,
            )

        config_kwargs.update(overrides)
        config_kwargs.setdefault("base_url", "")
        config_kwargs.setdefault("api_key", "")

        return cls(**config_kwargs)
