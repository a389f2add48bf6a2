"""HTTP transport for the backend's REST and storage endpoints."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from fleetgps._constants import USER_AGENT
from fleetgps._redact import redact_for_log
from fleetgps.config import FleetConfig
from fleetgps.exceptions import FleetApiError, FleetTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`RestTransport`) concrete.
    """

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        json_body: Any = None,
        data: bytes | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        ...


class RestTransport:
    """Authenticated JSON transport over a shared ``aiohttp`` session."""

    def __init__(self, config: FleetConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    def _base_headers(self) -> dict[str, str]:
        return {
            "apikey": self._config.api_key,
            "authorization": f"Bearer {self._config.bearer_token}",
            "user-agent": USER_AGENT,
            "accept": "application/json",
        }

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        json_body: Any = None,
        data: bytes | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Send one request and return the decoded JSON body.

        Returns ``None`` for empty bodies (e.g. ``204 No Content``).

        Raises
        ------
        FleetApiError
            The backend answered with a status >= 400.
        FleetTransportError
            Network failure or a body that is not JSON.
        """
        merged: dict[str, str] = self._base_headers()
        if headers:
            merged.update(headers)

        body: bytes | str | None = data
        if json_body is not None:
            merged.setdefault("content-type", "application/json")
            body = json.dumps(json_body, separators=(",", ":"), default=str)

        url = f"{self._config.base_url}{path}"
        _logger.debug("%s %s params=%s", method, url, dict(params or {}))
        if self._config.api_trace_enabled and json_body is not None:
            _logger.debug("request body %s", redact_for_log(json_body))

        timeout = aiohttp.ClientTimeout(total=self._config.request_timeout)
        try:
            async with self._http.request(
                method,
                url,
                params=dict(params or {}),
                data=body,
                headers=merged,
                timeout=timeout,
            ) as resp:
                status = resp.status
                text = await resp.text()
        except aiohttp.ClientError as exc:
            raise FleetTransportError(f"{method} {path} failed: {exc}", endpoint=path) from exc
        except TimeoutError as exc:
            raise FleetTransportError(f"{method} {path} timed out", endpoint=path) from exc

        if status >= 400:
            raise _api_error(method, path, status, text)

        if not text.strip():
            return None

        try:
            decoded = json.loads(text)
        except json.JSONDecodeError as exc:
            raise FleetTransportError(
                f"Invalid JSON from {path}: {text[:200]}",
                status_code=status,
                endpoint=path,
            ) from exc

        if self._config.api_trace_enabled:
            _logger.debug("response %s %s", status, redact_for_log(decoded))
        return decoded


def _api_error(method: str, path: str, status: int, text: str) -> FleetApiError:
    """Map an error body (PostgREST or storage style) to :class:`FleetApiError`."""
    code = str(status)
    message = text[:200]
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        payload = None
    if isinstance(payload, dict):
        code = str(payload.get("code") or payload.get("statusCode") or status)
        message = str(payload.get("message") or payload.get("error") or message)
    return FleetApiError(
        f"{method} {path} failed: HTTP {status} code={code} message={message}",
        code=code,
        endpoint=path,
    )
