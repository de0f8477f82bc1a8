from __future__ import annotations

from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx
import typer

from cli.config import CLIConfig


class FetchError(Exception):
    """A dashboard fetch was rejected (network failure or non-success response)."""


def history_path(location: str) -> str:
    return f"/api/history/{quote(location, safe='')}"


def _history_params(limit: Optional[int]) -> Dict[str, int]:
    return {} if limit is None else {"limit": limit}


class ApiClient:
    """Minimal blocking HTTP client for the monitoring API."""

    def __init__(self, config: CLIConfig, transport: httpx.BaseTransport | None = None) -> None:
        self._config = config
        self._client = httpx.Client(
            base_url=config.base_url, timeout=config.request_timeout, transport=transport
        )

    def close(self) -> None:
        self._client.close()

    def get_latest(self) -> Dict[str, Any]:
        return self._get("/api/latest")

    def get_history(self, location: str, limit: Optional[int] = None) -> Dict[str, Any]:
        return self._get(history_path(location), params=_history_params(limit))

    def get_status(self) -> Dict[str, Any]:
        return self._get("/api/status")

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            response = self._client.get(path, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(f"Could not reach {self._config.base_url}: {exc}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1) from exc
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("message") or data.get("error")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


class AsyncApiClient:
    """Non-blocking client used by the dashboard poller.

    Every rejection is raised as :class:`FetchError` so the poller can treat
    network failures and unsuccessful envelopes the same way.
    """

    def __init__(
        self, config: CLIConfig, transport: httpx.AsyncBaseTransport | None = None
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=config.base_url, timeout=config.request_timeout, transport=transport
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_latest(self) -> Dict[str, Any]:
        return await self._get("/api/latest")

    async def get_history(self, location: str, limit: Optional[int] = None) -> Dict[str, Any]:
        return await self._get(history_path(location), params=_history_params(limit))

    async def get_status(self) -> Dict[str, Any]:
        return await self._get("/api/status")

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            response = await self._client.get(path, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise FetchError(f"{path} returned status {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise FetchError(f"{path} failed: {exc}") from exc
        except ValueError as exc:
            raise FetchError(f"{path} returned a malformed body") from exc
        if not isinstance(payload, dict) or payload.get("success") is not True:
            raise FetchError(f"{path} reported failure")
        return payload
