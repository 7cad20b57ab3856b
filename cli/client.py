from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the dashboard API."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def latest(self) -> Dict[str, Any]:
        response = self._send("GET", "/api/sensors/latest")
        return response.json()

    def history(self, range_key: str) -> Dict[str, Any]:
        response = self._send("GET", "/api/sensors/history/series", params={"range": range_key})
        return response.json()

    def export_csv(
        self,
        data_types: Iterable[str],
        time_span: str,
        start: Optional[str] = None,
        end: Optional[str] = None,
    ) -> str:
        params: Dict[str, str] = {"timeSpan": time_span}
        types = [item for item in data_types if item]
        if types:
            params["dataTypes"] = ",".join(types)
        if start:
            params["startDate"] = start
        if end:
            params["endDate"] = end
        response = self._send("GET", "/api/sensors/export", params=params)
        return response.text

    def ingest(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = self._send("POST", "/api/sensor-data", json=payload)
        data = response.json().get("data")
        if not isinstance(data, dict):
            raise typer.BadParameter("Unexpected response payload when storing reading.")
        return data

    def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(f"Could not reach {self._config.base_url}: {exc}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1) from exc
        return response

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
