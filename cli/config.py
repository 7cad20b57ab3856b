from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

import httpx
import typer

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_TIMEOUT = 30.0

_BASE_URL_ENV = "API_BASE_URL"
_TIMEOUT_ENV = "CLI_TIMEOUT"


@dataclass(frozen=True)
class CLIConfig:
    """Where the dashboard lives and how long to wait for it."""

    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT


def _timeout_from_env(default: float) -> float:
    raw = (os.getenv(_TIMEOUT_ENV) or "").strip()
    try:
        parsed = float(raw) if raw else default
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _normalize_base_url(candidate: str) -> str:
    try:
        url = httpx.URL(candidate.strip())
    except httpx.InvalidURL as exc:
        raise typer.BadParameter(f"Invalid base URL {candidate!r}.") from exc
    if url.scheme not in {"http", "https"} or not url.host:
        raise typer.BadParameter(f"Base URL must be an http(s) address, got {candidate!r}.")
    return str(url).rstrip("/")


def load_config(
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
) -> CLIConfig:
    """Resolve options first, then environment, then built-in defaults."""
    url = _normalize_base_url(base_url or os.getenv(_BASE_URL_ENV) or DEFAULT_BASE_URL)
    if timeout is None or timeout <= 0:
        timeout = _timeout_from_env(DEFAULT_TIMEOUT)
    return CLIConfig(base_url=url, timeout=timeout)
