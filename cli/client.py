from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the flood monitor service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def upload_readings(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            raise typer.BadParameter(f"File {path} does not exist.")
        if not path.is_file():
            raise typer.BadParameter(f"Path {path} is not a file.")

        with path.open("rb") as handle:
            return self._request(
                "POST",
                "/readings",
                files={"file": (path.name, handle, "text/csv")},
            )

    def get_statistics(
        self,
        sensor_id: str,
        period: Optional[str] = None,
        parameters: Sequence[str] = (),
    ) -> Dict[str, Any]:
        params: Dict[str, str] = {}
        if period:
            params["period"] = period
        if parameters:
            params["parameters"] = ",".join(parameters)
        return self._request("GET", f"/sensors/{sensor_id}/statistics", params=params)

    def get_barangay_risk(
        self,
        barangay: str,
        period: Optional[str] = None,
        parameter: Optional[str] = None,
        min_level: Optional[str] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, str] = {}
        if period:
            params["period"] = period
        if parameter:
            params["parameter"] = parameter
        if min_level:
            params["min_level"] = min_level
        return self._request("GET", f"/barangays/{barangay}/risk", params=params)

    def get_latest_readings(
        self, barangay: Optional[str] = None, period: Optional[str] = None
    ) -> Dict[str, Any]:
        params: Dict[str, str] = {}
        if barangay:
            params["barangay"] = barangay
        if period:
            params["period"] = period
        return self._request("GET", "/sensors/latest", params=params)

    def classify(self, kind: str, value: float) -> Dict[str, Any]:
        return self._request("GET", "/risk/classify", params={"kind": kind, "value": str(value)})

    def _request(self, method: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.RequestError as exc:
            typer.secho(f"Could not reach {self._config.base_url}: {exc}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1) from exc
        return response.json()

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
