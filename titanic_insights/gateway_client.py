from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import requests


class GatewayError(Exception):
    """The query gateway could not be reached or answered with an error."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass
class QueryGatewayClient:
    base_url: str
    timeout_seconds: int = 120

    def run_query(self, sql: str) -> list[dict[str, Any]]:
        endpoint = f"{self.base_url.rstrip('/')}/api/query"
        try:
            response = requests.post(
                endpoint,
                json={"sql": sql},
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as exc:
            raise GatewayError(f"Query gateway is unreachable: {exc}") from exc

        if not response.ok:
            raise GatewayError(
                _error_message(response) or f"Query failed with HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise GatewayError("Query gateway returned a non-JSON response.") from exc

        data = payload.get("data") if isinstance(payload, dict) else None
        return list(data) if isinstance(data, list) else []

    def health(self) -> dict[str, Any]:
        endpoint = f"{self.base_url.rstrip('/')}/api/health"
        try:
            response = requests.get(endpoint, timeout=self.timeout_seconds)
            return response.json()
        except (requests.RequestException, ValueError) as exc:
            raise GatewayError(f"Query gateway is unreachable: {exc}") from exc


def _error_message(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return ""
    if isinstance(payload, dict):
        return str(payload.get("error") or payload.get("message") or "")
    return ""
