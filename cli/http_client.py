from __future__ import annotations

from contextlib import ExitStack
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import click
import requests
from requests import Response

from .config import APISettings

REPORTS_PATH = "/api/v1/reports"
XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class LedgerClient:
    """Report endpoints of the Trade Ledger API.

    Transport and HTTP errors surface as ``click.ClickException`` so commands
    can let them propagate to the CLI.
    """

    def __init__(self, settings: APISettings, timeout: int = 60) -> None:
        self.settings = settings
        self.timeout = timeout
        self.session = requests.Session()

    @property
    def headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {"Accept": "application/json"}
        if self.settings.token:
            headers["Authorization"] = f"Bearer {self.settings.token}"
        return headers

    def upload_reports(self, paths: Sequence[Path], form: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        with ExitStack() as stack:
            files = [
                ("files", (path.name, stack.enter_context(path.open("rb")), XLSX_CONTENT_TYPE))
                for path in paths
            ]
            response = self._send("POST", REPORTS_PATH, files=files, data=form or {})
        return self._json(response)

    def list_reports(self) -> list[Dict[str, Any]]:
        return self._json(self._send("GET", REPORTS_PATH))

    def fetch_report(self, report_id: str) -> Dict[str, Any]:
        return self._json(self._send("GET", f"{REPORTS_PATH}/{report_id}"))

    def fetch_trades_csv(self, report_id: str) -> str:
        return self._send("GET", f"{REPORTS_PATH}/{report_id}/trades.csv").text

    def delete_report(self, report_id: str) -> None:
        self._send("DELETE", f"{REPORTS_PATH}/{report_id}")

    def _send(self, method: str, path: str, **kwargs: Any) -> Response:
        url = f"{self.settings.base_url}{path}"
        try:
            response = self.session.request(method, url, headers=self.headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise click.ClickException(f"{method} {url} failed: {exc}") from exc
        if not response.ok:
            raise click.ClickException(f"{method} {path} returned {response.status_code}: {_detail(response)}")
        return response

    @staticmethod
    def _json(response: Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise click.ClickException("Response was not valid JSON") from exc


def _detail(response: Response) -> Any:
    try:
        payload = response.json()
    except ValueError:
        return response.text
    return payload.get("detail", payload) if isinstance(payload, dict) else payload
