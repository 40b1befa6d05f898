from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from api.app.main import app
from api.app.services.report_store import store
from tradeledger import report as report_module

from tests.workbooks import mt5_bytes, tradingview_bytes

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@pytest.fixture()
def client() -> TestClient:
    store.clear()
    with TestClient(app) as c:
        yield c
    store.clear()


def _upload(client: TestClient, *files, **form):
    payload = [("files", (name, data, XLSX)) for name, data in files]
    return client.post("/api/v1/reports", files=payload, data=form)


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_upload_fetch_download_delete(client: TestClient) -> None:
    response = _upload(client, ("ReportHistory.xlsx", mt5_bytes()))
    assert response.status_code == 200
    (result,) = response.json()["results"]
    assert result["ok"] is True
    report_id = result["report"]["report_id"]
    assert result["report"]["source"] == "MT5"
    assert result["report"]["trade_count"] == 7

    listing = client.get("/api/v1/reports").json()
    assert [r["report_id"] for r in listing] == [report_id]

    detail = client.get(f"/api/v1/reports/{report_id}").json()
    assert detail["summary"]["Total Net Profit"] == 250
    assert detail["format"] == "MT5_DEALS"
    assert len(detail["trades"]) == 7
    assert detail["by_symbol"][0]["key"] == "EURUSD"

    csv_response = client.get(f"/api/v1/reports/{report_id}/trades.csv")
    assert csv_response.status_code == 200
    assert csv_response.headers["content-type"].startswith("text/csv")
    assert csv_response.text.splitlines()[0].startswith("Time,Deal,Symbol")

    assert client.delete(f"/api/v1/reports/{report_id}").status_code == 204
    assert client.get(f"/api/v1/reports/{report_id}").status_code == 404
    assert client.delete(f"/api/v1/reports/{report_id}").status_code == 404


def test_multi_upload_isolates_a_failing_file(client: TestClient) -> None:
    response = _upload(
        client,
        ("tv.xlsx", tradingview_bytes()),
        ("broken.xlsx", b"not a zip"),
        ("notes.csv", b"a,b"),
    )
    assert response.status_code == 200
    results = response.json()["results"]
    assert [r["ok"] for r in results] == [True, False, False]
    assert results[1]["status_code"] == 422
    assert results[2]["status_code"] == 400
    assert len(client.get("/api/v1/reports").json()) == 1


def test_single_unsupported_file_is_400(client: TestClient) -> None:
    response = _upload(client, ("report.xls", b"whatever"))
    assert response.status_code == 400
    assert ".xlsx" in response.json()["detail"]


def test_initial_balance_form_field(client: TestClient) -> None:
    response = _upload(client, ("tv.xlsx", tradingview_bytes()), initial_balance="1000")
    report_id = response.json()["results"][0]["report"]["report_id"]
    detail = client.get(f"/api/v1/reports/{report_id}").json()
    assert detail["initial_balance"] == 1000
    assert detail["summary"]["Final Balance"] == 1175


def test_unknown_report_is_404(client: TestClient) -> None:
    assert client.get("/api/v1/reports/nope").status_code == 404
    assert client.get("/api/v1/reports/nope/trades.csv").status_code == 404


def test_unexpected_failure_stays_with_its_file(client: TestClient, monkeypatch) -> None:
    real_detect = report_module.detect_format

    def exploding_detect(workbook, filename, *args, **kwargs):
        if filename == "boom.xlsx":
            raise RuntimeError("detector crashed")
        return real_detect(workbook, filename, *args, **kwargs)

    monkeypatch.setattr(report_module, "detect_format", exploding_detect)
    response = _upload(client, ("good.xlsx", mt5_bytes()), ("boom.xlsx", mt5_bytes()))
    assert response.status_code == 200
    good, boom = response.json()["results"]
    assert good["ok"] is True
    assert boom["ok"] is False and boom["status_code"] == 500
    assert "detector crashed" in boom["error"]

    single = _upload(client, ("boom.xlsx", mt5_bytes()))
    assert single.status_code == 500


def test_monthly_groups_expose_returns(client: TestClient) -> None:
    response = _upload(client, ("ReportHistory.xlsx", mt5_bytes()))
    report_id = response.json()["results"][0]["report"]["report_id"]
    monthly = client.get(f"/api/v1/reports/{report_id}").json()["monthly"]
    assert [m["key"] for m in monthly] == ["2024-01", "2024-02"]
    assert monthly[0]["start_balance"] == 10_000 and monthly[0]["end_balance"] == 10_050
    assert monthly[1]["return_pct"] == pytest.approx(200 / 10_050 * 100)
