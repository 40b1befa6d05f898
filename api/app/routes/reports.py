from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, File, Form, HTTPException, Response, UploadFile, status

from tradeledger.errors import ReportError, UnsupportedFileType
from tradeledger.export import trades_to_csv
from tradeledger.report import analyze_bytes

from ..schemas import ReportDetail, ReportMetadata, UploadOutcome, UploadResponse, detail_payload
from ..services.report_store import StoredReport, store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["reports"])


def _lookup(report_id: str) -> StoredReport:
    try:
        return store.get(report_id)
    except KeyError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not found")


async def _process(upload: UploadFile, initial_balance: Optional[float], max_rows: Optional[int]) -> UploadOutcome:
    filename = upload.filename or ""
    data = await upload.read()
    try:
        report = await asyncio.to_thread(analyze_bytes, data, filename, initial_balance, max_rows)
    except UnsupportedFileType as exc:
        return UploadOutcome(filename=filename, ok=False, status_code=status.HTTP_400_BAD_REQUEST, error=str(exc))
    except ReportError as exc:
        logger.warning("Upload %s could not be read: %s", filename, exc)
        return UploadOutcome(
            filename=filename, ok=False, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, error=str(exc)
        )
    except Exception as exc:
        logger.exception("Upload %s failed during analysis: %s", filename, exc)
        return UploadOutcome(
            filename=filename,
            ok=False,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error=f"Internal error: {exc}",
        )
    stored = store.add(report)
    return UploadOutcome(filename=filename, ok=True, report=stored.metadata())


@router.post("/reports", response_model=UploadResponse)
async def upload_reports(
    files: List[UploadFile] = File(...),
    initial_balance: Optional[float] = Form(default=None),
    max_rows: Optional[int] = Form(default=None),
) -> UploadResponse:
    if not files:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No files provided")

    results = [await _process(upload, initial_balance, max_rows) for upload in files]
    if len(results) == 1 and not results[0].ok:
        raise HTTPException(status_code=results[0].status_code, detail=results[0].error)
    return UploadResponse(results=results)


@router.get("/reports", response_model=list[ReportMetadata])
async def list_reports() -> list[ReportMetadata]:
    return [stored.metadata() for stored in store.list()]


@router.get("/reports/{report_id}", response_model=ReportDetail)
async def fetch_report(report_id: str) -> ReportDetail:
    stored = _lookup(report_id)
    return detail_payload(stored.metadata(), stored.report.to_dict())


@router.get("/reports/{report_id}/trades.csv")
async def download_trades(report_id: str) -> Response:
    stored = _lookup(report_id)
    content = trades_to_csv(stored.report.trades) or ""
    stem = stored.report.filename.rsplit(".", 1)[0] or "trades"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{stem}_trades.csv"'},
    )


@router.delete("/reports/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_report(report_id: str) -> Response:
    try:
        store.delete(report_id)
    except KeyError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
