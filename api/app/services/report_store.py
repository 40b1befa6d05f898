from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import uuid4

from tradeledger.models import ParsedReport

from ..schemas import ReportMetadata

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredReport:
    report_id: str
    report: ParsedReport
    created_at: datetime

    def metadata(self) -> ReportMetadata:
        report = self.report
        return ReportMetadata(
            report_id=self.report_id,
            filename=report.filename,
            source=report.source,
            format=report.detected.kind.value if report.detected else None,
            low_confidence=report.low_confidence,
            trade_count=len(report.trades),
            created_at=self.created_at,
        )


class ReportStore:
    """In-memory workspace of parsed reports, safe to share across request threads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._reports: dict[str, StoredReport] = {}

    def add(self, report: ParsedReport) -> StoredReport:
        stored = StoredReport(report_id=uuid4().hex, report=report, created_at=datetime.now(timezone.utc))
        with self._lock:
            self._reports[stored.report_id] = stored
        logger.info("Stored report %s (%s)", stored.report_id, report.filename)
        return stored

    def list(self) -> list[StoredReport]:
        with self._lock:
            items = list(self._reports.values())
        return sorted(items, key=lambda s: s.created_at)

    def get(self, report_id: str) -> StoredReport:
        with self._lock:
            return self._reports[report_id]

    def delete(self, report_id: str) -> None:
        with self._lock:
            del self._reports[report_id]
        logger.info("Cleared report %s", report_id)

    def clear(self) -> None:
        with self._lock:
            self._reports.clear()


store = ReportStore()
