# tradeledger/workbook.py

from __future__ import annotations
import io
import logging
import os
import zipfile
from dataclasses import dataclass, field
from typing import Any, Optional

import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException

from .errors import UnsupportedFileType, WorkbookError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSION = ".xlsx"


@dataclass(frozen=True)
class Workbook:
    """Every sheet of an upload as a header-less DataFrame (RawSheet)."""

    sheet_names: tuple[str, ...]
    frames: dict[str, pd.DataFrame] = field(default_factory=dict)

    def rows(self, sheet_name: str) -> list[list[Any]]:
        df = self.frames.get(sheet_name)
        if df is None or df.empty:
            return []
        return df.astype(object).where(pd.notna(df), None).values.tolist()

    @property
    def first_sheet(self) -> Optional[str]:
        return self.sheet_names[0] if self.sheet_names else None


def validate_filename(filename: str) -> str:
    """Reject anything but .xlsx before parsing starts."""
    base = os.path.basename(filename or "")
    _, ext = os.path.splitext(base)
    if ext.lower() != ALLOWED_EXTENSION:
        raise UnsupportedFileType(f"Unsupported file type for {base or '<unnamed>'!r}; expected {ALLOWED_EXTENSION}")
    return base


def read_workbook(data: bytes, max_rows: Optional[int] = None) -> Workbook:
    """Open xlsx bytes and read every sheet with header=None.

    ``max_rows`` caps rows per sheet for quick previews. A container that
    openpyxl cannot open raises WorkbookError.
    """

    try:
        xls = pd.ExcelFile(io.BytesIO(data), engine="openpyxl")
        frames: dict[str, pd.DataFrame] = {}
        for name in xls.sheet_names:
            frames[str(name)] = pd.read_excel(xls, sheet_name=name, header=None, nrows=max_rows, engine="openpyxl")
    except (zipfile.BadZipFile, InvalidFileException, KeyError, ValueError, OSError, EOFError) as exc:
        raise WorkbookError(f"Not a readable xlsx workbook: {exc}") from exc

    logger.debug("Read workbook with sheets %s", list(frames))
    return Workbook(sheet_names=tuple(frames), frames=frames)
