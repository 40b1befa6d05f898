# tradeledger/columns.py

from __future__ import annotations
from typing import Any, Mapping, Sequence

from .helpers import cell_text, cell_at


def resolve_columns(
    header: Sequence[Any],
    fields: Mapping[str, str],
    *,
    substring: bool = True,
) -> dict[str, int]:
    """Map logical field names to column indexes of a header row.

    ``fields`` maps the key the parser uses to the header label it expects.
    Exact (case-insensitive) matches win; with ``substring`` enabled a label
    contained in a header cell is accepted next. Unmatched fields map to -1.
    """

    labels = [cell_text(c).lower() for c in header]
    taken: set[int] = set()
    out: dict[str, int] = {}

    for key, label in fields.items():
        target = label.lower()
        idx = next((i for i, s in enumerate(labels) if s == target and i not in taken), -1)
        out[key] = idx
        if idx >= 0:
            taken.add(idx)

    if substring:
        for key, label in fields.items():
            if out[key] >= 0:
                continue
            target = label.lower()
            idx = next((i for i, s in enumerate(labels) if s and target in s and i not in taken), -1)
            out[key] = idx
            if idx >= 0:
                taken.add(idx)
    return out


def pick(row: Sequence[Any], columns: Mapping[str, int], key: str) -> Any:
    """Cell for ``key`` in ``row`` (None when the column is absent)."""
    return cell_at(row, columns.get(key, -1))
