"""Helpers to export per-question score breakdowns in JSON/CSV formats."""
from __future__ import annotations

from typing import Iterable, List, Dict, Any, Union
import csv
import io

from .types import BreakdownEntry

_FIELDS: tuple[str, ...] = (
    "questionNumber",
    "questionId",
    "marks",
    "scored",
    "status",
)

Row = Union[BreakdownEntry, Dict[str, Any]]


def _normalize_entry(entry: Row) -> Dict[str, Any]:
    src = entry.to_dict() if isinstance(entry, BreakdownEntry) else dict(entry or {})
    out: Dict[str, Any] = {}
    for key in _FIELDS:
        val = src.get(key)
        if key == "questionNumber":
            try:
                out[key] = int(val)
            except (TypeError, ValueError):
                out[key] = 0
        elif key in {"marks", "scored"}:
            try:
                out[key] = float(val)
            except (TypeError, ValueError):
                out[key] = 0.0
        else:
            out[key] = "" if val is None else str(val)
    return out


def to_json(entries: Iterable[Row]) -> Dict[str, Any]:
    """Return a JSON-safe payload for breakdown export."""

    normalized: List[Dict[str, Any]] = [_normalize_entry(e) for e in entries]
    return {"breakdown": normalized}


def to_csv(entries: Iterable[Row]) -> str:
    """Render breakdown rows as CSV with a fixed header."""

    normalized = [_normalize_entry(e) for e in entries]
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=_FIELDS)
    writer.writeheader()
    for row in normalized:
        writer.writerow(row)
    return buf.getvalue()


__all__ = ["to_json", "to_csv"]
