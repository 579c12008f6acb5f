"""Utility helpers for persisting exams and submissions.

The scoring and randomization core never touches storage; this module is the
caller-side persistence for the HTTP service. Records are plain JSON files on
disk so the service stays stateless across restarts.
"""

from __future__ import annotations

import json
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import quote


DATA_ROOT = Path(os.getenv("DATA_DIR", "data")).resolve()
EXAMS_DIR = DATA_ROOT / "exams"
SUBMISSIONS_DIR = DATA_ROOT / "submissions"
SUBMISSION_INDEX_PATH = DATA_ROOT / "submissions_index.json"

_LOCK = threading.Lock()


def _ensure_dirs() -> None:
    EXAMS_DIR.mkdir(parents=True, exist_ok=True)
    SUBMISSIONS_DIR.mkdir(parents=True, exist_ok=True)


def _safe(name: str) -> str:
    # percent-encoding keeps distinct ids on distinct paths; "=" never comes out of quote()
    encoded = quote(name, safe="")
    if not encoded:
        return "="
    if encoded.startswith("."):
        encoded = "%2E" + encoded[1:]
    return encoded


def _read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return default


def _write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    tmp.replace(path)


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def save_exam(exam_id: str, record: Dict[str, Any]) -> None:
    _ensure_dirs()
    with _LOCK:
        _write_json(EXAMS_DIR / f"{_safe(exam_id)}.json", record)


def load_exam(exam_id: str) -> Optional[Dict[str, Any]]:
    return _read_json(EXAMS_DIR / f"{_safe(exam_id)}.json", None)


def _submission_key(exam_id: str, student_id: str) -> str:
    return f"{_safe(exam_id)}/{_safe(student_id)}"


def _submission_path(exam_id: str, student_id: str) -> Path:
    return SUBMISSIONS_DIR / f"{_submission_key(exam_id, student_id)}.json"


def _write_submission(exam_id: str, student_id: str, record: Dict[str, Any]) -> None:
    index: Dict[str, Dict[str, Any]] = _read_json(SUBMISSION_INDEX_PATH, {})
    index[_submission_key(exam_id, student_id)] = {
        "examId": exam_id,
        "studentId": student_id,
        "submittedAt": record.get("submittedAt"),
        "totalScore": (record.get("score") or {}).get("totalScore"),
    }
    _write_json(SUBMISSION_INDEX_PATH, index)
    _write_json(_submission_path(exam_id, student_id), record)


def save_submission_if_absent(exam_id: str, student_id: str, record: Dict[str, Any]) -> bool:
    """Persist ``record`` unless this student already submitted; False if they did."""

    _ensure_dirs()
    with _LOCK:
        if _submission_path(exam_id, student_id).exists():
            return False
        _write_submission(exam_id, student_id, record)
    return True


def load_submission(exam_id: str, student_id: str) -> Optional[Dict[str, Any]]:
    return _read_json(_submission_path(exam_id, student_id), None)


def list_submissions_for_exam(exam_id: str) -> List[Dict[str, Any]]:
    index: Dict[str, Dict[str, Any]] = _read_json(SUBMISSION_INDEX_PATH, {})
    out = [dict(meta) for meta in index.values() if meta.get("examId") == exam_id]
    out.sort(key=lambda r: r.get("submittedAt") or "", reverse=True)
    return out
