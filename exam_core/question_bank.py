from __future__ import annotations
import json, os, pathlib
from typing import Any, Dict, List
from .types import Question
DEFAULT_BANK_PATH = os.getenv("QUESTION_BANK_PATH", "data/question_bank.json")
def load_bank(path: str | os.PathLike[str] | None = None) -> List[Question]:
    p = pathlib.Path(path or DEFAULT_BANK_PATH)
    raw = json.loads(p.read_text(encoding="utf-8"))
    if isinstance(raw, dict):
        raw = raw.get("questions", [raw])
    return [Question.from_dict(r) for r in raw]
def dump_bank(questions: List[Question]) -> List[Dict[str, Any]]:
    return [q.to_dict() for q in questions]
