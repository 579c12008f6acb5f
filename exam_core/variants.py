"""Per-student exam variants.

A variant is never stored as the source of truth: it is rebuilt from the exam
bank and a seed derived from ``(exam_id, student_id)``, so a student who
reloads gets the identical order and option layout.
"""
from __future__ import annotations

import hashlib
import random
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from .randomization import randomize_questions
from .types import Exam, ExamVariant, Question

_STUDENT_HIDDEN_KEYS = ("correctAnswer", "originalCorrectAnswer", "note", "explanation")


def derive_seed(exam_id: str, student_id: str) -> int:
    digest = hashlib.sha256(f"{exam_id}:{student_id}".encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big")


def make_rng(seed: int) -> random.Random:
    return random.Random(seed)


def generate_exam_variant(exam: Exam, student_id: str, now: Optional[datetime] = None) -> ExamVariant:
    seed = derive_seed(exam.id, student_id)
    questions = randomize_questions(exam.questions, exam.randomization, make_rng(seed))
    return ExamVariant(
        exam_id=exam.id,
        questions=questions,
        is_randomized=True,
        randomization_seed=seed,
        generated_for=student_id,
        generated_at=now or datetime.now(timezone.utc),
    )


def student_view(questions: Iterable[Question]) -> List[Dict[str, Any]]:
    """Strip answer keys and hidden test cases before a variant reaches a student."""
    out: List[Dict[str, Any]] = []
    for q in questions:
        d = q.to_dict()
        for k in _STUDENT_HIDDEN_KEYS:
            d.pop(k, None)
        if q.test_cases is not None:
            d["testCases"] = [{"input": tc.input} for tc in q.test_cases if not tc.is_hidden]
        out.append(d)
    return out
