from __future__ import annotations
from typing import Any, Iterable, List, Mapping, Union
from . import config
from .types import Question, ValidationResult

QuestionLike = Union[Question, Mapping[str, Any]]


def _as_question(q: QuestionLike) -> Question:
    return q if isinstance(q, Question) else Question.from_dict(q)


def question_errors(q: Question, number: int) -> List[str]:
    errs: List[str] = []
    text = q.question if isinstance(q.question, str) else ""
    if len(text.strip()) < config.MIN_QUESTION_LENGTH:
        errs.append(f"Question {number}: Question text is too short")
    if q.type == "mcq":
        n_opts = len(q.options or [])
        if n_opts < config.MIN_MCQ_OPTIONS:
            errs.append(f"Question {number}: MCQ needs at least {config.MIN_MCQ_OPTIONS} options")
        ca = q.correct_answer
        if ca is None or ca < 0 or ca >= n_opts:
            errs.append(f"Question {number}: Invalid correct answer index")
    if q.type == "coding" and not q.language:
        errs.append(f"Question {number}: Programming language not specified")
    return errs


def validate_questions(questions: Iterable[QuestionLike]) -> ValidationResult:
    """Collect every structural problem at once; numbering is 1-based."""
    errors: List[str] = []
    invalid: List[int] = []
    for idx, raw in enumerate(questions, start=1):
        try:
            q = _as_question(raw)
        except (TypeError, ValueError, AttributeError):
            q = None
        errs = question_errors(q, idx) if q is not None else [f"Question {idx}: Malformed question record"]
        if errs:
            invalid.append(idx)
            errors.extend(errs)
    return ValidationResult(is_valid=not errors, errors=errors, invalid_questions=invalid)
