from __future__ import annotations
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union
import math

from .types import (
    BreakdownEntry,
    CodingAnswer,
    Exam,
    PenaltyRules,
    Question,
    ScoreResult,
    ScoringRules,
    Status,
    TestCaseResult,
)

Timestamp = Union[datetime, str, None]


def _is_unanswered(answer: Any) -> bool:
    if answer is None:
        return True
    if isinstance(answer, str):
        return not answer.strip()
    if isinstance(answer, (list, tuple, dict, set)):
        return len(answer) == 0
    return False


def _choice(answer: Any) -> Optional[int]:
    if isinstance(answer, bool):
        return None
    if isinstance(answer, int):
        return answer
    if isinstance(answer, float) and answer.is_integer():
        return int(answer)
    if isinstance(answer, str) and answer.strip().lstrip("-").isdigit():
        return int(answer.strip())
    if isinstance(answer, Mapping):
        for k in ("selectedOptionIndex", "selected_option_index", "answer"):
            if k in answer:
                return _choice(answer[k])
    return None


def _test_results(answer: Any) -> Optional[List[bool]]:
    raw: Any = None
    if isinstance(answer, CodingAnswer):
        raw = answer.test_case_results
    elif isinstance(answer, Mapping):
        raw = answer.get("testCaseResults", answer.get("test_case_results"))
    if raw is None:
        return None
    out: List[bool] = []
    for r in raw:
        if isinstance(r, TestCaseResult):
            out.append(bool(r.passed))
        elif isinstance(r, Mapping):
            out.append(bool(r.get("passed")))
        else:
            out.append(bool(getattr(r, "passed", False)))
    return out


def _penalty(q: Question, rules: ScoringRules) -> float:
    neg = q.negative_marks if q.negative_marks is not None else rules.incorrect_marks
    return -abs(neg) if neg else 0.0


def _question_marks(q: Question, rules: ScoringRules) -> float:
    return q.marks or rules.correct_marks


def _score_mcq(q: Question, answer: Any, rules: ScoringRules) -> Tuple[float, Status]:
    chosen = _choice(answer)
    if chosen is not None and (chosen == q.correct_answer or chosen == q.original_correct_answer):
        return _question_marks(q, rules), "correct"
    return _penalty(q, rules), "incorrect"


def _score_coding(q: Question, answer: Any, rules: ScoringRules) -> Tuple[float, Status]:
    results = _test_results(answer)
    marks = _question_marks(q, rules)
    if rules.partial_credit and results:
        passed = sum(1 for r in results if r)
        score = (passed / len(results)) * marks
        if passed == len(results):
            return score, "correct"
        if passed > 0:
            return score, "partial"
        return score, "incorrect"
    # all-or-nothing; no results at all is never "all passed"
    if results and all(results):
        return marks, "correct"
    return _penalty(q, rules), "incorrect"


def score_question(q: Question, answer: Any, rules: ScoringRules) -> Tuple[float, Status]:
    """Returns (scored marks, status) for one question."""
    if _is_unanswered(answer):
        return rules.unanswered_marks, "unanswered"
    if q.type == "mcq":
        return _score_mcq(q, answer, rules)
    if q.type == "coding":
        return _score_coding(q, answer, rules)
    # theory is graded by hand
    return 0.0, "pending"


def score_submission(
    answers: Sequence[Any],
    questions: Sequence[Question],
    rules: ScoringRules | None = None,
) -> ScoreResult:
    """Score positional ``answers`` against ``questions``.

    Questions are assumed to have passed the validator; malformed ones
    (e.g. an MCQ without a correct index) simply never score as correct.
    """
    rules = rules or ScoringRules()
    counts: Dict[str, int] = {"correct": 0, "incorrect": 0, "unanswered": 0, "partial": 0}
    breakdown: List[BreakdownEntry] = []
    raw_total = 0.0

    for idx, q in enumerate(questions):
        answer = answers[idx] if idx < len(answers) else None
        scored, status = score_question(q, answer, rules)
        if status in counts:
            counts[status] += 1
        raw_total += scored
        breakdown.append(BreakdownEntry(
            question_number=idx + 1,
            marks=_question_marks(q, rules),
            scored=scored,
            status=status,
            question_id=q.id,
        ))

    total = max(0.0, raw_total)
    max_score = sum(_question_marks(q, rules) for q in questions)
    pct = (total / max_score * 100) if max_score else 0.0
    return ScoreResult(
        total_score=total,
        max_score=max_score,
        correct_count=counts["correct"],
        incorrect_count=counts["incorrect"],
        unanswered_count=counts["unanswered"],
        partial_count=counts["partial"],
        score_breakdown=breakdown,
        percentage=pct,
    )


def _as_datetime(value: Timestamp) -> Optional[datetime]:
    if value is None or value == "":
        return None
    dt = value if isinstance(value, datetime) else datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def apply_time_penalty(
    score: ScoreResult,
    submitted_at: Timestamp,
    deadline: Timestamp,
    rules: PenaltyRules | None = None,
) -> ScoreResult:
    """Deduct ``penalty_per_minute`` for every whole minute past the grace period.

    ``score`` is returned unchanged unless penalties are enabled, both
    timestamps are present and the delay exceeds the grace period.
    """
    rules = rules or PenaltyRules()
    sub = _as_datetime(submitted_at)
    due = _as_datetime(deadline)
    if not rules.enable_late_penalty or sub is None or due is None:
        return score

    delay = max(0, math.floor((sub - due).total_seconds() / 60))
    if delay <= rules.grace_period_minutes:
        return score

    penalty = (delay - rules.grace_period_minutes) * rules.penalty_per_minute
    return replace(
        score,
        total_score=max(0.0, score.total_score - penalty),
        penalty=penalty,
        delay_minutes=delay,
        original_score=score.total_score,
    )


def answers_from_mcq_payload(mcq_answers: Sequence[Mapping[str, Any]], count: int) -> List[Any]:
    """Convert ``[{questionIndex, selectedOptionIndex}]`` into positional answers."""
    out: List[Any] = [None] * count
    for ans in mcq_answers or []:
        idx = ans.get("questionIndex", ans.get("question_index"))
        if isinstance(idx, int) and 0 <= idx < count:
            out[idx] = ans.get("selectedOptionIndex", ans.get("selected_option_index"))
    return out


def grade_submission(
    exam: Exam,
    questions: Sequence[Question],
    answers: Sequence[Any],
    submitted_at: Timestamp = None,
) -> ScoreResult:
    """Authoritative grading at submission time.

    ``questions`` is the student's variant (same order the answers refer to).
    The exam's scoring rules apply first, then its late penalty.
    """
    result = score_submission(answers, questions, exam.scoring)
    return apply_time_penalty(result, submitted_at, exam.deadline, exam.penalty)
