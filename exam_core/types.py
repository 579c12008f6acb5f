from __future__ import annotations
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Dict, List, Literal, Mapping, Optional
import math

from . import config

QuestionType = Literal["mcq", "coding", "theory"]
QUESTION_TYPES: tuple[str, ...] = ("mcq", "coding", "theory")
Status = Literal["correct", "incorrect", "partial", "unanswered", "pending"]


def coerce_type(raw: Any) -> QuestionType:
    """Map any type label (``MCQ``, ``Multiple choice``, ``Programming``...) onto the closed set."""
    lower = str(raw or "").strip().lower()
    if lower in QUESTION_TYPES:
        return lower  # type: ignore[return-value]
    if "mcq" in lower or "multiple" in lower or "choice" in lower:
        return "mcq"
    if "cod" in lower or "prog" in lower:
        return "coding"
    return "theory"


def _pick(raw: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for k in keys:
        if k in raw and raw[k] is not None:
            return raw[k]
    return default


def _coerce_index(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    s = str(value).strip().lower()
    if len(s) == 1 and "a" <= s <= "z":
        return ord(s) - ord("a")
    try:
        return int(s)
    except ValueError:
        return None


def _coerce_marks(value: Any, default: Optional[float]) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return default
    try:
        num = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(num):
        return default
    return int(num) if num.is_integer() else num


@dataclass
class TestCase:
    __test__ = False  # not a pytest class

    input: str = ""
    expected_output: str = ""
    is_hidden: bool = False

    @staticmethod
    def from_dict(raw: Mapping[str, Any]) -> "TestCase":
        if not isinstance(raw, Mapping):
            raise TypeError("test case must be an object")
        return TestCase(
            input=str(_pick(raw, "input", default="")),
            expected_output=str(_pick(raw, "expectedOutput", "expected_output", "output", default="")),
            is_hidden=bool(_pick(raw, "isHidden", "is_hidden", default=False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"input": self.input, "expectedOutput": self.expected_output, "isHidden": self.is_hidden}


# wire name -> attribute, in output order
_WIRE_FIELDS: tuple[tuple[str, str], ...] = (
    ("id", "id"),
    ("type", "type"),
    ("question", "question"),
    ("marks", "marks"),
    ("options", "options"),
    ("correctAnswer", "correct_answer"),
    ("originalCorrectAnswer", "original_correct_answer"),
    ("language", "language"),
    ("starterCode", "starter_code"),
    ("testCases", "test_cases"),
    ("negativeMarks", "negative_marks"),
    ("difficulty", "difficulty"),
    ("explanation", "explanation"),
    ("note", "note"),
    ("randomizedOrder", "randomized_order"),
    ("originalIndex", "original_index"),
)
_KNOWN_KEYS = (
    {w for w, _ in _WIRE_FIELDS}
    | {a for _, a in _WIRE_FIELDS}
    | {"prompt", "correctOptionIndex", "correct_option_index"}
)


@dataclass
class Question:
    type: QuestionType
    question: str
    marks: Optional[float] = None
    options: Optional[List[str]] = None
    correct_answer: Optional[int] = None
    original_correct_answer: Optional[int] = None
    language: Optional[str] = None
    starter_code: Optional[str] = None
    test_cases: Optional[List[TestCase]] = None
    negative_marks: Optional[float] = None
    id: Optional[str] = None
    note: Optional[str] = None
    explanation: Optional[str] = None
    difficulty: Optional[str] = None
    randomized_order: Optional[int] = None
    original_index: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.type = coerce_type(self.type)

    @staticmethod
    def from_dict(raw: Mapping[str, Any]) -> "Question":
        """Build a question from a wire record (camelCase or snake_case).

        A missing ``type`` is inferred from the fields present. ``language`` is
        left unset when absent so the validator can report it for coding questions,
        and so is ``marks`` so the exam's ``correct_marks`` can apply.
        """
        options = _pick(raw, "options")
        if options is not None and not isinstance(options, (list, tuple)):
            raise TypeError("options must be a list")
        if options is not None:
            options = [str(o) for o in options]
        language = _pick(raw, "language")
        starter = _pick(raw, "starterCode", "starter_code")
        raw_type = _pick(raw, "type")
        if raw_type is None:
            if options:
                raw_type = "mcq"
            elif language or starter:
                raw_type = "coding"
            else:
                raw_type = "theory"
        cases = _pick(raw, "testCases", "test_cases")
        if cases is not None and not isinstance(cases, (list, tuple)):
            raise TypeError("testCases must be a list")
        neg = _pick(raw, "negativeMarks", "negative_marks")
        qid = _pick(raw, "id", "_id")
        return Question(
            type=coerce_type(raw_type),
            question=str(_pick(raw, "question", "prompt", default="")),
            marks=_coerce_marks(_pick(raw, "marks"), None),
            options=options,
            correct_answer=_coerce_index(_pick(raw, "correctAnswer", "correct_answer", "correctOptionIndex", "correct_option_index")),
            original_correct_answer=_coerce_index(_pick(raw, "originalCorrectAnswer", "original_correct_answer")),
            language=str(language).lower() if language else None,
            starter_code=str(starter) if starter is not None else None,
            test_cases=[TestCase.from_dict(c) for c in cases] if cases is not None else None,
            negative_marks=_coerce_marks(neg, 0) if neg is not None else None,
            id=str(qid) if qid is not None else None,
            note=_pick(raw, "note"),
            explanation=_pick(raw, "explanation"),
            difficulty=_pick(raw, "difficulty"),
            randomized_order=_pick(raw, "randomizedOrder", "randomized_order"),
            original_index=_pick(raw, "originalIndex", "original_index"),
            extra={k: v for k, v in raw.items() if k not in _KNOWN_KEYS and k != "_id"},
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for wire, attr in _WIRE_FIELDS:
            val = getattr(self, attr)
            if val is None:
                continue
            if attr == "test_cases":
                val = [tc.to_dict() for tc in val]
            elif attr == "options":
                val = list(val)
            out[wire] = val
        for k, v in self.extra.items():
            out.setdefault(k, v)
        return out


@dataclass
class TestCaseResult:
    __test__ = False

    passed: bool
    input: Optional[str] = None
    actual_output: Optional[str] = None


@dataclass
class CodingAnswer:
    test_case_results: Optional[List[TestCaseResult]] = None
    code: Optional[str] = None


def _from_mapping(cls, raw: Mapping[str, Any] | None, aliases: Dict[str, str]):
    if raw is None:
        return cls()
    names = {f.name for f in fields(cls)}
    kwargs: Dict[str, Any] = {}
    for key, val in raw.items():
        name = aliases.get(key, key)
        if name in names and val is not None:
            kwargs[name] = val
    return cls(**kwargs)


@dataclass(frozen=True)
class ScoringRules:
    correct_marks: float = config.CORRECT_MARKS
    incorrect_marks: float = config.INCORRECT_MARKS
    unanswered_marks: float = config.UNANSWERED_MARKS
    partial_credit: bool = False

    @staticmethod
    def from_dict(raw: Mapping[str, Any] | None) -> "ScoringRules":
        return _from_mapping(ScoringRules, raw, {
            "correctMarks": "correct_marks",
            "incorrectMarks": "incorrect_marks",
            "unansweredMarks": "unanswered_marks",
            "partialCredit": "partial_credit",
        })


@dataclass(frozen=True)
class PenaltyRules:
    enable_late_penalty: bool = False
    penalty_per_minute: float = 0.0
    grace_period_minutes: float = 0.0

    @staticmethod
    def from_dict(raw: Mapping[str, Any] | None) -> "PenaltyRules":
        return _from_mapping(PenaltyRules, raw, {
            "enableLatePenalty": "enable_late_penalty",
            "penaltyPerMinute": "penalty_per_minute",
            "gracePeriodMinutes": "grace_period_minutes",
        })


@dataclass(frozen=True)
class RandomizationSettings:
    randomize_order: bool = False
    randomize_options: bool = False
    question_pool_size: Optional[int] = None

    @staticmethod
    def from_dict(raw: Mapping[str, Any] | None) -> "RandomizationSettings":
        return _from_mapping(RandomizationSettings, raw, {
            "randomizeOrder": "randomize_order",
            "randomizeOptions": "randomize_options",
            "questionPoolSize": "question_pool_size",
        })


@dataclass
class BreakdownEntry:
    question_number: int
    marks: float
    scored: float
    status: Status
    question_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "questionId": self.question_id,
            "questionNumber": self.question_number,
            "marks": self.marks,
            "scored": self.scored,
            "status": self.status,
        }


@dataclass(frozen=True)
class ScoreResult:
    total_score: float
    max_score: float
    correct_count: int
    incorrect_count: int
    unanswered_count: int
    partial_count: int
    score_breakdown: List[BreakdownEntry]
    percentage: float
    penalty: Optional[float] = None
    delay_minutes: Optional[int] = None
    original_score: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "totalScore": self.total_score,
            "maxScore": self.max_score,
            "correctCount": self.correct_count,
            "incorrectCount": self.incorrect_count,
            "unansweredCount": self.unanswered_count,
            "partialCount": self.partial_count,
            "scoreBreakdown": [e.to_dict() for e in self.score_breakdown],
            "percentage": self.percentage,
        }
        if self.penalty is not None:
            out.update(penalty=self.penalty, delayMinutes=self.delay_minutes, originalScore=self.original_score)
        return out


@dataclass
class ValidationResult:
    is_valid: bool
    errors: List[str]
    invalid_questions: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"isValid": self.is_valid, "errors": list(self.errors)}


@dataclass
class Exam:
    id: str
    questions: List[Question]
    title: str = ""
    randomization: RandomizationSettings = field(default_factory=RandomizationSettings)
    scoring: ScoringRules = field(default_factory=ScoringRules)
    penalty: PenaltyRules = field(default_factory=PenaltyRules)
    deadline: Optional[datetime] = None


@dataclass
class ExamVariant:
    exam_id: str
    questions: List[Question]
    is_randomized: bool
    randomization_seed: int
    generated_for: str
    generated_at: datetime
