from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from exam_core.scoring import (
    answers_from_mcq_payload,
    apply_time_penalty,
    grade_submission,
    score_submission,
)
from exam_core.types import (
    CodingAnswer,
    Exam,
    PenaltyRules,
    Question,
    ScoreResult,
    ScoringRules,
    TestCaseResult,
)
from tests.conftest import build_sample_bank


def _mcq(correct: int = 1, marks: float = 1, **kw) -> Question:
    return Question(type="mcq", question="Pick the right one", options=["a", "b", "c", "d"], correct_answer=correct, marks=marks, **kw)


def _coding(marks: float = 10) -> Question:
    return Question(type="coding", question="Write a sorter", language="python", test_cases=[], marks=marks)


def test_negative_total_is_clamped_at_zero():
    rules = ScoringRules(incorrect_marks=10)
    result = score_submission([0], [_mcq(correct=1, marks=5)], rules)
    assert result.total_score == 0
    assert result.score_breakdown[0].scored == -10
    assert result.score_breakdown[0].status == "incorrect"
    assert result.incorrect_count == 1
    assert result.max_score == 5
    assert result.percentage == 0


def test_correct_and_unanswered_mix():
    questions = [_mcq(correct=1, marks=2), _mcq(correct=2, marks=3), _mcq(correct=0, marks=5)]
    result = score_submission([1, None, "   "], questions)
    assert result.total_score == 2
    assert result.max_score == 10
    assert result.correct_count == 1
    assert result.unanswered_count == 2
    assert result.percentage == pytest.approx(20.0)
    assert [e.question_number for e in result.score_breakdown] == [1, 2, 3]


def test_zero_is_a_real_answer():
    result = score_submission([0], [_mcq(correct=0)])
    assert result.correct_count == 1
    assert result.unanswered_count == 0


def test_short_answer_list_counts_as_unanswered():
    result = score_submission([1], [_mcq(correct=1), _mcq(correct=1)])
    assert result.correct_count == 1
    assert result.unanswered_count == 1


def test_original_correct_answer_is_accepted():
    q = _mcq(correct=3, original_correct_answer=0)
    result = score_submission([0], [q])
    assert result.correct_count == 1


def test_per_question_negative_marks_override_rules():
    q = _mcq(correct=1, marks=4, negative_marks=1)
    result = score_submission([2], [q], ScoringRules(incorrect_marks=3))
    assert result.score_breakdown[0].scored == -1
    assert result.total_score == 0


def test_partial_credit_on_coding():
    answer = CodingAnswer(test_case_results=[TestCaseResult(passed=p) for p in (True, True, True, False)])
    result = score_submission([answer], [_coding(10)], ScoringRules(partial_credit=True))
    entry = result.score_breakdown[0]
    assert entry.scored == pytest.approx(7.5)
    assert entry.status == "partial"
    assert result.partial_count == 1


def test_coding_all_or_nothing_without_partial_credit():
    passed_all = {"testCaseResults": [{"passed": True}, {"passed": True}]}
    one_fail = {"testCaseResults": [{"passed": True}, {"passed": False}]}
    result = score_submission([passed_all, one_fail], [_coding(10), _coding(10)])
    assert [e.status for e in result.score_breakdown] == ["correct", "incorrect"]
    assert result.total_score == 10


def test_coding_without_results_is_not_a_pass():
    result = score_submission([{"testCaseResults": [], "code": "print(1)"}], [_coding(10)])
    assert result.score_breakdown[0].status == "incorrect"
    assert result.total_score == 0


def test_theory_answers_are_pending():
    q = Question(type="theory", question="Explain the CAP theorem", marks=5)
    result = score_submission(["It is about tradeoffs"], [q])
    entry = result.score_breakdown[0]
    assert entry.status == "pending"
    assert entry.scored == 0
    assert result.correct_count == result.incorrect_count == result.unanswered_count == 0
    assert result.max_score == 5


def test_empty_exam_has_zero_percentage():
    result = score_submission([], [])
    assert result.max_score == 0
    assert result.percentage == 0


def _scored(total: float) -> ScoreResult:
    return score_submission([1], [_mcq(correct=1, marks=total)])


def test_late_penalty_after_grace():
    deadline = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    rules = PenaltyRules(enable_late_penalty=True, penalty_per_minute=1, grace_period_minutes=3)
    late = apply_time_penalty(_scored(10), deadline + timedelta(minutes=7), deadline, rules)
    assert late.total_score == 6
    assert late.penalty == 4
    assert late.delay_minutes == 7
    assert late.original_score == 10
    assert late.to_dict()["penalty"] == 4


def test_late_penalty_within_grace_is_unchanged():
    deadline = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    rules = PenaltyRules(enable_late_penalty=True, penalty_per_minute=1, grace_period_minutes=3)
    score = _scored(10)
    assert apply_time_penalty(score, deadline + timedelta(minutes=3), deadline, rules) is score
    assert "penalty" not in score.to_dict()


def test_late_penalty_never_goes_negative_and_accepts_strings():
    rules = PenaltyRules(enable_late_penalty=True, penalty_per_minute=5)
    late = apply_time_penalty(_scored(10), "2024-05-01T13:00:00Z", "2024-05-01T12:00:00Z", rules)
    assert late.total_score == 0
    assert late.delay_minutes == 60


def test_late_penalty_disabled():
    score = _scored(10)
    out = apply_time_penalty(score, "2024-05-01T13:00:00Z", "2024-05-01T12:00:00Z", PenaltyRules())
    assert out is score


def test_mcq_payload_conversion():
    answers = answers_from_mcq_payload(
        [{"questionIndex": 2, "selectedOptionIndex": 1}, {"questionIndex": 9, "selectedOptionIndex": 0}],
        3,
    )
    assert answers == [None, None, 1]


def test_grade_submission_applies_exam_rules_and_penalty(sample_bank):
    deadline = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    exam = Exam(
        id="ex1",
        questions=sample_bank,
        scoring=ScoringRules(incorrect_marks=1, partial_credit=True),
        penalty=PenaltyRules(enable_late_penalty=True, penalty_per_minute=0.5),
        deadline=deadline,
    )
    answers = [
        0,  # mcq_0 correct (idx 0)
        0,  # mcq_1 wrong
        2,  # mcq_2 correct
        None,  # mcq_3 unanswered
        {"testCaseResults": [{"passed": True}, {"passed": False}]},
        "An essay",
    ]
    result = grade_submission(exam, sample_bank, answers, deadline + timedelta(minutes=4))
    # 2 + (-1) + 2 + 0 + 5 + 0
    assert result.original_score == 8
    assert result.penalty == 2
    assert result.total_score == 6
    assert result.max_score == 2 * 4 + 10 + 5
    assert result.correct_count == 2
    assert result.incorrect_count == 1
    assert result.unanswered_count == 1
    assert result.partial_count == 1
    statuses = [e.status for e in result.score_breakdown]
    assert statuses == ["correct", "incorrect", "correct", "unanswered", "partial", "pending"]
    assert [e.question_id for e in result.score_breakdown][:2] == ["mcq_0", "mcq_1"]


def test_grading_follows_variant_order():
    bank = build_sample_bank(mcq=2, coding=0, theory=0)
    flipped = [bank[1], bank[0]]
    exam = Exam(id="ex2", questions=bank)
    result = grade_submission(exam, flipped, [1, 0])
    assert result.correct_count == 2
    assert result.total_score == 4


def test_unset_marks_fall_back_to_correct_marks():
    q = Question.from_dict({"type": "mcq", "question": "Pick one please", "options": ["a", "b"], "correctAnswer": 0})
    assert q.marks is None
    result = score_submission([0], [q], ScoringRules(correct_marks=4))
    assert result.max_score == 4
    assert result.total_score == 4
    assert result.score_breakdown[0].marks == 4


def test_explicit_marks_beat_correct_marks():
    q = Question.from_dict({"type": "mcq", "question": "Pick one please", "options": ["a", "b"], "correctAnswer": 0, "marks": 3})
    result = score_submission([0], [q], ScoringRules(correct_marks=4))
    assert result.max_score == 3
