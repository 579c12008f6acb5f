from __future__ import annotations

from exam_core import config
from exam_core.types import Question
from exam_core.validators import validate_questions

from tests.conftest import build_sample_bank


def test_single_option_mcq_reports_only_option_count():
    result = validate_questions([{"type": "mcq", "question": "What is X?", "options": ["a"], "correctAnswer": 0}])
    assert result.is_valid is False
    assert result.errors == ["Question 1: MCQ needs at least 2 options"]
    assert result.to_dict() == {"isValid": False, "errors": ["Question 1: MCQ needs at least 2 options"]}


def test_all_violations_are_collected_with_positions():
    questions = [
        Question(type="theory", question="Explain caching strategies"),
        Question(type="mcq", question="Hi", options=["a"], correct_answer=None),
        Question(type="coding", question="Write a parser"),
    ]
    result = validate_questions(questions)
    assert result.errors == [
        "Question 2: Question text is too short",
        "Question 2: MCQ needs at least 2 options",
        "Question 2: Invalid correct answer index",
        "Question 3: Programming language not specified",
    ]
    assert result.invalid_questions == [2, 3]


def test_correct_answer_out_of_range():
    q = Question(type="mcq", question="Which is prime?", options=["4", "6"], correct_answer=2)
    assert validate_questions([q]).errors == ["Question 1: Invalid correct answer index"]
    q.correct_answer = -1
    assert validate_questions([q]).errors == ["Question 1: Invalid correct answer index"]


def test_theory_with_stray_options_is_fine():
    q = Question(type="theory", question="Discuss the CAP theorem", options=["x"])
    assert validate_questions([q]).is_valid


def test_whitespace_padded_text_is_trimmed():
    q = Question(type="theory", question="   abc   ")
    assert validate_questions([q]).errors == ["Question 1: Question text is too short"]


def test_sample_bank_is_valid():
    assert validate_questions(build_sample_bank()).is_valid


def test_malformed_record_never_raises():
    result = validate_questions([{"type": "mcq", "question": "What now?", "options": 5}])
    assert result.is_valid is False
    assert result.errors == ["Question 1: Malformed question record"]


def test_option_minimum_follows_config(monkeypatch):
    monkeypatch.setattr(config, "MIN_MCQ_OPTIONS", 3)
    q = Question(type="mcq", question="Which is prime?", options=["4", "5"], correct_answer=1)
    assert validate_questions([q]).errors == ["Question 1: MCQ needs at least 3 options"]
