from __future__ import annotations

import asyncio
import json

import exam_core.generator as generator
from exam_core import config, llm_bridge
from exam_core.generator import (
    GenerationOptions,
    extract_topics,
    generate_from_example,
    generate_questions,
    template_generate,
)
from exam_core.validators import validate_questions

_REMOTE_CFG = {"USE_LLM_GENERATE": True, "LLM_BACKEND": "openai"}


def test_extract_topics_prefers_bullets():
    text = "Course outline\n1. Sorting algorithms\n2) Graph traversal\n3. Dynamic programming\nok"
    topics = extract_topics(text)
    assert topics == ["Course outline", "Sorting algorithms", "Graph traversal", "Dynamic programming"]


def test_extract_topics_splits_single_line_on_punctuation():
    assert extract_topics("x" * 120 + ";arrays, linked lists: trees") == ["arrays", "linked lists", "trees"]


def test_extract_topics_falls_back_to_defaults():
    assert extract_topics("a, b") == list(config.DEFAULT_TOPICS)


def test_extract_topics_is_capped():
    text = "\n".join(f"- topic number {i}" for i in range(40))
    assert len(extract_topics(text)) == config.MAX_TOPICS


def test_mixed_templates_cycle_types_and_topics():
    syllabus = "1. Recursion basics\n2. Hash tables"
    questions = template_generate(syllabus, GenerationOptions(type="mixed", count=6))
    assert [q.type for q in questions] == ["mcq", "coding", "theory"] * 2
    assert questions[0].question == "What is Recursion basics?"
    assert "Hash tables" in questions[1].question
    assert all(q.note for q in questions)
    assert validate_questions(questions).is_valid


def test_template_coding_uses_requested_language():
    [q] = template_generate("1. Binary search", GenerationOptions(type="coding", count=1, language="python"))
    assert q.language == "python"
    assert q.test_cases == []
    assert q.marks == 5


def test_template_generation_is_deterministic():
    opts = GenerationOptions(type="theory", count=4)
    first = [q.question for q in template_generate("1. Caching\n2. Queues", opts)]
    assert first == [q.question for q in template_generate("1. Caching\n2. Queues", opts)]
    assert first[0].startswith("Explain") and first[1].startswith("Discuss")


def test_no_backend_uses_templates():
    result = asyncio.run(generate_questions("- Networking fundamentals", {"type": "mcq", "count": 3}, cfg={}))
    assert result.generated_by == "Template"
    assert result.error is None
    assert len(result.questions) == 3
    assert all(q.type == "mcq" for q in result.questions)


def test_remote_success(monkeypatch):
    payload = [
        {"type": "mcq", "question": "What is TCP?", "options": ["a", "b"], "correctAnswer": 1, "marks": 1},
        {"type": "coding", "question": "Write a TCP echo server", "marks": 5},
    ]
    seen = {}

    async def fake_complete(system, user, *, backend="openai", **kw):
        seen["backend"] = backend
        seen["prompt"] = user
        return "Here you go:\n" + json.dumps(payload) + "\nThanks"

    monkeypatch.setattr(llm_bridge, "complete", fake_complete)
    result = asyncio.run(generate_questions(
        "Networking: TCP and UDP",
        GenerationOptions(type="mixed", count=2, difficulty="hard"),
        cfg=_REMOTE_CFG,
    ))
    assert result.generated_by == "AI"
    assert [q.type for q in result.questions] == ["mcq", "coding"]
    coding = result.questions[1]
    assert coding.language == config.DEFAULT_LANGUAGE
    assert coding.test_cases == []
    assert seen["backend"] == "openai"
    assert "Generate 2 hard difficulty mixed questions" in seen["prompt"]


def test_remote_failure_falls_back(monkeypatch):
    async def broken(*a, **kw):
        raise RuntimeError("quota exceeded")

    monkeypatch.setattr(llm_bridge, "complete", broken)
    result = asyncio.run(generate_questions("- Operating systems", {"count": 2}, cfg=_REMOTE_CFG))
    assert result.generated_by == "Template"
    assert "quota exceeded" in (result.error or "")
    assert len(result.questions) == 2


def test_remote_response_without_array_falls_back(monkeypatch):
    async def chatty(*a, **kw):
        return "I cannot help with that."

    monkeypatch.setattr(llm_bridge, "complete", chatty)
    outcome = asyncio.run(generator.try_remote_generate("- Compilers", GenerationOptions(count=1), _REMOTE_CFG))
    assert not outcome.ok
    assert "Failed to parse AI response" in outcome.error


def test_remote_timeout(monkeypatch):
    async def slow(*a, **kw):
        await asyncio.sleep(1)
        return "[]"

    monkeypatch.setattr(llm_bridge, "complete", slow)
    monkeypatch.setattr(config, "GENERATION_TIMEOUT_SEC", 0.01)
    outcome = asyncio.run(generator.try_remote_generate("- Compilers", GenerationOptions(count=1), _REMOTE_CFG))
    assert not outcome.ok
    assert "timed out" in outcome.error


def test_prompt_mentions_explanations_only_when_asked():
    plain = generator.build_prompt("Syllabus", GenerationOptions(type="theory"))
    rich = generator.build_prompt("Syllabus", GenerationOptions(type="theory", include_explanations=True))
    assert "explanation" not in plain
    assert '"explanation": "Key points to cover"' in rich
    assert "For MCQ questions" not in plain


def test_generate_from_example_detects_shape():
    mcq = generate_from_example("What is a closure?\na) x\nb) y", count=2)
    assert [q.type for q in mcq] == ["mcq", "mcq"]
    coding = generate_from_example("Write a function that reverses a list", count=1)
    assert coding[0].type == "coding"
    theory = generate_from_example("Describe the water cycle", count=1)
    assert theory[0].type == "theory"


def test_unknown_type_and_difficulty_are_normalised():
    opts = GenerationOptions.from_dict({"type": "essay", "difficulty": "brutal"})
    assert opts.type == "mixed"
    assert opts.difficulty == "medium"


def test_remote_questions_without_marks_get_default(monkeypatch):
    async def fake(*a, **kw):
        return '[{"type": "theory", "question": "Explain TCP slow start"}]'

    monkeypatch.setattr(llm_bridge, "complete", fake)
    result = asyncio.run(generate_questions("- Networking", {"count": 1}, cfg=_REMOTE_CFG))
    assert result.generated_by == "AI"
    assert result.questions[0].marks == config.DEFAULT_MARKS
