from __future__ import annotations

import pytest

from exam_core.types import Question, TestCase


def build_sample_bank(
    *,
    mcq: int = 4,
    coding: int = 1,
    theory: int = 1,
    with_ids: bool = True,
) -> list[Question]:
    """Create a deterministic mixed bank for tests."""

    items: list[Question] = []
    for idx in range(mcq):
        items.append(
            Question(
                id=f"mcq_{idx}" if with_ids else None,
                type="mcq",
                question=f"Sample multiple choice #{idx}",
                options=[f"opt{idx}_{k}" for k in range(4)],
                correct_answer=idx % 4,
                marks=2,
            )
        )
    for idx in range(coding):
        items.append(
            Question(
                id=f"coding_{idx}" if with_ids else None,
                type="coding",
                question=f"Write a function for task #{idx}",
                language="python",
                starter_code="def solve():\n    pass",
                test_cases=[
                    TestCase(input="1", expected_output="1"),
                    TestCase(input="2", expected_output="4", is_hidden=True),
                ],
                marks=10,
            )
        )
    for idx in range(theory):
        items.append(
            Question(
                id=f"theory_{idx}" if with_ids else None,
                type="theory",
                question=f"Explain concept #{idx} in detail",
                marks=5,
            )
        )
    return items


@pytest.fixture
def sample_bank() -> list[Question]:
    return build_sample_bank()


@pytest.fixture(autouse=True)
def _no_llm_env(monkeypatch):
    for name in ("OPENAI_API_KEY", "USE_LLM_GENERATE", "LLM_BACKEND"):
        monkeypatch.delenv(name, raising=False)
