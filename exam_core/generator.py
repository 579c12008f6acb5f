"""Question generation from a syllabus.

Generation runs in two stages. :func:`try_remote_generate` asks the configured
language model for a JSON array and reports either questions or an error.
:func:`template_generate` always succeeds: it expands fixed templates over
topics pulled from the syllabus and tags every result with a ``note`` so the
UI can flag it as unfinished.
"""
from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from . import config
from . import llm_bridge
from .types import Question

log = logging.getLogger(__name__)

GENERATION_TYPES: tuple[str, ...] = ("mcq", "coding", "theory", "mixed")
DIFFICULTIES: tuple[str, ...] = ("easy", "medium", "hard")

_SYSTEM_PROMPT = (
    "You are an expert educator creating high-quality exam questions. "
    "Generate questions in valid JSON format only."
)
_BULLET_RX = re.compile(r"^[•\-\*\d]+[.)]\s*(.+)$")
_ARRAY_RX = re.compile(r"\[[\s\S]*\]")
_EXAMPLE_MCQ_RX = re.compile(r"[a-d]\)", re.I)
_EXAMPLE_CODING_RX = re.compile(r"function|code|implement|write", re.I)


@dataclass
class GenerationOptions:
    type: str = "mixed"
    count: int = 10
    difficulty: str = "medium"
    language: str = field(default_factory=lambda: config.DEFAULT_LANGUAGE)
    include_explanations: bool = False

    @staticmethod
    def from_dict(raw: Mapping[str, Any] | None) -> "GenerationOptions":
        raw = raw or {}
        opts = GenerationOptions()
        if raw.get("type"): opts.type = str(raw["type"]).lower()
        if raw.get("count") is not None: opts.count = int(raw["count"])
        if raw.get("difficulty"): opts.difficulty = str(raw["difficulty"]).lower()
        if raw.get("language"): opts.language = str(raw["language"]).lower()
        inc = raw.get("includeExplanations", raw.get("include_explanations"))
        if inc is not None: opts.include_explanations = bool(inc)
        if opts.type not in GENERATION_TYPES: opts.type = "mixed"
        if opts.difficulty not in DIFFICULTIES: opts.difficulty = "medium"
        return opts


@dataclass
class RemoteOutcome:
    questions: Optional[List[Question]] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.questions is not None


@dataclass
class GenerationResult:
    questions: List[Question]
    generated_by: str  # "AI" | "Template"
    error: Optional[str] = None


def build_prompt(syllabus: str, options: GenerationOptions) -> str:
    t = options.type
    explain = options.include_explanations
    prompt = f"Generate {options.count} {options.difficulty} difficulty {t} questions based on this syllabus:\n\n{syllabus}\n\n"
    prompt += "Return ONLY a JSON array with this exact structure:\n\n"

    if t in ("mcq", "mixed"):
        prompt += (
            "For MCQ questions:\n"
            "{\n"
            '  "type": "mcq",\n'
            '  "question": "Question text here",\n'
            '  "options": ["Option A", "Option B", "Option C", "Option D"],\n'
            '  "correctAnswer": 0,\n'
            '  "marks": 1'
            + (',\n  "explanation": "Why this answer is correct"' if explain else "")
            + "\n}\n\n"
        )
    if t in ("coding", "mixed"):
        prompt += (
            "For coding questions:\n"
            "{\n"
            '  "type": "coding",\n'
            '  "question": "Problem description",\n'
            f'  "language": "{options.language}",\n'
            '  "starterCode": "function template() { }",\n'
            '  "testCases": [\n'
            '    {"input": "test input", "expectedOutput": "expected result"}\n'
            "  ],\n"
            '  "marks": 5'
            + (',\n  "explanation": "Solution approach"' if explain else "")
            + "\n}\n\n"
        )
    if t in ("theory", "mixed"):
        prompt += (
            "For theory questions:\n"
            "{\n"
            '  "type": "theory",\n'
            '  "question": "Theoretical question text",\n'
            '  "marks": 3'
            + (',\n  "explanation": "Key points to cover"' if explain else "")
            + "\n}\n\n"
        )

    prompt += "Ensure questions are:\n"
    prompt += "- Clear and unambiguous\n"
    prompt += "- Appropriate for the difficulty level\n"
    prompt += "- Covering different topics from the syllabus\n"
    prompt += "- Properly formatted as valid JSON\n"
    return prompt


def _topic_len_ok(s: str) -> bool:
    return config.TOPIC_MIN_LEN <= len(s) < config.TOPIC_MAX_LEN


def extract_topics(text: str) -> List[str]:
    topics: List[str] = []
    for line in text.split("\n"):
        trimmed = line.strip()
        if not trimmed:
            continue
        bullet = _BULLET_RX.match(trimmed)
        if bullet:
            topics.append(bullet.group(1).strip())
            continue
        if _topic_len_ok(trimmed):
            topics.append(trimmed)

    if not topics:
        topics = [p.strip() for p in re.split(r"[,;:]", text) if _topic_len_ok(p.strip())]
    if not topics:
        topics = list(config.DEFAULT_TOPICS)
    return topics[: config.MAX_TOPICS]


# type -> template variants; variant i is picked by question position
_Template = Callable[[str, GenerationOptions], Question]

_TEMPLATES: Dict[str, List[_Template]] = {
    "mcq": [
        lambda topic, o: Question(
            type="mcq",
            question=f"What is {topic}?",
            options=["Definition A", "Definition B", "Definition C", "Definition D"],
            correct_answer=0,
            marks=1,
            note="Please update options and correct answer",
        ),
        lambda topic, o: Question(
            type="mcq",
            question=f"Which of the following is true about {topic}?",
            options=["Statement 1", "Statement 2", "Statement 3", "Statement 4"],
            correct_answer=0,
            marks=1,
            note="Please update options and correct answer",
        ),
    ],
    "coding": [
        lambda topic, o: Question(
            type="coding",
            question=f"Write a function to implement {topic}",
            language=o.language or config.DEFAULT_LANGUAGE,
            starter_code=f"// Implement {topic}\nfunction solve() {{\n  // Your code here\n}}",
            test_cases=[],
            marks=5,
            note="Please add test cases",
        ),
    ],
    "theory": [
        lambda topic, o: Question(
            type="theory",
            question=f"Explain {topic} in detail.",
            marks=3,
            note="Students will write descriptive answer",
        ),
        lambda topic, o: Question(
            type="theory",
            question=f"Discuss the importance of {topic}.",
            marks=3,
            note="Students will write descriptive answer",
        ),
    ],
}
_MIXED_CYCLE: tuple[str, ...] = ("mcq", "coding", "theory")


def template_generate(syllabus: str, options: GenerationOptions | None = None) -> List[Question]:
    options = options or GenerationOptions()
    topics = extract_topics(syllabus)
    out: List[Question] = []
    for i in range(max(0, options.count)):
        topic = topics[i % len(topics)]
        if options.type == "mixed":
            qtype = _MIXED_CYCLE[i % 3]
        else:
            qtype = options.type if options.type in _TEMPLATES else "theory"
        variants = _TEMPLATES[qtype]
        out.append(variants[i % len(variants)](topic, options))
    return out


def _remote_questions(response_text: str) -> List[Question]:
    match = _ARRAY_RX.search(response_text or "")
    if not match:
        raise ValueError("Failed to parse AI response")
    data = json.loads(match.group(0))
    if not isinstance(data, list):
        raise ValueError("AI response is not a JSON array")
    out: List[Question] = []
    for rec in data:
        if not isinstance(rec, dict):
            raise ValueError("AI response contains a non-object entry")
        q = Question.from_dict(rec)
        if q.marks is None:
            q.marks = config.DEFAULT_MARKS
        if q.type == "coding" and not q.language:
            q.language = config.DEFAULT_LANGUAGE
        if q.type == "coding" and q.test_cases is None:
            q.test_cases = []
        out.append(q)
    return out


async def try_remote_generate(
    syllabus: str,
    options: GenerationOptions,
    cfg: Dict[str, Any] | None = None,
) -> RemoteOutcome:
    backend = config.get_backend(cfg if cfg is not None else config.load_config())
    if backend is None:
        return RemoteOutcome(error="no generation backend configured")
    prompt = build_prompt(syllabus, options)
    try:
        text = await asyncio.wait_for(
            llm_bridge.complete(_SYSTEM_PROMPT, prompt, backend=backend),
            timeout=config.GENERATION_TIMEOUT_SEC,
        )
        return RemoteOutcome(questions=_remote_questions(text))
    except asyncio.TimeoutError:
        return RemoteOutcome(error=f"generation timed out after {config.GENERATION_TIMEOUT_SEC}s")
    except Exception as e:  # any backend or payload failure falls back to templates
        return RemoteOutcome(error=f"{type(e).__name__}: {e}")


async def generate_questions(
    syllabus: str,
    options: GenerationOptions | Mapping[str, Any] | None = None,
    cfg: Dict[str, Any] | None = None,
) -> GenerationResult:
    if not isinstance(options, GenerationOptions):
        options = GenerationOptions.from_dict(options)
    cfg = cfg if cfg is not None else config.load_config()

    if config.get_backend(cfg) is None:
        return GenerationResult(questions=template_generate(syllabus, options), generated_by="Template")

    outcome = await try_remote_generate(syllabus, options, cfg)
    if outcome.ok:
        log.info("generated %d questions remotely", len(outcome.questions or []))
        return GenerationResult(questions=outcome.questions or [], generated_by="AI")

    log.warning("AI generation failed, using templates: %s", outcome.error)
    return GenerationResult(
        questions=template_generate(syllabus, options),
        generated_by="Template",
        error=outcome.error,
    )


def generate_from_example(example_text: str, count: int = 5) -> List[Question]:
    """Template questions shaped like a pasted example question."""
    topics = extract_topics(example_text)
    qtype = "theory"
    if _EXAMPLE_MCQ_RX.search(example_text):
        qtype = "mcq"
    elif _EXAMPLE_CODING_RX.search(example_text):
        qtype = "coding"
    return template_generate("\n".join(topics), GenerationOptions(type=qtype, count=count))
