"""Bulk question import.

Turns pasted faculty text into normalized :class:`Question` records. Four input
shapes are understood: CSV rows, a JSON array (or single object), the ``Q1.``
template format and free numbered text (the "smart" parser).
"""
from __future__ import annotations

import json
import logging
import math
import re
from typing import Dict, List, Optional

from . import config
from .types import Question, coerce_type

log = logging.getLogger(__name__)

FORMATS: tuple[str, ...] = ("auto", "csv", "json", "template", "smart")
TEMPLATE_FORMATS: tuple[str, ...] = ("mcq", "coding", "mixed", "csv")


class ParseError(ValueError):
    """Raised when input declared (or detected) as JSON cannot be decoded into questions."""


_TEMPLATE_RX = re.compile(r"Q\d+[.:]|Question\s+\d+", re.I)
_TEMPLATE_OPTION_RX = re.compile(r"^([a-d])\)\s*(.+)$", re.I | re.M)
_TEMPLATE_MCQ_HINT_RX = re.compile(r"^[a-d]\)", re.I | re.M)
_TEMPLATE_ANSWER_RX = re.compile(r"Answer:\s*([a-d])", re.I)
_LANGUAGE_RX = re.compile(r"Language:\s*(\w+)", re.I)
_FENCED_CODE_RX = re.compile(r"```(\w+)?\n([\s\S]*?)```")
_MARKS_RX = re.compile(r"Marks?:\s*(\d+)", re.I)

_SMART_QUESTION_RX = re.compile(r"^(\d+)[.)\s]+(.+)$")
_SMART_OPTION_RX = re.compile(r"^[a-dA-D][.)]\s*")
_SMART_ANSWER_RX = re.compile(r"^Answer:\s*([a-dA-D0-9])", re.I)
_CODING_HINT_RX = re.compile(r"write|implement|create|code|program|function", re.I)


def _letter_index(letter: str) -> int:
    return ord(letter.lower()) - ord("a")


def detect_format(text: str) -> str:
    trimmed = text.strip()

    if trimmed.startswith("[") or trimmed.startswith("{"):
        try:
            json.loads(trimmed)
            return "json"
        except ValueError:
            pass

    lines = trimmed.split("\n")
    first = lines[0]
    if "," in first and len(lines) > 1:
        commas = first.count(",")
        if all(line.count(",") == commas for line in lines[1:3]):
            return "csv"

    if _TEMPLATE_RX.search(trimmed):
        return "template"

    return "smart"


def detect_question_type(type_text: str) -> str:
    return coerce_type(type_text)


def _parse_marks(raw: str) -> Optional[float]:
    try:
        num = float(raw)
    except ValueError:
        return None
    if not math.isfinite(num):
        return None
    return int(num) if num.is_integer() else num


def parse_csv(text: str) -> List[Question]:
    """``Type,Question,Option1,Option2,Option3,Option4,Answer,Marks`` rows."""
    lines = text.strip().split("\n")
    questions: List[Question] = []

    start = 0
    header = lines[0].lower()
    if "type" in header or "question" in header:
        start = 1

    for raw_line in lines[start:]:
        line = raw_line.strip()
        if not line:
            continue
        parts = [p.strip() for p in line.split(",")]
        if len(parts) < 2:
            continue

        qtype = detect_question_type(parts[0])
        marks = _parse_marks(parts[-1]) if parts[-1] else None
        q = Question(type=qtype, question=parts[1], marks=marks if marks is not None else config.DEFAULT_MARKS)

        if qtype == "mcq":
            q.options = [o for o in parts[2:6] if o]
            try:
                q.correct_answer = int(parts[6]) if len(parts) > 6 else 0
            except ValueError:
                q.correct_answer = 0
        elif qtype == "coding":
            q.language = (parts[2] if len(parts) > 2 and parts[2] else config.DEFAULT_LANGUAGE).lower()
            q.test_cases = []

        questions.append(q)

    return questions


def parse_json(text: str) -> List[Question]:
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise ParseError("Invalid JSON format") from exc
    records = data if isinstance(data, list) else [data]
    out: List[Question] = []
    for idx, rec in enumerate(records):
        if not isinstance(rec, dict):
            raise ParseError(f"Question {idx + 1}: expected a JSON object")
        try:
            q = Question.from_dict(rec)
        except (TypeError, ValueError, AttributeError) as exc:
            raise ParseError(f"Question {idx + 1}: {exc}") from exc
        if q.marks is None:
            q.marks = config.DEFAULT_MARKS
        out.append(q)
    return out


def parse_template(text: str) -> List[Question]:
    """``Q1.`` blocks with optional ``[CODING]``/``[MCQ]``/``[THEORY]`` markers."""
    questions: List[Question] = []
    blocks = [b for b in _TEMPLATE_RX.split(text) if b.strip()]

    for block in blocks:
        lines = [l for l in block.strip().split("\n") if l.strip()]
        if not lines:
            continue

        q = Question(type="theory", question=lines[0].strip(), marks=config.DEFAULT_MARKS)

        if "[CODING]" in block or "[CODE]" in block:
            q.type = "coding"
            lang = _LANGUAGE_RX.search(block)
            q.language = lang.group(1).lower() if lang else config.DEFAULT_LANGUAGE
            q.test_cases = []
            code = _FENCED_CODE_RX.search(block)
            if code:
                q.starter_code = code.group(2).strip()
        elif "[MCQ]" in block or _TEMPLATE_MCQ_HINT_RX.search(block):
            q.type = "mcq"
            q.options = [m.group(2).strip() for m in _TEMPLATE_OPTION_RX.finditer(block)]
            answer = _TEMPLATE_ANSWER_RX.search(block)
            if answer:
                q.correct_answer = _letter_index(answer.group(1))

        marks = _MARKS_RX.search(block)
        if marks:
            q.marks = int(marks.group(1))

        questions.append(q)

    return questions


def _flush(current: Optional[Question], options: List[str], out: List[Question]) -> None:
    if current is None:
        return
    if options:
        current.options = options
        current.type = "mcq"
    out.append(current)


def _mark_coding(q: Question) -> None:
    q.type = "coding"
    q.language = config.DEFAULT_LANGUAGE
    q.test_cases = []


def parse_smart(text: str) -> List[Question]:
    """Line-by-line parse of loosely numbered text (copy-paste from Word/PDF)."""
    questions: List[Question] = []
    current: Optional[Question] = None
    options: List[str] = []
    in_code = False
    code_lines: List[str] = []

    for raw_line in text.split("\n"):
        line = raw_line.strip()

        if line.startswith("```"):
            in_code = not in_code
            if not in_code and current is not None:
                _mark_coding(current)
                current.starter_code = "\n".join(code_lines).strip("\n")
            code_lines = []
            continue
        if in_code:
            code_lines.append(raw_line.rstrip())
            continue
        if not line:
            continue

        qmatch = _SMART_QUESTION_RX.match(line)
        if qmatch:
            _flush(current, options, questions)
            current = Question(type="theory", question=qmatch.group(2).strip(), marks=config.DEFAULT_MARKS)
            options = []
        elif _SMART_OPTION_RX.match(line):
            options.append(_SMART_OPTION_RX.sub("", line, count=1).strip())
        elif _SMART_ANSWER_RX.match(line):
            if current is not None:
                ans = _SMART_ANSWER_RX.match(line).group(1).lower()
                current.correct_answer = _letter_index(ans) if ans.isalpha() else int(ans)
        elif current is not None and _CODING_HINT_RX.search(line):
            _mark_coding(current)

    _flush(current, options, questions)
    return questions


_PARSERS = {
    "csv": parse_csv,
    "json": parse_json,
    "template": parse_template,
    "smart": parse_smart,
}


def parse_bulk_questions(text: str, fmt: str = "auto") -> List[Question]:
    """Parse ``text`` into questions.

    Only JSON input can fail (:class:`ParseError`); the other formats skip
    lines they do not recognise.
    """
    if fmt == "auto":
        fmt = detect_format(text)
        log.debug("detected question format %s", fmt)
    parser = _PARSERS.get(fmt, parse_smart)
    questions = parser(text)
    log.debug("parsed %d questions (%s)", len(questions), fmt)
    return questions


def get_template_examples() -> Dict[str, str]:
    return {
        "mcq": """Q1. What is the capital of France?
a) London
b) Paris
c) Berlin
d) Madrid
Answer: b
Marks: 1

Q2. Which programming language is used for web development?
a) Python
b) Java
c) JavaScript
d) C++
Answer: c
Marks: 1""",

        "coding": """Q1. Write a function to reverse a string
[CODING]
Language: JavaScript
Marks: 5

```javascript
function reverseString(str) {
  // Your code here
}
```

Q2. Implement a function to check if a number is prime
[CODING]
Language: Python
Marks: 5""",

        "mixed": """Q1. What is Object-Oriented Programming?
[THEORY]
Marks: 3

Q2. Which of the following is a JavaScript framework?
a) Django
b) React
c) Laravel
d) Rails
Answer: b
Marks: 1

Q3. Write a function to find the factorial of a number
[CODING]
Language: JavaScript
Marks: 5""",

        "csv": """Type,Question,Option1,Option2,Option3,Option4,Answer,Marks
MCQ,What is 2+2?,3,4,5,6,1,1
MCQ,Capital of India?,Mumbai,Delhi,Kolkata,Chennai,1,1
Coding,Reverse a string,JavaScript,,,,0,5
Theory,Explain OOP concepts,,,,,0,3""",
    }
