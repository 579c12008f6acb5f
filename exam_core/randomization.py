from __future__ import annotations

import logging
import random
from dataclasses import replace
from typing import List, Optional, Sequence, TypeVar

from .types import Question, RandomizationSettings

log = logging.getLogger(__name__)

T = TypeVar("T")


def shuffle(items: Sequence[T], rng: random.Random) -> List[T]:
    """Fisher-Yates over a copy; ``items`` is left untouched."""
    out = list(items)
    for i in range(len(out) - 1, 0, -1):
        j = rng.randrange(i + 1)
        out[i], out[j] = out[j], out[i]
    return out


def _shuffle_options(q: Question, rng: random.Random) -> Question:
    options = list(q.options or [])
    old = q.correct_answer
    correct_text: Optional[str] = None
    if old is not None and 0 <= old < len(options):
        correct_text = options[old]
    shuffled = shuffle(options, rng)
    new = shuffled.index(correct_text) if correct_text is not None else -1
    return replace(q, options=shuffled, correct_answer=new, original_correct_answer=old)


def _original_index(q: Question, originals: Sequence[Question]) -> int:
    if q.id is None:
        return -1
    for idx, orig in enumerate(originals):
        if orig.id == q.id:
            return idx
    return -1


def randomize_questions(
    questions: Sequence[Question],
    settings: RandomizationSettings,
    rng: random.Random,
) -> List[Question]:
    """Build a per-student projection of ``questions``.

    Pool sampling happens before order shuffling so the two settings stay
    independent. MCQ options are reshuffled per question and the correct
    index is remapped by option text; the pre-shuffle index is kept in
    ``original_correct_answer``. Inputs are never mutated.

    Inputs are assumed validated: an MCQ whose correct index is out of range
    comes back with ``correct_answer == -1``.
    """
    processed = list(questions)

    pool = settings.question_pool_size
    if pool and pool < len(questions):
        processed = shuffle(questions, rng)[:pool]

    if settings.randomize_order:
        processed = shuffle(processed, rng)

    if settings.randomize_options:
        processed = [
            _shuffle_options(q, rng) if q.type == "mcq" and q.options else q
            for q in processed
        ]

    out = [
        replace(q, randomized_order=idx, original_index=_original_index(q, questions))
        for idx, q in enumerate(processed)
    ]
    log.debug("randomized %d of %d questions", len(out), len(questions))
    return out
