from __future__ import annotations

import argparse
import json
from collections import Counter
from pathlib import Path
from typing import Iterable

from . import config
from .question_bank import load_bank
from .types import QUESTION_TYPES, Question
from .validators import validate_questions


def _blank_type() -> dict[str, object]:
    return {"count": 0, "marks": 0, "placeholders": 0}


def audit_items(items: Iterable[Question]) -> dict[str, object]:
    questions = list(items)
    coverage: dict[str, dict[str, object]] = {t: _blank_type() for t in QUESTION_TYPES}
    totals = {"questions": 0, "marks": 0, "placeholders": 0, "missing_id": 0}
    ids: Counter[str] = Counter()

    for q in questions:
        data = coverage[q.type]
        data["count"] += 1  # type: ignore[operator]
        data["marks"] += q.marks or 0  # type: ignore[operator]
        totals["questions"] += 1
        totals["marks"] += q.marks or 0
        if q.note:
            data["placeholders"] += 1  # type: ignore[operator]
            totals["placeholders"] += 1
        if q.id is None:
            totals["missing_id"] += 1
        else:
            ids[q.id] += 1

    validation = validate_questions(questions)
    warnings: list[str] = list(validation.errors)

    for qtype in QUESTION_TYPES:
        count = coverage[qtype]["count"]
        if count < config.BANK_MIN_PER_TYPE:  # type: ignore[operator]
            warnings.append(f"{qtype} has {count} questions (<{config.BANK_MIN_PER_TYPE})")

    if totals["placeholders"]:
        warnings.append(f"{totals['placeholders']} generated questions still need review")
    if config.BANK_EXPECT_IDS and totals["missing_id"]:
        warnings.append(f"{totals['missing_id']} questions missing id")
    dupes = sorted(qid for qid, n in ids.items() if n > 1)
    if dupes:
        warnings.append(f"duplicate ids: {', '.join(dupes)}")

    summary = {
        "coverage": coverage,
        "warnings": warnings,
        "totals": totals,
        "duplicate_ids": dupes,
        "is_valid": validation.is_valid,
    }
    return summary


def print_report(summary: dict[str, object]) -> None:
    coverage: dict[str, dict[str, object]] = summary["coverage"]  # type: ignore[assignment]
    print("=== Bank Coverage ===")
    for qtype in QUESTION_TYPES:
        data = coverage[qtype]
        print(f"  {qtype:<7} count:{data['count']:4d}  marks:{data['marks']:>6}  placeholders:{data['placeholders']:3d}")

    warnings: list[str] = summary["warnings"]  # type: ignore[assignment]
    if warnings:
        print("\nWarnings:")
        for msg in warnings:
            print(f" - {msg}")
    else:
        print("\nNo warnings.")

    totals = summary["totals"]
    print("\nTotals:", totals)


def write_summary(summary: dict[str, object], path: Path = Path("/tmp/bank_audit.json")) -> str:
    text = json.dumps(summary, indent=2, sort_keys=True)
    path.write_text(text + "\n", encoding="utf-8")
    print(text)
    return text


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Audit a JSON question bank.")
    ap.add_argument("bank", nargs="?", default=None, help="path to a JSON bank (defaults to QUESTION_BANK_PATH)")
    ap.add_argument("--out", default="/tmp/bank_audit.json")
    a = ap.parse_args(argv)

    items = load_bank(a.bank)
    summary = audit_items(items)
    print_report(summary)
    write_summary(summary, Path(a.out))
    return 2 if summary["warnings"] else 0


if __name__ == "__main__":
    raise SystemExit(main())
