from __future__ import annotations
from fastapi import FastAPI, HTTPException, Query, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from datetime import datetime, timezone
import logging, os, uuid, typing as t

# ---- Engine imports ----
from exam_core import config
from exam_core.breakdown_export import to_csv as breakdown_to_csv
from exam_core.generator import DIFFICULTIES, GENERATION_TYPES, GenerationOptions, generate_questions
from exam_core.llm_bridge import backend_in_use
from exam_core.question_parser import (
    FORMATS,
    ParseError,
    TEMPLATE_FORMATS,
    get_template_examples,
    parse_bulk_questions,
)
from exam_core.scoring import answers_from_mcq_payload, grade_submission
from exam_core.types import Exam, PenaltyRules, Question, RandomizationSettings, ScoringRules
from exam_core.validators import validate_questions
from exam_core.variants import generate_exam_variant, student_view
from .storage import (
    list_submissions_for_exam,
    load_exam,
    load_submission,
    save_exam,
    save_submission_if_absent,
    utcnow_iso,
)

log = logging.getLogger(__name__)

app = FastAPI(title="Exam Core API")

@app.get("/")
def root():
    return {"status": "ok", "service": "exam-core-api"}

ALLOWED_ORIGINS = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)

# ---- Schemas ----
FormatName = t.Literal[FORMATS]
GenerationType = t.Literal[GENERATION_TYPES]
Difficulty = t.Literal[DIFFICULTIES]

class ParseReq(BaseModel):
    text: str
    format: FormatName = "auto"

class GenerateReq(BaseModel):
    syllabus: str = Field(..., min_length=10)
    type: GenerationType = "mixed"
    count: int = Field(10, ge=1, le=config.GENERATION_COUNT_MAX)
    difficulty: Difficulty = "medium"
    language: str = config.DEFAULT_LANGUAGE
    includeExplanations: bool = False

class ValidateReq(BaseModel):
    questions: list[t.Any]

# unset fields fall back to the core defaults (see exam_core.config)
class RandomizationIn(BaseModel):
    randomizeOrder: bool = False
    randomizeOptions: bool = False
    questionPoolSize: int | None = Field(None, ge=1)

class ScoringRulesIn(BaseModel):
    correctMarks: float | None = Field(None, ge=0)
    incorrectMarks: float | None = None
    unansweredMarks: float | None = None
    partialCredit: bool = False

class PenaltyRulesIn(BaseModel):
    enableLatePenalty: bool = False
    penaltyPerMinute: float = Field(0, ge=0)
    gracePeriodMinutes: float = Field(0, ge=0)

class ExamReq(BaseModel):
    id: str | None = Field(None, min_length=1)
    title: str = ""
    questions: list[dict[str, t.Any]]
    randomizationSettings: RandomizationIn = Field(default_factory=RandomizationIn)
    scoringRules: ScoringRulesIn = Field(default_factory=ScoringRulesIn)
    penaltyRules: PenaltyRulesIn = Field(default_factory=PenaltyRulesIn)
    deadline: str | None = None

class SubmitReq(BaseModel):
    student_id: str = Field(..., min_length=1)
    answers: list[t.Any] | None = None
    mcqAnswers: list[dict[str, t.Any]] | None = None
    submitted_at: str | None = None

# ---- Helpers ----
def _parse_ts(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise HTTPException(400, f"invalid timestamp: {value}")
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _exam_from_record(rec: dict[str, t.Any]) -> Exam:
    return Exam(
        id=rec["id"],
        title=rec.get("title", ""),
        questions=[Question.from_dict(q) for q in rec.get("questions", [])],
        randomization=RandomizationSettings.from_dict(rec.get("randomizationSettings")),
        scoring=ScoringRules.from_dict(rec.get("scoringRules")),
        penalty=PenaltyRules.from_dict(rec.get("penaltyRules")),
        deadline=_parse_ts(rec.get("deadline")),
    )


def _require_exam(exam_id: str) -> Exam:
    rec = load_exam(exam_id)
    if not rec:
        raise HTTPException(404, "exam not found")
    return _exam_from_record(rec)

# ---- Health ----
@app.get("/health")
def health():
    return {"llm_backend": backend_in_use()}

# ---- Faculty question import ----
@app.post("/questions/parse")
def parse_questions(req: ParseReq):
    if not req.text or not req.text.strip():
        raise HTTPException(400, "Text is required")
    try:
        questions = parse_bulk_questions(req.text, req.format)
    except ParseError as e:
        raise HTTPException(400, f"Failed to parse questions: {e}")
    validation = validate_questions(questions)
    n = len(questions)
    return {
        "questions": [q.to_dict() for q in questions],
        "count": n,
        "validation": validation.to_dict(),
        "message": (f"Successfully parsed {n} questions" if validation.is_valid
                    else f"Parsed {n} questions with {len(validation.errors)} warnings"),
    }

@app.post("/questions/generate")
async def generate(req: GenerateReq):
    if not req.syllabus.strip():
        raise HTTPException(400, "Syllabus text is required")
    opts = GenerationOptions(
        type=req.type,
        count=req.count,
        difficulty=req.difficulty,
        language=req.language.lower(),
        include_explanations=req.includeExplanations,
    )
    result = await generate_questions(req.syllabus, opts)
    validation = validate_questions(result.questions)
    return {
        "questions": [q.to_dict() for q in result.questions],
        "count": len(result.questions),
        "validation": validation.to_dict(),
        "generatedBy": result.generated_by,
        "message": f"Generated {len(result.questions)} {req.difficulty} {req.type} questions",
    }

@app.get("/questions/templates")
def templates():
    return {
        "templates": get_template_examples(),
        "formats": list(TEMPLATE_FORMATS),
        "message": "Use these templates to format your questions",
    }

@app.post("/questions/validate")
def validate(req: ValidateReq):
    validation = validate_questions(req.questions)
    n = len(req.questions)
    return {
        "validation": validation.to_dict(),
        "count": n,
        "validCount": n - len(validation.invalid_questions),
    }

# ---- Exams ----
@app.post("/exams")
def create_exam(req: ExamReq):
    validation = validate_questions(req.questions)
    if not validation.is_valid:
        raise HTTPException(400, {"message": "Question bank is invalid", "errors": validation.errors})
    questions = [Question.from_dict(q) for q in req.questions]
    for idx, q in enumerate(questions):
        if q.id is None:
            q.id = f"q{idx + 1}"
    _parse_ts(req.deadline)
    exam_id = req.id or str(uuid.uuid4())
    record = {
        "id": exam_id,
        "title": req.title,
        "questions": [q.to_dict() for q in questions],
        "randomizationSettings": req.randomizationSettings.model_dump(exclude_none=True),
        "scoringRules": req.scoringRules.model_dump(exclude_none=True),
        "penaltyRules": req.penaltyRules.model_dump(exclude_none=True),
        "deadline": req.deadline,
        "createdAt": utcnow_iso(),
    }
    save_exam(exam_id, record)
    return {"id": exam_id, "count": len(questions)}

@app.get("/exams/{exam_id}")
def get_exam(exam_id: str):
    rec = load_exam(exam_id)
    if not rec:
        raise HTTPException(404, "exam not found")
    return rec

@app.get("/exams/{exam_id}/variant")
def get_variant(exam_id: str, student_id: str = Query(..., min_length=1)):
    exam = _require_exam(exam_id)
    variant = generate_exam_variant(exam, student_id)
    return {
        "examId": exam_id,
        "title": exam.title,
        "questions": student_view(variant.questions),
        "isRandomized": variant.is_randomized,
        "randomizationSeed": variant.randomization_seed,
        "generatedFor": variant.generated_for,
        "generatedAt": variant.generated_at.isoformat(),
    }

@app.post("/exams/{exam_id}/submit")
def submit(exam_id: str, req: SubmitReq):
    exam = _require_exam(exam_id)
    if load_submission(exam_id, req.student_id):
        raise HTTPException(400, "Already submitted")
    variant = generate_exam_variant(exam, req.student_id)
    if req.answers is not None:
        answers = req.answers
    else:
        answers = answers_from_mcq_payload(req.mcqAnswers or [], len(variant.questions))
    submitted_at = _parse_ts(req.submitted_at) or datetime.now(timezone.utc)
    score = grade_submission(exam, variant.questions, answers, submitted_at)
    record = {
        "examId": exam_id,
        "studentId": req.student_id,
        "status": "submitted",
        "answers": list(answers),
        "questionOrder": [q.id for q in variant.questions],
        "randomizationSeed": variant.randomization_seed,
        "score": score.to_dict(),
        "submittedAt": submitted_at.isoformat(),
    }
    if not save_submission_if_absent(exam_id, req.student_id, record):
        raise HTTPException(400, "Already submitted")
    log.info("graded %s/%s: %s of %s", exam_id, req.student_id, score.total_score, score.max_score)
    return record

@app.get("/exams/{exam_id}/submissions")
def list_submissions(exam_id: str):
    return {"submissions": list_submissions_for_exam(exam_id)}

@app.get("/exams/{exam_id}/submissions/{student_id}")
def get_submission(exam_id: str, student_id: str):
    rec = load_submission(exam_id, student_id)
    if not rec:
        raise HTTPException(404, "submission not found")
    return rec

@app.get("/exams/{exam_id}/submissions/{student_id}/breakdown.csv")
def get_breakdown_csv(exam_id: str, student_id: str):
    rec = load_submission(exam_id, student_id)
    if not rec:
        raise HTTPException(404, "submission not found")
    body = breakdown_to_csv((rec.get("score") or {}).get("scoreBreakdown") or [])
    filename = f"{exam_id}_{student_id}_breakdown.csv"
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=\"{filename}\""},
    )
