from __future__ import annotations
import os, json, pathlib


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


DEFAULT_LANGUAGE: str = "javascript"
DEFAULT_MARKS: int = 1

MIN_QUESTION_LENGTH: int = 5
MIN_MCQ_OPTIONS: int = 2

MAX_TOPICS: int = 20
TOPIC_MIN_LEN: int = 5
TOPIC_MAX_LEN: int = 100
DEFAULT_TOPICS: tuple[str, ...] = (
    "the main concepts",
    "key principles",
    "core topics",
    "fundamental ideas",
)

GENERATION_MODEL: str = "gpt-3.5-turbo"
GENERATION_TEMPERATURE: float = 0.7
GENERATION_MAX_TOKENS: int = 2000
GENERATION_TIMEOUT_SEC: float = 30.0
GENERATION_COUNT_MAX: int = 50
LLM_LOG_PATH: str = ""

CORRECT_MARKS: float = 1.0
INCORRECT_MARKS: float = 0.0
UNANSWERED_MARKS: float = 0.0

BANK_EXPECT_IDS: bool = True
BANK_MIN_PER_TYPE: int = 0

# // env overrides for staging/ops; defaults match the faculty import defaults.
DEFAULT_LANGUAGE = os.getenv("DEFAULT_LANGUAGE", DEFAULT_LANGUAGE).strip().lower() or "javascript"
MAX_TOPICS = _env_int("MAX_TOPICS", MAX_TOPICS)
GENERATION_MODEL = os.getenv("OPENAI_MODEL", GENERATION_MODEL)
GENERATION_TEMPERATURE = _env_float("GENERATION_TEMPERATURE", GENERATION_TEMPERATURE)
GENERATION_MAX_TOKENS = _env_int("GENERATION_MAX_TOKENS", GENERATION_MAX_TOKENS)
GENERATION_TIMEOUT_SEC = _env_float("GENERATION_TIMEOUT_SEC", GENERATION_TIMEOUT_SEC)
LLM_LOG_PATH = os.getenv("LLM_LOG_PATH", LLM_LOG_PATH)
BANK_EXPECT_IDS = _env_bool("BANK_EXPECT_IDS", BANK_EXPECT_IDS)
CORRECT_MARKS = _env_float("CORRECT_MARKS", CORRECT_MARKS)
INCORRECT_MARKS = _env_float("INCORRECT_MARKS", INCORRECT_MARKS)
UNANSWERED_MARKS = _env_float("UNANSWERED_MARKS", UNANSWERED_MARKS)
BANK_MIN_PER_TYPE = _env_int("BANK_MIN_PER_TYPE", BANK_MIN_PER_TYPE)

def _env_true(name: str) -> bool:
    return os.environ.get(name, "").lower() in ("1","true","yes","on")
def load_config() -> dict:
    cfg = {}
    p = pathlib.Path("config.json")
    if p.exists():
        try: cfg = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError): cfg = {}
        if not isinstance(cfg, dict): cfg = {}
    e = os.environ
    if e.get("USE_LLM_GENERATE"): cfg["USE_LLM_GENERATE"] = _env_true("USE_LLM_GENERATE")
    if e.get("LLM_BACKEND"): cfg["LLM_BACKEND"] = e.get("LLM_BACKEND")
    if e.get("OPENAI_API_KEY") and "USE_LLM_GENERATE" not in cfg:
        cfg["USE_LLM_GENERATE"] = True
        cfg.setdefault("LLM_BACKEND", "openai")
    return cfg
def get_backend(cfg: dict | None) -> str|None:
    if not cfg or not cfg.get("USE_LLM_GENERATE"): return None
    b = (cfg.get("LLM_BACKEND") or "").lower().strip()
    return b if b in ("openai","azure") else None
