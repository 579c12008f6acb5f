from __future__ import annotations
import json, logging, time
from typing import Any, Dict
from . import config
from . import llm_cfg

log = logging.getLogger(__name__)

def backend_in_use(cfg: Dict[str, Any] | None = None) -> str:
    b = config.get_backend(cfg if cfg is not None else config.load_config())
    return b or "none"

def _append_log(entry: Dict[str, Any]) -> None:
    if not config.LLM_LOG_PATH:
        return
    try:
        with open(config.LLM_LOG_PATH, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, ensure_ascii=False) + "\n")
    except OSError as e:
        log.warning("could not append LLM trace to %s: %s", config.LLM_LOG_PATH, e)

async def complete(system: str, user: str, *, backend: str = "openai",
                   temperature: float | None = None, max_tokens: int | None = None) -> str:
    """One chat completion against the configured backend; returns the raw message text."""
    t0 = time.time()
    s = llm_cfg.settings(backend)
    async with llm_cfg.client(s) as cli:
        resp = await cli.chat.completions.create(
            model=s.model,
            messages=[{"role":"system","content":system},{"role":"user","content":user}],
            temperature=config.GENERATION_TEMPERATURE if temperature is None else temperature,
            max_tokens=config.GENERATION_MAX_TOKENS if max_tokens is None else max_tokens,
        )
    text = (resp.choices[0].message.content or "") if resp.choices else ""
    _append_log({
        "ts": round(time.time(), 3),
        "backend": s.backend,
        "model": s.model,
        "prompt": user[:800],
        "response": text[:2000],
        "rt_ms": int((time.time()-t0)*1000),
    })
    return text
