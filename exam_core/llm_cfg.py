# exam_core/llm_cfg.py
from __future__ import annotations
import os, json, pathlib
from dataclasses import dataclass
from typing import Union
from openai import AsyncAzureOpenAI, AsyncOpenAI

from . import config

@dataclass(frozen=True)
class LLMSettings:
    backend: str
    api_key: str
    model: str
    endpoint: str = ""
    api_version: str = ""

_REQUIRED = {
    "openai": ("api_key", "model"),
    "azure":  ("endpoint", "api_key", "api_version", "model"),
}

def _from_env(backend: str) -> dict[str, str]:
    if backend == "azure":
        return {
            "endpoint":   os.getenv("AZURE_OPENAI_ENDPOINT", ""),
            "api_key":    os.getenv("AZURE_OPENAI_API_KEY", ""),
            "api_version":os.getenv("AZURE_OPENAI_API_VERSION", ""),
            "model":      os.getenv("AZURE_OPENAI_DEPLOYMENT", ""),
        }
    return {
        "api_key": os.getenv("OPENAI_API_KEY", ""),
        "model":   os.getenv("OPENAI_MODEL", config.GENERATION_MODEL),
    }

def _from_json(backend: str, path: str = ".llm_config.json") -> dict[str, str]:
    p = pathlib.Path(path)
    if not p.exists(): return {}
    try:
        j = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    section = j.get(backend, j) if isinstance(j, dict) else {}
    if not isinstance(section, dict): return {}
    return {
        "endpoint":   str(section.get("endpoint","")),
        "api_key":    str(section.get("api_key","")),
        "api_version":str(section.get("api_version","")),
        "model":      str(section.get("model", section.get("deployment",""))),
    }

def settings(backend: str = "openai") -> LLMSettings:
    backend = (backend or "openai").lower()
    if backend not in _REQUIRED:
        raise RuntimeError(f"Unknown LLM backend: {backend}")
    cfg = _from_env(backend)
    needed = _REQUIRED[backend]
    if not all(cfg.get(k) for k in needed):
        for k, v in _from_json(backend).items():
            if not cfg.get(k) and v: cfg[k] = v
    missing = [k for k in needed if not cfg.get(k)]
    if missing:
        raise RuntimeError(f"{backend} LLM backend not configured. Missing: {', '.join(missing)}")
    return LLMSettings(
        backend=backend,
        api_key=cfg["api_key"],
        model=cfg["model"],
        endpoint=cfg.get("endpoint", ""),
        api_version=cfg.get("api_version", ""),
    )

def client(s: LLMSettings) -> Union[AsyncOpenAI, AsyncAzureOpenAI]:
    if s.backend == "azure":
        return AsyncAzureOpenAI(
            azure_endpoint=s.endpoint,
            api_key=s.api_key,
            api_version=s.api_version,
        )
    return AsyncOpenAI(api_key=s.api_key)
