# Common language: Environment/ops check that surfaces version pins, config, and captioning state.
# Use this before/after upgrades to confirm no silent drift.

from fastapi import APIRouter, Depends
from ..core.settings import settings
from ..captions.orchestrator import CaptionOrchestrator
from .captions import get_orchestrator
from pathlib import Path
import sys, importlib

router = APIRouter(tags=["health"])

def _ver(modname: str) -> str:
    try:
        m = importlib.import_module(modname)
        return getattr(m, "__version__", "unknown")
    except ImportError:
        return "not-installed"

def _file_info(p: Path):
    try:
        exists = p.exists()
        size = p.stat().st_size if exists else 0
        return {"path": str(p), "exists": exists, "size": size}
    except OSError:
        return {"path": str(p), "exists": False, "size": 0}

@router.get("/healthz")
def healthz(orchestrator: CaptionOrchestrator = Depends(get_orchestrator)):
    limiter = orchestrator.limiter
    return {
        "status": "ok",
        "python": sys.version.split()[0],
        "versions": {
            "fastapi": _ver("fastapi"),
            "uvicorn": _ver("uvicorn"),
            "pydantic": _ver("pydantic"),
            "pydantic_settings": _ver("pydantic_settings"),
            "httpx": _ver("httpx"),
            "openai": _ver("openai"),
            "PIL": _ver("PIL"),
        },
        "config": {
            "data_dir": str(settings.data_dir),
            "analysis_model": settings.analysis_model,
            "caption_model": settings.caption_model,
            "describe_model": settings.describe_model,
            "env_keys_present": {"OPENAI_API_KEY": bool(settings.openai_api_key)},
        },
        "cache": {
            "durable_file": _file_info(settings.cache_path),
            "volatile_entries": orchestrator.cache.volatile_size,
        },
        "orchestrator": {
            "state": orchestrator.state.value,
            "generating": orchestrator.is_generating,
            "last_error": orchestrator.last_error,
            "requests_in_window": limiter.request_count,
            "limits": {
                "min_interval_s": limiter.min_interval,
                "max_requests": limiter.max_requests,
                "window_s": limiter.window,
            },
        },
        "tones": settings.tone_labels,
    }
