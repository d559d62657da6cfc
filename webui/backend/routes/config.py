"""Config read/write routes."""
from __future__ import annotations

from pathlib import Path

from litestar import get, post

from mediaflow.config import Config
from webui.backend.models import ConfigPayload

SECRETS = ("replicate_api_token", "sieve_api_key", "hf_token", "gemini_api_key")


@get("/api/config")
async def get_config() -> ConfigPayload:
    cfg = Config.load()
    return ConfigPayload(
        # Mask secret keys, show only the ends
        **{name: _mask(getattr(cfg, name)) for name in SECRETS},
        output_dir=str(cfg.output_dir),
        poll_intervals=cfg.poll_intervals,
        job_timeouts=cfg.job_timeouts,
    )


@post("/api/config")
async def save_config(data: ConfigPayload) -> dict:
    cfg = Config.load()
    # Only update secrets if the user sent a non-masked value
    for name in SECRETS:
        value = getattr(data, name)
        if value and "…" not in value:
            setattr(cfg, name, value)
    cfg.output_dir = Path(data.output_dir)
    cfg.poll_intervals.update(data.poll_intervals)
    cfg.job_timeouts.update(data.job_timeouts)
    cfg.save()
    return {"ok": True}


def _mask(value: str) -> str:
    if not value:
        return ""
    return value[:4] + "…" + value[-4:] if len(value) > 8 else "…"
