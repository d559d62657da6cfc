"""Settings, API keys and per-tool polling policy."""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

CONFIG_DIR = Path.home() / ".mediaflow"
CONFIG_FILE = CONFIG_DIR / "config.json"
LOG_FILE = CONFIG_DIR / "mediaflow.log"

# Provider endpoints
REPLICATE_API = "https://api.replicate.com/v1"
SIEVE_API = "https://mango.sievedata.com/v2"
HTTP_TIMEOUT = 30  # seconds, per REST call

# Default models
DEFAULT_VEO_MODEL = "veo-2.0-generate-001"
DEFAULT_TRANSCRIPTION_MODEL = "openai/whisper-large-v3-turbo"
DEFAULT_LIPSYNC_BACKEND = "sievesync-1.1"

# Status-check cadence (seconds). Slow jobs poll less often to limit request volume.
DEFAULT_POLL_INTERVAL = 3.0
POLL_INTERVALS = {
    "image": 2.0,
    "enhance": 2.0,
    "background_remove": 2.0,
    "tts": 2.0,
    "transcription": 2.0,
    "video": 4.0,
    "lipsync": 4.0,
    "veo": 10.0,
}

# Per-job timeouts (seconds), independent of any run-level lifetime
DEFAULT_JOB_TIMEOUT = 600.0
JOB_TIMEOUTS = {
    "image": 300.0,
    "tts": 300.0,
    "background_remove": 300.0,
    "enhance": 600.0,
    "transcription": 600.0,
    "video": 1800.0,
    "lipsync": 1800.0,
    "veo": 1800.0,
}

# Consecutive status-check failures tolerated before a poll gives up
MAX_STATUS_ERRORS = 3


@dataclass
class Config:
    replicate_api_token: str = ""
    sieve_api_key: str = ""
    hf_token: str = ""
    gemini_api_key: str = ""
    output_dir: Path = field(default_factory=lambda: Path("output"))
    poll_intervals: dict[str, float] = field(default_factory=lambda: dict(POLL_INTERVALS))
    job_timeouts: dict[str, float] = field(default_factory=lambda: dict(JOB_TIMEOUTS))
    max_status_errors: int = MAX_STATUS_ERRORS

    @classmethod
    def load(cls) -> "Config":
        """Load config from env vars then config file."""
        cfg = cls()

        # Env vars take priority
        keys = {
            "replicate_api_token": os.environ.get("REPLICATE_API_TOKEN", ""),
            "sieve_api_key": os.environ.get("SIEVE_API_KEY", ""),
            "hf_token": os.environ.get("HF_TOKEN", ""),
            "gemini_api_key": os.environ.get("GEMINI_API_KEY", ""),
        }

        # Fall back to config file
        if CONFIG_FILE.exists():
            try:
                data = json.loads(CONFIG_FILE.read_text(encoding="utf-8-sig"))
                for name in keys:
                    if not keys[name]:
                        keys[name] = data.get(name, "")
                if out := data.get("output_dir"):
                    cfg.output_dir = Path(out)
                if intervals := data.get("poll_intervals"):
                    cfg.poll_intervals.update({k: float(v) for k, v in intervals.items()})
                if timeouts := data.get("job_timeouts"):
                    cfg.job_timeouts.update({k: float(v) for k, v in timeouts.items()})
                if data.get("max_status_errors") is not None:
                    cfg.max_status_errors = int(data["max_status_errors"])
            except (json.JSONDecodeError, OSError, AttributeError, TypeError, ValueError):
                pass

        for name, value in keys.items():
            setattr(cfg, name, value)
        return cfg

    def save(self) -> None:
        CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "replicate_api_token": self.replicate_api_token,
            "sieve_api_key": self.sieve_api_key,
            "hf_token": self.hf_token,
            "gemini_api_key": self.gemini_api_key,
            "output_dir": str(self.output_dir),
            "poll_intervals": self.poll_intervals,
            "job_timeouts": self.job_timeouts,
            "max_status_errors": self.max_status_errors,
        }
        CONFIG_FILE.write_text(json.dumps(data, indent=2))

    def interval_for(self, tool: str) -> float:
        return self.poll_intervals.get(tool, DEFAULT_POLL_INTERVAL)

    def timeout_for(self, tool: str) -> float:
        return self.job_timeouts.get(tool, DEFAULT_JOB_TIMEOUT)
