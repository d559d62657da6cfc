"""Sieve lip-sync jobs (push + job status)."""
from __future__ import annotations

import logging
from typing import Any

import requests

from ..config import DEFAULT_LIPSYNC_BACKEND, HTTP_TIMEOUT, SIEVE_API
from ..errors import SubmissionError
from .base import JobHandle, JobState, JobStatus, normalize_output

log = logging.getLogger(__name__)

LIPSYNC_FUNCTION = "sieve/lipsync"

_STATES = {
    "queued": JobState.PENDING,
    "started": JobState.RUNNING,
    "processing": JobState.RUNNING,
    "finished": JobState.SUCCEEDED,
    "error": JobState.FAILED,
    "cancelled": JobState.CANCELED,
}

# Passed through to the lipsync function when present in the step inputs
_OPTIONS = ("enable_multispeaker", "enhance", "check_quality", "downsample", "cut_by")


class SieveAdapter:
    name = "sieve"

    def __init__(self, api_key: str, base_url: str = SIEVE_API) -> None:
        if not api_key:
            raise ValueError("SIEVE_API_KEY is not set.")
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")

    def submit(self, model: str, inputs: dict[str, Any]) -> JobHandle:
        media = inputs.get("video") or inputs.get("image")
        audio = inputs.get("audio")
        if not media or not audio:
            raise SubmissionError("Missing video/audio for lipsync", 400)

        payload = {
            "function": LIPSYNC_FUNCTION,
            "inputs": {
                "file": {"url": media},
                "audio": {"url": audio},
                "backend": model or DEFAULT_LIPSYNC_BACKEND,
                **{k: inputs[k] for k in _OPTIONS if k in inputs},
            },
        }
        res = requests.post(
            f"{self._base_url}/push",
            headers={"X-API-Key": self._api_key, "Content-Type": "application/json"},
            json=payload,
            timeout=HTTP_TIMEOUT,
        )
        if not res.ok:
            raise SubmissionError(res.text or f"HTTP {res.status_code}", res.status_code)

        data = res.json()
        log.info("Sieve job %s pushed (%s)", data.get("id"), payload["inputs"]["backend"])
        return JobHandle(id=data["id"], provider=self.name)

    def status(self, handle: JobHandle) -> JobStatus:
        res = requests.get(
            f"{self._base_url}/jobs/{handle.id}",
            headers={"X-API-Key": self._api_key},
            timeout=HTTP_TIMEOUT,
        )
        res.raise_for_status()
        data = res.json()

        state = _STATES.get(str(data.get("status", "")).lower(), JobState.RUNNING)
        url, text = normalize_output(data.get("outputs") or data.get("data"))
        error = data.get("error") or data.get("message") or data.get("last_error")
        if isinstance(error, dict):
            error = error.get("message") or str(error)
        return JobStatus(
            state=state,
            output_url=url,
            output_text=text,
            error=str(error) if error else None,
        )
