"""Replicate predictions API (image, video, tts, enhance, background removal)."""
from __future__ import annotations

import logging
from typing import Any

import requests

from ..config import HTTP_TIMEOUT, REPLICATE_API
from ..errors import SubmissionError
from .base import JobHandle, JobState, JobStatus, normalize_output

log = logging.getLogger(__name__)

_STATES = {
    "starting": JobState.PENDING,
    "queued": JobState.PENDING,
    "processing": JobState.RUNNING,
    "succeeded": JobState.SUCCEEDED,
    "failed": JobState.FAILED,
    "canceled": JobState.CANCELED,
    "aborted": JobState.CANCELED,
}


class ReplicateAdapter:
    name = "replicate"

    def __init__(self, token: str, base_url: str = REPLICATE_API) -> None:
        if not token:
            raise ValueError("REPLICATE_API_TOKEN is not set.")
        self._token = token
        self._base_url = base_url.rstrip("/")

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Token {self._token}", "Content-Type": "application/json"}

    def _latest_version(self, model: str) -> str:
        res = requests.get(
            f"{self._base_url}/models/{model}",
            headers=self._headers(),
            timeout=HTTP_TIMEOUT,
        )
        if not res.ok:
            raise SubmissionError(f"Model lookup failed for {model}: {res.text}", res.status_code)
        version = (res.json().get("latest_version") or {}).get("id")
        if not version:
            raise SubmissionError(f"No latest version found for model {model}", 404)
        return version

    def submit(self, model: str, inputs: dict[str, Any]) -> JobHandle:
        if not model:
            raise SubmissionError("Missing model")
        # "owner/name:version" pins a version and skips the lookup
        if ":" in model:
            model, version = model.split(":", 1)
        else:
            version = self._latest_version(model)

        res = requests.post(
            f"{self._base_url}/predictions",
            headers=self._headers(),
            json={"version": version, "input": inputs},
            timeout=HTTP_TIMEOUT,
        )
        if not res.ok:
            if res.status_code == 429:
                log.warning("Replicate rate limited submission for %s", model)
            raise SubmissionError(res.text or f"HTTP {res.status_code}", res.status_code)

        data = res.json()
        log.info("Replicate prediction %s created for %s", data.get("id"), model)
        return JobHandle(id=data["id"], provider=self.name, meta={"model": model})

    def status(self, handle: JobHandle) -> JobStatus:
        res = requests.get(
            f"{self._base_url}/predictions/{handle.id}",
            headers=self._headers(),
            timeout=HTTP_TIMEOUT,
        )
        res.raise_for_status()
        data = res.json()

        state = _STATES.get(str(data.get("status", "")).lower(), JobState.RUNNING)
        url, text = normalize_output(data.get("output"))
        error = data.get("error")
        return JobStatus(
            state=state,
            output_url=url,
            output_text=text,
            error=str(error) if error else None,
        )
