"""Google Veo video generation via the Gemini API (long-running operations)."""
from __future__ import annotations

import logging
import mimetypes
from typing import Any

import requests
from google import genai
from google.genai import types

from ..config import DEFAULT_VEO_MODEL, HTTP_TIMEOUT
from ..errors import SubmissionError
from .base import JobHandle, JobState, JobStatus

log = logging.getLogger(__name__)


def _fetch_image(url: str) -> types.Image:
    """Download a start frame so it can be sent inline."""
    with requests.get(url, timeout=HTTP_TIMEOUT) as r:
        r.raise_for_status()
        mime = r.headers.get("Content-Type") or mimetypes.guess_type(url)[0] or "image/png"
        return types.Image(image_bytes=r.content, mime_type=mime.split(";")[0])


class GeminiVeoAdapter:
    name = "gemini"

    def __init__(self, api_key: str) -> None:
        if not api_key:
            raise ValueError("GEMINI_API_KEY is not set.")
        self._client = genai.Client(api_key=api_key)

    def submit(self, model: str, inputs: dict[str, Any]) -> JobHandle:
        model_id = model or DEFAULT_VEO_MODEL
        kwargs: dict[str, Any] = {"model": model_id, "prompt": inputs.get("prompt", "")}
        if start := inputs.get("start_image"):
            kwargs["image"] = _fetch_image(start)
        if aspect := inputs.get("aspect_ratio"):
            kwargs["config"] = types.GenerateVideosConfig(aspect_ratio=aspect)

        log.info("Submitting Veo job (%s): %s", model_id, str(kwargs["prompt"])[:80])
        operation = self._client.models.generate_videos(**kwargs)
        if not operation.name:
            raise SubmissionError("Veo did not return an operation name")
        return JobHandle(id=operation.name, provider=self.name, meta={"model": model_id})

    def status(self, handle: JobHandle) -> JobStatus:
        operation = self._client.operations.get(types.GenerateVideosOperation(name=handle.id))

        # operation.done is None until the job finishes
        if not operation.done:
            return JobStatus(state=JobState.RUNNING)

        if operation.error:
            return JobStatus(state=JobState.FAILED, error=str(operation.error))

        video_response = operation.response or operation.result
        generated = getattr(video_response, "generated_videos", None) if video_response else None
        if not generated or not generated[0].video or not generated[0].video.uri:
            return JobStatus(
                state=JobState.FAILED,
                error=f"Veo operation completed without a video: {video_response}",
            )
        return JobStatus(state=JobState.SUCCEEDED, output_url=generated[0].video.uri)
