"""HuggingFace Inference API (synchronous: the work happens inside submit)."""
from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Any

from huggingface_hub import InferenceClient

from ..config import DEFAULT_TRANSCRIPTION_MODEL
from ..errors import SubmissionError
from .base import JobHandle, JobState, JobStatus

log = logging.getLogger(__name__)

TASKS = ("image", "tts", "transcription")


class HuggingFaceAdapter:
    name = "huggingface"

    def __init__(self, token: str, task: str, output_dir: Path) -> None:
        if not token:
            raise ValueError("HF_TOKEN environment variable is not set.")
        if task not in TASKS:
            raise ValueError(f"Unsupported HuggingFace task: {task}")
        self._token = token
        self.task = task
        self.output_dir = Path(output_dir)

    def submit(self, model: str, inputs: dict[str, Any]) -> JobHandle:
        client = InferenceClient(model=model or None, token=self._token)
        job_id = uuid.uuid4().hex[:12]
        try:
            if self.task == "transcription":
                result = client.automatic_speech_recognition(
                    inputs["audio"], model=model or DEFAULT_TRANSCRIPTION_MODEL
                )
                status = JobStatus(state=JobState.SUCCEEDED, output_text=result.text)
            elif self.task == "tts":
                audio = client.text_to_speech(inputs["text"])
                path = self._write(job_id, ".flac", audio)
                status = JobStatus(state=JobState.SUCCEEDED, output_url=path.resolve().as_uri())
            else:
                img = client.text_to_image(
                    inputs["prompt"],
                    width=inputs.get("width"),
                    height=inputs.get("height"),
                )
                path = self.output_dir / f"hf_{job_id}.png"
                path.parent.mkdir(parents=True, exist_ok=True)
                img.save(path, "PNG")
                status = JobStatus(state=JobState.SUCCEEDED, output_url=path.resolve().as_uri())
        except KeyError as e:
            raise SubmissionError(f"Missing input {e.args[0]!r} for {self.task}") from e
        except Exception as e:
            log.warning("HuggingFace %s failed (%s): %s", self.task, model, e)
            raise SubmissionError(f"HuggingFace {self.task} failed: {e}") from e

        log.info("HuggingFace %s finished (%s)", self.task, model)
        return JobHandle(id=job_id, provider=self.name, result=status)

    def status(self, handle: JobHandle) -> JobStatus:
        if handle.result is None:
            return JobStatus(state=JobState.FAILED, error=f"Unknown HuggingFace job {handle.id}")
        return handle.result

    def _write(self, job_id: str, suffix: str, data: bytes) -> Path:
        path = self.output_dir / f"hf_{job_id}{suffix}"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path
