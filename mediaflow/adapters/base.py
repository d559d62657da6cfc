"""Job adapter contract shared by every provider integration."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable


class JobState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"

    @property
    def terminal(self) -> bool:
        return self in (JobState.SUCCEEDED, JobState.FAILED, JobState.CANCELED)


@dataclass(frozen=True)
class JobStatus:
    state: JobState
    output_url: str | None = None
    output_text: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class JobHandle:
    """Opaque provider handle.

    Synchronous providers finish inside ``submit`` and carry the outcome in
    ``result`` so that ``status`` needs no server round trip.
    """
    id: str
    provider: str
    result: JobStatus | None = None
    meta: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class JobAdapter(Protocol):
    """Integration boundary to one generative-AI provider.

    Implementations hold no per-job state and may be shared across runs.
    ``submit`` raises on rejection; ``status`` raises on a failed check.
    """

    name: str

    def submit(self, model: str, inputs: dict[str, Any]) -> JobHandle: ...

    def status(self, handle: JobHandle) -> JobStatus: ...


def normalize_output(out: Any) -> tuple[str | None, str | None]:
    """Reduce a provider output payload to (url, text)."""
    if out is None:
        return None, None
    if isinstance(out, str):
        return (out, None) if _is_url(out) else (None, out)
    if isinstance(out, dict):
        url = out.get("url") or out.get("uri")
        if isinstance(url, str):
            return url, None
        text = out.get("text") or out.get("transcription")
        if isinstance(text, str):
            return None, text
        return normalize_output(out.get("data"))
    if isinstance(out, (list, tuple)):
        if not out:
            return None, None
        strings = [o for o in out if isinstance(o, str)]
        if strings and len(strings) == len(out):
            if _is_url(strings[0]):
                return strings[0], None
            # token streams from language/speech models
            return None, "".join(strings)
        return normalize_output(out[0])
    return None, None


def _is_url(value: str) -> bool:
    return value.startswith(("http://", "https://", "data:", "file://", "gs://"))
