"""Offline adapter for test mode: no API calls, deterministic outputs."""
from __future__ import annotations

import logging
import textwrap
import uuid
from pathlib import Path
from typing import Any

from PIL import Image, ImageDraw, ImageFont

from .base import JobHandle, JobState, JobStatus

log = logging.getLogger(__name__)

SIZE = (512, 512)

# Tools whose placeholder output is a still image
IMAGE_TOOLS = {"image", "enhance", "background_remove"}

# Background per tool so test-mode outputs are easy to tell apart
_COLORS = {
    "image": (40, 44, 70),
    "enhance": (30, 70, 60),
    "background_remove": (70, 40, 50),
}


def render_placeholder_image(tool: str, model: str, label: str, output_path: Path) -> Path:
    """Write a PNG card naming the tool and model, with the label below."""
    img = Image.new("RGB", SIZE, color=_COLORS.get(tool, (40, 40, 40)))
    draw = ImageDraw.Draw(img)
    font = ImageFont.load_default()

    draw.rectangle((0, 0, SIZE[0], 48), fill=(0, 0, 0))
    draw.text((16, 16), f"{tool} / {model or 'default'}", fill=(255, 210, 90), font=font)
    for i, line in enumerate(textwrap.wrap(label, width=60)[:20]):
        draw.text((16, 72 + i * 18), line, fill=(220, 220, 240), font=font)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    img.save(output_path, "PNG")
    return output_path


class PlaceholderAdapter:
    name = "placeholder"

    def __init__(self, tool: str, output_dir: Path) -> None:
        self.tool = tool
        self.output_dir = Path(output_dir)

    def submit(self, model: str, inputs: dict[str, Any]) -> JobHandle:
        job_id = uuid.uuid4().hex[:12]
        if self.tool in IMAGE_TOOLS:
            label = str(inputs.get("prompt") or inputs.get("image") or self.tool)
            path = render_placeholder_image(self.tool, model, label, self.output_dir / f"placeholder_{job_id}.png")
            result = JobStatus(state=JobState.SUCCEEDED, output_url=path.resolve().as_uri())
        elif self.tool == "transcription":
            result = JobStatus(state=JobState.SUCCEEDED, output_text=f"[placeholder transcript of {inputs.get('audio')}]")
        else:
            # video, lipsync, tts, veo: echo the most relevant upstream media
            source = inputs.get("start_image") or inputs.get("video") or inputs.get("image")
            result = JobStatus(
                state=JobState.SUCCEEDED,
                output_url=source if isinstance(source, str) else None,
                output_text=None if isinstance(source, str) else f"[placeholder {self.tool} output]",
            )
        log.info("Placeholder %s job %s (%s)", self.tool, job_id, model)
        return JobHandle(id=job_id, provider=self.name, result=result)

    def status(self, handle: JobHandle) -> JobStatus:
        return handle.result or JobStatus(state=JobState.FAILED, error="unknown placeholder job")
