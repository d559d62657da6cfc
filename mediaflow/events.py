"""Run lifecycle events and per-step state, serialized as camelCase JSON."""
from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from schemas import StepOutput


class StepStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETE = "complete"
    ERROR = "error"


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class StepState(_Model):
    status: StepStatus = StepStatus.IDLE
    output_url: str | None = None
    output_text: str | None = None
    error: str | None = None


class StepStart(_Model):
    type: Literal["step_start"] = "step_start"
    step_id: str
    title: str | None = None


class StepComplete(_Model):
    type: Literal["step_complete"] = "step_complete"
    step_id: str
    output_url: str | None = None
    output_text: str | None = None


class StepError(_Model):
    type: Literal["step_error"] = "step_error"
    step_id: str
    error: str
    kind: str | None = None


class Done(_Model):
    type: Literal["done"] = "done"
    status: Literal["success", "error", "canceled"]
    outputs: dict[str, StepOutput] = Field(default_factory=dict)
    failed_step_id: str | None = None
    error: str | None = None


RunEvent = Annotated[Union[StepStart, StepComplete, StepError, Done], Field(discriminator="type")]

_event_adapter: TypeAdapter = TypeAdapter(RunEvent)


def parse_event(data: dict) -> StepStart | StepComplete | StepError | Done:
    """Inverse of ``to_dict`` (used by clients replaying a stream)."""
    return _event_adapter.validate_python(data)
