"""Pydantic request/response models for the MediaFlow Web API."""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from mediaflow.events import StepState
from schemas import Plan, StepConfig, StepOutput


class _Camel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RunRequest(_Camel):
    plan: Plan
    step_configs: dict[str, StepConfig] = Field(default_factory=dict)
    # Resume: outputs recorded for steps before start_step_id
    previous_outputs: dict[str, StepOutput] = Field(default_factory=dict)
    start_step_id: str | None = None
    use_test_mode: bool = False  # placeholder outputs, no API calls


class RunCreated(_Camel):
    run_id: str


class RunStatus(_Camel):
    run_id: str
    state: Literal["queued", "running", "done", "cancelled", "failed"]
    started_at: float | None = None
    finished_at: float | None = None
    step_states: dict[str, StepState] = Field(default_factory=dict)
    outputs: dict[str, StepOutput] = Field(default_factory=dict)
    error: str | None = None


class PlanCheck(_Camel):
    plan: Plan
    step_configs: dict[str, StepConfig] = Field(default_factory=dict)


class PlanCheckResult(_Camel):
    ok: bool
    errors: dict[str, list[str]] = Field(default_factory=dict)


class ConfigPayload(BaseModel):
    replicate_api_token: str = ""
    sieve_api_key: str = ""
    hf_token: str = ""
    gemini_api_key: str = ""
    output_dir: str = "output"
    poll_intervals: dict[str, float] = Field(default_factory=dict)
    job_timeouts: dict[str, float] = Field(default_factory=dict)
