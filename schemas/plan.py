from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from typing import Any, Dict, Iterator, List, Literal, Optional

REF_KIND = "stepOutput"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StepOutputRef(_CamelModel):
    """Typed pointer to the output of an earlier step in the same plan."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    kind: Literal["stepOutput"] = REF_KIND
    step_id: str
    field: Literal["url", "text", "auto"] = Field(
        default="auto", description="auto prefers the url and falls back to text"
    )


class StepOutput(_CamelModel):
    """Recorded output of a completed step (a URL, a text, or both)."""
    url: Optional[str] = None
    text: Optional[str] = None

    @property
    def empty(self) -> bool:
        return not self.url and not self.text


class StepConfig(_CamelModel):
    """Caller-editable override of a step's model and inputs."""
    model: str
    inputs: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("inputs")
    @classmethod
    def _refs(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        return coerce_refs(value)


class Step(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(..., min_length=1)
    title: str = ""
    tool: str = Field(..., description="Tool family, e.g. image, video, lipsync, tts")
    model: str = ""
    inputs: Dict[str, Any] = Field(default_factory=dict)
    dependencies: List[str] = Field(default_factory=list)
    output_type: Literal["url", "text"] = "url"

    @field_validator("inputs")
    @classmethod
    def _refs(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        return coerce_refs(value)

    def references(self) -> List[str]:
        """Step ids referenced anywhere in this step's inputs."""
        return [ref.step_id for ref in iter_refs(self.inputs)]

    def default_config(self) -> StepConfig:
        return StepConfig(model=self.model, inputs=dict(self.inputs))


class Plan(_CamelModel):
    """Produced by the planner, consumed read-only by the engine."""
    summary: str = ""
    steps: List[Step]

    @model_validator(mode="after")
    def _check_order(self) -> "Plan":
        if not self.steps:
            raise ValueError("plan has no steps")
        seen = set()
        for step in self.steps:
            if step.id in seen:
                raise ValueError(f"duplicate step id {step.id!r}")
            for dep in list(step.dependencies) + step.references():
                if dep == step.id:
                    raise ValueError(f"step {step.id!r} depends on itself")
                if dep not in seen:
                    raise ValueError(
                        f"step {step.id!r} depends on {dep!r}, which is not an earlier step"
                    )
            seen.add(step.id)
        return self

    def step_ids(self) -> List[str]:
        return [s.id for s in self.steps]

    def get(self, step_id: str) -> Optional[Step]:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def index_of(self, step_id: str) -> int:
        for i, step in enumerate(self.steps):
            if step.id == step_id:
                return i
        raise ValueError(f"unknown step id {step_id!r}")


def coerce_refs(value: Any) -> Any:
    """Turn ``{"kind": "stepOutput", ...}`` maps into StepOutputRef, at any depth."""
    if isinstance(value, dict):
        if value.get("kind") == REF_KIND:
            return StepOutputRef.model_validate(value)
        return {k: coerce_refs(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [coerce_refs(v) for v in value]
    return value


def iter_refs(value: Any) -> Iterator[StepOutputRef]:
    """Walk an input value (or map of values) and yield every StepOutputRef."""
    if isinstance(value, StepOutputRef):
        yield value
    elif isinstance(value, dict):
        for v in value.values():
            yield from iter_refs(v)
    elif isinstance(value, (list, tuple)):
        for v in value:
            yield from iter_refs(v)
