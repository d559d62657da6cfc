"""Per-tool required fields and model-specific input rules."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from schemas import Plan, StepConfig, StepOutputRef

# (model, inputs) -> error message or None
ModelRule = Callable[[str, dict[str, Any]], "str | None"]


@dataclass(frozen=True)
class ToolSpec:
    # Each entry is a group of alternatives; at least one key per group must be present.
    required: tuple[tuple[str, ...], ...] = ()
    list_fields: tuple[str, ...] = ()
    rules: tuple[ModelRule, ...] = field(default_factory=tuple)


def _kling_start_image(model: str, inputs: dict[str, Any]) -> str | None:
    if "kling-v2.1" in model and _missing(inputs.get("start_image")):
        return "Kling v2.1 requires start_image"
    return None


def _gpt_image_count(model: str, inputs: dict[str, Any]) -> str | None:
    if model != "openai/gpt-image-1.5":
        return None
    try:
        count = int(inputs.get("number_of_images") or 0)
    except (TypeError, ValueError):
        return "number_of_images must be a number"
    if count > 10:
        return "GPT Image 1.5 allows up to 10 images"
    return None


TOOL_SPECS: dict[str, ToolSpec] = {
    "image": ToolSpec(
        required=(("prompt",),),
        list_fields=("image_input", "reference_images"),
        rules=(_gpt_image_count,),
    ),
    "video": ToolSpec(required=(("prompt",),), rules=(_kling_start_image,)),
    "veo": ToolSpec(required=(("prompt",),)),
    "lipsync": ToolSpec(required=(("video", "image"), ("audio",))),
    "tts": ToolSpec(required=(("text",),)),
    "transcription": ToolSpec(required=(("audio",),)),
    "enhance": ToolSpec(required=(("image",),)),
    "background_remove": ToolSpec(required=(("image",),)),
}


def list_fields_for(tool: str) -> tuple[str, ...]:
    spec = TOOL_SPECS.get(tool)
    return spec.list_fields if spec else ()


def validate_step_inputs(tool: str, model: str, inputs: dict[str, Any]) -> list[str]:
    """Return human-readable problems; empty when the inputs are submittable."""
    spec = TOOL_SPECS.get(tool)
    if spec is None:
        return [f"Unknown tool {tool!r}"]

    errors: list[str] = []
    for group in spec.required:
        if all(_missing(inputs.get(key)) for key in group):
            errors.append(f"{' or '.join(group)} required")
    for rule in spec.rules:
        if msg := rule(model or "", inputs):
            errors.append(msg)
    return errors


def validate_plan(plan: Plan, step_configs: dict[str, StepConfig] | None = None) -> dict[str, list[str]]:
    """Pre-flight check of an accepted plan; references count as present.

    Returns {step_id: [problems]} for steps with problems only.
    """
    step_configs = step_configs or {}
    problems: dict[str, list[str]] = {}
    for step in plan.steps:
        cfg = step_configs.get(step.id) or step.default_config()
        # References resolve at run time; treat them as filled in for now
        inputs = {k: ("<ref>" if isinstance(v, StepOutputRef) else v) for k, v in cfg.inputs.items()}
        errors = validate_step_inputs(step.tool, cfg.model, inputs)
        if errors:
            problems[step.id] = errors
    return problems


def _missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False
