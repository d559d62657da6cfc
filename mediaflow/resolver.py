"""Substitute upstream step outputs into a step's inputs."""
from __future__ import annotations

import re
from typing import Any, Iterable, Mapping

from schemas import StepOutput, StepOutputRef

from .errors import UnresolvedReference

_LIST_SPLIT = re.compile(r"[,\n]")


def resolve_inputs(
    inputs: Mapping[str, Any],
    previous_outputs: Mapping[str, StepOutput],
    list_fields: Iterable[str] = (),
) -> dict[str, Any]:
    """Return a copy of ``inputs`` with every StepOutputRef replaced.

    Raises UnresolvedReference when a referenced step has no recorded output.
    ``list_fields`` given as a delimited string are split into a list. An
    upstream output placed directly in a list field becomes a one-item list
    and is never split.
    """
    list_fields = set(list_fields)
    resolved: dict[str, Any] = {}
    for key, raw in inputs.items():
        value = _resolve(raw, previous_outputs)
        if key in list_fields:
            value = [value] if isinstance(raw, StepOutputRef) else split_list(value)
        resolved[key] = value
    return resolved


def resolve_ref(ref: StepOutputRef, previous_outputs: Mapping[str, StepOutput]) -> str:
    output = previous_outputs.get(ref.step_id)
    if output is None:
        raise UnresolvedReference(ref.step_id)
    if ref.field == "url":
        value = output.url
    elif ref.field == "text":
        value = output.text
    else:
        value = output.url or output.text
    if not value:
        raise UnresolvedReference(ref.step_id)
    return value


def split_list(value: Any) -> Any:
    """'a, b,\\n c,,' -> ['a', 'b', 'c']; lists lose their empty entries."""
    if isinstance(value, str):
        return [part.strip() for part in _LIST_SPLIT.split(value) if part.strip()]
    if isinstance(value, list):
        return [v.strip() if isinstance(v, str) else v for v in value if not _blank(v)]
    return value


def _resolve(value: Any, previous_outputs: Mapping[str, StepOutput]) -> Any:
    if isinstance(value, StepOutputRef):
        return resolve_ref(value, previous_outputs)
    if isinstance(value, dict):
        return {k: _resolve(v, previous_outputs) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_resolve(v, previous_outputs) for v in value]
    return value


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())
