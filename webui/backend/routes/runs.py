"""Run submit / status / cancel routes and plan pre-flight validation."""
from __future__ import annotations

from litestar import get, post
from litestar.exceptions import NotFoundException, ValidationException

from mediaflow.validation import validate_plan
from webui.backend.models import PlanCheck, PlanCheckResult, RunCreated, RunRequest
from webui.backend.run_manager import run_manager


@post("/api/runs")
async def create_run(data: RunRequest) -> dict:
    try:
        run_id = run_manager.submit(data)
    except ValueError as e:
        raise ValidationException(str(e)) from e
    return RunCreated(run_id=run_id).model_dump(by_alias=True)


@get("/api/runs/{run_id:str}")
async def get_run(run_id: str) -> dict:
    status = run_manager.status(run_id)
    if status is None:
        raise NotFoundException(f"Run {run_id!r} not found")
    return status.model_dump(mode="json", by_alias=True, exclude_none=True)


@post("/api/runs/{run_id:str}/cancel")
async def cancel_run(run_id: str) -> dict:
    if not run_manager.cancel(run_id):
        raise NotFoundException(f"Run {run_id!r} not found")
    return {"ok": True, "runId": run_id}


@post("/api/plans/validate")
async def check_plan(data: PlanCheck) -> dict:
    errors = validate_plan(data.plan, data.step_configs)
    return PlanCheckResult(ok=not errors, errors=errors).model_dump(by_alias=True)
