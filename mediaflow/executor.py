"""Sequential plan execution with fail-fast and resume-from-step."""
from __future__ import annotations

import logging
import threading
from typing import Iterator, Mapping

from schemas import Plan, StepConfig, StepOutput

from .adapters import AdapterRegistry
from .config import Config
from .errors import ErrorKind
from .events import Done, StepComplete, StepError, StepStart, StepState, StepStatus
from .poller import Poller
from .runner import StepRunner

log = logging.getLogger(__name__)


class PlanExecutor:
    """Runs one plan attempt. Create a new executor per run.

    Steps execute strictly one at a time in list order; the plan's list order
    is trusted to be topological (``schemas.Plan`` enforces it on input).
    """

    def __init__(
        self,
        adapters: AdapterRegistry,
        config: Config | None = None,
        poller: Poller | None = None,
    ) -> None:
        self.config = config or Config()
        self._cancelled = threading.Event()
        self.runner = StepRunner(adapters, self.config, poller, self._cancelled)
        self.states: dict[str, StepState] = {}
        self.outputs: dict[str, StepOutput] = {}

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def run_from(
        self,
        plan: Plan,
        step_id: str,
        step_configs: Mapping[str, StepConfig] | None = None,
        previous_outputs: Mapping[str, StepOutput | dict] | None = None,
    ) -> Iterator[StepStart | StepComplete | StepError | Done]:
        return self.execute(plan, step_configs, previous_outputs, start_step_id=step_id)

    def execute(
        self,
        plan: Plan,
        step_configs: Mapping[str, StepConfig] | None = None,
        previous_outputs: Mapping[str, StepOutput | dict] | None = None,
        start_step_id: str | None = None,
    ) -> Iterator[StepStart | StepComplete | StepError | Done]:
        """Yield RunEvents for the slice starting at ``start_step_id``.

        Raises ValueError, before yielding anything, for an unknown start step.
        """
        start = plan.index_of(start_step_id) if start_step_id else 0
        return self._execute(plan, dict(step_configs or {}), _coerce(previous_outputs), start)

    def _execute(
        self,
        plan: Plan,
        step_configs: dict[str, StepConfig],
        previous: dict[str, StepOutput],
        start: int,
    ) -> Iterator[StepStart | StepComplete | StepError | Done]:
        earlier = set(plan.step_ids()[:start])
        # Carried-over outputs are trusted as given; only steps before the slice are kept
        self.outputs = {k: v for k, v in previous.items() if k in earlier and not v.empty}
        self.states = {}
        for i, step in enumerate(plan.steps):
            carried = self.outputs.get(step.id) if i < start else None
            if carried:
                self.states[step.id] = StepState(
                    status=StepStatus.COMPLETE, output_url=carried.url, output_text=carried.text
                )
            else:
                if i < start:
                    log.warning("Resuming at step %d without an output for earlier step %s", start, step.id)
                self.states[step.id] = StepState()

        log.info("Executing plan (%d steps) from step %d", len(plan.steps), start)
        for step in plan.steps[start:]:
            if self.cancelled:
                yield self._done("canceled", error="Run canceled by caller.")
                return

            self.states[step.id] = StepState(status=StepStatus.RUNNING)
            yield StepStart(step_id=step.id, title=step.title or None)

            result = self.runner.run(step, step_configs.get(step.id), self.outputs)

            if result.ok:
                self.states[step.id] = StepState(
                    status=StepStatus.COMPLETE,
                    output_url=result.output_url,
                    output_text=result.output_text,
                )
                self.outputs[step.id] = result.as_output()
                yield StepComplete(
                    step_id=step.id,
                    output_url=result.output_url,
                    output_text=result.output_text,
                )
                continue

            self.states[step.id] = StepState(status=StepStatus.ERROR, error=result.error)
            yield StepError(
                step_id=step.id,
                error=result.error or "Step failed",
                kind=result.error_kind.value if result.error_kind else None,
            )
            status = "canceled" if result.error_kind == ErrorKind.CANCELED else "error"
            yield self._done(status, failed_step_id=step.id, error=result.error)
            return

        yield self._done("success")

    def _done(self, status: str, failed_step_id: str | None = None, error: str | None = None) -> Done:
        log.info("Run finished: %s", status)
        return Done(
            status=status,
            outputs=dict(self.outputs),
            failed_step_id=failed_step_id,
            error=error,
        )


def _coerce(previous: Mapping[str, StepOutput | dict] | None) -> dict[str, StepOutput]:
    result: dict[str, StepOutput] = {}
    for key, value in (previous or {}).items():
        result[key] = value if isinstance(value, StepOutput) else StepOutput.model_validate(value)
    return result
