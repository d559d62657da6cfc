"""Drives one plan step: resolve -> validate -> submit -> poll."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Mapping

from schemas import Step, StepConfig, StepOutput

from .adapters import AdapterRegistry
from .config import Config
from .errors import (
    ErrorKind,
    JobTimeout,
    ProviderFailure,
    RunCanceled,
    StepFailure,
    StepValidationError,
    SubmissionError,
)
from .events import StepStatus
from .poller import PollOutcome, Poller, PollResult
from .resolver import resolve_inputs
from .validation import list_fields_for, validate_step_inputs

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepResult:
    status: StepStatus
    output_url: str | None = None
    output_text: str | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None

    @property
    def ok(self) -> bool:
        return self.status == StepStatus.COMPLETE

    def as_output(self) -> StepOutput:
        return StepOutput(url=self.output_url, text=self.output_text)


class StepRunner:
    def __init__(
        self,
        adapters: AdapterRegistry,
        config: Config | None = None,
        poller: Poller | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.adapters = adapters
        self.config = config or Config()
        self.poller = poller or Poller(self.config.max_status_errors)
        self.cancel_event = cancel_event or threading.Event()

    def run(
        self,
        step: Step,
        config: StepConfig | None,
        previous_outputs: Mapping[str, StepOutput],
    ) -> StepResult:
        """Execute ``step`` once. Never raises for step-level failures."""
        config = config or step.default_config()
        try:
            return self._run(step, config, previous_outputs)
        except StepFailure as e:
            log.warning("Step %s failed (%s): %s", step.id, e.kind.value, e)
            return StepResult(status=StepStatus.ERROR, error=str(e), error_kind=e.kind)
        except Exception as e:
            log.exception("Step %s crashed", step.id)
            return StepResult(
                status=StepStatus.ERROR,
                error=f"Unexpected provider error: {e}",
                error_kind=ErrorKind.PROVIDER_FAILURE,
            )

    def _run(self, step: Step, config: StepConfig, previous_outputs: Mapping[str, StepOutput]) -> StepResult:
        inputs = resolve_inputs(config.inputs, previous_outputs, list_fields_for(step.tool))

        problems = validate_step_inputs(step.tool, config.model, inputs)
        adapter = self.adapters.get(step.tool)
        if adapter is None and not problems:
            problems.append(f"No adapter registered for tool {step.tool!r}")
        if problems:
            raise StepValidationError(problems)

        if self.cancel_event.is_set():
            raise RunCanceled()

        # Exactly one submission per step per run attempt; no retry here
        try:
            handle = adapter.submit(config.model, inputs)
        except SubmissionError:
            raise
        except Exception as e:
            log.exception("Submission for step %s raised", step.id)
            raise SubmissionError(str(e)) from e
        log.info("Step %s submitted to %s as %s", step.id, handle.provider, handle.id)

        result = self.poller.poll(
            adapter,
            handle,
            interval=self.config.interval_for(step.tool),
            timeout=self.config.timeout_for(step.tool),
            cancel_event=self.cancel_event,
        )
        return self._map(step, result)

    def _map(self, step: Step, result: PollResult) -> StepResult:
        if result.outcome == PollOutcome.SUCCEEDED:
            status = result.status
            if not status.output_url and not status.output_text:
                raise ProviderFailure("Provider reported success without an output")
            log.info("Step %s complete after %d checks", step.id, result.checks)
            return StepResult(
                status=StepStatus.COMPLETE,
                output_url=status.output_url,
                output_text=status.output_text,
            )
        if result.outcome in (PollOutcome.FAILED, PollOutcome.CANCELED):
            default = "Job failed" if result.outcome == PollOutcome.FAILED else "Job canceled by provider"
            raise ProviderFailure(result.reason or default)
        if result.outcome == PollOutcome.TIMED_OUT:
            last = result.status.state.value if result.status else None
            raise JobTimeout(self.config.timeout_for(step.tool), last)
        if result.outcome == PollOutcome.CANCELED_BY_CALLER:
            raise RunCanceled()
        # Status checks kept failing
        raise ProviderFailure(result.reason or "Status check failed")
