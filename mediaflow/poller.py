"""Generic async-completion watcher shared by every tool."""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum

from .adapters.base import JobAdapter, JobHandle, JobState, JobStatus
from .config import MAX_STATUS_ERRORS
from .errors import TransientPollError

log = logging.getLogger(__name__)


class PollOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"              # provider reported canceled
    TIMED_OUT = "timed_out"
    CANCELED_BY_CALLER = "canceled_by_caller"
    ERROR = "error"                    # status checks kept failing


@dataclass(frozen=True)
class PollResult:
    outcome: PollOutcome
    status: JobStatus | None = None    # last status seen, if any
    checks: int = 0
    reason: str | None = None


_TERMINAL = {
    JobState.SUCCEEDED: PollOutcome.SUCCEEDED,
    JobState.FAILED: PollOutcome.FAILED,
    JobState.CANCELED: PollOutcome.CANCELED,
}


class Poller:
    """Checks a job's status on a fixed cadence until it is terminal.

    The wait between checks is the engine's only suspension point. It is an
    ``Event.wait`` so that a run-level cancel interrupts it immediately.
    """

    def __init__(self, max_status_errors: int = MAX_STATUS_ERRORS) -> None:
        self.max_status_errors = max(1, max_status_errors)

    def poll(
        self,
        adapter: JobAdapter,
        handle: JobHandle,
        interval: float,
        timeout: float,
        cancel_event: threading.Event | None = None,
    ) -> PollResult:
        cancel_event = cancel_event or threading.Event()
        deadline = time.monotonic() + timeout
        last: JobStatus | None = None
        errors = 0
        checks = 0

        while True:
            if cancel_event.is_set():
                log.info("Poll of %s/%s stopped by caller", handle.provider, handle.id)
                return PollResult(PollOutcome.CANCELED_BY_CALLER, last, checks, "Run canceled by caller.")

            try:
                status = self._check(adapter, handle)
            except TransientPollError as e:
                errors += 1
                log.warning(
                    "Status check %d/%d failed for %s/%s: %s",
                    errors, self.max_status_errors, handle.provider, handle.id, e,
                )
                if errors >= self.max_status_errors:
                    return PollResult(
                        PollOutcome.ERROR, last, checks,
                        f"Status check failed {errors} times in a row: {e}",
                    )
            else:
                errors = 0
                checks += 1
                if last is None or status.state != last.state:
                    log.debug("Job %s/%s -> %s", handle.provider, handle.id, status.state.value)
                last = status
                if status.state.terminal:
                    return PollResult(_TERMINAL[status.state], status, checks, status.error)

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return PollResult(
                    PollOutcome.TIMED_OUT, last, checks,
                    f"No terminal state within {timeout:.0f}s",
                )
            # Returns early (True) when the run is canceled
            cancel_event.wait(min(interval, remaining))

    @staticmethod
    def _check(adapter: JobAdapter, handle: JobHandle) -> JobStatus:
        try:
            return adapter.status(handle)
        except Exception as e:
            raise TransientPollError(str(e)) from e
