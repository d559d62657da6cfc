"""Step failure taxonomy.

Every way a step can fail maps to exactly one ``ErrorKind``. The step runner
catches these and turns them into a single ``step_error`` event.
"""
from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    UNRESOLVED_REFERENCE = "unresolved_reference"
    SUBMISSION = "submission"
    PROVIDER_FAILURE = "provider_failure"
    TIMEOUT = "timeout"
    CANCELED = "canceled"


class StepFailure(Exception):
    kind: ErrorKind = ErrorKind.PROVIDER_FAILURE


class StepValidationError(StepFailure):
    """Required inputs missing or malformed. Detected before submission."""
    kind = ErrorKind.VALIDATION

    def __init__(self, problems: list[str]) -> None:
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


class UnresolvedReference(StepFailure):
    kind = ErrorKind.UNRESOLVED_REFERENCE

    def __init__(self, step_id: str) -> None:
        self.step_id = step_id
        super().__init__(f"No output available for step {step_id!r}")


class SubmissionError(StepFailure):
    """The provider rejected the job at creation time."""
    kind = ErrorKind.SUBMISSION

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class ProviderFailure(StepFailure):
    """Job accepted, then reported failed/canceled. Reason kept verbatim."""
    kind = ErrorKind.PROVIDER_FAILURE

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class JobTimeout(StepFailure):
    kind = ErrorKind.TIMEOUT

    def __init__(self, timeout: float, last_state: str | None = None) -> None:
        self.timeout = timeout
        self.last_state = last_state
        super().__init__(
            f"Job did not finish within {timeout:.0f}s (last status: {last_state or 'unknown'})"
        )


class TransientPollError(Exception):
    """A single failed status check. Retried by the poller, never surfaced."""


class RunCanceled(StepFailure):
    kind = ErrorKind.CANCELED

    def __init__(self, message: str = "Run canceled by caller.") -> None:
        super().__init__(message)
