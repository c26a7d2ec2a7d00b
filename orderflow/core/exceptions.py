"""
Exception hierarchy for the durable execution engine.

Workflow code sees two families of errors:
- Errors it may catch and handle (timeouts, failed registrations, replayed
  step failures), all deriving from WorkflowError.
- SuspensionSignal, which is control flow for the engine and derives from
  BaseException so that ``except Exception`` in workflow code never
  swallows a suspension.
"""

from datetime import datetime
from typing import Optional


class WorkflowError(Exception):
    """Base class for all engine errors."""

    pass


class SuspensionSignal(BaseException):
    """
    Raised to unwind a workflow when it has to wait for something external.

    The runtime catches it, marks the execution suspended and releases all
    resources. It is not an error.
    """

    def __init__(
        self,
        reason: str,
        callback_id: Optional[str] = None,
        token: Optional[str] = None,
        resume_at: Optional[datetime] = None,
    ) -> None:
        super().__init__(reason)
        self.reason = reason
        self.callback_id = callback_id
        self.token = token
        self.resume_at = resume_at


class StepFailedError(WorkflowError):
    """A checkpointed step failed (raised again when the failure is replayed)."""

    def __init__(self, step_name: str, error: str, error_type: str = "Exception") -> None:
        super().__init__(f"Step '{step_name}' failed: {error}")
        self.step_name = step_name
        self.error = error
        self.error_type = error_type


class DuplicateStepError(WorkflowError):
    """The same step name was used twice within one execution."""

    def __init__(self, step_name: str) -> None:
        super().__init__(f"Step name '{step_name}' is already used in this execution")
        self.step_name = step_name


class CallbackTimeoutError(WorkflowError):
    """A callback wait expired before anybody submitted a result."""

    def __init__(self, name: str, token: Optional[str] = None) -> None:
        super().__init__(f"Timed out waiting for callback '{name}'")
        self.name = name
        self.token = token


class CallbackRegistrationError(WorkflowError):
    """The registrar of a callback wait kept failing and retries ran out."""

    def __init__(self, name: str, error: str, attempts: int = 1) -> None:
        super().__init__(
            f"Registrar for callback '{name}' failed after {attempts} attempt(s): {error}"
        )
        self.name = name
        self.error = error
        self.attempts = attempts


class InvalidTokenError(WorkflowError):
    """A submitted callback token is malformed or unknown."""

    def __init__(self, token: str) -> None:
        super().__init__(f"Invalid callback token: {token}")
        self.token = token


class CallbackAlreadyReceivedError(WorkflowError):
    """A result was already submitted for this callback."""

    def __init__(self, token: str) -> None:
        super().__init__(f"Callback already received: {token}")
        self.token = token


class CallbackExpiredError(WorkflowError):
    """The callback can no longer be resolved (timed out or failed)."""

    def __init__(self, token: str, status: str = "expired") -> None:
        super().__init__(f"Callback is no longer pending ({status}): {token}")
        self.token = token
        self.status = status


class ExecutionNotFoundError(WorkflowError):
    def __init__(self, run_id: str) -> None:
        super().__init__(f"Execution not found: {run_id}")
        self.run_id = run_id


class ExecutionAlreadyExistsError(WorkflowError):
    def __init__(self, run_id: str) -> None:
        super().__init__(f"Execution already exists: {run_id}")
        self.run_id = run_id


class WorkflowNotRegisteredError(WorkflowError):
    def __init__(self, name: str) -> None:
        super().__init__(
            f"Workflow '{name}' is not registered. Did you forget the @workflow decorator?"
        )
        self.name = name
