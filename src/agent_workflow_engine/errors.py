"""Error taxonomy for the workflow engine.

Every error carries a human readable message and, where known, the offending
field, step or event type so a DSL author can locate the problem.
"""

from __future__ import annotations


class WorkflowError(Exception):
    """Base class for all workflow engine errors."""

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        step: str | None = None,
        event_type: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.step = step
        self.event_type = event_type

    def to_json(self) -> dict[str, object]:
        out: dict[str, object] = {"error": type(self).__name__, "message": self.message}
        if self.field is not None:
            out["field"] = self.field
        if self.step is not None:
            out["step"] = self.step
        if self.event_type is not None:
            out["event_type"] = self.event_type
        return out


class WorkflowValidationError(WorkflowError):
    """The DSL document is structurally invalid or a handler failed to compile."""


class ResolutionError(WorkflowError):
    """A tool or agent referenced by the document cannot be resolved."""


class ToolNotFoundError(ResolutionError):
    def __init__(self, name: str, *, toolkit: str | None = None) -> None:
        where = f" in toolkit {toolkit}" if toolkit else ""
        super().__init__(f"Tool {name} not found{where}", field=name)
        self.name = name


class AgentResolutionError(ResolutionError):
    """An agent could not be materialised for the run."""


class ExecutionError(WorkflowError):
    """A step failed while the workflow was running.

    The original exception (if any) is available as ``__cause__``.
    """


class WorkflowTimeoutError(WorkflowError):
    """The caller-imposed deadline elapsed before the run completed."""


class NotFoundError(WorkflowError):
    """A persisted workflow or workflow agent does not exist."""


class IllegalTransitionError(ValueError):
    pass
