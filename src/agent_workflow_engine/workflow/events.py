from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from agent_workflow_engine.errors import ExecutionError

WORKFLOW_START = "WORKFLOW_START"
WORKFLOW_STOP = "WORKFLOW_STOP"


@dataclass(frozen=True, slots=True)
class RuntimeEvent:
    """A typed payload flowing between steps.

    The start event carries the caller's input; the stop event carries the
    final output.
    """

    type: str
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def is_stop(self) -> bool:
        return self.type == WORKFLOW_STOP

    def to_json(self) -> dict[str, object]:
        return {"type": self.type, "data": self.data}


def start_event(data: Any) -> RuntimeEvent:
    return RuntimeEvent(type=WORKFLOW_START, data=data if data is not None else {})


def coerce_event(value: object, *, emitted_by: str) -> RuntimeEvent | None:
    """Normalise a handler's return value.

    Handlers may return a RuntimeEvent, a mapping with ``type`` (and optional
    ``data``), or None.
    """

    if value is None or isinstance(value, RuntimeEvent):
        return value
    if isinstance(value, Mapping):
        event_type = value.get("type")
        if isinstance(event_type, str) and event_type:
            data = value.get("data")
            return RuntimeEvent(type=event_type, data=data if data is not None else {})
        raise ExecutionError(
            f"Step for event type {emitted_by} returned an event without a type",
            event_type=emitted_by,
        )
    raise ExecutionError(
        f"Step for event type {emitted_by} returned {type(value).__name__}, expected an event",
        event_type=emitted_by,
    )
