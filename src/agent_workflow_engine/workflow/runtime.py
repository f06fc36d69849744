"""The workflow runtime: an explicit state machine over named events.

A run moves IDLE -> RUNNING -> COMPLETED | FAILED. Events are processed one at
a time; each handler runs to completion before the next event is dispatched.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Awaitable, Callable, Mapping
from enum import Enum
from typing import Any

from agent_workflow_engine.errors import ExecutionError, IllegalTransitionError
from agent_workflow_engine.workflow.bus import EventBus
from agent_workflow_engine.workflow.events import (
    WORKFLOW_STOP,
    RuntimeEvent,
    coerce_event,
    start_event,
)

logger = logging.getLogger(__name__)

StepHandler = Callable[[RuntimeEvent, dict[str, Any]], Awaitable[Any]]


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


ALLOWED_TRANSITIONS: dict[RunState, set[RunState]] = {
    RunState.IDLE: {RunState.RUNNING},
    RunState.RUNNING: {RunState.COMPLETED, RunState.FAILED},
    RunState.COMPLETED: set(),
    RunState.FAILED: set(),
}


class Workflow:
    """One executable run of a compiled workflow.

    A Workflow executes once. The execution context is created with the
    instance and discarded with it.
    """

    def __init__(
        self,
        steps: Mapping[str, StepHandler] | None = None,
        *,
        bus: EventBus | None = None,
        context: Mapping[str, Any] | None = None,
        max_steps: int = 0,
        name: str | None = None,
    ) -> None:
        self._steps: dict[str, StepHandler] = dict(steps or {})
        self.bus = bus or EventBus()
        self.context: dict[str, Any] = dict(context or {})
        self.max_steps = max_steps
        self.name = name
        self.state = RunState.IDLE
        self.result: Any = None
        self.error: BaseException | None = None
        self.steps_executed = 0

    @property
    def event_types(self) -> list[str]:
        return list(self._steps)

    def add_step(self, event_type: str, handler: StepHandler) -> None:
        if self.state is not RunState.IDLE:
            raise IllegalTransitionError(f"Cannot add steps to a {self.state.value} workflow")
        self._steps[event_type] = handler

    def _transition(self, to: RunState) -> None:
        allowed = ALLOWED_TRANSITIONS.get(self.state, set())
        if to not in allowed:
            raise IllegalTransitionError(f"Illegal transition: {self.state.value} -> {to.value}")
        self.state = to

    async def execute(self, initial_input: Any = None) -> Any:
        """Run from a start event carrying ``initial_input`` to the stop event.

        Returns:
            The stop event's data.

        Raises:
            ExecutionError: a handler or a bus observer failed, no handler
                matched, or a handler returned no event.
            IllegalTransitionError: the workflow was already executed.
        """

        self._transition(RunState.RUNNING)
        log_extra = {"workflow": self.name}
        logger.info("Workflow run started", extra=log_extra)

        pending: deque[RuntimeEvent] = deque()
        subscription = self.bus.subscribe(pending.append)
        try:
            await self._publish(start_event(initial_input))
            while pending:
                event = pending.popleft()
                if event.type == WORKFLOW_STOP:
                    self.result = event.data
                    self._transition(RunState.COMPLETED)
                    logger.info(
                        "Workflow run completed",
                        extra={**log_extra, "steps": self.steps_executed},
                    )
                    return event.data

                next_event = await self._dispatch(event)
                await self._publish(next_event)

            raise ExecutionError(f"Workflow ended without a {WORKFLOW_STOP} event")
        except BaseException as e:
            if self.state is RunState.RUNNING:
                self.error = e
                self._transition(RunState.FAILED)
                logger.info(
                    "Workflow run failed",
                    extra={**log_extra, "steps": self.steps_executed, "error": str(e)},
                )
            raise
        finally:
            subscription.unsubscribe()

    async def _dispatch(self, event: RuntimeEvent) -> RuntimeEvent:
        step = self._steps.get(event.type)
        if step is None:
            raise ExecutionError(f"no handler for event type {event.type}", event_type=event.type)

        if self.max_steps and self.steps_executed >= self.max_steps:
            raise ExecutionError(
                f"Workflow exceeded the limit of {self.max_steps} steps at event type {event.type}",
                event_type=event.type,
            )
        self.steps_executed += 1

        logger.debug("Dispatching event", extra={"workflow": self.name, "event_type": event.type})
        try:
            returned = await step(event, self.context)
        except Exception as e:
            raise ExecutionError(
                f"Step for event type {event.type} failed: {type(e).__name__}: {e}",
                event_type=event.type,
            ) from e

        next_event = coerce_event(returned, emitted_by=event.type)
        if next_event is None:
            raise ExecutionError(
                f"Step for event type {event.type} returned no event", event_type=event.type
            )
        return next_event

    async def _publish(self, event: RuntimeEvent) -> None:
        try:
            await self.bus.publish(event)
        except ExecutionError:
            raise
        except Exception as e:
            raise ExecutionError(
                f"Event observer failed on event type {event.type}: {type(e).__name__}: {e}",
                event_type=event.type,
            ) from e
