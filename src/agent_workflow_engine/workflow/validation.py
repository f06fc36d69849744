"""DSL validation.

``validate_dsl`` performs the structural checks in a fixed order and fails on
the first problem. ``parse_definition`` additionally builds the typed model and
checks naming invariants that only matter once the document is compiled.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from agent_workflow_engine.errors import WorkflowValidationError
from agent_workflow_engine.workflow.definition import WorkflowDefinition
from agent_workflow_engine.workflow.events import WORKFLOW_START, WORKFLOW_STOP

logger = logging.getLogger(__name__)

REQUIRED_FIELDS: tuple[str, ...] = (
    "id",
    "name",
    "description",
    "version",
    "tools",
    "events",
    "steps",
)

RESERVED_NAMES = frozenset({"event", "context"})


def _event_type(event: object) -> object:
    return event.get("type") if isinstance(event, Mapping) else None


def validate_dsl(doc: Any) -> Any:
    """Check a candidate document; return it unchanged or raise.

    Raises:
        WorkflowValidationError: naming the first failed check.
    """

    if not isinstance(doc, Mapping):
        raise WorkflowValidationError("DSL must be a valid object")

    for name in REQUIRED_FIELDS:
        if name not in doc:
            raise WorkflowValidationError(f"DSL missing required field: {name}", field=name)

    events = doc["events"]
    if not isinstance(events, list) or len(events) < 2:
        raise WorkflowValidationError("DSL must have at least 2 events", field="events")

    types = [_event_type(event) for event in events]
    if WORKFLOW_START not in types:
        raise WorkflowValidationError(f"DSL must have {WORKFLOW_START} event", field="events")
    if WORKFLOW_STOP not in types:
        raise WorkflowValidationError(f"DSL must have {WORKFLOW_STOP} event", field="events")

    steps = doc["steps"]
    if not isinstance(steps, list) or not steps:
        raise WorkflowValidationError("DSL must have at least 1 step", field="steps")

    return doc


def parse_definition(doc: Any) -> WorkflowDefinition:
    """Validate and parse a document into a :class:`WorkflowDefinition`."""

    validate_dsl(doc)

    try:
        definition = WorkflowDefinition.model_validate(dict(doc))
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise WorkflowValidationError(
            f"DSL field {location}: {first['msg']}", field=location
        ) from e

    seen: set[str] = set()
    for agent in definition.agents:
        if agent.name in seen:
            raise WorkflowValidationError(
                f"DSL has duplicate agent name: {agent.name}", field="agents"
            )
        seen.add(agent.name)

    clashes = sorted(seen.intersection(definition.tools))
    if clashes:
        raise WorkflowValidationError(
            f"DSL name used as both tool and agent: {clashes[0]}", field="agents"
        )

    for name in [*definition.tools, *seen]:
        if name in RESERVED_NAMES:
            raise WorkflowValidationError(
                f"DSL tool or agent may not be named {name!r}", field=name
            )

    declared = definition.event_types
    for step in definition.steps:
        if step.event not in declared:
            logger.warning(
                "Step bound to undeclared event type",
                extra={"workflow": definition.id, "event_type": step.event},
            )

    return definition
