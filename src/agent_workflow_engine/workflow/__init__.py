"""Workflow DSL engine: validation, compilation and the event-driven runtime."""

from agent_workflow_engine.workflow.bus import EventBus, Subscription
from agent_workflow_engine.workflow.compiler import CompiledStep, compile_step, compile_steps
from agent_workflow_engine.workflow.definition import (
    AgentDefinition,
    EventDefinition,
    StepDefinition,
    WorkflowDefinition,
)
from agent_workflow_engine.workflow.events import WORKFLOW_START, WORKFLOW_STOP, RuntimeEvent
from agent_workflow_engine.workflow.runtime import RunState, Workflow
from agent_workflow_engine.workflow.validation import parse_definition, validate_dsl

__all__ = [
    "WORKFLOW_START",
    "WORKFLOW_STOP",
    "AgentDefinition",
    "CompiledStep",
    "EventBus",
    "EventDefinition",
    "RunState",
    "RuntimeEvent",
    "StepDefinition",
    "Subscription",
    "Workflow",
    "WorkflowDefinition",
    "compile_step",
    "compile_steps",
    "parse_definition",
    "validate_dsl",
]
