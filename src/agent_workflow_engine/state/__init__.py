"""Persistence for workflow documents and workflow agents."""

from agent_workflow_engine.state.store import (
    WorkflowAgentRecord,
    WorkflowAgentStore,
    WorkflowRecord,
    WorkflowStore,
)

__all__ = [
    "WorkflowAgentRecord",
    "WorkflowAgentStore",
    "WorkflowRecord",
    "WorkflowStore",
]
