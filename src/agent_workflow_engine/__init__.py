"""Agent Workflow Engine.

Runs declarative workflow documents: named events, Python step handlers, and
the tools and LLM agents those handlers call. Provides:
- DSL validation and handler compilation
- an event-driven runtime with an explicit run state machine
- natural-language DSL generation
- local JSON persistence for workflows and their agents
"""

__version__ = "0.1.0"

from agent_workflow_engine.core.config import EngineConfig
from agent_workflow_engine.core.service import ExecutionResult, WorkflowService

__all__ = ["__version__", "EngineConfig", "ExecutionResult", "WorkflowService"]
