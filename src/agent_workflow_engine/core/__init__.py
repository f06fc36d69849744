"""Core package initialization."""

from agent_workflow_engine.core.config import EngineConfig, LLMConfig, StoreConfig
from agent_workflow_engine.core.service import ExecutionResult, WorkflowService

__all__ = [
    "EngineConfig",
    "ExecutionResult",
    "LLMConfig",
    "StoreConfig",
    "WorkflowService",
]
