"""LLM package initialization."""

from agent_workflow_engine.llm.factory import LLMFactory
from agent_workflow_engine.llm.provider import ChatResponse, LLMProvider, ToolCall

__all__ = [
    "ChatResponse",
    "LLMFactory",
    "LLMProvider",
    "ToolCall",
]
