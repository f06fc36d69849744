"""Agents: LLM-backed units exposed through ``run``."""

from agent_workflow_engine.agents.agent import AgentReply, LLMAgent
from agent_workflow_engine.agents.factory import (
    AgentFactory,
    AgentHandle,
    LLMAgentFactory,
    build_agent_prompt,
)

__all__ = [
    "AgentFactory",
    "AgentHandle",
    "AgentReply",
    "LLMAgent",
    "LLMAgentFactory",
    "build_agent_prompt",
]
