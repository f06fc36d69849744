"""Agent factory: prompt + tool names -> agent handle."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any, Protocol

from agent_workflow_engine.agents.agent import AgentReply, LLMAgent
from agent_workflow_engine.llm.provider import LLMProvider
from agent_workflow_engine.tools.catalog import ToolRegistry

logger = logging.getLogger(__name__)

OUTPUT_INSTRUCTION = (
    "Always reply with content in exactly the following JSON structure, "
    "without any other explanation."
)


class AgentHandle(Protocol):
    async def run(self, input: Any) -> AgentReply: ...  # noqa: A002


class AgentFactory(Protocol):
    """Contract the workflow engine depends on."""

    async def create_agent_instance(self, prompt: str, tool_names: list[str]) -> AgentHandle: ...


def build_agent_prompt(prompt: str, output: Any) -> str:
    """Append the fixed output-shape instruction to an agent prompt."""
    shape = json.dumps(output if output is not None else {}, indent=2, ensure_ascii=False)
    return f"{prompt}\n{OUTPUT_INSTRUCTION}\n{shape}\n"


class LLMAgentFactory:
    """Builds :class:`LLMAgent` instances over one provider and tool registry.

    The provider may be given directly or as a zero-argument factory, in which
    case it is created on the first agent request.
    """

    def __init__(
        self,
        *,
        tools: ToolRegistry,
        provider: LLMProvider | None = None,
        provider_factory: Callable[[], LLMProvider] | None = None,
        max_tool_iterations: int = 8,
    ) -> None:
        if provider is None and provider_factory is None:
            raise ValueError("LLMAgentFactory needs a provider or a provider_factory")
        self._provider = provider
        self._provider_factory = provider_factory
        self.tools = tools
        self.max_tool_iterations = max_tool_iterations

    @property
    def provider(self) -> LLMProvider:
        if self._provider is None:
            assert self._provider_factory is not None
            self._provider = self._provider_factory()
        return self._provider

    async def create_agent_instance(self, prompt: str, tool_names: list[str]) -> LLMAgent:
        # Raises ToolNotFoundError for unknown names.
        handles = [self.tools.get_tool_by_name(name) for name in tool_names]
        logger.debug("Creating agent instance", extra={"tools": list(tool_names)})
        return LLMAgent(
            provider=self.provider,
            prompt=prompt,
            tools=handles,
            max_tool_iterations=self.max_tool_iterations,
        )
