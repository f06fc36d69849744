"""LLM-backed conversational agent exposed through a single ``run`` call."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from agent_workflow_engine.llm.provider import LLMProvider
from agent_workflow_engine.tools.base import FunctionTool

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code fence, if any."""
    stripped = text.strip()
    match = _FENCE_RE.match(stripped)
    return match.group(1) if match else stripped


@dataclass(frozen=True, slots=True)
class AgentReply:
    """Reply of one agent run.

    ``data["result"]`` always holds the raw reply text. When the reply is a JSON
    object its keys are merged into ``data`` as well.
    """

    data: dict[str, Any] = field(default_factory=dict)

    @property
    def text(self) -> str:
        return str(self.data.get("result", ""))

    @classmethod
    def from_text(cls, text: str) -> AgentReply:
        data: dict[str, Any] = {}
        try:
            decoded = json.loads(strip_code_fence(text))
        except json.JSONDecodeError:
            decoded = None
        if isinstance(decoded, dict):
            data.update(decoded)
        data["result"] = text
        return cls(data=data)


class LLMAgent:
    """A prompt plus a tool subset, driven by an LLM provider.

    Tool errors propagate to the caller; the agent does not retry.
    """

    def __init__(
        self,
        *,
        provider: LLMProvider,
        prompt: str,
        tools: list[FunctionTool] | None = None,
        max_tool_iterations: int = 8,
    ) -> None:
        self.provider = provider
        self.prompt = prompt
        self.tools = {tool.name: tool for tool in tools or []}
        self.max_tool_iterations = max_tool_iterations

    def __repr__(self) -> str:
        return f"LLMAgent(tools={sorted(self.tools)!r})"

    async def run(self, input: Any) -> AgentReply:  # noqa: A002 (input)
        user_message = input if isinstance(input, str) else json.dumps(input, ensure_ascii=False)
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": self.prompt},
            {"role": "user", "content": user_message},
        ]
        specs = [tool.metadata.to_openai_tool() for tool in self.tools.values()] or None

        for iteration in range(self.max_tool_iterations):
            response = await self.provider.chat(messages, tools=specs)
            if not response.tool_calls:
                return AgentReply.from_text(response.content)

            messages.append(response.to_message())
            for call in response.tool_calls:
                logger.debug(
                    "Agent tool call",
                    extra={"tool": call.name, "iteration": iteration},
                )
                tool = self.tools.get(call.name)
                if tool is None:
                    result: Any = {"error": f"Unknown tool: {call.name}"}
                else:
                    result = await tool(call.arguments)
                messages.append(
                    {
                        "role": "tool",
                        "tool_call_id": call.id,
                        "content": result
                        if isinstance(result, str)
                        else json.dumps(result, ensure_ascii=False, default=str),
                    }
                )

        logger.warning(
            "Agent reached tool iteration limit; requesting final answer",
            extra={"max_tool_iterations": self.max_tool_iterations},
        )
        response = await self.provider.chat(messages)
        return AgentReply.from_text(response.content)
