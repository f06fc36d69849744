"""Abstract base class for LLM providers."""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ToolCall:
    """A function call requested by the model."""

    id: str
    name: str
    arguments: dict[str, Any]


@dataclass(frozen=True, slots=True)
class ChatResponse:
    content: str
    tool_calls: list[ToolCall] = field(default_factory=list)

    def to_message(self) -> dict[str, Any]:
        """Render as an assistant message suitable for the next chat round."""
        message: dict[str, Any] = {"role": "assistant", "content": self.content}
        if self.tool_calls:
            message["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {
                        "name": call.name,
                        "arguments": json.dumps(call.arguments, ensure_ascii=False),
                    },
                }
                for call in self.tool_calls
            ]
        return message


def parse_tool_arguments(raw: object) -> dict[str, Any]:
    """Decode tool-call arguments, which providers send as a JSON string."""
    if isinstance(raw, dict):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        return {}
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Discarding malformed tool-call arguments", extra={"raw": raw[:200]})
        return {}
    return decoded if isinstance(decoded, dict) else {"input": decoded}


class LLMProvider(ABC):
    """Abstract base class for LLM providers.

    This interface allows pluggable LLM backends (OpenAI, LLaMA, etc.)
    """

    @abstractmethod
    async def chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        **kwargs: Any,
    ) -> ChatResponse:
        """Generate a chat completion from messages.

        Args:
            messages: OpenAI-style message dicts.
            tools: Optional function-calling tool specs the model may invoke.
            max_tokens: Maximum tokens to generate.
            temperature: Sampling temperature.
            **kwargs: Additional provider-specific parameters.

        Returns:
            The assistant reply, including any requested tool calls.
        """

    async def generate(
        self,
        prompt: str,
        max_tokens: int | None = None,
        temperature: float | None = None,
        **kwargs: Any,
    ) -> str:
        """Generate a single completion for a user prompt."""
        response = await self.chat(
            [{"role": "user", "content": prompt}],
            max_tokens=max_tokens,
            temperature=temperature,
            **kwargs,
        )
        return response.content

    @abstractmethod
    def count_tokens(self, text: str) -> int:
        """Count the number of tokens in text."""
