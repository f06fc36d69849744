"""OpenAI LLM provider implementation."""

import logging
from typing import Any

from openai import AsyncOpenAI

from agent_workflow_engine.core.config import LLMConfig
from agent_workflow_engine.llm.provider import (
    ChatResponse,
    LLMProvider,
    ToolCall,
    parse_tool_arguments,
)

logger = logging.getLogger(__name__)


class OpenAIProvider(LLMProvider):
    """OpenAI API provider implementation."""

    def __init__(self, config: LLMConfig, client: AsyncOpenAI | None = None) -> None:
        """Initialize the OpenAI provider.

        Args:
            config: LLM configuration.
            client: Pre-built client, mainly for tests.

        Raises:
            ValueError: If API key is not provided.
        """
        if client is None and not config.openai_api_key:
            raise ValueError("OpenAI API key is required")

        self.config = config
        self.client = client or AsyncOpenAI(
            api_key=config.openai_api_key,
            base_url=config.openai_base_url,
        )
        self.model = config.openai_model
        self.temperature = config.openai_temperature

        logger.info(f"OpenAI provider initialized with model: {self.model}")

    async def chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        **kwargs: Any,
    ) -> ChatResponse:
        temp = temperature if temperature is not None else self.temperature
        if tools:
            kwargs["tools"] = tools
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens

        logger.debug(f"Generating chat completion with {len(messages)} messages")

        response = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,  # type: ignore[arg-type]
            temperature=temp,
            **kwargs,
        )

        message = response.choices[0].message
        calls = [
            ToolCall(
                id=call.id,
                name=call.function.name,
                arguments=parse_tool_arguments(call.function.arguments),
            )
            for call in message.tool_calls or []
        ]
        content = message.content or ""
        logger.debug(f"Generated {len(content)} characters, {len(calls)} tool calls")

        return ChatResponse(content=content, tool_calls=calls)

    def count_tokens(self, text: str) -> int:
        """Count tokens using a simple approximation.

        Note:
            This is a rough approximation. For accurate counts,
            use tiktoken library with the specific model's encoding.
        """
        # Rough approximation: 1 token ≈ 4 characters
        return len(text) // 4
