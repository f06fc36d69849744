"""Local LLaMA LLM provider implementation."""

import asyncio
import logging
from typing import Any

from agent_workflow_engine.core.config import LLMConfig
from agent_workflow_engine.llm.provider import (
    ChatResponse,
    LLMProvider,
    ToolCall,
    parse_tool_arguments,
)

logger = logging.getLogger(__name__)


class LLaMAProvider(LLMProvider):
    """Local LLaMA model provider implementation.

    Requires llama-cpp-python to be installed:
        pip install "agent-workflow-engine[llama]"

    llama-cpp is synchronous, so completions run in a worker thread to keep the
    event loop free while a workflow handler awaits an agent.
    """

    def __init__(self, config: LLMConfig) -> None:
        """Initialize the LLaMA provider.

        Raises:
            ValueError: If model path is not provided.
            ImportError: If llama-cpp-python is not installed.
        """
        if not config.llama_model_path:
            raise ValueError("LLaMA model path is required")

        try:
            from llama_cpp import Llama
        except ImportError as e:
            raise ImportError(
                "llama-cpp-python is required for LLaMA provider. "
                'Install it with: pip install "agent-workflow-engine[llama]"'
            ) from e

        self.config = config

        logger.info(f"Loading LLaMA model from: {config.llama_model_path}")

        self.llm = Llama(
            model_path=str(config.llama_model_path),
            n_ctx=config.llama_n_ctx,
            n_threads=config.llama_n_threads,
            verbose=False,
        )

        logger.info("LLaMA model loaded successfully")

    async def chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        **kwargs: Any,
    ) -> ChatResponse:
        if tools:
            kwargs["tools"] = tools

        logger.debug(f"Generating chat completion with {len(messages)} messages")

        result = await asyncio.to_thread(
            self.llm.create_chat_completion,
            messages=messages,
            max_tokens=max_tokens or 512,
            temperature=temperature if temperature is not None else 0.7,
            **kwargs,
        )

        message = result["choices"][0]["message"]
        calls = [
            ToolCall(
                id=call.get("id", f"call_{index}"),
                name=call["function"]["name"],
                arguments=parse_tool_arguments(call["function"].get("arguments")),
            )
            for index, call in enumerate(message.get("tool_calls") or [])
        ]
        content = message.get("content") or ""
        logger.debug(f"Generated {len(content)} characters")

        return ChatResponse(content=content, tool_calls=calls)

    def count_tokens(self, text: str) -> int:
        """Count tokens using LLaMA tokenizer."""
        tokens = self.llm.tokenize(text.encode("utf-8"))
        return len(tokens)
