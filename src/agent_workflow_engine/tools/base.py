"""Tool handles and toolkits.

A tool is an async callable taking a single JSON-like argument and returning a
JSON-like result. Toolkits group related tools and are indexed by the catalog.
"""

from __future__ import annotations

import asyncio
import inspect
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

ToolFunction = Callable[[dict[str, Any]], Awaitable[Any] | Any]


@dataclass(frozen=True, slots=True)
class ToolMetadata:
    name: str
    description: str
    parameters: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}, "required": []}
    )

    def to_openai_tool(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


@dataclass(frozen=True, slots=True)
class FunctionTool:
    """An invocable tool handle.

    Workflow handlers call it directly: ``await getCurrentTime({"timezone": "UTC"})``.
    Synchronous functions run in a worker thread.
    """

    metadata: ToolMetadata
    fn: ToolFunction

    @classmethod
    def from_function(
        cls,
        fn: ToolFunction,
        *,
        name: str,
        description: str,
        parameters: dict[str, Any] | None = None,
    ) -> FunctionTool:
        metadata = (
            ToolMetadata(name=name, description=description, parameters=parameters)
            if parameters is not None
            else ToolMetadata(name=name, description=description)
        )
        return cls(metadata=metadata, fn=fn)

    @property
    def name(self) -> str:
        return self.metadata.name

    async def __call__(self, args: Mapping[str, Any] | None = None) -> Any:
        payload = dict(args or {})
        if inspect.iscoroutinefunction(self.fn):
            return await self.fn(payload)
        result = await asyncio.to_thread(self.fn, payload)
        if inspect.isawaitable(result):
            return await result
        return result


class Toolkit(ABC):
    """A named group of tools."""

    toolkit_id: str
    name: str
    description: str = ""

    def __init__(self) -> None:
        self._tools: list[FunctionTool] | None = None

    @abstractmethod
    def init_tools(self) -> list[FunctionTool]:
        """Build the toolkit's tool handles."""

    def get_tools(self) -> list[FunctionTool]:
        if self._tools is None:
            self._tools = self.init_tools()
        return list(self._tools)
