"""In-process tool catalog: tool name -> invocable handle."""

from __future__ import annotations

import logging
from typing import Protocol

from agent_workflow_engine.errors import ToolNotFoundError
from agent_workflow_engine.tools.base import FunctionTool, Toolkit, ToolMetadata

logger = logging.getLogger(__name__)


class ToolRegistry(Protocol):
    """Lookup contract the workflow engine depends on."""

    def get_tool_by_name(self, name: str) -> FunctionTool: ...


class ToolCatalog:
    """Index of registered toolkits.

    Tool names are globally unique across toolkits; registering a toolkit whose
    tool name is already taken fails loudly.
    """

    def __init__(self, toolkits: list[Toolkit] | None = None) -> None:
        self._toolkits: dict[str, Toolkit] = {}
        self._owner: dict[str, str] = {}
        for toolkit in toolkits or []:
            self.register(toolkit)

    def register(self, toolkit: Toolkit) -> None:
        if toolkit.toolkit_id in self._toolkits:
            raise ValueError(f"Toolkit already registered: {toolkit.toolkit_id}")
        for tool in toolkit.get_tools():
            owner = self._owner.get(tool.name)
            if owner is not None:
                raise ValueError(f"Tool {tool.name} already provided by toolkit {owner}")
        for tool in toolkit.get_tools():
            self._owner[tool.name] = toolkit.toolkit_id
        self._toolkits[toolkit.toolkit_id] = toolkit
        logger.debug(
            "Toolkit registered",
            extra={"toolkit": toolkit.toolkit_id, "tools": len(toolkit.get_tools())},
        )

    def get_tool_by_name(self, name: str) -> FunctionTool:
        toolkit_id = self._owner.get(name)
        if toolkit_id is None:
            raise ToolNotFoundError(name)
        toolkit = self._toolkits[toolkit_id]
        for tool in toolkit.get_tools():
            if tool.name == name:
                return tool
        raise ToolNotFoundError(name, toolkit=toolkit.name)

    def list_tools(self, toolkit_id: str | None = None) -> list[ToolMetadata]:
        """Metadata for every tool, optionally restricted to one toolkit."""
        toolkits = (
            [self._toolkits[toolkit_id]] if toolkit_id is not None else self._toolkits.values()
        )
        return [tool.metadata for toolkit in toolkits for tool in toolkit.get_tools()]

    def tool_names(self) -> list[str]:
        return sorted(self._owner)
