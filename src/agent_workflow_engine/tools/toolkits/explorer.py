"""Tools that let an agent discover the catalog (used by DSL generation)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from agent_workflow_engine.errors import ToolNotFoundError
from agent_workflow_engine.tools.base import FunctionTool, Toolkit

if TYPE_CHECKING:
    from agent_workflow_engine.tools.catalog import ToolCatalog


EXPLORER_TOOL_NAMES: tuple[str, ...] = ("listAllTools", "getToolDetail")


class ToolExplorerToolkit(Toolkit):
    toolkit_id = "tool-explorer-toolkit-01"
    name = "Tool Explorer"
    description = "Discover available tools and their parameters"

    def __init__(self, catalog: ToolCatalog) -> None:
        super().__init__()
        self._catalog = catalog

    def init_tools(self) -> list[FunctionTool]:
        return [
            FunctionTool.from_function(
                self.list_all_tools,
                name="listAllTools",
                description="List the name and description of every available tool.",
            ),
            FunctionTool.from_function(
                self.get_tool_detail,
                name="getToolDetail",
                description="Get the description and JSON parameter schema of one tool.",
                parameters={
                    "type": "object",
                    "properties": {"name": {"type": "string", "description": "Tool name"}},
                    "required": ["name"],
                },
            ),
        ]

    async def list_all_tools(self, _params: dict[str, Any]) -> list[dict[str, str]]:
        return [
            {"name": meta.name, "description": meta.description}
            for meta in self._catalog.list_tools()
            if meta.name not in EXPLORER_TOOL_NAMES
        ]

    async def get_tool_detail(self, params: dict[str, Any]) -> dict[str, Any]:
        name = str(params.get("name", ""))
        try:
            tool = self._catalog.get_tool_by_name(name)
        except ToolNotFoundError as e:
            return {"error": e.message}
        return {
            "name": tool.metadata.name,
            "description": tool.metadata.description,
            "parameters": tool.metadata.parameters,
        }
