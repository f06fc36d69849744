"""Tool catalog and built-in toolkits."""

from agent_workflow_engine.tools.base import FunctionTool, Toolkit, ToolMetadata
from agent_workflow_engine.tools.catalog import ToolCatalog, ToolRegistry
from agent_workflow_engine.tools.toolkits import CommonToolkit, ToolExplorerToolkit


def build_default_catalog() -> ToolCatalog:
    """Catalog with the common tools plus the explorer over them."""
    catalog = ToolCatalog([CommonToolkit()])
    catalog.register(ToolExplorerToolkit(catalog))
    return catalog


__all__ = [
    "CommonToolkit",
    "FunctionTool",
    "ToolCatalog",
    "ToolExplorerToolkit",
    "ToolMetadata",
    "ToolRegistry",
    "Toolkit",
    "build_default_catalog",
]
