"""Built-in toolkits."""

from agent_workflow_engine.tools.toolkits.common import CommonToolkit
from agent_workflow_engine.tools.toolkits.explorer import ToolExplorerToolkit

__all__ = ["CommonToolkit", "ToolExplorerToolkit"]
