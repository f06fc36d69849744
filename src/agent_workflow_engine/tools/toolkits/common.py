from __future__ import annotations

from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from agent_workflow_engine.tools.base import FunctionTool, Toolkit

DEFAULT_TIMEZONE = "Asia/Shanghai"


class CommonToolkit(Toolkit):
    """Basic utility tools for common operations."""

    toolkit_id = "common-toolkit-01"
    name = "Common Tools"
    description = "Basic utility tools for common operations"

    def init_tools(self) -> list[FunctionTool]:
        return [
            FunctionTool.from_function(
                self.get_current_time,
                name="getCurrentTime",
                description="Get the current time in a specific timezone.",
                parameters={
                    "type": "object",
                    "properties": {
                        "timezone": {
                            "type": "string",
                            "description": (
                                'IANA timezone identifier, e.g. "Asia/Shanghai", "UTC". '
                                f"Defaults to {DEFAULT_TIMEZONE}."
                            ),
                        }
                    },
                    "required": [],
                },
            )
        ]

    async def get_current_time(self, params: dict[str, Any]) -> str:
        tz_name = params.get("timezone") or DEFAULT_TIMEZONE
        try:
            return datetime.now(ZoneInfo(str(tz_name))).strftime("%Y-%m-%d %H:%M:%S")
        except (KeyError, ValueError) as e:
            return f"Failed to get current time: {e}"
