"""Typed model of a workflow DSL document."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

WORKFLOW_ID_PATTERN = r"^[A-Za-z][A-Za-z0-9_]{0,99}$"
VERSION_PATTERN = r"^v\d+(\.\d+)*$"
EVENT_TYPE_PATTERN = r"^[A-Z][A-Z0-9_]*$"
NAME_PATTERN = r"^[A-Za-z][A-Za-z0-9_]*$"


class AgentDefinition(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = Field(min_length=1)
    description: str = ""
    prompt: str = ""
    output: Any = Field(default_factory=dict, description="Expected JSON reply shape")
    tools: list[str] = Field(default_factory=list)


class EventDefinition(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str = Field(min_length=1)
    data: Any = Field(default_factory=dict, description="Documentation of the payload shape")


class StepDefinition(BaseModel):
    model_config = ConfigDict(extra="allow")

    event: str = Field(min_length=1, description="Event type this step handles")
    handle: str = Field(
        min_length=1,
        description="Handler source: a single `async def handle(event, context): ...`",
    )


class WorkflowDefinition(BaseModel):
    """The DSL document.

    Naming conventions (id, version, event types) are documented by the patterns
    above and the generator schema; stored documents are not rejected for them.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    description: str
    version: str
    tools: list[str]
    agents: list[AgentDefinition] = Field(default_factory=list)
    events: list[EventDefinition]
    steps: list[StepDefinition]
    content: dict[str, Any] | None = None

    @property
    def event_types(self) -> set[str]:
        return {event.type for event in self.events}

    @property
    def agent_names(self) -> list[str]:
        return [agent.name for agent in self.agents]
