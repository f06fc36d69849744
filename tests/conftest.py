"""Test configuration and fixtures."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any

import pytest

from agent_workflow_engine.agents.agent import AgentReply
from agent_workflow_engine.core.config import EngineConfig, LLMConfig, StoreConfig
from agent_workflow_engine.core.service import WorkflowService
from agent_workflow_engine.state.store import WorkflowAgentStore, WorkflowStore
from agent_workflow_engine.tools.base import FunctionTool, Toolkit
from agent_workflow_engine.tools.catalog import ToolCatalog
from agent_workflow_engine.tools.toolkits import CommonToolkit

Reply = str | Callable[[str, Any], str]


class FakeAgent:
    """Agent double: records inputs and answers with a canned reply."""

    def __init__(self, prompt: str, tool_names: list[str], reply: Reply) -> None:
        self.prompt = prompt
        self.tool_names = tool_names
        self.inputs: list[Any] = []
        self._reply = reply

    async def run(self, input: Any) -> AgentReply:  # noqa: A002
        self.inputs.append(input)
        text = self._reply(self.prompt, input) if callable(self._reply) else self._reply
        return AgentReply.from_text(text)


class FakeAgentFactory:
    def __init__(self, reply: Reply = "ok", delay: float = 0) -> None:
        self.reply = reply
        self.delay = delay
        self.created: list[FakeAgent] = []

    async def create_agent_instance(self, prompt: str, tool_names: list[str]) -> FakeAgent:
        if self.delay:
            await asyncio.sleep(self.delay)
        agent = FakeAgent(prompt, list(tool_names), self.reply)
        self.created.append(agent)
        return agent


class MathToolkit(Toolkit):
    toolkit_id = "math-toolkit-test"
    name = "Math Tools"
    description = "Arithmetic helpers for tests"

    def __init__(self) -> None:
        super().__init__()
        self.boom_calls: list[dict[str, Any]] = []

    def init_tools(self) -> list[FunctionTool]:
        return [
            FunctionTool.from_function(self.add, name="add", description="Add a and b"),
            FunctionTool.from_function(self.echo, name="echo", description="Return the input"),
            FunctionTool.from_function(self.boom, name="boom", description="Always fails"),
            FunctionTool.from_function(self.nap, name="nap", description="Sleep for a while"),
        ]

    async def add(self, params: dict[str, Any]) -> int:
        return params["a"] + params["b"]

    def echo(self, params: dict[str, Any]) -> dict[str, Any]:
        return params

    async def boom(self, params: dict[str, Any]) -> None:
        self.boom_calls.append(params)
        raise RuntimeError("tool exploded")

    async def nap(self, params: dict[str, Any]) -> str:
        await asyncio.sleep(params.get("seconds", 0))
        return "rested"


def build_dsl(
    steps: Mapping[str, str],
    *,
    tools: Iterable[str] = (),
    agents: Iterable[Mapping[str, Any]] = (),
    events: Iterable[str] | None = None,
    workflow_id: str = "test_workflow",
) -> dict[str, Any]:
    """A minimal valid document whose steps map event type -> handler source."""
    event_types = list(events) if events is not None else list(
        dict.fromkeys(["WORKFLOW_START", *steps, "WORKFLOW_STOP"])
    )
    return {
        "id": workflow_id,
        "name": "Test workflow",
        "description": "Workflow used in unit tests",
        "version": "v1",
        "tools": list(tools),
        "agents": [dict(agent) for agent in agents],
        "events": [{"type": t, "data": {}} for t in event_types],
        "steps": [{"event": event, "handle": source} for event, source in steps.items()],
    }


@pytest.fixture
def dsl_factory() -> Callable[..., dict[str, Any]]:
    return build_dsl


@pytest.fixture
def temp_store_dir(tmp_path: Path) -> Path:
    """Provide a temporary store directory."""
    store_dir = tmp_path / ".workflows"
    store_dir.mkdir()
    return store_dir


@pytest.fixture
def llm_config() -> LLMConfig:
    """Provide a test LLM configuration."""
    return LLMConfig(
        provider="openai",
        openai_api_key="test-key",
        openai_model="gpt-4o-mini",
    )


@pytest.fixture
def store_config(temp_store_dir: Path) -> StoreConfig:
    return StoreConfig(storage_path=temp_store_dir)


@pytest.fixture
def engine_config(llm_config: LLMConfig, store_config: StoreConfig) -> EngineConfig:
    """Provide a test engine configuration."""
    return EngineConfig(
        log_level="DEBUG",
        debug=True,
        llm=llm_config,
        store=store_config,
    )


@pytest.fixture
def math_toolkit() -> MathToolkit:
    return MathToolkit()


@pytest.fixture
def tool_catalog(math_toolkit: MathToolkit) -> ToolCatalog:
    return ToolCatalog([CommonToolkit(), math_toolkit])


@pytest.fixture
def agent_factory() -> FakeAgentFactory:
    return FakeAgentFactory()


@pytest.fixture
def service(
    tool_catalog: ToolCatalog,
    agent_factory: FakeAgentFactory,
    engine_config: EngineConfig,
) -> WorkflowService:
    return WorkflowService(
        tools=tool_catalog,
        agent_factory=agent_factory,
        store=WorkflowStore(engine_config.store.workflows_file),
        agent_store=WorkflowAgentStore(engine_config.store.workflow_agents_file),
        config=engine_config,
    )
