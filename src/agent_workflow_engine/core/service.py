"""Workflow orchestration service.

Per execution request the service validates the DSL document, resolves the
tools and agents it names into run-scoped registries, compiles every step
against them and executes a fresh :class:`Workflow`. Nothing is executed until
the whole document has validated and compiled.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel

from agent_workflow_engine.agents.factory import AgentFactory, AgentHandle, build_agent_prompt
from agent_workflow_engine.core.config import EngineConfig
from agent_workflow_engine.errors import (
    AgentResolutionError,
    ResolutionError,
    WorkflowTimeoutError,
)
from agent_workflow_engine.state.store import (
    WorkflowAgentRecord,
    WorkflowAgentStore,
    WorkflowRecord,
    WorkflowStore,
)
from agent_workflow_engine.tools.base import FunctionTool
from agent_workflow_engine.tools.catalog import ToolRegistry
from agent_workflow_engine.tools.toolkits.explorer import EXPLORER_TOOL_NAMES
from agent_workflow_engine.workflow.compiler import compile_steps
from agent_workflow_engine.workflow.definition import AgentDefinition, WorkflowDefinition
from agent_workflow_engine.workflow.generator import DslGenerator
from agent_workflow_engine.workflow.runtime import Workflow
from agent_workflow_engine.workflow.validation import parse_definition, validate_dsl

logger = logging.getLogger(__name__)


class ExecutionResult(BaseModel):
    workflow_id: str | None = None
    input: Any = None
    output: Any = None
    executed_at: str


class WorkflowService:
    """Façade over validation, compilation, execution and generation.

    Agent instances are cached per (workflow id, agent name) for the lifetime
    of the service. Runs without a workflow id never share agents.
    """

    def __init__(
        self,
        *,
        tools: ToolRegistry,
        agent_factory: AgentFactory,
        store: WorkflowStore | None = None,
        agent_store: WorkflowAgentStore | None = None,
        config: EngineConfig | None = None,
        generator_tool_names: list[str] | None = None,
    ) -> None:
        self.tools = tools
        self.agent_factory = agent_factory
        self.store = store
        self.agent_store = agent_store
        self.config = config or EngineConfig()
        self.generator_tool_names = (
            list(generator_tool_names)
            if generator_tool_names is not None
            else list(EXPLORER_TOOL_NAMES)
        )
        self._agent_cache: dict[tuple[str, str], AgentHandle] = {}
        self._agent_locks: dict[tuple[str, str], asyncio.Lock] = {}

    @classmethod
    def from_config(cls, config: EngineConfig) -> WorkflowService:
        """Wire the default catalog, the configured LLM and the JSON stores."""
        from agent_workflow_engine.agents.factory import LLMAgentFactory
        from agent_workflow_engine.llm.factory import LLMFactory
        from agent_workflow_engine.tools import build_default_catalog

        catalog = build_default_catalog()
        factory = LLMAgentFactory(
            provider_factory=lambda: LLMFactory.create(config.llm),
            tools=catalog,
            max_tool_iterations=config.max_tool_iterations,
        )
        return cls(
            tools=catalog,
            agent_factory=factory,
            store=WorkflowStore(config.store.workflows_file),
            agent_store=WorkflowAgentStore(config.store.workflow_agents_file),
            config=config,
        )

    # -- validation -------------------------------------------------------

    def validate_only(self, dsl: Any) -> bool:
        validate_dsl(dsl)
        return True

    def check_dsl(self, dsl: Any) -> WorkflowDefinition:
        """Validate a document and compile its handlers without resolving anything.

        Tools and agents are bound to placeholders, so handler shape errors
        surface here while unknown tool names do not.
        """
        definition = parse_definition(dsl)
        compile_steps(
            definition,
            MappingProxyType(dict.fromkeys(definition.tools)),
            MappingProxyType(dict.fromkeys(definition.agent_names)),
        )
        return definition

    # -- building a run ---------------------------------------------------

    def build_tool_registry(self, definition: WorkflowDefinition) -> Mapping[str, FunctionTool]:
        registry: dict[str, FunctionTool] = {}
        for name in definition.tools:
            if name not in registry:
                registry[name] = self.tools.get_tool_by_name(name)
        return MappingProxyType(registry)

    async def build_agent_registry(
        self, definition: WorkflowDefinition, workflow_id: str | None = None
    ) -> Mapping[str, AgentHandle]:
        registry: dict[str, AgentHandle] = {}
        for agent in definition.agents:
            if workflow_id:
                registry[agent.name] = await self._cached_agent(agent, workflow_id)
            else:
                registry[agent.name] = await self._materialise_agent(agent, None)
        return MappingProxyType(registry)

    async def _cached_agent(self, agent: AgentDefinition, workflow_id: str) -> AgentHandle:
        key = (workflow_id, agent.name)
        # Concurrent runs of one workflow must not create the same agent twice.
        async with self._agent_locks.setdefault(key, asyncio.Lock()):
            cached = self._agent_cache.get(key)
            if cached is not None:
                logger.debug(
                    "Reusing workflow agent",
                    extra={"workflow_id": workflow_id, "agent_name": agent.name},
                )
                return cached
            handle = await self._materialise_agent(agent, workflow_id)
            self._agent_cache[key] = handle
            return handle

    async def _materialise_agent(
        self, agent: AgentDefinition, workflow_id: str | None
    ) -> AgentHandle:
        prompt, output, tools = agent.prompt, agent.output, agent.tools
        if workflow_id and self.agent_store is not None:
            record, _created = self.agent_store.get_or_create(
                WorkflowAgentRecord(
                    workflow_id=workflow_id,
                    agent_name=agent.name,
                    description=agent.description,
                    prompt=agent.prompt,
                    output=agent.output,
                    tools=agent.tools,
                )
            )
            prompt, output, tools = record.prompt, record.output, record.tools

        try:
            return await self.agent_factory.create_agent_instance(
                build_agent_prompt(prompt, output), list(tools)
            )
        except ResolutionError:
            raise
        except Exception as e:
            raise AgentResolutionError(
                f"Agent {agent.name} could not be created: {e}", field=agent.name
            ) from e

    async def from_dsl(
        self,
        dsl: Any,
        *,
        workflow_id: str | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> Workflow:
        """Validate, resolve and compile a document into a runnable workflow.

        Handlers are compiled against placeholders first so a malformed step
        fails before any agent is created or persisted.
        """
        definition = self.check_dsl(dsl)
        tool_registry = self.build_tool_registry(definition)
        agent_registry = await self.build_agent_registry(definition, workflow_id)
        steps = compile_steps(definition, tool_registry, agent_registry)
        logger.info(
            "Workflow compiled",
            extra={
                "workflow": definition.id,
                "workflow_id": workflow_id,
                "steps": len(steps),
                "tools": len(tool_registry),
                "agents": len(agent_registry),
            },
        )
        return Workflow(
            steps,
            context=context,
            max_steps=self.config.max_steps,
            name=definition.id,
        )

    # -- execution --------------------------------------------------------

    async def _run(self, workflow: Workflow, input: Any) -> Any:  # noqa: A002
        timeout = self.config.execution_timeout_seconds
        if not timeout:
            return await workflow.execute(input)
        try:
            return await asyncio.wait_for(workflow.execute(input), timeout=timeout)
        except TimeoutError as e:
            raise WorkflowTimeoutError(
                f"Workflow {workflow.name} did not finish within {timeout} seconds"
            ) from e

    async def compile_and_run(
        self,
        dsl: Any,
        input: Any,  # noqa: A002
        context: Mapping[str, Any] | None = None,
        *,
        workflow_id: str | None = None,
    ) -> ExecutionResult:
        workflow = await self.from_dsl(dsl, workflow_id=workflow_id, context=context)
        output = await self._run(workflow, input)
        return ExecutionResult(
            workflow_id=workflow_id,
            input=input,
            output=output,
            executed_at=datetime.now(UTC).isoformat(),
        )

    async def execute_workflow(
        self,
        workflow_id: str,
        input: Any,  # noqa: A002
        context: Mapping[str, Any] | None = None,
    ) -> ExecutionResult:
        record = self._require_store().get(workflow_id)
        return await self.compile_and_run(record.dsl, input, context, workflow_id=record.id)

    # -- generation -------------------------------------------------------

    async def generate_dsl(
        self,
        description: str,
        input_shape: dict[str, Any] | None = None,
        output_shape: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        generator = DslGenerator(self.agent_factory, tool_names=self.generator_tool_names)
        return await generator.generate(description, input_shape, output_shape)

    # -- workflow records -------------------------------------------------

    def _require_store(self) -> WorkflowStore:
        if self.store is None:
            raise ValueError("No workflow store configured")
        return self.store

    def create_workflow(
        self, *, name: str, dsl: Any, description: str | None = None
    ) -> WorkflowRecord:
        validate_dsl(dsl)
        return self._require_store().create(name=name, dsl=dict(dsl), description=description)

    def get_workflow(self, workflow_id: str) -> WorkflowRecord:
        return self._require_store().get(workflow_id)

    def list_workflows(self, *, search: str | None = None) -> list[WorkflowRecord]:
        return self._require_store().list_all(search=search)

    def delete_workflow(self, workflow_id: str) -> WorkflowRecord:
        record = self._require_store().soft_delete(workflow_id)
        self.delete_workflow_agents(workflow_id)
        return record

    # -- workflow agents --------------------------------------------------

    def get_workflow_agents(self, workflow_id: str) -> list[WorkflowAgentRecord]:
        if self.agent_store is None:
            return []
        return self.agent_store.list_for_workflow(workflow_id)

    def update_workflow_agent(
        self,
        workflow_id: str,
        agent_name: str,
        *,
        prompt: str | None = None,
        description: str | None = None,
        output: Any = None,
    ) -> WorkflowAgentRecord:
        if self.agent_store is None:
            raise ValueError("No workflow agent store configured")
        record = self.agent_store.update(
            workflow_id, agent_name, prompt=prompt, description=description, output=output
        )
        self._agent_cache.pop((workflow_id, agent_name), None)
        return record

    def delete_workflow_agents(self, workflow_id: str) -> int:
        for key in [k for k in self._agent_cache if k[0] == workflow_id]:
            del self._agent_cache[key]
        for key in [k for k in self._agent_locks if k[0] == workflow_id]:
            del self._agent_locks[key]
        if self.agent_store is None:
            return 0
        return self.agent_store.delete_for_workflow(workflow_id)
