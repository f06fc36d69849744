"""Unit tests for the workflow orchestration service."""

from __future__ import annotations

import asyncio
import json

import pytest

from agent_workflow_engine.core.service import ExecutionResult, WorkflowService
from agent_workflow_engine.errors import (
    AgentResolutionError,
    ExecutionError,
    NotFoundError,
    ToolNotFoundError,
    WorkflowTimeoutError,
    WorkflowValidationError,
)

WRITER = {
    "name": "Writer",
    "description": "Writes a reply",
    "prompt": "You write short replies.",
    "output": {"text": "string"},
    "tools": [],
}

ADD_THEN_STOP = {
    "WORKFLOW_START": (
        "async def handle(event, context):\n"
        "    total = await add({'a': event.data['a'], 'b': event.data['b']})\n"
        "    context['total'] = total\n"
        "    return {'type': 'DOUBLE', 'data': {'total': total}}"
    ),
    "DOUBLE": (
        "async def handle(event, context):\n"
        "    return {'type': 'WORKFLOW_STOP', 'data': {'result': event.data['total'] * 2,"
        " 'seen': context['total']}}"
    ),
}

ASK_WRITER = {
    "WORKFLOW_START": (
        "async def handle(event, context):\n"
        "    reply = await Writer.run(event.data['topic'])\n"
        "    return {'type': 'WORKFLOW_STOP', 'data': {'text': reply.data['text']}}"
    )
}


@pytest.mark.asyncio
async def test_compile_and_run_multi_step(service: WorkflowService, dsl_factory) -> None:
    doc = dsl_factory(ADD_THEN_STOP, tools=["add"])

    result = await service.compile_and_run(doc, {"a": 2, "b": 3})

    assert isinstance(result, ExecutionResult)
    assert result.output == {"result": 10, "seen": 5}
    assert result.input == {"a": 2, "b": 3}
    assert result.workflow_id is None
    assert result.executed_at


@pytest.mark.asyncio
async def test_context_argument_seeds_the_run(service: WorkflowService, dsl_factory) -> None:
    doc = dsl_factory(
        {
            "WORKFLOW_START": (
                "async def handle(event, context):\n"
                "    return {'type': 'WORKFLOW_STOP', 'data': {'user': context['user']}}"
            )
        }
    )

    result = await service.compile_and_run(doc, {}, {"user": "ada"})

    assert result.output == {"user": "ada"}


@pytest.mark.asyncio
async def test_agents_receive_prompt_with_output_shape(
    service: WorkflowService, agent_factory, dsl_factory
) -> None:
    agent_factory.reply = '{"text": "hello there"}'
    doc = dsl_factory(ASK_WRITER, agents=[WRITER])

    result = await service.compile_and_run(doc, {"topic": "greetings"})

    assert result.output == {"text": "hello there"}
    (agent,) = agent_factory.created
    assert agent.prompt.startswith("You write short replies.\n")
    assert '"text": "string"' in agent.prompt
    assert agent.inputs == ["greetings"]


@pytest.mark.asyncio
async def test_validation_failure_runs_nothing(
    service: WorkflowService, agent_factory, dsl_factory
) -> None:
    doc = dsl_factory(ASK_WRITER, agents=[WRITER])
    del doc["version"]

    with pytest.raises(WorkflowValidationError, match="missing required field: version"):
        await service.compile_and_run(doc, {})
    assert agent_factory.created == []


@pytest.mark.asyncio
async def test_unknown_tool_fails_before_execution(
    service: WorkflowService, agent_factory, dsl_factory
) -> None:
    doc = dsl_factory(ASK_WRITER, tools=["doesNotExist"], agents=[WRITER])

    with pytest.raises(ToolNotFoundError, match="Tool doesNotExist not found"):
        await service.compile_and_run(doc, {"topic": "x"})
    assert agent_factory.created == []


@pytest.mark.asyncio
async def test_handler_compile_error_fails_before_execution(
    service: WorkflowService, agent_factory, dsl_factory
) -> None:
    steps = {**ASK_WRITER, "OTHER": "async def handle(event):\n    return None"}
    doc = dsl_factory(steps, agents=[WRITER])

    with pytest.raises(WorkflowValidationError, match="Step for event type OTHER"):
        await service.compile_and_run(doc, {"topic": "x"})
    assert agent_factory.created == []


@pytest.mark.asyncio
async def test_agent_creation_failure_is_a_resolution_error(
    service: WorkflowService, agent_factory, dsl_factory
) -> None:
    async def broken(prompt, tool_names):
        raise RuntimeError("no model")

    agent_factory.create_agent_instance = broken
    doc = dsl_factory(ASK_WRITER, agents=[WRITER])

    with pytest.raises(AgentResolutionError, match="Agent Writer could not be created: no model"):
        await service.compile_and_run(doc, {"topic": "x"})


@pytest.mark.asyncio
async def test_tool_failure_surfaces_as_execution_error(
    service: WorkflowService, math_toolkit, dsl_factory
) -> None:
    doc = dsl_factory(
        {"WORKFLOW_START": "async def handle(event, context):\n    return await boom({})"},
        tools=["boom"],
    )

    with pytest.raises(ExecutionError, match="RuntimeError: tool exploded"):
        await service.compile_and_run(doc, {})
    assert math_toolkit.boom_calls == [{}]


@pytest.mark.asyncio
async def test_undeclared_name_is_a_name_error(service: WorkflowService, dsl_factory) -> None:
    doc = dsl_factory(
        {"WORKFLOW_START": "async def handle(event, context):\n    return await add({})"},
        tools=["echo"],
    )

    with pytest.raises(ExecutionError) as exc_info:
        await service.compile_and_run(doc, {})
    assert isinstance(exc_info.value.__cause__, NameError)


@pytest.mark.asyncio
async def test_timeout(service: WorkflowService, dsl_factory) -> None:
    service.config.execution_timeout_seconds = 0.05
    doc = dsl_factory(
        {
            "WORKFLOW_START": (
                "async def handle(event, context):\n"
                "    await nap({'seconds': 5})\n"
                "    return {'type': 'WORKFLOW_STOP'}"
            )
        },
        tools=["nap"],
    )

    with pytest.raises(WorkflowTimeoutError, match="did not finish within 0.05 seconds"):
        await service.compile_and_run(doc, {})


@pytest.mark.asyncio
async def test_max_steps_from_config(service: WorkflowService, dsl_factory) -> None:
    service.config.max_steps = 3
    loop = "async def handle(event, context):\n    return {'type': 'LOOP'}"
    doc = dsl_factory({"WORKFLOW_START": loop, "LOOP": loop})

    with pytest.raises(ExecutionError, match="limit of 3 steps"):
        await service.compile_and_run(doc, {})


@pytest.mark.asyncio
async def test_unsaved_runs_do_not_share_agents(
    service: WorkflowService, agent_factory, dsl_factory
) -> None:
    agent_factory.reply = '{"text": "hi"}'
    doc = dsl_factory(ASK_WRITER, agents=[WRITER])

    await service.compile_and_run(doc, {"topic": "a"})
    await service.compile_and_run(doc, {"topic": "b"})

    assert len(agent_factory.created) == 2


@pytest.mark.asyncio
async def test_execute_workflow_not_found(service: WorkflowService) -> None:
    with pytest.raises(NotFoundError, match="Workflow with id missing not found"):
        await service.execute_workflow("missing", {})


@pytest.mark.asyncio
async def test_stored_workflow_reuses_agents(
    service: WorkflowService, agent_factory, dsl_factory
) -> None:
    agent_factory.reply = '{"text": "hi"}'
    record = service.create_workflow(
        name="Writer flow", dsl=dsl_factory(ASK_WRITER, agents=[WRITER])
    )

    first = await service.execute_workflow(record.id, {"topic": "a"})
    second = await service.execute_workflow(record.id, {"topic": "b"})

    assert first.workflow_id == second.workflow_id == record.id
    (agent,) = agent_factory.created
    assert agent.inputs == ["a", "b"]
    (stored,) = service.get_workflow_agents(record.id)
    assert stored.agent_name == "Writer"
    assert stored.prompt == "You write short replies."


@pytest.mark.asyncio
async def test_updated_agent_prompt_takes_effect(
    service: WorkflowService, agent_factory, dsl_factory
) -> None:
    agent_factory.reply = '{"text": "hi"}'
    record = service.create_workflow(
        name="Writer flow", dsl=dsl_factory(ASK_WRITER, agents=[WRITER])
    )
    await service.execute_workflow(record.id, {"topic": "a"})

    service.update_workflow_agent(record.id, "Writer", prompt="You write long replies.")
    await service.execute_workflow(record.id, {"topic": "b"})

    assert len(agent_factory.created) == 2
    assert agent_factory.created[1].prompt.startswith("You write long replies.\n")


@pytest.mark.asyncio
async def test_delete_workflow_drops_agents(
    service: WorkflowService, agent_factory, dsl_factory
) -> None:
    agent_factory.reply = '{"text": "hi"}'
    record = service.create_workflow(
        name="Writer flow", dsl=dsl_factory(ASK_WRITER, agents=[WRITER])
    )
    await service.execute_workflow(record.id, {"topic": "a"})

    service.delete_workflow(record.id)

    assert service.get_workflow_agents(record.id) == []
    assert service.list_workflows() == []
    with pytest.raises(NotFoundError):
        await service.execute_workflow(record.id, {"topic": "b"})


@pytest.mark.asyncio
async def test_stored_workflow_with_bad_handler_creates_no_agents(
    service: WorkflowService, agent_factory, dsl_factory
) -> None:
    steps = {**ASK_WRITER, "OTHER": "async def handle(event):\n    return None"}
    record = service.create_workflow(
        name="Writer flow", dsl=dsl_factory(steps, agents=[WRITER])
    )

    with pytest.raises(WorkflowValidationError, match="Step for event type OTHER"):
        await service.execute_workflow(record.id, {"topic": "a"})

    assert agent_factory.created == []
    assert service.get_workflow_agents(record.id) == []


@pytest.mark.asyncio
async def test_concurrent_runs_share_one_agent(
    service: WorkflowService, agent_factory, dsl_factory
) -> None:
    agent_factory.reply = '{"text": "hi"}'
    agent_factory.delay = 0.05
    record = service.create_workflow(
        name="Writer flow", dsl=dsl_factory(ASK_WRITER, agents=[WRITER])
    )

    first, second = await asyncio.gather(
        service.execute_workflow(record.id, {"topic": "a"}),
        service.execute_workflow(record.id, {"topic": "b"}),
    )

    assert first.output == second.output == {"text": "hi"}
    (agent,) = agent_factory.created
    assert sorted(agent.inputs) == ["a", "b"]
    assert len(service.get_workflow_agents(record.id)) == 1


def test_create_workflow_validates(service: WorkflowService) -> None:
    with pytest.raises(WorkflowValidationError):
        service.create_workflow(name="Broken", dsl={"id": "x"})
    assert service.list_workflows() == []


def test_store_operations_need_a_store(tool_catalog, agent_factory) -> None:
    bare = WorkflowService(tools=tool_catalog, agent_factory=agent_factory)

    with pytest.raises(ValueError, match="No workflow store configured"):
        bare.list_workflows()
    assert bare.get_workflow_agents("any") == []


def test_validate_only(service: WorkflowService, dsl_factory) -> None:
    assert service.validate_only(dsl_factory(ADD_THEN_STOP, tools=["add"])) is True


def test_check_dsl_compiles_without_resolving(service: WorkflowService, dsl_factory) -> None:
    doc = dsl_factory(ADD_THEN_STOP, tools=["add", "notInCatalog"])
    assert service.check_dsl(doc).id == "test_workflow"

    doc["steps"][0]["handle"] = "def handle(event, context):\n    return None"
    with pytest.raises(WorkflowValidationError, match="single `async def`"):
        service.check_dsl(doc)


@pytest.mark.asyncio
async def test_generate_dsl_uses_explorer_tools(
    service: WorkflowService, agent_factory, dsl_factory
) -> None:
    generated = dsl_factory(ADD_THEN_STOP, tools=["add"])
    agent_factory.reply = "```json\n" + json.dumps(generated) + "\n```"

    dsl = await service.generate_dsl("add two numbers", {"a": "number", "b": "number"})

    assert dsl == generated
    (agent,) = agent_factory.created
    assert agent.tool_names == ["listAllTools", "getToolDetail"]
    assert agent.inputs == ["add two numbers"]
    assert '"a": "number"' in agent.prompt
