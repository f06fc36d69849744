"""Natural-language to DSL generation.

Generation is a single agent call wrapped in a one-step workflow. The agent is
given the DSL schema, the authoring rules and the tool-explorer tools; its reply
must be the DSL document as JSON and must pass :func:`validate_dsl`.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from agent_workflow_engine.agents.agent import strip_code_fence
from agent_workflow_engine.agents.factory import AgentFactory
from agent_workflow_engine.errors import WorkflowValidationError
from agent_workflow_engine.workflow.definition import (
    EVENT_TYPE_PATTERN,
    NAME_PATTERN,
    VERSION_PATTERN,
    WORKFLOW_ID_PATTERN,
)
from agent_workflow_engine.workflow.events import WORKFLOW_START, WORKFLOW_STOP, RuntimeEvent
from agent_workflow_engine.workflow.runtime import Workflow
from agent_workflow_engine.workflow.validation import validate_dsl

logger = logging.getLogger(__name__)

GENERATION_FAILED = (
    "Failed to generate DSL; regenerate and make sure the output follows the DSL schema"
)

DSL_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Workflow DSL",
    "type": "object",
    "required": ["id", "name", "description", "version", "tools", "events", "steps"],
    "properties": {
        "id": {"type": "string", "pattern": WORKFLOW_ID_PATTERN},
        "name": {"type": "string", "minLength": 1, "maxLength": 200},
        "description": {"type": "string", "minLength": 1, "maxLength": 500},
        "version": {"type": "string", "pattern": VERSION_PATTERN, "default": "v1"},
        "tools": {"type": "array", "items": {"type": "string", "pattern": NAME_PATTERN}},
        "agents": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["name", "description", "prompt", "output"],
                "properties": {
                    "name": {"type": "string", "pattern": NAME_PATTERN},
                    "description": {"type": "string", "minLength": 1, "maxLength": 300},
                    "prompt": {"type": "string", "minLength": 1, "maxLength": 2000},
                    "output": {"type": "object"},
                    "tools": {"type": "array", "items": {"type": "string"}},
                },
            },
        },
        "events": {
            "type": "array",
            "minItems": 2,
            "items": {
                "type": "object",
                "required": ["type"],
                "properties": {
                    "type": {"type": "string", "pattern": EVENT_TYPE_PATTERN},
                    "data": {"type": "object"},
                },
            },
        },
        "steps": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "required": ["event", "handle"],
                "properties": {
                    "event": {"type": "string"},
                    "handle": {"type": "string"},
                },
            },
        },
        "content": {"type": "object"},
    },
}

_HANDLER_EXAMPLE = '''async def handle(event, context):
    user_message = event.data["userMessage"]
    session = context.get("session", {})
    reply = await ChatAgent.run(user_message)
    analysis = await SomeTool({"input": user_message, "metadata": session})
    context["last_reply"] = reply.data["result"]
    return {"type": "NEXT_EVENT", "data": {"processed": analysis}}'''


def build_generation_prompt(
    schema: dict[str, Any],
    input_shape: dict[str, Any] | None = None,
    output_shape: dict[str, Any] | None = None,
) -> str:
    """The fixed instruction prompt for the DSL generator agent."""

    sections = [
        "You are an expert in designing AI workflow DSL documents. Turn the user's "
        "natural-language requirement into a complete, executable workflow document that "
        "strictly follows the JSON Schema below. Output only the JSON document, with no "
        "explanation.",
        "DSL Schema:\n" + json.dumps(schema, indent=2, ensure_ascii=False),
        "Rules:\n"
        f"- events must contain {WORKFLOW_START} and {WORKFLOW_STOP}; event types use "
        "UPPER_CASE_WITH_UNDERSCORES.\n"
        "- every event except the stop event must have exactly one step handling it.\n"
        "- each step's handle is Python source for exactly one function: "
        "`async def handle(event, context): ...`.\n"
        "- handlers read input from `event.data`, keep scratch state in the `context` dict, "
        'and return the next event as `{"type": ..., "data": {...}}`.\n'
        "- handlers may not import modules; only the tools and agents named in the "
        "document are available, called by name.\n"
        "- call a tool with one dict argument: `await toolName({...})`.\n"
        "- call an agent with `reply = await AgentName.run(text)`; `reply.data` holds the "
        "agent's declared output fields and `reply.data[\"result\"]` the raw reply.\n"
        "- every tool used by an agent or a step must be listed in `tools`. Use the "
        "listAllTools and getToolDetail tools to discover what exists.",
        "Handler example:\n" + _HANDLER_EXAMPLE,
    ]
    if input_shape:
        sections.append(
            f"The {WORKFLOW_START} event data must have this shape:\n"
            + json.dumps(input_shape, indent=2, ensure_ascii=False)
        )
    if output_shape:
        sections.append(
            f"The {WORKFLOW_STOP} event data must have this shape:\n"
            + json.dumps(output_shape, indent=2, ensure_ascii=False)
        )
    return "\n\n".join(sections)


def parse_generated_dsl(text: str) -> dict[str, Any]:
    try:
        decoded = json.loads(strip_code_fence(text))
    except json.JSONDecodeError as e:
        raise WorkflowValidationError(GENERATION_FAILED) from e
    if not isinstance(decoded, dict):
        raise WorkflowValidationError(GENERATION_FAILED)
    return decoded


class DslGenerator:
    def __init__(
        self,
        agent_factory: AgentFactory,
        *,
        tool_names: list[str] | None = None,
        schema: dict[str, Any] | None = None,
    ) -> None:
        self.agent_factory = agent_factory
        self.tool_names = list(tool_names or [])
        self.schema = schema or DSL_SCHEMA

    async def generate(
        self,
        description: str,
        input_shape: dict[str, Any] | None = None,
        output_shape: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        prompt = build_generation_prompt(self.schema, input_shape, output_shape)
        agent = await self.agent_factory.create_agent_instance(prompt, self.tool_names)

        async def generate_step(event: RuntimeEvent, _context: dict[str, Any]) -> RuntimeEvent:
            reply = await agent.run(event.data["description"])
            return RuntimeEvent(type=WORKFLOW_STOP, data={"text": reply.data["result"]})

        workflow = Workflow({WORKFLOW_START: generate_step}, name="dsl-generator")
        output = await workflow.execute({"description": description})

        dsl = parse_generated_dsl(str(output["text"]))
        validate_dsl(dsl)
        logger.info("DSL generated", extra={"workflow": dsl.get("id")})
        return dsl
