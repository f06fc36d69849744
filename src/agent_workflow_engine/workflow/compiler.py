"""Symbol resolution and handler compilation.

A handler is Python source for a single ``async def`` taking ``(event, context)``.
Compilation wraps it in a function whose parameters are exactly
``event, context`` followed by the tools and agents the source mentions, so a
handler can only reach the capabilities that were injected by position.

Which names a handler "uses" is decided by a whole-word text scan of its
source. Names that only appear in comments or string literals still count, and
that is accepted behaviour.
"""

from __future__ import annotations

import ast
import builtins
import logging
import re
import textwrap
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from agent_workflow_engine.errors import WorkflowValidationError
from agent_workflow_engine.workflow.definition import StepDefinition, WorkflowDefinition
from agent_workflow_engine.workflow.events import WORKFLOW_STOP, RuntimeEvent

logger = logging.getLogger(__name__)

RESERVED_PARAMETERS: tuple[str, str] = ("event", "context")
STEP_FUNCTION = "__step__"

_SAFE_BUILTIN_NAMES = (
    "abs", "all", "any", "bool", "callable", "chr", "dict", "divmod", "enumerate",
    "filter", "float", "format", "frozenset", "hash", "int", "isinstance",
    "issubclass", "iter", "len", "list", "map", "max", "min", "next", "ord", "pow",
    "range", "repr", "reversed", "round", "set", "slice", "sorted", "str", "sum",
    "tuple", "zip",
    "ArithmeticError", "AssertionError", "AttributeError", "Exception", "IndexError",
    "KeyError", "LookupError", "NameError", "NotImplementedError", "RuntimeError",
    "StopAsyncIteration", "StopIteration", "TypeError", "ValueError",
    "ZeroDivisionError",
)  # fmt: skip

SAFE_BUILTINS: Mapping[str, Any] = {name: getattr(builtins, name) for name in _SAFE_BUILTIN_NAMES}

StepFunction = Callable[..., Awaitable[Any]]

# Attributes that lead from a generator, coroutine or traceback to frames and code.
BLOCKED_ATTRIBUTES = frozenset(
    {
        "gi_frame", "gi_code", "gi_yieldfrom",
        "cr_frame", "cr_code", "cr_await",
        "ag_frame", "ag_code", "ag_await",
        "f_back", "f_globals", "f_locals", "f_builtins", "f_code",
        "tb_frame", "tb_next",
    }
)  # fmt: skip


def referenced_names(source: str, candidates: list[str]) -> list[str]:
    """Return the candidates that occur as whole words in ``source``, in order."""
    return [
        name
        for name in candidates
        if re.search(rf"(?<![A-Za-z0-9_]){re.escape(name)}(?![A-Za-z0-9_])", source)
    ]


@dataclass(frozen=True, slots=True)
class CompiledStep:
    """A ready-to-invoke step.

    Tool and agent handles are read from the run's registries at call time and
    passed positionally after ``event`` and ``context``.
    """

    event_type: str
    source: str
    tool_names: tuple[str, ...]
    agent_names: tuple[str, ...]
    function: StepFunction
    tools: Mapping[str, Any]
    agents: Mapping[str, Any]

    @property
    def parameters(self) -> tuple[str, ...]:
        return (*RESERVED_PARAMETERS, *self.tool_names, *self.agent_names)

    async def __call__(self, event: RuntimeEvent, context: dict[str, Any]) -> Any:
        tool_handles = [self.tools[name] for name in self.tool_names]
        agent_handles = [self.agents[name] for name in self.agent_names]
        return await self.function(event, context, *tool_handles, *agent_handles)


def _reject(event_type: str, reason: str) -> WorkflowValidationError:
    return WorkflowValidationError(
        f"Step for event type {event_type}: {reason}", step=event_type, event_type=event_type
    )


def parse_handler(source: str, event_type: str) -> ast.AsyncFunctionDef:
    """Parse handler source and check it has the required shape."""
    try:
        tree = ast.parse(textwrap.dedent(source).strip() + "\n", mode="exec")
    except SyntaxError as e:
        raise _reject(event_type, f"handler is not valid Python ({e.msg}, line {e.lineno})") from e

    if len(tree.body) != 1 or not isinstance(tree.body[0], ast.AsyncFunctionDef):
        raise _reject(event_type, "handler must be a single `async def` function")

    fn = tree.body[0]
    args = fn.args
    if fn.decorator_list:
        raise _reject(event_type, "handler may not be decorated")
    if (
        args.posonlyargs
        or args.vararg
        or args.kwonlyargs
        or args.kwarg
        or args.defaults
        or tuple(a.arg for a in args.args) != RESERVED_PARAMETERS
    ):
        raise _reject(event_type, "handler must take exactly (event, context)")

    for node in ast.walk(fn):
        if isinstance(node, (ast.Import, ast.ImportFrom)):
            raise _reject(event_type, "handler may not import modules")
        if isinstance(node, (ast.Global, ast.Nonlocal)):
            raise _reject(event_type, "handler may not declare global or nonlocal names")
        if isinstance(node, (ast.Yield, ast.YieldFrom)):
            raise _reject(event_type, "handler may not yield")
        if isinstance(node, ast.Attribute) and (
            node.attr.startswith("_") or node.attr in BLOCKED_ATTRIBUTES
        ):
            raise _reject(event_type, f"handler may not access {node.attr}")
        if isinstance(node, ast.Name) and node.id.startswith("__"):
            raise _reject(event_type, f"handler may not reference {node.id}")

    return fn


def _build_function(
    fn: ast.AsyncFunctionDef, parameters: tuple[str, ...], event_type: str
) -> StepFunction:
    template = (
        f"async def {STEP_FUNCTION}({', '.join(parameters)}):\n"
        "    pass\n"
        f"    return await {fn.name}(event, context)\n"
    )
    module = ast.parse(template, mode="exec")
    wrapper = module.body[0]
    assert isinstance(wrapper, ast.AsyncFunctionDef)
    wrapper.body[0] = fn
    ast.fix_missing_locations(module)

    try:
        code = compile(module, filename=f"<step {event_type}>", mode="exec")
    except SyntaxError as e:
        raise _reject(event_type, f"handler failed to compile ({e.msg})") from e

    namespace: dict[str, Any] = {"__builtins__": dict(SAFE_BUILTINS)}
    exec(code, namespace)  # noqa: S102
    return namespace[STEP_FUNCTION]


def compile_step(
    step: StepDefinition,
    tool_registry: Mapping[str, Any],
    agent_registry: Mapping[str, Any],
) -> CompiledStep:
    """Compile one step against the run's tool and agent registries.

    Raises:
        WorkflowValidationError: if the handler does not have the required shape.
    """

    event_type = step.event
    fn = parse_handler(step.handle, event_type)

    tool_names = tuple(referenced_names(step.handle, list(tool_registry)))
    agent_names = tuple(referenced_names(step.handle, list(agent_registry)))
    for name in (*tool_names, *agent_names):
        if not name.isidentifier() or name in RESERVED_PARAMETERS:
            raise _reject(event_type, f"{name!r} cannot be injected into a handler")
    parameters = (*RESERVED_PARAMETERS, *tool_names, *agent_names)
    if fn.name in parameters:
        raise _reject(event_type, f"handler name {fn.name!r} shadows an injected name")

    function = _build_function(fn, parameters, event_type)

    logger.debug(
        "Step compiled",
        extra={"event_type": event_type, "parameters": list(parameters)},
    )
    return CompiledStep(
        event_type=event_type,
        source=step.handle,
        tool_names=tool_names,
        agent_names=agent_names,
        function=function,
        tools=tool_registry,
        agents=agent_registry,
    )


def compile_steps(
    definition: WorkflowDefinition,
    tool_registry: Mapping[str, Any],
    agent_registry: Mapping[str, Any],
) -> dict[str, CompiledStep]:
    """Compile every step of a definition into an event-type -> step table."""

    table: dict[str, CompiledStep] = {}
    for step in definition.steps:
        if step.event in table:
            raise _reject(step.event, "more than one step handles this event type")
        if step.event == WORKFLOW_STOP:
            logger.warning(
                "Step bound to the stop event will never run",
                extra={"workflow": definition.id, "event_type": step.event},
            )
        table[step.event] = compile_step(step, tool_registry, agent_registry)
    return table
