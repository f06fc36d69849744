"""Unit tests for the agent-workflow CLI."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from agent_workflow_engine.core.service import WorkflowService
from agent_workflow_engine.main import main

ADD_STEP = {
    "WORKFLOW_START": (
        "async def handle(event, context):\n"
        "    return {'type': 'WORKFLOW_STOP', 'data': {'sum': await add(event.data)}}"
    )
}


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def workflow_file(tmp_path: Path, dsl_factory) -> Path:
    path = tmp_path / "add.json"
    path.write_text(json.dumps(dsl_factory(ADD_STEP, tools=["add"])), encoding="utf-8")
    return path


def test_validate(service: WorkflowService, workflow_file: Path, capsys) -> None:
    assert main(["validate", str(workflow_file)], service=service) == 0
    assert "valid (test_workflow, 1 steps)" in capsys.readouterr().out


def test_validate_invalid_document(service: WorkflowService, tmp_path: Path, capsys) -> None:
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"id": "x"}), encoding="utf-8")

    assert main(["validate", str(path)], service=service) == 3
    error = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert error == {
        "error": "WorkflowValidationError",
        "message": "DSL missing required field: name",
        "field": "name",
    }


def test_missing_file_is_a_usage_error(service: WorkflowService, tmp_path: Path) -> None:
    assert main(["validate", str(tmp_path / "nope.json")], service=service) == 2


def test_run_prints_result(service: WorkflowService, workflow_file: Path, capsys) -> None:
    code = main(["run", str(workflow_file), "--input", '{"a": 1, "b": 2}'], service=service)

    assert code == 0
    result = json.loads(capsys.readouterr().out)
    assert result["output"] == {"sum": 3}
    assert result["input"] == {"a": 1, "b": 2}


def test_run_with_unknown_tool(service: WorkflowService, tmp_path: Path, dsl_factory) -> None:
    path = tmp_path / "unknown.json"
    path.write_text(json.dumps(dsl_factory(ADD_STEP, tools=["missingTool"])), encoding="utf-8")

    assert main(["run", str(path), "--input", "{}"], service=service) == 4


def test_run_with_failing_step(service: WorkflowService, workflow_file: Path) -> None:
    assert main(["run", str(workflow_file), "--input", '{"a": 1}'], service=service) == 5


def test_invalid_input_json_exits_with_usage_error(
    service: WorkflowService, workflow_file: Path
) -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(["run", str(workflow_file), "--input", "{oops"], service=service)

    assert exc_info.value.code == 2


def test_execute_missing_workflow(service: WorkflowService) -> None:
    assert main(["execute", "missing", "--input", "{}"], service=service) == 6


def test_stored_workflow_lifecycle(service: WorkflowService, workflow_file: Path, capsys) -> None:
    assert main(["create", str(workflow_file), "--name", "Adder"], service=service) == 0
    (record,) = service.list_workflows()
    capsys.readouterr()

    assert main(["list", "--search", "add"], service=service) == 0
    assert record.id in capsys.readouterr().out

    assert main(["execute", record.id, "--input", '{"a": 4, "b": 5}'], service=service) == 0
    assert json.loads(capsys.readouterr().out)["output"] == {"sum": 9}

    assert main(["agents", record.id], service=service) == 0
    assert json.loads(capsys.readouterr().out) == []

    assert main(["delete", record.id], service=service) == 0
    assert main(["agents", record.id], service=service) == 6


def test_generate_writes_document(
    service: WorkflowService, agent_factory, dsl_factory, tmp_path: Path
) -> None:
    document = dsl_factory(ADD_STEP, tools=["add"])
    agent_factory.reply = json.dumps(document)
    out = tmp_path / "generated.json"

    code = main(["generate", "add two numbers", "--out", str(out)], service=service)

    assert code == 0
    assert json.loads(out.read_text(encoding="utf-8")) == document
