"""CLI entrypoint for the workflow engine."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from agent_workflow_engine import __version__
from agent_workflow_engine.core.config import EngineConfig
from agent_workflow_engine.core.service import WorkflowService
from agent_workflow_engine.errors import (
    ExecutionError,
    NotFoundError,
    ResolutionError,
    WorkflowError,
    WorkflowTimeoutError,
    WorkflowValidationError,
)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_VALIDATION = 3
EXIT_RESOLUTION = 4
EXIT_EXECUTION = 5
EXIT_NOT_FOUND = 6


def _json_arg(value: str) -> Any:
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise argparse.ArgumentTypeError(f"not valid JSON: {e.msg}") from e


def _json_object_arg(value: str) -> dict[str, Any]:
    decoded = _json_arg(value)
    if not isinstance(decoded, dict):
        raise argparse.ArgumentTypeError("expected a JSON object")
    return decoded


def _load_document(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ValueError(f"Cannot read {path}: {e.strerror}") from e
    except json.JSONDecodeError as e:
        raise ValueError(f"{path} is not valid JSON: {e.msg} (line {e.lineno})") from e


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agent-workflow",
        description="Validate, run, generate and store agent workflow documents",
    )
    parser.add_argument(
        "--version", action="version", version=f"agent-workflow-engine {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    validate = subparsers.add_parser("validate", help="Validate a workflow document")
    validate.add_argument("file", type=Path, help="Path to the workflow JSON document")

    run = subparsers.add_parser("run", help="Compile and run a workflow document")
    run.add_argument("file", type=Path, help="Path to the workflow JSON document")
    run.add_argument(
        "--input",
        dest="input",
        type=_json_arg,
        default=None,
        help="JSON value delivered as the WORKFLOW_START event data",
    )
    run.add_argument(
        "--context",
        type=_json_object_arg,
        default=None,
        help="JSON object used to seed the execution context",
    )

    generate = subparsers.add_parser(
        "generate", help="Generate a workflow document from a natural-language description"
    )
    generate.add_argument("description", help="What the workflow should do")
    generate.add_argument(
        "--input-shape",
        type=_json_object_arg,
        default=None,
        help="JSON object describing the WORKFLOW_START event data",
    )
    generate.add_argument(
        "--output-shape",
        type=_json_object_arg,
        default=None,
        help="JSON object describing the WORKFLOW_STOP event data",
    )
    generate.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Write the generated document here instead of stdout",
    )

    create = subparsers.add_parser("create", help="Validate and store a workflow document")
    create.add_argument("file", type=Path, help="Path to the workflow JSON document")
    create.add_argument("--name", required=True, help="Display name for the stored workflow")
    create.add_argument("--description", default=None, help="Optional description")

    list_cmd = subparsers.add_parser("list", help="List stored workflows")
    list_cmd.add_argument(
        "--search", default=None, help="Only show workflows whose name contains this text"
    )

    execute = subparsers.add_parser("execute", help="Run a stored workflow by id")
    execute.add_argument("workflow_id", help="Stored workflow id")
    execute.add_argument(
        "--input",
        dest="input",
        type=_json_arg,
        default=None,
        help="JSON value delivered as the WORKFLOW_START event data",
    )
    execute.add_argument(
        "--context",
        type=_json_object_arg,
        default=None,
        help="JSON object used to seed the execution context",
    )

    delete = subparsers.add_parser("delete", help="Soft-delete a stored workflow")
    delete.add_argument("workflow_id", help="Stored workflow id")

    agents = subparsers.add_parser("agents", help="Show the agents persisted for a workflow")
    agents.add_argument("workflow_id", help="Stored workflow id")

    return parser


def _exit_code_for(error: WorkflowError) -> int:
    if isinstance(error, WorkflowValidationError):
        return EXIT_VALIDATION
    if isinstance(error, ResolutionError):
        return EXIT_RESOLUTION
    if isinstance(error, (ExecutionError, WorkflowTimeoutError)):
        return EXIT_EXECUTION
    if isinstance(error, NotFoundError):
        return EXIT_NOT_FOUND
    return EXIT_FAILURE


def _run_command(args: argparse.Namespace, service: WorkflowService) -> int:
    if args.command == "validate":
        document = _load_document(args.file)
        definition = service.check_dsl(document)
        print(f"{args.file}: valid ({definition.id}, {len(definition.steps)} steps)")
        return EXIT_OK

    if args.command == "run":
        document = _load_document(args.file)
        result = asyncio.run(service.compile_and_run(document, args.input, args.context))
        _print_json(result.model_dump())
        return EXIT_OK

    if args.command == "generate":
        document = asyncio.run(
            service.generate_dsl(args.description, args.input_shape, args.output_shape)
        )
        if args.out is not None:
            args.out.write_text(
                json.dumps(document, indent=2, ensure_ascii=False) + "\n", encoding="utf-8"
            )
            logger.info("Generated workflow written", extra={"path": str(args.out)})
            print(f"Wrote {args.out}")
        else:
            _print_json(document)
        return EXIT_OK

    if args.command == "create":
        document = _load_document(args.file)
        record = service.create_workflow(
            name=args.name, dsl=document, description=args.description
        )
        print(f"Created workflow {record.id}: {record.name}")
        return EXIT_OK

    if args.command == "list":
        for record in service.list_workflows(search=args.search):
            print(f"{record.id}\t{record.name}\t{record.updated_at}")
        return EXIT_OK

    if args.command == "execute":
        result = asyncio.run(service.execute_workflow(args.workflow_id, args.input, args.context))
        _print_json(result.model_dump())
        return EXIT_OK

    if args.command == "delete":
        record = service.delete_workflow(args.workflow_id)
        print(f"Deleted workflow {record.id}: {record.name}")
        return EXIT_OK

    if args.command == "agents":
        service.get_workflow(args.workflow_id)
        _print_json([a.model_dump() for a in service.get_workflow_agents(args.workflow_id)])
        return EXIT_OK

    logger.error("Unknown command", extra={"command": args.command})
    return EXIT_USAGE


def main(argv: list[str] | None = None, *, service: WorkflowService | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = service.config if service is not None else EngineConfig()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return EXIT_USAGE

    config.setup_logging()

    try:
        if service is None:
            service = WorkflowService.from_config(config)
        return _run_command(args, service)

    except WorkflowError as e:
        logger.error(
            "Command failed", extra={"command": args.command, "error": e.to_json()}
        )
        print(json.dumps(e.to_json(), ensure_ascii=False), file=sys.stderr)
        return _exit_code_for(e)

    except ValueError as e:
        logger.error("Invalid request", extra={"command": args.command, "error": str(e)})
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE

    except Exception:
        logger.exception("Command failed")
        return EXIT_FAILURE


if __name__ == "__main__":
    raise SystemExit(main())
