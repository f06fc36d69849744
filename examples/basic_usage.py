#!/usr/bin/env python3
"""Programmatic workflow run example.

This demonstrates using the engine components directly:

* load settings from `.env`
* build a service over the built-in tool catalog
* compile and run a workflow document with a start input

The bundled `current_time.json` workflow uses only tools, so no LLM key is
needed. Documents with agents require `WORKFLOW_LLM_OPENAI_API_KEY`.
"""

from __future__ import annotations

import argparse
import asyncio
import json
from collections.abc import Sequence
from pathlib import Path

from agent_workflow_engine.core.config import EngineConfig
from agent_workflow_engine.core.service import WorkflowService
from agent_workflow_engine.errors import WorkflowError

DEFAULT_DOCUMENT = Path(__file__).parent / "workflows" / "current_time.json"


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a workflow document (programmatic example).")
    parser.add_argument("--file", type=Path, default=DEFAULT_DOCUMENT, help="Workflow JSON document")
    parser.add_argument(
        "--input",
        default='{"name": "Ada", "timezone": "Europe/London"}',
        help="JSON start input",
    )
    return parser.parse_args(argv)


async def _run(document: dict, start_input: object) -> dict:
    config = EngineConfig()
    config.setup_logging()
    service = WorkflowService.from_config(config)
    result = await service.compile_and_run(document, start_input)
    return result.model_dump()


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    document = json.loads(args.file.read_text(encoding="utf-8"))

    try:
        output = asyncio.run(_run(document, json.loads(args.input)))
    except WorkflowError as e:
        print(json.dumps(e.to_json(), indent=2))
        return 1

    print(json.dumps(output, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
