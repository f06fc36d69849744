"""JSON-file persistence for workflow documents and workflow agents.

Workflow records keep the DSL document as an opaque JSON blob plus bookkeeping.
Workflow-agent records remember the agent materialised for a
(workflow id, agent name) pair so later runs reuse it, including any prompt
edits made after creation.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from agent_workflow_engine.errors import NotFoundError

logger = logging.getLogger(__name__)


def _utc_iso_now() -> str:
    return datetime.now(tz=UTC).isoformat()


class WorkflowRecord(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    name: str
    description: str | None = None
    dsl: dict[str, Any]
    deleted: bool = False
    created_at: str = Field(default_factory=_utc_iso_now)
    updated_at: str = Field(default_factory=_utc_iso_now)


class WorkflowAgentRecord(BaseModel):
    workflow_id: str
    agent_name: str
    description: str = ""
    prompt: str = ""
    output: Any = Field(default_factory=dict)
    tools: list[str] = Field(default_factory=list)
    created_at: str = Field(default_factory=_utc_iso_now)
    updated_at: str = Field(default_factory=_utc_iso_now)

    @property
    def key(self) -> tuple[str, str]:
        return (self.workflow_id, self.agent_name)


class _JsonListFile:
    """A JSON array on disk, guarded by a lock."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.lock = threading.Lock()

    def load_unlocked(self) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning(
                "Store file is not valid JSON; treating as empty",
                extra={"path": str(self.path)},
            )
            return []
        return [item for item in raw if isinstance(item, dict)] if isinstance(raw, list) else []

    def save_unlocked(self, items: list[dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(items, indent=2, ensure_ascii=False) + "\n", encoding="utf-8"
        )


class WorkflowStore:
    """Workflow records with soft delete."""

    def __init__(self, path: Path) -> None:
        self._file = _JsonListFile(path)

    def _load(self) -> list[WorkflowRecord]:
        return [WorkflowRecord.model_validate(item) for item in self._file.load_unlocked()]

    def _save(self, records: list[WorkflowRecord]) -> None:
        self._file.save_unlocked([r.model_dump(mode="json") for r in records])

    def create(
        self, *, name: str, dsl: dict[str, Any], description: str | None = None
    ) -> WorkflowRecord:
        record = WorkflowRecord(name=name, description=description, dsl=dsl)
        with self._file.lock:
            records = self._load()
            records.append(record)
            self._save(records)
        logger.info("Workflow stored", extra={"workflow_id": record.id, "workflow_name": name})
        return record

    def find(self, workflow_id: str) -> WorkflowRecord | None:
        with self._file.lock:
            for record in self._load():
                if record.id == workflow_id and not record.deleted:
                    return record
        return None

    def get(self, workflow_id: str) -> WorkflowRecord:
        record = self.find(workflow_id)
        if record is None:
            raise NotFoundError(f"Workflow with id {workflow_id} not found", field="id")
        return record

    def list_all(self, *, search: str | None = None) -> list[WorkflowRecord]:
        """Live records, newest first, optionally filtered by name/description."""
        with self._file.lock:
            records = [r for r in self._load() if not r.deleted]
        if search:
            needle = search.lower()
            records = [
                r
                for r in records
                if needle in r.name.lower() or needle in (r.description or "").lower()
            ]
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    def soft_delete(self, workflow_id: str) -> WorkflowRecord:
        with self._file.lock:
            records = self._load()
            for index, record in enumerate(records):
                if record.id == workflow_id and not record.deleted:
                    updated = record.model_copy(
                        update={"deleted": True, "updated_at": _utc_iso_now()}
                    )
                    records[index] = updated
                    self._save(records)
                    return updated
        raise NotFoundError(f"Workflow with id {workflow_id} not found", field="id")


class WorkflowAgentStore:
    """Records of agents created for a workflow, keyed by (workflow id, agent name)."""

    def __init__(self, path: Path) -> None:
        self._file = _JsonListFile(path)

    def _load(self) -> list[WorkflowAgentRecord]:
        return [WorkflowAgentRecord.model_validate(item) for item in self._file.load_unlocked()]

    def _save(self, records: list[WorkflowAgentRecord]) -> None:
        self._file.save_unlocked([r.model_dump(mode="json") for r in records])

    def find(self, workflow_id: str, agent_name: str) -> WorkflowAgentRecord | None:
        with self._file.lock:
            for record in self._load():
                if record.key == (workflow_id, agent_name):
                    return record
        return None

    def get_or_create(self, record: WorkflowAgentRecord) -> tuple[WorkflowAgentRecord, bool]:
        """Return the stored record for ``record.key``, creating it if absent."""
        with self._file.lock:
            records = self._load()
            for existing in records:
                if existing.key == record.key:
                    return existing, False
            records.append(record)
            self._save(records)
        logger.info(
            "Workflow agent stored",
            extra={"workflow_id": record.workflow_id, "agent_name": record.agent_name},
        )
        return record, True

    def list_for_workflow(self, workflow_id: str) -> list[WorkflowAgentRecord]:
        with self._file.lock:
            return [r for r in self._load() if r.workflow_id == workflow_id]

    def update(self, workflow_id: str, agent_name: str, **changes: Any) -> WorkflowAgentRecord:
        updates = {key: value for key, value in changes.items() if value is not None}
        with self._file.lock:
            records = self._load()
            for index, record in enumerate(records):
                if record.key == (workflow_id, agent_name):
                    updated = record.model_copy(update={**updates, "updated_at": _utc_iso_now()})
                    records[index] = updated
                    self._save(records)
                    return updated
        raise NotFoundError(
            f"Workflow agent {agent_name} not found for workflow {workflow_id}",
            field="agent_name",
        )

    def delete_for_workflow(self, workflow_id: str) -> int:
        with self._file.lock:
            records = self._load()
            kept = [r for r in records if r.workflow_id != workflow_id]
            self._save(kept)
        return len(records) - len(kept)
