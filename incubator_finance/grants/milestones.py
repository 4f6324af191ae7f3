"""
Milestone Directory

Read-only view over startup milestone plans, used to check that a
disbursement request references a milestone that actually exists.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Protocol

from sqlalchemy import JSON, Column, DateTime, String, Table, select
from sqlalchemy.engine import Engine

from .store import metadata

logger = logging.getLogger(__name__)


class MilestoneDirectory(Protocol):
    def exists(self, startup_id: str, milestone_id: str) -> bool:
        ...


class InMemoryMilestoneDirectory:
    """Milestone ids held per startup in memory."""

    def __init__(self, milestones: Mapping[str, Iterable[str]] | None = None):
        self._milestones: dict[str, set[str]] = {
            startup_id: set(ids) for startup_id, ids in (milestones or {}).items()
        }

    def add(self, startup_id: str, milestone_id: str) -> None:
        self._milestones.setdefault(startup_id, set()).add(milestone_id)

    def exists(self, startup_id: str, milestone_id: str) -> bool:
        return milestone_id in self._milestones.get(startup_id, set())


milestone_plan_records = Table(
    "milestone_plan_records",
    metadata,
    Column("startup_id", String(128), primary_key=True),
    Column("payload", JSON, nullable=False),
    Column("updated_at", DateTime(timezone=True)),
)


def milestone_ids(payload) -> set[str]:
    """Extract milestone ids from a plan payload ``{"milestones": [{"id": ...}]}``."""
    if not isinstance(payload, Mapping):
        return set()
    milestones = payload.get("milestones")
    if not isinstance(milestones, list):
        return set()
    return {
        str(item["id"])
        for item in milestones
        if isinstance(item, Mapping) and item.get("id") not in (None, "")
    }


class SqlMilestoneDirectory:
    """Milestone directory reading the milestone plan documents table."""

    def __init__(self, engine: Engine, create_tables: bool = True):
        self.engine = engine
        if create_tables:
            metadata.create_all(engine, tables=[milestone_plan_records])

    def exists(self, startup_id: str, milestone_id: str) -> bool:
        query = select(milestone_plan_records.c.payload).where(
            milestone_plan_records.c.startup_id == startup_id
        )
        with self.engine.connect() as conn:
            row = conn.execute(query).first()

        if row is None:
            logger.debug(f"No milestone plan stored for startup {startup_id}")
            return False
        return milestone_id in milestone_ids(row.payload)
