"""
Grant Catalog Store

Keyed whole-document persistence for grant catalogs, one document per
startup. Writes can be guarded with the catalog version that was read so a
concurrent read-modify-write cannot silently overwrite another one.
"""

import copy
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from .coercion import parse_int, parse_timestamp, utc_now
from .exceptions import CatalogPayloadError, ConcurrentModificationError
from .models import GrantCatalog
from .normalizer import catalog_to_payload, normalize_catalog

logger = logging.getLogger(__name__)


@dataclass
class StoredCatalogRecord:
    """A catalog as held by the store, with the store's own write timestamp."""

    startup_id: str
    catalog: GrantCatalog
    updated_at: datetime | None = None


class CatalogStore(Protocol):
    def get(self, startup_id: str) -> GrantCatalog | None:
        ...

    def put(self, startup_id: str, catalog: GrantCatalog, expected_version: int | None = None) -> None:
        ...

    def list_records(self) -> list[StoredCatalogRecord]:
        ...


def _check_version(startup_id: str, expected_version: int | None, current_version: int) -> None:
    if expected_version is not None and expected_version != current_version:
        logger.warning(
            f"Rejected catalog write for {startup_id}: "
            f"expected version {expected_version}, stored {current_version}"
        )
        raise ConcurrentModificationError(startup_id, expected_version, current_version)


def _readable_record(startup_id: str, payload, updated_at) -> StoredCatalogRecord | None:
    """Normalize one stored document for listing; corrupt documents are skipped."""
    try:
        catalog = normalize_catalog(payload)
    except CatalogPayloadError as exc:
        logger.warning(f"Skipping corrupt catalog for {startup_id} at {exc.path}: {exc.reason}")
        return None
    return StoredCatalogRecord(startup_id=startup_id, catalog=catalog, updated_at=updated_at)


class InMemoryCatalogStore:
    """Process-local store holding serialized payloads."""

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._clock = clock
        self._lock = threading.Lock()
        self._documents: dict[str, dict] = {}

    def get(self, startup_id: str) -> GrantCatalog | None:
        with self._lock:
            document = self._documents.get(startup_id)
            payload = copy.deepcopy(document["payload"]) if document else None
        if payload is None:
            return None
        return normalize_catalog(payload)

    def put(self, startup_id: str, catalog: GrantCatalog, expected_version: int | None = None) -> None:
        payload = catalog_to_payload(catalog)
        with self._lock:
            document = self._documents.get(startup_id)
            current_version = document["version"] if document else 0
            _check_version(startup_id, expected_version, current_version)
            self._documents[startup_id] = {
                "payload": payload,
                "version": catalog.version,
                "updated_at": self._clock(),
            }

    def put_payload(self, startup_id: str, payload: dict) -> None:
        """Seed a raw stored document (imports, fixtures)."""
        with self._lock:
            self._documents[startup_id] = {
                "payload": copy.deepcopy(payload),
                "version": parse_int(payload.get("version", 1), 1),
                "updated_at": self._clock(),
            }

    def list_records(self) -> list[StoredCatalogRecord]:
        with self._lock:
            documents = copy.deepcopy(self._documents)
        records = (
            _readable_record(startup_id, document["payload"], document["updated_at"])
            for startup_id, document in documents.items()
        )
        return [record for record in records if record is not None]


metadata = MetaData()

grant_catalog_records = Table(
    "grant_catalog_records",
    metadata,
    Column("startup_id", String(128), primary_key=True),
    Column("payload", JSON, nullable=False),
    Column("version", Integer, nullable=False, default=1),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)


class SqlCatalogStore:
    """Catalog store backed by a SQL table (one JSON document per startup)."""

    def __init__(
        self,
        engine: Engine,
        clock: Callable[[], datetime] = utc_now,
        create_tables: bool = True,
    ):
        """Initialize the store.

        Args:
            engine: SQLAlchemy engine
            clock: Source of write timestamps
            create_tables: Create ``grant_catalog_records`` if missing
        """
        self.engine = engine
        self._clock = clock
        if create_tables:
            metadata.create_all(engine, tables=[grant_catalog_records])

    def get(self, startup_id: str) -> GrantCatalog | None:
        query = select(grant_catalog_records.c.payload).where(
            grant_catalog_records.c.startup_id == startup_id
        )
        with self.engine.connect() as conn:
            row = conn.execute(query).first()

        if row is None:
            return None
        return normalize_catalog(row.payload)

    def put(self, startup_id: str, catalog: GrantCatalog, expected_version: int | None = None) -> None:
        payload = catalog_to_payload(catalog)
        now = self._clock()
        table = grant_catalog_records

        try:
            with self.engine.begin() as conn:
                row = conn.execute(
                    select(table.c.version).where(table.c.startup_id == startup_id)
                ).first()
                current_version = row.version if row else 0
                _check_version(startup_id, expected_version, current_version)

                if row is None:
                    conn.execute(insert(table).values(
                        startup_id=startup_id,
                        payload=payload,
                        version=catalog.version,
                        created_at=now,
                        updated_at=now,
                    ))
                    return

                result = conn.execute(
                    update(table)
                    .where(table.c.startup_id == startup_id)
                    .where(table.c.version == current_version)
                    .values(payload=payload, version=catalog.version, updated_at=now)
                )
                if result.rowcount == 0:
                    raise ConcurrentModificationError(startup_id, current_version, -1)
        except IntegrityError as exc:
            # Another writer created the document between our read and insert.
            raise ConcurrentModificationError(startup_id, expected_version or 0, -1) from exc

        logger.debug(f"Stored grant catalog for {startup_id} at version {catalog.version}")

    def list_records(self) -> list[StoredCatalogRecord]:
        table = grant_catalog_records
        query = select(table.c.startup_id, table.c.payload, table.c.updated_at).order_by(table.c.startup_id)
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()

        records = (
            _readable_record(row.startup_id, row.payload, parse_timestamp(row.updated_at))
            for row in rows
        )
        return [record for record in records if record is not None]
