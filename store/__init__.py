"""Entity store module.

This module provides the key-value persistence the projection writes to:
- Load-or-absent and upsert of typed records keyed by entity type and id
- An in-memory backend for tests and dry runs
- A PostgreSQL backend (one JSONB row per entity)
- A per-event unit of work so an event's writes land together or not at all
"""

import copy
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Tuple

import asyncpg
from asyncpg.pool import Pool

from database import get_pool
from .unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

Record = Dict[str, Any]
Key = Tuple[str, str]

class StoreError(Exception):
    """Base class for entity store errors."""
    pass

class EntityStore(ABC):
    """Primary-key-only persistence for projected entities."""

    @abstractmethod
    async def load(self, entity_type: str, entity_id: str) -> Optional[Record]:
        """Return the stored record or None when absent."""

    @abstractmethod
    async def upsert_many(self, records: Iterable[Tuple[str, str, Record]]) -> None:
        """Write a batch of records as one unit."""

    async def upsert(self, entity_type: str, entity_id: str, data: Record) -> None:
        """Insert or replace a single record."""
        await self.upsert_many([(entity_type, entity_id, data)])

class MemoryStore(EntityStore):
    """Dict-backed entity store."""

    def __init__(self) -> None:
        self._records: Dict[Key, Record] = {}
        self.write_count = 0

    async def load(self, entity_type: str, entity_id: str) -> Optional[Record]:
        record = self._records.get((entity_type, entity_id))
        return copy.deepcopy(record) if record is not None else None

    async def upsert_many(self, records: Iterable[Tuple[str, str, Record]]) -> None:
        for entity_type, entity_id, data in records:
            self._records[(entity_type, entity_id)] = copy.deepcopy(data)
            self.write_count += 1

    def snapshot(self) -> str:
        """Serialize every record deterministically (used to compare states)."""
        return json.dumps(
            {f"{t}:{i}": r for (t, i), r in sorted(self._records.items())},
            sort_keys=True
        )

    def ids(self, entity_type: str) -> List[str]:
        """List stored ids of one entity type."""
        return sorted(i for (t, i) in self._records if t == entity_type)

class PostgresStore(EntityStore):
    """Entity store backed by the `entities` table."""

    def __init__(self, pool: Optional[Pool] = None) -> None:
        """Initialize the store.

        Args:
            pool: Optional database pool. If not provided, will get from database module.
        """
        self.pool = pool

    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()

    async def load(self, entity_type: str, entity_id: str) -> Optional[Record]:
        await self.ensure_pool()
        try:
            async with self.pool.acquire() as conn:
                data = await conn.fetchval(
                    'SELECT data FROM entities WHERE entity_type = $1 AND entity_id = $2',
                    entity_type,
                    entity_id
                )
        except asyncpg.PostgresError as e:
            raise StoreError(f"Failed to load {entity_type} {entity_id}: {e}") from e
        return json.loads(data) if data is not None else None

    async def upsert_many(self, records: Iterable[Tuple[str, str, Record]]) -> None:
        await self.ensure_pool()
        rows = [(t, i, json.dumps(d)) for t, i, d in records]
        if not rows:
            return
        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    await conn.executemany(
                        '''
                        INSERT INTO entities (entity_type, entity_id, data, updated_at)
                        VALUES ($1, $2, $3::jsonb, now())
                        ON CONFLICT (entity_type, entity_id)
                        DO UPDATE SET data = EXCLUDED.data, updated_at = now()
                        ''',
                        rows
                    )
        except asyncpg.PostgresError as e:
            logger.error(f"Failed to flush {len(rows)} entities: {e}")
            raise StoreError(f"Failed to write entities: {e}") from e
        logger.debug(f"Flushed {len(rows)} entities")

# Export public interface
__all__ = [
    'EntityStore',
    'MemoryStore',
    'PostgresStore',
    'UnitOfWork',
    'StoreError'
]
