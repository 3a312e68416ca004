"""Per-event unit of work over an entity store."""

import logging
from typing import Any, Dict, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel

logger = logging.getLogger(__name__)

M = TypeVar('M', bound=BaseModel)

class UnitOfWork:
    """Identity map and write buffer for the entities touched by one event.

    Loads go through the identity map so every handler step sees the same
    instance (and therefore every earlier mutation). Nothing reaches the
    store until commit(); commit() writes only entities whose serialized
    form differs from what was loaded.
    """

    def __init__(self, store) -> None:
        self.store = store
        self._identity: Dict[Tuple[str, str], BaseModel] = {}
        self._loaded: Dict[Tuple[str, str], Optional[Dict[str, Any]]] = {}
        self._staged: Dict[Tuple[str, str], BaseModel] = {}

    @staticmethod
    def _key(entity: BaseModel) -> Tuple[str, str]:
        return (entity.entity_type, entity.id)

    async def get(self, model: Type[M], entity_id: str) -> Optional[M]:
        """Load an entity by id, or None when it does not exist."""
        key = (model.entity_type, entity_id)
        if key in self._identity:
            return self._identity[key]
        if key in self._loaded:
            # Known absent in this unit of work
            return None

        data = await self.store.load(model.entity_type, entity_id)
        self._loaded[key] = data
        if data is None:
            return None
        entity = model.model_validate(data)
        self._identity[key] = entity
        return entity

    def add(self, entity: BaseModel) -> None:
        """Stage an entity (new or mutated) for writing on commit."""
        key = self._key(entity)
        self._identity[key] = entity
        self._staged[key] = entity

    def pending(self) -> Dict[Tuple[str, str], Dict[str, Any]]:
        """Serialized staged entities that differ from their loaded state."""
        changes = {}
        for key, entity in self._staged.items():
            data = entity.model_dump(mode='json')
            if self._loaded.get(key) != data:
                changes[key] = data
        return changes

    async def commit(self) -> int:
        """Write changed entities in one batch and reset the buffer.

        Returns:
            Number of entities written
        """
        changes = self.pending()
        if changes:
            await self.store.upsert_many(
                (entity_type, entity_id, data)
                for (entity_type, entity_id), data in changes.items()
            )
        self._loaded.update(changes)
        self._staged.clear()
        return len(changes)

    def rollback(self) -> None:
        """Discard everything loaded or staged since the last commit."""
        self._identity.clear()
        self._loaded.clear()
        self._staged.clear()
