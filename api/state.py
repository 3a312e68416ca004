"""Entity store shared by the API routes."""

from typing import Optional

from fastapi import HTTPException, status

from store import EntityStore

_store: Optional[EntityStore] = None

def set_store(store: Optional[EntityStore]) -> None:
    """Register the store the API reads from (None to clear)."""
    global _store
    _store = store

def get_store() -> EntityStore:
    """FastAPI dependency returning the registered store."""
    if _store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Entity store not initialized"
        )
    return _store
