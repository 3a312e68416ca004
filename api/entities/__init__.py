"""Entity lookup endpoints.

Records are fetched by primary key only.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status

from projection import ENTITY_TYPES, Token, TokenController, TokenControlLever
from projection.models import controller_key
from store import EntityStore
from ..state import get_store

router = APIRouter(tags=["Entities"])

async def _load(store: EntityStore, entity_type: str, entity_id: str) -> Dict[str, Any]:
    data = await store.load(entity_type, entity_id)
    if data is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{entity_type} {entity_id} not found"
        )
    return data

@router.get("/entities/{entity_type}/{entity_id}")
async def get_entity(entity_type: str, entity_id: str, store: EntityStore = Depends(get_store)):
    """Get one stored record by type and id."""
    if entity_type not in ENTITY_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown entity type {entity_type}. Expected one of: {', '.join(sorted(ENTITY_TYPES))}"
        )
    # Addresses are stored lower-cased
    if entity_type == 'User':
        entity_id = entity_id.lower()
    return await _load(store, entity_type, entity_id)

@router.get("/tokens/{token_id}")
async def get_token(token_id: int, store: EntityStore = Depends(get_store)):
    """Get a token, with its controller and levers when it is a layer."""
    token = await _load(store, Token.entity_type, str(token_id))
    result = {"token": token, "controller": None, "levers": []}
    if token.get('is_master'):
        return result

    controller = await store.load(TokenController.entity_type, controller_key(token_id))
    if controller is None:
        return result

    result["controller"] = controller
    for lever_id in controller.get('levers', []):
        lever = await store.load(TokenControlLever.entity_type, lever_id)
        if lever is not None:
            result["levers"].append(lever)
    return result
