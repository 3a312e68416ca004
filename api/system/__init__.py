"""System status endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from projection import CURSOR_ID, GLOBAL_STATE_ID, EventCursor, GlobalState
from store import EntityStore
from ..state import get_store

# Create router
router = APIRouter(tags=["System"])

class ProjectionStatus(BaseModel):
    """Model for projection progress."""
    status: str
    block_number: Optional[int] = None
    log_index: Optional[int] = None
    latest_master_token_id: Optional[int] = None
    total_sale_amount: int = 0

@router.get("/status", response_model=ProjectionStatus)
async def get_status(store: EntityStore = Depends(get_store)) -> ProjectionStatus:
    """Get the position of the last applied event."""
    cursor = await store.load(EventCursor.entity_type, CURSOR_ID)
    if cursor is None:
        return ProjectionStatus(status="empty")

    result = ProjectionStatus(
        status="running",
        block_number=cursor['block_number'],
        log_index=cursor['log_index']
    )
    global_state = await store.load(GlobalState.entity_type, GLOBAL_STATE_ID)
    if global_state is not None:
        result.latest_master_token_id = global_state.get('latest_master_token_id')
        result.total_sale_amount = int(global_state.get('total_sale_amount', 0))
    return result
