"""Projection module.

This module turns the layered-art contract's event stream into an entity graph:
- Typed event models and parsing from the wire format
- User, global configuration, token, bid/sale and lever state transitions
- Master/layer linkage reconciliation after every token-touching event
- Dispatch of each event to exactly one handler
"""

from .events import EVENT_TYPES, ContractEvent, parse_event
from .exceptions import (
    ConsistencyError,
    InvalidEventError,
    ProjectionError,
    SourceUnavailableError,
)
from .models import (
    CURSOR_ID,
    ENTITY_TYPES,
    GLOBAL_STATE_ID,
    ZERO_ADDRESS,
    Bid,
    EventCursor,
    GlobalState,
    LayerUpdate,
    Sale,
    Token,
    TokenController,
    TokenControlLever,
    TokenTransfer,
    User,
)
from .projector import Projector
from .source import ContractSource, ControlLeverSpec, GlobalConfig

# Export public interface
__all__ = [
    'Projector',
    'ContractSource',
    'ControlLeverSpec',
    'GlobalConfig',
    'ContractEvent',
    'EVENT_TYPES',
    'parse_event',
    'ENTITY_TYPES',
    'CURSOR_ID',
    'GLOBAL_STATE_ID',
    'ZERO_ADDRESS',
    'GlobalState',
    'User',
    'Token',
    'TokenController',
    'TokenControlLever',
    'LayerUpdate',
    'Bid',
    'Sale',
    'TokenTransfer',
    'EventCursor',
    'ProjectionError',
    'ConsistencyError',
    'InvalidEventError',
    'SourceUnavailableError',
]
