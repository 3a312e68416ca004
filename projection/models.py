"""Entity models for the projected graph.

Every entity is keyed by a deterministic string id derived from stable
inputs (token id, transaction hash, or a fixed suffix). References between
entities are stored as ids.
"""

import re
from typing import ClassVar, Dict, List, Optional, Type

from pydantic import BaseModel, Field

ZERO_ADDRESS = '0x' + '0' * 40
GLOBAL_STATE_ID = 'global'
CURSOR_ID = 'cursor'

_ADDRESS_RE = re.compile(r'^0x[0-9a-f]{40}$')

def normalize_address(addr: str) -> str:
    """Lower-case and validate a 20-byte hex address."""
    if not isinstance(addr, str):
        raise ValueError(f"address must be a string, got: {type(addr)}")
    addr = addr.strip().lower()
    if not _ADDRESS_RE.match(addr):
        raise ValueError(f"invalid address format: {addr}")
    return addr

def controller_key(token_id) -> str:
    return f"{token_id}-Controller"

def lever_key(token_id, lever_id) -> str:
    return f"{token_id}-{lever_id}"

def layer_update_key(token_id, update_number: int) -> str:
    return f"{token_id}-{update_number}"

def bid_key(token_id, tx_hash: str) -> str:
    return f"{token_id}-{tx_hash}"

def sale_key(token_id, sale_number: int) -> str:
    return f"{token_id}-{sale_number}"

def transfer_key(token_id, tx_hash: str) -> str:
    return f"{token_id}-{tx_hash}"

class Entity(BaseModel):
    """Base for every stored record."""
    entity_type: ClassVar[str]

    id: str

class GlobalState(Entity):
    entity_type: ClassVar[str] = 'GlobalState'

    artist_second_sale_percentage: int = 0
    platform_first_sale_percentage: int = 0
    platform_second_sale_percentage: int = 0
    platform_address: Optional[str] = None
    latest_master_token_id: Optional[int] = None
    current_expected_token_supply: int = 0
    total_sale_amount: int = 0

class User(Entity):
    entity_type: ClassVar[str] = 'User'

    bids: List[str] = Field(default_factory=list)
    buys: List[str] = Field(default_factory=list)
    sells: List[str] = Field(default_factory=list)
    owned_masters: List[str] = Field(default_factory=list)
    owned_controllers: List[str] = Field(default_factory=list)
    created_masters: List[str] = Field(default_factory=list)

class Token(Entity):
    entity_type: ClassVar[str] = 'Token'

    is_master: bool
    creator: Optional[str] = None
    owner: Optional[str] = None
    current_buy_price: int = 0
    current_bid: Optional[str] = None
    permissioned_address: Optional[str] = None
    number_of_sales: int = 0
    token_did_have_first_sale: bool = False
    platform_first_sale_percentage: int = 0
    platform_second_sale_percentage: int = 0
    last_sale: Optional[str] = None
    last_transfer: Optional[str] = None
    past_bids: List[str] = Field(default_factory=list)
    past_owners: List[str] = Field(default_factory=list)
    all_transfers: List[str] = Field(default_factory=list)
    all_sales: List[str] = Field(default_factory=list)

    # Master tokens only
    layer_count: Optional[int] = None
    layers: List[str] = Field(default_factory=list)
    layers_for_sale: int = 0
    layers_with_active_bid: int = 0
    all_layers_at_default: bool = True

    # Controller (layer) tokens only
    master: Optional[str] = None
    controller: Optional[str] = None

    @property
    def token_id(self) -> int:
        return int(self.id)

    def layer_ids(self) -> List[str]:
        """Ids of a master's layer tokens: the contiguous range after the master id."""
        if not self.is_master or not self.layer_count:
            return []
        return [str(self.token_id + offset) for offset in range(1, self.layer_count + 1)]

class TokenController(Entity):
    entity_type: ClassVar[str] = 'TokenController'

    token: str
    number_of_updates: int = 0
    num_remaining_updates: Optional[int] = None
    average_update_cost: int = 0
    # Remainder of the integer average, so average * count + remainder == total cost
    average_update_cost_remainder: int = 0
    last_update: Optional[str] = None
    all_updates: List[str] = Field(default_factory=list)
    levers: List[str] = Field(default_factory=list)
    all_levers_at_default: bool = True

class TokenControlLever(Entity):
    entity_type: ClassVar[str] = 'TokenControlLever'

    controller: str
    lever_id: int
    min_value: int
    max_value: int
    default_value: int
    previous_value: int
    current_value: int
    number_of_updates: int = 0
    latest_update: Optional[str] = None

class LayerUpdate(Entity):
    entity_type: ClassVar[str] = 'LayerUpdate'

    controller: str
    update_number: int
    gas_price: int
    gas_used: int
    cost_in_wei: int
    priority_tip: int
    timestamp: int
    levers_updated: List[str] = Field(default_factory=list)

class Bid(Entity):
    entity_type: ClassVar[str] = 'Bid'

    token: str
    bidder: str
    bid_amount: int
    bid_timestamp: int
    bid_active: bool = True
    bid_accepted: bool = False
    bid_withdrawn_timestamp: Optional[int] = None

class Sale(Entity):
    entity_type: ClassVar[str] = 'Sale'

    token: str
    buyer: str
    seller: str
    sale_price: int
    sale_timestamp: int
    token_sale_number: int
    is_bid_sale: bool = False
    bid: Optional[str] = None

class TokenTransfer(Entity):
    entity_type: ClassVar[str] = 'TokenTransfer'

    token: str
    from_user: str
    to_user: str
    timestamp: int
    cleared_bid: Optional[str] = None

class EventCursor(Entity):
    entity_type: ClassVar[str] = 'EventCursor'

    block_number: int
    log_index: int

ENTITY_TYPES: Dict[str, Type[Entity]] = {
    model.entity_type: model
    for model in (
        GlobalState, User, Token, TokenController, TokenControlLever,
        LayerUpdate, Bid, Sale, TokenTransfer, EventCursor
    )
}
