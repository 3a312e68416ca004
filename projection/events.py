"""Decoded contract events.

Each event carries its own parameters plus the metadata of the transaction
that emitted it. Events are ordered by (block_number, log_index).
"""

from typing import Annotated, Any, ClassVar, Dict, List, Optional, Tuple, Type

from pydantic import AfterValidator, BaseModel, ValidationError, field_validator, model_validator

from .exceptions import InvalidEventError
from .models import ZERO_ADDRESS, normalize_address

Address = Annotated[str, AfterValidator(normalize_address)]

class ContractEvent(BaseModel):
    """Base for all events: transaction metadata."""
    name: ClassVar[str]

    block_number: int
    log_index: int
    timestamp: int
    tx_hash: str
    gas_price: int = 0
    gas_used: int = 0

    @field_validator('tx_hash')
    @classmethod
    def _normalize_hash(cls, value: str) -> str:
        return value.lower()

    @property
    def position(self) -> Tuple[int, int]:
        return (self.block_number, self.log_index)

class CreatorWhitelisted(ContractEvent):
    name: ClassVar[str] = 'CreatorWhitelisted'

    token_id: int
    layer_count: int
    creator: Address

    @field_validator('layer_count')
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("layer_count must not be negative")
        return value

class BidProposed(ContractEvent):
    name: ClassVar[str] = 'BidProposed'

    token_id: int
    bid_amount: int
    bidder: Address

class BidWithdrawn(ContractEvent):
    name: ClassVar[str] = 'BidWithdrawn'

    token_id: int

class BuyPriceSet(ContractEvent):
    name: ClassVar[str] = 'BuyPriceSet'

    token_id: int
    price: int

class TokenSale(ContractEvent):
    name: ClassVar[str] = 'TokenSale'

    token_id: int
    sale_price: int
    buyer: Address

class Transfer(ContractEvent):
    name: ClassVar[str] = 'Transfer'

    from_address: Address
    to_address: Address
    token_id: int

class PermissionUpdated(ContractEvent):
    name: ClassVar[str] = 'PermissionUpdated'

    token_id: int
    token_owner: Address
    permissioned: Address

    @property
    def permissioned_or_none(self) -> Optional[str]:
        return None if self.permissioned == ZERO_ADDRESS else self.permissioned

class ControlLeverUpdated(ContractEvent):
    name: ClassVar[str] = 'ControlLeverUpdated'

    token_id: int
    priority_tip: int
    num_remaining_updates: int
    lever_ids: List[int]
    previous_values: List[int]
    updated_values: List[int]

    @model_validator(mode='after')
    def _parallel_arrays(self) -> 'ControlLeverUpdated':
        lengths = {len(self.lever_ids), len(self.previous_values), len(self.updated_values)}
        if len(lengths) != 1:
            raise ValueError(
                "lever_ids, previous_values and updated_values must have the same length"
            )
        return self

    @property
    def update_cost(self) -> int:
        return self.gas_price * self.gas_used

class PlatformSalePercentageUpdated(ContractEvent):
    name: ClassVar[str] = 'PlatformSalePercentageUpdated'

    token_id: int
    platform_first_percentage: int
    platform_second_percentage: int

class ArtistSecondSalePercentUpdated(ContractEvent):
    name: ClassVar[str] = 'ArtistSecondSalePercentUpdated'

    artist_second_percentage: int

class PlatformAddressUpdated(ContractEvent):
    name: ClassVar[str] = 'PlatformAddressUpdated'

    platform_address: Address

class Approval(ContractEvent):
    name: ClassVar[str] = 'Approval'

class ApprovalForAll(ContractEvent):
    name: ClassVar[str] = 'ApprovalForAll'

EVENT_TYPES: Dict[str, Type[ContractEvent]] = {
    event.name: event
    for event in (
        CreatorWhitelisted, BidProposed, BidWithdrawn, BuyPriceSet, TokenSale,
        Transfer, PermissionUpdated, ControlLeverUpdated,
        PlatformSalePercentageUpdated, ArtistSecondSalePercentUpdated,
        PlatformAddressUpdated, Approval, ApprovalForAll
    )
}

META_FIELDS = ('block_number', 'log_index', 'timestamp', 'tx_hash', 'gas_price', 'gas_used')

def parse_event(payload: Dict[str, Any]) -> ContractEvent:
    """Build a typed event from its wire form.

    Expected shape:
        {"event": "BidProposed", "block_number": 1, "log_index": 0,
         "timestamp": 1600000000, "tx_hash": "0x..", "gas_price": 0,
         "gas_used": 0, "params": {"token_id": 6, ...}}

    Raises:
        InvalidEventError: Unknown event name or invalid fields
    """
    name = payload.get('event')
    event_type = EVENT_TYPES.get(name)
    if event_type is None:
        raise InvalidEventError(f"Unknown event type: {name}")

    fields = {key: payload[key] for key in META_FIELDS if key in payload}
    params = payload.get('params') or {}
    if event_type in (Approval, ApprovalForAll):
        # Parameters are not projected
        params = {}
    fields.update(params)

    try:
        return event_type.model_validate(fields)
    except ValidationError as e:
        raise InvalidEventError(f"Invalid {name} event: {e}") from e
