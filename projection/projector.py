"""Event dispatch.

Each event type maps to exactly one handler. A handler loads or refreshes the
global state when its effect depends on it, loads or creates the entities it
touches, applies its transition, stages every mutated entity and finally
reconciles the links of the token it touched.
"""

import logging
from typing import Awaitable, Callable, Dict, Type

from store import UnitOfWork
from .bids import BidManager
from .events import (
    Approval,
    ApprovalForAll,
    ArtistSecondSalePercentUpdated,
    BidProposed,
    BidWithdrawn,
    BuyPriceSet,
    ContractEvent,
    ControlLeverUpdated,
    CreatorWhitelisted,
    PermissionUpdated,
    PlatformAddressUpdated,
    PlatformSalePercentageUpdated,
    TokenSale,
    Transfer,
)
from .exceptions import InvalidEventError
from .global_state import GlobalStateTracker
from .levers import LeverAggregator
from .linkage import LinkageReconciler
from .source import ContractSource
from .tokens import TokenManager
from .users import resolve_user

logger = logging.getLogger(__name__)

Handler = Callable[[UnitOfWork, ContractEvent], Awaitable[None]]

class Projector:
    """Applies contract events to the entity graph."""

    def __init__(self, source: ContractSource) -> None:
        self.source = source
        self.global_state = GlobalStateTracker(source)
        self.tokens = TokenManager(source)
        self.bids = BidManager(self.tokens)
        self.levers = LeverAggregator(self.tokens)
        self.linkage = LinkageReconciler()

        self._handlers: Dict[Type[ContractEvent], Handler] = {
            CreatorWhitelisted: self.handle_creator_whitelisted,
            BidProposed: self.handle_bid_proposed,
            BidWithdrawn: self.handle_bid_withdrawn,
            BuyPriceSet: self.handle_buy_price_set,
            TokenSale: self.handle_token_sale,
            Transfer: self.handle_transfer,
            PermissionUpdated: self.handle_permission_updated,
            ControlLeverUpdated: self.handle_control_lever_updated,
            PlatformSalePercentageUpdated: self.handle_platform_sale_percentage_updated,
            ArtistSecondSalePercentUpdated: self.handle_artist_second_sale_percent_updated,
            PlatformAddressUpdated: self.handle_platform_address_updated,
            Approval: self.handle_ignored,
            ApprovalForAll: self.handle_ignored,
        }

    async def apply(self, uow: UnitOfWork, event: ContractEvent) -> None:
        """Apply one event. Entity writes stay staged in the unit of work.

        Raises:
            InvalidEventError: If no handler exists for the event type
        """
        handler = self._handlers.get(type(event))
        if handler is None:
            raise InvalidEventError(f"No handler for event type {type(event).__name__}")

        logger.debug(f"Applying {event.name} at {event.block_number}:{event.log_index}")
        await handler(uow, event)

    async def handle_creator_whitelisted(self, uow: UnitOfWork, event: CreatorWhitelisted) -> None:
        global_state = await self.global_state.get_or_init(uow, event.block_number)
        global_state.latest_master_token_id = event.token_id
        global_state.current_expected_token_supply = event.token_id + event.layer_count + 1
        uow.add(global_state)

        creator = await resolve_user(uow, event.creator)
        await self.tokens.create_from_master(
            uow, global_state, event.token_id, event.layer_count, creator, event.block_number
        )
        await self.linkage.reconcile(uow, event.token_id)

    async def handle_bid_proposed(self, uow: UnitOfWork, event: BidProposed) -> None:
        await self.global_state.get_or_init(uow, event.block_number)

        token = await self.tokens.get_token(uow, event.token_id)
        bidder = await resolve_user(uow, event.bidder)
        await self.bids.propose(uow, token, bidder, event.bid_amount, event.tx_hash, event.timestamp)
        await self.linkage.reconcile(uow, event.token_id)

    async def handle_bid_withdrawn(self, uow: UnitOfWork, event: BidWithdrawn) -> None:
        await self.global_state.refresh(uow, event.block_number)

        token = await self.tokens.get_token(uow, event.token_id)
        await self.bids.withdraw(uow, token, event.timestamp)
        await self.linkage.reconcile(uow, event.token_id)

    async def handle_buy_price_set(self, uow: UnitOfWork, event: BuyPriceSet) -> None:
        await self.global_state.refresh(uow, event.block_number)

        token = await self.tokens.get_token(uow, event.token_id)
        token.current_buy_price = event.price
        uow.add(token)
        await self.linkage.reconcile(uow, event.token_id)

    async def handle_token_sale(self, uow: UnitOfWork, event: TokenSale) -> None:
        global_state = await self.global_state.get_or_init(uow, event.block_number)

        buyer = await resolve_user(uow, event.buyer)
        token = await self.tokens.get_token(uow, event.token_id)
        await self.bids.record_sale(
            uow,
            global_state,
            token,
            buyer,
            event.sale_price,
            event.tx_hash,
            event.timestamp,
            event.block_number
        )
        await self.linkage.reconcile(uow, event.token_id)

    async def handle_transfer(self, uow: UnitOfWork, event: Transfer) -> None:
        await self.global_state.refresh(uow, event.block_number)

        token = await self.tokens.get_token(uow, event.token_id)
        to_user = await resolve_user(uow, event.to_address)
        from_user = await resolve_user(uow, event.from_address)

        cleared_bid = await self.bids.archive_current_bid(uow, token)
        await self.tokens.record_transfer(
            uow,
            token,
            from_user,
            to_user,
            event.tx_hash,
            event.timestamp,
            event.block_number,
            cleared_bid=cleared_bid
        )
        await self.linkage.reconcile(uow, event.token_id)

    async def handle_permission_updated(self, uow: UnitOfWork, event: PermissionUpdated) -> None:
        await self.global_state.get_or_init(uow, event.block_number)

        token = await self.tokens.get_token(uow, event.token_id)
        # Only the current owner can grant permission
        if event.token_owner == token.owner:
            token.permissioned_address = event.permissioned_or_none
            uow.add(token)
        else:
            logger.info(
                f"Ignoring permission on token {token.id} granted by {event.token_owner}, "
                f"owner is {token.owner}"
            )
        await self.linkage.reconcile(uow, event.token_id)

    async def handle_control_lever_updated(self, uow: UnitOfWork, event: ControlLeverUpdated) -> None:
        await self.global_state.refresh(uow, event.block_number)

        token = await self.tokens.get_token(uow, event.token_id)
        await self.levers.apply(uow, token, event)
        await self.linkage.reconcile(uow, event.token_id)

    async def handle_platform_sale_percentage_updated(
        self,
        uow: UnitOfWork,
        event: PlatformSalePercentageUpdated
    ) -> None:
        await self.global_state.refresh(uow, event.block_number)

        token = await self.tokens.get_token(uow, event.token_id)
        token.platform_first_sale_percentage = event.platform_first_percentage
        token.platform_second_sale_percentage = event.platform_second_percentage
        uow.add(token)
        await self.linkage.reconcile(uow, event.token_id)

    async def handle_artist_second_sale_percent_updated(
        self,
        uow: UnitOfWork,
        event: ArtistSecondSalePercentUpdated
    ) -> None:
        global_state = await self.global_state.get_or_init(uow, event.block_number)
        global_state.artist_second_sale_percentage = event.artist_second_percentage
        uow.add(global_state)

    async def handle_platform_address_updated(self, uow: UnitOfWork, event: PlatformAddressUpdated) -> None:
        global_state = await self.global_state.get_or_init(uow, event.block_number)
        global_state.platform_address = event.platform_address
        uow.add(global_state)

    async def handle_ignored(self, uow: UnitOfWork, event: ContractEvent) -> None:
        logger.debug(f"{event.name} does not affect projected state")
