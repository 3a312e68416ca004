"""Token lifecycle management.

A creation event for master token M with N layers produces tokens
M, M+1 .. M+N. Every layer token gets one TokenController and the fixed set
of TokenControlLever records the contract reports for it.
"""

import logging
from typing import Optional

from store import UnitOfWork
from .exceptions import ConsistencyError
from .models import (
    ZERO_ADDRESS,
    Bid,
    GlobalState,
    Token,
    TokenController,
    TokenControlLever,
    TokenTransfer,
    User,
    controller_key,
    lever_key,
    transfer_key,
)
from .source import ContractSource

logger = logging.getLogger(__name__)

class TokenManager:
    """Creates tokens and applies ownership-level state changes."""

    def __init__(self, source: ContractSource) -> None:
        self.source = source

    async def create_from_master(
        self,
        uow: UnitOfWork,
        global_state: GlobalState,
        master_id: int,
        layer_count: int,
        creator: User,
        block_number: int
    ) -> Token:
        """Create a master token and its layer tokens, controllers and levers.

        Not guarded against re-delivery: a second call for the same master id
        overwrites the records.
        """
        master = Token(
            id=str(master_id),
            is_master=True,
            creator=creator.id,
            layer_count=layer_count,
            platform_first_sale_percentage=global_state.platform_first_sale_percentage,
            platform_second_sale_percentage=global_state.platform_second_sale_percentage
        )
        uow.add(master)

        creator.created_masters.append(master.id)
        uow.add(creator)

        for offset in range(1, layer_count + 1):
            await self._create_layer(uow, global_state, master, master_id + offset, creator, block_number)

        logger.info(f"Created master token {master_id} with {layer_count} layers")
        return master

    async def _create_layer(
        self,
        uow: UnitOfWork,
        global_state: GlobalState,
        master: Token,
        token_id: int,
        creator: User,
        block_number: int
    ) -> Token:
        token = Token(
            id=str(token_id),
            is_master=False,
            creator=creator.id,
            master=master.id,
            controller=controller_key(token_id),
            platform_first_sale_percentage=global_state.platform_first_sale_percentage,
            platform_second_sale_percentage=global_state.platform_second_sale_percentage
        )
        controller = TokenController(id=controller_key(token_id), token=token.id)

        for spec in self.source.query_control_levers(token_id, block_number):
            lever = TokenControlLever(
                id=lever_key(token_id, spec.lever_id),
                controller=controller.id,
                lever_id=spec.lever_id,
                min_value=spec.min_value,
                max_value=spec.max_value,
                default_value=spec.current_value,
                previous_value=spec.current_value,
                current_value=spec.current_value
            )
            controller.levers.append(lever.id)
            uow.add(lever)

        uow.add(token)
        uow.add(controller)
        logger.debug(f"Created layer token {token_id} with {len(controller.levers)} levers")
        return token

    async def get_token(self, uow: UnitOfWork, token_id: int) -> Token:
        """Load a token that an earlier creation event must have produced.

        Raises:
            ConsistencyError: If the token does not exist
        """
        token = await uow.get(Token, str(token_id))
        if token is None:
            logger.critical(f"Token {token_id} referenced before its creation event")
            raise ConsistencyError(f"Token {token_id} does not exist")
        return token

    async def get_controller(self, uow: UnitOfWork, token: Token) -> TokenController:
        """Load the controller of a layer token.

        Raises:
            ConsistencyError: If the token is a master or its controller is missing
        """
        if token.is_master:
            raise ConsistencyError(f"Token {token.id} is a master token and has no controller")
        controller = await uow.get(TokenController, controller_key(token.id))
        if controller is None:
            logger.critical(f"Controller for token {token.id} is missing")
            raise ConsistencyError(f"Controller {controller_key(token.id)} does not exist")
        return controller

    def resolve_permission(self, token: Token, owner: str, block_number: int) -> Optional[str]:
        """Permissioned address the owner has set for this token, None if unset."""
        permissioned = self.source.query_current_permission(token.token_id, owner, block_number)
        if permissioned is None or permissioned.lower() == ZERO_ADDRESS:
            return None
        return permissioned.lower()

    async def record_transfer(
        self,
        uow: UnitOfWork,
        token: Token,
        from_user: User,
        to_user: User,
        tx_hash: str,
        timestamp: int,
        block_number: int,
        cleared_bid: Optional[Bid] = None
    ) -> TokenTransfer:
        """Move ownership and write the TokenTransfer audit record.

        The caller archives the token's current bid first and passes it in as
        cleared_bid so a sale logged later in the same transaction can still
        be attributed to it.
        """
        transfer = TokenTransfer(
            id=transfer_key(token.id, tx_hash),
            token=token.id,
            from_user=from_user.id,
            to_user=to_user.id,
            timestamp=timestamp,
            cleared_bid=cleared_bid.id if cleared_bid else None
        )

        # A buyback can keep a permission granted by an earlier ownership
        token.permissioned_address = self.resolve_permission(token, to_user.id, block_number)
        token.owner = to_user.id
        token.current_buy_price = 0
        token.current_bid = None
        token.last_transfer = transfer.id
        token.all_transfers.append(transfer.id)

        if from_user.id != ZERO_ADDRESS and from_user.id not in token.past_owners:
            token.past_owners.append(from_user.id)

        if to_user.id == ZERO_ADDRESS:
            logger.info(f"Token {token.id} burned")
        elif token.is_master:
            if token.id not in to_user.owned_masters:
                to_user.owned_masters.append(token.id)
        elif controller_key(token.id) not in to_user.owned_controllers:
            to_user.owned_controllers.append(controller_key(token.id))

        uow.add(transfer)
        uow.add(token)
        uow.add(from_user)
        uow.add(to_user)
        return transfer
