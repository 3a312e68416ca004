"""Bid and sale state machine.

Per token: NoBid -> Proposed -> Withdrawn | Accepted (sold). A new proposal
while one is active supersedes it. At most one Bid per token is active, and
it is always the one referenced by Token.current_bid.
"""

import logging
from typing import Optional

from store import UnitOfWork
from .exceptions import ConsistencyError
from .models import (
    Bid,
    GlobalState,
    Sale,
    Token,
    TokenTransfer,
    User,
    bid_key,
    sale_key,
    transfer_key,
)
from .tokens import TokenManager
from .users import resolve_user

logger = logging.getLogger(__name__)

class BidManager:
    """Applies bid proposals, withdrawals and sales to a token."""

    def __init__(self, tokens: TokenManager) -> None:
        self.tokens = tokens

    async def archive_current_bid(self, uow: UnitOfWork, token: Token) -> Optional[Bid]:
        """Deactivate the token's current bid and move it to past_bids.

        Returns:
            The archived bid, or None if the token had no current bid
        """
        if token.current_bid is None:
            return None

        bid_id = token.current_bid
        token.current_bid = None
        uow.add(token)

        bid = await uow.get(Bid, bid_id)
        if bid is None:
            logger.warning(f"Token {token.id} referenced missing bid {bid_id}")
            return None

        bid.bid_active = False
        token.past_bids.append(bid.id)
        uow.add(bid)
        return bid

    async def propose(
        self,
        uow: UnitOfWork,
        token: Token,
        bidder: User,
        amount: int,
        tx_hash: str,
        timestamp: int
    ) -> Bid:
        """Attach a new active bid, superseding the current one."""
        bid = Bid(
            id=bid_key(token.id, tx_hash),
            token=token.id,
            bidder=bidder.id,
            bid_amount=amount,
            bid_timestamp=timestamp
        )

        if token.current_bid == bid.id:
            # Same token and transaction: the key is reused, so replace in place
            logger.warning(f"Bid {bid.id} proposed twice in one transaction, replacing the active bid")
        else:
            superseded = await self.archive_current_bid(uow, token)
            if superseded is not None:
                logger.info(f"Bid {superseded.id} superseded by {bid.id}")

        token.current_bid = bid.id
        if bid.id not in bidder.bids:
            bidder.bids.append(bid.id)

        uow.add(bid)
        uow.add(token)
        uow.add(bidder)
        return bid

    async def withdraw(self, uow: UnitOfWork, token: Token, timestamp: int) -> Optional[Bid]:
        """Withdraw the token's current bid.

        A withdrawal with no current bid is logged and otherwise ignored.
        """
        if token.current_bid is None:
            logger.critical(f"Bid withdrawn on token {token.id} which has no current bid, continuing")
            return None

        bid = await self.archive_current_bid(uow, token)
        if bid is None:
            logger.critical(f"Current bid of token {token.id} could not be loaded, continuing")
            return None

        bid.bid_withdrawn_timestamp = timestamp
        return bid

    async def record_sale(
        self,
        uow: UnitOfWork,
        global_state: GlobalState,
        token: Token,
        buyer: User,
        price: int,
        tx_hash: str,
        timestamp: int,
        block_number: int
    ) -> Sale:
        """Record a sale and hand the token to the buyer.

        The sale is a bid sale only when the bid's amount equals the sale
        price and its bidder is the buyer. Otherwise the bid is archived
        without being accepted.

        Raises:
            ConsistencyError: If the seller cannot be determined
        """
        # The transfer of a sale may be logged before the sale itself
        same_tx_transfer = await uow.get(TokenTransfer, transfer_key(token.id, tx_hash))
        if same_tx_transfer is not None:
            seller = await resolve_user(uow, same_tx_transfer.from_user)
            candidate_bid_id = same_tx_transfer.cleared_bid
        elif token.owner is not None:
            seller = await resolve_user(uow, token.owner)
            candidate_bid_id = token.current_bid
        else:
            logger.critical(f"Sale of token {token.id} which has no owner")
            raise ConsistencyError(f"Token {token.id} sold before it was minted")

        sale_number = token.number_of_sales + 1
        sale = Sale(
            id=sale_key(token.id, sale_number),
            token=token.id,
            buyer=buyer.id,
            seller=seller.id,
            sale_price=price,
            sale_timestamp=timestamp,
            token_sale_number=sale_number
        )

        bid = await uow.get(Bid, candidate_bid_id) if candidate_bid_id else None
        if bid is None:
            logger.info(f"No bid exists for token {token.id}")
        elif bid.bid_amount == price and bid.bidder == buyer.id:
            bid.bid_accepted = True
            sale.is_bid_sale = True
            sale.bid = bid.id
            uow.add(bid)

        await self.archive_current_bid(uow, token)

        token.owner = buyer.id
        token.last_sale = sale.id
        token.current_buy_price = 0
        token.number_of_sales = sale_number
        token.token_did_have_first_sale = True
        token.all_sales.append(sale.id)
        token.permissioned_address = self.tokens.resolve_permission(token, buyer.id, block_number)

        buyer.buys.append(sale.id)
        seller.sells.append(sale.id)
        global_state.total_sale_amount += price

        uow.add(sale)
        uow.add(token)
        uow.add(buyer)
        uow.add(seller)
        uow.add(global_state)
        logger.info(
            f"Token {token.id} sale #{sale_number}: {seller.id} -> {buyer.id} "
            f"for {price} (bid sale: {sale.is_bid_sale})"
        )
        return sale
