"""Control lever aggregation.

One ControlLeverUpdated event is one LayerUpdate: a batch of lever changes
paid for by a single transaction. The controller keeps an update counter and
a running average of the update cost in wei.
"""

import logging
from typing import Tuple

from store import UnitOfWork
from .events import ControlLeverUpdated
from .exceptions import ConsistencyError
from .models import LayerUpdate, Token, TokenControlLever, layer_update_key, lever_key
from .tokens import TokenManager

logger = logging.getLogger(__name__)

def running_average(average: int, count: int, remainder: int, cost: int) -> Tuple[int, int]:
    """Fold one more cost sample into an integer running average.

    Args:
        average: Current average over `count` samples
        count: Number of samples already folded in
        remainder: Remainder left by the previous integer division
        cost: New sample

    Returns:
        (new_average, new_remainder), where new_average == total // (count + 1)
    """
    if count == 0:
        return cost, 0
    total = average * count + remainder + cost
    return divmod(total, count + 1)

class LeverAggregator:
    """Applies lever updates to a layer token's controller."""

    def __init__(self, tokens: TokenManager) -> None:
        self.tokens = tokens

    async def apply(self, uow: UnitOfWork, token: Token, event: ControlLeverUpdated) -> LayerUpdate:
        """Record one batch of lever changes.

        Raises:
            ConsistencyError: If the token has no controller or a lever does not exist
        """
        controller = await self.tokens.get_controller(uow, token)
        cost = event.update_cost

        controller.average_update_cost, controller.average_update_cost_remainder = running_average(
            controller.average_update_cost,
            controller.number_of_updates,
            controller.average_update_cost_remainder,
            cost
        )
        controller.number_of_updates += 1
        controller.num_remaining_updates = event.num_remaining_updates

        update = LayerUpdate(
            id=layer_update_key(token.id, controller.number_of_updates),
            controller=controller.id,
            update_number=controller.number_of_updates,
            gas_price=event.gas_price,
            gas_used=event.gas_used,
            cost_in_wei=cost,
            priority_tip=event.priority_tip,
            timestamp=event.timestamp
        )

        for lever_id, previous, updated in zip(event.lever_ids, event.previous_values, event.updated_values):
            lever = await uow.get(TokenControlLever, lever_key(token.id, lever_id))
            if lever is None:
                logger.critical(f"Lever {lever_id} of token {token.id} does not exist")
                raise ConsistencyError(f"Lever {lever_key(token.id, lever_id)} does not exist")

            lever.previous_value = previous
            lever.current_value = updated
            lever.number_of_updates += 1
            lever.latest_update = update.id
            update.levers_updated.append(lever.id)
            uow.add(lever)

        controller.all_updates.append(update.id)
        controller.last_update = update.id

        uow.add(update)
        uow.add(controller)
        logger.info(
            f"Layer {token.id} update #{update.update_number}: "
            f"{len(update.levers_updated)} levers, cost {cost}, "
            f"average {controller.average_update_cost}"
        )
        return update
