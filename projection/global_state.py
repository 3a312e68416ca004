"""Global configuration tracker.

One GlobalState record holds the contract-wide fee configuration, the
platform address, the latest master token id, the expected token supply and
the cumulative sale volume.
"""

import logging

from store import UnitOfWork
from .models import GLOBAL_STATE_ID, GlobalState, normalize_address
from .source import ContractSource

logger = logging.getLogger(__name__)

class GlobalStateTracker:
    """Lazily creates and refreshes the GlobalState singleton."""

    def __init__(self, source: ContractSource) -> None:
        self.source = source

    def _pull(self, state: GlobalState, block_number: int) -> None:
        config = self.source.query_global_config(block_number)
        state.artist_second_sale_percentage = config.artist_second_sale_percentage
        state.platform_first_sale_percentage = config.platform_first_sale_percentage
        state.platform_second_sale_percentage = config.platform_second_sale_percentage
        if config.platform_address is not None:
            state.platform_address = normalize_address(config.platform_address)

    async def get_or_init(self, uow: UnitOfWork, block_number: int) -> GlobalState:
        """Return the singleton, pulling its initial values from the contract if absent."""
        state = await uow.get(GlobalState, GLOBAL_STATE_ID)
        if state is None:
            state = GlobalState(id=GLOBAL_STATE_ID)
            self._pull(state, block_number)
            uow.add(state)
            logger.info(f"Initialised global state at block {block_number}")
        return state

    async def refresh(self, uow: UnitOfWork, block_number: int) -> GlobalState:
        """Re-pull the contract configuration unconditionally."""
        state = await uow.get(GlobalState, GLOBAL_STATE_ID)
        if state is None:
            state = GlobalState(id=GLOBAL_STATE_ID)
        self._pull(state, block_number)
        uow.add(state)
        return state
