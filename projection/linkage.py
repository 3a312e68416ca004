"""Linkage reconciliation between a master token and its layers.

The layer set of a master is derived from ids alone (master+1 .. master+N).
Everything else computed here is a rollup over those layers. Values are
only written when they changed, so reconciling twice is a no-op.
"""

import logging
from typing import Optional

from store import UnitOfWork
from .models import Token, TokenController, TokenControlLever, controller_key

logger = logging.getLogger(__name__)

class LinkageReconciler:
    """Recomputes master/layer links and derived flags."""

    async def reconcile(self, uow: UnitOfWork, token_id) -> bool:
        """Reconcile the master family the given token belongs to.

        Missing entities are logged and skipped.

        Returns:
            True if anything was staged for writing
        """
        master = await self._find_master(uow, str(token_id))
        if master is None:
            return False

        changed = False
        layers = []
        layers_for_sale = 0
        layers_with_active_bid = 0
        all_layers_at_default = True

        for layer_id in master.layer_ids():
            layer = await uow.get(Token, layer_id)
            if layer is None:
                logger.warning(f"Layer {layer_id} of master {master.id} not found, skipping")
                all_layers_at_default = False
                continue

            layers.append(layer.id)
            if layer.current_buy_price > 0:
                layers_for_sale += 1
            if layer.current_bid is not None:
                layers_with_active_bid += 1

            if layer.master != master.id:
                layer.master = master.id
                uow.add(layer)
                changed = True

            at_default = await self._reconcile_controller(uow, layer)
            if at_default is None:
                all_layers_at_default = False
            else:
                changed = at_default[1] or changed
                all_layers_at_default = all_layers_at_default and at_default[0]

        derived = {
            'layers': layers,
            'layers_for_sale': layers_for_sale,
            'layers_with_active_bid': layers_with_active_bid,
            'all_layers_at_default': all_layers_at_default,
        }
        stale = {field: value for field, value in derived.items() if getattr(master, field) != value}
        if stale:
            for field, value in stale.items():
                setattr(master, field, value)
            uow.add(master)
            changed = True
            logger.debug(f"Reconciled master {master.id}: {', '.join(stale)}")

        return changed

    async def _find_master(self, uow: UnitOfWork, token_id: str) -> Optional[Token]:
        token = await uow.get(Token, token_id)
        if token is None:
            logger.warning(f"Cannot reconcile token {token_id}: not found")
            return None
        if token.is_master:
            return token

        if token.master is not None:
            master = await uow.get(Token, token.master)
            if master is not None and master.is_master and token_id in master.layer_ids():
                return master
            logger.warning(f"Token {token_id} records master {token.master} which does not own it")

        master = await self._search_master(uow, token.token_id)
        if master is None:
            logger.warning(f"Cannot reconcile token {token_id}: no master found")
        return master

    async def _search_master(self, uow: UnitOfWork, token_id: int) -> Optional[Token]:
        """Nearest master below token_id, if its layer range covers token_id."""
        for candidate_id in range(token_id - 1, -1, -1):
            candidate = await uow.get(Token, str(candidate_id))
            if candidate is None or not candidate.is_master:
                continue
            if str(token_id) in candidate.layer_ids():
                logger.info(f"Recovered master {candidate.id} of token {token_id} from ids")
                return candidate
            return None
        return None

    async def _reconcile_controller(self, uow: UnitOfWork, layer: Token):
        """Refresh a controller's all_levers_at_default flag.

        Returns:
            (at_default, changed), or None if the controller is missing
        """
        controller = await uow.get(TokenController, controller_key(layer.id))
        if controller is None:
            logger.warning(f"Controller of layer {layer.id} not found, skipping")
            return None

        at_default = True
        for lever_id in controller.levers:
            lever = await uow.get(TokenControlLever, lever_id)
            if lever is None:
                logger.warning(f"Lever {lever_id} not found, skipping")
                at_default = False
                continue
            if lever.current_value != lever.default_value:
                at_default = False

        if controller.all_levers_at_default == at_default:
            return at_default, False

        controller.all_levers_at_default = at_default
        uow.add(controller)
        return at_default, True
