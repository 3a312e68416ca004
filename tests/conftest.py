"""Shared fixtures: an in-memory store, a scripted contract source and an event factory."""

import itertools
from typing import Dict, List, Optional, Tuple

import pytest
import pytest_asyncio

from monitor import EventMonitor
from projection import (
    ContractEvent,
    ContractSource,
    ControlLeverSpec,
    GlobalConfig,
    Projector,
    SourceUnavailableError,
    parse_event,
)
from store import MemoryStore

ZERO = '0x' + '0' * 40
ALICE = '0x' + 'a' * 40
BOB = '0x' + 'b' * 40
CAROL = '0x' + 'c' * 40
PLATFORM = '0x' + 'f' * 40

# (lever_id, min, max, current) reported for every controller token
DEFAULT_LEVERS = [(0, 0, 100, 50), (1, -10, 10, 0)]

class FakeSource(ContractSource):
    """Scripted contract views."""

    def __init__(self):
        self.config = GlobalConfig(
            artist_second_sale_percentage=10,
            platform_first_sale_percentage=10,
            platform_second_sale_percentage=1,
            platform_address=PLATFORM
        )
        self.levers = DEFAULT_LEVERS
        self.permissions: Dict[Tuple[int, str], str] = {}
        self.failures = 0
        self.fail_query: Optional[str] = None
        self.calls: List[str] = []

    def _maybe_fail(self, name: str) -> None:
        self.calls.append(name)
        if self.failures > 0 and self.fail_query in (None, name):
            self.failures -= 1
            raise SourceUnavailableError("node unreachable", query=name)

    def query_current_permission(self, token_id: int, owner: str, block_number: int) -> Optional[str]:
        self._maybe_fail('permission')
        return self.permissions.get((token_id, owner))

    def query_global_config(self, block_number: int) -> GlobalConfig:
        self._maybe_fail('global_config')
        return self.config.model_copy()

    def query_control_levers(self, token_id: int, block_number: int) -> List[ControlLeverSpec]:
        self._maybe_fail('control_levers')
        return [
            ControlLeverSpec(lever_id=i, min_value=lo, max_value=hi, current_value=cur)
            for i, lo, hi, cur in self.levers
        ]

class EventFactory:
    """Builds wire-format events at increasing block numbers."""

    def __init__(self):
        self._blocks = itertools.count(100)
        self.last_block = None

    def __call__(self, name: str, tx: Optional[str] = None, block: Optional[int] = None,
                 log_index: int = 0, gas_price: int = 0, gas_used: int = 0, **params) -> ContractEvent:
        if block is None:
            # A non-zero log index continues the previous block
            block = self.last_block if log_index and self.last_block else next(self._blocks)
        self.last_block = block
        return parse_event({
            'event': name,
            'block_number': block,
            'log_index': log_index,
            'timestamp': 1_600_000_000 + block,
            'tx_hash': tx or f"0x{block:064x}",
            'gas_price': gas_price,
            'gas_used': gas_used,
            'params': params
        })

@pytest.fixture
def source():
    return FakeSource()

@pytest.fixture
def store():
    return MemoryStore()

@pytest.fixture
def projector(source):
    return Projector(source)

@pytest.fixture
def monitor(store, projector):
    """Monitor with zero backoff wait."""
    return EventMonitor(store, projector, max_source_retries=3, retry_factor=0)

@pytest.fixture
def event():
    return EventFactory()

@pytest.fixture
def apply(monitor):
    """Apply events one by one through the monitor."""
    async def _apply(*events):
        for e in events:
            await monitor.process_event(e)
    return _apply

@pytest.fixture
def get(store):
    """Load a stored entity as its model, None if absent."""
    async def _get(model, entity_id):
        data = await store.load(model.entity_type, str(entity_id))
        return model.model_validate(data) if data is not None else None
    return _get

@pytest_asyncio.fixture
async def minted(event, apply):
    """Master 5 with layers 6..8 created by ALICE; ALICE owns every token."""
    await apply(event('CreatorWhitelisted', token_id=5, layer_count=3, creator=ALICE))
    for token_id in range(5, 9):
        await apply(event('Transfer', from_address=ZERO, to_address=ALICE, token_id=token_id))
