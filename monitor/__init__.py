"""Monitor module for feeding contract events into the projection.

This module provides ordered event intake including:
- A queue consumer that applies events one at a time
- Per-event units of work (all of an event's writes land, or none do)
- A persisted cursor so already applied events are skipped
- Retry with exponential backoff while contract views are unavailable
"""

import asyncio
import logging
from typing import Iterable, Optional

import backoff

from projection import CURSOR_ID, ContractEvent, EventCursor, Projector, SourceUnavailableError
from store import EntityStore, UnitOfWork
from .sources import read_events_jsonl

# Configure logging
logger = logging.getLogger(__name__)

class EventMonitor:
    """Apply contract events to the entity store in (block, log index) order."""

    def __init__(
        self,
        store: EntityStore,
        projector: Projector,
        max_source_retries: int = 5,
        retry_factor: float = 1.0
    ):
        """Initialize the event monitor.

        Args:
            store: Entity store the projection writes to
            projector: Event dispatcher
            max_source_retries: Attempts per event while contract views are unavailable
            retry_factor: Multiplier for the exponential backoff wait, in seconds
        """
        self.store = store
        self.projector = projector
        self.running = True
        self.event_queue: asyncio.Queue = asyncio.Queue()
        self.cursor: Optional[EventCursor] = None
        self._cursor_loaded = False
        self.applied = 0
        self.skipped = 0

        self._apply_with_retry = backoff.on_exception(
            backoff.expo,
            SourceUnavailableError,
            max_tries=max_source_retries,
            factor=retry_factor,
            on_backoff=lambda details: logger.warning(
                f"Contract view unavailable, retry {details['tries']} "
                f"in {details['wait']:.1f}s"
            )
        )(self._apply_once)

    async def load_cursor(self) -> Optional[EventCursor]:
        """Load the position of the last applied event."""
        data = await self.store.load(EventCursor.entity_type, CURSOR_ID)
        self.cursor = EventCursor.model_validate(data) if data is not None else None
        self._cursor_loaded = True
        if self.cursor is not None:
            logger.info(f"Resuming after block {self.cursor.block_number} log {self.cursor.log_index}")
        return self.cursor

    def is_applied(self, event: ContractEvent) -> bool:
        """Whether the event is at or before the cursor."""
        if self.cursor is None:
            return False
        return event.position <= (self.cursor.block_number, self.cursor.log_index)

    async def _apply_once(self, event: ContractEvent) -> int:
        uow = UnitOfWork(self.store)
        try:
            await self.projector.apply(uow, event)
            uow.add(EventCursor(
                id=CURSOR_ID,
                block_number=event.block_number,
                log_index=event.log_index
            ))
            return await uow.commit()
        except Exception:
            uow.rollback()
            raise

    async def process_event(self, event: ContractEvent) -> bool:
        """Apply a single event.

        Returns:
            True if applied, False if skipped as already applied

        Raises:
            SourceUnavailableError: Contract views stayed unavailable for every retry
            ConsistencyError: The event references state that does not exist
        """
        if not self._cursor_loaded:
            await self.load_cursor()

        if self.is_applied(event):
            logger.warning(
                f"Skipping {event.name} at {event.block_number}:{event.log_index}, "
                f"already applied"
            )
            self.skipped += 1
            return False

        written = await self._apply_with_retry(event)
        self.cursor = EventCursor(
            id=CURSOR_ID,
            block_number=event.block_number,
            log_index=event.log_index
        )
        self.applied += 1
        logger.debug(f"Applied {event.name} at {event.block_number}:{event.log_index}, {written} writes")
        return True

    async def replay(self, events: Iterable[ContractEvent]) -> int:
        """Apply events in order, stopping at the first fatal error.

        Returns:
            Number of events applied
        """
        applied = 0
        for event in events:
            if not self.running:
                break
            try:
                if await self.process_event(event):
                    applied += 1
            except Exception as e:
                logger.critical(
                    f"Stopping at {event.name} {event.block_number}:{event.log_index}: {e}"
                )
                self.running = False
                raise
        logger.info(f"Replay finished: {applied} applied, {self.skipped} skipped")
        return applied

    def submit(self, event: ContractEvent) -> None:
        """Queue an event for the consumer."""
        self.event_queue.put_nowait(event)

    async def process_queue(self) -> None:
        """Consume queued events until stopped or a fatal error occurs."""
        while self.running:
            event = await self.event_queue.get()
            try:
                if event is None:
                    # Sentinel from stop()
                    break
                await self.process_event(event)
            except Exception as e:
                logger.critical(
                    f"Fatal error at {event.name} {event.block_number}:{event.log_index}: {e}"
                )
                self.running = False
                raise
            finally:
                self.event_queue.task_done()

    def stop(self):
        """Stop consuming after the event in progress."""
        logger.info("Stopping event monitor...")
        self.running = False
        self.event_queue.put_nowait(None)

# Export public interface
__all__ = [
    'EventMonitor',
    'read_events_jsonl'
]
