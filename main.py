"""Command line interface for replaying contract events and serving the read API."""
import argparse
import asyncio
import logging
import signal
import sys

import uvicorn

from config import SettingsError, get_settings
from database import DatabaseError, init_db, get_pool, close as db_close
from monitor import EventMonitor, read_events_jsonl
from projection import Projector, ProjectionError
from rpc import RPCError
from rpc.contract import ContractReader
from store import EntityStore, MemoryStore, PostgresStore, StoreError

logger = logging.getLogger(__name__)

# Global instances
monitor = None

def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

def handle_shutdown(signum, frame):
    """Handle shutdown signals gracefully."""
    logger.info("Shutdown signal received. Finishing current event...")
    if monitor is not None:
        monitor.running = False

async def open_store(settings, reset: bool = False) -> EntityStore:
    """Create the configured entity store.

    Args:
        settings: Loaded settings
        reset: Drop and recreate the entity tables first
    """
    if settings['store'] == 'memory':
        logger.warning("Using in-memory store, projected state will not be kept")
        return MemoryStore()

    logger.info("Initializing database...")
    await init_db(settings['db_url'], force_recreate=reset)
    pool = await get_pool()
    return PostgresStore(pool)

async def replay(settings, path: str, reset: bool = False) -> int:
    """Apply every event in a JSON-lines file."""
    global monitor

    store = await open_store(settings, reset=reset)
    try:
        source = ContractReader.from_settings()
        monitor = EventMonitor(
            store,
            Projector(source),
            max_source_retries=settings['max_source_retries']
        )
        await monitor.load_cursor()
        applied = await monitor.replay(read_events_jsonl(path))
        logger.info(f"Applied {applied} events from {path}")
        return applied
    finally:
        if isinstance(store, PostgresStore):
            await db_close()

async def serve(settings) -> None:
    """Run the read API over the configured store."""
    from api import app, set_store

    store = await open_store(settings)
    set_store(store)
    config = uvicorn.Config(
        app,
        host=settings['api_host'],
        port=settings['api_port'],
        log_level=settings['log_level'].lower()
    )
    server = uvicorn.Server(config)
    try:
        await server.serve()
    finally:
        set_store(None)
        if isinstance(store, PostgresStore):
            await db_close()

def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Layer art contract projection")
    parser.add_argument(
        '--settings',
        default=None,
        help="Directory containing settings.conf (default: current directory)"
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    replay_parser = subparsers.add_parser('replay', help="Apply events from a JSON-lines file")
    replay_parser.add_argument('events', help="Path to the events file")
    replay_parser.add_argument(
        '--reset',
        action='store_true',
        help="Drop all projected entities before replaying"
    )

    subparsers.add_parser('serve', help="Run the read-only HTTP API")
    return parser.parse_args(argv)

def main(argv=None) -> int:
    args = parse_args(argv)

    try:
        settings = get_settings(args.settings)
    except SettingsError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    configure_logging(settings['log_level'])

    try:
        if args.command == 'replay':
            signal.signal(signal.SIGINT, handle_shutdown)
            signal.signal(signal.SIGTERM, handle_shutdown)
            asyncio.run(replay(settings, args.events, reset=args.reset))
        else:
            asyncio.run(serve(settings))
    except (ProjectionError, RPCError, StoreError, DatabaseError) as e:
        logger.critical(f"Projection stopped: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0

if __name__ == "__main__":
    sys.exit(main())
