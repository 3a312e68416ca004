"""REST API module for the projected entity graph.

This module provides read-only HTTP endpoints for:
- Looking up any projected record by entity type and id
- Looking up a token together with its controller and levers
- Checking how far the projection has progressed
"""

from .main import app
from .state import get_store, set_store

# Export public interface
__all__ = [
    'app',
    'get_store',
    'set_store'
]
