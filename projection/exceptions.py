"""Projection exception types.

ConsistencyError is fatal: the event stream references state that an earlier
event should have created. SourceUnavailableError is retryable: the event can
be applied again once the chain node answers.
"""

class ProjectionError(Exception):
    """Base class for projection errors."""
    pass

class ConsistencyError(ProjectionError):
    """Raised when an event references an entity that must exist but does not."""
    pass

class InvalidEventError(ProjectionError):
    """Raised when an event payload cannot be parsed or is malformed."""
    pass

class SourceUnavailableError(ProjectionError):
    """Raised when a contract view query cannot be answered right now."""
    def __init__(self, message: str, query: str = None):
        self.query = query
        super().__init__(f"{query}: {message}" if query else message)
