"""Database exception types."""

class DatabaseError(Exception):
    """Base class for database errors."""
    pass

class DatabaseSchemaError(DatabaseError):
    """Raised when schema initialization or migration fails."""
    pass
