"""Exception types raised by efrev."""

from typing import Optional


class EfrevError(Exception):
    """Base class for efrev errors."""

    pass


class ConfigurationError(EfrevError, ValueError):
    """Raised when settings are missing or inconsistent."""

    pass


class InvalidTableError(EfrevError, ValueError):
    """Raised when a required table argument is missing or unnamed."""

    def __init__(self, side: str, message: Optional[str] = None):
        self.side = side
        super().__init__(message or f"{side} table is required and must have a non-empty name")


class RelationshipAnalysisError(EfrevError):
    """Raised when classifying a table pair fails unexpectedly.

    The original exception is chained as ``__cause__``.
    """

    def __init__(self, source_table: str, target_table: str, cause: Optional[BaseException] = None):
        self.source_table = source_table
        self.target_table = target_table
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(
            f"Failed to analyze relationship {source_table} -> {target_table}{detail}"
        )


class SchemaReadError(EfrevError):
    """Raised when schema metadata cannot be extracted from a database."""

    pass


class UnsupportedProviderError(EfrevError, ValueError):
    """Raised for a provider name no schema reader handles."""

    pass
