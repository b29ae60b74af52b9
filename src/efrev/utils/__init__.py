"""Utility modules."""

from .naming import to_pascal_case, to_camel_case, pluralize, singularize
from .error_logging import log_error

__all__ = ["to_pascal_case", "to_camel_case", "pluralize", "singularize", "log_error"]
