"""Schema readers: live databases through SQLAlchemy, or JSON snapshots."""

from .base import BaseSchemaReader
from .factory import create_schema_reader, resolve_provider
from .snapshot_reader import SnapshotSchemaReader
from .sqlalchemy_reader import SqlAlchemySchemaReader

__all__ = [
    "BaseSchemaReader",
    "create_schema_reader",
    "resolve_provider",
    "SnapshotSchemaReader",
    "SqlAlchemySchemaReader",
]
