"""Common interface for schema readers."""

from abc import ABC, abstractmethod
from typing import List, Optional
from efrev.schema.models import SchemaSnapshot, Table


class BaseSchemaReader(ABC):
    """Reads table metadata from a schema source."""

    database_name: Optional[str] = None

    @abstractmethod
    def read_tables(self) -> List[Table]:
        """
        Read every table of the source.

        Returns:
            Tables with columns, foreign keys and indexes

        Raises:
            SchemaReadError: If the source cannot be read
        """

    def read_snapshot(self) -> SchemaSnapshot:
        """Read the tables, then wrap them with the database name the read discovered."""
        tables = self.read_tables()
        return SchemaSnapshot(database_name=self.database_name, tables=tables)
