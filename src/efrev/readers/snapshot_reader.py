"""Schema reader backed by a JSON schema snapshot."""

from pathlib import Path
from typing import List
from efrev.errors import SchemaReadError
from efrev.readers.base import BaseSchemaReader
from efrev.schema.models import Table
from efrev.schema.snapshot import load_snapshot
from efrev.config.logging import get_logger

logger = get_logger(__name__)


class SnapshotSchemaReader(BaseSchemaReader):
    """Reads tables from a file written by 'efrev inspect'."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def read_tables(self) -> List[Table]:
        try:
            snapshot = load_snapshot(self.path)
        except (FileNotFoundError, ValueError) as e:
            raise SchemaReadError(str(e)) from e
        self.database_name = snapshot.database_name
        logger.debug(f"Loaded {len(snapshot.tables)} table(s) from snapshot {self.path}")
        return list(snapshot.tables)
