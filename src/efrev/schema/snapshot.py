"""Utilities for loading and saving schema snapshots from/to JSON files."""

from pathlib import Path
from pydantic import TypeAdapter
from efrev.schema.models import SchemaSnapshot


def load_snapshot(snapshot_path: Path) -> SchemaSnapshot:
    """
    Load a SchemaSnapshot from a JSON file.

    Args:
        snapshot_path: Path to the JSON file

    Returns:
        Loaded SchemaSnapshot instance

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is empty or not a valid snapshot
    """
    snapshot_path = Path(snapshot_path)
    if not snapshot_path.exists():
        raise FileNotFoundError(f"Schema snapshot not found: {snapshot_path}")

    file_content = snapshot_path.read_text(encoding="utf-8").strip()
    if not file_content:
        raise ValueError(
            f"Schema snapshot is empty: {snapshot_path}. "
            f"Re-run 'efrev inspect' to regenerate it."
        )

    try:
        return TypeAdapter(SchemaSnapshot).validate_json(file_content)
    except Exception as e:
        raise ValueError(f"Failed to load schema snapshot from {snapshot_path}: {e}") from e


def save_snapshot(snapshot: SchemaSnapshot, snapshot_path: Path) -> None:
    """
    Save a SchemaSnapshot to a JSON file.

    Creates parent directories if they don't exist.
    """
    snapshot_path = Path(snapshot_path)
    snapshot_path.parent.mkdir(parents=True, exist_ok=True)
    snapshot_path.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")
