"""Structural predicates over a single table snapshot.

All functions here are pure: they read the table and never modify it, so
they are safe to call from several threads against the same snapshot.
"""

from typing import List, Optional, Set
from efrev.schema.models import Column, ForeignKey, Table

# Non-key columns a junction table may carry (e.g. an enrollment date)
DEFAULT_PAYLOAD_TOLERANCE = 2

# Extra columns allowed beyond one per foreign key in the junction pre-filter
JUNCTION_COLUMN_SLACK = 2


def primary_key_columns(table: Table) -> List[str]:
    """Names of the table's primary-key columns in declaration order."""
    return [c.name for c in table.columns if c.primary_key]


def enabled_foreign_keys(table: Table) -> List[ForeignKey]:
    return [fk for fk in table.foreign_keys if fk.enabled]


def foreign_key_columns(table: Table) -> Set[str]:
    """Every local column that takes part in an enabled foreign key."""
    return {column for fk in enabled_foreign_keys(table) for column in fk.columns}


def has_unique_index_on(table: Table, column: str) -> bool:
    """True when a unique, non-PK, enabled index covers exactly this one column."""
    for index in table.indexes:
        if not index.unique or index.primary_key or index.disabled:
            continue
        if index.key_columns == [column]:
            return True
    return False


def is_one_to_one(table: Table, column: str) -> bool:
    """
    Check whether a foreign-key column makes its relationship one-to-one.

    The column must be covered by its own unique (non-PK) index, take part
    in exactly one foreign key, that foreign key must be single-column, and
    the column must not belong to the primary key.

    Args:
        table: Table declaring the foreign key
        column: Local foreign-key column name

    Returns:
        True if the relationship through this column is one-to-one
    """
    if column in primary_key_columns(table):
        return False

    owning = [fk for fk in table.foreign_keys if column in fk.columns]
    if len(owning) != 1 or owning[0].is_composite:
        return False

    return has_unique_index_on(table, column)


def is_primary_key_reference(source: Table, target: Table, foreign_key: ForeignKey) -> bool:
    """
    Check the shared-primary-key one-to-one shape.

    The foreign key's columns are exactly as many as the target's primary
    key, the local columns are exactly the source primary key and every
    referenced column is a target primary-key column. Malformed keys
    (unknown columns, mismatched counts) return False.
    """
    target_pk = primary_key_columns(target)
    if not target_pk:
        return False

    local = foreign_key.columns
    referenced = foreign_key.referenced_columns
    if len(local) != len(referenced) or len(local) != len(target_pk):
        return False

    # Exactly the source key, not a subset of it: one half of a composite
    # junction key also references a whole primary key but is not one-to-one
    source_pk = set(primary_key_columns(source))
    if set(local) != source_pk:
        return False
    return all(column in target_pk for column in referenced)


def _junction_sides(table: Table) -> Optional[List[ForeignKey]]:
    """The table's two enabled foreign keys, when they point at two distinct other tables."""
    foreign_keys = enabled_foreign_keys(table)
    if len(foreign_keys) != 2:
        return None
    left, right = foreign_keys
    targets = {left.referenced_table, right.referenced_table}
    if len(targets) != 2 or table.name in targets:
        return None
    return [left, right]


def junction_side_keys(table: Table) -> List[ForeignKey]:
    """The two foreign keys that form the sides of a junction table."""
    return _junction_sides(table) or []


def junction_payload_columns(table: Table) -> List[Column]:
    """Columns that are neither primary-key nor foreign-key columns."""
    keys = set(primary_key_columns(table)) | foreign_key_columns(table)
    return [c for c in table.columns if c.name not in keys]


def is_junction_table(table: Table, slack: int = JUNCTION_COLUMN_SLACK) -> bool:
    """
    Loose junction-table shape test used as a pre-filter.

    Args:
        table: Table to check
        slack: Columns allowed beyond one per foreign key

    Returns:
        True when the table has at least two foreign keys and few other columns
    """
    foreign_keys = enabled_foreign_keys(table)
    if len(foreign_keys) < 2:
        return False
    return len(table.columns) <= len(foreign_keys) + slack


def is_many_to_many(table: Table, payload_tolerance: int = DEFAULT_PAYLOAD_TOLERANCE) -> bool:
    """
    Check whether a table is a pure many-to-many junction.

    Requires exactly two enabled foreign keys, to two distinct tables other
    than itself, a composite primary key made entirely of foreign-key
    columns, and at most payload_tolerance additional columns. A third
    foreign key makes the table an ordinary entity.

    Args:
        table: Table to check
        payload_tolerance: Maximum number of non-key payload columns

    Returns:
        True if the table only carries a many-to-many association
    """
    if _junction_sides(table) is None:
        return False

    pk = primary_key_columns(table)
    if len(pk) < 2:
        return False

    fk_columns = foreign_key_columns(table)
    if not all(column in fk_columns for column in pk):
        return False

    return len(junction_payload_columns(table)) <= payload_tolerance
