"""Structural checks for an extracted schema snapshot."""

from dataclasses import dataclass, field
from typing import Dict, List
from efrev.schema.models import SchemaSnapshot, Table
from efrev.config.logging import get_logger

logger = get_logger(__name__)


@dataclass
class SchemaIssue:
    """Problem found in a schema snapshot. Never fatal on its own."""

    code: str  # e.g., "MISSING_PK", "FK_REF_TABLE_MISSING"
    location: str  # e.g., "table_name" or "table_name.column_name"
    message: str
    details: dict = field(default_factory=dict)


def _check_table(table: Table, tables: Dict[str, Table]) -> List[SchemaIssue]:
    issues: List[SchemaIssue] = []
    column_names = {c.name for c in table.columns}

    if not table.columns:
        issues.append(
            SchemaIssue(
                code="EMPTY_TABLE",
                location=table.name,
                message=f"{table.name}: table has no columns",
                details={"table": table.name},
            )
        )
        return issues

    if not table.primary_key_columns:
        issues.append(
            SchemaIssue(
                code="MISSING_PK",
                location=table.name,
                message=f"{table.name}: missing primary key; the entity will have no key",
                details={"table": table.name},
            )
        )

    for fk in table.foreign_keys:
        for column in fk.columns:
            if column not in column_names:
                issues.append(
                    SchemaIssue(
                        code="FK_COL_MISSING",
                        location=f"{table.name}.{column}",
                        message=f"{table.name}: foreign key column '{column}' does not exist",
                        details={"table": table.name, "column": column, "constraint": fk.name},
                    )
                )

        ref_table = tables.get(fk.referenced_table)
        if ref_table is None:
            issues.append(
                SchemaIssue(
                    code="FK_REF_TABLE_MISSING",
                    location=f"{table.name}.{','.join(fk.columns)}",
                    message=f"{table.name}: foreign key {fk.name or fk.columns} references "
                    f"missing table '{fk.referenced_table}'",
                    details={
                        "table": table.name,
                        "fk_columns": fk.columns,
                        "ref_table": fk.referenced_table,
                    },
                )
            )
            continue

        ref_columns = {c.name for c in ref_table.columns}
        for ref_column in fk.referenced_columns:
            if ref_column not in ref_columns:
                issues.append(
                    SchemaIssue(
                        code="FK_REF_COL_MISSING",
                        location=f"{table.name}.{','.join(fk.columns)}",
                        message=f"{table.name}: foreign key references "
                        f"'{fk.referenced_table}.{ref_column}' which does not exist",
                        details={
                            "table": table.name,
                            "ref_table": fk.referenced_table,
                            "ref_column": ref_column,
                        },
                    )
                )

        ref_pk = [c.name for c in ref_table.primary_key_columns]
        if ref_pk and set(fk.referenced_columns) <= set(ref_pk) and len(fk.columns) != len(ref_pk):
            issues.append(
                SchemaIssue(
                    code="FK_COLUMN_COUNT_MISMATCH",
                    location=f"{table.name}.{','.join(fk.columns)}",
                    message=f"{table.name}: foreign key has {len(fk.columns)} column(s) but "
                    f"'{fk.referenced_table}' primary key has {len(ref_pk)}",
                    details={"table": table.name, "ref_table": fk.referenced_table},
                )
            )

    for index in table.indexes:
        for index_column in index.columns:
            if index_column.name not in column_names:
                issues.append(
                    SchemaIssue(
                        code="INDEX_COL_MISSING",
                        location=f"{table.name}.{index_column.name}",
                        message=f"{table.name}: index '{index.name}' covers unknown "
                        f"column '{index_column.name}'",
                        details={"table": table.name, "index": index.name},
                    )
                )

    return issues


def validate_schema(snapshot: SchemaSnapshot) -> List[SchemaIssue]:
    """
    Validate schema snapshot consistency.

    Args:
        snapshot: Extracted schema

    Returns:
        List of SchemaIssue objects (empty if validation passes)
    """
    tables = {t.name: t for t in snapshot.tables}
    issues: List[SchemaIssue] = []
    for table in snapshot.tables:
        issues.extend(_check_table(table, tables))

    if issues:
        logger.debug(f"Schema validation found {len(issues)} issue(s)")
    return issues
