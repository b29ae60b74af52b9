"""Relationship classification results."""

from enum import Enum
from typing import FrozenSet, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from efrev.schema.models import Column, ForeignKey


class RelationKind(str, Enum):
    """Cardinality of a relationship between two tables."""

    UNKNOWN = "unknown"
    ONE_TO_ONE = "one-to-one"
    ONE_TO_MANY = "one-to-many"
    MANY_TO_MANY = "many-to-many"


class ForeignKeyInfo(BaseModel):
    """A foreign key column binding taking part in a relationship."""

    model_config = ConfigDict(frozen=True)

    column: str
    referenced_column: str
    delete_rule: Optional[str] = None
    update_rule: Optional[str] = None
    constraint_name: Optional[str] = None


class JunctionTableInfo(BaseModel):
    """The table carrying a many-to-many relationship."""

    model_config = ConfigDict(frozen=True)

    table_name: str
    source_key_columns: List[str] = Field(default_factory=list)
    additional_columns: List[Column] = Field(default_factory=list)


class Relationship(BaseModel):
    """Outcome of classifying one table pair."""

    model_config = ConfigDict(frozen=True)

    kind: RelationKind = RelationKind.UNKNOWN
    source_table: Optional[str] = None
    target_table: Optional[str] = None
    foreign_keys: List[ForeignKeyInfo] = Field(default_factory=list)
    junction: Optional[JunctionTableInfo] = None

    @classmethod
    def unknown(cls) -> "Relationship":
        return cls(kind=RelationKind.UNKNOWN)

    @property
    def is_known(self) -> bool:
        return self.kind != RelationKind.UNKNOWN

    @property
    def pair_key(self) -> FrozenSet[str]:
        """Order-independent key of the two related tables."""
        return frozenset(t for t in (self.source_table, self.target_table) if t)


def foreign_key_infos(foreign_keys: List[ForeignKey]) -> List[ForeignKeyInfo]:
    """Flatten foreign keys (including composite ones) into per-column infos."""
    infos = []
    for fk in foreign_keys:
        for pair in fk.column_pairs:
            infos.append(
                ForeignKeyInfo(
                    column=pair.column,
                    referenced_column=pair.referenced_column,
                    delete_rule=fk.delete_rule,
                    update_rule=fk.update_rule,
                    constraint_name=fk.name,
                )
            )
    return infos
