"""Normalized schema model shared by every schema reader and the analyzer."""

from typing import List, Optional, Literal
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

ReferentialAction = Literal[
    "CASCADE",
    "SET NULL",
    "SET DEFAULT",
    "NO ACTION",
    "RESTRICT",
]

_ACTIONS = {"CASCADE", "SET NULL", "SET DEFAULT", "NO ACTION", "RESTRICT"}


def normalize_rule(value: Optional[str]) -> Optional[str]:
    """Normalize a referential action spelling ("no_action", "Set Null") or None."""
    if value is None:
        return None
    text = " ".join(str(value).replace("_", " ").split()).upper()
    if not text:
        return None
    if text not in _ACTIONS:
        raise ValueError(f"Unknown referential action: {value!r}")
    return text


class SchemaModel(BaseModel):
    """Base for schema models: immutable once built."""

    model_config = ConfigDict(frozen=True)


class Column(SchemaModel):
    """A table column."""

    name: str
    data_type: str = "varchar"
    nullable: bool = True
    primary_key: bool = False
    identity: bool = False
    computed: bool = False
    max_length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    comment: Optional[str] = None
    default: Optional[str] = None


class ForeignKeyColumnPair(SchemaModel):
    """One local column -> referenced column binding of a foreign key."""

    column: str
    referenced_column: str


class ForeignKey(SchemaModel):
    """A foreign key constraint, possibly composite."""

    name: Optional[str] = None
    column_pairs: List[ForeignKeyColumnPair] = Field(min_length=1)
    referenced_table: str
    delete_rule: Optional[ReferentialAction] = None
    update_rule: Optional[ReferentialAction] = None
    enabled: bool = True

    @field_validator("delete_rule", "update_rule", mode="before")
    @classmethod
    def _normalize_rule(cls, value):
        return normalize_rule(value)

    @property
    def is_composite(self) -> bool:
        return len(self.column_pairs) > 1

    @property
    def columns(self) -> List[str]:
        return [pair.column for pair in self.column_pairs]

    @property
    def referenced_columns(self) -> List[str]:
        return [pair.referenced_column for pair in self.column_pairs]

    @classmethod
    def single(
        cls,
        column: str,
        referenced_table: str,
        referenced_column: str,
        **kwargs,
    ) -> "ForeignKey":
        """Build a single-column foreign key."""
        return cls(
            column_pairs=[
                ForeignKeyColumnPair(column=column, referenced_column=referenced_column)
            ],
            referenced_table=referenced_table,
            **kwargs,
        )


class IndexColumn(SchemaModel):
    """A column participating in an index."""

    name: str
    descending: bool = False
    key_ordinal: int = 0
    included: bool = False


class Index(SchemaModel):
    """An index or unique constraint."""

    name: str
    unique: bool = False
    primary_key: bool = False
    disabled: bool = False
    columns: List[IndexColumn] = Field(default_factory=list)

    @property
    def key_columns(self) -> List[str]:
        """Key (non-included) column names in key order."""
        keys = [c for c in self.columns if not c.included]
        return [c.name for c in sorted(keys, key=lambda c: c.key_ordinal)]


class Table(SchemaModel):
    """A database table with its columns, keys and indexes."""

    name: str
    schema_name: Optional[str] = None
    columns: List[Column] = Field(default_factory=list)
    foreign_keys: List[ForeignKey] = Field(default_factory=list)
    indexes: List[Index] = Field(default_factory=list)
    comment: Optional[str] = None

    @model_validator(mode="after")
    def _unique_column_names(self) -> "Table":
        seen = set()
        for column in self.columns:
            if column.name in seen:
                raise ValueError(f"{self.name}: duplicate column name '{column.name}'")
            seen.add(column.name)
        return self

    def get_column(self, name: str) -> Optional[Column]:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    @property
    def primary_key_columns(self) -> List[Column]:
        return [c for c in self.columns if c.primary_key]

    @property
    def qualified_name(self) -> str:
        return f"{self.schema_name}.{self.name}" if self.schema_name else self.name


class SchemaSnapshot(SchemaModel):
    """All tables extracted from one database, fully populated."""

    database_name: Optional[str] = None
    tables: List[Table] = Field(default_factory=list)

    def get_table(self, name: str) -> Optional[Table]:
        for table in self.tables:
            if table.name == name:
                return table
        return None

    @property
    def table_names(self) -> List[str]:
        return [t.name for t in self.tables]
