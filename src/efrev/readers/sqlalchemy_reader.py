"""Schema reader for live databases using SQLAlchemy's inspector."""

from typing import Any, Dict, Iterable, List, Optional, Set, Tuple
from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.engine.reflection import Inspector
from sqlalchemy.exc import ArgumentError, CompileError, SQLAlchemyError
from efrev.errors import SchemaReadError
from efrev.readers.base import BaseSchemaReader
from efrev.schema.models import (
    Column,
    ForeignKey,
    ForeignKeyColumnPair,
    Index,
    IndexColumn,
    Table,
    normalize_rule,
)
from efrev.config.logging import get_logger

logger = get_logger(__name__)


def mask_url(url: str) -> str:
    """Render a database URL with its password hidden."""
    try:
        return make_url(url).render_as_string(hide_password=True)
    except ArgumentError:
        return "<unparseable database url>"


def _type_name(column_type: Any) -> str:
    try:
        return str(column_type)
    except CompileError:
        return type(column_type).__name__.lower()


def _rule(options: Dict[str, Any], key: str, table: str) -> Optional[str]:
    value = options.get(key)
    try:
        return normalize_rule(value)
    except ValueError:
        logger.warning(f"{table}: ignoring unknown {key} action {value!r}")
        return None


class SqlAlchemySchemaReader(BaseSchemaReader):
    """Reads tables, keys and indexes from any database SQLAlchemy can inspect."""

    def __init__(
        self,
        url: str,
        schema: Optional[str] = None,
        include_tables: Optional[Iterable[str]] = None,
        exclude_tables: Optional[Iterable[str]] = None,
        engine: Optional[Engine] = None,
    ):
        self.url = str(url)
        self.schema = schema or None
        self.include_tables = set(include_tables) if include_tables else None
        self.exclude_tables = set(exclude_tables or [])
        self._engine = engine

    @property
    def masked_url(self) -> str:
        return mask_url(self.url)

    def _get_engine(self) -> Engine:
        if self._engine is None:
            self._engine = create_engine(self.url)
        return self._engine

    def read_tables(self) -> List[Table]:
        try:
            engine = self._get_engine()
            inspector = inspect(engine)
            self.database_name = engine.url.database
            names = self._table_names(inspector)
            logger.info(f"Reading {len(names)} table(s) from {self.masked_url}")
            return [self._read_table(inspector, name) for name in names]
        except SQLAlchemyError as e:
            raise SchemaReadError(f"Failed to read schema from {self.masked_url}: {e}") from e

    def _table_names(self, inspector: Inspector) -> List[str]:
        names = []
        for name in inspector.get_table_names(schema=self.schema):
            if self.include_tables is not None and name not in self.include_tables:
                continue
            if name in self.exclude_tables:
                continue
            names.append(name)
        return names

    def _read_table(self, inspector: Inspector, name: str) -> Table:
        pk = inspector.get_pk_constraint(name, schema=self.schema) or {}
        pk_columns = list(pk.get("constrained_columns") or [])

        columns = [self._column(c, pk_columns) for c in inspector.get_columns(name, schema=self.schema)]
        foreign_keys = [
            fk
            for fk in (
                self._foreign_key(name, raw)
                for raw in inspector.get_foreign_keys(name, schema=self.schema)
            )
            if fk is not None
        ]
        indexes = self._indexes(inspector, name, pk)

        try:
            comment = (inspector.get_table_comment(name, schema=self.schema) or {}).get("text")
        except NotImplementedError:
            comment = None

        logger.debug(
            f"{name}: {len(columns)} column(s), {len(foreign_keys)} foreign key(s), "
            f"{len(indexes)} index(es)"
        )
        return Table(
            name=name,
            schema_name=self.schema or inspector.default_schema_name,
            columns=columns,
            foreign_keys=foreign_keys,
            indexes=indexes,
            comment=comment,
        )

    @staticmethod
    def _column(raw: Dict[str, Any], pk_columns: List[str]) -> Column:
        column_type = raw.get("type")
        default = raw.get("default")
        return Column(
            name=raw["name"],
            data_type=_type_name(column_type),
            nullable=bool(raw.get("nullable", True)),
            primary_key=raw["name"] in pk_columns,
            identity=raw.get("autoincrement") is True or "identity" in raw,
            computed="computed" in raw,
            max_length=getattr(column_type, "length", None),
            precision=getattr(column_type, "precision", None),
            scale=getattr(column_type, "scale", None),
            comment=raw.get("comment"),
            default=str(default) if default is not None else None,
        )

    @staticmethod
    def _foreign_key(table: str, raw: Dict[str, Any]) -> Optional[ForeignKey]:
        constrained = raw.get("constrained_columns") or []
        referred = raw.get("referred_columns") or []
        if not constrained or len(constrained) != len(referred) or not raw.get("referred_table"):
            logger.warning(f"{table}: skipping malformed foreign key {raw.get('name')!r}")
            return None
        options = raw.get("options") or {}
        return ForeignKey(
            name=raw.get("name"),
            column_pairs=[
                ForeignKeyColumnPair(column=c, referenced_column=r)
                for c, r in zip(constrained, referred)
            ],
            referenced_table=raw["referred_table"],
            delete_rule=_rule(options, "ondelete", table),
            update_rule=_rule(options, "onupdate", table),
        )

    def _indexes(self, inspector: Inspector, table: str, pk: Dict[str, Any]) -> List[Index]:
        indexes: List[Index] = []
        seen: Set[Tuple[str, ...]] = set()

        pk_columns = list(pk.get("constrained_columns") or [])
        if pk_columns:
            name = pk.get("name") or f"PK_{table}"
            indexes.append(self._index(name, pk_columns, unique=True, primary_key=True))
            seen.add(tuple(pk_columns))

        for raw in inspector.get_indexes(table, schema=self.schema):
            names = [c for c in raw.get("column_names") or [] if c is not None]
            if not names:
                continue
            unique = bool(raw.get("unique"))
            included = raw.get("include_columns") or []
            indexes.append(self._index(raw.get("name") or f"IX_{table}", names, unique, included=included))
            if unique:
                seen.add(tuple(names))

        try:
            unique_constraints = inspector.get_unique_constraints(table, schema=self.schema)
        except NotImplementedError:
            unique_constraints = []
        for raw in unique_constraints:
            names = list(raw.get("column_names") or [])
            if names and tuple(names) not in seen:
                indexes.append(self._index(raw.get("name") or f"UQ_{table}", names, unique=True))
                seen.add(tuple(names))
        return indexes

    @staticmethod
    def _index(
        name: str,
        columns: List[str],
        unique: bool,
        primary_key: bool = False,
        included: Optional[List[str]] = None,
    ) -> Index:
        index_columns = [IndexColumn(name=c, key_ordinal=i + 1) for i, c in enumerate(columns)]
        index_columns.extend(IndexColumn(name=c, included=True) for c in included or [])
        return Index(name=name, unique=unique, primary_key=primary_key, columns=index_columns)
