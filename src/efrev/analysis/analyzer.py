"""Relationship analysis between database tables.

Classifies table pairs as one-to-one, one-to-many or many-to-many from
foreign-key, primary-key and unique-index metadata. Classification is a
pure function of the tables passed in; the only state is the optional
analyzed-pairs memo owned by the caller of analyze_all().
"""

from typing import FrozenSet, Iterable, List, Optional, Set, Tuple, Union
from efrev.analysis.predicates import (
    DEFAULT_PAYLOAD_TOLERANCE,
    JUNCTION_COLUMN_SLACK,
    enabled_foreign_keys,
    is_junction_table,
    is_many_to_many,
    is_one_to_one,
    is_primary_key_reference,
    junction_payload_columns,
    junction_side_keys,
)
from efrev.analysis.relationships import (
    JunctionTableInfo,
    RelationKind,
    Relationship,
    foreign_key_infos,
)
from efrev.errors import InvalidTableError, RelationshipAnalysisError
from efrev.schema.models import ForeignKey, Table
from efrev.config.logging import get_logger

logger = get_logger(__name__)

# (declaring, referenced) for foreign-key relationships; the unordered side
# pair for a junction's many-to-many relationship
AnalyzedPairs = Set[Union[Tuple[str, str], FrozenSet[str]]]


class RelationshipAnalyzer:
    """Classifies relationships between tables of one schema snapshot."""

    def __init__(self, payload_tolerance: int = DEFAULT_PAYLOAD_TOLERANCE):
        if payload_tolerance < 0:
            raise ValueError("payload_tolerance must not be negative")
        self.payload_tolerance = payload_tolerance

    def analyze_relationship(self, source: Table, target: Table) -> Relationship:
        """
        Classify the relationship that source declares towards target.

        Args:
            source: Table holding the foreign key(s)
            target: Table the foreign key(s) should reference

        Returns:
            Relationship; kind is UNKNOWN when source has no enabled
            foreign key to target

        Raises:
            InvalidTableError: If either table is missing or unnamed
            RelationshipAnalysisError: If the table internals cannot be read
        """
        self._validate(source, target)

        try:
            logger.debug(f"Analyzing relationship {source.name} -> {target.name}")
            foreign_keys = self._foreign_keys_to(source, target)
            if not foreign_keys:
                return Relationship.unknown()

            if self.is_junction(source):
                return self._many_to_many(source)

            return self._standard(source, target, foreign_keys)
        except Exception as e:
            logger.error(
                f"Relationship analysis failed for {source.name} -> {target.name}: {e}",
                exc_info=True,
            )
            raise RelationshipAnalysisError(source.name, target.name, e) from e

    def analyze_all(
        self,
        tables: Iterable[Table],
        analyzed_pairs: Optional[AnalyzedPairs] = None,
    ) -> List[Relationship]:
        """
        Classify every foreign-key relationship in a set of tables.

        Each (declaring, referenced) table pair is reported at most once, so
        two tables referencing each other give two relationships. Junction
        tables produce one many-to-many relationship between the two tables
        they join; the junction-to-side pairs are not reported separately.

        Args:
            tables: All tables of the schema
            analyzed_pairs: Single-run memo of already classified pairs;
                a fresh one is used when omitted

        Returns:
            Known relationships in table order
        """
        tables = list(tables)
        by_name = {t.name: t for t in tables}
        if analyzed_pairs is None:
            analyzed_pairs = set()

        relationships: List[Relationship] = []
        for table in tables:
            if self.is_junction(table):
                relationship = self._analyze_junction(table)
                if relationship.pair_key not in analyzed_pairs:
                    analyzed_pairs.add(relationship.pair_key)
                    relationships.append(relationship)
                continue

            for referenced_name in self._referenced_tables(table):
                pair = (table.name, referenced_name)
                if pair in analyzed_pairs:
                    continue
                referenced = by_name.get(referenced_name)
                if referenced is None:
                    logger.debug(
                        f"{table.name}: referenced table '{referenced_name}' not loaded, skipping"
                    )
                    continue
                relationship = self.analyze_relationship(table, referenced)
                if relationship.is_known:
                    analyzed_pairs.add(pair)
                    relationships.append(relationship)

        logger.info(f"Classified {len(relationships)} relationship(s) across {len(tables)} table(s)")
        return relationships

    def is_junction(self, table: Table) -> bool:
        """Whether a table is a pure many-to-many junction."""
        slack = max(JUNCTION_COLUMN_SLACK, self.payload_tolerance)
        return is_junction_table(table, slack) and is_many_to_many(table, self.payload_tolerance)

    @staticmethod
    def _validate(source: Optional[Table], target: Optional[Table]) -> None:
        if source is None:
            raise InvalidTableError("source", "source table is required")
        if target is None:
            raise InvalidTableError("target", "target table is required")
        if not source.name:
            raise InvalidTableError("source", "source table name must not be empty")
        if not target.name:
            raise InvalidTableError("target", "target table name must not be empty")

    @staticmethod
    def _foreign_keys_to(source: Table, target: Table) -> List[ForeignKey]:
        return [
            fk for fk in source.foreign_keys
            if fk.referenced_table == target.name and fk.enabled
        ]

    @staticmethod
    def _referenced_tables(table: Table) -> List[str]:
        names: List[str] = []
        for fk in enabled_foreign_keys(table):
            if fk.referenced_table not in names:
                names.append(fk.referenced_table)
        return names

    def _analyze_junction(self, table: Table) -> Relationship:
        try:
            return self._many_to_many(table)
        except Exception as e:
            logger.error(f"Junction analysis failed for {table.name}: {e}", exc_info=True)
            raise RelationshipAnalysisError(table.name, table.name, e) from e

    def _many_to_many(self, junction: Table) -> Relationship:
        left, right = junction_side_keys(junction)
        return Relationship(
            kind=RelationKind.MANY_TO_MANY,
            source_table=left.referenced_table,
            target_table=right.referenced_table,
            foreign_keys=foreign_key_infos([left, right]),
            junction=JunctionTableInfo(
                table_name=junction.name,
                source_key_columns=left.columns + right.columns,
                additional_columns=junction_payload_columns(junction),
            ),
        )

    @staticmethod
    def classify_foreign_key(source: Table, target: Table, foreign_key: ForeignKey) -> RelationKind:
        """
        Cardinality implied by one foreign key of source towards target.

        A unique index on the single foreign-key column, or a foreign key
        made of primary-key columns on both sides, makes it one-to-one;
        anything else is one-to-many.
        """
        unique_fk = not foreign_key.is_composite and is_one_to_one(source, foreign_key.columns[0])
        if unique_fk or is_primary_key_reference(source, target, foreign_key):
            return RelationKind.ONE_TO_ONE
        return RelationKind.ONE_TO_MANY

    def _standard(self, source: Table, target: Table, foreign_keys: List[ForeignKey]) -> Relationship:
        for fk in foreign_keys:
            if self.classify_foreign_key(source, target, fk) == RelationKind.ONE_TO_ONE:
                return Relationship(
                    kind=RelationKind.ONE_TO_ONE,
                    source_table=source.name,
                    target_table=target.name,
                    foreign_keys=foreign_key_infos([fk]),
                )

        # The referenced table is the "one" side; the declaring table is the "many" side
        return Relationship(
            kind=RelationKind.ONE_TO_MANY,
            source_table=target.name,
            target_table=source.name,
            foreign_keys=foreign_key_infos(foreign_keys),
        )
