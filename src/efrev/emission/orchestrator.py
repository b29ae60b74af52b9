"""Decides, per table, which properties, navigations and mappings to emit.

The orchestrator only reads the schema snapshot. Each table is planned
independently; inverse navigations are found by scanning the other tables
read-only, so plan_table() may run concurrently for different tables.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional, Set, Tuple
from efrev.analysis.analyzer import RelationshipAnalyzer
from efrev.analysis.predicates import junction_side_keys
from efrev.analysis.relationships import RelationKind
from efrev.emission.plan import (
    EmissionWarning,
    EntityPlan,
    GenerationPlan,
    MappingDirective,
    NavigationProperty,
    ScalarProperty,
)
from efrev.emission.type_mapping import clr_type_for
from efrev.errors import InvalidTableError, RelationshipAnalysisError
from efrev.schema.models import ForeignKey, Table
from efrev.utils.error_logging import log_error, log_error_with_recovery
from efrev.utils.naming import pluralize, singularize, to_pascal_case
from efrev.config.logging import get_logger

logger = get_logger(__name__)

MISSING_REFERENCED_TABLE = "MISSING_REFERENCED_TABLE"

_ID_SUFFIXES = ("_id", "_ID", "Id", "ID")

# (dependent table name, index of the foreign key in its foreign_keys list)
ForeignKeyRef = Tuple[str, int]
IncomingForeignKey = Tuple[Table, int, ForeignKey, RelationKind]
# (inverse name per dependent foreign key, many-to-many name per junction)
InverseNames = Tuple[Dict[ForeignKeyRef, str], Dict[str, str]]


class EmissionOrchestrator:
    """Plans entity classes and mapping configuration for a set of tables."""

    def __init__(
        self,
        tables: Iterable[Table],
        analyzer: Optional[RelationshipAnalyzer] = None,
        pluralize_collections: bool = True,
        use_pascal_case: bool = True,
        singularize_entity_names: bool = False,
        max_workers: int = 1,
    ):
        self.tables: List[Table] = list(tables)
        self.analyzer = analyzer or RelationshipAnalyzer()
        self.pluralize_collections = pluralize_collections
        self.use_pascal_case = use_pascal_case
        self.singularize_entity_names = singularize_entity_names
        self.max_workers = max(1, max_workers)
        self._by_name: Dict[str, Table] = {t.name: t for t in self.tables}

    # ------------------------------------------------------------------
    # Naming
    # ------------------------------------------------------------------

    def entity_name(self, table_name: str) -> str:
        name = to_pascal_case(table_name) if self.use_pascal_case else table_name
        if self.singularize_entity_names:
            name = singularize(name)
        return name

    def property_name(self, column_name: str) -> str:
        return to_pascal_case(column_name) if self.use_pascal_case else column_name

    def collection_name(self, entity_name: str) -> str:
        return pluralize(entity_name) if self.pluralize_collections else entity_name

    @staticmethod
    def _unique(base: str, used: Set[str]) -> str:
        name = base
        if name in used:
            name = f"{base}Navigation"
        counter = 2
        while name in used:
            name = f"{base}{counter}"
            counter += 1
        used.add(name)
        return name

    def _column_stem(self, column_name: str) -> str:
        for suffix in _ID_SUFFIXES:
            if column_name.endswith(suffix) and len(column_name) > len(suffix):
                return self.property_name(column_name[: -len(suffix)].rstrip("_"))
        return self.property_name(column_name)

    def _base_names(self, table: Table) -> Set[str]:
        return {self.entity_name(table.name)} | {self.property_name(c.name) for c in table.columns}

    def _reference_names(self, table: Table) -> Dict[int, str]:
        """Reference navigation name per foreign-key index of a dependent table."""
        used = self._base_names(table)
        fks = list(enumerate(table.foreign_keys))
        per_target: Dict[str, int] = {}
        for _, fk in fks:
            if fk.enabled:
                per_target[fk.referenced_table] = per_target.get(fk.referenced_table, 0) + 1

        names: Dict[int, str] = {}
        for index, fk in fks:
            if not fk.enabled or fk.referenced_table not in self._by_name:
                continue
            ambiguous = per_target[fk.referenced_table] > 1 or fk.referenced_table == table.name
            if ambiguous:
                base = self._column_stem(fk.columns[0])
            else:
                base = self.entity_name(fk.referenced_table)
            names[index] = self._unique(base, used)
        return names

    # ------------------------------------------------------------------
    # Junction handling
    # ------------------------------------------------------------------

    def is_junction(self, table: Table) -> bool:
        """A junction table whose two side tables are both loaded."""
        if not self.analyzer.is_junction(table):
            return False
        return all(fk.referenced_table in self._by_name for fk in junction_side_keys(table))

    def _junctions(self) -> List[Table]:
        return [t for t in self.tables if self.is_junction(t)]

    # ------------------------------------------------------------------
    # Inverse navigation discovery
    # ------------------------------------------------------------------

    def _incoming(self, principal: Table) -> List[IncomingForeignKey]:
        """Foreign keys of other (non-junction) tables that reference principal."""
        incoming = []
        for dependent in self.tables:
            if dependent.name == principal.name:
                continue
            try:
                if self.is_junction(dependent):
                    continue
                for index, fk in enumerate(dependent.foreign_keys):
                    if not fk.enabled or fk.referenced_table != principal.name:
                        continue
                    kind = self._classify(dependent, principal, fk)
                    incoming.append((dependent, index, fk, kind))
            except (RelationshipAnalysisError, TypeError, AttributeError) as e:
                log_error_with_recovery(
                    error=e,
                    recovery_action=f"skipping inverse navigations from '{dependent.name}'",
                    operation="discovering inverse navigations",
                    table_name=principal.name,
                )
        return incoming

    def _classify(self, dependent: Table, principal: Table, fk: ForeignKey) -> RelationKind:
        relationship = self.analyzer.analyze_relationship(dependent, principal)
        if relationship.kind == RelationKind.MANY_TO_MANY:
            # A junction with a side table missing is emitted as a plain entity
            return RelationKind.ONE_TO_MANY
        return self.analyzer.classify_foreign_key(dependent, principal, fk)

    def _inverse_names(
        self,
        principal: Table,
        incoming: Optional[List[IncomingForeignKey]] = None,
    ) -> InverseNames:
        """
        Names of the navigations principal gets from other tables.

        Args:
            principal: Referenced table
            incoming: Result of _incoming(principal), computed when omitted

        Returns:
            (inverse name per dependent foreign key, many-to-many collection
            name per junction table)
        """
        references = self._reference_names(principal)
        used = self._base_names(principal) | set(references.values())
        if incoming is None:
            incoming = self._incoming(principal)

        per_dependent: Dict[str, int] = {}
        for dependent, _, _, _ in incoming:
            per_dependent[dependent.name] = per_dependent.get(dependent.name, 0) + 1

        inverse: Dict[ForeignKeyRef, str] = {}
        for dependent, index, fk, kind in incoming:
            dependent_entity = self.entity_name(dependent.name)
            if kind == RelationKind.ONE_TO_ONE:
                base = dependent_entity
            else:
                base = self.collection_name(dependent_entity)
            if per_dependent[dependent.name] > 1:
                reference = self._reference_names(dependent).get(index, "")
                base = f"{reference}{base}"
            inverse[(dependent.name, index)] = self._unique(base, used)

        # Self-references keep both ends on the same entity
        for index, fk in enumerate(principal.foreign_keys):
            if not fk.enabled or fk.referenced_table != principal.name:
                continue
            base = f"Inverse{references.get(index, '')}"
            inverse[(principal.name, index)] = self._unique(base, used)

        many_to_many: Dict[str, str] = {}
        for junction in self._junctions():
            left, right = junction_side_keys(junction)
            if left.referenced_table == principal.name:
                other = right.referenced_table
            elif right.referenced_table == principal.name:
                other = left.referenced_table
            else:
                continue
            base = self.collection_name(self.entity_name(other))
            many_to_many[junction.name] = self._unique(base, used)
        return inverse, many_to_many

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def _scalars(self, table: Table) -> List[ScalarProperty]:
        return [
            ScalarProperty(
                name=self.property_name(column.name),
                column_name=column.name,
                clr_type=clr_type_for(column),
                data_type=column.data_type,
                nullable=column.nullable,
                primary_key=column.primary_key,
                identity=column.identity,
                computed=column.computed,
                max_length=column.max_length,
                precision=column.precision,
                scale=column.scale,
                comment=column.comment,
            )
            for column in table.columns
        ]

    @staticmethod
    def _is_required(table: Table, fk: ForeignKey) -> bool:
        columns = [table.get_column(name) for name in fk.columns]
        return all(column is not None and not column.nullable for column in columns)

    def _missing_reference_warning(self, table: Table, fk: ForeignKey) -> EmissionWarning:
        message = (
            f"{table.name}: foreign key {fk.name or ', '.join(fk.columns)} references "
            f"table '{fk.referenced_table}' which is not in the loaded schema; "
            f"emitting the scalar column only"
        )
        logger.warning(message)
        return EmissionWarning(
            code=MISSING_REFERENCED_TABLE,
            table=table.name,
            message=message,
            details={
                "referenced_table": fk.referenced_table,
                "columns": ", ".join(fk.columns),
            },
        )

    def plan_table(self, table: Table) -> EntityPlan:
        """
        Decide what to emit for one table.

        Raises:
            InvalidTableError: If the table is missing or unnamed
            RelationshipAnalysisError: If classifying one of its own foreign
                keys fails
        """
        if table is None:
            raise InvalidTableError("table", "table is required")
        if not table.name:
            raise InvalidTableError("table", "table name must not be empty")

        entity = self.entity_name(table.name)
        plan = EntityPlan(
            table_name=table.name,
            entity_name=entity,
            schema_name=table.schema_name,
            comment=table.comment,
            is_junction=self.is_junction(table),
            scalars=self._scalars(table),
        )

        if plan.is_junction:
            logger.debug(f"{table.name}: junction table, mapped as many-to-many association")
            return plan

        # Inverse names per principal table, computed once for this plan
        incoming = self._incoming(table)
        cache: Dict[str, InverseNames] = {table.name: self._inverse_names(table, incoming)}

        self._plan_references(table, plan, cache)
        self._plan_inverses(table, plan, incoming, cache)
        return plan

    def _cached_inverse_names(self, table_name: str, cache: Dict[str, InverseNames]) -> InverseNames:
        if table_name not in cache:
            cache[table_name] = self._inverse_names(self._by_name[table_name])
        return cache[table_name]

    def _plan_references(self, table: Table, plan: EntityPlan, cache: Dict[str, InverseNames]) -> None:
        reference_names = self._reference_names(table)
        for index, fk in enumerate(table.foreign_keys):
            if not fk.enabled:
                continue
            principal = self._by_name.get(fk.referenced_table)
            if principal is None:
                plan.warnings.append(self._missing_reference_warning(table, fk))
                continue

            kind = self._classify(table, principal, fk)
            navigation = reference_names[index]
            target_entity = self.entity_name(principal.name)
            inverse = self._cached_inverse_names(principal.name, cache)[0].get((table.name, index))

            plan.navigations.append(
                NavigationProperty(
                    name=navigation,
                    target_entity=target_entity,
                    collection=False,
                    kind=kind,
                    inverse_name=inverse,
                )
            )
            plan.mappings.append(
                MappingDirective(
                    kind=kind,
                    navigation=navigation,
                    inverse_navigation=inverse,
                    target_entity=target_entity,
                    required=self._is_required(table, fk),
                    cascade_on_delete=fk.delete_rule == "CASCADE",
                    columns=[self.property_name(c) for c in fk.columns],
                    principal=False,
                    dependent=True,
                )
            )

    def _plan_inverses(
        self,
        table: Table,
        plan: EntityPlan,
        incoming: List[IncomingForeignKey],
        cache: Dict[str, InverseNames],
    ) -> None:
        entity = plan.entity_name
        inverse_names, many_to_many = cache[table.name]

        for dependent, index, fk, kind in incoming:
            name = inverse_names[(dependent.name, index)]
            dependent_entity = self.entity_name(dependent.name)
            reference = self._reference_names(dependent).get(index)
            collection = kind != RelationKind.ONE_TO_ONE
            plan.navigations.append(
                NavigationProperty(
                    name=name,
                    target_entity=dependent_entity,
                    collection=collection,
                    kind=kind,
                    inverse_name=reference,
                )
            )
            plan.mappings.append(
                MappingDirective(
                    kind=kind,
                    navigation=name,
                    inverse_navigation=reference,
                    target_entity=dependent_entity,
                    required=self._is_required(dependent, fk),
                    cascade_on_delete=fk.delete_rule == "CASCADE",
                    columns=[self.property_name(c) for c in fk.columns],
                    principal=True,
                    dependent=False,
                )
            )

        # Self-references: the collection / inverse side lives on the same entity
        self_references = self._reference_names(table)
        for (dependent_name, index), name in inverse_names.items():
            if dependent_name != table.name:
                continue
            fk = table.foreign_keys[index]
            kind = self.analyzer.classify_foreign_key(table, table, fk)
            reference = self_references.get(index)
            plan.navigations.append(
                NavigationProperty(
                    name=name,
                    target_entity=entity,
                    collection=kind != RelationKind.ONE_TO_ONE,
                    kind=kind,
                    inverse_name=reference,
                )
            )

        for junction_name, name in many_to_many.items():
            junction = self._by_name[junction_name]
            left, right = junction_side_keys(junction)
            is_left = left.referenced_table == table.name
            other_table = right.referenced_table if is_left else left.referenced_table
            other_names = self._cached_inverse_names(other_table, cache)[1]
            other_collection = other_names.get(junction_name)
            other_entity = self.entity_name(other_table)

            plan.navigations.append(
                NavigationProperty(
                    name=name,
                    target_entity=other_entity,
                    collection=True,
                    kind=RelationKind.MANY_TO_MANY,
                    inverse_name=other_collection,
                )
            )
            # The association is configured once, from the left side
            if is_left:
                plan.mappings.append(
                    MappingDirective(
                        kind=RelationKind.MANY_TO_MANY,
                        navigation=name,
                        inverse_navigation=other_collection,
                        target_entity=other_entity,
                        required=False,
                        cascade_on_delete=left.delete_rule == "CASCADE",
                        columns=[],
                        principal=True,
                        dependent=False,
                        junction_table=junction.name,
                        left_key_columns=left.columns,
                        right_key_columns=right.columns,
                    )
                )

    def _plan_or_record(self, table: Table, plan: GenerationPlan) -> Optional[EntityPlan]:
        try:
            return self.plan_table(table)
        except (InvalidTableError, RelationshipAnalysisError) as e:
            name = getattr(table, "name", None) or "<unnamed>"
            log_error(error=e, operation="planning entity", table_name=name)
            plan.failures[name] = str(e)
            return None

    def plan_all(self) -> GenerationPlan:
        """
        Plan every table. A failing table is recorded in failures and the
        remaining tables are still planned.
        """
        plan = GenerationPlan()
        try:
            plan.relationships = self.analyzer.analyze_all(self.tables, analyzed_pairs=set())
        except (InvalidTableError, RelationshipAnalysisError) as e:
            log_error_with_recovery(
                error=e,
                recovery_action="planning tables individually without the relationship summary",
                operation="analyzing schema relationships",
            )

        if self.max_workers > 1 and len(self.tables) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                results = list(executor.map(lambda t: self._plan_or_record(t, plan), self.tables))
        else:
            results = [self._plan_or_record(t, plan) for t in self.tables]

        for entity in results:
            if entity is None:
                continue
            plan.entities.append(entity)
            plan.warnings.extend(entity.warnings)

        logger.info(
            f"Planned {len(plan.entities)} entit{'y' if len(plan.entities) == 1 else 'ies'} "
            f"({len(plan.model_entities)} classes), {len(plan.warnings)} warning(s), "
            f"{len(plan.failures)} failure(s)"
        )
        return plan
