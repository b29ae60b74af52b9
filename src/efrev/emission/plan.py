"""What to emit for each entity: properties, navigations and mappings."""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field
from efrev.analysis.relationships import RelationKind, Relationship


class ScalarProperty(BaseModel):
    """One property per table column."""

    name: str
    column_name: str
    clr_type: str
    data_type: str
    nullable: bool = True
    primary_key: bool = False
    identity: bool = False
    computed: bool = False
    max_length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    comment: Optional[str] = None


class NavigationProperty(BaseModel):
    """Reference or collection property pointing at another entity."""

    name: str
    target_entity: str
    collection: bool = False
    kind: RelationKind
    inverse_name: Optional[str] = None


class MappingDirective(BaseModel):
    """
    Fluent mapping for one relationship, seen from the owning entity.

    For foreign keys declared on this table: required follows column
    nullability and cascade_on_delete follows the delete rule. The
    principal side of the same relationship carries principal=True. For
    many-to-many, junction_table and the left/right key columns describe
    the association table.
    """

    kind: RelationKind
    navigation: str
    inverse_navigation: Optional[str] = None
    target_entity: str
    required: bool = False
    cascade_on_delete: bool = False
    columns: List[str] = Field(default_factory=list)
    principal: bool = False
    dependent: bool = True
    junction_table: Optional[str] = None
    left_key_columns: List[str] = Field(default_factory=list)
    right_key_columns: List[str] = Field(default_factory=list)


class EmissionWarning(BaseModel):
    """Non-fatal problem recorded while planning an entity."""

    code: str
    table: str
    message: str
    details: Dict[str, str] = Field(default_factory=dict)


class EntityPlan(BaseModel):
    """Everything to emit for one table."""

    table_name: str
    entity_name: str
    schema_name: Optional[str] = None
    comment: Optional[str] = None
    is_junction: bool = False
    scalars: List[ScalarProperty] = Field(default_factory=list)
    navigations: List[NavigationProperty] = Field(default_factory=list)
    mappings: List[MappingDirective] = Field(default_factory=list)
    warnings: List[EmissionWarning] = Field(default_factory=list)

    @property
    def key_properties(self) -> List[ScalarProperty]:
        return [s for s in self.scalars if s.primary_key]

    @property
    def collection_navigations(self) -> List[NavigationProperty]:
        return [n for n in self.navigations if n.collection]


class GenerationPlan(BaseModel):
    """Plans for every table of a run plus run-level diagnostics."""

    entities: List[EntityPlan] = Field(default_factory=list)
    relationships: List[Relationship] = Field(default_factory=list)
    warnings: List[EmissionWarning] = Field(default_factory=list)
    failures: Dict[str, str] = Field(default_factory=dict)

    def get_entity(self, table_name: str) -> Optional[EntityPlan]:
        for entity in self.entities:
            if entity.table_name == table_name:
                return entity
        return None

    @property
    def model_entities(self) -> List[EntityPlan]:
        """Entities that become classes (junction tables are elided)."""
        return [e for e in self.entities if not e.is_junction]
