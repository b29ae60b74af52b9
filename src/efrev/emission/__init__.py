"""Entity planning and C# code emission."""

from .orchestrator import EmissionOrchestrator, MISSING_REFERENCED_TABLE
from .plan import (
    EmissionWarning,
    EntityPlan,
    GenerationPlan,
    MappingDirective,
    NavigationProperty,
    ScalarProperty,
)
from .type_mapping import clr_type_for
from .writer import CodeWriter

__all__ = [
    "EmissionOrchestrator",
    "MISSING_REFERENCED_TABLE",
    "EmissionWarning",
    "EntityPlan",
    "GenerationPlan",
    "MappingDirective",
    "NavigationProperty",
    "ScalarProperty",
    "clr_type_for",
    "CodeWriter",
]
