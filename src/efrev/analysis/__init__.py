"""Relationship inference over schema snapshots."""

from .relationships import RelationKind, Relationship, ForeignKeyInfo, JunctionTableInfo
from .predicates import (
    is_one_to_one,
    is_many_to_many,
    is_junction_table,
    is_primary_key_reference,
)
from .analyzer import RelationshipAnalyzer

__all__ = [
    "RelationKind",
    "Relationship",
    "ForeignKeyInfo",
    "JunctionTableInfo",
    "is_one_to_one",
    "is_many_to_many",
    "is_junction_table",
    "is_primary_key_reference",
    "RelationshipAnalyzer",
]
