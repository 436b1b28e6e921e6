"""
Source schemas: header matching, field specs, normalization.

Usage:
    from reportspine.schema import build_registry, normalize

    registry = build_registry()
    outcome = normalize(registry.get("budget_status"), table)
"""

from reportspine.schema.matching import ExactSet, HeaderMatcher, HeaderPattern, PatternSet
from reportspine.schema.registry import (
    FieldSpec,
    OutputShape,
    RowView,
    SchemaRegistry,
    SourceSchema,
    TypedRecord,
)
from reportspine.schema.normalizer import NormalizedRecords, is_blank_row, normalize
from reportspine.schema.definitions import ALL_SCHEMAS, NEVER, build_registry

__all__ = [
    "ExactSet",
    "HeaderMatcher",
    "HeaderPattern",
    "PatternSet",
    "FieldSpec",
    "OutputShape",
    "RowView",
    "SchemaRegistry",
    "SourceSchema",
    "TypedRecord",
    "NormalizedRecords",
    "is_blank_row",
    "normalize",
    "ALL_SCHEMAS",
    "NEVER",
    "build_registry",
]
