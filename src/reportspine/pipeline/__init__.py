"""
Refresh pipeline: processors, reconciliation, snapshots, orchestration.

Usage:
    from reportspine.pipeline import RefreshOrchestrator

    orchestrator = RefreshOrchestrator.from_settings()
    result = await orchestrator.refresh()
"""

from reportspine.pipeline.snapshot import Snapshot, SnapshotStore
from reportspine.pipeline.reconcile import RECONCILED_FIELDS, ReconciliationPatch, build_patches, reconcile
from reportspine.pipeline.graph import DEPENDENCIES, PROCESSOR_ORDER, topological_order
from reportspine.pipeline.processors import (
    FeedStatusProcessor,
    ProcessorContext,
    ProcessorOutput,
    SourceProcessor,
    UsersProcessor,
    build_processors,
)
from reportspine.pipeline.orchestrator import (
    CLIENT_LIST,
    REQUIRED_SOURCES,
    RefreshOrchestrator,
    RefreshResult,
    SourceOutcome,
)

__all__ = [
    "Snapshot",
    "SnapshotStore",
    "RECONCILED_FIELDS",
    "ReconciliationPatch",
    "build_patches",
    "reconcile",
    "DEPENDENCIES",
    "PROCESSOR_ORDER",
    "topological_order",
    "FeedStatusProcessor",
    "ProcessorContext",
    "ProcessorOutput",
    "SourceProcessor",
    "UsersProcessor",
    "build_processors",
    "CLIENT_LIST",
    "REQUIRED_SOURCES",
    "RefreshOrchestrator",
    "RefreshResult",
    "SourceOutcome",
]
