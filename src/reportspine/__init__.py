"""
Report Spine - ingestion, normalization and reconciliation for sheet-backed reporting.

Fetches up to fourteen independently shaped remote tabular sources with
retry/backoff, normalizes each through a declarative schema, reconciles
store changes into the account directory, and publishes per-source
snapshots with partial-success refresh semantics.

Subpackages:
    reportspine.core       errors, result, coercion, dates, settings
    reportspine.logging    structlog configuration and context
    reportspine.sources    locators, raw tables, transport, resilient fetch
    reportspine.schema     header matchers, schemas, normalizer, definitions
    reportspine.pipeline   processors, reconcile, snapshots, orchestrator
"""

__version__ = "0.1.0"
