"""
Reconciliation of store changes into the account directory.

The store-changes sheet is more recent than the directory for a fixed set
of store settings. For every directory record whose client also appears
in the changes, each allow-listed field takes the change value when the
change record holds a non-null value for it, and keeps the directory
value otherwise. An empty string or a zero in a change record still
overrides.

Nothing here raises. A client missing on either side passes through.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from reportspine.schema.registry import TypedRecord

RECONCILED_FIELDS: tuple[str, ...] = (
    "ShippingMethods",
    "HandlingFee",
    "SignatureSurcharge",
    "HazmatSurcharge",
    "AllowPOBox",
    "TAndC",
    "FitmentVerification",
    "RequiredField",
)


@dataclass(frozen=True)
class ReconciliationPatch:
    """Field overrides for one directory key."""

    key: str
    overrides: dict[str, Any] = field(default_factory=dict)

    def apply(self, record: TypedRecord) -> TypedRecord:
        """A new record with the overrides applied."""
        return {**record, **self.overrides}


def build_patches(
    directory: Sequence[TypedRecord],
    changes: Mapping[str, TypedRecord],
    *,
    key_field: str = "ClientName",
    fields: Sequence[str] = RECONCILED_FIELDS,
) -> dict[str, ReconciliationPatch]:
    """One patch per directory key present in ``changes``."""
    patches: dict[str, ReconciliationPatch] = {}
    for record in directory:
        key = record.get(key_field)
        change = changes.get(key) if key is not None else None
        if change is None:
            continue
        overrides = {name: change[name] for name in fields if change.get(name) is not None}
        patches[key] = ReconciliationPatch(key=key, overrides=overrides)
    return patches


def reconcile(
    directory: Sequence[TypedRecord],
    changes: Mapping[str, TypedRecord],
    *,
    key_field: str = "ClientName",
) -> list[TypedRecord]:
    """
    Patch directory records with store changes.

    Returns a new list; input records are not modified. Records without a
    matching change are passed through as the same objects.

    >>> reconcile([{"ClientName": "Acme", "TAndC": "No"}], {"Acme": {"TAndC": "Yes"}})
    [{'ClientName': 'Acme', 'TAndC': 'Yes'}]
    """
    patches = build_patches(directory, changes, key_field=key_field)
    return [
        patches[record[key_field]].apply(record) if record.get(key_field) in patches else record
        for record in directory
    ]
