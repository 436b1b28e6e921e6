"""
Refresh ordering as an explicit dependency graph.

Two data dependencies exist between steps:

- feed status seeds its entries from the account directory;
- the reconcile step patches the account directory with store changes.

``topological_order()`` schedules with Kahn's algorithm, breaking ties by
``PROCESSOR_ORDER`` position, so the fixed refresh order is reproduced
exactly while the dependencies stay checkable.
"""

from __future__ import annotations

from typing import Mapping, Sequence

from reportspine.core.errors import ConfigError
from reportspine.schema.definitions import (
    ACCOUNT_DIRECTORY,
    ADS,
    ANALYTICS,
    BUDGET_STATUS,
    FEED_STATUS,
    ITEMS_IN_FEED,
    KEY_CONTACTS,
    PERCENT_APPROVED,
    PERFORMANCE_METRICS,
    REVOLUTION_LINKS,
    SEARCH_CONSOLE,
    STORE_CHANGES,
    STORE_STATUS,
    USERS,
)

RECONCILE_STEP = "store_changes_reconcile"

PROCESSOR_ORDER: tuple[str, ...] = (
    ACCOUNT_DIRECTORY,
    PERFORMANCE_METRICS,
    KEY_CONTACTS,
    ITEMS_IN_FEED,
    FEED_STATUS,
    PERCENT_APPROVED,
    STORE_STATUS,
    STORE_CHANGES,
    BUDGET_STATUS,
    REVOLUTION_LINKS,
    SEARCH_CONSOLE,
    ANALYTICS,
    ADS,
    USERS,
)

DEPENDENCIES: dict[str, frozenset[str]] = {
    FEED_STATUS: frozenset({ACCOUNT_DIRECTORY}),
    RECONCILE_STEP: frozenset({STORE_CHANGES, ACCOUNT_DIRECTORY}),
}


def topological_order(
    nodes: Sequence[str] = PROCESSOR_ORDER,
    dependencies: Mapping[str, frozenset[str] | set[str]] = DEPENDENCIES,
) -> list[str]:
    """
    Order ``nodes`` so every node follows its dependencies.

    Dependency-only steps (e.g. the reconcile step) are not part of the
    result; their dependencies are still validated. Ties keep ``nodes``
    order.

    Raises:
        ConfigError: A dependency is unknown or the graph has a cycle.
    """
    position = {node: i for i, node in enumerate(nodes)}
    graph_nodes = list(nodes) + [step for step in dependencies if step not in position]

    for step, required in dependencies.items():
        unknown = [dep for dep in required if dep not in position and dep not in dependencies]
        if unknown:
            raise ConfigError(f"Unknown dependency for {step}: {', '.join(sorted(unknown))}")

    indegree = {node: 0 for node in graph_nodes}
    dependents: dict[str, list[str]] = {node: [] for node in graph_nodes}
    for step, required in dependencies.items():
        for dep in required:
            indegree[step] += 1
            dependents[dep].append(step)

    def rank(node: str) -> int:
        return position.get(node, len(position))

    ready = sorted((n for n in graph_nodes if indegree[n] == 0), key=rank)
    ordered: list[str] = []
    while ready:
        node = ready.pop(0)
        ordered.append(node)
        for dependent in dependents[node]:
            indegree[dependent] -= 1
            if indegree[dependent] == 0:
                ready.append(dependent)
        ready.sort(key=rank)

    if len(ordered) != len(graph_nodes):
        cyclic = sorted(n for n in graph_nodes if indegree[n] > 0)
        raise ConfigError(f"Dependency cycle between: {', '.join(cyclic)}")

    return [node for node in ordered if node in position]


def dependencies_of(step: str) -> frozenset[str]:
    return frozenset(DEPENDENCIES.get(step, frozenset()))
