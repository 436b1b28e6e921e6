"""Tests for refresh ordering."""

import pytest

from reportspine.core.errors import ConfigError
from reportspine.pipeline.graph import (
    DEPENDENCIES,
    PROCESSOR_ORDER,
    RECONCILE_STEP,
    dependencies_of,
    topological_order,
)


class TestTopologicalOrder:
    """topological_order()."""

    def test_default_order_is_fixed_refresh_order(self):
        assert topological_order() == list(PROCESSOR_ORDER)

    def test_directory_precedes_feed_status(self):
        order = topological_order()
        assert order.index("account_directory") < order.index("feed_status")

    def test_dependency_moves_node_later(self):
        order = topological_order(["b", "a"], {"b": {"a"}})
        assert order == ["a", "b"]

    def test_ties_keep_declared_order(self):
        assert topological_order(["c", "a", "b"], {}) == ["c", "a", "b"]

    def test_dependency_only_steps_excluded(self):
        assert RECONCILE_STEP not in topological_order()

    def test_unknown_dependency(self):
        with pytest.raises(ConfigError, match="Unknown dependency"):
            topological_order(["a"], {"a": {"missing"}})

    def test_cycle(self):
        with pytest.raises(ConfigError, match="Dependency cycle between: a, b"):
            topological_order(["a", "b"], {"a": {"b"}, "b": {"a"}})


class TestDependencies:
    """Declared data dependencies."""

    def test_reconcile_step(self):
        assert dependencies_of(RECONCILE_STEP) == {"store_changes", "account_directory"}

    def test_independent_source(self):
        assert dependencies_of("analytics") == frozenset()

    def test_only_two_dependency_entries(self):
        assert set(DEPENDENCIES) == {"feed_status", RECONCILE_STEP}
