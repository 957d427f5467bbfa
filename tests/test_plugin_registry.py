"""
Tests for the plugin registry.
"""

from pathlib import Path

import pytest

from plugin_host.domain.models import EventRouteEntry
from plugin_host.framework.plugin_management.plugin_descriptor import PluginDescriptor
from plugin_host.framework.plugin_management.plugin_registry import PluginRegistry


def descriptor(name: str) -> PluginDescriptor:
    return PluginDescriptor(name=name, source_path=Path(f"/plugins/{name}.py"), invoke=lambda ctx: name)


class TestPluginRegistry:
    """Generation handling of the registry."""

    def test_starts_empty(self):
        registry = PluginRegistry()

        assert registry.generation == 0
        assert registry.names() == []
        assert len(registry) == 0
        assert registry.get("anything") is None

    def test_commit_publishes_new_generation(self):
        registry = PluginRegistry()
        alpha = descriptor("alpha")

        generation = registry.commit({"alpha": alpha})

        assert generation.number == 1
        assert registry.generation == 1
        assert registry.get("alpha") is alpha
        assert "alpha" in registry
        assert registry.names() == ["alpha"]

    def test_commit_replaces_whole_mapping(self):
        registry = PluginRegistry()
        registry.commit({"alpha": descriptor("alpha"), "beta": descriptor("beta")})

        registry.commit({"gamma": descriptor("gamma")})

        assert registry.names() == ["gamma"]
        assert "alpha" not in registry

    def test_snapshot_is_unaffected_by_later_commit(self):
        registry = PluginRegistry()
        registry.commit({"alpha": descriptor("alpha")})
        snapshot = registry.snapshot()

        registry.commit({"beta": descriptor("beta")})

        assert snapshot.number == 1
        assert snapshot.names() == ["alpha"]
        assert registry.snapshot().names() == ["beta"]

    def test_committed_mapping_is_read_only(self):
        registry = PluginRegistry()
        registry.commit({"alpha": descriptor("alpha")})

        with pytest.raises(TypeError):
            registry.snapshot().plugins["beta"] = descriptor("beta")

    def test_commit_copies_candidate_mapping(self):
        registry = PluginRegistry()
        candidate = {"alpha": descriptor("alpha")}
        registry.commit(candidate)

        candidate["beta"] = descriptor("beta")

        assert registry.names() == ["alpha"]

    def test_generation_iteration(self):
        registry = PluginRegistry()
        registry.commit({"alpha": descriptor("alpha"), "beta": descriptor("beta")})

        snapshot = registry.snapshot()

        assert list(snapshot) == ["alpha", "beta"]
        assert len(snapshot) == 2
        assert "beta" in snapshot


class TestGenerationRoutes:
    """Event tables committed together with their plugins."""

    def test_routes_follow_committed_event_table(self):
        registry = PluginRegistry()
        routes = [EventRouteEntry.parse("alpha"), EventRouteEntry.parse(["alpha", {"x": 1}])]

        registry.commit({"alpha": descriptor("alpha")}, {"sceneCreated": routes})

        assert registry.snapshot().routes("sceneCreated") == routes
        assert registry.snapshot().routes("sceneDeleted") == []

    def test_commit_without_event_table_has_no_routes(self):
        registry = PluginRegistry()

        registry.commit({"alpha": descriptor("alpha")})

        assert dict(registry.snapshot().event_table) == {}

    def test_committed_event_table_is_read_only(self):
        registry = PluginRegistry()
        candidate = {"sceneCreated": [EventRouteEntry.parse("alpha")]}
        registry.commit({"alpha": descriptor("alpha")}, candidate)

        candidate["sceneCreated"].append(EventRouteEntry.parse("beta"))

        assert [entry.plugin_name for entry in registry.snapshot().routes("sceneCreated")] == ["alpha"]
        with pytest.raises(TypeError):
            registry.snapshot().event_table["sceneDeleted"] = ()

    def test_snapshot_routes_survive_later_commit(self):
        registry = PluginRegistry()
        registry.commit({"alpha": descriptor("alpha")}, {"sceneCreated": [EventRouteEntry.parse("alpha")]})
        snapshot = registry.snapshot()

        registry.commit({"beta": descriptor("beta")}, {"sceneCreated": [EventRouteEntry.parse("beta")]})

        assert [entry.plugin_name for entry in snapshot.routes("sceneCreated")] == ["alpha"]
        assert [entry.plugin_name for entry in registry.snapshot().routes("sceneCreated")] == ["beta"]
