"""Shared pytest fixtures for graph bridge tests."""

import pytest

import sample_nodes
from graphbridge.bridge import GraphBridge
from graphbridge.config import BridgeConfig, BuildConfig, DiscoveryConfig, RuntimeConfig
from graphbridge.discovery import DiscoveryScanner
from graphbridge.nodes.registry import MemberRegistry
from graphbridge.schema_builder import SchemaBuilder


@pytest.fixture
def registry():
    """Return an empty member registry."""
    return MemberRegistry()


@pytest.fixture
def bridge_config():
    """Return a BridgeConfig with test defaults (sequential, strict)."""
    return BridgeConfig(
        discovery=DiscoveryConfig(skip_module_prefixes=[], include_builtin_nodes=True),
        build=BuildConfig(max_workers=1, eager_adapters=False),
        runtime=RuntimeConfig(strict_type_check=True),
    )


@pytest.fixture
def sample_bridge(bridge_config):
    """Return a built bridge over the sample members."""
    bridge = GraphBridge(sample_nodes.registry, config=bridge_config)
    bridge.build()
    return bridge


@pytest.fixture
def build_member():
    """Factory fixture: discover and build the single member of a registry."""

    def _build(registry: MemberRegistry):
        result = DiscoveryScanner(registry).scan()
        assert not result.errors, result.errors
        assert len(result.members) == 1
        return SchemaBuilder().build(result.members[0])

    return _build


@pytest.fixture
def descriptor_for():
    """Factory fixture: the descriptor built from a registry's only member."""

    def _descriptor(registry: MemberRegistry, index: int = 0):
        result = DiscoveryScanner(registry).scan()
        assert not result.errors, result.errors
        outcome = SchemaBuilder().build(result.members[0])
        assert outcome.ok, outcome.errors
        return outcome.descriptors[index]

    return _descriptor
