"""Unit tests for configuration management."""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from graphbridge.config import (
    BridgeConfig,
    BuildConfig,
    DiscoveryConfig,
    IndexConfig,
    RuntimeConfig,
    get_config,
)


class TestDiscoveryConfig:
    """Tests for DiscoveryConfig class."""

    def test_skip_modules_from_env(self):
        """Skip prefixes should be read as a comma-separated list."""
        with patch.dict(os.environ, {"GRAPH_BRIDGE_SKIP_MODULES": "tests., vendor ,"}):
            config = DiscoveryConfig()
            assert config.skip_module_prefixes == ["tests.", "vendor"]

    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            config = DiscoveryConfig()
            assert config.skip_module_prefixes == []
            assert config.include_builtin_nodes is True

    def test_builtins_can_be_disabled(self):
        with patch.dict(os.environ, {"GRAPH_BRIDGE_INCLUDE_BUILTINS": "False"}):
            assert DiscoveryConfig().include_builtin_nodes is False


class TestBuildConfig:
    """Tests for BuildConfig class."""

    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            config = BuildConfig()
            assert config.max_workers == 4
            assert config.eager_adapters is False

    def test_from_env(self):
        with patch.dict(
            os.environ,
            {"GRAPH_BRIDGE_MAX_WORKERS": "1", "GRAPH_BRIDGE_EAGER_ADAPTERS": "true"},
        ):
            config = BuildConfig()
            assert config.max_workers == 1
            assert config.eager_adapters is True

    def test_workers_must_be_positive(self):
        """max_workers below 1 should be rejected."""
        with pytest.raises(ValidationError):
            BuildConfig(max_workers=0)


class TestIndexConfig:
    """Tests for IndexConfig class."""

    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            config = IndexConfig()
            assert config.default_priority == 100
            assert config.min_token_length == 1

    def test_from_env(self):
        with patch.dict(
            os.environ,
            {"GRAPH_BRIDGE_DEFAULT_PRIORITY": "7", "GRAPH_BRIDGE_MIN_TOKEN_LENGTH": "3"},
        ):
            config = IndexConfig()
            assert config.default_priority == 7
            assert config.min_token_length == 3


class TestRuntimeConfig:
    """Tests for RuntimeConfig class."""

    def test_strict_by_default(self):
        with patch.dict(os.environ, {}, clear=True):
            assert RuntimeConfig().strict_type_check is True

    def test_lenient_from_env(self):
        with patch.dict(os.environ, {"GRAPH_BRIDGE_STRICT_TYPES": "false"}):
            assert RuntimeConfig().strict_type_check is False


class TestBridgeConfig:
    """Tests for BridgeConfig class."""

    def test_nested_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            config = BridgeConfig()
            assert isinstance(config.discovery, DiscoveryConfig)
            assert isinstance(config.build, BuildConfig)
            assert isinstance(config.index, IndexConfig)
            assert isinstance(config.runtime, RuntimeConfig)
            assert config.manifest_dir == "GeneratedNodes"
            assert config.log_level == "INFO"

    def test_from_env(self):
        with patch.dict(
            os.environ,
            {"GRAPH_BRIDGE_MANIFEST_DIR": "out", "GRAPH_BRIDGE_LOG_LEVEL": "DEBUG"},
        ):
            config = get_config()
            assert config.manifest_dir == "out"
            assert config.log_level == "DEBUG"

    def test_explicit_values_override_env(self):
        with patch.dict(os.environ, {"GRAPH_BRIDGE_MAX_WORKERS": "8"}):
            config = BridgeConfig(build=BuildConfig(max_workers=2))
            assert config.build.max_workers == 2
