"""Configuration management using python-dotenv."""

import os
from pathlib import Path
from dotenv import load_dotenv
from pydantic import BaseModel, Field


def _find_dotenv() -> Path | None:
    """Find .env file by walking up from current directory."""
    current = Path.cwd()
    while current != current.parent:
        env_file = current / ".env"
        if env_file.exists():
            return env_file
        current = current.parent
    return None


# Load environment variables from .env file
_env_file = _find_dotenv()
if _env_file:
    load_dotenv(_env_file)


def _env_list(name: str, default: str = "") -> list[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


class DiscoveryConfig(BaseModel):
    """Configuration for member discovery."""

    skip_module_prefixes: list[str] = Field(
        default_factory=lambda: _env_list("GRAPH_BRIDGE_SKIP_MODULES"),
        description="Members whose module starts with one of these are ignored",
    )
    include_builtin_nodes: bool = Field(
        default_factory=lambda: os.getenv("GRAPH_BRIDGE_INCLUDE_BUILTINS", "true").lower()
        == "true",
        description="Whether the bundled node library is part of the build",
    )


class BuildConfig(BaseModel):
    """Configuration for the schema build pass."""

    max_workers: int = Field(
        default_factory=lambda: int(os.getenv("GRAPH_BRIDGE_MAX_WORKERS", "4")),
        ge=1,
        description="Worker threads for per-member validation (1 = sequential)",
    )
    eager_adapters: bool = Field(
        default_factory=lambda: os.getenv("GRAPH_BRIDGE_EAGER_ADAPTERS", "false").lower()
        == "true",
        description="Generate every adapter during the build instead of on first use",
    )


class IndexConfig(BaseModel):
    """Configuration for the category index and keyword search."""

    default_priority: int = Field(
        default_factory=lambda: int(os.getenv("GRAPH_BRIDGE_DEFAULT_PRIORITY", "100")),
        description="Priority of categories without a category marker",
    )
    min_token_length: int = Field(
        default_factory=lambda: int(os.getenv("GRAPH_BRIDGE_MIN_TOKEN_LENGTH", "1")),
        ge=1,
        description="Shorter keyword tokens are not indexed",
    )


class RuntimeConfig(BaseModel):
    """Configuration for node invocation."""

    strict_type_check: bool = Field(
        default_factory=lambda: os.getenv("GRAPH_BRIDGE_STRICT_TYPES", "true").lower()
        == "true",
        description="Check bound values against port types before invoking",
    )


class BridgeConfig(BaseModel):
    """Configuration for the graph bridge."""

    discovery: DiscoveryConfig = Field(
        default_factory=DiscoveryConfig,
        description="Discovery configuration",
    )
    build: BuildConfig = Field(
        default_factory=BuildConfig,
        description="Build pass configuration",
    )
    index: IndexConfig = Field(
        default_factory=IndexConfig,
        description="Category index configuration",
    )
    runtime: RuntimeConfig = Field(
        default_factory=RuntimeConfig,
        description="Runtime configuration",
    )
    manifest_dir: str = Field(
        default_factory=lambda: os.getenv("GRAPH_BRIDGE_MANIFEST_DIR", "GeneratedNodes"),
        description="Directory the node manifest is written to",
    )
    log_level: str = Field(
        default_factory=lambda: os.getenv("GRAPH_BRIDGE_LOG_LEVEL", "INFO"),
        description="Log level for the graphbridge logger",
    )


def get_config() -> BridgeConfig:
    """Get the current bridge configuration."""
    return BridgeConfig()
