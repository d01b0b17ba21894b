"""Pydantic models for the serialized node manifest."""

from __future__ import annotations

from pathlib import Path
from typing import Self

import yaml
from pydantic import BaseModel, Field


class YAMLMixin:
    """Mixin class providing YAML serialization methods."""

    def to_yaml(self) -> str:
        """Serialize model to YAML string."""
        return yaml.dump(
            self.model_dump(mode="json"),
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )

    def save_yaml(self, path: str | Path) -> None:
        """Save model to a YAML file."""
        path = Path(path)
        with path.open("w") as f:
            f.write(self.to_yaml())

    @classmethod
    def from_yaml(cls, yaml_str: str) -> Self:
        """Load model from YAML string."""
        data = yaml.safe_load(yaml_str)
        return cls.model_validate(data)

    @classmethod
    def load_yaml(cls, path: str | Path) -> Self:
        """Load model from a YAML file."""
        path = Path(path)
        with path.open() as f:
            return cls.from_yaml(f.read())


class PortManifest(BaseModel):
    """One data port as seen by the target VM."""

    name: str = Field(description="Port label shown in the editor")
    type: str = Field(description="Target-VM type name, or a type variable name")
    role: str = Field(description="input, output, instance or payload")
    hidden: bool = Field(default=False)
    default: str | None = Field(
        default=None, description="repr() of the default value, if any"
    )
    tooltip: str | None = Field(default=None)


class NodeManifestEntry(BaseModel):
    """Summary of one generated node."""

    menu_path: str
    key: str = Field(description="Identity of the source member")
    kind: str
    method_name: str
    type_name: str | None = Field(default=None, description="Owning class, if any")
    is_flow_node: bool
    input_count: int
    output_count: int
    inputs: list[PortManifest] = Field(default_factory=list)
    outputs: list[PortManifest] = Field(default_factory=list)
    flow_outputs: list[str] = Field(default_factory=list)
    type_parameters: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Allowed target-VM types per type variable",
    )
    branch_on_return: bool = False
    category: str | None = None
    icon: str
    color: str
    tooltip: str | None = None
    search_keywords: list[str] = Field(default_factory=list)


class BuildErrorEntry(BaseModel):
    """A member rejected during the build."""

    member_id: str
    stage: str = Field(description="discovery or validation")
    rule: str
    message: str


class NodeManifest(YAMLMixin, BaseModel):
    """Everything a build produced, for tooling outside the process."""

    generated_at: str = Field(description="ISO-8601 timestamp of the build")
    node_count: int
    nodes: list[NodeManifestEntry] = Field(default_factory=list)
    errors: list[BuildErrorEntry] = Field(default_factory=list)
