"""Node manifest generation."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Literal

from .bridge import BuildReport
from .category_index import CategoryIndex, node_color, node_icon
from .exceptions import DiscoveryError
from .markers import MISSING
from .models import BuildErrorEntry, NodeManifest, NodeManifestEntry, PortManifest
from .nodes.schema import NodeDescriptor, PortDescriptor
from .value_types import ValueTypeUniverse, default_universe

logger = logging.getLogger(__name__)

MANIFEST_NAME = "NodeManifest"


def _port(port: PortDescriptor, universe: ValueTypeUniverse) -> PortManifest:
    return PortManifest(
        name=port.label,
        type=universe.vm_type_name(port.value_type),
        role=port.role.value,
        hidden=port.hidden,
        default=None if port.default_value is MISSING else repr(port.default_value),
        tooltip=port.tooltip,
    )


def manifest_entry(
    descriptor: NodeDescriptor,
    universe: ValueTypeUniverse | None = None,
    index: CategoryIndex | None = None,
) -> NodeManifestEntry:
    """Manifest entry for one descriptor."""
    universe = universe or default_universe()
    owner = descriptor.owner
    return NodeManifestEntry(
        menu_path=descriptor.menu_path,
        key=descriptor.key,
        kind=descriptor.kind.value,
        method_name=descriptor.call.target.__name__,
        type_name=f"{owner.__module__}.{owner.__qualname__}" if owner else None,
        is_flow_node=descriptor.is_flow_node,
        input_count=len(descriptor.inputs),
        output_count=len(descriptor.outputs),
        inputs=[_port(p, universe) for p in descriptor.inputs],
        outputs=[_port(p, universe) for p in descriptor.outputs],
        flow_outputs=[f.name for f in descriptor.successors],
        type_parameters={
            tp.name: [universe.vm_type_name(t) for t in tp.allowed]
            for tp in descriptor.type_parameters
        },
        branch_on_return=descriptor.branch_on_return,
        category=descriptor.metadata.category,
        icon=node_icon(descriptor, index),
        color=node_color(descriptor).to_hex(),
        tooltip=descriptor.metadata.tooltip,
        search_keywords=list(descriptor.metadata.search_keywords),
    )


def build_manifest(
    report: BuildReport,
    universe: ValueTypeUniverse | None = None,
    index: CategoryIndex | None = None,
) -> NodeManifest:
    """Manifest of every node and build error in ``report``."""
    return NodeManifest(
        generated_at=datetime.now().isoformat(),
        node_count=len(report.descriptors),
        nodes=[manifest_entry(d, universe, index) for d in report.descriptors],
        errors=[
            BuildErrorEntry(
                member_id=e.member_id,
                stage="discovery" if isinstance(e, DiscoveryError) else "validation",
                rule=e.rule.value,
                message=e.message,
            )
            for e in report.errors
        ],
    )


def write_manifest(
    manifest: NodeManifest,
    output_dir: str | Path,
    fmt: Literal["yaml", "json"] = "yaml",
) -> Path:
    """Write ``manifest`` into ``output_dir``, creating it if needed.

    Returns:
        Path of the written file
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    if fmt == "json":
        path = output_dir / f"{MANIFEST_NAME}.json"
        path.write_text(manifest.model_dump_json(indent=2))
    else:
        path = output_dir / f"{MANIFEST_NAME}.yaml"
        manifest.save_yaml(path)
    logger.info("Wrote manifest with %d nodes to %s", manifest.node_count, path)
    return path
