"""
CLI interface for the graph bridge.

Usage:
    graphbridge scan --module mypackage.nodes --strict
    graphbridge tree
    graphbridge search "lerp vector"
    graphbridge manifest --output-dir GeneratedNodes --format json
    graphbridge invoke "Math/Clamp Float" -i value=1.5 -i min=0 -i max=1
"""

import importlib
from pathlib import Path
from typing import Annotated

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from .bridge import BuildReport, GraphBridge
from .category_index import CategoryEntry
from .config import get_config
from .log import configure_logging
from .manifest import build_manifest, write_manifest

app = typer.Typer(
    name="graphbridge",
    help="Expose registered Python members as visual-graph nodes",
)
console = Console()

ModulesOption = Annotated[
    list[str] | None,
    typer.Option("--module", "-m", help="Module to import so its members register"),
]


@app.callback()
def _configure(
    log_level: Annotated[
        str | None, typer.Option("--log-level", help="Log level (default from config)")
    ] = None,
):
    """Configure logging before any command runs."""
    configure_logging(log_level or get_config().log_level)


def _load_bridge(modules: list[str] | None) -> GraphBridge:
    for name in modules or []:
        try:
            importlib.import_module(name)
        except ImportError as e:
            raise typer.BadParameter(f"Cannot import {name}: {e}") from e
    bridge = GraphBridge(config=get_config())
    with console.status("Building nodes..."):
        bridge.build()
    return bridge


def _print_errors(report: BuildReport) -> None:
    table = Table(title="Build Errors")
    table.add_column("Member", style="cyan")
    table.add_column("Rule", style="yellow")
    table.add_column("Message")
    for error in report.errors:
        table.add_row(error.member_id, error.rule.value, error.message)
    console.print(table)


@app.command("scan")
def scan_cmd(
    modules: ModulesOption = None,
    strict: Annotated[
        bool, typer.Option("--strict", help="Exit with status 1 if any member was rejected")
    ] = False,
):
    """Build all registered nodes and list them."""
    bridge = _load_bridge(modules)
    report = bridge.report

    table = Table(title="Nodes")
    table.add_column("Menu Path", style="cyan")
    table.add_column("Kind")
    table.add_column("Inputs", justify="right")
    table.add_column("Outputs", justify="right")
    table.add_column("Flow Outputs")
    for descriptor in report.descriptors:
        table.add_row(
            descriptor.menu_path,
            descriptor.kind.value,
            str(len(descriptor.inputs)),
            str(len(descriptor.outputs)),
            ", ".join(f.name for f in descriptor.successors) or "-",
        )
    console.print(table)

    if report.errors:
        _print_errors(report)
    console.print(
        f"\n[dim]{len(report.descriptors)} nodes, {len(report.errors)} errors[/dim]"
    )
    if strict and report.errors:
        raise typer.Exit(1)


@app.command("tree")
def tree_cmd(modules: ModulesOption = None):
    """Show the node menu as a tree."""
    bridge = _load_bridge(modules)

    def add(branch: Tree, entry: CategoryEntry) -> None:
        for child in entry.children:
            icon = f" [dim]({escape(child.icon)})[/dim]" if child.icon else ""
            add(branch.add(f"[bold]{escape(child.segment)}[/bold]{icon}"), child)
        for descriptor in entry.leaves:
            branch.add(f"[cyan]{escape(descriptor.label)}[/cyan]")

    root = Tree("[bold]Nodes[/bold]")
    add(root, bridge.index.root)
    console.print(root)


@app.command("search")
def search_cmd(
    query: Annotated[str, typer.Argument(help="Search terms")],
    modules: ModulesOption = None,
):
    """Search nodes by keyword."""
    bridge = _load_bridge(modules)
    results = bridge.search(query)
    if not results:
        console.print(f"No nodes match [bold]{escape(query)}[/bold]")
        return
    for descriptor in results:
        tooltip = escape(descriptor.metadata.tooltip or "")
        console.print(f"[cyan]{escape(descriptor.menu_path)}[/cyan]  [dim]{tooltip}[/dim]")


@app.command("manifest")
def manifest_cmd(
    modules: ModulesOption = None,
    output_dir: Annotated[
        Path | None,
        typer.Option("--output-dir", "-o", help="Directory for the manifest (default from config)"),
    ] = None,
    output_format: Annotated[
        str, typer.Option("--format", help="Output format: yaml or json")
    ] = "yaml",
):
    """Write the node manifest."""
    if output_format not in ("yaml", "json"):
        raise typer.BadParameter("--format must be yaml or json")
    bridge = _load_bridge(modules)
    manifest = build_manifest(bridge.report, bridge.universe, bridge.index)
    path = write_manifest(manifest, output_dir or Path(bridge.config.manifest_dir), output_format)
    console.print(f"[green]Manifest written to {path}[/green] ({manifest.node_count} nodes)")


def _parse_bindings(values: list[str]) -> dict:
    bindings = {}
    for item in values:
        name, sep, raw = item.partition("=")
        if not sep or not name:
            raise typer.BadParameter(f"Expected name=value, got {item!r}")
        bindings[name.strip()] = yaml.safe_load(raw)
    return bindings


@app.command("invoke")
def invoke_cmd(
    menu_path: Annotated[str, typer.Argument(help="Menu path of the node")],
    inputs: Annotated[
        list[str] | None,
        typer.Option("--input", "-i", help="Input binding as name=value (value parsed as YAML)"),
    ] = None,
    modules: ModulesOption = None,
):
    """Invoke one node and print its outputs."""
    bindings = _parse_bindings(inputs or [])
    bridge = _load_bridge(modules)
    if bridge.get(menu_path) is None:
        raise typer.BadParameter(f"No node at menu path {menu_path!r}")

    result = bridge.invoke(menu_path, bindings)
    if not result.ok:
        console.print(
            Panel(
                "[red bold]FAULTED[/] " + escape(f"[{result.fault.reason.value}] {result.fault.message}"),
                title=menu_path,
            )
        )
        raise typer.Exit(1)

    table = Table(title=menu_path)
    table.add_column("Output", style="cyan")
    table.add_column("Value")
    for name, value in result.outputs.items():
        table.add_row(name, repr(value))
    console.print(table)
    if result.selected_flow is not None:
        console.print(f"[dim]Next: {result.selected_flow} (index {result.selected_index})[/dim]")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
