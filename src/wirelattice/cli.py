"""
Command-line interface for wirelattice.

Provides commands to inflate wire networks into periodic meshes, inspect
wire files and validate exported meshes.
"""

from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from wirelattice import __version__
from wirelattice.core.config import InflatorConfig, load_inflator_config
from wirelattice.core.exceptions import WireLatticeError
from wirelattice.core.logging import configure_logging
from wirelattice.core.wire_io import load_wire
from wirelattice.geometry.mesh_operations import analyze_mesh, load_mesh
from wirelattice.geometry.validation import check_mesh
from wirelattice.pipeline import Pipeline, PipelineConfig

console = Console()


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Logging level",
)
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON")
@click.pass_context
def main(ctx: click.Context, log_level: str, json_logs: bool) -> None:
    """wirelattice - Periodic wire-network inflation."""
    ctx.ensure_object(dict)
    configure_logging(level=log_level.upper(), json_output=json_logs)


# =============================================================================
# Inflation
# =============================================================================


@main.command("inflate")
@click.argument("wire", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), required=True,
              help="Output mesh (.stl, .obj, .ply, .off)")
@click.option("--thickness", "-t", type=float, default=0.5, show_default=True,
              help="Wire diameter (base thickness with --orbit/--modifier)")
@click.option("--samples", type=click.IntRange(min=3), default=None,
              help="Profile samples (default 8)")
@click.option("--subdiv", type=click.IntRange(min=0), default=0, show_default=True,
              help="Refinement iterations")
@click.option("--scheme", type=click.Choice(["loop", "simple"]), default="loop", show_default=True,
              help="Refinement scheme")
@click.option("--per-vertex", is_flag=True, help="Interpret thickness per vertex")
@click.option("--orbit", type=click.Path(exists=True, dir_okay=False), default=None,
              help="Orbit file (YAML/JSON)")
@click.option("--modifier", type=click.Path(exists=True, dir_okay=False), default=None,
              help="Modifier file (YAML/JSON)")
@click.option("--var", "variables", multiple=True, metavar="NAME=VALUE",
              help="Design variable for modifier formulas")
@click.option("--cell", type=click.FloatRange(min=0, min_open=True), default=5.0, show_default=True,
              help="Cell edge length the network is fit into")
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              default=None, help="Inflator YAML configuration")
def inflate_command(
    wire: Path,
    output: Path,
    thickness: float,
    samples: Optional[int],
    subdiv: int,
    scheme: str,
    per_vertex: bool,
    orbit: Optional[str],
    modifier: Optional[str],
    variables: tuple[str, ...],
    cell: float,
    config_path: Optional[Path],
) -> None:
    """Inflate a .wire network into a periodic mesh."""
    try:
        inflator = load_inflator_config(config_path) if config_path else InflatorConfig()
        updates = {}
        if samples is not None:
            updates["profile_samples"] = samples
        if subdiv > 0:
            updates["refinement_scheme"] = scheme
            updates["refinement_iterations"] = subdiv
        if updates:
            inflator = InflatorConfig(**{**inflator.model_dump(), **updates})

        config = PipelineConfig(
            wire_path=str(wire),
            half_size=cell / 2.0,
            thickness=thickness,
            per_vertex=per_vertex,
            orbit_file=orbit,
            modifier_file=modifier,
            variables=_parse_variables(variables),
            inflator=inflator,
            output_path=str(output),
        )
    except (WireLatticeError, ValueError) as e:
        console.print(f"[red]✗[/red] Invalid options: {e}")
        raise SystemExit(2)

    with console.status("Inflating..."):
        result = Pipeline().execute(config)

    if not result.success:
        for error in result.errors:
            console.print(f"[red]✗[/red] {error}")
        raise SystemExit(1)

    summary = result.inflation.summary()
    table = Table(title=f"Inflated: {wire.name}")
    table.add_column("Property", style="cyan")
    table.add_column("Value")
    table.add_row("Vertices", str(summary["num_vertices"]))
    table.add_row("Faces", str(summary["num_faces"]))
    table.add_row("Volume", f"{summary['volume']:.4f}")
    table.add_row("Surface area", f"{summary['surface_area']:.4f}")
    table.add_row("Joint faces", str(summary["num_joint_faces"]))
    table.add_row("Overlapping wires", str(summary["overlapping_edges"]))
    console.print(table)
    console.print(f"[green]✓[/green] Wrote {result.output_path}")


def _parse_variables(items: tuple[str, ...]) -> dict[str, float]:
    variables = {}
    for item in items:
        name, sep, value = item.partition("=")
        if not sep or not name.strip():
            raise ValueError(f"Expected NAME=VALUE, got {item!r}")
        variables[name.strip()] = float(value)
    return variables


# =============================================================================
# Inspection
# =============================================================================


@main.command("info")
@click.argument("wire", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def info_command(wire: Path) -> None:
    """Show wire network information."""
    try:
        network = load_wire(wire)
        network.compute_connectivity()
        bbox_min, bbox_max = network.get_bbox()
        degrees = network.get_vertex_degrees()
        lengths = network.get_edge_lengths()

        table = Table(title=f"Wire: {wire.name}")
        table.add_column("Property", style="cyan")
        table.add_column("Value")
        table.add_row("Vertices", str(network.num_vertices))
        table.add_row("Edges", str(network.num_edges))
        table.add_row("BBox min", ", ".join(f"{x:.4g}" for x in bbox_min))
        table.add_row("BBox max", ", ".join(f"{x:.4g}" for x in bbox_max))
        table.add_row("Degree range", f"{degrees.min()} - {degrees.max()}")
        table.add_row("Edge length range", f"{lengths.min():.4g} - {lengths.max():.4g}")
        console.print(table)

        network.validate()
        console.print("[green]✓[/green] Network is valid")

    except WireLatticeError as e:
        console.print(f"[red]✗[/red] {e}")
        raise SystemExit(1)


@main.command("validate")
@click.argument("mesh", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def validate_command(mesh: Path) -> None:
    """Check that a mesh is watertight, manifold and periodic."""
    try:
        vertices, faces = load_mesh(mesh)
        report = analyze_mesh(vertices, faces)
        checks = check_mesh(vertices, faces)
    except WireLatticeError as e:
        console.print(f"[red]✗[/red] {e}")
        raise SystemExit(1)

    table = Table(title=f"Mesh: {mesh.name}")
    table.add_column("Check", style="cyan")
    table.add_column("Result")
    table.add_row("Vertices", str(report["vertex_count"]))
    table.add_row("Faces", str(report["face_count"]))
    for name, ok in checks.items():
        table.add_row(name.replace("_", " "), "[green]✓[/green]" if ok else "[red]✗[/red]")
    console.print(table)

    if not all(checks.values()):
        raise SystemExit(1)


if __name__ == "__main__":
    main()
