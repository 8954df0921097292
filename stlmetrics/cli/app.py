"""Command-line interface for stlmetrics."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from stlmetrics import __version__
from stlmetrics.core import Config, StlMetricsError, load_config
from stlmetrics.geometry import Vector3
from stlmetrics.model import GeneratorFactory
from stlmetrics.processing import (
    CentroidMethod,
    MeasurementEngine,
    MeshLoader,
    extract_header,
    is_valid_binary_stl,
    peek_triangle_count,
)
from stlmetrics.utils import create_cache_manager, setup_logging

app = typer.Typer(
    name="stlmetrics",
    help="Inspect and measure binary STL meshes",
    add_completion=False,
)
cache_app = typer.Typer(help="Manage the decoded-mesh cache")
app.add_typer(cache_app, name="cache")

console = Console()

CONFIG_OPTION = typer.Option(
    None,
    "--config",
    "-c",
    help="Configuration file",
)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    ),
    log_format: str = typer.Option(
        "console",
        "--log-format",
        help="Log format (json, console, plain)",
    ),
) -> None:
    """Inspect and measure binary STL meshes."""
    from stlmetrics.core.config import LoggingConfig

    setup_logging(LoggingConfig(level=log_level.upper(), format=log_format))


def _load_config(path: Optional[Path]) -> Config:
    return load_config(path) if path else Config()


def _build_loader(cfg: Config) -> MeshLoader:
    cache_mgr = create_cache_manager(cfg.cache) if cfg.cache.enabled else None
    return MeshLoader(
        show_progress=cfg.processing.show_progress,
        cache_manager=cache_mgr,
        max_file_size=int(cfg.processing.max_file_size_mb * 1024 * 1024),
        codec_config=cfg.codec,
    )


def _fail(e: Exception) -> None:
    console.print(f"[red]Error: {e}[/red]")
    raise typer.Exit(1)


def _open_cache(path: Optional[Path]):
    try:
        return create_cache_manager(_load_config(path).cache)
    except StlMetricsError as e:
        _fail(e)


@app.command()
def analyze(
    stl_file: Path = typer.Argument(
        ...,
        exists=True,
        help="Path to STL file to analyze",
    ),
    unit: str = typer.Option(
        "units",
        "--unit",
        "-u",
        help="Linear unit used for labels",
    ),
    detailed: bool = typer.Option(
        False,
        "--detailed",
        "-d",
        help="Show mesh statistics as well",
    ),
    centroid_method: str = typer.Option(
        "geometric",
        "--centroid-method",
        "-m",
        help="Centroid method for the detailed view (geometric, volumetric)",
    ),
    config: Optional[Path] = CONFIG_OPTION,
) -> None:
    """Analyze an STL file and display its measurements."""
    console.print(f"\n🔍 Analyzing [cyan]{stl_file.name}[/cyan]...")

    try:
        cfg = _load_config(config)
        loader = _build_loader(cfg)

        with console.status("Loading STL file..."):
            mesh = loader.load(stl_file)

        with MeasurementEngine(cfg.measurement) as engine:
            with console.status("Measuring..."):
                session = engine.perform_comprehensive_analysis(mesh, unit)
                closed = engine.is_closed_mesh(mesh)
                stats = engine.calculate_mesh_statistics(mesh) if detailed else None
                centroid = (
                    engine.calculate_centroid(mesh, CentroidMethod.parse(centroid_method), unit)
                    if detailed
                    else None
                )
    except StlMetricsError as e:
        _fail(e)

    metadata = mesh.with_metadata(is_closed_mesh=closed).metadata

    table = Table(title="Mesh Information", show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("File", str(stl_file))
    table.add_row("Header", metadata.header or "-")
    table.add_row("File Size", metadata.file_size_formatted)
    table.add_row("Triangles", f"{metadata.triangle_count:,}")
    table.add_row("Closed Mesh", "✅" if closed else "❌")
    table.add_row("Quality", metadata.quality.name)
    console.print(table)

    results = Table(title=session.name)
    results.add_column("Measurement", style="cyan")
    results.add_column("Value", style="white")
    results.add_column("Description", style="dim")
    for measurement in session.measurements:
        results.add_row(
            measurement.kind.value.replace("_", " ").title(),
            measurement.formatted_value,
            measurement.description,
        )
    if centroid is not None:
        results.add_row("Centroid", centroid.formatted_value, centroid.description)
    console.print(results)

    if stats is not None:
        _print_statistics(stats)


def _print_statistics(stats) -> None:
    table = Table(title="Mesh Statistics", show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Triangles", f"{stats.total_triangles:,}")
    table.add_row("Valid", f"{stats.valid_triangles:,}")
    table.add_row("Invalid", f"{stats.invalid_triangles:,}")
    table.add_row("Degenerate", f"{stats.degenerate_triangles:,}")
    table.add_row("Surface Area", f"{stats.total_surface_area:.6f}")
    table.add_row(
        "Triangle Area",
        f"min={stats.min_triangle_area:.6f}, max={stats.max_triangle_area:.6f}, "
        f"mean={stats.average_triangle_area:.6f}",
    )
    table.add_row(
        "Edge Length",
        f"min={stats.min_edge_length:.6f}, max={stats.max_edge_length:.6f}, "
        f"mean={stats.average_edge_length:.6f}",
    )
    table.add_row("Bounding Box Volume", f"{stats.bounding_box_volume:.6f}")
    table.add_row("Quality Score", f"{stats.quality_score:.3f}")
    console.print(table)


@app.command()
def stats(
    stl_file: Path = typer.Argument(
        ...,
        exists=True,
        help="Path to STL file",
    ),
    config: Optional[Path] = CONFIG_OPTION,
) -> None:
    """Show mesh-quality statistics for an STL file."""
    try:
        cfg = _load_config(config)
        loader = _build_loader(cfg)
        mesh = loader.load(stl_file)

        cache_mgr = loader.cache_manager
        key = None
        if cache_mgr and cache_mgr.enabled:
            key = cache_mgr.content_key(mesh.raw_data, params=cfg.measurement.model_dump())
        statistics = cache_mgr.get_statistics(key) if key else None
        if statistics is None:
            with MeasurementEngine(cfg.measurement) as engine:
                statistics = engine.calculate_mesh_statistics(mesh)
            if key:
                cache_mgr.cache_statistics(key, statistics)
    except StlMetricsError as e:
        _fail(e)

    _print_statistics(statistics)


@app.command()
def header(
    stl_file: Path = typer.Argument(
        ...,
        exists=True,
        help="Path to STL file",
    ),
) -> None:
    """Show the header and declared triangle count without decoding."""
    data = stl_file.read_bytes()

    table = Table(title=stl_file.name, show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="white")

    header_text = extract_header(data)
    count = peek_triangle_count(data)
    table.add_row("Header", header_text if header_text is not None else "[red]<missing>[/red]")
    table.add_row("Triangles", f"{count:,}" if count is not None else "[red]<missing>[/red]")
    table.add_row("Size", f"{len(data):,} bytes")
    table.add_row("Valid Binary STL", "✅" if is_valid_binary_stl(data) else "❌")
    console.print(table)


@app.command("measure-distance")
def measure_distance(
    x1: float = typer.Argument(..., help="First point X"),
    y1: float = typer.Argument(..., help="First point Y"),
    z1: float = typer.Argument(..., help="First point Z"),
    x2: float = typer.Argument(..., help="Second point X"),
    y2: float = typer.Argument(..., help="Second point Y"),
    z2: float = typer.Argument(..., help="Second point Z"),
    unit: str = typer.Option("units", "--unit", "-u", help="Unit label"),
) -> None:
    """Measure the distance between two points."""
    try:
        measurement = MeasurementEngine().measure_distance(
            Vector3(x1, y1, z1), Vector3(x2, y2, z2), unit
        )
    except StlMetricsError as e:
        _fail(e)

    console.print(f"📏 {measurement.description}: [green]{measurement.formatted_value}[/green]")


@app.command("measure-angle")
def measure_angle(
    coords: list[float] = typer.Argument(
        ...,
        help="Nine numbers: vertex XYZ, first point XYZ, second point XYZ",
    ),
) -> None:
    """Measure the angle at a vertex between two points."""
    if len(coords) != 9:
        console.print(f"[red]Error: expected 9 coordinates, got {len(coords)}[/red]")
        raise typer.Exit(1)

    vertex, point1, point2 = (Vector3(*coords[i : i + 3]) for i in (0, 3, 6))
    try:
        measurement = MeasurementEngine().measure_angle(vertex, point1, point2)
    except StlMetricsError as e:
        _fail(e)

    console.print(f"📐 {measurement.description}: [green]{measurement.formatted_value}[/green]")


@app.command()
def generate(
    shape: str = typer.Argument(
        ...,
        help="Shape to generate (box, cube, open_cube, tetrahedron)",
    ),
    output: Path = typer.Argument(
        ...,
        help="Output STL file",
    ),
    size: float = typer.Option(
        1.0,
        "--size",
        "-s",
        help="Edge length",
    ),
) -> None:
    """Generate a simple mesh and write it as binary STL."""
    kwargs = {"size": (size, size, size)} if shape == "box" else {"size": size}

    try:
        generator = GeneratorFactory.create(shape, **kwargs)
        mesh = generator.generate(output.name)
        MeshLoader(show_progress=False).save(mesh, output)
    except (StlMetricsError, ValueError) as e:
        _fail(e)

    console.print(
        f"✅ Wrote {mesh.triangle_count} triangles to [cyan]{output}[/cyan]"
    )


@cache_app.command("stats")
def cache_stats(config: Optional[Path] = CONFIG_OPTION) -> None:
    """Show cache statistics."""
    cache_mgr = _open_cache(config)
    stats = cache_mgr.get_stats()

    if not stats.get("enabled", False):
        console.print("[yellow]Cache is disabled[/yellow]")
        return

    table = Table(title="Cache Statistics", show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Location", stats.get("location", "N/A"))
    table.add_row("Size Limit", f"{stats.get('size_limit_gb', 0):.1f} GB")
    table.add_row("Entries", f"{stats.get('entries', 0):,}")
    table.add_row("Size", f"{stats.get('size_mb', 0):.1f} MB")
    table.add_row("Hits", f"{stats.get('hits', 0):,}")
    table.add_row("Misses", f"{stats.get('misses', 0):,}")
    table.add_row("Hit Rate", f"{stats.get('hit_rate', 0):.1%}")

    console.print(table)


@cache_app.command("clear")
def cache_clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    config: Optional[Path] = CONFIG_OPTION,
) -> None:
    """Clear the cache."""
    cache_mgr = _open_cache(config)
    if not cache_mgr.enabled:
        console.print("[yellow]Cache is disabled[/yellow]")
        return

    if yes or typer.confirm("Are you sure you want to clear the cache?"):
        removed = cache_mgr.clear()
        console.print(f"[green]Cache cleared successfully ({removed} entries)[/green]")
    else:
        console.print("[yellow]Cache clear cancelled[/yellow]")


@cache_app.command("evict")
def cache_evict(config: Optional[Path] = CONFIG_OPTION) -> None:
    """Evict expired cache entries."""
    count = _open_cache(config).evict_expired()
    console.print(f"[green]Evicted {count} expired entries[/green]")


@app.command()
def info() -> None:
    """Display information about stlmetrics."""
    console.print("\n[cyan]stlmetrics[/cyan] - Binary STL measurement toolkit")
    console.print(f"Version: {__version__}")
    console.print("\nFeatures:")
    console.print("  • 📦 Strict binary STL decoding and encoding")
    console.print("  • 📏 Volume, surface area, centroid and closure checks")
    console.print("  • 📊 Mesh-quality statistics")
    console.print("  • 🛑 Cooperative cancellation for long scans")

    generators = GeneratorFactory.available_generators()
    console.print(f"\nAvailable generators: {', '.join(generators)}")
    console.print(f"Centroid methods: {', '.join(m.value for m in CentroidMethod)}")


def main() -> None:
    """Main entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
