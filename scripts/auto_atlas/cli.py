"""
Command-line interface for the atlas generator.
"""

import os
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import PipelineConfig
from .index import AssetNotFoundError
from .pipeline import AtlasPipeline, PipelineError
from .profile import ProfileStore
from .report import RunReport

app = typer.Typer(
    name="auto-atlas",
    help="Build-time sprite atlas generator - pack reachable images into size-optimized atlases",
    add_completion=False,
    rich_markup_mode="rich",
    epilog="""
[bold]Examples:[/bold]
  [cyan]auto-atlas generate[/cyan]                     Generate atlases for the build
  [cyan]auto-atlas delete[/cyan]                       Remove generated atlases
  [cyan]auto-atlas referenced[/cyan]                   List images reachable from the build
  [cyan]auto-atlas generate -c auto_atlas.toml[/cyan]  Use custom config

[bold]Environment Variables:[/bold]
  Use [cyan]auto-atlas config --env-vars[/cyan] to see all available variables.
    """
)
console = Console()


@app.command()
def generate(
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Configuration file path")
):
    """Generate sprite atlases for every reachable image group."""
    console.print("[bold blue]Generating sprite atlases...[/bold blue]")

    try:
        config = _load_config(config_file)
        report = AtlasPipeline(config).generate()
    except PipelineError as e:
        console.print(f"[red]Pipeline error:[/red] {e}")
        raise typer.Exit(1)
    except Exception as e:
        console.print(f"[red]Unexpected error:[/red] {e}")
        raise typer.Exit(1)

    _display_report(report)

    if not report.success:
        console.print(f"[red]✗ {len(report.failed_groups)} atlas groups failed[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓ Generated {len(report.atlases)} atlases[/green]")


@app.command()
def delete(
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Configuration file path")
):
    """Delete all generated sprite atlases."""
    console.print("[bold blue]Deleting sprite atlases...[/bold blue]")

    try:
        config = _load_config(config_file)
        deleted = AtlasPipeline(config).delete()
    except PipelineError as e:
        console.print(f"[red]Pipeline error:[/red] {e}")
        raise typer.Exit(1)
    except Exception as e:
        console.print(f"[red]Unexpected error:[/red] {e}")
        raise typer.Exit(1)

    for path in deleted:
        console.print(f"  • {path}")
    console.print(f"[green]✓ Deleted {len(deleted)} atlases[/green]")


@app.command()
def referenced(
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Configuration file path")
):
    """List the images reachable from the build."""
    try:
        config = _load_config(config_file)
        images = AtlasPipeline(config).referenced_images()
    except Exception as e:
        console.print(f"[red]Error resolving referenced images:[/red] {e}")
        raise typer.Exit(1)

    table = Table(title="Referenced Images")
    table.add_column("Path", style="cyan")
    table.add_column("Size", style="green")
    table.add_column("Format")
    table.add_column("Mips", width=5)

    for image in images:
        table.add_row(image.path, f"{image.width}×{image.height}", image.texture_format, str(image.mip_count))

    console.print(table)
    console.print(f"[dim]{len(images)} images referenced[/dim]")


@app.command()
def dependents(
    path: str = typer.Argument(..., help="Project-relative asset path"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Configuration file path")
):
    """List the build roots that reference an asset."""
    try:
        config = _load_config(config_file)
        refs = AtlasPipeline(config).dependents(path)
    except AssetNotFoundError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)
    except Exception as e:
        console.print(f"[red]Error collecting dependents:[/red] {e}")
        raise typer.Exit(1)

    console.print(f"{path}: number of dependents ({len(refs)})")
    for ref in refs:
        console.print(f"  • {ref.path}")


@app.command()
def config(
    show: bool = typer.Option(False, "--show", help="Show current configuration"),
    validate_config: bool = typer.Option(False, "--validate", help="Validate configuration file"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Configuration file path"),
    env_vars: bool = typer.Option(False, "--env-vars", help="Show available environment variables")
):
    """Manage generator configuration."""
    if env_vars:
        _display_env_vars()
        return

    if not (show or validate_config):
        console.print("Use --show to display configuration, --validate to check it, or --env-vars to see environment variables.")
        return

    try:
        pipeline_config = _load_config(config_file)
    except Exception as e:
        console.print(f"[red]Error loading configuration:[/red] {e}")
        raise typer.Exit(1)

    if show:
        _display_config(pipeline_config)

    if validate_config:
        errors = pipeline_config.validate()
        if errors:
            console.print("[red]Configuration validation errors:[/red]")
            for error in errors:
                console.print(f"  • {error}")
            raise typer.Exit(1)
        console.print("[green]✓ Configuration is valid[/green]")


@app.command()
def profile(
    show: bool = typer.Option(False, "--show", help="Show stored profile settings"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Configuration file path"),
    reset: bool = typer.Option(False, "--reset", help="Restore default profile settings")
):
    """Show or reset the stored profile."""
    try:
        pipeline_config = _load_config(config_file)
        store = ProfileStore(Path(pipeline_config.project_dir) / pipeline_config.profile_path)
        current = store.reset() if reset else store.load()
    except Exception as e:
        console.print(f"[red]Error managing profile:[/red] {e}")
        raise typer.Exit(1)

    if reset:
        console.print(f"[green]✓[/green] Profile reset: {store.path}")

    if reset and not show:
        return

    table = Table(title="Atlas Profile")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    for key, value in current.to_dict().items():
        table.add_row(key, str(value))
    console.print(table)


@app.command()
def version():
    """Show version information."""
    console.print("[bold]auto-atlas[/bold]")
    console.print(f"Version: {__version__}")
    console.print("Python: " + sys.version.split()[0])


def _load_config(config_file: Optional[Path]) -> PipelineConfig:
    """Load configuration from file or use defaults with environment variable support."""
    config = None

    if config_file:
        if not config_file.exists():
            console.print(f"[red]Configuration file not found:[/red] {config_file}")
            raise typer.Exit(1)
        config = PipelineConfig.from_file(config_file)
        console.print(f"[dim]Using configuration: {config_file}[/dim]")
    else:
        for config_path in [Path("auto_atlas.toml"), Path("auto_atlas.json")]:
            if config_path.exists():
                console.print(f"[dim]Using configuration: {config_path}[/dim]")
                config = PipelineConfig.from_file(config_path)
                break

        if config is None:
            console.print("[dim]Using default configuration[/dim]")
            config = PipelineConfig()

    config = PipelineConfig._apply_env_overrides(config)

    env_vars_used = [key for key in os.environ if key.startswith('AUTO_ATLAS_')]
    if env_vars_used:
        console.print(f"[dim]Environment overrides applied: {len(env_vars_used)} variables[/dim]")

    return config


def _display_report(report: RunReport) -> None:
    """Display generated atlases and diagnostics."""
    if report.results:
        table = Table(title="Generated Atlases")
        table.add_column("Atlas", style="cyan")
        table.add_column("Sprites", style="green")
        table.add_column("Size", style="yellow")
        table.add_column("Textures")
        table.add_column("Pixels")

        for result in report.results:
            sprite_count = sum(len(texture.placements) for texture in result.textures)
            table.add_row(result.key.atlas_name, str(sprite_count), str(result.size),
                          str(result.texture_count), str(result.cost))
        console.print(table)

    if report.diagnostics:
        console.print("\n[bold]Diagnostics[/bold]")
        for diagnostic in report.diagnostics:
            console.print(f"  • {diagnostic}")

    for atlas_path, reason in report.failed_groups.items():
        console.print(f"  [red]✗[/red] {atlas_path}: {reason}")


def _display_config(config: PipelineConfig) -> None:
    """Display configuration in a formatted table."""
    table = Table(title="Auto Atlas Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Project Directory", config.project_dir)
    table.add_row("Assets Directory", config.assets_dir)
    table.add_row("Build Scenes", ", ".join(config.enabled_scenes) or "-")
    table.add_row("Always Included Folder", config.always_included_folder)
    table.add_row("Runtime Bundle Folder", config.runtime_bundle_folder)
    table.add_row("Max Size", str(config.max_size))
    table.add_row("Padding", str(config.padding))
    table.add_row("Platforms", ", ".join(config.platforms))
    table.add_row("Output Directory", config.output_dir)
    table.add_row("Profile Path", config.profile_path)

    console.print(table)


def _display_env_vars() -> None:
    """Display available environment variables for configuration."""
    table = Table(title="Auto Atlas Environment Variables")
    table.add_column("Environment Variable", style="cyan")
    table.add_column("Description", style="white")
    table.add_column("Example", style="green")

    env_vars = [
        ("AUTO_ATLAS_PROJECT_DIR", "Project root directory", "."),
        ("AUTO_ATLAS_ASSETS_DIR", "Assets directory inside the project", "Assets"),
        ("AUTO_ATLAS_BUILD_SCENES", "Comma-separated build scene paths", "Assets/Scenes/Main.scene"),
        ("AUTO_ATLAS_MAX_SIZE", "Largest atlas size tried", "2048"),
        ("AUTO_ATLAS_PADDING", "Padding between sprites in pixels", "0"),
        ("AUTO_ATLAS_PLATFORMS", "Comma-separated target platforms", "Android,iPhone"),
        ("AUTO_ATLAS_OUTPUT_DIR", "Managed atlas output directory", "Assets/AutoAtlas/Atlases"),
        ("AUTO_ATLAS_PROFILE_PATH", "Profile file relative to the project", ".auto_atlas/profile.toml"),
    ]

    for var_name, description, example in env_vars:
        table.add_row(var_name, description, example)

    console.print(table)
    console.print("\n[dim]Set these environment variables to override configuration file settings.[/dim]")


if __name__ == "__main__":
    app()
