"""Config command for geolayer CLI."""

from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape

from geolayer.commands.common import ConfigOption, color_swatch, console, fail
from geolayer.core.config import CONFIG_FILENAMES, load_config

app = typer.Typer()


def _load(config_file: Optional[Path]):
    if config_file is not None and not config_file.exists():
        fail(f"Config file not found: {config_file}")
    try:
        return load_config(config_file)
    except ValueError as e:
        fail(f"Invalid configuration: {e}")


@app.command("show")
def show(config_file: Optional[Path] = ConfigOption):
    """Show current configuration."""
    cfg = _load(config_file)
    summary = cfg.get_config_summary()
    style = summary["default_style"]

    console.print("\n[bold]Current Configuration:[/]")
    console.print(f"  Config file: [cyan]{summary['config_file'] or '(defaults)'}[/]")
    console.print(f"  Default color: {color_swatch(style['color'])}")
    console.print(f"  Default weight: [cyan]{style['weight']}[/]")
    console.print(f"  Default opacity: [cyan]{style['opacity']}[/]")
    console.print(f"  Default dash: [cyan]{style['dash']}[/]")
    console.print(f"  Session file: [cyan]{summary['session_path']}[/]")
    console.print(f"  Log level: [cyan]{summary['log_level']}[/]")
    if summary["builtin_dataset"]:
        console.print(f"  Built-in dataset: [cyan]{summary['builtin_dataset']}[/]")
        console.print(f"  Built-in field: [cyan]{summary['builtin_field'] or '-'}[/]")
    else:
        console.print("  Built-in dataset: [dim]not configured[/]")
    console.print()


@app.command("export")
def export(
    output: Path = typer.Option(
        Path(CONFIG_FILENAMES[0]), "--output", "-o", help="Where to write the template"
    ),
    config_file: Optional[Path] = ConfigOption,
):
    """Export configuration template."""
    cfg = _load(config_file)
    cfg.export_template(output)
    console.print(f"[bold green]✔[/] Configuration template exported to [underline]{output}[/]")
    console.print("[dim]Edit this file to customize default styles and the built-in dataset[/]")


@app.command("validate")
def validate(config_file: Path = typer.Argument(..., help="Config file to validate")):
    """Validate a configuration file."""
    if not config_file.exists():
        console.print(f"[bold red]❌ Invalid configuration:[/] file not found: {config_file}")
        raise typer.Exit(1)
    try:
        cfg = load_config(config_file)
    except ValueError as e:
        console.print(f"[bold red]❌ Invalid configuration:[/] {escape(str(e))}")
        raise typer.Exit(1)
    console.print(f"[bold green]✔[/] Configuration file is valid: [underline]{config_file}[/]")
    summary = cfg.get_config_summary()
    console.print(f"  Default color: {summary['default_style']['color']}")
    console.print(f"  Built-in dataset: {summary['builtin_dataset'] or 'not configured'}")
