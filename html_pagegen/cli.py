"""Thin CLI wrapper for html_pagegen.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler

from html_pagegen import __version__
from html_pagegen.config import get_settings, print_settings_json

app = typer.Typer(
    name="pagegen",
    help="HTML page generator - inject build assets into page templates",
    no_args_is_help=True,
)
console = Console()


def configure_logging(level: str) -> None:
    """Route log records through rich at the given level."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"html-pagegen version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """HTML page generator - inject build assets into page templates."""


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        console.print(print_settings_json(settings))
    else:
        console.print("[bold]Effective Configuration:[/bold]")
        console.print()
        console.print("[bold]Operational:[/bold]")
        console.print(f"  Log level:           {settings.log_level}")
        console.print()
        console.print("[bold]Page defaults:[/bold]")
        console.print(f"  Filename:            {settings.default_filename}")
        console.print(f"  Show errors:         {settings.show_errors}")
        console.print(f"  Cache:               {settings.cache}")


@app.command()
def build(
    path: Annotated[str, typer.Argument(help="Path to build file (YAML or JSON)")],
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Generate pages without writing them"),
    ] = False,
) -> None:
    """Generate the pages declared in a build file.

    Runs one build pass with a page plugin per declared page and writes
    the generated files into the output path. Exits with code 1 when the
    pass reported errors.
    """
    from pydantic import ValidationError

    from html_pagegen.build.compilation import FileAsset
    from html_pagegen.build.compiler import Compiler
    from html_pagegen.options.io import load_build_file
    from html_pagegen.plugin import HtmlPagePlugin

    settings = get_settings()
    configure_logging(settings.log_level)

    file_path = Path(path)
    if not file_path.exists():
        console.print(f"[red]File not found: {path}[/red]")
        raise typer.Exit(code=1)

    try:
        build_file = load_build_file(file_path, settings)
    except ValidationError as e:
        console.print("[red]Invalid build file:[/red]")
        console.print(str(e))
        raise typer.Exit(code=1) from None
    except ValueError as e:
        console.print(f"[red]Invalid build file: {e}[/red]")
        raise typer.Exit(code=1) from None

    compiler = Compiler(
        context=build_file.context,
        output_path=build_file.output_path,
        chunks=[chunk.to_chunk() for chunk in build_file.chunks],
        public_path=build_file.public_path,
        hash=build_file.hash,
    )
    compiler.apply(*(HtmlPagePlugin(page) for page in build_file.pages))
    compilation = asyncio.run(compiler.run())

    written = [] if dry_run else compiler.emit_assets(compilation)
    generated = sorted(
        name
        for name, asset in compilation.assets.items()
        if not isinstance(asset, FileAsset)
    )

    if json_output:
        output = {
            "hash": compilation.hash,
            "output_path": str(compiler.output_path),
            "generated": generated,
            "written": [str(p) for p in written],
            "errors": [str(e) for e in compilation.errors],
            "warnings": [str(w) for w in compilation.warnings],
        }
        console.print(
            json.dumps(output, indent=2), markup=False, highlight=False, soft_wrap=True
        )
    else:
        for name in generated:
            marker = "[dim](dry run)[/dim] " if dry_run else ""
            console.print(f"[green]✓[/green] {marker}{name}")
        for warning in compilation.warnings:
            console.print(f"Warning: {warning}", style="yellow", markup=False)
        for error in compilation.errors:
            console.print(f"Error: {error}", style="red", markup=False)
        console.print(
            f"Generated {len(generated)} file(s) with "
            f"{len(compilation.errors)} error(s) and "
            f"{len(compilation.warnings)} warning(s)"
        )

    if compilation.errors:
        raise typer.Exit(code=1)


@app.command()
def validate(
    path: Annotated[str, typer.Argument(help="Path to build file to validate")],
) -> None:
    """Validate a build file without generating pages."""
    from pydantic import ValidationError

    from html_pagegen.options.io import load_build_file

    file_path = Path(path)
    if not file_path.exists():
        console.print(f"[red]File not found: {path}[/red]")
        raise typer.Exit(code=1)

    try:
        build_file = load_build_file(file_path)
        console.print(f"[green]✓ Valid build file: {file_path.name}[/green]")
        console.print(f"  Context: {build_file.context}")
        console.print(f"  Output path: {build_file.output_path}")
        console.print(f"  Chunks: {len(build_file.chunks)}")
        for page in build_file.pages:
            console.print(f"  Page: {page.filename} ({page.template})")
    except ValidationError as e:
        console.print("[red]Validation failed:[/red]")
        console.print(str(e))
        raise typer.Exit(code=1) from None
    except ValueError as e:
        console.print(f"[red]Validation failed: {e}[/red]")
        raise typer.Exit(code=1) from None


if __name__ == "__main__":
    app()
