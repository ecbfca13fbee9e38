"""
Command-line interface for compiling and calling OpenAPI tools.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer
import yaml

from .config import BridgeSettings
from .dereferencer import PathDereferencer
from .exceptions import DereferenceError, DocumentLoadError
from .loader import load_document
from .registry import ToolRegistry, build_registry
from .server import ToolServer

app = typer.Typer(help="Compile OpenAPI specifications into callable tools")


@app.callback()
def configure(
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level"),
) -> None:
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _save_yaml(content: dict, path: Path) -> None:
    """Save content to a YAML file.

    Args:
        content: The content to save
        path: Path where to save the file

    Raises:
        typer.Exit: If the file cannot be saved
    """
    try:
        with open(path, "w") as f:
            yaml.dump(content, f, sort_keys=False)
    except (OSError, yaml.YAMLError) as e:
        typer.echo(f"Error saving to {path}: {str(e)}", err=True)
        raise typer.Exit(1)


def _build(spec: str, base_url: Optional[str]) -> ToolRegistry:
    settings = BridgeSettings.from_env(base_url=base_url)
    try:
        registry = build_registry(spec, settings)
    except DocumentLoadError as e:
        typer.echo(f"Error: {str(e)}", err=True)
        raise typer.Exit(1)

    for diagnostic in registry.diagnostics:
        typer.echo(f"warning: {diagnostic}", err=True)
    return registry


@app.command()
def tools(
    spec: str = typer.Argument(..., help="Path or URL of the OpenAPI specification"),
    output_format: str = typer.Option("json", "--format", "-f", help="Output format: json or yaml"),
    base_url: Optional[str] = typer.Option(None, "--base-url", help="Override the declared servers"),
) -> None:
    """List the tools compiled from a specification."""
    listings = _build(spec, base_url).listings()
    if output_format == "yaml":
        typer.echo(yaml.safe_dump(listings, sort_keys=False))
    else:
        typer.echo(json.dumps(listings, indent=2))


@app.command()
def call(
    spec: str = typer.Argument(..., help="Path or URL of the OpenAPI specification"),
    name: str = typer.Argument(..., help="Name of the tool to call"),
    args: str = typer.Option("{}", "--args", "-a", help="Tool arguments as a JSON object"),
    base_url: Optional[str] = typer.Option(None, "--base-url", help="Override the declared servers"),
) -> None:
    """Call one tool and print its result."""
    try:
        arguments = json.loads(args)
    except json.JSONDecodeError as e:
        typer.echo(f"Error: --args is not valid JSON: {e}", err=True)
        raise typer.Exit(1)

    registry = _build(spec, base_url)

    async def _run():
        async with ToolServer(registry, settings=BridgeSettings.from_env(base_url=base_url)) as server:
            return await server.call_tool(name, arguments)

    result = asyncio.run(_run())
    typer.echo(result.text, err=result.is_error)
    if result.is_error:
        raise typer.Exit(1)


@app.command()
def dereference(
    input_file: Path = typer.Argument(..., help="Path to the input OpenAPI spec"),
    output_file: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Path to save the dereferenced spec. If not provided, will use input filename with .dereferenced.yaml suffix",
    ),
) -> None:
    """Dereference all references in an OpenAPI specification."""
    if not input_file.exists():
        typer.echo(f"Input file not found: {input_file}", err=True)
        raise typer.Exit(1)

    if output_file is None:
        output_file = input_file.parent / f"{input_file.stem}.dereferenced.yaml"

    try:
        spec = load_document(input_file)
        # Base path is the input file's directory for relative file references
        result = PathDereferencer(spec, base_path=input_file.parent, strict=True).dereference()
    except (DocumentLoadError, DereferenceError) as e:
        typer.echo(f"Error dereferencing spec: {str(e)}", err=True)
        raise typer.Exit(1)

    _save_yaml(result, output_file)
    typer.echo(f"Successfully dereferenced {input_file} to {output_file}")


def main():
    """Entry point for the CLI."""
    app()
