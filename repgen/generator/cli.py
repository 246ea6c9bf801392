"""Command-line interface for repgen code generation."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from repgen.generator import ValidationError, assign_ordinals, cppqt, load_file, plan_enum, python
from repgen.generator.types import Mode

if TYPE_CHECKING:
    from repgen.generator.types import Ast

logger = logging.getLogger(__name__)


@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log generation steps")
def cli(verbose: bool) -> None:
    """Remote object interface compiler."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(message)s", handlers=[RichHandler()])


def _load(input_file: str) -> Ast:
    try:
        return load_file(input_file)
    except ValidationError as e:
        print(f"Invalid interface definition: {e}")
        sys.exit(1)


@cli.command()
@click.option("--language", "-l", required=True, help="Target language (python, cppqt)")
@click.option("--input", "-i", "input_file", required=True, help="Input interface definition (JSON)")
@click.option("--output", "-o", "output_file", required=True, help="Output file")
@click.option(
    "--mode",
    "-m",
    default=Mode.MERGED.value,
    help="Roles to generate (replica, source, merged)",
)
@click.option(
    "--runtime-import",
    "runtime_import",
    is_flag=False,
    flag_value="repgen.proto",
    default=None,
    envvar="REPGEN_RUNTIME_IMPORT",
    help="Import path for runtime. No value=repgen.proto, omit=runtime",
)
@click.option(
    "--pragma-once",
    is_flag=True,
    default=False,
    help="Use #pragma once instead of an include guard (cppqt only)",
)
def gen(
    language: str,
    input_file: str,
    output_file: str,
    mode: str,
    runtime_import: str | None,
    pragma_once: bool,
) -> None:
    """Generate interface code from a definition file."""
    try:
        role_mode = Mode(mode)
    except ValueError:
        print(f"Unknown mode: {mode}")
        sys.exit(1)

    ast = _load(input_file)

    if language == "python":
        # Default to "repgen_runtime" (relative import) if not specified
        import_path = runtime_import if runtime_import is not None else "repgen_runtime"
        generated_file = python.render(ast, mode=role_mode, runtime_import=import_path)
    elif language == "cppqt":
        file_name = None if pragma_once else output_file
        generated_file = cppqt.render(ast, mode=role_mode, file_name=file_name)
    else:
        print(f"Unknown language: {language}")
        sys.exit(1)

    logger.debug("Writing %s", output_file)
    with open(output_file, "w", encoding="utf-8") as f:
        f.write(generated_file)


@cli.command()
@click.option("--output", "-o", "output_path", default=".", help="Output directory")
@click.option("--name", default="repgen_runtime", help="Runtime folder name")
def runtime(output_path: str, name: str) -> None:
    """Generate the Python runtime support package."""
    runtime_dir = Path(output_path) / name
    runtime_dir.mkdir(parents=True, exist_ok=True)
    for filename, content in python.runtime().items():
        (runtime_dir / filename).write_text(content)
    print(f"Generated Python runtime in {runtime_dir}")


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input interface definition (JSON)")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def info(input_file: str, output_json: bool) -> None:
    """Display ordinal tables and enum wire widths."""
    ast = _load(input_file)

    if output_json:
        _output_json(ast)
    else:
        _output_plain(ast)


def _enum_widths(ast: Ast) -> dict[str, str]:
    widths = {en.name: plan_enum(en).wire_type.value for en in ast.enums}
    for cls in ast.classes:
        for en in cls.enums:
            widths[f"{cls.name}::{en.name}"] = plan_enum(en).wire_type.value
    return widths


def _output_json(ast: Ast) -> None:
    """Output interface info as JSON."""
    data: dict = {"classes": {}, "enums": _enum_widths(ast), "pods": {}}

    for cls in ast.classes:
        tables = assign_ordinals(cls)
        data["classes"][cls.name] = {
            "properties": [p.name for p in tables.properties],
            "signals": [
                {"name": s.name, "signature": s.signature, "property": s.property_ordinal}
                for s in tables.signals
            ],
            "methods": [
                {"name": m.name, "signature": m.signature, "return_type": m.return_type}
                for m in tables.methods
            ],
        }

    for pod in ast.pods:
        data["pods"][pod.name] = [a.name for a in pod.attributes]

    print(json.dumps(data, indent=2))


def _output_plain(ast: Ast) -> None:
    """Output interface info using rich text formatting."""
    console = Console()

    for cls in ast.classes:
        tables = assign_ordinals(cls)
        console.print(f"[bold cyan]{cls.name}[/bold cyan]")

        member_table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
        member_table.add_column("Kind", style="dim")
        member_table.add_column("Ordinal", style="yellow", justify="right")
        member_table.add_column("Member", style="white")
        member_table.add_column("Notes", style="green")

        for p in tables.properties:
            member_table.add_row("property", str(p.ordinal), p.name, p.property.mode.value)
        for s in tables.signals:
            note = f"property {s.property_ordinal}" if s.is_change_signal else ""
            member_table.add_row("signal", str(s.ordinal), s.signature, note)
        for m in tables.methods:
            member_table.add_row("method", str(m.ordinal), m.signature, f"-> {m.return_type}")

        console.print(member_table)
        console.print()

    widths = _enum_widths(ast)
    if widths:
        console.print("[bold cyan]Enums[/bold cyan]")
        enum_table = Table(show_header=False, box=None, padding=(0, 2, 0, 2))
        enum_table.add_column("Name", style="white")
        enum_table.add_column("Wire type", style="yellow")
        for name, wire in widths.items():
            enum_table.add_row(name, wire)
        console.print(enum_table)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
