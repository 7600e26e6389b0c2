"""Command-line interface for memlayout."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, NoReturn

import click
from rich.console import Console
from rich.table import Table

from memlayout.config import Options
from memlayout.errors import MemlayoutError
from memlayout.native import Address, BufferMemory, StructLayout, TypedPointer, describe_layout, read
from memlayout.native.types import Struct, describe, is_descriptor
from memlayout.script import Engine, Scope

logger = logging.getLogger(__name__)

MEMORY_NAME = "MEMORY"


def _parse_int(_ctx: click.Context, _param: click.Parameter, value: str | None) -> int | None:
    """Accept decimal, 0x hex, 0o octal and 0b binary integers."""
    if value is None:
        return None
    try:
        return int(value, 0)
    except ValueError:
        raise click.BadParameter(f"{value!r} is not an integer") from None


def _jsonable(value: Any) -> Any:
    """Convert a value tree into something json.dumps accepts."""
    match value:
        case Address():
            return str(value)
        case TypedPointer(type=target, address=address):
            return {"type": describe(target), "address": str(address)}
        case dict():
            return {name: _jsonable(item) for name, item in value.items()}
        case list():
            return [_jsonable(item) for item in value]
    if is_descriptor(value):
        return describe(value)
    return value


def _load_script(engine: Engine, path: str, scope: Scope) -> tuple[Any, Scope]:
    with open(path, encoding="utf-8") as f:
        script = f.read()
    logger.info(f"Running {path}")
    return engine.eval_with_scope(script, scope)


def _declared_structs(scope: Scope) -> list[tuple[str, Struct]]:
    return [
        (name, value)
        for name, value in scope.items()
        if scope.is_constant(name) and isinstance(value, Struct)
    ]


@click.group()
@click.option("--verbose", "-v", count=True, help="Increase log output (repeatable)")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="JSON options file",
)
@click.pass_context
def cli(ctx: click.Context, verbose: int, config_path: str | None) -> None:
    """Typed memory layouts from native struct declarations."""
    level = logging.WARNING - 10 * min(verbose, 2)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        ctx.obj = Options.load(config_path) if config_path else Options()
    except (ValueError, KeyError) as exc:
        raise click.BadParameter(str(exc), param_hint="--config") from exc


@cli.command()
@click.option(
    "--input",
    "-i",
    "input_file",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Layout script",
)
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def info(options: Options, input_file: str, output_json: bool) -> None:
    """Display the layout of every struct a script declares."""
    try:
        _, scope = _load_script(Engine(options), input_file, Scope())
    except MemlayoutError as exc:
        _fail(exc)

    layouts = [describe_layout(name, struct) for name, struct in _declared_structs(scope)]

    if output_json:
        print(json.dumps({layout.name: layout.to_dict() for layout in layouts}, indent=2))
    else:
        _output_plain(layouts)


def _output_plain(layouts: list[StructLayout]) -> None:
    """Output struct layouts using rich text formatting."""
    console = Console()

    for layout in layouts:
        padding = f", {layout.padding} bytes padding" if layout.padding else ""
        console.print(
            f"[bold cyan]{layout.name}[/bold cyan] [yellow]{layout.size} bytes[/yellow]{padding}"
        )

        table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
        table.add_column("Offset", style="yellow", justify="right")
        table.add_column("Name", style="white")
        table.add_column("Type", style="dim")
        table.add_column("Size", style="yellow", justify="right")
        table.add_column("Gap", style="red", justify="right")

        for field in layout.fields:
            gap = str(field.padding_before) if field.padding_before else ""
            table.add_row(f"0x{field.offset:x}", field.name, field.type, str(field.size), gap)

        console.print(table)
        console.print()


@cli.command(name="read")
@click.option(
    "--input",
    "-i",
    "input_file",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Layout script",
)
@click.option(
    "--dump",
    "-d",
    "dump_file",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Binary memory dump",
)
@click.option("--type", "-t", "type_expression", required=True, help="Type expression, e.g. Player")
@click.option("--address", "-a", required=True, callback=_parse_int, help="Address to read")
@click.option("--base", default="0", callback=_parse_int, help="Address of the dump's first byte")
@click.pass_obj
def read_value(
    options: Options,
    input_file: str,
    dump_file: str,
    type_expression: str,
    address: int,
    base: int,
) -> None:
    """Read a value from a memory dump and print it as JSON."""
    engine = Engine(options)
    try:
        _, scope = _load_script(engine, input_file, Scope())
        descriptor = engine.eval(type_expression, scope)
        if not is_descriptor(descriptor):
            raise click.BadParameter(f"{type_expression!r} is not a type", param_hint="--type")

        memory = BufferMemory.from_file(dump_file, base=base)
        value = read(memory, descriptor, Address.from_int(address), options)
    except MemlayoutError as exc:
        _fail(exc)

    print(json.dumps(_jsonable(value), indent=2))


@cli.command()
@click.argument("script_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--dump",
    "-d",
    "dump_file",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="Binary memory dump bound to MEMORY",
)
@click.option("--base", default="0", callback=_parse_int, help="Address of the dump's first byte")
@click.option("--output", "-o", "output_file", default=None, help="Save the modified dump here")
@click.pass_obj
def run(
    options: Options,
    script_file: str,
    dump_file: str | None,
    base: int,
    output_file: str | None,
) -> None:
    """Run a script, optionally against a memory dump."""
    if output_file and not dump_file:
        raise click.UsageError("--output requires --dump")

    scope = Scope()
    memory = None
    if dump_file:
        memory = BufferMemory.from_file(dump_file, base=base, readonly=output_file is None)
        scope = scope.with_constant(MEMORY_NAME, memory)

    try:
        result, _ = _load_script(Engine(options), script_file, scope)
    except MemlayoutError as exc:
        _fail(exc)

    if result is not None:
        print(json.dumps(_jsonable(result), indent=2))

    if memory is not None and output_file:
        memory.save(Path(output_file))


def _fail(exc: MemlayoutError) -> NoReturn:
    click.echo(f"Error: {exc}", err=True)
    sys.exit(1)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
