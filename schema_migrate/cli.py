from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from schema_migrate import __version__
from schema_migrate.adapters.ddl.adapter import DDLAdapter
from schema_migrate.adapters.sqlalchemy.adapter import is_connection_url
from schema_migrate.config.loader import DEFAULT_CONFIG_NAME, load_cli_config
from schema_migrate.core.diff import Changes, diff_schemas
from schema_migrate.core.errors import ConfigError, UnsupportedDialectError
from schema_migrate.core.ir import Dialect, Schema
from schema_migrate.core.registry import AdapterRegistry
from schema_migrate.core.transform import transform_schema
from schema_migrate.render import FORMATS, render_changes, render_schema

app = typer.Typer(add_completion=False, help="Analyze, compare and transform SQL schemas")
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)

DIALECTS = ", ".join(d.value for d in Dialect)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _dialect(name: str) -> Dialect:
    try:
        return Dialect.parse(name)
    except UnsupportedDialectError:
        raise typer.BadParameter(f"Unsupported dialect '{name}'. Supported: {DIALECTS}") from None


def _adapter(name: str):
    adapter_factory = AdapterRegistry.get(name)
    if not adapter_factory:
        raise typer.BadParameter(f"Unknown adapter '{name}'. Available: {', '.join(AdapterRegistry.names())}")
    return adapter_factory()


def _check_source(adapter_impl, source: str) -> None:
    if isinstance(adapter_impl, DDLAdapter) and source != "-" and not Path(source).is_file():
        raise typer.BadParameter(f"SQL file not found: {source}")
    if not isinstance(adapter_impl, DDLAdapter) and not is_connection_url(source) and not Path(source).exists():
        raise typer.BadParameter(f"Source not found: {source}")


def _load(adapter_name: str, source: str, module: Optional[str], dialect: Dialect) -> Schema:
    adapter_impl = _adapter(adapter_name)
    _check_source(adapter_impl, source)
    return adapter_impl.emit_schema(source, module_hint=module, dialect=dialect)


def _check_format(output: str, allowed) -> None:
    if output not in allowed:
        raise typer.BadParameter(f"Unsupported output format '{output}'. Supported: {', '.join(allowed)}")


def _emit(text: str, out_file: Optional[str]) -> None:
    if out_file:
        Path(out_file).parent.mkdir(parents=True, exist_ok=True)
        Path(out_file).write_text(text)
        err_console.print(f"[green]Wrote {out_file}[/green]")
    else:
        typer.echo(text, nl=False)


@app.command("analyze")
def analyze(
    source: str = typer.Argument(..., help="SQL file ('-' for stdin), models directory or database URL"),
    adapter: str = typer.Option("ddl", help=f"Schema adapter to use. Available: {', '.join(AdapterRegistry.names())}"),
    module: Optional[str] = typer.Option(None, help="Dotted module holding SQLAlchemy models"),
    dialect: str = typer.Option("postgres", help=f"Dialect for compiled types and sql output ({DIALECTS})"),
    output: str = typer.Option("text", "--output", "-o", help="Output format: text, json, yaml, sql"),
    show_skipped: bool = typer.Option(False, help="List statements the parser skipped"),
    out_file: Optional[str] = typer.Option(None, help="Write output to this file instead of stdout"),
):
    """Parse a schema source and print its model."""
    _check_format(output, FORMATS)
    target = _dialect(dialect)
    adapter_impl = _adapter(adapter)
    _check_source(adapter_impl, source)

    if isinstance(adapter_impl, DDLAdapter):
        result = adapter_impl.parse(source)
        schema = result.schema
        if show_skipped:
            for skipped in result.skipped:
                err_console.print(f"[yellow]skipped ({skipped.reason}):[/yellow] {escape(skipped.statement[:80])}", highlight=False)
    else:
        schema = adapter_impl.emit_schema(source, module_hint=module, dialect=target)

    _emit(render_schema(schema, output, dialect=target), out_file)


@app.command("diff")
def diff(
    source: str = typer.Option(..., help="Source schema (SQL file, models directory or database URL)"),
    target: str = typer.Option(..., help="Target schema"),
    source_module: Optional[str] = typer.Option(None, help="Dotted module for source models"),
    target_module: Optional[str] = typer.Option(None, help="Dotted module for target models"),
    adapter: str = typer.Option("ddl", help=f"Schema adapter to use. Available: {', '.join(AdapterRegistry.names())}"),
    dialect: str = typer.Option("postgres", help=f"Dialect for compiled types ({DIALECTS})"),
    output: str = typer.Option("text", "--output", "-o", help="Output format: text, json, yaml"),
    out_file: Optional[str] = typer.Option(None, help="Write output to this file instead of stdout"),
    fail_on_changes: bool = typer.Option(False, help="Exit with code 2 when the schemas differ"),
):
    """Compare two schemas."""
    d = _dialect(dialect)
    _check_format(output, ("text", "json", "yaml"))

    base = _load(adapter, source, source_module, d)
    head = _load(adapter, target, target_module, d)
    if not base.tables or not head.tables:
        err_console.print(
            "[yellow]No tables detected in one of the schemas. source tables=%s target tables=%s[/yellow]"
            % ([t.name for t in base.tables], [t.name for t in head.tables])
        )

    changes = diff_schemas(base, head)
    logger.debug("%d tables in source, %d in target", len(base.tables), len(head.tables))
    _print_summary(changes)
    _emit(render_changes(changes, output), out_file)

    if fail_on_changes and not changes.is_empty():
        raise typer.Exit(code=2)


@app.command("transform")
def transform(
    input: str = typer.Argument(..., help="SQL file to transform ('-' for stdin)"),
    from_dialect: str = typer.Option(..., "--from", help=f"Source dialect ({DIALECTS})"),
    to_dialect: str = typer.Option(..., "--to", help=f"Target dialect ({DIALECTS})"),
    output: str = typer.Option("sql", "--output", "-o", help="Output format: sql, text, json, yaml"),
    out_file: Optional[str] = typer.Option(None, help="Write output to this file instead of stdout"),
):
    """Convert a schema from one dialect to another."""
    _check_format(output, FORMATS)
    source = _dialect(from_dialect)
    target = _dialect(to_dialect)
    schema = _load("ddl", input, None, source)

    result = transform_schema(schema, source, target)
    for warning in result.warnings:
        err_console.print(f"[yellow]warning:[/yellow] {escape(warning)}", highlight=False)

    _emit(render_schema(result.schema, output, dialect=target), out_file)


@app.command("run")
def run(
    config: Optional[str] = typer.Option(None, "--config", "-c", help=f"Path to {DEFAULT_CONFIG_NAME}"),
    out_file: Optional[str] = typer.Option(None, help="Output file (overrides config)"),
):
    """Run using a YAML config file. Looks for ./schema-migrate.yml if not provided."""
    cfg_path = config or os.path.join(os.getcwd(), DEFAULT_CONFIG_NAME)
    try:
        cfg = load_cli_config(cfg_path)
    except ConfigError as e:
        raise typer.BadParameter(str(e)) from e
    if cfg is None:
        raise typer.BadParameter(f"Config not found at {cfg_path}")

    if cfg.command == "transform":
        return transform(
            input=cfg.input,
            from_dialect=cfg.from_dialect,
            to_dialect=cfg.to_dialect,
            output=cfg.output if "output" in cfg.model_fields_set else "sql",
            out_file=out_file or cfg.out_file,
        )
    return diff(
        source=cfg.source,
        target=cfg.target,
        source_module=cfg.source_module,
        target_module=cfg.target_module,
        adapter=cfg.adapter,
        dialect=cfg.dialect,
        output=cfg.output,
        out_file=out_file or cfg.out_file,
        fail_on_changes=cfg.fail_on_changes,
    )


@app.command("version")
def version():
    """Print the version."""
    typer.echo(f"schema-migrate {__version__}")


def _print_summary(changes: Changes) -> None:
    table = Table(title="Schema Diff Summary")
    table.add_column("Table")
    table.add_column("Status")
    table.add_column("Columns (+/-/~)")
    table.add_column("Indexes (+/-/~)")
    table.add_column("Foreign Keys (+/-/~)")
    table.add_column("Primary Key")

    for t in changes.added_tables:
        table.add_row(t.name, "added", str(len(t.columns)), str(len(t.indexes)), str(len(t.foreign_keys)), "")
    for t in changes.removed_tables:
        table.add_row(t.name, "removed", "", "", "", "")
    for tc in changes.modified_tables:
        table.add_row(
            tc.name,
            "modified",
            "/".join(str(len(x)) for x in (tc.added_columns, tc.removed_columns, tc.modified_columns)),
            "/".join(str(len(x)) for x in (tc.added_indexes, tc.removed_indexes, tc.modified_indexes)),
            "/".join(str(len(x)) for x in (tc.added_foreign_keys, tc.removed_foreign_keys, tc.modified_foreign_keys)),
            "changed" if tc.primary_key_changed else "",
        )
    err_console.print(table)


if __name__ == "__main__":
    app()
