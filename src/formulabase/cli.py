"""Command-line interface for FormulaBase.

This module provides CLI commands for checking formulas against an
attribute catalog and inspecting the function catalogue.
"""

from typing import NoReturn

import click
from pydantic import ValidationError

from formulabase.core.config import get_settings
from formulabase.core.formula import (
    FUNCTION_SIGNATURES,
    AttributeInfo,
    InMemoryCatalog,
    check_formula,
    load_catalog,
)
from formulabase.core.formula.exceptions import FormulaParseError
from formulabase.core.logging import LoggingContext, configure_logging, get_logger


def _parse_attribute(value: str) -> AttributeInfo:
    """Turn ``NAME=TYPE`` (or bare ``NAME``) into a catalog entry."""
    name, _, declared_type = value.partition("=")
    name = name.strip()
    if not name:
        raise click.BadParameter(f"'{value}' is not of the form NAME=TYPE")
    return AttributeInfo(id=name, name=name, declared_type=declared_type.strip() or "unknown")


@click.group()
@click.version_option(version="0.1.0", prog_name="FormulaBase")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    default=None,
    help="Set log level (overrides environment)",
)
def cli(log_level: str | None) -> None:
    """FormulaBase - typed formula parsing and validation."""
    settings = get_settings()
    if log_level is not None:
        settings = settings.model_copy(update={"log_level": log_level})
    configure_logging(settings)


@cli.command()
@click.argument("formula")
@click.option(
    "--attr",
    "attributes",
    multiple=True,
    help="Catalog attribute as NAME=TYPE (repeatable)",
)
@click.option(
    "--catalog",
    "catalog_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="JSON file with a list of {id, name, type} attributes",
)
def check(formula: str, attributes: tuple[str, ...], catalog_path: str | None) -> None:
    """Parse FORMULA, validate it and report its inferred type.

    Exits with status 1 when any structural or type error is found.
    """
    logger = get_logger(__name__)

    entries: list[AttributeInfo] = []
    if catalog_path is not None:
        try:
            entries.extend(load_catalog(catalog_path))
        except (ValueError, ValidationError) as e:
            click.echo(f"Error: invalid catalog file: {e}", err=True)
            raise SystemExit(2)
    entries.extend(_parse_attribute(value) for value in attributes)
    catalog = InMemoryCatalog(entries)

    with LoggingContext(formula=formula):
        try:
            result = check_formula(formula, catalog)
        except FormulaParseError as e:
            logger.warning("Formula rejected", error=str(e))
            click.echo(f"Error: {e}", err=True)
            raise SystemExit(2)

        logger.info(
            "Checked formula",
            nodes=len(result.store),
            structural_errors=len(result.structure.issues),
            type_errors=len(result.types.issues),
        )

    click.echo(f"Formula:  {result.canonical}")
    click.echo(f"Type:     {result.types.expression_type.value}")

    for diagnostic in result.diagnostics:
        click.echo(f"Warning:  {diagnostic}")
    for message in result.structure.errors:
        click.echo(f"Error:    {message}")
    for connection in result.structure.broken_connections:
        click.echo(f"Broken:   {connection.before} -> {connection.after}")
    for message in result.types.errors:
        click.echo(f"Error:    {message}")

    if not result.is_valid:
        raise SystemExit(1)
    click.echo("OK")


@cli.command()
def functions() -> None:
    """List the known functions with their arguments."""
    for signature in FUNCTION_SIGNATURES.values():
        arity = "variadic" if signature.is_variadic else str(signature.arity)
        labels = ", ".join(signature.labels)
        click.echo(f"{signature.name}({labels})  [{arity}] {signature.description}")


@cli.command()
def info() -> None:
    """Display FormulaBase configuration."""
    settings = get_settings()

    click.echo(f"""
FormulaBase v{settings.app_version}
{'=' * 40}

Configuration:
  Environment:  {settings.environment}
  Debug:        {settings.debug}

Parser:
  Max Depth:    {settings.max_nesting_depth}
  Placeholder:  {settings.unresolved_attribute_placeholder}

Logging:
  Level:        {settings.log_level}
  Format:       {settings.log_format}
""")


def main() -> NoReturn:
    """Main entry point for the CLI.

    This function is called when the `formulabase` command is run
    or when using `python -m formulabase`.
    """
    cli()


if __name__ == "__main__":
    main()
