"""
Command-line interface for the IBKR to Ghostfolio converter.

Provides commands for:
- convert: Convert an IBKR export to a Ghostfolio import file
- detect: Show which export layout a file is read as
- overrides: List the loaded ISIN overrides
- init-config: Write a configuration file with default settings
"""

import asyncio
import logging
import sys
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Optional

import click

from ibkr_ghostfolio import __version__
from ibkr_ghostfolio.config import ConfigurationError, load_config, write_config
from ibkr_ghostfolio.data import (
    DataLoadError,
    load_overrides,
    read_export_text,
    save_export,
)
from ibkr_ghostfolio.data.loaders import parse_export
from ibkr_ghostfolio.data.providers import SecurityLookupError, get_default_provider
from ibkr_ghostfolio.data.schemas import detect_schema_from_text
from ibkr_ghostfolio.conversion import ConversionError, IbkrConverter
from ibkr_ghostfolio.logging import DecisionLogger
from ibkr_ghostfolio.models import ConverterConfig


@click.group()
@click.version_option(version=__version__, prog_name="ibkr-ghostfolio")
def main():
    """
    IBKR to Ghostfolio converter.

    Converts Interactive Brokers trade and dividend exports into a
    Ghostfolio activity import file.
    """
    pass


def _load_config_or_exit(config: Optional[str]) -> ConverterConfig:
    try:
        return load_config(config)
    except ConfigurationError as e:
        click.echo(f"Error loading config: {e}", err=True)
        sys.exit(1)


@main.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--output", "-o",
    type=click.Path(dir_okay=False),
    default=None,
    help="Output JSON file. Defaults to ghostfolio-ibkr-<timestamp>.json.",
)
@click.option(
    "--config", "-c",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Path to configuration YAML file",
)
@click.option(
    "--overrides",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to ISIN overrides file. Defaults to config overrides_file.",
)
@click.option(
    "--account-id", "-a",
    type=str,
    default=None,
    help="Ghostfolio account ID. Defaults to GHOSTFOLIO_ACCOUNT_ID.",
)
@click.option(
    "--log", "log_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Append conversion decisions to this JSONL file",
)
@click.option(
    "--cache-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Cache lookups in this directory",
)
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Abort on dividend lines without a per-share rate instead of skipping them",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Show diagnostics")
def convert(
    input_file: str,
    output: Optional[str],
    config: Optional[str],
    overrides: Optional[str],
    account_id: Optional[str],
    log_path: Optional[str],
    cache_dir: Optional[str],
    strict: bool,
    verbose: bool,
):
    """
    Convert an IBKR export to a Ghostfolio import file.

    INPUT_FILE is an IBKR trades or dividends CSV export.
    """
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    converter_config = _load_config_or_exit(config)

    # Command line options win over configuration
    converter_config = replace(
        converter_config,
        account_id=account_id or converter_config.account_id,
        overrides_path=overrides or converter_config.overrides_path,
        cache_dir=cache_dir or converter_config.cache_dir,
        strict_dividend_prices=strict or converter_config.strict_dividend_prices,
    )

    decision_logger = None
    if log_path:
        decision_logger = DecisionLogger(log_path, source_file=input_file)
        decision_logger.log_config_loaded(converter_config, config)

    override_table = load_overrides(converter_config.overrides_path)
    if decision_logger is not None:
        decision_logger.log_overrides_loaded(override_table)

    click.echo(f"Reading {input_file}...")
    try:
        text = read_export_text(input_file)
        _, rows = parse_export(text, converter_config.delimiter)
    except DataLoadError as e:
        click.echo(f"Error reading input: {e}", err=True)
        sys.exit(1)

    converter = IbkrConverter(
        provider=get_default_provider(converter_config.cache_dir),
        overrides=override_table,
        config=converter_config,
        decision_logger=decision_logger,
    )

    try:
        with click.progressbar(length=len(rows), label="Converting") as bar:
            envelope = asyncio.run(converter.convert_rows(rows, on_progress=bar.update))
    except SecurityLookupError as e:
        click.echo(f"Error looking up securities: {e}", err=True)
        sys.exit(1)
    except ConversionError as e:
        click.echo(f"Error converting: {e}", err=True)
        sys.exit(1)

    if output is None:
        output = f"ghostfolio-ibkr-{datetime.now().strftime('%Y%m%d%H%M%S')}.json"
    output_path = save_export(envelope, output)

    click.echo()
    click.echo("Conversion complete:")
    click.echo(f"  Rows read: {len(rows)}")
    click.echo(f"  Activities: {len(envelope.activities)}")
    click.echo(f"  Output: {output_path}")


@main.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--delimiter", "-d", default=",", show_default=True, help="Field delimiter")
def detect(input_file: str, delimiter: str):
    """
    Show which layout INPUT_FILE is read as.
    """
    try:
        text = read_export_text(input_file)
    except DataLoadError as e:
        click.echo(f"Error reading input: {e}", err=True)
        sys.exit(1)

    schema = detect_schema_from_text(text, delimiter)
    click.echo(f"Layout: {schema.layout.value} ({schema.description})")
    click.echo(f"Columns: {', '.join(schema.all_columns)}")


@main.command()
@click.option(
    "--overrides",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to ISIN overrides file. Defaults to config overrides_file.",
)
@click.option(
    "--config", "-c",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Path to configuration YAML file",
)
def overrides(overrides: Optional[str], config: Optional[str]):
    """
    List the loaded ISIN overrides.
    """
    converter_config = _load_config_or_exit(config)
    overrides_path = overrides or converter_config.overrides_path

    table = load_overrides(overrides_path)
    if len(table) == 0:
        click.echo(f"No overrides loaded from {overrides_path}")
        return

    click.echo(f"Overrides from {overrides_path}:")
    for identifier in sorted(table):
        if table.is_manual(identifier):
            click.echo(f"  {identifier}: MANUAL")
        else:
            click.echo(f"  {identifier} -> {table.replacement_for(identifier)}")
    click.echo(f"{table.replace_count} overrides, {table.manual_count} manual")


@main.command("init-config")
@click.argument("output_path", type=click.Path(dir_okay=False))
def init_config(output_path: str):
    """
    Write a configuration file with default settings to OUTPUT_PATH.
    """
    if Path(output_path).exists():
        click.echo(f"Error: {output_path} already exists", err=True)
        sys.exit(1)

    write_config(ConverterConfig(), output_path)
    click.echo(f"Configuration written: {output_path}")


if __name__ == "__main__":
    main()
