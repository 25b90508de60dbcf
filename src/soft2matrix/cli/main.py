"""Main CLI entry point for soft2matrix.

Provides command group with global options and subcommands for conversion
and the matrix directory tools.
"""

import logging
from pathlib import Path

import click

from soft2matrix import __version__
from soft2matrix.cli.convert_cmd import convert
from soft2matrix.cli.fetch_cmd import fetch
from soft2matrix.cli.matrix_cmd import export, invert, rank
from soft2matrix.config.loader import load_config


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


@click.group()
@click.option(
    '--config',
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help='Path to converter configuration YAML file (built-in defaults if omitted)'
)
@click.option(
    '--verbose',
    is_flag=True,
    help='Enable verbose logging (DEBUG level)'
)
@click.version_option(__version__, prog_name='soft2matrix')
@click.pass_context
def cli(ctx, config, verbose):
    """soft2matrix: convert GEO SOFT series into binary gene-by-sample matrices.

    Resolves platform probe annotations onto HGNC gene ids, averages probes
    per gene, and writes the matrix directory (arrays, genes, data) used by
    the invert and rank tools.
    """
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config
    ctx.obj['verbose'] = verbose

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logging.debug("Verbose logging enabled")


@cli.command()
@click.pass_context
def info(ctx):
    """Display version and configuration summary."""
    config_path = ctx.obj['config_path']

    click.echo(f"soft2matrix v{__version__}")
    click.echo(f"Config: {config_path or '(built-in defaults)'}")
    click.echo()

    if config_path is None:
        return

    try:
        config = load_config(config_path)

        config_hash = config.config_hash()
        click.echo(f"Config Hash: {config_hash[:16]}...")
        click.echo()

        click.echo(click.style("Paths:", bold=True))
        click.echo(f"  Data Directory: {config.data_dir}")
        click.echo(f"  Cache Directory: {config.cache_dir}")
        click.echo(f"  DuckDB Path: {config.duckdb_path or '(disabled)'}")
        click.echo()

        click.echo(click.style("SOFT Table Profile:", bold=True))
        click.echo(f"  Platform columns: {config.parsing.platform_id_column!r}, "
                   f"{config.parsing.gene_symbol_column!r}")
        click.echo(f"  Sample columns:   {config.parsing.sample_id_column!r}, "
                   f"{config.parsing.value_column!r}")
        click.echo(f"  Symbol separator: {config.parsing.symbol_separator!r}")
        click.echo()

        click.echo(click.style("Resolution Thresholds:", bold=True))
        click.echo(f"  Minimum: {config.resolution.min_success_rate:.0%}")
        click.echo(f"  Warning: {config.resolution.warn_threshold:.0%}")

    except Exception as e:
        click.echo(click.style(f"Error loading config: {e}", fg='red'), err=True)
        ctx.exit(1)


# Register commands
cli.add_command(convert)
cli.add_command(fetch)
cli.add_command(invert)
cli.add_command(rank)
cli.add_command(export)


if __name__ == '__main__':
    cli()
