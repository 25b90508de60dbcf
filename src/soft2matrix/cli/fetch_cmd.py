"""Fetch commands: download the HGNC reference and GEO SOFT families."""

import logging
import sys
from pathlib import Path

import click

from soft2matrix.cli.convert_cmd import load_cli_config
from soft2matrix.config.schema import GEO_SERIES_BASE_URL, HGNC_CUSTOM_DOWNLOAD_URL
from soft2matrix.gene_mapping import download_hgnc_reference
from soft2matrix.soft import download_soft_family

logger = logging.getLogger(__name__)

DEFAULT_HGNC_PATH = Path("data/hgnc_reference.tsv")
DEFAULT_SOFT_DIR = Path("data/soft")


@click.group('fetch')
def fetch():
    """Download conversion inputs.

    Downloads are skipped when the target file already exists
    (use --force to re-download).
    """
    pass


@fetch.command('hgnc')
@click.option(
    '--output',
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help='Where to save the reference (default: <data_dir>/hgnc_reference.tsv)'
)
@click.option(
    '--force',
    is_flag=True,
    help='Re-download even if the file exists'
)
@click.pass_context
def hgnc(ctx, output, force):
    """Download the six-column HGNC reference table."""
    try:
        config = load_cli_config(ctx)
        if output is None:
            output = config.hgnc_reference_path if config else DEFAULT_HGNC_PATH
        url = config.sources.hgnc_url if config else HGNC_CUSTOM_DOWNLOAD_URL
        timeout = config.api.timeout_seconds if config else 120
        max_retries = config.api.max_retries if config else 5

        click.echo("Downloading HGNC reference...")
        path = download_hgnc_reference(
            output, url=url, force=force, timeout=timeout, max_retries=max_retries
        )
        click.echo(click.style(f"  Saved: {path}", fg='green'))
    except Exception as e:
        click.echo(click.style(f"Download failed: {e}", fg='red'), err=True)
        logger.exception("HGNC download failed")
        sys.exit(1)


@fetch.command('soft')
@click.argument('gse_id')
@click.option(
    '--output-dir',
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help='Directory to save the family file in (default: <cache_dir>)'
)
@click.option(
    '--force',
    is_flag=True,
    help='Re-download even if the file exists'
)
@click.pass_context
def soft(ctx, gse_id, output_dir, force):
    """Download the SOFT family file of series GSE_ID (kept compressed)."""
    try:
        config = load_cli_config(ctx)
        if output_dir is None:
            output_dir = config.cache_dir if config else DEFAULT_SOFT_DIR
        base_url = config.sources.geo_base_url if config else GEO_SERIES_BASE_URL
        timeout = config.api.timeout_seconds if config else 120
        max_retries = config.api.max_retries if config else 5

        click.echo(f"Downloading SOFT family for {gse_id}...")
        path = download_soft_family(
            gse_id,
            output_dir,
            base_url=base_url,
            force=force,
            timeout=timeout,
            max_retries=max_retries,
        )
        click.echo(click.style(f"  Saved: {path}", fg='green'))
    except Exception as e:
        click.echo(click.style(f"Download failed: {e}", fg='red'), err=True)
        logger.exception("SOFT family download failed")
        sys.exit(1)
