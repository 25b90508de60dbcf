"""Matrix directory tools: invert, rank and export."""

import logging
import sys
from pathlib import Path

import click

from soft2matrix.cli.convert_cmd import load_cli_config
from soft2matrix.matrix import invert_matrix, rank_transform, write_matrix_table
from soft2matrix.matrix.transpose import DEFAULT_BLOCK_ROWS
from soft2matrix.persistence import ProvenanceTracker

logger = logging.getLogger(__name__)

MATRIX_DIR = click.Path(exists=True, file_okay=False, path_type=Path)


@click.command('invert')
@click.option(
    '--matrixdir',
    required=True,
    type=MATRIX_DIR,
    help='Matrix directory whose data is transposed into inverse_data'
)
@click.option(
    '--block-rows',
    type=click.IntRange(min=1),
    default=DEFAULT_BLOCK_ROWS,
    help=f'Rows transposed per block (default: {DEFAULT_BLOCK_ROWS})'
)
@click.pass_context
def invert(ctx, matrixdir, block_rows):
    """Write inverse_data, the genes x arrays transpose of data."""
    try:
        provenance = ProvenanceTracker.from_config(load_cli_config(ctx))
        path = invert_matrix(matrixdir, block_rows=block_rows)
        provenance.record_step('invert_matrix', {
            'matrixdir': str(matrixdir),
            'block_rows': block_rows,
        })
        provenance.save_sidecar(path)
        click.echo(click.style(f"Wrote {path}", fg='green'))
    except Exception as e:
        click.echo(click.style(f"Error: {e}", fg='red'), err=True)
        logger.exception("Invert command failed")
        sys.exit(1)


@click.command('rank')
@click.option(
    '--matrixdir',
    required=True,
    type=MATRIX_DIR,
    help='Matrix directory to read the data from'
)
@click.option(
    '--output',
    required=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help='File to write the ranked values into'
)
@click.option(
    '--qnorm',
    is_flag=True,
    help='Apply quantile normalisation instead of plain ranks'
)
@click.option(
    '--use-inverse',
    is_flag=True,
    help='Rank rows of inverse_data (each gene across arrays)'
)
@click.pass_context
def rank(ctx, matrixdir, output, qnorm, use_inverse):
    """Rank-transform every row of the matrix."""
    try:
        provenance = ProvenanceTracker.from_config(load_cli_config(ctx))
        rows = rank_transform(
            matrixdir, output, quantile_normalise=qnorm, use_inverse=use_inverse
        )
        provenance.record_step('rank_transform', {
            'matrixdir': str(matrixdir),
            'quantile_normalise': qnorm,
            'use_inverse': use_inverse,
            'rows': rows,
        })
        provenance.save_sidecar(output)
        click.echo(click.style(f"Wrote {rows} ranked rows to {output}", fg='green'))
    except Exception as e:
        click.echo(click.style(f"Error: {e}", fg='red'), err=True)
        logger.exception("Rank command failed")
        sys.exit(1)


@click.command('export')
@click.option(
    '--matrixdir',
    required=True,
    type=MATRIX_DIR,
    help='Matrix directory to export'
)
@click.option(
    '--output-dir',
    required=True,
    type=click.Path(file_okay=False, path_type=Path),
    help='Directory for the TSV, Parquet and provenance files'
)
@click.option(
    '--filename-base',
    default='matrix',
    help='Base filename without extension (default: matrix)'
)
def export(matrixdir, output_dir, filename_base):
    """Export the matrix as gene x array TSV and Parquet tables."""
    try:
        paths = write_matrix_table(matrixdir, output_dir, filename_base=filename_base)
        for kind, path in paths.items():
            click.echo(f"  {kind}: {path}")
        click.echo(click.style("Export complete", fg='green'))
    except Exception as e:
        click.echo(click.style(f"Error: {e}", fg='red'), err=True)
        logger.exception("Export command failed")
        sys.exit(1)
