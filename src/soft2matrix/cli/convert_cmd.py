"""Convert command: SOFT series to matrix directory.

Orchestrates the conversion flow:
1. Load config (optional)
2. Load the HGNC reference into the resolver
3. Stream the SOFT file through the parser into the matrix writer
4. Grade gene symbol resolution
5. Save probe map tables to DuckDB (if configured) and the provenance sidecar
"""

import logging
import sys
from pathlib import Path

import click
import polars as pl

from soft2matrix.config.loader import load_config
from soft2matrix.config.schema import ParsingOptions, ResolutionThresholds
from soft2matrix.gene_mapping import HgncResolver, ResolutionValidator
from soft2matrix.matrix.writer import MatrixWriter
from soft2matrix.persistence import PipelineStore, ProvenanceTracker
from soft2matrix.soft import convert_soft, open_soft_lines

logger = logging.getLogger(__name__)


def load_cli_config(ctx):
    """Load the group-level --config file, or None when it was omitted."""
    config_path = ctx.obj.get('config_path') if ctx.obj else None
    if config_path is None:
        return None
    return load_config(config_path)


def _echo_messages(messages: list[str]) -> None:
    for msg in messages:
        if 'FAILED' in msg:
            click.echo(click.style(f"  {msg}", fg='red'))
        elif 'WARNING' in msg:
            click.echo(click.style(f"  {msg}", fg='yellow'))
        else:
            click.echo(f"  {msg}")


@click.command('convert')
@click.option(
    '--soft', 'soft_path',
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='SOFT file to process (.soft or gzip-compressed .soft.gz)'
)
@click.option(
    '--outdir',
    required=True,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help='Existing directory to write the matrix into'
)
@click.option(
    '--hgnc', 'hgnc_path',
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='HGNC reference table (tab-separated, six columns)'
)
@click.option(
    '--unresolved-report',
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help='Write unresolved gene symbols to this file for review'
)
@click.pass_context
def convert(ctx, soft_path, outdir, hgnc_path, unresolved_report):
    """Convert a SOFT series into a binary gene-by-sample matrix.

    Writes 'arrays', 'genes' and 'data' into OUTDIR. Structural anomalies in
    the SOFT stream are logged and never abort the conversion; samples
    without a table get an all-NaN row.

    Examples:

        soft2matrix convert --soft GSE1_family.soft.gz --outdir out --hgnc hgnc.tsv
    """
    click.echo(click.style("=== SOFT to Matrix Conversion ===", bold=True))
    click.echo()

    store = None
    try:
        config = load_cli_config(ctx)
        parsing = config.parsing if config else ParsingOptions()
        thresholds = config.resolution if config else ResolutionThresholds()
        provenance = ProvenanceTracker.from_config(config)

        # 1. Load HGNC reference
        click.echo("Loading HGNC reference...")
        resolver = HgncResolver.from_reference_file(hgnc_path)
        click.echo(click.style(
            f"  {resolver.gene_count} approved genes, {len(resolver)} lookup keys",
            fg='green'
        ))
        click.echo()
        provenance.record_step('load_hgnc_reference', {
            'path': str(hgnc_path),
            'approved_genes': resolver.gene_count,
            'lookup_keys': len(resolver),
        })

        # 2. Convert
        click.echo(f"Converting {soft_path}...")
        with MatrixWriter(outdir) as writer:
            summary, parser = convert_soft(
                open_soft_lines(soft_path), resolver, writer, parsing
            )

        style = 'green' if summary.complete else 'yellow'
        click.echo(click.style(
            f"  {summary.rows_written} rows x {summary.genes} genes "
            f"({summary.probesets} probesets)",
            fg=style
        ))
        if summary.placeholder_rows:
            click.echo(click.style(
                f"  {summary.placeholder_rows} samples without a complete table (NaN rows written)",
                fg='yellow'
            ))
        if not summary.complete:
            click.echo(click.style(
                f"  Only {summary.samples_seen}/{summary.declared_samples} declared samples found",
                fg='yellow'
            ))
        click.echo()
        provenance.record_step('convert_soft', {
            'source': str(soft_path),
            'declared_samples': summary.declared_samples,
            'samples_seen': summary.samples_seen,
            'rows_written': summary.rows_written,
            'placeholder_rows': summary.placeholder_rows,
            'probesets': summary.probesets,
            'genes': summary.genes,
            'unknown_probe_rows': summary.unknown_probe_rows,
        })

        # 3. Grade symbol resolution
        click.echo("Validating gene symbol resolution...")
        validator = ResolutionValidator(
            min_success_rate=thresholds.min_success_rate,
            warn_threshold=thresholds.warn_threshold,
        )
        validation = validator.validate(summary.resolution)
        _echo_messages(validation.messages)
        if unresolved_report is not None:
            validator.save_unresolved_report(summary.resolution, unresolved_report)
            click.echo(f"  Unresolved symbols saved to: {unresolved_report}")
        click.echo()
        provenance.record_step('validate_resolution', {
            'success_rate': f"{validation.success_rate:.1%}",
            'validation_passed': validation.passed,
        })

        # 4. Side tables
        store = PipelineStore.from_config(config) if config else None
        if store is not None:
            click.echo("Saving probe map to DuckDB...")
            if store.has_checkpoint('probe_gene_map'):
                previous = store.load_dataframe('probe_gene_map')
                if previous is not None:
                    click.echo(click.style(
                        f"  Replacing stored probe map ({previous.height} rows)",
                        fg='yellow'
                    ))
            pairs = parser.probe_gene_pairs()
            probe_map = pl.DataFrame(
                {
                    'probeset_id': [probe for probe, _ in pairs],
                    'hgnc_id': [hgnc_id for _, hgnc_id in pairs],
                    'gene_symbol': [resolver.symbol(hgnc_id) for _, hgnc_id in pairs],
                },
                schema={'probeset_id': pl.Utf8, 'hgnc_id': pl.Int64, 'gene_symbol': pl.Utf8},
            )
            store.save_dataframe(
                probe_map,
                'probe_gene_map',
                description=f"Probeset to HGNC map from {soft_path.name}",
            )
            unresolved = pl.DataFrame(
                {'symbol': summary.resolution.unresolved_symbols},
                schema={'symbol': pl.Utf8},
            )
            store.save_dataframe(
                unresolved,
                'unresolved_symbols',
                description=f"Unresolved gene symbols from {soft_path.name}",
            )
            click.echo(click.style(
                f"  Saved {probe_map.height} probe map rows to {config.duckdb_path}",
                fg='green'
            ))
            for checkpoint in store.list_checkpoints():
                click.echo(
                    f"  {checkpoint['table_name']}: {checkpoint['row_count']} rows "
                    f"({checkpoint['description']})"
                )
            click.echo()

        sidecar = provenance.save_sidecar(writer.data_path)

        click.echo(click.style("=== Conversion Summary ===", bold=True))
        click.echo(f"Arrays: {summary.declared_samples}")
        click.echo(f"Rows: {summary.rows_written}")
        click.echo(f"Genes: {summary.genes}")
        click.echo(f"Resolution Rate: {summary.resolution.success_rate:.1%}")
        click.echo(f"Provenance: {sidecar}")
        click.echo()
        click.echo(click.style("Conversion complete!", fg='green', bold=True))

    except Exception as e:
        click.echo(click.style(f"Conversion failed: {e}", fg='red'), err=True)
        logger.exception("Convert command failed")
        sys.exit(1)
    finally:
        if store is not None:
            store.close()
