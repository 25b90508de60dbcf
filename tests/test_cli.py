"""Integration tests for the CLI commands using CliRunner.

Tests:
- --help and info
- convert end to end, with and without a config file
- argument validation (missing options, missing paths)
- invert, rank and export on a converted matrix directory
"""

from pathlib import Path

import duckdb
import numpy as np
import pytest
from click.testing import CliRunner

from soft2matrix.cli.main import cli

HGNC_TSV = (
    "HGNC ID\tApproved symbol\tApproved name\tStatus\tAlias symbols\tPrevious symbols\n"
    "HGNC:100\tBRCA1\tBreast cancer 1\tApproved\tBRCA-1\t\n"
    "HGNC:200\tTP53\ttumor protein p53\tApproved\tp53\t\n"
    "HGNC:300\tOLD1\told gene\tSymbol Withdrawn\t\t\n"
)

SOFT_TEXT = "\n".join([
    "^DATABASE = GeoMiame",
    "^SERIES = GSE1",
    "^PLATFORM = GPL1",
    "!Platform_sample_id = GSM1",
    "!Platform_sample_id = GSM2",
    "!platform_table_begin",
    "ID\tGene Symbol",
    "1007_s_at\tBRCA1",
    "1053_at\tbrca-1",
    "117_at\tTP53 // NOPE1",
    "121_at\t",
    "!platform_table_end",
    "^SAMPLE = GSM1",
    "!sample_table_begin",
    "ID_REF\tVALUE",
    "1007_s_at\t2.0",
    "1053_at\t4.0",
    "117_at\t10.5",
    "121_at\t1.0",
    "!sample_table_end",
    "^SAMPLE = GSM2",
    "!sample_table_begin",
    "ID_REF\tVALUE",
    "1007_s_at\t1.0",
    "117_at\tnull",
    "!sample_table_end",
]) + "\n"


@pytest.fixture
def inputs(tmp_path):
    """HGNC reference, SOFT file and an empty output directory."""
    hgnc = tmp_path / "hgnc.tsv"
    hgnc.write_text(HGNC_TSV)
    soft = tmp_path / "GSE1_family.soft"
    soft.write_text(SOFT_TEXT)
    outdir = tmp_path / "matrix"
    outdir.mkdir()
    return hgnc, soft, outdir


@pytest.fixture
def test_config(tmp_path):
    """Create minimal config YAML with a DuckDB store."""
    config_path = tmp_path / "test_config.yaml"
    config_path.write_text(f"""
data_dir: {tmp_path}/data
cache_dir: {tmp_path}/data/soft
duckdb_path: {tmp_path}/test.duckdb

resolution:
  min_success_rate: 0.5
  warn_threshold: 0.9
""")
    return config_path


def convert_args(hgnc: Path, soft: Path, outdir: Path) -> list[str]:
    return ['convert', '--soft', str(soft), '--outdir', str(outdir), '--hgnc', str(hgnc)]


def test_help_lists_commands():
    runner = CliRunner()
    result = runner.invoke(cli, ['--help'])

    assert result.exit_code == 0
    for command in ('convert', 'fetch', 'invert', 'rank', 'export', 'info'):
        assert command in result.output


def test_info_without_config():
    runner = CliRunner()
    result = runner.invoke(cli, ['info'])

    assert result.exit_code == 0
    assert 'built-in defaults' in result.output


def test_info_with_config(test_config):
    runner = CliRunner()
    result = runner.invoke(cli, ['--config', str(test_config), 'info'])

    assert result.exit_code == 0
    assert 'Config Hash' in result.output
    assert "'Gene Symbol'" in result.output


def test_convert_writes_matrix(inputs):
    """convert produces arrays, genes, data and a provenance sidecar."""
    hgnc, soft, outdir = inputs
    runner = CliRunner()
    result = runner.invoke(cli, convert_args(hgnc, soft, outdir))

    assert result.exit_code == 0, result.output
    assert 'Conversion complete' in result.output
    assert (outdir / 'arrays').read_text() == "GSM1\nGSM2\n"
    assert (outdir / 'genes').read_text() == "BRCA1\nTP53\n"

    data = np.fromfile(outdir / 'data', dtype=np.float64).reshape(2, 2)
    np.testing.assert_array_equal(data[0], [3.0, 10.5])
    assert data[1, 0] == 1.0
    assert np.isnan(data[1, 1])
    assert (outdir / 'data.provenance.json').exists()


def test_convert_reports_resolution(inputs, tmp_path):
    """Unresolved symbols are graded and optionally saved."""
    hgnc, soft, outdir = inputs
    report = tmp_path / 'unresolved.txt'
    runner = CliRunner()
    result = runner.invoke(
        cli, convert_args(hgnc, soft, outdir) + ['--unresolved-report', str(report)]
    )

    assert result.exit_code == 0, result.output
    assert 'WARNING' in result.output or 'FAILED' in result.output
    assert 'NOPE1' in report.read_text().splitlines()


def test_convert_with_config_saves_probe_map(inputs, test_config, tmp_path):
    """With a configured DuckDB path the probe map is stored."""
    hgnc, soft, outdir = inputs
    runner = CliRunner()
    result = runner.invoke(cli, ['--config', str(test_config)] + convert_args(hgnc, soft, outdir))

    assert result.exit_code == 0, result.output

    conn = duckdb.connect(str(tmp_path / 'test.duckdb'), read_only=True)
    rows = conn.execute(
        "SELECT probeset_id, hgnc_id, gene_symbol FROM probe_gene_map ORDER BY probeset_id"
    ).fetchall()
    unresolved = conn.execute("SELECT symbol FROM unresolved_symbols").fetchall()
    conn.close()

    assert rows == [
        ('1007_s_at', 100, 'BRCA1'),
        ('1053_at', 100, 'BRCA1'),
        ('117_at', 200, 'TP53'),
    ]
    assert unresolved == [('NOPE1',)]
    assert 'probe_gene_map: 3 rows (Probeset to HGNC map from GSE1_family.soft)' in result.output
    assert 'unresolved_symbols: 1 rows' in result.output
    assert 'Replacing stored probe map' not in result.output


def test_convert_again_reports_replaced_probe_map(inputs, test_config):
    """A second conversion into the same store reports the map it replaces."""
    hgnc, soft, outdir = inputs
    runner = CliRunner()
    args = ['--config', str(test_config)] + convert_args(hgnc, soft, outdir)
    assert runner.invoke(cli, args).exit_code == 0

    result = runner.invoke(cli, args)

    assert result.exit_code == 0, result.output
    assert 'Replacing stored probe map (3 rows)' in result.output
    assert 'probe_gene_map: 3 rows' in result.output


def test_convert_missing_arguments():
    """Omitting required options is a usage error."""
    runner = CliRunner()
    result = runner.invoke(cli, ['convert', '--soft', 'x.soft'])

    assert result.exit_code == 2


def test_convert_missing_outdir(inputs, tmp_path):
    """A non-existent output directory is rejected before any file is written."""
    hgnc, soft, _ = inputs
    runner = CliRunner()
    result = runner.invoke(cli, convert_args(hgnc, soft, tmp_path / 'nowhere'))

    assert result.exit_code == 2
    assert not (tmp_path / 'nowhere').exists()


def test_convert_bad_format_exits_nonzero(inputs):
    """A SOFT file lacking required columns fails with exit code 1."""
    hgnc, soft, outdir = inputs
    soft.write_text("!platform_table_begin\nID\tSPOT\n!platform_table_end\n")
    runner = CliRunner()
    result = runner.invoke(cli, convert_args(hgnc, soft, outdir))

    assert result.exit_code == 1
    assert 'Conversion failed' in result.output


def test_convert_unusable_sample_header_writes_nan_row(inputs):
    """A sample header lacking VALUE is skipped; the run still succeeds."""
    hgnc, soft, outdir = inputs
    soft.write_text(SOFT_TEXT.replace("ID_REF\tVALUE\n1007_s_at\t1.0", "ID_REF\tCOUNT\n1007_s_at\t1.0"))
    runner = CliRunner()
    result = runner.invoke(cli, convert_args(hgnc, soft, outdir))

    assert result.exit_code == 0, result.output
    assert '1 samples without a complete table' in result.output
    data = np.fromfile(outdir / 'data', dtype=np.float64).reshape(2, 2)
    np.testing.assert_array_equal(data[0], [3.0, 10.5])
    assert np.isnan(data[1]).all()


def test_matrix_tools_after_convert(inputs, tmp_path):
    """invert, rank and export run on the converted directory."""
    hgnc, soft, outdir = inputs
    runner = CliRunner()
    assert runner.invoke(cli, convert_args(hgnc, soft, outdir)).exit_code == 0

    result = runner.invoke(cli, ['invert', '--matrixdir', str(outdir)])
    assert result.exit_code == 0, result.output
    inverse = np.fromfile(outdir / 'inverse_data', dtype=np.float64).reshape(2, 2)
    assert inverse[1, 0] == 10.5
    assert (outdir / 'inverse_data.provenance.json').exists()

    ranks = tmp_path / 'ranks'
    result = runner.invoke(
        cli, ['rank', '--matrixdir', str(outdir), '--output', str(ranks), '--use-inverse']
    )
    assert result.exit_code == 0, result.output
    assert ranks.stat().st_size == 4 * 8

    export_dir = tmp_path / 'export'
    result = runner.invoke(cli, ['export', '--matrixdir', str(outdir), '--output-dir', str(export_dir)])
    assert result.exit_code == 0, result.output
    assert (export_dir / 'matrix.tsv').exists()
    assert (export_dir / 'matrix.parquet').exists()


def test_invert_truncated_exits_nonzero(inputs):
    hgnc, soft, outdir = inputs
    runner = CliRunner()
    runner.invoke(cli, convert_args(hgnc, soft, outdir))
    (outdir / 'data').write_bytes(b"\x00" * 8)

    result = runner.invoke(cli, ['invert', '--matrixdir', str(outdir)])
    assert result.exit_code == 1
    assert 'Error' in result.output


def test_fetch_soft_rejects_bad_accession(tmp_path):
    runner = CliRunner()
    result = runner.invoke(cli, ['fetch', 'soft', 'GPL570', '--output-dir', str(tmp_path)])

    assert result.exit_code == 1
    assert 'Download failed' in result.output
