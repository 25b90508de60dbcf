"""Tests for GEO SOFT family download helpers."""

from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from soft2matrix.soft import download_soft_family, soft_family_url


@pytest.mark.parametrize("gse_id, stub", [
    ("GSE12345", "GSE12nnn"),
    ("GSE1234", "GSE1nnn"),
    ("GSE123", "GSEnnn"),
    ("GSE7", "GSEnnn"),
    ("gse2034", "GSE2nnn"),
])
def test_soft_family_url(gse_id, stub):
    """Series directories drop the last three digits of the accession."""
    accession = gse_id.upper()
    assert soft_family_url(gse_id, "https://geo.test/series/") == (
        f"https://geo.test/series/{stub}/{accession}/soft/{accession}_family.soft.gz"
    )


@pytest.mark.parametrize("bad", ["GPL570", "GSM1", "GSE", "12345"])
def test_soft_family_url_rejects_other_accessions(bad):
    with pytest.raises(ValueError):
        soft_family_url(bad)


@patch("soft2matrix.download.httpx.stream")
def test_download_soft_family(mock_stream: Mock, tmp_path: Path):
    """The family file is saved under its GEO name, still compressed."""
    mock_response = Mock()
    mock_response.headers = {}
    mock_response.iter_bytes = Mock(return_value=[b"\x1f\x8b", b"rest"])
    mock_response.raise_for_status = Mock()
    mock_stream.return_value.__enter__.return_value = mock_response

    path = download_soft_family("GSE2034", tmp_path, base_url="https://geo.test/series")

    assert path == tmp_path / "GSE2034_family.soft.gz"
    assert path.read_bytes() == b"\x1f\x8brest"
    url = mock_stream.call_args.args[1]
    assert url == "https://geo.test/series/GSE2nnn/GSE2034/soft/GSE2034_family.soft.gz"


@patch("soft2matrix.download.httpx.stream")
def test_download_soft_family_skips_existing(mock_stream: Mock, tmp_path: Path):
    existing = tmp_path / "GSE2034_family.soft.gz"
    existing.write_bytes(b"cached")

    assert download_soft_family("GSE2034", tmp_path) == existing
    mock_stream.assert_not_called()
