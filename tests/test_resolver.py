"""Tests for HGNC symbol resolution.

Covers reference loading (status filter, id parsing, canonical precedence)
and the fuzzy lookup chain used for platform annotation tokens.
"""

import pytest

from soft2matrix.gene_mapping import HgncResolver, normalize_symbol, parse_hgnc_id
from soft2matrix.gene_mapping.resolver import split_name_list


REFERENCE_ROWS = [
    ("HGNC:1100", "BRCA1", "BRCA1 DNA repair associated", "Approved", "RNF53", "BRCC1, PPP1R53"),
    ("HGNC:1101", "BRCA2", "BRCA2 DNA repair associated", "Approved", "FAD, FANCD1", "FACD"),
    ("HGNC:11998", "TP53", "tumor protein p53", "Approved", "p53, LFS1", ""),
    ("HGNC:5", "A1BG", "alpha-1-B glycoprotein", "Approved", "", ""),
    ("HGNC:6020", "IL1A", "interleukin 1 alpha", "Approved", "IL-1A", "IL1"),
    ("HGNC:3535", "F13A1", "coagulation factor XIII A chain", "Approved", "", "F13A"),
    ("HGNC:8000", "PLCB2", "phospholipase C beta 2", "Approved", "", ""),
    ("HGNC:6407", "KRT2", "keratin 2", "Approved", "", "KRT2A"),
    ("HGNC:9999", "OLDGENE", "withdrawn gene", "Entry Withdrawn", "", ""),
]


@pytest.fixture
def resolver():
    """Resolver loaded from a small reference table."""
    r = HgncResolver()
    r.load(REFERENCE_ROWS)
    return r


# Helpers

def test_normalize_symbol():
    """Registration keys are uppercased with dashes removed."""
    assert normalize_symbol(" brca-1 ") == "BRCA1"
    assert normalize_symbol("IL-1A") == "IL1A"
    assert normalize_symbol("") == ""


def test_parse_hgnc_id_accepts_prefix():
    """HGNC ids parse with or without the HGNC: prefix."""
    assert parse_hgnc_id("HGNC:1100") == 1100
    assert parse_hgnc_id("1100") == 1100
    assert parse_hgnc_id(" hgnc:5 ") == 5


@pytest.mark.parametrize("raw", ["", "HGNC:", "abc", "0", "-3"])
def test_parse_hgnc_id_rejects_invalid(raw):
    """Non-numeric and non-positive ids raise ValueError."""
    with pytest.raises(ValueError):
        parse_hgnc_id(raw)


def test_split_name_list():
    """Alias lists split on commas and whitespace."""
    assert split_name_list("FAD, FANCD1") == ["FAD", "FANCD1"]
    assert split_name_list("A B,C") == ["A", "B", "C"]
    assert split_name_list("") == []
    assert split_name_list(None) == []


# Loading

def test_load_counts_approved_rows_only(resolver):
    """Rows with a status other than Approved are ignored."""
    assert resolver.gene_count == 8
    assert 9999 not in resolver
    assert resolver.resolve("OLDGENE") is None


def test_load_returns_accepted_count():
    """load() returns the number of approved rows accepted."""
    r = HgncResolver()
    assert r.load(REFERENCE_ROWS) == 8


def test_load_skips_invalid_ids():
    """Rows with unparseable ids or empty symbols are skipped, not fatal."""
    r = HgncResolver()
    accepted = r.load([
        ("not-an-id", "GENEX", "", "Approved", "", ""),
        ("HGNC:7", "", "no symbol", "Approved", "", ""),
        ("HGNC:8", "GENEY", "", "Approved", "", ""),
    ])
    assert accepted == 1
    assert r.resolve("GENEY") == 8
    assert r.resolve("GENEX") is None


def test_load_pads_short_rows():
    """Rows missing trailing alias columns are padded."""
    r = HgncResolver()
    r.load([("HGNC:12", "SHORT1", "short gene", "Approved")])
    assert r.resolve("SHORT1") == 12


def test_symbol_returns_approved_symbol(resolver):
    """symbol() returns the approved symbol as written."""
    assert resolver.symbol(1100) == "BRCA1"
    with pytest.raises(KeyError):
        resolver.symbol(424242)


# Precedence

def test_canonical_overrides_alias():
    """A canonical symbol resolves to its own id even when aliased elsewhere."""
    rows = [
        ("HGNC:10", "FIRST", "", "Approved", "SHARED", ""),
        ("HGNC:20", "OTHER", "", "Approved", "SHARED", ""),
        ("HGNC:30", "SHARED", "", "Approved", "", ""),
    ]
    r = HgncResolver()
    r.load(rows)
    assert r.resolve("SHARED") == 30


def test_canonical_overrides_alias_regardless_of_row_order():
    """Canonical precedence holds when the canonical row comes first."""
    rows = [
        ("HGNC:30", "SHARED", "", "Approved", "", ""),
        ("HGNC:10", "FIRST", "", "Approved", "SHARED", ""),
    ]
    r = HgncResolver()
    r.load(rows)
    assert r.resolve("SHARED") == 30


def test_register_alias_does_not_override_canonical():
    """Direct registration keeps the canonical mapping."""
    r = HgncResolver()
    r.register("GENE1", 1, canonical=True)
    r.register("GENE1", 2)
    assert r.resolve("GENE1") == 1


def test_first_alias_wins():
    """Between two aliases of the same key, the first registered wins."""
    r = HgncResolver()
    r.register("ALIAS", 1)
    r.register("ALIAS", 2)
    assert r.resolve("ALIAS") == 1


# Lookup chain

def test_resolve_exact_and_case_insensitive(resolver):
    """Exact matches resolve regardless of case and surrounding space."""
    assert resolver.resolve("BRCA1") == 1100
    assert resolver.resolve(" tp53 ") == 11998
    assert resolver.resolve("P53") == 11998


def test_resolve_aliases_and_previous_symbols(resolver):
    """Alias and previous symbols resolve to the approved id."""
    assert resolver.resolve("RNF53") == 1100
    assert resolver.resolve("FANCD1") == 1101
    assert resolver.resolve("FACD") == 1101


def test_resolve_approved_name(resolver):
    """Approved names are registered as lookup keys."""
    assert resolver.resolve("tumor protein p53") == 11998


def test_resolve_dashed_token(resolver):
    """Dashes are removed on the second pass."""
    assert resolver.resolve("BRCA-1") == 1100
    assert resolver.resolve("IL-1A") == 6020


def test_resolve_strips_numeric_suffix(resolver):
    """A trailing number is stripped and the prefix retried."""
    assert resolver.resolve("F13A-5") == 3535
    assert resolver.resolve("A1BG2") == 5


def test_resolve_suffix_synonym():
    """A numeric suffix is retried through its roman spelling."""
    r = HgncResolver()
    r.register("COL4AII", 77, canonical=True)
    assert r.resolve("COL4A2") == 77
    assert r.resolve("COL4A-2") == 77


def test_resolve_appends_one_then_a():
    """Tokens are retried with "1" and then "A" appended."""
    r = HgncResolver()
    r.register("MYH1", 1, canonical=True)
    r.register("KRTA", 2, canonical=True)
    assert r.resolve("MYH") == 1
    assert r.resolve("KRT") == 2


def test_resolve_append_one_before_a():
    """Appending "1" is tried before appending "A"."""
    r = HgncResolver()
    r.register("GENA", 2, canonical=True)
    r.register("GEN1", 1, canonical=True)
    assert r.resolve("GEN") == 1


def test_resolve_alpha_simplification(resolver):
    """ALPHA is spelled A on the second pass."""
    assert resolver.resolve("IL1ALPHA") == 6020
    assert resolver.resolve("IL-1-ALPHA") == 6020


def test_resolve_unresolved_returns_none(resolver):
    """Unknown tokens are reported as unresolved, not raised."""
    assert resolver.resolve("NOT_A_GENE") is None
    assert resolver.resolve("") is None
    assert resolver.resolve("   ") is None


def test_resolve_is_idempotent(resolver):
    """Resolving a token twice yields the same id and leaves the table unchanged."""
    keys_before = len(resolver)
    for token in ["BRCA1", "IL-1ALPHA", "F13A-5", "NOT_A_GENE", "MYH"]:
        assert resolver.resolve(token) == resolver.resolve(token)
    assert len(resolver) == keys_before


def test_from_reference_file(tmp_path):
    """Resolver loads from a tab-separated reference file with a header."""
    path = tmp_path / "hgnc.tsv"
    path.write_text(
        "HGNC ID\tApproved symbol\tApproved name\tStatus\tAlias symbols\tPrevious symbols\n"
        "HGNC:100\tBRCA1\tBreast cancer 1\tApproved\tBRCA-1\t\n"
    )
    r = HgncResolver.from_reference_file(path)
    assert r.gene_count == 1
    assert r.resolve("BRCA1") == 100
    assert r.resolve("brca-1") == 100
