"""HGNC symbol resolution for platform gene annotations.

Builds a lookup table from the HGNC reference (approved symbols, approved
names, alias and previous symbols) onto numeric HGNC ids, and answers fuzzy
lookups for the free-text gene symbols found in microarray platform tables.
"""

import logging
import re
from collections.abc import Iterable, Iterator, Sequence
from pathlib import Path

logger = logging.getLogger(__name__)

APPROVED_STATUS = "Approved"

# Reference row layout: id, approved symbol, approved name, status, aliases, previous
REFERENCE_FIELD_COUNT = 6

# Trailing digits, optionally preceded by a dash: FOO-2, FOO12
NUMERIC_SUFFIX_RE = re.compile(r"^(.*?)-?(\d+)$")

# Spellings of a suffix that annotations and HGNC disagree on
SUFFIX_SYNONYMS = {
    "ALPHA": "A",
    "BETA": "B",
    "1": "I",
    "2": "II",
}

LIST_SEPARATOR_RE = re.compile(r"[,\s]+")


def normalize_symbol(name: str) -> str:
    """Registration key for a reference name: uppercased, dashes removed."""
    return name.strip().upper().replace("-", "")


def parse_hgnc_id(raw: str) -> int:
    """Parse an HGNC id given as ``HGNC:1100`` or ``1100``.

    Raises:
        ValueError: If the id is not a positive integer
    """
    text = raw.strip()
    if text.upper().startswith("HGNC:"):
        text = text[5:]
    hgnc_id = int(text)
    if hgnc_id <= 0:
        raise ValueError(f"HGNC id must be positive, got {raw!r}")
    return hgnc_id


def split_name_list(value: str | None) -> list[str]:
    """Split a comma/space separated alias list, dropping empty tokens."""
    if not value:
        return []
    return [token for token in LIST_SEPARATOR_RE.split(value) if token]


def _simplify(token: str) -> str:
    return token.replace("ALPHA", "A").replace("-", "")


def _candidates(token: str) -> Iterator[str]:
    """Yield lookup keys for one pass over a token, most specific first."""
    yield token

    match = NUMERIC_SUFFIX_RE.match(token)
    if match and match.group(1):
        prefix, suffix = match.groups()
        yield prefix
        synonym = SUFFIX_SYNONYMS.get(suffix)
        if synonym is not None:
            yield prefix + synonym

    yield token + "1"
    yield token + "A"


class HgncResolver:
    """Symbol to HGNC id lookup with canonical-over-alias precedence.

    Every name is registered under its normalized key. Approved symbols are
    canonical and always take the key; aliases, previous symbols and approved
    names only take a key that no canonical symbol holds. Among aliases the
    first registration wins.

    The table is read-only once loaded; resolve() has no side effects.
    """

    def __init__(self):
        self._lookup: dict[str, int] = {}
        self._symbols: dict[int, str] = {}

    def __len__(self) -> int:
        return len(self._lookup)

    def __contains__(self, hgnc_id: object) -> bool:
        return hgnc_id in self._symbols

    @property
    def gene_count(self) -> int:
        """Number of HGNC ids with a canonical symbol."""
        return len(self._symbols)

    def register(self, name: str, hgnc_id: int, canonical: bool = False) -> None:
        """Register one name for an HGNC id.

        Args:
            name: Symbol, alias or name as written in the reference
            hgnc_id: Numeric HGNC id
            canonical: True for the approved symbol (overrides aliases)
        """
        key = normalize_symbol(name)
        if not key:
            return

        if canonical:
            self._lookup[key] = hgnc_id
            self._symbols[hgnc_id] = name.strip()
            return

        if key not in self._lookup:
            self._lookup[key] = hgnc_id

    def load(self, rows: Iterable[Sequence[str | None]]) -> int:
        """Ingest HGNC reference rows.

        Rows are ``[id, approvedSymbol, approvedName, status, aliasList,
        previousNameList]``; rows whose status is not "Approved" are ignored.
        Approved symbols of all rows are registered before any alias, so
        canonical precedence does not depend on row order.

        Args:
            rows: Reference rows (short rows are padded with empty fields)

        Returns:
            Number of accepted (approved) rows
        """
        accepted: list[tuple[int, list[str]]] = []
        skipped_status = 0
        invalid_rows = 0

        for row in rows:
            fields = [(value or "") for value in row][:REFERENCE_FIELD_COUNT]
            fields += [""] * (REFERENCE_FIELD_COUNT - len(fields))
            raw_id, symbol, name, status, aliases, previous = fields

            if status.strip() != APPROVED_STATUS:
                skipped_status += 1
                continue

            try:
                hgnc_id = parse_hgnc_id(raw_id)
            except ValueError:
                invalid_rows += 1
                logger.warning(f"Skipping reference row with invalid HGNC id {raw_id!r}")
                continue

            if not normalize_symbol(symbol):
                invalid_rows += 1
                logger.warning(f"Skipping HGNC:{hgnc_id} without an approved symbol")
                continue

            self.register(symbol, hgnc_id, canonical=True)
            accepted.append(
                (hgnc_id, [name, *split_name_list(aliases), *split_name_list(previous)])
            )

        for hgnc_id, names in accepted:
            for name in names:
                self.register(name, hgnc_id)

        logger.info(
            f"Loaded {len(accepted)} approved HGNC entries "
            f"({len(self._lookup)} lookup keys, {skipped_status} non-approved rows skipped, "
            f"{invalid_rows} invalid rows)"
        )
        return len(accepted)

    def resolve(self, token: str) -> int | None:
        """Resolve a platform annotation token to an HGNC id.

        Tries, in order: the uppercased token; for a numeric suffix, the bare
        prefix and then the prefix with the suffix's synonym (1 -> I,
        2 -> II); the token with "1" and then "A" appended. If nothing
        matched, the token is simplified once (ALPHA -> A, dashes removed)
        and the same sequence is retried.

        Args:
            token: One gene symbol from a platform annotation

        Returns:
            HGNC id, or None if the token does not resolve
        """
        token = token.strip().upper()
        if not token:
            return None

        passes = [token]
        simplified = _simplify(token)
        if simplified and simplified != token:
            passes.append(simplified)

        for candidate_token in passes:
            for key in _candidates(candidate_token):
                hgnc_id = self._lookup.get(key)
                if hgnc_id is not None:
                    return hgnc_id
        return None

    def symbol(self, hgnc_id: int) -> str:
        """Approved symbol for an HGNC id.

        Raises:
            KeyError: If the id was never registered as canonical
        """
        return self._symbols[hgnc_id]

    @classmethod
    def from_reference_file(cls, path: Path) -> "HgncResolver":
        """Build a resolver from a tab-separated HGNC reference file."""
        from soft2matrix.gene_mapping.reference import read_reference_table

        resolver = cls()
        resolver.load(read_reference_table(path))
        return resolver
