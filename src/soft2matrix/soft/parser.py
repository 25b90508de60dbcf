"""Streaming SOFT parser that converts a series into a gene-by-sample matrix.

The parser is an explicit state machine fed one line at a time. Each state
is a small dataclass carrying only the data that state needs (column offsets,
the pending sample id); ``feed`` dispatches on the current state and returns
the next one.

Phases:
    1. Platform intro: collect the declared sample ids (arrays index).
    2. Platform table: resolve each probeset's gene symbols to HGNC ids and
       build the probeset and gene index spaces.
    3. Samples: fill the probeset buffer from each sample table, average per
       gene, and append one row per sample to the data file.

Structural anomalies (unexpected sample ids, samples without a table or
with an unusable table header, unknown probe ids, unresolvable symbols) are
logged and never abort the run. Only a platform header lacking its required
columns is fatal.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass, field

import structlog

from soft2matrix.config.schema import ParsingOptions
from soft2matrix.gene_mapping.resolver import HgncResolver
from soft2matrix.gene_mapping.validator import ResolutionReport
from soft2matrix.matrix.writer import MatrixWriter
from soft2matrix.soft.aggregator import GeneAggregator

logger = structlog.get_logger()

PLATFORM_SAMPLE_ID = "!Platform_sample_id"
PLATFORM_TABLE_BEGIN = "!platform_table_begin"
PLATFORM_TABLE_END = "!platform_table_end"
SAMPLE_ENTITY = "^SAMPLE"
SAMPLE_TABLE_BEGIN = "!sample_table_begin"
SAMPLE_TABLE_END = "!sample_table_end"


class SoftFormatError(ValueError):
    """The SOFT stream lacks structure the conversion cannot do without."""


@dataclass(frozen=True)
class PlatformIntro:
    pass


@dataclass(frozen=True)
class PlatformHeader:
    pass


@dataclass(frozen=True)
class PlatformTable:
    id_col: int
    symbol_col: int


@dataclass(frozen=True)
class SampleIntro:
    # ^SAMPLE seen whose table has not begun yet
    pending_sample: str | None = None


@dataclass(frozen=True)
class SampleHeader:
    sample_id: str | None


@dataclass(frozen=True)
class SampleTable:
    sample_id: str | None
    id_col: int
    value_col: int


@dataclass(frozen=True)
class SampleSkip:
    # header lacked a required column; rows ignored until the table ends
    sample_id: str | None


ParserState = (
    PlatformIntro | PlatformHeader | PlatformTable
    | SampleIntro | SampleHeader | SampleTable | SampleSkip
)


@dataclass
class ConversionSummary:
    """Counts describing one conversion run.

    Attributes:
        declared_samples: Sample ids declared by the platform
        samples_seen: ^SAMPLE entries encountered
        tables_closed: Sample tables closed with !sample_table_end
        placeholder_rows: NaN rows written for samples whose table never
            began, never ended or lacked a required column
        rows_written: Rows in the data file (tables_closed + placeholder_rows)
        probesets: Indexed probesets
        genes: Output genes (columns)
        unknown_probe_rows: Sample rows whose probe id is not indexed
        mismatched_samples: ^SAMPLE ids differing from the declared order
        complete: Whether every declared sample was seen
        resolution: Gene symbol resolution report for the platform table
    """
    declared_samples: int = 0
    samples_seen: int = 0
    tables_closed: int = 0
    placeholder_rows: int = 0
    rows_written: int = 0
    probesets: int = 0
    genes: int = 0
    unknown_probe_rows: int = 0
    mismatched_samples: int = 0
    complete: bool = False
    resolution: ResolutionReport = field(default_factory=ResolutionReport)


def parse_value(text: str) -> float:
    """Parse a sample VALUE field; non-numeric text yields NaN."""
    # float() would accept Python digit grouping ("1_000")
    if "_" in text:
        return math.nan
    try:
        return float(text)
    except ValueError:
        return math.nan


def _attribute(line: str) -> tuple[str, str] | None:
    """Split a ``!key = value`` / ``^ENTITY = id`` line."""
    key, sep, value = line.partition("=")
    if not sep:
        return None
    return key.strip(), value.strip()


def _locate_columns(header: str, names: tuple[str, ...], table: str) -> tuple[int, ...]:
    columns = [column.strip() for column in header.split("\t")]
    offsets = []
    for name in names:
        if name not in columns:
            raise SoftFormatError(
                f"{table} table header lacks required column {name!r} (found {columns})"
            )
        offsets.append(columns.index(name))
    return tuple(offsets)


class SoftParser:
    """Line-driven SOFT to matrix converter.

    Owns the probeset and gene index spaces and the per-sample buffers; the
    resolver is only read, the writer only appended to.
    """

    def __init__(
        self,
        resolver: HgncResolver,
        writer: MatrixWriter,
        options: ParsingOptions | None = None,
    ):
        self.resolver = resolver
        self.writer = writer
        self.options = options or ParsingOptions()
        self.state: ParserState = PlatformIntro()

        self.declared_samples: list[str] = []
        self._cursor = 0

        # Platform phase, append-only until !platform_table_end
        self._probe_index: dict[str, int] = {}
        self._probe_genes: list[list[int]] = []
        self._unresolved: dict[str, None] = {}

        # Fixed once the platform table closes
        self.gene_ids: list[int] = []
        self.aggregator: GeneAggregator | None = None

        self.summary = ConversionSummary()

    @property
    def platform_closed(self) -> bool:
        return self.aggregator is not None

    @property
    def probeset_ids(self) -> list[str]:
        """Indexed probeset ids in index order."""
        return list(self._probe_index)

    def probe_gene_pairs(self) -> list[tuple[str, int]]:
        """(probeset id, HGNC id) edges recorded from the platform table."""
        return [
            (probe_id, hgnc_id)
            for probe_id, genes in zip(self._probe_index, self._probe_genes)
            for hgnc_id in genes
        ]

    def feed(self, line: str) -> None:
        """Process one line (terminator already removed)."""
        state = self.state
        if isinstance(state, PlatformIntro):
            self.state = self._platform_intro(line)
        elif isinstance(state, PlatformHeader):
            self.state = self._platform_header(line)
        elif isinstance(state, PlatformTable):
            self.state = self._platform_table(state, line)
        elif isinstance(state, SampleIntro):
            self.state = self._sample_intro(state, line)
        elif line.startswith(SAMPLE_ENTITY):
            # next sample began before this one's table was closed
            self._abandon_table(state)
            self.state = self._sample_intro(SampleIntro(), line)
        elif isinstance(state, SampleHeader):
            self.state = self._sample_header(state, line)
        elif isinstance(state, SampleSkip):
            self.state = self._sample_skip(state, line)
        else:
            self.state = self._sample_table(state, line)

    # Platform phase

    def _platform_intro(self, line: str) -> ParserState:
        if line.rstrip() == PLATFORM_TABLE_BEGIN:
            self._cursor = 0
            logger.info("platform_table_begin", declared_samples=len(self.declared_samples))
            return PlatformHeader()

        attribute = _attribute(line)
        if attribute is not None and attribute[0] == PLATFORM_SAMPLE_ID and attribute[1]:
            self.declared_samples.append(attribute[1])
            self.writer.write_array_id(attribute[1])
        return self.state

    def _platform_header(self, line: str) -> ParserState:
        id_col, symbol_col = _locate_columns(
            line,
            (self.options.platform_id_column, self.options.gene_symbol_column),
            "platform",
        )
        logger.debug("platform_header", id_col=id_col, symbol_col=symbol_col)
        return PlatformTable(id_col=id_col, symbol_col=symbol_col)

    def _platform_table(self, state: PlatformTable, line: str) -> ParserState:
        if line.rstrip() == PLATFORM_TABLE_END:
            self._close_platform()
            return SampleIntro()

        fields = line.split("\t")
        if len(fields) <= max(state.id_col, state.symbol_col):
            return state

        probe_id = fields[state.id_col].strip()
        tokens = [
            token.strip()
            for token in fields[state.symbol_col].split(self.options.symbol_separator)
        ]
        tokens = [token for token in tokens if token]
        if not probe_id or not tokens:
            return state

        if probe_id in self._probe_index:
            logger.warning("duplicate_probeset", probe_id=probe_id)
            return state

        report = self.summary.resolution
        report.annotated_probesets += 1

        hgnc_ids: list[int] = []
        for token in tokens:
            report.total_tokens += 1
            hgnc_id = self.resolver.resolve(token)
            if hgnc_id is None:
                if token not in self._unresolved:
                    self._unresolved[token] = None
                    logger.debug("gene_symbol_unresolved", symbol=token, probe_id=probe_id)
                continue
            report.resolved_tokens += 1
            if hgnc_id not in hgnc_ids:
                hgnc_ids.append(hgnc_id)

        if hgnc_ids:
            self._probe_index[probe_id] = len(self._probe_genes)
            self._probe_genes.append(hgnc_ids)
            report.indexed_probesets += 1
        return state

    def _close_platform(self) -> None:
        self.gene_ids = sorted({h for genes in self._probe_genes for h in genes})
        gene_index = {hgnc_id: i for i, hgnc_id in enumerate(self.gene_ids)}

        self.aggregator = GeneAggregator(
            probeset_count=len(self._probe_genes),
            gene_count=len(self.gene_ids),
            edges=(
                (probe, gene_index[hgnc_id])
                for probe, genes in enumerate(self._probe_genes)
                for hgnc_id in genes
            ),
        )
        self.writer.write_gene_index(self.resolver.symbol(h) for h in self.gene_ids)

        report = self.summary.resolution
        report.unresolved_symbols = list(self._unresolved)
        report.update_rate()
        self.summary.probesets = len(self._probe_genes)
        self.summary.genes = len(self.gene_ids)

        if report.unresolved_symbols:
            logger.warning(
                "gene_symbols_unresolved",
                count=len(report.unresolved_symbols),
                examples=report.unresolved_symbols[:5],
            )
        logger.info(
            "platform_table_end",
            probesets=self.summary.probesets,
            genes=self.summary.genes,
            resolution_rate=round(report.success_rate, 3),
        )

    # Sample phase

    def _sample_intro(self, state: SampleIntro, line: str) -> ParserState:
        stripped = line.rstrip()
        if stripped == SAMPLE_TABLE_BEGIN:
            return SampleHeader(sample_id=state.pending_sample)

        if not stripped.startswith(SAMPLE_ENTITY):
            return state
        attribute = _attribute(stripped)
        if attribute is None or attribute[0] != SAMPLE_ENTITY:
            return state

        sample_id = attribute[1]
        if state.pending_sample is not None:
            self._write_placeholder(state.pending_sample)

        self.summary.samples_seen += 1
        self._check_expected(sample_id)
        return SampleIntro(pending_sample=sample_id)

    def _check_expected(self, sample_id: str) -> None:
        if self._cursor < len(self.declared_samples):
            expected = self.declared_samples[self._cursor]
            if expected != sample_id:
                self.summary.mismatched_samples += 1
                logger.warning("sample_id_mismatch", expected=expected, found=sample_id)
        else:
            self.summary.mismatched_samples += 1
            logger.warning("sample_not_declared", found=sample_id)
        self._cursor += 1

    def _write_placeholder(self, sample_id: str) -> None:
        logger.warning("sample_table_missing", sample_id=sample_id)
        self.writer.write_missing_row()
        self.summary.placeholder_rows += 1

    def _abandon_table(self, state: SampleHeader | SampleTable | SampleSkip) -> None:
        logger.warning("sample_table_unterminated", sample_id=state.sample_id)
        self.aggregator.reset()
        self.writer.write_missing_row()
        self.summary.placeholder_rows += 1

    def _sample_header(self, state: SampleHeader, line: str) -> ParserState:
        try:
            id_col, value_col = _locate_columns(
                line,
                (self.options.sample_id_column, self.options.value_column),
                "sample",
            )
        except SoftFormatError as e:
            logger.warning("sample_header_invalid", sample_id=state.sample_id, error=str(e))
            return SampleSkip(sample_id=state.sample_id)
        return SampleTable(sample_id=state.sample_id, id_col=id_col, value_col=value_col)

    def _sample_skip(self, state: SampleSkip, line: str) -> ParserState:
        if line.rstrip() != SAMPLE_TABLE_END:
            return state
        self.writer.write_missing_row()
        self.summary.placeholder_rows += 1
        return SampleIntro()

    def _sample_table(self, state: SampleTable, line: str) -> ParserState:
        aggregator = self.aggregator
        if line.rstrip() == SAMPLE_TABLE_END:
            self.writer.write_row(aggregator.aggregate())
            aggregator.reset()
            self.summary.tables_closed += 1
            logger.debug("sample_row_written", sample_id=state.sample_id)
            return SampleIntro()

        fields = line.split("\t")
        if len(fields) <= max(state.id_col, state.value_col):
            return state

        probe = self._probe_index.get(fields[state.id_col].strip())
        if probe is None:
            self.summary.unknown_probe_rows += 1
            return state

        aggregator.set_value(probe, parse_value(fields[state.value_col]))
        return state

    def finish(self) -> ConversionSummary:
        """Close out the stream and return the run summary."""
        state = self.state
        summary = self.summary

        if isinstance(state, (PlatformIntro, PlatformHeader, PlatformTable)):
            logger.warning("platform_table_incomplete", state=type(state).__name__)
        elif isinstance(state, SampleIntro) and state.pending_sample is not None:
            self._write_placeholder(state.pending_sample)
            self.state = SampleIntro()
        elif isinstance(state, (SampleHeader, SampleTable, SampleSkip)):
            self._abandon_table(state)
            self.state = SampleIntro()

        summary.declared_samples = len(self.declared_samples)
        summary.rows_written = self.writer.rows_written
        summary.complete = self._cursor >= len(self.declared_samples)
        if not summary.complete:
            logger.warning(
                "samples_incomplete",
                declared=len(self.declared_samples),
                seen=self._cursor,
                next_expected=self.declared_samples[self._cursor],
            )

        logger.info(
            "conversion_complete",
            rows=summary.rows_written,
            genes=summary.genes,
            placeholders=summary.placeholder_rows,
        )
        return summary


def convert_soft(
    lines: Iterable[str],
    resolver: HgncResolver,
    writer: MatrixWriter,
    options: ParsingOptions | None = None,
) -> tuple[ConversionSummary, SoftParser]:
    """Run a whole SOFT line sequence through a fresh parser.

    Args:
        lines: Line Source output
        resolver: Loaded HGNC resolver
        writer: Matrix writer over the output directory
        options: SOFT table profile (defaults: ID / Gene Symbol / ID_REF / VALUE)

    Returns:
        Tuple of (summary, parser); the parser exposes the index spaces
        (probeset ids, gene ids, probe -> gene edges) for persistence.
    """
    parser = SoftParser(resolver, writer, options)
    for line in lines:
        parser.feed(line)
    return parser.finish(), parser
