"""Probe-to-gene aggregation of one sample's expression values."""

from collections.abc import Iterable

import numpy as np


class GeneAggregator:
    """Per-sample scratch buffers and the N:1 probeset -> gene reduction.

    Built once the platform table has closed, from the probeset -> gene
    edges recorded while reading it. A probeset mapped to several genes
    contributes its value to each of them.

    Attributes:
        probeset_count: Size of the probeset index space
        gene_count: Size of the gene index space
        probe_values: Current sample's value per probeset (NaN = not observed)
    """

    def __init__(
        self,
        probeset_count: int,
        gene_count: int,
        edges: Iterable[tuple[int, int]],
    ):
        """Initialize the aggregator.

        Args:
            probeset_count: Number of indexed probesets
            gene_count: Number of output genes
            edges: (probeset_index, gene_index) pairs

        Raises:
            ValueError: If an edge references an index outside either space
        """
        self.probeset_count = probeset_count
        self.gene_count = gene_count

        pairs = np.array(list(edges), dtype=np.int64).reshape(-1, 2)
        self._edge_probes = pairs[:, 0]
        self._edge_genes = pairs[:, 1]

        if len(pairs) and (
            self._edge_probes.min() < 0
            or self._edge_probes.max() >= probeset_count
            or self._edge_genes.min() < 0
            or self._edge_genes.max() >= gene_count
        ):
            raise ValueError("edge index outside the probeset or gene index space")

        self.probe_values = np.full(probeset_count, np.nan, dtype=np.float64)
        self._gene_values = np.full(gene_count, np.nan, dtype=np.float64)

    @property
    def edge_count(self) -> int:
        return len(self._edge_probes)

    def set_value(self, probe_index: int, value: float) -> None:
        self.probe_values[probe_index] = value

    def aggregate(self) -> np.ndarray:
        """Average the finite probe values of the current sample per gene.

        Genes without a single finite contribution are NaN.

        Returns:
            Gene buffer of length gene_count (reused between calls)
        """
        values = self.probe_values[self._edge_probes]
        finite = np.isfinite(values)
        genes = self._edge_genes[finite]

        sums = np.bincount(genes, weights=values[finite], minlength=self.gene_count)
        counts = np.bincount(genes, minlength=self.gene_count)

        self._gene_values.fill(np.nan)
        np.divide(sums, counts, out=self._gene_values, where=counts > 0)
        return self._gene_values

    def reset(self) -> None:
        """Clear the probeset buffer before the next sample."""
        self.probe_values.fill(np.nan)
