"""Persistence layer for conversion side tables and provenance tracking."""

from soft2matrix.persistence.duckdb_store import PipelineStore
from soft2matrix.persistence.provenance import ProvenanceTracker

__all__ = ["PipelineStore", "ProvenanceTracker"]
