"""DuckDB-based storage for conversion side tables (probe maps, unresolved symbols)."""

from pathlib import Path
from typing import Optional

import duckdb
import polars as pl


class PipelineStore:
    """
    DuckDB-based storage for tables produced alongside a matrix.

    The matrix itself stays in the binary matrix directory; the store keeps
    the probeset -> gene map and unresolved symbols of each platform so they
    can be queried after the run. Each saved table is tracked in a
    ``_checkpoints`` metadata table.
    """

    def __init__(self, db_path: Path):
        """
        Initialize PipelineStore with a DuckDB database.

        Args:
            db_path: Path to DuckDB database file. Parent directories
                     are created automatically.
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self.conn = duckdb.connect(str(self.db_path))

        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS _checkpoints (
                table_name VARCHAR PRIMARY KEY,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                row_count INTEGER,
                description VARCHAR
            )
        """)

    def save_dataframe(
        self,
        df: pl.DataFrame,
        table_name: str,
        description: str = "",
        replace: bool = True
    ) -> None:
        """
        Save a polars DataFrame to DuckDB as a table.

        Args:
            df: Polars DataFrame to save
            table_name: Name for the DuckDB table
            description: Optional description for checkpoint metadata
            replace: If True, replace existing table; if False, append
        """
        if not isinstance(df, pl.DataFrame):
            raise ValueError("df must be polars.DataFrame")

        if replace:
            self.conn.execute(f"CREATE OR REPLACE TABLE {table_name} AS SELECT * FROM df")
        else:
            self.conn.execute(f"INSERT INTO {table_name} SELECT * FROM df")

        row_count = self.conn.execute(f"SELECT COUNT(*) FROM {table_name}").fetchone()[0]
        self.conn.execute("""
            INSERT OR REPLACE INTO _checkpoints (table_name, row_count, description, created_at)
            VALUES (?, ?, ?, CURRENT_TIMESTAMP)
        """, [table_name, row_count, description])

    def load_dataframe(self, table_name: str) -> Optional[pl.DataFrame]:
        """Read a stored side table back, or None when it was never saved."""
        try:
            return self.conn.execute(f"SELECT * FROM {table_name}").pl()
        except duckdb.CatalogException:
            return None

    def has_checkpoint(self, table_name: str) -> bool:
        """Whether an earlier conversion already stored ``table_name``."""
        (count,) = self.conn.execute(
            "SELECT COUNT(*) FROM _checkpoints WHERE table_name = ?", [table_name]
        ).fetchone()
        return count > 0

    def list_checkpoints(self) -> list[dict]:
        """Stored side tables, by table name.

        Each entry has ``table_name``, ``created_at``, ``row_count`` and
        ``description`` (the SOFT file the table came from).
        """
        cursor = self.conn.execute("""
            SELECT table_name, created_at, row_count, description
            FROM _checkpoints
            ORDER BY table_name
        """)
        keys = [column[0] for column in cursor.description]
        return [dict(zip(keys, row)) for row in cursor.fetchall()]

    def close(self) -> None:
        """Close the DuckDB connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - closes connection."""
        self.close()
        return False

    @classmethod
    def from_config(cls, config: "ConverterConfig") -> Optional["PipelineStore"]:
        """
        Create PipelineStore from a ConverterConfig.

        Args:
            config: ConverterConfig instance

        Returns:
            PipelineStore instance, or None if no duckdb_path is configured
        """
        if config.duckdb_path is None:
            return None
        return cls(config.duckdb_path)
