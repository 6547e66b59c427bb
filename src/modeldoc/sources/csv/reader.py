"""CSV reader - untyped rows with a VARCHAR-first approach.

Exports are read through DuckDB with every column as VARCHAR so formulas and
identifiers reach the normalizer exactly as written. NULL cells become "".
"""

from __future__ import annotations

from pathlib import Path

import duckdb

from modeldoc.core.logging import get_logger
from modeldoc.core.models import Result

logger = get_logger(__name__)


def read_csv_rows(path: str | Path) -> Result[list[dict[str, str]]]:
    """Read a CSV file into a list of string-valued records.

    Args:
        path: Path to the CSV file

    Returns:
        Result containing one dict per data row, keyed by header name
    """
    path = Path(path)
    if not path.exists():
        return Result.fail(f"CSV file not found: {path}")

    conn = duckdb.connect(":memory:")
    try:
        source = str(path).replace("'", "''")
        relation = conn.execute(
            f"SELECT * FROM read_csv('{source}', all_varchar = true, header = true)"
        )
        headers = [column[0] for column in relation.description or []]
        rows = [
            {header: "" if value is None else str(value) for header, value in zip(headers, record)}
            for record in relation.fetchall()
        ]
    except duckdb.Error as e:
        return Result.fail(f"Failed to read CSV {path.name}: {e}")
    finally:
        conn.close()

    logger.debug("csv_read", file=path.name, rows=len(rows), columns=len(headers))
    return Result.ok(rows)
