from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

import psycopg2
from psycopg2.extras import execute_values

"""Batched INSERT helper built on psycopg2.extras.execute_values.

Table and column names come from configuration and the fixed import layouts,
never from uploaded content; values always travel as query parameters.
"""

logger = logging.getLogger(__name__)


class BatchInsertError(Exception):
    pass


@dataclass(frozen=True)
class InsertResult:
    table: str
    sent_rows: int  # rows handed to the driver (ON CONFLICT may skip some)
    elapsed_seconds: float = 0.0


def batch_insert(
    cursor: Any,
    table: str,
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    template: str | None = None,
    on_conflict: str | None = "DO NOTHING",
    page_size: int = 1000,
) -> InsertResult:
    """Insert rows with a single execute_values call.

    Parameters
    ----------
    cursor: psycopg2 cursor (transaction handled by the caller)
    table: target table
    columns: insert columns, in the order of each row tuple
    rows: row tuples
    template: optional execute_values row template, e.g. "(%s, (SELECT id ...))"
    on_conflict: ON CONFLICT action, None to omit the clause
    page_size: execute_values page size
    """
    rows_list = list(rows)
    if not rows_list:
        return InsertResult(table=table, sent_rows=0)

    cols_sql = ", ".join(f'"{c}"' for c in columns)
    sql = f"INSERT INTO {table} ({cols_sql}) VALUES %s"
    if on_conflict:
        sql += f" ON CONFLICT {on_conflict}"

    start = time.perf_counter()
    try:
        execute_values(cursor, sql, rows_list, template=template, page_size=page_size)
    except psycopg2.Error as e:
        raise BatchInsertError(f"insert into {table} failed: {e}") from e
    elapsed = time.perf_counter() - start
    logger.debug("inserted table=%s rows=%d elapsed=%.3fs", table, len(rows_list), elapsed)
    return InsertResult(table=table, sent_rows=len(rows_list), elapsed_seconds=elapsed)
