from __future__ import annotations

import logging
from typing import Any

import duckdb
import sqlglot
from sqlglot import exp
from sqlglot.errors import ParseError, TokenError


logger = logging.getLogger(__name__)

READ_ONLY_ROOTS = {"select", "union", "intersect", "except"}

WRITE_NODES = (
    exp.Insert,
    exp.Update,
    exp.Delete,
    exp.Drop,
    exp.Create,
    exp.Alter,
    exp.Merge,
    exp.Command,
)


class QueryRejected(Exception):
    status_code = 400


class EmptyQueryError(QueryRejected):
    status_code = 400


class ReadOnlyViolation(QueryRejected):
    status_code = 403


def validate_read_only(sql: Any) -> str:
    """Return the query if it may run against the store, else raise.

    The leading-SELECT check is followed by a parse of the statement list so
    that a write cannot ride along behind a SELECT (``SELECT 1; DROP ...``).
    Text sqlglot cannot parse is split with DuckDB's parser instead; text
    neither parser accepts cannot execute and is left to the store to report.
    """
    if sql is None:
        raise EmptyQueryError("No SQL query provided")
    if not isinstance(sql, str):
        raise QueryRejected("SQL query must be a string")
    if not sql.strip():
        raise EmptyQueryError("No SQL query provided")

    if not sql.strip().upper().startswith("SELECT"):
        raise ReadOnlyViolation("Only SELECT queries are allowed")

    try:
        statements = [
            statement
            for statement in sqlglot.parse(sql, read="duckdb")
            if statement is not None
        ]
    except (ParseError, TokenError) as exc:
        logger.info("sqlglot could not parse SQL, checking with DuckDB's parser: %s", exc)
        return _validate_with_duckdb(sql)

    if len(statements) != 1:
        raise ReadOnlyViolation("Only a single SELECT statement is allowed")

    statement = statements[0]
    if statement.key not in READ_ONLY_ROOTS:
        raise ReadOnlyViolation("Only SELECT queries are allowed")

    write_node = statement.find(*WRITE_NODES)
    if write_node is not None:
        raise ReadOnlyViolation(
            f"Write operation '{write_node.key.upper()}' is not allowed"
        )

    return sql


def _validate_with_duckdb(sql: str) -> str:
    try:
        statements = duckdb.extract_statements(sql)
    except duckdb.Error as exc:
        # DuckDB parses the whole string before running any of it
        logger.info("DuckDB could not parse SQL either: %s", exc)
        return sql

    if len(statements) != 1:
        raise ReadOnlyViolation("Only a single SELECT statement is allowed")
    if statements[0].type != duckdb.StatementType.SELECT:
        raise ReadOnlyViolation("Only SELECT queries are allowed")
    return sql
