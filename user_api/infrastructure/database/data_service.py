"""Generic data access layer over the pooled engine.

``DataService[T]`` offers the CRUD surface every table-backed service in
the API is built from. Results are projected through a row mapper, a
callable receiving one positioned row and returning a domain record.

Statements are plain SQL strings with ``?`` positional placeholders,
produced by the pure ``build_*`` functions below. Before execution the
placeholders are rewritten to SQLAlchemy named binds (``:p1``, ``:p2``...)
so that every driver receives bound parameters, never interpolated values.

Connection handling:
- Without ``conn`` each call borrows a pooled connection, runs in its own
  transaction (writes) or read scope, releases the connection and wraps
  driver failures in ``DbError``
- With ``conn`` the statement runs on the caller's connection and driver
  failures propagate unchanged, so the surrounding transaction scope can
  roll back

Warning:
    Table names, column names and WHERE fragments are interpolated into the
    SQL text without escaping. Only trusted, code-defined strings may be
    passed for them; forwarding request input here is an SQL injection bug.
    Values always travel as bound parameters.
"""

from collections.abc import Callable, Generator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any

from loguru import logger
from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine, Row
from sqlalchemy.exc import SQLAlchemyError

from user_api.core.error_context import sanitize_dict, sanitize_sql_params
from user_api.core.exceptions import ArgumentError, DbError, MappingError
from user_api.core.observability import trace_operation
from user_api.core.types import SqlParams
from user_api.infrastructure.database.pool import get_data_source

PLACEHOLDER = "?"

type RowMapper[T] = Callable[[Row[Any]], T]


def build_insert(table: str, values: Mapping[str, Any]) -> tuple[str, list[Any]]:
    """Build an INSERT statement for the given column values.

    Args:
        table: Target table.
        values: Column to value mapping; iteration order is kept.

    Returns:
        tuple[str, list[Any]]: Statement and positional parameters.

    Raises:
        ArgumentError: If ``values`` is empty.
    """
    if not values:
        raise ArgumentError("Insert requires at least one column value")

    columns = ",".join(values)
    placeholders = ",".join(PLACEHOLDER for _ in values)
    return f"INSERT INTO {table} ({columns}) VALUES ({placeholders})", list(
        values.values()
    )


def build_update(
    table: str, values: Mapping[str, Any], where: str, params: Sequence[Any]
) -> tuple[str, list[Any]]:
    """Build an UPDATE statement; value parameters precede WHERE parameters."""
    if not values:
        raise ArgumentError("Update requires at least one column value")

    assignments = ",".join(f"{column}={PLACEHOLDER}" for column in values)
    return f"UPDATE {table} SET {assignments} WHERE {where}", [
        *values.values(),
        *params,
    ]


def build_delete(table: str, where: str) -> str:
    return f"DELETE FROM {table} WHERE {where}"


def build_select_by_pk(table: str, pk_column: str) -> str:
    return f"SELECT * FROM {table} WHERE {pk_column}={PLACEHOLDER}"


def _offset(page_size: int, page_number: int) -> int:
    if page_size < 1 or page_number < 1:
        raise ArgumentError(
            "Page size and page number must be at least 1",
            context={"page_size": page_size, "page_number": page_number},
        )
    return (page_number - 1) * page_size


def build_paginated(
    table: str, page_size: int, page_number: int
) -> tuple[str, list[Any]]:
    """Build a page query in the table's natural order.

    Raises:
        ArgumentError: If the page size or page number is below 1.
    """
    offset = _offset(page_size, page_number)
    return f"SELECT * FROM {table} LIMIT {PLACEHOLDER} OFFSET {PLACEHOLDER}", [
        page_size,
        offset,
    ]


def build_my_records_paginated(
    table: str, user_id: Any, page_size: int, page_number: int
) -> tuple[str, list[Any]]:
    """Build a page query restricted to rows whose ``userid`` matches."""
    offset = _offset(page_size, page_number)
    statement = (
        f"SELECT n.* FROM {table} n WHERE n.userid={PLACEHOLDER} "
        f"LIMIT {PLACEHOLDER} OFFSET {PLACEHOLDER}"
    )
    return statement, [user_id, page_size, offset]


def build_projection(table: str, columns: str, where: str) -> str:
    return f"SELECT {columns} FROM {table} WHERE {where}"


def to_named_binds(statement: str, params: Sequence[Any]) -> tuple[str, SqlParams]:
    """Rewrite ``?`` placeholders into named binds for ``sqlalchemy.text``.

    Placeholders inside single-quoted literals are left alone, and colons
    inside literals are escaped so they are not read as bind markers.

    Args:
        statement: SQL with positional placeholders.
        params: Values bound to the placeholders, in order.

    Returns:
        tuple[str, SqlParams]: Rewritten statement and ``{"p1": ...}`` binds.

    Raises:
        ArgumentError: If the placeholder and parameter counts differ.
    """
    parts: list[str] = []
    binds: SqlParams = {}
    in_literal = False

    for char in statement:
        if char == "'":
            in_literal = not in_literal
            parts.append(char)
        elif in_literal and char == ":":
            parts.append("\\:")
        elif not in_literal and char == PLACEHOLDER:
            name = f"p{len(binds) + 1}"
            binds[name] = params[len(binds)] if len(binds) < len(params) else None
            parts.append(f":{name}")
        else:
            parts.append(char)

    if len(binds) != len(params):
        raise ArgumentError(
            f"Statement has {len(binds)} placeholders but {len(params)} parameters",
            context={"placeholders": len(binds), "parameters": len(params)},
        )

    return "".join(parts), binds


def _map_row[T](mapper: RowMapper[T], row: Row[Any]) -> T:
    try:
        return mapper(row)
    except MappingError:
        raise
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise MappingError("Row mapping failed", cause=e) from e


class DataService[T]:
    """CRUD operations over one pooled engine, mapping rows to ``T``.

    Args:
        data_source: Engine to run statements on. The process-wide pool is
            used when omitted, resolved on first use.

    Example:
        service = DataService[User]()
        user = service.read('"User"', "id", 42, map_user_row)
    """

    def __init__(self, data_source: Engine | None = None) -> None:
        self._data_source = data_source

    @property
    def data_source(self) -> Engine:
        if self._data_source is None:
            self._data_source = get_data_source()
        return self._data_source

    @contextmanager
    def _connection(
        self, conn: Connection | None, *, write: bool, failure: str
    ) -> Generator[Connection]:
        """Yield the caller's connection, or a pooled one with error wrapping."""
        if conn is not None:
            yield conn
            return

        try:
            scope = self.data_source.begin() if write else self.data_source.connect()
            with scope as owned:
                yield owned
        except SQLAlchemyError as e:
            logger.error("{}: {}", failure, type(e).__name__)
            raise DbError(failure, cause=e) from e

    @staticmethod
    def _execute(
        conn: Connection,
        statement: str,
        params: Sequence[Any],
        log_params: object = None,
    ) -> Any:
        sql, binds = to_named_binds(statement, params)
        logger.debug(
            "Executing SQL: {}",
            statement,
            parameters=log_params
            if log_params is not None
            else sanitize_sql_params(list(params)),
        )
        return conn.execute(text(sql), binds)

    def insert(
        self,
        table: str,
        values: Mapping[str, Any],
        *,
        conn: Connection | None = None,
    ) -> None:
        """Insert one row built from ``values``.

        Raises:
            ArgumentError: If ``values`` is empty.
            DbError: "Insert failed" when the statement fails on a pooled
                connection.
        """
        statement, params = build_insert(table, values)
        with self._connection(conn, write=True, failure="Insert failed") as c:
            self._execute(c, statement, params, sanitize_dict(dict(values)))

    def read(
        self,
        table: str,
        pk_column: str,
        pk_value: Any,
        mapper: RowMapper[T],
        *,
        conn: Connection | None = None,
    ) -> T | None:
        """Read one row by primary key.

        Returns:
            T | None: The mapped row, or None when no row matches.
        """
        statement = build_select_by_pk(table, pk_column)
        with self._connection(conn, write=False, failure="Read failed") as c:
            row = self._execute(c, statement, [pk_value]).first()
            return _map_row(mapper, row) if row is not None else None

    def read_paginated(
        self,
        table: str,
        page_size: int,
        page_number: int,
        mapper: RowMapper[T],
        *,
        conn: Connection | None = None,
    ) -> list[T]:
        """Read one page of rows in the table's natural order.

        Args:
            table: Source table.
            page_size: Maximum number of rows, at least 1.
            page_number: One-based page index.
            mapper: Row mapper applied once per row.
            conn: Optional connection of an enclosing transaction.

        Returns:
            list[T]: Up to ``page_size`` mapped rows; empty past the end.

        Raises:
            ArgumentError: If the page size or page number is below 1.
            DbError: "Paginated read failed" on a pooled connection failure.
        """
        statement, params = build_paginated(table, page_size, page_number)
        with self._connection(conn, write=False, failure="Paginated read failed") as c:
            result = self._execute(c, statement, params)
            return [_map_row(mapper, row) for row in result]

    def read_my_records_paginated(
        self,
        table: str,
        user_id: Any,
        page_size: int,
        page_number: int,
        mapper: RowMapper[T],
        *,
        conn: Connection | None = None,
    ) -> list[T]:
        """Read one page of the rows owned by ``user_id``.

        The table must carry a ``userid`` column.
        """
        statement, params = build_my_records_paginated(
            table, user_id, page_size, page_number
        )
        with self._connection(conn, write=False, failure="Paginated read failed") as c:
            result = self._execute(c, statement, params)
            return [_map_row(mapper, row) for row in result]

    def read_columns_by_condition(
        self,
        table: str,
        columns: str,
        where: str,
        params: Sequence[Any],
        *,
        conn: Connection | None = None,
    ) -> Any:
        """Project columns of the rows matching ``where``.

        Returns:
            Any: First column of the first matching row, or None.
        """
        statement = build_projection(table, columns, where)
        with self._connection(conn, write=False, failure="Read failed") as c:
            return self._execute(c, statement, params).scalar()

    def update(
        self,
        table: str,
        values: Mapping[str, Any],
        where: str,
        params: Sequence[Any],
        *,
        conn: Connection | None = None,
    ) -> None:
        statement, all_params = build_update(table, values, where, params)
        with self._connection(conn, write=True, failure="Update failed") as c:
            self._execute(
                c,
                statement,
                all_params,
                {"values": sanitize_dict(dict(values)), "where": list(params)},
            )

    def delete(
        self,
        table: str,
        where: str,
        params: Sequence[Any],
        *,
        conn: Connection | None = None,
    ) -> None:
        statement = build_delete(table, where)
        with self._connection(conn, write=True, failure="Delete failed") as c:
            self._execute(c, statement, params)

    def with_transaction(self, body: Callable[[Connection], None]) -> None:
        """Run ``body`` inside one transaction on a dedicated connection.

        Every operation in the body must receive the connection through
        ``conn=``; calls without it borrow another pooled connection and
        run outside the transaction.

        Raises:
            DbError: "Transaction error" if no connection can be acquired,
                "Transaction failed" if the body or the commit fails.
        """
        self.with_transaction_return(body)

    def with_transaction_return[R](self, body: Callable[[Connection], R]) -> R:
        """Run ``body`` inside one transaction and return its result.

        Commits when the body returns, rolls back on any exception. The
        connection is released on every path.
        """
        with trace_operation("db.transaction"):
            try:
                conn = self.data_source.connect()
            except SQLAlchemyError as e:
                logger.error("Could not acquire connection for transaction")
                raise DbError("Transaction error", cause=e) from e

            with conn:
                transaction = conn.begin()
                try:
                    result = body(conn)
                    transaction.commit()
                except Exception as e:
                    transaction.rollback()
                    logger.warning(
                        "Transaction rolled back: {}: {}", type(e).__name__, e
                    )
                    raise DbError("Transaction failed", cause=e) from e

            logger.debug("Transaction committed")
            return result
