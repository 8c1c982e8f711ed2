"""
pysqladapt: Dialect adapter and schema introspection.

This module defines base classes to create a connection, render SQL fragments, and discover database objects.
"""

import abc
import contextlib
import datetime
import decimal
import logging
import math
import re
import types
import uuid
from dataclasses import dataclass
from typing import AsyncIterator, Mapping, Optional, Sequence, TypeVar, Union

from strong_typing.name import python_type_to_str

from .connection import ConnectionParameters
from .formation.object_types import Column, ForeignKey, Index, Table
from .model.data_types import (
    EqualityMode,
    NumericValue,
    PartialDateTime,
    TypedValue,
    quote,
)
from .model.id_types import LocalId

T = TypeVar("T")

LOGGER = logging.getLogger("pysqladapt")

_BOOLEAN_LITERALS: dict[tuple[EqualityMode, bool], str] = {
    (EqualityMode.PLAIN, True): "'1'",
    (EqualityMode.PLAIN, False): "'0'",
    (EqualityMode.EQUALS, True): "!= '0'",
    (EqualityMode.EQUALS, False): "= '0'",
    (EqualityMode.NOT_EQUALS, True): "= '0'",
    (EqualityMode.NOT_EQUALS, False): "!= '0'",
}


def _key_value(value: TypedValue) -> TypedValue:
    # an empty temporal value formats as a bare NULL, which is not a valid comparison
    if isinstance(value, PartialDateTime) and value.is_null():
        return None
    return value


class ConnectionFailedError(RuntimeError):
    "Raised when a session with the database server cannot be established."

    params: ConnectionParameters

    def __init__(self, params: ConnectionParameters) -> None:
        super().__init__()
        self.params = params

    def __str__(self) -> str:
        return f"unable to connect to database: {self.params}"


class QueryFailedError(RuntimeError):
    "Raised when the database rejects a statement. The driver exception is available as `__cause__`."

    query: str
    message: str

    def __init__(self, query: str, message: str) -> None:
        super().__init__(message)
        self.query = query
        self.message = message

    def __str__(self) -> str:
        query = f"{self.query[:1000]}..." if len(self.query) > 1000 else self.query
        return f"error executing query: {self.message}\n{query}"


class InvalidClauseError(ValueError):
    "Raised when a LIMIT or ORDER BY directive is malformed or attempts to inject SQL."


class TransactionError(RuntimeError):
    "Raised when a transaction is started while another one is in progress."


class DiscoveryError(RuntimeError):
    pass


@dataclass
class GeneratorOptions:
    """
    Options that influence how SQL fragments are rendered.

    :param standard_conforming_strings: Whether backslashes in ordinary string literals are literal characters.
    """

    standard_conforming_strings: bool = True


class BaseGenerator(abc.ABC):
    """
    Renders values, clauses and statements in the syntax of a specific SQL dialect.

    :param options: Options that influence rendering.
    """

    options: GeneratorOptions

    def __init__(self, options: GeneratorOptions) -> None:
        self.options = options

    def format_value(
        self, value: TypedValue, mode: EqualityMode = EqualityMode.PLAIN
    ) -> str:
        """
        Renders a value as a SQL literal, optionally preceded by a comparison operator.

        :param value: The value to render.
        :param mode: Whether to prefix the literal with `=` (or `IS`) or `!=` (or `IS NOT`).
        :returns: A SQL fragment such as `'abc'`, `= 42` or `IS NOT NULL`.
        """

        if isinstance(value, bool):
            return self.format_boolean(value, mode)

        if mode is EqualityMode.EQUALS:
            prefix = "IS " if value is None else "= "
        elif mode is EqualityMode.NOT_EQUALS:
            prefix = "IS NOT " if value is None else "!= "
        else:
            prefix = ""

        if value is None:
            return prefix + "NULL"
        elif isinstance(value, (int, float, decimal.Decimal)):
            return prefix + self.format_number(value)
        elif isinstance(value, (datetime.date, datetime.time, PartialDateTime)):
            temporal = (
                value
                if isinstance(value, PartialDateTime)
                else PartialDateTime.from_value(value)
            )
            if temporal.is_null():
                # a value without a date part and a time part is a NULL value irrespective of comparison
                return "NULL"
            return prefix + self.format_temporal(temporal)
        elif isinstance(value, uuid.UUID):
            return prefix + self.quote_string(str(value))
        elif isinstance(value, str):
            return prefix + self.quote_string(value)
        else:
            raise TypeError(
                f"unknown literal representation for value (of type): {value} ({type(value)})"
            )

    def format_boolean(self, value: bool, mode: EqualityMode) -> str:
        return _BOOLEAN_LITERALS[(mode, value)]

    def format_number(self, value: NumericValue) -> str:
        if isinstance(value, float) and not math.isfinite(value):
            if math.isnan(value):
                return quote("NaN")
            return quote("Infinity" if value > 0 else "-Infinity")
        elif isinstance(value, decimal.Decimal) and not value.is_finite():
            if value.is_nan():
                return quote("NaN")
            return quote("Infinity" if value > 0 else "-Infinity")
        else:
            return str(value)

    def format_temporal(self, value: PartialDateTime) -> str:
        if value.time is None:
            return quote(value.date.isoformat())  # type: ignore
        elif value.date is None:
            return quote(value.time.isoformat())
        else:
            return quote(datetime.datetime.combine(value.date, value.time).isoformat(sep=" "))

    def quote_string(self, text: str) -> str:
        "Quotes a string to be embedded in a SQL statement. Override to apply dialect-specific escaping."

        return quote(text)

    def _check_clause(self, clause: str, text: str) -> None:
        if ";" in text:
            raise InvalidClauseError(f"invalid semicolon in {clause} clause: {text}")
        if "`" in text:
            raise InvalidClauseError(f"invalid backtick in {clause} clause: {text}")

    def limit_prefix(self, text: Optional[str]) -> Optional[str]:
        "Returns a clause to insert after `SELECT` that limits the number of rows, if the dialect uses one."

        return None

    def limit_suffix(self, text: Optional[str]) -> Optional[str]:
        """
        Returns a clause to append to a query that limits the number of rows.

        :param text: Either a row count `count`, or an offset and a row count `offset,count`.
        :returns: A `LIMIT` clause, or `None` if no limit is requested.
        """

        if not text:
            return None

        self._check_clause("LIMIT", text)
        tokens = [token.strip() for token in text.split(",")]
        if len(tokens) > 2:
            raise InvalidClauseError(f"invalid LIMIT clause: {text}")
        for token in tokens:
            if not re.fullmatch(r"[0-9]+", token):
                raise InvalidClauseError(f"expected non-negative integer in LIMIT clause: {text}")

        if len(tokens) == 2:
            offset, count = tokens
            return f"LIMIT {count} OFFSET {offset}"
        else:
            return f"LIMIT {tokens[0]}"

    def order_by_suffix(self, text: Optional[str]) -> Optional[str]:
        "Returns a clause to append to a query that sorts the rows. Column references are not validated."

        if not text:
            return None

        self._check_clause("ORDER BY", text)
        return f"ORDER BY {text}"

    def get_current_schema_stmt(self) -> str:
        return "CURRENT_SCHEMA()"

    def get_begin_stmt(self) -> str:
        return "BEGIN;"

    def get_commit_stmt(self) -> str:
        return "COMMIT;"

    def get_rollback_stmt(self) -> str:
        return "ROLLBACK;"

    def get_explain_stmt(self, statement: str) -> str:
        return f"EXPLAIN {statement}"

    def get_upsert_stmts(
        self,
        table: str,
        values: Mapping[str, TypedValue],
        primary_key: Union[None, str, Sequence[str]] = None,
    ) -> tuple[str, str]:
        """
        Returns a pair of SQL statements that together insert or update a single row.

        The `UPDATE` statement has no effect if there is no matching row, and the `INSERT` statement has no effect
        if there is one. The statements must run in the same transaction.

        :param table: The table to insert into or update.
        :param values: Maps column names to values. Insertion order determines column order.
        :param primary_key: Key columns used to find an existing row. Defaults to the first column in `values`.
        """

        if not values:
            raise ValueError("no column values to insert or update")

        if primary_key is None:
            keys = [next(iter(values))]
        elif isinstance(primary_key, str):
            keys = [primary_key]
        else:
            keys = list(primary_key)
            if not keys:
                raise ValueError("empty primary key")
        for key in keys:
            if key not in values:
                raise ValueError(f"primary key column {LocalId(key)} has no value")

        literals = {column: self.format_value(value) for column, value in values.items()}
        match_condition = " AND ".join(
            f"{LocalId(key)} {self.format_value(_key_value(values[key]), EqualityMode.EQUALS)}"
            for key in keys
        )
        table_id = LocalId(table)

        assignments = ", ".join(
            f"{LocalId(column)} = {literal}" for column, literal in literals.items()
        )
        update_stmt = f"UPDATE {table_id} SET {assignments} WHERE {match_condition}"

        column_list = ", ".join(str(LocalId(column)) for column in literals.keys())
        value_list = ", ".join(literals.values())
        insert_stmt = (
            f"INSERT INTO {table_id} ({column_list}) SELECT {value_list} "
            f"WHERE NOT EXISTS (SELECT 1 FROM {table_id} WHERE {match_condition})"
        )
        return update_stmt, insert_stmt


@dataclass(frozen=True)
class StatementResult:
    """
    Outcome of executing a statement that returns no rows.

    :param status: The command status reported by the server, e.g. `INSERT 0 1` or `UPDATE 3`.
    """

    status: str

    @property
    def affected_rows(self) -> int:
        "Number of rows inserted, updated or deleted by the statement."

        parts = self.status.split()
        if parts and parts[-1].isdigit():
            return int(parts[-1])
        else:
            return 0


class BaseConnection(abc.ABC):
    "An active connection to a database."

    generator: BaseGenerator
    params: ConnectionParameters

    def __init__(
        self,
        generator: BaseGenerator,
        params: ConnectionParameters,
    ) -> None:
        self.generator = generator
        self.params = params

    async def __aenter__(self) -> "BaseContext":
        return await self.open()

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[types.TracebackType],
    ) -> None:
        await self.close()

    @abc.abstractmethod
    async def open(self) -> "BaseContext": ...

    @abc.abstractmethod
    async def close(self) -> None: ...


class BaseContext(abc.ABC):
    "Context object returned by a connection object."

    connection: BaseConnection

    def __init__(self, connection: BaseConnection) -> None:
        self.connection = connection

    @property
    def generator(self) -> BaseGenerator:
        return self.connection.generator

    async def execute(self, statement: str, *args: object) -> StatementResult:
        "Executes a SQL statement that returns no rows."

        if not statement:
            raise ValueError("empty statement")
        if not statement.strip():
            raise ValueError("blank statement")

        LOGGER.debug("execute SQL:\n%s", statement)
        try:
            status = await self._execute(statement, *args)
        except QueryFailedError:
            raise
        except Exception as e:
            raise QueryFailedError(statement, str(e)) from e
        return StatementResult(status)

    @abc.abstractmethod
    async def _execute(self, statement: str, *args: object) -> str:
        "Executes a SQL statement, and returns the command status."

        ...

    async def query_one(self, signature: type[T], statement: str, *args: object) -> T:
        "Runs a query to produce a result-set of one or more columns, and a single row."

        rows = await self.query_all(signature, statement, *args)
        if not rows:
            raise QueryFailedError(statement, "query returned no rows")
        return rows[0]

    async def query_all(self, signature: type[T], statement: str, *args: object) -> list[T]:
        "Runs a query to produce a result-set of one or more columns, and multiple rows."

        if LOGGER.isEnabledFor(logging.DEBUG):
            LOGGER.debug(
                "query SQL into %s:\n%s", python_type_to_str(signature), statement
            )
        try:
            return await self._query_all(signature, statement, *args)
        except QueryFailedError:
            raise
        except Exception as e:
            raise QueryFailedError(statement, str(e)) from e

    @abc.abstractmethod
    async def _query_all(self, signature: type[T], statement: str, *args: object) -> list[T]:
        "Runs a query to produce a result-set of one or more columns, and multiple rows."

        ...

    async def current_schema(self) -> Optional[str]:
        func = self.generator.get_current_schema_stmt()
        return await self.query_one(str, f"SELECT {func};")

    async def explain(self, statement: str) -> list[str]:
        "Returns the lines of the execution plan the database chooses for a statement."

        return await self.query_all(str, self.generator.get_explain_stmt(statement))

    @abc.abstractmethod
    def is_in_transaction(self) -> bool: ...

    async def begin(self) -> None:
        if self.is_in_transaction():
            raise TransactionError("nested transactions are not supported")
        await self.execute(self.generator.get_begin_stmt())

    async def commit(self) -> None:
        await self.execute(self.generator.get_commit_stmt())

    async def rollback(self) -> None:
        await self.execute(self.generator.get_rollback_stmt())

    @contextlib.asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """
        Runs a block of statements in a transaction.

        The transaction is committed if the block completes, and rolled back if the block raises an exception, in
        which case the exception is propagated.
        """

        await self.begin()
        try:
            yield
        except BaseException:
            try:
                await self.rollback()
            except Exception:
                LOGGER.exception("failed to roll back transaction")
            raise
        else:
            await self.commit()

    async def upsert(
        self,
        table: str,
        values: Mapping[str, TypedValue],
        primary_key: Union[None, str, Sequence[str]] = None,
    ) -> tuple[StatementResult, StatementResult]:
        """
        Inserts a row, or updates the row that has the same primary key.

        :param table: The table to insert into or update.
        :param values: Maps column names to values.
        :param primary_key: Key columns used to find an existing row. Defaults to the first column in `values`.
        :returns: Results of the `UPDATE` and the `INSERT` statement, respectively.
        """

        update_stmt, insert_stmt = self.generator.get_upsert_stmts(
            table, values, primary_key
        )
        async with self.transaction():
            updated = await self.execute(update_stmt)
            inserted = await self.execute(insert_stmt)

        LOGGER.debug(
            "upsert into %s: %d row(s) updated, %d row(s) inserted",
            LocalId(table),
            updated.affected_rows,
            inserted.affected_rows,
        )
        if updated.affected_rows > 1:
            LOGGER.warning(
                "upsert into %s updated %d rows; key columns do not identify a single row",
                LocalId(table),
                updated.affected_rows,
            )
        return updated, inserted

    @abc.abstractmethod
    async def insert_id(self, table: str, column: str) -> int:
        "Returns the value most recently generated for an auto-generated column in this session."

        ...


class Explorer(abc.ABC):
    "Discovers objects in a database by querying its catalog."

    conn: BaseContext

    def __init__(self, conn: BaseContext) -> None:
        self.conn = conn

    @abc.abstractmethod
    async def get_table_names(self) -> list[str]:
        "Names of base tables in the current schema, in alphabetical order."
        ...

    @abc.abstractmethod
    async def has_table(self, table: str) -> bool: ...

    @abc.abstractmethod
    async def get_columns(self, table: str) -> list[Column]:
        "Columns of a table in ordinal order."
        ...

    @abc.abstractmethod
    async def get_indexes(self, table: str) -> list[Index]:
        "Indexes of a table in alphabetical order of index name."
        ...

    @abc.abstractmethod
    async def get_foreign_keys(self, table: str) -> list[ForeignKey]:
        "Foreign key constraints of a table in catalog order."
        ...

    async def get_table(self, table: str) -> Table:
        "Constructs a descriptor of a table with its columns, indexes and foreign keys."

        if not await self.has_table(table):
            raise DiscoveryError(f"table not found: {LocalId(table)}")

        columns = await self.get_columns(table)
        indexes = await self.get_indexes(table)
        foreign_keys = await self.get_foreign_keys(table)
        LOGGER.debug(
            "found %d column(s), %d index(es) and %d foreign key(s) in table %s",
            len(columns),
            len(indexes),
            len(foreign_keys),
            LocalId(table),
        )
        return Table(table, tuple(columns), tuple(indexes), tuple(foreign_keys))


class BaseEngine(abc.ABC):
    "Represents a specific database server type."

    @property
    @abc.abstractmethod
    def name(self) -> str: ...

    @property
    def aliases(self) -> tuple[str, ...]:
        "Alternative dialect names recognized in connection strings."

        return ()

    @abc.abstractmethod
    def get_generator_type(self) -> type[BaseGenerator]: ...

    @abc.abstractmethod
    def get_connection_type(self) -> type[BaseConnection]: ...

    @abc.abstractmethod
    def get_explorer_type(self) -> type[Explorer]: ...

    def create_connection(
        self, params: ConnectionParameters, options: Optional[GeneratorOptions] = None
    ) -> BaseConnection:
        "Creates a connection to a database server. The connection is established when opened."

        connection_type = self.get_connection_type()
        return connection_type(self.create_generator(options), params)

    def create_generator(
        self, options: Optional[GeneratorOptions] = None
    ) -> BaseGenerator:
        "Instantiates a generator that can emit SQL fragments."

        generator_options = options if options is not None else GeneratorOptions()
        generator_type = self.get_generator_type()
        return generator_type(generator_options)

    def create_explorer(self, conn: BaseContext) -> Explorer:
        "Instantiates an explorer that can discover objects in a database."

        explorer_type = self.get_explorer_type()
        return explorer_type(conn)
