import asyncio
import logging
import ssl
import typing
from typing import Any, Optional, TypeVar

import asyncpg
from strong_typing.inspection import is_dataclass_type

from pysqladapt.base import BaseConnection, BaseContext, ConnectionFailedError
from pysqladapt.connection import ConnectionSSLMode
from pysqladapt.model.id_types import LocalId
from pysqladapt.resultset import resultset_unwrap_dict, resultset_unwrap_tuple
from pysqladapt.util.typing import override

T = TypeVar("T")

LOGGER = logging.getLogger("pysqladapt.postgres")

# `asyncio.TimeoutError` is not an `OSError` before Python 3.11
_CONNECT_ERRORS = (
    OSError,
    asyncio.TimeoutError,
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
)


class PostgreSQLConnection(BaseConnection):
    native: asyncpg.Connection

    @override
    async def open(self) -> BaseContext:
        LOGGER.info("connecting to %s", self.params)

        ssl_mode = self.params.ssl or ConnectionSSLMode.disable
        attempts = ssl_mode.attempts()
        try:
            # a refused, reset or failed SSL handshake moves on to the next attempt; the last failure is final
            for ctx in attempts[:-1]:
                try:
                    return await self._open(ctx)
                except (ConnectionError, ssl.SSLError) as e:
                    LOGGER.debug(
                        "%s attempt failed, retrying %s: %s",
                        "encrypted" if ctx is not None else "unencrypted",
                        "unencrypted" if ctx is not None else "encrypted",
                        e,
                    )
            return await self._open(attempts[-1])
        except _CONNECT_ERRORS as e:
            raise ConnectionFailedError(self.params) from e

    async def _open(self, ctx: Optional[ssl.SSLContext]) -> BaseContext:
        options: dict[str, Any] = {}
        if self.params.timeout is not None:
            options["timeout"] = self.params.timeout

        conn = await asyncpg.connect(
            host=self.params.host,
            port=self.params.port,
            user=self.params.username,
            password=self.params.password,
            database=self.params.database,
            ssl=ctx,
            **options,
        )

        ver = conn.get_server_version()
        LOGGER.info(
            "PostgreSQL version %d.%d.%d %s",
            ver.major,
            ver.minor,
            ver.micro,
            ver.releaselevel,
        )

        self.native = conn
        return PostgreSQLContext(self)

    @override
    async def close(self) -> None:
        await self.native.close()


class PostgreSQLContext(BaseContext):
    def __init__(self, connection: PostgreSQLConnection) -> None:
        super().__init__(connection)

    @property
    def native_connection(self) -> asyncpg.Connection:
        return typing.cast(PostgreSQLConnection, self.connection).native

    @override
    async def _execute(self, statement: str, *args: object) -> str:
        return await self.native_connection.execute(statement, *args)

    @override
    async def _query_all(self, signature: type[T], statement: str, *args: object) -> list[T]:
        records: list[asyncpg.Record] = await self.native_connection.fetch(statement, *args)
        if is_dataclass_type(signature):
            return resultset_unwrap_dict(signature, records)  # type: ignore
        else:
            return resultset_unwrap_tuple(signature, records)

    @override
    def is_in_transaction(self) -> bool:
        return self.native_connection.is_in_transaction()

    @override
    async def insert_id(self, table: str, column: str) -> int:
        # fails if the sequence has not been used in this session
        return await self.query_one(
            int,
            "SELECT pg_catalog.currval(pg_catalog.pg_get_serial_sequence($1, $2))",
            str(LocalId(table)),
            column,
        )
