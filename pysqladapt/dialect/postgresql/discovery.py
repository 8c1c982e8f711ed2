import logging
from dataclasses import dataclass
from typing import Optional

from pysqladapt.base import BaseContext, Explorer
from pysqladapt.formation.constraints import (
    columns_from_key_definition,
    parse_foreign_key,
)
from pysqladapt.formation.object_types import Column, ForeignKey, Index
from pysqladapt.model.id_types import LocalId

LOGGER = logging.getLogger("pysqladapt.postgres")

# text representation of the boolean value `true` in the catalog
CATALOG_TRUE = "true"


@dataclass
class PostgreSQLColumnMeta:
    table_name: str
    column_name: str
    ordinal_position: int
    column_default: Optional[str]
    is_nullable: str
    data_type: str
    character_maximum_length: Optional[int]
    description: Optional[str]
    is_serial: bool


@dataclass
class PostgreSQLIndexMeta:
    index_name: str
    is_primary: str
    is_unique: str
    index_def: str


@dataclass
class PostgreSQLConstraintMeta:
    constraint_name: str
    constraint_def: str


class PostgreSQLExplorer(Explorer):
    "Discovers tables, columns, indexes and foreign keys in the current schema of a PostgreSQL database."

    def __init__(self, conn: BaseContext) -> None:
        super().__init__(conn)

    async def get_table_names(self) -> list[str]:
        return await self.conn.query_all(
            str,
            "SELECT table_name::text\n"
            "FROM information_schema.tables\n"
            "WHERE table_schema = current_schema() AND table_type = 'BASE TABLE'\n"
            "ORDER BY table_name ASC",
        )

    async def has_table(self, table: str) -> bool:
        count = await self.conn.query_one(
            int,
            "SELECT COUNT(*)\n"
            "FROM information_schema.tables\n"
            "WHERE table_schema = current_schema() AND table_type = 'BASE TABLE' AND table_name = $1",
            table,
        )
        return count > 0

    async def get_columns(self, table: str) -> list[Column]:
        column_records = await self.conn.query_all(
            PostgreSQLColumnMeta,
            "SELECT\n"
            "    col.table_name::text AS table_name,\n"
            "    col.column_name::text AS column_name,\n"
            "    col.ordinal_position::integer AS ordinal_position,\n"
            "    col.column_default::text AS column_default,\n"
            "    col.is_nullable::text AS is_nullable,\n"
            "    col.data_type::text AS data_type,\n"
            "    col.character_maximum_length::integer AS character_maximum_length,\n"
            "    dsc.description AS description,\n"
            "    pg_catalog.pg_get_serial_sequence(\n"
            "        pg_catalog.quote_ident(col.table_schema) || '.' || pg_catalog.quote_ident(col.table_name),\n"
            "        col.column_name\n"
            "    ) IS NOT NULL AS is_serial\n"
            "FROM information_schema.columns AS col\n"
            "    INNER JOIN pg_catalog.pg_namespace AS nsp ON nsp.nspname = col.table_schema\n"
            "    INNER JOIN pg_catalog.pg_class AS cls ON cls.relnamespace = nsp.oid AND cls.relname = col.table_name AND cls.relkind = 'r'\n"
            "    LEFT JOIN pg_catalog.pg_description AS dsc ON dsc.classoid = 'pg_catalog.pg_class'::regclass AND dsc.objoid = cls.oid AND dsc.objsubid = col.ordinal_position\n"
            "WHERE col.table_schema = current_schema() AND col.table_name = $1\n"
            "ORDER BY col.ordinal_position",
            table,
        )

        return [
            Column(
                table_name=col.table_name,
                name=col.column_name,
                ordinal_position=col.ordinal_position,
                default=col.column_default,
                nullable=col.is_nullable == "YES",
                data_type=col.data_type,
                max_length=col.character_maximum_length,
                description=col.description,
                identity=col.is_serial,
            )
            for col in column_records
        ]

    async def get_indexes(self, table: str) -> list[Index]:
        index_records = await self.conn.query_all(
            PostgreSQLIndexMeta,
            "SELECT\n"
            "    cls_idx.relname::text AS index_name,\n"
            "    idx.indisprimary::text AS is_primary,\n"
            "    idx.indisunique::text AS is_unique,\n"
            "    pg_catalog.pg_get_indexdef(idx.indexrelid) AS index_def\n"
            "FROM pg_catalog.pg_class AS cls\n"
            "    INNER JOIN pg_catalog.pg_index AS idx ON idx.indrelid = cls.oid\n"
            "    INNER JOIN pg_catalog.pg_class AS cls_idx ON idx.indexrelid = cls_idx.oid\n"
            "WHERE cls.relname = $1 AND pg_catalog.pg_table_is_visible(cls.oid)\n"
            "ORDER BY cls_idx.relname",
            table,
        )

        indexes = [
            Index(
                name=rec.index_name,
                primary=rec.is_primary == CATALOG_TRUE,
                unique=rec.is_unique == CATALOG_TRUE,
                columns=tuple(columns_from_key_definition(rec.index_def)),
            )
            for rec in index_records
        ]
        LOGGER.debug("found %d index(es) in table %s", len(indexes), LocalId(table))
        return indexes

    async def get_foreign_keys(self, table: str) -> list[ForeignKey]:
        constraint_records = await self.conn.query_all(
            PostgreSQLConstraintMeta,
            "SELECT\n"
            "    con.conname::text AS constraint_name,\n"
            "    pg_catalog.pg_get_constraintdef(con.oid, true) AS constraint_def\n"
            "FROM pg_catalog.pg_constraint AS con\n"
            "    INNER JOIN pg_catalog.pg_class AS cls ON con.conrelid = cls.oid\n"
            "    INNER JOIN pg_catalog.pg_namespace AS nsp ON cls.relnamespace = nsp.oid\n"
            "WHERE cls.relname = $1 AND nsp.nspname = current_schema() AND con.contype = 'f'\n"
            "ORDER BY con.oid",
            table,
        )

        foreign_keys = [
            parse_foreign_key(con.constraint_name, con.constraint_def)
            for con in constraint_records
        ]
        LOGGER.debug(
            "found %d foreign key(s) in table %s", len(foreign_keys), LocalId(table)
        )
        return foreign_keys
