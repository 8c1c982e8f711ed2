from pysqladapt.base import BaseConnection, BaseEngine, BaseGenerator, Explorer

from .connection import PostgreSQLConnection
from .discovery import PostgreSQLExplorer
from .generator import PostgreSQLGenerator


class PostgreSQLEngine(BaseEngine):
    "Entry point to PostgreSQL sessions, SQL rendering and catalog discovery."

    @property
    def name(self) -> str:
        return "postgresql"

    @property
    def aliases(self) -> tuple[str, ...]:
        return ("postgres",)

    def get_generator_type(self) -> type[BaseGenerator]:
        return PostgreSQLGenerator

    def get_connection_type(self) -> type[BaseConnection]:
        return PostgreSQLConnection

    def get_explorer_type(self) -> type[Explorer]:
        return PostgreSQLExplorer
