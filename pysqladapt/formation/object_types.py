from dataclasses import dataclass
from typing import Optional

from ..model.id_types import LocalId


class FormationError(RuntimeError):
    "Raised when a catalog definition string cannot be turned into a descriptor."


class MalformedKeyDefinitionError(FormationError):
    "Raised when an index or key definition has no parenthesized column list."

    definition: str

    def __init__(self, cause: str, definition: str) -> None:
        super().__init__(cause)
        self.definition = definition

    def __str__(self) -> str:
        return f"{self.args[0]}: {self.definition}"


class MalformedConstraintError(FormationError):
    "Raised when a constraint definition does not have the shape `FOREIGN KEY (...) REFERENCES table (...)`."

    constraint: str
    definition: str

    def __init__(self, cause: str, constraint: str, definition: str) -> None:
        super().__init__(cause)
        self.constraint = constraint
        self.definition = definition

    def __str__(self) -> str:
        return f"constraint {LocalId(self.constraint)}: {self.args[0]}: {self.definition}"


def _column_list(columns: tuple[str, ...]) -> str:
    return ", ".join(str(LocalId(column)) for column in columns)


@dataclass(frozen=True)
class Column:
    """
    A column in a database table, as reported by the catalog.

    :param table_name: The table the column belongs to.
    :param name: The name of the column within its host table.
    :param ordinal_position: The 1-based position of the column in the table.
    :param default: The default value expression, or `None` if the column has no default.
    :param nullable: True if the column can take the value NULL.
    :param data_type: The SQL data type of the column as reported by the catalog.
    :param max_length: Maximum length in characters for character types.
    :param description: The comment attached to the column.
    :param identity: Whether the column value is generated by the database (e.g. serial or identity column).
    """

    table_name: str
    name: str
    ordinal_position: int
    default: Optional[str]
    nullable: bool
    data_type: str
    max_length: Optional[int] = None
    description: Optional[str] = None
    identity: bool = False

    def __str__(self) -> str:
        data_type = (
            f"{self.data_type}({self.max_length})"
            if self.max_length is not None
            else self.data_type
        )
        nullable = " NOT NULL" if not self.nullable else ""
        default = f" DEFAULT {self.default}" if self.default is not None else ""
        return f"{LocalId(self.name)} {data_type}{nullable}{default}"


@dataclass(frozen=True)
class Index:
    """
    An index on a database table.

    :param name: The name of the index.
    :param primary: True if the index backs the primary key.
    :param unique: True if the index enforces uniqueness.
    :param columns: Participating columns in definition order.
    """

    name: str
    primary: bool
    unique: bool
    columns: tuple[str, ...]

    def __str__(self) -> str:
        if self.primary:
            kind = "PRIMARY KEY"
        elif self.unique:
            kind = "UNIQUE INDEX"
        else:
            kind = "INDEX"
        return f"{kind} {LocalId(self.name)} ({_column_list(self.columns)})"


@dataclass(frozen=True)
class ForeignKey:
    """
    A foreign key constraint.

    Local and referenced columns are positionally correlated.

    :param name: The name of the constraint.
    :param columns: Columns in the table that holds the constraint.
    :param referenced_table: The table that the constraint points to.
    :param referenced_columns: Columns in the referenced table.
    """

    name: str
    columns: tuple[str, ...]
    referenced_table: str
    referenced_columns: tuple[str, ...]

    def __str__(self) -> str:
        return (
            f"CONSTRAINT {LocalId(self.name)} FOREIGN KEY ({_column_list(self.columns)}) "
            f"REFERENCES {LocalId(self.referenced_table)} ({_column_list(self.referenced_columns)})"
        )


@dataclass(frozen=True)
class Table:
    """
    A snapshot of a database table with its columns, indexes and foreign keys.

    :param name: The name of the table.
    :param columns: Columns in ordinal order.
    :param indexes: Indexes in name order.
    :param foreign_keys: Foreign key constraints in catalog order.
    """

    name: str
    columns: tuple[Column, ...]
    indexes: tuple[Index, ...] = ()
    foreign_keys: tuple[ForeignKey, ...] = ()

    def get_column(self, name: str) -> Column:
        for column in self.columns:
            if column.name == name:
                return column
        raise KeyError(f"column {LocalId(name)} not found in table {LocalId(self.name)}")

    def get_primary_key(self) -> Optional[Index]:
        for index in self.indexes:
            if index.primary:
                return index
        return None

    def get_identity_column(self) -> Optional[Column]:
        "The identity column, which is the first column if it is auto-generated."

        if self.columns and self.columns[0].identity:
            return self.columns[0]
        return None

    def __str__(self) -> str:
        lines: list[str] = []
        lines.extend(str(column) for column in self.columns)
        lines.extend(str(index) for index in self.indexes)
        lines.extend(str(key) for key in self.foreign_keys)
        defs = ",\n".join(lines)
        return f"TABLE {LocalId(self.name)} (\n{defs}\n)"
