"""
pysqladapt: Dialect adapter and schema introspection.

This module parses the column lists of index and constraint definitions as rendered by the database catalog, e.g.
`CREATE UNIQUE INDEX ix ON t USING btree (a, "B C")` or `FOREIGN KEY (a, b) REFERENCES t(c, d)`.
"""

from ..model.id_types import ID_QUOTE_CHAR, unquote_id
from .object_types import (
    ForeignKey,
    MalformedConstraintError,
    MalformedKeyDefinitionError,
)


def _split_columns(text: str) -> list[str]:
    "Splits a comma-separated column list, dropping whitespace that is not inside a quoted identifier."

    tokens: list[str] = []
    chars: list[str] = []
    quoted = False
    for ch in text:
        if ch == ID_QUOTE_CHAR:
            quoted = not quoted
            chars.append(ch)
        elif quoted:
            chars.append(ch)
        elif ch.isspace():
            continue
        elif ch == ",":
            tokens.append("".join(chars))
            chars = []
        else:
            chars.append(ch)
    tokens.append("".join(chars))
    return tokens


def _unquote_column(token: str) -> str:
    # an escaped quote character ("") inside a quoted identifier is not recognized
    if not token.startswith(ID_QUOTE_CHAR):
        return token

    end = token.find(ID_QUOTE_CHAR, 1)
    if end < 0:
        return token[1:]
    return token[1:end]


def columns_from_key_definition(definition: str) -> list[str]:
    """
    Extracts the column names from the first parenthesized list in a key definition.

    :param definition: Catalog-produced text with a column list such as `(a, "B C", d)`.
    :returns: Column names in the order they appear, with quotes removed.
    """

    start = definition.find("(")
    if start < 0:
        raise MalformedKeyDefinitionError("missing opening parenthesis", definition)
    end = definition.find(")", start + 1)
    if end < 0:
        raise MalformedKeyDefinitionError("missing closing parenthesis", definition)

    return [_unquote_column(token) for token in _split_columns(definition[start + 1 : end])]


def parse_foreign_key(name: str, definition: str) -> ForeignKey:
    """
    Builds a foreign key descriptor from a constraint definition.

    :param name: Name of the constraint, optionally enclosed in double quotes.
    :param definition: Constraint definition of the form `FOREIGN KEY (<columns>) REFERENCES <table>(<columns>)`.
    """

    _, sep, remainder = definition.partition("FOREIGN KEY ")
    if not sep:
        raise MalformedConstraintError("expected: `FOREIGN KEY`", name, definition)

    local_clause, sep, reference_clause = remainder.partition("REFERENCES ")
    if not sep:
        raise MalformedConstraintError("expected: `REFERENCES`", name, definition)

    table_name, sep, column_clause = reference_clause.partition("(")
    if not sep:
        raise MalformedConstraintError(
            "expected: referenced column list", name, definition
        )

    return ForeignKey(
        name=unquote_id(name),
        columns=tuple(columns_from_key_definition(local_clause)),
        referenced_table=unquote_id(table_name.strip()),
        referenced_columns=tuple(columns_from_key_definition("(" + column_clause)),
    )
