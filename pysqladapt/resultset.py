"""
pysqladapt: Dialect adapter and schema introspection.

This module converts driver result-sets into lists of data-class instances, tuples or scalars.
"""

import typing
from collections.abc import Mapping, Sequence
from typing import Any, Iterable, TypeVar

from strong_typing.inspection import DataclassInstance, is_dataclass_type

D = TypeVar("D", bound=DataclassInstance)
T = TypeVar("T")


def resultset_unwrap_dict(
    signature: type[D], records: Iterable[Mapping[str, Any]]
) -> list[D]:
    """
    Converts a result-set into a list of data-class instances.

    Column names in the result-set must match field names of the data-class.

    :param signature: A data-class type.
    :param records: The result-set whose rows to convert.
    """

    if not is_dataclass_type(signature):
        raise TypeError(
            f"expected: data-class type as result-set signature; got: {signature}"
        )

    return [
        signature(**{name: value for name, value in record.items()})  # type: ignore
        for record in records
    ]


def _check_shape(record: Sequence[Any], count: int) -> None:
    if len(record) != count:
        raise ValueError(
            f"invalid number of columns, expected: {count}; got: {len(record)}"
        )


def resultset_unwrap_tuple(
    signature: type[T], records: Iterable[Sequence[Any]]
) -> list[T]:
    """
    Converts a result-set into a list of tuples, or a list of simple types (as appropriate).

    :param signature: A tuple type, or a simple type (e.g. `bool` or `str`).
    :param records: The result-set whose rows to convert.
    """

    rows = list(records)

    if signature in [bool, int, float, str]:
        if rows:
            _check_shape(rows[0], 1)
        return [row[0] for row in rows]

    if typing.get_origin(signature) is tuple:
        if rows:
            _check_shape(rows[0], len(typing.get_args(signature)))
        return [row if isinstance(row, tuple) else tuple(row) for row in rows]  # type: ignore

    raise TypeError(
        f"expected: tuple or simple type as result-set signature; got: {signature}"
    )
