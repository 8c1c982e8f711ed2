import datetime
import decimal
import enum
import uuid
from dataclasses import dataclass
from typing import Optional, Union


def quote(s: str) -> str:
    "Quotes a string to be embedded in an SQL statement."

    return "'" + s.replace("'", "''") + "'"


@enum.unique
class EqualityMode(enum.Enum):
    """
    Whether a value literal is prefixed with a comparison operator.

    `PLAIN` produces a bare literal, e.g. for a `SET` or `VALUES` list. `EQUALS` and `NOT_EQUALS` produce the
    right-hand side of a `WHERE` condition, switching to `IS` and `IS NOT` where the value is `NULL`.
    """

    PLAIN = "plain"
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"

    @classmethod
    def from_flags(
        cls, include_equality: bool = False, reverse_equality: bool = False
    ) -> "EqualityMode":
        if not include_equality:
            return cls.PLAIN
        elif reverse_equality:
            return cls.NOT_EQUALS
        else:
            return cls.EQUALS


_REFERENCE_DATE = datetime.date(2000, 1, 1)


@dataclass(frozen=True)
class PartialDateTime:
    """
    A temporal value whose date part and time part may be present independently.

    :param date: The date part, or `None` if absent.
    :param time: The time part, or `None` if absent.
    """

    date: Optional[datetime.date] = None
    time: Optional[datetime.time] = None

    def __post_init__(self) -> None:
        if self.time is None or self.time.tzinfo is None:
            return

        # a time with a UTC offset is shifted to UTC, together with the date part if present
        offset = self.time.utcoffset()
        if offset is None:
            raise ValueError(f"cannot determine UTC offset of time: {self.time}")
        day = self.date if self.date is not None else _REFERENCE_DATE
        moment = datetime.datetime.combine(day, self.time.replace(tzinfo=None)) - offset
        object.__setattr__(self, "time", moment.time())
        if self.date is not None:
            object.__setattr__(self, "date", moment.date())

    @classmethod
    def from_value(
        cls, value: Union[datetime.datetime, datetime.date, datetime.time]
    ) -> "PartialDateTime":
        "Decomposes a standard temporal value. A `datetime` carries both parts."

        if isinstance(value, datetime.datetime):
            if value.tzinfo is not None:
                value = value.astimezone(tz=datetime.timezone.utc).replace(tzinfo=None)
            return cls(value.date(), value.time())
        elif isinstance(value, datetime.date):
            return cls(value, None)
        elif isinstance(value, datetime.time):
            return cls(None, value)
        else:
            raise TypeError(f"expected: date, time or datetime; got: {type(value)}")

    def is_null(self) -> bool:
        return self.date is None and self.time is None

    def is_date_null(self) -> bool:
        return self.date is None

    def is_time_null(self) -> bool:
        return self.time is None


TemporalValue = Union[datetime.datetime, datetime.date, datetime.time, PartialDateTime]
NumericValue = Union[int, float, decimal.Decimal]

# a value that can be rendered as a SQL literal
TypedValue = Union[None, bool, NumericValue, TemporalValue, str, uuid.UUID]
