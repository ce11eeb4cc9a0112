import datetime
from typing import TypeVar, Callable, ParamSpec

__all__ = ("singleton", "utcnow", "to_naive_utc")
C = TypeVar("C")
P = ParamSpec("P")


def singleton(cls: type[C]) -> Callable[P, C]:
    """Class decorator that implements the Singleton pattern.

    This decorator ensures that only one instance of a class exists.
    All later instantiations will return the same instance.
    """
    instances: dict[str, C] = {}

    def getinstance(*args: P.args, **kwargs: P.kwargs) -> C:
        if cls.__name__ not in instances:
            instances[cls.__name__] = cls(*args, **kwargs)

        return instances[cls.__name__]

    return getinstance


def utcnow(skip_tz: bool = True) -> datetime.datetime:
    """Just a simple wrapper for deprecated datetime.utcnow"""
    dt = datetime.datetime.now(datetime.UTC)
    if skip_tz:
        dt = dt.replace(tzinfo=None)
    return dt


def to_naive_utc(value: datetime.datetime) -> datetime.datetime:
    """
    Brings datetime to the stored form: UTC without tzinfo (naive values are kept as is)

    >>> msk = datetime.timezone(datetime.timedelta(hours=3))
    >>> to_naive_utc(datetime.datetime(2024, 1, 1, 15, 0, tzinfo=msk))
    datetime.datetime(2024, 1, 1, 12, 0)

    """
    if value.tzinfo is None:
        return value

    return value.astimezone(datetime.UTC).replace(tzinfo=None)
