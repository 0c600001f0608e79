"""Tagged results returned by persistence backends.

Backends catch their own failures at the boundary and hand back either
``Ok(value)`` or ``Err(reason)``; the fallback coordinator branches on the tag
instead of intercepting exceptions.
"""
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

T = TypeVar('T')


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    reason: str
    error: Any = None


Result = Union[Ok[T], Err]
