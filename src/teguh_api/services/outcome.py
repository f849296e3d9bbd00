"""Result type for calls to third-party integrations.

Downstream failures never become 5xx responses. A call either succeeds with
``Ok`` or produces ``Degraded`` carrying a fallback payload and the reason,
and the route decides how to render it.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Degraded(Generic[T]):
    fallback: T
    reason: str


Outcome = Ok[T] | Degraded[T]
