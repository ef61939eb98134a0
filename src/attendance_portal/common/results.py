from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, Tuple, TypeVar

from ..core.exceptions import RetrievalFailure

T = TypeVar("T")


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """Outcome of a read that fails softly.

    On failure ``items`` is empty and ``error`` carries what the caller should
    surface to the user.
    """

    items: Tuple[T, ...] = ()
    error: Optional[RetrievalFailure] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failed(cls, error: RetrievalFailure) -> "FetchResult[T]":
        return cls(items=(), error=error)
