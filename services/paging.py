"""Paging over find results.

Callers ask the core for one row more than the page size. The extra row is
never shown; its presence is what tells us a next page exists.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Mapping, Optional, TypeVar

from models.validators import INTEGER_RE

T = TypeVar("T")


@dataclass(frozen=True)
class PageRequest:
    index: int
    count: int

    @classmethod
    def from_query(cls, query: Mapping[str, Any], default_count: int) -> "PageRequest":
        """Read ``index``/``count`` from a raw query, keeping bad values as given.

        Malformed values are left for the search validators to report, so only
        well-formed non-negative integers are interpreted here.
        """
        return cls(
            index=_read_int(query.get("index"), 0),
            count=_read_int(query.get("count"), default_count),
        )

    def lookahead_query(self, query: Mapping[str, Any]) -> Dict[str, Any]:
        """Copy of ``query`` asking for ``count + 1`` rows starting at ``index``."""
        paged = dict(query)
        if _is_int(query.get("index")) or query.get("index") is None:
            paged["index"] = str(self.index)
        if _is_int(query.get("count")) or query.get("count") is None:
            paged["count"] = str(self.count + 1)
        return paged

    @property
    def next_index(self) -> int:
        return self.index + self.count

    @property
    def prev_index(self) -> Optional[int]:
        if self.index <= 0 or self.count <= 0:
            return None
        return max(self.index - self.count, 0)


@dataclass(frozen=True)
class Page(Generic[T]):
    values: List[T]
    request: PageRequest
    has_next: bool

    @classmethod
    def from_lookahead(cls, results: List[T], request: PageRequest) -> "Page[T]":
        return cls(
            values=list(results[: request.count]),
            request=request,
            has_next=request.count > 0 and len(results) > request.count,
        )

    @property
    def has_prev(self) -> bool:
        return self.request.prev_index is not None


def _is_int(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value >= 0
    return isinstance(value, str) and INTEGER_RE.fullmatch(value) is not None


def _read_int(value: Any, default: int) -> int:
    if _is_int(value):
        return int(value)
    return default
