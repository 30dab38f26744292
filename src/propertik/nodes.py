"""Node model and NodeMap — values keyed by name and filtered by node platform."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

_FILTER_WEIGHTS: dict[str, int] = {
    "platform": 4,
    "platform_family": 2,
    "os": 1,
}

_PREDICATE_WEIGHT = 8


class Node(BaseModel):
    """The machine a resource is being selected for."""

    name: str
    platform: str = ""
    platform_family: str = ""
    os: str = ""
    attributes: dict[str, Any] = Field(default_factory=dict)


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _filter_matches(allowed: list[str], actual: str) -> bool:
    """Match a node attribute against allowed values; a leading '!' excludes."""
    excluded = [v[1:] for v in allowed if v.startswith("!")]
    included = [v for v in allowed if not v.startswith("!")]
    if actual in excluded:
        return False
    return not included or actual in included


@dataclass
class _Matcher:
    value: Any
    filters: dict[str, list[str]] = field(default_factory=dict)
    predicate: Callable[[Node], bool] | None = None
    canonical: bool = False

    @property
    def specificity(self) -> int:
        weight = max((_FILTER_WEIGHTS[k] for k in self.filters), default=0)
        if self.predicate is not None:
            weight += _PREDICATE_WEIGHT
        return weight

    def matches(self, node: Node) -> bool:
        for attr, allowed in self.filters.items():
            if not _filter_matches(allowed, getattr(node, attr)):
                return False
        return self.predicate is None or bool(self.predicate(node))


class NodeMap:
    """Ordered candidates per key; the most specific, then newest, come first."""

    def __init__(self) -> None:
        self._map: dict[str, list[_Matcher]] = {}

    def set(
        self,
        key: str,
        value: Any,
        *,
        platform: str | list[str] | None = None,
        platform_family: str | list[str] | None = None,
        os: str | list[str] | None = None,
        filter: Callable[[Node], bool] | None = None,
        canonical: bool = False,
    ) -> Any:
        """Register ``value`` under ``key`` for nodes matching the filters."""
        filters = {
            attr: _as_list(allowed)
            for attr, allowed in (
                ("platform", platform),
                ("platform_family", platform_family),
                ("os", os),
            )
            if allowed is not None
        }
        matcher = _Matcher(value, filters, filter, canonical)
        matchers = self._map.setdefault(key, [])

        # Equal specificity: newest wins
        for index, existing in enumerate(matchers):
            if matcher.specificity >= existing.specificity:
                matchers.insert(index, matcher)
                break
        else:
            matchers.append(matcher)

        logger.debug("Mapped '%s' -> %r (filters=%s)", key, value, filters)
        return value

    def get(self, node: Node, key: str, *, canonical: bool | None = None) -> Any:
        """The first value under ``key`` matching ``node``, or None."""
        if node is None:
            raise ValueError("get requires a node")
        values = self.list(node, key, canonical=canonical)
        return values[0] if values else None

    def list(self, node: Node, key: str, *, canonical: bool | None = None) -> list[Any]:
        """All values under ``key`` matching ``node``, in priority order."""
        return [
            m.value
            for m in self._map.get(key, [])
            if m.matches(node) and (canonical is None or m.canonical == canonical)
        ]

    def delete_canonical(self, key: str, value: Any) -> list[Any] | None:
        """Drop canonical entries for ``value``; returns what is left under ``key``."""
        matchers = self._map.get(key)
        if matchers is None:
            return None
        remaining = [m for m in matchers if not (m.canonical and _as_list(m.value) == _as_list(value))]
        if not remaining:
            del self._map[key]
            return None
        self._map[key] = remaining
        return [m.value for m in remaining]

    def __contains__(self, key: object) -> bool:
        return key in self._map

    def __repr__(self) -> str:
        return f"NodeMap(keys={sorted(self._map)})"
