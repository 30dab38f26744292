"""Catalog — a typed collection of declared resources."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from typing import Any, Generic, TypeVar

from .resolve import Resolver
from .resources import Resource, _resource_registry

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Resource)


def _declare(
    type_name: str,
    name: str,
    attrs: dict[str, Any],
    resolver: Resolver,
) -> Resource:
    """Build a resource instance from a declared block using the registry."""
    if type_name not in _resource_registry:
        raise ValueError(f"Unknown resource type: '{type_name}'")
    resource_cls = _resource_registry[type_name]
    # hcl2 may add block metadata keys
    attrs = {k: v for k, v in attrs.items() if not k.startswith("__")}
    if "name" in attrs:
        raise ValueError(f"Resource '{type_name}[{name}]' cannot set 'name'; the block label is its name")
    logger.debug("Declaring %s[%s] -> %s", type_name, name, resource_cls.__name__)
    return resource_cls(name, **resolver.resolve(attrs))


class Catalog(Mapping[str, R], Generic[R]):
    """Resources keyed by ``type[name]``, in declaration order."""

    def __init__(self, context: dict[str, Any] | None = None) -> None:
        self._resolver = Resolver(context)
        self._resources: dict[str, R] = {}

    def add(self, resource: R) -> None:
        """Add a resource; raises ValueError if its key is already taken."""
        key = resource.key
        if key in self._resources:
            raise ValueError(f"Duplicate resource: '{key}'")
        logger.debug("Adding %s to catalog", key)
        self._resources[key] = resource

    def load(self, data: dict[str, Any]) -> None:
        """Declare every resource block in a parsed data dict.

        HCL2 structure for resource blocks:
            {"resource": [{"file": {"motd": {"path": "/etc/motd"}}}, ...]}
        """
        for block in data.get("resource", []):
            for type_name, named in block.items():
                for name, attrs in named.items():
                    self.add(_declare(type_name, name, dict(attrs), self._resolver))  # type: ignore[arg-type]

    def of_type(self, resource_type: str) -> list[R]:
        return [r for r in self._resources.values() if r.resource_type == resource_type]

    def filter(self, keys: Iterable[str]) -> list[R]:
        """Return resources matching the given keys, preserving input order."""
        return [r for k in keys if (r := self._resources.get(k)) is not None]

    def __getitem__(self, key: str) -> R:
        return self._resources[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._resources)

    def __len__(self) -> int:
        return len(self._resources)

    def __repr__(self) -> str:
        types = sorted({r.resource_type for r in self._resources.values()})
        return f"Catalog(resources={len(self)}, types={types})"
