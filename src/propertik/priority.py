"""Process-wide priority lists of implementations per resource type."""

from __future__ import annotations

import logging
from typing import Any, ClassVar

from .nodes import Node, NodeMap

logger = logging.getLogger(__name__)


class ResourcePriorityMap:
    """Which implementations handle a resource type on a given node, best first."""

    _instance: ClassVar[ResourcePriorityMap | None] = None

    def __init__(self) -> None:
        self._priority_map: NodeMap | None = None

    @classmethod
    def instance(cls) -> ResourcePriorityMap:
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @property
    def priority_map(self) -> NodeMap:
        if self._priority_map is None:
            self._priority_map = NodeMap()
        return self._priority_map

    def get_priority_array(
        self,
        node: Node,
        resource_name: str,
        *,
        canonical: bool | None = None,
    ) -> list[Any] | None:
        return self.priority_map.get(node, resource_name, canonical=canonical)

    def set_priority_array(self, resource_name: str, priority_array: Any, **filters: Any) -> list[Any]:
        """Register a priority list for ``resource_name``; filters go to NodeMap.set."""
        if isinstance(priority_array, (list, tuple)):
            priority_array = list(priority_array)
        else:
            priority_array = [priority_array]
        logger.debug("Setting priority for '%s': %s", resource_name, priority_array)
        return self.priority_map.set(resource_name, priority_array, **filters)

    def delete_canonical(self, resource_name: str, resource_class: Any) -> list[Any] | None:
        return self.priority_map.delete_canonical(resource_name, resource_class)

    def list_handlers(self, node: Node, resource_name: str) -> list[Any]:
        """Every handler for ``resource_name`` on ``node``, flattened and deduplicated."""
        handlers = [h for array in self.priority_map.list(node, resource_name) for h in array]
        return list(dict.fromkeys(handlers))
