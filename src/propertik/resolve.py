"""Resolver — turn ${...} references in declared attributes into lazy values."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

from .lazy import DeferredValue, is_lazy, lazy

if TYPE_CHECKING:
    from .resources import Resource

logger = logging.getLogger(__name__)

_INTERP_PATTERN = re.compile(r"\$\$\{|(\$\{([^{}]+)\})")
_FULL_PATTERN = re.compile(r"\$\{([^{}]+)\}")


class Resolver:
    """Resolve ${...} references against a context dict and the resource itself.

    The first segment of a reference is looked up in the context first and
    then as an attribute of the resource, so ``${owner}`` reads the sibling
    ``owner`` property. References are resolved when the property is first
    read, not when it is declared.
    """

    def __init__(self, context: dict[str, Any] | None = None) -> None:
        self._context = context or {}
        self._resolving: set[tuple[int, str]] = set()

    def _resolve_attribute(self, resource: Resource, attr: str, ref: str) -> Any:
        """Read a resource attribute, failing on references that lead back to themselves."""
        key = (id(resource), attr)
        if key in self._resolving:
            raise ValueError(f"Circular reference: '{ref}'")
        self._resolving.add(key)
        try:
            return getattr(resource, attr)
        except AttributeError:
            raise ValueError(f"undefined variable '{ref}'") from None
        finally:
            self._resolving.discard(key)

    def _resolve_ref(self, ref: str, resource: Resource | None) -> Any:
        """Resolve a dotted reference (e.g., 'env.HOME' or 'owner')."""
        first, *rest = ref.split(".")

        if first in self._context:
            current: Any = self._context[first]
        elif resource is not None:
            current = self._resolve_attribute(resource, first, ref)
        else:
            raise ValueError(f"undefined variable '{ref}'")

        for part in rest:
            try:
                current = current[part]
            except (KeyError, TypeError):
                try:
                    current = getattr(current, part)
                except AttributeError:
                    raise ValueError(f"undefined variable '{ref}'") from None

        if callable(current) and not isinstance(current, type):
            current = current()

        return current

    def _render(self, resource: Resource | None, value: str) -> Any:
        """Render ${...} interpolations in a single string value.

        A string that is exactly one ${ref} yields the resolved object itself
        (type preserved); embedded references are stringified. $${...} is a
        literal ${...}.
        """
        if "${" not in value:
            return value

        match = _FULL_PATTERN.fullmatch(value)
        if match:
            return self._resolve_ref(match.group(1).strip(), resource)

        def _replace(m: re.Match) -> str:  # type: ignore[type-arg]
            if m.group(0) == "$${":
                return "${"
            return str(self._resolve_ref(m.group(2).strip(), resource))

        return _INTERP_PATTERN.sub(_replace, value)

    def _walk(self, resource: Resource | None, obj: Any) -> Any:
        if isinstance(obj, dict):
            return {k: self._walk(resource, v) for k, v in obj.items()}
        if isinstance(obj, list):
            return [self._walk(resource, item) for item in obj]
        if isinstance(obj, str):
            return self._render(resource, obj)
        return obj

    def has_refs(self, obj: Any) -> bool:
        """Whether any string inside ``obj`` holds an unescaped ${...} reference."""
        if isinstance(obj, dict):
            return any(self.has_refs(v) for v in obj.values())
        if isinstance(obj, list):
            return any(self.has_refs(item) for item in obj)
        if isinstance(obj, str):
            return any(m.group(1) for m in _INTERP_PATTERN.finditer(obj))
        return False

    def resolve_value(self, value: Any) -> Any | DeferredValue:
        """A lazy value if ``value`` references anything; otherwise the value with escapes rendered."""
        if self.has_refs(value):
            return lazy(self._walk, value)
        return self._walk(None, value)

    def resolve(self, data: dict[str, Any]) -> dict[str, Any]:
        """Resolve every attribute value of a declared resource block."""
        resolved = {k: self.resolve_value(v) for k, v in data.items()}
        deferred = [k for k, v in resolved.items() if is_lazy(v)]
        if deferred:
            logger.debug("Deferring reference(s) in: %s", ", ".join(deferred))
        return resolved
