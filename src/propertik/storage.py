"""Per-resource attribute slots with presence tracked apart from value."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any


class AttributeStorage:
    """Addressable slots for one resource instance.

    A slot is present once written, whatever the value (``None`` included).
    """

    def __init__(self) -> None:
        self._slots: dict[str, Any] = {}

    def is_present(self, key: str) -> bool:
        return key in self._slots

    def read(self, key: str) -> Any:
        return self._slots[key]

    def write(self, key: str, value: Any) -> None:
        self._slots[key] = value

    def delete(self, key: str) -> None:
        self._slots.pop(key, None)

    def keys(self) -> Iterator[str]:
        return iter(self._slots)

    def __len__(self) -> int:
        return len(self._slots)

    def __repr__(self) -> str:
        return f"AttributeStorage({sorted(self._slots)})"
