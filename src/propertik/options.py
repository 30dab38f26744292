"""Property options — control settings plus validation rules."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

CONTROL_KEYS = frozenset(
    {
        "declared_in",
        "name",
        "desired_state",
        "identity",
        "storage_binding",
        "default",
        "name_property",
        "coerce",
        "required",
    }
)


class PropertyOptions(BaseModel):
    """Frozen option record for a Property.

    Option *presence* matters as much as value (a ``default`` of ``None`` is
    still a default), so presence is read from ``model_fields_set``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    name: str | None = None
    declared_in: Any = None
    storage_binding: str | None = None
    desired_state: bool = True
    identity: bool = False
    name_property: bool = False
    default: Any = None
    coerce: Callable[..., Any] | None = None
    required: bool = False
    validation: dict[str, Any] = Field(default_factory=dict)

    @field_validator("validation")
    @classmethod
    def _reject_control_keys(cls, value: dict[str, Any]) -> dict[str, Any]:
        overlap = CONTROL_KEYS.intersection(value)
        if overlap:
            raise ValueError(f"control options cannot be validation rules: {', '.join(sorted(overlap))}")
        return value

    @classmethod
    def from_kwargs(cls, **options: Any) -> PropertyOptions:
        """Split free-form keyword options into control fields and validation rules."""
        if "is_" in options:
            options["is"] = options.pop("is_")
        if "name_attribute" in options:
            alias = options.pop("name_attribute")
            options.setdefault("name_property", alias)
        control = {k: options.pop(k) for k in list(options) if k in CONTROL_KEYS}
        return cls(**control, validation=options)

    def has(self, key: str) -> bool:
        """Whether a control option was explicitly given."""
        return key in self.model_fields_set

    def explicit(self) -> dict[str, Any]:
        """Explicitly given control options, flattened with the validation rules."""
        result = {k: getattr(self, k) for k in self.model_fields_set if k != "validation"}
        result.update(self.validation)
        return result

    def merge(self, **overrides: Any) -> PropertyOptions:
        """A new record with ``overrides`` applied on top, key by key."""
        return PropertyOptions.from_kwargs(**{**self.explicit(), **overrides})
