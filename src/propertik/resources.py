"""Resource base class and resource type registration."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, ClassVar

from . import validation
from .errors import ValidationFailed
from .properties import NOT_PASSED, Property
from .storage import AttributeStorage

logger = logging.getLogger(__name__)

# -- Resource Registry --

_resource_registry: dict[str, type[Resource]] = {}


def resource(name: str):
    """Register a Resource class under a resource type name."""

    def decorator(cls):
        cls.resource_type = name
        _resource_registry[name] = cls
        logger.debug("Registered resource type '%s' -> %s", name, cls.__name__)
        return cls

    return decorator


# -- Resource --


class Resource:
    """Base class for configuration resources.

    Properties are declared in the class body::

        @resource("file")
        class File(Resource):
            path = Property(str, name_property=True)
            mode = Property([int, None], default=0o644)
    """

    resource_type: ClassVar[str] = "resource"
    _properties: ClassVar[dict[str, Property]] = {}

    name = Property(str, desired_state=False)

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls._bind_properties()

    @classmethod
    def _bind_properties(cls) -> None:
        """Name each property declared in the class body and collect inherited ones."""
        merged: dict[str, Property] = {}
        for base in reversed(cls.__mro__[1:]):
            merged.update(base.__dict__.get("_properties", {}))

        for attr, value in list(vars(cls).items()):
            if not isinstance(value, Property):
                continue
            if value.name != attr or value.declared_in is not cls:
                value = value.specialize(name=attr, declared_in=cls)
                setattr(cls, attr, value)
            merged[attr] = value

        cls._properties = merged

    @classmethod
    def properties(cls) -> Mapping[str, Property]:
        return MappingProxyType(cls._properties)

    @classmethod
    def define_property(cls, name: str, type: Any = NOT_PASSED, **options: Any) -> Property:
        """Add or replace a property on this class.

        Without a type, an inherited property of the same name is specialized
        rather than replaced.
        """
        options.update(name=name, declared_in=cls)
        inherited = cls._properties.get(name)
        if type is NOT_PASSED and inherited is not None:
            prop = inherited.specialize(**options)
        else:
            prop = Property(type, **options)

        cls._properties[name] = prop
        if prop.storage_binding is not None:
            setattr(cls, name, prop)
        logger.debug("Defined property %s on %s", name, cls.__name__)
        return prop

    @classmethod
    def identity_properties(cls) -> list[Property]:
        """Identity properties; the name when none is marked."""
        props = [p for p in cls._properties.values() if p.identity]
        return props or [cls._properties["name"]]

    @classmethod
    def state_properties(cls) -> list[Property]:
        return [p for p in cls._properties.values() if p.desired_state]

    def __init__(self, name: str, **attrs: Any) -> None:
        self._storage = AttributeStorage()
        self._properties["name"].set(self, name)
        for key, value in attrs.items():
            prop = self._properties.get(key)
            if prop is None:
                raise ValidationFailed(f"{self.resource_type} has no property '{key}'")
            prop.call(self, value)

    @property
    def key(self) -> str:
        return f"{self.resource_type}[{self.name}]"

    @property
    def identity(self) -> Any:
        props = self.identity_properties()
        if len(props) == 1:
            return props[0].get(self)
        return {p.name: p.get(self) for p in props}

    def state(self) -> dict[str, Any]:
        """Desired-state values that have been set."""
        return {p.name: p.get(self) for p in self.state_properties() if p.is_set(self)}

    def is_set(self, name: str) -> bool:
        return self._property(name).is_set(self)

    def reset_property(self, name: str) -> None:
        self._property(name).reset(self)

    def validate(
        self,
        values: Mapping[str, Any],
        rule_sets: Mapping[str, Mapping[str, Any]],
    ) -> dict[str, Any]:
        """Validation hook used by this resource's properties."""
        return validation.validate(values, rule_sets)

    def _property(self, name: str) -> Property:
        try:
            return self._properties[name]
        except KeyError:
            raise ValidationFailed(f"{self.resource_type} has no property '{name}'") from None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.key}>"


Resource._bind_properties()
