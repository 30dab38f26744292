"""Property descriptor — type, validation, defaults and lazy values for one resource attribute.

A property named ``x`` keeps its value in the resource's attribute storage
under the slot ``x``. The *presence* of the slot says whether the property is
set; the stored value may be anything the validation rules allow, ``None``
included.
"""

from __future__ import annotations

import copy
import inspect
import logging
from collections.abc import Callable
from functools import cached_property
from typing import TYPE_CHECKING, Any

from . import validation
from .errors import ValidationFailed
from .lazy import DeferredValue
from .options import CONTROL_KEYS, PropertyOptions

if TYPE_CHECKING:
    from .resources import Resource

logger = logging.getLogger(__name__)


class _NotPassed:
    def __repr__(self) -> str:
        return "NOT_PASSED"


NOT_PASSED: Any = _NotPassed()


def _arity(func: Callable[..., Any]) -> int:
    """Count of required positional parameters, or -1 if any are optional or variadic."""
    try:
        sig = inspect.signature(func)
    except (TypeError, ValueError):
        return -1

    required = 0
    for param in sig.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return -1
        if param.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
            if param.default is not inspect.Parameter.empty:
                return -1
            required += 1
    return required


class Property:
    """Type and validation information for a property on a resource.

    Options (everything not listed here is a validation rule, see
    :mod:`propertik.validation`):

    - ``name``: the property name.
    - ``declared_in``: the resource class the property comes from.
    - ``storage_binding``: storage slot for the value; defaults to ``name``.
      ``None`` makes the property opaque: the resource's own ``<name>()`` /
      ``<name>(value)`` method is used instead and the property is always set.
    - ``desired_state``: part of desired state (default ``True``).
    - ``identity``: part of the resource's identity; implies desired state.
    - ``name_property``: default to the resource's name when unset.
    - ``default``: value returned when unset; may be lazy.
    - ``coerce``: callable turning input into canonical form.
    - ``required``: reading the property while unset raises ValidationFailed.

    A positional ``type`` is shorthand for the ``is`` rule.
    """

    def __init__(self, type: Any = NOT_PASSED, **options: Any) -> None:
        if type is not NOT_PASSED:
            options["is"] = type
        self._options = PropertyOptions.from_kwargs(**options)

    @classmethod
    def from_options(cls, options: PropertyOptions) -> Property:
        prop = cls.__new__(cls)
        prop._options = options
        return prop

    # -- Introspection --

    @property
    def options(self) -> PropertyOptions:
        return self._options

    @property
    def name(self) -> str | None:
        return self._options.name

    @property
    def declared_in(self) -> Any:
        return self._options.declared_in

    @property
    def storage_binding(self) -> str | None:
        """Storage slot for this property; ``None`` when the property is opaque."""
        if self._options.has("storage_binding"):
            return self._options.storage_binding
        return self.name

    @property
    def identity(self) -> bool:
        return self._options.identity

    @property
    def desired_state(self) -> bool:
        """Whether this is part of desired state; identity implies it."""
        if not self._options.has("desired_state"):
            return True
        return self._options.desired_state or self.identity

    @property
    def name_property(self) -> bool:
        return self._options.name_property

    @property
    def has_default(self) -> bool:
        return self._options.has("default")

    @property
    def required(self) -> bool:
        return self._options.required

    @cached_property
    def validation_rules(self) -> dict[str, Any]:
        return {k: v for k, v in self._options.validation.items() if k not in CONTROL_KEYS}

    # -- Get / set --

    def call(self, resource: Resource, value: Any = NOT_PASSED) -> Any:
        """Get-or-set: no value reads the property, anything else writes it.

        ``None`` reads as well unless the property explicitly accepts ``None``
        (``Property([str, None])``). This is compatibility behavior: existing
        declarations rely on ``prop = None`` leaving the value alone.
        """
        if value is NOT_PASSED:
            return self.get(resource)

        if value is None and not self.explicitly_accepts_none(resource):
            logger.debug("Treating None as a read of %s; None is not explicitly accepted", self.name)
            return self.get(resource)

        return self.set(resource, value)

    def get(self, resource: Resource) -> Any:
        """Read the value, evaluating lazy values and falling back to defaults.

        - A stored lazy value is evaluated, coerced and validated, and the
          result replaces it in storage, so it runs at most once.
        - An unset required property raises ValidationFailed.
        - An unset property with a default (or a name property) resolves the
          default and *sets* it: once a default has been read it is the value.
        - Otherwise ``None``.
        """
        if self.is_set(resource):
            value = self._get_value(resource)
            if isinstance(value, DeferredValue):
                logger.debug("Evaluating lazy value of %s", self.name)
                value = self._exec_in_resource(resource, value.func, *value.args)
                value = self.coerce(resource, value)
                self._set_value(resource, value)
            return value

        if self.required:
            raise ValidationFailed(f"{self.name} is required")

        if self.has_default or self.name_property:
            logger.debug("Resolving default for %s", self.name)
            return self.set(resource, self.default(resource))

        return None

    def set(self, resource: Resource, value: Any) -> Any:
        """Store a value; non-lazy values are coerced and validated first.

        Returns the stored value (a lazy value is returned as-is).
        """
        if not isinstance(value, DeferredValue):
            value = self.coerce(resource, value)
        self._set_value(resource, value)
        return value

    def default(self, resource: Resource | None = None) -> Any:
        """The default value, without storing it.

        Without a resource the raw default option is returned: nothing is
        evaluated or coerced, and the name fallback does not apply.
        """
        if self.has_default:
            value = self._options.default
            if resource is None:
                return value
            if isinstance(value, DeferredValue):
                value = self._exec_in_resource(resource, value.func, *value.args)
                return self.coerce(resource, value)
            # each resource gets its own copy of a mutable default
            return copy.deepcopy(value)

        if self.name_property and resource is not None and self.name != "name":
            logger.debug("Defaulting %s to the name of %r", self.name, resource)
            return self.coerce(resource, resource.name)

        return None

    def is_set(self, resource: Resource) -> bool:
        """Whether the property holds a value (explicitly set, or a default was read)."""
        binding = self.storage_binding
        if binding is None:
            return True
        return resource._storage.is_present(binding)

    def reset(self, resource: Resource) -> None:
        """Forget the stored value so defaults apply again."""
        binding = self.storage_binding
        if binding is not None:
            resource._storage.delete(binding)

    # -- Coercion & validation --

    def coerce(self, resource: Resource | None, value: Any) -> Any:
        """Transform a value to canonical form and validate it.

        Lazy values get no special handling here.
        """
        if self._options.coerce is not None:
            value = self._exec_in_resource(resource, self._options.coerce, value)
        self.validate(resource, value)
        return value

    def validate(self, resource: Resource | None, value: Any) -> None:
        values = {self.name: value}
        rule_sets = {self.name: self.validation_rules}
        if resource is None:
            validation.validate(values, rule_sets)
        else:
            resource.validate(values, rule_sets)

    def explicitly_accepts_none(self, resource: Resource | None) -> bool:
        """Whether an ``is`` rule lists ``None`` as acceptable.

        ``Property([str, None])`` does; a property with no ``is`` rule accepts
        ``None`` only implicitly and does not.
        """
        rules = self.validation_rules
        if "is" not in rules:
            return False
        return validation.check_is(self.name, None, rules["is"], raise_error=False)

    # -- Derivation --

    def specialize(self, **overrides: Any) -> Property:
        """A copy of this property with some options added or changed."""
        return type(self).from_options(self._options.merge(**overrides))

    # -- Descriptor protocol --

    def __get__(self, instance: Resource | None, owner: type | None = None) -> Any:
        if instance is None:
            return self
        return self.get(instance)

    def __set__(self, instance: Resource, value: Any) -> None:
        self.call(instance, value)

    def __delete__(self, instance: Resource) -> None:
        self.reset(instance)

    def __repr__(self) -> str:
        owner = getattr(self.declared_in, "__name__", None)
        return f"Property(name={self.name!r}, declared_in={owner})"

    # -- Storage & execution --

    def _get_value(self, resource: Resource) -> Any:
        binding = self.storage_binding
        if binding is None:
            return getattr(resource, self.name)()
        return resource._storage.read(binding)

    def _set_value(self, resource: Resource, value: Any) -> None:
        binding = self.storage_binding
        if binding is None:
            getattr(resource, self.name)(value)
        else:
            resource._storage.write(binding, value)

    def _exec_in_resource(self, resource: Resource | None, func: Callable[..., Any], *args: Any) -> Any:
        """Run a default, lazy value or coercion with the resource as context.

        A computation that needs one more positional argument than given gets
        the resource first; otherwise it is called with the arguments alone.
        A lazy result is evaluated in turn.
        """
        if resource is not None and _arity(func) > len(args):
            value = func(resource, *args)
        else:
            value = func(*args)

        if isinstance(value, DeferredValue):
            value = self._exec_in_resource(resource, value.func, *value.args)
        return value
