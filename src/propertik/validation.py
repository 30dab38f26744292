"""Validation rules — the gateway every property value passes through.

A rule set maps rule names to arguments, e.g.::

    {"is": [str, None], "callbacks": {"must be absolute": os.path.isabs}}

Only ``is`` and ``cannot_be`` look at ``None``; the other rules let ``None``
through so an unset value never trips a type check by accident.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from typing import Any

from .errors import ValidationFailed

logger = logging.getLogger(__name__)


def _as_list(arg: Any) -> list[Any]:
    if isinstance(arg, (list, tuple, set, frozenset)):
        return list(arg)
    return [arg]


def _describe(matcher: Any) -> str:
    if matcher is None:
        return "None"
    if isinstance(matcher, type):
        return matcher.__name__
    if isinstance(matcher, re.Pattern):
        return f"/{matcher.pattern}/"
    return repr(matcher)


def _matches(matcher: Any, value: Any) -> bool:
    """Case-equality in the loosest useful sense."""
    if matcher is None:
        return value is None
    if isinstance(matcher, type):
        return isinstance(value, matcher)
    if isinstance(matcher, re.Pattern):
        return isinstance(value, str) and matcher.search(value) is not None
    if isinstance(matcher, range):
        return isinstance(value, int) and value in matcher
    if callable(matcher):
        return bool(matcher(value))
    return matcher == value


def check_is(name: str, value: Any, matchers: Any, *, raise_error: bool = True) -> bool:
    """Check ``value`` against an ``is`` constraint.

    With ``raise_error=False`` the result is returned instead of raising; this
    is how a property probes whether it explicitly accepts ``None``.
    """
    matchers = _as_list(matchers)
    if any(_matches(m, value) for m in matchers):
        return True
    if raise_error:
        expected = ", ".join(_describe(m) for m in matchers)
        raise ValidationFailed(f"Option {name} must be one of: {expected}!  You passed {value!r}.")
    return False


def _check_is(name: str, value: Any, arg: Any) -> None:
    check_is(name, value, arg)


def _check_kind_of(name: str, value: Any, arg: Any) -> None:
    types = tuple(type(None) if t is None else t for t in _as_list(arg))
    if not isinstance(value, types):
        expected = ", ".join(t.__name__ for t in types)
        raise ValidationFailed(f"Option {name} must be a kind of {expected}!  You passed {value!r}.")


def _check_equal_to(name: str, value: Any, arg: Any) -> None:
    allowed = _as_list(arg)
    if value not in allowed:
        expected = ", ".join(repr(a) for a in allowed)
        raise ValidationFailed(f"Option {name} must be equal to one of: {expected}!  You passed {value!r}.")


def _check_regex(name: str, value: Any, arg: Any) -> None:
    patterns = [re.compile(p) if isinstance(p, str) else p for p in _as_list(arg)]
    if isinstance(value, str) and any(p.search(value) for p in patterns):
        return
    expected = ", ".join(_describe(p) for p in patterns)
    raise ValidationFailed(f"Option {name}'s value {value!r} does not match regular expression {expected}")


def _check_respond_to(name: str, value: Any, arg: Any) -> None:
    for method in _as_list(arg):
        if not hasattr(value, method):
            raise ValidationFailed(f"Option {name} must have a {method} method!")


def _check_callbacks(name: str, value: Any, arg: Any) -> None:
    if not isinstance(arg, Mapping):
        raise ValidationFailed(f"Callbacks for {name} must be a mapping of description to callable")
    for description, callback in arg.items():
        if not callback(value):
            raise ValidationFailed(f"Option {name}'s value {value!r} {description}!")


def _check_cannot_be(name: str, value: Any, arg: Any) -> None:
    for predicate in _as_list(arg):
        if predicate == "none":
            failed = value is None
        elif predicate == "empty":
            failed = hasattr(value, "__len__") and len(value) == 0
        else:
            raise ValidationFailed(f"Unknown cannot_be predicate '{predicate}' for {name}")
        if failed:
            raise ValidationFailed(f"Option {name} cannot be {predicate}")


_RULES: dict[str, Callable[[str, Any, Any], None]] = {
    "is": _check_is,
    "kind_of": _check_kind_of,
    "equal_to": _check_equal_to,
    "regex": _check_regex,
    "respond_to": _check_respond_to,
    "callbacks": _check_callbacks,
    "cannot_be": _check_cannot_be,
}

_NONE_CHECKED = frozenset({"is", "cannot_be"})

RULE_NAMES = frozenset(_RULES)


def validate(
    values: Mapping[str, Any],
    rule_sets: Mapping[str, Mapping[str, Any]],
) -> dict[str, Any]:
    """Check each named value against its rule set.

    Returns the values unchanged; raises ValidationFailed on the first rule
    that rejects one.
    """
    for name, rules in rule_sets.items():
        value = values.get(name)
        for rule, arg in rules.items():
            check = _RULES.get(rule)
            if check is None:
                raise ValidationFailed(f"Unknown validation rule '{rule}' for {name}")
            if value is None and rule not in _NONE_CHECKED:
                continue
            check(name, value, arg)
        logger.debug("Validated %s against %d rule(s)", name, len(rules))
    return dict(values)
