"""Tests for propertik.properties."""

from __future__ import annotations

import logging

import pytest

from propertik.errors import ValidationFailed
from propertik.lazy import DeferredValue, lazy
from propertik.properties import NOT_PASSED, Property
from propertik.resources import Resource


class Host(Resource):
    pass


def _host(name: str = "web01") -> Host:
    return Host(name)


class Counter:
    """Callable that records how often it runs."""

    def __init__(self, result):
        self.result = result
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.result


# -- Introspection --


class TestIntrospection:
    def test_name_and_declared_in(self):
        p = Property(str, name="color", declared_in=Host)
        assert p.name == "color"
        assert p.declared_in is Host

    def test_desired_state_defaults_true(self):
        assert Property(name="p").desired_state is True

    def test_desired_state_false(self):
        assert Property(name="p", desired_state=False).desired_state is False

    def test_identity_implies_desired_state(self):
        p = Property(name="p", identity=True, desired_state=False)
        assert p.identity is True
        assert p.desired_state is True

    def test_identity_defaults_false(self):
        assert Property(name="p").identity is False

    def test_has_default_with_none_default(self):
        assert Property(name="p", default=None).has_default is True

    def test_has_default_without_default(self):
        assert Property(name="p").has_default is False

    def test_required_defaults_false(self):
        assert Property(name="p").required is False

    def test_storage_binding_defaults_to_name(self):
        assert Property(name="color").storage_binding == "color"

    def test_storage_binding_explicit(self):
        assert Property(name="color", storage_binding="_color").storage_binding == "_color"

    def test_storage_binding_none_is_opaque(self):
        assert Property(name="color", storage_binding=None).storage_binding is None

    def test_name_attribute_alias(self):
        assert Property(name="p", name_attribute=True).name_property is True

    def test_is_keyword_alias(self):
        assert Property(name="p", is_=int).validation_rules == {"is": int}

    def test_validation_rules_exclude_control_options(self):
        cb = {"is short": lambda v: len(v) < 10}
        p = Property(
            str,
            name="p",
            declared_in=Host,
            default="x",
            required=False,
            identity=True,
            desired_state=True,
            name_property=False,
            coerce=str.strip,
            storage_binding="q",
            callbacks=cb,
        )
        assert p.validation_rules == {"is": str, "callbacks": cb}

    def test_validation_rules_cached(self):
        p = Property(str, name="p")
        assert p.validation_rules is p.validation_rules

    def test_repr(self):
        p = Property(name="color", declared_in=Host)
        assert repr(p) == "Property(name='color', declared_in=Host)"


# -- call --


class TestCall:
    def test_no_value_is_get(self):
        p = Property(str, name="p", default="x")
        assert p.call(_host()) == "x"

    def test_value_is_set(self):
        res = _host()
        p = Property(str, name="p")
        assert p.call(res, "y") == "y"
        assert p.get(res) == "y"

    def test_none_is_get_without_explicit_none(self):
        res = _host()
        p = Property(name="p", default="x")
        assert p.call(res, None) == "x"

    def test_none_is_get_when_type_excludes_none(self):
        res = _host()
        p = Property(str, name="p")
        p.set(res, "kept")
        assert p.call(res, None) == "kept"

    def test_none_is_set_when_explicitly_accepted(self):
        res = _host()
        p = Property([str, None], name="p", default="x")
        assert p.explicitly_accepts_none(res) is True
        assert p.call(res, None) is None
        assert p.is_set(res) is True
        assert p.get(res) is None

    def test_none_read_is_logged(self, caplog):
        p = Property(name="p")
        with caplog.at_level(logging.DEBUG, logger="propertik.properties"):
            p.call(_host(), None)
        assert "Treating None as a read" in caplog.text

    def test_not_passed_repr(self):
        assert repr(NOT_PASSED) == "NOT_PASSED"


# -- get --


class TestGet:
    def test_default_is_set_on_read(self):
        res = _host()
        q = Property(name="q", default="x")
        assert q.is_set(res) is False
        assert q.get(res) == "x"
        assert q.is_set(res) is True

    def test_required_raises(self):
        r = Property(name="r", required=True)
        with pytest.raises(ValidationFailed, match="r is required"):
            r.get(_host())

    def test_required_with_default_still_raises(self):
        r = Property(name="r", required=True, default=5)
        with pytest.raises(ValidationFailed, match="r is required"):
            r.get(_host())

    def test_name_property_falls_back_to_resource_name(self):
        res = _host("web01")
        s = Property(str, name="s", name_property=True)
        assert s.get(res) == "web01"
        assert s.is_set(res) is True

    def test_name_property_is_coerced(self):
        s = Property(str, name="s", name_property=True, coerce=lambda v: v.upper())
        assert s.get(_host("web01")) == "WEB01"

    def test_unset_without_default_is_none(self):
        res = _host()
        p = Property(name="p")
        assert p.get(res) is None
        assert p.is_set(res) is False

    def test_stored_value_returned(self):
        res = _host()
        p = Property(int, name="p")
        p.set(res, 3)
        assert p.get(res) == 3

    def test_stored_lazy_evaluated_and_memoized(self):
        res = _host()
        counter = Counter("blue")
        p = Property(str, name="p")
        p.set(res, lazy(counter))
        assert p.get(res) == "blue"
        assert p.get(res) == "blue"
        assert counter.calls == 1
        assert res._storage.read("p") == "blue"

    def test_stored_lazy_is_coerced(self):
        res = _host()
        p = Property(str, name="p", coerce=lambda v: v.strip())
        p.set(res, lazy(lambda: "  padded  "))
        assert p.get(res) == "padded"

    def test_stored_lazy_is_validated(self):
        res = _host()
        p = Property(str, name="p")
        p.set(res, lazy(lambda: 5))
        with pytest.raises(ValidationFailed, match="Option p must be one of: str"):
            p.get(res)

    def test_lazy_default_evaluated_once(self):
        res = _host()
        counter = Counter("x")
        p = Property(str, name="p", default=lazy(counter))
        assert p.get(res) == "x"
        assert p.get(res) == "x"
        assert counter.calls == 1

    def test_lazy_default_once_per_resource(self):
        counter = Counter("x")
        p = Property(str, name="p", default=lazy(counter))
        p.get(_host("a"))
        p.get(_host("b"))
        assert counter.calls == 2

    def test_lazy_error_propagates_unchanged(self):
        def boom():
            raise RuntimeError("boom")

        res = _host()
        p = Property(name="p")
        p.set(res, lazy(boom))
        with pytest.raises(RuntimeError, match="boom"):
            p.get(res)

    def test_mutable_default_not_shared(self):
        class Box(Resource):
            items = Property(list, default=[])

        Box("a").items.append("x")
        assert Box("b").items == []
        assert Box.items.default() == []


# -- set --


class TestSet:
    def test_set_coerces(self):
        res = _host()
        p = Property(str, name="p", coerce=lambda v: v.lower())
        assert p.set(res, "LOUD") == "loud"
        assert res._storage.read("p") == "loud"

    def test_set_rejects_invalid(self):
        res = _host()
        p = Property(int, name="p")
        with pytest.raises(ValidationFailed):
            p.set(res, "nope")
        assert p.is_set(res) is False

    def test_set_lazy_stored_unvalidated(self):
        res = _host()
        p = Property(int, name="p")
        value = lazy(lambda: "nope")
        assert p.set(res, value) is value
        assert isinstance(res._storage.read("p"), DeferredValue)

    def test_coerce_receives_resource(self):
        res = _host("web01")
        p = Property(str, name="p", coerce=lambda r, v: f"{r.name}:{v}")
        assert p.set(res, "x") == "web01:x"

    def test_set_none_validates_is(self):
        p = Property(str, name="p")
        with pytest.raises(ValidationFailed):
            p.set(_host(), None)


# -- default --


class TestDefault:
    def test_default_does_not_store(self):
        res = _host()
        p = Property(name="p", default="x")
        assert p.default(res) == "x"
        assert p.is_set(res) is False
        assert len(res._storage) == 1  # only the name

    def test_lazy_default_resolved_with_resource(self):
        p = Property(str, name="p", default=lazy(lambda r: r.name + "-default"))
        assert p.default(_host("web01")) == "web01-default"

    def test_lazy_default_coerced(self):
        p = Property(int, name="p", default=lazy(lambda: 2), coerce=lambda v: v * 2)
        assert p.default(_host()) == 4

    def test_lazy_default_validated(self):
        p = Property(int, name="p", default=lazy(lambda: "two"))
        with pytest.raises(ValidationFailed):
            p.default(_host())

    def test_plain_default_returned_as_is(self):
        p = Property(name="p", default=[1, 2])
        assert p.default(_host()) == [1, 2]

    def test_no_resource_returns_raw_default(self):
        value = lazy(lambda: "x")
        p = Property(name="p", default=value)
        assert p.default() is value

    def test_no_resource_skips_name_fallback(self):
        p = Property(name="p", name_property=True)
        assert p.default() is None

    def test_name_property_on_name_itself(self):
        p = Property(name="name", name_property=True)
        assert p.default(_host()) is None

    def test_name_property(self):
        p = Property(name="p", name_property=True)
        assert p.default(_host("db01")) == "db01"

    def test_explicit_default_wins_over_name_property(self):
        p = Property(name="p", name_property=True, default="explicit")
        assert p.default(_host("db01")) == "explicit"

    def test_no_default(self):
        assert Property(name="p").default(_host()) is None


# -- Context-sensitive execution --


class TestExecution:
    def test_zero_arity_runs_without_resource(self):
        p = Property(name="p", default=lazy(lambda: 1))
        assert p.get(_host()) == 1

    def test_captured_args(self):
        p = Property(name="p", default=lazy(lambda a, b: a + b, 1, 2))
        assert p.get(_host()) == 3

    def test_coerce_without_resource_gets_value(self):
        p = Property(int, name="p", coerce=lambda v: v * 2)
        assert p.coerce(None, 3) == 6

    def test_captured_args_with_resource(self):
        p = Property(name="p", default=lazy(lambda r, suffix: r.name + suffix, ".local"))
        assert p.get(_host("web01")) == "web01.local"

    def test_optional_parameter_does_not_take_resource(self):
        p = Property(name="p", coerce=lambda v, upper=False: v)
        assert p.set(_host(), "x") == "x"

    def test_builtin_coerce(self):
        p = Property(int, name="p", coerce=int)
        assert p.set(_host(), "42") == 42

    def test_lazy_returning_lazy(self):
        p = Property(str, name="p", default=lazy(lambda: lazy(lambda r: r.name)))
        assert p.get(_host("web01")) == "web01"

    def test_coerce_returning_lazy(self):
        res = _host("web01")
        p = Property(str, name="p", coerce=lambda v: lazy(lambda r: f"{r.name}/{v}"))
        assert p.set(res, "etc") == "web01/etc"

    def test_sibling_property_visible(self):
        class Site(Resource):
            domain = Property(str, default="example.com")
            fqdn = Property(str, default=lazy(lambda r: f"{r.name}.{r.domain}"))

        assert Site("www").fqdn == "www.example.com"


# -- Validation --


class TestExplicitlyAcceptsNone:
    def test_is_with_none(self):
        assert Property([str, None], name="p").explicitly_accepts_none(_host()) is True

    def test_is_without_none(self):
        assert Property(str, name="p").explicitly_accepts_none(_host()) is False

    def test_no_is_rule(self):
        assert Property(name="p").explicitly_accepts_none(_host()) is False

    def test_equal_to_does_not_count(self):
        p = Property(name="p", equal_to=[1, None])
        assert p.explicitly_accepts_none(_host()) is False

    def test_callable_matcher(self):
        p = Property(lambda v: v is None or isinstance(v, int), name="p")
        assert p.explicitly_accepts_none(_host()) is True


class TestValidate:
    def test_validate_passes(self):
        Property(str, name="p").validate(_host(), "ok")

    def test_validate_fails_naming_property(self):
        with pytest.raises(ValidationFailed, match="Option port"):
            Property(int, name="port").validate(_host(), "80")

    def test_validate_without_resource(self):
        with pytest.raises(ValidationFailed):
            Property(int, name="p").validate(None, "x")

    def test_validate_goes_through_resource(self):
        seen = []

        class Recording(Resource):
            def validate(self, values, rule_sets):
                seen.append((dict(values), dict(rule_sets)))
                return super().validate(values, rule_sets)

        res = Recording("r")
        seen.clear()
        Property(int, name="p").set(res, 1)
        assert seen == [({"p": 1}, {"p": {"is": int}})]


# -- specialize --


class TestSpecialize:
    def test_required_override(self):
        p = Property(name="p", required=False)
        q = p.specialize(required=True)
        assert q.required is True
        assert p.required is False

    def test_default_override_keeps_other_options(self):
        p = Property(int, name="p", default=5, required=True)
        q = p.specialize(default=10)
        assert q.default() == 10
        assert q.required is True
        assert p.default() == 5

    def test_validation_rules_merged(self):
        p = Property(int, name="p", equal_to=[1, 2])
        q = p.specialize(is_=str)
        assert q.validation_rules == {"is": str, "equal_to": [1, 2]}
        assert p.validation_rules == {"is": int, "equal_to": [1, 2]}

    def test_unset_options_stay_unset(self):
        p = Property(name="p")
        q = p.specialize(required=True)
        assert q.has_default is False
        assert q.desired_state is True

    def test_preserves_subclass(self):
        class Sensitive(Property):
            pass

        q = Sensitive(name="p").specialize(required=True)
        assert isinstance(q, Sensitive)


# -- reset --


class TestReset:
    def test_reset_reverts_to_default(self):
        res = _host()
        p = Property(name="p", default="x")
        p.set(res, "y")
        p.reset(res)
        assert p.is_set(res) is False
        assert p.get(res) == "x"

    def test_reset_unset_is_noop(self):
        res = _host()
        Property(name="p").reset(res)
        assert len(res._storage) == 1


# -- Opaque properties --


class Gadget(Resource):
    def __init__(self, name, **attrs):
        self._color = "blue"
        super().__init__(name, **attrs)

    def color(self, value=NOT_PASSED):
        if value is NOT_PASSED:
            return self._color
        self._color = value


Gadget.define_property("color", str, storage_binding=None)


class TestOpaque:
    def test_always_set(self):
        prop = Gadget.properties()["color"]
        assert prop.is_set(Gadget("g")) is True

    def test_get_uses_accessor(self):
        prop = Gadget.properties()["color"]
        assert prop.get(Gadget("g")) == "blue"

    def test_set_uses_accessor(self):
        g = Gadget("g")
        prop = Gadget.properties()["color"]
        prop.set(g, "green")
        assert g._color == "green"
        assert "color" not in list(g._storage.keys())

    def test_constructor_sets_through_accessor(self):
        g = Gadget("g", color="red")
        assert g.color() == "red"

    def test_lazy_memoized_through_accessor(self):
        g = Gadget("g")
        prop = Gadget.properties()["color"]
        prop.set(g, lazy(lambda r: r.name + "-grey"))
        assert prop.get(g) == "g-grey"
        assert g._color == "g-grey"

    def test_reset_is_noop(self):
        g = Gadget("g", color="red")
        Gadget.properties()["color"].reset(g)
        assert g.color() == "red"
