import pytest
import wrapt

from sqltrace.testing import DummyTracer
from sqltrace.trace import Pin
from sqltrace.trace import tracer as global_tracer


class Obj(object):
    pass


def test_pin():
    obj = Obj()
    pin = Pin(service="city-db")
    pin.onto(obj)

    got = Pin.get_from(obj)
    assert got.service == pin.service
    assert got is pin


def test_pin_find_on_proxy():
    proxy = wrapt.ObjectProxy(Obj())
    Pin(service="city-db").onto(proxy)

    assert Pin.get_from(proxy).service == "city-db"
    # the pin lives on the proxy, not on the wrapped object
    assert Pin.get_from(proxy.__wrapped__) is None


def test_cant_mutate():
    pin = Pin(service="city-db")
    with pytest.raises(AttributeError):
        pin.service = "other"


def test_cant_pin_with_slots():
    class SlotsObj(object):
        __slots__ = ["value"]

    obj = SlotsObj()
    Pin(service="city-db").onto(obj)
    assert Pin.get_from(obj) is None


def test_copy():
    tracer = DummyTracer()
    p1 = Pin(service="city-db", tags={"db.name": "city"}, tracer=tracer)
    p2 = p1.clone(service="country-db")

    assert p1.service == "city-db"
    assert p2.service == "country-db"
    # tags are shared, not copied
    assert p2.tags is p1.tags
    assert p2.tracer is tracer


def test_none():
    assert Pin.get_from(None) is None


def test_repr():
    p = Pin(service="city-db")
    assert repr(p).startswith("Pin(service=city-db, tags=None, tracer=")


def test_override():
    a, b = Obj(), Obj()
    Pin(service="city-db", tags={"db.name": "city"}).onto(a)
    Pin(service="city-db").onto(b)

    Pin.override(a, service="country-db")
    assert Pin.get_from(a).service == "country-db"
    assert Pin.get_from(a).tags == {"db.name": "city"}
    assert Pin.get_from(b).service == "city-db"


def test_override_missing():
    obj = Obj()
    Pin.override(obj, service="city-db")
    assert Pin.get_from(obj).service == "city-db"


def test_pin_inherited_from_class_is_cloned():
    Pin(service="city-db").onto(Obj)
    try:
        obj = Obj()
        pin = Pin.get_from(obj)
        assert pin.service == "city-db"
        assert pin is not Pin.get_from(Obj)
    finally:
        Pin.get_from(Obj).remove_from(Obj)
    assert Pin.get_from(Obj) is None


def test_tracer_defaults_to_global_tracer():
    assert Pin().tracer is global_tracer


def test_enabled():
    tracer = DummyTracer()
    pin = Pin(tracer=tracer)
    assert pin.enabled()

    tracer.enabled = False
    assert not pin.enabled()
