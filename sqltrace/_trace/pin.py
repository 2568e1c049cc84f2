from typing import TYPE_CHECKING  # noqa:F401
from typing import Any  # noqa:F401
from typing import Mapping  # noqa:F401
from typing import Optional  # noqa:F401

import wrapt

from ..internal.logger import get_logger


if TYPE_CHECKING:  # pragma: no cover
    from .tracer import Tracer  # noqa:F401


log = get_logger(__name__)


# To set attributes on wrapt proxy objects use this prefix:
# http://wrapt.readthedocs.io/en/latest/wrappers.html
_SQLTRACE_PIN_NAME = "_sqltrace_pin"
_SQLTRACE_PIN_PROXY_NAME = "_self_" + _SQLTRACE_PIN_NAME


class Pin(object):
    """Pin (a.k.a Patch INfo) is a small class which is used to
    set tracing metadata on a particular traced connection.
    This is useful if you wanted to, say, trace two different
    database clusters.

        >>> db = open_traced(Driver(sqlite3), '/tmp/user.db')
        >>> # Override a pin for a specific connection
        >>> Pin.override(db, service='user-db')

    The tags of a pin are shared, not copied, with every clone: statements and
    transactions spawned from a traced connection all reference the read-only
    connection tags of that connection.
    """

    __slots__ = ["service", "tags", "_tracer", "_target", "_initialized"]

    def __init__(
        self,
        service=None,  # type: Optional[str]
        tags=None,  # type: Optional[Mapping[str, str]]
        tracer=None,  # type: Optional[Tracer]
    ):
        # type: (...) -> None
        self.service = service
        self.tags = tags
        self._tracer = tracer
        self._target = None  # type: Optional[int]
        self._initialized = True

    def __setattr__(self, name, value):
        if getattr(self, "_initialized", False) and name != "_target":
            raise AttributeError("can't mutate a pin, use override() or clone() instead")
        super(Pin, self).__setattr__(name, value)

    @property
    def tracer(self):
        # type: () -> Tracer
        if self._tracer is not None:
            return self._tracer
        from sqltrace.trace import tracer

        return tracer

    def __repr__(self):
        return "Pin(service=%s, tags=%s, tracer=%s)" % (self.service, self.tags, self.tracer)

    @staticmethod
    def get_from(obj):
        # type: (Any) -> Optional[Pin]
        """Return the pin associated with the given object. If a pin is attached to
        `obj` but the instance is not the owner of the pin, a new pin is cloned and
        attached. This ensures that a pin inherited from a class is a copy for the new
        instance, avoiding that a specific instance overrides other pins values.

            >>> pin = Pin.get_from(conn)

        :param obj: The object to look for a :class:`sqltrace.trace.Pin` on
        :rtype: :class:`sqltrace.trace.Pin`, None
        :returns: :class:`sqltrace.trace.Pin` associated with the object, or None if none was found
        """
        pin_name = _SQLTRACE_PIN_PROXY_NAME if isinstance(obj, wrapt.ObjectProxy) else _SQLTRACE_PIN_NAME
        pin = getattr(obj, pin_name, None)
        # detect if the PIN has been inherited from a class
        if pin is not None and pin._target != id(obj):
            pin = pin.clone()
            pin.onto(obj)
        return pin

    @classmethod
    def override(
        cls,
        obj,  # type: Any
        service=None,  # type: Optional[str]
        tags=None,  # type: Optional[Mapping[str, str]]
        tracer=None,  # type: Optional[Tracer]
    ):
        # type: (...) -> None
        """Override an object with the given attributes.

        That's the recommended way to customize an already instrumented client, without
        losing existing attributes.

            >>> Pin.override(db, service='user-db')
        """
        if not obj:
            return

        pin = cls.get_from(obj)
        if pin is None:
            pin = Pin(service=service, tags=tags, tracer=tracer)
        else:
            pin = pin.clone(service=service, tags=tags, tracer=tracer)
        pin.onto(obj)

    def enabled(self):
        # type: () -> bool
        """Return true if this pin's tracer is enabled."""
        return bool(self.tracer) and self.tracer.enabled

    def onto(self, obj):
        # type: (Any) -> None
        """Patch this pin onto the given object."""
        try:
            pin_name = _SQLTRACE_PIN_PROXY_NAME if isinstance(obj, wrapt.ObjectProxy) else _SQLTRACE_PIN_NAME

            # set the target reference; any get_from, clones and retarget the new PIN
            self._target = id(obj)
            return setattr(obj, pin_name, self)
        except AttributeError:
            log.debug("can't pin onto object. skipping", exc_info=True)

    def remove_from(self, obj):
        # type: (Any) -> None
        try:
            pin_name = _SQLTRACE_PIN_PROXY_NAME if isinstance(obj, wrapt.ObjectProxy) else _SQLTRACE_PIN_NAME

            pin = Pin.get_from(obj)
            if pin is not None:
                delattr(obj, pin_name)
        except AttributeError:
            log.debug("can't remove pin from object. skipping", exc_info=True)

    def clone(
        self,
        service=None,  # type: Optional[str]
        tags=None,  # type: Optional[Mapping[str, str]]
        tracer=None,  # type: Optional[Tracer]
    ):
        # type: (...) -> Pin
        """Return a clone of the pin with the given attributes replaced."""
        return Pin(
            service=service or self.service,
            tags=tags if tags is not None else self.tags,
            tracer=tracer or self._tracer,
        )
