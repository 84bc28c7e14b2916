"""
Value extractors used by fields and by the root id/parent/routing options.

Extractors are classified once, when a field is declared:
- a string names an attribute (or mapping key) of the object
- a callable without positional parameters is a "no argument" extractor. It is called
  without arguments while `this` is bound to the object being composed, so it can read
  the object's members: `lambda: this.name`
- a callable with positional parameters receives the object as its first argument:
  `lambda obj: obj.name`

Both callable forms give the same result for the same object.
"""

import inspect
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Callable, Iterator, Mapping, NamedTuple, Union

from indexsync.errors import FieldConfigurationError

_NO_OBJECT = object()
_current_object: ContextVar[Any] = ContextVar("indexsync_current_object", default=_NO_OBJECT)


def read_value(obj: Any, name: str) -> Any:
    """Read a named value from a mapping (by key) or any other object (by attribute)"""
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name)


class ObjectAccessor:
    """
    Read-only accessor for the object a no-argument extractor is evaluated against.
    Attribute access and item access are forwarded to the object, calling it returns the object itself.
    """

    def _target(self) -> Any:
        obj = _current_object.get()
        if obj is _NO_OBJECT:
            raise RuntimeError("`this` can only be used inside a field extractor")
        return obj

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__"):
            raise AttributeError(name)
        return read_value(self._target(), name)

    def __getitem__(self, key: Any) -> Any:
        return self._target()[key]

    def __call__(self) -> Any:
        return self._target()

    def __repr__(self):
        obj = _current_object.get()
        return "<this (unbound)>" if obj is _NO_OBJECT else f"<this {obj!r}>"


this = ObjectAccessor()


@contextmanager
def bound_to(obj: Any) -> Iterator[None]:
    token = _current_object.set(obj)
    try:
        yield
    finally:
        _current_object.reset(token)


class IdentityExtractor(NamedTuple):
    def __call__(self, obj: Any) -> Any:
        return obj


class AttributeExtractor(NamedTuple):
    name: str

    def __call__(self, obj: Any) -> Any:
        return read_value(obj, self.name)


class NoArgExtractor(NamedTuple):
    func: Callable[[], Any]

    def __call__(self, obj: Any) -> Any:
        with bound_to(obj):
            return self.func()


class ObjectExtractor(NamedTuple):
    func: Callable[[Any], Any]

    def __call__(self, obj: Any) -> Any:
        return self.func(obj)


Extractor = Union[IdentityExtractor, AttributeExtractor, NoArgExtractor, ObjectExtractor]
EXTRACTOR_TYPES = (IdentityExtractor, AttributeExtractor, NoArgExtractor, ObjectExtractor)

_POSITIONAL = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
    inspect.Parameter.VAR_POSITIONAL,
)


def takes_arguments(func: Callable) -> bool:
    """Does this callable declare at least one positional parameter?"""
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        # builtins without an introspectable signature, e.g. str or operator.attrgetter objects
        return True
    return any(p.kind in _POSITIONAL for p in signature.parameters.values())


def extractor(value: Any) -> Extractor:
    """
    Classify a user supplied value extractor.
    Raises FieldConfigurationError if the value can't be used as an extractor
    """
    if isinstance(value, EXTRACTOR_TYPES):
        return value
    if isinstance(value, str):
        if not value:
            raise FieldConfigurationError("Attribute name for an extractor can't be empty")
        return AttributeExtractor(value)
    if callable(value):
        return ObjectExtractor(value) if takes_arguments(value) else NoArgExtractor(value)
    raise FieldConfigurationError(f"Cannot use {value!r} as a value extractor, expected a callable or attribute name")
