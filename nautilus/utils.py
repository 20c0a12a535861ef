"""
Nautilus helpers shared by the registry, the declarations and the shell.

- Unset: "argument not given", distinct from None (None is a valid header,
  abbreviation or return annotation).
- coalesce(value, default): replace Unset, and only Unset, by a default.
- rename(...): give generated callables a readable __name__/__qualname__.
- mirror(name): read-only property over the private field "_name".
"""
import builtins
import functools
from collections.abc import Mapping, Sequence, Set
from types import MappingProxyType
from typing import final


@final
class UnsetType:
    """
    Type of the Unset singleton: falsy, printed as "Unset", not subclassable.
    """

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


def coalesce(object, default=None, /):
    """
    Return default when object is Unset, object otherwise (None, 0 and "" included).
    """
    return default if object is Unset else object


def rename(*parameters):
    """
    rename(callable, name) sets __name__ and __qualname__ and returns callable;
    rename(name) returns a decorator doing the same.
    """
    match len(parameters):
        case 2:
            callable, name = parameters
            if not builtins.callable(callable):
                raise TypeError("rename() first argument must be callable")
            if not isinstance(name, str):
                raise TypeError("rename() second argument must be a string")
            try:
                callable.__name__ = callable.__qualname__ = name
            except (AttributeError, TypeError):
                raise TypeError(f"rename() cannot rename {callable!r}") from None
            return callable
        case 1:
            name, = parameters
            if not isinstance(name, str):
                raise TypeError("@rename() argument must be a string")
            return _renamer(name)
        case _:
            raise TypeError("rename() takes 1 or 2 arguments but %d were given" % len(parameters))


def _renamer(name):
    def decorator(callable):
        return rename(callable, name)
    return rename(decorator, "rename")


def _freeze(object):
    # read-only view of containers; strings and scalars pass through
    if isinstance(object, Sequence) and not isinstance(object, (str, bytes, bytearray)):
        return tuple(object)
    if isinstance(object, Mapping):
        return MappingProxyType(object)
    if isinstance(object, Set):
        return frozenset(object)
    return object


def mirror(name, /):
    """
    Property returning a read-only view of self._{name}.

        class Shell:
            path = mirror("path")   # exposes self._path as a tuple
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _freeze(getattr(self, "_" + name))

    return property(getter)


Unset = UnsetType()


__all__ = (
    "coalesce",
    "rename",
    "mirror",
    "UnsetType",
    "Unset",
)
