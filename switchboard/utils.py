import functools
from typing import final


@final
class UnsetType:
    """
    marker for "argument not given" in the builder API.

    None and the empty string are meaningful inputs for some parameters, so the
    builder defaults use this marker instead. Only one instance ever exists.

    properties
    - falsy, prints as "Unset".
    - survives copy, deepcopy and pickle as the same object.
    - `str | Unset` and `Unset | str` build a union usable with isinstance().
    - cannot be subclassed.
    """
    __slots__ = ()

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __or__(self, other, /):
        try:
            return UnsetType | other
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | UnsetType
        except TypeError:
            return NotImplemented

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo, /):
        return self

    def __reduce__(self):
        # pickled by reference to the module attribute below
        return "Unset"

    def __init_subclass__(cls):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


Unset = UnsetType()


def nullify(object, default=None, /):
    """
    `default` when `object` is Unset, else `object` unchanged.
    """
    return default if object is Unset else object


def rename(x, /, name=None):
    """
    give a generated callable a readable __name__ and __qualname__.

    rename(function, name="value") renames in place and returns the function;
    rename("value") returns a decorator doing the same. Raises TypeError when
    the name is not a string.
    """
    if isinstance(x, str):
        return functools.partial(rename, name=x)
    if not isinstance(name, str):
        raise TypeError("callable name must be a string")
    x.__name__ = x.__qualname__ = name
    return x


__all__ = (
    "UnsetType",
    "Unset",
    "nullify",
    "rename",
)
