"""
Typed conversion helpers for parsed token maps.

A converter is any callable taking the parsed token map (field name -> trimmed text)
and returning typed parameters, raising on invalid input. record() assembles one from
per-field scalar converters; the scalar converters below cover the common shapes.

    >>> convert = record({"gym": string, "timer": number}, optional=("timer",))
    >>> dict(convert({"gym": "painted lot"}))
    {'gym': 'painted lot'}
"""
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from .utils import rename

_booleans = {
    "true": True, "yes": True, "on": True, "1": True,
    "false": False, "no": False, "off": False, "0": False,
}


def record(converters, /, optional=()):
    """
    Build a converter producing an immutable mapping of typed parameters.

    behavior
    - every key of 'converters' is converted from the token of the same name.
    - a missing token fails unless its key is listed in 'optional' (then it is omitted).
    - tokens without a converter are ignored.
    - a scalar converter fault is re-raised as ValueError naming the field.
    """
    if not isinstance(converters, Mapping):
        raise TypeError("record() first argument must be a mapping of names to converters")
    for name, converter in converters.items():
        if not isinstance(name, str):
            raise TypeError("record() converter names must be strings")
        if not callable(converter):
            raise TypeError(f"record() converter for {name!r} must be callable")
    if not isinstance(optional, Iterable) or isinstance(optional, str):
        raise TypeError("record() 'optional' must be an iterable of strings")
    if unknown := set(optional) - set(converters):
        raise ValueError(f"record() 'optional' names unknown fields: {', '.join(sorted(unknown))}")

    converters = dict(converters)
    optional = frozenset(optional)

    @rename("record")
    def convert(tokens, /):
        params = {}
        for name, converter in converters.items():
            if name not in tokens:
                if name in optional:
                    continue
                raise ValueError(f"missing required field {name!r}")
            try:
                params[name] = converter(tokens[name])
            except (TypeError, ValueError) as exception:
                raise ValueError(f"invalid {name!r}: {exception}") from exception
        return MappingProxyType(params)

    return convert


def string(value, /):
    if not isinstance(value, str):
        raise TypeError(f"{value!r} is not a string")
    return value


def number(value, /):
    """
    convert to int when integral, otherwise to float.
    """
    try:
        return int(value)
    except (TypeError, ValueError):
        pass
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{value!r} is not a number") from None


def boolean(value, /):
    """
    accept booleans and the case-insensitive words true/false, yes/no, on/off, 1/0.
    """
    if isinstance(value, bool):
        return value
    try:
        return _booleans[str(value).strip().lower()]
    except KeyError:
        raise ValueError(f"{value!r} is not a boolean") from None


def choice(*choices):
    """
    Build a converter accepting one of 'choices' (case-insensitive), returning the declared spelling.
    """
    if not choices or not all(isinstance(choice, str) for choice in choices):
        raise TypeError("choice() arguments must be one or more strings")
    lookup = {choice.casefold(): choice for choice in choices}

    @rename("choice")
    def convert(value, /):
        try:
            return lookup[string(value).casefold()]
        except KeyError:
            raise ValueError(f"{value!r} is not one of: {', '.join(choices)}") from None

    return convert


def delimited(delimiter=",", /, item=string):
    """
    Build a converter splitting text at 'delimiter' into a tuple of converted, non-empty items.
    """
    if not isinstance(delimiter, str) or not delimiter:
        raise TypeError("delimited() delimiter must be a non-empty string")
    if not callable(item):
        raise TypeError("delimited() 'item' must be callable")

    @rename("delimited")
    def convert(value, /):
        return tuple(item(part) for part in map(str.strip, string(value).split(delimiter)) if part)

    return convert


__all__ = (
    "record",
    "string",
    "number",
    "boolean",
    "choice",
    "delimited",
)
