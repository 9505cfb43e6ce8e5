"""
Default renderers: (format, value) -> text for each output surface.

Formats are str.format templates whose placeholders are looked up on the result value:
`{value}` is the whole value, any other name is a mapping key or an attribute of it.
Formats may carry rich console markup ("[bold]{gym}[/bold]"); substituted strings are
escaped after any format spec is applied, so user data never turns into markup
(whatever its type).

Surfaces
- text: markup stripped, plain text.
- markup: rich console markup preserved (for hosts printing through rich).
- ansi: markup rendered to ANSI escape sequences.
"""
from collections.abc import Mapping
from types import MappingProxyType

from rich.console import Console
from rich.markup import escape
from rich.text import Text


class _Escaped:
    """Substituted value whose formatted text is always markup-escaped."""

    def __init__(self, object):
        self._object = object

    def __format__(self, spec):
        return escape(format(self._object, spec))

    def __str__(self):
        return escape(str(self._object))

    def __repr__(self):
        return escape(repr(self._object))

    def __getattr__(self, name):
        return _Escaped(getattr(self._object, name))

    def __getitem__(self, key):
        return _Escaped(self._object[key])


class _Placeholders:
    def __init__(self, value):
        self._value = value

    def __getitem__(self, key):
        if key == "value":
            object = self._value
        elif isinstance(self._value, Mapping) and key in self._value:
            object = self._value[key]
        else:
            try:
                object = getattr(self._value, key)
            except AttributeError:
                raise KeyError(key) from None
        return _Escaped(object)


def markup(format, value, /):
    if not isinstance(format, str):
        raise TypeError("markup() first argument must be a string")
    return format.format_map(_Placeholders(value))


def text(format, value, /):
    return Text.from_markup(markup(format, value)).plain


def ansi(format, value, /):
    console = Console(force_terminal=True, color_system="truecolor", highlight=False, soft_wrap=True)
    with console.capture() as capture:
        console.print(Text.from_markup(markup(format, value)), end="")
    return capture.get()


DEFAULTS = MappingProxyType({
    "text": text,
    "markup": markup,
    "ansi": ansi,
})


__all__ = (
    "text",
    "markup",
    "ansi",
    "DEFAULTS",
)
