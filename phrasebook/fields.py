"""
Field descriptors: named placeholders substitutable within a grammar.

A Field pairs a matching fragment (a regular expression) with two flags:
- optional: the field may be omitted from the input line; its leading separator
  disappears with it.
- embedded: the fragment already contains exactly one capturing group, which is
  the value recorded for the field. Otherwise the fragment must contain none and
  the grammar compiler wraps it in a group of its own.

Both rules are checked here, at declaration time, so that a compiled grammar can
never silently disagree with its capture list.

FRAGMENTS holds reusable fragments for common token shapes (names, comma-separated
lists, timers, clock times, raid tiers and tier ranges); it can be handed directly to
ParserBuilder. Every entry is a pattern string except "tier", an embedded Field whose
capture is the bare tier digits.
"""
import re
from types import MappingProxyType

from .utils import IntrospectiveType


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: validate the matching fragment against the embedded flag.

    Raises
    - TypeError: when 'pattern' is not a string.
    - ValueError: when 'pattern' is empty, does not compile, or its capturing
      group count disagrees with 'embedded' (exactly one when embedded, none otherwise).
    """
    if not isinstance(pattern := metadata["pattern"], str):
        raise TypeError(f"{cls.__typename__} 'pattern' must be a string")
    elif not pattern.strip():
        raise ValueError(f"{cls.__typename__} 'pattern' cannot be empty")

    try:
        groups = re.compile(pattern).groups
    except re.error as exception:
        raise ValueError(f"{cls.__typename__} 'pattern' is not a valid expression: {exception}") from None

    if metadata["embedded"] and groups != 1:
        raise ValueError(f"{cls.__typename__} embedded 'pattern' must contain exactly one capturing group, got {groups}")
    if not metadata["embedded"] and groups:
        raise ValueError(f"{cls.__typename__} 'pattern' with capturing groups must be declared embedded")


class Field(metaclass=IntrospectiveType):
    """
    Immutable declaration of one grammar placeholder.

    Properties
    - pattern: the matching fragment.
    - optional: whether the field may be absent from the input.
    - embedded: whether the fragment carries its own capturing group.
    """
    __introspectable__ = (
        "pattern",
        "optional",
        "embedded",
    )
    __sealed__ = True

    def __new__(cls, pattern, /, optional=False, embedded=False):
        metadata = {
            "pattern": pattern,
            "optional": bool(optional),
            "embedded": bool(embedded),
        }
        _sanitize_metadata(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self

    def __eq__(self, other):
        if not isinstance(other, Field):
            return NotImplemented
        return (self.pattern, self.optional, self.embedded) == (other.pattern, other.optional, other.embedded)

    def __hash__(self):
        return hash((self.pattern, self.optional, self.embedded))

    def __field__(self):
        """
        Introspection hook: identify this object as a Field.
        """
        return self

    def optionalize(self):
        """
        Return a copy of this field forced to optional (the `{{name?}}` form).
        """
        if self.optional:
            return self
        return Field(self.pattern, optional=True, embedded=self.embedded)


_names = r"\w+(?:\s|\w|`|'|-|\.)*"
_alpha_names = r"[a-zA-Z]+(?:\s|[a-zA-Z])*"
_tier = r"(?:(?:L|T|l|t)?\d)"
_min_tier = rf"(?:{_tier}\s*(?:[+-]))"
_max_tier = rf"(?:-)(?:{_tier})"
_tier_min_max = rf"(?:{_tier}\s*-\s*{_tier})"

FRAGMENTS = MappingProxyType({
    "name": r"\w+",
    "names": _names,
    "alpha_name": r"[a-zA-Z]+",
    "alpha_names": _alpha_names,
    "csv": rf"(?:{_names})(?:,\s*{_names})*",
    "alpha_csv": rf"(?:{_alpha_names})(?:,\s*{_alpha_names})*",
    "number": r"[-+]?\d+(?:\.\d+)?",
    "timer": r"\d?\d",
    "time": r"(?:\d?\d):?(?:\d\d)\s*(?:a|A|am|AM|p|P|pm|PM)?",
    "tier": Field(r"(?:(?:L|T|l|t)?(\d+))", embedded=True),
    "min_tier": _min_tier,
    "max_tier": _max_tier,
    "tier_min_max": _tier_min_max,
    "tier_range": rf"(?:{_tier}|{_min_tier}|{_max_tier}|{_tier_min_max})",
})


__all__ = (
    "Field",
    "FRAGMENTS",
)
