"""
Grammar compilation and matching.

What this module provides
- ParserBuilder: a table of declared fields that compiles whitespace-delimited grammars
  (literal tokens and `{{name}}` / `{{name?}}` references) into a CommandParser.
- CommandParser: an anchored, compiled pattern plus the ordered names of its captures.

Construction rule (left to right)
- The pattern opens with `^\\s*` and closes with `\\s*$`.
- Every token after the first is preceded by a `\\s+` separator.
- Literals are inserted verbatim (authors own any pattern syntax they embed).
- A required field contributes its fragment wrapped in a capturing group, unless the
  field is embedded (its fragment already holds the capture).
- An optional field contributes `(?:<separator><fragment>)?`, so omitting the field also
  drops its separator.
- Every referenced field is recorded in the capture list, in textual order.

Matching
- No match is not a failure: parse() returns None so callers can tell "wrong command"
  from "broken command".
- A capture count that disagrees with the recorded names raises MismatchedCaptureError.
- Captures are trimmed; fields inside an optional group that did not participate are
  omitted rather than reported as empty.
"""
import logging
import re
from collections.abc import Iterable, Mapping

from .faults import MismatchedCaptureError
from .fields import Field
from .utils import IntrospectiveType, Unset, coalesce

logger = logging.getLogger(__name__)


def _resolve_field(cls, name, object):
    """
    Return the Field declared under 'name' (plain strings are shorthand for Field(pattern)).
    """
    if isinstance(object, str):
        return Field(object)
    if hasattr(object, "__field__") and callable(object.__field__):
        if not isinstance(field := object.__field__(), Field):
            raise TypeError("__field__() non-field returned")
        return field
    raise TypeError(f"{cls.__typename__} field {name!r} must be a field or a pattern string")


def _sanitize_fields(cls, fields, /):
    if isinstance(fields, Mapping):
        fields = fields.items()
    elif not isinstance(fields, Iterable) or isinstance(fields, str):
        raise TypeError(f"{cls.__typename__} 'fields' must be a mapping of names to fields")

    sanitized = {}
    for name, object in fields:
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} field names must be strings")
        elif not name.isidentifier():
            raise ValueError(f"{cls.__typename__} field name {name!r} must be an identifier")
        sanitized[name] = _resolve_field(cls, name, object)
    return sanitized


def _sanitize_tokens(cls, grammar, /):
    if isinstance(grammar, str):
        tokens = grammar.split()
    elif isinstance(grammar, Iterable):
        tokens = []
        for token in grammar:
            if not isinstance(token, str):
                raise TypeError(f"{cls.__typename__} grammar tokens must be strings")
            elif not (token := token.strip()):
                raise ValueError(f"{cls.__typename__} grammar tokens cannot be empty")
            tokens.append(token)
    else:
        raise TypeError(f"{cls.__typename__} grammar must be a string or an iterable of strings")

    if not tokens:
        raise ValueError(f"{cls.__typename__} grammar cannot be empty")
    return tokens


class CommandParser(metaclass=IntrospectiveType):
    """
    Compiled grammar: an anchored pattern and the ordered names of its captures.

    Usually produced by ParserBuilder.build(); constructing one directly is
    supported for hand-written patterns.
    """
    __introspectable__ = (
        "pattern",
        "captures",
        "grammar",
    )
    __displayable__ = (
        "grammar",
        "captures",
    )

    def __new__(cls, pattern, captures, /, grammar=Unset):
        if isinstance(pattern, str):
            try:
                pattern = re.compile(pattern)
            except re.error as exception:
                raise ValueError(f"{cls.__typename__} 'pattern' is not a valid expression: {exception}") from None
        elif not isinstance(pattern, re.Pattern):
            raise TypeError(f"{cls.__typename__} 'pattern' must be a string or a compiled pattern")

        if not isinstance(captures, Iterable) or isinstance(captures, str):
            raise TypeError(f"{cls.__typename__} 'captures' must be an iterable of strings")
        captures = tuple(captures)
        if not all(isinstance(name, str) for name in captures):
            raise TypeError(f"{cls.__typename__} 'captures' must be an iterable of strings")

        if not isinstance(grammar, str | Unset):
            raise TypeError(f"{cls.__typename__} 'grammar' must be a string")

        self = super().__new__(cls)
        self._pattern = pattern
        self._captures = captures
        self._grammar = coalesce(grammar, pattern.pattern)
        return self

    def parse(self, text, /):
        """
        Match 'text' against the compiled pattern.

        Returns
        - None when the pattern does not match.
        - dict[name, str] of trimmed captures otherwise (non-participating fields omitted).

        Raises
        - TypeError: when 'text' is not a string.
        - MismatchedCaptureError: when the match yields a different number of captures
          than names recorded at build time.
        """
        if not isinstance(text, str):
            raise TypeError("parse() argument must be a string")

        if not (match := self._pattern.match(text)):
            logger.debug("grammar %r did not match %r", self._grammar, text)
            return None

        if len(groups := match.groups()) != len(self._captures):
            raise MismatchedCaptureError(
                f"mismatched capture count: got {len(groups)}, expected {len(self._captures)}",
                title="mismatched capture count",
                hint="check that every field fragment declares its capturing groups",
            )

        return {name: value.strip() for name, value in zip(self._captures, groups) if value is not None}


class ParserBuilder(metaclass=IntrospectiveType):
    """
    Declared field table for compiling grammars.

    Fields may be passed as a mapping (or iterable of pairs) and/or as keywords;
    keywords win on collisions. Values are Field instances, objects with a
    __field__() hook, or plain pattern strings.
    """
    __introspectable__ = (
        "fields",
    )

    def __new__(cls, fields=(), /, **kwargs):
        self = super().__new__(cls)
        self._fields = _sanitize_fields(cls, fields) | _sanitize_fields(cls, kwargs)
        return self

    def build(self, grammar, /):
        """
        Compile a grammar into a CommandParser.

        Parameters
        - grammar: whitespace-delimited string or an iterable of tokens.

        Raises
        - ValueError: on an unrecognized or malformed property reference, a property referenced twice,
          or a pattern whose capturing groups disagree with the recorded captures
          (e.g., a literal token smuggling a capturing group).
        """
        tokens = _sanitize_tokens(type(self), grammar)
        typename = type(self).__typename__

        source = [r"^\s*"]
        captures = []
        for index, token in enumerate(tokens):
            separator = r"\s+" if index else ""

            if not (token.startswith("{{") and token.endswith("}}") and len(token) > 4):
                if "{{" in token or "}}" in token:
                    raise ValueError(f"{typename} malformed property reference {token!r} in grammar {' '.join(tokens)!r}")
                source.append(separator + token)
                continue

            name = token[2:-2]
            if forced := name.endswith("?"):
                name = name[:-1]
            try:
                field = self._fields[name]
            except KeyError:
                raise ValueError(f"{typename} unrecognized property {name!r} in grammar {' '.join(tokens)!r}") from None
            if name in captures:
                raise ValueError(f"{typename} property {name!r} is referenced more than once")
            if forced:
                field = field.optionalize()

            fragment = f"(?:{field.pattern})" if field.embedded else f"({field.pattern})"
            if field.optional:
                source.append(f"(?:{separator}{fragment})?")
            else:
                source.append(separator + fragment)
            captures.append(name)
        source.append(r"\s*$")

        try:
            pattern = re.compile("".join(source))
        except re.error as exception:
            raise ValueError(f"{typename} grammar {' '.join(tokens)!r} is not a valid expression: {exception}") from None

        if pattern.groups != len(captures):
            raise ValueError(
                f"{typename} grammar {' '.join(tokens)!r} yields {pattern.groups} captures for {len(captures)} properties"
            )

        logger.debug("compiled grammar %r into %r", " ".join(tokens), pattern.pattern)
        return CommandParser(pattern, captures, grammar=" ".join(tokens))


__all__ = (
    "CommandParser",
    "ParserBuilder",
)
