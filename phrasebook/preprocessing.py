"""
Preprocessing: parse, convert, and bind a single input line.

Stages (each tags only its own failures)
1. parse: CommandParser.parse(); a parser fault is internal, no match is a parse failure.
2. converter: resolved from a fixed converter or a context-dependent factory; a factory
   fault is internal.
3. convert: converter(tokens) and the optional validator(params, context); faults are
   validate failures.
4. create: create(params, context) builds the PreprocessedCommand; faults are validate
   failures too (e.g. a declared value disagreeing with a looked-up one).

A PreprocessedCommand is created fresh per successful preprocess() call and owns its
execution counter; it is never shared across invocations.
"""
import logging

from .faults import (
    ConverterFactoryError,
    ExecutionError,
    FormatSelectionError,
    InvalidParametersError,
    MalformedCommandError,
    NotRepeatableError,
    RejectedParametersError,
    UnmatchedCommandError,
)
from .parsing import CommandParser
from .utils import IntrospectiveType, Unset

logger = logging.getLogger(__name__)


class CommandResult(metaclass=IntrospectiveType):
    """
    Outcome of a successful execution: command name, result value, and the resolved
    format. Text is not rendered yet; the same result can be rendered for several surfaces.
    """
    __introspectable__ = (
        "command",
        "value",
        "format",
    )
    __sealed__ = True

    def __new__(cls, command, value, format, /):
        if not isinstance(command, str):
            raise TypeError(f"{cls.__typename__} 'command' must be a string")
        if not isinstance(format, str):
            raise TypeError(f"{cls.__typename__} 'format' must be a string")
        self = super().__new__(cls)
        self._command = command
        self._value = value
        self._format = format
        return self

    @property
    def value(self):
        return self._value


class PreprocessedCommand(metaclass=IntrospectiveType):
    """
    Validated parameters and context bound to execute/format logic.

    Lifecycle
    - count starts at 0 and advances on every attempted execution.
    - a non-repeatable command refuses any execution after the first one.

    Format
    - either a fixed string, or a selector (params, context, value) -> str called after
      a successful execution; a selector fault is a format failure, not an execute one,
      since the business effect has already committed.
    """
    __introspectable__ = (
        "name",
        "repeatable",
        "count",
    )
    __displayable__ = (
        "name",
        "repeatable",
        "count",
        "params",
    )
    __sealed__ = True

    def __new__(cls, name, params, context=None, /, *, execute, format, repeatable=False):
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} 'name' must be a string")
        if not callable(execute):
            raise TypeError(f"{cls.__typename__} 'execute' must be callable")
        if not isinstance(format, str) and not callable(format):
            raise TypeError(f"{cls.__typename__} 'format' must be a string or a callable")

        self = super().__new__(cls)
        self._name = name
        self._params = params
        self._context = context
        self._execute = execute
        self._format = format
        self._repeatable = bool(repeatable)
        self._count = 0
        return self

    @property
    def params(self):
        return self._params

    @property
    def context(self):
        return self._context

    def execute(self):
        """
        Run the bound execution function and resolve the output format.

        Raises
        - NotRepeatableError: on a second execution of a non-repeatable command.
        - ExecutionError: when the execution function fails.
        - FormatSelectionError: when the format selector fails or returns a non-string.
        """
        if self._count > 0 and not self._repeatable:
            raise NotRepeatableError(f"command {self._name!r} cannot be repeated", command=self._name)
        self._count += 1

        try:
            value = self._execute(self._params, self._context)
        except Exception as exception:
            logger.debug("command %r failed to execute: %s", self._name, exception)
            raise ExecutionError(str(exception), command=self._name) from exception

        if isinstance(format := self._format, str):
            return CommandResult(self._name, value, format)

        try:
            format = self._format(self._params, self._context, value)
        except Exception as exception:
            logger.debug("command %r failed to select a format: %s", self._name, exception)
            raise FormatSelectionError(str(exception), command=self._name) from exception
        if not isinstance(format, str):
            raise FormatSelectionError(f"format selector of command {self._name!r} must return a string", command=self._name)

        return CommandResult(self._name, value, format)


class Preprocessor(metaclass=IntrospectiveType):
    """
    Parse-then-convert front end of a command.

    Variants
    - fixed: Preprocessor(parser, create, converter=convert)
    - contextual: Preprocessor(parser, create, factory=lambda context: convert)
    Exactly one of 'converter' or 'factory' must be given; both dispatch through preprocess().
    """
    __introspectable__ = (
        "parser",
        "variant",
    )

    def __new__(cls, parser, create, /, *, converter=Unset, factory=Unset, validator=Unset):
        if not isinstance(parser, CommandParser):
            raise TypeError(f"{cls.__typename__} 'parser' must be a command-parser")
        if not callable(create):
            raise TypeError(f"{cls.__typename__} 'create' must be callable")
        if (converter is Unset) == (factory is Unset):
            raise TypeError(f"{cls.__typename__} requires exactly one of 'converter' or 'factory'")
        if not callable(converter or factory):
            raise TypeError(f"{cls.__typename__} {'converter' if converter else 'factory'!r} must be callable")
        if validator is not Unset and not callable(validator):
            raise TypeError(f"{cls.__typename__} 'validator' must be callable")

        self = super().__new__(cls)
        self._parser = parser
        self._create = create
        self._variant = "fixed" if converter is not Unset else "contextual"
        self._converter = converter
        self._factory = factory
        self._validator = validator
        return self

    def _resolve_converter(self, context):
        if self._variant == "fixed":
            return self._converter
        try:
            converter = self._factory(context)
        except Exception as exception:
            raise ConverterFactoryError(str(exception)) from exception
        if not callable(converter):
            raise ConverterFactoryError(f"converter factory returned a non-callable {type(converter).__name__!r}")
        return converter

    def preprocess(self, text, context=None, /):
        """
        Turn one input line into a PreprocessedCommand.

        Raises
        - MismatchedCaptureError (internal): parser invariant broken.
        - UnmatchedCommandError (parse): the grammar does not match.
        - ConverterFactoryError (internal): the converter factory failed.
        - InvalidParametersError (validate): conversion or validation failed.
        - RejectedParametersError (validate): building the command failed.
        - MalformedCommandError (internal): 'create' returned something else.
        """
        if (tokens := self._parser.parse(text)) is None:
            raise UnmatchedCommandError("no match", input=text)

        converter = self._resolve_converter(context)

        try:
            params = converter(tokens)
            if self._validator:
                self._validator(params, context)
        except Exception as exception:
            logger.debug("input %r failed validation: %s", text, exception)
            raise InvalidParametersError(str(exception), input=text) from exception

        try:
            command = self._create(params, context)
        except Exception as exception:
            logger.debug("input %r was rejected: %s", text, exception)
            raise RejectedParametersError(str(exception), input=text) from exception

        if not isinstance(command, PreprocessedCommand):
            raise MalformedCommandError(f"'create' must return a preprocessed-command, got {type(command).__name__!r}")
        return command


__all__ = (
    "CommandResult",
    "PreprocessedCommand",
    "Preprocessor",
)
