"""
Phrasebook faults (pipeline failures) and rendering.

Scope
- FailureDetail: the closed set of pipeline stages a failure can be attributed to
  (internal, parse, validate, execute, format).
- FaultCode: canonical, stable numeric identifiers for every fault. Codes are grouped
  by stage so the stage is recoverable from the number alone (see FaultCode.detail).
- CommandException: base type that carries message + options and knows how to render
  itself in a friendly, lowercased, and actionable way.
- trigger(): central entry point to surface any fault (respecting shell/fancy/colorful).
- getdoc(): optional description lookup for a code from the host application.

Policy per stage
- internal: framework defect, never expected in a correct setup.
- parse: not an error to the end user, just "try a different command".
- validate: the user must correct the input; never retried automatically.
- execute: business failure; retrying is the caller's decision.
- format: rendering-only, safe to retry since the business effect already committed.

Integration
- Pipeline code raises the stage-specific subclass; collaborator exceptions are chained
  with `raise ... from exception` so the original traceback survives.
- In non-shell mode trigger() raises; in shell mode faults are rendered via rich.
"""
import re
from collections import defaultdict
from enum import IntEnum, StrEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset, coalesce

console = Console(stderr=True)


class FailureDetail(StrEnum):
    """
    pipeline stage a failure is attributed to.

    each stage tags only its own failures; higher layers forward the tag unchanged.
    """
    INTERNAL = "internal"
    PARSE = "parse"
    VALIDATE = "validate"
    EXECUTE = "execute"
    FORMAT = "format"


class FaultCode(IntEnum):
    """
    canonical fault codes used across the pipeline (stable identifiers).

    grouping (by thousands)
    - 10xxx: aggregate and configuration faults (no pipeline stage)
      • NO_COMMAND_MATCHED, AMBIGUOUS_COMMAND, MISSING_FORMATTER, UNFORMATTABLE_RESULT
    - 11xxx: internal
      • MISMATCHED_CAPTURE, CONVERTER_FACTORY, MALFORMED_COMMAND
    - 12xxx: parse
      • UNMATCHED_COMMAND
    - 13xxx: validate
      • INVALID_PARAMETERS, REJECTED_PARAMETERS
    - 14xxx: execute
      • EXECUTION_FAILED, NOT_REPEATABLE
    - 15xxx: format
      • FORMAT_SELECTION, RENDER_FAILED

    normalize() allows host remapping to custom labels while keeping code-stability.
    """
    # --- aggregate/configuration (10xxx) ---
    NO_COMMAND_MATCHED          = 10101
    AMBIGUOUS_COMMAND           = 10102
    MISSING_FORMATTER           = 10111
    UNFORMATTABLE_RESULT        = 10121

    # --- internal (11xxx) ---
    MISMATCHED_CAPTURE          = 11101
    CONVERTER_FACTORY           = 11102
    MALFORMED_COMMAND           = 11103

    # --- parse (12xxx) ---
    UNMATCHED_COMMAND           = 12101

    # --- validate (13xxx) ---
    INVALID_PARAMETERS          = 13101
    REJECTED_PARAMETERS         = 13102

    # --- execute (14xxx) ---
    EXECUTION_FAILED            = 14101
    NOT_REPEATABLE              = 14102

    # --- format (15xxx) ---
    FORMAT_SELECTION            = 15101
    RENDER_FAILED               = 15102

    @property
    def detail(self):
        """
        the pipeline stage encoded by this code, or None for aggregate/configuration faults.
        """
        return {
            11: FailureDetail.INTERNAL,
            12: FailureDetail.PARSE,
            13: FailureDetail.VALIDATE,
            14: FailureDetail.EXECUTE,
            15: FailureDetail.FORMAT,
        }.get(self.value // 1000)

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class CommandException(Exception):
    """
    base fault carrying a message, a stable code, and free-form rendering options.

    options
    - code: overrides the class default code (see __fault__).
    - title, hint: header title and hint line in rendered output.
    - command: name of the command the fault belongs to (shown in the header).
    - shell, fancy, colorful, ratio: rendering/runtime switches consumed by trigger().
    - any other context (input, failures, candidates, ...) is kept for callers.
    """
    __fault__ = Unset

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(coalesce(message, ""))
        self.message = coalesce(message, "")
        self.options = MappingProxyType(options)

    @property
    def code(self):
        return self.options.get("code", type(self).__fault__)

    @property
    def detail(self):
        return self.code.detail if self.code else None

    def __rich__(self):
        main = __import__("__main__")
        options = defaultdict(bool, self.options)

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        } | getattr(main, "__styles__", {}))

        def styler(style):
            return styles[style] if options["colorful"] else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not options["colorful"]:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        prog = text(getattr(main, "__prog__", options["command"] or "phrasebook"), styler("prog-name"))
        title = options["title"] or re.sub(r"(?<!^)(?=[A-Z])", " ", type(self).__name__).lower()

        header = Text.assemble(
            "[ ",
            prog,
            " — ",
            text(self.code.normalize() if self.code else "-", styler("code")),
            " | ",
            text(title.title(), styler("error-title")),
            " ]"
        )
        message = text(self.message, styler("error-message"))
        renders = [message]
        if options["hint"]:
            renders.append(Text.assemble(text(" → ", styler("hint-arrow")), text(options["hint"], styler("hint"))))

        if options["fancy"]:
            width = console.width - 4
            try:
                width = int(width * self.options["ratio"])
            except KeyError:
                width = None
            return Panel(Group(*renders), title=header, title_align="left", width=width)

        return Group(header, *renders)

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self
        console.print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        replaced = type(self)(self.message, **{**self.options, **overrides})
        replaced.__cause__ = self.__cause__
        return replaced


class NoCommandMatchedError(CommandException):
    __fault__ = FaultCode.NO_COMMAND_MATCHED
class AmbiguousCommandError(CommandException):
    __fault__ = FaultCode.AMBIGUOUS_COMMAND
class MissingFormatterError(CommandException):
    __fault__ = FaultCode.MISSING_FORMATTER
class UnformattableResultError(CommandException):
    __fault__ = FaultCode.UNFORMATTABLE_RESULT
class MismatchedCaptureError(CommandException):
    __fault__ = FaultCode.MISMATCHED_CAPTURE
class ConverterFactoryError(CommandException):
    __fault__ = FaultCode.CONVERTER_FACTORY
class MalformedCommandError(CommandException):
    __fault__ = FaultCode.MALFORMED_COMMAND
class UnmatchedCommandError(CommandException):
    __fault__ = FaultCode.UNMATCHED_COMMAND
class InvalidParametersError(CommandException):
    __fault__ = FaultCode.INVALID_PARAMETERS
class RejectedParametersError(CommandException):
    __fault__ = FaultCode.REJECTED_PARAMETERS
class ExecutionError(CommandException):
    __fault__ = FaultCode.EXECUTION_FAILED
class NotRepeatableError(CommandException):
    __fault__ = FaultCode.NOT_REPEATABLE
class FormatSelectionError(CommandException):
    __fault__ = FaultCode.FORMAT_SELECTION
class RenderError(CommandException):
    __fault__ = FaultCode.RENDER_FAILED


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see CommandException).
    - options are merged into the fault via __replace__(**options) before triggering.
    - in shell mode, rendering happens via rich console; otherwise, the fault is raised.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    fault.__replace__(**options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ where keys
    are FaultCode instances and values are short documentation strings.
    when not found, returns None.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "CommandException",
    "NoCommandMatchedError",
    "AmbiguousCommandError",
    "MissingFormatterError",
    "UnformattableResultError",
    "MismatchedCaptureError",
    "ConverterFactoryError",
    "MalformedCommandError",
    "UnmatchedCommandError",
    "InvalidParametersError",
    "RejectedParametersError",
    "ExecutionError",
    "NotRepeatableError",
    "FormatSelectionError",
    "RenderError",
    "FailureDetail",
    "FaultCode",
    "trigger",
    "getdoc",
)
