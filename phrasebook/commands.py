"""
Phrasebook command layer: declare, run, and render text commands.

What this module provides
- Command: binds a grammar, a converter, an execution callback and a format into one
  immutable object with a uniform contract:
  • preprocess(text, context): parse + convert into a PreprocessedCommand.
  • execute(text, context): preprocess, then execute; failures keep their stage.
  • format(outcome, renderer): render a CommandResult (failures forward their message).
  • get_default_formatter(target): per-surface renderer lookup.
- CommandHelp: static help data (description, usage, examples, footer) renderable via rich.
- command(...): create a Command or a decorator that produces one.
- invoke(obj, prompt): convenience runner for a Command or a CommandGroup.

Quick start
    from phrasebook import command, invoke
    from phrasebook.converters import record, string, number
    from phrasebook.renderers import DEFAULTS

    @command(
        grammar="!add {{gym}} in {{timer}}",
        fields={"gym": r"\\w+(?:\\s|\\w)*", "timer": r"\\d?\\d"},
        converter=record({"gym": string, "timer": number}),
        format="raid at {gym} starts in {timer} minutes",
        formatters=DEFAULTS,
        examples=("!add painted lot in 30",),
    )
    def add(params, context):
        return params

    invoke(add, "!add painted lot in 30")  # 'raid at painted lot starts in 30 minutes'

Design notes
- The callback receives (params, context) and returns the result value.
- Commands are immutable after construction; a fresh PreprocessedCommand is created
  for every successful preprocess() and owns its execution counter.
"""
import inspect
import logging
from collections.abc import Iterable, Mapping
from types import MappingProxyType

from rich.console import Group
from rich.text import Text

from .faults import *
from .parsing import CommandParser, ParserBuilder
from .preprocessing import CommandResult, PreprocessedCommand, Preprocessor
from .utils import *

logger = logging.getLogger(__name__)


def _process_iterables(cls, metadata, names, /):
    """
    Normalize iterable-of-string/Text metadata fields into tuples.

    - A plain string (or Text) counts as a single item.
    - Strings are trimmed; empty strings and duplicates are rejected.
    """
    for name in names:
        if isinstance(object := metadata[name], str | Text):
            object = (object,)
        if not isinstance(object, Iterable):
            raise TypeError(f"{cls.__typename__} {name!r} must be an iterable of strings")
        sanitized = []
        for item in object:
            if not isinstance(item, str | Text):
                raise TypeError(f"{cls.__typename__} {name!r} must be an iterable of strings")
            elif isinstance(item, str) and not (item := item.strip()):
                raise ValueError(f"{cls.__typename__} {name!r} must be an iterable of non-empty strings")
            elif str(item) in map(str, sanitized):
                raise ValueError(f"{cls.__typename__} {name!r} cannot contain duplicates")
            sanitized.append(item)
        metadata[name] = tuple(sanitized)


class CommandHelp(metaclass=IntrospectiveType):
    """
    Pure help data of a command.

    Sections, in rendering order: description, usage, examples, footer. Each getter
    returns a fresh list, so callers can extend it without touching the command.
    """
    __introspectable__ = (
        "description",
        "usage",
        "examples",
        "footer",
    )
    __sealed__ = True

    def __new__(cls, description=(), usage=(), examples=(), footer=()):
        metadata = {
            "description": description,
            "usage": usage,
            "examples": examples,
            "footer": footer,
        }
        _process_iterables(cls, metadata, metadata.keys())

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self

    def get_description(self):
        return list(self._description)

    def get_usage(self):
        return list(self._usage)

    def get_examples(self):
        return list(self._examples)

    def get_footer(self):
        return list(self._footer)

    def get_help_text(self):
        return [*self._description, *self._usage, *self._examples, *self._footer]

    def __rich__(self):
        """
        Render help as a block: description, usage lines, examples, footer.

        Palette keys (overridable via __styles__ in __main__)
        - help-description, help-usage, help-example-arrow, help-example, help-footer
        """
        styles = {
            "help-description": "#C8C8D0",
            "help-usage": "bold #00E5FF",
            "help-example-arrow": "#9CE19C dim",
            "help-example": "italic #9CE19C",
            "help-footer": "dim #C8C8D0",
        } | getattr(__import__("__main__"), "__styles__", {})

        def text(fragment, style):
            return fragment if isinstance(fragment, Text) else Text(str(fragment), styles.get(style, ""))

        renders = [text(line, "help-description") for line in self._description]
        renders += [text(line, "help-usage") for line in self._usage]
        renders += [
            Text.assemble(text(" → ", "help-example-arrow"), text(line, "help-example")) for line in self._examples
        ]
        renders += [text(line, "help-footer") for line in self._footer]
        return Group(*renders)


def _process_callback(cls, metadata):
    if not callable(metadata["callback"]):
        raise TypeError(f"{cls.__typename__} 'callback' must be callable")


def _process_strings(cls, metadata):
    """
    Normalize scalar string metadata fields (name, descr): trimmed, non-empty, or None when Unset.
    """
    for name in ("name", "descr"):
        if not isinstance(object := metadata[name], str | Unset):
            raise TypeError(f"{cls.__typename__} {name!r} must be a string")
        elif isinstance(object, str) and not (object := object.strip()):
            raise ValueError(f"{cls.__typename__} {name!r} cannot be empty")
        metadata[name] = coalesce(object)

    if metadata["name"] is None:
        raise TypeError(f"{cls.__typename__} 'name' must be given for callbacks without a __name__")


def _process_grammar(cls, metadata):
    """
    Resolve 'grammar' into a CommandParser (compiling strings/token lists with 'fields').
    """
    if isinstance(grammar := metadata["grammar"], CommandParser):
        return
    if grammar is Unset:
        raise TypeError(f"{cls.__typename__} 'grammar' must be specified")
    if not isinstance(grammar, str | Iterable):
        raise TypeError(f"{cls.__typename__} 'grammar' must be a string or a command-parser")
    metadata["grammar"] = ParserBuilder(metadata.pop("fields")).build(grammar)


def _process_examples(cls, metadata):
    for example in metadata["examples"]:
        if metadata["grammar"].parse(example) is None:
            raise ValueError(f"{cls.__typename__} example {example!r} does not match its grammar")


def _process_format(cls, metadata):
    if not isinstance(format := metadata["format"], str) and not callable(format):
        raise TypeError(f"{cls.__typename__} 'format' must be a string or a callable")


def _process_formatters(cls, metadata):
    if isinstance(formatters := metadata["formatters"], Mapping):
        for target, renderer in formatters.items():
            if not isinstance(target, str):
                raise TypeError(f"{cls.__typename__} 'formatters' targets must be strings")
            if not callable(renderer):
                raise TypeError(f"{cls.__typename__} 'formatters' renderer for {target!r} must be callable")
        metadata["formatters"] = MappingProxyType(dict(formatters))
    elif formatters is not Unset and not callable(formatters):
        raise TypeError(f"{cls.__typename__} 'formatters' must be a mapping or a callable")


def _passthrough(tokens, /):
    return MappingProxyType(dict(tokens))


class Command(metaclass=IntrospectiveType):
    """
    Named, immutable text command.

    Responsibilities
    - Identity and help: name, descr, usage, examples, footer (see CommandHelp).
    - Preprocessing: a Preprocessor bound to the compiled grammar and the converter
      (fixed 'converter' or context-dependent 'factory'; tokens pass through as an
      immutable mapping when neither is given) plus an optional cross-field 'validator'.
    - Execution: the callback (params, context) -> value, run by a PreprocessedCommand.
    - Formatting: 'format' is a fixed string or a selector (params, context, value) -> str;
      'formatters' resolves renderers per output surface.
    """
    __introspectable__ = (
        "name",
        "descr",
        "usage",
        "examples",
        "footer",
        "grammar",
        "repeatable",
        "formatters",
    )
    __displayable__ = (
        "name",
        "descr",
        "grammar",
        "repeatable",
    )

    def __new__(
            cls,
            callback,
            /,
            name=Unset,
            grammar=Unset,
            fields=(),
            format="{value}",
            *,
            converter=Unset,
            factory=Unset,
            validator=Unset,
            repeatable=False,
            descr=Unset,
            usage=(),
            examples=(),
            footer=(),
            formatters=Unset
    ):
        """
        Construct a Command from an execution callback.

        Parameters
        - callback: Callable[[params, context], value]
        - name: defaults to callback.__name__.
        - grammar: str | Iterable[str] compiled with 'fields', or a ready CommandParser.
        - fields: mapping of field names to Field or pattern strings.
        - format: str or Callable[[params, context, value], str].
        - converter / factory: fixed converter, or factory(context) -> converter (at most one).
        - validator: Callable[[params, context], None], raising on invalid parameters.
        - repeatable: whether a preprocessed instance may execute more than once.
        - descr: defaults to the callback docstring.
        - usage, examples, footer: help lines; every example must match the grammar.
        - formatters: Mapping[target, renderer] or Callable[[target], renderer].

        Raises
        - TypeError/ValueError on invalid metadata, grammar, or field declarations.
        """
        metadata = {
            "callback": callback,
            "name": coalesce(name, getattr(callback, "__name__", Unset)),
            "descr": coalesce(descr, inspect.getdoc(callback) or Unset),
            "grammar": grammar,
            "fields": fields,
            "format": format,
            "repeatable": bool(repeatable),
            "usage": usage,
            "examples": examples,
            "footer": footer,
            "formatters": formatters,
        }
        _process_callback(cls, metadata)
        _process_strings(cls, metadata)
        _process_iterables(cls, metadata, ("usage", "examples", "footer"))
        _process_grammar(cls, metadata)
        _process_examples(cls, metadata)
        _process_format(cls, metadata)
        _process_formatters(cls, metadata)
        metadata.pop("fields", None)

        self = super().__new__(cls)
        self._callback = metadata.pop("callback")
        for name, object in metadata.items():
            setattr(self, "_" + name, object)

        if converter is Unset and factory is Unset:
            converter = _passthrough
        self._preprocessor = Preprocessor(
            self._grammar, self._create, converter=converter, factory=factory, validator=validator
        )
        self._help = CommandHelp(
            (self._descr,) if self._descr else (), self._usage, self._examples, self._footer
        )
        return self

    @property
    def help(self):
        return self._help

    def _create(self, params, context):
        return PreprocessedCommand(
            self._name,
            params,
            context,
            execute=self._callback,
            format=self._format,
            repeatable=self._repeatable,
        )

    def preprocess(self, text, context=None, /):
        """
        Parse and convert 'text' into a PreprocessedCommand (see Preprocessor.preprocess).
        """
        return self._preprocessor.preprocess(text, context)

    def execute(self, text, context=None, /):
        """
        Preprocess 'text' and execute the result once.

        Preprocess failures propagate with their stage unchanged; execution and
        format-selection failures come from PreprocessedCommand.execute().
        """
        return self.preprocess(text, context).execute()

    def format(self, outcome, renderer, /):
        """
        Render an execution outcome with 'renderer' (format, value) -> str.

        Parameters
        - outcome: CommandResult, or the CommandException of a failed run.

        Raises
        - UnformattableResultError: when 'outcome' is a failure; carries its message, no stage.
        - RenderError: when the renderer fails or returns a non-string.
        """
        if not callable(renderer):
            raise TypeError("format() second argument must be callable")
        if isinstance(outcome, CommandException):
            raise UnformattableResultError(outcome.message, command=self._name) from outcome
        if not isinstance(outcome, CommandResult):
            raise TypeError("format() first argument must be a command-result or a command-exception")

        try:
            text = renderer(outcome.format, outcome.value)
        except Exception as exception:
            logger.debug("command %r failed to render %r: %s", self._name, outcome.format, exception)
            raise RenderError(str(exception), command=self._name) from exception
        if not isinstance(text, str):
            raise RenderError(f"renderer of command {self._name!r} must return a string", command=self._name)
        return text

    def get_default_formatter(self, target, /):
        """
        Resolve the renderer for output surface 'target'.

        Raises
        - MissingFormatterError: no formatter factory configured, unknown target, or
          the factory failed / returned a non-callable.
        """
        if not isinstance(target, str):
            raise TypeError("get_default_formatter() argument must be a string")

        if (formatters := self._formatters) is Unset:
            raise MissingFormatterError(f"command {self._name!r} has no formatter factory", command=self._name)

        if isinstance(formatters, Mapping):
            try:
                return formatters[target]
            except KeyError:
                raise MissingFormatterError(
                    f"command {self._name!r} has no formatter for target {target!r}", command=self._name
                ) from None

        try:
            renderer = formatters(target)
        except Exception as exception:
            raise MissingFormatterError(str(exception), command=self._name) from exception
        if not callable(renderer):
            raise MissingFormatterError(
                f"command {self._name!r} has no formatter for target {target!r}", command=self._name
            )
        return renderer

    def get_help_text(self):
        return self._help.get_help_text()


def command(source=Unset, /, *args, **kwargs):
    """
    Create a Command or return a decorator to build it later.

    Invocation modes
    - Direct: command(func, name="x", grammar=..., ...) -> Command
    - Decorator:
        @command(grammar=..., ...)
        def func(params, context): ...
    """
    @rename("command")
    def wrapper(source, /):
        if not callable(source):
            raise TypeError("@command() must be applied to a callable")
        return Command(source, *args, **kwargs)

    return wrapper(source) if source is not Unset else wrapper


def invoke(object, prompt, context=None, /, *, surface="text", shell=False, fancy=False, colorful=False):
    """
    Convenience runner: execute one line and render it for 'surface'.

    Parameters
    - object: a Command (execute) or a command group (process_one).
    - prompt: the input line.
    - context: request-time context handed to converters and callbacks.
    - surface: target passed to get_default_formatter().
    - shell/fancy/colorful: fault surfacing options (see faults.trigger).

    Returns
    - the rendered text, or None when a fault was printed in shell mode.
    """
    if not isinstance(prompt, str):
        raise TypeError("invoke() second argument must be a string")

    try:
        if isinstance(object, Command):
            target, result = object, object.execute(prompt, context)
        elif hasattr(object, "process_one") and callable(object.process_one):
            result = object.process_one(prompt, context)
            target = object[result.command]
        else:
            raise TypeError("invoke() first argument must be a command or a command group")
        return target.format(result, target.get_default_formatter(surface))
    except CommandException as fault:
        trigger(fault, shell=shell, fancy=fancy, colorful=colorful)


__all__ = (
    "Command",
    "CommandHelp",
    "command",
    "invoke",
)
