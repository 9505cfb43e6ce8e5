"""
Command groups: one input line evaluated against many commands.

Strategies (members always evaluated in registration order)
- validate_all: preprocess every member; outcomes of grammar-matching members.
- process_all: execute every member; outcomes of grammar-matching members.
- process_first: the first grammar-matching member that executes successfully wins;
  later members are never evaluated. Failures before it are buffered and reported
  (newline-joined) only when nothing succeeds.
- process_one: exactly one member may match the grammar; several matches are an
  ambiguity and nothing executes.

Outcome lists hold either the success value (PreprocessedCommand or CommandResult) or
the CommandException instance. Grammar non-matches are excluded everywhere, and internal
faults propagate immediately from every strategy.

The optional prefix is a cheap pre-filter for hosts (could_be_command); the strategies
never consult it.
"""
import logging

from .commands import Command
from .faults import (
    AmbiguousCommandError,
    CommandException,
    FailureDetail,
    NoCommandMatchedError,
    UnmatchedCommandError,
)
from .utils import IntrospectiveType, Unset, coalesce

logger = logging.getLogger(__name__)


class CommandGroup(metaclass=IntrospectiveType):
    """
    Ordered collection of uniquely named commands sharing one input line.

    Container protocol
    - len(group), iter(group) (registration order), group[name], name in group.
    """
    __introspectable__ = (
        "prefix",
    )
    __displayable__ = (
        "prefix",
        "commands",
    )

    def __new__(cls, commands=(), /, prefix=Unset):
        """
        Build a group from an initial batch of commands.

        The batch is all-or-nothing: any duplicate name or non-command fails the
        whole construction.
        """
        if not isinstance(prefix, str | Unset):
            raise TypeError(f"{cls.__typename__} 'prefix' must be a string")
        elif isinstance(prefix, str) and not (prefix := prefix.strip()):
            raise ValueError(f"{cls.__typename__} 'prefix' cannot be empty")

        self = super().__new__(cls)
        self._prefix = coalesce(prefix)
        self._commands = {}
        for command in commands:
            self.add_command(command)
        return self

    @property
    def commands(self):
        return tuple(self._commands.values())

    @property
    def num_commands(self):
        return len(self._commands)

    def __len__(self):
        return len(self._commands)

    def __iter__(self):
        return iter(tuple(self._commands.values()))

    def __contains__(self, name):
        return name in self._commands

    def __getitem__(self, name):
        return self._commands[name]

    def add_command(self, command, /):
        """
        Register 'command' after the existing members.

        Raises
        - TypeError: when 'command' is not a Command.
        - ValueError: when a member with the same name already exists.
        """
        if not isinstance(command, Command):
            raise TypeError(f"{type(self).__typename__} members must be commands")
        if command.name in self._commands:
            raise ValueError(f"{type(self).__typename__} duplicate command name {command.name!r}")
        self._commands[command.name] = command
        return command

    def could_be_command(self, text, /):
        """
        Cheap pre-filter: whether 'text' starts with the group prefix followed by
        whitespace or the end of the text. Always True without a prefix.
        """
        if not isinstance(text, str):
            raise TypeError("could_be_command() argument must be a string")
        if self._prefix is None:
            return True
        text = text.strip()
        return text == self._prefix or (text.startswith(self._prefix) and text[len(self._prefix)].isspace())

    def _evaluate(self, operation, /):
        outcomes = []
        for command in self:
            try:
                outcomes.append((command, operation(command)))
            except UnmatchedCommandError:
                continue
            except CommandException as fault:
                if fault.detail is FailureDetail.INTERNAL:
                    raise
                outcomes.append((command, fault))
        return outcomes

    def validate_all(self, text, context=None, /):
        """
        Preprocess 'text' against every member; returns one outcome per grammar match.
        """
        return [outcome for _, outcome in self._evaluate(lambda command: command.preprocess(text, context))]

    def process_all(self, text, context=None, /):
        """
        Execute 'text' against every member; returns one outcome per grammar match.
        """
        return [outcome for _, outcome in self._evaluate(lambda command: command.execute(text, context))]

    def process_first(self, text, context=None, /):
        """
        Return the result of the first member that matches and executes successfully.

        Raises
        - NoCommandMatchedError: when no member succeeds; the message lists every
          buffered failure, newline-joined, and options["failures"] holds them.
        """
        failures = []
        for command in self:
            try:
                result = command.execute(text, context)
            except UnmatchedCommandError:
                continue
            except CommandException as fault:
                if fault.detail is FailureDetail.INTERNAL:
                    raise
                logger.debug("command %r failed on %r, trying the next one", command.name, text)
                failures.append(fault)
                continue
            return result

        raise NoCommandMatchedError(
            "\n".join([f"no command matched {text!r}", *(fault.message for fault in failures)]),
            input=text,
            failures=tuple(failures),
        )

    def process_one(self, text, context=None, /):
        """
        Execute 'text' on the only member whose grammar matches.

        Raises
        - NoCommandMatchedError: when no member matches.
        - AmbiguousCommandError: when several members match (none is executed);
          options["candidates"] names them in registration order.
        - the lone match's own preprocess/execute failure otherwise.
        """
        matches = self._evaluate(lambda command: command.preprocess(text, context))

        if not matches:
            raise NoCommandMatchedError(f"no command matched {text!r}", input=text, failures=())

        if len(matches) > 1:
            candidates = tuple(command.name for command, _ in matches)
            logger.debug("input %r is ambiguous between %s", text, ", ".join(candidates))
            raise AmbiguousCommandError(
                f"ambiguous command {text!r} could be any of: {', '.join(candidates)}",
                input=text,
                candidates=candidates,
            )

        (command, outcome), = matches
        if isinstance(outcome, CommandException):
            raise outcome
        return outcome.execute()

    def get_help_text(self):
        """
        Help lines of every member, in registration order, separated by blank lines.
        """
        lines = []
        for command in self:
            if lines:
                lines.append("")
            lines.extend(command.get_help_text())
        return lines


__all__ = (
    "CommandGroup",
)
