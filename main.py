from rich.console import Console
from rich.pretty import pprint

from phrasebook import *
from phrasebook.converters import record, string, number
from phrasebook.renderers import DEFAULTS

__prog__ = "raids"

console = Console()

fields = ParserBuilder(FRAGMENTS)


@command(
    grammar=fields.build("!add {{tier?}} {{names}} in {{timer}}"),
    converter=record({"tier": number, "names": string, "timer": number}, optional=("tier",)),
    format=lambda params, context, value: (
        "[bold]T{tier}[/bold] raid at {names} in {timer} minutes" if "tier" in value else "raid at {names} in {timer} minutes"
    ),
    formatters=DEFAULTS,
    usage="!add [tier] <gym> in <minutes>",
    examples=("!add 4 painted lot in 30", "!add painted lot in 30"),
)
def add(params, context):
    """add a raid to the board"""
    return params


@command(
    grammar=fields.build("!remove {{names}}"),
    format="removed {names}",
    formatters=DEFAULTS,
    examples=("!remove painted lot",),
)
def remove(params, context):
    """remove a raid from the board"""
    return params


raids = CommandGroup((add, remove))


if __name__ == '__main__':
    pprint(raids)
    console.print(add.help)
    for prompt in ("!add 4 painted lot in 30", "!remove painted lot", "!list"):
        if (text := invoke(raids, prompt, None, surface="ansi", shell=True, colorful=True)) is not None:
            print(text)
