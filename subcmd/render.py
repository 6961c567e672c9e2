"""
subcmd rendering: rich renderables for usage, flag listings and command listings.

Everything here is pure: functions build renderables and the caller decides on
which console to print them. Styling follows a palette that the host program
may override with a __styles__ mapping in __main__; colorful=False drops all
styling (useful for logs and tests).

Palette keys
- usage-label, program-name, usage-section, synopsis-section, help-section
- group-label, flag-name, value-name, flag-usage, flag-default
- command-name, command-synopsis, empty-note
"""
from collections import defaultdict

from rich.console import Group
from rich.table import Table
from rich.text import Text


def _styles(colorful):
    styles = defaultdict(str, {
        # === Head sections ===
        "usage-label": "bold #00E6FF",  # CYAN → signature info color
        "program-name": "bold #FF4D94",  # MAGENTA-PINK → brand pop
        "usage-section": "bold #36C5F0",  # SKY-BLUE → softer than cyan
        "synopsis-section": "italic #A3A3A3",  # Neutral gray
        "help-section": "#D1D5DB",

        # === Flags ===
        "group-label": "bold #FFFFFF",  # Pure white headers
        "flag-name": "bold #22C55E",
        "value-name": "bold #FFD600",  # AMBER for value labels
        "flag-usage": "#9CA3AF",  # Muted gray
        "flag-default": "#737373",

        # === Commands ===
        "command-name": "bold #36C5F0",
        "command-synopsis": "#9CA3AF",
        "empty-note": "italic #737373",
    } | getattr(__import__("__main__"), "__styles__", {}))

    def styler(style):
        return styles[style] if colorful else ""

    return styler


def flaglisting(flags, /, *, colorful=True):
    """
    List the flags of a FlagSet in declaration order.

    Each row shows "-name <value>" and the usage text, followed by the default
    when it differs from the zero value of its kind.
    """
    style = _styles(colorful)
    if not len(flags):
        return Text(f"no flags are defined for {flags.name!r}", style("empty-note"))

    table = Table.grid(padding=(0, 2))
    table.add_column(no_wrap=True)
    table.add_column()
    for flag in flags:
        name = Text.assemble("  ", ("-" + flag.name, style("flag-name")))
        if flag.typename:
            name.append(" ")
            name.append(flag.typename, style("value-name"))
        usage = Text(flag.usage, style("flag-usage"))
        if not flag.isdefault():
            usage.append(f" (default {flag.display()})", style("flag-default"))
        table.add_row(name, usage)
    return table


def commandlisting(entries, /, *, colorful=True):
    """
    List commands as a two-column table of names and synopses.

    entries: iterable of (name, synopsis) pairs, in display order.
    """
    style = _styles(colorful)
    entries = list(entries)
    if not entries:
        return Text("no commands are available", style("empty-note"))

    table = Table.grid(padding=(0, 2))
    table.add_column(no_wrap=True)
    table.add_column()
    for name, synopsis in entries:
        table.add_row(
            Text.assemble("  ", (name, style("command-name"))),
            Text(synopsis, style("command-synopsis")),
        )
    return table


def usage(trail, /, *, synopsis="", helptext="", flags=None, commands=None, colorful=True):
    """
    Build the usage screen of one command.

    Parameters
    - trail: command names from the program down to the command being described.
    - synopsis: one-line summary (omitted when empty).
    - helptext: full extended help (omitted when empty).
    - flags: the command's FlagSet, listed under "Flags:" when it defines any.
    - commands: (name, synopsis) pairs for groups; None for leaf commands.
    """
    style = _styles(colorful)
    line = Text.assemble(("Usage:", style("usage-label")), " ")
    line.append(trail[0], style("program-name"))
    for name in trail[1:]:
        line.append(" ")
        line.append(name, style("usage-section"))
    if flags is not None and len(flags):
        line.append(" [flags]")
    if commands is not None:
        line.append(" <command>")
    line.append(" [arguments]")

    renders = [line]
    if synopsis:
        renders += [Text(""), Text(synopsis, style("synopsis-section"))]
    if helptext and helptext.strip() != synopsis:
        renders += [Text(""), Text(helptext.strip("\n"), style("help-section"))]
    if flags is not None and len(flags):
        renders += [Text(""), Text("Flags:", style("group-label")), flaglisting(flags, colorful=colorful)]
    if commands is not None:
        renders += [Text(""), Text("Commands:", style("group-label")), commandlisting(commands, colorful=colorful)]
    return Group(*renders)


__all__ = (
    "flaglisting",
    "commandlisting",
    "usage",
)
