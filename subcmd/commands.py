"""
subcmd command layer: build subcommand trees and route arguments through them.

What this module provides
- The Command capability: any object with a __command__() method returning
  (FlagSet, action). The FlagSet name is the command name; action(context, args)
  is the command's entry point. Two optional capabilities are probed:
  • __commandhelp__() -> str: extended help; its first line doubles as synopsis.
  • __synopsis__() -> str: one-line synopsis (groups and built-ins have one).
- Group: an interior node nesting commands under a name.
- command(...): decorator turning a plain function into a leaf command.
- run(context, commands, args): resolve args against the tree and invoke the
  selected command.
- main(commands): process entry point; renders faults and exits with status 1.

Resolution
- At each level the node's flags are parsed from the front of the remaining
  arguments. If the first leftover token names a child exactly, resolution
  descends into it; otherwise the node's action runs with the leftovers.
- "-h"/"-help" at any level prints that level's usage and ends the run
  successfully without running any action.
- Every group gets "help", "flags" and "commands" children unless a user child
  already took the name.

Quick start
    from subcmd import Group, command, main

    @command
    def scan(context, args):
        '''Scan the database.'''
        print("scanning", args, "limit", limit.value)

    limit = scan.flags.integer("limit", 100, "maximum number of rows")

    if __name__ == "__main__":
        main([Group("db", "manage database", scan)])
"""
import difflib
import inspect
import logging
import os.path
import sys
from typing import NamedTuple

from rich.console import Console

from . import render
from .faults import *
from .flags import FlagSet, HelpRequested
from .utils import *

logger = logging.getLogger(__name__)


def iscommand(object, /):
    """
    Whether object implements the Command capability (a callable __command__).
    """
    return callable(getattr(object, "__command__", None))


def synopsis(command, /):
    """
    One-line synopsis of a command.

    Resolution order: __synopsis__() → first line of __commandhelp__() → "".
    """
    if callable(method := getattr(command, "__synopsis__", None)):
        if text := method():
            return firstline(text)
    if text := helptext(command):
        return firstline(text)
    return ""


def helptext(command, /):
    """
    Extended help text of a command, or "" when it has none.
    """
    if callable(method := getattr(command, "__commandhelp__", None)):
        return method() or ""
    return ""


class Group:
    """
    Parent command with the given subcommands nested under its name.

    Parameters
    - name: command name; becomes the name of the group's FlagSet.
    - descr: one-line synopsis shown in the parent's listings.
    - *commands: child commands, kept by reference in the given order. The order
      is the display order; routing is by exact name, first match wins.
    - flags: FlagSet to use instead of a fresh, empty FlagSet(name).
    - fallback: action(context, args) to run when no child matches. Without one,
      reaching the group itself is an error (missing or unknown command).

    Group-level flags are declared on `group.flags` and are parsed before the
    subcommand name:
        db = Group("db", "manage database", get, scan)
        readonly = db.flags.boolean("readonly", False, "open the database read-only")
        # prog db -readonly scan ...
    """

    def __init__(self, name, descr="", /, *commands, flags=Unset, fallback=Unset):
        if not isinstance(descr, str):
            raise TypeError("Group() description must be a string")
        if not isinstance(flags, FlagSet | UnsetType):
            raise TypeError("Group() 'flags' must be a FlagSet")
        if not (fallback is Unset or callable(fallback)):
            raise TypeError("Group() 'fallback' must be callable")
        self._flags = flags if flags is not Unset else FlagSet(name)
        self._descr = descr
        self._commands = commands
        self._fallback = fallback

    name = property(lambda self: self._flags.name, doc="Name of the group, taken from its FlagSet.")
    descr = mirror("descr")
    flags = property(lambda self: self._flags, doc="FlagSet for flags recognized at this level.")
    commands = property(lambda self: self._commands, doc="Child commands in display order.")

    def __command__(self):
        return self._flags, coalesce(self._fallback, self._main)

    def __synopsis__(self):
        return self._descr

    def __repr__(self):
        return f"group(name={self.name!r}, commands={len(self._commands)})"

    def _main(self, context, args):
        if not args:
            raise MissingCommandError(
                f"{self.name!r} needs a subcommand",
                hint=f"run '{self.name} commands' to list them",
                group=self.name,
            )
        raise UnknownCommandError(
            f"unknown command {args[0]!r} for {self.name!r}",
            hint=f"run '{self.name} commands' to list them",
            input=args[0],
            group=self.name,
        )


class Subcommand:
    """
    Leaf command wrapping a plain function `callback(context, args)`.

    Built by command(); flags are declared on `.flags`. Instances stay callable
    with the callback's own signature.
    """

    def __init__(self, callback, /, name=Unset, *, help=Unset):
        if not callable(callback):
            raise TypeError("command() argument must be callable")
        name = coalesce(name, getattr(callback, "__name__", "").replace("_", "-"))
        if not isinstance(name, str) or not name:
            raise ValueError("command() name must be a non-empty string")
        help = coalesce(help, inspect.getdoc(callback) or "")
        if not isinstance(help, str):
            raise TypeError("command() 'help' must be a string")
        self._callback = callback
        self._flags = FlagSet(name)
        self._help = help

    name = property(lambda self: self._flags.name)
    flags = property(lambda self: self._flags, doc="FlagSet for the command's flags.")

    def __call__(self, *args, **kwargs):
        return self._callback(*args, **kwargs)

    def __command__(self):
        return self._flags, self._callback

    def __commandhelp__(self):
        return self._help

    def __repr__(self):
        return f"subcommand(name={self.name!r}, callback={self._callback.__qualname__})"


def command(source=Unset, /, *, name=Unset, help=Unset):
    """
    Create a leaf command from a function, or return a decorator that does so.

    Forms
    - @command                     name from the function, help from its docstring
    - @command("db-scan")          explicit name
    - @command(help="...")         explicit help text
    - command(func, name="x")      direct call
    """
    if isinstance(source, str):
        if name is not Unset:
            raise TypeError("command() got the name twice")
        name, source = source, Unset

    if source is Unset:
        def wrapper(source, /):
            return Subcommand(source, name, help=help)
        return wrapper
    return Subcommand(source, name, help=help)


class Declaration(NamedTuple):
    """The single __command__() result of one node during a run."""
    command: object
    flags: FlagSet
    action: object

    @property
    def name(self):
        return self.flags.name


class Frame(NamedTuple):
    """One level of the resolution walk."""
    trail: tuple
    declaration: Declaration
    children: dict  # name -> Declaration, user children first, then built-ins

    @property
    def isgroup(self):
        return isinstance(self.declaration.command, Group)


class _Builtin:
    """
    Base of the synthesized introspection commands of a group.

    Built-ins share the frame of the group they describe; each one gets its
    own fresh, flagless FlagSet per run.
    """
    name = Unset
    descr = ""

    def __init__(self, resolver, frame, /):
        self._resolver = resolver
        self._frame = frame

    def __command__(self):
        return FlagSet(self.name), self._main

    def __synopsis__(self):
        return self.descr

    def _main(self, context, args):
        raise NotImplementedError


class _CommandsCommand(_Builtin):
    name = "commands"
    descr = "list the available commands"

    def _main(self, context, args):
        self._resolver.print(render.commandlisting(
            self._resolver.listing(self._frame), colorful=self._resolver.colorful
        ))


class _FlagsCommand(_Builtin):
    name = "flags"
    descr = "list the flags of this command"

    def _main(self, context, args):
        self._resolver.print(render.flaglisting(
            self._frame.declaration.flags, colorful=self._resolver.colorful
        ))


class _HelpCommand(_Builtin):
    name = "help"
    descr = "show help for a command"

    def _main(self, context, args):
        frame = self._frame
        for index, segment in enumerate(args):
            if segment not in frame.children:
                route = " ".join((*frame.trail, segment))
                raise UnresolvedHelpTargetError(
                    f"no help topic for {route!r}: {segment!r} is not a command of {frame.declaration.name!r}",
                    hint=f"run '{' '.join(frame.trail)} commands' to list them",
                    segment=segment,
                    index=index,
                )
            frame = self._resolver.frame(frame.children[segment], frame.trail)
        self._resolver.describe(frame)


_BUILTINS = (_HelpCommand, _FlagsCommand, _CommandsCommand)


class _Resolver:
    """
    One resolution pass over a command tree.

    The resolver owns the per-run state: the caller's context, the output console
    and the declarations made so far. Nodes are declared lazily, once each, as
    the walk reaches their parent.
    """

    def __init__(self, context, console, /, *, colorful=True):
        self.context = context
        self.console = console
        self.colorful = colorful

    def print(self, renderable, /):
        self.console.print(renderable)

    def declare(self, command, /):
        """
        Call command.__command__() and validate the result.

        Raises InvalidConfigurationError for objects that are not commands, for
        malformed results and for flag sets with an empty name.
        """
        if not iscommand(command):
            raise InvalidConfigurationError(
                f"{type(command).__name__!r} object is not a command",
                hint="commands must implement __command__() returning (FlagSet, action)",
                command=command,
            )
        result = command.__command__()
        try:
            flags, action = result
        except (TypeError, ValueError):
            raise InvalidConfigurationError(
                f"{type(command).__name__}.__command__() must return a (FlagSet, action) pair",
                command=command,
            ) from None
        if not isinstance(flags, FlagSet):
            raise InvalidConfigurationError(
                f"{type(command).__name__}.__command__() returned {type(flags).__name__!r} instead of a FlagSet",
                command=command,
            )
        if not flags.name:
            raise InvalidConfigurationError(
                f"{type(command).__name__}.__command__() returned a flag set without a name",
                hint="the flag set name is the command name and cannot be empty",
                command=command,
            )
        if not callable(action):
            raise InvalidConfigurationError(
                f"command {flags.name!r} has an action that is not callable",
                command=command,
            )
        return Declaration(command, flags, action)

    def frame(self, declaration, trail, /):
        """
        Build the frame of a declared node, declaring its children when it is a group.
        """
        frame = Frame((*trail, declaration.name), declaration, {})
        if not frame.isgroup:
            return frame
        for child in declaration.command.commands:
            child = self.declare(child)
            if child.name in frame.children:
                trigger(DuplicateCommandWarning(
                    f"command {child.name!r} is defined more than once under {declaration.name!r}; "
                    f"the first definition wins",
                    name=child.name,
                    group=declaration.name,
                ))
                continue
            frame.children[child.name] = child
        for builtin in _BUILTINS:
            if builtin.name not in frame.children:
                frame.children[builtin.name] = self.declare(builtin(self, frame))
        return frame

    def listing(self, frame, /):
        return [(name, synopsis(child.command)) for name, child in frame.children.items()]

    def describe(self, frame, /):
        command = frame.declaration.command
        self.print(render.usage(
            frame.trail,
            synopsis=synopsis(command),
            helptext=helptext(command),
            flags=frame.declaration.flags,
            commands=self.listing(frame) if frame.isgroup else None,
            colorful=self.colorful,
        ))

    def resolve(self, declaration, args, trail=(), /):
        frame = self.frame(declaration, trail)
        try:
            residual = declaration.flags.parse(args)
        except HelpRequested:
            logger.debug("help requested for %r", " ".join(frame.trail))
            self.describe(frame)
            return None

        if residual and residual[0] in frame.children:
            logger.debug("descending from %r into %r", declaration.name, residual[0])
            return self.resolve(frame.children[residual[0]], residual[1:], frame.trail)

        logger.debug("running %r with %r", " ".join(frame.trail), residual)
        try:
            return declaration.action(self.context, residual)
        except UnknownCommandError as fault:
            if not (frame.isgroup and declaration.action == declaration.command._main):
                raise
            suggestions = difflib.get_close_matches(residual[0], frame.children.keys(), 5)
            route = " ".join(frame.trail)
            try:
                hint = "did you mean %r? you can also run '%s commands' to list them" % (suggestions[0], route)
            except IndexError:
                hint = "run '%s commands' to list them" % route
            raise fault.__replace__(hint=hint, suggestions=suggestions) from None
        except MissingCommandError as fault:
            if not (frame.isgroup and declaration.action == declaration.command._main):
                raise
            raise fault.__replace__(hint="run '%s commands' to list them" % " ".join(frame.trail)) from None


def _program():
    return os.path.basename(sys.argv[0]) or "program"


def run(context, commands, args, /, *, flags=Unset, console=Unset, colorful=True):
    """
    Resolve args against commands and invoke the selected command.

    Parameters
    - context: opaque value handed to the selected action as its first argument.
    - commands: top-level commands (an iterable of Command objects).
    - args: process arguments without the program name; None means none.
    - flags: global FlagSet parsed at the root level (defaults to a fresh, empty
      FlagSet named after the program).
    - console: rich Console used for help output (defaults to stderr).
    - colorful: style help output (False prints plain text).

    Returns
    - whatever the selected action returns; None when help was shown.

    Raises
    - InvalidArgumentError: commands is None, or args is a single string.
    - InvalidConfigurationError, FlagParseError, MissingCommandError,
      UnknownCommandError, UnresolvedHelpTargetError: see subcmd.faults.
    - anything the selected action raises, unchanged.
    """
    if commands is None:
        raise InvalidArgumentError(
            "run() commands cannot be None",
            hint="pass a list of commands (it may be empty)",
        )
    if isinstance(args, str) or isinstance(commands, str):
        raise InvalidArgumentError(
            "run() arguments must be a sequence of strings, not a string",
            hint="split the command line first, e.g. with shlex.split()",
        )
    if not isinstance(flags, FlagSet | UnsetType):
        raise InvalidArgumentError("run() 'flags' must be a FlagSet")

    if flags is Unset:
        flags = FlagSet(_program())
    if console is Unset:
        console = Console(stderr=True)
    root = Group(flags.name, "", *commands, flags=flags)
    resolver = _Resolver(context, console, colorful=colorful)
    return resolver.resolve(resolver.declare(root), list(args or ()))


def main(commands, /, args=Unset, *, context=None, flags=Unset, console=Unset, fancy=False, colorful=True):
    """
    Run commands against the process arguments, as a program's entry point.

    Uses sys.argv[1:] when args is not given. Faults raised by the router (and any
    CommandException raised by actions) are printed on stderr and the process
    exits with status 1; other exceptions propagate.
    """
    try:
        return run(
            context,
            commands,
            coalesce(args, sys.argv[1:]),
            flags=flags,
            console=console,
            colorful=colorful,
        )
    except CommandException as fault:
        options = {} if console is Unset else {"console": console}
        trigger(fault, shell=True, fancy=fancy, colorful=colorful, prog=_program(), **options)


__all__ = (
    "iscommand",
    "synopsis",
    "helptext",
    "Group",
    "Subcommand",
    "command",
    "run",
    "main",
)
