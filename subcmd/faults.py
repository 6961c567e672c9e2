"""
subcmd faults (errors and warnings) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every user-facing issue.
  Codes are grouped by domain to keep logs and searches predictable.
- CommandException / CommandWarning: base types that carry a message plus options
  (code, title, hint, and any context the raiser wants to attach).
- trigger(): central entry point to surface a fault, either by raising it or, in
  shell mode, by printing it with rich and exiting.

UX goals
- Short titles, one-sentence bodies, a single clear hint.
- Lowercased tone with readable styling (configurable via __styles__ in __main__).

Integration
- The resolver and the flag parser raise faults directly; run() never prints them.
- main() catches CommandException and calls trigger(fault, shell=True).
"""
import inspect
import os.path
import sys
import warnings
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used across the router (stable identifiers).

    grouping (by high-level domain)
    - configuration (101xx)
      • INVALID_CONFIGURATION, INVALID_ARGUMENT
    - routing (111xx)
      • MISSING_COMMAND, UNKNOWN_COMMAND, UNRESOLVED_HELP_TARGET
    - flags (1111x)
      • MALFORMED_FLAG, UNKNOWN_FLAG, MISSING_FLAG_VALUE, INVALID_FLAG_VALUE
    - warnings (12xxx)
      • DUPLICATE_COMMAND
    """
    # --- configuration errors (10xxx) ---
    INVALID_CONFIGURATION  = 10101
    INVALID_ARGUMENT       = 10102

    # --- routing errors (11xxx) ---
    MISSING_COMMAND        = 11101
    UNKNOWN_COMMAND        = 11102
    UNRESOLVED_HELP_TARGET = 11103

    # --- flag errors (11xxx) ---
    MALFORMED_FLAG         = 11111
    UNKNOWN_FLAG           = 11112
    MISSING_FLAG_VALUE     = 11113
    INVALID_FLAG_VALUE     = 11114

    # --- warnings (12xxx) ---
    DUPLICATE_COMMAND      = 12101

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _program(options):
    main = __import__("__main__")
    return getattr(main, "__prog__", options.get("prog") or os.path.basename(sys.argv[0]))


class CommandException(Exception):
    """
    base class of every fault raised by the router.

    subclasses pin a default `code` and `title`; instances may override them
    (and add `hint` or any other context) through keyword options.
    """
    code = Unset
    title = "error"

    def __init__(self, message, /, **options):
        if not isinstance(message, str):
            raise TypeError(f"{type(self).__name__}() message must be a string")
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType({"code": self.code, "title": self.title, "hint": ""} | options)

    def __str__(self):
        return self.message

    def __getattr__(self, name):
        try:
            return self.__dict__["options"][name]
        except KeyError:
            raise AttributeError(name) from None

    def __rich__(self):
        main = __import__("__main__")

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

        colorful = self.options.get("colorful", True)

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            return Text(str(fragment), styles[style] if colorful else "")

        code = self.options["code"]
        header = Text.assemble(
            "[ ",
            text(_program(self.options), "prog-name"),
            " — ",
            text(code.normalize() if isinstance(code, FaultCode) else "?", "code"),
            " | ",
            text(self.options["title"].title(), "error-title"),
            " ]"
        )
        message = text(self.message, "error-message")
        parts = [message]
        if self.options["hint"]:
            parts.append(Text.assemble(text(" → ", "hint-arrow"), text(self.options["hint"], "hint")))

        if self.options.get("fancy", False):
            return Panel(Group(*parts), title=header, title_align="left")
        return Group(header, *parts)

    def __trigger__(self):
        if not self.options.get("shell", False):
            raise self
        self.options.get("console", console).print(self)
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        fault = type(self)(self.message, **{**self.options, **overrides})
        fault.__cause__, fault.__context__ = self.__cause__, self.__context__
        return fault


class InvalidConfigurationError(CommandException):
    code = FaultCode.INVALID_CONFIGURATION
    title = "invalid command configuration"


class InvalidArgumentError(CommandException):
    code = FaultCode.INVALID_ARGUMENT
    title = "invalid argument"


class MissingCommandError(CommandException):
    code = FaultCode.MISSING_COMMAND
    title = "missing command"


class UnknownCommandError(CommandException):
    code = FaultCode.UNKNOWN_COMMAND
    title = "unknown command"


class UnresolvedHelpTargetError(CommandException):
    code = FaultCode.UNRESOLVED_HELP_TARGET
    title = "unknown help topic"


class FlagParseError(CommandException):
    title = "bad flag"


class MalformedFlagError(FlagParseError):
    code = FaultCode.MALFORMED_FLAG
    title = "malformed flag"


class UnknownFlagError(FlagParseError):
    code = FaultCode.UNKNOWN_FLAG
    title = "unknown flag"


class MissingFlagValueError(FlagParseError):
    code = FaultCode.MISSING_FLAG_VALUE
    title = "missing flag value"


class InvalidFlagValueError(FlagParseError):
    code = FaultCode.INVALID_FLAG_VALUE
    title = "invalid flag value"


class CommandWarning(Warning):
    code = Unset
    title = "warning"

    def __init__(self, message, /, **options):
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType({"code": self.code, "title": self.title} | options)

    def __str__(self):
        return self.message

    def __trigger__(self):
        warnings.warn(self, stacklevel=len(inspect.stack()))

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class DuplicateCommandWarning(CommandWarning):
    code = FaultCode.DUPLICATE_COMMAND
    title = "duplicate command"


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see base classes).
    - options are merged into the fault via __replace__(**options) before triggering.
    - errors are raised unless shell=True, in which case they are printed to stderr
      and the process exits with status 1; warnings go through warnings.warn.

    typical options
    - shell, fancy, colorful, prog, hint, and any other context the reporter may
      want to attach.
    """
    if (
        not callable(getattr(fault, "__trigger__", None)) or
        not callable(getattr(fault, "__replace__", None))
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    fault.__replace__(**options).__trigger__()


__all__ = (
    "FaultCode",
    "CommandException",
    "InvalidConfigurationError",
    "InvalidArgumentError",
    "MissingCommandError",
    "UnknownCommandError",
    "UnresolvedHelpTargetError",
    "FlagParseError",
    "MalformedFlagError",
    "UnknownFlagError",
    "MissingFlagValueError",
    "InvalidFlagValueError",
    "CommandWarning",
    "DuplicateCommandWarning",
    "trigger",
)
