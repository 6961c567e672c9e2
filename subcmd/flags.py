r"""
subcmd flag sets: declaration and parsing of per-level command-line flags.

Overview
- Flag: one named flag with a converter, a default, a usage string and its bound
  storage (Flag.value).
- FlagSet: a named, ordered collection of flags. The name of a FlagSet is the name
  of the command that owns it.
- HelpRequested: raised by FlagSet.parse() when -h/-help is seen and not defined.

Parsing rules
- Flags are recognized only while they appear contiguously at the start of the
  arguments. The first token that does not look like a flag ends parsing.
- Accepted spellings: -name, --name, -name=value, --name=value, -name value.
- Boolean flags never consume the next token; use -name=false to turn one off.
- "--" ends flag parsing and is consumed; "-" alone is a positional.

Value syntax
- booleans: 1 t T TRUE true True / 0 f F FALSE false False
- integers: decimal or with a base prefix (0x1f, 0o17, 0b101), underscores allowed;
  a leading zero means octal (010 is 8)
- durations: a signed sequence of decimal numbers with units, e.g. "300ms",
  "1.5h", "2h45m"; valid units are ns, us (or µs), ms, s, m, h

Quick example:
    >>> fset = FlagSet("run")
    >>> background = fset.boolean("background", False, "runs the daemon in background")
    >>> port = fset.integer("port", 10000, "TCP port number for the daemon")
    >>> fset.parse(["-background", "--port=8080", "data"])
    ['data']
    >>> background.value, port.value
    (True, 8080)
"""
import re
from datetime import timedelta

from .faults import (
    MalformedFlagError,
    UnknownFlagError,
    MissingFlagValueError,
    InvalidFlagValueError,
)
from .utils import *


class HelpRequested(Exception):
    """
    Raised when -h or -help is given and the flag set does not define them.

    This is a request, not a failure: callers print usage and stop.
    """

    def __init__(self, flags, /):
        super().__init__(f"help requested for {flags.name!r}")
        self.flags = flags


_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})


def parsebool(text, /):
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError("parse error")


_OCTAL = re.compile(r"([-+]?)0([0-7][0-7_]*)")


def parseint(text, /):
    # 010 is octal, as in C.
    if match := _OCTAL.fullmatch(text):
        text = f"{match[1]}0o{match[2]}"
    return int(text, 0)


_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,  # U+00B5 micro sign
    "μs": 1e-6,  # U+03BC greek mu
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_COMPONENT = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parseduration(text, /):
    """
    Parse a duration such as "1h30m" or "-1.5s" into a timedelta.

    "0" is accepted without a unit; every other component needs one.
    """
    if not isinstance(text, str):
        raise TypeError("parseduration() argument must be a string")

    body = text
    sign = 1
    if body[:1] in ("-", "+"):
        sign = -1 if body[0] == "-" else 1
        body = body[1:]

    if body == "0":
        return timedelta(0)
    if not body:
        raise ValueError(f"invalid duration {text!r}")

    seconds = 0.0
    index = 0
    while index < len(body):
        match = _COMPONENT.match(body, index)
        if not match:
            if re.match(r"\d+\.?\d*|\.\d+", body[index:]):
                raise ValueError(f"missing unit in duration {text!r}")
            raise ValueError(f"invalid duration {text!r}")
        seconds += float(match[1]) * _UNITS[match[2]]
        index = match.end()
    try:
        return timedelta(seconds=sign * seconds)
    except OverflowError:
        raise ValueError(f"duration {text!r} is out of range") from None


def formatduration(value, /):
    """
    Format a timedelta the way durations are written on the command line.

    Examples: timedelta(hours=1) -> "1h0m0s", timedelta(milliseconds=1500) -> "1.5s",
    timedelta(milliseconds=300) -> "300ms", timedelta(0) -> "0s".
    """
    micros = value // timedelta(microseconds=1)
    if micros == 0:
        return "0s"
    sign = "-" if micros < 0 else ""
    micros = abs(micros)

    def decimal(number):
        return ("%.6f" % number).rstrip("0").rstrip(".")

    if micros < 1000:
        return f"{sign}{micros}µs"
    if micros < 1_000_000:
        return f"{sign}{decimal(micros / 1000)}ms"

    hours, micros = divmod(micros, 3_600_000_000)
    minutes, micros = divmod(micros, 60_000_000)
    text = decimal(micros / 1_000_000) + "s"
    if hours or minutes:
        text = f"{minutes}m" + text
    if hours:
        text = f"{hours}h" + text
    return sign + text


class Flag:
    """
    A single named flag and its bound storage.

    Attributes
    - name: the flag name without dashes ("port" for -port/--port).
    - usage: help text shown in listings (backquotes removed, see typename).
    - default: the initial value; `value` starts out equal to it.
    - value: current value; updated by FlagSet.parse() and FlagSet.set().
    - typename: value label for listings ("" for boolean flags).
    - boolean: True for presence-style flags that never consume a separate token.
    """

    def __init__(self, name, default, usage, /, *, type, boolean=False, typename="value", formatter=str):
        if not callable(type):
            raise TypeError("flag 'type' must be callable")
        self._name = name
        self._default = default
        self._type = type
        self._boolean = bool(boolean)
        self._formatter = formatter
        self._usage, self._typename = _unquote(usage, "" if boolean else typename)
        self.value = default

    name = mirror("name")
    default = mirror("default")
    usage = mirror("usage")
    typename = mirror("typename")
    boolean = mirror("boolean")

    def set(self, text, /):
        """
        Convert text with the flag's type and store the result.

        Converter failures surface as ValueError/TypeError from the converter.
        """
        self.value = self._type(text)
        return self.value

    def isdefault(self):
        """
        Whether the declared default is the zero value of its kind (not shown in listings).
        """
        return self._default in (None, False, 0, "", timedelta(0))

    def display(self):
        """
        Render the declared default for listings (strings are quoted).
        """
        if isinstance(self._default, bool):
            return "true" if self._default else "false"
        if isinstance(self._default, str) and self._formatter is str:
            return '"%s"' % self._default
        return self._formatter(self._default)

    def __repr__(self):
        return f"flag(name={self._name!r}, value={self.value!r}, default={self._default!r})"


def _unquote(usage, typename):
    """
    Pull a backquoted value name out of a usage string.

    "path to the `file`" -> ("path to the file", "file")
    """
    match = re.search(r"`([^`]*)`", usage)
    if not match:
        return usage, typename
    return usage[:match.start()] + match[1] + usage[match.end():], match[1]


class FlagSet:
    """
    Named, ordered collection of flag definitions with parsing behavior.

    The FlagSet name is the identifier of the command that owns it and must be
    non-empty for the set to be usable in a command tree.

    Definition methods return the Flag whose `value` is the bound storage:
        verbose = fset.boolean("verbose", False, "print more")
        ...
        if verbose.value: ...
    """

    def __init__(self, name, /):
        if not isinstance(name, str):
            raise TypeError("FlagSet() name must be a string")
        self._name = name
        self._flags = {}
        self._visited = []
        self._args = []
        self._parsed = False

    name = mirror("name")
    args = mirror("args")
    parsed = mirror("parsed")
    visited = mirror("visited")

    def __iter__(self):
        """Iterate flags in declaration order."""
        return iter(list(self._flags.values()))

    def __len__(self):
        return len(self._flags)

    def __contains__(self, name):
        return name in self._flags

    def __repr__(self):
        return f"flag-set(name={self._name!r}, flags={list(self._flags)!r})"

    def var(self, name, default, usage="", /, *, type, boolean=False, typename="value", formatter=str):
        """
        Define a flag converted by `type` and return it.

        Raises
        - TypeError: name/usage not strings or type not callable.
        - ValueError: empty name, name starting with "-", containing "=", or already defined.
        """
        if not isinstance(name, str):
            raise TypeError("flag name must be a string")
        if not isinstance(usage, str):
            raise TypeError("flag usage must be a string")
        if not name:
            raise ValueError("flag name cannot be empty")
        if name.startswith("-"):
            raise ValueError(f"flag {name!r} begins with -")
        if "=" in name:
            raise ValueError(f"flag {name!r} contains =")
        if name in self._flags:
            raise ValueError(f"{self._name} flag redefined: {name}")
        self._flags[name] = flag = Flag(
            name, default, usage, type=type, boolean=boolean, typename=typename, formatter=formatter
        )
        return flag

    def boolean(self, name, default=False, usage="", /):
        return self.var(name, bool(default), usage, type=parsebool, boolean=True)

    def string(self, name, default="", usage="", /):
        return self.var(name, default, usage, type=str, typename="string")

    def integer(self, name, default=0, usage="", /):
        return self.var(name, default, usage, type=parseint, typename="int")

    def floating(self, name, default=0.0, usage="", /):
        return self.var(name, default, usage, type=float, typename="float")

    def duration(self, name, default=timedelta(0), usage="", /):
        return self.var(name, default, usage, type=parseduration, typename="duration", formatter=formatduration)

    def func(self, name, usage, callback, /):
        """
        Define a flag that calls `callback(text)` each time it is seen.

        The callback's return value becomes the flag value; raising ValueError or
        TypeError rejects the given text.
        """
        if not callable(callback):
            raise TypeError("func() callback must be callable")
        return self.var(name, None, usage, type=callback)

    def lookup(self, name, /):
        """Return the Flag called `name`, or None."""
        return self._flags.get(name)

    def set(self, name, text, /):
        """
        Set a flag by name from its textual form, as if given on the command line.
        """
        try:
            flag = self._flags[name]
        except KeyError:
            raise UnknownFlagError(f"no such flag -{name}", flag=name, flags=self._name) from None
        try:
            flag.set(text)
        except (ValueError, TypeError) as error:
            raise InvalidFlagValueError(
                f"invalid value {text!r} for flag -{name}: {error}",
                flag=name,
                flags=self._name,
            ) from error
        if name not in self._visited:
            self._visited.append(name)

    def parse(self, arguments, /):
        """
        Parse leading flags out of `arguments` and return the remaining ones.

        Raises
        - HelpRequested: -h/-help seen and not defined by this set.
        - FlagParseError subclasses on malformed tokens, unknown flags, missing
          or invalid values. Parsing stops at the first error.
        """
        if isinstance(arguments, str):
            raise TypeError("parse() argument must be a sequence of strings, not a string")
        self._parsed = True
        tokens = list(arguments)
        while tokens:
            token = tokens[0]
            if len(token) < 2 or token[0] != "-":
                break
            dashes = 2 if token[1] == "-" else 1
            if dashes == 2 and len(token) == 2:
                # "--" terminates the flags
                del tokens[0]
                break
            name = token[dashes:]
            if not name or name[0] in "-=":
                raise MalformedFlagError(
                    f"bad flag syntax: {token}",
                    hint=f"write flags as -name or -name=value (see '{self._name} -help')",
                    token=token,
                    flags=self._name,
                )
            del tokens[0]

            name, equals, value = name.partition("=")
            flag = self._flags.get(name)
            if flag is None:
                if name in ("h", "help"):
                    raise HelpRequested(self)
                raise UnknownFlagError(
                    f"flag provided but not defined: -{name}",
                    hint=f"run '{self._name} -help' to see the accepted flags",
                    flag=name,
                    flags=self._name,
                )

            if flag.boolean:
                if not equals:
                    value = "true"
            elif not equals:
                if not tokens:
                    raise MissingFlagValueError(
                        f"flag needs an argument: -{name}",
                        hint=f"pass a value as -{name}=<value> or -{name} <value>",
                        flag=name,
                        flags=self._name,
                    )
                value = tokens.pop(0)

            try:
                flag.set(value)
            except (ValueError, TypeError) as error:
                kind = "boolean value" if flag.boolean else "value"
                raise InvalidFlagValueError(
                    f"invalid {kind} {value!r} for flag -{name}: {error}",
                    hint=f"run '{self._name} -help' to see what -{name} expects",
                    flag=name,
                    value=value,
                    flags=self._name,
                ) from error
            if name not in self._visited:
                self._visited.append(name)

        self._args = tokens
        return list(tokens)


__all__ = (
    "Flag",
    "FlagSet",
    "HelpRequested",
    "parsebool",
    "parseint",
    "parseduration",
    "formatduration",
)
