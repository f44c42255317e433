"""A small command-line option parser with typed values and custom readers."""

from __future__ import annotations

import re
import sys
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Sequence

__all__ = [
    "CmdlineError",
    "RangeReader",
    "OneOfReader",
    "Parser",
    "default_reader",
    "in_range",
    "one_of",
]

_INT_RE = re.compile(r"\s*[+-]?\d+")
_FLOAT_RE = re.compile(r"\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_BOOL_RE = re.compile(r"\s*[01]")

_TYPE_NAMES = {str: "string", int: "int", float: "double", bool: "bool"}


class CmdlineError(Exception):
    """Raised for misuse of the parser or for a value a reader rejects."""


def _typename(value_type: type) -> str:
    return _TYPE_NAMES.get(value_type, getattr(value_type, "__name__", str(value_type)))


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, float):
        return "%g" % value
    return str(value)


def _convert(text: str, value_type: type) -> Any:
    if value_type is str:
        return text
    if value_type is bool:
        if not _BOOL_RE.fullmatch(text):
            raise ValueError(f"bad bool: {text!r}")
        return text.strip() == "1"
    if value_type is int:
        if not _INT_RE.fullmatch(text):
            raise ValueError(f"bad int: {text!r}")
        return int(text)
    if value_type is float:
        if not _FLOAT_RE.fullmatch(text):
            raise ValueError(f"bad float: {text!r}")
        return float(text)
    return value_type(text)


def default_reader(value_type: type = str) -> Callable[[str], Any]:
    """Return a reader that converts a string to ``value_type``."""

    def read(text: str) -> Any:
        return _convert(text, value_type)

    return read


class RangeReader:
    """Reads a value and requires it to lie within ``[low, high]``."""

    def __init__(self, low: Any, high: Any, value_type: type | None = None):
        self.low = low
        self.high = high
        self.value_type = value_type if value_type is not None else type(low)

    def __call__(self, text: str) -> Any:
        value = _convert(text, self.value_type)
        if not (self.low <= value <= self.high):
            raise CmdlineError("range_error")
        return value


class OneOfReader:
    """Reads a value and requires it to be one of the given alternatives."""

    def __init__(self, *alternatives: Any, value_type: type | None = None):
        if value_type is None:
            if not alternatives:
                raise CmdlineError("one_of needs at least one alternative")
            value_type = type(alternatives[0])
        self.value_type = value_type
        self.alternatives = list(alternatives)

    def add(self, value: Any) -> None:
        self.alternatives.append(value)

    def __call__(self, text: str) -> Any:
        value = _convert(text, self.value_type)
        if value not in self.alternatives:
            raise CmdlineError("")
        return value


def in_range(low: Any, high: Any, value_type: type | None = None) -> RangeReader:
    """Build a reader accepting values between ``low`` and ``high`` inclusive."""
    return RangeReader(low, high, value_type)


def one_of(*args: Any) -> OneOfReader:
    """Build a reader accepting only the given values."""
    return OneOfReader(*args)


@dataclass
class _Flag:
    name: str
    short_name: str
    description: str
    is_set: bool = False

    has_value = False
    must = False

    def set(self, value: str | None = None) -> bool:
        if value is not None:
            return False
        self.is_set = True
        return True

    @property
    def valid(self) -> bool:
        return True

    @property
    def short_description(self) -> str:
        return "--" + self.name


@dataclass
class _ValueOption:
    name: str
    short_name: str
    need: bool
    default: Any
    value_type: type
    reader: Callable[[str], Any]
    description: str = ""
    is_set: bool = False
    actual: Any = field(default=None)

    has_value = True

    def __post_init__(self) -> None:
        self.actual = self.default
        suffix = "" if self.need else " [=" + _format_value(self.default) + "]"
        self.description = f"{self.description} ({_typename(self.value_type)}{suffix})"

    @property
    def must(self) -> bool:
        return self.need

    def set(self, value: str | None = None) -> bool:
        if value is None:
            return False
        try:
            self.actual = self.reader(value)
        except (ValueError, TypeError, CmdlineError):
            return False
        self.is_set = True
        return True

    @property
    def valid(self) -> bool:
        return not (self.need and not self.is_set)

    @property
    def short_description(self) -> str:
        return f"--{self.name}={_typename(self.value_type)}"


class Parser:
    """Parses ``--long``, ``--long=value`` and ``-s`` style options."""

    def __init__(self) -> None:
        self._options: dict[str, _Flag | _ValueOption] = {}
        self._ordered: list[_Flag | _ValueOption] = []
        self._footer = ""
        self._prog_name = ""
        self._others: list[str] = []
        self._errors: list[str] = []

    def _register(self, option: _Flag | _ValueOption) -> None:
        if option.name in self._options:
            raise CmdlineError("multiple definition: " + option.name)
        self._options[option.name] = option
        self._ordered.append(option)

    def add(self, name: str, short_name: str | None = None, desc: str = "") -> None:
        """Define an option that takes no value."""
        self._register(_Flag(name, short_name or "", desc))

    def add_value(
        self,
        name: str,
        value_type: type = str,
        short_name: str | None = None,
        desc: str = "",
        need: bool = True,
        default: Any = None,
        reader: Callable[[str], Any] | None = None,
    ) -> None:
        """Define an option that takes a value of ``value_type``."""
        if default is None:
            default = value_type()
        if reader is None:
            reader = default_reader(value_type)
        self._register(
            _ValueOption(name, short_name or "", need, default, value_type, reader, desc)
        )

    def footer(self, text: str) -> None:
        self._footer = text

    def set_program_name(self, name: str) -> None:
        self._prog_name = name

    def _lookup(self, name: str) -> _Flag | _ValueOption:
        try:
            return self._options[name]
        except KeyError:
            raise CmdlineError("there is no flag: --" + name) from None

    def exist(self, name: str) -> bool:
        """Return whether the option was given on the command line."""
        return self._lookup(name).is_set

    def get(self, name: str) -> Any:
        """Return the value of a value-taking option."""
        option = self._lookup(name)
        if not isinstance(option, _ValueOption):
            raise CmdlineError(f"type mismatch flag '{name}'")
        return option.actual

    def rest(self) -> list[str]:
        """Return the positional arguments of the last parse."""
        return list(self._others)

    def _set_option(self, name: str, value: str | None = None) -> None:
        option = self._options.get(name)
        if option is None:
            self._errors.append("undefined option: --" + name)
            return
        if not option.set(value):
            if value is None:
                self._errors.append("option needs value: --" + name)
            else:
                self._errors.append(f"option value is invalid: --{name}={value}")

    def parse(self, args: Sequence[str]) -> bool:
        """Parse ``args`` (program name first); return True when error-free."""
        self._errors.clear()
        self._others.clear()
        args = list(args)
        if not args:
            self._errors.append("argument number must be longer than 0")
            return False
        if not self._prog_name:
            self._prog_name = args[0]

        lookup: dict[str, str] = {}
        for name in sorted(self._options):
            if not name:
                continue
            initial = self._options[name].short_name
            if initial:
                if initial in lookup:
                    self._errors.append(f"short option '{initial}' is ambiguous")
                    return False
                lookup[initial] = name

        pending = deque(args[1:])
        while pending:
            arg = pending.popleft()
            if arg.startswith("--"):
                body = arg[2:]
                if "=" in body:
                    name, value = body.split("=", 1)
                    self._set_option(name, value)
                    continue
                option = self._options.get(body)
                if option is None:
                    self._errors.append("undefined option: --" + body)
                    continue
                if option.has_value:
                    if not pending:
                        self._errors.append("option needs value: --" + body)
                        continue
                    self._set_option(body, pending.popleft())
                else:
                    self._set_option(body)
            elif arg.startswith("-"):
                chars = arg[1:]
                if not chars:
                    continue
                for char in chars[:-1]:
                    if char not in lookup:
                        self._errors.append("undefined short option: -" + char)
                        continue
                    self._set_option(lookup[char])
                last = chars[-1]
                if last not in lookup:
                    self._errors.append("undefined short option: -" + last)
                    continue
                name = lookup[last]
                if pending and self._options[name].has_value:
                    self._set_option(name, pending.popleft())
                else:
                    self._set_option(name)
            else:
                self._others.append(arg)

        for name in sorted(self._options):
            if not self._options[name].valid:
                self._errors.append("need option: --" + name)

        return not self._errors

    def parse_line(self, line: str) -> bool:
        """Split a single command line string, honouring quotes and backslashes, and parse it."""
        args: list[str] = []
        buf: list[str] = []
        in_quote = False
        chars = iter(line)
        for char in chars:
            if char == '"':
                in_quote = not in_quote
                continue
            if char == " " and not in_quote:
                args.append("".join(buf))
                buf = []
                continue
            if char == "\\":
                char = next(chars, None)
                if char is None:
                    self._errors.append("unexpected occurrence of '\\' at end of string")
                    return False
            buf.append(char)

        if in_quote:
            self._errors.append("quote is not closed")
            return False
        if buf:
            args.append("".join(buf))

        for arg in args:
            print(f'"{arg}"')
        return self.parse(args)

    def parse_check(self, args: str | Iterable[str]) -> None:
        """Parse and exit with usage on ``--help`` or on any error."""
        if "help" not in self._options:
            self.add("help", "?", "print this message")
        if isinstance(args, str):
            count, ok = 0, self.parse_line(args)
        else:
            args = list(args)
            count, ok = len(args), self.parse(args)

        if (count == 1 and not ok) or self.exist("help"):
            sys.stderr.write(self.usage())
            raise SystemExit(0)
        if not ok:
            sys.stderr.write(self.error() + "\n" + self.usage())
            raise SystemExit(1)

    def error(self) -> str:
        """Return the first error, or an empty string."""
        return self._errors[0] if self._errors else ""

    def error_full(self) -> str:
        """Return every error, one per line."""
        return "".join(err + "\n" for err in self._errors)

    def usage(self) -> str:
        """Return the usage text listing every option."""
        required = "".join(o.short_description + " " for o in self._ordered if o.must)
        lines = [f"usage: {self._prog_name} {required}[options] ... {self._footer}", "options:"]
        width = max((len(o.name) for o in self._ordered), default=0)
        for option in self._ordered:
            prefix = f"  -{option.short_name}, " if option.short_name else " " * 6
            lines.append(f"{prefix}--{option.name.ljust(width + 4)}{option.description}")
        return "\n".join(lines) + "\n"