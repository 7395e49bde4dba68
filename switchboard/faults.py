"""
Switchboard faults: codes, exceptions, warnings and their rich rendering.

Every fault carries a position-first message ("unknown switch 'x' at third
position") and keyword options; title, code and hint are always present, while
tool, token, name, index, suggestions and docs depend on the fault.

When faults surface
- DuplicateNameError is raised on the spot while a parser is being built.
- Problems met while parsing are collected on the parser level that saw them
  and only change the boolean result of Parser.parse(). A parser in shell mode
  prints them afterwards as one ParseExit group.
- trigger() surfaces any fault on demand: outside shell mode exceptions are
  raised and warnings go through the warnings module, inside it they are
  printed on stderr with rich.

Host hooks (module attributes of __main__)
- __prog__: program name shown in headers (defaults to the root parser name).
- __codes__: FaultCode -> label, replaces the numeric code in headers.
- __docs__: FaultCode -> text, returned by getdoc().
- __styles__: overrides any palette entry below.
"""
import inspect
import sys
import warnings
from abc import ABC
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
    stable numeric identifiers, grouped by domain.

    - 211xx: token faults met while parsing.
    - 212xx: registry faults met while building.
    - 22xxx: warnings.
    """
    UNKNOWN_SWITCH              = 21101
    UNKNOWN_LONG_SWITCH         = 21102
    CAPTURE_OVERFLOW            = 21111

    DUPLICATE_NAME              = 21201

    REPARSE                     = 22101

    def normalize(self):
        """
        the label shown for this code: the host's __codes__ entry, else the number.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _palette(**defaults):
    return defaultdict(str, defaults | getattr(__import__("__main__"), "__styles__", {}))


def _program(options):
    tool = options.get("tool")
    return getattr(__import__("__main__"), "__prog__", "switchboard" if tool is None else tool.root.name)


def _renderer(colorful, styles):
    def styler(style):
        return styles[style] if colorful else ""

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if not colorful:
            return Text(str(fragment))
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), style)

    return styler, text


class _Fault:
    """
    shared body of ParseException and ParseWarning.
    """
    _severity = "error"
    _colors = {
        "prog-name": "bold #E6E6F0",
        "code": "bold #00E5FF",
        "error-title": "bold #FF4DA6",
        "error-message": "#C8C8D0",
        "hint-arrow": "#9CE19C dim",
        "hint": "italic #9CE19C",
    }

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __rich__(self):
        styler, text = _renderer(self.options.get("colorful", False), _palette(**self._colors))
        severity = self._severity

        header = Text.assemble(
            "[ ",
            text(_program(self.options), styler("prog-name")),
            " — ",
            text(self.options["code"].normalize(), styler("code")),
            " | ",
            text(self.options["title"].title(), styler(f"{severity}-title")),
            " ]"
        )
        message = text(self.message, styler(f"{severity}-message"))
        hint = Text.assemble(text(" → ", styler("hint-arrow")), text(self.options.get("hint"), styler("hint")))

        if not self.options.get("fancy", False):
            return Group(header, message, hint)

        # a ParseExit shrinks its members to a share of the terminal
        ratio = self.options.get("ratio")
        width = None if ratio is None else int((console.width - 4) * ratio)
        return Panel(Group(message, hint), title=header, title_align="left", width=width)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class ParseException(_Fault, Exception):
    def __trigger__(self):
        if not self.options.get("shell"):
            raise self from None
        console.print(self)
        if not self.options.get("deferred"):
            sys.exit(1)


class DuplicateNameError(ParseException, ValueError): ...
class UnrecognizedTokenError(ParseException): ...
class CaptureOverflowError(ParseException): ...


class ParseWarning(_Fault, ABC, Warning):
    _severity = "warning"
    _colors = {
        "prog-name": "bold #E6E6F0",
        "code": "bold #FFB400",
        "warning-title": "bold #FFC2E0",
        "warning-message": "#D6D6DE",
        "hint-arrow": "#B8EFAF dim",
        "hint": "italic #B8EFAF",
    }

    def __trigger__(self):
        if self.options.get("shell"):
            console.print(self)
        else:
            warnings.warn(self, stacklevel=len(inspect.stack()))


class ReparseWarning(ParseWarning): ...


class ParseExit(ExceptionGroup[ParseException]):
    """
    every fault a parser level recorded, surfaced together.
    """

    def __new__(cls, exceptions, **options):
        return super().__new__(cls, "bad parse", exceptions)

    def __init__(self, exceptions, **options):
        super().__init__("bad parse", tuple(exceptions))
        self.options = MappingProxyType(options)

    def __rich__(self):
        styler, text = _renderer(self.options.get("colorful", False), _palette(**{
            "prog-name": "bold #E6E6F0",
            "title": "bold #FF4DA6",
        }))

        header = Text.assemble(
            "[ ",
            text(_program(self.options), styler("prog-name")),
            " — ",
            text(self.message.title(), styler("title")),
            " ]"
        )
        members = [exception.__replace__(ratio=2/3) for exception in self.exceptions]

        if self.options.get("fancy", False):
            return Panel(Group(*members), title=header, title_align="left")
        return Group(header, *members)

    def __trigger__(self):
        if not self.options.get("shell"):
            raise self from None
        console.print(self)
        if not self.options.get("deferred"):
            sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.exceptions, **{**self.options, **overrides})


def trigger(fault, /, **options):
    """
    surface `fault` after merging `options` into it (see the module docstring).

    Raises TypeError when `fault` lacks the __trigger__/__replace__ protocol.
    """
    if not callable(getattr(fault, "__trigger__", None)) or not callable(getattr(fault, "__replace__", None)):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    fault.__replace__(**options).__trigger__()


def getdoc(code, /):
    """
    the host's __docs__ entry for `code`, or None.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    return getattr(__import__("__main__"), "__docs__", {}).get(code)


__all__ = (
    "ParseException",
    "DuplicateNameError",
    "UnrecognizedTokenError",
    "CaptureOverflowError",
    "ParseWarning",
    "ReparseWarning",
    "ParseExit",
    "FaultCode",
    "trigger",
    "getdoc",
)
