"""
Switchboard parser layer: declare switches and commands, parse tokens once, query results.

What this module provides
- Parser: one level of a command tree. It owns
  • a registry of options (switches, on/off switches, captures, choice items),
  • its choice groups,
  • a keyword → child Parser table for nested commands,
  • and, after parse(), every result of that level (records, loose parameters,
    remainder after '--', recorded faults, the active command).

Token grammar (doubledash=True, the default)
- '--'                     stops parsing; the rest is kept verbatim in .remainder.
- '--name', '++name'       long form; '=value' or ':value' attaches a value.
- '/name'                  long form when longer than two characters.
- '-abc', '+abc', '/x'     short form; letters are grouped switches, a capture
                           letter takes the rest of the token as its value.
- '\\-x'                    escaped: one leading escape character is stripped and the
                           token is always a value.
- anything else            a value for the pending capture, or a loose parameter.

With doubledash=False every single-prefix token longer than two characters is a long
name ('-name', '+name', '/name'), short switches are never grouped and doubled
prefixes are plain values; '--' included, so there is no terminator.

Signs matter for on/off switches only: '-' turns them off, '+' and '/' turn them on.

Error policy
- Building: TypeError/ValueError for malformed arguments, DuplicateNameError for
  name collisions (raised immediately).
- Parsing: never raises. Unknown switches (and capture overflow in strict mode) are
  recorded on .faults and make parse() return False.

Quick start
    from switchboard import Parser

    parser = Parser("crypt")
    verbose = parser.switch("v", "verbose", "print progress")
    encrypt = parser.command("encrypt", "encrypt a file")
    source = encrypt.capture("i", "input", 1, 1, "file to encrypt")

    if not parser.parse(["-v", "encrypt", "-i", "f.txt"]):
        parser.help()
    elif parser.active is encrypt:
        print(source.value)
"""
import difflib
import functools
import logging
import math
import operator
import os.path
import re
import shlex
import sys
import weakref
from collections.abc import Iterable
from types import MappingProxyType

from rich.console import Console
from rich.text import Text

from .faults import *
from .helptext import render
from .options import *
from .utils import *

logger = logging.getLogger(__name__)

_PREFIXES = "-+/"
_SEPARATORS = "=:"
_TERMINATOR = "--"


@functools.cache
def _ordinal(number):
    """
    Return a human-friendly ordinal label for a 1-based position.

    - 1..10 are rendered as words ("first"…"tenth") for nicer phrasing in faults.
    - Other numbers use numeric ordinals with correct English suffixes.
    """
    try:
        return {
            1: "first",
            2: "second",
            3: "third",
            4: "fourth",
            5: "fifth",
            6: "sixth",
            7: "seventh",
            8: "eighth",
            9: "ninth",
            10: "tenth",
        }[number]
    except KeyError:
        pass

    # 11th, 12th, 13th (and 111th, 112th, 113th, …)
    if 10 < number % 100 < 20:
        return f"{number}th"

    return f'{number}%s' % {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")


def _sanitize_short(short):
    """
    Internal: normalize a short name to a single character or None.

    Unset and the empty string both mean "no short name". Prefix characters and
    value separators are rejected because the tokenizer could never reach them.
    """
    if short is Unset:
        return None
    if not isinstance(short, str):
        raise TypeError("short name must be a string")
    if not short:
        return None
    if len(short) != 1 or short.isspace():
        raise ValueError("short name must be a single non-blank character")
    if short in _PREFIXES + _SEPARATORS:
        raise ValueError(f"short name cannot be one of {_PREFIXES + _SEPARATORS!r}")
    return short


def _sanitize_long(long):
    """
    Internal: normalize a long name (trimmed, lower-cased) or None.

    Names are case-insensitive, so they are stored lower-cased and looked up the
    same way. Whitespace and value separators are rejected anywhere in the name,
    prefix characters at its start.
    """
    if long is Unset:
        return None
    if not isinstance(long, str):
        raise TypeError("long name must be a string")
    if not (long := long.strip().lower()):
        return None
    if not re.fullmatch(r"[^\s=:+/\-][^\s=:]*", long):
        raise ValueError("long name cannot start with a prefix or contain whitespace, '=' or ':'")
    return long


def _sanitize_descr(descr):
    if descr is Unset:
        return None
    if not isinstance(descr, str | Text):
        raise TypeError("'descr' must be a string")
    if isinstance(descr, str):
        descr = descr.strip()
    return descr or None


def _sanitize_count(name, count):
    if not isinstance(count, int) or isinstance(count, bool):
        raise TypeError(f"capture {name!r} must be an integer")
    if count < 0:
        raise ValueError(f"capture {name!r} cannot be negative")
    return count


class Parser:
    """
    One level of a command tree: registry, command table, dispatcher and results.

    Lifecycle
    - Build: switch(), onoff(), capture(), choice() / Choice.item(), command().
    - Parse: parse(tokens) exactly once on the root; matched commands are parsed
      recursively with the tokens that follow their keyword.
    - Query: handles returned while building, plus active/loose/remainder/faults
      and switched(name) on every level.

    Settings (keyword-only, inherited by child commands)
    - doubledash: grammar variant (see module docstring).
    - escape: the escape character (a single character, default backslash).
    - strict: values beyond a capture's maximum fail the parse instead of
      spilling into loose; a full capture keeps claiming values until the
      next switch.
    - shell/fancy/colorful: render recorded faults with rich after parsing.
    """

    __displayable__ = ("name", "keyword", "parsed", "loose", "remainder", "children")

    def __init__(
            self,
            name=Unset,
            /,
            descr=Unset,
            *,
            doubledash=True,
            escape="\\",
            strict=False,
            shell=False,
            fancy=False,
            colorful=False
    ):
        if name is Unset:
            name = os.path.basename(sys.argv[0]) or "switchboard"
        if not isinstance(name, str):
            raise TypeError("parser 'name' must be a string")
        if not (name := name.strip()):
            raise ValueError("parser 'name' cannot be empty")
        if not isinstance(escape, str):
            raise TypeError("parser 'escape' must be a string")
        if len(escape) != 1 or escape.isspace() or escape in _PREFIXES + _SEPARATORS:
            raise ValueError("parser 'escape' must be a single character other than a prefix or separator")

        self._name = name
        self._descr = _sanitize_descr(descr)
        self._keyword = None
        self._parent = None

        self._doubledash = bool(doubledash)
        self._escape = escape
        self._strict = bool(strict)
        self._shell = bool(shell)
        self._fancy = bool(fancy)
        self._colorful = bool(colorful)

        # arena: definitions/records and groups/selections are index-aligned
        self._definitions = []
        self._records = []
        self._shorts = {}
        self._longs = {}
        self._groups = []
        self._selections = []
        self._children = {}

        self._loose = []
        self._remainder = []
        self._faults = []
        self._active = None
        self._parsed = False

    # --- hierarchy ---------------------------------------------------------

    @property
    def name(self):
        return self._name

    @property
    def descr(self):
        return self._descr

    @property
    def keyword(self):
        """
        the lower-cased keyword this parser is mounted under (None for the root).
        """
        return self._keyword

    @property
    def parent(self):
        return self._parent() if self._parent is not None else None

    @property
    def root(self):
        child, parent = self, self.parent
        while parent is not None:
            child, parent = parent, parent.parent
        return child

    @property
    def path(self):
        """
        the ancestry from the root to this parser, root first.
        """
        path = [parser := self]
        while parser.parent is not None:
            path.append(parser := parser.parent)
        return tuple(reversed(path))

    @property
    def children(self):
        return MappingProxyType(self._children)

    # --- settings ------------------------------------------------------------

    @property
    def doubledash(self):
        return self._doubledash

    @property
    def escape(self):
        return self._escape

    @property
    def strict(self):
        return self._strict

    @property
    def shell(self):
        return self._shell

    @property
    def fancy(self):
        return self._fancy

    @property
    def colorful(self):
        return self._colorful

    # --- builder -------------------------------------------------------------

    def switch(self, short=Unset, long=Unset, /, descr=Unset):
        """
        register a plain switch (off until seen, on whenever seen).
        """
        return self._register(Kind.SWITCH, short, long, descr, default=State.OFF)

    def onoff(self, short=Unset, long=Unset, /, default=State.UNDEFINED, descr=Unset):
        """
        register a tri-state switch: '-x' turns it off, '+x' and '/x' turn it on.
        """
        if not isinstance(default, State):
            raise TypeError("on-off switch 'default' must be a State")
        return self._register(Kind.ONOFF, short, long, descr, default=default)

    def capture(self, short=Unset, long=Unset, /, minimum=1, maximum=Unset, descr=Unset):
        """
        register a string capture taking between `minimum` and `maximum` values.

        parameters
        - minimum: int >= 0 (default 1); the option turns on once reached.
        - maximum: int >= 1 or Unset for unbounded; values beyond it go to the
          loose parameters (or fail the parse when the parser is strict).
        """
        minimum = _sanitize_count("minimum", minimum)
        if maximum is Unset:
            maximum = math.inf
        elif not (maximum := _sanitize_count("maximum", maximum)):
            raise ValueError("capture 'maximum' must be a positive integer")
        if minimum > maximum:
            raise ValueError("capture 'minimum' cannot be greater than 'maximum'")
        return self._register(Kind.CAPTURE, short, long, descr, minimum=minimum, maximum=maximum)

    def choice(self, default=Unset, /, descr=Unset):
        """
        register a group of mutually exclusive items; add them with Choice.item().

        `default` is the short name reported by Choice.value while nothing is selected.
        """
        self._guard("choice group")
        self._groups.append(Group([], _sanitize_short(default), _sanitize_descr(descr)))
        self._selections.append(Selection())
        return Choice(self, len(self._groups) - 1)

    def command(self, keyword, /, descr=Unset):
        """
        register a nested command and return its own Parser.

        The child inherits this parser's settings. Keywords are matched
        case-insensitively and must be unique on this level.
        """
        self._guard("command")
        if not isinstance(keyword, str):
            raise TypeError("command keyword must be a string")
        if not (keyword := keyword.strip().lower()):
            raise ValueError("command keyword cannot be empty")
        if re.search(r"\s", keyword) or keyword[0] in _PREFIXES or keyword[0] == self._escape:
            raise ValueError("command keyword cannot contain whitespace or start with a prefix or escape character")
        if keyword in self._children:
            raise DuplicateNameError(
                "command %r is already registered on %r" % (keyword, self.name),
                title="duplicate name",
                code=FaultCode.DUPLICATE_NAME,
                tool=self,
                name=keyword,
                hint="pick another keyword for this command",
                docs=getdoc(FaultCode.DUPLICATE_NAME),
            )

        child = Parser(
            keyword,
            descr,
            doubledash=self._doubledash,
            escape=self._escape,
            strict=self._strict,
            shell=self._shell,
            fancy=self._fancy,
            colorful=self._colorful,
        )
        child._keyword = keyword
        child._parent = weakref.ref(self)
        self._children[keyword] = child
        logger.debug("registered command %r on %r", keyword, self.name)
        return child

    def _guard(self, what):
        if self._parsed:
            raise RuntimeError(f"cannot register a {what} on {self.name!r} after parse()")

    def _register(self, kind, short, long, descr, *, minimum=0, maximum=0, default=State.UNDEFINED, group=None):
        self._guard(kind.value)
        short = _sanitize_short(short)
        long = _sanitize_long(long)
        descr = _sanitize_descr(descr)

        if short is None and long is None:
            raise TypeError(f"{kind.value} must specify at least one name")

        for name, table in ((short, self._shorts), (long, self._longs)):
            if name is not None and name in table:
                raise DuplicateNameError(
                    "name %r is already registered on %r" % (name, self.name),
                    title="duplicate name",
                    code=FaultCode.DUPLICATE_NAME,
                    tool=self,
                    name=name,
                    hint="give every switch of a parser its own short and long name",
                    docs=getdoc(FaultCode.DUPLICATE_NAME),
                )

        index = len(self._definitions)
        self._definitions.append(Definition(kind, short, long, descr, minimum, maximum, default, group))
        self._records.append(Record(default))
        if short is not None:
            self._shorts[short] = index
        if long is not None:
            self._longs[long] = index
        if group is not None:
            self._groups[group].items.append(index)

        logger.debug("registered %s %r/%r on %r", kind.value, short, long, self.name)
        return Option(self, index)

    # --- parsing -------------------------------------------------------------

    def parse(self, tokens=Unset, /):
        """
        Parse a token sequence into this tree and report success.

        Parameters
        - tokens:
          • Unset: read tokens from sys.argv[1:].
          • str: shell-like string; split via shlex.split.
          • Iterable[str]: pre-tokenized sequence, used as-is.

        Returns
        - True when every switch-shaped token resolved (and, when strict, no capture
          overflowed); False otherwise. Details are on .faults of the level that
          recorded them (follow .active to reach a matched command).

        Raises
        - TypeError: when tokens is not Unset/str/Iterable[str]. Nothing about the
          tokens themselves ever raises.
        """
        if tokens is Unset:
            tokens = sys.argv[1:]
        elif isinstance(tokens, str):
            tokens = shlex.split(tokens)
        elif isinstance(tokens, Iterable):
            tokens = list(tokens)
            if not all(isinstance(token, str) for token in tokens):
                raise TypeError("parse() argument must be a string or an iterable of strings")
        else:
            raise TypeError("parse() argument must be a string or an iterable of strings")

        return self._dispatch(list(tokens), 1)

    def _dispatch(self, tokens, start):
        """
        run the dispatch loop of this level over `tokens` (first one at ordinal `start`).
        """
        if self._parsed:
            self._warn(ReparseWarning(
                "parser %r was already parsed; results accumulate" % self.name,
                title="repeated parse",
                code=FaultCode.REPARSE,
                hint="build a fresh parser for every token sequence",
                docs=getdoc(FaultCode.REPARSE),
            ))
        self._parsed = True

        pending = None
        routable = True

        for index, token in enumerate(tokens):
            position = start + index

            if not token.strip():
                continue

            if routable:
                routable = False
                if (child := self._children.get(token.lower())) is not None:
                    return self._route(child, tokens[index + 1:], position)

            if self._doubledash and token == _TERMINATOR:
                self._remainder.extend(tokens[index + 1:])
                break

            match self._classify(token):
                case (sign, True, body):
                    pending = self._resolve_long(sign, body, token, position)
                case (sign, False, body):
                    pending = self._resolve_short(sign, body, token, position)
                case None:
                    value = self._unescape(token)
                    if pending is None:
                        self._loose.append(value)
                    else:
                        pending = self._accept(pending, value, position)

        self._active = self
        return self._finalize()

    def _route(self, child, tokens, position):
        logger.debug("%r delegates %d token(s) to command %r", self.name, len(tokens), child.keyword)
        self._active = child
        return child._dispatch(tokens, position + 1)

    def _classify(self, token):
        """
        split a switch-shaped token into (sign, long, body); None for values.
        """
        if len(token) < 2 or token[0] not in _PREFIXES:
            return None
        if self._doubledash:
            if len(token) > 2 and token[:2] in ("--", "++"):
                return token[0], True, token[2:]
            if token[1] == token[0]:
                return None
            return token[0], token[0] == "/" and len(token) > 2, token[1:]
        if token[1] == token[0]:
            return None
        return token[0], len(token) > 2, token[1:]

    def _unescape(self, token):
        if len(token) > 1 and token[0] == self._escape:
            return token[1:]
        return token

    def _resolve_short(self, sign, body, token, position):
        """
        apply every letter of a short-form body; return the pending capture index or None.
        """
        for offset, letter in enumerate(body):
            try:
                index = self._shorts[letter]
            except KeyError:
                self._defer(UnrecognizedTokenError(
                    "unknown switch %r in %r at %s position" % (letter, token, _ordinal(position)),
                    title="unknown switch",
                    code=FaultCode.UNKNOWN_SWITCH,
                    token=token,
                    name=letter,
                    index=position,
                    hint="check the help of '%s' for the available switches" % self._route_name(),
                    docs=getdoc(FaultCode.UNKNOWN_SWITCH),
                ))
                return None

            rest = body[offset + 1:]
            match self._definitions[index].kind:
                case Kind.SWITCH | Kind.ONOFF:
                    self._toggle(index, sign)
                case Kind.ITEM:
                    self._select(index)
                case Kind.CAPTURE:
                    if rest and rest[0] in _SEPARATORS:
                        return self._attach(index, rest[1:], True, position)
                    if rest:
                        return self._attach(index, rest, False, position)
                    return self._await(index)

            if rest and rest[0] in _SEPARATORS:
                logger.debug("ignoring value %r attached to switch %r", rest[1:], letter)
                return None

        return None

    def _resolve_long(self, sign, body, token, position):
        """
        apply a long-form body ('name', 'name=value', 'name:value').
        """
        name, separator, value = re.fullmatch(r"([^=:]*)([=:]?)(.*)", body, re.DOTALL).groups()

        try:
            index = self._longs[name.lower()]
        except KeyError:
            suggestions = difflib.get_close_matches(name.lower(), self._longs.keys(), 5)
            try:
                hint = "did you mean %r? check the help of '%s' for all switches" % (
                    suggestions[0], self._route_name()
                )
            except IndexError:
                hint = "check the help of '%s' for the available switches" % self._route_name()
            self._defer(UnrecognizedTokenError(
                "unknown switch %r at %s position" % (token, _ordinal(position)),
                title="unknown switch",
                code=FaultCode.UNKNOWN_LONG_SWITCH,
                token=token,
                name=name,
                index=position,
                suggestions=suggestions,
                hint=hint,
                docs=getdoc(FaultCode.UNKNOWN_LONG_SWITCH),
            ))
            return None

        match self._definitions[index].kind:
            case Kind.SWITCH | Kind.ONOFF:
                self._toggle(index, sign)
            case Kind.ITEM:
                self._select(index)
            case Kind.CAPTURE:
                if separator:
                    return self._attach(index, value, True, position)
                return self._await(index)

        if separator:
            logger.debug("ignoring value %r attached to switch %r", value, name)
        return None

    def _toggle(self, index, sign):
        record = self._records[index]
        match self._definitions[index].kind:
            case Kind.ONOFF:
                record.state = {"-": State.OFF, "+": State.ON, "/": State.ON}.get(sign, State.UNDEFINED)
            case Kind.SWITCH:
                record.state = State.ON
        record.count += 1

    def _select(self, index):
        group = self._definitions[index].group
        for item in self._groups[group].items:
            self._records[item].state = State.OFF
        record = self._records[index]
        record.state = State.ON
        record.count += 1
        selection = self._selections[group]
        selection.selected = index
        selection.count += 1

    def _await(self, index):
        """
        a capture seen without a value: it waits for the next value tokens.
        """
        if self._records[index].count >= self._definitions[index].minimum:
            self._records[index].state = State.ON
        return index

    def _attach(self, index, value, separated, position):
        """
        handle a value written inside the switch token itself.
        """
        record = self._records[index]
        if not value.strip():
            if not separated:
                return self._await(index)
            # '-o:' / '--output=' is an explicit "turn off and forget" request
            record.state = State.OFF
            record.values.clear()
            record.count = 0
            return None
        if self._accept(index, value, position) is None:
            return None
        return index if record.count < self._definitions[index].minimum else None

    def _accept(self, index, value, position):
        """
        capture one value; return the index while the capture still claims values, else None.

        Strict parsers keep a full capture pending, so each further value is
        recorded as an overflow until a switch-shaped token ends it.
        """
        definition = self._definitions[index]
        record = self._records[index]

        if record.count >= definition.maximum:
            name = definition.long or definition.short
            if self._strict:
                self._defer(CaptureOverflowError(
                    "value %r at %s position exceeds the %d value(s) of %r" % (
                        value, _ordinal(position), definition.maximum, name
                    ),
                    title="too many values",
                    code=FaultCode.CAPTURE_OVERFLOW,
                    token=value,
                    name=name,
                    index=position,
                    hint="pass at most %d value(s) to %r or move the extra ones before it" % (definition.maximum, name),
                    docs=getdoc(FaultCode.CAPTURE_OVERFLOW),
                ))
                return index
            logger.debug("capture %r is full; %r becomes a loose parameter", name, value)
            self._loose.append(value)
            return None

        record.values.append(value)
        record.count += 1
        if record.count >= definition.minimum:
            record.state = State.ON
        return index if self._strict or record.count < definition.maximum else None

    # --- faults --------------------------------------------------------------

    def _route_name(self):
        return " ".join(step.name for step in self.path)

    def _settings(self):
        return {
            "tool": self,
            "shell": self._shell,
            "fancy": self._fancy,
            "colorful": self._colorful,
            "deferred": True,
        }

    def _defer(self, fault):
        logger.debug("%r recorded fault %s: %s", self.name, fault.options["code"].name, fault.message)
        self._faults.append(fault.__replace__(**self._settings()))

    def _warn(self, warning):
        trigger(warning, **self._settings())

    def _finalize(self):
        """
        reduce the recorded faults to the boolean result (rendering them in shell mode).
        """
        if not self._faults:
            return True
        if self._shell:
            trigger(ParseExit(self._faults), **self._settings())
        logger.debug("%r finished with %d fault(s)", self.name, len(self._faults))
        return False

    # --- queries -------------------------------------------------------------

    @property
    def parsed(self):
        return self._parsed

    @property
    def active(self):
        """
        the command selected on this level: the matched child, this parser itself
        when no keyword matched, or None before parse().
        """
        return self._active

    @property
    def loose(self):
        return tuple(self._loose)

    @property
    def remainder(self):
        """
        tokens after '--', verbatim (no escape stripping, blanks included).
        """
        return tuple(self._remainder)

    @property
    def faults(self):
        return tuple(self._faults)

    @property
    def options(self):
        return tuple(Option(self, index) for index in range(len(self._definitions)))

    @property
    def choices(self):
        return tuple(Choice(self, index) for index in range(len(self._groups)))

    def switched(self, name, /):
        """
        whether the switch registered under `name` (short or long) is on.

        Raises KeyError when no switch of this level has that name.
        """
        if not isinstance(name, str):
            raise TypeError("switched() argument must be a string")
        try:
            index = self._shorts[name]
        except KeyError:
            try:
                index = self._longs[name.strip().lower()]
            except KeyError:
                raise KeyError(f"no switch named {name!r} on {self.name!r}") from None
        return self._records[index].state is State.ON

    def __getitem__(self, index, /):
        return self._loose[index]

    # --- help ----------------------------------------------------------------

    def helptext(self, *, padding=2, slashes=False, width=80):
        """
        plain-text help for this level (commands, options, then choice groups).
        """
        console = Console(width=width, color_system=None, force_terminal=False, highlight=False)
        with console.capture() as capture:
            console.print(render(self, padding=padding, slashes=slashes, colorful=False, fancy=False))
        return "\n".join(line.rstrip() for line in capture.get().splitlines())

    def _failed(self):
        level = self
        while level is not None:
            if level._faults:
                return True
            level = None if level._active is level else level._active
        return False

    def help(self, *, padding=2, slashes=False):
        """
        print the help of this level with rich.

        Goes to stderr when the last parse failed on this level or on any command
        it delegated to.
        """
        Console(stderr=self._failed()).print(render(self, padding=padding, slashes=slashes))

    def __rich_repr__(self):
        for name in type(self).__displayable__:
            if name == "children":
                yield name, tuple(self._children)
            else:
                yield name, getattr(self, name)

    def __repr__(self):
        return f"parser({', '.join(map(functools.partial(operator.mod, '%s=%r'), self.__rich_repr__()))})"


__all__ = (
    "Parser",
)
