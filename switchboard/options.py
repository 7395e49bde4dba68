r"""
Switchboard option definitions, parse-time records and query handles.

Overview
- Tags
  • Kind: what a registered option is (switch, on/off switch, string capture, choice item).
  • State: tri-state result of a parse (ON, OFF, UNDEFINED).

- Arena entries (owned by a Parser, addressed by integer index)
  • Definition: immutable registration metadata (names, descr, arity, default, group).
  • Record: mutable parse state (state, captured values, count), one per Definition.
  • Group: immutable choice-group metadata (item indices, default short name, descr).
  • Selection: mutable choice-group state (selected item index, selection count).

- Handles (returned by the builder, used afterwards purely as query keys)
  • Option: read-only view over one Definition/Record pair.
  • Choice: read-only view over one Group/Selection pair, plus item() to add members.

Handles never own state: they only keep their parser and an index into its tables,
so a parser level is the single owner of everything registered on it.

Quick example:
    >>> from switchboard import Parser
    >>> parser = Parser()
    >>> verbose = parser.switch("v", "verbose")
    >>> output = parser.capture("o", "output", maximum=1)
    >>> parser.parse(["-v", "--output=out.txt"])
    True
    >>> verbose.switched, output.value
    (True, 'out.txt')
"""
import functools
import operator
from enum import Enum
from typing import NamedTuple

from .utils import *


class Kind(Enum):
    """
    tag of a registered option; dispatch over it is always an exhaustive match.
    """
    SWITCH = "switch"
    ONOFF = "on-off switch"
    CAPTURE = "capture"
    ITEM = "choice item"


class State(Enum):
    """
    tri-state result of a parse for a single option.
    """
    ON = "on"
    OFF = "off"
    UNDEFINED = "undefined"


class Definition(NamedTuple):
    kind: Kind
    short: str | None
    long: str | None
    descr: str | None
    minimum: int
    maximum: int | float
    default: State
    group: int | None


class Record:
    """
    parse-time state of one option.

    invariants
    - count is the number of occurrences for switches and items, and the number of
      currently captured values for captures (an explicit clear resets it).
    - values is only ever appended to while parsing, or cleared by an explicit
      "-o:" / "--output=" signal.
    """
    __slots__ = ("state", "values", "count")

    def __init__(self, state):
        self.state = state
        self.values = []
        self.count = 0

    def __repr__(self):
        return f"record(state={self.state.value!r}, values={self.values!r}, count={self.count!r})"


class Group(NamedTuple):
    items: list[int]
    default: str | None
    descr: str | None


class Selection:
    __slots__ = ("selected", "count")

    def __init__(self):
        self.selected = None
        self.count = 0


def _mirror(field):
    """
    internal: expose one Definition field as a read-only handle property.
    """

    @rename(field)
    def getter(self):
        return getattr(self._parser._definitions[self._index], field)

    return property(getter, doc=f"registered {field!r} of this option (read-only).")


class Option:
    """
    Query handle for a registered switch, on/off switch, capture or choice item.

    Instances are created by the Parser builder methods (switch, onoff, capture)
    and by Choice.item(); they are opaque keys into their parser's tables. All
    properties are read-only and meaningful once Parser.parse() has run.
    """
    __slots__ = ("_parser", "_index")

    __displayable__ = ("kind", "short", "long", "state", "values", "count")

    kind = _mirror("kind")
    short = _mirror("short")
    long = _mirror("long")
    descr = _mirror("descr")
    minimum = _mirror("minimum")
    maximum = _mirror("maximum")
    default = _mirror("default")

    def __init__(self, parser, index, /):
        self._parser = parser
        self._index = index

    @property
    def _record(self):
        return self._parser._records[self._index]

    @property
    def state(self):
        """
        State.ON, State.OFF or State.UNDEFINED.
        """
        return self._record.state

    @property
    def switched(self):
        """
        True only when the state is State.ON.
        """
        return self._record.state is State.ON

    @property
    def value(self):
        """
        first captured value, or None when nothing was captured.
        """
        try:
            return self._record.values[0]
        except IndexError:
            return None

    @property
    def values(self):
        return tuple(self._record.values)

    @property
    def count(self):
        return self._record.count

    @property
    def choice(self):
        """
        the Choice this option belongs to, or None for ungrouped options.
        """
        group = self._parser._definitions[self._index].group
        return None if group is None else Choice(self._parser, group)

    def __getitem__(self, index, /):
        return self._record.values[index]

    def __eq__(self, other, /):
        if not isinstance(other, Option):
            return NotImplemented
        return self._parser is other._parser and self._index == other._index

    def __hash__(self):
        return hash((id(self._parser), self._index))

    def __rich_repr__(self):
        for name in type(self).__displayable__:
            yield name, getattr(self, name)

    def __repr__(self):
        return f"option({', '.join(map(functools.partial(operator.mod, '%s=%r'), self.__rich_repr__()))})"


class Choice:
    """
    Query handle for a group of mutually exclusive choice items.

    Selecting one item (by any of its names) turns it on and every sibling off.
    value falls back to the group default short name when nothing was selected.
    """
    __slots__ = ("_parser", "_index")

    __displayable__ = ("value", "selected", "count")

    def __init__(self, parser, index, /):
        self._parser = parser
        self._index = index

    def item(self, short=Unset, long=Unset, /, descr=Unset):
        """
        register a new choice item in this group and return its Option handle.

        same naming rules and DuplicateNameError behavior as Parser.switch().
        """
        return self._parser._register(Kind.ITEM, short, long, descr, group=self._index)

    @property
    def items(self):
        return tuple(Option(self._parser, index) for index in self._parser._groups[self._index].items)

    @property
    def default(self):
        return self._parser._groups[self._index].default

    @property
    def descr(self):
        return self._parser._groups[self._index].descr

    @property
    def selected(self):
        """
        the selected item's Option handle, or None.
        """
        selected = self._parser._selections[self._index].selected
        return None if selected is None else Option(self._parser, selected)

    @property
    def value(self):
        """
        short name of the selected item, else the group default (None if neither).
        """
        selected = self._parser._selections[self._index].selected
        if selected is None:
            return self._parser._groups[self._index].default
        return self._parser._definitions[selected].short

    @property
    def count(self):
        """
        how many times any item of this group was selected.
        """
        return self._parser._selections[self._index].count

    def __eq__(self, other, /):
        if not isinstance(other, Choice):
            return NotImplemented
        return self._parser is other._parser and self._index == other._index

    def __hash__(self):
        return hash((id(self._parser), self._index))

    def __rich_repr__(self):
        for name in type(self).__displayable__:
            yield name, getattr(self, name)

    def __repr__(self):
        return f"choice({', '.join(map(functools.partial(operator.mod, '%s=%r'), self.__rich_repr__()))})"


__all__ = (
    "Kind",
    "State",
    "Definition",
    "Record",
    "Group",
    "Selection",
    "Option",
    "Choice",
)
