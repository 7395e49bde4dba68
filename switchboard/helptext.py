"""
Help rendering for a parser level.

Reads registry metadata only (kinds, names, descr, command keywords) and never
touches parse state. Layout, in order:
- command keywords with their descr,
- ungrouped options,
- one block per choice group, headed by the group descr.

Entries without a descr are left out, and so are groups without a descr or
without any listed item.

Palette keys
- command-name, switch-name, onoff-name, capture-name, item-name
- group-label, description, panel-title

Customization
- Define a mapping named __styles__ in __main__ to override any palette entry.
- When colorful is False, styling is suppressed.
"""
from collections import defaultdict

from rich.console import Group
from rich.padding import Padding
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .options import Kind
from .utils import Unset, nullify


def _columns(parser, definition, slashes):
    """
    (short form, long form) of one option as shown in help.
    """
    short = long = ""
    if definition.short is not None:
        if definition.kind is Kind.ONOFF:
            short = f"+|-{definition.short}"
        else:
            short = f"{'/' if slashes else '-'}{definition.short}"
    if definition.long is not None:
        if slashes:
            long = f"/{definition.long}"
        else:
            long = f"{'--' if parser.doubledash else '-'}{definition.long}"
    if short and long:
        short += ","
    return short, long


def render(parser, *, padding=2, slashes=False, colorful=Unset, fancy=Unset):
    """
    Build a rich renderable with the help of `parser`.

    Parameters
    - padding: left indentation of every entry.
    - slashes: show '/x' and '/name' forms instead of dashes.
    - colorful/fancy: default to the parser settings.
    """
    colorful = nullify(colorful, parser.colorful)
    fancy = nullify(fancy, parser.fancy)

    styles = defaultdict(str, {
        "command-name": "bold #36C5F0",  # SKY-BLUE commands
        "switch-name": "bold #22C55E",  # GREEN plain switches
        "onoff-name": "bold #22C55E",
        "capture-name": "bold #00E6FF",  # CYAN value-bearing captures
        "item-name": "bold #FF4D94",  # MAGENTA choice items
        "group-label": "bold #FFFFFF",  # Pure white headers
        "description": "#9CA3AF",  # Muted gray
        "panel-title": "bold #FF4D94",
    } | getattr(__import__('__main__'), "__styles__", {}))

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

    def table():
        grid = Table.grid(padding=(0, 1))
        grid.add_column(no_wrap=True)
        grid.add_column(no_wrap=True)
        grid.add_column()
        return grid

    style = {
        Kind.SWITCH: "switch-name",
        Kind.ONOFF: "onoff-name",
        Kind.CAPTURE: "capture-name",
        Kind.ITEM: "item-name",
    }

    def rows(grid, indices):
        for index in indices:
            definition = parser._definitions[index]
            if not definition.descr:
                continue
            short, long = _columns(parser, definition, slashes)
            grid.add_row(
                text(short, styler(style[definition.kind])),
                text(long, styler(style[definition.kind])),
                text(definition.descr, styler("description")),
            )
        return grid

    renders = []

    main = table()
    for keyword, child in parser.children.items():
        if child.descr:
            main.add_row(text(keyword, styler("command-name")), Text(""), text(child.descr, styler("description")))
    rows(main, (index for index, definition in enumerate(parser._definitions) if definition.group is None))
    if main.row_count:
        renders.append(Padding(main, (0, 0, 0, padding)))

    for group in parser._groups:
        grid = rows(table(), group.items)
        if not group.descr or not grid.row_count:
            continue
        block = Group(text(group.descr, styler("group-label")), grid)
        if renders:
            renders.append(Text(""))
        renders.append(Padding(block, (0, 0, 0, padding)))

    renderable = Group(*renders)

    if fancy:
        renderable = Panel(
            renderable,
            title=Text.assemble("[", " ", f"{parser.name} HELP".upper(), " ", "]", style=styler("panel-title")),
            title_align="left",
        )

    return renderable


__all__ = (
    "render",
)
