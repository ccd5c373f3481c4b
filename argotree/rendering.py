"""
Default help rendering for actions.

The generator follows the very same consume-window rules the parser uses, so
what the usage line advertises is exactly what parse() accepts:

    usage: <path> <required...> [<optional...>] [sub-action]

- required placeholders: one per token in [0, min_consume)
- optional placeholders: [min_consume, max_consume) in a bracketed group, or a
  single "[<argN> ...]" when the window is unbounded
- "[sub-action]": appended when the action has visible sub-actions, which are
  reachable once the window has been filled

Placeholders come from `arg_names` positionally, falling back to "<argN>"
(1-based). The description prefers `long_descr` over `short_descr`, and the
sub-actions table lists every visible child (the synthetic help child included).

Rendering goes through rich and is captured into a string: plain text unless
the action is `colorful`, wrapped in a Panel when it is `fancy`. Palette keys can
be overridden with a `__styles__` mapping in __main__.
"""
from collections import defaultdict, deque
from io import StringIO

from rich.box import ROUNDED
from rich.console import Console, Group
from rich.containers import Lines
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

HELP_DESCR = "Display help for this Action or Sub-action"


def placeholder(action, index, /):
    """
    display name of the consumed argument at 0-based `index`.
    """
    names = action.arg_names
    return names[index] if index < len(names) else f"<arg{index + 1}>"


def _capture(renderable, console):
    console.print(renderable)
    return console.file.getvalue()


def render_help(action, /):
    """
    Render the complete help text of `action` and return it as a string.
    """
    colorful = bool(action.colorful)
    fancy = bool(action.fancy)
    console = Console(
        file=StringIO(),
        color_system="truecolor" if colorful else None,
        force_terminal=colorful,
        highlight=False,
    )
    styles = defaultdict(str, {
        # === Head sections ===
        "usage-label": "bold #00E6FF",  # CYAN → signature info color
        "program-name": "bold #FF4D94",  # MAGENTA-PINK → brand pop
        "description-section": "italic #A3A3A3",  # Neutral gray

        # === Placeholders ===
        "metavar": "bold #FFD600",  # AMBER for consumed arguments
        "greedy-metavar": "bold italic #FFD600",
        "sub-action": "bold #36C5F0",

        # === Sub-actions table ===
        "children-title": "bold #FFFFFF",
        "children-table": "#4B5563",  # Slate border
        "children": "bold #36C5F0",  # Sky-blue sub-actions
        "children-description": "#9CA3AF",

        # === Fancy panel ===
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

    renders = []
    width = console.width - 4 * fancy
    # Raw windows are not normalized until finalize().
    minimum, maximum = max(action.min_consume, 0), action.max_consume
    children = [child for child in action.subactions if not child.hidden]

    usage = Text()
    usage.append("usage", styler("usage-label")).append(":")
    usage.append(" ")
    usage.append(text(action.path, styler("program-name")))
    usage.append(" ")

    offset = len(usage)
    inputs = deque()

    for index in range(minimum):
        inputs.append(text(placeholder(action, index), styler("metavar")))

    if maximum < 0:
        inputs.append(Text.assemble(
            "[", text(placeholder(action, minimum), styler("greedy-metavar")), " ", "...", "]"
        ))
    elif maximum > minimum:
        inputs.append(Text.assemble(
            "[",
            Text(" ").join(text(placeholder(action, index), styler("metavar")) for index in range(minimum, maximum)),
            "]"
        ))

    if children and maximum >= 0:
        inputs.append(Text.assemble("[", text("sub-action", styler("sub-action")), "]"))

    try:
        lines = Lines([inputs.popleft()])
    except IndexError:
        lines = Lines()

    while inputs:
        if len(lines[-1]) + 1 + len(input := inputs.popleft()) > width - offset:
            lines.append(input)
        else:
            lines[-1].append(Text(" ") + input)

    try:
        usage.append(lines.pop(0))
    except IndexError:
        usage.rstrip()
    for line in lines:
        usage.append("\n").append(" " * offset).append(line)

    renders.append(usage.append("\n"))

    if descr := action.long_descr or action.short_descr:
        renders.append(text(descr, styler("description-section")).append("\n"))

    if children:
        table = Table(
            "name", "help",
            title=text("sub-actions", styler("children-title")),
            box=ROUNDED,
            style=styler("children-table"),
            header_style=styler("children-title"),
        )
        for child in children:
            table.add_row(
                text(child.trigger, styler("children")),
                text(child.short_descr or "no description", styler("children-description")),
            )
        renders.append(table)
    else:
        renders[-1].rstrip()

    renderable = Group(*renders)

    if fancy:
        renderable = Panel(
            renderable,
            title=Text.assemble("[", " ", f"{action.path} HELP".upper(), " ", "]", style=styler("panel-title")),
            title_align="left",
        )

    return _capture(renderable, console)


__all__ = (
    "HELP_DESCR",
    "placeholder",
    "render_help",
)
