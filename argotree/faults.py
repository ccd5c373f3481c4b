"""
Argotree faults (errors and warnings) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every fault raised while
  building, finalizing or parsing an action tree. Codes are grouped by domain.
- ActionException / ActionWarning: base types that carry message + options and
  know how to render themselves in a short, lowercased and actionable way.
- trigger(): central entry point to surface any fault (respecting shell/fancy/colorful).
- getdoc(): optional description lookup for a code from the host application.

Integration
- The action layer raises faults directly; payload (trigger, victim, remaining
  tokens, paths) travels in the options and is readable as attributes.
- invoke() surfaces faults through trigger(fault, **ctx): outside shell mode the
  exception is raised, in shell mode it is rendered via rich and the process exits.
"""
import copy
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
    canonical fault codes used across the action tree (stable identifiers).

    grouping (by high-level domain)
    - construction (1110x)
      • EMPTY_TRIGGER, ALREADY_ASSIGNED, DUPLICATED_SUBACTION, UNREACHABLE_ACTION,
        FROZEN_ACTION
    - finalization (1112x)
      • DOUBLE_FINALIZE
    - parsing (1113x)
      • NOT_FINALIZED, NIL_STATE, TOO_FEW_ARGS
    - warnings (121xx)
      • SURPLUS_ARG_NAMES
    """
    # --- construction errors (11xxx) ---
    EMPTY_TRIGGER               = 11101
    ALREADY_ASSIGNED            = 11102
    DUPLICATED_SUBACTION        = 11103
    UNREACHABLE_ACTION          = 11104
    FROZEN_ACTION               = 11105

    # --- finalization errors (11xxx) ---
    DOUBLE_FINALIZE             = 11121

    # --- parsing errors (11xxx) ---
    NOT_FINALIZED               = 11131
    NIL_STATE                   = 11132
    TOO_FEW_ARGS                = 11133

    # --- warnings (12xxx) ---
    SURPLUS_ARG_NAMES           = 12111

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _render(fault, palette, *, title):
    """
    build the rich renderable shared by exceptions and warnings.

    palette keys: prog-name, code, <title>, message, hint-arrow, hint.
    """
    main = __import__("__main__")
    options = fault.options
    styles = defaultdict(str, palette | getattr(main, "__styles__", {}))
    colorful = options.get("colorful", False)
    fancy = options.get("fancy", False)

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

    action = options.get("action")
    prog = text(getattr(main, "__prog__", action.root.trigger if action else "argotree"), styler("prog-name"))

    code = options.get("code")
    header = Text.assemble(
        "[ ",
        prog,
        " — ",
        text(code.normalize() if code else "?", styler("code")),
        " | ",
        text(options.get("title", type(fault).__name__).title(), styler(title)),
        " ]"
    )
    message = text(fault.message, styler("message"))
    renders = [message]
    if hint := options.get("hint"):
        renders.append(Text.assemble(text(" → ", styler("hint-arrow")), text(hint, styler("hint"))))

    if fancy:
        return Panel(Group(*renders), title=header, title_align="left")

    return Group(header, *renders)


class _Payload:
    """
    expose fault options as read-only attributes (fault.trigger, fault.victim, ...).
    """

    def __getattr__(self, name):
        try:
            return self.__dict__["options"][name]
        except KeyError:
            raise AttributeError(f"{type(self).__name__!r} fault has no attribute {name!r}") from None


class ActionException(_Payload, Exception):
    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message or "")
        self.message = message
        self.options = MappingProxyType(options)

    def __rich__(self):
        return _render(self, {
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title
            "message": "#C8C8D0",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        }, title="error-title")

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class EmptyTriggerError(ActionException): ...
class ActionAlreadyAssignedError(ActionException): ...
class DuplicatedSubActionError(ActionException): ...
class UnreachableActionError(ActionException): ...
class FrozenActionError(ActionException): ...
class DoubleFinalizeError(ActionException): ...
class ActionNotFinalizedError(ActionException): ...
class NilStateError(ActionException): ...
class TooFewArgsError(ActionException): ...


class ActionWarning(_Payload, ABC, Warning):
    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message or "")
        self.message = message
        self.options = MappingProxyType(options)

    def __rich__(self):
        return _render(self, {
            "prog-name": "bold #E6E6F0",
            "code": "bold #FFB400",  # amber fault code for warnings
            "warning-title": "bold #FFC2E0",
            "message": "#D6D6DE",
            "hint-arrow": "#B8EFAF dim",
            "hint": "italic #B8EFAF",
        }, title="warning-title")

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            return warnings.warn(self, stacklevel=len(inspect.stack()))
        console.print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class SurplusArgNamesWarning(ActionWarning): ...


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see base classes).
    - options are merged into the fault via copy.replace() before triggering.
    - in shell mode, rendering happens via the rich console; otherwise exceptions
      are raised and warnings go through warnings.warn.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ where keys
    are FaultCode instances and values are short documentation strings.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "ActionException",
    "EmptyTriggerError",
    "ActionAlreadyAssignedError",
    "DuplicatedSubActionError",
    "UnreachableActionError",
    "FrozenActionError",
    "DoubleFinalizeError",
    "ActionNotFinalizedError",
    "NilStateError",
    "TooFewArgsError",
    "ActionWarning",
    "SurplusArgNamesWarning",
    "FaultCode",
    "trigger",
    "getdoc",
)
