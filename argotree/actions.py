"""
Argotree action layer: build, finalize and dispatch action trees.

What this module provides
- Action: one node of a command-line action tree.
  • Identity: a trigger token that must match at the node's position.
  • Consume window: min_consume/max_consume tokens claimed after the trigger.
  • Handler: optional callable run when the node matches, handler(state, *extra).
  • Help metadata: short/long descriptions, placeholder names, hidden/disable_help,
    an inherited help trigger and an inherited help generator.
  • Children: sub-actions keyed by trigger, in attach order.

- Factories and helpers:
  • action(...): wrap a callable into an Action (decorator or direct call).
  • invoke(action, prompt): convenience runner that tokenizes, parses and prints.

Lifecycle
- Build: compose actions with add_subaction() (or parent=..., or @parent.action).
- Finalize: call finalize() exactly once on the root. Consume windows are
  normalized, paths are cached, help configuration is inherited, a synthetic
  help sub-action is injected where the trigger alone identifies the node, and
  the children registry is frozen.
- Parse: call parse(state, tokens, *extra) any number of times, each run with a
  fresh State. A finalized tree is read-only and may be shared across threads.

Matching rules
- A node only reacts when tokens[0] equals its trigger; otherwise parse() is a no-op.
- The tokens after the trigger are split in exactly one way: the node claims up
  to max_consume of them (all of them when unbounded), and the next unclaimed
  token, if any, is offered to the matching child. No backtracking is done.

Quick start
    from argotree import Action, State, action

    root = Action("git", short_descr="the stupid content tracker")

    @root.action(min_consume=1, arg_names=("<pathspec>",))
    def add(state):
        \"\"\"Add file contents to the index.\"\"\"
        state.write("adding %s\\n" % " ".join(state.args))

    root.finalize()
    state = State()
    root.parse(state, ["git", "add", "README.md"])
    print(state.output)
"""
import functools
import inspect
import operator
import re
import shlex
import sys
from collections.abc import Iterable, Sequence
from types import MappingProxyType

from rich.console import Console
from rich.text import Text

from . import faults
from .faults import *
from .rendering import HELP_DESCR, render_help
from .state import State
from .utils import *


class ActionType(type):
    """
    Metaclass that gives actions their read-only surface and representations.

    Responsibilities
    - Expose every name listed in __introspectable__ as a read-only property
      mirroring the private backing field ("_" + name) via mirror().
    - Provide stable, readable __repr__/__rich_repr__ for diagnostics and rich UI.

    Conventions
    - __typename__ is derived from the class name (camel-case split with hyphens).
    - __displayable__ (if set) narrows which properties are shown by __rich_repr__;
      otherwise __introspectable__ is used.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            """
            Return a concise, stable representation with key metadata.

            Example
            - action(trigger='add', path='git add', ...)
            """
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            """
            Yield (name, object) pairs for pretty printers.
            """
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _check_count(cls, name, value):
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{cls.__typename__} {name!r} must be an integer")
    return value


def _check_flag(cls, name, value, *, unset=False):
    if unset and value is Unset:
        return value
    if not isinstance(value, bool):
        raise TypeError(f"{cls.__typename__} {name!r} must be a boolean")
    return value


def _check_string(cls, name, value):
    if value is not Unset and not isinstance(value, str):
        raise TypeError(f"{cls.__typename__} {name!r} must be a string")
    return value


def _check_callable(cls, name, value):
    if value is not Unset and not callable(value):
        raise TypeError(f"{cls.__typename__} {name!r} must be callable")
    return value


class Action(metaclass=ActionType):
    """
    A node of an action tree.

    Responsibilities
    - Introspection: exposes its metadata (trigger, consume window, descriptions,
      help configuration, parent) as read-only properties.
    - Composition: owns its sub-actions; a node can be attached only once.
    - Preparation: finalize() validates and freezes the whole subtree.
    - Dispatch: parse() matches tokens, runs handlers and recurses into children.
    - Rendering: help() formats usage/description/sub-actions via the effective
      help generator (its own, the nearest ancestor's, or render_help).

    Consume window (normalized by finalize)
    - min_consume < 0 becomes 0.
    - 0 <= max_consume < min_consume becomes min_consume (so the default 0 means
      "same as the minimum").
    - max_consume < 0 means "every remaining token"; such a node cannot host
      sub-actions.
    """

    __introspectable__ = (
        "trigger",
        "handler",
        "min_consume",
        "max_consume",
        "short_descr",
        "long_descr",
        "arg_names",
        "hidden",
        "disable_help",
        "help_trigger",
        "help_generator",
        "parent",
        "shell",
        "fancy",
        "colorful",
        "finalized",
    )

    __displayable__ = (
        "trigger",
        "path",
        "min_consume",
        "max_consume",
        "short_descr",
        "hidden",
        "disable_help",
        "finalized",
        "subactions",
    )

    @property
    def root(self):
        """
        Return the topmost action in the current tree.
        """
        child, parent = self, self._parent
        while parent:
            child, parent = parent, parent._parent
        return child

    @property
    def path(self):
        """
        Space-joined triggers from the root to this action.

        Cached when the action is attached and recomputed by finalize(); a
        detached action's path is its own trigger.
        """
        return coalesce(self._path, self._trigger)

    @property
    def subactions(self):
        """
        Immediate sub-actions in attach order (the synthetic help one last).
        """
        return tuple(self._children.values())

    def __new__(
            cls,
            trigger,
            /,
            handler=Unset,
            parent=Unset,
            *,
            # ── Consume window ─────────────────────────────────────────────────────
            min_consume=0,
            max_consume=0,
            # ── Help metadata ──────────────────────────────────────────────────────
            short_descr=Unset,
            long_descr=Unset,
            arg_names=(),
            hidden=False,
            disable_help=False,
            # ── Inherited configuration (resolved by finalize) ─────────────────────
            help_trigger=Unset,
            help_generator=Unset,
            shell=Unset,
            fancy=Unset,
            colorful=Unset,
    ):
        """
        Construct a detached action (or attach it right away when parent is given).

        Parameters
        - trigger: str
          Token matched at this node's position. An empty trigger is accepted here
          but rejected by add_subaction() and finalize().
        - handler: Callable[[State, ...], Any] | Unset
          Run when the action matches; receives the state and the extra values
          given to parse(). Failures are raised and propagate out of parse() as-is.
        - parent: Action | Unset
          When given, the new action is attached to it via parent.add_subaction().
        - min_consume, max_consume: int
          Consume window (see class docstring for normalization).
        - short_descr, long_descr: str | Unset
          Help texts; long_descr wins in the action's own help.
        - arg_names: Iterable[str]
          Placeholder names of consumed tokens, positionally (fallback "<argN>").
        - hidden: bool
          Keep the action out of its parent's sub-actions table.
        - disable_help: bool
          Do not inject the synthetic help sub-action under this action.
        - help_trigger, help_generator, shell, fancy, colorful:
          Inherited from the parent at finalize time when Unset
          (root defaults: "help", render_help, False, False, False).

        Raises
        - TypeError on invalid field types.
        - Any ActionException raised by add_subaction() when parent is given.
        """
        if not isinstance(trigger, str):
            raise TypeError(f"{cls.__typename__} 'trigger' must be a string")
        if not isinstance(parent, Action | Unset):
            raise TypeError(f"{cls.__typename__} 'parent' must be an action")
        if isinstance(arg_names, str) or not isinstance(arg_names, Iterable):
            raise TypeError(f"{cls.__typename__} 'arg_names' must be an iterable of strings")
        arg_names = tuple(arg_names)
        if not all(isinstance(name, str) for name in arg_names):
            raise TypeError(f"{cls.__typename__} 'arg_names' must be an iterable of strings")

        self = super().__new__(cls)
        self._trigger = trigger
        self._handler = _check_callable(cls, "handler", handler)
        self._min_consume = _check_count(cls, "min_consume", min_consume)
        self._max_consume = _check_count(cls, "max_consume", max_consume)
        self._short_descr = _check_string(cls, "short_descr", short_descr)
        self._long_descr = _check_string(cls, "long_descr", long_descr)
        self._arg_names = arg_names
        self._hidden = _check_flag(cls, "hidden", hidden)
        self._disable_help = _check_flag(cls, "disable_help", disable_help)
        self._help_trigger = _check_string(cls, "help_trigger", help_trigger)
        self._help_generator = _check_callable(cls, "help_generator", help_generator)
        self._shell = _check_flag(cls, "shell", shell, unset=True)
        self._fancy = _check_flag(cls, "fancy", fancy, unset=True)
        self._colorful = _check_flag(cls, "colorful", colorful, unset=True)
        self._parent = None
        self._path = Unset
        self._children = {}
        self._finalized = False

        if parent:
            parent.add_subaction(self)
        return self

    def add_subaction(self, subaction, /):
        """
        Attach `subaction` as a child of this action.

        Rules (checked in this order)
        - EmptyTriggerError: the sub-action has no trigger.
        - ActionAlreadyAssignedError: the sub-action already has a parent.
        - UnreachableActionError: this action consumes every remaining token
          (raw max_consume < 0), so no token is ever left for a child.
        - DuplicatedSubActionError: a sibling with the same trigger exists.
        - FrozenActionError: this action was already finalized.

        Returns
        - The attached sub-action (handy for chaining).
        """
        if not isinstance(subaction, Action):
            raise TypeError("add_subaction() argument must be an action")

        if not subaction._trigger:
            raise EmptyTriggerError(
                "action with empty trigger is not allowed",
                title="empty trigger",
                code=FaultCode.EMPTY_TRIGGER,
                action=self,
                hint="give the sub-action a non-empty trigger before attaching it under '%s'" % self.path,
                docs=getdoc(FaultCode.EMPTY_TRIGGER),
            )

        if subaction._parent is not None:
            raise ActionAlreadyAssignedError(
                "action already belongs to an action tree\naction path: %s" % subaction.path,
                title="action already assigned",
                code=FaultCode.ALREADY_ASSIGNED,
                action=self,
                victim=subaction,
                assigned_path=subaction.path,
                hint="build a new action instead of reusing '%s'" % subaction.path,
                docs=getdoc(FaultCode.ALREADY_ASSIGNED),
            )

        if self._max_consume < 0:
            raise UnreachableActionError(
                "sub-action %r can never be reached\naction path: %s %s" % (
                    subaction._trigger, self.path, subaction._trigger
                ),
                title="unreachable sub-action",
                code=FaultCode.UNREACHABLE_ACTION,
                action=self,
                victim=subaction,
                path="%s %s" % (self.path, subaction._trigger),
                hint="'%s' consumes every remaining token; bound its max consume first" % self.path,
                docs=getdoc(FaultCode.UNREACHABLE_ACTION),
            )

        if subaction._trigger in self._children:
            raise DuplicatedSubActionError(
                "sub-action already exists, trigger: %s" % subaction._trigger,
                title="duplicated sub-action",
                code=FaultCode.DUPLICATED_SUBACTION,
                action=self,
                trigger=subaction._trigger,
                hint="rename one of the '%s' sub-actions under '%s'" % (subaction._trigger, self.path),
                docs=getdoc(FaultCode.DUPLICATED_SUBACTION),
            )

        if self._finalized:
            raise FrozenActionError(
                "action tree is already finalized\naction path: %s" % self.path,
                title="frozen action",
                code=FaultCode.FROZEN_ACTION,
                action=self,
                victim=self,
                hint="attach every sub-action before calling finalize()",
                docs=getdoc(FaultCode.FROZEN_ACTION),
            )

        subaction._parent = self
        subaction._path = "%s %s" % (self.path, subaction._trigger)
        self._children[subaction._trigger] = subaction
        return subaction

    def action(self, source=Unset, /, **kwargs):
        """
        Create a sub-action from a callable and attach it under this action.

        Thin wrapper around the top-level action(...) factory injecting parent=self;
        usable directly (self.action(func, ...)) or as a decorator (@self.action(...)).
        """
        return action(source, parent=self, **kwargs)

    def get_subaction(self, trigger, /):
        """
        Return the immediate sub-action registered under `trigger`, or None.
        """
        return self._children.get(trigger)

    def finalize(self):
        """
        Prepare this action and its whole subtree for parse(); call it exactly once.

        Raises
        - DoubleFinalizeError: some action of the subtree was finalized before.
        - EmptyTriggerError: some action of the subtree has no trigger.

        The first error aborts the pass; actions visited so far stay marked as
        finalized, so a tree whose finalize() failed must not be reused.
        """
        self._finalize(None)

    def _finalize(self, parent):
        if self._finalized:
            raise DoubleFinalizeError(
                "action double finalized\naction path: %s" % self.path,
                title="double finalize",
                code=FaultCode.DOUBLE_FINALIZE,
                action=self,
                victim=self,
                hint="call finalize() once, on the root of the tree",
                docs=getdoc(FaultCode.DOUBLE_FINALIZE),
            )

        if not self._trigger:
            raise EmptyTriggerError(
                "action with empty trigger is not allowed",
                title="empty trigger",
                code=FaultCode.EMPTY_TRIGGER,
                action=parent or self,
                hint="give every action of the tree a non-empty trigger",
                docs=getdoc(FaultCode.EMPTY_TRIGGER),
            )

        self._parent = parent

        if self._min_consume < 0:
            self._min_consume = 0
        if 0 <= self._max_consume < self._min_consume:
            self._max_consume = self._min_consume

        if parent is None:
            self._path = self._trigger
            self._help_generator = coalesce(self._help_generator, render_help)
            self._help_trigger = coalesce(self._help_trigger, "help")
            self._shell = coalesce(self._shell, False)
            self._fancy = coalesce(self._fancy, False)
            self._colorful = coalesce(self._colorful, False)
        else:
            self._path = "%s %s" % (parent._path, self._trigger)
            self._help_generator = coalesce(self._help_generator, parent._help_generator)
            self._help_trigger = coalesce(self._help_trigger, parent._help_trigger)
            self._shell = coalesce(self._shell, parent._shell)
            self._fancy = coalesce(self._fancy, parent._fancy)
            self._colorful = coalesce(self._colorful, parent._colorful)

        if 0 <= self._max_consume < len(self._arg_names):
            trigger(
                SurplusArgNamesWarning(
                    "%d argument names given but at most %d tokens are consumed" % (
                        len(self._arg_names), self._max_consume
                    ),
                    title="surplus argument names",
                    code=FaultCode.SURPLUS_ARG_NAMES,
                    victim=self,
                    surplus=self._arg_names[self._max_consume:],
                    hint="drop %s from '%s'" % (", ".join(self._arg_names[self._max_consume:]), self.path),
                    docs=getdoc(FaultCode.SURPLUS_ARG_NAMES),
                ),
                action=self,
                shell=self._shell,
                fancy=self._fancy,
                colorful=self._colorful,
            )

        # The trigger alone identifies this action: a following token may ask for help.
        if not self._disable_help and self._max_consume == 0:
            try:
                Action(
                    self._help_trigger,
                    self._helper,
                    self,
                    max_consume=1,
                    short_descr=HELP_DESCR,
                    arg_names=("<sub-action>",),
                    disable_help=True,
                )
            except DuplicatedSubActionError:
                pass

        self._children = MappingProxyType(dict(self._children))
        self._finalized = True

        for subaction in self._children.values():
            subaction._finalize(self)

    def parse(self, state, tokens, /, *extra):
        """
        Match `tokens` against this action and dispatch down the tree.

        Parameters
        - state: State
          Fresh per-call state; receives consumed tokens and handler output.
        - tokens: Sequence[str]
          Remaining tokens, starting with the one expected to equal the trigger.
        - *extra:
          Opaque values forwarded unchanged to every handler along the path.

        Behavior
        - No tokens, or a first token different from the trigger: nothing happens.
        - Otherwise the tokens after the trigger are split once:
          • fewer than min_consume → TooFewArgsError;
          • unbounded window, or no more than max_consume → all are consumed,
            the handler runs and the traversal stops here;
          • more than max_consume → the first max_consume are consumed, the
            handler runs, and the next token is offered to the matching
            sub-action (if any) together with everything after it.

        Raises
        - ActionNotFinalizedError, NilStateError, TooFewArgsError.
        - Whatever a handler raises, unchanged.
        """
        if not self._finalized:
            raise ActionNotFinalizedError(
                "action not finalized\naction path: %s" % self.path,
                title="action not finalized",
                code=FaultCode.NOT_FINALIZED,
                action=self,
                victim=self,
                hint="call finalize() on the root of the tree before parsing",
                docs=getdoc(FaultCode.NOT_FINALIZED),
            )

        if isinstance(tokens, str) or not isinstance(tokens, Sequence):
            raise TypeError("parse() tokens must be a sequence of strings")

        if not tokens:
            return

        if state is None:
            raise NilStateError(
                "calling parse() with state == None",
                title="nil state",
                code=FaultCode.NIL_STATE,
                action=self,
                hint="pass a fresh State() to every top-level parse() call",
                docs=getdoc(FaultCode.NIL_STATE),
            )

        if tokens[0] != self._trigger:
            return

        rest = tokens[1:]

        if len(rest) < self._min_consume:
            raise TooFewArgsError(
                "too few arguments: %s\naction path: %s" % (list(rest), self.path),
                title="too few arguments",
                code=FaultCode.TOO_FEW_ARGS,
                action=self,
                victim=self,
                remaining=tuple(rest),
                hint="'%s' needs at least %d argument(s), got %d" % (self.path, self._min_consume, len(rest)),
                docs=getdoc(FaultCode.TOO_FEW_ARGS),
            )

        if self._max_consume < 0 or len(rest) <= self._max_consume:
            state._consume(rest)
            if self._handler is not Unset:
                self._handler(state, *extra)
            return

        state._consume(rest[:self._max_consume])
        if self._handler is not Unset:
            self._handler(state, *extra)

        rest = rest[self._max_consume:]
        if (subaction := self._children.get(rest[0])) is not None:
            subaction.parse(state, rest, *extra)

    def help(self):
        """
        Return the help text of this action from its effective help generator.
        """
        action = self
        while action is not None and action._help_generator is Unset:
            action = action._parent
        generator = render_help if action is None else action._help_generator
        return generator(self)

    def _helper(self, state, *extra):
        """
        Handler of the synthetic help sub-action injected under this action.

        - no token consumed: write this action's help.
        - one token naming a sub-action: write that sub-action's help.
        - one token naming nothing: write a "not found" notice.
        """
        if not state.args:
            return state.write(self.help())
        if (subaction := self.get_subaction(name := state.args[0])) is None:
            return state.write("sub-action %r not found under '%s'\n" % (name, self.path))
        state.write(subaction.help())


def action(source=Unset, /, **kwargs):
    """
    Create an Action from a callable, or return a decorator that will.

    Invocation modes
    - Direct: act = action(func, trigger="x", min_consume=1)
    - Decorator:
        @action(min_consume=1)
        def push(state): ...

    Defaults
    - trigger: the callable's __name__.
    - short_descr: first line of the callable's docstring.
    - long_descr: the whole docstring.

    Every other keyword is forwarded to Action(...) (parent included).
    """
    @rename("action")
    def wrapper(source, /):
        if not callable(source):
            raise TypeError("@action() must be applied to a callable")
        options = {}
        if descr := inspect.getdoc(source):
            options["short_descr"] = descr.partition("\n")[0]
            options["long_descr"] = descr
        options |= kwargs
        return Action(options.pop("trigger", getattr(source, "__name__", Unset)), source, **options)

    return wrapper(source) if source is not Unset else wrapper


def _echo(console, output):
    # Decoded line by line; the final line break is emitted by print().
    text = Text("\n").join(Text.from_ansi(line) for line in output.removesuffix("\n").split("\n"))
    console.print(text, end="\n" if output.endswith("\n") else "", soft_wrap=True)


def invoke(action, prompt=Unset, /, *extra):
    """
    Convenience runner: tokenize, parse with a fresh State and print the output.

    Parameters
    - action: a finalized Action (usually the root).
    - prompt:
      • Unset: [action.trigger, *sys.argv[1:]].
      • str: shell-like string split with shlex.split (must start with the trigger).
      • Iterable[str]: pre-tokenized sequence; each element is trimmed.
    - *extra: forwarded to every handler.

    Behavior
    - Faults (ActionException) are surfaced via trigger(): raised, or rendered on
      stderr followed by exit(1) when the action runs in shell mode (the victim's
      help is shown first). Handler exceptions propagate unchanged.
    - The accumulated output is printed on stdout.

    Returns
    - The State of the run.
    """
    if not isinstance(action, Action):
        raise TypeError("invoke() first argument must be an action")

    if prompt is Unset:
        tokens = [action.trigger, *sys.argv[1:]]
    elif isinstance(prompt, str):
        tokens = shlex.split(prompt)
    elif isinstance(prompt, Iterable):
        def _sanitized(iterable):
            for item in iterable:
                if not isinstance(item, str):
                    raise TypeError("invoke() prompt must be a string or an iterable of strings")
                if item := item.strip():
                    yield item
        tokens = list(_sanitized(prompt))
    else:
        raise TypeError("invoke() prompt must be a string or an iterable of strings")

    state = State()
    try:
        action.parse(state, tokens, *extra)
    except ActionException as fault:
        shell = bool(action.shell)
        if shell and (victim := getattr(fault, "victim", None)) is not None and victim.finalized:
            _echo(faults.console, victim.help())
        trigger(fault, action=action, shell=shell, fancy=bool(action.fancy), colorful=bool(action.colorful))

    if output := state.output:
        _echo(Console(highlight=False), output)
    return state


__all__ = (
    # Public API surface for consumers of argotree.actions.
    # These names are re-exported from the package __init__.
    "Action",
    "action",
    "invoke",
)

# Not part of the public API.
del ActionType
