"""
Per-call parsing state.

A State is created fresh by the caller for every top-level parse() and thrown
away afterwards. Handlers read the tokens consumed by their own action through
`args` and write human-readable output into an append-only sink; the sink's
accumulated text (`output`) is the caller-visible result of the run.
"""
from io import StringIO


class State:
    """
    Mutable, non-shareable state of a single parse() run.

    - args: tokens consumed by the currently-executing action (valid inside its handler).
    - write(*fragments): append text to the output sink.
    - output: everything written so far.
    """
    __slots__ = ("_args", "_sink")

    def __init__(self):
        self._args = ()
        self._sink = StringIO()

    @property
    def args(self):
        return self._args

    @property
    def output(self):
        return self._sink.getvalue()

    def write(self, *fragments):
        for fragment in fragments:
            if not isinstance(fragment, str):
                raise TypeError("State.write() arguments must be strings")
            self._sink.write(fragment)

    def _consume(self, tokens, /):
        # Rebound by the parser right before each handler call.
        self._args = tuple(tokens)

    def __repr__(self):
        return f"state(args={self._args!r}, output={self.output!r})"


__all__ = (
    "State",
)
