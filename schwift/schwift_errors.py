"""
Runtime errors for the Schwift language and the report printed when one is
not caught.

Every failure the interpreter can produce is a SchwiftError carrying an
ErrorKind (what went wrong) and a place (the statement that was executing).
Only `SchwiftError.panic` terminates the process.
"""
import os
import random
import sys
import textwrap
from pathlib import Path
from typing import Any, Callable, List, Optional

import yaml
from termcolor import colored

from schwift.schwift_datatypes import Operator, Statement
from schwift.schwift_printer import Printer, type_str


# ===================================================================
# Error kinds
# ===================================================================

class ErrorKind:
    """Base class for the closed set of runtime failure kinds."""
    __slots__ = ()

    def __eq__(self, other):
        if type(self) is not type(other):
            return NotImplemented
        return all(getattr(self, s) == getattr(other, s) for s in self.__slots__)

    def __hash__(self):
        return hash(type(self))

    def __repr__(self):
        fields = ", ".join(repr(getattr(self, s)) for s in self.__slots__)
        return f"{type(self).__name__}({fields})"


class UnknownVariable(ErrorKind):
    __slots__ = ("name",)

    def __init__(self, name: str):
        self.name = name


class IndexUnindexable(ErrorKind):
    __slots__ = ("value",)

    def __init__(self, value: Any):
        self.value = value


class InvalidSyntax(ErrorKind):
    """Wraps a parser failure; the runtime only ever displays it."""
    __slots__ = ("error",)

    def __init__(self, error: Any):
        self.error = error

    def __eq__(self, other):
        if not isinstance(other, InvalidSyntax):
            return NotImplemented
        return str(self.error) == str(other.error)

    __hash__ = ErrorKind.__hash__


class IndexOutOfBounds(ErrorKind):
    __slots__ = ("value", "index")

    def __init__(self, value: Any, index: int):
        self.value = value
        self.index = index


class IOFailure(ErrorKind):
    """An input/output (or native library) failure.

    Any two IOFailures compare equal: the underlying OS detail is never the
    property under test.
    """
    __slots__ = ("error",)

    def __init__(self, error: Any):
        self.error = error

    def __eq__(self, other):
        if not isinstance(other, IOFailure):
            return NotImplemented
        return True

    __hash__ = ErrorKind.__hash__


class UnexpectedType(ErrorKind):
    __slots__ = ("expected", "value")

    def __init__(self, expected: str, value: Any):
        self.expected = expected
        self.value = value


class InvalidBinaryExpression(ErrorKind):
    __slots__ = ("lhs", "rhs", "op")

    def __init__(self, lhs: Any, rhs: Any, op: Operator):
        self.lhs = lhs
        self.rhs = rhs
        self.op = op


class InvalidArguments(ErrorKind):
    __slots__ = ("name", "expected", "actual")

    def __init__(self, name: str, expected: int, actual: int):
        self.name = name
        self.expected = expected
        self.actual = actual


# ===================================================================
# Flavor quotes
# ===================================================================

_QUOTES_PATH = Path(__file__).with_name("quotes.yaml")
_quote_cache: Optional[List[str]] = None


def load_quotes(path: Optional[str] = None) -> List[str]:
    """Loads the quote pool from YAML (`quotes: [...]`).

    Without an explicit path, `SCHWIFT_QUOTES` wins over the bundled pool.
    """
    global _quote_cache
    if path is None:
        path = os.environ.get("SCHWIFT_QUOTES")
        if path is None and _quote_cache is not None:
            return _quote_cache
    source = Path(path) if path else _QUOTES_PATH
    with source.open(encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    quotes = [str(q) for q in data.get("quotes") or []]
    if not quotes:
        raise ValueError(f"no quotes found in {source}")
    if path is None:
        _quote_cache = quotes
    return quotes


def random_quote(rng=None, quotes: Optional[List[str]] = None) -> str:
    """Picks one quote uniformly; `rng` only needs a `choice` method."""
    rng = rng or random
    return rng.choice(quotes if quotes is not None else load_quotes())


# ===================================================================
# The error itself
# ===================================================================

class SchwiftError(Exception):
    """A runtime failure travelling up the statement tree.

    `place` is None until the engine attaches the statement that was running;
    syntax errors keep it None because no statement exists yet.
    """
    def __init__(self, kind: ErrorKind, place: Optional[Statement] = None):
        super().__init__(kind)
        self.kind = kind
        self.place = place

    def __repr__(self):
        return f"SchwiftError({self.kind!r}, place={self.place!r})"

    def __str__(self):
        return self.panic_message()

    def panic_message(self) -> str:
        """Returns the kind-specific message, naming the offending values."""
        pf = Printer(quote_strings=True).pformat
        match self.kind:
            case UnknownVariable(name=name):
                return f"There's no {name} in this universe, Morty! You made it up!"
            case IndexUnindexable(value=value):
                return (f"I'll say this slowly Morty. You can't index that. "
                        f"It's a {type_str(value)}.")
            case InvalidSyntax(error=error):
                return (f"If you're going to write programs inside your programs Morty, "
                        f"at least make them parse! {error}")
            case IndexOutOfBounds(value=value, index=index):
                return (f"This isn't your mom's wine bottle Morty, you can't just keep "
                        f"asking for more! You want {index}, but you're dealing with {pf(value)}!")
            case IOFailure(error=error):
                return f"Looks like we're having a comm-burp-unications problem Morty: {error}"
            case UnexpectedType(expected=expected, value=value):
                return f"I asked for a {expected}, not a {type_str(value)} Morty."
            case InvalidBinaryExpression(lhs=lhs, rhs=rhs, op=op):
                return (f"It's like apples and space worms Morty! You can't {op} "
                        f"a {type_str(lhs)} and a {type_str(rhs)}!")
            case InvalidArguments(name=name, expected=expected, actual=actual):
                return (f"I'm confused Morty, a minute ago you said {name} takes {expected} "
                        f"parameters, but you just tried to give it {actual}. WHICH IS IT MORTY?")
            case _:
                raise TypeError(f"unknown error kind {self.kind!r}")

    def source_excerpt(self, filename: str) -> Optional[str]:
        """The source text of `place`, or None when there is no place.

        Raises OSError (or UnicodeDecodeError) when the file cannot be re-read.
        """
        if self.place is None:
            return None
        return self.place.get_source(filename)

    def full_panic_message(self, filename: str, rng=None, color: Optional[bool] = None) -> str:
        """Composes the report: offending source, message, and a random quote.

        An unreadable source file degrades the excerpt to a note instead of
        failing the report. `color` forces styling on or off; None lets
        termcolor decide from the environment.
        """
        def paint(text, fg=None, attrs=None):
            return colored(text, fg, attrs=attrs,
                           no_color=True if color is False else None,
                           force_color=True if color else None)

        type_msg = self.panic_message()
        quote = random_quote(rng)
        try:
            excerpt = self.source_excerpt(filename)
        except (OSError, UnicodeDecodeError) as e:
            excerpt = f"(couldn't re-read {filename}: {getattr(e, 'strerror', None) or e})"

        parts = [paint("You made a Rickdiculous mistake:", "red", ["bold"]), ""]
        if excerpt is not None:
            parts.append(paint(excerpt, attrs=["bold"]))
        parts += [type_msg, "", paint(quote, "cyan")]
        return "\n" + textwrap.indent("\n".join(parts), "    ") + "\n"

    def panic(self, filename: str, rng=None, export: Optional[Callable[[], Any]] = None,
              out=None, color: Optional[bool] = None):
        """Prints the full report, runs the export hook, and exits with status 1."""
        print(self.full_panic_message(filename, rng, color), file=out or sys.stdout)
        if export is not None:
            export()
        raise SystemExit(1)
