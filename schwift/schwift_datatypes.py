"""
Defines the core data types for the Schwift language runtime.

This module provides the statement tree (every statement carries the source
span that produced it), the expression nodes consumed by the evaluator, the
Scope used for call frames, and the callable types held in the function table.
"""

from abc import ABC
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


# =================================================================
# Operators
# =================================================================

class Operator(Enum):
    """Binary operators understood by the expression evaluator."""
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    MOD = "%"
    EQ = "=="
    NEQ = "!="
    LT = "<"
    LTE = "<="
    GT = ">"
    GTE = ">="
    AND = "and"
    OR = "or"

    def __str__(self) -> str:
        return self.value


# Result types a native declaration may name after `->`.
NATIVE_RETURN_TYPES = ("int", "float", "str")


# =================================================================
# Expressions
# =================================================================

class Expression(ABC):
    """Abstract base class for all expression nodes."""
    pass


@dataclass
class Literal(Expression):
    value: Any


@dataclass
class Variable(Expression):
    name: str


@dataclass
class BinaryOp(Expression):
    lhs: Expression
    op: Operator
    rhs: Expression


@dataclass
class Not(Expression):
    operand: Expression


@dataclass
class Negate(Expression):
    operand: Expression


@dataclass
class ListIndex(Expression):
    name: str
    index: Expression


@dataclass
class Length(Expression):
    operand: Expression


@dataclass
class Call(Expression):
    """A function call used for its value, e.g. `x = f(1)`."""
    name: str
    args: List[Expression] = field(default_factory=list)


def to_expression(value: Any) -> Expression:
    """Wraps plain Python values as literals so tests can write `Print(5)`."""
    if isinstance(value, Expression):
        return value
    return Literal(value)


# =================================================================
# Statements
# =================================================================

class StatementKind(ABC):
    """Abstract base class for the closed set of statement variants."""
    pass


@dataclass
class Assignment(StatementKind):
    name: str
    expr: Expression

    def __post_init__(self):
        self.expr = to_expression(self.expr)


@dataclass
class Delete(StatementKind):
    name: str


@dataclass
class Print(StatementKind):
    expr: Expression

    def __post_init__(self):
        self.expr = to_expression(self.expr)


@dataclass
class PrintNoNl(StatementKind):
    expr: Expression

    def __post_init__(self):
        self.expr = to_expression(self.expr)


@dataclass
class ListNew(StatementKind):
    name: str


@dataclass
class ListAppend(StatementKind):
    name: str
    expr: Expression

    def __post_init__(self):
        self.expr = to_expression(self.expr)


@dataclass
class ListAssign(StatementKind):
    name: str
    index: Expression
    expr: Expression

    def __post_init__(self):
        self.index = to_expression(self.index)
        self.expr = to_expression(self.expr)


@dataclass
class ListDelete(StatementKind):
    name: str
    index: Expression

    def __post_init__(self):
        self.index = to_expression(self.index)


@dataclass
class If(StatementKind):
    condition: Expression
    body: List['Statement']
    else_body: Optional[List['Statement']] = None

    def __post_init__(self):
        self.condition = to_expression(self.condition)


@dataclass
class While(StatementKind):
    condition: Expression
    body: List['Statement']

    def __post_init__(self):
        self.condition = to_expression(self.condition)


@dataclass
class Input(StatementKind):
    name: str


@dataclass
class Catch(StatementKind):
    try_body: List['Statement']
    catch_body: List['Statement']


@dataclass
class Function(StatementKind):
    """A procedure definition, or a native declaration inside `load`.

    `returns` only applies to native declarations (`fn cos(x) -> float`);
    None reads the result as an int.
    """
    name: str
    params: List[str]
    body: List['Statement'] = field(default_factory=list)
    returns: Optional[str] = None


@dataclass
class Return(StatementKind):
    expr: Expression

    def __post_init__(self):
        self.expr = to_expression(self.expr)


@dataclass
class FunctionCall(StatementKind):
    name: str
    args: List[Expression] = field(default_factory=list)

    def __post_init__(self):
        self.args = [to_expression(a) for a in self.args]


@dataclass
class DylibLoad(StatementKind):
    path: str
    functions: List['Statement']


class Statement:
    """A statement kind plus the half-open source span `[start, end)` it came from."""
    __slots__ = ("kind", "_start", "_end")

    def __init__(self, kind: StatementKind, start: int = 0, end: int = 0):
        self.kind = kind
        self._start = start
        self._end = end

    @property
    def start(self) -> int:
        return self._start

    @property
    def end(self) -> int:
        return self._end

    @property
    def span(self) -> Tuple[int, int]:
        return (self._start, self._end)

    def get_source(self, filename: str) -> str:
        """Re-reads `filename` and returns the text this statement was parsed from.

        Raises OSError when the file cannot be read, UnicodeDecodeError when it is not UTF-8.
        """
        with open(filename, "r", encoding="utf-8") as f:
            source = f.read()
        assert self._start < self._end, f"empty source span {self.span!r}"
        return source[self._start:self._end]

    def __eq__(self, other):
        # Comparing against a bare kind ignores the span.
        if isinstance(other, StatementKind):
            return self.kind == other
        if not isinstance(other, Statement):
            return NotImplemented
        return self.kind == other.kind and self.span == other.span

    def __repr__(self) -> str:
        return f"Statement({self.kind!r}, {self._start}, {self._end})"


# =================================================================
# Core Runtime Types
# =================================================================

class Scope:
    """A single call frame's variable bindings.

    Frames are not chained: a function body sees only its own parameters and
    whatever it binds itself.
    """
    def __init__(self, bindings: Optional[Dict[str, Any]] = None):
        self.bindings: Dict[str, Any] = dict(bindings or {})

    def __setitem__(self, key: str, value: Any):
        if not isinstance(key, str):
            raise TypeError(f"Scope key must be a str, not {type(key)}")
        self.bindings[key] = value

    def __getitem__(self, key: str) -> Any:
        if key in self.bindings:
            return self.bindings[key]
        raise KeyError(f"'{key}'")

    def __delitem__(self, key: str):
        if key not in self.bindings:
            raise KeyError(f"'{key}'")
        del self.bindings[key]

    def __contains__(self, key: Any) -> bool:
        return key in self.bindings

    def get(self, key: str, default: Any = None) -> Any:
        return self.bindings.get(key, default)

    def keys(self):
        return self.bindings.keys()

    def __repr__(self) -> str:
        keys = ', '.join(self.bindings.keys())
        return f"<Scope bindings=[{keys}]>"


class SchwiftCallable(ABC):
    """Abstract base class for entries in the function table."""
    name: str
    params: List[str]

    @property
    def arity(self) -> int:
        return len(self.params)


class SchwiftFunction(SchwiftCallable):
    """A procedure defined in Schwift with `fn`."""
    def __init__(self, name: str, params: List[str], body: List[Statement]):
        self.name = name
        self.params = list(params)
        self.body = body

    def __repr__(self) -> str:
        return f"<SchwiftFunction {self.name}({', '.join(self.params)})>"

    def __eq__(self, other):
        if not isinstance(other, SchwiftFunction):
            return NotImplemented
        return self.name == other.name and self.params == other.params and self.body == other.body


class NativeFunction(SchwiftCallable):
    """A procedure backed by a symbol from a loaded shared library."""
    def __init__(self, name: str, params: List[str], native: Any, library: str):
        self.name = name
        self.params = list(params)
        self.native = native
        self.library = library

    def __repr__(self) -> str:
        return f"<NativeFunction {self.name}({', '.join(self.params)}) from {self.library!r}>"
