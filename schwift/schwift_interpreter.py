"""
The core Schwift interpreter, containing the Environment, the
ExpressionResolver and the Evaluator.
"""
import copy
import math
import os
import sys
from typing import Any, Dict, List, Optional

from schwift.schwift_datatypes import (
    Scope, Statement, SchwiftCallable, SchwiftFunction, NativeFunction,
    Expression, Literal, Variable, BinaryOp, Not, Negate, ListIndex, Length, Call, Operator,
    Assignment, Delete, Print, PrintNoNl, ListNew, ListAppend, ListAssign, ListDelete,
    If, While, Input, Catch, Function, Return, FunctionCall, DylibLoad,
)
from schwift.schwift_errors import (
    SchwiftError, UnknownVariable, IndexUnindexable, IndexOutOfBounds, IOFailure,
    UnexpectedType, InvalidBinaryExpression, InvalidArguments,
)
from schwift.schwift_native import NativeLibraryRegistry
from schwift.schwift_printer import Printer


class Returned:
    """Completion of a statement sequence that hit `return`."""
    __slots__ = ("value",)

    def __init__(self, value: Any):
        self.value = value

    def __repr__(self):
        return f"Returned({self.value!r})"

    def __eq__(self, other):
        return isinstance(other, Returned) and self.value == other.value


def truthy(value: Any) -> bool:
    """Boolean coercion used by `if`, `while`, `not`, `and` and `or`."""
    match value:
        case None:
            return False
        case bool():
            return value
        case int() | float():
            return value != 0
        case str() | list():
            return len(value) > 0
    return bool(value)


def coerce_input(line: str) -> Any:
    """Turns a line read by `input` into an int, a float, or a string."""
    text = line.rstrip("\r\n")
    for cast in (int, float):
        try:
            return cast(text)
        except ValueError:
            pass
    return text


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _values_equal(a: Any, b: Any) -> bool:
    # `true == 1` is false in Schwift even though Python says otherwise,
    # at any depth inside lists too.
    if isinstance(a, bool) != isinstance(b, bool):
        return False
    if isinstance(a, list) and isinstance(b, list):
        return len(a) == len(b) and all(_values_equal(x, y) for x, y in zip(a, b))
    return a == b


class Environment:
    """Variable bindings and list containers for the executing call frames.

    Only the innermost frame is visible. A call pushes a fresh frame holding
    just the parameters and pops it whether the call returns or fails.
    Lists are stored by value: binding a list stores an independent copy.
    """
    def __init__(self, bindings: Optional[Dict[str, Any]] = None):
        self.frames: List[Scope] = [Scope()]
        for name, value in (bindings or {}).items():
            self.set(name, value)

    @property
    def scope(self) -> Scope:
        return self.frames[-1]

    @property
    def depth(self) -> int:
        return len(self.frames)

    def push_frame(self):
        self.frames.append(Scope())

    def pop_frame(self):
        if len(self.frames) == 1:
            raise RuntimeError("cannot pop the top-level frame")
        self.frames.pop()

    def unwind_to(self, depth: int):
        """Drops every frame above `depth`, e.g. after the host stack overflowed."""
        del self.frames[max(depth, 1):]

    # --- Scalars ---
    def get(self, name: str) -> Any:
        try:
            return self.scope[name]
        except KeyError:
            raise SchwiftError(UnknownVariable(name)) from None

    def set(self, name: str, value: Any):
        if isinstance(value, list):
            value = copy.deepcopy(value)
        self.scope[name] = value

    def delete(self, name: str):
        try:
            del self.scope[name]
        except KeyError:
            raise SchwiftError(UnknownVariable(name)) from None

    def __contains__(self, name: str) -> bool:
        return name in self.scope

    # --- Lists ---
    def new_list(self, name: str):
        self.scope[name] = []

    def get_list(self, name: str) -> list:
        value = self.get(name)
        if not isinstance(value, list):
            raise SchwiftError(IndexUnindexable(value))
        return value

    def _checked_index(self, items: list, index: Any) -> int:
        if not isinstance(index, int) or isinstance(index, bool):
            raise SchwiftError(UnexpectedType("int", index))
        if index < 0 or index >= len(items):
            raise SchwiftError(IndexOutOfBounds(list(items), index))
        return index

    def list_get(self, name: str, index: Any) -> Any:
        items = self.get_list(name)
        return items[self._checked_index(items, index)]

    def list_append(self, name: str, value: Any):
        self.get_list(name).append(copy.deepcopy(value) if isinstance(value, list) else value)

    def list_assign(self, name: str, index: Any, value: Any):
        items = self.get_list(name)
        items[self._checked_index(items, index)] = copy.deepcopy(value) if isinstance(value, list) else value

    def list_delete(self, name: str, index: Any):
        items = self.get_list(name)
        del items[self._checked_index(items, index)]

    def __repr__(self):
        return f"<Environment depth={self.depth} scope={self.scope!r}>"


class ExpressionResolver:
    """Evaluates expression nodes against an environment."""

    def __init__(self, evaluator: 'Evaluator'):
        self.evaluator = evaluator

    def eval(self, node: Expression, env: Environment) -> Any:
        match node:
            case Literal(value=value):
                return value
            case Variable(name=name):
                return env.get(name)
            case BinaryOp(lhs=lhs, op=Operator.AND, rhs=rhs):
                return truthy(self.eval(lhs, env)) and truthy(self.eval(rhs, env))
            case BinaryOp(lhs=lhs, op=Operator.OR, rhs=rhs):
                return truthy(self.eval(lhs, env)) or truthy(self.eval(rhs, env))
            case BinaryOp(lhs=lhs, op=op, rhs=rhs):
                return self.apply(self.eval(lhs, env), op, self.eval(rhs, env))
            case Not(operand=operand):
                return not truthy(self.eval(operand, env))
            case Negate(operand=operand):
                value = self.eval(operand, env)
                if not _is_number(value):
                    raise SchwiftError(UnexpectedType("number", value))
                return -value
            case ListIndex(name=name, index=index):
                return env.list_get(name, self.eval(index, env))
            case Length(operand=operand):
                value = self.eval(operand, env)
                if not isinstance(value, (list, str)):
                    raise SchwiftError(UnexpectedType("list", value))
                return len(value)
            case Call(name=name, args=args):
                return self.evaluator.call(name, args, env)
            case _:
                raise TypeError(f"not an expression: {node!r}")

    def apply(self, lhs: Any, op: Operator, rhs: Any) -> Any:
        """Applies a (non short-circuit) binary operator to two values."""
        invalid = SchwiftError(InvalidBinaryExpression(lhs, rhs, op))
        numbers = _is_number(lhs) and _is_number(rhs)
        match op:
            case Operator.EQ:
                return _values_equal(lhs, rhs)
            case Operator.NEQ:
                return not _values_equal(lhs, rhs)
            case Operator.ADD:
                if numbers or (isinstance(lhs, str) and isinstance(rhs, str)) \
                        or (isinstance(lhs, list) and isinstance(rhs, list)):
                    return lhs + rhs
                raise invalid
            case Operator.SUB | Operator.MUL:
                if not numbers:
                    raise invalid
                return lhs - rhs if op is Operator.SUB else lhs * rhs
            case Operator.DIV | Operator.MOD:
                if not numbers or rhs == 0:
                    raise invalid
                if isinstance(lhs, int) and isinstance(rhs, int):
                    quotient = abs(lhs) // abs(rhs)
                    if (lhs < 0) != (rhs < 0):
                        quotient = -quotient
                    return quotient if op is Operator.DIV else lhs - rhs * quotient
                return lhs / rhs if op is Operator.DIV else math.fmod(lhs, rhs)
            case Operator.LT | Operator.LTE | Operator.GT | Operator.GTE:
                if not (numbers or (isinstance(lhs, str) and isinstance(rhs, str))):
                    raise invalid
                match op:
                    case Operator.LT:
                        return lhs < rhs
                    case Operator.LTE:
                        return lhs <= rhs
                    case Operator.GT:
                        return lhs > rhs
                    case _:
                        return lhs >= rhs
        raise invalid


class Evaluator:
    """The Schwift execution engine.

    `execute` runs a statement sequence and returns None (fell off the end)
    or a Returned. Failures propagate as SchwiftError; the evaluator never
    terminates the process.
    """
    def __init__(self, stdout=None, stdin=None, natives: Optional[NativeLibraryRegistry] = None):
        self.expressions = ExpressionResolver(self)
        self.natives = natives or NativeLibraryRegistry()
        # Process-wide function table; native bindings live here too.
        self.functions: Dict[str, SchwiftCallable] = {}
        self.stdout = stdout
        self.stdin = stdin
        self._printer = Printer()

    def _dbg(self, *parts):
        if os.environ.get("SCHWIFT_DEBUG"):
            print("[DBG]", *parts, file=sys.stderr)

    def _write(self, text: str):
        out = self.stdout or sys.stdout
        out.write(text)

    def _read_line(self) -> str:
        (self.stdout or sys.stdout).flush()
        try:
            return (self.stdin or sys.stdin).readline()
        except (OSError, UnicodeDecodeError) as e:
            raise SchwiftError(IOFailure(e)) from e

    def eval(self, node: Expression, env: Environment) -> Any:
        return self.expressions.eval(node, env)

    def execute(self, statements: List[Statement], env: Environment) -> Optional[Returned]:
        """Runs statements in order, stopping at the first return or error."""
        for statement in statements:
            result = self.execute_statement(statement, env)
            if result is not None:
                return result
        return None

    def execute_statement(self, statement: Statement, env: Environment) -> Optional[Returned]:
        try:
            return self._execute(statement, env)
        except SchwiftError as e:
            # Innermost statement wins; outer statements leave the place alone.
            if e.place is None:
                e.place = statement
            raise

    def _execute(self, statement: Statement, env: Environment) -> Optional[Returned]:
        match statement.kind:
            case Assignment(name=name, expr=expr):
                env.set(name, self.eval(expr, env))
            case Delete(name=name):
                env.delete(name)
            case Print(expr=expr):
                self._write(self._printer.pformat(self.eval(expr, env)) + "\n")
            case PrintNoNl(expr=expr):
                self._write(self._printer.pformat(self.eval(expr, env)))
            case ListNew(name=name):
                env.new_list(name)
            case ListAppend(name=name, expr=expr):
                env.list_append(name, self.eval(expr, env))
            case ListAssign(name=name, index=index, expr=expr):
                env.list_assign(name, self.eval(index, env), self.eval(expr, env))
            case ListDelete(name=name, index=index):
                env.list_delete(name, self.eval(index, env))
            case If(condition=condition, body=body, else_body=else_body):
                if truthy(self.eval(condition, env)):
                    return self.execute(body, env)
                if else_body is not None:
                    return self.execute(else_body, env)
            case While(condition=condition, body=body):
                while truthy(self.eval(condition, env)):
                    result = self.execute(body, env)
                    if result is not None:
                        return result
            case Input(name=name):
                env.set(name, coerce_input(self._read_line()))
            case Catch(try_body=try_body, catch_body=catch_body):
                try:
                    return self.execute(try_body, env)
                except SchwiftError as e:
                    self._dbg("catch discarded", repr(e.kind))
                return self.execute(catch_body, env)
            case Function(name=name, params=params, body=body):
                self.functions[name] = SchwiftFunction(name, params, body)
            case Return(expr=expr):
                return Returned(self.eval(expr, env))
            case FunctionCall(name=name, args=args):
                self.call(name, args, env)
            case DylibLoad(path=path, functions=bindings):
                self._load_dylib(path, bindings)
            case _:
                raise TypeError(f"unknown statement kind {statement.kind!r}")
        return None

    def _load_dylib(self, path: str, bindings: List[Statement]):
        handle = self.natives.load(path)
        for binding in bindings:
            if not isinstance(binding.kind, Function):
                raise TypeError(f"native bindings must be function declarations, got {binding.kind!r}")
            name, params = binding.kind.name, binding.kind.params
            try:
                native = self.natives.bind(handle, name, binding.kind.returns)
            except SchwiftError as e:
                e.place = binding
                raise
            self.functions[name] = NativeFunction(name, params, native, path)
            self._dbg("bound native", name, "from", path)

    def call(self, name: str, arg_exprs: List[Expression], env: Environment) -> Any:
        """Calls a Schwift or native function and returns its value (None if it fell off the end)."""
        func = self.functions.get(name)
        if func is None:
            raise SchwiftError(UnknownVariable(name))
        # Arity is checked before any argument is evaluated.
        if len(arg_exprs) != func.arity:
            raise SchwiftError(InvalidArguments(name, func.arity, len(arg_exprs)))
        args = [self.eval(a, env) for a in arg_exprs]
        self._dbg("call", name, "argc", len(args), "depth", env.depth)

        if isinstance(func, NativeFunction):
            return func.native(args)

        env.push_frame()
        try:
            for param, arg in zip(func.params, args):
                env.set(param, arg)
            result = self.execute(func.body, env)
        finally:
            env.pop_frame()
        return result.value if isinstance(result, Returned) else None
