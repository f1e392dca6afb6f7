"""
Transforms the lark parse tree into Schwift statements and expressions.
"""
import ast as py_ast

from lark import Transformer, v_args

from schwift.schwift_datatypes import (
    Statement, Operator, NATIVE_RETURN_TYPES,
    Literal, Variable, BinaryOp, Not, Negate, ListIndex, Length, Call,
    Assignment, Delete, Print, PrintNoNl, ListNew, ListAppend, ListAssign, ListDelete,
    If, While, Input, Catch, Function, Return, FunctionCall, DylibLoad,
)


def _statement(kind_cls):
    """Builds a transformer callback that wraps `kind_cls(*children)` in a spanned Statement."""
    @v_args(meta=True)
    def build(self, meta, children):
        return self._spanned(kind_cls(*children), meta)
    return build


class SchwiftTransformer(Transformer):
    """Turns a parse tree from grammar/schwift.lark into a list of Statements.

    Parse trees must be built with `propagate_positions=True`; each statement
    keeps `[meta.start_pos, meta.end_pos)` as its source span.
    """

    def _spanned(self, kind, meta) -> Statement:
        if getattr(meta, "empty", True):
            return Statement(kind)
        return Statement(kind, meta.start_pos, meta.end_pos)

    # --- Terminals ---
    def NAME(self, token):
        return str(token)

    def STRING(self, token):
        return py_ast.literal_eval(str(token))

    # --- Structure ---
    def start(self, children):
        return list(children)

    def block(self, children):
        return list(children)

    def params(self, children):
        return list(children)

    def args(self, children):
        return list(children)

    # --- Statements ---
    assignment = _statement(Assignment)
    list_new = _statement(ListNew)
    list_append = _statement(ListAppend)
    list_assign = _statement(ListAssign)
    delete = _statement(Delete)
    list_delete = _statement(ListDelete)
    print_stmt = _statement(Print)
    write_stmt = _statement(PrintNoNl)
    while_stmt = _statement(While)
    input_stmt = _statement(Input)
    catch_stmt = _statement(Catch)
    return_stmt = _statement(Return)

    @v_args(meta=True)
    def if_stmt(self, meta, children):
        condition, body = children[0], children[1]
        else_body = children[2] if len(children) > 2 else None
        # `else if` chains arrive as a single nested if statement.
        if isinstance(else_body, Statement):
            else_body = [else_body]
        return self._spanned(If(condition, body, else_body), meta)

    @v_args(meta=True)
    def function_def(self, meta, children):
        name, params, body = children
        return self._spanned(Function(name, params or [], body), meta)

    @v_args(meta=True)
    def native_decl(self, meta, children):
        name, params, returns = children
        if returns is not None and returns not in NATIVE_RETURN_TYPES:
            raise ValueError(f"unknown native return type {returns!r} for {name}; "
                             f"expected one of {', '.join(NATIVE_RETURN_TYPES)}")
        return self._spanned(Function(name, params or [], returns=str(returns) if returns else None), meta)

    @v_args(meta=True)
    def call_stmt(self, meta, children):
        name, args = children
        return self._spanned(FunctionCall(name, args or []), meta)

    @v_args(meta=True)
    def dylib_load(self, meta, children):
        path, *bindings = children
        return self._spanned(DylibLoad(path, bindings), meta)

    # --- Expressions ---
    def number(self, children):
        text = str(children[0])
        # Integers stay exact; only literals with a '.' become floats.
        return Literal(float(text) if '.' in text else int(text))

    def string(self, children):
        return Literal(children[0])

    def true(self, children):
        return Literal(True)

    def false(self, children):
        return Literal(False)

    def none(self, children):
        return Literal(None)

    def variable(self, children):
        return Variable(children[0])

    def list_index(self, children):
        name, index = children
        return ListIndex(name, index)

    def length(self, children):
        return Length(children[0])

    def call(self, children):
        name, args = children
        return Call(name, args or [])

    def binary(self, children):
        lhs, op, rhs = children
        return BinaryOp(lhs, Operator(str(op)), rhs)

    def not_op(self, children):
        return Not(children[0])

    def negate(self, children):
        operand = children[-1]
        if isinstance(operand, Literal) and isinstance(operand.value, (int, float)) \
                and not isinstance(operand.value, bool):
            return Literal(-operand.value)
        return Negate(operand)
