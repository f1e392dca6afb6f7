import pytest
from schwift.schwift_datatypes import (
    Statement, Scope, SchwiftFunction, NativeFunction,
    Literal, Variable, Call,
    Assignment, Print, ListNew, If, FunctionCall, Function,
)

# --- Statement Tests ---

def test_statement_span_defaults_to_empty():
    stmt = Statement(Print(1))
    assert stmt.span == (0, 0)
    assert stmt.start == 0 and stmt.end == 0


def test_get_source_slices_exact_span(tmp_path):
    src = tmp_path / "prog.sw"
    src.write_text("x = 1; y = foo(1, 2); print y")
    stmt = Statement(FunctionCall("foo", [1, 2]), 11, 20)
    assert stmt.get_source(str(src)) == "foo(1, 2)"


def test_get_source_asserts_on_empty_span(tmp_path):
    src = tmp_path / "prog.sw"
    src.write_text("print 1")
    with pytest.raises(AssertionError):
        Statement(Print(1)).get_source(str(src))


def test_get_source_missing_file_raises_oserror(tmp_path):
    stmt = Statement(Print(1), 0, 5)
    with pytest.raises(OSError):
        stmt.get_source(str(tmp_path / "nope.sw"))


def test_statement_equality_includes_span():
    a = Statement(Print(1), 0, 7)
    b = Statement(Print(1), 0, 7)
    c = Statement(Print(1), 3, 10)
    assert a == b
    assert a != c


def test_statement_equals_bare_kind_ignoring_span():
    stmt = Statement(Assignment("x", 5), 4, 9)
    assert stmt == Assignment("x", 5)
    assert Assignment("x", 5) == stmt
    assert stmt != Assignment("x", 6)


def test_plain_values_are_wrapped_as_literals():
    assert Print(5).expr == Literal(5)
    assert Print(Variable("x")).expr == Variable("x")
    assert FunctionCall("f", [1, Variable("a")]).args == [Literal(1), Variable("a")]
    assert If(True, []).condition == Literal(True)


def test_nested_statements_compare_structurally():
    body = [Statement(Print("yes"), 10, 21)]
    a = If(Variable("x"), body, None)
    b = If(Variable("x"), [Statement(Print("yes"), 10, 21)], None)
    assert a == b
    assert a != If(Variable("x"), [Statement(Print("no"), 10, 21)], None)


def test_call_defaults_to_no_args():
    assert Call("f").args == []
    assert Function("f", []).body == []

# --- Scope Tests ---

def test_scope_setitem_getitem():
    scope = Scope()
    scope["a"] = 1
    assert scope["a"] == 1
    assert "a" in scope
    with pytest.raises(KeyError):
        _ = scope["b"]


def test_scope_delitem():
    scope = Scope({"a": 1})
    del scope["a"]
    assert "a" not in scope
    with pytest.raises(KeyError):
        del scope["a"]


def test_scope_rejects_non_str_keys():
    scope = Scope()
    with pytest.raises(TypeError):
        scope[1] = "x"


def test_scope_get_default_and_keys():
    scope = Scope({"a": 1, "b": 2})
    assert scope.get("c", 9) == 9
    assert list(scope.keys()) == ["a", "b"]
    assert "a, b" in repr(scope)

# --- Callables ---

def test_callable_arity():
    fn = SchwiftFunction("f", ["a", "b"], [])
    assert fn.arity == 2
    native = NativeFunction("abs", ["x"], native=None, library="c")
    assert native.arity == 1
    assert "abs(x)" in repr(native)


def test_schwift_function_equality():
    body = [Statement(ListNew("xs"))]
    assert SchwiftFunction("f", ["a"], body) == SchwiftFunction("f", ["a"], body)
    assert SchwiftFunction("f", ["a"], body) != SchwiftFunction("f", ["b"], body)
