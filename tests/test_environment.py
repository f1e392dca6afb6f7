import pytest

from schwift.schwift_interpreter import Environment
from schwift.schwift_errors import (
    SchwiftError, UnknownVariable, IndexUnindexable, IndexOutOfBounds, UnexpectedType,
)


def kind_of(excinfo):
    return excinfo.value.kind


@pytest.fixture
def env():
    return Environment()


def test_set_get_delete(env):
    env.set("x", 5)
    assert env.get("x") == 5
    env.set("x", "five")
    assert env.get("x") == "five"
    env.delete("x")
    assert "x" not in env


def test_unknown_variable(env):
    with pytest.raises(SchwiftError) as ei:
        env.get("ghost")
    assert kind_of(ei) == UnknownVariable("ghost")
    assert ei.value.place is None


def test_delete_unknown_variable(env):
    with pytest.raises(SchwiftError) as ei:
        env.delete("ghost")
    assert kind_of(ei) == UnknownVariable("ghost")


def test_list_append_preserves_order(env):
    env.new_list("a")
    for v in (1, "two", 3.0):
        env.list_append("a", v)
    assert env.get("a") == [1, "two", 3.0]


def test_list_delete_shifts_down(env):
    env.new_list("a")
    for v in (10, 20, 30):
        env.list_append("a", v)
    env.list_delete("a", 1)
    assert env.get("a") == [10, 30]
    assert env.list_get("a", 1) == 30


def test_list_delete_out_of_bounds_reports_list_and_index(env):
    env.new_list("a")
    for v in (1, 2, 3):
        env.list_append("a", v)
    with pytest.raises(SchwiftError) as ei:
        env.list_delete("a", 5)
    assert kind_of(ei) == IndexOutOfBounds([1, 2, 3], 5)
    assert env.get("a") == [1, 2, 3]


def test_negative_index_is_out_of_bounds(env):
    env.new_list("a")
    env.list_append("a", 1)
    with pytest.raises(SchwiftError) as ei:
        env.list_get("a", -1)
    assert kind_of(ei) == IndexOutOfBounds([1], -1)


def test_list_assign(env):
    env.new_list("a")
    env.list_append("a", 1)
    env.list_assign("a", 0, 99)
    assert env.get("a") == [99]


@pytest.mark.parametrize("op", ["append", "assign", "delete", "get"])
def test_list_ops_on_scalar_are_unindexable(env, op):
    env.set("n", 7)
    with pytest.raises(SchwiftError) as ei:
        match op:
            case "append":
                env.list_append("n", 1)
            case "assign":
                env.list_assign("n", 0, 1)
            case "delete":
                env.list_delete("n", 0)
            case "get":
                env.list_get("n", 0)
    assert kind_of(ei) == IndexUnindexable(7)


@pytest.mark.parametrize("index", ["0", 1.0, True, None])
def test_non_int_index_is_unexpected_type(env, index):
    env.new_list("a")
    env.list_append("a", 1)
    with pytest.raises(SchwiftError) as ei:
        env.list_get("a", index)
    assert kind_of(ei) == UnexpectedType("int", index)


def test_list_on_unknown_name(env):
    with pytest.raises(SchwiftError) as ei:
        env.list_append("nope", 1)
    assert kind_of(ei) == UnknownVariable("nope")


def test_lists_have_value_semantics(env):
    original = [1, [2, 3]]
    env.set("a", original)
    env.list_append("a", 4)
    original[1].append(99)
    assert env.get("a") == [1, [2, 3], 4]
    assert original == [1, [2, 3, 99]]


def test_new_list_overwrites_existing_binding(env):
    env.set("a", 5)
    env.new_list("a")
    assert env.get("a") == []


def test_child_frame_sees_only_its_own_bindings(env):
    env.set("outer", 1)
    env.push_frame()
    assert env.depth == 2
    assert "outer" not in env
    env.set("param", 2)
    assert env.get("param") == 2
    env.pop_frame()
    assert env.depth == 1
    assert env.get("outer") == 1
    assert "param" not in env


def test_top_frame_cannot_be_popped(env):
    with pytest.raises(RuntimeError):
        env.pop_frame()


def test_initial_bindings():
    env = Environment({"x": 1, "xs": [1, 2]})
    assert env.get("x") == 1
    assert env.list_get("xs", 1) == 2


def test_unwind_to_drops_frames_but_keeps_the_top(env):
    env.set("keep", 1)
    for _ in range(3):
        env.push_frame()
    env.unwind_to(1)
    assert env.depth == 1
    assert env.get("keep") == 1
    env.unwind_to(0)
    assert env.depth == 1
