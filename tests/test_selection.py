"""Tests for the generic Selection set."""

from promption.state.selection import Selection


def test_toggle_adds_then_removes():
    sel: Selection[str] = Selection()
    assert sel.toggle("a") is True
    assert "a" in sel
    assert sel.toggle("a") is False
    assert "a" not in sel


def test_select_all_replaces():
    sel = Selection(["old"])
    sel.select_all(["a", "b"])
    assert sel.ids == frozenset({"a", "b"})


def test_select_all_then_deselect_all_is_empty():
    sel = Selection(["x"])
    sel.select_all(["a", "b", "c"])
    sel.deselect_all()
    assert len(sel) == 0
    assert sel.ids == frozenset()


def test_discard_missing_is_noop():
    sel = Selection(["a"])
    sel.discard("zzz")
    assert list(sel) == ["a"]


def test_ids_is_a_snapshot():
    sel = Selection(["a"])
    snapshot = sel.ids
    sel.toggle("b")
    assert snapshot == frozenset({"a"})


def test_works_with_int_keys():
    sel: Selection[int] = Selection()
    sel.select_all(range(3))
    assert len(sel) == 3
    assert repr(sel) == "Selection(['0', '1', '2'])"
