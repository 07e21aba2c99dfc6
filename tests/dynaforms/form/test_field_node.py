"""
Tests for the reactive field tree.
"""

import pytest

from dynaforms.form.field_node import ArrayFieldNode, GroupFieldNode, StaticFieldNode, ValueFieldNode
from dynaforms.reactive import Effect, Signal
from dynaforms.validation.validator_types import FieldError


def make_item_factory():
    def create_item(array_node, index, value):
        item = GroupFieldNode(str(index), "group", f"{array_node.path}.{index}", array_node)
        item.add_child(ValueFieldNode("name", "input", f"{item.path}.name", item))
        if value is not None:
            item.set_value(value)
        return item

    return create_item


class TestValues:
    """Tests for value composition."""

    def test_group_nests_children(self):
        root = GroupFieldNode("", "form", "")
        address = root.add_child(GroupFieldNode("address", "group", "address", root))
        address.add_child(ValueFieldNode("city", "input", "address.city", address, default="Oslo"))
        assert root.value() == {"address": {"city": "Oslo"}}

    def test_rows_and_pages_flatten(self):
        root = GroupFieldNode("", "form", "")
        page = root.add_child(GroupFieldNode("page1", "page", "page1", root))
        row = page.add_child(GroupFieldNode("row1", "row", "row1", page))
        row.add_child(ValueFieldNode("first", "input", "first", row, default="Ada"))
        assert root.value() == {"first": "Ada"}

    def test_static_nodes_have_no_value(self):
        root = GroupFieldNode("", "form", "")
        root.add_child(StaticFieldNode("save", "submit", "save", root))
        root.add_child(ValueFieldNode("name", "input", "name", root, default="x"))
        assert root.value() == {"name": "x"}

    def test_group_set_value_reaches_flattened_children(self):
        root = GroupFieldNode("", "form", "")
        row = root.add_child(GroupFieldNode("row", "row", "row", root))
        first = row.add_child(ValueFieldNode("first", "input", "first", row))
        last = root.add_child(ValueFieldNode("last", "input", "last", root, default="L"))
        root.set_value({"first": "Ada"})
        assert first.value() == "Ada"
        assert last.value() == "L"

    def test_value_is_reactive(self):
        root = GroupFieldNode("", "form", "")
        name = root.add_child(ValueFieldNode("name", "input", "name", root))
        seen = []
        Effect(lambda: seen.append(root.value()["name"]))
        name.set_value("Ada")
        assert seen == [None, "Ada"]

    def test_reset(self):
        node = ValueFieldNode("n", "input", "n", default=1)
        node.set_value(2)
        node.reset()
        assert node.value() == 1


class TestArrays:
    """Tests for array items."""

    def test_add_item(self):
        array = ArrayFieldNode("people", "array", "people")
        array.item_factory = make_item_factory()
        item = array.add_item({"name": "Ada"})
        assert item.path == "people.0"
        assert array.value() == [{"name": "Ada"}]

    def test_remove_item_reindexes(self):
        array = ArrayFieldNode("people", "array", "people")
        array.item_factory = make_item_factory()
        for name in ("a", "b", "c"):
            array.add_item({"name": name})
        first_removed = array.items()[1]
        array.remove_item(1)
        assert first_removed.destroyed
        assert [item.path for item in array.items()] == ["people.0", "people.1"]
        assert array.value() == [{"name": "a"}, {"name": "c"}]

    def test_remove_out_of_range(self):
        array = ArrayFieldNode("people", "array", "people")
        array.item_factory = make_item_factory()
        with pytest.raises(IndexError):
            array.remove_item(0)

    def test_set_value_rebuilds_on_length_change(self):
        array = ArrayFieldNode("people", "array", "people")
        array.item_factory = make_item_factory()
        array.add_item({"name": "a"})
        array.set_value([{"name": "x"}, {"name": "y"}])
        assert array.value() == [{"name": "x"}, {"name": "y"}]

    def test_without_template(self):
        with pytest.raises(RuntimeError):
            ArrayFieldNode("people", "array", "people").add_item()


class TestValidity:
    """Tests for errors, pending and validity."""

    def test_error_sources_combine_by_kind(self):
        node = ValueFieldNode("n", "input", "n")
        node.add_error_source(lambda: [FieldError("a", {"n": 1})])
        node.add_error_source(lambda: [FieldError("a", {"n": 2}), FieldError("b")])
        errors = node.errors()
        assert set(errors) == {"a", "b"}
        assert errors["a"].params == {"n": 1}

    def test_removing_a_source(self):
        node = ValueFieldNode("n", "input", "n")
        remove = node.add_error_source(lambda: [FieldError("a")])
        assert not node.valid()
        remove()
        assert node.valid()

    def test_pending_flags(self):
        root = GroupFieldNode("", "form", "")
        child = root.add_child(ValueFieldNode("n", "input", "n", root))
        flag = Signal(True)
        child.add_pending_flag(flag)
        assert root.pending()
        assert not root.valid()
        flag.set(False)
        assert not root.pending()
        assert root.valid()

    def test_hidden_and_disabled_children_are_skipped(self):
        root = GroupFieldNode("", "form", "")
        child = root.add_child(ValueFieldNode("n", "input", "n", root))
        child.add_error_source(lambda: [FieldError("bad")])
        assert not root.valid()
        child.hidden.set(True)
        assert root.valid()
        child.hidden.set(False)
        child.disabled.set(True)
        assert root.valid()

    def test_required_check(self):
        node = ValueFieldNode("n", "input", "n")
        node.enable_required_check()
        assert node.errors() == {}
        node.required.set(True)
        assert "required" in node.errors()
        node.set_value("x")
        assert node.errors() == {}

    def test_message_resolver(self):
        node = ValueFieldNode("n", "input", "n")
        node.message_resolver = lambda field_node, error: f"{field_node.path}: {error.kind}"
        node.add_error_source(lambda: [FieldError("bad")])
        assert node.errors()["bad"].message == "n: bad"


class TestLifecycle:
    """Tests for destroy."""

    def test_destroy_disposes_owned_resources(self):
        root = GroupFieldNode("", "form", "")
        child = root.add_child(ValueFieldNode("n", "input", "n", root))
        disposed = []
        child.own(lambda: disposed.append("cleanup"))
        root.destroy()
        assert child.destroyed
        assert disposed == ["cleanup"]

    def test_own_after_destroy_disposes_immediately(self):
        node = ValueFieldNode("n", "input", "n")
        node.destroy()
        disposed = []
        node.own(lambda: disposed.append(1))
        assert disposed == [1]

    def test_enclosing(self):
        root = GroupFieldNode("", "form", "")
        page = root.add_child(GroupFieldNode("p", "page", "p", root))
        child = page.add_child(ValueFieldNode("n", "input", "n", page))
        assert child.enclosing("page") is page
        assert child.enclosing("array") is None
