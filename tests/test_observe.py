"""
Tests for observing reads, writes, definitions and deletions.
"""

from dataclasses import FrozenInstanceError, dataclass, field
from typing import List
from unittest.mock import Mock

import pytest

from onchange import define_property, observe, target
from onchange.proxy import ObservedProxy
from tests.utils import FrozenPoint, Point, Tally, Todo


@pytest.mark.unit
@pytest.mark.handler
class TestReads:
    """Wrappers behave like the values they stand in for."""

    def test_reading_the_same_value_twice_returns_the_same_wrapper(self, recorder):
        state = observe({"user": {"name": "ada"}}, recorder)
        assert state["user"] is state["user"]

    def test_wrapper_is_transparent(self, recorder):
        data = {"items": [1, 2], "name": "x"}
        state = observe(data, recorder)

        assert state == data
        assert state["name"] == "x"
        assert state["items"] == [1, 2]
        assert isinstance(state["items"], list)
        assert len(state["items"]) == 2
        assert 2 in state["items"]
        assert target(state["items"]) is data["items"]
        assert len(recorder) == 0

    def test_nested_values_are_wrapped_and_scalars_are_not(self, recorder):
        state = observe({"items": [1], "count": 1}, recorder)

        assert isinstance(state["items"], ObservedProxy)
        assert type(state["count"]) is int

    def test_missing_keys_and_attributes_raise_as_usual(self, recorder):
        state = observe({"point": Point()}, recorder)

        with pytest.raises(KeyError):
            state["missing"]
        with pytest.raises(AttributeError):
            state["point"].z
        assert not hasattr(state["point"], "z")

    def test_property_getters_read_through_the_wrapper(self, recorder):
        state = observe(Point(1, -2), recorder)
        assert state.norm1 == 3

    def test_frozen_dataclass_fields_are_returned_raw(self, recorder):
        @dataclass(frozen=True)
        class Frozen:
            tags: List[str] = field(default_factory=list)

        state = observe({"frozen": Frozen()}, recorder)
        assert type(state["frozen"].tags) is list

    def test_slices_contain_wrapped_elements(self, recorder):
        state = observe([{"v": 0}, {"v": 1}, {"v": 2}], recorder)

        window = state[1:3]
        assert window == [{"v": 1}, {"v": 2}]
        window[1]["v"] = 20

        assert recorder.last[:3] == ("2.v", 20, 2)

    def test_target_of_a_plain_value_is_the_value(self):
        data = {"a": 1}
        assert target(data) is data


@pytest.mark.unit
@pytest.mark.handler
class TestWrites:
    """Attribute and item writes."""

    def test_attribute_write_is_reported_once(self, recorder):
        state = observe(Point(), recorder)

        state.x = 1
        state.x = 1

        assert recorder.changes == [("x", 1, 0, None)]

    def test_item_write_reports_full_path(self, recorder):
        state = observe({"points": [Point(1, 2)]}, recorder)

        state["points"][0].x = 5

        assert recorder.changes == [("points.0.x", 5, 1, None)]

    def test_path_as_array(self, recorder):
        state = observe({"points": [Point(1, 2)]}, recorder, path_as_array=True)

        state["points"][0].x = 5

        assert recorder.last[0] == ["points", 0, "x"]

    def test_new_key_reports_previous_as_none(self, recorder):
        state = observe({}, recorder)
        state["a"] = None

        assert recorder.changes == [("a", None, None, None)]

    def test_writing_a_wrapper_stores_the_underlying_value(self, recorder):
        data = {"a": [1], "b": None}
        state = observe(data, recorder)

        state["b"] = state["a"]

        assert data["b"] is data["a"]
        assert not isinstance(data["b"], ObservedProxy)

    def test_reassigning_the_same_wrapper_is_not_a_change(self, recorder):
        state = observe({"a": [1]}, recorder)
        state["a"] = state["a"]
        assert len(recorder) == 0

    def test_list_index_write_is_an_ordinary_write(self, recorder):
        state = observe([1, 2, 3], recorder)

        state[0] = 5
        state[-1] = 7

        assert recorder.changes == [("0", 5, 1, None), ("2", 7, 3, None)]

    def test_methods_of_plain_objects_report_each_write(self, recorder):
        state = observe({"point": Point()}, recorder)

        state["point"].move(1, 2)

        assert recorder.changes == [
            ("point.x", 1, 0, None),
            ("point.y", 2, 0, None),
        ]

    def test_dataclass_fields(self, recorder):
        state = observe([Todo("write tests")], recorder)
        state[0].done = True
        assert recorder.changes == [("0.done", True, False, None)]

    def test_equal_but_distinct_values_are_changes(self, recorder):
        state = observe({"a": [1]}, recorder)
        state["a"] = [1]
        assert len(recorder) == 1

    def test_custom_equality(self, recorder):
        state = observe({"a": 1.0}, recorder, equals=lambda a, b: a == b)
        state["a"] = 1
        assert len(recorder) == 0

    def test_callable_object_state_is_observed(self, recorder):
        """Calling a stored callable object reports the writes it makes"""
        state = observe({"tally": Tally()}, recorder)
        tally = state["tally"]

        assert tally(2) == 2
        tally.count = 5

        assert isinstance(tally, ObservedProxy)
        assert recorder.changes == [
            ("tally.count", 2, 0, None),
            ("tally.count", 5, 2, None),
        ]


@pytest.mark.unit
@pytest.mark.handler
class TestRejectedMutations:
    """Writes the underlying object refuses raise and report nothing."""

    def test_frozen_dataclass(self, recorder):
        state = observe({"p": FrozenPoint(1, 2)}, recorder)

        with pytest.raises(FrozenInstanceError):
            state["p"].x = 5

        assert len(recorder) == 0

    def test_tuple_item(self, recorder):
        state = observe({"pair": (1, [2])}, recorder)

        with pytest.raises(TypeError):
            state["pair"][0] = 5

        assert len(recorder) == 0

    def test_setattr_override(self, recorder):
        class ReadOnly:
            def __setattr__(self, name, value):
                raise AttributeError("read only")

        state = observe(ReadOnly(), recorder)

        with pytest.raises(AttributeError, match="read only"):
            state.value = 1

        assert len(recorder) == 0


@pytest.mark.unit
@pytest.mark.handler
class TestDefineProperty:
    def test_define_bypasses_setattr_and_reports(self, recorder):
        class ReadOnly:
            def __setattr__(self, name, value):
                raise AttributeError("read only")

        obj = ReadOnly()
        state = observe(obj, recorder)

        define_property(state, "value", 3)

        assert obj.value == 3
        assert recorder.changes == [("value", 3, None, None)]

    def test_identical_definition_is_a_no_op(self, recorder):
        state = observe(Point(1, 2), recorder)
        define_property(state, "x", 1)
        assert len(recorder) == 0

    def test_redefinition_reports_previous_value(self, recorder):
        state = observe({"k": 1}, recorder)
        define_property(state, "k", 2)
        assert recorder.changes == [("k", 2, 1, None)]

    def test_requires_a_proxy(self):
        with pytest.raises(TypeError):
            define_property({}, "k", 1)


@pytest.mark.unit
@pytest.mark.handler
class TestDeletes:
    def test_item_delete(self, recorder):
        state = observe({"a": 1, "b": 2}, recorder)

        del state["a"]

        assert recorder.changes == [("a", None, 1, None)]

    def test_attribute_delete(self, recorder):
        state = observe(Point(3, 4), recorder)

        del state.x

        assert recorder.changes == [("x", None, 3, None)]

    def test_deleting_a_missing_key_is_a_no_op(self, recorder):
        data = {"a": 1}
        state = observe(data, recorder)

        del state["missing"]
        del state["a"]
        del state["a"]

        assert data == {}
        assert len(recorder) == 1

    def test_deleting_a_method_is_rejected(self, recorder):
        state = observe(Point(), recorder)
        with pytest.raises(AttributeError):
            del state.move
        assert len(recorder) == 0


@pytest.mark.unit
@pytest.mark.handler
class TestCallback:
    def test_three_argument_callbacks_are_supported(self):
        calls = []

        def on_change(path, value, previous):
            calls.append((path, value, previous))

        state = observe({"a": 1}, on_change)
        state["a"] = 2

        assert calls == [("a", 2, 1)]

    def test_mock_callback_receives_apply_data_slot(self):
        callback = Mock()
        state = observe({"a": 1}, callback)

        state["a"] = 2

        callback.assert_called_once_with("a", 2, 1, None)

    def test_callback_may_write_to_the_graph(self):
        data = {"a": 0, "count": 0}

        def on_change(path, value, previous):
            if path == "a":
                state["count"] += 1

        state = observe(data, on_change)
        state["a"] = 1
        state["a"] = 2

        assert data["count"] == 2

    def test_callback_exceptions_propagate(self):
        def on_change(path, value, previous):
            raise RuntimeError("boom")

        data = {"a": 1}
        state = observe(data, on_change)

        with pytest.raises(RuntimeError, match="boom"):
            state["a"] = 2
        assert data["a"] == 2

    def test_unknown_option_is_rejected(self, recorder):
        with pytest.raises(TypeError):
            observe({}, recorder, shallow=True)
