"""Integration tests for container method calls nested inside other calls."""

import pytest

from onchange import ApplyData, observe
from tests.utils import Inventory, Registry, Todo


@pytest.mark.integration
@pytest.mark.smart_clone
def test_subclass_method_reports_one_change(recorder):
    """A list subclass method that appends several items is one notification"""
    # Arrange
    state = observe(Inventory(), recorder)

    # Act
    state.add_all("bolt", "nut")

    # Assert
    assert recorder.changes == [
        ("", ["bolt", "nut"], [], ApplyData("add_all", ("bolt", "nut"), None, {}))
    ]


@pytest.mark.integration
@pytest.mark.smart_clone
def test_subclass_method_using_super_reports_one_change(recorder):
    """Methods calling super() run on the underlying list and still report"""
    state = observe(Inventory(["bolt"]), recorder)

    state.restock("nut")

    assert len(recorder) == 1
    assert recorder.last[:3] == ("", ["bolt", "nut"], ["bolt"])
    assert recorder.last[3].name == "restock"


@pytest.mark.integration
@pytest.mark.smart_clone
def test_inner_container_change_folds_into_outer_call(recorder):
    """Appending to a nested list inside a dict method is reported on the dict"""
    # Arrange - the section exists, so only the nested list changes
    state = observe(Registry(errors=["old"]), recorder)

    # Act
    state.file("errors", "new")

    # Assert - previous value reflects the list before the call
    assert recorder.changes == [
        (
            "",
            {"errors": ["old", "new"]},
            {"errors": ["old"]},
            ApplyData("file", ("errors", "new"), None, {}),
        )
    ]


@pytest.mark.integration
@pytest.mark.smart_clone
def test_key_added_during_outer_call_is_absent_from_previous(recorder):
    """A section created by the call does not appear in the previous value"""
    state = observe(Registry(), recorder)

    state.file("errors", "disk full")

    assert len(recorder) == 1
    assert recorder.last[1:3] == ({"errors": ["disk full"]}, {})


@pytest.mark.integration
@pytest.mark.smart_clone
def test_nested_registry_reports_at_its_own_path(recorder):
    """Calls on a nested container report that container's path"""
    state = observe({"logs": Registry()}, recorder, path_as_array=True)

    state["logs"].file("warnings", "low disk")

    assert recorder.paths == [["logs"]]


@pytest.mark.integration
@pytest.mark.smart_clone
def test_unrelated_writes_during_a_call_are_folded(recorder):
    """Writes to other branches while a call is in progress are not reported"""
    # Arrange - a sort key that logs every value into another list
    data = {"items": [3, 1, 2], "log": []}
    state = observe(data, recorder)

    def key(value):
        state["log"].append(value)
        return value

    # Act
    state["items"].sort(key=key)

    # Assert - only the sort is reported; the log writes were folded into it
    assert data["log"] == [3, 1, 2]
    assert recorder.paths == ["items"]
    assert recorder.last[1:3] == ([1, 2, 3], [3, 1, 2])


@pytest.mark.integration
@pytest.mark.smart_clone
def test_object_writes_inside_a_call_are_folded(recorder):
    """Attribute writes made by a list subclass method fold into the call"""

    class TodoList(list):
        def complete_all(self):
            for todo in self:
                todo.done = True
            self.append(Todo("review"))

    state = observe(TodoList([Todo("write")]), recorder)

    state.complete_all()

    assert len(recorder) == 1
    path, value, previous, apply_data = recorder.last
    assert path == ""
    assert apply_data.name == "complete_all"
    assert [todo.done for todo in previous] == [False]
    assert [todo.done for todo in value] == [True, False]


@pytest.mark.integration
@pytest.mark.smart_clone
def test_sessions_end_after_a_failing_call(recorder):
    """A call that raises leaves no session open"""
    state = observe({"items": [1]}, recorder)

    with pytest.raises(ValueError):
        state["items"].remove(5)

    state["items"].append(2)
    state["other"] = 1

    assert recorder.paths == ["items", "other"]
