import pytest

from mag.errors import ValidationError
from mag.todos.manager import TodoManager
from mag.todos.models import Todo, TodoStatus


def test_add_assigns_increasing_ids_never_reused(store: TodoManager) -> None:
    first = store.add("one")
    second = store.add("two")
    assert store.delete(second)
    third = store.add("three")
    assert first < second < third
    assert third == 3


@pytest.mark.parametrize("title", ["", "   "])
def test_add_rejects_empty_title(store: TodoManager, title: str) -> None:
    with pytest.raises(ValidationError):
        store.add(title, "desc")
    assert store.is_empty()


def test_new_todo_is_pending(store: TodoManager) -> None:
    todo_id = store.add("Create hello world", "Python script")
    todo = store.get(todo_id)
    assert todo is not None
    assert todo.status == TodoStatus.PENDING
    assert todo.prompt_text == "Create hello world - Python script"


def test_list_excludes_completed_unless_requested(store: TodoManager) -> None:
    store.add("a")
    done = store.add("b")
    store.mark_completed(done)
    assert [t.title for t in store.list_todos()] == ["a"]
    assert [t.title for t in store.list_todos(include_completed=True)] == ["a", "b"]


def test_update_reports_only_real_changes(store: TodoManager) -> None:
    todo_id = store.add("title", "desc")
    before = store.get(todo_id).updated_at
    assert not store.update(todo_id, title="title", description="desc")
    assert not store.update(todo_id, title="")
    assert not store.update(999, title="x")
    assert store.update(todo_id, description="new")
    updated = store.get(todo_id)
    assert updated.title == "title"
    assert updated.description == "new"
    assert updated.updated_at >= before


def test_returned_todos_are_copies(store: TodoManager) -> None:
    todo_id = store.add("a")
    copy = store.get(todo_id)
    copy.status = TodoStatus.COMPLETED
    assert store.get(todo_id).is_pending


def test_delete_unknown_returns_false(store: TodoManager) -> None:
    assert not store.delete(42)


def test_counts_and_views(store: TodoManager) -> None:
    a = store.add("a")
    store.add("b")
    store.mark_completed(a)
    assert store.count() == 2
    assert store.count_pending() == 1
    assert [t.title for t in store.get_pending()] == ["b"]
    assert [t.title for t in store.get_completed()] == ["a"]


def test_next_pending_is_earliest(store: TodoManager) -> None:
    assert store.get_next_pending() is None
    a = store.add("a")
    store.add("b")
    assert store.get_next_pending().id == a
    store.mark_in_progress(a)
    assert store.get_next_pending().title == "b"


def test_get_until_excludes_stop_id(store: TodoManager) -> None:
    for title in ("a", "b", "c", "d"):
        store.add(title)
    assert [t.id for t in store.get_until(3)] == [1, 2]
    assert [t.id for t in store.get_until(99)] == [1, 2, 3, 4]
    assert store.get_until(1) == []


def test_get_range_is_inclusive(store: TodoManager) -> None:
    for title in ("a", "b", "c", "d"):
        store.add(title)
    assert [t.id for t in store.get_range(2, 3)] == [2, 3]
    assert [t.id for t in store.get_range(3, 99)] == [3, 4]
    assert store.get_range(99, 2) == []


def test_get_range_skips_non_pending(store: TodoManager) -> None:
    for title in ("a", "b", "c"):
        store.add(title)
    store.mark_completed(2)
    assert [t.id for t in store.get_range(1, 3)] == [1, 3]
    assert store.get_range(2, 3) == []


def test_store_round_trip_keeps_next_id(store: TodoManager) -> None:
    store.add("a", "first")
    b = store.add("b")
    store.mark_completed(b)
    store.add("c")
    store.delete(3)

    restored = TodoManager.from_dict(store.to_dict())
    assert [t.to_dict() for t in restored.list_todos(True)] == [t.to_dict() for t in store.list_todos(True)]
    assert restored.add("d") == 4


def test_todo_from_dict_rejects_unknown_status() -> None:
    data = Todo(id=1, title="a").to_dict()
    data["status"] = "failed"
    with pytest.raises(ValidationError):
        Todo.from_dict(data)


def test_status_from_string() -> None:
    assert TodoStatus.from_string("in_progress") == TodoStatus.IN_PROGRESS
