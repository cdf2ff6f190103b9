import pytest

from mindmapper.history import HistoryManager


def test_empty_history_has_nothing_to_undo() -> None:
    history = HistoryManager()

    assert history.undo() is None
    assert history.redo() is None
    assert history.current() is None
    assert history.pointer == -1


def test_undo_and_redo_walk_the_entries() -> None:
    history = HistoryManager()
    for value in range(3):
        history.commit({"value": value})

    assert history.undo() == {"value": 1}
    assert history.undo() == {"value": 0}
    assert not history.can_undo
    assert history.redo() == {"value": 1}
    assert history.redo() == {"value": 2}
    assert not history.can_redo


def test_commit_after_undo_discards_redo_branch() -> None:
    history = HistoryManager()
    history.commit({"value": "a"})
    history.commit({"value": "b"})
    history.undo()

    history.commit({"value": "c"})

    assert len(history) == 2
    assert not history.can_redo
    assert history.undo() == {"value": "a"}


def test_oldest_entry_is_dropped_when_full() -> None:
    history = HistoryManager(max_size=3)
    for value in range(5):
        history.commit({"value": value})

    assert len(history) == 3
    assert history.pointer == 2
    assert history.current() == {"value": 4}
    assert history.undo() == {"value": 3}
    assert history.undo() == {"value": 2}
    assert history.undo() is None


def test_entries_are_isolated_from_callers() -> None:
    history = HistoryManager()
    state = {"nodes": [{"text": "before"}]}
    history.commit(state)
    history.commit({"nodes": []})

    state["nodes"][0]["text"] = "mutated"
    restored = history.undo()
    restored["nodes"].clear()

    assert history.current() == {"nodes": [{"text": "before"}]}


def test_state_change_callback_fires() -> None:
    history = HistoryManager()
    calls = []
    history.on_state_changed = lambda: calls.append(history.pointer)

    history.commit({})
    history.commit({})
    history.undo()
    history.clear()

    assert calls == [0, 1, 0, -1]


def test_history_needs_at_least_one_slot() -> None:
    with pytest.raises(ValueError):
        HistoryManager(max_size=0)
