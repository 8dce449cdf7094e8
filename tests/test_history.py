"""Tests for the edit history engine."""

import pytest

from core.render import EditHistory


@pytest.fixture
def artifacts(artifact_factory):
    return {name: artifact_factory(color) for name, color in
            [("a", "red"), ("b", "green"), ("c", "blue"), ("d", "black")]}


class TestEditHistory:
    """Tests for EditHistory."""

    def test_starts_empty(self):
        """A new history has no cursor."""
        history = EditHistory()
        assert len(history) == 0
        assert history.current_index == -1
        assert history.current() is None
        assert not history.can_undo
        assert not history.can_redo

    def test_push_moves_cursor_to_end(self, artifacts):
        history = EditHistory()
        history.push(artifacts["a"])
        history.push(artifacts["b"])
        assert history.current_index == 1
        assert history.current() is artifacts["b"]
        assert history.can_undo
        assert not history.can_redo

    def test_push_after_undo_discards_redo_branch(self, artifacts):
        """push(a), push(b), undo(), push(c) leaves [a, c]."""
        history = EditHistory()
        history.push(artifacts["a"])
        history.push(artifacts["b"])
        history.undo()
        history.push(artifacts["c"])

        assert history.items == (artifacts["a"], artifacts["c"])
        assert history.current_index == 1

    def test_undo_at_start_is_noop(self, artifacts):
        history = EditHistory()
        history.push(artifacts["a"])

        assert history.undo() is False
        assert history.current_index == 0
        assert history.items == (artifacts["a"],)

    def test_redo_at_end_is_noop(self, artifacts):
        history = EditHistory()
        history.push(artifacts["a"])
        history.push(artifacts["b"])

        assert history.redo() is False
        assert history.current_index == 1
        assert len(history) == 2

    def test_undo_redo_on_empty_history(self):
        history = EditHistory()
        assert history.undo() is False
        assert history.redo() is False
        assert history.current_index == -1

    def test_undo_then_redo(self, artifacts):
        history = EditHistory()
        for name in ("a", "b", "c"):
            history.push(artifacts[name])

        assert history.undo() is True
        assert history.current() is artifacts["b"]
        assert history.can_redo
        assert history.redo() is True
        assert history.current() is artifacts["c"]

    def test_undo_twice_then_push(self, artifacts):
        """[A, B, C] at 2, undo twice, push D gives [A, D] at 1."""
        history = EditHistory()
        for name in ("a", "b", "c"):
            history.push(artifacts[name])

        history.undo()
        history.undo()
        assert history.current_index == 0
        assert history.current() is artifacts["a"]

        history.push(artifacts["d"])
        assert history.items == (artifacts["a"], artifacts["d"])
        assert history.current_index == 1

    def test_reset(self, artifacts):
        history = EditHistory()
        history.push(artifacts["a"])
        history.push(artifacts["b"])
        history.reset()

        assert len(history) == 0
        assert history.current_index == -1
        assert history.current() is None

    def test_items_is_a_copy(self, artifacts):
        history = EditHistory()
        history.push(artifacts["a"])
        items = history.items
        history.push(artifacts["b"])
        assert len(items) == 1
