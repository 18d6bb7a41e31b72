"""Unit tests for the conversation module."""
import pytest

from nanomind.conversation import (
    ChangeKind,
    ConversationStore,
    Message,
    Status,
)


class TestMessage:
    """Tests for Message model."""

    def test_create_user_message(self):
        """Test creating a user message."""
        msg = Message(text="Hi", is_user=True)

        assert msg.text == "Hi"
        assert msg.is_user is True
        assert msg.role == "user"
        assert msg.message_id

    def test_message_is_frozen(self):
        """Test that messages cannot be mutated in place."""
        msg = Message(text="Hi", is_user=False)
        with pytest.raises(ValueError):
            msg.text = "changed"  # type: ignore

    def test_with_text_keeps_identity_fields(self):
        """Test that replacing text keeps timestamp and id."""
        msg = Message(text="", is_user=False)
        updated = msg.with_text("Hello")

        assert updated.text == "Hello"
        assert updated.role == "assistant"
        assert updated.created_at == msg.created_at
        assert updated.message_id == msg.message_id
        assert msg.text == ""

    def test_message_ids_are_unique(self):
        ids = {Message(text="x", is_user=True).message_id for _ in range(50)}
        assert len(ids) == 50


class TestStatus:
    """Tests for Status strings."""

    def test_fixed_statuses(self):
        assert Status.READY == "Ready"
        assert Status.LOADING_MODEL == "Loading Model..."
        assert Status.MODEL_READY == "Model Ready"
        assert Status.GENERATING == "Generating..."

    def test_formatted_statuses(self):
        assert Status.error("oom") == "Error: oom"
        assert Status.load_error("bad file") == "Error Loading Model: bad file"
        assert Status.inference_time(250) == "Inference Time: 250 ms"


class TestConversationStore:
    """Tests for ConversationStore."""

    def test_initial_state(self, store):
        """Test that a new store is empty, ready and idle."""
        assert store.messages == ()
        assert len(store) == 0
        assert store.status == "Ready"
        assert store.is_busy is False

    def test_append_returns_index(self, store):
        assert store.append_message(Message(text="a", is_user=True)) == 0
        assert store.append_message(Message(text="", is_user=False)) == 1
        assert len(store) == 2

    def test_append_none_fails(self, store):
        with pytest.raises(TypeError):
            store.append_message(None)  # type: ignore

    def test_replace_text(self, store):
        store.append_message(Message(text="Hi", is_user=True))
        index = store.append_message(Message(text="", is_user=False))

        store.replace_text(index, "Hello")

        assert store.messages[index].text == "Hello"
        assert store.messages[0].text == "Hi"

    @pytest.mark.parametrize("index", [-1, 1, 5])
    def test_replace_text_out_of_bounds(self, store, index):
        """Test that out-of-range indices raise IndexError."""
        store.append_message(Message(text="Hi", is_user=True))
        with pytest.raises(IndexError):
            store.replace_text(index, "x")

    def test_replace_text_after_truncation(self, store):
        """Test that a stale index fails after the conversation shrinks."""
        store.append_message(Message(text="Hi", is_user=True))
        index = store.append_message(Message(text="", is_user=False))
        store.drop_last()

        with pytest.raises(IndexError):
            store.replace_text(index, "late")

    def test_drop_last(self, store):
        store.append_message(Message(text="a", is_user=True))
        store.append_message(Message(text="b", is_user=False))

        removed = store.drop_last()

        assert removed.text == "b"
        assert [m.text for m in store.messages] == ["a"]

    def test_drop_last_on_empty_is_silent(self, store):
        assert store.drop_last() is None
        assert len(store) == 0

    def test_clear(self, store):
        store.append_message(Message(text="a", is_user=True))
        store.clear()
        assert store.messages == ()

    def test_set_status_and_busy(self, store):
        store.set_status(Status.GENERATING)
        store.set_busy(True)
        assert store.status == "Generating..."
        assert store.is_busy is True

        store.set_status("Error: oom")
        store.set_busy(False)
        assert store.status == "Error: oom"
        assert store.is_busy is False

    def test_snapshot_is_immutable(self, store):
        """Test that readers cannot mutate the conversation through the view."""
        store.append_message(Message(text="a", is_user=True))
        snapshot = store.messages
        store.append_message(Message(text="b", is_user=True))

        assert len(snapshot) == 1
        assert isinstance(snapshot, tuple)


class TestStoreObservers:
    """Tests for store change notification."""

    def test_observer_sees_mutation_synchronously(self, store):
        """Test that the new state is visible inside and right after the callback."""
        seen = []
        store.subscribe(lambda change: seen.append((change.kind, change.store.status)))

        store.set_status("Model Ready")

        assert seen == [(ChangeKind.STATUS, "Model Ready")]

    def test_change_carries_index(self, store):
        changes = []
        store.subscribe(changes.append)

        store.append_message(Message(text="a", is_user=True))
        store.append_message(Message(text="", is_user=False))
        store.replace_text(1, "x")
        store.drop_last()

        assert [(c.kind, c.index) for c in changes] == [
            (ChangeKind.APPENDED, 0),
            (ChangeKind.APPENDED, 1),
            (ChangeKind.REPLACED, 1),
            (ChangeKind.DROPPED, 1),
        ]

    def test_drop_last_on_empty_does_not_notify(self, store):
        changes = []
        store.subscribe(changes.append)
        store.drop_last()
        assert changes == []

    def test_cancel_subscription(self, store):
        changes = []
        subscription = store.subscribe(changes.append)

        subscription.cancel()
        subscription.cancel()
        store.set_busy(True)

        assert changes == []
        assert subscription.active is False

    def test_failing_observer_does_not_break_others(self, store):
        """Test that one raising observer does not stop the mutation or other observers."""
        def broken(change):
            raise RuntimeError("boom")

        changes = []
        store.subscribe(broken)
        store.subscribe(changes.append)

        store.set_status("Ready")

        assert len(changes) == 1
        assert store.status == "Ready"

    def test_independent_stores(self):
        """Test that stores share no state."""
        first = ConversationStore()
        second = ConversationStore()
        first.append_message(Message(text="a", is_user=True))
        assert len(second) == 0
