"""Tests for the Textual chat app, driven headless with ``App.run_test``."""
from textual.widgets import Button, TextArea

from nanomind.coordinator import GenerationCoordinator
from nanomind.engine import Done, Ongoing
from nanomind.ui import NanoMindApp
from nanomind.ui.widgets import ChatInputBar


def make_app(engine, store) -> NanoMindApp:
    return NanoMindApp(GenerationCoordinator(engine, store, system_text="SYS"))


class TestChatInput:
    """Tests for submitting from the input bar."""

    async def test_input_disabled_while_generating(self, engine, store):
        app = make_app(engine, store)
        async with app.run_test() as pilot:
            text_area = app.query_one("#chat-input", TextArea)
            send = app.query_one("#send-btn", Button)
            text_area.text = "Hi"
            send.press()
            await pilot.pause()

            assert store.is_busy is True
            assert text_area.disabled is True
            assert send.disabled is True

            engine.emit(Ongoing(word="Hello"), Done())
            await pilot.pause()

            assert store.is_busy is False
            assert text_area.disabled is False
            assert send.disabled is False

    async def test_blocked_submission_keeps_draft(self, engine, store):
        """Test that a submission made while busy does not clear the draft."""
        app = make_app(engine, store)
        async with app.run_test() as pilot:
            bar = app.query_one(ChatInputBar)
            text_area = app.query_one("#chat-input", TextArea)
            text_area.text = "first"
            bar._submit()
            await pilot.pause()

            text_area.text = "second"
            bar._submit()
            await pilot.pause()

            assert text_area.text == "second"
            assert [m.text for m in store.messages] == ["first", ""]
            assert len(engine.prompts) == 1

    async def test_rejected_submission_changes_nothing(self, engine, store):
        app = make_app(engine, store)
        async with app.run_test() as pilot:
            bar = app.query_one(ChatInputBar)
            app.query_one("#chat-input", TextArea).text = "first"
            bar._submit()
            await pilot.pause()
            before = (store.messages, store.status, store.is_busy)

            bar.post_message(ChatInputBar.Submitted("second"))
            await pilot.pause()

            assert (store.messages, store.status, store.is_busy) == before

    async def test_submitted_text_is_not_stripped(self, engine, store):
        app = make_app(engine, store)
        async with app.run_test() as pilot:
            app.query_one("#chat-input", TextArea).text = "  indented\ncode  "
            app.query_one(ChatInputBar)._submit()
            await pilot.pause()

            assert store.messages[0].text == "  indented\ncode  "
            assert "<|im_start|>user\n  indented\ncode  <|im_end|>" in engine.prompts[0]

    async def test_blank_input_is_not_submitted(self, engine, store):
        app = make_app(engine, store)
        async with app.run_test() as pilot:
            text_area = app.query_one("#chat-input", TextArea)
            text_area.text = "  \n "
            app.query_one(ChatInputBar)._submit()
            await pilot.pause()

            assert store.messages == ()
            assert text_area.text == "  \n "


class TestInputHistory:
    """Tests for up/down history navigation."""

    async def test_up_and_down_walk_history(self, engine, store):
        app = make_app(engine, store)
        async with app.run_test():
            bar = app.query_one(ChatInputBar)
            text_area = app.query_one("#chat-input", TextArea)
            bar._history = ["one", "two"]

            seen = []
            for direction in (-1, -1, -1, 1, 1, 1):
                bar._navigate_history(direction)
                seen.append(text_area.text)

            assert seen == ["two", "one", "one", "two", "", ""]

    async def test_down_without_history_position_keeps_draft(self, engine, store):
        app = make_app(engine, store)
        async with app.run_test():
            bar = app.query_one(ChatInputBar)
            text_area = app.query_one("#chat-input", TextArea)
            bar._history = ["one"]
            text_area.text = "draft"

            bar._navigate_history(1)

            assert text_area.text == "draft"
