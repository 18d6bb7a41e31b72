"""Custom Textual widgets for the TUI.

Hides widget implementation details:
- Input history management
- Chat message rendering
- Status display
"""

from textual.containers import Horizontal, VerticalScroll
from textual.message import Message as TextualMessage
from textual.widgets import Button, Static, TextArea

from ..conversation import Message

WELCOME_TEXT = (
    "Welcome to NanoMind\n\n"
    "Your on-device AI assistant\n"
    "Ask me anything - I'm here to help!"
)


class MessageBubble(Static):
    """One chat message. Empty assistant messages render as an ellipsis."""

    def __init__(self, message: Message, **kwargs) -> None:
        role_class = "message-user" if message.is_user else "message-assistant"
        super().__init__(self._display_text(message), markup=False, **kwargs)
        self.add_class("message", role_class)
        self.border_title = "You" if message.is_user else "NanoMind"
        self.border_subtitle = message.created_at.strftime("%H:%M:%S")

    @staticmethod
    def _display_text(message: Message) -> str:
        return message.text or "..."

    def show(self, message: Message) -> None:
        """Refresh the bubble with a newer copy of its message."""
        self.update(self._display_text(message))


class ChatView(VerticalScroll):
    """Scrollable list of message bubbles kept in step with the store."""

    BORDER_TITLE = "NanoMind"
    BORDER_SUBTITLE = "On-device AI assistant"
    ALLOW_SELECT = True

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._bubbles: list[MessageBubble] = []

    def on_mount(self) -> None:
        self.mount(Static(WELCOME_TEXT, id="empty-placeholder"))

    def _set_placeholder_visible(self, visible: bool) -> None:
        for placeholder in self.query("#empty-placeholder"):
            placeholder.display = visible

    def append(self, message: Message) -> None:
        """Render a new message at the bottom."""
        bubble = MessageBubble(message)
        self._bubbles.append(bubble)
        self._set_placeholder_visible(False)
        self.mount(bubble)
        self._update_subtitle()
        self.scroll_end(animate=False)

    def replace(self, index: int, message: Message) -> None:
        """Re-render the message at ``index``."""
        if 0 <= index < len(self._bubbles):
            self._bubbles[index].show(message)
            self.scroll_end(animate=False)

    def drop_last(self) -> None:
        """Remove the bottom message."""
        if self._bubbles:
            self._bubbles.pop().remove()
        self._update_subtitle()
        self._set_placeholder_visible(not self._bubbles)

    def clear_messages(self) -> None:
        """Remove every message."""
        for bubble in self._bubbles:
            bubble.remove()
        self._bubbles.clear()
        self._update_subtitle()
        self._set_placeholder_visible(True)

    def _update_subtitle(self) -> None:
        count = len(self._bubbles)
        self.border_subtitle = f"{count} messages" if count else "On-device AI assistant"


class StatusBar(Static):
    """Single-line status display."""

    def set_status(self, status: str, busy: bool) -> None:
        self.update(status)
        self.set_class(busy, "-busy")
        self.set_class(status.startswith("Error"), "-error")


class ChatInputBar(Horizontal):
    """Multi-line input with a Send button and up/down input history."""

    class Submitted(TextualMessage):
        """Message sent when user submits input."""

        def __init__(self, value: str) -> None:
            super().__init__()
            self.value = value

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._history: list[str] = []
        self._history_index: int = -1

    def compose(self):
        text_area = TextArea(id="chat-input", show_line_numbers=False)
        text_area.cursor_blink = False
        yield text_area
        yield Button("Send", id="send-btn", variant="success").with_tooltip(
            "Submit message (Ctrl+J)"
        )

    def on_mount(self) -> None:
        text_area = self.query_one("#chat-input", TextArea)
        text_area.focus()
        text_area.highlight_cursor_line = False

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "send-btn":
            self._submit()

    def on_key(self, event) -> None:
        """Handle keyboard shortcuts.

        Note: ctrl+enter cannot work in terminals (terminal doesn't pass
        ctrl/shift modifiers with Enter). Use ctrl+j as the submit shortcut.
        """
        if event.key == "ctrl+j":
            self._submit()
            event.prevent_default()
            event.stop()
        elif event.key == "up" and self._is_cursor_at_start():
            self._navigate_history(-1)
            event.prevent_default()
            event.stop()
        elif event.key == "down" and self._is_cursor_at_end():
            self._navigate_history(1)
            event.prevent_default()
            event.stop()

    def set_enabled(self, enabled: bool) -> None:
        """Enable or disable both the text input and the Send button."""
        text_area = self.query_one("#chat-input", TextArea)
        was_disabled = text_area.disabled
        text_area.disabled = not enabled
        self.query_one("#send-btn", Button).disabled = not enabled
        if enabled and was_disabled:
            text_area.focus()

    def _is_cursor_at_start(self) -> bool:
        text_area = self.query_one("#chat-input", TextArea)
        return text_area.cursor_location == (0, 0)

    def _is_cursor_at_end(self) -> bool:
        text_area = self.query_one("#chat-input", TextArea)
        lines = text_area.text.split("\n")
        return text_area.cursor_location == (len(lines) - 1, len(lines[-1]))

    def _navigate_history(self, direction: int) -> None:
        if not self._history:
            return
        text_area = self.query_one("#chat-input", TextArea)
        if direction < 0:
            if self._history_index == -1:
                self._history_index = len(self._history) - 1
            elif self._history_index > 0:
                self._history_index -= 1
        else:
            if self._history_index == -1:
                return
            if self._history_index < len(self._history) - 1:
                self._history_index += 1
            else:
                # Past the newest entry: back to an empty draft.
                self._history_index = -1
                text_area.text = ""
                return
        text_area.text = self._history[self._history_index]

    def _submit(self) -> None:
        text_area = self.query_one("#chat-input", TextArea)
        if text_area.disabled:
            return
        value = text_area.text
        if value.strip():
            if not self._history or self._history[-1] != value:
                self._history.append(value)
            self._history_index = -1
            text_area.text = ""
            self.post_message(self.Submitted(value))

    def focus_input(self) -> None:
        """Focus the text input."""
        self.query_one("#chat-input", TextArea).focus()
