"""Main Textual TUI application.

Renders the conversation store and forwards user input to the
generation coordinator. The app only reads the store; every mutation
goes through the coordinator.
"""

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Footer, Header

from ..conversation import ChangeKind, StoreChange, StoreSubscription
from ..coordinator import GenerationCoordinator
from .styles import APP_CSS
from .widgets import ChatInputBar, ChatView, StatusBar


class NanoMindApp(App):
    """Textual chat app for an on-device assistant."""

    CSS = APP_CSS
    TITLE = "NanoMind"

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit"),
        Binding("ctrl+k", "clear_chat", "Clear Chat"),
    ]

    def __init__(
        self,
        coordinator: GenerationCoordinator,
        model_path: str | None = None,
        context_length: int | None = None,
    ) -> None:
        super().__init__()
        self._coordinator = coordinator
        self._model_path = model_path
        self._context_length = context_length
        self._store_subscription: StoreSubscription | None = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield StatusBar(id="status-bar")
        yield ChatView(id="chat-view")
        yield ChatInputBar(id="chat-input-bar")
        yield Footer()

    def on_mount(self) -> None:
        store = self._coordinator.store
        self._store_subscription = store.subscribe(self._on_store_change)
        self._refresh_status()

        chat = self.query_one("#chat-view", ChatView)
        for message in store.messages:
            chat.append(message)

        if self._model_path is not None:
            self.sub_title = self._model_path
            if self._context_length is None:
                self._coordinator.load_model(self._model_path)
            else:
                self._coordinator.load_model(self._model_path, self._context_length)

        self.query_one("#chat-input-bar", ChatInputBar).focus_input()

    async def on_unmount(self) -> None:
        """Stop observing the store and release the engine."""
        if self._store_subscription is not None:
            self._store_subscription.cancel()
            self._store_subscription = None
        await self._coordinator.close()

    def on_chat_input_bar_submitted(self, event: ChatInputBar.Submitted) -> None:
        """Forward user input. Rejected submissions are ignored silently."""
        self._coordinator.submit(event.value)

    def action_clear_chat(self) -> None:
        """Clear the conversation unless a response is streaming."""
        store = self._coordinator.store
        if store.is_busy:
            self.notify("Cannot clear while generating.", severity="warning", timeout=2)
            return
        store.clear()

    def _on_store_change(self, change: StoreChange) -> None:
        chat = self.query_one("#chat-view", ChatView)
        store = change.store

        if change.kind == ChangeKind.APPENDED:
            chat.append(store.messages[change.index])
        elif change.kind == ChangeKind.REPLACED:
            chat.replace(change.index, store.messages[change.index])
        elif change.kind == ChangeKind.DROPPED:
            chat.drop_last()
        elif change.kind == ChangeKind.CLEARED:
            chat.clear_messages()
        else:
            self._refresh_status()

    def _refresh_status(self) -> None:
        store = self._coordinator.store
        self.query_one("#status-bar", StatusBar).set_status(store.status, store.is_busy)
        self.query_one("#chat-input-bar", ChatInputBar).set_enabled(not store.is_busy)


def run_tui(
    coordinator: GenerationCoordinator,
    model_path: str | None = None,
    context_length: int | None = None,
) -> None:
    """Run the chat TUI until the user quits."""
    app = NanoMindApp(coordinator, model_path=model_path, context_length=context_length)
    app.run()
