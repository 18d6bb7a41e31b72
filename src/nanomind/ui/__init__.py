"""Terminal UI module for nanomind.

Provides a Textual-based chat interface over the conversation store.

Module structure (each module hides a design decision):
- widgets.py: Custom widgets (message bubbles, status bar, input history)
- styles.py: CSS styling (layout decisions)
- app.py: Application orchestration (user interaction flow)
"""

from .app import NanoMindApp, run_tui
from .widgets import ChatInputBar, ChatView, MessageBubble, StatusBar

__all__ = [
    "ChatInputBar",
    "ChatView",
    "MessageBubble",
    "NanoMindApp",
    "StatusBar",
    "run_tui",
]
