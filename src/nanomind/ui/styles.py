"""CSS styles for the TUI.

Hides layout and styling decisions from the application logic.
"""

APP_CSS = """
Screen {
    layout: vertical;
    background: $background;
}

#status-bar {
    height: 1;
    padding: 0 1;
    background: $panel;
    color: $text-muted;

    &.-busy {
        color: $warning;
    }

    &.-error {
        color: $error;
    }
}

#chat-view {
    height: 1fr;
    padding: 0 1;
    border: round $primary 60%;
    border-title-color: $primary;
    border-title-style: bold;
    border-subtitle-color: $text-muted;
    border-subtitle-align: right;
    scrollbar-gutter: stable;
}

#empty-placeholder {
    width: 100%;
    content-align: center middle;
    text-align: center;
    color: $text-muted;
    padding: 2 4;
}

.message {
    height: auto;
    max-width: 80%;
    margin: 1 0 0 0;
    padding: 0 1;
}

.message-user {
    margin-left: 8;
    border: round $primary;
    background: $primary 15%;
}

.message-assistant {
    border: round $secondary 60%;
    background: $surface;
}

ChatInputBar {
    height: auto;
    max-height: 8;
    padding: 0 1;

    TextArea {
        width: 1fr;
        height: auto;
        max-height: 6;
    }

    Button {
        width: 10;
        margin-left: 1;
    }
}
"""
