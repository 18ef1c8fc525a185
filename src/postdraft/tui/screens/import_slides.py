"""Modal asking for the slides export file to import."""

from typing import Optional

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Input, Label


class ImportSlidesScreen(ModalScreen[Optional[str]]):
    """Path prompt; dismisses with the entered path, or None when cancelled."""

    CSS = """
    ImportSlidesScreen {
        align: center middle;
    }

    #dialog {
        width: 70;
        height: auto;
        border: thick $accent;
        background: $surface;
        padding: 1 2;
    }
    """

    BINDINGS = [
        Binding("escape", "dismiss(None)", "Cancel", show=True),
    ]

    def compose(self) -> ComposeResult:
        with Vertical(id="dialog"):
            yield Label("Import slides from a JSON export (replaces body and slides):")
            yield Input(placeholder="path/to/deck.json", id="path")

    def on_mount(self) -> None:
        self.query_one("#path", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.dismiss(event.value.strip() or None)
