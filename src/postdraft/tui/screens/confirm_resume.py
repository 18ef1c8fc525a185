"""Modal asking whether to continue a paused completion."""

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Label


class ConfirmResumeScreen(ModalScreen[bool]):
    """Yes/no question; dismisses with True to resume generation."""

    CSS = """
    ConfirmResumeScreen {
        align: center middle;
    }

    #dialog {
        width: 50;
        height: auto;
        border: thick $accent;
        background: $surface;
        padding: 1 2;
    }

    #dialog Horizontal {
        height: auto;
        margin-top: 1;
    }
    """

    BINDINGS = [
        Binding("y", "dismiss(True)", "Continue", show=True),
        Binding("n", "dismiss(False)", "Stop", show=True),
        Binding("escape", "dismiss(False)", "Stop", show=False),
    ]

    def __init__(self, question: str, **kwargs):
        super().__init__(**kwargs)
        self.question = question

    def compose(self) -> ComposeResult:
        with Vertical(id="dialog"):
            yield Label(self.question, id="question")
            with Horizontal():
                yield Button("Continue", variant="primary", id="continue")
                yield Button("Stop", variant="default", id="stop")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "continue")
