"""Textual screens."""

from postdraft.tui.screens.confirm_resume import ConfirmResumeScreen
from postdraft.tui.screens.editor import EditorScreen

__all__ = [
    "ConfirmResumeScreen",
    "EditorScreen",
]
