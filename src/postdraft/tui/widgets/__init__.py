"""Textual widgets."""

from postdraft.tui.widgets.post_editor_area import PostEditorArea

__all__ = ["PostEditorArea"]
