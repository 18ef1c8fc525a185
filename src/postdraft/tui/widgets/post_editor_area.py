"""PostEditorArea widget: a TextArea view of an EditorSession's document.

The Document is the source of truth. Edits typed into the widget are diffed
against the document and applied as insert/delete steps; steps made by the
engine (generated text, rollbacks, selection of a finished completion) are
mirrored back into the widget.
"""

from typing import Callable, Optional, Tuple

from textual import events
from textual.widgets import TextArea
from textual.widgets.text_area import Selection

from postdraft.editor.session import EditorSession
from postdraft.models.document import Step


def location_of(text: str, index: int) -> Tuple[int, int]:
    """Convert a flat offset into a (row, column) location."""
    before = text[:index]
    row = before.count("\n")
    column = index - (before.rfind("\n") + 1)
    return row, column


def index_of(text: str, location: Tuple[int, int]) -> int:
    """Convert a (row, column) location into a flat offset."""
    row, column = location
    lines = text.split("\n")
    return sum(len(line) + 1 for line in lines[:row]) + column


def changed_range(old: str, new: str) -> Tuple[int, int, int]:
    """Smallest edit turning ``old`` into ``new``.

    Returns:
        (start, old_end, new_end): ``old[start:old_end]`` was replaced by ``new[start:new_end]``
    """
    start = 0
    limit = min(len(old), len(new))
    while start < limit and old[start] == new[start]:
        start += 1

    old_end, new_end = len(old), len(new)
    while old_end > start and new_end > start and old[old_end - 1] == new[new_end - 1]:
        old_end -= 1
        new_end -= 1
    return start, old_end, new_end


def text_before(step: Step, text: str) -> str:
    """Undo ``step`` on a plain string: the text as it was before the step."""
    if step.kind == "insert":
        return text[:step.offset] + text[step.offset + step.length:]
    return text[:step.offset] + step.text + text[step.offset:]


def remap(offset: int, edit: Optional[Tuple[int, int, int]]) -> int:
    """Move a document offset across an edit from ``changed_range``."""
    if edit is None:
        return offset
    start, old_end, new_end = edit
    if offset <= start:
        return offset
    if offset >= old_end:
        return offset + new_end - old_end
    return start


class PostEditorArea(TextArea):
    """Multi-line editor bound to a completion-streaming EditorSession."""

    def __init__(self, session: EditorSession, *args, **kwargs):
        """Initialize PostEditorArea.

        Args:
            session: Engine whose document this widget edits
        """
        super().__init__(session.document.text, *args, **kwargs)
        self.session = session
        self.show_line_numbers = False
        self._syncing = False
        self._unsubscribe: Optional[Callable[[], None]] = None

    def on_mount(self) -> None:
        """Start mirroring document changes and place the cursor like the document's."""
        self._unsubscribe = self.session.document.subscribe(self._mirror_step)
        self._mirror_selection()

    def on_unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def _on_key(self, event: events.Key) -> None:
        """Send escape/undo to the interrupt handler while a completion streams.

        A consumed key never reaches the TextArea: the handler has already
        changed the document and the change is mirrored back from there.
        """
        if self.session.handle_key(event.key):
            event.prevent_default()
            event.stop()
            return
        await super()._on_key(event)

    def on_text_area_changed(self, event: TextArea.Changed) -> None:
        """Apply edits made in the widget to the document."""
        document = self.session.document
        new_text = self.text
        old_text = document.text
        if new_text == old_text:
            return

        start, old_end, new_end = changed_range(old_text, new_text)
        self._syncing = True
        try:
            if old_end > start:
                document.delete_range(start, old_end)
            if new_end > start:
                document.insert(start, new_text[start:new_end])
            document.set_cursor(index_of(new_text, self.cursor_location))
        finally:
            self._syncing = False

        self.session.document_changed()

    def _mirror_step(self, step: Optional[Step]) -> None:
        if self._syncing:
            return
        self._syncing = True
        try:
            if step is not None:
                text = self.text
                # A widget edit whose Changed message is still queued is not in
                # the document yet; place the step around it.
                before = text_before(step, self.session.document.text)
                pending = changed_range(before, text) if text != before else None
                start = remap(step.offset, pending)
                if step.kind == "insert":
                    self.insert(step.text, location_of(text, start))
                else:
                    end = remap(step.offset + step.length, pending)
                    self.delete(location_of(text, start), location_of(text, end))
            self._mirror_selection()
        finally:
            self._syncing = False

    def _mirror_selection(self) -> None:
        document = self.session.document
        text = self.text
        pending = changed_range(document.text, text) if text != document.text else None
        self.selection = Selection(
            location_of(text, remap(document.anchor, pending)),
            location_of(text, remap(document.head, pending)),
        )
