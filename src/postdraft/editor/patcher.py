"""Incremental application of streamed completion text to a document.

The stream reports the whole completion so far, not deltas. The applier keeps
a watermark (``session.applied_length``) of what is already in the document
and only inserts the text beyond it, so every snapshot can be applied without
duplicating text:

    accumulated:   "world"        -> insert "world"          (watermark 5)
    accumulated:   "world, friend" -> insert ", friend"      (watermark 13)

After each apply the generated span in the document equals
``accumulated[:applied_length]`` and the cursor sits right after it.
"""

from postdraft.models.completion import CompletionSession, CompletionStatus
from postdraft.models.document import Document
from postdraft.utils.logging import get_logger

logger = get_logger(__name__)


class IncrementalPatchApplier:
    """Merges a session's generated text into one document."""

    def __init__(self, document: Document):
        self.document = document

    def span(self, session: CompletionSession) -> tuple[int, int]:
        """Document range currently holding the session's applied text."""
        start = session.anchor.offset if session.anchor is not None else self.document.cursor
        return start, start + session.applied_length

    def apply(self, session: CompletionSession) -> str:
        """Insert the text received since the last apply.

        Nothing is applied unless the session is still streaming, so a chunk
        that lands after cancellation never races the rollback.

        Returns:
            The inserted delta ("" when there was nothing to apply)
        """
        if session.status != CompletionStatus.STREAMING:
            logger.debug("patch_skipped", status=session.status.value)
            return ""

        delta = session.pending
        if not delta:
            return ""

        _, end = self.span(session)
        self.document.insert(end, delta)
        session.steps.append(self.document.history[-1])
        session.mark_applied()
        logger.debug("patch_applied", offset=end, delta_length=len(delta))
        return delta

    def finish(self, session: CompletionSession) -> None:
        """Select the whole generated span so the user can accept, edit or discard it."""
        start, end = self.span(session)
        self.document.select(start, end)

    def remove_span(self, session: CompletionSession) -> None:
        """Delete the applied text from the document."""
        start, end = self.span(session)
        if end > start:
            self.document.delete_range(start, end)
            logger.debug("patch_removed", offset=start, length=end - start)

    def undo_span(self, session: CompletionSession) -> int:
        """Take back the session's insertions through the document's undo history.

        Steps are undone newest first for as long as the top of the history is
        one of the session's own insertions; any later edit stops the walk and
        is left alone together with the text below it.

        Returns:
            Number of steps undone
        """
        history = self.document.history
        undone = 0
        while session.steps and history and history[-1] is session.steps[-1]:
            session.steps.pop()
            self.document.undo()
            undone += 1
        logger.debug("patch_undone", steps=undone, remaining=len(session.steps))
        return undone

    def rollback(self, session: CompletionSession, marker: str) -> None:
        """Remove the applied text and put ``marker`` back where the completion started."""
        start, _ = self.span(session)
        self.remove_span(session)
        self.document.insert(start, marker)
        logger.info("completion_rolled_back", offset=start, removed_length=session.applied_length)

    def release(self, session: CompletionSession) -> None:
        """Stop tracking the session's anchor once it is terminal."""
        if session.anchor is not None:
            self.document.untrack(session.anchor)
