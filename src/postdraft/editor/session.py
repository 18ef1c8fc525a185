"""Completion engine for one document.

EditorSession wires the trigger detector, stream controller, patch applier
and interrupt handler around a single Document:

    user edit ──► document_changed() ──► TriggerDetector
                                            │ "++" found
                                            ▼
                       delete "++", CompletionStreamController.start()
                                            │ chunks
                                            ▼
                              IncrementalPatchApplier.apply()
                                            │
              InterruptHandler ◄── escape / undo / pointer while streaming

Hosts call ``document_changed()`` after every user mutation and route key
and pointer gestures to ``handle_key()`` / ``handle_pointer()``.
"""

from typing import Awaitable, Callable, Optional, Tuple

from postdraft.editor.controller import CompletionStreamController, TextStream
from postdraft.editor.interrupts import InterruptHandler
from postdraft.editor.patcher import IncrementalPatchApplier
from postdraft.editor.trigger import DEFAULT_TRIGGER, TriggerDetector, TriggerEvent, build_prompt
from postdraft.models.completion import CompletionSession
from postdraft.models.document import Document
from postdraft.services.exceptions import AlreadyStreaming, CompletionError, RateLimited
from postdraft.utils.logging import get_logger
from postdraft.utils.notify import Notifier, log_notifier

logger = get_logger(__name__)


class EditorSession:
    """Completion-streaming engine bound to one document."""

    def __init__(
        self,
        document: Document,
        client: TextStream,
        metadata: Callable[[], Tuple[str, str]] = lambda: ("", ""),
        notify: Notifier = log_notifier,
        on_change: Optional[Callable[[], None]] = None,
        trigger: str = DEFAULT_TRIGGER,
    ):
        """
        Args:
            document: Document this session edits
            client: Source of generated text
            metadata: Returns the current (title, description) for prompts
            notify: Notification sink for completion failures
            on_change: Called after every data-affecting document change
            trigger: Trigger sequence
        """
        self.document = document
        self.metadata = metadata
        self.notify = notify
        self.on_change = on_change

        self.detector = TriggerDetector(trigger)
        self.controller = CompletionStreamController(client, listener=self)
        self.patcher = IncrementalPatchApplier(document)
        self.interrupts = InterruptHandler(
            self.controller,
            self.patcher,
            resume=self.resume,
            trigger=trigger,
        )

    @property
    def is_streaming(self) -> bool:
        return self.controller.is_streaming

    @property
    def session(self) -> Optional[CompletionSession]:
        return self.controller.session

    def document_changed(self) -> Optional[TriggerEvent]:
        """
        React to a user mutation of the document.

        If the trigger sits right before the cursor and nothing is streaming,
        the trigger text is removed and a completion starts. Otherwise the
        change is reported through ``on_change``.

        Returns:
            The trigger event when a completion was started
        """
        title, description = self.metadata()
        event = self.detector.check(
            self.document,
            self.document.cursor,
            streaming=self.is_streaming,
            title=title,
            description=description,
        )
        if event is None:
            self._changed()
            return None

        self.document.delete_range(event.delete_from, event.delete_to)
        logger.info("autocomplete_shortcut_used")
        self.start_completion(event.prompt, trigger_text=event.trigger)
        return event

    def start_completion(self, prompt: str, trigger_text: str = "") -> CompletionSession:
        """Start streaming generated text at the cursor.

        Raises:
            AlreadyStreaming: If this document already has a streaming session
        """
        anchor = self.document.track(self.document.cursor)
        try:
            session = self.controller.start(prompt, anchor=anchor, trigger_text=trigger_text)
        except AlreadyStreaming:
            self.document.untrack(anchor)
            raise
        self.interrupts.arm(session)
        return session

    def resume(self) -> CompletionSession:
        """Start a new completion prompted with the document as it stands now."""
        title, description = self.metadata()
        prompt = build_prompt(title, description, self.document.get_text() or " ")
        return self.start_completion(prompt)

    def cancel_completion(self) -> None:
        """Cancel the streaming completion and restore the document to its pre-trigger text."""
        session = self.session
        if session is None or not session.is_streaming:
            return
        self.controller.cancel()
        self.patcher.rollback(session, session.trigger_text)
        self._changed()

    def handle_key(self, key: str) -> bool:
        """Route a key press to the interrupt handler. True when consumed."""
        handled = self.interrupts.handle_key(key)
        if handled:
            self._changed()
        return handled

    async def handle_pointer(self, confirm: Callable[[str], Awaitable[bool]]) -> Optional[CompletionSession]:
        """Route a pointer action to the interrupt handler."""
        return await self.interrupts.pointer(confirm)

    async def wait(self) -> None:
        """Wait for the current completion stream to exit."""
        await self.controller.wait()

    # CompletionListener

    def completion_updated(self, session: CompletionSession) -> None:
        if self.patcher.apply(session):
            self._changed()

    def completion_finished(self, session: CompletionSession) -> None:
        self.interrupts.disarm()
        self.patcher.finish(session)
        self.patcher.release(session)

    def completion_failed(self, session: CompletionSession, error: CompletionError) -> None:
        self.interrupts.disarm()
        self.patcher.rollback(session, session.trigger_text)
        self.patcher.release(session)
        if isinstance(error, RateLimited):
            logger.info("rate_limit_reached")
        self.notify(error.message, "error")
        self._changed()

    def completion_cancelled(self, session: CompletionSession) -> None:
        self.interrupts.disarm()
        self.patcher.release(session)

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change()
