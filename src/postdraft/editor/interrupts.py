"""Interrupt handling while a completion is streaming.

Three gestures stop a streaming completion:

- Escape: cancel, delete the generated text, restore the trigger text.
- Undo (ctrl+z / cmd+z): cancel, take the generated insertions back through
  the document's own undo history, then restore the trigger text at the
  cursor. Nothing is deleted by range, unlike Escape.
- Pointer (a click while streaming): cancel and ask whether to continue; on
  yes, a new completion starts from the current document text.

Listening is explicit: ``arm`` opens an InterruptSubscription when a session
starts streaming and ``disarm`` closes it on any terminal transition. With no
open subscription the handler is Idle and ignores every gesture.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from postdraft.editor.controller import CompletionStreamController
from postdraft.editor.patcher import IncrementalPatchApplier
from postdraft.models.completion import CompletionSession
from postdraft.utils.logging import get_logger

logger = get_logger(__name__)

RESUME_QUESTION = "AI writing paused. Continue?"

UNDO_KEYS = frozenset({"ctrl+z", "cmd+z", "meta+z", "super+z"})


class Interrupt(str, Enum):
    """Gestures that interrupt a streaming completion."""

    ESCAPE = "escape"
    UNDO = "undo"
    POINTER = "pointer"


class HandlerState(str, Enum):
    IDLE = "idle"
    AWAITING_INTERRUPT = "awaiting_interrupt"


def interrupt_for_key(key: str) -> Optional[Interrupt]:
    """Map a key name (Textual style, e.g. "escape", "ctrl+z") to an interrupt."""
    key = key.lower()
    if key == "escape":
        return Interrupt.ESCAPE
    if key in UNDO_KEYS:
        return Interrupt.UNDO
    return None


@dataclass
class InterruptSubscription:
    """Open while its session streams; closed exactly once."""

    session: CompletionSession
    active: bool = True

    def close(self) -> None:
        self.active = False


class InterruptHandler:
    """Routes interrupt gestures to the controller and patch applier."""

    def __init__(
        self,
        controller: CompletionStreamController,
        patcher: IncrementalPatchApplier,
        resume: Callable[[], CompletionSession],
        trigger: str = "++",
    ):
        """
        Args:
            controller: Controller owning the streaming session
            patcher: Applier for the same document
            resume: Starts a new completion from the current document text
            trigger: Text restored into the document on Escape and Undo
        """
        self.controller = controller
        self.patcher = patcher
        self.resume = resume
        self.trigger = trigger
        self._subscription: Optional[InterruptSubscription] = None

    @property
    def state(self) -> HandlerState:
        if self._subscription is not None and self._subscription.active:
            return HandlerState.AWAITING_INTERRUPT
        return HandlerState.IDLE

    @property
    def is_armed(self) -> bool:
        return self.state == HandlerState.AWAITING_INTERRUPT

    def arm(self, session: CompletionSession) -> InterruptSubscription:
        """Start listening for interrupts on behalf of a streaming session."""
        self.disarm()
        self._subscription = InterruptSubscription(session)
        logger.debug("interrupts_armed")
        return self._subscription

    def disarm(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
            logger.debug("interrupts_disarmed")

    def handle_key(self, key: str) -> bool:
        """Handle a key press. Returns True when the key was an interrupt and was consumed."""
        interrupt = interrupt_for_key(key)
        if interrupt is None or not self.is_armed:
            return False
        if interrupt == Interrupt.ESCAPE:
            self.escape()
        else:
            self.undo()
        return True

    def escape(self) -> bool:
        """Cancel, delete the generated text and restore the trigger text."""
        session = self._active_session()
        if session is None:
            return False
        logger.info("interrupt_received", interrupt=Interrupt.ESCAPE.value)
        self.controller.cancel()
        self.patcher.rollback(session, self.trigger)
        return True

    def undo(self) -> bool:
        """Cancel, undo the generated insertions and restore the trigger text at the cursor."""
        session = self._active_session()
        if session is None:
            return False
        logger.info("interrupt_received", interrupt=Interrupt.UNDO.value)
        self.controller.cancel()
        self.patcher.undo_span(session)
        document = self.patcher.document
        document.insert(document.cursor, self.trigger)
        return True

    async def pointer(self, confirm: Callable[[str], Awaitable[bool]]) -> Optional[CompletionSession]:
        """
        Pause on a pointer action and ask whether to continue.

        The stream is cancelled before the question is asked, so nothing is
        streaming while the user decides.

        Args:
            confirm: Asks the user ``RESUME_QUESTION``; resolves to their answer

        Returns:
            The resumed session, or None when there was nothing to interrupt
            or the user declined
        """
        session = self._active_session()
        if session is None:
            return None
        logger.info("interrupt_received", interrupt=Interrupt.POINTER.value)
        self.controller.cancel()

        if not await confirm(RESUME_QUESTION):
            logger.info("completion_resume_declined", kept_length=session.applied_length)
            return None

        if self.controller.is_streaming:
            # Something else started a completion while the question was open
            logger.warning("completion_resume_skipped", reason="already_streaming")
            return None

        logger.info("completion_resumed")
        return self.resume()

    def _active_session(self) -> Optional[CompletionSession]:
        if not self.is_armed:
            return None
        session = self._subscription.session
        if not session.is_streaming:
            self.disarm()
            return None
        return session
