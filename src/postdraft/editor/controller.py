"""Completion stream controller: owns the single active generation request."""

import asyncio
import itertools
from typing import AsyncIterator, Optional, Protocol

from postdraft.models.completion import CompletionEvent, CompletionSession
from postdraft.models.document import TrackedPosition
from postdraft.services.exceptions import AlreadyStreaming, CompletionError, UpstreamError
from postdraft.utils.logging import get_logger

logger = get_logger(__name__)

_session_ids = itertools.count(1)


class TextStream(Protocol):
    """Anything that streams generated text for a prompt (GenerationClient in production)."""

    def stream_completion(self, prompt: str) -> AsyncIterator[str]:
        ...


class CompletionListener(Protocol):
    """Receives the controller's session events, in order, on the event loop."""

    def completion_updated(self, session: CompletionSession) -> None:
        ...

    def completion_finished(self, session: CompletionSession) -> None:
        ...

    def completion_failed(self, session: CompletionSession, error: CompletionError) -> None:
        ...

    def completion_cancelled(self, session: CompletionSession) -> None:
        ...


class CompletionStreamController:
    """
    Runs at most one streaming CompletionSession at a time.

    The stream is consumed in an asyncio task. Each chunk is appended to the
    session's ``accumulated`` text and reported to the listener before the
    next chunk is read, so updates are delivered strictly in arrival order.

    ``cancel()`` moves the session to Cancelled before returning; anything
    the transport still delivers afterwards is dropped.
    """

    def __init__(self, client: TextStream, listener: CompletionListener):
        """
        Args:
            client: Source of generated text
            listener: Receives update/finish/failure/cancel events
        """
        self.client = client
        self.listener = listener
        self.session: Optional[CompletionSession] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def is_streaming(self) -> bool:
        return self.session is not None and self.session.is_streaming

    @property
    def completion(self) -> str:
        """Text received so far by the current (or last) session."""
        return self.session.accumulated if self.session else ""

    def start(
        self,
        prompt: str,
        anchor: Optional[TrackedPosition] = None,
        trigger_text: str = "",
    ) -> CompletionSession:
        """
        Open a stream for ``prompt``.

        Args:
            prompt: Prompt sent to the generation endpoint
            anchor: Document position where generated text goes
            trigger_text: Text the completion replaced, restored on rollback

        Returns:
            The new session, already Streaming

        Raises:
            AlreadyStreaming: If another session is still streaming
        """
        if self.is_streaming:
            raise AlreadyStreaming()

        session = CompletionSession(prompt=prompt, anchor=anchor, trigger_text=trigger_text)
        session.transition(CompletionEvent.START)
        self.session = session

        name = f"completion-{next(_session_ids)}"
        self._task = asyncio.create_task(self._pump(session), name=name)

        logger.info("completion_started", task=name, prompt_length=len(prompt))
        return session

    def cancel(self) -> None:
        """Stop the current session. Does nothing unless a session is streaming."""
        session = self.session
        if session is None or not session.is_streaming:
            return

        session.transition(CompletionEvent.INTERRUPTED)
        if self._task is not None and not self._task.done():
            self._task.cancel()

        logger.info(
            "completion_cancelled",
            received_length=len(session.accumulated),
            applied_length=session.applied_length,
        )
        self.listener.completion_cancelled(session)

    async def wait(self) -> None:
        """Wait until the current stream task has exited."""
        if self._task is not None:
            await asyncio.wait([self._task])

    async def _pump(self, session: CompletionSession) -> None:
        try:
            async for chunk in self.client.stream_completion(session.prompt):
                if not session.is_streaming:
                    logger.debug("completion_chunk_discarded", chunk_length=len(chunk))
                    break
                session.append(chunk)
                logger.debug(
                    "completion_chunk",
                    chunk_length=len(chunk),
                    accumulated_length=len(session.accumulated),
                )
                self.listener.completion_updated(session)

        except asyncio.CancelledError:
            # Cancelled from outside cancel() (e.g. shutdown): do not leave the session streaming
            if session.is_streaming:
                session.transition(CompletionEvent.INTERRUPTED)
                logger.info("completion_task_cancelled", received_length=len(session.accumulated))
                self.listener.completion_cancelled(session)
            raise

        except CompletionError as e:
            self._fail(session, e)
            return

        except Exception as e:
            logger.exception("completion_internal_error", error=str(e), error_type=type(e).__name__)
            self._fail(session, UpstreamError(f"Completion failed: {e}"))
            return

        if session.is_streaming:
            session.transition(CompletionEvent.STREAM_ENDED)
            logger.info("completion_finished", length=len(session.accumulated))
            self.listener.completion_finished(session)

    def _fail(self, session: CompletionSession, error: CompletionError) -> None:
        if not session.is_streaming:
            return
        session.fail(error.kind, error.message)
        logger.error(
            "completion_failed",
            kind=error.kind,
            error=error.message,
            received_length=len(session.accumulated),
        )
        self.listener.completion_failed(session, error)
