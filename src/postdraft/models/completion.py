"""CompletionSession model: the lifecycle of one generation request."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from postdraft.models.document import Step, TrackedPosition
from postdraft.services.exceptions import InvalidTransition


class CompletionStatus(str, Enum):
    """Status of a completion session."""

    IDLE = "idle"
    STREAMING = "streaming"
    CANCELLED = "cancelled"
    FINISHED = "finished"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (CompletionStatus.CANCELLED, CompletionStatus.FINISHED, CompletionStatus.FAILED)


class CompletionEvent(str, Enum):
    """Discrete events that drive a session's status."""

    START = "start"
    CHUNK_RECEIVED = "chunk_received"
    STREAM_ENDED = "stream_ended"
    INTERRUPTED = "interrupted"
    ERRORED = "errored"


TRANSITIONS: Dict[Tuple[CompletionStatus, CompletionEvent], CompletionStatus] = {
    (CompletionStatus.IDLE, CompletionEvent.START): CompletionStatus.STREAMING,
    (CompletionStatus.STREAMING, CompletionEvent.CHUNK_RECEIVED): CompletionStatus.STREAMING,
    (CompletionStatus.STREAMING, CompletionEvent.STREAM_ENDED): CompletionStatus.FINISHED,
    (CompletionStatus.STREAMING, CompletionEvent.INTERRUPTED): CompletionStatus.CANCELLED,
    (CompletionStatus.STREAMING, CompletionEvent.ERRORED): CompletionStatus.FAILED,
}


@dataclass(frozen=True)
class Failure:
    """Reason attached to a Failed session."""

    kind: str
    message: str


@dataclass
class CompletionSession:
    """One generation request, from start to a terminal status.

    Attributes:
        prompt: Prompt sent to the generation endpoint
        accumulated: Text received so far; only ever extended
        applied_length: Characters of ``accumulated`` already inserted into the document
        status: Current status (see TRANSITIONS)
        failure: Reason for a Failed session, None otherwise
        anchor: Document position where the generated span starts
        trigger_text: Text the session replaced in the document ("" for resumed sessions)
        steps: Insert steps that put the applied text into the document
    """

    prompt: str
    accumulated: str = ""
    applied_length: int = 0
    status: CompletionStatus = CompletionStatus.IDLE
    failure: Optional[Failure] = None
    anchor: Optional[TrackedPosition] = None
    trigger_text: str = ""
    steps: List[Step] = field(default_factory=list, repr=False)

    def __post_init__(self) -> None:
        self._check_watermark()

    @property
    def is_streaming(self) -> bool:
        return self.status == CompletionStatus.STREAMING

    @property
    def pending(self) -> str:
        """Received text not yet applied to the document."""
        return self.accumulated[self.applied_length:]

    @property
    def applied(self) -> str:
        return self.accumulated[:self.applied_length]

    def transition(self, event: CompletionEvent) -> CompletionStatus:
        """Move to the status TRANSITIONS assigns to ``event``.

        Raises:
            InvalidTransition: If the current status does not accept ``event``
        """
        target = TRANSITIONS.get((self.status, event))
        if target is None:
            raise InvalidTransition(self.status.value, event.value)
        self.status = target
        return target

    def append(self, chunk: str) -> None:
        """Extend ``accumulated`` with a received chunk."""
        self.transition(CompletionEvent.CHUNK_RECEIVED)
        self.accumulated += chunk

    def fail(self, kind: str, message: str) -> None:
        self.transition(CompletionEvent.ERRORED)
        self.failure = Failure(kind=kind, message=message)

    def mark_applied(self) -> None:
        """Advance the watermark to everything received so far."""
        self.applied_length = len(self.accumulated)
        self._check_watermark()

    def _check_watermark(self) -> None:
        if not 0 <= self.applied_length <= len(self.accumulated):
            raise ValueError(
                f"applied_length {self.applied_length} outside 0..{len(self.accumulated)}"
            )
