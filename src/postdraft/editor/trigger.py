"""Detection of the in-document completion trigger."""

from dataclasses import dataclass
from typing import Optional

from postdraft.models.document import Document
from postdraft.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TRIGGER = "++"


def build_prompt(title: Optional[str], description: Optional[str], text: str) -> str:
    """Compose the generation prompt from post metadata and document text."""
    return f"Title: {title or ''}\n Description: {description or ''}\n\n {text}"


@dataclass(frozen=True)
class TriggerEvent:
    """A detected trigger.

    Attributes:
        delete_from: Start of the trigger text to remove from the document
        delete_to: End of the trigger text
        prompt: Prompt built from the document with the trigger text removed
        trigger: The trigger text itself
    """

    delete_from: int
    delete_to: int
    prompt: str
    trigger: str = DEFAULT_TRIGGER


class TriggerDetector:
    """Recognizes the trigger sequence immediately before the cursor.

    The detector only reports; deleting the trigger text and starting the
    completion is up to the caller.
    """

    def __init__(self, trigger: str = DEFAULT_TRIGGER):
        self.trigger = trigger

    def check(
        self,
        document: Document,
        cursor: int,
        streaming: bool,
        title: Optional[str] = "",
        description: Optional[str] = "",
    ) -> Optional[TriggerEvent]:
        """
        Check the text ending at ``cursor`` for the trigger.

        Args:
            document: Document after the latest mutation
            cursor: Cursor offset after the mutation; out-of-range offsets never match
            streaming: Whether a completion is already streaming for this document
            title: Post title for the prompt
            description: Post description for the prompt

        Returns:
            TriggerEvent when the trigger is present and nothing is streaming,
            None otherwise. A trigger typed while streaming is ordinary text.
        """
        if not 0 <= cursor <= len(document):
            # No text ends at an offset outside the document
            return None

        start = cursor - len(self.trigger)
        window = document.text_between(start, cursor, "\n")
        if window != self.trigger:
            return None

        if streaming:
            logger.debug("trigger_ignored", cursor=cursor, reason="already_streaming")
            return None

        text = document.text
        remaining = text[:start] + text[cursor:]
        return TriggerEvent(
            delete_from=start,
            delete_to=cursor,
            prompt=build_prompt(title, description, remaining),
            trigger=self.trigger,
        )
