"""Post-level editor state: main document, slides and metadata.

PostEditor owns one EditorSession for the post body and one per slide, keeps
title/description/published alongside, and hands a fresh PostSnapshot to the
PersistenceScheduler after every data-affecting change.
"""

from typing import List, Optional, Sequence

from postdraft.editor.controller import TextStream
from postdraft.editor.session import EditorSession
from postdraft.models.config import EditorConfig
from postdraft.models.document import Document
from postdraft.models.post import Post, PostSnapshot
from postdraft.models.slides import SlideDeck, import_slides
from postdraft.services.metadata import MetadataUpdater
from postdraft.services.persistence import PersistenceScheduler
from postdraft.services.post_actions import ActionResult, PostActions
from postdraft.utils.logging import get_logger
from postdraft.utils.notify import Notifier, log_notifier

logger = get_logger(__name__)


class PostEditor:
    """Editing state for one post."""

    def __init__(
        self,
        post: Post,
        client: TextStream,
        actions: PostActions,
        config: Optional[EditorConfig] = None,
        debounce_seconds: float = 1.0,
        notify: Notifier = log_notifier,
        scheduler: Optional[PersistenceScheduler] = None,
    ):
        """
        Args:
            post: Post as loaded from the backend
            client: Source of generated text
            actions: Persistence backend
            config: Editor settings
            debounce_seconds: Autosave quiet period (ignored when ``scheduler`` is given)
            notify: Notification sink
            scheduler: Pre-built scheduler (defaults to one for ``post.id``)
        """
        self.post = post
        self.client = client
        self.config = config or EditorConfig()
        self.notify = notify

        self.title = post.title or ""
        self.description = post.description or ""
        self.published = post.published
        self.description_edited = False

        self.scheduler = scheduler or PersistenceScheduler(
            post.id,
            actions,
            baseline=post.snapshot(),
            debounce_seconds=debounce_seconds,
            notify=notify,
        )
        self.metadata = MetadataUpdater(post.id, actions, notify=notify)

        self.document = Document.from_markdown(post.content or "")
        self.main = self._new_session(self.document)
        self.main.on_change = self._content_changed

        self.deck = SlideDeck.from_json(post.slides)
        self.slide_sessions: List[EditorSession] = [
            self._new_slide_session(text) for text in self.deck.slides
        ]

    # Snapshots

    def snapshot(self) -> PostSnapshot:
        return PostSnapshot(
            title=self.title,
            description=self.description,
            content=self.document.to_markdown(),
            slides_json=self.deck.to_json(),
            published=self.published,
        )

    def _changed(self) -> None:
        self.scheduler.observe(self.snapshot())

    def _content_changed(self) -> None:
        if not self.description_edited and not self.post.description:
            self.description = self.document.get_text()[: self.config.description_length]
        self._changed()

    # Metadata

    def set_title(self, title: str) -> None:
        self.title = title
        self._changed()

    def set_description(self, description: str) -> None:
        """Set the description typed by the user; it is no longer auto-filled."""
        self.description = description
        self.description_edited = True
        self._changed()

    async def toggle_published(self) -> ActionResult:
        """Flip the publish flag through the metadata action."""
        result = await self.metadata.set_published(not self.published)
        if result.ok:
            self.published = not self.published
        return result

    async def update_slug(self, slug: str) -> ActionResult:
        """Save a slug through the metadata action (raises SlugRequired when empty)."""
        result = await self.metadata.update_slug(slug)
        if result.ok:
            self.post = self.post.model_copy(update={"slug": slug})
        return result

    async def save_now(self) -> bool:
        """Explicit save gesture: save immediately."""
        return await self.scheduler.save_now(self.snapshot())

    # Slides

    def add_slide(self, text: str = "") -> EditorSession:
        self.deck.add(text)
        session = self._new_slide_session(text)
        self.slide_sessions.append(session)
        self._changed()
        return session

    def delete_slide(self, index: int) -> None:
        session = self.slide_sessions.pop(index)
        session.controller.cancel()
        self.deck.delete(index)
        self._changed()

    def import_slides(self, slides: Sequence[str], content: str) -> None:
        """Replace body and slides with imported data, escaping markup characters first."""
        escaped_slides, escaped_content = import_slides(slides, content)

        for session in self.slide_sessions:
            session.controller.cancel()
        self.main.cancel_completion()

        self.document.delete_range(0, len(self.document))
        self.document.insert(0, escaped_content)
        self.deck.replace_all(escaped_slides)
        self.slide_sessions = [self._new_slide_session(text) for text in escaped_slides]

        logger.info("slides_imported", slide_count=len(escaped_slides), content_length=len(escaped_content))
        self._content_changed()

    def _slide_changed(self, session: EditorSession) -> None:
        index = self.slide_sessions.index(session)
        self.deck.update(index, session.document.to_markdown())
        self._changed()

    # Lifecycle

    @property
    def is_streaming(self) -> bool:
        return self.main.is_streaming or any(s.is_streaming for s in self.slide_sessions)

    async def close(self) -> None:
        """Stop streaming completions and save whatever is still pending."""
        for session in [self.main, *self.slide_sessions]:
            session.cancel_completion()
        await self.scheduler.flush()
        self.scheduler.close()

    def _new_session(self, document: Document) -> EditorSession:
        return EditorSession(
            document,
            self.client,
            metadata=lambda: (self.title, self.description),
            notify=self.notify,
            trigger=self.config.trigger,
        )

    def _new_slide_session(self, text: str) -> EditorSession:
        session = self._new_session(Document.from_markdown(text))
        session.on_change = lambda: self._slide_changed(session)
        return session
