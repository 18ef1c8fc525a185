"""Immediate (non-debounced) metadata updates: publish flag and slug."""

from typing import Optional

from postdraft.services.exceptions import SlugRequired
from postdraft.services.post_actions import ActionResult, PostActions
from postdraft.utils.logging import get_logger
from postdraft.utils.notify import Notifier, log_notifier

logger = get_logger(__name__)


def make_slug(title: Optional[str]) -> str:
    """URL-friendly version of a title: lowercase, spaces replaced by dashes.

    Example:
        >>> make_slug("My First Post")
        'my-first-post'
    """
    return (title or "").lower().replace(" ", "-")


class MetadataUpdater:
    """Sends single-field updates for one post and reports the outcome."""

    def __init__(self, post_id: str, actions: PostActions, notify: Notifier = log_notifier):
        self.post_id = post_id
        self.actions = actions
        self.notify = notify

    async def update_slug(self, slug: str) -> ActionResult:
        """
        Save a new slug.

        Raises:
            SlugRequired: If ``slug`` is empty; nothing is sent
        """
        if not slug or not slug.strip():
            self.notify("Slug required", "error")
            raise SlugRequired()

        result = await self.actions.update_post_metadata(self.post_id, "slug", slug)
        self._report(result, "slug", success="Successfully updated slug!")
        return result

    async def set_published(self, published: bool) -> ActionResult:
        """Publish or unpublish the post."""
        result = await self.actions.update_post_metadata(self.post_id, "published", published)
        verb = "published" if published else "unpublished"
        self._report(result, "published", success=f"Successfully {verb} your post.")
        return result

    def _report(self, result: ActionResult, field: str, success: str) -> None:
        if result.ok:
            logger.info("post_metadata_updated", post_id=self.post_id, field=field)
            self.notify(success, "information")
        else:
            logger.error("post_metadata_failed", post_id=self.post_id, field=field, error=result.error)
            self.notify(result.error, "error")
