"""Debounced autosave of post snapshots.

Every data-affecting edit produces a PostSnapshot and hands it to
``PersistenceScheduler.observe``. The scheduler waits for a quiet period,
then saves only the latest snapshot, and only if it differs from the last
one the backend accepted.

Ordering:
- Saves for one post are serialized by a lock; an in-flight save is never
  cancelled.
- Snapshots observed while a save is in flight replace each other; only the
  newest is sent once the lock is free.
- A failed save leaves the baseline untouched, so the next edit retries it.
"""

import asyncio
from enum import Enum
from typing import Callable, Optional, Set

from postdraft.models.post import PostSnapshot
from postdraft.services.exceptions import PersistenceError
from postdraft.services.post_actions import PostActions
from postdraft.utils.logging import get_logger
from postdraft.utils.notify import Notifier, log_notifier

logger = get_logger(__name__)


class SaveState(str, Enum):
    """Save indicator states."""

    SAVED = "saved"
    SAVING = "saving"
    FAILED = "failed"

    @property
    def label(self) -> str:
        return {"saved": "Saved", "saving": "Saving...", "failed": "Not saved"}[self.value]


class PersistenceScheduler:
    """Debounces snapshots and sends them to the persistence backend.

    Example:
        >>> scheduler = PersistenceScheduler("42", actions, baseline=post.snapshot())
        >>> scheduler.observe(snapshot)        # saved after 1s of quiet
        >>> await scheduler.save_now(snapshot)  # explicit save gesture
    """

    def __init__(
        self,
        post_id: str,
        actions: PostActions,
        baseline: Optional[PostSnapshot] = None,
        debounce_seconds: float = 1.0,
        on_state_change: Optional[Callable[[SaveState], None]] = None,
        notify: Notifier = log_notifier,
    ):
        """
        Args:
            post_id: Identifier passed to every save
            actions: Persistence backend
            baseline: Snapshot already stored by the backend (no-op saves are skipped against it)
            debounce_seconds: Quiet period before an observed snapshot is saved
            on_state_change: Called with the new SaveState on every transition
            notify: Notification sink for save failures
        """
        self.post_id = post_id
        self.actions = actions
        self.last_saved = baseline
        self.debounce_seconds = debounce_seconds
        self.on_state_change = on_state_change
        self.notify = notify
        self.state = SaveState.SAVED

        self._pending: Optional[PostSnapshot] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._lock = asyncio.Lock()
        self._tasks: Set[asyncio.Task] = set()

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def observe(self, snapshot: PostSnapshot) -> None:
        """Record the latest snapshot and restart the quiet-period timer."""
        self._pending = snapshot
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.debounce_seconds, self._on_quiet_period)
        logger.debug("save_debounce_reset", post_id=self.post_id, delay=self.debounce_seconds)

    async def save_now(self, snapshot: PostSnapshot) -> bool:
        """Save immediately, bypassing the quiet period.

        Returns:
            True if a request was sent and succeeded
        """
        self._cancel_timer()
        self._pending = snapshot
        logger.info("manual_save_requested", post_id=self.post_id)
        return await self._save_pending()

    async def flush(self) -> None:
        """Save any snapshot still waiting for its quiet period and wait for in-flight saves."""
        self._cancel_timer()
        await self._save_pending()

    def close(self) -> None:
        """Drop the pending timer without saving."""
        self._cancel_timer()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_quiet_period(self) -> None:
        self._timer = None
        task = asyncio.ensure_future(self._save_pending())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _save_pending(self) -> bool:
        async with self._lock:
            snapshot = self._pending
            self._pending = None
            if snapshot is None:
                return False
            return await self._save(snapshot)

    async def _save(self, snapshot: PostSnapshot) -> bool:
        if snapshot.same_content(self.last_saved):
            logger.debug("save_skipped", post_id=self.post_id, reason="unchanged")
            return False

        self._set_state(SaveState.SAVING)
        logger.info(
            "post_save_started",
            post_id=self.post_id,
            content_length=len(snapshot.content),
        )

        try:
            result = await self.actions.update_post(self.post_id, snapshot)
            if not result.ok:
                raise PersistenceError(self.post_id, result.error)
        except Exception as e:
            # Timer-driven saves run in tasks nobody awaits
            message = e.message if isinstance(e, PersistenceError) else f"Could not save post: {e}"
            logger.error(
                "post_save_failed",
                post_id=self.post_id,
                error=message,
                error_type=type(e).__name__,
            )
            self._set_state(SaveState.FAILED)
            self.notify(message, "error")
            return False

        self.last_saved = snapshot
        self._set_state(SaveState.SAVED)
        logger.info("post_saved", post_id=self.post_id)
        return True

    def _set_state(self, state: SaveState) -> None:
        self.state = state
        if self.on_state_change is not None:
            self.on_state_change(state)
