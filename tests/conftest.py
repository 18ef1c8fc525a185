"""Shared test fixtures for all test modules."""

import asyncio
from typing import Any, List, Optional, Tuple

import pytest

from postdraft.models.post import Post, PostSnapshot
from postdraft.services.post_actions import ActionResult


class QueueStream:
    """
    Scripted generation client.

    Each call to ``stream_completion`` reads from the queue current at call
    time. Tests push text chunks, exceptions (raised from the stream) or
    ``QueueStream.END`` to finish the stream.
    """

    END = object()

    def __init__(self):
        self.prompts: List[str] = []
        self.queue: asyncio.Queue = asyncio.Queue()
        self.closed = 0

    def next_stream(self) -> None:
        """Give the next started stream its own queue."""
        self.queue = asyncio.Queue()

    def push(self, *items: Any) -> None:
        for item in items:
            self.queue.put_nowait(item)

    async def stream_completion(self, prompt: str):
        self.prompts.append(prompt)
        queue = self.queue
        try:
            while True:
                item = await queue.get()
                if item is QueueStream.END:
                    return
                if isinstance(item, Exception):
                    raise item
                yield item
        finally:
            self.closed += 1


class RecordingActions:
    """In-memory persistence backend that records every call."""

    def __init__(self, error: Optional[str] = None, delay: float = 0.0):
        self.error = error
        self.delay = delay
        self.saves: List[Tuple[str, PostSnapshot]] = []
        self.metadata: List[Tuple[str, str, Any]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def update_post(self, post_id: str, snapshot: PostSnapshot) -> ActionResult:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            self.saves.append((post_id, snapshot))
            return ActionResult(error=self.error)
        finally:
            self.in_flight -= 1

    async def update_post_metadata(self, post_id: str, field: str, value: Any) -> ActionResult:
        self.metadata.append((post_id, field, value))
        return ActionResult(error=self.error)


async def _settle(delay: float = 0.01) -> None:
    await asyncio.sleep(delay)


@pytest.fixture
def settle():
    """Awaitable that lets background tasks (stream pumps, timers) run."""
    return _settle


@pytest.fixture
def stream():
    return QueueStream()


@pytest.fixture
def actions():
    return RecordingActions()


@pytest.fixture
def notifications():
    """List collecting (message, severity) pairs, plus the notifier appending to it."""
    collected: List[Tuple[str, str]] = []

    def notify(message: str, severity: str = "information") -> None:
        collected.append((message, severity))

    return collected, notify


@pytest.fixture
def sample_post():
    return Post(
        id="42",
        title="My Trip",
        description="Notes from the road",
        content="Hello ",
        slides=None,
        slug="my-trip",
        published=False,
        subdomain="travel",
    )
