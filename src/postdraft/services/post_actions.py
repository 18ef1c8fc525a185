"""Client for the post persistence backend.

The backend exposes three calls used by the editor:

- ``GET  {endpoint}/posts/{id}``: load a post
- ``PUT  {endpoint}/posts/{id}``: save a full PostSnapshot (idempotent)
- ``PATCH {endpoint}/posts/{id}/metadata``: update a single field (publish flag, slug)

Save and metadata calls never raise for backend-reported failures; they
return an ActionResult carrying the error so callers can notify and move on.
"""

from typing import Any, Optional, Protocol

import httpx
from pydantic import BaseModel, Field

from postdraft.models.config import PersistenceConfig
from postdraft.models.post import Post, PostSnapshot
from postdraft.utils.logging import get_logger

logger = get_logger(__name__)


class ActionResult(BaseModel):
    """Outcome of a persistence or metadata call."""

    error: Optional[str] = Field(default=None, description="Error message, None on success")

    model_config = {"frozen": True}

    @property
    def ok(self) -> bool:
        return self.error is None


class PostActions(Protocol):
    """Call contract of the persistence backend."""

    async def update_post(self, post_id: str, snapshot: PostSnapshot) -> ActionResult:
        ...

    async def update_post_metadata(self, post_id: str, field: str, value: Any) -> ActionResult:
        ...


class HttpPostActions:
    """PostActions over HTTP with httpx."""

    def __init__(self, config: PersistenceConfig):
        self.config = config
        self.timeout = httpx.Timeout(10.0)

    def _url(self, *parts: str) -> str:
        return "/".join([str(self.config.endpoint).rstrip("/"), *parts])

    def _headers(self) -> dict:
        if self.config.api_key:
            return {"Authorization": f"Bearer {self.config.api_key}"}
        return {}

    async def get_post(self, post_id: str) -> Post:
        """Load a post.

        Raises:
            httpx.HTTPError: On network errors or non-2xx responses
        """
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(self._url("posts", post_id), headers=self._headers())
            response.raise_for_status()
            return Post(**response.json())

    async def update_post(self, post_id: str, snapshot: PostSnapshot) -> ActionResult:
        return await self._send("PUT", self._url("posts", post_id), snapshot.model_dump())

    async def update_post_metadata(self, post_id: str, field: str, value: Any) -> ActionResult:
        return await self._send("PATCH", self._url("posts", post_id, "metadata"), {field: value})

    async def _send(self, method: str, url: str, payload: dict) -> ActionResult:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(method, url, json=payload, headers=self._headers())
        except httpx.HTTPError as e:
            logger.error("post_action_network_error", method=method, url=url, error=str(e))
            return ActionResult(error=str(e) or "Could not reach the server")

        body: Any = None
        if response.content:
            try:
                body = response.json()
            except ValueError:
                body = None

        if isinstance(body, dict) and body.get("error"):
            return ActionResult(error=str(body["error"]))
        if response.status_code >= 400:
            return ActionResult(error=f"Request failed with status {response.status_code}")
        return ActionResult()
