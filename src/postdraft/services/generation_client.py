"""HTTP client for the streaming text generation endpoint."""

import asyncio
import json
from typing import AsyncIterator, Optional

import httpx

from postdraft.models.config import GenerationConfig
from postdraft.services.exceptions import CompletionError, NetworkError, RateLimited, UpstreamError
from postdraft.utils.logging import get_logger


logger = get_logger(__name__)


def _extract_error_message(status_code: int, body: str) -> str:
    """
    Pull a human-readable message out of an error response body.

    The endpoint answers errors with plain text; JSON bodies of the form
    {"error": "..."} or {"message": "..."} are accepted too.

    Args:
        status_code: HTTP status of the response
        body: Decoded response body

    Returns:
        Message to show to the user
    """
    body = body.strip()
    if body.startswith("{"):
        try:
            data = json.loads(body)
        except json.JSONDecodeError:
            data = None
        if isinstance(data, dict):
            for key in ("error", "message"):
                if isinstance(data.get(key), str) and data[key]:
                    return data[key]
    if body:
        return body
    return f"Generation request failed with status {status_code}"


class GenerationClient:
    """
    HTTP client for the generation endpoint.

    The endpoint takes {"prompt": ...} and streams plain UTF-8 text back (no
    JSON framing). Every piece of text received is yielded as-is; the caller
    appends it to the completion so far.

    Connection failures before the first chunk are retried; errors are
    translated to the CompletionError taxonomy (RateLimited, NetworkError,
    UpstreamError).
    """

    def __init__(self, config: GenerationConfig):
        """
        Initialize generation client.

        Args:
            config: Generation configuration (endpoint, API key, retries)
        """
        self.config = config
        self.timeout = httpx.Timeout(
            connect=10.0,
            read=60.0,  # Per-read timeout for streaming
            write=10.0,
            pool=10.0
        )

    def _classify_error(self, status_code: int, body: str) -> CompletionError:
        message = _extract_error_message(status_code, body)
        if message == self.config.rate_limit_message:
            return RateLimited(message)
        return UpstreamError(message, status_code=status_code)

    async def stream_completion(
        self,
        prompt: str,
        retry_delay: float = 2.0,
        request_id: Optional[str] = None,
    ) -> AsyncIterator[str]:
        """
        Stream generated text for ``prompt``.

        Args:
            prompt: Prompt sent to the endpoint
            retry_delay: Delay in seconds between connection retries (default: 2.0)
            request_id: Optional identifier for this request (for logging/tracing)

        Yields:
            Text chunks in arrival order

        Raises:
            RateLimited: If the server answered with its rate-limit message
            UpstreamError: If the server answered with any other error
            NetworkError: If the endpoint is unreachable or the stream breaks

        Example:
            >>> async for chunk in client.stream_completion("Title: Hi\\n ..."):
            ...     print(chunk, end="")
        """
        if not request_id:
            current_task = asyncio.current_task()
            task_name = current_task.get_name() if current_task else None
            request_id = task_name if task_name and task_name != "None" else "unknown"

        url = str(self.config.endpoint)
        headers = {}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"

        logger.info(
            "generation_request_started",
            request_id=request_id,
            endpoint=url,
            prompt_length=len(prompt),
        )
        logger.debug("generation_request_payload", request_id=request_id, prompt=prompt)

        attempt = 0
        chunk_count = 0

        while True:
            try:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    async with client.stream("POST", url, json={"prompt": prompt}, headers=headers) as response:
                        if response.status_code >= 400:
                            body = (await response.aread()).decode("utf-8", errors="replace")
                            error = self._classify_error(response.status_code, body)
                            logger.error(
                                "generation_http_error",
                                request_id=request_id,
                                status_code=response.status_code,
                                error=error.message,
                                kind=error.kind,
                            )
                            raise error

                        async for chunk in response.aiter_text():
                            if not chunk:
                                continue
                            chunk_count += 1
                            logger.debug(
                                "generation_response_chunk",
                                request_id=request_id,
                                chunk_num=chunk_count,
                                chunk_length=len(chunk),
                            )
                            yield chunk

                logger.info(
                    "generation_request_completed",
                    request_id=request_id,
                    chunk_count=chunk_count,
                )
                return

            except (httpx.ConnectError, httpx.ConnectTimeout) as e:
                attempt += 1
                if chunk_count == 0 and attempt <= self.config.max_retries:
                    logger.warning(
                        "generation_request_retry",
                        request_id=request_id,
                        attempt=attempt,
                        max_retries=self.config.max_retries,
                        error=str(e),
                        retry_delay=retry_delay,
                    )
                    await asyncio.sleep(retry_delay)
                    continue
                logger.error(
                    "generation_request_failed",
                    request_id=request_id,
                    attempts=attempt,
                    error=str(e),
                )
                raise NetworkError(str(e) or "Could not reach the generation endpoint") from e

            except httpx.HTTPError as e:
                # Read timeouts and broken streams are not retried: text may
                # already be in the document.
                logger.error(
                    "generation_stream_broken",
                    request_id=request_id,
                    chunk_count=chunk_count,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise NetworkError(str(e) or type(e).__name__) from e
