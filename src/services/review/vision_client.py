"""Gemini `generateContent` client with bounded backoff on 503 responses."""

from __future__ import annotations

import asyncio
import base64
import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

from core.config import get_settings
from services.review.exceptions import (
    MalformedResponseError,
    ServiceBusyError,
    ServiceRejectedError,
    ServiceTransportError,
)
from services.review.interfaces import RetryNoticeFn, VisionClientProtocol
from services.review.models import RetryState, ReviewRequest, ReviewResult


logger = logging.getLogger(__name__)

# Status the service uses to signal temporary overload.
BUSY_STATUS = 503

SleepFn = Callable[[float], Awaitable[None]]


def _is_busy(response: httpx.Response) -> bool:
    return response.status_code == BUSY_STATUS


def build_request_body(request: ReviewRequest) -> dict[str, Any]:
    return {
        "contents": [
            {
                "role": "user",
                "parts": [
                    {"text": request.prompt},
                    {
                        "inlineData": {
                            "data": base64.b64encode(request.image_bytes).decode(
                                "ascii"
                            ),
                            "mimeType": "image/png",
                        }
                    },
                ],
            }
        ]
    }


def extract_review_text(payload: Any) -> str:
    """Return the text of the first candidate that has any.

    Raises MalformedResponseError when no candidate carries non-empty text.
    """
    if not isinstance(payload, dict):
        raise MalformedResponseError("response body is not an object")
    candidates = payload.get("candidates") or []
    if not isinstance(candidates, list) or not candidates:
        raise MalformedResponseError("no candidates in response")

    for candidate in candidates:
        if not isinstance(candidate, dict):
            continue
        content = candidate.get("content") or {}
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            continue
        text = "".join(
            part["text"]
            for part in parts
            if isinstance(part, dict) and isinstance(part.get("text"), str)
        )
        if text.strip():
            return text
    raise MalformedResponseError("candidates contain no review text")


class GeminiVisionClient(VisionClientProtocol):
    """Send review requests, retrying only on transient-busy responses.

    Retries run on tenacity with exponential waits: retry n (counting from 0)
    waits `base_delay_ms * 2**n` ms, and after `max_attempts` retries a further
    503 raises `ServiceBusyError`. The notice hook reports the `RetryState` of
    the retry about to happen. Any other non-2xx status fails immediately.
    """

    def __init__(
        self,
        *,
        model: str | None = None,
        base_url: str | None = None,
        max_attempts: int | None = None,
        base_delay_ms: int | None = None,
        timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        settings = get_settings()
        self.model = model or settings.GEMINI_MODEL
        self.base_url = (base_url or settings.GEMINI_API_BASE_URL).rstrip("/")
        self.retry_policy = RetryState(
            max_attempts=(
                settings.REVIEW_MAX_RETRIES if max_attempts is None else max_attempts
            ),
            base_delay_ms=(
                settings.REVIEW_BACKOFF_BASE_MS
                if base_delay_ms is None
                else base_delay_ms
            ),
        )
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS
        self._http_client = http_client
        self._sleep = sleep

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def generate(
        self, request: ReviewRequest, on_retry: RetryNoticeFn | None = None
    ) -> ReviewResult:
        body = build_request_body(request)
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": request.service_key,
        }
        policy = self.retry_policy

        async def before_sleep(retry_state: RetryCallState) -> None:
            state = replace(policy, attempt=retry_state.attempt_number - 1)
            wait_seconds = (
                retry_state.next_action.sleep
                if retry_state.next_action is not None
                else state.backoff_ms / 1000
            )
            logger.info(
                "Vision service busy; retry %d/%d in %.1fs",
                state.attempt + 1,
                state.max_attempts,
                wait_seconds,
            )
            if on_retry is not None:
                await on_retry(
                    wait_seconds,
                    f"Service is busy, retrying in {wait_seconds:g} seconds...",
                )

        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_result(_is_busy),
                wait=wait_exponential(multiplier=policy.base_delay_ms / 1000),
                stop=stop_after_attempt(policy.max_attempts + 1),
                sleep=self._sleep,
                before_sleep=before_sleep,
            ):
                with attempt:
                    response = await self._post(body, headers)
                if not attempt.retry_state.outcome.failed:
                    attempt.retry_state.set_result(response)
        except RetryError as exc:
            logger.warning(
                "Vision service still busy after %d retries", policy.max_attempts
            )
            raise ServiceBusyError(attempts=policy.max_attempts) from exc

        if not response.is_success:
            logger.warning("Vision service rejected request: %s", response.status_code)
            raise ServiceRejectedError(response.status_code)

        try:
            payload = response.json()
        except ValueError as exc:
            raise MalformedResponseError("response body is not valid JSON") from exc
        return ReviewResult(raw_text=extract_review_text(payload))

    async def _post(
        self, body: dict[str, Any], headers: dict[str, str]
    ) -> httpx.Response:
        try:
            if self._http_client is not None:
                return await self._http_client.post(
                    self.endpoint, json=body, headers=headers, timeout=self.timeout
                )
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await client.post(self.endpoint, json=body, headers=headers)
        except httpx.TransportError as exc:
            logger.warning("Vision service request failed: %s", type(exc).__name__)
            raise ServiceTransportError(type(exc).__name__) from exc
