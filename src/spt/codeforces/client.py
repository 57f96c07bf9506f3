"""Codeforces API adapter.

Fetches a handle's rating history (``user.rating``) and submission log
(``user.status``) and validates them into canonical records. One attempt per
call; the scheduled run is the retry policy.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog
from pydantic import TypeAdapter, ValidationError

from spt.codeforces.schemas import ContestEntry, ExternalProfile, SubmissionEntry
from spt.config import get_settings
from spt.errors import NotFoundError, TransientError

logger = structlog.get_logger()

_CONTESTS = TypeAdapter(list[ContestEntry])
_SUBMISSIONS = TypeAdapter(list[SubmissionEntry])


def is_handle_not_found(comment: str) -> bool:
    """Match the API's "unknown handle" comments.

    Seen forms: ``handle: User with handle x not found`` and
    ``handles not found: x``.
    """
    text = comment.lower()
    return "handle" in text and "not found" in text


class CodeforcesClient:
    """Async client for the public Codeforces API."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.codeforces_api_base).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.codeforces_timeout_seconds
        self._client = http_client or httpx.AsyncClient(timeout=self.timeout)
        self._owns_client = http_client is None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def fetch_profile(self, handle: str) -> ExternalProfile:
        """Fetch contest history and submissions for ``handle``.

        Raises:
            NotFoundError: The API reports that the handle does not exist.
            TransientError: Network failure, timeout, non-OK response or malformed payload.
        """
        rating_payload = await self._call("user.rating", handle)
        status_payload = await self._call("user.status", handle)

        try:
            contests = _CONTESTS.validate_python(rating_payload)
            submissions = _SUBMISSIONS.validate_python(status_payload)
        except ValidationError as exc:
            logger.warning("codeforces_payload_invalid", handle=handle, errors=exc.error_count())
            msg = f"Malformed Codeforces payload for {handle}"
            raise TransientError(msg) from exc

        return ExternalProfile(handle=handle, contest_history=contests, submissions=submissions)

    async def _call(self, method: str, handle: str) -> list[Any]:
        url = f"{self.base_url}/{method}"
        try:
            response = await self._client.get(url, params={"handle": handle}, timeout=self.timeout)
        except httpx.TimeoutException as exc:
            msg = f"Codeforces {method} timed out for {handle}"
            raise TransientError(msg) from exc
        except httpx.HTTPError as exc:
            msg = f"Codeforces {method} request failed for {handle}: {exc}"
            raise TransientError(msg) from exc

        try:
            body = response.json()
        except ValueError as exc:
            msg = f"Codeforces {method} returned non-JSON (HTTP {response.status_code})"
            raise TransientError(msg) from exc

        if not isinstance(body, dict):
            msg = f"Codeforces {method} returned an unexpected payload"
            raise TransientError(msg)

        status = body.get("status")
        if status == "OK" and response.is_success:
            result = body.get("result")
            if not isinstance(result, list):
                msg = f"Codeforces {method} result is not a list"
                raise TransientError(msg)
            return result

        comment = str(body.get("comment") or "")
        if is_handle_not_found(comment):
            raise NotFoundError("handle", handle)

        logger.warning(
            "codeforces_call_failed",
            method=method,
            handle=handle,
            http_status=response.status_code,
            comment=comment,
        )
        msg = f"Codeforces {method} failed for {handle}: HTTP {response.status_code} {comment}".rstrip()
        raise TransientError(msg)
