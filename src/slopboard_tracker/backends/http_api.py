"""HTTP backend for the Slopboard collector API."""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from ..exceptions import (
    ApiAuthError,
    ApiRateLimitError,
    DeliveryError,
    DeliveryTimeoutError,
)
from ..grouping import GroupedSession
from ..models.session import Session
from ..types import BatchPayload, LanguageDict, SleepFn
from .base import DeliveryBackend

logger = logging.getLogger(__name__)

# Seconds to wait before the single retry of a rate-limited request
RATE_LIMIT_RETRY_SECONDS = 5.0


class HttpApiBackend(DeliveryBackend):
    """
    Collector client over httpx.

    Every request carries ``Authorization: Bearer <api key>`` when a key is
    set. Non-2xx responses and transport errors become DeliveryError
    subclasses; a 429 is retried once after a short pause.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[SleepFn] = None,
        rate_limit_retry_seconds: float = RATE_LIMIT_RETRY_SECONDS,
    ):
        super().__init__(api_key=api_key)
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )
        self._sleep = sleep or asyncio.sleep
        self._rate_limit_retry_seconds = rate_limit_retry_seconds
        logger.info(f"HttpApiBackend initialized for {self.base_url}")

    def _auth_headers(self, api_key: Optional[str] = None) -> Dict[str, str]:
        key = api_key or self._api_key
        return {"Authorization": f"Bearer {key}"} if key else {}

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Extract a readable message from an error body."""
        try:
            data = response.json()
        except ValueError:
            return "An unexpected error occurred"

        if not data:
            return "An unknown error occurred"
        if isinstance(data, dict):
            if data.get("code") and data.get("message"):
                return str(data["message"])
            if data.get("error"):
                return str(data["error"])
        return "An unexpected error occurred"

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Any] = None,
        api_key: Optional[str] = None,
        retry_rate_limit: bool = True,
    ) -> httpx.Response:
        try:
            response = await self._client.request(
                method, path, json=json, headers=self._auth_headers(api_key)
            )
        except httpx.TimeoutException as e:
            logger.warning(f"{method} {path} timed out: {e}")
            raise DeliveryTimeoutError() from e
        except httpx.HTTPError as e:
            logger.warning(f"Network error on {method} {path}: {e}")
            raise DeliveryError(
                "Network error. Sessions will be saved locally and synced "
                "when connection is restored.",
                code="network_error",
                detail=str(e),
            ) from e

        if response.is_success:
            return response

        status = response.status_code
        message = self._error_message(response)

        if status == 429:
            if retry_rate_limit:
                logger.info(
                    f"Rate limited on {path}, retrying in {self._rate_limit_retry_seconds}s"
                )
                await self._sleep(self._rate_limit_retry_seconds)
                return await self._request(
                    method, path, json=json, api_key=api_key, retry_rate_limit=False
                )
            raise ApiRateLimitError()

        if status == 401:
            logger.error("API key is invalid or expired. Please update your API key.")
            raise ApiAuthError()

        if status >= 500:
            logger.error(f"Server error {status} on {method} {path}: {response.text}")
        else:
            logger.error(f"HTTP {status} on {method} {path}: {message}")

        raise DeliveryError(
            f"Server error: {message}",
            code="http_error",
            detail=response.text,
            status_code=status,
        )

    async def send_one(self, session: Session) -> None:
        """POST one session to /coding-sessions."""
        payload = session.to_payload()
        logger.debug(f"Sending session {session.id}: {payload}")
        await self._request("POST", "/coding-sessions", json=payload)

    async def send_batch(self, groups: List[GroupedSession]) -> None:
        """POST grouped sessions to /coding-sessions/batch."""
        body: BatchPayload = {"sessions": [group.to_payload() for group in groups]}
        logger.debug(f"Sending batch of {len(groups)} grouped session(s)")
        await self._request("POST", "/coding-sessions/batch", json=body)

    async def validate_api_key(self, api_key: str) -> bool:
        """
        Check a key against GET /auth/validate.

        Returns:
            False if the collector rejects the key

        Raises:
            DeliveryError: If the collector could not be reached
        """
        try:
            response = await self._request("GET", "/auth/validate", api_key=api_key)
        except ApiAuthError:
            return False

        try:
            data = response.json()
        except ValueError:
            return True
        if isinstance(data, dict) and "valid" in data:
            return bool(data["valid"])
        return True

    async def get_languages(self) -> List[LanguageDict]:
        """Fetch GET /languages; returns an empty list if the body is unusable."""
        response = await self._request("GET", "/languages")
        try:
            data = response.json()
        except ValueError:
            logger.warning("Collector returned a non-JSON language list")
            return []
        if not isinstance(data, list):
            return []
        return [
            {"id": int(item["id"]), "name": str(item["name"]), "color": str(item.get("color", "#cccccc"))}
            for item in data
            if isinstance(item, dict) and "id" in item and "name" in item
        ]

    async def aclose(self) -> None:
        await self._client.aclose()
