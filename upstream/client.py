"""HTTP client for the quota and wake endpoints."""

from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from core.log import get_logger, log_request
from core.models.domain.quota import QuotaSnapshot
from core.models.domain.slot import SlotConfig
from core.models.external.zai import QuotaApiResponse
from core.utils import epoch_ms_to_local_hms

from .constants import (
    ACCEPT_LANGUAGE,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_TIMEOUT,
    DEFAULT_USER_AGENT,
    SUCCESS_CODE,
    WAKE_MESSAGES,
    WAKE_MODEL,
)
from .exceptions import (
    QuotaFetchError,
    QuotaTimeoutError,
    WakeRequestError,
    WakeTimeoutError,
)

logger = get_logger(__name__)


class QuotaWakeClient(Protocol):
    """Contract the scheduling engine relies on."""

    async def fetch_quota(self, slot: SlotConfig) -> QuotaSnapshot:
        """Read the slot's current quota window."""
        ...

    async def send_wake(self, slot: SlotConfig) -> None:
        """Send a wake request for the slot."""
        ...


class WarmupClient(QuotaWakeClient, Protocol):
    """Client that can also warm up a key on demand."""

    async def warmup(self, slot: SlotConfig) -> None:
        """Send a warm-up request for the slot."""
        ...


def auth_header(api_key: str) -> str:
    """Build the Authorization header value for an API key."""
    key = api_key.strip()
    if key.startswith("Bearer "):
        return key
    return f"Bearer {key}"


def wake_payload() -> dict[str, Any]:
    """Minimal chat completion body used to wake a key."""
    return {"model": WAKE_MODEL, "messages": [dict(m) for m in WAKE_MESSAGES]}


class QuotaClient:
    """Quota/wake client backed by a shared httpx connection pool."""

    def __init__(
        self,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize the client.

        Args:
            connect_timeout: Connect timeout in seconds
            timeout: Total request timeout in seconds
        """
        self.connect_timeout = connect_timeout
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "QuotaClient":
        """Async context manager entry."""
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Async context manager exit."""
        await self.aclose()

    async def open(self) -> None:
        """Create the underlying HTTP client if needed."""
        if self._client is None:
            self._client = self._build_client()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, creating it lazily."""
        if self._client is None:
            self._client = self._build_client()
        return self._client

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout, connect=self.connect_timeout),
            limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
            headers={"User-Agent": DEFAULT_USER_AGENT},
        )

    def _headers(self, slot: SlotConfig) -> dict[str, str]:
        return {
            "Authorization": auth_header(slot.api_key),
            "Accept-Language": ACCEPT_LANGUAGE,
            "Content-Type": "application/json",
        }

    async def fetch_quota(self, slot: SlotConfig) -> QuotaSnapshot:
        """Fetch the current quota window for a slot.

        Args:
            slot: Slot configuration (key and quota URL)

        Returns:
            Snapshot of the selected quota limit

        Raises:
            QuotaTimeoutError: If the request times out
            QuotaFetchError: On transport, HTTP, or payload errors
        """
        logger.debug(f"slot {slot.slot}: fetching quota from {slot.quota_url}")

        try:
            response = await self.client.get(
                slot.quota_url, headers=self._headers(slot)
            )
        except httpx.TimeoutException as e:
            raise QuotaTimeoutError(f"quota request timed out: {e}") from e
        except httpx.RequestError as e:
            if slot.logging:
                log_request(slot.slot, "quota", "GET", slot.quota_url, error=str(e))
            raise QuotaFetchError(f"quota request failed: {e}") from e

        if slot.logging:
            log_request(
                slot.slot,
                "quota",
                "GET",
                slot.quota_url,
                status=response.status_code,
                response_body=response.text,
            )

        if not response.is_success:
            raise QuotaFetchError(f"quota HTTP error: {response.status_code}")

        try:
            payload = QuotaApiResponse.model_validate_json(response.content)
        except ValidationError as e:
            raise QuotaFetchError(f"invalid quota JSON response: {e}") from e

        if payload.code != SUCCESS_CODE:
            raise QuotaFetchError(f"quota API code {payload.code}")
        if payload.data is None:
            raise QuotaFetchError("quota response missing data")

        selected = payload.data.select_limit()
        if selected is None:
            raise QuotaFetchError("quota limits missing")

        reset = selected.next_reset_time
        epoch_ms = reset if reset is not None and reset > 0 else None
        snapshot = QuotaSnapshot(
            percentage=selected.percentage,
            timer_active=reset is not None,
            next_reset_hms=epoch_ms_to_local_hms(epoch_ms),
            next_reset_epoch_ms=epoch_ms,
        )

        logger.debug(
            f"slot {slot.slot}: quota={snapshot.percentage}%, "
            f"timer_active={snapshot.timer_active}, "
            f"reset={snapshot.next_reset_hms or 'none'}"
        )
        return snapshot

    async def send_wake(self, slot: SlotConfig) -> None:
        """Send a scheduled wake request for a slot.

        Raises:
            WakeTimeoutError: If the request times out
            WakeRequestError: On missing URL, transport, or HTTP errors
        """
        await self._post_ping(slot, action="wake")

    async def warmup(self, slot: SlotConfig) -> None:
        """Send a manual warm-up request for a slot."""
        await self._post_ping(slot, action="warmup")

    async def _post_ping(self, slot: SlotConfig, action: str) -> None:
        url = slot.request_url
        if not url:
            raise WakeRequestError("no request URL configured")

        body = wake_payload()
        logger.info(f"slot {slot.slot}: sending {action} request to {url}")

        try:
            response = await self.client.post(
                url, headers=self._headers(slot), json=body
            )
        except httpx.TimeoutException as e:
            raise WakeTimeoutError(f"{action} request timed out: {e}") from e
        except httpx.RequestError as e:
            if slot.logging:
                log_request(
                    slot.slot, action, "POST", url, request_body=body, error=str(e)
                )
            raise WakeRequestError(f"{action} request failed: {e}") from e

        if slot.logging:
            log_request(
                slot.slot,
                action,
                "POST",
                url,
                request_body=body,
                status=response.status_code,
                response_body=response.text,
            )

        if not response.is_success:
            raise WakeRequestError(f"{action} HTTP error: {response.status_code}")

        logger.info(f"slot {slot.slot}: {action} request succeeded")
