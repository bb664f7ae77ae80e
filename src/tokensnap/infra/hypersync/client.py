"""HyperSync log-source client: head height plus paginated log queries."""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import httpx
from pydantic import ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from tokensnap.config import Settings
from tokensnap.domain.enums import Network
from tokensnap.domain.models.events import LogPage
from tokensnap.exceptions import ExternalServiceError, UpstreamTimeoutError
from tokensnap.infra.http.rate_limited_client import RateLimitedClient

logger = logging.getLogger(__name__)


class HypersyncClient:
    def __init__(self, base_url: str, bearer_token: str, http_client: RateLimitedClient) -> None:
        self._base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {bearer_token}"}
        self._http = http_client

    @retry(
        retry=retry_if_exception_type(ExternalServiceError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        reraise=True,
    )
    async def get_height(self) -> int:
        """Current head block of the source."""
        data = await self._request("GET", f"{self._base_url}/height")
        height = data.get("height") if isinstance(data, dict) else None
        if not isinstance(height, int):
            raise ExternalServiceError(f"HyperSync returned no height: {data!r}")
        return height

    async def query_logs(
        self,
        contract_address: str,
        from_block: int,
        topics: list[str],
        fields: list[str],
    ) -> LogPage:
        """One page of logs emitted by `contract_address` from `from_block` on. Never retried."""
        query = {
            "from_block": from_block,
            "logs": [
                {
                    "address": [contract_address],
                    "topics": [topics],
                },
            ],
            "field_selection": {"log": fields},
        }
        data = await self._request("POST", f"{self._base_url}/query", json=query)
        if not isinstance(data, dict):
            raise ExternalServiceError(f"HyperSync returned unexpected payload type {type(data).__name__}")

        next_block = data.get("next_block")
        try:
            logs: list[dict[str, Any]] = []
            for block in data.get("data") or []:
                logs.extend(block.get("logs") or [])
            return LogPage(
                logs=logs,
                next_block=next_block if isinstance(next_block, int) else None,
                archive_height=data.get("archive_height"),
            )
        except (AttributeError, TypeError, ValidationError) as e:
            raise ExternalServiceError(f"HyperSync returned a malformed page: {e}") from e

    async def _request(self, method: str, url: str, json: dict | None = None) -> Any:
        try:
            if method == "GET":
                resp = await self._http.get(url, headers=self._headers)
            else:
                resp = await self._http.post(url, json=json, headers=self._headers)
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError(f"HyperSync request timed out: {url}") from e
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"HyperSync transport error: {e}") from e

        if resp.status_code < 200 or resp.status_code >= 300:
            raise ExternalServiceError(f"HyperSync error: {resp.status_code} - {resp.text}")

        try:
            return resp.json()
        except ValueError as e:
            raise ExternalServiceError(f"HyperSync returned invalid JSON from {url}") from e


@asynccontextmanager
async def open_hypersync(
    network: str,
    bearer_token: str,
    base_url: str,
    timeout: float = 30.0,
    rate_per_second: float = 10.0,
) -> AsyncIterator[HypersyncClient]:
    """HypersyncClient on a fresh HTTP client that is closed when the block exits."""
    async with RateLimitedClient(rate_per_second=rate_per_second, timeout=timeout) as http:
        logger.debug("Opened HyperSync client for %s at %s", network, base_url)
        yield HypersyncClient(base_url, bearer_token, http)


def build_source_factory(settings: Settings):
    """(network, bearer token) -> open_hypersync context, configured from settings."""

    def factory(network: Network, bearer_token: str):
        return open_hypersync(
            network.value,
            bearer_token,
            settings.hypersync_url(network.value),
            timeout=settings.request_timeout,
            rate_per_second=settings.requests_per_second,
        )

    return factory
