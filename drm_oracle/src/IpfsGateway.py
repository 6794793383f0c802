"""IpfsGateway: Reachability probe for content addresses on a public gateway."""

from __future__ import annotations

import asyncio
import logging

import httpx

from .fetchers import BaseFetcher

logger = logging.getLogger(__name__)

DEFAULT_GATEWAY_URL = "https://ipfs.io/ipfs"
DEFAULT_PROBE_TIMEOUT = 5.0


class IpfsGateway:
    """HEAD-probes ``<gateway>/<cid>`` to see whether content resolves.

    :ivar base_url: Gateway URL prefix, without trailing slash.
    :ivar timeout: Probe timeout in seconds.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_GATEWAY_URL,
        timeout: float = DEFAULT_PROBE_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the probe.

        :param base_url: Gateway URL prefix (default: https://ipfs.io/ipfs).
        :param timeout: Probe timeout in seconds (default: 5.0).
        :param client: Optional client; the fetchers' shared client otherwise.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    def url_for(self, cid: str) -> str:
        return f"{self.base_url}/{cid}"

    async def is_reachable(self, cid: str) -> bool:
        """Check whether the gateway serves the content.

        The timeout bounds the whole request, not each connection phase.

        :param cid: Content address.
        :returns: True on a 2xx response.
        :raises httpx.HTTPError: On network or timeout errors.
        """
        client = self._client or BaseFetcher.get_shared_client()
        url = self.url_for(cid)
        try:
            response = await asyncio.wait_for(
                client.head(url, timeout=self.timeout), timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            raise httpx.TimeoutException(
                f"HEAD {url} exceeded {self.timeout}s"
            ) from e
        logger.debug(f"HEAD {url} -> {response.status_code}")
        return response.is_success
