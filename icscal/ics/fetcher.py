"""HTTP client for downloading ICS calendar files."""

import asyncio
import ipaddress
import logging
from typing import Any, Dict, Optional, Union
from urllib.parse import urlparse

import httpx

from .exceptions import ICSAuthError, ICSNetworkError, ICSRetrievalError, ICSTimeoutError
from .models import ICSResponse, ICSSource

logger = logging.getLogger(__name__)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

_PRIVATE_HOSTNAMES = ("localhost", "localhost.localdomain", "ip6-localhost")


def _decode_integer_ip(hostname: str) -> Optional[ipaddress.IPv4Address]:
    """Decode decimal (``2130706433``) or hex (``0x7f000001``) IPv4 spellings."""
    try:
        if hostname.isdigit():
            value = int(hostname)
        elif hostname.lower().startswith("0x"):
            value = int(hostname, 16)
        else:
            return None
    except ValueError:
        return None

    if 0 <= value <= 0xFFFFFFFF:
        return ipaddress.IPv4Address(value)
    return None


class ICSFetcher:
    """Async HTTP client for downloading ICS calendar files."""

    def __init__(self, settings: Any, transport: Optional[httpx.AsyncBaseTransport] = None):
        """Initialize ICS fetcher.

        Args:
            settings: Application settings
            transport: Optional httpx transport, e.g. a mock transport in tests
        """
        self.settings = settings
        self.transport = transport
        self.client: Optional[httpx.AsyncClient] = None

        logger.debug("ICS fetcher initialized")

    async def __aenter__(self) -> "ICSFetcher":
        """Async context manager entry."""
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self._close_client()

    async def _ensure_client(self) -> None:
        """Ensure HTTP client exists."""
        if self.client is None or self.client.is_closed:
            timeout = httpx.Timeout(
                connect=10.0, read=self.settings.request_timeout, write=10.0, pool=30.0
            )

            self.client = httpx.AsyncClient(
                timeout=timeout,
                follow_redirects=True,
                verify=self.settings.validate_ssl,
                transport=self.transport,
                headers={
                    "User-Agent": f"{self.settings.app_name}/1.0.0 ICS-Client",
                    "Accept": "text/calendar, text/plain, */*",
                    "Accept-Charset": "utf-8",
                    "Cache-Control": "no-cache",
                },
            )

    async def _close_client(self) -> None:
        """Close HTTP client."""
        if self.client and not self.client.is_closed:
            await self.client.aclose()

    def _validate_url_for_ssrf(self, url: str) -> bool:
        """Reject URLs that point at the local machine or a private network.

        Only http and https are allowed. Hostnames that are, or encode, a private,
        loopback or link-local address are blocked, as are the usual localhost
        names.

        Args:
            url: URL to check

        Returns:
            True if the URL may be requested
        """
        parsed = urlparse(url)

        if parsed.scheme not in ("http", "https"):
            logger.warning(f"Blocked non-HTTP(S) scheme: {parsed.scheme!r} in {url}")
            return False

        hostname = parsed.hostname
        if not hostname:
            logger.warning(f"Blocked URL with empty hostname: {url}")
            return False

        if hostname.lower() in _PRIVATE_HOSTNAMES:
            logger.warning(f"Blocked private hostname: {hostname}")
            return False

        try:
            ip: Optional[IPAddress] = ipaddress.ip_address(hostname)
        except ValueError:
            ip = _decode_integer_ip(hostname)

        if ip is not None and (ip.is_private or ip.is_loopback or ip.is_link_local):
            logger.warning(f"Blocked private/localhost IP: {hostname} -> {ip}")
            return False

        return True

    async def fetch_ics(self, source: ICSSource) -> ICSResponse:
        """Download ICS content from a source.

        Args:
            source: Remote source with URL, auth and extra headers

        Returns:
            ICSResponse holding the document text

        Raises:
            ICSAuthError: On HTTP 401/403
            ICSTimeoutError: When every attempt timed out
            ICSNetworkError: When every attempt failed at the network level
            ICSRetrievalError: On a blocked URL, another HTTP error or empty content
        """
        if not self._validate_url_for_ssrf(source.url):
            logger.error(f"SSRF protection: URL blocked for security reasons - {source.url}")
            raise ICSRetrievalError(f"URL blocked for security reasons: {source.url}", 403)

        await self._ensure_client()
        logger.debug(f"Fetching ICS from {source.url}")

        headers = source.auth.get_headers()
        headers.update(source.custom_headers)
        timeout = source.timeout or self.settings.request_timeout

        try:
            response = await self._make_request_with_retry(source.url, headers, timeout)

        except httpx.TimeoutException as e:
            logger.error(f"Timeout fetching ICS from {source.url}: {e}")
            raise ICSTimeoutError(f"Request timeout after {timeout}s") from e

        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(f"HTTP error fetching ICS from {source.url}: {status}")

            if status == 401:
                raise ICSAuthError("Authentication failed - check credentials", status) from e
            if status == 403:
                raise ICSAuthError("Access forbidden - insufficient permissions", status) from e
            raise ICSRetrievalError(f"HTTP {status}: {e.response.reason_phrase}", status) from e

        except httpx.NetworkError as e:
            logger.error(f"Network error fetching ICS from {source.url}: {e}")
            raise ICSNetworkError(f"Network error: {e}") from e

        except httpx.HTTPError as e:
            logger.error(f"Unexpected HTTP error fetching ICS from {source.url}: {e}")
            raise ICSRetrievalError(f"Unexpected error: {e}") from e

        return self._create_response(response)

    async def _make_request_with_retry(
        self, url: str, headers: Dict[str, str], timeout: int
    ) -> httpx.Response:
        """Make HTTP request with retry logic.

        Timeouts and network errors are retried with exponential backoff; HTTP
        error statuses are not.

        Args:
            url: URL to fetch
            headers: Request headers
            timeout: Request timeout

        Returns:
            HTTP response
        """
        if self.client is None:
            raise ICSRetrievalError("HTTP client not initialized")

        attempts = self.settings.max_retries + 1
        for attempt in range(attempts):
            try:
                response = await self.client.get(url, headers=headers, timeout=timeout)
                response.raise_for_status()

                logger.debug(f"Successfully fetched ICS from {url} (attempt {attempt + 1})")
                return response

            except (httpx.TimeoutException, httpx.NetworkError) as e:
                if attempt + 1 >= attempts:
                    logger.error(f"All retry attempts failed for {url}")
                    raise

                backoff_time = self.settings.retry_backoff_factor**attempt
                logger.warning(
                    f"Request failed (attempt {attempt + 1}/{attempts}), "
                    f"retrying in {backoff_time:.1f}s: {e}"
                )
                await asyncio.sleep(backoff_time)

        raise ICSRetrievalError("Maximum retries exceeded")

    def _create_response(self, http_response: httpx.Response) -> ICSResponse:
        """Create ICS response from HTTP response.

        Raises:
            ICSRetrievalError: If the body is empty
        """
        headers = dict(http_response.headers)
        content = http_response.text
        content_type = headers.get("content-type", "").lower()

        if content_type and not any(ct in content_type for ct in ("text/calendar", "text/plain")):
            logger.warning(f"Unexpected content type: {content_type}")

        if not content.strip():
            logger.error("Empty ICS content received")
            raise ICSRetrievalError("Empty content received", http_response.status_code)

        if "BEGIN:VCALENDAR" not in content:
            logger.warning("Content does not appear to be valid ICS format")

        logger.debug(f"Successfully fetched ICS content ({len(content)} bytes)")

        return ICSResponse(
            content=content,
            status_code=http_response.status_code,
            url=str(http_response.url),
            headers=headers,
        )
