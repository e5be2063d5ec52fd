"""HTTP transport used to fetch issuer certificates, OCSP responses and CRLs."""

import logging
from typing import Dict, Optional, Protocol

import httpx

from certstatus import __version__
from certstatus.exceptions import InvalidProxyURL, TransportFailure

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
DEFAULT_MAX_CRL_BYTES = 20 * 1024 * 1024
USER_AGENT = f"certstatus/{__version__}"


class HTTPFetcher(Protocol):
    """Fetches HTTP resources and returns the response body."""

    def get(self, url: str, headers: Optional[Dict[str, str]] = None, max_bytes: Optional[int] = None) -> bytes:
        ...

    def post(self, url: str, content: bytes, headers: Optional[Dict[str, str]] = None) -> bytes:
        ...


def create_http_client(
    proxy: Optional[str] = None,
    timeout: float = DEFAULT_TIMEOUT,
    follow_redirects: bool = True,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """
    Create an httpx client.

    Args:
        proxy: Optional proxy URL (e.g., http://proxy:8080)
        timeout: Request timeout in seconds
        follow_redirects: Follow HTTP redirects
        transport: Optional transport (used by tests)

    Returns:
        Configured httpx.Client
    """
    kwargs = {
        "timeout": timeout,
        "follow_redirects": follow_redirects,
        "headers": {"User-Agent": USER_AGENT},
    }
    if transport is not None:
        kwargs["transport"] = transport
    elif proxy:
        kwargs["proxy"] = proxy
    return httpx.Client(**kwargs)


class HttpxFetcher:
    """HTTPFetcher backed by an httpx.Client.

    Every response is read inside a ``client.stream()`` block so the
    connection is released on all exit paths.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        proxy: Optional[str] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.timeout = timeout
        if client is None:
            try:
                client = create_http_client(proxy=proxy, timeout=timeout)
            except (ValueError, httpx.InvalidURL) as e:
                raise InvalidProxyURL(proxy, str(e)) from e
        self._client = client

    def __enter__(self) -> "HttpxFetcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def get(self, url: str, headers: Optional[Dict[str, str]] = None, max_bytes: Optional[int] = None) -> bytes:
        return self._request("GET", url, headers=headers, max_bytes=max_bytes)

    def post(self, url: str, content: bytes, headers: Optional[Dict[str, str]] = None) -> bytes:
        return self._request("POST", url, content=content, headers=headers)

    def _request(
        self,
        method: str,
        url: str,
        content: Optional[bytes] = None,
        headers: Optional[Dict[str, str]] = None,
        max_bytes: Optional[int] = None,
    ) -> bytes:
        logger.debug(f"{method} {url}")
        try:
            with self._client.stream(method, url, content=content, headers=headers) as response:
                if not response.is_success:
                    raise TransportFailure(url, f"HTTP {response.status_code}")

                if max_bytes is not None:
                    content_length = response.headers.get("content-length")
                    if content_length and content_length.isdigit() and int(content_length) > max_bytes:
                        raise TransportFailure(
                            url, f"response size {content_length} bytes exceeds limit of {max_bytes} bytes"
                        )

                body = bytearray()
                for chunk in response.iter_bytes():
                    body.extend(chunk)
                    if max_bytes is not None and len(body) > max_bytes:
                        raise TransportFailure(url, f"response exceeds limit of {max_bytes} bytes")

                logger.debug(f"{method} {url}: HTTP {response.status_code}, {len(body)} bytes")
                return bytes(body)
        except httpx.TimeoutException as e:
            raise TransportFailure(url, f"request timeout after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise TransportFailure(url, str(e) or type(e).__name__) from e
