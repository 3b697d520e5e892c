# surfacescan/scanner/engines/http_engine.py
"""
HTTP probe: one bounded-timeout request against the target.

Returns an HTTPProbeResult:
    {
        "url": "https://example.com/.env",
        "method": "GET",
        "status": 200,
        "headers": httpx.Headers(...),     # multi-value aware (Set-Cookie)
        "body": "API_KEY=...",              # decoded, capped at max_body bytes
        "final_url": "https://example.com/.env",
        "truncated": False,                 # body exceeded max_body
        "error": None | ProbeFailure,
    }

The body is streamed and reading stops once `max_body` bytes are in. A
declared Content-Length above the cap skips the download entirely and sets
`truncated`; large backups are judged on content-type alone.

Never raises. Transport failures (refused, DNS, TLS, timeout) come back as
`error`; 4xx/5xx responses are ordinary results.

Requires: httpx (async HTTP client)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import httpx

from surfacescan.scanner.base import ProbeFailure

logger = logging.getLogger(__name__)

DEFAULT_MAX_BODY = 2_000_000


@dataclass
class HTTPProbeResult:
    url: str
    method: str = "GET"
    status: int = 0
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    body: str = ""
    final_url: str = ""
    truncated: bool = False
    error: Optional[ProbeFailure] = None

    @property
    def ok(self) -> bool:
        """True when a response arrived, whatever its status code."""
        return self.error is None

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "").lower()

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name)

    def header_values(self, name: str) -> List[str]:
        return self.headers.get_list(name)


def _declared_length(headers: httpx.Headers) -> Optional[int]:
    raw = headers.get("content-length")
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


async def _fetch(
    client: httpx.AsyncClient,
    url: str,
    method: str,
    headers: Optional[Dict[str, str]],
    timeout: float,
    max_body: int,
) -> HTTPProbeResult:
    async with client.stream(method, url, headers=headers, timeout=timeout) as response:
        result = HTTPProbeResult(
            url=url,
            method=method,
            status=response.status_code,
            headers=response.headers,
            final_url=str(response.url),
        )

        declared = _declared_length(response.headers)
        if declared is not None and declared > max_body:
            result.truncated = True
            return result

        chunks: List[bytes] = []
        size = 0
        async for chunk in response.aiter_bytes():
            chunks.append(chunk)
            size += len(chunk)
            if size > max_body:
                result.truncated = True
                break

        result.body = b"".join(chunks)[:max_body].decode("utf-8", errors="replace")
        return result


async def http_probe(
    client: httpx.AsyncClient,
    url: str,
    method: str = "GET",
    timeout: float = 10.0,
    headers: Optional[Dict[str, str]] = None,
    max_body: int = DEFAULT_MAX_BODY,
) -> HTTPProbeResult:
    """
    Issue a single request and return a normalized result.

    `timeout` is the deadline for the whole exchange (connect + headers +
    body). On expiry the request is cancelled and a "timeout" failure is
    returned.
    """
    try:
        return await asyncio.wait_for(
            _fetch(client, url, method, headers, timeout, max_body),
            timeout=timeout,
        )
    except (asyncio.TimeoutError, httpx.TimeoutException):
        failure = ProbeFailure("timeout", f"No response from {url} within {timeout}s")
    except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
        failure = ProbeFailure("invalid", f"{url}: {e}")
    except httpx.HTTPError as e:
        failure = ProbeFailure("connection", f"{type(e).__name__}: {e}")
    except Exception as e:
        logger.debug(f"HTTP probe {method} {url} failed unexpectedly: {e}")
        failure = ProbeFailure("error", f"{type(e).__name__}: {e}")

    logger.debug(f"HTTP probe {method} {url}: {failure}")
    return HTTPProbeResult(url=url, method=method, error=failure)
