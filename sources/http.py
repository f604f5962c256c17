"""
Provider HTTP Client

Async HTTP client shared by all source API clients. It handles:
- HTTP GET requests with bounded retry logic
- Rate limit / transient handling (429, 418, 5xx, timeouts) with linear backoff
- Error logging with status code and truncated body
- JSON decoding (a non-JSON body counts as a malformed response)

Usage:
    async with SourceHTTPClient("dexscreener", "https://api.dexscreener.com") as client:
        data = await client.get_json("/latest/dex/search", {"q": "solana"})
"""

import asyncio
import time
from typing import Any, Dict, Optional

import aiohttp

from core.logging import get_logger, log_api_request, log_api_response
from core.source_interface import SourceUnavailableError


BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "application/json",
    "Accept-Language": "en-US,en;q=0.9",
}

RETRYABLE_STATUSES = (418, 429)


class SourceHTTPClient:
    """
    Retrying JSON GET client bound to one provider.

    Attributes:
        source: Provider name used in logs and errors
        base_url: Provider base URL
        max_attempts: Attempts per request before giving up
        timeout: Per-attempt timeout in seconds
        backoff: Base delay; attempt N waits backoff * N seconds

    Notes:
        - Use as an async context manager so the session is always closed
        - Raises SourceUnavailableError, never raw aiohttp errors
    """

    def __init__(
        self,
        source: str,
        base_url: str,
        headers: Optional[Dict[str, str]] = None,
        max_attempts: int = 3,
        timeout: float = 10.0,
        backoff: float = 1.5,
    ):
        self.source = source
        self.base_url = base_url.rstrip("/")
        self.headers = {**BROWSER_HEADERS, **(headers or {})}
        self.max_attempts = max(1, max_attempts)
        self.timeout = timeout
        self.backoff = backoff
        self.logger = get_logger(f"sources.{source}")
        self.session: Optional[aiohttp.ClientSession] = None

    # ============================================
    # Context Manager for Session Management
    # ============================================

    async def __aenter__(self):
        self.session = aiohttp.ClientSession(headers=self.headers)
        self.logger.debug(f"{self.source} HTTP session created")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.debug(f"{self.source} HTTP session closed")

    # ============================================
    # HTTP Request Handler with Retry Logic
    # ============================================

    async def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Make a GET request and decode the JSON body, retrying transient failures.

        Args:
            path: Endpoint path appended to base_url (e.g. "/latest/dex/search")
            params: Optional query parameters

        Returns:
            Decoded JSON response

        Raises:
            SourceUnavailableError: non-retryable status, malformed body, or all
                attempts exhausted

        Retry Policy:
            - 429 / 418 (rate limit) and 5xx: retry after backoff * attempt
            - Timeouts and connection errors: retry after backoff * attempt
            - Any other non-200 status: fail immediately
        """
        if not self.session:
            raise RuntimeError("Client session not initialized. Use 'async with' statement.")

        url = f"{self.base_url}{path}"
        last_status: Optional[int] = None
        last_body: Optional[str] = None

        for attempt in range(1, self.max_attempts + 1):
            log_api_request(self.source, path, params)
            started = time.monotonic()
            try:
                async with self.session.get(
                    url,
                    params=params,
                    timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as resp:
                    log_api_response(self.source, path, resp.status, time.monotonic() - started)

                    if resp.status == 200:
                        try:
                            return await resp.json(content_type=None)
                        except ValueError:
                            body = await resp.text()
                            raise SourceUnavailableError(
                                self.source, f"malformed JSON from {path}", resp.status, body
                            )

                    last_status = resp.status
                    last_body = (await resp.text())[:200]

                    if resp.status in RETRYABLE_STATUSES or resp.status >= 500:
                        if attempt < self.max_attempts:
                            delay = self.backoff * attempt
                            self.logger.warning(
                                f"HTTP {resp.status} on {path}. "
                                f"Retrying in {delay:.1f}s... (attempt {attempt}/{self.max_attempts})"
                            )
                            await asyncio.sleep(delay)
                        continue

                    self.logger.error(f"HTTP {resp.status} on {path}: {last_body}")
                    raise SourceUnavailableError(
                        self.source, f"HTTP {resp.status} on {path}", resp.status, last_body
                    )

            except asyncio.TimeoutError:
                last_status, last_body = None, None
                self.logger.warning(f"Timeout on {path} (attempt {attempt}/{self.max_attempts})")
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.backoff * attempt)

            except aiohttp.ClientError as e:
                last_status, last_body = None, str(e)
                self.logger.warning(f"Request failed on {path}: {e} (attempt {attempt}/{self.max_attempts})")
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.backoff * attempt)

        raise SourceUnavailableError(
            self.source,
            f"failed to fetch {url} after {self.max_attempts} attempt(s)",
            last_status,
            last_body,
        )
