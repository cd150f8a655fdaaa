"""Resilient HTTP client for the Polymarket APIs.

One ``httpx.Client`` (keep-alive pool) is created per ResilientFetchClient and
shared by every call made through it, including calls from worker threads.
Requests carry browser-like headers with a rotating User-Agent; 429, 5xx and
transport failures are retried with capped exponential backoff.
"""
from __future__ import annotations

import logging
import random
import threading
import time
from typing import Any, Callable, Dict, Optional

import httpx
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

from polywatch.config import FetchConfig
from polywatch.errors import (
    ClientRequestError,
    ParseError,
    RateLimitOrServerError,
    TransportError,
)

log = logging.getLogger("polywatch.fetch")

USER_AGENTS = [
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
]


def is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or 500 <= status_code < 600


def _retryable_response(response: httpx.Response) -> bool:
    return is_retryable_status(response.status_code)


class ResilientFetchClient:
    """HTTP client with retry/backoff and request shaping.

    Usage:
        with ResilientFetchClient(config) as fetch:
            resp = fetch.fetch("https://data-api.polymarket.com/trades")
            rows = fetch.get_json("https://data-api.polymarket.com/trades", params={...})

    ``fetch`` returns the final ``httpx.Response`` (2xx, a non-retryable 4xx,
    or the last 429/5xx once retries are exhausted) and raises TransportError
    when every attempt failed at the network level. ``get_json`` additionally
    maps non-2xx responses and undecodable bodies onto the error taxonomy.
    """

    def __init__(
        self,
        config: FetchConfig | None = None,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config or FetchConfig()
        self._transport = transport
        self._sleep = sleep
        self._client: httpx.Client | None = None
        self._client_lock = threading.Lock()
        self._request_count = 0

    def __enter__(self) -> "ResilientFetchClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def client(self) -> httpx.Client:
        with self._client_lock:
            if self._client is None or self._client.is_closed:
                self._client = httpx.Client(
                    timeout=httpx.Timeout(self.config.timeout),
                    limits=httpx.Limits(
                        max_connections=self.config.max_connections,
                        max_keepalive_connections=self.config.max_keepalive_connections,
                        keepalive_expiry=self.config.keepalive_expiry,
                    ),
                    transport=self._transport,
                )
            return self._client

    @property
    def request_count(self) -> int:
        """Number of HTTP attempts made, retries included."""
        return self._request_count

    def build_headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {
            "User-Agent": random.choice(USER_AGENTS),
            "Accept": "application/json",
            "Accept-Language": "en-US,en;q=0.9",
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
            "Referer": self.config.referer,
        }
        if extra:
            headers.update(extra)
        return headers

    def _retrying(self) -> Retrying:
        return Retrying(
            retry=(
                retry_if_exception_type(httpx.TransportError)
                | retry_if_result(_retryable_response)
            ),
            stop=stop_after_attempt(self.config.max_retries + 1),
            wait=wait_exponential(
                multiplier=self.config.initial_delay,
                exp_base=self.config.backoff_multiplier,
                max=self.config.max_delay,
            ),
            sleep=self._sleep,
            before_sleep=before_sleep_log(log, logging.WARNING),
            # hand back the last response, or re-raise the last exception
            retry_error_callback=lambda state: state.outcome.result(),
        )

    def _send(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]],
        headers: Dict[str, str],
        body: Any,
    ) -> httpx.Response:
        with self._client_lock:
            self._request_count += 1
        kwargs: Dict[str, Any] = {"params": params, "headers": headers}
        if isinstance(body, (bytes, str)):
            kwargs["content"] = body
        elif body is not None:
            kwargs["json"] = body
        return self.client.request(method, url, **kwargs)

    def fetch(
        self,
        url: str,
        method: str = "GET",
        headers: Optional[Dict[str, str]] = None,
        body: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Issue a request, retrying 429/5xx and transport failures.

        Each attempt gets freshly generated headers. Raises TransportError if
        the final attempt failed without a response, ParseError if the body
        could not be content-decoded.
        """
        try:
            response = self._retrying()(
                lambda: self._send(method, url, params, self.build_headers(headers), body)
            )
        except httpx.TransportError as e:
            log.error(f"Transport failure for {url} after {self.config.max_retries + 1} attempts: {e}")
            raise TransportError(str(e) or type(e).__name__, url=url) from e
        except httpx.DecodingError as e:
            log.error(f"Undecodable response body from {url}: {e}")
            raise ParseError(f"undecodable body from {url}: {e}", url=url) from e
        except httpx.RequestError as e:
            # redirect loops and the like; never retried
            log.error(f"Request to {url} failed: {e}")
            raise TransportError(str(e) or type(e).__name__, url=url) from e

        if is_retryable_status(response.status_code):
            log.error(f"Giving up on {url}: HTTP {response.status_code}")
        return response

    def get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """GET ``url`` and decode the JSON body.

        Raises:
            TransportError: network failure on every attempt.
            RateLimitOrServerError: 429/5xx after retries.
            ClientRequestError: any other non-2xx status.
            ParseError: body is not valid JSON or not decodable.
        """
        response = self.fetch(url, headers=headers, params=params)
        status = response.status_code
        if is_retryable_status(status):
            raise RateLimitOrServerError(
                f"HTTP {status} from {url}", url=url, status_code=status
            )
        if not response.is_success:
            raise ClientRequestError(
                f"HTTP {status} from {url}: {response.text[:200]}",
                url=url,
                status_code=status,
            )
        try:
            return response.json()
        except ValueError as e:
            log.error(f"Failed to decode JSON from {url}")
            raise ParseError(f"invalid JSON from {url}: {e}", url=url, status_code=status) from e

    def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            self._client.close()
