# http_client.py
from __future__ import annotations
import asyncio, logging, uuid
from typing import Awaitable, Callable, Optional
import httpx

logger = logging.getLogger(__name__)


class RateLimitExhausted(Exception):
    """Upstream kept answering with a retryable status until the retry budget ran out."""

    def __init__(self, url: str, status: int, attempts: int, params=None):
        super().__init__(f"{url} still returned {status} after {attempts} attempt(s)")
        self.url = url
        self.status = status
        self.attempts = attempts
        self.params = params


class RequestTimeout(Exception):
    """A single call exceeded the per-call timeout and was cancelled."""

    def __init__(self, url: str, timeout: float):
        super().__init__(f"{url} timed out after {timeout:g}s")
        self.url = url
        self.timeout = timeout


class RetryPolicy:
    def __init__(
        self,
        retries: int = 5,
        initial_delay: float = 1.0,
        backoff_cap: float | None = None,
        retry_statuses: set[int] | None = None,
    ):
        self.retries = max(0, retries)
        self.initial_delay = initial_delay
        self.backoff_cap = backoff_cap
        self.retry_statuses = retry_statuses or {429}

    @property
    def max_attempts(self) -> int:
        return self.retries + 1

    def sleep_seconds(self, retry: int) -> float:
        # exponential (1, 2, 4, 8, 16...) for retry = 1, 2, 3...
        delay = self.initial_delay * (2 ** (retry - 1))
        if self.backoff_cap is not None:
            delay = min(self.backoff_cap, delay)
        return delay


class HttpClient:
    """
    - Reusable async HTTP client with:
      - base_url
      - a hard per-call timeout (the in-flight request is cancelled)
      - retry policy (429 only, exponential backoff)
      - every other failure is fatal: non-2xx, network errors, timeouts
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        retries: int = 5,
        *,
        initial_delay: float = 1.0,
        retry_statuses: Optional[set[int]] = None,
        default_headers: Optional[dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.call_timeout = timeout
        self.policy = RetryPolicy(retries=retries, initial_delay=initial_delay, retry_statuses=retry_statuses)
        self.default_headers = {"Accept": "application/json", **(default_headers or {})}
        self.transport = transport
        self.sleep = sleep
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.call_timeout),
            headers=self.default_headers,
            transport=self.transport,
        )
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if self._client is not None:
            await self._client.aclose()

    async def _send(self, method: str, path: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await asyncio.wait_for(self._client.request(method, path, **kwargs), timeout=self.call_timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise RequestTimeout(url, self.call_timeout) from e

    async def request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """
        Request with rate-limit retry logic.
        Retries 429 with exponential backoff; fails fast on everything else.
        Raises RateLimitExhausted once the retry budget is spent.
        Each request tagged with X-Request-Id for traceability.
        """
        assert self._client is not None

        req_id = kwargs.pop("req_id", str(uuid.uuid4()))
        headers = kwargs.pop("headers", {})
        headers.setdefault("X-Request-Id", req_id)
        kwargs["headers"] = headers

        url = self.base_url + path # for logs
        params = kwargs.get("params")
        extra = {"req_id": req_id, "params": params}

        for attempt in range(1, self.policy.max_attempts + 1):
            try:
                resp = await self._send(method, path, url, **kwargs)
            except RequestTimeout:
                logger.error("[req#%s] [fatal] %s %s params=%s timed out after %.0fs, not retrying",
                             req_id, method, url, params, self.call_timeout, extra=extra)
                raise
            status = resp.status_code

            if status in self.policy.retry_statuses:
                # body is never used, release the connection before sleeping
                await resp.aclose()
                if attempt < self.policy.max_attempts:
                    sleep = self.policy.sleep_seconds(attempt)
                    logger.warning("[req#%s] [retry %d/%d] %s %s params=%s rate limited (HTTP %d). Sleeping %.2fs",
                                   req_id, attempt, self.policy.retries, method, url, params, status, sleep,
                                   extra={**extra, "attempt": attempt})
                    await self.sleep(sleep)
                    continue
                logger.error("[giving up] [req#%s] %s %s params=%s still rate limited after %d attempt(s)",
                             req_id, method, url, params, attempt, extra={**extra, "attempt": attempt})
                raise RateLimitExhausted(url, status, attempt, params)

            # Fail fast, don't retry
            if not (200 <= status < 300):
                logger.error("[req#%s] [fatal] %s %s params=%s returned %d, not retrying",
                             req_id, method, url, params, status, extra=extra)
                resp.raise_for_status()

            if attempt > 1:
                logger.info("[req#%s] succeeded after %d attempt(s)", req_id, attempt, extra=extra)
            return resp

        raise RuntimeError("request failed")
