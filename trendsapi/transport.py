"""
Resilient HTTP transport for trendsapi.

Executes one logical request with bounded retry, exponential backoff with
jitter, and session-cookie propagation. Retry decisions are made from the
status code and a few body substrings: the upstream's failure modes are
session- and pacing-related, not content-related.

The transport knows nothing about payload semantics. When retries run out
it still returns the last body; ``TransportResponse.retries_exhausted``
tells the caller that happened.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

import httpx

from trendsapi.config import TrendsConfig, load_config
from trendsapi.errors import NetworkError
from trendsapi.request import RequestDescriptor
from trendsapi.session import SessionState

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
BASE_DELAY_MS = 750
JITTER_MS = 250

REDIRECT_STATUS = 302
RATE_LIMIT_STATUSES = frozenset({401, 429})
RATE_LIMIT_MARKERS: Tuple[str, ...] = ("Error 429", "Too Many Requests")

SleepFn = Callable[[float], Awaitable[None]]


# ---------------------------------------------------------------------------
# Decision table
# ---------------------------------------------------------------------------


class ResponseClass(str, enum.Enum):
    RATE_LIMITED = "rate_limited"
    REDIRECT = "redirect"
    TERMINAL = "terminal"


def classify_response(status_code: int, body: str) -> ResponseClass:
    """
    Classify a response for the retry loop.

    A 302 is a redirect. 429, 401, or a body mentioning 'Error 429' /
    'Too Many Requests' is a rate limit. Everything else, including 4xx/5xx
    error pages, is terminal and goes back to the caller.
    """
    if status_code == REDIRECT_STATUS:
        return ResponseClass.REDIRECT
    if status_code in RATE_LIMIT_STATUSES:
        return ResponseClass.RATE_LIMITED
    if any(marker in body for marker in RATE_LIMIT_MARKERS):
        return ResponseClass.RATE_LIMITED
    return ResponseClass.TERMINAL


def compute_backoff_ms(
    attempt: int,
    base_delay_ms: int = BASE_DELAY_MS,
    jitter_ms: int = JITTER_MS,
    rng: Optional[random.Random] = None,
) -> int:
    """Delay before the retry that follows ``attempt``: base * 2^attempt + [0, jitter)."""
    source = rng or random
    return base_delay_ms * (2 ** attempt) + source.randrange(jitter_ms)


# ---------------------------------------------------------------------------
# Attempt bookkeeping
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RetryAttempt:
    """One round trip: its index, what came back, and the backoff slept after it."""

    index: int
    status_code: int
    classification: ResponseClass
    delay_ms: int = 0


@dataclass
class RetryState:
    attempt: int
    session: SessionState
    history: List[RetryAttempt] = field(default_factory=list)

    def record(
        self, status_code: int, classification: ResponseClass, delay_ms: int = 0
    ) -> None:
        self.history.append(
            RetryAttempt(
                index=self.attempt,
                status_code=status_code,
                classification=classification,
                delay_ms=delay_ms,
            )
        )


@dataclass(frozen=True)
class TransportResponse:
    text: str
    status_code: int
    session: SessionState
    attempts: Tuple[RetryAttempt, ...] = ()
    retries_exhausted: bool = False


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


class Transport:
    """
    Async HTTP transport with rate-limit backoff and cookie affinity.

    Session state is passed in and returned per call; the transport itself
    holds no cookie, so one instance can serve any number of callers.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        config: Optional[TrendsConfig] = None,
        sleep_fn: SleepFn = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ) -> None:
        """
        Args:
            client: Pre-built httpx.AsyncClient (for testing). Must not follow
                    redirects, or 302 handling never triggers.
            config: Client configuration. Falls back to load_config().
            sleep_fn: Async sleep function (injectable for testing).
            rng: Random source for jitter (injectable for testing).
        """
        cfg = config or load_config()
        self._max_retries = cfg.retry.max_retries
        self._base_delay_ms = cfg.retry.base_delay_ms
        self._jitter_ms = cfg.retry.jitter_ms
        self._sleep = sleep_fn
        self._rng = rng
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=cfg.request_timeout,
            follow_redirects=False,
            headers={"User-Agent": cfg.user_agent},
        )

    @property
    def max_retries(self) -> int:
        return self._max_retries

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "Transport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def _send(
        self, descriptor: RequestDescriptor, headers: Dict[str, str]
    ) -> httpx.Response:
        body = descriptor.encode_body()
        try:
            response = await self._client.request(
                descriptor.method,
                descriptor.target_url,
                content=body.encode("utf-8") if body else None,
                headers=headers,
            )
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as exc:
            raise ValueError(
                f"Malformed request URL {descriptor.url!r}: {exc}"
            ) from exc
        except httpx.TransportError as exc:
            raise NetworkError(str(exc) or type(exc).__name__) from exc
        # Cookie affinity is carried by SessionState only, never by the client jar.
        self._client.cookies.clear()
        return response

    async def execute(
        self,
        descriptor: RequestDescriptor,
        session: Optional[SessionState] = None,
        allow_retry: bool = False,
    ) -> TransportResponse:
        """
        Send ``descriptor`` until a terminal response or the retry budget runs out.

        Args:
            descriptor: The request to send (reused verbatim on every attempt).
            session: Cookie handle to send with the first attempt.
            allow_retry: When False the first attempt is treated as the last,
                         so nothing is retried.

        Returns:
            TransportResponse with the last body and the updated session.

        Raises:
            NetworkError: on connection/DNS/timeout faults.
            ValueError: if the URL is malformed.
        """
        state = RetryState(
            attempt=0 if allow_retry else self._max_retries,
            session=session or SessionState(),
        )

        while True:
            response = await self._send(descriptor, descriptor.build_headers(state.session))
            body = response.text

            learned = state.session.absorb(response.headers.get_list("set-cookie"))
            if learned is not state.session:
                logger.debug("Captured session cookie from %s", descriptor.url)
            state.session = learned

            kind = classify_response(response.status_code, body)
            can_retry = state.attempt < self._max_retries

            if kind is ResponseClass.REDIRECT:
                state.session = state.session.cleared()
                if can_retry:
                    logger.info(
                        "Redirect from %s, dropped session cookie, retry %d/%d",
                        descriptor.url, state.attempt + 1, self._max_retries,
                    )
                    state.record(response.status_code, kind)
                    state.attempt += 1
                    continue
            elif kind is ResponseClass.RATE_LIMITED and can_retry:
                delay_ms = compute_backoff_ms(
                    state.attempt, self._base_delay_ms, self._jitter_ms, self._rng
                )
                logger.warning(
                    "Retry %d/%d for %s (status=%d) in %dms: rate limited",
                    state.attempt + 1, self._max_retries, descriptor.url,
                    response.status_code, delay_ms,
                )
                state.record(response.status_code, kind, delay_ms)
                await self._sleep(delay_ms / 1000.0)
                state.attempt += 1
                continue

            state.record(response.status_code, kind)
            exhausted = kind is not ResponseClass.TERMINAL
            if exhausted:
                logger.warning(
                    "Giving up on %s after %d attempt(s) (last: %s, status=%d); "
                    "returning last body",
                    descriptor.url, len(state.history), kind.value,
                    response.status_code,
                )
            return TransportResponse(
                text=body,
                status_code=response.status_code,
                session=state.session,
                attempts=tuple(state.history),
                retries_exhausted=exhausted,
            )
