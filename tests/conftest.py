"""
Shared fixtures, fakes and skip decorators for trendsapi tests.

Unit tests never touch the network: HTTP is served by httpx.MockTransport.
Live tests are skipped unless TRENDS_LIVE_TESTS=1.
"""

from __future__ import annotations

import asyncio
import json
import os
import random
from typing import Any, Callable, List, Optional

import httpx
import pytest

from trendsapi.config import TrendsConfig
from trendsapi.transport import Transport

# ---------------------------------------------------------------------------
# Live-test switch
# ---------------------------------------------------------------------------


def live_tests_enabled() -> bool:
    return os.getenv("TRENDS_LIVE_TESTS") == "1"


skip_if_not_live = pytest.mark.skipif(
    not live_tests_enabled(), reason="Set TRENDS_LIVE_TESTS=1 to hit trends.google.com"
)

# ---------------------------------------------------------------------------
# Payload builders
# ---------------------------------------------------------------------------

HIJACK_PREFIX = ")]}'"

SAMPLE_ROW: List[Any] = [
    "X", None, "US", [100], None, None, "500", None, "900", [], [11], [], "X",
]


def build_trending_body(rows: List[Any], prefix: str = HIJACK_PREFIX + "\n") -> str:
    """Wrap positional rows the way batchexecute does: outer[0][2] is nested JSON."""
    nested = json.dumps([None, rows])
    outer = [["wrb.fr", "i0OFE", nested, None, None, None, "generic"]]
    return prefix + json.dumps(outer)


def build_suggestion_body(titles: List[str], prefix: str = ")]}'") -> str:
    payload = {"default": {"topics": [{"mid": f"/m/{i}", "title": t} for i, t in enumerate(titles)]}}
    return prefix + json.dumps(payload)


def build_widget_body(payload: Any) -> str:
    return ")]}',\n" + json.dumps(payload)


# ---------------------------------------------------------------------------
# Transport fakes
# ---------------------------------------------------------------------------


class SleepRecorder:
    """Async stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class RecordingHandler:
    """
    MockTransport handler that replays a scripted list of responses and
    remembers every request it saw.
    """

    def __init__(self, responses: List[httpx.Response]) -> None:
        self._responses = list(responses)
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        template = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        # Fresh object per request; the last scripted response repeats.
        return httpx.Response(
            template.status_code,
            headers=template.headers.multi_items(),
            content=template.content,
        )


def make_transport(
    handler: Callable[[httpx.Request], httpx.Response],
    sleep_fn: Optional[SleepRecorder] = None,
    rng: Optional[random.Random] = None,
    config: Optional[TrendsConfig] = None,
) -> Transport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return Transport(
        client=client,
        config=config or TrendsConfig(),
        sleep_fn=sleep_fn or SleepRecorder(),
        rng=rng or random.Random(1234),
    )


def run(coro):
    """Drive a coroutine to completion on a fresh event loop."""
    return asyncio.run(coro)


# ---------------------------------------------------------------------------
# Shared fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def config() -> TrendsConfig:
    return TrendsConfig()


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()
