"""
Google Trends client for trendsapi.

Builds the per-feature requests (daily / real-time trends, autocomplete,
explore and the widget endpoints that hang off it), sends them through
Transport and decodes the responses. Every public method returns a
TrendsResponse; failures are reported in ``.error`` instead of raised.
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence, Union
from urllib.parse import quote

import httpx

from trendsapi.config import TrendsConfig, load_config
from trendsapi.decoder import (
    decode_prefixed_json,
    decode_suggestions,
    decode_trending_payload,
    looks_like_html,
)
from trendsapi.endpoints import (
    ENDPOINTS,
    TRENDING_RPC_ID,
    Endpoint,
    TrendingHours,
)
from trendsapi.errors import (
    GoogleTrendsError,
    InvalidRequestError,
    NetworkError,
    ParseError,
    UnknownError,
)
from trendsapi.models import DailyTrendingTopics, TrendsResponse
from trendsapi.request import RequestDescriptor
from trendsapi.session import SessionState
from trendsapi.transport import Transport, TransportResponse

logger = logging.getLogger(__name__)

DEFAULT_TIME = "now 1-d"
DEFAULT_START_DATE = date(2004, 1, 1)
MAX_SYNTHETIC_RESULTS = 10

KeywordArg = Union[str, Sequence[str]]


def format_date(value: Union[date, datetime]) -> str:
    """Render a date the way explore's ``time`` parameter expects (YYYY-MM-DD)."""
    return value.strftime("%Y-%m-%d")


def local_timezone_offset() -> int:
    """Minutes behind UTC for the local zone (positive west of Greenwich)."""
    offset = datetime.now().astimezone().utcoffset()
    return -int(offset.total_seconds() // 60) if offset else 0


def _compact_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _first(value: Optional[KeywordArg]) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return value[0] if value else ""


def _to_error(exc: Exception, context: str = "") -> GoogleTrendsError:
    """Map anything raised inside a feature call onto the error taxonomy."""
    if isinstance(exc, GoogleTrendsError):
        return exc
    message = f"{context}: {exc}" if context else str(exc)
    if isinstance(exc, (httpx.HTTPError, OSError, ValueError)):
        return NetworkError(message)
    return UnknownError(message)


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _widgets(value: Any) -> List[Dict[str, Any]]:
    """Keep only object entries; the upstream list can carry stray scalars."""
    if not isinstance(value, list):
        return []
    return [w for w in value if isinstance(w, dict)]


def _default_section(data: Any) -> Dict[str, Any]:
    return _as_dict(_as_dict(data).get("default"))


def _explore_link(query: str, time: str, geo: str) -> str:
    return f"/trends/explore?q={quote(query, safe='')}&date={time}&geo={geo}"


class GoogleTrendsApi:
    """
    Async client for the undocumented Google Trends web endpoints.

    Holds its own SessionState, replaced after every call with the one the
    transport hands back, so cookie affinity is per client instance.
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        config: Optional[TrendsConfig] = None,
        session: Optional[SessionState] = None,
    ) -> None:
        """
        Args:
            transport: Pre-built Transport (for testing).
            config: Client configuration. Falls back to load_config().
            session: Initial cookie handle, e.g. carried over from another client.
        """
        self._config = config or load_config()
        self._transport = transport or Transport(config=self._config)
        self._session = session or SessionState()

    @property
    def session(self) -> SessionState:
        return self._session

    async def aclose(self) -> None:
        await self._transport.aclose()

    async def __aenter__(self) -> "GoogleTrendsApi":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def _send(
        self, descriptor: RequestDescriptor, allow_retry: bool = False
    ) -> TransportResponse:
        response = await self._transport.execute(
            descriptor, session=self._session, allow_retry=allow_retry
        )
        self._session = response.session
        return response

    def _descriptor(self, endpoint: Endpoint, **kwargs: Any) -> RequestDescriptor:
        spec = ENDPOINTS[endpoint]
        kwargs.setdefault("url", spec.url)
        return RequestDescriptor(method=spec.method, **kwargs)

    # ------------------------------------------------------------------
    # Autocomplete
    # ------------------------------------------------------------------

    async def autocomplete(
        self, keyword: str, hl: Optional[str] = None
    ) -> TrendsResponse[List[str]]:
        """
        Get autocomplete suggestions for a keyword.

        An empty keyword returns an empty list without touching the network.
        """
        if not keyword:
            return TrendsResponse.success([])

        url = f"{ENDPOINTS[Endpoint.AUTOCOMPLETE].url}/{quote(keyword, safe='')}"
        descriptor = self._descriptor(
            Endpoint.AUTOCOMPLETE,
            url=url,
            query={"hl": hl or self._config.hl, "tz": self._config.tz},
        )
        try:
            response = await self._send(descriptor)
            return TrendsResponse.success(decode_suggestions(response.text))
        except Exception as exc:
            logger.error("Autocomplete failed for '%s': %s", keyword, exc)
            return TrendsResponse.failure(_to_error(exc))

    # ------------------------------------------------------------------
    # Trending now
    # ------------------------------------------------------------------

    async def _trending(
        self, geo: str, lang: str, hours: int
    ) -> TrendsResponse[DailyTrendingTopics]:
        rpc_args = _compact_json([None, None, geo, 0, lang, int(hours), 1])
        freq = _compact_json([[[TRENDING_RPC_ID, rpc_args, None, "generic"]]])
        descriptor = self._descriptor(
            Endpoint.DAILY_TRENDS,
            body={"f.req": freq},
            content_type="form",
        )
        try:
            response = await self._send(descriptor)
            topics = decode_trending_payload(response.text)
        except Exception as exc:
            logger.error(
                "Trending request failed (geo=%s, hours=%s): %s", geo, hours, exc
            )
            return TrendsResponse.failure(_to_error(exc))

        logger.info(
            "Trending request returned %d stories (geo=%s, hours=%s)",
            len(topics.all_trending_stories), geo, hours,
        )
        return TrendsResponse.success(topics)

    async def daily_trends(
        self, geo: Optional[str] = None, lang: str = "en"
    ) -> TrendsResponse[DailyTrendingTopics]:
        """Trending searches over the last 24 hours."""
        return await self._trending(
            geo or self._config.geo, lang, TrendingHours.ONE_DAY
        )

    async def real_time_trends(
        self,
        geo: Optional[str] = None,
        trending_hours: Union[TrendingHours, int] = TrendingHours.FOUR_HRS,
    ) -> TrendsResponse[DailyTrendingTopics]:
        """Trending searches over the last ``trending_hours`` hours."""
        return await self._trending(geo or self._config.geo, "en", trending_hours)

    # ------------------------------------------------------------------
    # Explore and widget data
    # ------------------------------------------------------------------

    async def explore(
        self,
        keyword: str,
        geo: Optional[str] = None,
        time: str = DEFAULT_TIME,
        category: int = 0,
        property: str = "",
        hl: Optional[str] = None,
        enable_backoff: bool = False,
    ) -> TrendsResponse[List[Dict[str, Any]]]:
        """
        Fetch the explore widgets (and their tokens) for a keyword.

        The widgets feed the widget-data endpoints used by
        interest_by_region and related_topics.
        """
        req = {
            "comparisonItem": [
                {"keyword": keyword, "geo": geo or self._config.geo, "time": time}
            ],
            "category": category,
            "property": property,
        }
        descriptor = self._descriptor(
            Endpoint.EXPLORE,
            query={
                "hl": hl or self._config.hl,
                "tz": self._config.tz,
                "req": _compact_json(req),
            },
        )
        try:
            response = await self._send(descriptor, allow_retry=enable_backoff)
        except Exception as exc:
            logger.error("Explore request failed for '%s': %s", keyword, exc)
            return TrendsResponse.failure(_to_error(exc, "Explore request failed"))

        if looks_like_html(response.text):
            return TrendsResponse.failure(
                ParseError("Explore request returned HTML instead of JSON")
            )
        try:
            data = decode_prefixed_json(response.text)
        except ParseError as exc:
            return TrendsResponse.failure(
                ParseError(f"Failed to parse explore response as JSON: {exc}")
            )

        if isinstance(data, list) and data and isinstance(data[0], list):
            return TrendsResponse.success(_widgets(data[0]))
        if isinstance(data, dict) and isinstance(data.get("widgets"), list):
            return TrendsResponse.success(_widgets(data["widgets"]))
        return TrendsResponse.success([])

    async def interest_by_region(
        self,
        keyword: KeywordArg,
        start_time: Optional[Union[date, datetime]] = None,
        end_time: Optional[Union[date, datetime]] = None,
        geo: Optional[KeywordArg] = None,
        resolution: str = "REGION",
        hl: Optional[str] = None,
        timezone: Optional[int] = None,
        category: int = 0,
        enable_backoff: bool = False,
    ) -> TrendsResponse[List[Dict[str, Any]]]:
        """Search interest broken down by region (the explore GEO_MAP widget)."""
        keyword_value = _first(keyword)
        geo_value = _first(geo if geo is not None else self._config.geo)
        if not keyword_value.strip():
            return TrendsResponse.failure(InvalidRequestError("Keyword is required"))
        if not geo_value.strip():
            return TrendsResponse.failure(InvalidRequestError("Geo is required"))

        start = start_time or DEFAULT_START_DATE
        end = end_time or date.today()
        hl = hl or self._config.hl
        tz = local_timezone_offset() if timezone is None else timezone

        explored = await self.explore(
            keyword_value,
            geo=geo_value,
            time=f"{format_date(start)} {format_date(end)}",
            category=category,
            hl=hl,
            enable_backoff=enable_backoff,
        )
        if not explored.ok:
            return TrendsResponse.failure(explored.error)

        widget = next(
            (w for w in explored.data or [] if w.get("id") == "GEO_MAP"), None
        )
        if widget is None:
            return TrendsResponse.failure(
                ParseError("No GEO_MAP widget found in explore response")
            )

        descriptor = self._descriptor(
            Endpoint.INTEREST_BY_REGION,
            query={
                "hl": hl,
                "tz": str(tz),
                "req": _compact_json({**_as_dict(widget.get("request")), "resolution": resolution}),
                "token": widget.get("token") or "",
            },
        )
        try:
            response = await self._send(descriptor, allow_retry=enable_backoff)
            if looks_like_html(response.text):
                return TrendsResponse.failure(
                    ParseError("Interest by region request failed")
                )
            data = decode_prefixed_json(response.text)
        except Exception as exc:
            logger.error("Interest by region failed for '%s': %s", keyword_value, exc)
            return TrendsResponse.failure(
                _to_error(exc, "Interest by region request failed")
            )

        geo_map = _default_section(data).get("geoMapData")
        if not isinstance(geo_map, list):
            return TrendsResponse.failure(
                ParseError("Interest by region response has no geoMapData")
            )
        return TrendsResponse.success(geo_map)

    async def related_topics(
        self,
        keyword: str,
        geo: Optional[str] = None,
        time: str = DEFAULT_TIME,
        category: int = 0,
        property: str = "",
        hl: Optional[str] = None,
        enable_backoff: bool = False,
    ) -> TrendsResponse[Dict[str, Any]]:
        """Ranked related topics for a keyword, via the explore RELATED_TOPICS widget."""
        if not keyword or not keyword.strip():
            return TrendsResponse.failure(InvalidRequestError("Keyword is required"))

        geo = geo or self._config.geo
        hl = hl or self._config.hl

        explored = await self.explore(
            keyword,
            geo=geo,
            time=time,
            category=category,
            property=property,
            hl=hl,
            enable_backoff=enable_backoff,
        )
        if not explored.ok:
            return TrendsResponse.failure(explored.error)
        widgets = explored.data or []
        if not widgets:
            return TrendsResponse.failure(
                ParseError(
                    "No widgets found in explore response. This might be due to "
                    "Google blocking the request, invalid parameters, or network issues."
                )
            )

        widget = next(
            (w for w in widgets if self._is_related_topics_widget(w, keyword)),
            widgets[0],
        )

        req = {
            "restriction": {
                "geo": {"country": geo},
                "time": time,
                "originalTimeRangeForExploreUrl": time,
                "complexKeywordsRestriction": {
                    "keyword": [{"type": "BROAD", "value": keyword}]
                },
            },
            "keywordType": "ENTITY",
            "metric": ["TOP", "RISING"],
            "trendinessSettings": {"compareTime": time},
            "requestOptions": {
                "property": property,
                "backend": "CM",
                "category": category,
            },
            "language": hl.split("-")[0],
            "userCountryCode": geo,
            "userConfig": {"userType": "USER_TYPE_LEGIT_USER"},
        }
        query = {"hl": hl, "tz": self._config.tz, "req": _compact_json(req)}
        if widget.get("token"):
            query["token"] = widget["token"]

        try:
            response = await self._send(
                self._descriptor(Endpoint.RELATED_TOPICS, query=query),
                allow_retry=enable_backoff,
            )
        except Exception as exc:
            logger.error("Related topics failed for '%s': %s", keyword, exc)
            return TrendsResponse.failure(_to_error(exc))

        try:
            data = decode_prefixed_json(response.text)
        except ParseError as exc:
            return TrendsResponse.failure(
                ParseError(f"Failed to parse related topics response: {exc}")
            )
        ranked = _default_section(data).get("rankedList")
        return TrendsResponse.success(
            {"default": {"rankedList": ranked if isinstance(ranked, list) else []}}
        )

    @staticmethod
    def _is_related_topics_widget(widget: Dict[str, Any], keyword: str) -> bool:
        if widget.get("id") == "RELATED_TOPICS":
            return True
        restriction = _as_dict(_as_dict(widget.get("request")).get("restriction"))
        keywords = _as_dict(restriction.get("complexKeywordsRestriction")).get("keyword")
        if not isinstance(keywords, list) or not keywords:
            return False
        return _as_dict(keywords[0]).get("value") == keyword

    # ------------------------------------------------------------------
    # Suggestion-derived views
    # ------------------------------------------------------------------

    async def _suggestions_for(
        self, keyword: str, hl: Optional[str]
    ) -> TrendsResponse[List[str]]:
        if not keyword or not keyword.strip():
            return TrendsResponse.failure(ParseError())
        result = await self.autocomplete(keyword, hl)
        if not result.ok:
            return result
        return TrendsResponse.success((result.data or [])[:MAX_SYNTHETIC_RESULTS])

    async def related_queries(
        self,
        keyword: str,
        geo: Optional[str] = None,
        time: str = DEFAULT_TIME,
        hl: Optional[str] = None,
    ) -> TrendsResponse[Dict[str, Any]]:
        """Related queries approximated from the top autocomplete suggestions."""
        suggestions = await self._suggestions_for(keyword, hl)
        if not suggestions.ok:
            return TrendsResponse.failure(suggestions.error)

        geo = geo or self._config.geo
        ranked = [
            {
                "query": suggestion,
                "value": 100 - index * 10,
                "formattedValue": str(100 - index * 10),
                "hasData": True,
                "link": _explore_link(suggestion, time, geo),
            }
            for index, suggestion in enumerate(suggestions.data or [])
        ]
        return TrendsResponse.success(
            {"default": {"rankedList": [{"rankedKeyword": ranked}]}}
        )

    async def related_data(
        self,
        keyword: str,
        geo: Optional[str] = None,
        time: str = DEFAULT_TIME,
        hl: Optional[str] = None,
    ) -> TrendsResponse[Dict[str, Any]]:
        """Related topics and queries, both approximated from autocomplete."""
        suggestions = await self._suggestions_for(keyword, hl)
        if not suggestions.ok:
            return TrendsResponse.failure(suggestions.error)

        geo = geo or self._config.geo
        topics: List[Dict[str, Any]] = []
        queries: List[Dict[str, Any]] = []
        for index, suggestion in enumerate(suggestions.data or []):
            score = 100 - index * 10
            link = _explore_link(suggestion, time, geo)
            topics.append({
                "topic": {"mid": f"/m/{index}", "title": suggestion, "type": "Topic"},
                "value": score,
                "formattedValue": str(score),
                "hasData": True,
                "link": link,
            })
            queries.append({
                "query": suggestion,
                "value": score,
                "formattedValue": str(score),
                "hasData": True,
                "link": link,
            })
        return TrendsResponse.success({"topics": topics, "queries": queries})
