"""
Endpoint table for the Google Trends web API.

One place to update when Google moves an endpoint around.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict

TRENDS_HOST = "https://trends.google.com"

# RPC id of the trending-now feed inside batchexecute.
TRENDING_RPC_ID = "i0OFE"


class Endpoint(str, enum.Enum):
    DAILY_TRENDS = "dailyTrends"
    AUTOCOMPLETE = "autocomplete"
    EXPLORE = "explore"
    INTEREST_BY_REGION = "interestByRegion"
    RELATED_TOPICS = "relatedTopics"


class TrendingHours(enum.IntEnum):
    FOUR_HRS = 4
    ONE_DAY = 24
    TWO_DAYS = 48
    SEVEN_DAYS = 168


@dataclass(frozen=True)
class EndpointSpec:
    url: str
    method: str


ENDPOINTS: Dict[Endpoint, EndpointSpec] = {
    Endpoint.DAILY_TRENDS: EndpointSpec(
        f"{TRENDS_HOST}/_/TrendsUi/data/batchexecute", "POST"
    ),
    Endpoint.AUTOCOMPLETE: EndpointSpec(
        f"{TRENDS_HOST}/trends/api/autocomplete", "GET"
    ),
    Endpoint.EXPLORE: EndpointSpec(f"{TRENDS_HOST}/trends/api/explore", "POST"),
    Endpoint.INTEREST_BY_REGION: EndpointSpec(
        f"{TRENDS_HOST}/trends/api/widgetdata/comparedgeo", "GET"
    ),
    Endpoint.RELATED_TOPICS: EndpointSpec(
        f"{TRENDS_HOST}/trends/api/widgetdata/relatedsearches", "GET"
    ),
}
