"""
Domain shapes produced by the response decoder.

Attributes are snake_case; ``to_dict()`` renders the camelCase mapping the
upstream JavaScript consumers expect, omitting optional keys that are unset
rather than emitting nulls.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar

from trendsapi.errors import GoogleTrendsError

T = TypeVar("T")


@dataclass(frozen=True)
class Article:
    title: str = ""
    url: str = ""
    source: str = ""
    time: str = ""
    snippet: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            "title": self.title,
            "url": self.url,
            "source": self.source,
            "time": self.time,
            "snippet": self.snippet,
        }


@dataclass(frozen=True)
class ImageDescriptor:
    news_url: str = ""
    source: str = ""
    image_url: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            "newsUrl": self.news_url,
            "source": self.source,
            "imageUrl": self.image_url,
        }


@dataclass(frozen=True)
class TrendingTopic:
    """Summary projection of a trending story (no share URL, no image)."""

    title: str
    traffic: str
    articles: Tuple[Article, ...] = ()
    start_time: int = 0
    end_time: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "title": self.title,
            "traffic": self.traffic,
            "articles": [a.to_dict() for a in self.articles],
            "startTime": self.start_time,
        }
        if self.end_time is not None:
            out["endTime"] = self.end_time
        return out


@dataclass(frozen=True)
class TrendingStory:
    """One decoded trending row, with every field the wire format exposes."""

    title: str
    traffic: str
    articles: Tuple[Article, ...] = ()
    share_url: str = ""
    start_time: int = 0
    end_time: Optional[int] = None
    image: Optional[ImageDescriptor] = None

    def to_topic(self) -> TrendingTopic:
        return TrendingTopic(
            title=self.title,
            traffic=self.traffic,
            articles=self.articles,
            start_time=self.start_time,
            end_time=self.end_time,
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "title": self.title,
            "traffic": self.traffic,
            "articles": [a.to_dict() for a in self.articles],
            "shareUrl": self.share_url,
            "startTime": self.start_time,
        }
        if self.end_time is not None:
            out["endTime"] = self.end_time
        if self.image is not None:
            out["image"] = self.image.to_dict()
        return out


@dataclass
class DailyTrendingTopics:
    """Full stories and their summaries, in the same row order."""

    all_trending_stories: List[TrendingStory] = field(default_factory=list)
    summary: List[TrendingTopic] = field(default_factory=list)

    def add(self, story: TrendingStory) -> None:
        self.all_trending_stories.append(story)
        self.summary.append(story.to_topic())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allTrendingStories": [s.to_dict() for s in self.all_trending_stories],
            "summary": [t.to_dict() for t in self.summary],
        }


@dataclass(frozen=True)
class TrendsResponse(Generic[T]):
    """
    Tagged result of a feature call: exactly one of data/error is set.

    Callers check ``ok`` (or ``error``) before reading ``data``.
    """

    data: Optional[T] = None
    error: Optional[GoogleTrendsError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: T) -> "TrendsResponse[T]":
        return cls(data=data)

    @classmethod
    def failure(cls, error: GoogleTrendsError) -> "TrendsResponse[T]":
        return cls(error=error)
