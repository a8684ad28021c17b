"""Tests for trendsapi/models.py -- camelCase rendering and the tagged result."""

from dataclasses import FrozenInstanceError

import pytest

from trendsapi.errors import ParseError
from trendsapi.models import (
    Article,
    DailyTrendingTopics,
    ImageDescriptor,
    TrendingStory,
    TrendsResponse,
)


def _story(**overrides) -> TrendingStory:
    fields = dict(
        title="eclipse",
        traffic="500000",
        articles=(Article(title="Totality", url="https://news.example/a"),),
        share_url="https://trends.google.com/trends/explore?q=eclipse",
        start_time=1712500000,
    )
    fields.update(overrides)
    return TrendingStory(**fields)


class TestTrendingStory:
    """Story rendering and projection."""

    def test_optional_keys_omitted(self):
        out = _story().to_dict()
        assert "endTime" not in out
        assert "image" not in out
        assert out["shareUrl"].endswith("q=eclipse")
        assert out["startTime"] == 1712500000

    def test_optional_keys_present_when_set(self):
        image = ImageDescriptor(news_url="https://n", source="Wire", image_url="https://i")
        out = _story(end_time=1712600000, image=image).to_dict()
        assert out["endTime"] == 1712600000
        assert out["image"] == {"newsUrl": "https://n", "source": "Wire", "imageUrl": "https://i"}

    def test_topic_projection_drops_share_url_and_image(self):
        topic = _story(image=ImageDescriptor()).to_topic().to_dict()
        assert "shareUrl" not in topic
        assert "image" not in topic
        assert topic["articles"][0]["title"] == "Totality"

    def test_frozen(self):
        with pytest.raises(FrozenInstanceError):
            _story().title = "other"


class TestDailyTrendingTopics:
    """Stories and summaries stay aligned."""

    def test_add_keeps_order(self):
        topics = DailyTrendingTopics()
        topics.add(_story(title="a"))
        topics.add(_story(title="b"))
        assert [s.title for s in topics.all_trending_stories] == ["a", "b"]
        assert [t.title for t in topics.summary] == ["a", "b"]

    def test_empty_to_dict(self):
        assert DailyTrendingTopics().to_dict() == {"allTrendingStories": [], "summary": []}


class TestTrendsResponse:
    """Exactly one of data / error."""

    def test_success(self):
        result = TrendsResponse.success([1])
        assert result.ok
        assert result.error is None

    def test_success_with_empty_data_is_ok(self):
        assert TrendsResponse.success([]).ok

    def test_failure(self):
        result = TrendsResponse.failure(ParseError())
        assert not result.ok
        assert result.data is None
        assert str(result.error) == "Failed to parse response"
