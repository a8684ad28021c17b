"""
Response decoders for the Trends wire formats.

Pure functions, no I/O. Two envelopes are handled:

  * the batchexecute envelope used by daily / real-time trends:
    ``)]}'`` + JSON array whose ``[0][2]`` is a second JSON document, whose
    ``[1]`` is a list of positional rows;
  * the suggestion envelope used by autocomplete: a fixed 4-character
    prefix + a JSON object with ``default.topics[].title``.

Structural failures of an envelope raise ParseError. A malformed row never
raises; its fields fall back to defaults.

Row layout, from observed responses (for reference when the format drifts):

    0   "twitter down"            title
    1   null | [newsUrl, source, imageUrl, [articles...]]
    2   "US"                      geo
    3   [1741599600]              start time (epoch seconds)
    4   null | [1741602000]       end time
    6   500000                    search volume
    8   1000                      ranking score
    9   [...]                     related searches
    12  "twitter down"            share url / canonical keyword
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Dict, List, Optional

from trendsapi.errors import ParseError
from trendsapi.models import Article, DailyTrendingTopics, ImageDescriptor, TrendingStory

logger = logging.getLogger(__name__)

_HIJACK_PREFIX_RE = re.compile(r"^\)\]\}'")
SUGGESTION_PREFIX_LEN = 4
WIDGET_PREFIX_LEN = 5
HTML_MARKERS = ("<!DOCTYPE", "<html")

# Position of each field inside a trending row. Keep in sync with upstream.
ROW_LAYOUT: Dict[str, int] = {
    "title": 0,
    "bundle": 1,
    "start_time": 3,
    "end_time": 4,
    "traffic": 6,
    "share_url": 12,
}

# Positions inside the row's bundle (index 1).
BUNDLE_IMAGE_FIELDS = ("news_url", "source", "image_url")
BUNDLE_ARTICLES = 3

# Positions inside one article row.
ARTICLE_FIELDS = ("title", "url", "source", "time", "snippet")


# ---------------------------------------------------------------------------
# Loose value helpers
# ---------------------------------------------------------------------------


def _at(seq: Any, index: int) -> Any:
    if isinstance(seq, list) and 0 <= index < len(seq):
        return seq[index]
    return None


def _stringify(value: Any, default: str = "") -> str:
    """Render a wire value as text; falsy values (null, 0, false, '') give ``default``."""
    if not value:
        return default
    if value is True:
        return "true"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, list):
        return ",".join(_stringify(v) for v in value)
    return str(value)


def _timestamp(wrapper: Any) -> Optional[int]:
    first = _at(wrapper, 0)
    if isinstance(first, bool) or not isinstance(first, (int, float)):
        return None
    # json.loads yields inf for 1e400 and accepts NaN/Infinity tokens.
    if isinstance(first, float) and not math.isfinite(first):
        return None
    return int(first)


def looks_like_html(text: str) -> bool:
    """True when the upstream answered with an HTML error page instead of JSON."""
    return any(marker in text for marker in HTML_MARKERS)


# ---------------------------------------------------------------------------
# Row extraction
# ---------------------------------------------------------------------------


def extract_articles(row: List[Any]) -> List[Article]:
    bundle = _at(row, ROW_LAYOUT["bundle"])
    entries = _at(bundle, BUNDLE_ARTICLES)
    if not isinstance(entries, list):
        return []
    return [
        Article(**{name: _stringify(entry[i]) for i, name in enumerate(ARTICLE_FIELDS)})
        for entry in entries
        if isinstance(entry, list) and len(entry) >= len(ARTICLE_FIELDS)
    ]


def extract_image(row: List[Any]) -> Optional[ImageDescriptor]:
    bundle = _at(row, ROW_LAYOUT["bundle"])
    if not isinstance(bundle, list) or len(bundle) < len(BUNDLE_IMAGE_FIELDS):
        return None
    return ImageDescriptor(
        **{name: _stringify(bundle[i]) for i, name in enumerate(BUNDLE_IMAGE_FIELDS)}
    )


def decode_row(row: List[Any]) -> TrendingStory:
    """Turn one positional row into a TrendingStory, defaulting anything missing."""
    start_time = _timestamp(_at(row, ROW_LAYOUT["start_time"])) or 0
    # A zero end time is treated as absent, same as a missing wrapper.
    end_time = _timestamp(_at(row, ROW_LAYOUT["end_time"])) or None
    return TrendingStory(
        title=_stringify(_at(row, ROW_LAYOUT["title"])),
        traffic=_stringify(_at(row, ROW_LAYOUT["traffic"]), "0"),
        articles=tuple(extract_articles(row)),
        share_url=_stringify(_at(row, ROW_LAYOUT["share_url"])),
        start_time=start_time,
        end_time=end_time,
        image=extract_image(row),
    )


def decode_rows(rows: Any) -> DailyTrendingTopics:
    if not isinstance(rows, list):
        raise ParseError("Invalid data format: expected array")
    result = DailyTrendingTopics()
    for row in rows:
        if isinstance(row, list):
            result.add(decode_row(row))
    return result


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


def strip_hijack_prefix(text: str) -> str:
    return _HIJACK_PREFIX_RE.sub("", text, count=1).strip()


def decode_trending_payload(text: str) -> DailyTrendingTopics:
    """
    Decode a daily / real-time trends response.

    Raises:
        ParseError: with a stage-specific message when the outer array, the
                    nested JSON document or the data array is missing.
    """
    try:
        outer = json.loads(strip_hijack_prefix(text))
    except ValueError as exc:
        raise ParseError("Failed to parse response") from exc

    if not isinstance(outer, list) or not outer:
        raise ParseError("Invalid response format: empty array")

    nested = _at(outer[0], 2)
    if not nested or not isinstance(nested, str):
        raise ParseError("Invalid response format: missing nested JSON")

    try:
        data = json.loads(nested)
    except ValueError as exc:
        raise ParseError("Failed to parse response") from exc

    if not isinstance(data, list) or len(data) < 2:
        raise ParseError("Invalid response format: missing data array")

    result = decode_rows(data[1])
    logger.debug("Decoded %d trending rows", len(result.all_trending_stories))
    return result


def decode_suggestions(text: str) -> List[str]:
    """
    Decode an autocomplete response into its ordered suggestion titles.

    The first 4 characters are the anti-hijacking prefix. Some responses use
    the 5-character ``)]}',`` form, so a leftover comma is tolerated.
    """
    remainder = text[SUGGESTION_PREFIX_LEN:].lstrip()
    if remainder.startswith(","):
        remainder = remainder[1:]
    try:
        payload = json.loads(remainder)
        return [str(topic["title"]) for topic in payload["default"]["topics"]]
    except (ValueError, KeyError, TypeError) as exc:
        raise ParseError(f"Failed to parse suggestions: {exc}") from exc


def decode_prefixed_json(text: str) -> Any:
    """Parse a widget / explore response after dropping its 5-character prefix."""
    try:
        return json.loads(text[WIDGET_PREFIX_LEN:])
    except ValueError as exc:
        raise ParseError(f"Failed to parse response as JSON: {exc}") from exc
