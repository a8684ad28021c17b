"""
Immutable description of one logical HTTP request.

A RequestDescriptor is built per call by the request builder, handed to
Transport, and reused unchanged across retry attempts.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union
from urllib.parse import urlencode

from trendsapi.session import SessionState

CONTENT_TYPES: Dict[str, str] = {
    "json": "application/json",
    "form": "application/x-www-form-urlencoded",
}

Body = Union[str, Mapping[str, Any], None]


@dataclass(frozen=True)
class RequestDescriptor:
    """
    Target, method, query, body and extra headers for one request.

    ``body`` holds exactly one representation: a raw string sent verbatim,
    or a mapping encoded according to ``content_type`` ('json' or 'form').
    """

    url: str
    method: str = "POST"
    query: Dict[str, str] = field(default_factory=dict)
    body: Body = None
    headers: Dict[str, str] = field(default_factory=dict)
    content_type: str = "json"

    def __post_init__(self) -> None:
        if self.content_type not in CONTENT_TYPES:
            raise ValueError(
                f"content_type must be one of {sorted(CONTENT_TYPES)}, "
                f"got {self.content_type!r}"
            )
        if not self.url:
            raise ValueError("RequestDescriptor.url must not be empty")

    @property
    def target_url(self) -> str:
        if not self.query:
            return self.url
        sep = "&" if "?" in self.url else "?"
        return f"{self.url}{sep}{urlencode(self.query)}"

    def encode_body(self) -> str:
        if self.body is None:
            return ""
        if isinstance(self.body, str):
            return self.body
        if self.content_type == "form":
            return urlencode(dict(self.body))
        return json.dumps(dict(self.body), separators=(",", ":"))

    def build_headers(self, session: Optional[SessionState] = None) -> Dict[str, str]:
        """Caller headers, then Content-Type/Content-Length, then the session cookie."""
        headers = {
            k: v for k, v in self.headers.items()
            if k.lower() not in ("content-type", "content-length")
        }
        headers["Content-Type"] = CONTENT_TYPES[self.content_type]
        body = self.encode_body()
        if body:
            headers["Content-Length"] = str(len(body.encode("utf-8")))
        return (session or SessionState()).apply(headers)
