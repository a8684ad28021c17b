"""
Session-affinity handle for the Trends endpoints.

The upstream expects the most recent session cookie to be echoed back.
SessionState is an immutable value owned by the caller: Transport takes one
in and hands an updated one back on its response, so unrelated callers
never overwrite each other's cookie.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional


def cookie_pair(set_cookie: str) -> Optional[str]:
    """Return the ``name=value`` segment of a Set-Cookie value, or None."""
    pair = set_cookie.split(";", 1)[0].strip()
    return pair or None


@dataclass(frozen=True)
class SessionState:
    cookie: Optional[str] = None

    def absorb(self, set_cookie_values: Iterable[str]) -> "SessionState":
        """Adopt the first Set-Cookie value, if any; otherwise keep this state."""
        for value in set_cookie_values:
            pair = cookie_pair(value)
            if pair:
                return SessionState(cookie=pair)
            break
        return self

    def cleared(self) -> "SessionState":
        return SessionState() if self.cookie else self

    def apply(self, headers: Dict[str, str]) -> Dict[str, str]:
        """Return a copy of ``headers`` carrying (or not carrying) this cookie."""
        merged = {k: v for k, v in headers.items() if k.lower() != "cookie"}
        if self.cookie:
            merged["cookie"] = self.cookie
        return merged
