"""
Command-line entry point for trendsapi.

Usage:
    python -m trendsapi.cli daily [geo]
    python -m trendsapi.cli realtime [geo]
    python -m trendsapi.cli autocomplete <keyword>

Prints the result as JSON on stdout. Exits 1 when the call returns an error.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any, List, Optional

from trendsapi.api import GoogleTrendsApi
from trendsapi.config import ConfigError, load_config, log_level_from_env, setup_logging
from trendsapi.models import TrendsResponse

logger = logging.getLogger(__name__)

COMMANDS = ("daily", "realtime", "autocomplete")
USAGE = "usage: python -m trendsapi.cli {daily [geo] | realtime [geo] | autocomplete <keyword>}"


def _jsonable(data: Any) -> Any:
    to_dict = getattr(data, "to_dict", None)
    return to_dict() if callable(to_dict) else data


async def run(command: str, arg: Optional[str], api: GoogleTrendsApi) -> TrendsResponse:
    if command == "daily":
        return await api.daily_trends(geo=arg)
    if command == "realtime":
        return await api.real_time_trends(geo=arg)
    return await api.autocomplete(arg or "")


async def _main_async(command: str, arg: Optional[str]) -> TrendsResponse:
    async with GoogleTrendsApi(config=load_config()) as api:
        return await run(command, arg, api)


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for `python -m trendsapi.cli`."""
    args = sys.argv[1:] if argv is None else argv
    setup_logging(log_level_from_env())

    if not args or args[0] not in COMMANDS:
        print(USAGE, file=sys.stderr)
        sys.exit(2)
    command = args[0]
    arg = args[1] if len(args) > 1 else None

    try:
        result = asyncio.run(_main_async(command, arg))
    except ConfigError as exc:
        logger.critical("Failed to load config: %s", exc)
        sys.exit(1)

    if not result.ok:
        logger.error("%s failed: %s", command, result.error)
        sys.exit(1)

    print(json.dumps(_jsonable(result.data), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
