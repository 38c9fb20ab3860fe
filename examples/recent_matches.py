"""Example: fetch a player's recent matches under the rate limit.

Looks a player up by name, then loads their latest matches concurrently.
With the default 10 requests/min budget the first calls go out at once
and the rest are queued and released as the budget refills.

    PUBG_API_KEY=... python examples/recent_matches.py chocoTaco
"""

import asyncio
import logging
import sys

from pubg_api import PubgApi
from pubg_api.errors import APIError
from pubg_api.observability import RequestMetrics
from pubg_api.observability.logging import LoggingHook, configure_logging

log = logging.getLogger(__name__)


async def main(player_name: str, count: int = 12) -> None:
    configure_logging(log_level="INFO", json_format=False)

    async with PubgApi(options={"default_shard": "steam"}, hooks=[LoggingHook()]) as api:
        metrics = RequestMetrics(api.rate_limiter)
        api.scheduler.add_hook(metrics.create_hook())

        players = await api.search_players({"player_names": [player_name]})
        matches = players["data"][0]["relationships"]["matches"]["data"][:count]
        log.info("Loading %d matches for %s", len(matches), player_name)

        results = await asyncio.gather(
            *(api.load_match_by_id(m["id"]) for m in matches), return_exceptions=True
        )

        print("\n── Matches ────────────────────────────────────")
        for ref, result in zip(matches, results, strict=True):
            if isinstance(result, APIError):
                print(f"  {ref['id']}: HTTP {result.status_code}")
            elif isinstance(result, BaseException):
                print(f"  {ref['id']}: {result}")
            else:
                attrs = result["data"]["attributes"]
                print(f"  {ref['id']}: {attrs['gameMode']} on {attrs['mapName']}")

        print()
        print(metrics.export())


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "chocoTaco"))
