"""
Ingest player stats for a matchday from API-Football.

Fetches /fixtures/players for the round, normalizes and scores every
player, and upserts one row per (player, jornada, season). Re-running
overwrites the rows.

Usage:
  source .env && python3 scripts/ingest_jornada_stats.py --jornada 12
  source .env && python3 scripts/ingest_jornada_stats.py --jornada 12 --player 101 --player 202
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


async def main():
    from dreamleague.database import close_db, get_session_with_retry, init_db
    from dreamleague.etl.api_football import APIFootballProvider
    from dreamleague.etl.player_stats import ingest_jornada

    parser = argparse.ArgumentParser(description="Ingest player stats for a matchday")
    parser.add_argument("--jornada", type=int, required=True, help="Matchday number")
    parser.add_argument("--season", type=int, default=None, help="Season year (default: settings)")
    parser.add_argument("--player", type=int, action="append", dest="player_ids", help="Only this player ID (repeatable)")
    parser.add_argument("--rpm", type=int, default=None, help="Max requests per minute (default: settings)")
    args = parser.parse_args()

    await init_db()
    provider = APIFootballProvider(requests_per_minute=args.rpm)
    try:
        async with get_session_with_retry() as session:
            result = await ingest_jornada(
                session, provider, args.jornada, season=args.season, player_ids=args.player_ids
            )
    finally:
        await provider.close()
        await close_db()

    print(json.dumps(result, indent=2, default=str))
    if result["error_count"]:
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
