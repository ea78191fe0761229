"""
Close the current jornada of one league (or all leagues).

Runs the full close: points sync, bet settlement, budget reconciliation,
squad clearing and league advance. Safe to re-run after a failure or after
fixing a bet reported in ``errors``.

Usage:
  source .env && python3 scripts/close_jornada.py --league 3
  source .env && python3 scripts/close_jornada.py --all
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
logger = logging.getLogger("close_jornada")


async def main():
    from dreamleague.database import close_db, get_session_with_retry, init_db
    from dreamleague.etl.api_football import APIFootballProvider
    from dreamleague.jornada.service import close_all_jornadas, close_jornada

    parser = argparse.ArgumentParser(description="Close the current jornada of a league")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--league", type=int, help="League ID to close")
    target.add_argument("--all", action="store_true", help="Close every league")
    parser.add_argument("--season", type=int, default=None, help="Stats season (default: settings)")
    args = parser.parse_args()

    await init_db()
    provider = APIFootballProvider()
    try:
        async with get_session_with_retry() as session:
            if args.all:
                result = await close_all_jornadas(session, provider, season=args.season)
            else:
                result = await close_jornada(session, args.league, provider, season=args.season)
    finally:
        await provider.close()
        await close_db()

    print(json.dumps(result, indent=2, default=str))
    if result.get("errors"):
        logger.warning(f"Finished with {len(result['errors'])} errors")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
