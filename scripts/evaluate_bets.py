"""
Settle pending bets and parlays of a league matchday.

Bets on matches that are not finished stay pending; already settled bets
are never paid twice.

Usage:
  source .env && python3 scripts/evaluate_bets.py --league 3
  source .env && python3 scripts/evaluate_bets.py --league 3 --jornada 12
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
    from dreamleague.betting.settlement import evaluate_pending_bets
    from dreamleague.database import close_db, get_session_with_retry, init_db
    from dreamleague.etl.api_football import APIFootballProvider

    parser = argparse.ArgumentParser(description="Settle pending bets of a league")
    parser.add_argument("--league", type=int, required=True, help="League ID")
    parser.add_argument("--jornada", type=int, default=None, help="Matchday (default: current)")
    args = parser.parse_args()

    await init_db()
    provider = APIFootballProvider()
    try:
        async with get_session_with_retry() as session:
            result = await evaluate_pending_bets(session, args.league, provider, jornada=args.jornada)
    finally:
        await provider.close()
        await close_db()

    print(json.dumps(result, indent=2, default=str))


if __name__ == "__main__":
    asyncio.run(main())
