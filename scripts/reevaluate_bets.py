"""
Re-settle bets of a matchday: reset to pending, then run settlement again.

Use after a predicate fix or a provider correction. Payouts of bets that
were won are reversed on reset and credited again only if they still win.

Usage:
  source .env && python3 scripts/reevaluate_bets.py --league 3 --jornada 12
  source .env && python3 scripts/reevaluate_bets.py --league 3 --jornada 12 --bet 41 --bet 57
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
    from dreamleague.betting.settlement import reevaluate_jornada_bets
    from dreamleague.database import close_db, get_session_with_retry, init_db
    from dreamleague.etl.api_football import APIFootballProvider

    parser = argparse.ArgumentParser(description="Reset and re-settle bets of a matchday")
    parser.add_argument("--league", type=int, required=True, help="League ID")
    parser.add_argument("--jornada", type=int, default=None, help="Matchday (default: current)")
    parser.add_argument("--bet", type=int, action="append", dest="bet_ids", help="Only this bet ID (repeatable)")
    args = parser.parse_args()

    await init_db()
    provider = APIFootballProvider()
    try:
        async with get_session_with_retry() as session:
            result = await reevaluate_jornada_bets(
                session, args.league, provider, jornada=args.jornada, bet_ids=args.bet_ids
            )
    finally:
        await provider.close()
        await close_db()

    print(json.dumps(result, indent=2, default=str))


if __name__ == "__main__":
    asyncio.run(main())
