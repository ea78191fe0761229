"""Player statistics ingestion from external providers."""

from dreamleague.etl.api_football import APIFootballProvider
from dreamleague.etl.base import FixtureData, FixturePlayerStats, StatsProvider

__all__ = [
    "APIFootballProvider",
    "FixtureData",
    "FixturePlayerStats",
    "StatsProvider",
]
