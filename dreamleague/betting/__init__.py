"""Bets and parlays: market predicates, placement and settlement."""

from dreamleague.betting.facts import MatchFacts, MatchFactsSource
from dreamleague.betting.predicates import Evaluation, evaluate_bet, registered_markets

__all__ = [
    "Evaluation",
    "MatchFacts",
    "MatchFactsSource",
    "evaluate_bet",
    "registered_markets",
]
