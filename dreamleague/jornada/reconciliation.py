"""
Budget reconciliation math applied at jornada close.

Functions:
- reconcile_budget: new initial_budget / budget of a member
- with_jornada_points: points_per_jornada with one matchday replaced
- total_points: cumulative points over matchdays 1..N

    initial_budget' = BASE + (budget_after_bets - initial_budget) + jornada_points
    budget'         = initial_budget'

``initial_budget`` is the baseline actually recorded for the closing
matchday, not BASE: a wrong baseline carries over until corrected.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_BASE_BUDGET = 500


@dataclass(frozen=True)
class BudgetUpdate:
    betting_balance: int
    jornada_points: int
    initial_budget: int
    budget: int


def reconcile_budget(
    budget_after_bets: int,
    previous_initial_budget: int,
    jornada_points: int,
    base: int = DEFAULT_BASE_BUDGET,
) -> BudgetUpdate:
    """
    >>> reconcile_budget(637, 500, 88)
    BudgetUpdate(betting_balance=137, jornada_points=88, initial_budget=725, budget=725)
    """
    betting_balance = budget_after_bets - previous_initial_budget
    initial_budget = base + betting_balance + jornada_points
    return BudgetUpdate(
        betting_balance=betting_balance,
        jornada_points=jornada_points,
        initial_budget=initial_budget,
        budget=initial_budget,
    )


def jornada_points_of(points_per_jornada: Optional[Mapping], jornada: int) -> int:
    """Points stored for a matchday (JSON keys are strings)."""
    if not points_per_jornada:
        return 0
    value = points_per_jornada.get(str(jornada), points_per_jornada.get(jornada, 0))
    return int(value or 0)


def with_jornada_points(points_per_jornada: Optional[Mapping], jornada: int, points: int) -> dict:
    """New mapping with matchday ``jornada`` set; the input is not mutated."""
    updated = {str(key): int(value or 0) for key, value in (points_per_jornada or {}).items()}
    updated[str(jornada)] = int(points)
    return updated


def total_points(points_per_jornada: Optional[Mapping], up_to: Optional[int] = None) -> int:
    """Sum of matchday points, optionally only matchdays 1..up_to."""
    total = 0
    for key, value in (points_per_jornada or {}).items():
        if up_to is not None and int(key) > up_to:
            continue
        total += int(value or 0)
    return total
