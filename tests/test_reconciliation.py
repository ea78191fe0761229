"""
Tests for the budget reconciliation math applied at jornada close.
"""

from dreamleague.jornada.reconciliation import (
    jornada_points_of,
    reconcile_budget,
    total_points,
    with_jornada_points,
)


class TestReconcileBudget:
    """initial_budget' = BASE + (budget_after_bets - initial_budget) + points."""

    def test_regression_fixture(self):
        """500 baseline, 637 after bets, 88 points -> 725."""
        update = reconcile_budget(budget_after_bets=637, previous_initial_budget=500, jornada_points=88)
        assert update.betting_balance == 137
        assert update.initial_budget == 725
        assert update.budget == 725

    def test_uses_recorded_baseline(self):
        """A recorded baseline of 600 gives a balance of 37, not 137."""
        update = reconcile_budget(budget_after_bets=637, previous_initial_budget=600, jornada_points=88)
        assert update.betting_balance == 37
        assert update.initial_budget == 625
        assert update.budget == 625

    def test_betting_losses(self):
        update = reconcile_budget(budget_after_bets=350, previous_initial_budget=500, jornada_points=40)
        assert update.betting_balance == -150
        assert update.initial_budget == 390

    def test_custom_base(self):
        update = reconcile_budget(budget_after_bets=500, previous_initial_budget=500, jornada_points=0, base=1000)
        assert update.initial_budget == 1000


class TestPointsPerJornada:
    """points_per_jornada helpers (JSON keys are strings)."""

    def test_points_of_reads_str_and_int_keys(self):
        assert jornada_points_of({"12": 88}, 12) == 88
        assert jornada_points_of({12: 88}, 12) == 88
        assert jornada_points_of({"11": 40}, 12) == 0
        assert jornada_points_of(None, 12) == 0

    def test_with_points_returns_new_mapping(self):
        """The stored mapping is never mutated in place."""
        stored = {"11": 40}
        updated = with_jornada_points(stored, 12, 88)
        assert updated == {"11": 40, "12": 88}
        assert stored == {"11": 40}
        assert updated is not stored

    def test_with_points_overwrites(self):
        assert with_jornada_points({"12": 50, 11: 10}, 12, 88) == {"11": 10, "12": 88}

    def test_total_points(self):
        ppj = {"10": 30, "11": 40, "12": 88}
        assert total_points(ppj) == 158
        assert total_points(ppj, up_to=11) == 70
        assert total_points({}) == 0
