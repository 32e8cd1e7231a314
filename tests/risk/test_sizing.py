"""Tests for position sizing helpers."""

import pytest

from src.risk.sizing import KELLY_CAP, kelly_criterion, optimal_position_size


class TestKellyCriterion:
    def test_basic_fraction(self):
        # p=0.55, q=0.45, ratio 1 -> 0.10
        assert kelly_criterion(55.0, 100.0, 100.0) == pytest.approx(0.10)

    def test_capped(self):
        assert kelly_criterion(60.0, 100.0, 50.0) == KELLY_CAP

    def test_negative_edge_clamped_to_zero(self):
        assert kelly_criterion(30.0, 100.0, 100.0) == 0.0

    @pytest.mark.parametrize(
        "win_rate,avg_win,avg_loss",
        [(0.0, 100.0, 50.0), (60.0, 100.0, 0.0), (60.0, 0.0, 50.0)],
    )
    def test_degenerate_inputs(self, win_rate, avg_win, avg_loss):
        assert kelly_criterion(win_rate, avg_win, avg_loss) == 0.0


class TestOptimalPositionSize:
    def test_limited_by_notional(self):
        size = optimal_position_size(
            price=100.0, stop_loss=98.0, quantity=10.0,
            balance=10000.0, risk_per_trade=1.0, max_position_size=500.0,
        )
        assert size == pytest.approx(5.0)

    def test_limited_by_risk(self):
        size = optimal_position_size(
            price=100.0, stop_loss=90.0, quantity=100.0,
            balance=1000.0, risk_per_trade=1.0, max_position_size=100000.0,
        )
        # 10 at risk / 10 stop distance
        assert size == pytest.approx(1.0)

    def test_limited_by_proposal(self):
        size = optimal_position_size(
            price=100.0, stop_loss=98.0, quantity=0.5,
            balance=10000.0, risk_per_trade=25.0, max_position_size=5000.0,
        )
        assert size == pytest.approx(0.5)

    def test_zero_stop_distance(self):
        size = optimal_position_size(
            price=100.0, stop_loss=100.0, quantity=1.0,
            balance=10000.0, risk_per_trade=25.0, max_position_size=5000.0,
        )
        assert size == 0.0
