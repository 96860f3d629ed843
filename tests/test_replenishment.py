"""
Tests for the single-path replenishment simulator.

Deterministic parameters (no demand or lead-time noise) make the state
machine's day order observable: arrival, demand, reorder, record.
"""
import numpy as np
import pytest

from inventory_risk.config import REORDER_COOLDOWN_DAYS
from inventory_risk.domain.models import WhatIfScenario
from inventory_risk.simulation.replenishment import (
    ScenarioParameters,
    Trajectory,
    simulate_trajectory,
)
from inventory_risk.simulation.sampler import make_rng


def _params(**overrides) -> ScenarioParameters:
    values = dict(
        initial_inventory=20.0,
        daily_sales=10.0,
        variability_percent=0.0,
        lead_time_days=3.0,
        lead_time_std_days=0.0,
        reorder_point=5.0,
        reorder_quantity=100.0,
    )
    values.update(overrides)
    return ScenarioParameters(**values)


class TestScenarioParameters:
    """Scenario multipliers applied once before the run."""

    def test_identity_scenario_keeps_fields(self, low_stock_sku):
        params = ScenarioParameters.from_sku(low_stock_sku)
        assert params.initial_inventory == 20
        assert params.daily_sales == 10
        assert params.variability_percent == 20
        assert params.lead_time_days == 7
        assert params.lead_time_std_days == 2
        assert params.demand_std_dev == pytest.approx(2.0)

    def test_multipliers_scale_matching_fields(self, low_stock_sku):
        scenario = WhatIfScenario(
            inventory_multiplier=2.0,
            demand_multiplier=1.5,
            lead_time_multiplier=2.0,
            variability_multiplier=0.5,
        )
        params = ScenarioParameters.from_sku(low_stock_sku, scenario)
        assert params.initial_inventory == 40
        assert params.daily_sales == 15
        assert params.variability_percent == 10
        assert params.lead_time_days == 14
        assert params.demand_std_dev == pytest.approx(1.5)

    def test_lead_time_std_not_scaled_by_lead_time_multiplier(self, low_stock_sku):
        params = ScenarioParameters.from_sku(
            low_stock_sku, WhatIfScenario(lead_time_multiplier=3.0)
        )
        assert params.lead_time_days == 21
        assert params.lead_time_std_days == low_stock_sku.lead_time_variability

    def test_policy_fields_not_scaled(self, low_stock_sku):
        params = ScenarioParameters.from_sku(
            low_stock_sku, WhatIfScenario(2.0, 2.0, 2.0, 2.0)
        )
        assert params.reorder_point == low_stock_sku.reorder_point
        assert params.reorder_quantity == low_stock_sku.reorder_quantity


class TestSimulateTrajectory:
    """Day-by-day state machine."""

    def test_deterministic_path(self):
        traj = simulate_trajectory(_params(), 20, make_rng(0))

        # Day 0: 20-10=10 (> ROP 5). Day 1: 0 -> order, lead 3, arrives day 4.
        # Day 4: +100 then -10 = 90, falling 10/day until 0 on day 13 -> order.
        expected = [10, 0, 0, 0, 90, 80, 70, 60, 50, 40, 30, 20, 10, 0, 0, 0, 90, 80, 70, 60]
        np.testing.assert_array_equal(traj.inventory, expected)
        assert [o.arrival_day for o in traj.orders] == [4, 16]
        assert all(o.quantity == 100 for o in traj.orders)

    def test_stockout_flag_is_exact_zero(self):
        traj = simulate_trajectory(_params(), 20, make_rng(0))
        assert traj.stockout.tolist() == [inv == 0 for inv in traj.inventory.tolist()]
        assert traj.stockout[1] and traj.stockout[2] and traj.stockout[3]
        assert not traj.stockout[4]

    def test_demand_recorded_per_day(self):
        traj = simulate_trajectory(_params(), 10, make_rng(0))
        np.testing.assert_array_equal(traj.demand, np.full(10, 10.0))

    def test_overstock_flag_above_twice_reorder_quantity(self):
        params = _params(initial_inventory=1000.0, reorder_quantity=100.0)
        traj = simulate_trajectory(params, 5, make_rng(0))
        # 990, 980, ... all > 200
        assert traj.overstock.all()

        params = _params(initial_inventory=210.0, reorder_quantity=100.0)
        traj = simulate_trajectory(params, 2, make_rng(0))
        # Day 0: 200 is not > 200
        assert traj.overstock.tolist() == [False, False]

    def test_reorder_cooldown(self):
        """Below ROP every day: a new order only every cooldown+1 days."""
        params = _params(
            initial_inventory=0.0,
            daily_sales=1.0,
            reorder_point=1000.0,
            lead_time_days=200.0,
        )
        traj = simulate_trajectory(params, 30, make_rng(0))
        order_days = [o.arrival_day - 200 for o in traj.orders]
        assert order_days == list(range(0, 30, REORDER_COOLDOWN_DAYS + 1))

    def test_zero_lead_time_order_never_arrives(self):
        """Arrival matches by exact day, and day d's arrival step has already run."""
        params = _params(
            initial_inventory=0.0,
            daily_sales=1.0,
            lead_time_days=0.0,
            reorder_point=10.0,
        )
        traj = simulate_trajectory(params, 20, make_rng(0))
        assert len(traj.orders) > 0
        assert all(o.arrival_day == day for o, day in zip(traj.orders, range(0, 20, 6)))
        assert (traj.inventory == 0).all()

    def test_orders_arriving_after_horizon_ignored(self):
        params = _params(initial_inventory=0.0, lead_time_days=50.0)
        traj = simulate_trajectory(params, 10, make_rng(0))
        assert (traj.inventory == 0).all()

    def test_order_arrives_on_exact_day(self):
        """An order placed on day 0 with a 6-day lead time lands on day 6."""
        params = _params(
            initial_inventory=0.0,
            daily_sales=0.0,
            reorder_point=0.0,
            lead_time_days=6.0,
        )
        traj = simulate_trajectory(params, 8, make_rng(0))
        assert traj.inventory[:6].tolist() == [0.0] * 6
        assert traj.inventory[6] == 100
        assert [o.arrival_day for o in traj.orders] == [6]

    def test_inventory_never_negative_with_noise(self):
        params = _params(variability_percent=80.0, lead_time_std_days=3.0)
        rng = make_rng(123)
        for _ in range(50):
            traj = simulate_trajectory(params, 90, rng)
            assert (traj.inventory >= 0).all()
            assert (traj.demand >= 0).all()

    @pytest.mark.parametrize("days", [0, -5])
    def test_non_positive_horizon_is_empty(self, days):
        traj = simulate_trajectory(_params(), days, make_rng(0))
        assert traj.days == 0
        assert traj.orders == []

    def test_empty_trajectory(self):
        assert Trajectory.empty().days == 0
