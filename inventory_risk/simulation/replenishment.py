"""
Replenishment simulator: one stochastic inventory trajectory for one SKU.

Continuous-review reorder-point policy, evaluated once per day in this order:

    1. Arrival   - pending orders whose arrival_day == day are added to stock
                   (exact match: an order placed with a zero-day lead time has
                   arrival_day == the current day, whose arrival step already
                   ran, so it never arrives)
    2. Demand    - inventory = max(0, inventory - sampled demand)
    3. Reorder   - if inventory <= reorder_point and the last order is more
                   than REORDER_COOLDOWN_DAYS old, place reorder_quantity with
                   lead time round(max(0, Normal(lead_time, lead_time_std)))
    4. Record    - inventory and demand for the day; stockout when inventory
                   is exactly 0, overstock when it exceeds
                   OVERSTOCK_FACTOR × reorder_quantity

Scenario multipliers scale the starting inventory, mean daily sales, the
variability percentage and the mean lead time. The lead time standard
deviation is taken from the SKU as-is, without the lead time multiplier.
"""
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from ..config import NO_PREVIOUS_ORDER_DAY, OVERSTOCK_FACTOR, REORDER_COOLDOWN_DAYS
from ..domain.models import IDENTITY_SCENARIO, PendingOrder, SKU, WhatIfScenario
from .sampler import sample_demand, sample_lead_time


@dataclass(frozen=True)
class ScenarioParameters:
    """SKU parameters after applying a what-if scenario, computed once per call."""
    initial_inventory: float
    daily_sales: float
    variability_percent: float
    lead_time_days: float
    lead_time_std_days: float
    reorder_point: float
    reorder_quantity: float

    @property
    def demand_std_dev(self) -> float:
        return self.daily_sales * (self.variability_percent / 100.0)

    @property
    def overstock_level(self) -> float:
        return self.reorder_quantity * OVERSTOCK_FACTOR

    @classmethod
    def from_sku(cls, sku: SKU, scenario: Optional[WhatIfScenario] = None) -> "ScenarioParameters":
        scenario = scenario or IDENTITY_SCENARIO
        return cls(
            initial_inventory=sku.current_inventory * scenario.inventory_multiplier,
            daily_sales=sku.daily_sales_rate * scenario.demand_multiplier,
            variability_percent=sku.sales_variability * scenario.variability_multiplier,
            lead_time_days=sku.lead_time_days * scenario.lead_time_multiplier,
            # Not scaled by lead_time_multiplier (open question, see DESIGN.md)
            lead_time_std_days=sku.lead_time_variability,
            reorder_point=sku.reorder_point,
            reorder_quantity=sku.reorder_quantity,
        )


@dataclass
class Trajectory:
    """Day-by-day outcome of a single simulation run."""
    inventory: np.ndarray
    demand: np.ndarray
    stockout: np.ndarray
    overstock: np.ndarray
    orders: List[PendingOrder] = field(default_factory=list)

    @property
    def days(self) -> int:
        return len(self.inventory)

    @classmethod
    def empty(cls) -> "Trajectory":
        return cls(
            inventory=np.zeros(0),
            demand=np.zeros(0),
            stockout=np.zeros(0, dtype=bool),
            overstock=np.zeros(0, dtype=bool),
        )


def simulate_trajectory(
    params: ScenarioParameters,
    forecast_days: int,
    rng: np.random.Generator,
    cooldown_days: int = REORDER_COOLDOWN_DAYS,
) -> Trajectory:
    """
    Simulate one inventory trajectory over *forecast_days*.

    Args:
        params: Scenario-adjusted SKU parameters
        forecast_days: Horizon; zero or negative yields an empty trajectory
        rng: Random generator owned by this run
        cooldown_days: Minimum gap (exclusive) between two orders

    Returns:
        Trajectory whose ``orders`` lists every order placed, in order
    """
    if forecast_days <= 0:
        return Trajectory.empty()

    demand = sample_demand(rng, params.daily_sales, params.demand_std_dev, size=forecast_days)
    demand_list = demand.tolist()

    inventory = float(params.initial_inventory)
    pending: List[PendingOrder] = []
    placed: List[PendingOrder] = []
    last_order_day = NO_PREVIOUS_ORDER_DAY
    levels = [0.0] * forecast_days

    for day in range(forecast_days):
        if pending:
            still_pending = []
            for order in pending:
                if order.arrival_day == day:
                    inventory += order.quantity
                else:
                    still_pending.append(order)
            pending = still_pending

        inventory = max(0.0, inventory - demand_list[day])

        if inventory <= params.reorder_point and day - last_order_day > cooldown_days:
            lead_time = sample_lead_time(rng, params.lead_time_days, params.lead_time_std_days)
            order = PendingOrder(arrival_day=day + lead_time, quantity=params.reorder_quantity)
            pending.append(order)
            placed.append(order)
            last_order_day = day

        levels[day] = inventory

    inventory_path = np.asarray(levels)
    return Trajectory(
        inventory=inventory_path,
        demand=demand,
        stockout=inventory_path == 0,
        overstock=inventory_path > params.overstock_level,
        orders=placed,
    )
