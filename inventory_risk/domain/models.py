"""
Domain models for the inventory risk engine.

Pure data classes + value objects. No I/O, no side effects.
Records are immutable; a new analysis supersedes an old one, it never
mutates it.
"""
import math
import numbers
from dataclasses import dataclass, fields
from enum import Enum
from typing import Optional, Tuple

from ..exceptions import InvalidInputError


class RiskLevel(str, Enum):
    """Presentation band of a 0-100 risk score."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def _require_finite(owner: str, name: str, value: float) -> None:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidInputError(f"{owner}.{name} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise InvalidInputError(f"{owner}.{name} must be finite, got {value!r}")


@dataclass(frozen=True)
class SKU:
    """Stock Keeping Unit with its demand statistics and reorder policy - immutable."""
    id: str
    name: str
    current_inventory: float            # units on hand
    daily_sales_rate: float             # expected units/day (0 = not selling)
    sales_variability: float            # coefficient of variation, % of mean
    lead_time_days: float               # mean supplier lead time
    lead_time_variability: float        # lead time std-dev in days
    reorder_point: float                # stock level that triggers an order
    reorder_quantity: float             # units per replenishment order
    unit_cost: float = 0.0
    holding_cost_percent: float = 0.0   # annual %, informational

    def __post_init__(self):
        if not self.id or not str(self.id).strip():
            raise InvalidInputError("SKU id cannot be empty")
        if not self.name or not str(self.name).strip():
            raise InvalidInputError("SKU name cannot be empty")
        for f in fields(self):
            if f.name in ("id", "name"):
                continue
            _require_finite("SKU", f.name, getattr(self, f.name))
        if self.current_inventory < 0:
            raise InvalidInputError("Current inventory cannot be negative")
        if self.daily_sales_rate < 0:
            raise InvalidInputError("Daily sales rate cannot be negative")
        if self.sales_variability < 0:
            raise InvalidInputError("Sales variability cannot be negative")
        if self.lead_time_days <= 0:
            raise InvalidInputError("Lead time must be > 0 days")
        if self.lead_time_variability < 0:
            raise InvalidInputError("Lead time variability cannot be negative")
        if self.reorder_point < 0:
            raise InvalidInputError("Reorder point cannot be negative")
        if self.reorder_quantity <= 0:
            raise InvalidInputError("Reorder quantity must be > 0")
        if self.unit_cost < 0:
            raise InvalidInputError("Unit cost cannot be negative")
        if self.holding_cost_percent < 0:
            raise InvalidInputError("Holding cost percent cannot be negative")

    @property
    def inventory_value(self) -> float:
        return self.current_inventory * self.unit_cost

    @property
    def demand_std_dev(self) -> float:
        """Daily demand standard deviation implied by the variability %."""
        return self.daily_sales_rate * (self.sales_variability / 100.0)


@dataclass(frozen=True)
class WhatIfScenario:
    """
    Multiplicative adjustments applied to a SKU before simulation.

    The SKU record itself is never modified; the identity scenario (all
    multipliers 1.0) is the plain baseline.
    """
    inventory_multiplier: float = 1.0
    demand_multiplier: float = 1.0
    lead_time_multiplier: float = 1.0
    variability_multiplier: float = 1.0

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            _require_finite("WhatIfScenario", f.name, value)
            if value <= 0:
                raise InvalidInputError(f"WhatIfScenario.{f.name} must be > 0, got {value}")

    @property
    def is_identity(self) -> bool:
        return all(getattr(self, f.name) == 1.0 for f in fields(self))

    @classmethod
    def parse(cls, text: str) -> "WhatIfScenario":
        """
        Build a scenario from "inventory,demand,lead_time,variability".

        Example:
            >>> WhatIfScenario.parse("0.5,1.2,1,1").demand_multiplier
            1.2
        """
        parts = [p.strip() for p in text.split(",")]
        if len(parts) != 4:
            raise InvalidInputError(
                f"Scenario needs 4 comma-separated multipliers, got {len(parts)}"
            )
        try:
            values = [float(p) for p in parts]
        except ValueError as e:
            raise InvalidInputError(f"Invalid scenario multiplier in {text!r}: {e}") from e
        return cls(*values)


IDENTITY_SCENARIO = WhatIfScenario()


@dataclass(frozen=True)
class PendingOrder:
    """Replenishment order in flight inside one simulation run."""
    arrival_day: int
    quantity: float


@dataclass(frozen=True)
class SimulationResult:
    """Aggregated state of one forecast day across all Monte Carlo paths."""
    day: int                # 1-indexed
    inventory_level: int    # rounded mean units
    demand: int             # rounded mean units
    stockout: bool
    overstock: bool


@dataclass(frozen=True)
class RiskAnalysis:
    """Risk scores and policy recommendations for one SKU under one scenario."""
    sku_id: str
    overstock_risk: int
    understock_risk: int
    dead_inventory_risk: int
    days_of_supply: int
    projected_stockout: Optional[int]
    safety_stock: int
    optimal_reorder_point: int
    simulation_results: Tuple[SimulationResult, ...] = ()

    @property
    def stockout_days(self) -> int:
        return sum(1 for r in self.simulation_results if r.stockout)

    @property
    def overstock_days(self) -> int:
        return sum(1 for r in self.simulation_results if r.overstock)


@dataclass(frozen=True)
class DashboardMetrics:
    """Portfolio snapshot; a pure function of (skus, analyses)."""
    total_skus: int
    at_risk_skus: int
    healthy_skus: int
    average_overstock_risk: int
    average_understock_risk: int
    average_dead_inventory_risk: int
    total_inventory_value: int
    projected_losses: int
