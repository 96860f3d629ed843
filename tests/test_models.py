"""
Tests for domain models (SKU, WhatIfScenario, records).
"""
import math

import pytest

from inventory_risk.domain.models import (
    IDENTITY_SCENARIO,
    RiskAnalysis,
    SimulationResult,
    WhatIfScenario,
)
from inventory_risk.exceptions import InvalidInputError, InventoryRiskError
from inventory_risk.utils.numeric import round_half_up


class TestSKU:
    """SKU validation."""

    def test_valid_sku(self, sku_factory):
        sku = sku_factory()
        assert sku.inventory_value == 2500
        assert sku.demand_std_dev == pytest.approx(2.0)

    def test_zero_sales_allowed(self, sku_factory):
        assert sku_factory(daily_sales_rate=0).daily_sales_rate == 0

    @pytest.mark.parametrize("field_name", [
        "current_inventory",
        "daily_sales_rate",
        "sales_variability",
        "lead_time_variability",
        "reorder_point",
        "unit_cost",
        "holding_cost_percent",
    ])
    def test_negative_rejected(self, sku_factory, field_name):
        with pytest.raises(InvalidInputError):
            sku_factory(**{field_name: -1})

    @pytest.mark.parametrize("field_name", ["lead_time_days", "reorder_quantity"])
    def test_zero_rejected(self, sku_factory, field_name):
        with pytest.raises(InvalidInputError):
            sku_factory(**{field_name: 0})

    @pytest.mark.parametrize("value", [math.nan, math.inf, "10", True, None])
    def test_non_finite_or_non_numeric_rejected(self, sku_factory, value):
        with pytest.raises(InvalidInputError):
            sku_factory(current_inventory=value)

    @pytest.mark.parametrize("field_name", ["id", "name"])
    def test_blank_text_rejected(self, sku_factory, field_name):
        with pytest.raises(InvalidInputError):
            sku_factory(**{field_name: "  "})

    def test_errors_are_value_errors(self, sku_factory):
        with pytest.raises(ValueError):
            sku_factory(reorder_point=-5)
        assert issubclass(InvalidInputError, InventoryRiskError)

    def test_immutable(self, sku_factory):
        sku = sku_factory()
        with pytest.raises(Exception):
            sku.current_inventory = 5


class TestWhatIfScenario:
    def test_identity(self):
        assert WhatIfScenario().is_identity
        assert IDENTITY_SCENARIO.is_identity
        assert not WhatIfScenario(demand_multiplier=1.2).is_identity

    @pytest.mark.parametrize("value", [0, -1.0, math.nan])
    def test_non_positive_rejected(self, value):
        with pytest.raises(InvalidInputError):
            WhatIfScenario(inventory_multiplier=value)

    def test_parse(self):
        scenario = WhatIfScenario.parse("0.5, 1.2, 2, 1")
        assert scenario == WhatIfScenario(0.5, 1.2, 2.0, 1.0)

    @pytest.mark.parametrize("text", ["1,1,1", "1,1,x,1", "1,1,1,0"])
    def test_parse_rejects_bad_text(self, text):
        with pytest.raises(InvalidInputError):
            WhatIfScenario.parse(text)


class TestRecords:
    def test_risk_analysis_day_counts(self):
        results = (
            SimulationResult(day=1, inventory_level=0, demand=5, stockout=True, overstock=False),
            SimulationResult(day=2, inventory_level=500, demand=5, stockout=False, overstock=True),
            SimulationResult(day=3, inventory_level=0, demand=5, stockout=True, overstock=False),
        )
        analysis = RiskAnalysis(
            sku_id="A", overstock_risk=33, understock_risk=100, dead_inventory_risk=5,
            days_of_supply=3, projected_stockout=1, safety_stock=2, optimal_reorder_point=10,
            simulation_results=results,
        )
        assert analysis.stockout_days == 2
        assert analysis.overstock_days == 1


class TestRoundHalfUp:
    @pytest.mark.parametrize("value,expected", [
        (2.5, 3),
        (2.49, 2),
        (0.5, 1),
        (0.0, 0),
        (8.73, 9),
        (27.5, 28),
    ])
    def test_rounding(self, value, expected):
        assert round_half_up(value) == expected
