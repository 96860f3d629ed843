"""Shared fixtures for the inventory risk test suite."""
import pytest

from inventory_risk.domain.models import SKU


def make_sku(**overrides) -> SKU:
    """SKU with the manual-entry defaults, overridable per test."""
    fields = dict(
        id="SKU-0001",
        name="Wireless Mouse Pro",
        current_inventory=100,
        daily_sales_rate=10,
        sales_variability=20,
        lead_time_days=7,
        lead_time_variability=2,
        reorder_point=50,
        reorder_quantity=100,
        unit_cost=25,
        holding_cost_percent=18,
    )
    fields.update(overrides)
    return SKU(**fields)


@pytest.fixture
def sku_factory():
    return make_sku


@pytest.fixture
def low_stock_sku():
    """20 units on hand, 2 days of supply, reorder point below lead-time demand."""
    return make_sku(
        id="LOW-001",
        current_inventory=20,
        daily_sales_rate=10,
        lead_time_days=7,
        reorder_point=50,
        reorder_quantity=100,
        sales_variability=20,
        lead_time_variability=2,
    )


@pytest.fixture
def overstock_sku():
    """10,000 units selling 5/day: 2000 days of supply."""
    return make_sku(
        id="OVER-001",
        name="Desk Mat XL",
        current_inventory=10_000,
        daily_sales_rate=5,
        unit_cost=12.5,
    )


@pytest.fixture
def deterministic_sku():
    """No demand or lead-time noise: every path is identical."""
    return make_sku(
        id="DET-001",
        current_inventory=20,
        daily_sales_rate=10,
        sales_variability=0,
        lead_time_days=3,
        lead_time_variability=0,
        reorder_point=5,
        reorder_quantity=100,
    )
