"""Analytics package: per-SKU risk scoring and portfolio metrics."""

from .risk import (
    ScenarioComparison,
    analyze_risk,
    build_risk_analysis,
    compare_scenarios,
    days_of_supply,
    dead_inventory_risk,
    explain_risk,
    optimal_reorder_point,
    risk_level,
    safety_stock,
)
from .portfolio import (
    aggregate_metrics,
    check_alignment,
    is_at_risk,
    projected_loss,
)

__all__ = [
    "ScenarioComparison",
    "analyze_risk",
    "build_risk_analysis",
    "compare_scenarios",
    "days_of_supply",
    "dead_inventory_risk",
    "explain_risk",
    "optimal_reorder_point",
    "risk_level",
    "safety_stock",
    "aggregate_metrics",
    "check_alignment",
    "is_at_risk",
    "projected_loss",
]
