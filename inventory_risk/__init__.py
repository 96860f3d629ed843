"""
Inventory risk forecasting by Monte Carlo simulation.

Public API:
    simulate(sku, n_simulations=1000, forecast_days=90, scenario=None, rng=None)
    analyze_risk(sku, scenario=None, rng=None)
    aggregate_metrics(skus, analyses)
"""
from .domain.models import (
    SKU,
    WhatIfScenario,
    IDENTITY_SCENARIO,
    SimulationResult,
    RiskAnalysis,
    DashboardMetrics,
    RiskLevel,
)
from .simulation.monte_carlo import simulate, simulate_parallel
from .analytics.risk import analyze_risk, compare_scenarios, explain_risk, risk_level
from .analytics.portfolio import aggregate_metrics
from .workflows.batch import BatchResult, PortfolioBatch
from .workflows.portfolio_state import PortfolioState
from .exceptions import (
    InventoryRiskError,
    InvalidInputError,
    EmptyPortfolioError,
    MismatchedCollectionsError,
    DuplicateSKUError,
    SKUNotFoundError,
    BatchAbortedError,
    BatchCancelledError,
    BatchTimeoutError,
)

__version__ = "1.0.0"

__all__ = [
    "SKU",
    "WhatIfScenario",
    "IDENTITY_SCENARIO",
    "SimulationResult",
    "RiskAnalysis",
    "DashboardMetrics",
    "RiskLevel",
    "simulate",
    "simulate_parallel",
    "analyze_risk",
    "compare_scenarios",
    "explain_risk",
    "risk_level",
    "aggregate_metrics",
    "BatchResult",
    "PortfolioBatch",
    "PortfolioState",
    "InventoryRiskError",
    "InvalidInputError",
    "EmptyPortfolioError",
    "MismatchedCollectionsError",
    "DuplicateSKUError",
    "SKUNotFoundError",
    "BatchAbortedError",
    "BatchCancelledError",
    "BatchTimeoutError",
]
