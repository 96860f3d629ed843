"""Domain models and validation for SKU risk analysis."""
from .models import (
    SKU,
    WhatIfScenario,
    IDENTITY_SCENARIO,
    PendingOrder,
    SimulationResult,
    RiskAnalysis,
    DashboardMetrics,
    RiskLevel,
)

__all__ = [
    "SKU",
    "WhatIfScenario",
    "IDENTITY_SCENARIO",
    "PendingOrder",
    "SimulationResult",
    "RiskAnalysis",
    "DashboardMetrics",
    "RiskLevel",
]
