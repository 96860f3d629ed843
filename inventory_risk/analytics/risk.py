"""
Risk analyzer: turn a simulated day sequence into risk scores and policy
recommendations for one SKU.

Scores (integers in [0, 100]):

  understock_risk     = min(100, round(stockout_days / horizon × 100 × 1.5))
                        The 1.5 weighting makes moderate stockout fractions
                        register as risky.
  overstock_risk      = min(100, round(overstock_days / horizon × 100))
  dead_inventory_risk = step function of days of supply:
                        > 180 → 80, > 90 → 40, > 60 → 20, else 5

Recommendations (raw SKU fields, never scenario-adjusted; no randomness):

  safety_stock          = round(z × daily_sales × CV% / 100 × √lead_time)
  optimal_reorder_point = round(daily_sales × lead_time + safety_stock)

with z = 1.65 (95% service level).
"""
import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..config import (
    DAYS_OF_SUPPLY_SENTINEL,
    DEAD_INVENTORY_BANDS,
    DEAD_INVENTORY_FLOOR,
    DEFAULT_FORECAST_DAYS,
    DEFAULT_N_SIMULATIONS,
    EXPLAIN_DEAD_INVENTORY_THRESHOLD,
    EXPLAIN_OVERSTOCK_THRESHOLD,
    EXPLAIN_UNDERSTOCK_THRESHOLD,
    MAX_RISK,
    RISK_LEVEL_LOW_MAX,
    RISK_LEVEL_MEDIUM_MAX,
    SERVICE_LEVEL_Z,
    UNDERSTOCK_WEIGHT,
)
from ..domain.models import RiskAnalysis, RiskLevel, SKU, SimulationResult, WhatIfScenario
from ..simulation.monte_carlo import StopCheck, simulate
from ..simulation.sampler import RandomSource, make_rng
from ..utils.numeric import round_half_up

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Deterministic helpers
# ---------------------------------------------------------------------------

def days_of_supply(sku: SKU) -> int:
    """Current stock in days of sales; DAYS_OF_SUPPLY_SENTINEL when the SKU does not sell."""
    if sku.daily_sales_rate <= 0:
        logger.warning(
            "SKU %s has no sales rate; days of supply set to %d",
            sku.id, DAYS_OF_SUPPLY_SENTINEL,
        )
        return DAYS_OF_SUPPLY_SENTINEL
    return round_half_up(sku.current_inventory / sku.daily_sales_rate)


def dead_inventory_risk(days: int) -> int:
    """
    Coarse dead-stock score from days of supply.

    Examples:
        >>> dead_inventory_risk(2000)
        80
        >>> dead_inventory_risk(90)
        20
        >>> dead_inventory_risk(10)
        5
    """
    for threshold, score in DEAD_INVENTORY_BANDS:
        if days > threshold:
            return score
    return DEAD_INVENTORY_FLOOR


def safety_stock(sku: SKU) -> int:
    """Buffer stock for the 95% service level, from raw SKU fields."""
    return round_half_up(SERVICE_LEVEL_Z * sku.demand_std_dev * math.sqrt(sku.lead_time_days))


def optimal_reorder_point(sku: SKU) -> int:
    """Lead-time demand plus safety stock, from raw SKU fields."""
    return round_half_up(sku.daily_sales_rate * sku.lead_time_days + safety_stock(sku))


def _share_score(flagged_days: int, horizon_days: int, weight: float = 1.0) -> int:
    if horizon_days <= 0:
        return 0
    score = round_half_up((flagged_days / horizon_days) * 100 * weight)
    return max(0, min(MAX_RISK, score))


def risk_level(value: float) -> RiskLevel:
    """
    Presentation band of a risk score: [0,30] low, (30,60] medium, above high.

    Independent of the at-risk threshold used by the portfolio aggregator.
    """
    if value <= RISK_LEVEL_LOW_MAX:
        return RiskLevel.LOW
    if value <= RISK_LEVEL_MEDIUM_MAX:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------

def build_risk_analysis(
    sku: SKU,
    simulation_results: Sequence[SimulationResult],
    horizon_days: Optional[int] = None,
) -> RiskAnalysis:
    """
    Convert one SimulationResult sequence plus its SKU into a RiskAnalysis.

    Args:
        sku: The SKU the sequence was simulated for
        simulation_results: Day-ascending aggregated results
        horizon_days: Denominator for the day shares (defaults to the
                      sequence length)
    """
    results = tuple(simulation_results)
    horizon = len(results) if horizon_days is None else horizon_days

    stockout_days = sum(1 for r in results if r.stockout)
    overstock_days = sum(1 for r in results if r.overstock)
    supply_days = days_of_supply(sku)

    first_stockout = next((r.day for r in results if r.stockout), None)

    return RiskAnalysis(
        sku_id=sku.id,
        overstock_risk=_share_score(overstock_days, horizon),
        understock_risk=_share_score(stockout_days, horizon, UNDERSTOCK_WEIGHT),
        dead_inventory_risk=dead_inventory_risk(supply_days),
        days_of_supply=supply_days,
        projected_stockout=first_stockout,
        safety_stock=safety_stock(sku),
        optimal_reorder_point=optimal_reorder_point(sku),
        simulation_results=results,
    )


def analyze_risk(
    sku: SKU,
    scenario: Optional[WhatIfScenario] = None,
    rng: RandomSource = None,
    n_simulations: int = DEFAULT_N_SIMULATIONS,
    forecast_days: int = DEFAULT_FORECAST_DAYS,
    should_stop: Optional[StopCheck] = None,
) -> RiskAnalysis:
    """
    Simulate *sku* under *scenario* and score the outcome.

    Defaults run 1000 paths over 90 days. Safety stock and the optimal
    reorder point ignore the scenario.
    """
    results = simulate(
        sku,
        n_simulations=n_simulations,
        forecast_days=forecast_days,
        scenario=scenario,
        rng=rng,
        should_stop=should_stop,
    )
    analysis = build_risk_analysis(sku, results, horizon_days=forecast_days)
    logger.debug(
        "Risk for SKU %s: understock=%d overstock=%d dead=%d",
        sku.id, analysis.understock_risk, analysis.overstock_risk, analysis.dead_inventory_risk,
    )
    return analysis


# ---------------------------------------------------------------------------
# Explanations and scenario comparison
# ---------------------------------------------------------------------------

def explain_risk(analysis: RiskAnalysis, sku: SKU) -> str:
    """Plain-language summary of an analysis for one SKU."""
    explanations: List[str] = []

    if analysis.understock_risk > EXPLAIN_UNDERSTOCK_THRESHOLD:
        explanations.append(
            f"High stockout risk: You have about {analysis.days_of_supply} days of supply "
            "remaining. Consider reordering soon."
        )

    if analysis.overstock_risk > EXPLAIN_OVERSTOCK_THRESHOLD:
        explanations.append(
            "Excess inventory detected: Current stock may take longer than expected to sell, "
            "tying up capital."
        )

    if analysis.dead_inventory_risk > EXPLAIN_DEAD_INVENTORY_THRESHOLD:
        explanations.append(
            "Slow-moving inventory: This item shows signs of becoming dead stock. "
            "Consider promotions or markdowns."
        )

    if analysis.optimal_reorder_point != sku.reorder_point:
        diff = analysis.optimal_reorder_point - sku.reorder_point
        direction = "Increase" if diff > 0 else "Decrease"
        explanations.append(
            f"Recommended reorder point adjustment: {direction} by {round_half_up(abs(diff))} units "
            "for 95% service level."
        )

    if not explanations:
        explanations.append(
            "Inventory levels look healthy. Current replenishment strategy is working well."
        )

    return " ".join(explanations)


@dataclass(frozen=True)
class ScenarioComparison:
    """Baseline and what-if analyses of the same SKU."""
    scenario: WhatIfScenario
    baseline: RiskAnalysis
    adjusted: RiskAnalysis

    @property
    def understock_delta(self) -> int:
        return self.adjusted.understock_risk - self.baseline.understock_risk

    @property
    def overstock_delta(self) -> int:
        return self.adjusted.overstock_risk - self.baseline.overstock_risk

    @property
    def dead_inventory_delta(self) -> int:
        return self.adjusted.dead_inventory_risk - self.baseline.dead_inventory_risk


def compare_scenarios(
    sku: SKU,
    scenario: WhatIfScenario,
    rng: RandomSource = None,
    n_simulations: int = DEFAULT_N_SIMULATIONS,
    forecast_days: int = DEFAULT_FORECAST_DAYS,
) -> ScenarioComparison:
    """Analyze *sku* under the baseline and under *scenario* with one generator."""
    generator = make_rng(rng)
    baseline = analyze_risk(
        sku, rng=generator, n_simulations=n_simulations, forecast_days=forecast_days
    )
    adjusted = analyze_risk(
        sku, scenario, rng=generator, n_simulations=n_simulations, forecast_days=forecast_days
    )
    return ScenarioComparison(scenario=scenario, baseline=baseline, adjusted=adjusted)
