"""
Portfolio aggregator: dashboard metrics over all analyzed SKUs.

Pure function of (skus, analyses). The two lists must be aligned by position
and SKU id; an empty portfolio is a precondition failure, not a zero result.
"""
import logging
from typing import Sequence

from ..config import AT_RISK_THRESHOLD, DEAD_STOCK_LOSS_RATE, OVERSTOCK_LOSS_RATE
from ..domain.models import DashboardMetrics, RiskAnalysis, SKU
from ..exceptions import EmptyPortfolioError, MismatchedCollectionsError
from ..utils.numeric import round_half_up

logger = logging.getLogger(__name__)


def is_at_risk(analysis: RiskAnalysis, threshold: int = AT_RISK_THRESHOLD) -> bool:
    """True when any of the three risk scores is strictly above *threshold*."""
    return (
        analysis.understock_risk > threshold
        or analysis.overstock_risk > threshold
        or analysis.dead_inventory_risk > threshold
    )


def projected_loss(sku: SKU, analysis: RiskAnalysis) -> float:
    """
    Expected devaluation of one SKU's stock (unrounded).

    overstock share × value × OVERSTOCK_LOSS_RATE
    + dead-stock share × value × DEAD_STOCK_LOSS_RATE
    """
    value = sku.inventory_value
    overstock_loss = (analysis.overstock_risk / 100) * value * OVERSTOCK_LOSS_RATE
    dead_stock_loss = (analysis.dead_inventory_risk / 100) * value * DEAD_STOCK_LOSS_RATE
    return overstock_loss + dead_stock_loss


def check_alignment(skus: Sequence[SKU], analyses: Sequence[RiskAnalysis]) -> None:
    """Raise unless *skus* is non-empty and *analyses* matches it one-to-one by id."""
    if not skus:
        raise EmptyPortfolioError("Cannot aggregate metrics for an empty portfolio")
    if len(skus) != len(analyses):
        raise MismatchedCollectionsError(
            f"Got {len(skus)} SKUs but {len(analyses)} analyses"
        )
    for idx, (sku, analysis) in enumerate(zip(skus, analyses)):
        if sku.id != analysis.sku_id:
            raise MismatchedCollectionsError(
                f"Position {idx}: SKU {sku.id!r} paired with analysis for {analysis.sku_id!r}"
            )


def aggregate_metrics(
    skus: Sequence[SKU],
    analyses: Sequence[RiskAnalysis],
) -> DashboardMetrics:
    """
    Compute DashboardMetrics for a portfolio.

    Args:
        skus: All SKUs in the portfolio
        analyses: One RiskAnalysis per SKU, in the same order

    Returns:
        DashboardMetrics with rounded averages, inventory value and losses

    Raises:
        EmptyPortfolioError: skus is empty
        MismatchedCollectionsError: lengths differ or ids are not aligned
    """
    check_alignment(skus, analyses)

    total = len(skus)
    at_risk = sum(1 for a in analyses if is_at_risk(a))

    metrics = DashboardMetrics(
        total_skus=total,
        at_risk_skus=at_risk,
        healthy_skus=total - at_risk,
        average_overstock_risk=round_half_up(sum(a.overstock_risk for a in analyses) / total),
        average_understock_risk=round_half_up(sum(a.understock_risk for a in analyses) / total),
        average_dead_inventory_risk=round_half_up(
            sum(a.dead_inventory_risk for a in analyses) / total
        ),
        total_inventory_value=round_half_up(sum(s.inventory_value for s in skus)),
        projected_losses=round_half_up(
            sum(projected_loss(s, a) for s, a in zip(skus, analyses))
        ),
    )
    logger.debug("Aggregated %d SKUs: %d at risk", total, at_risk)
    return metrics
