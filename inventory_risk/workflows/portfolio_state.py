"""
Explicit state container for a caller's SKU collection and analysis cache.

The engine itself keeps no state between calls. Callers that present a
portfolio (dashboard, CLI session) hold one PortfolioState, which owns:

- the SKU collection (ordered, unique ids)
- the RiskAnalysis cache keyed by SKU id (baseline scenario only)
- the DashboardMetrics computed from the last complete batch

Any change to SKU data invalidates the affected cache entries and the
metrics. A batch publishes its results only if the SKU collection did not
change while it was running.
"""
import dataclasses
import logging
import threading
from typing import Dict, List, Optional, Sequence

from ..analytics.portfolio import aggregate_metrics
from ..analytics.risk import analyze_risk
from ..config import SimulationSettings
from ..domain.models import DashboardMetrics, RiskAnalysis, SKU, WhatIfScenario
from ..exceptions import DuplicateSKUError, InvalidInputError, SKUNotFoundError
from ..simulation.sampler import RandomSource
from .batch import BatchResult, PortfolioBatch, ProgressCallback

logger = logging.getLogger(__name__)


class PortfolioState:
    """SKU collection + analysis cache with invalidation on change."""

    def __init__(self, skus: Optional[Sequence[SKU]] = None, settings: Optional[SimulationSettings] = None):
        self._lock = threading.RLock()
        self._skus: List[SKU] = []
        self._analyses: Dict[str, RiskAnalysis] = {}
        self._metrics: Optional[DashboardMetrics] = None
        self._version = 0
        self.settings = settings or SimulationSettings()
        if skus:
            self.set_skus(skus)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def skus(self) -> List[SKU]:
        with self._lock:
            return list(self._skus)

    @property
    def metrics(self) -> Optional[DashboardMetrics]:
        with self._lock:
            return self._metrics

    @property
    def analyses(self) -> Dict[str, RiskAnalysis]:
        with self._lock:
            return dict(self._analyses)

    def get_sku(self, sku_id: str) -> Optional[SKU]:
        with self._lock:
            return next((s for s in self._skus if s.id == sku_id), None)

    def get_analysis(self, sku_id: str) -> Optional[RiskAnalysis]:
        with self._lock:
            return self._analyses.get(sku_id)

    @property
    def is_analyzed(self) -> bool:
        """True when every SKU has a cached analysis and metrics are current."""
        with self._lock:
            return self._metrics is not None and all(s.id in self._analyses for s in self._skus)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _touch(self) -> None:
        self._version += 1
        self._metrics = None

    def set_skus(self, skus: Sequence[SKU]) -> None:
        """Replace the whole collection; clears every cached analysis."""
        new_skus = list(skus)
        ids = [s.id for s in new_skus]
        if len(ids) != len(set(ids)):
            dupes = sorted({i for i in ids if ids.count(i) > 1})
            raise DuplicateSKUError(f"Duplicate SKU ids: {', '.join(dupes)}")
        with self._lock:
            self._skus = new_skus
            self._analyses.clear()
            self._touch()
        logger.debug("Portfolio replaced with %d SKUs", len(new_skus))

    def add_sku(self, sku: SKU) -> None:
        with self._lock:
            if any(s.id == sku.id for s in self._skus):
                raise DuplicateSKUError(f"SKU {sku.id!r} already exists")
            self._skus.append(sku)
            self._touch()

    def update_sku(self, sku_id: str, **changes) -> SKU:
        """
        Replace fields of one SKU and invalidate its cached analysis.

        Returns the new SKU record. Changing the id is not allowed.
        """
        if "id" in changes and changes["id"] != sku_id:
            raise InvalidInputError("SKU id cannot be changed; remove and add instead")
        with self._lock:
            for idx, sku in enumerate(self._skus):
                if sku.id == sku_id:
                    updated = dataclasses.replace(sku, **changes)
                    self._skus[idx] = updated
                    self._analyses.pop(sku_id, None)
                    self._touch()
                    return updated
        raise SKUNotFoundError(f"SKU {sku_id!r} not found")

    def remove_sku(self, sku_id: str) -> bool:
        """Remove a SKU and its analysis; False when the id is unknown."""
        with self._lock:
            before = len(self._skus)
            self._skus = [s for s in self._skus if s.id != sku_id]
            if len(self._skus) == before:
                return False
            self._analyses.pop(sku_id, None)
            self._touch()
            return True

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def make_batch(self, on_progress: Optional[ProgressCallback] = None) -> PortfolioBatch:
        """Batch over a snapshot of the current SKUs, using the state's settings."""
        return PortfolioBatch.from_settings(self.skus, self.settings, on_progress=on_progress)

    def run_analysis(
        self,
        batch: Optional[PortfolioBatch] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> BatchResult:
        """
        Analyze every SKU and publish analyses + metrics.

        Aborted batches raise and publish nothing. Results computed for a
        collection that changed in the meantime are returned but not cached.
        """
        with self._lock:
            version = self._version
        batch = batch or self.make_batch(on_progress=on_progress)
        result = batch.run()
        self.publish(result, version)
        return result

    def publish(self, result: BatchResult, version: int) -> bool:
        """Cache *result* if the collection is still at *version*."""
        with self._lock:
            if version != self._version:
                logger.info("Discarding batch results: portfolio changed while analyzing")
                return False
            self._analyses = dict(result.analyses)
            self._metrics = result.metrics
            return True

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    def analyze_sku(
        self,
        sku_id: str,
        scenario: Optional[WhatIfScenario] = None,
        rng: RandomSource = None,
    ) -> RiskAnalysis:
        """
        On-demand analysis of one SKU.

        Baseline results refresh the cache entry; what-if results are returned
        without being cached. Metrics are recomputed when the cache becomes
        complete again.
        """
        sku = self.get_sku(sku_id)
        if sku is None:
            raise SKUNotFoundError(f"SKU {sku_id!r} not found")

        analysis = analyze_risk(
            sku,
            scenario,
            rng=rng if rng is not None else self.settings.seed,
            n_simulations=self.settings.n_simulations,
            forecast_days=self.settings.forecast_days,
        )
        if scenario is None or scenario.is_identity:
            with self._lock:
                if self.get_sku(sku_id) == sku:
                    self._analyses[sku_id] = analysis
                    self._refresh_metrics()
        return analysis

    def _refresh_metrics(self) -> None:
        if self._skus and all(s.id in self._analyses for s in self._skus):
            self._metrics = aggregate_metrics(
                self._skus, [self._analyses[s.id] for s in self._skus]
            )
