"""
Portfolio batch analysis: run analyze_risk for many SKUs off the caller's
execution path.

Architecture
------------
* ``n_workers == 1`` runs inline in the calling thread; larger values chunk the
  SKUs across a ``ProcessPoolExecutor``. Workers are module-level functions
  (pickle-safe under the "spawn" start method) and receive SKUs and the
  scenario as tuples of primitives.
* Every SKU draws from its own child of ``SeedSequence(seed)``, so a seeded
  batch gives the same analyses whatever the worker count.
* ``cancel()`` may be called from any thread. The batch checks it, together
  with the time box, between SKUs, between simulation runs (inline mode) and
  while waiting on chunks (process mode).
* An abandoned batch raises BatchCancelledError or BatchTimeoutError. Partial
  analyses are discarded, never returned as if complete.
* ``start()`` runs the batch on a background daemon thread and returns a
  ``concurrent.futures.Future``; ``on_progress(n_done, n_total)`` is called
  after each SKU (inline) or chunk (process mode).
"""

from __future__ import annotations

import logging
import math
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ProcessPoolExecutor, wait
from dataclasses import astuple, dataclass
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np

from ..analytics.portfolio import aggregate_metrics
from ..analytics.risk import analyze_risk
from ..config import DEFAULT_FORECAST_DAYS, DEFAULT_N_SIMULATIONS, SimulationSettings
from ..domain.models import DashboardMetrics, RiskAnalysis, SKU, WhatIfScenario
from ..exceptions import (
    BatchAbortedError,
    BatchCancelledError,
    BatchTimeoutError,
    DuplicateSKUError,
    InvalidInputError,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]

POLL_INTERVAL_S = 0.05    # how often process mode re-checks cancel / time box
CHUNKS_PER_WORKER = 4     # smaller chunks = finer-grained progress and cancel


@dataclass(frozen=True)
class BatchResult:
    """Outcome of a completed batch."""
    analyses: Dict[str, RiskAnalysis]       # keyed by SKU id, input order
    metrics: Optional[DashboardMetrics]     # None for an empty SKU list
    elapsed_s: float

    @property
    def analysis_list(self) -> List[RiskAnalysis]:
        return list(self.analyses.values())


# ── Worker (runs in a spawned subprocess) ────────────────────────────────────

def _analyze_chunk_worker(chunk_args: dict) -> List[RiskAnalysis]:
    """
    Analyze one chunk of SKUs.

    ``chunk_args`` keys
    -------------------
    skus : list[tuple]
        ``(sku_fields_tuple, seed_sequence)`` per SKU
    scenario : tuple
        WhatIfScenario fields
    n_simulations : int
    forecast_days : int
    """
    scenario = WhatIfScenario(*chunk_args["scenario"])
    analyses = []
    for sku_fields, seed_seq in chunk_args["skus"]:
        sku = SKU(*sku_fields)
        analyses.append(
            analyze_risk(
                sku,
                scenario,
                rng=seed_seq,
                n_simulations=chunk_args["n_simulations"],
                forecast_days=chunk_args["forecast_days"],
            )
        )
    return analyses


# ── Orchestrator ─────────────────────────────────────────────────────────────

class PortfolioBatch:
    """Cancellable, time-boxed risk analysis of a SKU collection."""

    def __init__(
        self,
        skus: Sequence[SKU],
        scenario: Optional[WhatIfScenario] = None,
        n_simulations: int = DEFAULT_N_SIMULATIONS,
        forecast_days: int = DEFAULT_FORECAST_DAYS,
        seed: Optional[int] = None,
        n_workers: int = 1,
        timeout_s: Optional[float] = None,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.skus: List[SKU] = list(skus)
        seen = set()
        for sku in self.skus:
            if sku.id in seen:
                raise DuplicateSKUError(f"SKU {sku.id!r} appears more than once in the batch")
            seen.add(sku.id)
        if n_workers < 1:
            raise InvalidInputError(f"n_workers must be >= 1, got {n_workers}")
        if timeout_s is not None and timeout_s <= 0:
            raise InvalidInputError(f"timeout_s must be > 0, got {timeout_s}")

        self.scenario = scenario or WhatIfScenario()
        self.n_simulations = n_simulations
        self.forecast_days = forecast_days
        self.seed = seed
        self.n_workers = n_workers
        self.timeout_s = timeout_s
        self.on_progress = on_progress

        self._cancel_event = threading.Event()
        self._deadline: Optional[float] = None

    @classmethod
    def from_settings(
        cls,
        skus: Sequence[SKU],
        settings: SimulationSettings,
        scenario: Optional[WhatIfScenario] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> "PortfolioBatch":
        return cls(
            skus,
            scenario=scenario,
            n_simulations=settings.n_simulations,
            forecast_days=settings.forecast_days,
            seed=settings.seed,
            n_workers=settings.n_workers,
            timeout_s=settings.timeout,
            on_progress=on_progress,
        )

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def cancel(self) -> None:
        """Ask a running batch to stop at the next check point."""
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def _should_stop(self) -> bool:
        if self._cancel_event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def _abort_error(self, completed: int) -> BatchAbortedError:
        total = len(self.skus)
        if self._cancel_event.is_set():
            logger.info("Batch cancelled after %d of %d SKUs", completed, total)
            return BatchCancelledError(
                f"Batch cancelled after {completed} of {total} SKUs", completed, total
            )
        logger.warning("Batch exceeded %.1fs after %d of %d SKUs", self.timeout_s, completed, total)
        return BatchTimeoutError(
            f"Batch exceeded {self.timeout_s}s after {completed} of {total} SKUs", completed, total
        )

    def _report(self, done: int) -> None:
        if self.on_progress is None:
            return
        try:
            self.on_progress(done, len(self.skus))
        except Exception as exc:
            logger.warning("Progress callback failed: %s", exc)

    def _seed_sequences(self) -> List[np.random.SeedSequence]:
        return np.random.SeedSequence(self.seed).spawn(len(self.skus))

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def run(self) -> BatchResult:
        """
        Run the batch in the calling thread.

        Raises:
            BatchCancelledError: cancel() was called before completion
            BatchTimeoutError: the time box expired before completion
        """
        started = time.monotonic()
        self._deadline = started + self.timeout_s if self.timeout_s else None

        if self._should_stop():
            raise self._abort_error(0)

        if self.n_workers == 1 or len(self.skus) <= 1:
            analyses = self._run_inline()
        else:
            analyses = self._run_parallel()

        metrics = aggregate_metrics(self.skus, analyses) if self.skus else None
        elapsed = time.monotonic() - started
        logger.info("Analyzed %d SKUs in %.2fs", len(analyses), elapsed)
        return BatchResult(
            analyses={a.sku_id: a for a in analyses},
            metrics=metrics,
            elapsed_s=elapsed,
        )

    def start(self) -> "Future[BatchResult]":
        """Run the batch on a background daemon thread."""
        future: Future = Future()

        def _runner() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(self.run())
            except Exception as exc:
                future.set_exception(exc)

        threading.Thread(target=_runner, name="portfolio-batch", daemon=True).start()
        return future

    def _run_inline(self) -> List[RiskAnalysis]:
        analyses: List[RiskAnalysis] = []
        for sku, seed_seq in zip(self.skus, self._seed_sequences()):
            if self._should_stop():
                raise self._abort_error(len(analyses))
            try:
                analysis = analyze_risk(
                    sku,
                    self.scenario,
                    rng=seed_seq,
                    n_simulations=self.n_simulations,
                    forecast_days=self.forecast_days,
                    should_stop=self._should_stop,
                )
            except BatchAbortedError:
                raise self._abort_error(len(analyses)) from None
            analyses.append(analysis)
            self._report(len(analyses))
        return analyses

    def _run_parallel(self) -> List[RiskAnalysis]:
        items = [(astuple(sku), seq) for sku, seq in zip(self.skus, self._seed_sequences())]
        chunk_size = max(1, math.ceil(len(items) / (self.n_workers * CHUNKS_PER_WORKER)))
        chunks = [items[i : i + chunk_size] for i in range(0, len(items), chunk_size)]
        scenario_fields = astuple(self.scenario)

        results: Dict[int, List[RiskAnalysis]] = {}
        done = 0
        aborted = False
        executor = ProcessPoolExecutor(max_workers=min(self.n_workers, len(chunks)))
        try:
            future_map = {
                executor.submit(
                    _analyze_chunk_worker,
                    {
                        "skus": chunk,
                        "scenario": scenario_fields,
                        "n_simulations": self.n_simulations,
                        "forecast_days": self.forecast_days,
                    },
                ): idx
                for idx, chunk in enumerate(chunks)
            }
            pending = set(future_map)
            while pending:
                if self._should_stop():
                    raise self._abort_error(done)
                finished, pending = wait(pending, timeout=POLL_INTERVAL_S, return_when=FIRST_COMPLETED)
                for future in finished:
                    idx = future_map[future]
                    try:
                        results[idx] = future.result()
                    except Exception as exc:
                        logger.error("Batch chunk %d failed: %s", idx, exc)
                        raise
                    done += len(results[idx])
                    self._report(done)
        except BaseException:
            aborted = True
            raise
        finally:
            # Abandoned chunks still queued are dropped; running ones finish unobserved
            executor.shutdown(wait=not aborted, cancel_futures=True)

        return [analysis for idx in range(len(chunks)) for analysis in results[idx]]


def run_portfolio_analysis(
    skus: Sequence[SKU],
    scenario: Optional[WhatIfScenario] = None,
    settings: Optional[SimulationSettings] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> BatchResult:
    """Analyze *skus* with *settings* (defaults when None) and block until done."""
    batch = PortfolioBatch.from_settings(
        skus, settings or SimulationSettings(), scenario=scenario, on_progress=on_progress
    )
    return batch.run()
