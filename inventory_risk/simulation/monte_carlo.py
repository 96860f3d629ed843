"""
Monte Carlo driver: repeat the replenishment simulator N times for one SKU and
reduce the paths to one SimulationResult per forecast day.

Aggregation rule per day d (N = number of paths):
    inventory_level = round(mean inventory at d)
    demand          = round(mean demand at d)
    stockout        = stockout paths at d  > STOCKOUT_PATH_SHARE  × N
    overstock       = overstock paths at d > OVERSTOCK_PATH_SHARE × N

Per-day sums and counts live in a DailyAccumulator. merge() is an element-wise
sum, so chunks of runs can be simulated in separate worker processes (each
with its own spawned SeedSequence) and reduced in any order.
"""
from __future__ import annotations

import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import astuple, dataclass
from functools import reduce
from typing import Callable, List, Optional

import numpy as np

from ..config import (
    DEFAULT_FORECAST_DAYS,
    DEFAULT_N_SIMULATIONS,
    OVERSTOCK_PATH_SHARE,
    STOCKOUT_PATH_SHARE,
)
from ..domain.models import SKU, SimulationResult, WhatIfScenario
from ..exceptions import BatchCancelledError
from ..utils.numeric import round_half_up
from .replenishment import ScenarioParameters, Trajectory, simulate_trajectory
from .sampler import RandomSource, make_rng

logger = logging.getLogger(__name__)

StopCheck = Callable[[], bool]


@dataclass
class DailyAccumulator:
    """Per-day running totals over a set of simulation paths."""
    inventory_sum: np.ndarray
    demand_sum: np.ndarray
    stockout_count: np.ndarray
    overstock_count: np.ndarray
    n_runs: int = 0

    @classmethod
    def zeros(cls, forecast_days: int) -> "DailyAccumulator":
        days = max(0, forecast_days)
        return cls(
            inventory_sum=np.zeros(days),
            demand_sum=np.zeros(days),
            stockout_count=np.zeros(days, dtype=np.int64),
            overstock_count=np.zeros(days, dtype=np.int64),
        )

    @property
    def forecast_days(self) -> int:
        return len(self.inventory_sum)

    def add(self, trajectory: Trajectory) -> None:
        """Fold one run into the totals (in place)."""
        if trajectory.days != self.forecast_days:
            raise ValueError(
                f"Trajectory has {trajectory.days} days, accumulator expects {self.forecast_days}"
            )
        self.inventory_sum += trajectory.inventory
        self.demand_sum += trajectory.demand
        self.stockout_count += trajectory.stockout
        self.overstock_count += trajectory.overstock
        self.n_runs += 1

    def merge(self, other: "DailyAccumulator") -> "DailyAccumulator":
        """Return the combined totals of two disjoint sets of runs."""
        if other.forecast_days != self.forecast_days:
            raise ValueError(
                f"Cannot merge accumulators of {self.forecast_days} and {other.forecast_days} days"
            )
        return DailyAccumulator(
            inventory_sum=self.inventory_sum + other.inventory_sum,
            demand_sum=self.demand_sum + other.demand_sum,
            stockout_count=self.stockout_count + other.stockout_count,
            overstock_count=self.overstock_count + other.overstock_count,
            n_runs=self.n_runs + other.n_runs,
        )

    def to_results(self) -> List[SimulationResult]:
        """Reduce the totals to one SimulationResult per day (day is 1-indexed)."""
        if self.n_runs == 0:
            return []

        n = self.n_runs
        mean_inventory = (self.inventory_sum / n).tolist()
        mean_demand = (self.demand_sum / n).tolist()
        stockout_limit = n * STOCKOUT_PATH_SHARE
        overstock_limit = n * OVERSTOCK_PATH_SHARE

        return [
            SimulationResult(
                day=day + 1,
                inventory_level=round_half_up(mean_inventory[day]),
                demand=round_half_up(mean_demand[day]),
                stockout=bool(self.stockout_count[day] > stockout_limit),
                overstock=bool(self.overstock_count[day] > overstock_limit),
            )
            for day in range(self.forecast_days)
        ]


def run_simulations(
    params: ScenarioParameters,
    n_runs: int,
    forecast_days: int,
    rng: np.random.Generator,
    should_stop: Optional[StopCheck] = None,
) -> DailyAccumulator:
    """
    Simulate *n_runs* independent paths and return their per-day totals.

    *should_stop* is polled before every run; when it returns True the
    partial totals are discarded and BatchCancelledError is raised.
    """
    accumulator = DailyAccumulator.zeros(forecast_days)
    for run in range(n_runs):
        if should_stop is not None and should_stop():
            raise BatchCancelledError(
                f"Simulation stopped after {run} of {n_runs} runs", completed=run, total=n_runs
            )
        accumulator.add(simulate_trajectory(params, forecast_days, rng))
    return accumulator


def _check_run_shape(sku: SKU, n_simulations: int, forecast_days: int) -> bool:
    if n_simulations <= 0 or forecast_days <= 0:
        logger.warning(
            "Nothing to simulate for SKU %s (n_simulations=%s, forecast_days=%s)",
            sku.id, n_simulations, forecast_days,
        )
        return False
    return True


def simulate(
    sku: SKU,
    n_simulations: int = DEFAULT_N_SIMULATIONS,
    forecast_days: int = DEFAULT_FORECAST_DAYS,
    scenario: Optional[WhatIfScenario] = None,
    rng: RandomSource = None,
    should_stop: Optional[StopCheck] = None,
) -> List[SimulationResult]:
    """
    Monte Carlo forecast of one SKU's inventory under a what-if scenario.

    Args:
        sku: SKU record (not modified)
        n_simulations: Number of simulated paths (default 1000)
        forecast_days: Horizon in days (default 90)
        scenario: What-if multipliers; None is the identity scenario
        rng: Generator, seed, SeedSequence, or None for fresh entropy
        should_stop: Optional cancellation check polled between runs

    Returns:
        List[SimulationResult] of length forecast_days, days 1..forecast_days.
        Empty when n_simulations or forecast_days is not positive.

    Example:
        >>> sku = SKU("A", "Widget", 20, 10, 20, 7, 2, 50, 100)
        >>> len(simulate(sku, n_simulations=50, forecast_days=30, rng=1))
        30
    """
    if not _check_run_shape(sku, n_simulations, forecast_days):
        return []

    params = ScenarioParameters.from_sku(sku, scenario)
    generator = make_rng(rng)
    accumulator = run_simulations(params, n_simulations, forecast_days, generator, should_stop)

    logger.debug("Simulated SKU %s: %d runs x %d days", sku.id, n_simulations, forecast_days)
    return accumulator.to_results()


# ── Parallel driver ──────────────────────────────────────────────────────────
# Workers are module-level functions so they pickle under the "spawn" start
# method. SKU and scenario travel as plain tuples.

def _simulation_chunk_worker(chunk_args: dict) -> DailyAccumulator:
    """Run one chunk of paths in a worker process with its own seed stream."""
    sku = SKU(*chunk_args["sku"])
    scenario = WhatIfScenario(*chunk_args["scenario"])
    params = ScenarioParameters.from_sku(sku, scenario)
    rng = make_rng(chunk_args["seed_seq"])
    return run_simulations(params, chunk_args["n_runs"], chunk_args["forecast_days"], rng)


def split_runs(n_simulations: int, n_chunks: int) -> List[int]:
    """
    Split *n_simulations* into at most *n_chunks* near-equal positive parts.

    Example:
        >>> split_runs(10, 3)
        [4, 3, 3]
    """
    n_chunks = max(1, min(n_chunks, n_simulations))
    base, extra = divmod(n_simulations, n_chunks)
    return [base + (1 if i < extra else 0) for i in range(n_chunks)]


def simulate_parallel(
    sku: SKU,
    n_simulations: int = DEFAULT_N_SIMULATIONS,
    forecast_days: int = DEFAULT_FORECAST_DAYS,
    scenario: Optional[WhatIfScenario] = None,
    seed: Optional[int] = None,
    n_workers: int = 2,
) -> List[SimulationResult]:
    """
    Same contract as simulate(), with the runs spread over worker processes.

    Each chunk draws from a child of ``SeedSequence(seed)``, so a fixed seed
    and worker count reproduce the same results. Results for the same seed
    differ from simulate(rng=seed) because the streams are split differently.
    """
    if not _check_run_shape(sku, n_simulations, forecast_days):
        return []

    scenario = scenario or WhatIfScenario()
    chunks = split_runs(n_simulations, n_workers)
    seed_seqs = np.random.SeedSequence(seed).spawn(len(chunks))

    if len(chunks) == 1:
        return _simulation_chunk_worker({
            "sku": astuple(sku),
            "scenario": astuple(scenario),
            "seed_seq": seed_seqs[0],
            "n_runs": chunks[0],
            "forecast_days": forecast_days,
        }).to_results()

    with ProcessPoolExecutor(max_workers=min(n_workers, len(chunks))) as executor:
        partials = list(executor.map(
            _simulation_chunk_worker,
            [
                {
                    "sku": astuple(sku),
                    "scenario": astuple(scenario),
                    "seed_seq": seed_seq,
                    "n_runs": n_runs,
                    "forecast_days": forecast_days,
                }
                for seed_seq, n_runs in zip(seed_seqs, chunks)
            ],
        ))

    combined = reduce(DailyAccumulator.merge, partials)
    logger.debug(
        "Simulated SKU %s in %d chunks: %d runs x %d days",
        sku.id, len(chunks), combined.n_runs, forecast_days,
    )
    return combined.to_results()
