"""Monte Carlo demand and replenishment simulation."""
from .sampler import make_rng, sample_demand, sample_lead_time
from .replenishment import ScenarioParameters, Trajectory, simulate_trajectory
from .monte_carlo import (
    DailyAccumulator,
    run_simulations,
    simulate,
    simulate_parallel,
    split_runs,
)

__all__ = [
    "make_rng",
    "sample_demand",
    "sample_lead_time",
    "ScenarioParameters",
    "Trajectory",
    "simulate_trajectory",
    "DailyAccumulator",
    "run_simulations",
    "simulate",
    "simulate_parallel",
    "split_runs",
]
