"""
Model constants and simulation settings.

The policy constants below are baked into the risk model (reorder cooldown,
service-level z-score, loss-rate coefficients, risk thresholds). They are named
here so the formulas in the simulation and analytics modules never carry bare
literals.

Run-level settings (number of simulations, horizon, seed, workers, time box)
live in a JSON section using the same {"value": ..., "description": ...}
layout as the rest of the settings file, and are normalized by
validate_simulation_settings() which clamps values and never raises.
"""
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Policy constants
# ---------------------------------------------------------------------------

DEFAULT_N_SIMULATIONS = 1000
DEFAULT_FORECAST_DAYS = 90

# Replenishment simulator
REORDER_COOLDOWN_DAYS = 5       # a new order needs (day - last_order_day) > this
NO_PREVIOUS_ORDER_DAY = -999    # last_order_day before the first order
OVERSTOCK_FACTOR = 2.0          # overstocked when inventory > factor × reorder_quantity

# Monte Carlo aggregation (share of paths needed to flag a day)
STOCKOUT_PATH_SHARE = 0.10
OVERSTOCK_PATH_SHARE = 0.50

# Risk analyzer
SERVICE_LEVEL_Z = 1.65          # 95% service level
UNDERSTOCK_WEIGHT = 1.5
DAYS_OF_SUPPLY_SENTINEL = 999   # days of supply when the SKU does not sell
MAX_RISK = 100

# Dead inventory step function: (days_of_supply strictly above, risk score)
DEAD_INVENTORY_BANDS: Tuple[Tuple[int, int], ...] = (
    (180, 80),
    (90, 40),
    (60, 20),
)
DEAD_INVENTORY_FLOOR = 5

# Presentation banding (separate from the at-risk threshold)
RISK_LEVEL_LOW_MAX = 30
RISK_LEVEL_MEDIUM_MAX = 60

# Portfolio aggregator
AT_RISK_THRESHOLD = 50          # strict: risk > threshold
OVERSTOCK_LOSS_RATE = 0.2
DEAD_STOCK_LOSS_RATE = 0.5

# Plain-language explanations
EXPLAIN_UNDERSTOCK_THRESHOLD = 50
EXPLAIN_OVERSTOCK_THRESHOLD = 50
EXPLAIN_DEAD_INVENTORY_THRESHOLD = 40


# ---------------------------------------------------------------------------
# Simulation settings section
# ---------------------------------------------------------------------------

DEFAULT_RANDOM_SEED = 0         # 0 = unseeded (fresh entropy each run)
DEFAULT_N_WORKERS = 1
DEFAULT_TIMEOUT_S = 0.0         # 0 = no time box

MIN_N_SIMULATIONS = 1
MAX_N_SIMULATIONS = 100_000
MIN_FORECAST_DAYS = 1
MAX_FORECAST_DAYS = 730
MAX_N_WORKERS = 64


def _clamped_int(raw: Any, default: int, min_val: int, max_val: Optional[int] = None) -> int:
    try:
        value = int(raw)
    except (ValueError, TypeError):
        return default
    value = max(min_val, value)
    if max_val is not None:
        value = min(max_val, value)
    return value


def default_settings() -> Dict[str, Any]:
    """Return a settings dict holding only the default simulation section."""
    return validate_simulation_settings({})


def validate_simulation_settings(settings: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate and normalize the "simulation" settings section.

    Applies fallback defaults and clamps values to valid ranges.
    Returns a normalized settings dict (does not raise exceptions).

    Args:
        settings: Full settings dict (may or may not contain "simulation")

    Returns:
        Normalized settings dict with a valid "simulation" section
    """
    section = settings.get("simulation", {})
    if not isinstance(section, dict):
        logger.warning("Ignoring malformed simulation settings section: %r", section)
        section = {}

    def raw(key: str, default: Any) -> Any:
        entry = section.get(key, {})
        if isinstance(entry, dict):
            return entry.get("value", default)
        return entry

    n_simulations = _clamped_int(
        raw("n_simulations", DEFAULT_N_SIMULATIONS),
        DEFAULT_N_SIMULATIONS, MIN_N_SIMULATIONS, MAX_N_SIMULATIONS,
    )
    forecast_days = _clamped_int(
        raw("forecast_days", DEFAULT_FORECAST_DAYS),
        DEFAULT_FORECAST_DAYS, MIN_FORECAST_DAYS, MAX_FORECAST_DAYS,
    )
    random_seed = _clamped_int(raw("random_seed", DEFAULT_RANDOM_SEED), DEFAULT_RANDOM_SEED, 0)
    n_workers = _clamped_int(raw("n_workers", DEFAULT_N_WORKERS), DEFAULT_N_WORKERS, 1, MAX_N_WORKERS)

    timeout_raw = raw("timeout_s", DEFAULT_TIMEOUT_S)
    try:
        timeout_s = max(0.0, float(timeout_raw))
    except (ValueError, TypeError):
        timeout_s = DEFAULT_TIMEOUT_S

    normalized_section = {
        "n_simulations": {
            "value": n_simulations,
            "min": MIN_N_SIMULATIONS,
            "max": MAX_N_SIMULATIONS,
            "description": "Number of Monte Carlo paths simulated per SKU",
        },
        "forecast_days": {
            "value": forecast_days,
            "min": MIN_FORECAST_DAYS,
            "max": MAX_FORECAST_DAYS,
            "description": "Forecast horizon in days",
        },
        "random_seed": {
            "value": random_seed,
            "description": "RNG seed (0 = unseeded, >0 = reproducible runs)",
        },
        "n_workers": {
            "value": n_workers,
            "min": 1,
            "max": MAX_N_WORKERS,
            "description": "Worker processes for portfolio batches (1 = run inline)",
        },
        "timeout_s": {
            "value": timeout_s,
            "description": "Time box for a portfolio batch in seconds (0 = unlimited)",
        },
    }

    normalized = dict(settings)
    normalized["simulation"] = normalized_section
    return normalized


def load_settings(path: Path) -> Dict[str, Any]:
    """
    Read settings JSON from *path* and normalize the simulation section.

    A missing file yields the defaults. A file that is not valid JSON is
    reported and treated as empty.
    """
    path = Path(path)
    if not path.exists():
        return default_settings()

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        logger.warning("Settings file %s is not valid JSON (%s); using defaults", path, e)
        data = {}

    if not isinstance(data, dict):
        logger.warning("Settings file %s does not hold an object; using defaults", path)
        data = {}
    return validate_simulation_settings(data)


def save_settings(settings: Dict[str, Any], path: Path) -> None:
    """Write normalized settings to *path* as indented JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(validate_simulation_settings(settings), f, indent=2)


@dataclass(frozen=True)
class SimulationSettings:
    """Typed view of the normalized simulation section."""
    n_simulations: int = DEFAULT_N_SIMULATIONS
    forecast_days: int = DEFAULT_FORECAST_DAYS
    random_seed: int = DEFAULT_RANDOM_SEED
    n_workers: int = DEFAULT_N_WORKERS
    timeout_s: float = DEFAULT_TIMEOUT_S

    @property
    def seed(self) -> Optional[int]:
        """Seed for numpy, or None when runs are unseeded."""
        return self.random_seed if self.random_seed > 0 else None

    @property
    def timeout(self) -> Optional[float]:
        return self.timeout_s if self.timeout_s > 0 else None

    @classmethod
    def from_settings(cls, settings: Dict[str, Any]) -> "SimulationSettings":
        section = validate_simulation_settings(settings)["simulation"]
        return cls(
            n_simulations=section["n_simulations"]["value"],
            forecast_days=section["forecast_days"]["value"],
            random_seed=section["random_seed"]["value"],
            n_workers=section["n_workers"]["value"],
            timeout_s=section["timeout_s"]["value"],
        )
