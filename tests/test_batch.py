"""
Tests for portfolio batch analysis.

Validates:
- Inline and process-pool runs give identical seeded analyses
- Cancellation and time box abort without partial results
- Progress reporting and background start()
"""
import threading

import pytest

from inventory_risk.config import SimulationSettings
from inventory_risk.exceptions import (
    BatchCancelledError,
    BatchTimeoutError,
    DuplicateSKUError,
    InvalidInputError,
)
from inventory_risk.workflows.batch import PortfolioBatch, run_portfolio_analysis


@pytest.fixture
def portfolio(sku_factory, low_stock_sku, overstock_sku):
    return [
        sku_factory(id="MID-001"),
        low_stock_sku,
        overstock_sku,
        sku_factory(id="SLOW-001", daily_sales_rate=1, current_inventory=150),
    ]


class TestPortfolioBatchRun:
    """Blocking run() in the calling thread or a process pool."""

    def test_inline_run(self, portfolio):
        result = PortfolioBatch(portfolio, n_simulations=30, forecast_days=20, seed=1).run()
        assert list(result.analyses) == [s.id for s in portfolio]
        assert result.metrics.total_skus == len(portfolio)
        assert result.elapsed_s >= 0
        assert [a.sku_id for a in result.analysis_list] == [s.id for s in portfolio]

    def test_parallel_matches_inline(self, portfolio):
        inline = PortfolioBatch(
            portfolio, n_simulations=40, forecast_days=30, seed=42, n_workers=1
        ).run()
        parallel = PortfolioBatch(
            portfolio, n_simulations=40, forecast_days=30, seed=42, n_workers=2
        ).run()
        assert parallel.analyses == inline.analyses
        assert parallel.metrics == inline.metrics

    def test_seeded_runs_reproducible(self, portfolio):
        a = PortfolioBatch(portfolio, n_simulations=20, forecast_days=15, seed=5).run()
        b = PortfolioBatch(portfolio, n_simulations=20, forecast_days=15, seed=5).run()
        assert a.analyses == b.analyses

    def test_empty_batch(self):
        result = PortfolioBatch([]).run()
        assert result.analyses == {}
        assert result.metrics is None

    def test_progress_reported_per_sku(self, portfolio):
        calls = []
        PortfolioBatch(
            portfolio, n_simulations=10, forecast_days=10, seed=1,
            on_progress=lambda done, total: calls.append((done, total)),
        ).run()
        assert calls == [(i, len(portfolio)) for i in range(1, len(portfolio) + 1)]

    def test_parallel_progress_reaches_total(self, portfolio):
        calls = []
        PortfolioBatch(
            portfolio, n_simulations=10, forecast_days=10, seed=1, n_workers=2,
            on_progress=lambda done, total: calls.append(done),
        ).run()
        assert calls[-1] == len(portfolio)
        assert calls == sorted(calls)

    def test_failing_progress_callback_ignored(self, portfolio):
        def boom(done, total):
            raise RuntimeError("display closed")

        result = PortfolioBatch(
            portfolio, n_simulations=10, forecast_days=10, seed=1, on_progress=boom
        ).run()
        assert len(result.analyses) == len(portfolio)


class TestPortfolioBatchAbort:
    """Cancellation and time box."""

    def test_cancel_before_run(self, portfolio):
        batch = PortfolioBatch(portfolio, n_simulations=10, forecast_days=10)
        batch.cancel()
        assert batch.cancelled
        with pytest.raises(BatchCancelledError) as exc_info:
            batch.run()
        assert exc_info.value.completed == 0
        assert exc_info.value.total == len(portfolio)

    def test_cancel_from_progress_callback(self, portfolio):
        batch = PortfolioBatch(portfolio, n_simulations=10, forecast_days=10, seed=1)
        batch.on_progress = lambda done, total: batch.cancel()
        with pytest.raises(BatchCancelledError) as exc_info:
            batch.run()
        assert exc_info.value.completed == 1

    def test_timeout(self, portfolio):
        batch = PortfolioBatch(
            portfolio, n_simulations=100_000, forecast_days=365, seed=1, timeout_s=0.01
        )
        with pytest.raises(BatchTimeoutError) as exc_info:
            batch.run()
        assert exc_info.value.completed < len(portfolio)

    def test_parallel_cancel(self, portfolio):
        batch = PortfolioBatch(
            portfolio, n_simulations=5_000, forecast_days=365, seed=1, n_workers=2
        )
        threading.Timer(0.1, batch.cancel).start()
        with pytest.raises(BatchCancelledError):
            batch.run()


class TestPortfolioBatchStart:
    def test_start_returns_future(self, portfolio):
        batch = PortfolioBatch(portfolio, n_simulations=10, forecast_days=10, seed=3)
        result = batch.start().result(timeout=60)
        assert set(result.analyses) == {s.id for s in portfolio}

    def test_start_propagates_abort(self, portfolio):
        batch = PortfolioBatch(portfolio, n_simulations=10, forecast_days=10)
        batch.cancel()
        with pytest.raises(BatchCancelledError):
            batch.start().result(timeout=60)


class TestPortfolioBatchValidation:
    def test_duplicate_ids_rejected(self, sku_factory):
        with pytest.raises(DuplicateSKUError):
            PortfolioBatch([sku_factory(id="A"), sku_factory(id="A")])

    def test_invalid_worker_count(self, portfolio):
        with pytest.raises(InvalidInputError):
            PortfolioBatch(portfolio, n_workers=0)

    def test_invalid_timeout(self, portfolio):
        with pytest.raises(InvalidInputError):
            PortfolioBatch(portfolio, timeout_s=0)

    def test_from_settings(self, portfolio):
        settings = SimulationSettings(
            n_simulations=20, forecast_days=15, random_seed=7, n_workers=1, timeout_s=0.0
        )
        batch = PortfolioBatch.from_settings(portfolio, settings)
        assert batch.seed == 7
        assert batch.timeout_s is None
        assert batch.n_simulations == 20
        assert batch.forecast_days == 15


class TestRunPortfolioAnalysis:
    def test_uses_settings(self, portfolio):
        settings = SimulationSettings(n_simulations=10, forecast_days=12, random_seed=2)
        result = run_portfolio_analysis(portfolio, settings=settings)
        assert all(len(a.simulation_results) == 12 for a in result.analysis_list)
        again = run_portfolio_analysis(portfolio, settings=settings)
        assert again.analyses == result.analyses
