"""
Tests for PortfolioState: SKU collection, analysis cache and invalidation.
"""
import pytest

from inventory_risk.config import SimulationSettings
from inventory_risk.domain.models import WhatIfScenario
from inventory_risk.exceptions import DuplicateSKUError, InvalidInputError, SKUNotFoundError
from inventory_risk.workflows.portfolio_state import PortfolioState

FAST = SimulationSettings(n_simulations=10, forecast_days=10, random_seed=1)


@pytest.fixture
def state(sku_factory):
    return PortfolioState(
        [sku_factory(id="A"), sku_factory(id="B", current_inventory=500)],
        settings=FAST,
    )


class TestCollection:
    """SKU collection edits."""

    def test_initial_state(self, state):
        assert [s.id for s in state.skus] == ["A", "B"]
        assert state.metrics is None
        assert not state.is_analyzed
        assert state.get_sku("B").current_inventory == 500
        assert state.get_sku("missing") is None

    def test_set_skus_rejects_duplicates(self, sku_factory):
        with pytest.raises(DuplicateSKUError):
            PortfolioState([sku_factory(id="A"), sku_factory(id="A")])

    def test_add_duplicate_rejected(self, state, sku_factory):
        with pytest.raises(DuplicateSKUError):
            state.add_sku(sku_factory(id="A"))

    def test_update_returns_new_record(self, state):
        version = state.version
        updated = state.update_sku("A", current_inventory=42)
        assert updated.current_inventory == 42
        assert state.get_sku("A") == updated
        assert state.version == version + 1

    def test_update_validates_values(self, state):
        with pytest.raises(InvalidInputError):
            state.update_sku("A", current_inventory=-1)

    def test_update_cannot_change_id(self, state):
        with pytest.raises(InvalidInputError):
            state.update_sku("A", id="Z")

    def test_update_unknown_id(self, state):
        with pytest.raises(SKUNotFoundError):
            state.update_sku("missing", current_inventory=1)

    def test_not_found_error_is_key_error(self, state):
        with pytest.raises(KeyError, match="missing"):
            state.update_sku("missing", current_inventory=1)

    def test_remove(self, state):
        assert state.remove_sku("A") is True
        assert state.remove_sku("A") is False
        assert [s.id for s in state.skus] == ["B"]


class TestAnalysisCache:
    """Publishing batch results and invalidating them."""

    def test_run_analysis_publishes(self, state):
        result = state.run_analysis()
        assert state.is_analyzed
        assert state.metrics == result.metrics
        assert state.get_analysis("A") == result.analyses["A"]

    def test_update_invalidates_entry_and_metrics(self, state):
        state.run_analysis()
        state.update_sku("A", daily_sales_rate=20)
        assert state.get_analysis("A") is None
        assert state.get_analysis("B") is not None
        assert state.metrics is None
        assert not state.is_analyzed

    def test_add_invalidates_metrics(self, state, sku_factory):
        state.run_analysis()
        state.add_sku(sku_factory(id="C"))
        assert state.metrics is None
        assert not state.is_analyzed

    def test_set_skus_clears_cache(self, state, sku_factory):
        state.run_analysis()
        state.set_skus([sku_factory(id="X")])
        assert state.analyses == {}

    def test_stale_results_not_published(self, state, sku_factory):
        version = state.version
        result = state.make_batch().run()
        state.add_sku(sku_factory(id="C"))
        assert state.publish(result, version) is False
        assert state.analyses == {}
        assert state.metrics is None

    def test_analyze_sku_caches_baseline(self, state):
        analysis = state.analyze_sku("A")
        assert state.get_analysis("A") == analysis
        assert state.metrics is None
        state.analyze_sku("B")
        assert state.is_analyzed
        assert state.metrics.total_skus == 2

    def test_analyze_sku_what_if_not_cached(self, state):
        analysis = state.analyze_sku("A", WhatIfScenario(demand_multiplier=2.0))
        assert analysis.sku_id == "A"
        assert state.get_analysis("A") is None

    def test_analyze_unknown_sku(self, state):
        with pytest.raises(SKUNotFoundError):
            state.analyze_sku("missing")

    def test_progress_passed_to_batch(self, state):
        calls = []
        state.run_analysis(on_progress=lambda done, total: calls.append(done))
        assert calls == [1, 2]
