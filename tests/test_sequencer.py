"""Tests for the mixed-model sequencer."""

import logging

import pytest

from factoryflow.engine.sequencer import MixedModelSequencer
from factoryflow.models.tasks import ProductModel


@pytest.fixture
def sequencer():
    return MixedModelSequencer()


@pytest.fixture
def two_models():
    return [
        ProductModel(model_id=1, name="A", ratio=0.6),
        ProductModel(model_id=2, name="B", ratio=0.4),
    ]


@pytest.fixture
def default_mix():
    return [
        ProductModel(model_id=1, name="Super", ratio=0.35),
        ProductModel(model_id=2, name="Ultra", ratio=0.45),
        ProductModel(model_id=3, name="Mega", ratio=0.20),
    ]


class TestModelDemands:
    """Tests for splitting demand over the mix."""

    def test_exact_split(self, sequencer, two_models):
        assert sequencer.model_demands(two_models, 10) == [6, 4]

    def test_drift_goes_to_largest(self, sequencer, default_mix):
        """2.45, 3.15, 1.4 round to 2, 3, 1; the missing unit goes to Ultra."""
        assert sequencer.model_demands(default_mix, 7) == [2, 4, 1]

    def test_half_up_rounding(self, sequencer):
        """2.5 and 2.5 both round up; the surplus comes off the first largest."""
        models = [ProductModel(model_id=1, ratio=0.5), ProductModel(model_id=2, ratio=0.5)]
        assert sequencer.model_demands(models, 5) == [2, 3]

    def test_sum_matches_demand(self, sequencer, default_mix):
        for demand in range(0, 60):
            assert sum(sequencer.model_demands(default_mix, demand)) == demand

    def test_zero_demand(self, sequencer, two_models):
        assert sequencer.model_demands(two_models, 0) == [0, 0]

    def test_ratio_warning(self, sequencer, caplog):
        models = [ProductModel(model_id=1, ratio=0.5), ProductModel(model_id=2, ratio=0.3)]
        with caplog.at_level(logging.WARNING, logger="factoryflow.engine.sequencer"):
            sequencer.model_demands(models, 10)
        assert "ratios sum to 0.800" in caplog.text

    def test_no_warning_within_tolerance(self, sequencer, default_mix, caplog):
        with caplog.at_level(logging.WARNING, logger="factoryflow.engine.sequencer"):
            sequencer.model_demands(default_mix, 10)
        assert caplog.text == ""


class TestSequence:
    """Tests for goal chasing."""

    def test_sixty_forty(self, sequencer, two_models):
        order = sequencer.sequence(two_models, 10)
        assert order == [1, 2, 1, 2, 1, 1, 2, 1, 2, 1]

    def test_prefixes_stay_level(self, sequencer, two_models):
        """Every prefix is within one unit of the ideal mix."""
        order = sequencer.sequence(two_models, 10)
        for k in range(1, len(order) + 1):
            count_a = order[:k].count(1)
            assert abs(count_a - 0.6 * k) <= 1.0

    def test_length_and_counts(self, sequencer, default_mix):
        order = sequencer.sequence(default_mix, 40)
        assert len(order) == 40
        assert [order.count(m) for m in (1, 2, 3)] == sequencer.model_demands(default_mix, 40)

    def test_zero_ratio_model_never_built(self, sequencer):
        models = [ProductModel(model_id=1, ratio=1.0), ProductModel(model_id=2, ratio=0.0)]
        assert sequencer.sequence(models, 5) == [1, 1, 1, 1, 1]

    def test_single_model(self, sequencer):
        assert sequencer.sequence([ProductModel(model_id=7, ratio=1.0)], 3) == [7, 7, 7]

    def test_empty(self, sequencer, two_models):
        assert sequencer.sequence(two_models, 0) == []
        assert sequencer.sequence([], 5) == []


class TestProductionUnits:
    """Tests for ProductionUnit records."""

    def test_unit_ids(self, sequencer, two_models):
        units = sequencer.production_units(two_models, 4)
        assert [u.unit_id for u in units] == ["1-0", "2-1", "1-2", "2-3"]
        assert [u.sequence_index for u in units] == [0, 1, 2, 3]
        assert [u.model_id for u in units] == [1, 2, 1, 2]
