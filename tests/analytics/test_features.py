"""
Tests for FeatureEngineer and its scaling helpers.
"""

import math

import pytest

from src.analytics.features import (
    FEATURE_NAMES,
    FeatureEngineer,
    UnknownScalerError,
    trend_slope,
)


@pytest.fixture
def engineer():
    return FeatureEngineer()


class TestScaling:
    """Tests for normalize/denormalize/standardize."""

    def test_normalize_to_unit_range(self, engineer):
        """Values are mapped onto [0, 1] and the scaler is remembered."""
        result = engineer.normalize([10, 20, 30], "cpu")

        assert result == pytest.approx([0.0, 0.5, 1.0])
        scaler = engineer.scalers["cpu"]
        assert (scaler.min, scaler.max, scaler.range) == (10, 30, 20)

    def test_round_trip(self, engineer):
        """denormalize(normalize(x)) reproduces x."""
        values = [3.5, 97.25, 41.0, 0.125, 64.0]

        normalized = engineer.normalize(values, "memory")

        assert engineer.denormalize(normalized, "memory") == pytest.approx(values)

    def test_constant_series_uses_unit_range(self, engineer):
        """A constant series normalizes to zeros without dividing by zero."""
        assert engineer.normalize([5, 5, 5], "threads") == [0.0, 0.0, 0.0]
        assert engineer.scalers["threads"].range == 1.0
        assert engineer.denormalize([0.0], "threads") == [5.0]

    def test_scalar_input(self, engineer):
        """A single number is treated as a one-element series."""
        engineer.normalize([0, 100], "cpu")

        assert engineer.denormalize(0.25, "cpu") == [25.0]

    def test_denormalize_unknown_key(self, engineer):
        """Inverting a never-fitted key is a usage error."""
        with pytest.raises(UnknownScalerError, match="io_read"):
            engineer.denormalize([0.5], "io_read")

    def test_unknown_scaler_is_lookup_error(self):
        assert issubclass(UnknownScalerError, LookupError)

    def test_normalize_empty_rejected(self, engineer):
        with pytest.raises(ValueError):
            engineer.normalize([], "cpu")

    def test_standardize(self, engineer):
        """Population z-scores."""
        result = engineer.standardize([2, 4, 4, 4, 5, 5, 7, 9], "x")

        assert engineer.standardizers["x"].mean == pytest.approx(5.0)
        assert engineer.standardizers["x"].std == pytest.approx(2.0)
        assert result[0] == pytest.approx(-1.5)

    def test_standardize_constant_series(self, engineer):
        """Degenerate std is floored to 1."""
        assert engineer.standardize([3, 3, 3], "x") == [0.0, 0.0, 0.0]
        assert engineer.standardizers["x"].std == 1.0


class TestEngineerFeatures:
    """Tests for feature derivation."""

    def test_empty_history_defaults(self, engineer, make_sample):
        """Rolling statistics are zero without history."""
        features = engineer.engineer_features(make_sample(cpu=40.0, memory=200.0, threads=4))

        assert features["cpu"] == 40.0
        assert features["cpu_per_thread"] == 10.0
        assert features["memory_per_thread"] == 50.0
        for name in ("cpu_mean", "cpu_std", "cpu_trend", "memory_mean", "memory_std"):
            assert features[name] == 0.0

    def test_rolling_statistics(self, engineer, make_sample):
        """Mean, population std and OLS slope over the history."""
        history = [{"cpu": c, "memory": 100.0} for c in (10.0, 20.0, 30.0)]

        features = engineer.engineer_features(make_sample(cpu=35.0), history)

        assert features["cpu_mean"] == pytest.approx(20.0)
        assert features["cpu_std"] == pytest.approx(math.sqrt(200 / 3))
        assert features["cpu_trend"] == pytest.approx(10.0)
        assert features["memory_trend"] == pytest.approx(0.0)

    def test_accepts_mapping_and_missing_threads(self, engineer):
        """A plain dict works and zero threads count as one."""
        features = engineer.engineer_features({"cpu": 12.0, "memory": 6.0, "threads": 0})

        assert features["threads"] == 1.0
        assert features["cpu_per_thread"] == 12.0

    def test_feature_vector_order(self, engineer, make_sample):
        """The vector follows FEATURE_NAMES."""
        sample = make_sample(cpu=50.0, memory=500.0, threads=5, io_read=7.0, io_write=3.0)

        vector = engineer.feature_vector(sample)

        assert len(vector) == len(FEATURE_NAMES) == 13
        assert vector[:5] == [50.0, 500.0, 5.0, 7.0, 3.0]

    def test_trend_slope_short_series(self):
        assert trend_slope([]) == 0.0
        assert trend_slope([4.0]) == 0.0
        assert trend_slope([1.0, 3.0, 5.0]) == pytest.approx(2.0)


class TestFillMissing:
    """Tests for missing-value imputation."""

    def test_mean(self, engineer):
        assert engineer.fill_missing([1.0, None, 3.0], "mean") == [1.0, 2.0, 3.0]

    def test_median_picks_upper_middle(self, engineer):
        """With an even count the upper of the two middle values is used."""
        assert engineer.fill_missing([1.0, float("nan"), 2.0, 8.0, 4.0], "median") == [
            1.0,
            4.0,
            2.0,
            8.0,
            4.0,
        ]

    def test_zero(self, engineer):
        assert engineer.fill_missing([None, 5.0], "zero") == [0.0, 5.0]

    def test_all_missing_returned_unchanged(self, engineer):
        series = [None, None]
        assert engineer.fill_missing(series, "mean") == [None, None]

    def test_unknown_strategy(self, engineer):
        with pytest.raises(ValueError, match="Unknown fill strategy"):
            engineer.fill_missing([1.0], "mode")


class TestCreateWindows:
    """Tests for sliding windows."""

    def test_windows_and_stride(self, engineer):
        windows = engineer.create_windows([1, 2, 3, 4, 5], window_size=3, stride=2)

        assert list(windows) == [[1, 2, 3], [3, 4, 5]]
        assert len(windows) == 2

    def test_restartable(self, engineer):
        """Iterating twice yields the same windows."""
        windows = engineer.create_windows(range(4), window_size=2)

        assert list(windows) == list(windows) == [[0, 1], [1, 2], [2, 3]]

    def test_short_series_is_empty(self, engineer):
        windows = engineer.create_windows([1, 2], window_size=5)

        assert list(windows) == []
        assert len(windows) == 0

    def test_invalid_sizes(self, engineer):
        with pytest.raises(ValueError):
            engineer.create_windows([1, 2, 3], window_size=0)
        with pytest.raises(ValueError):
            engineer.create_windows([1, 2, 3], stride=0)
