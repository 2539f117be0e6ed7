"""Tests for bewell.analytics.features -- window statistics."""

import numpy as np
import pytest

from bewell.analytics.features import is_still, peak_rate, tail, window_stats


class TestWindowStats:
    def test_empty_window(self):
        stats = window_stats([])
        assert stats.count == 0
        assert stats.mean == stats.std == stats.minimum == stats.maximum == 0.0

    def test_constant_window(self):
        stats = window_stats([1.0] * 10)
        assert stats.mean == pytest.approx(1.0)
        assert stats.std == pytest.approx(0.0)

    def test_population_std(self):
        # ddof=0: std of [1, 3] is 1, not sqrt(2)
        stats = window_stats([1.0, 3.0])
        assert stats.mean == pytest.approx(2.0)
        assert stats.std == pytest.approx(1.0)

    def test_min_max(self):
        stats = window_stats([4.0, -1.0, 9.0])
        assert stats.minimum == -1.0
        assert stats.maximum == 9.0
        assert stats.count == 3

    def test_accepts_numpy_input(self):
        stats = window_stats(np.array([2.0, 4.0, 6.0]))
        assert stats.mean == pytest.approx(4.0)


class TestTail:
    def test_newest_n(self):
        assert tail([1, 2, 3, 4], 2) == [3, 4]

    def test_shorter_than_n(self):
        assert tail([1, 2], 5) == [1, 2]

    def test_zero(self):
        assert tail([1, 2], 0) == []


class TestPeakRate:
    def test_empty(self):
        assert peak_rate([], 8.0) == 0.0

    def test_single_spike(self):
        # mean 4, threshold 12 → only the 20 is a peak
        assert peak_rate([0.0, 0.0, 0.0, 0.0, 20.0], 8.0) == pytest.approx(0.2)

    def test_flat_signal_has_no_peaks(self):
        assert peak_rate([30.0] * 50, 8.0) == 0.0

    def test_strictly_above_threshold(self):
        # mean 5, threshold 10; the 10 sits exactly on it
        assert peak_rate([0.0, 10.0], 5.0) == 0.0


class TestIsStill:
    def test_all_within_tolerance(self):
        assert is_still([1.0, 1.05, 0.95], 1.0, 0.1)

    def test_one_outlier(self):
        assert not is_still([1.0, 1.0, 1.2], 1.0, 0.1)

    def test_boundary_is_not_still(self):
        assert not is_still([1.5], 1.0, 0.5)

    def test_empty_is_not_still(self):
        assert not is_still([], 1.0, 0.1)
