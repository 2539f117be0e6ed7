"""Tests for bewell.samples -- rolling sensor windows and ingestion filters."""

from __future__ import annotations

import pytest

from bewell.samples import (
    ACCEL_CAPACITY,
    AUDIO_CAPACITY,
    GPS_ACCURACY_UNKNOWN,
    SPEED_CAPACITY,
    SampleBuffer,
    SensorKind,
    SensorWindows,
    accel_magnitude,
    filter_speed,
    normalize_metering,
)

from tests.conftest import at


class TestSampleBuffer:
    def test_rejects_non_positive_capacity(self):
        with pytest.raises(ValueError):
            SampleBuffer(0)

    def test_push_and_snapshot_in_order(self):
        buf = SampleBuffer(5)
        for i in range(3):
            buf.push(float(i), at(10, 0, i))
        snap = buf.snapshot()
        assert [s.value for s in snap] == [0.0, 1.0, 2.0]
        assert snap[0].timestamp == at(10, 0, 0)
        assert len(buf) == 3

    def test_overflow_drops_oldest(self):
        buf = SampleBuffer(3)
        for i in range(5):
            buf.push(float(i))
        assert buf.values() == (2.0, 3.0, 4.0)
        assert len(buf) == buf.capacity == 3

    def test_values_last_n(self):
        buf = SampleBuffer(10)
        for i in range(6):
            buf.push(float(i))
        assert buf.values(last=2) == (4.0, 5.0)
        assert buf.values(last=100) == buf.values()
        assert buf.values(last=0) == ()

    def test_snapshot_is_immutable_copy(self):
        buf = SampleBuffer(3)
        buf.push(1.0)
        snap = buf.snapshot()
        buf.push(2.0)
        assert len(snap) == 1

    def test_latest_and_clear(self):
        buf = SampleBuffer(3)
        assert buf.latest() is None
        buf.push(7.0)
        assert buf.latest().value == 7.0
        buf.clear()
        assert len(buf) == 0


class TestIngestionHelpers:
    def test_magnitude_at_rest(self):
        assert accel_magnitude(0.0, 0.0, 1.0) == pytest.approx(1.0)

    def test_magnitude_3_4_5(self):
        assert accel_magnitude(0.3, 0.4, 0.0) == pytest.approx(0.5)

    def test_speed_kept_with_good_fix(self):
        assert filter_speed(1.4, 8.0) == pytest.approx(1.4)

    def test_speed_zeroed_with_poor_fix(self):
        assert filter_speed(1.4, 25.0) == 0.0

    def test_speed_zeroed_below_jitter(self):
        assert filter_speed(0.1, 5.0) == 0.0

    def test_missing_values(self):
        assert filter_speed(None, 5.0) == 0.0
        assert filter_speed(1.4, None) == 0.0

    def test_metering_range(self):
        assert normalize_metering(-160.0) == 0.0
        assert normalize_metering(0.0) == pytest.approx(100.0)
        assert normalize_metering(-80.0) == pytest.approx(50.0)

    def test_metering_clamped(self):
        assert normalize_metering(-200.0) == 0.0
        assert normalize_metering(20.0) == 100.0


class TestSensorWindows:
    def test_default_capacities(self):
        windows = SensorWindows()
        assert windows.acceleration.capacity == ACCEL_CAPACITY
        assert windows.speed.capacity == SPEED_CAPACITY
        assert windows.audio.capacity == AUDIO_CAPACITY
        assert windows.gps_accuracy == GPS_ACCURACY_UNKNOWN

    def test_push_acceleration_stores_magnitude(self):
        windows = SensorWindows()
        sample = windows.push_acceleration(0.0, 0.6, 0.8, at(9))
        assert sample.value == pytest.approx(1.0)
        assert windows.acceleration.values() == (pytest.approx(1.0),)

    def test_push_location_tracks_accuracy(self):
        windows = SensorWindows()
        windows.push_location(1.2, 5.0)
        assert windows.gps_accuracy == 5.0
        assert windows.speed.values() == (pytest.approx(1.2),)
        windows.push_location(1.2, None)
        assert windows.gps_accuracy == GPS_ACCURACY_UNKNOWN
        assert windows.speed.values()[-1] == 0.0

    def test_push_audio_level_or_metering(self):
        windows = SensorWindows()
        windows.push_audio(level=42.0)
        windows.push_audio(metering=-80.0)
        assert windows.audio.values() == (42.0, pytest.approx(50.0))
        assert windows.audio_level == pytest.approx(50.0)

    def test_push_audio_requires_a_value(self):
        with pytest.raises(ValueError):
            SensorWindows().push_audio()

    def test_smoothed_speed(self):
        windows = SensorWindows()
        assert windows.smoothed_speed == 0.0
        windows.push_location(1.0, 5.0)
        windows.push_location(2.0, 5.0)
        assert windows.smoothed_speed == pytest.approx(1.5)

    def test_audio_level_defaults_to_zero(self):
        assert SensorWindows().audio_level == 0.0

    def test_buffer_by_kind(self):
        windows = SensorWindows()
        assert windows.buffer(SensorKind.AUDIO) is windows.audio
        assert windows.buffer("speed") is windows.speed

    def test_clear(self):
        windows = SensorWindows()
        windows.push_acceleration(0, 0, 1)
        windows.push_location(1.0, 5.0)
        windows.push_audio(level=10)
        windows.clear()
        assert len(windows.acceleration) == len(windows.speed) == len(windows.audio) == 0
        assert windows.gps_accuracy == GPS_ACCURACY_UNKNOWN
        assert windows.audio_level == 0.0
