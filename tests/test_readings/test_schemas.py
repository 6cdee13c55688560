"""Tests for sensor reading validation and snapshot fan-out."""

import math
from datetime import datetime, timezone

import pytest

from puretrack.readings.schemas import InvalidReadingError, SensorReading, SensorSnapshot

NOW = datetime(2026, 10, 17, 10, 0, 0, tzinfo=timezone.utc)


class TestSensorReading:
    def test_valid(self):
        reading = SensorReading("dev-1", "ph", 7.0, NOW)
        assert reading.value == 7.0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"device_id": ""},
            {"parameter": "chlorine"},
            {"value": "7"},
            {"value": True},
            {"value": math.nan},
            {"value": math.inf},
            {"observed_at": datetime(2026, 10, 17, 10, 0)},
        ],
    )
    def test_invalid(self, kwargs):
        fields = {"device_id": "dev-1", "parameter": "ph", "value": 7.0, "observed_at": NOW}
        fields.update(kwargs)
        with pytest.raises(InvalidReadingError):
            SensorReading(**fields)


class TestSensorSnapshot:
    def test_fans_out_present_values(self):
        snapshot = SensorSnapshot("dev-1", NOW, tds=200.0, turbidity=1.0)
        readings = snapshot.readings()
        assert [r.parameter for r in readings] == ["tds", "turbidity"]
        assert all(r.observed_at == NOW for r in readings)

    def test_from_dict_epoch_millis(self):
        snapshot = SensorSnapshot.from_dict(
            {"deviceId": "dev-1", "timestamp": int(NOW.timestamp() * 1000), "ph": 7.1},
        )
        assert snapshot.observed_at == NOW
        assert snapshot.ph == 7.1

    def test_from_dict_iso_naive_is_utc(self):
        snapshot = SensorSnapshot.from_dict({"device_id": "dev-1", "observed_at": "2026-10-17T10:00:00"})
        assert snapshot.observed_at == NOW

    def test_from_dict_iso_offset_normalized(self):
        snapshot = SensorSnapshot.from_dict({"deviceId": "dev-1", "timestamp": "2026-10-17T18:00:00+08:00"})
        assert snapshot.observed_at == NOW
        assert snapshot.observed_at.tzinfo == timezone.utc

    @pytest.mark.parametrize(
        "payload",
        [
            {"timestamp": 0},
            {"deviceId": "dev-1"},
            {"deviceId": "dev-1", "timestamp": "yesterday"},
            {"deviceId": "dev-1", "timestamp": True},
        ],
    )
    def test_from_dict_invalid(self, payload):
        with pytest.raises(InvalidReadingError):
            SensorSnapshot.from_dict(payload)
