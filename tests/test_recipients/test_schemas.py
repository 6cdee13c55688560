"""Tests for NotificationPreference parsing."""

import pytest

from puretrack.recipients.schemas import NotificationPreference, parse_clock


class TestParseClock:
    @pytest.mark.parametrize("value, expected", [("22:00", (22, 0)), ("6:05", (6, 5)), (" 00:59 ", (0, 59))])
    def test_valid(self, value, expected):
        assert parse_clock(value) == expected

    @pytest.mark.parametrize("value", ["24:00", "12:60", "noon", ""])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_clock(value)


class TestFromDict:
    def test_camel_case_document(self):
        pref = NotificationPreference.from_dict({
            "userId": "user-1",
            "email": "operator@example.com",
            "emailNotifications": True,
            "alertSeverities": ["Critical", "Warning"],
            "parameters": ["ph"],
            "devices": ["dev-1"],
            "quietHoursEnabled": True,
            "quietHoursStart": "22:00",
            "quietHoursEnd": "06:00",
        })
        assert pref.user_id == "user-1"
        assert pref.severities == frozenset({"Critical", "Warning"})
        assert pref.device_ids == frozenset({"dev-1"})
        assert pref.quiet_hours_enabled
        assert pref.time_zone == "UTC"

    def test_snake_case_row_with_json_arrays(self):
        pref = NotificationPreference.from_dict({
            "user_id": "user-2",
            "email": "b@example.com",
            "email_enabled": True,
            "severities": '["Critical"]',
            "parameters": None,
            "device_ids": [],
            "time_zone": "Asia/Manila",
        })
        assert pref.severities == frozenset({"Critical"})
        assert pref.parameters == frozenset()
        assert pref.time_zone == "Asia/Manila"

    def test_missing_email_flag_means_disabled(self):
        pref = NotificationPreference.from_dict({"userId": "u", "email": "u@example.com"})
        assert not pref.email_enabled

    def test_invalid_quiet_hours_rejected(self):
        with pytest.raises(ValueError):
            NotificationPreference.from_dict({"userId": "u", "quietHoursStart": "25:00"})

    def test_missing_user_rejected(self):
        with pytest.raises(ValueError):
            NotificationPreference(user_id="", email="x@example.com")
