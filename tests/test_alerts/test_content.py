"""Tests for alert message and digest summary text."""

from puretrack.alerts.content import generate_alert_content, summarize_for_digest


class TestGenerateAlertContent:
    def test_critical_threshold(self):
        message, action = generate_alert_content("tds", 1200.0, "Critical", "threshold")
        assert message == "TDS (Total Dissolved Solids) has reached critical level: 1200.00 ppm"
        assert action.startswith("Immediate action required.")

    def test_warning_threshold_with_building_only(self):
        message, action = generate_alert_content(
            "turbidity", 6.0, "Warning", "threshold", building="Main",
        )
        assert message == "[Main] Turbidity has reached warning level: 6.00 NTU"
        assert action.startswith("Monitor closely at Main")

    def test_advisory(self):
        _, action = generate_alert_content("ph", 7.0, "Advisory", "threshold")
        assert action.startswith("Continue monitoring.")

    def test_trend(self):
        message, action = generate_alert_content(
            "ph", 5.9, "Warning", "trend", trend_direction="decreasing",
        )
        assert message == "pH Level is decreasing abnormally: 5.90"
        assert "decreasing trend" in action

    def test_floor_without_building_is_ignored(self):
        message, _ = generate_alert_content("ph", 9.2, "Critical", "threshold", floor="2F")
        assert not message.startswith("[")


class TestSummarizeForDigest:
    def test_with_location(self):
        assert summarize_for_digest("ph", 9.2, "Critical", "Main", "2F") == (
            "Critical: pH 9.20 at Main, 2F"
        )

    def test_with_unit(self):
        assert summarize_for_digest("tds", 1200, "Critical") == "Critical: TDS 1200.00 ppm"
