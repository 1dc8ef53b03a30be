"""Tests for the threshold table, rule-based detector, and trend analysis."""
import pytest

from conftest import make_metric, make_window
from alerts.rule_detector import RuleBasedDetector
from alerts.thresholds import (
    MONITORING, SCREENING, OPERATOR_MAP, breached, compare, thresholds_for,
)
from models.enums import Operator
from monitor.trend import TrendAnalyzer, compute_trend


class TestCompare:
    @pytest.mark.parametrize("op,value,threshold,expected", [
        (">", 301, 300, True),
        (">", 300, 300, False),
        ("<", 4, 5, True),
        (">=", 5, 5, True),
        ("<=", 6, 5, False),
        ("==", 5, 5, True),
        ("!=", 5, 5, False),
    ])
    def test_operators(self, op, value, threshold, expected):
        assert compare(value, op, threshold) is expected

    def test_every_operator_has_evaluator(self):
        assert set(OPERATOR_MAP) == set(Operator)

    def test_missing_value_never_matches(self):
        assert compare(None, ">", 0) is False

    def test_unknown_operator(self):
        with pytest.raises(ValueError):
            compare(1, "~=", 1)


class TestThresholdTable:
    def test_purposes(self):
        assert len(thresholds_for(SCREENING)) == 4
        assert len(thresholds_for(MONITORING)) == 4

    def test_storage_cutoffs_differ_by_purpose(self):
        m = make_metric(storage=7.0)
        assert [t.metric for t in breached(m, SCREENING)] == []
        assert [t.metric for t in breached(m, MONITORING)] == ["storage"]


class TestRuleBasedDetector:
    def test_normal_reading(self):
        result = RuleBasedDetector().evaluate(make_metric())
        assert result.is_anomaly is False
        assert result.score == 0.0

    def test_none_reading(self):
        assert RuleBasedDetector().evaluate(None).is_anomaly is False

    def test_consumption_spike(self):
        result = RuleBasedDetector().evaluate(make_metric(consumption=375.0))
        assert result.is_anomaly
        assert result.severity == "critical"
        assert result.score == 0.95
        assert result.type == "consumption"
        assert result.affected_component == "grid_load"
        assert "375.0 kW" in result.description

    def test_storage_critical(self):
        result = RuleBasedDetector().evaluate(make_metric(storage=4.0))
        assert result.severity == "critical"
        assert result.score == 0.90
        assert result.affected_component == "battery_system"

    def test_solar_efficiency(self):
        result = RuleBasedDetector().evaluate(make_metric(solar_efficiency=45.0))
        assert result.severity == "high"
        assert result.type == "generation"
        assert result.affected_component == "solar_panels"

    def test_battery_health(self):
        result = RuleBasedDetector().evaluate(make_metric(battery_health=80.0))
        assert result.severity == "medium"
        assert result.type == "device_fault"
        assert result.score == 0.80

    def test_first_match_wins(self):
        result = RuleBasedDetector().evaluate(make_metric(consumption=350.0, storage=3.0))
        assert result.type == "consumption"
        assert result.affected_component == "grid_load"

    def test_boundaries_do_not_fire(self):
        m = make_metric(consumption=300.0, storage=5.0, solar_efficiency=50.0, battery_health=85.0)
        assert RuleBasedDetector().evaluate(m).is_anomaly is False


class TestTrend:
    def test_too_few_points(self):
        assert compute_trend([1.0] * 9) is None

    def test_zero_start_undefined(self):
        assert compute_trend([0.0] + [5.0] * 9) is None

    def test_increasing(self):
        t = compute_trend([100.0] * 9 + [120.0], "consumption")
        assert t.direction == "increasing"
        assert t.rate == pytest.approx(0.2)

    def test_decreasing(self):
        t = compute_trend([100.0] * 9 + [80.0])
        assert t.direction == "decreasing"
        assert t.rate == pytest.approx(-0.2)

    def test_stable_band(self):
        assert compute_trend([100.0] * 9 + [104.0]).direction == "stable"
        assert compute_trend([100.0] * 9 + [96.0]).direction == "stable"

    def test_analyzer_skips_undefined(self):
        window = make_window(12, generation=0.0)
        trends = TrendAnalyzer().analyze(window)
        assert "generation" not in trends
        assert trends["consumption"].direction == "stable"

    def test_analyzer_short_window(self):
        assert TrendAnalyzer().analyze(make_window(5)) == {}
