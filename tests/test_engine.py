"""Tests for the alert detection engine and the rules manager."""
import pytest
import textwrap
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

from conftest import make_metric, make_window
from alerts.engine import AlertDetectionEngine, deduplicate_and_prioritize
from alerts.rules_manager import (
    DEFAULT_RULES_PATH, RuleError, RulesManager, infer_alert_type, infer_component, parse_rule,
)
from models.alerts import AlertDetectionResult, AnomalyResult
from models.enums import AlertSeverity, AlertType, Operator, RuleActionType
from models.metrics import SensorReading


class MockRulesManager:
    """Minimal rules manager for testing."""
    def __init__(self, rules=None):
        self._rules = rules or []

    def get_enabled_rules(self):
        return [r for r in self._rules if r.enabled]

    def get_all_rules(self):
        return self._rules

    def get_rule(self, rule_id):
        return next((r for r in self._rules if r.id == rule_id), None)


def _analyzer(result=None):
    analyzer = MagicMock()
    analyzer.analyze_pattern.return_value = result or AnomalyResult.none()
    return analyzer


def _rule(rule_id="r1", name="Consumption Watch", metric="consumption", op=">", value=250,
          severity="critical", enabled=True, **extra):
    return parse_rule({
        "id": rule_id, "name": name, "severity": severity, "enabled": enabled,
        "conditions": [{"metric": metric, "operator": op, "value": value}],
        **extra,
    })


def _result(severity, type_="consumption", component="grid_load", title="t"):
    return AlertDetectionResult(severity=AlertSeverity(severity), type=AlertType(type_),
                                affected_component=component, title=title)


class TestDeduplicate:
    def test_first_wins(self):
        batch = deduplicate_and_prioritize([
            _result("critical", title="ai"),
            _result("critical", title="threshold"),
        ])
        assert [r.title for r in batch] == ["ai"]

    def test_different_severity_kept(self):
        batch = deduplicate_and_prioritize([_result("warning"), _result("critical")])
        assert len(batch) == 2

    def test_sorted_by_severity_stable(self):
        batch = deduplicate_and_prioritize([
            _result("info", component="a", title="1"),
            _result("warning", component="b", title="2"),
            _result("critical", component="c", title="3"),
            _result("warning", component="d", title="4"),
        ])
        assert [r.title for r in batch] == ["3", "2", "4", "1"]

    def test_empty(self):
        assert deduplicate_and_prioritize([]) == []

    def test_idempotent_on_four_pass_output(self):
        ai = AnomalyResult(is_anomaly=True, score=0.95, type="consumption", severity="critical",
                           description="spike", affected_component="grid_load")
        engine = AlertDetectionEngine(_analyzer(ai), MockRulesManager([_rule(name="Consumption Spike Detection")]))
        start = datetime.now(timezone.utc) - timedelta(hours=24)
        window = [make_metric(consumption=150.0 + i * 5, generation=120.0 - i * 4,
                              timestamp=start + timedelta(hours=i))
                  for i in range(23)]
        window.append(make_metric(consumption=375.0, generation=30.0, storage=8.0, battery_health=80.0,
                                  timestamp=start + timedelta(hours=23)))

        raw = []
        for run in (engine._ai_pass, engine._rule_pass, engine._threshold_pass, engine._trend_pass):
            raw.extend(run(window))
        once = deduplicate_and_prioritize(raw)

        assert len(raw) > len(once) > 1
        assert deduplicate_and_prioritize(once) == once
        assert deduplicate_and_prioritize(raw + raw) == once
        assert len({r.dedup_key for r in once}) == len(once)
        assert engine.detect(window) == once


class TestDetectionEngine:
    def test_quiet_window(self):
        engine = AlertDetectionEngine(_analyzer(), MockRulesManager())
        assert engine.detect(make_window(24)) == []

    def test_empty_window(self):
        engine = AlertDetectionEngine(_analyzer(), MockRulesManager([_rule()]))
        assert engine.detect([]) == []

    def test_ai_result_mapped(self):
        ai = AnomalyResult(is_anomaly=True, score=0.7, type="storage", severity="high",
                           description="odd drain")
        batch = AlertDetectionEngine(_analyzer(ai), MockRulesManager()).detect(make_window(24))
        assert len(batch) == 1
        r = batch[0]
        assert r.title == "AI Anomaly Detected"
        assert r.severity == AlertSeverity.CRITICAL
        assert r.type == AlertType.STORAGE
        assert r.affected_component == "unknown"
        assert r.metadata["ai_confidence"] == 0.7

    def test_consumption_spike_deduplicated_across_passes(self):
        # AI screen, threshold pass, and the rule all describe the same spike
        ai = AnomalyResult(is_anomaly=True, score=0.95, type="consumption", severity="critical",
                           description="spike", affected_component="grid_load")
        rule = _rule(name="Consumption Spike Detection")
        window = make_window(23) + [make_metric(consumption=375.0)]
        batch = AlertDetectionEngine(_analyzer(ai), MockRulesManager([rule])).detect(window)
        grid = [r for r in batch if r.dedup_key == "consumption-critical-grid_load"]
        assert len(grid) == 1
        assert grid[0].title == "AI Anomaly Detected"

    def test_threshold_pass(self):
        window = make_window(23) + [make_metric(storage=8.0, battery_health=80.0)]
        batch = AlertDetectionEngine(_analyzer(), MockRulesManager()).detect(window)
        titles = [r.title for r in batch]
        assert titles == ["Critical Battery Level", "Battery Health Degrading"]
        assert batch[0].metadata["threshold"] == 10

    def test_rule_pass(self):
        rule = _rule(rule_id="low-storage", name="Battery Low", metric="storage", op="<", value=40,
                     severity="warning")
        window = make_window(23) + [make_metric(storage=30.0)]
        batch = AlertDetectionEngine(_analyzer(), MockRulesManager([rule])).detect(window)
        assert len(batch) == 1
        r = batch[0]
        assert r.title == "Battery Low"
        assert r.description == "Rule triggered: Battery Low"
        assert r.confidence == 0.9
        assert r.type == AlertType.STORAGE
        assert r.affected_component == "battery_system"
        assert r.metadata["rule_id"] == "low-storage"

    def test_disabled_rule_skipped(self):
        rule = _rule(name="Battery Low", metric="storage", op="<", value=40, enabled=False)
        window = make_window(23) + [make_metric(storage=30.0)]
        assert AlertDetectionEngine(_analyzer(), MockRulesManager([rule])).detect(window) == []

    def test_conditions_are_anded(self):
        rule = parse_rule({
            "id": "both", "name": "Consumption and storage", "conditions": [
                {"metric": "consumption", "operator": ">", "value": 200},
                {"metric": "storage", "operator": "<", "value": 20},
            ],
        })
        engine = AlertDetectionEngine(_analyzer(), MockRulesManager([rule]))
        assert engine.evaluate_rule(rule, make_metric(consumption=210.0, storage=50.0)) is False
        assert engine.evaluate_rule(rule, make_metric(consumption=210.0, storage=15.0)) is True

    @pytest.mark.parametrize("metric", ["batteryHealth", "battery_health"])
    def test_rule_metric_accepts_api_and_field_names(self, metric):
        rule = _rule(rule_id="wear", name="Battery Wear", metric=metric, op="<", value=90)
        engine = AlertDetectionEngine(_analyzer(), MockRulesManager([rule]))
        assert engine.evaluate_rule(rule, make_metric(battery_health=80.0)) is True
        assert engine.evaluate_rule(rule, make_metric(battery_health=95.0)) is False

    def test_rule_uses_sensor_data(self):
        rule = _rule(rule_id="hot", name="Inverter Temperature", metric="temperature", value=70)
        now = datetime.now(timezone.utc)
        sensors = [
            SensorReading(sensor_type="temperature", value=90.0, timestamp=now - timedelta(minutes=5)),
            SensorReading(sensor_type="temperature", value=60.0, timestamp=now),
        ]
        engine = AlertDetectionEngine(_analyzer(), MockRulesManager([rule]))
        # newest sensor reading wins
        assert engine.evaluate_rule(rule, make_metric(), sensors) is False
        assert engine.evaluate_rule(rule, make_metric(), sensors[:1]) is True
        assert engine.evaluate_rule(rule, make_metric(), None) is False

    def test_trend_pass(self):
        window = [make_metric(consumption=100.0 + i * 5, generation=100.0 - i * 5,
                              timestamp=datetime.now(timezone.utc) + timedelta(hours=i))
                  for i in range(12)]
        batch = AlertDetectionEngine(_analyzer(), MockRulesManager()).detect(window)
        titles = {r.title for r in batch}
        assert titles == {"Rising Consumption Trend", "Generation Dropping"}
        for r in batch:
            assert r.severity == AlertSeverity.WARNING
            assert r.metadata["detection_method"] == "pattern_analysis"

    def test_failing_pass_isolated(self):
        analyzer = MagicMock()
        analyzer.analyze_pattern.side_effect = RuntimeError("boom")
        window = make_window(23) + [make_metric(storage=8.0)]
        batch = AlertDetectionEngine(analyzer, MockRulesManager()).detect(window)
        assert [r.title for r in batch] == ["Critical Battery Level"]

    def test_failing_rule_isolated(self):
        bad = _rule(rule_id="bad", name="Bad Rule")
        bad.conditions[0].operator = "~~"
        good = _rule(rule_id="good", name="Battery Low", metric="storage", op="<", value=40)
        window = make_window(23) + [make_metric(storage=30.0)]
        batch = AlertDetectionEngine(_analyzer(), MockRulesManager([bad, good])).detect(window)
        assert [r.title for r in batch] == ["Battery Low"]

    def test_test_rules_includes_disabled(self):
        rules = [_rule(enabled=False), _rule(rule_id="r2", name="Battery Low", metric="storage",
                                             op="<", value=100)]
        results = AlertDetectionEngine(_analyzer(), MockRulesManager(rules)).test_rules(make_window(3))
        assert [r["would_fire"] for r in results] == [False, True]
        assert results[0]["enabled"] is False
        assert results[1]["conditions"][0]["current_value"] == 60.0


class TestRuleParsing:
    def test_defaults(self):
        rule = _rule()
        assert rule.actions[0].type == RuleActionType.CREATE_ALERT
        assert rule.conditions[0].operator == Operator.GT
        assert rule.alert_type == AlertType.CONSUMPTION
        assert rule.component == "grid_load"

    def test_no_conditions(self):
        with pytest.raises(RuleError):
            parse_rule({"id": "x", "conditions": []})

    def test_unknown_operator(self):
        with pytest.raises(RuleError):
            _rule(op="=~")

    def test_unknown_action(self):
        with pytest.raises(RuleError):
            _rule(actions=[{"type": "page_the_ceo"}])

    def test_explicit_type_and_component(self):
        rule = _rule(alert_type="device_fault", component="inverter_1")
        assert rule.alert_type == AlertType.DEVICE_FAULT
        assert rule.component == "inverter_1"

    @pytest.mark.parametrize("name,alert_type,component", [
        ("Consumption Spike", AlertType.CONSUMPTION, "grid_load"),
        ("Battery Critical", AlertType.STORAGE, "battery_system"),
        ("Solar Degradation", AlertType.GENERATION, "solar_panels"),
        ("Device Fault", AlertType.DEVICE_FAULT, "system"),
        ("Weekly Check", AlertType.SYSTEM_HEALTH, "system"),
    ])
    def test_inference(self, name, alert_type, component):
        assert infer_alert_type(name) == alert_type
        assert infer_component(name) == component


class TestRulesManager:
    def test_default_rules_load(self):
        rm = RulesManager()
        assert rm.rules_path == DEFAULT_RULES_PATH
        ids = [r.id for r in rm.get_all_rules()]
        assert ids == ["consumption-spike", "battery-critical", "solar-degradation"]
        assert rm.get_rule("battery-critical").actions[1].type == RuleActionType.ESCALATE

    def test_invalid_rule_skipped(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text(textwrap.dedent("""
            rules:
              - id: ok
                name: Storage Low
                conditions:
                  - {metric: storage, operator: "<", value: 20}
              - id: broken
                name: Broken
                conditions:
                  - {metric: storage, operator: "<>", value: 20}
              - id: off
                name: Solar Off
                enabled: false
                conditions:
                  - {metric: solarEfficiency, operator: "<", value: 60}
        """))
        rm = RulesManager(path)
        assert [r.id for r in rm.get_all_rules()] == ["ok", "off"]
        assert [r.id for r in rm.get_enabled_rules()] == ["ok"]

    def test_missing_file(self, tmp_path):
        rm = RulesManager(tmp_path / "nope.yaml")
        assert rm.get_all_rules() == []

    def test_add_rule_replaces_same_id(self, tmp_path):
        rm = RulesManager(tmp_path / "nope.yaml")
        rm.add_rule(_rule(value=100))
        rm.add_rule(_rule(value=200))
        assert len(rm.get_all_rules()) == 1
        assert rm.get_rule("r1").conditions[0].value == 200
