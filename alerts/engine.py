"""Alert detection engine: AI, rule, threshold and trend passes merged into one batch."""
import logging

from alerts.thresholds import MONITORING, breached, compare
from models.alerts import AlertDetectionResult
from models.enums import AlertSeverity, AlertType, SEVERITY_RANK, map_alert_type, map_severity
from monitor.trend import TrendAnalyzer

logger = logging.getLogger("microgrid.alerts.engine")

RULE_CONFIDENCE = 0.9
CONSUMPTION_TREND_LIMIT = 0.1
GENERATION_TREND_LIMIT = -0.15


def deduplicate_and_prioritize(results):
    """Keep the first result per (type, severity, component), most severe first.

    The sort is stable, so results of equal severity keep pass order.
    """
    seen = set()
    unique = []
    for r in results:
        if r.dedup_key in seen:
            continue
        seen.add(r.dedup_key)
        unique.append(r)
    return sorted(unique, key=lambda r: SEVERITY_RANK[AlertSeverity(r.severity)], reverse=True)


def _sensor_value(metric, sensor_data):
    readings = [s for s in sensor_data or [] if s.sensor_type == metric]
    if not readings:
        return None
    return max(readings, key=lambda s: s.timestamp).value


class AlertDetectionEngine:
    def __init__(self, analyzer, rules_manager, trend_analyzer=None):
        self.analyzer = analyzer
        self.rules_manager = rules_manager
        self.trend_analyzer = trend_analyzer or TrendAnalyzer()

    def detect(self, metrics, sensor_data=None):
        """Run every pass over the window and return the merged batch."""
        metrics = list(metrics)
        passes = (
            ("ai", self._ai_pass),
            ("rules", self._rule_pass),
            ("threshold", self._threshold_pass),
            ("trend", self._trend_pass),
        )
        results = []
        for name, run in passes:
            try:
                results.extend(run(metrics, sensor_data))
            except Exception as e:
                logger.warning(f"Detection pass '{name}' failed: {e}")
        batch = deduplicate_and_prioritize(results)
        logger.info(f"Detection over {len(metrics)} readings: {len(results)} raw, {len(batch)} after dedup")
        return batch

    # ─── Passes ──────────────────────────────────────────

    def _ai_pass(self, metrics, sensor_data=None):
        result = self.analyzer.analyze_pattern(metrics)
        if not result.is_anomaly:
            return []
        return [AlertDetectionResult(
            severity=map_severity(result.severity),
            type=map_alert_type(result.type),
            title="AI Anomaly Detected",
            description=result.description or "AI detected anomaly",
            confidence=result.score,
            affected_component=result.affected_component or "unknown",
            metadata={
                "ai_confidence": result.score,
                "ai_type": result.type,
                "detection_method": "ai_analysis",
            },
        )]

    def _rule_pass(self, metrics, sensor_data=None):
        if not metrics:
            return []
        latest = metrics[-1]
        results = []
        for rule in self.rules_manager.get_enabled_rules():
            try:
                if self.evaluate_rule(rule, latest, sensor_data):
                    results.append(self.result_from_rule(rule, latest))
            except Exception as e:
                logger.warning(f"Rule evaluation failed for {rule.name}: {e}")
        return results

    def _threshold_pass(self, metrics, sensor_data=None):
        if not metrics:
            return []
        latest = metrics[-1]
        results = []
        for t in breached(latest, MONITORING):
            value = latest.value_of(t.metric)
            results.append(AlertDetectionResult(
                severity=AlertSeverity(t.severity),
                type=t.alert_type,
                title=t.title,
                description=t.description.format(value=value),
                confidence=t.score,
                affected_component=t.component,
                metadata={
                    "current_value": value,
                    "threshold": t.value,
                    "detection_method": "threshold",
                },
            ))
        return results

    def _trend_pass(self, metrics, sensor_data=None):
        trends = self.trend_analyzer.analyze(metrics)
        results = []

        consumption = trends.get("consumption")
        if consumption and consumption.direction == "increasing" and consumption.rate > CONSUMPTION_TREND_LIMIT:
            results.append(AlertDetectionResult(
                severity=AlertSeverity.WARNING,
                type=AlertType.CONSUMPTION,
                title="Rising Consumption Trend",
                description=f"Consumption trend increasing: {consumption.rate * 100:.1f}% over window",
                confidence=0.75,
                affected_component="grid_load",
                metadata={"trend": consumption.__dict__, "detection_method": "pattern_analysis"},
            ))

        generation = trends.get("generation")
        if generation and generation.direction == "decreasing" and generation.rate < GENERATION_TREND_LIMIT:
            results.append(AlertDetectionResult(
                severity=AlertSeverity.WARNING,
                type=AlertType.GENERATION,
                title="Generation Dropping",
                description=f"Generation dropping: {generation.rate * 100:.1f}% over window",
                confidence=0.80,
                affected_component="solar_panels",
                metadata={"trend": generation.__dict__, "detection_method": "pattern_analysis"},
            ))
        return results

    # ─── Rules ───────────────────────────────────────────

    def _condition_value(self, condition, latest, sensor_data):
        value = latest.value_of(condition.metric)
        if value is None:
            value = _sensor_value(condition.metric, sensor_data)
        return value

    def evaluate_rule(self, rule, latest, sensor_data=None):
        """All conditions must hold against the latest reading."""
        for condition in rule.conditions:
            value = self._condition_value(condition, latest, sensor_data)
            if not compare(value, condition.operator, condition.value):
                return False
        return True

    def result_from_rule(self, rule, latest):
        return AlertDetectionResult(
            severity=AlertSeverity(rule.severity),
            type=rule.alert_type or AlertType.SYSTEM_HEALTH,
            title=rule.name,
            description=f"Rule triggered: {rule.name}",
            confidence=RULE_CONFIDENCE,
            affected_component=rule.component or "system",
            metadata={
                "rule_id": rule.id,
                "rule_name": rule.name,
                "current_values": latest.to_dict(),
                "detection_method": "rule_based",
            },
        )

    def test_rules(self, metrics, sensor_data=None):
        """Evaluate ALL rules, enabled or not, against the latest reading."""
        metrics = list(metrics)
        if not metrics:
            return []
        latest = metrics[-1]
        results = []
        for rule in self.rules_manager.get_all_rules():
            conditions = []
            for c in rule.conditions:
                conditions.append({
                    "metric": c.metric,
                    "operator": c.operator.value,
                    "value": c.value,
                    "current_value": self._condition_value(c, latest, sensor_data),
                })
            results.append({
                "id": rule.id,
                "name": rule.name,
                "severity": AlertSeverity(rule.severity).value,
                "enabled": rule.enabled,
                "conditions": conditions,
                "would_fire": self.evaluate_rule(rule, latest, sensor_data),
            })
        return results
