"""Threshold table shared by the rule-based detector and the detection engine.

Rows are tagged by purpose. ``screening`` rows drive the first-match-wins
rule-based detector; ``monitoring`` rows drive the cumulative threshold pass
of the detection engine. The two storage cutoffs (5 % and 10 %) differ on
purpose and are kept separate here.
"""
from dataclasses import dataclass

from models.enums import AlertSeverity, AlertType, DetectorSeverity, Operator

SCREENING = "screening"
MONITORING = "monitoring"

OPERATOR_MAP = {
    Operator.GT: lambda v, t: v > t,
    Operator.LT: lambda v, t: v < t,
    Operator.GTE: lambda v, t: v >= t,
    Operator.LTE: lambda v, t: v <= t,
    Operator.EQ: lambda v, t: v == t,
    Operator.NE: lambda v, t: v != t,
}

_missing = set(Operator) - set(OPERATOR_MAP)
if _missing:
    raise RuntimeError(f"Operators without an evaluator: {sorted(o.value for o in _missing)}")


def compare(value, operator, threshold):
    """Evaluate ``value <operator> threshold``; unknown operators raise ValueError."""
    if value is None:
        return False
    return OPERATOR_MAP[Operator(operator)](value, threshold)


@dataclass(frozen=True)
class Threshold:
    purpose: str
    metric: str
    operator: Operator
    value: float
    severity: str
    score: float
    alert_type: AlertType
    component: str
    title: str
    description: str


THRESHOLDS = (
    # Screening: first match wins, detector severity scale
    Threshold(SCREENING, "consumption", Operator.GT, 300, DetectorSeverity.CRITICAL, 0.95,
              AlertType.CONSUMPTION, "grid_load", "Critical Consumption Spike",
              "Extreme consumption spike: {value:.1f} kW (normal range: 80-250 kW)"),
    Threshold(SCREENING, "storage", Operator.LT, 5, DetectorSeverity.CRITICAL, 0.90,
              AlertType.STORAGE, "battery_system", "Critical Battery Level",
              "Critical battery level: {value:.1f}% (minimum safe level: 15%)"),
    Threshold(SCREENING, "solar_efficiency", Operator.LT, 50, DetectorSeverity.HIGH, 0.85,
              AlertType.GENERATION, "solar_panels", "Solar Efficiency Degraded",
              "Solar panel efficiency critically low: {value:.1f}% (normal range: 75-98%)"),
    Threshold(SCREENING, "battery_health", Operator.LT, 85, DetectorSeverity.MEDIUM, 0.80,
              AlertType.DEVICE_FAULT, "battery_system", "Battery Health Degrading",
              "Battery health degraded: {value:.1f}% (normal range: 90-100%)"),
    # Monitoring: cumulative, alert severity scale
    Threshold(MONITORING, "consumption", Operator.GT, 300, AlertSeverity.CRITICAL, 0.95,
              AlertType.CONSUMPTION, "grid_load", "Critical Consumption Spike",
              "Critical consumption spike: {value:.1f} kW (threshold: 300 kW)"),
    Threshold(MONITORING, "storage", Operator.LT, 10, AlertSeverity.CRITICAL, 0.98,
              AlertType.STORAGE, "battery_system", "Critical Battery Level",
              "Critical battery level: {value:.1f}% (minimum: 10%)"),
    Threshold(MONITORING, "solar_efficiency", Operator.LT, 50, AlertSeverity.WARNING, 0.85,
              AlertType.GENERATION, "solar_panels", "Solar Efficiency Degraded",
              "Solar efficiency degraded: {value:.1f}% (normal: >75%)"),
    Threshold(MONITORING, "battery_health", Operator.LT, 85, AlertSeverity.WARNING, 0.80,
              AlertType.DEVICE_FAULT, "battery_system", "Battery Health Degrading",
              "Battery health degraded: {value:.1f}% (normal: >90%)"),
)


def thresholds_for(purpose):
    return [t for t in THRESHOLDS if t.purpose == purpose]


def breached(metric, purpose):
    """Thresholds of ``purpose`` that the reading crosses, in table order."""
    return [t for t in thresholds_for(purpose)
            if compare(metric.value_of(t.metric), t.operator, t.value)]
