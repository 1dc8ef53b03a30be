"""Enums for metrics, alert severity, lifecycle status, and rule definitions."""
from enum import Enum


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class DetectorSeverity(str, Enum):
    """Severity scale used by anomaly detectors before mapping to alerts."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AlertType(str, Enum):
    CONSUMPTION = "consumption"
    GENERATION = "generation"
    STORAGE = "storage"
    DEVICE_FAULT = "device_fault"
    SYSTEM_HEALTH = "system_health"
    ANOMALY = "anomaly"


class AnomalyType(str, Enum):
    CONSUMPTION = "consumption"
    GENERATION = "generation"
    STORAGE = "storage"
    DEVICE_FAULT = "device_fault"


class AlertStatus(str, Enum):
    ACTIVE = "active"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class AlertSource(str, Enum):
    SENSOR = "sensor"
    AI_DETECTION = "ai_detection"
    MANUAL = "manual"
    SYSTEM = "system"


class InteractionAction(str, Enum):
    VIEW = "view"
    ACKNOWLEDGE = "acknowledge"
    RESOLVE = "resolve"
    DISMISS = "dismiss"
    ESCALATE = "escalate"
    ADD_NOTES = "add_notes"


class RuleType(str, Enum):
    THRESHOLD = "threshold"
    PATTERN = "pattern"
    AI = "ai"
    STATISTICAL = "statistical"


class RuleActionType(str, Enum):
    CREATE_ALERT = "create_alert"
    SEND_NOTIFICATION = "send_notification"
    ESCALATE = "escalate"
    LOG = "log"


class Operator(str, Enum):
    GT = ">"
    LT = "<"
    GTE = ">="
    LTE = "<="
    EQ = "=="
    NE = "!="


class AnomalyKind(str, Enum):
    CONSUMPTION_SPIKE = "consumption_spike"
    GENERATION_DROP = "generation_drop"
    STORAGE_DRAIN = "storage_drain"


class Channel(str, Enum):
    DASHBOARD = "dashboard"
    WEBSOCKET = "websocket"
    EMAIL = "email"
    SMS = "sms"
    PUSH = "push"


class DeliveryStatus(str, Enum):
    SENT = "sent"
    LOGGED = "logged"
    FAILED = "failed"
    SKIPPED = "skipped"


# Detector severity -> alert severity
SEVERITY_MAP = {
    DetectorSeverity.CRITICAL: AlertSeverity.CRITICAL,
    DetectorSeverity.HIGH: AlertSeverity.CRITICAL,
    DetectorSeverity.MEDIUM: AlertSeverity.WARNING,
    DetectorSeverity.LOW: AlertSeverity.INFO,
}

SEVERITY_RANK = {
    AlertSeverity.CRITICAL: 3,
    AlertSeverity.WARNING: 2,
    AlertSeverity.INFO: 1,
}


def map_severity(severity):
    """Map a detector severity (or None) to an alert severity."""
    if severity is None:
        return AlertSeverity.WARNING
    try:
        return SEVERITY_MAP[DetectorSeverity(severity)]
    except ValueError:
        return AlertSeverity.WARNING


def map_alert_type(anomaly_type):
    """Map a detector type to an alert type; unknown types become ANOMALY."""
    try:
        return AlertType(AnomalyType(anomaly_type).value)
    except ValueError:
        return AlertType.ANOMALY
