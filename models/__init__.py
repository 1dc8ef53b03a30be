"""Data models."""
from models.enums import (
    AlertSeverity, DetectorSeverity, AlertType, AnomalyType, AlertStatus,
    AlertSource, InteractionAction, RuleType, RuleActionType, Operator, AnomalyKind,
    Channel, DeliveryStatus,
)
from models.metrics import EnergyMetric, SensorReading
from models.alerts import (
    AnomalyResult, AlertDetectionResult, Alert, Anomaly, AlertInteraction,
    RuleCondition, RuleAction, AlertRule, Recipient, NotificationRecord,
)
from models.store import MemoryStore
