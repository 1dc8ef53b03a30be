"""First-match-wins screen of the latest reading against fixed thresholds."""
import logging

from alerts.thresholds import SCREENING, breached
from models.alerts import AnomalyResult

logger = logging.getLogger("microgrid.alerts.rule_detector")


class RuleBasedDetector:
    def evaluate(self, latest) -> AnomalyResult:
        if latest is None:
            return AnomalyResult.none()
        hits = breached(latest, SCREENING)
        if not hits:
            return AnomalyResult.none()
        t = hits[0]
        value = latest.value_of(t.metric)
        logger.debug(f"Screening hit: {t.metric} {t.operator.value} {t.value} (value={value})")
        return AnomalyResult(
            is_anomaly=True,
            score=t.score,
            type=t.alert_type.value,
            severity=t.severity.value,
            description=t.description.format(value=value),
            affected_component=t.component,
        )
