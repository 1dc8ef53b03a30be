"""Alert rules loading and management."""
import logging
import yaml
from pathlib import Path

from models.alerts import AlertRule, RuleCondition, RuleAction
from models.enums import AlertSeverity, AlertType, RuleType, RuleActionType, Operator

logger = logging.getLogger("microgrid.alerts.rules")

DEFAULT_RULES_PATH = Path(__file__).resolve().parent.parent / "config" / "alert_rules.yaml"


def infer_alert_type(rule_name):
    name = rule_name.lower()
    if "consumption" in name:
        return AlertType.CONSUMPTION
    if "battery" in name or "storage" in name:
        return AlertType.STORAGE
    if "solar" in name or "generation" in name:
        return AlertType.GENERATION
    if "device" in name or "fault" in name:
        return AlertType.DEVICE_FAULT
    return AlertType.SYSTEM_HEALTH


def infer_component(rule_name):
    name = rule_name.lower()
    if "consumption" in name:
        return "grid_load"
    if "battery" in name:
        return "battery_system"
    if "solar" in name:
        return "solar_panels"
    return "system"


class RuleError(ValueError):
    """A rule definition that cannot be loaded."""


class RulesManager:
    def __init__(self, rules_path=None):
        self.rules_path = Path(rules_path) if rules_path else DEFAULT_RULES_PATH
        self.rules = []
        self.load()

    def load(self):
        if not self.rules_path.exists():
            logger.warning(f"Alert rules file not found: {self.rules_path}")
            return
        with open(self.rules_path) as f:
            data = yaml.safe_load(f) or {}
        self.rules = self._parse_rules(data.get("rules", []))
        logger.info(f"Loaded {len(self.rules)} alert rules")

    def _parse_rules(self, raw_rules):
        rules = []
        for r in raw_rules:
            try:
                rules.append(parse_rule(r))
            except (RuleError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping invalid rule {r.get('id') if isinstance(r, dict) else r!r}: {e}")
        return rules

    def add_rule(self, rule):
        self.rules = [r for r in self.rules if r.id != rule.id] + [rule]

    def get_enabled_rules(self):
        return [r for r in self.rules if r.enabled]

    def get_rule(self, rule_id):
        for r in self.rules:
            if r.id == rule_id:
                return r
        return None

    def get_all_rules(self):
        return self.rules


def parse_rule(r):
    """Build an AlertRule from its YAML mapping."""
    if not r.get("conditions"):
        raise RuleError("rule has no conditions")

    conditions = []
    for c in r["conditions"]:
        try:
            op = Operator(c.get("operator"))
        except ValueError:
            raise RuleError(f"unknown operator {c.get('operator')!r}") from None
        conditions.append(RuleCondition(
            metric=c["metric"],
            operator=op,
            value=float(c["value"]),
            duration=c.get("duration"),
            confidence=c.get("confidence"),
        ))

    actions = []
    for a in r.get("actions", [{"type": "create_alert"}]):
        try:
            action_type = RuleActionType(a.get("type"))
        except ValueError:
            raise RuleError(f"unknown action {a.get('type')!r}") from None
        actions.append(RuleAction(type=action_type, config=a.get("config") or {}))

    name = r.get("name", r["id"])
    return AlertRule(
        id=r["id"],
        name=name,
        description=r.get("description", ""),
        type=RuleType(r.get("type", "threshold")),
        severity=AlertSeverity(r.get("severity", "warning")),
        conditions=conditions,
        actions=actions,
        enabled=r.get("enabled", True),
        alert_type=AlertType(r["alert_type"]) if r.get("alert_type") else infer_alert_type(name),
        component=r.get("component") or infer_component(name),
    )
