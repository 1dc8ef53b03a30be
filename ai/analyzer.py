"""Language-model anomaly analysis with a rule-based front screen.

The analyzer never raises. Anything short of a well-formed verdict from
the model (no key, timeout, transport error, unparseable or invalid JSON)
collapses to "no anomaly".
"""
import json
import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator

from ai.client import LLMClient
from ai.prompts import ANALYST_SYSTEM, build_analysis_prompt
from alerts.rule_detector import RuleBasedDetector
from models.alerts import AnomalyResult
from models.enums import AnomalyType, DetectorSeverity

logger = logging.getLogger("microgrid.ai.analyzer")

HISTORY_WINDOW = 24


class ModelVerdict(BaseModel):
    """Validated shape of the model's JSON reply."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    is_anomaly: StrictBool = Field(alias="isAnomaly")
    score: float = 0.0
    type: Optional[str] = None
    severity: Optional[str] = None
    description: str = ""
    affected_component: Optional[str] = Field(default=None, alias="affectedComponent")

    @field_validator("score", mode="before")
    @classmethod
    def _clamp_score(cls, v):
        try:
            v = float(v)
        except (TypeError, ValueError):
            return 0.0
        return min(1.0, max(0.0, v))

    @field_validator("type", mode="before")
    @classmethod
    def _known_type(cls, v):
        return v if v in {t.value for t in AnomalyType} else None

    @field_validator("severity", mode="before")
    @classmethod
    def _known_severity(cls, v):
        return v if v in {s.value for s in DetectorSeverity} else None

    @field_validator("description", mode="before")
    @classmethod
    def _text(cls, v):
        return v if isinstance(v, str) else ""

    @field_validator("affected_component", mode="before")
    @classmethod
    def _component(cls, v):
        return v if isinstance(v, str) and v else None


def parse_verdict(raw: str) -> AnomalyResult:
    """Turn model output into an AnomalyResult; raises on anything malformed."""
    start = raw.find("{")
    end = raw.rfind("}")
    if start == -1 or end == -1 or end <= start:
        raise ValueError("No JSON object found in model output")
    verdict = ModelVerdict.model_validate(json.loads(raw[start:end + 1]))
    return AnomalyResult(
        is_anomaly=verdict.is_anomaly,
        score=verdict.score,
        type=verdict.type,
        severity=verdict.severity,
        description=verdict.description,
        affected_component=verdict.affected_component,
    )


class AIPatternAnalyzer:
    def __init__(self, client: LLMClient, detector=None):
        self.client = client
        self.detector = detector or RuleBasedDetector()

    def analyze(self, latest, history) -> AnomalyResult:
        """Ask the model about ``latest`` in the context of ``history``."""
        history = list(history)[-HISTORY_WINDOW:]
        try:
            raw = self.client.complete(
                ANALYST_SYSTEM,
                build_analysis_prompt(latest, history),
                json_mode=True,
                temperature=0.1,
            )
        except Exception as e:
            logger.warning(f"AI analysis unavailable, treating as no anomaly: {e}")
            return AnomalyResult.none()

        try:
            return parse_verdict(raw)
        except Exception as e:
            logger.warning(f"Discarding malformed model verdict: {e}")
            return AnomalyResult.none()

    def analyze_pattern(self, window) -> AnomalyResult:
        """Rule-based screen first; the model is consulted only if nothing fired."""
        window = list(window)
        if not window:
            return AnomalyResult.none()
        latest = window[-1]
        screened = self.detector.evaluate(latest)
        if screened.is_anomaly:
            return screened
        return self.analyze(latest, window[-HISTORY_WINDOW:])
