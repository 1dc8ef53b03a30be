"""First/last ratio trend over a window of readings."""
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger("microgrid.monitor.trend")

MIN_POINTS = 10
STABLE_BAND = 0.05


@dataclass
class Trend:
    metric: str
    direction: str  # increasing | decreasing | stable
    rate: float


def compute_trend(values, metric="") -> Optional[Trend]:
    """Relative change between first and last value.

    Returns None when the window is too short or the first value is zero.
    """
    if len(values) < MIN_POINTS:
        return None
    first, last = values[0], values[-1]
    if first == 0:
        return None
    rate = (last - first) / first
    if rate > STABLE_BAND:
        direction = "increasing"
    elif rate < -STABLE_BAND:
        direction = "decreasing"
    else:
        direction = "stable"
    return Trend(metric=metric, direction=direction, rate=rate)


class TrendAnalyzer:
    def analyze(self, metrics):
        """Trends for consumption and generation, keyed by metric name."""
        if len(metrics) < MIN_POINTS:
            return {}
        trends = {}
        for name in ("consumption", "generation"):
            trend = compute_trend([m.value_of(name) for m in metrics], name)
            if trend is not None:
                trends[name] = trend
        logger.debug(f"Trends over {len(metrics)} readings: {trends}")
        return trends
