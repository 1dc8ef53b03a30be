"""Synthetic microgrid readings on a diurnal curve."""
import math
import random
import logging
from datetime import datetime, timezone

from models.enums import AnomalyKind
from models.metrics import EnergyMetric

logger = logging.getLogger("microgrid.monitor.simulator")

STORAGE_MIN = 10.0
STORAGE_MAX = 95.0


class MetricSimulator:
    """Generates readings for a single microgrid site.

    Storage integrates net power across calls, so one simulator instance
    should be shared by everything that appends to the same metric series.
    """

    def __init__(self, base_consumption=150.0, base_generation=80.0, initial_storage=75.0, rng=None):
        self.base_consumption = base_consumption
        self.base_generation = base_generation
        self.storage = initial_storage
        self.rng = rng or random.Random()

    def generate(self, anomalous=False, anomaly_kind=None, at=None) -> EnergyMetric:
        at = at or datetime.now(timezone.utc)
        hour = at.hour + at.minute / 60.0
        u = self.rng.random

        consumption_curve = 0.7 + 0.3 * math.sin((hour - 8) * math.pi / 8) + 0.2 * u()
        consumption = self.base_consumption * consumption_curve

        solar_curve = max(0.0, math.sin((hour - 6) * math.pi / 12))
        generation = self.base_generation * solar_curve * (0.8 + 0.4 * u())

        net = generation - consumption
        storage = self.storage + (net / 100) * 10 + (u() - 0.5) * 5
        storage = max(STORAGE_MIN, min(STORAGE_MAX, storage))
        self.storage = storage

        solar_efficiency = 85 + 10 * u()
        battery_health = 95 + 4 * u()

        if anomalous:
            kind = AnomalyKind(anomaly_kind or AnomalyKind.CONSUMPTION_SPIKE)
            if kind == AnomalyKind.CONSUMPTION_SPIKE:
                consumption *= 2.5
            elif kind == AnomalyKind.GENERATION_DROP:
                generation *= 0.3
                solar_efficiency = 45.0
            elif kind == AnomalyKind.STORAGE_DRAIN:
                storage = max(5.0, storage * 0.2)
            logger.debug(f"Injected anomaly {kind.value} at {at.isoformat()}")

        return EnergyMetric(
            consumption=round(consumption, 1),
            generation=round(generation, 1),
            storage=round(storage, 1),
            grid_export=round(max(0.0, generation - consumption), 1),
            solar_efficiency=round(solar_efficiency, 1),
            battery_health=round(battery_health, 1),
            timestamp=at,
        )
