"""Dataclasses for microgrid energy readings."""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


def _new_id():
    return uuid.uuid4().hex


@dataclass(frozen=True)
class EnergyMetric:
    consumption: float = 0.0       # kW
    generation: float = 0.0        # kW
    storage: float = 0.0           # % of capacity
    grid_export: float = 0.0       # kW
    solar_efficiency: float = 0.0  # %
    battery_health: float = 0.0    # %
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: str = field(default_factory=_new_id)

    def value_of(self, metric):
        """Look up a reading by field name or its camelCase API name."""
        name = getattr(metric, "value", metric)
        return {
            "consumption": self.consumption,
            "generation": self.generation,
            "storage": self.storage,
            "grid_export": self.grid_export,
            "gridExport": self.grid_export,
            "solar_efficiency": self.solar_efficiency,
            "solarEfficiency": self.solar_efficiency,
            "battery_health": self.battery_health,
            "batteryHealth": self.battery_health,
        }.get(name)

    def to_dict(self):
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "consumption": self.consumption,
            "generation": self.generation,
            "storage": self.storage,
            "gridExport": self.grid_export,
            "solarEfficiency": self.solar_efficiency,
            "batteryHealth": self.battery_health,
        }


@dataclass
class SensorReading:
    sensor_id: str = ""
    device_id: str = ""
    location: str = ""
    sensor_type: str = ""
    value: float = 0.0
    unit: str = ""
    quality: str = "good"
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Optional[dict] = None

    @classmethod
    def from_dict(cls, data):
        ts = data.get("timestamp")
        if isinstance(ts, str):
            ts = datetime.fromisoformat(ts.replace("Z", "+00:00"))
        return cls(
            sensor_id=data.get("sensorId", data.get("sensor_id", "")),
            device_id=data.get("deviceId", data.get("device_id", "")),
            location=data.get("location", ""),
            sensor_type=data.get("sensorType", data.get("sensor_type", "")),
            value=float(data.get("value", 0.0)),
            unit=data.get("unit", ""),
            quality=data.get("quality", "good"),
            timestamp=ts or datetime.now(timezone.utc),
            metadata=data.get("metadata"),
        )
