"""Dashboard summary aggregation."""

CO2_KG_PER_KWH = 0.4


def daily_totals(metrics):
    consumption = sum(m.consumption for m in metrics) / 1000
    generation = sum(m.generation for m in metrics) / 1000
    return {
        "consumption": round(consumption, 1),
        "generation": round(generation, 1),
        "co2Saved": round(generation * CO2_KG_PER_KWH, 1),
    }


def chart_points(metrics, stride=2, max_points=12):
    """Every ``stride``-th reading, last ``max_points`` of them, labelled HH:MM."""
    sampled = [m for i, m in enumerate(metrics) if i % stride == 0][-max_points:]
    return [
        {
            "time": m.timestamp.strftime("%H:%M"),
            "consumption": round(m.consumption, 1),
            "generation": round(m.generation, 1),
            "storage": round(m.storage, 1),
        }
        for m in sampled
    ]


def system_status(current):
    if current is None:
        return {"solarPanels": "unknown", "battery": "unknown",
                "gridConnection": "stable", "aiMonitoring": "active"}
    return {
        "solarPanels": "online" if current.solar_efficiency > 75 else "degraded",
        "battery": "normal" if current.storage > 15 else "low",
        "gridConnection": "stable",
        "aiMonitoring": "active",
    }


def build_summary(metrics, alerts, anomalies, stride=2):
    current = metrics[-1] if metrics else None
    return {
        "current": current.to_dict() if current else None,
        "alerts": [a.to_dict() for a in alerts],
        "anomalies": [a.to_dict() for a in anomalies],
        "dailyTotals": daily_totals(metrics),
        "chartData": chart_points(metrics, stride=stride),
        "systemStatus": system_status(current),
    }
