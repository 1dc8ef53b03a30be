"""Prompt text for anomaly analysis and daily insights."""
import statistics

NORMAL_RANGES = {
    "consumption": (80, 250),      # kW
    "generation": (0, 120),        # kW
    "storage": (15, 95),           # %
    "solar_efficiency": (75, 98),  # %
    "battery_health": (90, 100),   # %
}

ANALYST_SYSTEM = (
    "You are an expert energy systems analyst specializing in microgrid anomaly detection. "
    "Analyze energy patterns and detect unusual behavior that could indicate equipment issues, "
    "unauthorized usage, or system inefficiencies. Respond with JSON only."
)

CONSULTANT_SYSTEM = (
    "You are an energy efficiency consultant. "
    "Provide clear, actionable insights for microgrid operators."
)


def is_night(hour):
    return hour < 6 or hour > 20


def window_statistics(metrics):
    """Population mean / stddev for consumption and generation, mean storage."""
    if not metrics:
        return {"avg_consumption": 0.0, "avg_generation": 0.0, "avg_storage": 0.0,
                "std_consumption": 0.0, "std_generation": 0.0}
    consumption = [m.consumption for m in metrics]
    generation = [m.generation for m in metrics]
    return {
        "avg_consumption": statistics.fmean(consumption),
        "avg_generation": statistics.fmean(generation),
        "avg_storage": statistics.fmean(m.storage for m in metrics),
        "std_consumption": statistics.pstdev(consumption),
        "std_generation": statistics.pstdev(generation),
    }


def build_analysis_prompt(current, historical):
    stats = window_statistics(historical)
    hour = current.timestamp.hour
    r = NORMAL_RANGES
    return f"""Analyze this energy reading for anomalies:

CURRENT READING ({current.timestamp.isoformat()}):
- Consumption: {current.consumption} kW
- Generation: {current.generation} kW
- Storage: {current.storage}%
- Grid Export: {current.grid_export} kW
- Solar Efficiency: {current.solar_efficiency}%
- Battery Health: {current.battery_health}%
- Time: {hour}:00 ({'Night' if is_night(hour) else 'Day'})

HISTORICAL AVERAGES (last {len(historical)} readings):
- Avg Consumption: {stats['avg_consumption']:.1f} kW
- Avg Generation: {stats['avg_generation']:.1f} kW
- Avg Storage: {stats['avg_storage']:.1f}%
- Std Dev Consumption: {stats['std_consumption']:.1f} kW
- Std Dev Generation: {stats['std_generation']:.1f} kW

NORMAL OPERATING RANGES:
- Consumption: {r['consumption'][0]}-{r['consumption'][1]} kW
- Generation: {r['generation'][0]}-{r['generation'][1]} kW
- Storage: {r['storage'][0]}-{r['storage'][1]}%
- Solar Efficiency: {r['solar_efficiency'][0]}-{r['solar_efficiency'][1]}%
- Battery Health: {r['battery_health'][0]}-{r['battery_health'][1]}%

Detect anomalies considering:
1. Deviations from historical patterns
2. Time-of-day expectations (night vs day)
3. Statistical outliers (>2 standard deviations)
4. Equipment health indicators
5. Energy balance inconsistencies

Respond with JSON format:
{{
  "isAnomaly": boolean,
  "score": number (0-1 confidence),
  "type": "consumption" | "generation" | "storage" | "device_fault",
  "severity": "low" | "medium" | "high" | "critical",
  "description": "Detailed explanation",
  "affectedComponent": "component name"
}}"""


def daily_totals(metrics):
    """Consumption/generation sums converted to kWh, plus net energy."""
    consumption = sum(m.consumption for m in metrics) / 1000
    generation = sum(m.generation for m in metrics) / 1000
    return consumption, generation, generation - consumption


def build_insights_prompt(metrics):
    consumption, generation, net = daily_totals(metrics)
    stats = window_statistics(metrics)
    return f"""Generate daily energy insights based on this data:

DAILY SUMMARY:
- Total Consumption: {consumption:.1f} kWh
- Total Generation: {generation:.1f} kWh
- Net Energy: {net:.1f} kWh
- Average Storage: {stats['avg_storage']:.1f}%
- Data Points: {len(metrics)} readings

Provide insights on:
1. Energy efficiency performance
2. Solar generation optimization opportunities
3. Consumption pattern observations
4. Recommendations for improvement

Keep response concise and actionable (max 200 words)."""
