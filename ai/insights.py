"""Daily free-text insights."""
import logging

from ai.prompts import CONSULTANT_SYSTEM, build_insights_prompt, daily_totals

logger = logging.getLogger("microgrid.ai.insights")


def fallback_summary(metrics):
    consumption, generation, net = daily_totals(metrics)
    return (
        f"Daily Summary: {consumption:.1f} kWh consumed, {generation:.1f} kWh generated. "
        f"Net energy: {net:.1f} kWh. System operating within normal parameters."
    )


def generate_daily_insights(client, metrics):
    """Model-written summary of the day, or a deterministic fallback."""
    try:
        return client.complete(CONSULTANT_SYSTEM, build_insights_prompt(metrics))
    except Exception as e:
        logger.warning(f"Insight generation failed, using fallback summary: {e}")
        return fallback_summary(metrics)
