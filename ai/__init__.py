"""Language-model analysis and insights."""
from ai.client import LLMClient, LLMUnavailableError
from ai.analyzer import AIPatternAnalyzer
from ai.insights import generate_daily_insights
