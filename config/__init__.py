"""Configuration management."""
import os
import yaml
from pathlib import Path

_config = None
_DEFAULT_CONFIG = Path(__file__).parent / "default_config.yaml"
RULES_PATH = Path(__file__).parent / "alert_rules.yaml"

ENV_MAP = {
    "MICROGRID_LOG_LEVEL": ("logging", "level"),
    "MICROGRID_AI_MODEL": ("ai", "model"),
    "MICROGRID_AI_BASE_URL": ("ai", "base_url"),
    "MICROGRID_AI_TIMEOUT": ("ai", "timeout"),
    "MICROGRID_WEB_PORT": ("web", "port"),
    "MICROGRID_RULES_PATH": ("alerts", "rules_path"),
}


def load_config(path=None):
    """Load config from YAML, merging defaults with optional overrides."""
    global _config

    with open(_DEFAULT_CONFIG) as f:
        config = yaml.safe_load(f)

    if path and Path(path).exists():
        with open(path) as f:
            overrides = yaml.safe_load(f) or {}
        config = _deep_merge(config, overrides)

    # Environment variable overrides
    for env_key, config_path in ENV_MAP.items():
        val = os.environ.get(env_key)
        if val:
            d = config
            for k in config_path[:-1]:
                d = d.setdefault(k, {})
            try:
                d[config_path[-1]] = int(val)
            except ValueError:
                d[config_path[-1]] = val

    _validate_config(config)
    _config = config
    return config


def get_config():
    """Return cached config, loading defaults if needed."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def _deep_merge(base, override):
    """Recursively merge override into base dict."""
    result = base.copy()
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _validate_config(config):
    """Basic config validation."""
    required_sections = ["simulator", "monitor", "ai", "alerts", "notifications", "dashboard"]
    for section in required_sections:
        if section not in config:
            raise ValueError(f"Missing required config section: {section}")

    if config["ai"].get("timeout", 0) <= 0:
        raise ValueError("ai.timeout must be > 0 seconds")
    if config["monitor"].get("window_size", 0) < 2:
        raise ValueError("monitor.window_size must be >= 2")
    if config["monitor"].get("max_metrics", 0) < config["monitor"]["window_size"]:
        raise ValueError("monitor.max_metrics must be >= monitor.window_size")
