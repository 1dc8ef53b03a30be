"""WSGI entry point for production deployment (e.g. gunicorn wsgi:app)."""
import sys
import os
import logging
from pathlib import Path

# Ensure project root is on path
sys.path.insert(0, str(Path(__file__).parent))

from config import load_config
from utils.logger import setup_logging
from monitor.wiring import build_components
from web.app import create_app

logger = logging.getLogger("microgrid.wsgi")

config = load_config(os.environ.get("MICROGRID_CONFIG"))
setup_logging(config["logging"]["level"], config["logging"].get("file"))

components = build_components(config)
app = create_app(config, components)

# Seed a reading so the dashboard has something to show
try:
    metric = components["monitor"].get_current()
    logger.info(f"Startup reading: {metric.consumption} kW consumption, {metric.storage}% storage")
except Exception as e:
    logger.warning(f"Startup reading failed (will retry on first request): {e}")
