"""Builds the object graph shared by the CLI and the WSGI entry point."""
import random
import logging

from ai.analyzer import AIPatternAnalyzer
from ai.client import LLMClient
from alerts.channels import (
    LiveFeed, DashboardChannel, WebSocketChannel, EmailChannel, SMSChannel, PushChannel,
)
from alerts.dispatcher import NotificationDispatcher, load_recipients
from alerts.engine import AlertDetectionEngine
from alerts.manager import AlertManager
from alerts.rules_manager import RulesManager
from models.store import MemoryStore
from monitor.monitor import MicrogridMonitor
from monitor.simulator import MetricSimulator
from notifications.email_sender import EmailSender
from notifications.sms_sender import SMSSender

logger = logging.getLogger("microgrid.monitor.wiring")


def build_components(config: dict, llm=None) -> dict:
    sim_cfg = config.get("simulator", {})
    mon_cfg = config.get("monitor", {})

    store = MemoryStore(max_metrics=mon_cfg.get("max_metrics", 2000))
    simulator = MetricSimulator(
        base_consumption=sim_cfg.get("base_consumption", 150.0),
        base_generation=sim_cfg.get("base_generation", 80.0),
        initial_storage=sim_cfg.get("initial_storage", 75.0),
        rng=random.Random(sim_cfg.get("seed")),
    )

    llm = llm or LLMClient(config)
    if not llm.is_configured():
        logger.warning("No language model API key configured; AI detection will report no anomalies")
    analyzer = AIPatternAnalyzer(llm)

    rules = RulesManager(config.get("alerts", {}).get("rules_path"))
    engine = AlertDetectionEngine(analyzer, rules)
    manager = AlertManager(store)

    feed = LiveFeed()
    channels = [
        DashboardChannel(),
        WebSocketChannel(feed),
        EmailChannel(EmailSender(config)),
        SMSChannel(SMSSender(config)),
        PushChannel(),
    ]
    dispatcher = NotificationDispatcher(
        channels,
        load_recipients(config),
        store=store,
        max_workers=config.get("notifications", {}).get("max_workers", 5),
    )

    monitor = MicrogridMonitor(store, simulator, analyzer, engine, manager, dispatcher, config)

    return {
        "config": config, "store": store, "simulator": simulator, "llm": llm,
        "analyzer": analyzer, "rules": rules, "engine": engine, "manager": manager,
        "feed": feed, "dispatcher": dispatcher, "monitor": monitor,
    }
