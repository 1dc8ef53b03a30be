#!/usr/bin/env python3
"""Microgrid Monitor - CLI Entry Point."""
import sys
import json
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

import click
from rich.console import Console
from rich.table import Table

from __version__ import __version__

console = Console()

SEVERITY_STYLES = {"critical": "bold white on red", "warning": "bold yellow", "info": "bold blue"}


def _init_components(config_path=None, verbose=False):
    """Lazy initialization of all components."""
    from utils.logger import setup_logging
    from config import load_config
    from monitor.wiring import build_components

    config = load_config(config_path)
    setup_logging("DEBUG" if verbose else config["logging"]["level"], config["logging"].get("file"))
    return build_components(config)


@click.group()
@click.option("--config", "config_path", default=None, help="Path to config YAML")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.version_option(__version__, prog_name="microgrid")
@click.pass_context
def cli(ctx, config_path, verbose):
    """Microgrid Monitor - Simulated energy metrics, anomaly detection & alert lifecycle."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


def _get_components(ctx):
    if "_components" not in ctx.obj:
        ctx.obj["_components"] = _init_components(ctx.obj.get("config_path"), ctx.obj.get("verbose"))
    return ctx.obj["_components"]


def _severity(sev):
    style = SEVERITY_STYLES.get(sev, "")
    return f"[{style}]{sev.upper()}[/]" if style else sev.upper()


def _print_alerts(alerts):
    if not alerts:
        console.print("[green]All clear - no alerts raised[/green]")
        return
    table = Table(title=f"{len(alerts)} alert(s)", show_header=True)
    table.add_column("Severity")
    table.add_column("Type")
    table.add_column("Title")
    table.add_column("Description")
    for a in alerts:
        table.add_row(_severity(a.severity.value), a.type.value, a.title, a.description[:70])
    console.print(table)


# ──────────────────────────────────────────────────────
# SIMULATE
# ──────────────────────────────────────────────────────
@cli.command()
@click.option("--count", default=1, type=int, help="Number of readings to generate")
@click.option("--anomaly", "anomaly_kind", default=None,
              type=click.Choice(["consumption_spike", "generation_drop", "storage_drain"]),
              help="Inject an anomaly into the last reading")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def simulate(ctx, count, anomaly_kind, as_json):
    """Generate readings and screen each one for anomalies."""
    c = _get_components(ctx)
    outcomes = []
    for i in range(count):
        last = i == count - 1
        kind = "anomaly" if anomaly_kind and last else "normal"
        outcomes.append(c["monitor"].simulate(kind, anomaly_kind if last else None))

    if as_json:
        click.echo(json.dumps([{
            "metric": o["metric"].to_dict(),
            "anomalyDetected": o["anomaly_detected"],
            "anomalyScore": o["anomaly_score"],
        } for o in outcomes], indent=2))
        return

    table = Table(title="Simulated Readings", show_header=True)
    table.add_column("Time", style="dim")
    table.add_column("Consumption kW", justify="right")
    table.add_column("Generation kW", justify="right")
    table.add_column("Storage %", justify="right")
    table.add_column("Anomaly")
    for o in outcomes:
        m = o["metric"]
        flag = f"[red]YES ({o['anomaly_score']:.2f})[/red]" if o["anomaly_detected"] else "[dim]no[/dim]"
        table.add_row(m.timestamp.strftime("%H:%M:%S"), f"{m.consumption:.1f}", f"{m.generation:.1f}",
                      f"{m.storage:.1f}", flag)
    console.print(table)
    _print_alerts([o["alert"] for o in outcomes if o["alert"]])


# ──────────────────────────────────────────────────────
# ALERTS
# ──────────────────────────────────────────────────────
@cli.group()
def alerts():
    """Alert detection and rules."""
    pass


@alerts.command("detect")
@click.option("--anomaly", "anomaly_kind", default=None,
              type=click.Choice(["consumption_spike", "generation_drop", "storage_drain"]),
              help="End the seeded day with an anomalous reading")
@click.pass_context
def alerts_detect(ctx, anomaly_kind):
    """Seed a day of readings and run the full detection engine."""
    c = _get_components(ctx)
    from datetime import datetime, timedelta, timezone
    now = datetime.now(timezone.utc)
    sim, store = c["simulator"], c["store"]
    for hours_ago in range(23, 0, -1):
        store.save_metric(sim.generate(at=now - timedelta(hours=hours_ago)))
    store.save_metric(sim.generate(anomaly_kind is not None, anomaly_kind, at=now))

    outcome = c["monitor"].run_detection()
    _print_alerts(outcome["alerts"])


@alerts.command("test")
@click.pass_context
def alerts_test(ctx):
    """Evaluate every rule (enabled or not) against a fresh reading."""
    c = _get_components(ctx)
    c["monitor"].get_current()
    results = c["engine"].test_rules(c["monitor"].get_window())

    table = Table(title="Alert Rules Test", show_header=True)
    table.add_column("Rule")
    table.add_column("Condition")
    table.add_column("Current")
    table.add_column("Would Fire")
    table.add_column("Enabled")
    for r in results:
        fire_str = "[green]YES[/green]" if r["would_fire"] else "[dim]no[/dim]"
        en_str = "✓" if r["enabled"] else "✗"
        cond = " AND ".join(f"{x['metric']} {x['operator']} {x['value']}" for x in r["conditions"])
        current = ", ".join("N/A" if x["current_value"] is None else f"{x['current_value']:.1f}"
                            for x in r["conditions"])
        table.add_row(r["name"], cond, current, fire_str, en_str)
    console.print(table)


@alerts.command("rules")
@click.pass_context
def alerts_rules(ctx):
    """List all configured alert rules."""
    c = _get_components(ctx)
    table = Table(title="Alert Rules", show_header=True)
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Conditions")
    table.add_column("Severity")
    table.add_column("Actions")
    table.add_column("Enabled")
    for r in c["rules"].get_all_rules():
        cond = " AND ".join(f"{x.metric} {x.operator.value} {x.value}" for x in r.conditions)
        actions = ", ".join(a.type.value for a in r.actions)
        table.add_row(r.id, r.name, cond, _severity(r.severity.value), actions,
                      "[green]✓[/green]" if r.enabled else "[red]✗[/red]")
    console.print(table)


# ──────────────────────────────────────────────────────
# INSIGHTS
# ──────────────────────────────────────────────────────
@cli.command()
@click.pass_context
def insights(ctx):
    """Seed a day of readings and print the daily insight summary."""
    from ai.insights import generate_daily_insights
    c = _get_components(ctx)
    c["monitor"].initialize()
    console.print(generate_daily_insights(c["llm"], c["monitor"].get_window()))


# ──────────────────────────────────────────────────────
# WEB
# ──────────────────────────────────────────────────────
@cli.command()
@click.option("--port", default=None, type=int, help="Port to bind to")
@click.option("--host", default=None, type=str, help="Host to bind to")
@click.option("--seed", is_flag=True, help="Initialize with a day of sample data")
@click.pass_context
def web(ctx, port, host, seed):
    """Launch the JSON API server."""
    from web.app import create_app

    c = _get_components(ctx)
    web_cfg = c["config"].get("web", {})
    port = port or web_cfg.get("port", 5000)
    host = host or web_cfg.get("host", "0.0.0.0")

    if seed:
        c["monitor"].initialize()

    app = create_app(c["config"], c)

    console.print("\n[bold #00E0A1]Microgrid Monitor -- API Server[/bold #00E0A1]\n")
    console.print(f"  Local:    http://localhost:{port}/api/dashboard/summary")
    console.print(f"  Stream:   http://localhost:{port}/api/alerts/stream")
    console.print("\n  Press Ctrl+C to stop.\n")

    app.run(host=host, port=port, debug=False, threaded=True)


if __name__ == "__main__":
    cli()
