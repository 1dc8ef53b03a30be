"""
Flask JSON API for the microgrid monitor.

Energy:
  GET  /api/energy/current            — Latest reading
  GET  /api/energy/metrics            — Trailing readings (?limit=)
  POST /api/energy/simulate           — Generate one reading and screen it
  GET  /api/dashboard/summary         — Aggregate for the dashboard view

Alerts:
  GET  /api/alerts                    — Filtered, paginated alert list
  GET  /api/alerts/<id>               — Alert with its interaction timeline
  POST /api/alerts/<id>/acknowledge | resolve | dismiss | notes
  GET  /api/alerts/stats              — Counts, response time, false positive rate
  GET|POST /api/alerts/export         — csv | json | pdf
  POST /api/alerts/manual             — Operator-submitted alert
  POST /api/alerts/test-detection     — Run the full detection engine now
  GET  /api/alerts/rules              — Configured rules and their current evaluation
  GET  /api/alerts/stream             — Live alert events (server-sent events)

Other:
  GET  /api/anomalies, POST /api/anomalies/<id>/resolve, POST /api/anomalies/analyze
  GET  /api/ai/insights, POST /api/system/initialize, GET /api/notifications

Started via: python main.py web [--port 5000] [--host 0.0.0.0]
"""
import queue
import uuid
import logging

from flask import Flask, Response, jsonify, request, stream_with_context
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException

from ai.insights import generate_daily_insights
from alerts.errors import AlertNotFoundError, InvalidRequestError, InvalidTransitionError
from alerts.export import export_alerts
from alerts.schema import LifecycleRequest
from models.enums import AnomalyKind
from models.metrics import SensorReading
from web.summary import build_summary

logger = logging.getLogger("microgrid.web.app")

MAX_LIMIT = 500


def _int_arg(name, default, lo=0, hi=MAX_LIMIT):
    try:
        value = int(request.args.get(name, default))
    except (TypeError, ValueError):
        raise InvalidRequestError(f"'{name}' must be an integer") from None
    return max(lo, min(value, hi))


def _json_body():
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise InvalidRequestError("Request body must be a JSON object")
    return body


def create_app(config: dict, engines: dict) -> Flask:
    """
    Factory function. Receives initialized engines from main.py / wsgi.py.

    Args:
        config: Application config dict
        engines: dict of initialized objects (monitor, store, manager, engine,
                 analyzer, rules, dispatcher, feed, llm)
    """
    app = Flask(__name__)

    monitor = engines["monitor"]
    store = engines["store"]
    manager = engines["manager"]
    feed = engines["feed"]
    chart_stride = config.get("dashboard", {}).get("chart_stride", 2)
    heartbeat = config.get("web", {}).get("stream_heartbeat_seconds", 15)

    # ─── Error Mapping ───────────────────────────────────

    @app.errorhandler(AlertNotFoundError)
    def not_found(e):
        return jsonify({"error": str(e)}), 404

    @app.errorhandler(InvalidTransitionError)
    def invalid_transition(e):
        return jsonify({
            "error": str(e),
            "currentStatus": e.current,
            "requestedStatus": e.requested,
        }), 409

    @app.errorhandler(ValidationError)
    def invalid_payload(e):
        return jsonify({
            "error": "Invalid request",
            "details": [{"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                        for err in e.errors()],
        }), 400

    @app.errorhandler(InvalidRequestError)
    def bad_request(e):
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(Exception)
    def unexpected(e):
        if isinstance(e, HTTPException):
            return jsonify({"error": e.description}), e.code
        logger.exception(f"Unhandled error on {request.method} {request.path}: {e}")
        return jsonify({"error": "Internal server error"}), 500

    # ─── Energy ──────────────────────────────────────────

    @app.route("/api/energy/current")
    def api_energy_current():
        return jsonify(monitor.get_current().to_dict())

    @app.route("/api/energy/metrics")
    def api_energy_metrics():
        limit = _int_arg("limit", 24, lo=1, hi=store.max_metrics)
        return jsonify({"metrics": [m.to_dict() for m in store.get_recent_metrics(limit)]})

    @app.route("/api/energy/simulate", methods=["POST"])
    def api_energy_simulate():
        body = _json_body()
        kind = body.get("type", "normal")
        if kind not in ("normal", "anomaly"):
            raise InvalidRequestError(f"Unknown simulation type: {kind}")
        anomaly_kind = body.get("anomalyType")
        if anomaly_kind is not None and anomaly_kind not in [k.value for k in AnomalyKind]:
            raise InvalidRequestError(f"Unknown anomaly type: {anomaly_kind}")
        result = monitor.simulate(kind, anomaly_kind)
        return jsonify({
            "metric": result["metric"].to_dict(),
            "anomalyDetected": result["anomaly_detected"],
            "anomalyScore": result["anomaly_score"],
            "alert": result["alert"].to_dict() if result["alert"] else None,
        })

    @app.route("/api/dashboard/summary")
    def api_dashboard_summary():
        return jsonify(build_summary(
            monitor.get_window(),
            manager.get_active(),
            store.get_anomalies(include_resolved=False),
            stride=chart_stride,
        ))

    # ─── Alerts ──────────────────────────────────────────

    @app.route("/api/alerts")
    def api_alerts():
        limit = _int_arg("limit", 50, lo=1)
        offset = _int_arg("offset", 0, hi=10**6)
        page, total = manager.query(
            severity=request.args.get("severity"),
            type=request.args.get("type"),
            status=request.args.get("status"),
            search=request.args.get("search"),
            date_range=request.args.get("dateRange", "7d"),
            limit=limit,
            offset=offset,
        )
        return jsonify({"alerts": [a.to_dict() for a in page], "total": total,
                        "limit": limit, "offset": offset})

    @app.route("/api/alerts/stats")
    def api_alert_stats():
        return jsonify(manager.stats(request.args.get("period", "7d")))

    @app.route("/api/alerts/rules")
    def api_alert_rules():
        rules = engines["rules"].get_all_rules()
        return jsonify({
            "rules": [r.to_dict() for r in rules],
            "evaluation": engines["engine"].test_rules(monitor.get_window()),
        })

    @app.route("/api/alerts/<alert_id>")
    def api_alert_detail(alert_id):
        alert = manager.get(alert_id)
        interactions = [i.to_dict() for i in manager.get_interactions(alert_id)]
        return jsonify({"alert": alert.to_dict(), "interactions": interactions, "timeline": interactions})

    def _lifecycle(alert_id, action):
        req = LifecycleRequest.model_validate(_json_body())
        alert = action(alert_id, req.user_id, req.notes)
        return jsonify({"success": True, "alert": alert.to_dict()})

    @app.route("/api/alerts/<alert_id>/acknowledge", methods=["POST"])
    def api_alert_acknowledge(alert_id):
        return _lifecycle(alert_id, manager.acknowledge)

    @app.route("/api/alerts/<alert_id>/resolve", methods=["POST"])
    def api_alert_resolve(alert_id):
        return _lifecycle(alert_id, manager.resolve)

    @app.route("/api/alerts/<alert_id>/dismiss", methods=["POST"])
    def api_alert_dismiss(alert_id):
        return _lifecycle(alert_id, manager.dismiss)

    @app.route("/api/alerts/<alert_id>/notes", methods=["POST"])
    def api_alert_notes(alert_id):
        req = LifecycleRequest.model_validate(_json_body())
        interaction = manager.add_notes(alert_id, req.user_id, req.notes)
        return jsonify({"success": True, "interaction": interaction.to_dict()})

    @app.route("/api/alerts/export", methods=["GET", "POST"])
    def api_alert_export():
        if request.method == "POST":
            body = _json_body()
            fmt = body.get("format", "csv")
            ids = body.get("alertIds") or []
            filters = body.get("filters") or {}
        else:
            fmt = request.args.get("format", "csv")
            ids = [i for i in request.args.get("ids", "").split(",") if i]
            filters = {k: request.args.get(k) for k in ("severity", "type", "status", "search", "dateRange")
                       if request.args.get(k)}

        if ids:
            alerts = manager.get_by_ids(ids)
        else:
            alerts, _ = manager.query(
                severity=filters.get("severity"),
                type=filters.get("type"),
                status=filters.get("status"),
                search=filters.get("search"),
                date_range=filters.get("dateRange", "all"),
                limit=10**6,
            )
        content, mimetype, filename = export_alerts(alerts, fmt)
        return Response(content, mimetype=mimetype,
                        headers={"Content-Disposition": f"attachment; filename={filename}"})

    @app.route("/api/alerts/manual", methods=["POST"])
    def api_alert_manual():
        alert = manager.create_manual(_json_body())
        engines["dispatcher"].dispatch(alert)
        return jsonify({"success": True, "alert": alert.to_dict()}), 201

    @app.route("/api/alerts/test-detection", methods=["POST"])
    def api_alert_test_detection():
        body = _json_body()
        try:
            sensor_data = [SensorReading.from_dict(s) for s in body.get("sensorData") or []]
        except (AttributeError, TypeError, ValueError) as e:
            raise InvalidRequestError(f"Invalid sensorData: {e}") from None
        outcome = monitor.run_detection(sensor_data, title_prefix="Test Alert")
        return jsonify({
            "success": True,
            "detectionsCount": len(outcome["results"]),
            "alertsCreated": len(outcome["alerts"]),
            "results": [r.to_dict() for r in outcome["results"]],
            "alerts": [a.to_dict() for a in outcome["alerts"]],
        })

    @app.route("/api/alerts/stream")
    def api_alert_stream():
        # clientId is only a label; subscriber keys are always minted here
        label = request.args.get("clientId")
        client_id = f"{label}-{uuid.uuid4().hex}" if label else uuid.uuid4().hex

        def events():
            q = feed.subscribe(client_id)
            try:
                yield ": connected\n\n"
                while True:
                    try:
                        payload = q.get(timeout=heartbeat)
                    except queue.Empty:
                        yield ": keep-alive\n\n"
                        continue
                    yield f"event: alert\ndata: {payload}\n\n"
            finally:
                feed.unsubscribe(client_id, q)

        return Response(stream_with_context(events()), mimetype="text/event-stream",
                        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"})

    # ─── Anomalies ───────────────────────────────────────

    @app.route("/api/anomalies")
    def api_anomalies():
        include_resolved = request.args.get("includeResolved", "false").lower() == "true"
        anomalies = store.get_anomalies(limit=_int_arg("limit", 50, lo=1), include_resolved=include_resolved)
        return jsonify({"anomalies": [a.to_dict() for a in anomalies]})

    @app.route("/api/anomalies/<anomaly_id>/resolve", methods=["POST"])
    def api_anomaly_resolve(anomaly_id):
        anomaly = store.resolve_anomaly(anomaly_id)
        if anomaly is None:
            return jsonify({"error": f"Anomaly not found: {anomaly_id}"}), 404
        return jsonify({"success": True, "anomaly": anomaly.to_dict()})

    @app.route("/api/anomalies/analyze", methods=["POST"])
    def api_anomalies_analyze():
        analysis = engines["analyzer"].analyze_pattern(monitor.get_window())
        return jsonify({"analysis": analysis.to_dict()})

    # ─── AI / System ─────────────────────────────────────

    @app.route("/api/ai/insights")
    def api_ai_insights():
        return jsonify({"insights": generate_daily_insights(engines["llm"], monitor.get_window())})

    @app.route("/api/system/initialize", methods=["POST"])
    def api_system_initialize():
        body = _json_body()
        result = monitor.initialize(body.get("userRole"), body.get("microgridLocation"))
        prefs = result["preferences"]
        return jsonify({
            "success": True,
            "message": "System initialized with sample data",
            "userPreferences": prefs,
            "dashboardUrl": f"/dashboard?role={prefs['role']}&location={prefs['location']}",
        })

    @app.route("/api/notifications")
    def api_notifications():
        records = store.get_notifications(alert_id=request.args.get("alertId"),
                                          limit=_int_arg("limit", 100, lo=1))
        return jsonify({"notifications": [r.to_dict() for r in records]})

    return app
