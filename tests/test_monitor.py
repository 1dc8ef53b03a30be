"""Tests for the monitor orchestrator under concurrent requests."""
import threading

from conftest import make_metric, make_window


class TestConcurrentSimulation:
    def test_concurrent_reading_cannot_enter_spike_window(self, components, monkeypatch):
        monitor, store, simulator = components["monitor"], components["store"], components["simulator"]
        simulator.base_consumption = 320.0
        save = store.save_metric
        racers = []

        def save_then_race(metric):
            saved = save(metric)
            if not racers:
                # a quiet reading from another request, started while the spike is mid-flight
                simulator.base_consumption = 50.0
                racer = threading.Thread(target=monitor.simulate, args=("normal",))
                racers.append(racer)
                racer.start()
                racer.join(timeout=0.2)
            return saved

        monkeypatch.setattr(store, "save_metric", save_then_race)
        result = monitor.simulate("anomaly", "consumption_spike")
        racers[0].join(timeout=5)

        assert not racers[0].is_alive()
        assert result["metric"].consumption > 300
        assert result["anomaly_detected"] is True
        assert result["alert"] is not None
        spike, quiet = store.get_recent_metrics(2)
        assert spike is result["metric"]
        assert quiet.consumption < 300

    def test_parallel_simulations_each_screen_their_own_reading(self, components):
        monitor = components["monitor"]
        results = []
        lock = threading.Lock()

        def run():
            outcome = monitor.simulate("normal")
            with lock:
                results.append(outcome)

        threads = [threading.Thread(target=run) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert len(results) == 8
        assert components["store"].get_metric_count() == 8


class TestDetectionBatch:
    def test_reader_sees_whole_batch_or_nothing(self, components, monkeypatch):
        monitor, store = components["monitor"], components["store"]
        for m in make_window(23) + [make_metric(consumption=375.0, storage=8.0, battery_health=80.0)]:
            store.save_metric(m)

        create = monitor.manager.create
        seen = []
        readers = []

        def create_then_read(*args, **kwargs):
            alert = create(*args, **kwargs)
            if not readers:
                reader = threading.Thread(target=lambda: seen.append(len(store.get_alerts())))
                readers.append(reader)
                reader.start()
                reader.join(timeout=0.2)
            return alert

        monkeypatch.setattr(monitor.manager, "create", create_then_read)
        outcome = monitor.run_detection()
        readers[0].join(timeout=5)

        assert len(outcome["alerts"]) > 1
        assert seen == [len(outcome["alerts"])]

    def test_notifications_sent_for_every_alert(self, components):
        monitor, store = components["monitor"], components["store"]
        for m in make_window(23) + [make_metric(storage=8.0)]:
            store.save_metric(m)
        outcome = monitor.run_detection()
        assert outcome["alerts"]
        for alert in outcome["alerts"]:
            assert store.get_notifications(alert_id=alert.id)
