import json

from placeshare.observability.metrics import MetricsRegistry


def test_counters_default_to_zero_and_export(tmp_path):
    metrics = MetricsRegistry()
    assert metrics.get("resolutions_started") == 0
    assert metrics.get("unknown") == 0
    metrics.incr("resolutions_started")
    metrics.incr("copies_fallback", 2)

    path = metrics.export(path=tmp_path / "out" / "metrics.json")
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["counters"]["resolutions_started"] == 1
    assert payload["counters"]["copies_fallback"] == 2
    assert "generated_at" in payload
