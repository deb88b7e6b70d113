"""
Tests for Prometheus metrics helpers
"""
from evehistory.core.metrics import (
    REGISTRY,
    get_content_type,
    get_metrics,
    init_metrics,
    record_eve_entries_streamed,
    record_eve_request,
    record_eve_unknown_command,
    record_history_entry,
    record_history_reset,
    record_history_rollover,
    update_eve_linked_accessories,
)


def sample(name, labels=None):
    return REGISTRY.get_sample_value(name, labels or {}) or 0


class TestHistoryMetrics:
    """Counters of the history store"""

    def test_record_history_entry_by_status(self):
        recorded = sample("history_entries_total", {"status": "recorded"})
        suppressed = sample("history_entries_total", {"status": "suppressed"})

        record_history_entry(True)
        record_history_entry(False)

        assert sample("history_entries_total", {"status": "recorded"}) == recorded + 1
        assert sample("history_entries_total", {"status": "suppressed"}) == suppressed + 1

    def test_record_rollover_and_reset(self):
        rollovers = sample("history_rollovers_total")
        resets = sample("history_resets_total", {"reason": "manual"})

        record_history_rollover()
        record_history_reset("manual")

        assert sample("history_rollovers_total") == rollovers + 1
        assert sample("history_resets_total", {"reason": "manual"}) == resets + 1


class TestEveMetrics:
    """Counters of the Eve protocol"""

    def test_record_eve_request(self):
        before = sample("eve_history_requests_total", {"evetype": "door"})

        record_eve_request("door")

        assert sample("eve_history_requests_total", {"evetype": "door"}) == before + 1

    def test_streamed_entries_ignores_empty_pages(self):
        before = sample("eve_entries_streamed_total", {"evetype": "room"})

        record_eve_entries_streamed("room", 11)
        record_eve_entries_streamed("room", 0)

        assert sample("eve_entries_streamed_total", {"evetype": "room"}) == before + 11

    def test_unknown_commands_and_linked_gauge(self):
        unknown = sample("eve_unknown_commands_total", {"evetype": "aqua"})
        linked = sample("eve_linked_accessories")

        record_eve_unknown_command("aqua")
        update_eve_linked_accessories(1)

        assert sample("eve_unknown_commands_total", {"evetype": "aqua"}) == unknown + 1
        assert sample("eve_linked_accessories") == linked + 1


class TestMetricsOutput:
    """Exposition helpers"""

    def test_get_metrics_includes_app_info(self):
        init_metrics(version="9.9.9")

        output = get_metrics().decode("utf-8")

        assert sample("evehistory_info", {"name": "evehistory", "version": "9.9.9"}) == 1.0
        assert "evehistory_info" in output
        assert "history_entries_total" in output

    def test_content_type(self):
        assert get_content_type().startswith("text/plain")
