"""Tests for cache metrics."""

from dish_insights.services.metrics import CacheMetricsRecorder


def test_records_hits_and_misses() -> None:
    metrics = CacheMetricsRecorder()

    metrics.record_hit("Test Dish")
    metrics.record_miss("Other Dish")

    snapshot = metrics.snapshot()
    assert snapshot.hits == 1
    assert snapshot.misses == 1
    assert snapshot.total_time_saved_ms == 2000
    assert [op.type for op in snapshot.operations] == ["miss", "hit"]


def test_hit_rate_rounds_to_whole_percent() -> None:
    metrics = CacheMetricsRecorder()
    assert metrics.hit_rate() == 0

    metrics.record_hit("Dish 1")
    metrics.record_hit("Dish 2")
    metrics.record_miss("Dish 3")

    assert metrics.hit_rate() == 67


def test_time_saved_accumulates() -> None:
    metrics = CacheMetricsRecorder()

    metrics.record_hit("Dish 1", 2000)
    metrics.record_hit("Dish 2", 1500)

    assert metrics.snapshot().total_time_saved_ms == 3500


def test_store_does_not_change_counts() -> None:
    metrics = CacheMetricsRecorder()

    metrics.record_store("Dish")

    snapshot = metrics.snapshot()
    assert snapshot.hits == 0
    assert snapshot.misses == 0
    assert snapshot.operations[0].type == "store"


def test_operations_log_is_capped_newest_first() -> None:
    metrics = CacheMetricsRecorder()

    for index in range(60):
        metrics.record_miss(f"Dish {index}")

    operations = metrics.snapshot().operations
    assert len(operations) == 50
    assert operations[0].dish_name == "Dish 59"
    assert operations[-1].dish_name == "Dish 10"
    assert [op.dish_name for op in metrics.recent_operations(2)] == [
        "Dish 59",
        "Dish 58",
    ]


def test_reset_clears_everything() -> None:
    metrics = CacheMetricsRecorder()
    metrics.record_hit("Dish", 1000)
    metrics.record_miss("Dish")

    metrics.reset()

    snapshot = metrics.snapshot()
    assert snapshot.hits == 0
    assert snapshot.misses == 0
    assert snapshot.total_time_saved_ms == 0
    assert snapshot.operations == []
    assert metrics.hit_rate() == 0


def test_summary_reports_counts() -> None:
    metrics = CacheMetricsRecorder()
    metrics.record_hit("Dish", 2500)
    metrics.record_miss("Dish")

    summary = metrics.summary()

    assert "Total lookups: 2" in summary
    assert "Hit rate: 50%" in summary
    assert "Est. time saved: 2.5s" in summary
