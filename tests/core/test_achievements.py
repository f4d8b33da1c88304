"""Unit tests for achievement evaluation - pure functions, no mocks needed."""

from readlog.core.achievements import (
    ACHIEVEMENT_CATALOG,
    evaluate_achievements,
    partition_achievements,
    snapshot_from_stats,
)
from readlog.core.models import AchievementDefinition, ReadingStats, ReadingTotals


def snapshot(streak=0, minutes=0, pages=0, books=0) -> dict:
    return {"streak": streak, "minutes": minutes, "pages": pages, "books": books}


class TestCatalog:
    """Tests for the static catalog."""

    def test_ids_unique(self):
        ids = [a.id for a in ACHIEVEMENT_CATALOG]
        assert len(ids) == len(set(ids))

    def test_categories_known(self):
        assert {a.category for a in ACHIEVEMENT_CATALOG} == {"streak", "minutes", "pages", "books"}


class TestEvaluateAchievements:
    """Tests for evaluate_achievements."""

    def test_nothing_completed_at_zero(self):
        results = evaluate_achievements(snapshot())
        assert len(results) == len(ACHIEVEMENT_CATALOG)
        assert not any(r.is_completed for r in results)

    def test_threshold_is_inclusive(self):
        """Reaching the target exactly completes the milestone."""
        results = {r.definition.id: r for r in evaluate_achievements(snapshot(pages=20000))}

        assert results["pages-15000"].is_completed
        assert results["pages-20000"].is_completed
        assert not results["pages-25000"].is_completed
        assert results["pages-25000"].current == 20000

    def test_idempotent(self):
        """Evaluating twice gives the same answer."""
        snap = snapshot(streak=1200, minutes=16000, books=260)
        assert evaluate_achievements(snap) == evaluate_achievements(snap)

    def test_custom_catalog(self):
        catalog = [AchievementDefinition(id="first", name="First", category="books", target=1, description="One book")]
        results = evaluate_achievements(snapshot(books=1), catalog)
        assert [r.is_completed for r in results] == [True]


class TestPartitionAchievements:
    """Tests for partition_achievements."""

    def test_splits_and_orders_by_distance(self):
        snap = snapshot(streak=990, minutes=14000, pages=1000, books=249)
        report = partition_achievements(evaluate_achievements(snap))

        assert report.completed == []
        assert [p.definition.id for p in report.in_progress] == ["books-250", "streak-1000", "books-300"]

    def test_completed_listed(self):
        snap = snapshot(books=300)
        report = partition_achievements(evaluate_achievements(snap), in_progress_limit=1)

        assert [p.definition.id for p in report.completed] == ["books-250", "books-300"]
        assert len(report.in_progress) == 1


class TestSnapshotFromStats:
    """Tests for snapshot_from_stats."""

    def test_maps_fields(self):
        stats = ReadingStats(
            reader_id="luke",
            current_streak=12,
            totals=ReadingTotals(minutes=100, pages=50, books=2),
            unique_days=12,
        )
        assert snapshot_from_stats(stats) == snapshot(streak=12, minutes=100, pages=50, books=2)
