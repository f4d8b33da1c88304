"""Achievements - Static milestone catalog and its evaluation.

Nothing is persisted: achievements are recomputed from aggregates on
every call.
"""

from typing import Mapping

from .models import AchievementDefinition, AchievementProgress, AchievementReport, ReadingStats


def _milestone(milestone_id: str, name: str, category: str, target: int, description: str, icon: str) -> AchievementDefinition:
    return AchievementDefinition(
        id=milestone_id, name=name, category=category, target=target, description=description, icon=icon
    )


ACHIEVEMENT_CATALOG: list[AchievementDefinition] = [
    # Streak milestones
    _milestone("streak-1000", "Millennium Reader", "streak", 1000, "1,000 day reading streak", "👑"),
    _milestone("streak-1200", "Streak Titan", "streak", 1200, "1,200 day reading streak", "🔥"),
    _milestone("streak-1500", "Dedication Master", "streak", 1500, "1,500 day reading streak", "⭐"),
    _milestone("streak-2000", "Unstoppable Force", "streak", 2000, "2,000 day reading streak", "💎"),
    _milestone("streak-2500", "Reading Legend", "streak", 2500, "2,500 day reading streak", "🌟"),
    _milestone("streak-3000", "Epic Dedication", "streak", 3000, "3,000 day reading streak", "🏆"),
    # Page milestones
    _milestone("pages-15000", "Literary Giant", "pages", 15000, "Read 15,000 pages", "📗"),
    _milestone("pages-20000", "Page Master", "pages", 20000, "Read 20,000 pages", "📕"),
    _milestone("pages-25000", "Reading Machine", "pages", 25000, "Read 25,000 pages", "📚"),
    _milestone("pages-30000", "Page Emperor", "pages", 30000, "Read 30,000 pages", "👑"),
    _milestone("pages-50000", "Legendary Reader", "pages", 50000, "Read 50,000 pages", "💎"),
    # Minute milestones
    _milestone("minutes-15000", "Timeless Reader", "minutes", 15000, "Read for 15,000 minutes", "🕐"),
    _milestone("minutes-20000", "Time Lord", "minutes", 20000, "Read for 20,000 minutes", "⏰"),
    _milestone("minutes-25000", "Marathon Reader", "minutes", 25000, "Read for 25,000 minutes", "⏱️"),
    _milestone("minutes-30000", "Time Champion", "minutes", 30000, "Read for 30,000 minutes", "⌚"),
    _milestone("minutes-50000", "Eternal Reader", "minutes", 50000, "Read for 50,000 minutes", "🌟"),
    # Book milestones
    _milestone("books-250", "Literary Master", "books", 250, "Finished 250 books", "🏆"),
    _milestone("books-300", "Book Conqueror", "books", 300, "Finished 300 books", "📘"),
    _milestone("books-350", "Reading Virtuoso", "books", 350, "Finished 350 books", "📙"),
    _milestone("books-400", "Bibliophile Elite", "books", 400, "Finished 400 books", "📔"),
    _milestone("books-500", "Grand Library", "books", 500, "Finished 500 books", "👑"),
]


def snapshot_from_stats(stats: ReadingStats) -> dict[str, float]:
    """Build the category -> value snapshot the catalog is evaluated against."""
    return {
        "streak": stats.current_streak,
        "minutes": stats.totals.minutes,
        "pages": stats.totals.pages,
        "books": stats.totals.books,
    }


def evaluate_achievements(
    snapshot: Mapping[str, float],
    catalog: list[AchievementDefinition] | None = None,
) -> list[AchievementProgress]:
    """Evaluate every catalog entry against a snapshot.

    Args:
        snapshot: Mapping of category to current value
        catalog: Milestones to evaluate (defaults to ACHIEVEMENT_CATALOG)

    Returns:
        One AchievementProgress per milestone, in catalog order
    """
    if catalog is None:
        catalog = ACHIEVEMENT_CATALOG

    results = []
    for definition in catalog:
        current = snapshot.get(definition.category, 0)
        results.append(
            AchievementProgress(
                definition=definition,
                current=current,
                is_completed=current >= definition.target,
            )
        )
    return results


def partition_achievements(
    progress: list[AchievementProgress],
    in_progress_limit: int = 3,
) -> AchievementReport:
    """Split into completed and the nearest in-progress milestones.

    In-progress milestones are ordered by remaining distance to target
    (ties keep catalog order) and truncated to in_progress_limit.
    """
    completed = [p for p in progress if p.is_completed]
    pending = sorted((p for p in progress if not p.is_completed), key=lambda p: p.remaining)

    return AchievementReport(completed=completed, in_progress=pending[:in_progress_limit])
