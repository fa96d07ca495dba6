"""Achievement status derivation. Pure functions, no I/O."""

from typing import Iterable, List, Optional

from isyourdayok.core.service.achievement.models import (
    ACHIEVEMENT_TYPES,
    Achievement,
    AchievementProgress,
    AchievementStatus,
    AchievementType,
)


def evaluate(streak: int, achievement_type: AchievementType, minted: bool = False) -> AchievementProgress:
    """
    Status of one achievement for the given streak.

    minted wins over everything; otherwise unlocked at the threshold,
    in-progress below it, locked at zero. Progress never exceeds the target.
    """
    target = achievement_type.days

    if minted:
        status = AchievementStatus.MINTED
    elif streak >= target:
        status = AchievementStatus.UNLOCKED
    elif streak > 0:
        status = AchievementStatus.IN_PROGRESS
    else:
        status = AchievementStatus.LOCKED

    return AchievementProgress(
        type=achievement_type.id,
        title=achievement_type.title,
        description=achievement_type.description,
        kind=achievement_type.kind,
        status=status,
        current=max(0, min(streak, target)),
        target=target,
    )


def evaluate_all(
    journal_streak: int,
    meditation_streak: int,
    achievements: Optional[Iterable[Achievement]] = None
) -> List[AchievementProgress]:
    """Evaluate the whole catalogue; `achievements` are the user's local mint records"""
    minted_types = {a.type for a in achievements or () if a.minted}
    streaks = {"journal": journal_streak, "meditation": meditation_streak}

    return [
        evaluate(streaks[t.kind.value], t, minted=t.id in minted_types)
        for t in ACHIEVEMENT_TYPES.values()
    ]
