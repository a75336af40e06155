"""
Gamification rules - XP, streaks, reward tiers and skill radar.

Pure functions only (no database access) so the completion transaction in
plan_service and the tests share exactly the same rules.

The LLM generates the plan structure once; everything here is deterministic.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional


# ============================================================
# XP RULES
# ============================================================

XP_RULES = {
    "easy": 20,
    "medium": 40,
    "hard": 60,
}

STREAK_BONUS_EVERY = 7


def xp_for_difficulty(difficulty: str) -> int:
    return XP_RULES.get(difficulty, XP_RULES["medium"])


# ============================================================
# REWARD TIERS
# Ordered ascending; add a tier here and the completion engine picks it up.
# ============================================================

@dataclass(frozen=True)
class RewardTier:
    threshold: int
    badge: str
    icon: str
    description: str


REWARD_TIERS: List[RewardTier] = [
    RewardTier(500, "Beginner Achiever", "🌱", "You've taken your first steps!"),
    RewardTier(1500, "Consistency King", "🔥", "Showing up every day!"),
    RewardTier(3000, "Placement Warrior", "⚔️", "Halfway to the top!"),
    RewardTier(5000, "Elite Candidate", "👑", "You're in the top tier!"),
]


def tiers_unlocked(xp: int) -> List[RewardTier]:
    """All tiers whose threshold is <= xp, lowest first."""
    return [tier for tier in REWARD_TIERS if tier.threshold <= xp]


# ============================================================
# STREAK
# ============================================================

def next_streak(current_streak: int, last_completed: Optional[date], today: date) -> int:
    """
    Streak after a completion happening on `today`.

    - last completion yesterday  -> streak + 1
    - last completion today      -> unchanged (at least 1)
    - no completion / older gap  -> 1
    """
    if last_completed is None:
        return 1
    if last_completed == today:
        return max(current_streak, 1)
    if last_completed == today - timedelta(days=1):
        return current_streak + 1
    return 1


def streak_bonus(old_streak: int, new_streak: int, bonus_xp: int) -> int:
    """Bonus XP when the streak just reached a multiple of STREAK_BONUS_EVERY."""
    if bonus_xp <= 0 or new_streak <= old_streak:
        return 0
    if new_streak % STREAK_BONUS_EVERY == 0:
        return bonus_xp
    return 0


# ============================================================
# PROGRESS & RADAR
# ============================================================

def completion_percent(completed: int, total: int) -> int:
    """Whole percent, halves rounded up (1 of 8 -> 13)."""
    if not total:
        return 0
    return (200 * completed + total) // (2 * total)


def build_radar(tasks: Iterable[dict]) -> List[dict]:
    """
    Per-skill completion rate for the radar chart.

    Tasks without a skill_focus are skipped; skills keep the order in which
    they first appear.
    """
    groups = {}
    for task in tasks:
        skill = (task.get("skill_focus") or "").strip()
        if not skill:
            continue
        bucket = groups.setdefault(skill, {"completed": 0, "total": 0})
        bucket["total"] += 1
        if task.get("is_completed"):
            bucket["completed"] += 1

    return [
        {
            "skill": skill,
            "completion_rate": completion_percent(counts["completed"], counts["total"]),
            "completed": counts["completed"],
            "total": counts["total"],
        }
        for skill, counts in groups.items()
    ]


def difficulty_for_rate(completed: int, total: int) -> str:
    """Weekly auto-adjustment: >=90% -> hard, <50% -> easy, else medium."""
    if not total:
        return "medium"
    rate = completed * 100 / total
    if rate >= 90:
        return "hard"
    if rate < 50:
        return "easy"
    return "medium"


# ============================================================
# VALUE COERCION
# Raw text() queries return strings for dates on SQLite.
# ============================================================

def to_date(value) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])
