"""
Pure gamification rules: reward ladder, streak policy, radar, progress.
"""

from datetime import date

import pytest

from app.services.gamification import (
    REWARD_TIERS, build_radar, completion_percent, difficulty_for_rate,
    next_streak, streak_bonus, tiers_unlocked, to_date, xp_for_difficulty
)


TODAY = date(2026, 3, 10)


class TestRewardTiers:
    def test_ladder_is_ascending(self):
        thresholds = [t.threshold for t in REWARD_TIERS]
        assert thresholds == sorted(thresholds) == [500, 1500, 3000, 5000]

    def test_badge_names(self):
        assert [t.badge for t in REWARD_TIERS] == [
            "Beginner Achiever", "Consistency King", "Placement Warrior", "Elite Candidate"
        ]

    @pytest.mark.parametrize("xp,expected", [
        (0, []),
        (499, []),
        (500, [500]),
        (1499, [500]),
        (3000, [500, 1500, 3000]),
        (99999, [500, 1500, 3000, 5000]),
    ])
    def test_tiers_unlocked(self, xp, expected):
        assert [t.threshold for t in tiers_unlocked(xp)] == expected


class TestStreak:
    def test_first_completion_starts_streak(self):
        assert next_streak(0, None, TODAY) == 1

    def test_yesterday_extends(self):
        assert next_streak(4, date(2026, 3, 9), TODAY) == 5

    def test_same_day_keeps(self):
        assert next_streak(4, TODAY, TODAY) == 4

    def test_same_day_never_below_one(self):
        assert next_streak(0, TODAY, TODAY) == 1

    def test_gap_resets(self):
        assert next_streak(9, date(2026, 3, 8), TODAY) == 1

    def test_month_boundary(self):
        assert next_streak(2, date(2026, 2, 28), date(2026, 3, 1)) == 3

    def test_bonus_only_when_reaching_multiple_of_seven(self):
        assert streak_bonus(6, 7, 100) == 100
        assert streak_bonus(7, 7, 100) == 0
        assert streak_bonus(5, 6, 100) == 0
        assert streak_bonus(13, 14, 100) == 100

    def test_bonus_disabled(self):
        assert streak_bonus(6, 7, 0) == 0


class TestRadar:
    def test_groups_by_skill(self):
        tasks = [
            {"skill_focus": "DSA", "is_completed": True},
            {"skill_focus": "DSA", "is_completed": False},
            {"skill_focus": "SQL", "is_completed": True},
        ]
        radar = build_radar(tasks)
        assert [(r["skill"], r["completion_rate"]) for r in radar] == [("DSA", 50), ("SQL", 100)]
        assert radar[0]["completed"] == 1
        assert radar[0]["total"] == 2

    def test_skips_tasks_without_skill(self):
        tasks = [
            {"skill_focus": None, "is_completed": True},
            {"skill_focus": "  ", "is_completed": True},
            {"skill_focus": "OS", "is_completed": 0},
        ]
        assert build_radar(tasks) == [{"skill": "OS", "completion_rate": 0, "completed": 0, "total": 1}]

    def test_empty(self):
        assert build_radar([]) == []

    def test_rounds_to_integer(self):
        tasks = [{"skill_focus": "DBMS", "is_completed": i == 0} for i in range(3)]
        assert build_radar(tasks)[0]["completion_rate"] == 33

    def test_tie_rounds_up(self):
        tasks = [{"skill_focus": "DSA", "is_completed": i == 0} for i in range(8)]
        assert build_radar(tasks)[0]["completion_rate"] == 13


class TestProgressAndDifficulty:
    def test_completion_percent(self):
        assert completion_percent(1, 2) == 50
        assert completion_percent(2, 3) == 67
        assert completion_percent(0, 0) == 0

    @pytest.mark.parametrize("done,total,expected", [
        (1, 8, 13),
        (3, 8, 38),
        (5, 8, 63),
        (7, 8, 88),
        (1, 200, 1),
        (1, 6, 17),
        (8, 8, 100),
    ])
    def test_halves_round_up(self, done, total, expected):
        assert completion_percent(done, total) == expected

    @pytest.mark.parametrize("done,total,expected", [
        (9, 10, "hard"),
        (10, 10, "hard"),
        (5, 10, "medium"),
        (4, 10, "easy"),
        (0, 0, "medium"),
    ])
    def test_difficulty_for_rate(self, done, total, expected):
        assert difficulty_for_rate(done, total) == expected

    def test_xp_for_difficulty(self):
        assert xp_for_difficulty("easy") == 20
        assert xp_for_difficulty("medium") == 40
        assert xp_for_difficulty("hard") == 60
        assert xp_for_difficulty("unknown") == 40


def test_to_date_accepts_sqlite_strings():
    assert to_date("2026-03-10") == TODAY
    assert to_date("2026-03-10 08:15:00") == TODAY
    assert to_date(TODAY) == TODAY
    assert to_date(None) is None
