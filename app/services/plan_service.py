"""
Career Plan Service - persistence for plans, tasks and rewards.

PURPOSE:
The relational database is the single source of truth for plan state.
Clients re-fetch after every write; nothing here is cached in-process.

TRANSACTIONS:
Every public function opens exactly one get_db_session() block, so a
completion (task flag, XP, streak, progress, rewards) commits or rolls
back as a unit. Double completion of the same task is prevented by the
conditional UPDATE ... WHERE is_completed = false. Completions of
different tasks in one plan are serialised by a row lock on the plan
(SELECT ... FOR UPDATE), so progress and streak are computed from
committed state.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import List, Optional
from zoneinfo import ZoneInfo

from sqlalchemy import text

from app.core.config import get_settings
from app.core.errors import ForbiddenError, NotFoundError, ValidationError
from app.db.postgres import get_db_session, execute_raw_sql
from app.services import gamification

logger = logging.getLogger(__name__)

settings = get_settings()

PLAN_COLUMNS = """
    id, student_id, target_id, target_name, track_type, total_xp, current_streak,
    last_completed_date, progress, difficulty_level, created_at
"""

TASK_COLUMNS = """
    id, plan_id, week_number, task_date, skill_focus, morning_task, evening_task,
    difficulty, xp, is_completed, completed_at
"""

REWARD_COLUMNS = """
    id, student_id, plan_id, badge_name, badge_icon, xp_threshold, unlocked_at
"""


@dataclass
class CompletionResult:
    plan: dict
    new_rewards: List[dict] = field(default_factory=list)
    xp_earned: int = 0
    already_completed: bool = False


# ============================================================
# HELPERS
# ============================================================

def local_now() -> datetime:
    """Current wall-clock time in the configured timezone (naive, for storage)."""
    return datetime.now(ZoneInfo(settings.app_timezone)).replace(tzinfo=None)


def _sql_date(value: date) -> str:
    return value.isoformat()


def _sql_timestamp(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S")


def _row_lock_clause(db) -> str:
    # SQLite serialises writers and has no FOR UPDATE
    if db.get_bind().dialect.name == "sqlite":
        return ""
    return " FOR UPDATE"


def _fetch_plan(db, plan_id: int, lock: bool = False) -> Optional[dict]:
    lock_clause = _row_lock_clause(db) if lock else ""
    row = db.execute(
        text(f"SELECT {PLAN_COLUMNS} FROM career_plans WHERE id = :id{lock_clause}"),
        {"id": plan_id}
    ).mappings().fetchone()
    return dict(row) if row else None


def _fetch_owned_plan(db, plan_id: int, student_id: int, lock: bool = False) -> dict:
    """Load a plan and check ownership. Raises NotFoundError / ForbiddenError."""
    plan = _fetch_plan(db, plan_id, lock=lock)
    if plan is None:
        raise NotFoundError("Plan not found")
    if plan["student_id"] != student_id:
        raise ForbiddenError("You do not have access to this plan")
    return plan


def _fetch_tasks(db, plan_id: int) -> List[dict]:
    rows = db.execute(
        text(f"SELECT {TASK_COLUMNS} FROM career_tasks WHERE plan_id = :id ORDER BY week_number, id"),
        {"id": plan_id}
    ).mappings().fetchall()
    return [dict(r) for r in rows]


def _fetch_rewards(db, plan_id: int) -> List[dict]:
    rows = db.execute(
        text(f"SELECT {REWARD_COLUMNS} FROM career_rewards WHERE plan_id = :id ORDER BY xp_threshold"),
        {"id": plan_id}
    ).mappings().fetchall()
    return [dict(r) for r in rows]


# ============================================================
# PLAN LIFECYCLE
# ============================================================

def list_plans(student_id: int) -> List[dict]:
    """All plans of a student, newest first."""
    return execute_raw_sql(
        f"SELECT {PLAN_COLUMNS} FROM career_plans WHERE student_id = :sid ORDER BY created_at DESC, id DESC",
        {"sid": student_id}
    )


def get_plan_detail(plan_id: int, student_id: int) -> dict:
    """
    Everything the plan view needs in one call.

    Returns:
        {"plan": {...}, "tasks": [...], "rewards": [...], "radarData": [...]}
    """
    with get_db_session() as db:
        plan = _fetch_owned_plan(db, plan_id, student_id)
        tasks = _fetch_tasks(db, plan_id)
        rewards = _fetch_rewards(db, plan_id)

    return {
        "plan": plan,
        "tasks": tasks,
        "rewards": rewards,
        "radarData": gamification.build_radar(tasks),
    }


def expand_milestones(milestones: List[dict], difficulty: str, start_date: date) -> List[dict]:
    """
    Turn generated weekly milestones into task rows.

    Tasks are paired in order as morning/evening; an odd trailing task is
    repeated as the evening text (clients show identical texts as one task).
    Day i of week w is dated start_date + (w - 1) * 7 + i.
    """
    default_xp = gamification.xp_for_difficulty(difficulty)
    rows = []

    for milestone in milestones:
        week = int(milestone["week"])
        target_skills = milestone.get("target_skills") or []
        skill_focus = (target_skills[0] if target_skills else "") or milestone.get("title") or None
        xp = milestone.get("xp") or default_xp
        texts = [t.strip() for t in milestone.get("tasks") or [] if t and t.strip()]

        for day, i in enumerate(range(0, len(texts), 2)):
            morning = texts[i]
            evening = texts[i + 1] if i + 1 < len(texts) else morning
            rows.append({
                "week_number": week,
                "task_date": start_date + timedelta(days=(week - 1) * 7 + day),
                "skill_focus": skill_focus,
                "morning_task": morning,
                "evening_task": evening,
                "difficulty": difficulty,
                "xp": xp,
            })

    return rows


def add_plan(
    student_id: int,
    target_id: str,
    target_name: str,
    track_type: str,
    milestones: List[dict],
    difficulty: str = "medium",
    start_date: Optional[date] = None,
) -> dict:
    """
    Persist a generated plan and seed its tasks.

    A student holds at most one plan per target; adding the same target again
    returns the existing plan.

    Returns:
        {"plan_id": int, "already_exists": bool}
    """
    start_date = start_date or local_now().date()
    task_rows = expand_milestones(milestones, difficulty, start_date)
    if not task_rows:
        raise ValidationError("Milestones contain no tasks")

    with get_db_session() as db:
        inserted = db.execute(
            text("""
                INSERT INTO career_plans
                    (student_id, target_id, target_name, track_type, total_xp, current_streak,
                     progress, difficulty_level, created_at)
                VALUES (:sid, :tid, :name, :track, 0, 0, 0, :difficulty, :created_at)
                ON CONFLICT (student_id, target_id) DO NOTHING
                RETURNING id
            """),
            {
                "sid": student_id, "tid": target_id, "name": target_name, "track": track_type,
                "difficulty": difficulty, "created_at": _sql_timestamp(local_now())
            }
        ).fetchone()
        if inserted is None:
            existing = db.execute(
                text("SELECT id FROM career_plans WHERE student_id = :sid AND target_id = :tid"),
                {"sid": student_id, "tid": target_id}
            ).fetchone()
            return {"plan_id": existing[0], "already_exists": True}

        plan_id = inserted[0]

        db.execute(
            text("""
                INSERT INTO career_tasks
                    (plan_id, week_number, task_date, skill_focus, morning_task, evening_task,
                     difficulty, xp, is_completed)
                VALUES (:plan_id, :week_number, :task_date, :skill_focus, :morning_task, :evening_task,
                        :difficulty, :xp, :is_completed)
            """),
            [
                {**row, "plan_id": plan_id, "task_date": _sql_date(row["task_date"]), "is_completed": False}
                for row in task_rows
            ]
        )

    logger.info("Plan %s created for student %s (%s, %d tasks)", plan_id, student_id, target_id, len(task_rows))
    return {"plan_id": plan_id, "already_exists": False}


def delete_plan(plan_id: int, student_id: int) -> None:
    """Hard delete a plan with its tasks and rewards."""
    with get_db_session() as db:
        _fetch_owned_plan(db, plan_id, student_id)

        db.execute(text("DELETE FROM career_rewards WHERE plan_id = :id"), {"id": plan_id})
        db.execute(text("DELETE FROM career_tasks WHERE plan_id = :id"), {"id": plan_id})
        db.execute(text("DELETE FROM career_plans WHERE id = :id"), {"id": plan_id})

    logger.info("Plan %s deleted by student %s", plan_id, student_id)


# ============================================================
# COMPLETION ENGINE
# ============================================================

def complete_task(task_id: int, plan_id: int, student_id: int, now: Optional[datetime] = None) -> CompletionResult:
    """
    Mark a task complete and apply XP, streak, progress and rewards.

    Process:
    1. Check plan ownership and that the task belongs to the plan
    2. Flip the flag with a conditional UPDATE (0 rows = already done, no-op)
    3. Recompute streak from last_completed_date
    4. Increment XP, recompute progress from task counts
    5. Insert every reward tier now reached that is not recorded yet

    Repeat calls for the same task return already_completed=True and change
    nothing.
    """
    now = now or local_now()
    today = now.date()

    with get_db_session() as db:
        # Row lock held until commit: concurrent completions on the same plan
        # must see each other's flips when counting progress.
        plan = _fetch_owned_plan(db, plan_id, student_id, lock=True)

        task = db.execute(
            text("SELECT id, xp FROM career_tasks WHERE id = :tid AND plan_id = :pid"),
            {"tid": task_id, "pid": plan_id}
        ).mappings().fetchone()
        if task is None:
            raise NotFoundError("Task not found in this plan")

        flipped = db.execute(
            text("""
                UPDATE career_tasks SET is_completed = :done, completed_at = :ts
                WHERE id = :tid AND plan_id = :pid AND is_completed = :not_done
            """),
            {"done": True, "not_done": False, "ts": _sql_timestamp(now), "tid": task_id, "pid": plan_id}
        )
        if flipped.rowcount == 0:
            logger.info("Task %s of plan %s already completed, nothing awarded", task_id, plan_id)
            return CompletionResult(plan=plan, already_completed=True)

        old_streak = plan["current_streak"] or 0
        new_streak = gamification.next_streak(
            old_streak, gamification.to_date(plan["last_completed_date"]), today
        )
        xp_earned = task["xp"] + gamification.streak_bonus(old_streak, new_streak, settings.streak_bonus_xp)

        counts = db.execute(
            text("""
                SELECT COUNT(*) AS total,
                       COALESCE(SUM(CASE WHEN is_completed = :done THEN 1 ELSE 0 END), 0) AS done
                FROM career_tasks WHERE plan_id = :pid
            """),
            {"pid": plan_id, "done": True}
        ).mappings().fetchone()
        progress = gamification.completion_percent(int(counts["done"]), int(counts["total"]))

        new_xp = db.execute(
            text("""
                UPDATE career_plans
                SET total_xp = total_xp + :earned, current_streak = :streak,
                    last_completed_date = :today, progress = :progress
                WHERE id = :pid
                RETURNING total_xp
            """),
            {
                "earned": xp_earned, "streak": new_streak, "today": _sql_date(today),
                "progress": progress, "pid": plan_id
            }
        ).fetchone()[0]

        new_rewards = []
        for tier in gamification.tiers_unlocked(new_xp):
            row = db.execute(
                text(f"""
                    INSERT INTO career_rewards (student_id, plan_id, badge_name, badge_icon, xp_threshold, unlocked_at)
                    VALUES (:sid, :pid, :badge, :icon, :threshold, :ts)
                    ON CONFLICT (plan_id, xp_threshold) DO NOTHING
                    RETURNING {REWARD_COLUMNS}
                """),
                {
                    "sid": plan["student_id"], "pid": plan_id, "badge": tier.badge,
                    "icon": tier.icon, "threshold": tier.threshold, "ts": _sql_timestamp(now)
                }
            ).mappings().fetchone()
            if row is not None:
                new_rewards.append(dict(row))

        updated_plan = _fetch_plan(db, plan_id)

    logger.info(
        "Task %s completed: plan %s xp=%s streak=%s progress=%s rewards=%s",
        task_id, plan_id, new_xp, new_streak, progress, [r["badge_name"] for r in new_rewards]
    )
    return CompletionResult(plan=updated_plan, new_rewards=new_rewards, xp_earned=xp_earned)


# ============================================================
# DIFFICULTY ADJUSTMENT
# ============================================================

def adjust_difficulty(plan_id: int, student_id: int, today: Optional[date] = None) -> str:
    """Re-rate the plan from the completion rate of tasks dated in the last 7 days."""
    today = today or local_now().date()

    with get_db_session() as db:
        _fetch_owned_plan(db, plan_id, student_id)

        counts = db.execute(
            text("""
                SELECT COUNT(*) AS total,
                       COALESCE(SUM(CASE WHEN is_completed = :done THEN 1 ELSE 0 END), 0) AS done
                FROM career_tasks
                WHERE plan_id = :pid AND task_date >= :since AND task_date <= :today
            """),
            {
                "pid": plan_id, "done": True,
                "since": _sql_date(today - timedelta(days=7)), "today": _sql_date(today)
            }
        ).mappings().fetchone()
        difficulty = gamification.difficulty_for_rate(int(counts["done"]), int(counts["total"]))

        db.execute(
            text("UPDATE career_plans SET difficulty_level = :d WHERE id = :pid"),
            {"d": difficulty, "pid": plan_id}
        )

    logger.info("Plan %s difficulty set to %s", plan_id, difficulty)
    return difficulty


# ============================================================
# LEADERBOARD
# ============================================================

def get_leaderboard(limit: int = 10) -> List[dict]:
    """Top students by XP summed over all their plans."""
    safe_limit = max(1, min(100, int(limit)))
    rows = execute_raw_sql(
        """
        SELECT s.student_id, s.full_name AS name, SUM(cp.total_xp) AS total_xp
        FROM students s
        JOIN career_plans cp ON s.student_id = cp.student_id
        GROUP BY s.student_id, s.full_name
        ORDER BY total_xp DESC, s.student_id
        LIMIT :limit
        """,
        {"limit": safe_limit}
    )
    return [
        {"student_id": r["student_id"], "name": r["name"], "total_xp": int(r["total_xp"] or 0), "rank": idx + 1}
        for idx, r in enumerate(rows)
    ]


def get_student_standing(student_id: int) -> dict:
    """XP and rank of one student: rank = 1 + students with strictly more XP."""
    with get_db_session() as db:
        my_xp = db.execute(
            text("SELECT COALESCE(SUM(total_xp), 0) FROM career_plans WHERE student_id = :sid"),
            {"sid": student_id}
        ).fetchone()[0]
        my_xp = int(my_xp or 0)

        ahead = db.execute(
            text("""
                SELECT COUNT(*) FROM (
                    SELECT student_id, SUM(total_xp) AS total_xp
                    FROM career_plans GROUP BY student_id
                ) ranked
                WHERE ranked.total_xp > :xp
            """),
            {"xp": my_xp}
        ).fetchone()[0]

    return {"total_xp": my_xp, "rank": int(ahead) + 1}


# ============================================================
# REMINDERS
# ============================================================

def find_pending_reminders(today: Optional[date] = None) -> List[dict]:
    """
    Students with incomplete tasks dated today, one row per student and plan.

    Returns:
        [{"email", "name", "target_name", "pending_count"}, ...]
    """
    today = today or local_now().date()
    rows = execute_raw_sql(
        """
        SELECT u.email, s.full_name AS name, cp.target_name, COUNT(ct.id) AS pending_count
        FROM students s
        JOIN users u ON s.user_id = u.user_id
        JOIN career_plans cp ON s.student_id = cp.student_id
        JOIN career_tasks ct ON cp.id = ct.plan_id
        WHERE ct.task_date = :today AND ct.is_completed = :not_done
        GROUP BY u.email, s.full_name, cp.id, cp.target_name
        ORDER BY u.email, cp.id
        """,
        {"today": _sql_date(today), "not_done": False}
    )
    for row in rows:
        row["pending_count"] = int(row["pending_count"])
    return rows
