"""
Relational schema for users, students and the career plan tracker.

Queries are written as raw SQL with text(); these Table objects exist so the
same DDL can be emitted on PostgreSQL and SQLite (create_all on startup).

Tables:
- users / students:   login accounts and the student profile owning plans
- career_plans:       one row per student target (company or exam)
- career_tasks:       weekly/day rows, morning + evening text, single flag
- career_rewards:     one row per reward tier a plan has crossed
"""

from sqlalchemy import (
    MetaData, Table, Column, Integer, String, Text, Boolean, Date, DateTime,
    ForeignKey, UniqueConstraint, Index, func, text
)

metadata = MetaData()

users = Table(
    "users", metadata,
    Column("user_id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    Column("role", String(20), nullable=False, server_default="student"),
    Column("is_active", Boolean, nullable=False, server_default=text("true")),
    Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
)

students = Table(
    "students", metadata,
    Column("student_id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, unique=True),
    Column("full_name", String(100), nullable=False),
    Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
)

career_plans = Table(
    "career_plans", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("student_id", Integer, ForeignKey("students.student_id", ondelete="CASCADE"), nullable=False),
    Column("target_id", String(100), nullable=False),
    Column("target_name", String(255), nullable=False),
    Column("track_type", String(20), nullable=False, server_default="placement"),
    Column("total_xp", Integer, nullable=False, server_default="0"),
    Column("current_streak", Integer, nullable=False, server_default="0"),
    Column("last_completed_date", Date, nullable=True),
    Column("progress", Integer, nullable=False, server_default="0"),
    Column("difficulty_level", String(10), nullable=False, server_default="medium"),
    Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    UniqueConstraint("student_id", "target_id", name="uq_career_plans_student_target"),
)

career_tasks = Table(
    "career_tasks", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("plan_id", Integer, ForeignKey("career_plans.id", ondelete="CASCADE"), nullable=False),
    Column("week_number", Integer, nullable=False),
    Column("task_date", Date, nullable=True),
    Column("skill_focus", String(255), nullable=True),
    Column("morning_task", Text, nullable=True),
    Column("evening_task", Text, nullable=True),
    Column("difficulty", String(10), nullable=False, server_default="medium"),
    Column("xp", Integer, nullable=False),
    Column("is_completed", Boolean, nullable=False, server_default=text("false")),
    Column("completed_at", DateTime, nullable=True),
    Index("ix_career_tasks_plan_week", "plan_id", "week_number"),
    Index("ix_career_tasks_date", "task_date"),
)

career_rewards = Table(
    "career_rewards", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("student_id", Integer, nullable=False),
    Column("plan_id", Integer, ForeignKey("career_plans.id", ondelete="CASCADE"), nullable=False),
    Column("badge_name", String(100), nullable=False),
    Column("badge_icon", String(20), nullable=False),
    Column("xp_threshold", Integer, nullable=False),
    Column("unlocked_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    UniqueConstraint("plan_id", "xp_threshold", name="uq_career_rewards_plan_tier"),
)


def create_tables(engine) -> None:
    """Create any missing tables (no-op for tables that already exist)."""
    metadata.create_all(engine)


def drop_tables(engine) -> None:
    metadata.drop_all(engine)
