"""
Shared fixtures.

Settings are read once at import time, so the environment is prepared
before anything from app is imported: a throwaway SQLite database, no
MongoDB cache, no AI key, UTC as the server timezone.
"""
import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="career-plan-tests-")

os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["PLAN_CACHE_ENABLED"] = "false"
os.environ["DEEPSEEK_API_KEY"] = ""
os.environ["CRON_SECRET"] = ""
os.environ["SMTP_HOST"] = ""
os.environ["APP_TIMEZONE"] = "UTC"
os.environ["STREAK_BONUS_XP"] = "0"
os.environ["DEBUG"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text

from app.core.auth import create_access_token
from app.db.postgres import engine, get_db_session
from app.db.tables import create_tables, drop_tables
from app.main import app
from app.services import plan_service


@pytest.fixture(autouse=True)
def fresh_db():
    drop_tables(engine)
    create_tables(engine)
    yield


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_student():
    """Insert a user + student profile directly; returns a dict with ids and auth headers."""
    def _make(email="asha@example.com", full_name="Asha Rao", role="student"):
        with get_db_session() as db:
            user_id = db.execute(
                text("""
                    INSERT INTO users (email, password_hash, role, is_active)
                    VALUES (:email, 'not-a-real-hash', :role, :active)
                    RETURNING user_id
                """),
                {"email": email, "role": role, "active": True}
            ).fetchone()[0]
            student_id = None
            if role == "student":
                student_id = db.execute(
                    text("INSERT INTO students (user_id, full_name) VALUES (:uid, :name) RETURNING student_id"),
                    {"uid": user_id, "name": full_name}
                ).fetchone()[0]
        token = create_access_token({"sub": str(user_id), "role": role})
        return {
            "user_id": user_id,
            "student_id": student_id,
            "name": full_name,
            "headers": {"Authorization": f"Bearer {token}"},
        }
    return _make


@pytest.fixture
def student(make_student):
    return make_student()


def milestone(week, tasks, skill=None, xp=None, title=None):
    return {
        "week": week,
        "title": title or f"Week {week}",
        "tasks": tasks,
        "resources": [],
        "target_skills": [skill] if skill else [],
        "xp": xp,
    }


@pytest.fixture
def make_plan():
    """Create a plan through plan_service.add_plan; returns (plan_id, task ids in order)."""
    def _make(student_id, milestones, target_id="google", difficulty="medium", start_date=None):
        result = plan_service.add_plan(
            student_id=student_id,
            target_id=target_id,
            target_name=target_id.title(),
            track_type="placement",
            milestones=milestones,
            difficulty=difficulty,
            start_date=start_date,
        )
        with get_db_session() as db:
            rows = db.execute(
                text("SELECT id FROM career_tasks WHERE plan_id = :pid ORDER BY week_number, id"),
                {"pid": result["plan_id"]}
            ).fetchall()
        return result["plan_id"], [r[0] for r in rows]
    return _make


def set_plan_xp(plan_id, xp):
    with get_db_session() as db:
        db.execute(text("UPDATE career_plans SET total_xp = :xp WHERE id = :pid"), {"xp": xp, "pid": plan_id})


def count_rows(table, plan_id):
    with get_db_session() as db:
        return db.execute(
            text(f"SELECT COUNT(*) FROM {table} WHERE plan_id = :pid"), {"pid": plan_id}
        ).fetchone()[0]
