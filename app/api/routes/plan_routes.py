"""
Career Plan Routes

GET /plans/list - All plans of the current student
GET /plans/leaderboard - Top students by XP + my rank
POST /plans/generate - Draft a plan with AI (not saved)
POST /plans/add - Save a drafted plan and seed its tasks
POST /plans/complete-task - Complete a task (XP, streak, progress, rewards)
POST /plans/cron/task-reminder - Email students with pending tasks today
GET /plans/{plan_id} - Plan with tasks, rewards and radar data
DELETE /plans/{plan_id} - Delete plan with tasks and rewards
POST /plans/{plan_id}/adjust-difficulty - Re-rate difficulty from last week

Clients re-fetch plan detail and list after every write.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query

from app.core.auth import get_current_student
from app.core.config import get_settings
from app.services import plan_service, reminder_service
from app.services.plan_generator import get_plan_generator
from app.schemas.schemas import (
    AddPlanRequest, AddPlanEnvelope, AddPlanResult,
    CompleteTaskRequest, CompletionEnvelope, CompletionData,
    GeneratePlanRequest, GeneratedPlanEnvelope, GeneratedPlan,
    PlanListEnvelope, PlanDetailEnvelope, PlanDetail,
    DifficultyEnvelope, DifficultyResult,
    LeaderboardEnvelope, LeaderboardData, LeaderboardEntry,
    ReminderEnvelope, ReminderResult, MessageResponse
)

settings = get_settings()

router = APIRouter(prefix="/plans", tags=["Career Plans"])


@router.get("/list", response_model=PlanListEnvelope)
async def list_plans(student: dict = Depends(get_current_student)):
    """All career plans of the current student, newest first."""
    return PlanListEnvelope(data=plan_service.list_plans(student["student_id"]))


@router.get("/leaderboard", response_model=LeaderboardEnvelope)
async def leaderboard(
    limit: int = Query(10, ge=1, le=100),
    student: dict = Depends(get_current_student)
):
    """Top students by XP summed over all their plans, plus the caller's rank."""
    standing = plan_service.get_student_standing(student["student_id"])
    return LeaderboardEnvelope(data=LeaderboardData(
        leaderboard=plan_service.get_leaderboard(limit),
        current_user=LeaderboardEntry(
            student_id=student["student_id"],
            name=student["full_name"],
            total_xp=standing["total_xp"],
            rank=standing["rank"]
        )
    ))


@router.post("/generate", response_model=GeneratedPlanEnvelope)
async def generate_plan(data: GeneratePlanRequest, student: dict = Depends(get_current_student)):
    """
    Draft a personalized plan with AI.

    The draft is NOT saved as a plan; send its milestones to /plans/add.
    Falls back to a rule-based plan when the AI is unavailable.
    """
    generator = get_plan_generator()
    plan = generator.generate(student["student_id"], data.model_dump(mode="json"))
    return GeneratedPlanEnvelope(data=GeneratedPlan(**plan))


@router.post("/add", response_model=AddPlanEnvelope, status_code=201)
async def add_plan(data: AddPlanRequest, student: dict = Depends(get_current_student)):
    """Save a generated plan. Adding the same target twice returns the existing plan."""
    result = plan_service.add_plan(
        student_id=student["student_id"],
        target_id=data.target_id,
        target_name=data.target_name,
        track_type=data.track_type.value,
        milestones=[m.model_dump() for m in data.milestones],
        difficulty=data.difficulty.value
    )
    message = "Plan already exists" if result["already_exists"] else "Plan added successfully"
    return AddPlanEnvelope(message=message, data=AddPlanResult(**result))


@router.post("/complete-task", response_model=CompletionEnvelope)
async def complete_task(data: CompleteTaskRequest, student: dict = Depends(get_current_student)):
    """
    Complete a task.

    Returns the updated plan and any rewards unlocked by this completion.
    Completing an already completed task succeeds without awarding XP.
    """
    result = plan_service.complete_task(data.task_id, data.plan_id, student["student_id"])
    return CompletionEnvelope(
        message="Task already completed" if result.already_completed else "Task completed",
        data=CompletionData(
            plan=result.plan,
            new_rewards=result.new_rewards,
            xp_earned=result.xp_earned,
            already_completed=result.already_completed
        )
    )


@router.post("/cron/task-reminder", response_model=ReminderEnvelope)
async def task_reminder(authorization: Optional[str] = Header(None)):
    """
    Email students with incomplete tasks dated today.

    Called by an external scheduler; protected by CRON_SECRET when set:
        Authorization: Bearer <CRON_SECRET>
    """
    if settings.cron_secret and authorization != f"Bearer {settings.cron_secret}":
        raise HTTPException(status_code=401, detail="Unauthorized")

    return ReminderEnvelope(data=ReminderResult(**reminder_service.send_task_reminders()))


@router.get("/{plan_id}", response_model=PlanDetailEnvelope)
async def get_plan(plan_id: int, student: dict = Depends(get_current_student)):
    """Plan with its tasks, unlocked rewards and per-skill radar data."""
    detail = plan_service.get_plan_detail(plan_id, student["student_id"])
    return PlanDetailEnvelope(data=PlanDetail(**detail))


@router.delete("/{plan_id}", response_model=MessageResponse)
async def delete_plan(plan_id: int, student: dict = Depends(get_current_student)):
    """Delete a plan with all its tasks and rewards. Irreversible."""
    plan_service.delete_plan(plan_id, student["student_id"])
    return MessageResponse(message="Plan deleted successfully")


@router.post("/{plan_id}/adjust-difficulty", response_model=DifficultyEnvelope)
async def adjust_difficulty(plan_id: int, student: dict = Depends(get_current_student)):
    """Set difficulty from the last 7 days: >=90% done -> hard, <50% -> easy."""
    difficulty = plan_service.adjust_difficulty(plan_id, student["student_id"])
    return DifficultyEnvelope(data=DifficultyResult(difficulty=difficulty))
