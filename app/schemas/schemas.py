"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.

Request bodies of the plan endpoints use camelCase keys (taskId, planId,
targetName...), responses keep the database column names.
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional, List, Dict
from datetime import date, datetime
from enum import Enum


# ============================================================
# ENUMS
# ============================================================

class TrackType(str, Enum):
    placement = "placement"
    higher_studies = "higher-studies"


class Difficulty(str, Enum):
    easy = "easy"
    medium = "medium"
    hard = "hard"


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ============================================================
# AUTH SCHEMAS
# ============================================================

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    full_name: str = Field(..., min_length=2, max_length=100)

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: int
    role: str

class UserResponse(BaseModel):
    user_id: int
    email: str
    role: str
    is_active: bool
    student_id: Optional[int] = None
    full_name: Optional[str] = None
    created_at: datetime


# ============================================================
# CAREER PLAN SCHEMAS
# ============================================================

class CareerPlanResponse(BaseModel):
    id: int
    student_id: int
    target_id: str
    target_name: str
    track_type: str
    total_xp: int
    current_streak: int
    last_completed_date: Optional[date] = None
    progress: int
    difficulty_level: str
    created_at: datetime

class CareerTaskResponse(BaseModel):
    id: int
    plan_id: int
    week_number: int
    task_date: Optional[date] = None
    skill_focus: Optional[str] = None
    morning_task: Optional[str] = None
    evening_task: Optional[str] = None
    difficulty: str
    xp: int
    is_completed: bool
    completed_at: Optional[datetime] = None

class CareerRewardResponse(BaseModel):
    id: int
    student_id: int
    plan_id: int
    badge_name: str
    badge_icon: str
    xp_threshold: int
    unlocked_at: datetime

class RadarPoint(BaseModel):
    skill: str
    completion_rate: int
    completed: int
    total: int

class PlanDetail(CamelModel):
    plan: CareerPlanResponse
    tasks: List[CareerTaskResponse] = []
    rewards: List[CareerRewardResponse] = []
    radar_data: List[RadarPoint] = Field(default_factory=list, alias="radarData")


class Milestone(BaseModel):
    week: int = Field(..., ge=1)
    title: str = ""
    tasks: List[str] = []
    resources: List[str] = []
    target_skills: List[str] = Field(default_factory=list, alias="targetSkills")
    xp: Optional[int] = Field(None, ge=1)

    model_config = ConfigDict(populate_by_name=True)

class AddPlanRequest(CamelModel):
    target_id: str = Field(..., min_length=1, alias="targetId")
    target_name: str = Field(..., min_length=1, alias="targetName")
    track_type: TrackType = Field(TrackType.placement, alias="trackType")
    milestones: List[Milestone] = Field(..., min_length=1)
    difficulty: Difficulty = Difficulty.medium

class AddPlanResult(CamelModel):
    plan_id: int = Field(..., alias="planId")
    already_exists: bool = Field(False, alias="alreadyExists")

class CompleteTaskRequest(CamelModel):
    task_id: int = Field(..., ge=1, alias="taskId")
    plan_id: int = Field(..., ge=1, alias="planId")

class CompletionData(CamelModel):
    plan: CareerPlanResponse
    new_rewards: List[CareerRewardResponse] = Field(default_factory=list, alias="newRewards")
    xp_earned: int = Field(0, alias="xpEarned")
    already_completed: bool = Field(False, alias="alreadyCompleted")


class GeneratePlanRequest(CamelModel):
    track_type: TrackType = Field(TrackType.placement, alias="trackType")
    target_id: str = Field(..., min_length=1, alias="targetId")
    target_name: str = Field(..., min_length=1, alias="targetName")
    required_skills: List[str] = Field(default_factory=list, alias="requiredSkills")
    student_skills: Dict[str, int] = Field(default_factory=dict, alias="studentSkills")
    semester: int = Field(1, ge=1, le=12)
    time_remaining_weeks: int = Field(8, ge=1, le=52, alias="timeRemainingWeeks")
    additional_context: Optional[str] = Field(None, alias="additionalContext")

    @field_validator("student_skills")
    @classmethod
    def clamp_levels(cls, value: Dict[str, int]) -> Dict[str, int]:
        return {skill: max(0, min(5, int(level))) for skill, level in value.items()}

class SkillGap(BaseModel):
    skill: str
    current: int
    required: int = 5

class GeneratedPlan(CamelModel):
    track_type: str = Field(..., alias="trackType")
    target_id: str = Field(..., alias="targetId")
    target_name: str = Field(..., alias="targetName")
    total_weeks: int = Field(..., alias="totalWeeks")
    summary: str
    skill_gaps: List[SkillGap] = Field(default_factory=list, alias="skillGaps")
    milestones: List[Milestone] = []
    daily_schedule: str = Field("", alias="dailySchedule")
    tips: List[str] = []
    is_fallback: bool = Field(False, alias="isFallback")


class DifficultyResult(BaseModel):
    difficulty: Difficulty

class LeaderboardEntry(BaseModel):
    student_id: int
    name: str
    total_xp: int
    rank: int

class LeaderboardData(CamelModel):
    leaderboard: List[LeaderboardEntry] = []
    current_user: LeaderboardEntry = Field(..., alias="currentUser")

class ReminderResult(BaseModel):
    sent: int
    failed: int
    total: int


# ============================================================
# ENVELOPES
# Every plan endpoint answers {success, data?, error?, message?}
# ============================================================

class Envelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: Optional[str] = None

class PlanListEnvelope(Envelope):
    data: List[CareerPlanResponse] = []

class PlanDetailEnvelope(Envelope):
    data: PlanDetail

class CompletionEnvelope(Envelope):
    data: CompletionData

class AddPlanEnvelope(Envelope):
    data: AddPlanResult

class GeneratedPlanEnvelope(Envelope):
    data: GeneratedPlan

class DifficultyEnvelope(Envelope):
    data: DifficultyResult

class LeaderboardEnvelope(Envelope):
    data: LeaderboardData

class ReminderEnvelope(Envelope):
    data: ReminderResult


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True