"""
Plan Generation Service - weekly study plan drafts using DeepSeek.

PURPOSE:
The LLM drafts the plan structure ONCE (milestones, tasks, resources).
The draft is returned to the student; only when they add it does it become
career_plans / career_tasks rows (see plan_service.add_plan).

FLOW:
1. Fingerprint the request, return the cached draft from MongoDB if present
2. Build a prompt from the skill gap analysis
3. Call DeepSeek, extract and validate the JSON reply
4. On any AI failure, build a deterministic fallback plan instead
5. Cache the draft in MongoDB (best effort)
"""

import hashlib
import json
import logging
from typing import Any, Dict, List, Optional

from openai import OpenAIError
from pymongo.errors import PyMongoError

from app.core.config import get_settings
from app.services.deepseek_client import get_deepseek_client, DeepSeekClient
from app.services.mongo_service import GeneratedPlanService

logger = logging.getLogger(__name__)

settings = get_settings()

MAX_PROFICIENCY = 5
DEFAULT_SCHEDULE = "Morning: 2 hours focused study | Afternoon: 1 hour practice | Evening: 30 min revision"
DEFAULT_TIPS = [
    "Consistency is more important than intensity. Study daily.",
    "Track your progress weekly and adjust the plan as needed.",
    "Practice under timed conditions to simulate real scenarios.",
    "Join online communities for peer support and motivation.",
]


# ============================================================
# PROMPT
# ============================================================

def skill_gaps(required_skills: List[str], student_skills: Dict[str, int]) -> List[dict]:
    return [
        {"skill": skill, "current": student_skills.get(skill, 0), "required": MAX_PROFICIENCY}
        for skill in required_skills
    ]


def build_plan_prompt(request: Dict[str, Any]) -> str:
    """Structured prompt: student profile, skill gaps, output format and rules."""
    is_placement = request["track_type"] == "placement"
    weeks = request["time_remaining_weeks"]
    student_skills = request["student_skills"]

    gap_lines = []
    for gap in skill_gaps(request["required_skills"], student_skills):
        missing = max(0, gap["required"] - gap["current"])
        gap_lines.append(f"- {gap['skill']}: Current Level {gap['current']}/5, Gap: {missing} levels")

    bonus_lines = [
        f"- {skill}: Level {level}/5"
        for skill, level in student_skills.items()
        if skill not in request["required_skills"]
    ]

    sections = [
        f"A student needs a personalized {'placement preparation' if is_placement else 'exam preparation'} plan.",
        "## Student Profile\n"
        f"- Current Semester: {request['semester']}\n"
        f"- Time Available: {weeks} weeks\n"
        f"- {'Target Company' if is_placement else 'Target Exam'}: {request['target_name']}",
        "## Skill Gap Analysis\nRequired skills and current proficiency (scale 1-5):\n" + "\n".join(gap_lines),
    ]
    if bonus_lines:
        sections.append("## Bonus Skills (student already has)\n" + "\n".join(bonus_lines))
    if request.get("additional_context"):
        sections.append(f"## Additional Context\n{request['additional_context']}")

    sections.append(f"""## Instructions
Generate a detailed {weeks}-week preparation plan. Respond ONLY with valid JSON in this exact format:
{{
  "summary": "Brief 2-3 sentence overview of the plan",
  "milestones": [
    {{
      "week": 1,
      "title": "Week title/theme",
      "tasks": ["Specific task 1", "Specific task 2", "Specific task 3"],
      "resources": ["Resource name/link 1", "Resource name/link 2"],
      "targetSkills": ["Skill being developed"]
    }}
  ],
  "dailySchedule": "Recommended daily study schedule",
  "tips": ["Tip 1", "Tip 2", "Tip 3"]
}}

Important rules:
- Each week should have 3-5 specific, actionable tasks
- Include real resource names (LeetCode, GeeksforGeeks, specific books, YouTube channels etc.)
- Prioritize skills with the largest gaps first
- If time is limited (< 8 weeks), focus on highest-impact areas only
- Include practice tests/mock interviews in the final weeks""")

    return "\n\n".join(sections)


def request_fingerprint(student_id: int, request: Dict[str, Any]) -> str:
    """MD5 of the generation inputs, used as the cache key."""
    payload = json.dumps({"student_id": student_id, **request}, sort_keys=True, default=str)
    return hashlib.md5(payload.encode()).hexdigest()


# ============================================================
# JSON VALIDATION HELPERS
# ============================================================

def _str_list(value) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if v is not None and str(v).strip()]


def validate_milestones(data) -> List[dict]:
    """
    Validate and sanitize milestones from the model.
    Drops entries without tasks; missing week numbers follow list order.
    """
    validated = []
    if not isinstance(data, list):
        return validated

    for idx, item in enumerate(data):
        if not isinstance(item, dict):
            continue
        tasks = _str_list(item.get("tasks"))
        if not tasks:
            continue
        try:
            week = max(1, int(item.get("week", idx + 1)))
        except (ValueError, TypeError):
            week = idx + 1
        validated.append({
            "week": week,
            "title": str(item.get("title") or f"Week {week}").strip(),
            "tasks": tasks,
            "resources": _str_list(item.get("resources")),
            "target_skills": _str_list(item.get("targetSkills")),
        })

    return validated


def parse_plan_response(reply: str, request: Dict[str, Any]) -> Optional[dict]:
    """
    Parse the model reply into a plan dict.
    Returns None when the reply is not usable JSON or has no milestones.
    """
    try:
        parsed = DeepSeekClient.extract_json(reply)
    except (ValueError, TypeError) as e:
        logger.warning("Plan reply is not valid JSON: %s", e)
        return None
    if not isinstance(parsed, dict):
        return None

    milestones = validate_milestones(parsed.get("milestones"))
    if not milestones:
        logger.warning("Plan reply has no usable milestones")
        return None

    return {
        **_plan_header(request),
        "summary": str(parsed.get("summary") or "Your personalized preparation plan is ready."),
        "milestones": milestones,
        "daily_schedule": str(parsed.get("dailySchedule") or "2 hours morning + 1 hour evening"),
        "tips": _str_list(parsed.get("tips")),
        "is_fallback": False,
    }


def _plan_header(request: Dict[str, Any]) -> dict:
    return {
        "track_type": request["track_type"],
        "target_id": request["target_id"],
        "target_name": request["target_name"],
        "total_weeks": request["time_remaining_weeks"],
        "skill_gaps": skill_gaps(request["required_skills"], request["student_skills"]),
    }


def build_fallback_plan(request: Dict[str, Any]) -> dict:
    """
    Deterministic plan used when the AI is unavailable or replies garbage.
    One skill per week (largest gap first), at most 12 weeks.
    """
    weeks = request["time_remaining_weeks"]
    gaps = sorted(
        skill_gaps(request["required_skills"], request["student_skills"]),
        key=lambda g: g["required"] - g["current"],
        reverse=True
    )
    if not gaps:
        gaps = [{"skill": request["target_name"], "current": 0, "required": MAX_PROFICIENCY}]

    milestones = []
    for week in range(1, min(weeks, 12) + 1):
        skill = gaps[(week - 1) % len(gaps)]["skill"]
        milestones.append({
            "week": week,
            "title": f"Focus: {skill}",
            "tasks": [
                f"Study {skill} fundamentals (2 hours)",
                f"Practice {skill} problems (1.5 hours)",
                "Review and revise previous week's topics",
                "Take a mock test" if week > weeks - 3 else f"Build a small project using {skill}",
            ],
            "resources": ["GeeksforGeeks", "LeetCode", f"YouTube: {skill} tutorials"],
            "target_skills": [skill],
        })

    return {
        **_plan_header(request),
        "summary": (
            f"A {weeks}-week preparation plan for {request['target_name']} focusing on your "
            "skill gaps. Prioritized by the largest gaps first."
        ),
        "milestones": milestones,
        "daily_schedule": DEFAULT_SCHEDULE,
        "tips": list(DEFAULT_TIPS),
        "is_fallback": True,
    }


# ============================================================
# GENERATION SERVICE
# ============================================================

class PlanGenerationService:
    """
    Complete plan drafting workflow (cache -> AI -> validate -> cache, or fallback).

    Only AI drafts are cached; a fallback plan is rebuilt on every miss.
    """

    def __init__(self, ai_client: Optional[DeepSeekClient] = None, cache: Optional[GeneratedPlanService] = None):
        self.ai_client = ai_client
        self.cache = cache
        if self.cache is None and settings.plan_cache_enabled:
            self.cache = GeneratedPlanService()

    def _get_ai_client(self) -> Optional[DeepSeekClient]:
        if self.ai_client is None and settings.deepseek_api_key:
            self.ai_client = get_deepseek_client()
        return self.ai_client

    def _cached(self, request_hash: str) -> Optional[dict]:
        if self.cache is None:
            return None
        try:
            doc = self.cache.get_by_hash(request_hash)
        except PyMongoError as e:
            logger.warning("Plan cache lookup failed: %s", e)
            return None
        if not doc or doc["plan"].get("is_fallback"):
            return None
        return doc["plan"]

    def _store(self, request_hash: str, student_id: int, plan: dict, reply: Optional[str]) -> None:
        if self.cache is None:
            return
        try:
            self.cache.upsert(request_hash, student_id, plan["target_id"], plan, reply)
        except PyMongoError as e:
            logger.warning("Plan cache write failed: %s", e)

    def generate(self, student_id: int, request: Dict[str, Any]) -> dict:
        """
        Draft a plan for a student.

        Args:
            student_id: relational student ID
            request: GeneratePlanRequest.model_dump() (snake_case keys)

        Returns:
            plan dict (GeneratedPlan fields, snake_case)
        """
        request_hash = request_fingerprint(student_id, request)
        cached = self._cached(request_hash)
        if cached:
            logger.info("Serving cached plan draft %s", request_hash)
            return cached

        plan = None
        reply = None
        client = self._get_ai_client()
        if client is None:
            logger.info("No AI key configured, using fallback plan for %s", request["target_id"])
        else:
            try:
                reply = client.draft_plan(build_plan_prompt(request))
                plan = parse_plan_response(reply, request)
            except OpenAIError as e:
                logger.error("Plan generation failed for %s: %s", request["target_id"], e)

        if plan is None:
            # not cached, so the next request retries the AI
            return build_fallback_plan(request)

        self._store(request_hash, student_id, plan, reply)
        return plan


def get_plan_generator() -> PlanGenerationService:
    return PlanGenerationService()
