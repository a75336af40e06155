"""
DeepSeek API Client

DeepSeek uses OpenAI-compatible API, so we use the openai library.

AI is used ONLY to draft a study plan (weekly milestones). XP, streaks,
progress and rewards are computed by the backend, never by the model.
"""
import json

from openai import OpenAI
from app.core.config import get_settings

settings = get_settings()

PLAN_SYSTEM_PROMPT = (
    "You are an expert career counselor and study planner for engineering students in India. "
    "Respond ONLY with valid JSON, no explanation."
)


class DeepSeekClient:
    """
    Wrapper for DeepSeek chat completions.
    """

    def __init__(self):
        self.client = OpenAI(
            api_key=settings.deepseek_api_key,
            base_url=settings.deepseek_base_url
        )
        self.model = settings.deepseek_model

    def _call_api(self, system_prompt: str, user_content: str, max_tokens: int = 1000,
                  temperature: float = 0.1) -> str:
        """
        Internal method to call DeepSeek API.
        Returns raw text response.
        """
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content}
            ],
            max_tokens=max_tokens,
            temperature=temperature
        )
        return response.choices[0].message.content or ""

    @staticmethod
    def extract_json(text: str) -> dict:
        """
        Extract JSON from API response.
        Handles cases where model wraps JSON in markdown code blocks.
        """
        text = text.strip()
        if "```" in text:
            start = text.index("```") + 3
            end = text.find("```", start)
            text = text[start:end if end != -1 else None]
            if text.startswith("json"):
                text = text[4:]

        return json.loads(text.strip())

    def draft_plan(self, prompt: str) -> str:
        """Ask the model for a plan; returns the raw reply text."""
        return self._call_api(PLAN_SYSTEM_PROMPT, prompt, max_tokens=3000, temperature=0.7)


# Singleton instance
_deepseek_client: DeepSeekClient = None


def get_deepseek_client() -> DeepSeekClient:
    """Get or create DeepSeek client (singleton pattern)"""
    global _deepseek_client
    if _deepseek_client is None:
        _deepseek_client = DeepSeekClient()
    return _deepseek_client
