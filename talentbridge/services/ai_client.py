"""
AI Client

The provider exposes an OpenAI-compatible API, so we use the openai library
pointed at `settings.ai_base_url` (DeepSeek by default).

AI is used for two things only:
- drafting job descriptions (markdown)
- summarizing an application for reviewers (structured JSON)

Outputs are stored in PostgreSQL (jd_versions, ai_analyses); the model is
never the source of truth.
"""
import json
import logging
from typing import List, Optional

from openai import OpenAI

from talentbridge.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class AIClientError(Exception):
    """The provider call failed or returned something unusable."""


class AIClient:
    """
    Wrapper for the chat completions API with task-specific methods.
    """

    def __init__(self):
        self.client = OpenAI(
            api_key=settings.ai_api_key,
            base_url=settings.ai_base_url
        )
        self.model = settings.ai_model

    def _call_api(self, system_prompt: str, user_content: str, max_tokens: int = 1000,
                  temperature: float = 0.1) -> str:
        """
        Internal method to call the chat API.
        Returns raw text response.
        """
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_content}
                ],
                max_tokens=max_tokens,
                temperature=temperature
            )
        except Exception as e:
            logger.error("AI request failed model=%s: %s", self.model, e)
            raise AIClientError(str(e)) from e

        content = response.choices[0].message.content
        if not content:
            raise AIClientError("Empty response from model")
        return content

    def _extract_json(self, text: str) -> dict:
        """
        Extract JSON from API response.
        Handles cases where model wraps JSON in markdown code blocks.
        """
        text = text.strip()
        if text.startswith("```json"):
            text = text[7:]
        if text.startswith("```"):
            text = text[3:]
        if text.endswith("```"):
            text = text[:-3]

        try:
            return json.loads(text.strip())
        except json.JSONDecodeError as e:
            raise AIClientError(f"Model returned invalid JSON: {e}") from e

    def generate_job_description(self, job_title: str, prompt: str,
                                 skills: Optional[List[str]] = None) -> str:
        """
        Write a markdown job description for a posting.
        """
        system_prompt = """You write job descriptions for a recruiting platform.
Return markdown only, with these sections in order:
# Overview
# Key Responsibilities
# Requirements
# Benefits
Use short bullet points. Do not invent a company name."""

        user_content = f"Job title: {job_title}\nHiring manager notes: {prompt}"
        if skills:
            user_content += f"\nRequired skills: {', '.join(skills)}"

        return self._call_api(system_prompt, user_content, max_tokens=1200, temperature=0.4).strip()

    def summarize_application(self, context: str) -> dict:
        """
        Summarize an application for reviewers.
        """
        system_prompt = """You review job applications. Return ONLY valid JSON.
Output format:
{
  "summary_md": "markdown, 2-3 short sections",
  "strengths": ["string"],
  "concerns": ["string"],
  "match_score": integer 0-100
}
Return ONLY the JSON, no explanation."""

        data = self._extract_json(self._call_api(system_prompt, context, max_tokens=900))
        if not isinstance(data, dict):
            raise AIClientError("Model returned JSON that is not an object")

        try:
            score = int(data.get("match_score") or 0)
        except (TypeError, ValueError):
            score = 0

        return {
            "summary_md": str(data.get("summary_md") or "").strip(),
            "strengths": [str(s) for s in data.get("strengths") or []],
            "concerns": [str(c) for c in data.get("concerns") or []],
            "match_score": max(0, min(100, score)),
        }

    def test_connection(self) -> bool:
        """Test if the AI provider is reachable"""
        try:
            response = self._call_api(
                "You are a test assistant.",
                "Reply with exactly: OK",
                max_tokens=10
            )
            return "OK" in response.upper()
        except AIClientError as e:
            logger.warning("AI connection failed: %s", e)
            return False


# Singleton instance
_ai_client: AIClient = None


def get_ai_client() -> AIClient:
    """Get or create the AI client (singleton pattern)"""
    global _ai_client
    if _ai_client is None:
        _ai_client = AIClient()
    return _ai_client
