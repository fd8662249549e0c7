"""
Resume AI Assistant.

Asks the local model to rewrite or critique parts of a resume against a
job description. Replies are parsed leniently: JSON is returned parsed,
prose comes back as {"raw": text}, and a failed call becomes an error
payload instead of an exception, matching what the resume editor expects.
"""

import asyncio
import json
from typing import Any, Dict, Optional

import httpx

from jobtrack.common.errors import StructuredOutputError
from jobtrack.common.logger import get_logger
from jobtrack.common.structured_output import StructuredOutputClient

RESUME_TEMPERATURE = 0.7
RESUME_MAX_TOKENS = 512


class ResumeAIService:
    """Resume generation, skill optimization, tailoring and validation."""

    def __init__(self, extractor: Optional[StructuredOutputClient] = None):
        self._owns_extractor = extractor is None
        self.extractor = extractor or StructuredOutputClient()
        self._logger = get_logger(__name__, service="resume_ai")

    async def aclose(self) -> None:
        if self._owns_extractor:
            await self.extractor.aclose()

    async def __aenter__(self) -> "ResumeAIService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def _ask(self, prompt: str) -> Any:
        try:
            return await self.extractor.parse_or_raw(
                prompt,
                temperature=RESUME_TEMPERATURE,
                max_tokens=RESUME_MAX_TOKENS,
            )
        except (httpx.HTTPError, ValueError, StructuredOutputError) as e:
            self._logger.error(f"AI request failed: {type(e).__name__}: {e}")
            return {"error": "AI parsing failed", "raw": str(e)}

    @staticmethod
    def _dump(value: Any) -> str:
        return json.dumps(value, indent=2, default=str)

    async def generate_content(self, job_description: str, user_profile: Dict[str, Any]) -> Dict[str, Any]:
        prompt = f"""
Return valid JSON describing optimized resume content.

Job:
{job_description}

User:
{self._dump(user_profile)}
"""
        return {"aiContent": await self._ask(prompt)}

    async def optimize_skills(self, job_description: str, user_profile: Dict[str, Any]) -> Dict[str, Any]:
        prompt = f"""
Return JSON optimizing skills.

Job:
{job_description}

Skills:
{self._dump(user_profile.get("skills", []))}
"""
        return {"optimization": await self._ask(prompt)}

    async def tailor_experience(self, job_description: str, user_profile: Dict[str, Any]) -> Dict[str, Any]:
        prompt = f"""
Return JSON rewriting experience.

Job:
{job_description}

Experience:
{self._dump(user_profile.get("experience", []))}
"""
        return {"tailored": await self._ask(prompt)}

    async def validate_resume(self, user_profile: Dict[str, Any]) -> Dict[str, Any]:
        prompt = f"""
Return JSON validating resume quality:

Resume:
{self._dump(user_profile)}
"""
        return {"validation": await self._ask(prompt)}

    async def generate_all(self, job_description: str, user_profile: Dict[str, Any]) -> Dict[str, Any]:
        """
        Run all four resume operations concurrently.

        Each call is an independent pipeline; results are merged into one
        dict keyed like the individual operations.
        """
        results = await asyncio.gather(
            self.generate_content(job_description, user_profile),
            self.optimize_skills(job_description, user_profile),
            self.tailor_experience(job_description, user_profile),
            self.validate_resume(user_profile),
        )
        merged: Dict[str, Any] = {}
        for result in results:
            merged.update(result)
        self._logger.info(f"Generated {len(merged)} resume sections")
        return merged
