"""AI-backed services used by the tracker's request handlers."""

from jobtrack.services.response_coach_service import ResponseCoachService
from jobtrack.services.resume_ai_service import ResumeAIService

__all__ = ["ResponseCoachService", "ResumeAIService"]
