"""
Interview Response Coach.

Scores prepared interview answers and practice attempts with the local
model. Each operation asks for JSON, validates it against a pydantic
model, and degrades to a neutral payload of the same shape when the model
is unreachable or replies with unusable output, so the practice screen
always has something to render.

Usage:
    async with ResponseCoachService() as coach:
        analysis = await coach.analyze_response(answer_text, "behavioral")
"""

import math
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from jobtrack.common.errors import ai_operation
from jobtrack.common.logger import get_logger
from jobtrack.common.structured_output import StructuredOutputClient

# Average speaking pace used for duration estimates
WORDS_PER_MINUTE = 150

JSON_ONLY_CLOSING = "Response in JSON format only, no additional text."


# Pydantic models for structured LLM output
class StarAnalysis(BaseModel):
    """Which STAR components the answer contains."""
    situation: bool = False
    task: bool = False
    action: bool = False
    result: bool = False


class ResponseAnalysis(BaseModel):
    """Scored analysis of one prepared answer."""
    clarity_score: float = Field(ge=0, le=10)
    star_method_score: float = Field(ge=0, le=10)
    structure_score: float = Field(ge=0, le=10)
    content_score: float = Field(ge=0, le=10)
    overall_score: float = Field(ge=0, le=10)
    strengths: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    star_analysis: StarAnalysis = Field(default_factory=StarAnalysis)


class ScoreBreakdown(BaseModel):
    clarity: float = Field(ge=0, le=10)
    structure: float = Field(ge=0, le=10)
    content: float = Field(ge=0, le=10)
    delivery: float = Field(ge=0, le=10)


class PracticeFeedbackDetail(BaseModel):
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    score_breakdown: ScoreBreakdown


class PracticeFeedback(BaseModel):
    """Comparison of a practice attempt with the prepared answer."""
    score: float = Field(ge=0, le=10)
    feedback: PracticeFeedbackDetail
    comparison_to_original: str = ""


class StarValidation(BaseModel):
    """Whether an answer follows Situation-Task-Action-Result."""
    follows_star: bool
    missing_components: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)


def word_stats(text: str) -> Dict[str, int]:
    """
    Word count and spoken duration (seconds) for an answer.

    >>> word_stats("one two three")
    {'word_count': 3, 'estimated_duration': 2}
    """
    word_count = len(text.split()) if text else 0
    return {
        "word_count": word_count,
        "estimated_duration": math.ceil(word_count / WORDS_PER_MINUTE * 60),
    }


def _analysis_fallback(self, text: str, question_type: str) -> Dict[str, Any]:
    return {
        "clarity_score": 5,
        "star_method_score": 5,
        "structure_score": 5,
        "content_score": 5,
        "overall_score": 5,
        "strengths": ["Response recorded"],
        "suggestions": ["AI analysis temporarily unavailable"],
        "star_analysis": StarAnalysis().model_dump(),
        **word_stats(text),
    }


def _practice_fallback(self, original_response: str, practice_attempt: str, question_type: str) -> Dict[str, Any]:
    return {
        "score": 5,
        "feedback": {
            "strengths": ["Practice recorded"],
            "improvements": ["AI feedback temporarily unavailable"],
            "score_breakdown": {"clarity": 5, "structure": 5, "content": 5, "delivery": 5},
        },
        "comparison_to_original": "Feedback temporarily unavailable",
    }


def _star_fallback(self, response: str) -> Dict[str, Any]:
    return {
        "follows_star": False,
        "missing_components": [],
        "suggestions": ["AI validation temporarily unavailable"],
    }


def _suggestions_fallback(self, response: str, question_type: str, tags: Optional[List[str]] = None) -> List[str]:
    return ["AI suggestions temporarily unavailable"]


class ResponseCoachService:
    """
    AI feedback on interview answers.

    Every public method returns plain dicts/lists ready for JSON responses
    and never raises for model failures.
    """

    def __init__(self, extractor: Optional[StructuredOutputClient] = None):
        self._owns_extractor = extractor is None
        self.extractor = extractor or StructuredOutputClient()
        self._logger = get_logger(__name__, service="response_coach")
        self._logger.info(f"Using Ollama at {self.extractor.config.base_url}")

    async def aclose(self) -> None:
        """Release the extractor's HTTP connections if this service built it."""
        if self._owns_extractor:
            await self.extractor.aclose()

    async def __aenter__(self) -> "ResponseCoachService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    @ai_operation("response analysis", fallback=_analysis_fallback, service="response_coach")
    async def analyze_response(self, text: str, question_type: str) -> Dict[str, Any]:
        """
        Score a prepared answer on clarity, STAR usage, structure and content.

        Returns:
            ResponseAnalysis fields plus word_count and estimated_duration
        """
        prompt = f"""Analyze this {question_type} interview response and provide detailed feedback:

Response: "{text}"

Provide your analysis in JSON format with:
1. clarity_score (0-10): How clear and understandable is the response?
2. star_method_score (0-10): How well does it follow the STAR method (Situation, Task, Action, Result)?
3. structure_score (0-10): How well-organized is the response?
4. content_score (0-10): How compelling and relevant is the content?
5. overall_score (0-10): Overall quality
6. strengths: Array of 2-3 specific strengths
7. suggestions: Array of 2-3 specific improvement suggestions
8. star_analysis: Object with boolean values for {{situation, task, action, result}} indicating if each component is present
9. {JSON_ONLY_CLOSING}"""

        analysis = await self.extractor.extract_structured(
            prompt, schema=ResponseAnalysis, retry=True, max_tokens=1500
        )
        return {**analysis.model_dump(), **word_stats(text)}

    @ai_operation("practice feedback", fallback=_practice_fallback, service="response_coach")
    async def practice_feedback(
        self,
        original_response: str,
        practice_attempt: str,
        question_type: str,
    ) -> Dict[str, Any]:
        """Compare a practice attempt with the prepared answer."""
        prompt = f"""Compare this practice attempt to the original prepared response for a {question_type} interview question.

Original prepared response:
"{original_response}"

Practice attempt:
"{practice_attempt}"

Provide feedback in JSON format with:
1. score (0-10): Overall quality of the practice attempt
2. feedback: {{
   - strengths: Array of 2-3 things done well
   - improvements: Array of 2-3 areas to improve
   - score_breakdown: {{clarity: 0-10, structure: 0-10, content: 0-10, delivery: 0-10}}
}}
3. comparison_to_original: Brief statement comparing practice to original

{JSON_ONLY_CLOSING}"""

        feedback = await self.extractor.extract_structured(
            prompt, schema=PracticeFeedback, retry=True, max_tokens=1500
        )
        self._logger.debug(f"Practice feedback score: {feedback.score}")
        return feedback.model_dump()

    @ai_operation("STAR validation", fallback=_star_fallback, service="response_coach")
    async def validate_star_method(self, response: str) -> Dict[str, Any]:
        prompt = f"""Analyze if this interview response follows the STAR (Situation, Task, Action, Result) method:

Response: "{response}"

Provide your analysis in JSON format with:
1. follows_star (boolean): Does it follow STAR method?
2. missing_components: Array of missing STAR components (empty if complete)
3. suggestions: Array of 2-3 suggestions to improve STAR structure

{JSON_ONLY_CLOSING}"""

        validation = await self.extractor.extract_structured(
            prompt, schema=StarValidation, retry=True, max_tokens=1200
        )
        return validation.model_dump()

    @ai_operation("improvement suggestions", fallback=_suggestions_fallback, service="response_coach")
    async def suggest_improvements(
        self,
        response: str,
        question_type: str,
        tags: Optional[List[str]] = None,
    ) -> List[str]:
        """
        Suggest 3-5 concrete improvements for an answer.

        Args:
            response: Answer text
            question_type: e.g. "behavioral", "technical"
            tags: Skills or context to emphasize
        """
        tags_context = f"\nRelevant skills/context: {', '.join(tags)}" if tags else ""
        prompt = f"""Suggest 3-5 specific improvements for this {question_type} interview response:{tags_context}

Response: "{response}"

Provide actionable suggestions as a JSON array of strings. Focus on:
- Making the response more compelling
- Adding specific metrics or results
- Improving structure and clarity
- Highlighting relevant skills/achievements

Response in JSON format only (array of strings), no additional text."""

        suggestions = await self.extractor.extract_structured(
            prompt, retry=True, max_tokens=800
        )
        if not isinstance(suggestions, list):
            raise ValueError(f"Expected a JSON array of suggestions, got {type(suggestions).__name__}")
        return [str(item) for item in suggestions if item]
