"""
Structured output from a local Ollama model.

Entry points used by the tracker's services:

    extract_structured(prompt)  -> dict, list, or a pydantic model instance
    extract_text(prompt)        -> cleaned prose
    parse_or_raw(prompt)        -> parsed JSON, or {"raw": text} for prose

One cycle is generate -> clean -> locate -> repair-and-parse. With
retry=True the whole cycle, model call included, is retried with a
fixed delay.

Usage:
    async with StructuredOutputClient() as extractor:
        feedback = await extractor.extract_structured(prompt, schema=Feedback, retry=True)
"""

from typing import Any, Awaitable, Callable, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from jobtrack.common.config import OllamaConfig
from jobtrack.common.errors import (
    EmptyResponseError,
    JsonExtractionFailedError,
    NoJsonFoundError,
    SchemaValidationError,
)
from jobtrack.common.json_utils import JsonValue, parse_llm_json, strip_code_fences
from jobtrack.common.logger import get_logger
from jobtrack.common.ollama_client import OllamaClient
from jobtrack.common.retry import retry_async

ModelT = TypeVar("ModelT", bound=BaseModel)
T = TypeVar("T")

JSON_ONLY_INSTRUCTION = (
    "IMPORTANT: Respond with ONLY valid JSON, no markdown, no explanations, no code blocks."
)


class StructuredOutputClient:
    """
    Prompt in, validated structure out.

    Holds no mutable state between calls; concurrent calls are independent.
    """

    def __init__(
        self,
        config: Optional[OllamaConfig] = None,
        ollama: Optional[OllamaClient] = None,
        request_id: Optional[str] = None,
    ):
        """
        Initialize the client.

        Args:
            config: Explicit settings (default: OllamaConfig.from_config())
            ollama: Model client to use (default: built from config);
                an injected client is not closed by aclose()
            request_id: Correlation id added to log lines
        """
        self.config = config or (ollama.config if ollama else OllamaConfig.from_config())
        self._owns_ollama = ollama is None
        self.ollama = ollama or OllamaClient(self.config)
        self._logger = get_logger(__name__, request_id=request_id, service="structured_output")

    async def aclose(self) -> None:
        """Close the model client if this instance created it."""
        if self._owns_ollama:
            await self.ollama.aclose()

    async def __aenter__(self) -> "StructuredOutputClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def _run(
        self,
        cycle: Callable[[], Awaitable[T]],
        retry: bool,
        max_attempts: Optional[int],
        delay_seconds: Optional[float],
        operation_name: str,
    ) -> T:
        if not retry:
            return await cycle()
        return await retry_async(
            cycle,
            max_attempts=self.config.max_attempts if max_attempts is None else max_attempts,
            delay_seconds=(
                self.config.retry_delay_seconds if delay_seconds is None else delay_seconds
            ),
            operation_name=operation_name,
        )

    def _temperature(self, temperature: Optional[float]) -> float:
        return self.config.temperature if temperature is None else temperature

    async def extract_structured(
        self,
        prompt: str,
        schema: Optional[Type[ModelT]] = None,
        retry: bool = False,
        max_attempts: Optional[int] = None,
        delay_seconds: Optional[float] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Union[JsonValue, ModelT]:
        """
        Ask the model for JSON and return it parsed.

        Args:
            prompt: Rendered prompt; a JSON-only instruction is appended
            schema: Optional pydantic model the parsed value must match
            retry: Retry the whole cycle on any failure
            max_attempts: Attempts when retrying (default: config.max_attempts)
            delay_seconds: Pause between attempts (default: config.retry_delay_seconds)
            temperature: Sampling temperature (default: config.temperature)
            max_tokens: Ollama num_predict limit

        Returns:
            dict or list, or a schema instance when schema is given

        Raises:
            EmptyResponseError, NoJsonFoundError, JsonExtractionFailedError,
            SchemaValidationError, or an httpx error from the model call
        """
        full_prompt = f"{prompt}\n\n{JSON_ONLY_INSTRUCTION}"

        async def cycle() -> Union[JsonValue, ModelT]:
            raw = await self.ollama.generate(
                full_prompt,
                temperature=self._temperature(temperature),
                max_tokens=max_tokens,
            )
            value = parse_llm_json(raw)
            if schema is None:
                return value
            return self._validate(value, schema, raw)

        result = await self._run(
            cycle, retry, max_attempts, delay_seconds, "extract_structured"
        )
        self._logger.debug(f"Extracted {type(result).__name__} from model output")
        return result

    def _validate(self, value: Any, schema: Type[ModelT], raw: str) -> ModelT:
        try:
            return schema.model_validate(value)
        except ValidationError as e:
            raise SchemaValidationError(
                f"Model output does not match {schema.__name__}: "
                f"{e.error_count()} validation error(s)",
                raw,
                errors=e.errors(),
            ) from e

    async def extract_text(
        self,
        prompt: str,
        retry: bool = False,
        max_attempts: Optional[int] = None,
        delay_seconds: Optional[float] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Ask the model for prose and return it without code fences.

        Raises:
            EmptyResponseError: If the model returned nothing but whitespace
                or fences
        """

        async def cycle() -> str:
            raw = await self.ollama.generate(
                prompt,
                temperature=self._temperature(temperature),
                max_tokens=max_tokens,
            )
            text = strip_code_fences(raw or "")
            if not text:
                raise EmptyResponseError("Empty response: no text returned", raw)
            return text

        return await self._run(cycle, retry, max_attempts, delay_seconds, "extract_text")

    async def parse_or_raw(
        self,
        prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> JsonValue:
        """
        Ask for JSON but accept prose.

        Returns the parsed value, or {"raw": text} when the model answered
        without usable JSON. Empty replies and transport errors still raise.
        """
        raw = await self.ollama.generate(
            prompt,
            temperature=self._temperature(temperature),
            max_tokens=max_tokens,
        )
        try:
            return parse_llm_json(raw)
        except (NoJsonFoundError, JsonExtractionFailedError) as e:
            self._logger.info(f"No usable JSON in reply ({type(e).__name__}), returning raw text")
            return {"raw": strip_code_fences(raw)}
