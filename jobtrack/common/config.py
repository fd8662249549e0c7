"""
Configuration loader for the job-search tracker AI layer.

Loads all settings from environment variables (.env file).
Every setting has a documented fallback so a missing variable never
fails the process; the Ollama endpoint is assumed to be reachable.
"""

import os
from dataclasses import dataclass
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DEFAULT_OLLAMA_BASE_URL = "http://localhost:11434"
DEFAULT_OLLAMA_MODEL = "llama3.2"
DEFAULT_TIMEOUT_SECONDS = 120.0
DEFAULT_MAX_ATTEMPTS = 2
DEFAULT_RETRY_DELAY_SECONDS = 1.0
DEFAULT_TEMPERATURE = 0.7


class Config:
    """
    Process-wide configuration, resolved once at import.

    All values loaded from environment variables with safe defaults.
    """

    # ===== Ollama =====
    OLLAMA_BASE_URL: str = os.getenv("OLLAMA_BASE_URL") or DEFAULT_OLLAMA_BASE_URL
    OLLAMA_MODEL: str = os.getenv("OLLAMA_MODEL") or DEFAULT_OLLAMA_MODEL
    OLLAMA_TIMEOUT_SECONDS: float = float(
        os.getenv("OLLAMA_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS))
    )

    # ===== Structured output =====
    LLM_MAX_ATTEMPTS: int = int(os.getenv("LLM_MAX_ATTEMPTS", str(DEFAULT_MAX_ATTEMPTS)))
    LLM_RETRY_DELAY_SECONDS: float = float(
        os.getenv("LLM_RETRY_DELAY_SECONDS", str(DEFAULT_RETRY_DELAY_SECONDS))
    )
    LLM_TEMPERATURE: float = float(os.getenv("LLM_TEMPERATURE", str(DEFAULT_TEMPERATURE)))

    # ===== Logging =====
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "simple")  # "simple" or "json"

    @classmethod
    def validate(cls) -> None:
        """
        Validate numeric settings.
        Raises ValueError if a setting is out of range.
        """
        if cls.LLM_MAX_ATTEMPTS < 1:
            raise ValueError(
                f"LLM_MAX_ATTEMPTS must be >= 1, got {cls.LLM_MAX_ATTEMPTS}"
            )
        if cls.LLM_RETRY_DELAY_SECONDS < 0:
            raise ValueError(
                f"LLM_RETRY_DELAY_SECONDS must be >= 0, got {cls.LLM_RETRY_DELAY_SECONDS}"
            )
        if cls.OLLAMA_TIMEOUT_SECONDS <= 0:
            raise ValueError(
                f"OLLAMA_TIMEOUT_SECONDS must be > 0, got {cls.OLLAMA_TIMEOUT_SECONDS}"
            )

    @classmethod
    def summary(cls) -> str:
        """Return a summary of the current configuration (safe for logging)."""
        return f"""
Configuration Summary:
  Ollama URL: {cls.OLLAMA_BASE_URL}
  Ollama Model: {cls.OLLAMA_MODEL}
  Timeout: {cls.OLLAMA_TIMEOUT_SECONDS}s
  Retry: {cls.LLM_MAX_ATTEMPTS} attempts, {cls.LLM_RETRY_DELAY_SECONDS}s delay
  Temperature: {cls.LLM_TEMPERATURE}
  Logging: {cls.LOG_LEVEL} ({cls.LOG_FORMAT})
        """.strip()


@dataclass
class OllamaConfig:
    """
    Explicit configuration for one Ollama-backed client.

    Passed in at construction so components never read ambient state
    themselves. Defaults are the documented fallbacks.

    Attributes:
        base_url: Ollama server root, without the /api path
        model: Model identifier sent with every request
        timeout_seconds: Transport timeout applied by httpx
        max_attempts: Attempts made by the retry wrapper (>= 1)
        retry_delay_seconds: Fixed delay between attempts
        temperature: Default sampling temperature
    """

    base_url: str = DEFAULT_OLLAMA_BASE_URL
    model: str = DEFAULT_OLLAMA_MODEL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    retry_delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS
    temperature: float = DEFAULT_TEMPERATURE

    @property
    def generate_url(self) -> str:
        """Full URL of the non-streaming generate endpoint."""
        return f"{self.base_url.rstrip('/')}/api/generate"

    @classmethod
    def from_config(cls) -> "OllamaConfig":
        """
        Build a config from the values Config resolved at import.

        This is the default for every client built without an explicit
        config.
        """
        return cls(
            base_url=Config.OLLAMA_BASE_URL,
            model=Config.OLLAMA_MODEL,
            timeout_seconds=Config.OLLAMA_TIMEOUT_SECONDS,
            max_attempts=Config.LLM_MAX_ATTEMPTS,
            retry_delay_seconds=Config.LLM_RETRY_DELAY_SECONDS,
            temperature=Config.LLM_TEMPERATURE,
        )
