"""
Async client for the Ollama generate endpoint.

Sends one non-streaming POST per prompt and returns the model's text.
No retries at this layer (see jobtrack.common.retry) and no error
wrapping: httpx transport and status errors reach the caller as-is.

Usage:
    async with OllamaClient(OllamaConfig(model="llama3.2")) as client:
        text = await client.generate("Summarize this role", max_tokens=512)
"""

import logging
from typing import Any, Dict, Optional

import httpx

from jobtrack.common.config import OllamaConfig

logger = logging.getLogger(__name__)


class OllamaClient:
    """
    Thin wrapper around POST /api/generate.

    Attributes:
        config: Endpoint, model and timeout settings
    """

    def __init__(
        self,
        config: Optional[OllamaConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the client.

        Args:
            config: Explicit settings (default: OllamaConfig.from_config())
            http_client: Shared httpx client; not closed by aclose()
        """
        self.config = config or OllamaConfig.from_config()
        self._owns_http_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(
            timeout=self.config.timeout_seconds
        )

    def _build_payload(
        self,
        prompt: str,
        temperature: Optional[float],
        max_tokens: Optional[int],
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.config.model,
            "prompt": prompt,
            "stream": False,
        }
        options: Dict[str, Any] = {}
        if temperature is not None:
            options["temperature"] = temperature
        if max_tokens is not None:
            options["num_predict"] = max_tokens
        if options:
            payload["options"] = options
        return payload

    async def generate(
        self,
        prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Send a prompt and return the model's response text.

        Args:
            prompt: Fully rendered prompt
            temperature: Sampling temperature (omitted when None)
            max_tokens: Sent as Ollama's num_predict (omitted when None)

        Returns:
            The body's "response" field, or "" when it is missing

        Raises:
            httpx.HTTPStatusError: On a non-2xx reply
            httpx.HTTPError: On transport failures
        """
        payload = self._build_payload(prompt, temperature, max_tokens)
        logger.debug(
            f"[ollama] POST {self.config.generate_url} model={self.config.model} "
            f"prompt_len={len(prompt)}"
        )

        response = await self._http_client.post(self.config.generate_url, json=payload)
        response.raise_for_status()

        data = response.json()
        text = data.get("response") if isinstance(data, dict) else None
        if not isinstance(text, str):
            logger.warning("[ollama] Reply had no 'response' field, treating as empty")
            return ""

        logger.debug(f"[ollama] Received {len(text)} chars")
        return text

    async def aclose(self) -> None:
        """Close the underlying httpx client if this instance created it."""
        if self._owns_http_client:
            await self._http_client.aclose()

    async def __aenter__(self) -> "OllamaClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
