"""OpenAI-compatible text generator.

Works with the OpenAI API and other endpoints exposing the same
``/chat/completions`` contract.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

import httpx

from narrator.app.core.config import Settings
from narrator.app.core.logging import get_logger
from narrator.app.providers.base import TextGenerator

logger = get_logger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are an expert software architect acting as a backend for a repository "
    "analysis tool. Be concise, technical, and professional."
)


class OpenAITextGenerator(TextGenerator):
    """Text generator backed by a chat completions endpoint.

    If http_client is provided, it will be used for all requests (connection reuse).
    If not, a new client is created per request.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str = "gpt-3.5-turbo",
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
        max_tokens: int = 500,
        temperature: float = 0.7,
    ):
        """Initialize the generator.

        Args:
            base_url: The API base URL
            api_key: The API key
            model: Chat model name
            http_client: Optional shared HTTP client
            timeout: Request timeout in seconds
            max_tokens: Default completion length cap
            temperature: Sampling temperature
        """
        self._http_client = http_client
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    @asynccontextmanager
    async def _client_context(self) -> AsyncGenerator[httpx.AsyncClient, None]:
        if self._http_client is not None:
            yield self._http_client
            return
        client = httpx.AsyncClient(timeout=self.timeout)
        try:
            yield client
        finally:
            await client.aclose()

    def _build_payload(
        self, prompt: str, system_prompt: Optional[str], max_tokens: Optional[int]
    ) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt or DEFAULT_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.temperature,
            "max_tokens": max_tokens or self.max_tokens,
        }

    async def generate(
        self,
        prompt: str,
        *,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> Optional[str]:
        url = f"{self.base_url}/chat/completions"
        payload = self._build_payload(prompt, system_prompt, max_tokens)

        try:
            async with self._client_context() as client:
                resp = await client.post(url, headers=self.headers, json=payload, timeout=self.timeout)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            logger.warning(f"Text generation API error: {e.response.status_code}")
            return None
        except (httpx.TransportError, ValueError) as e:
            logger.warning(f"Text generation failed: {type(e).__name__}: {e}")
            return None

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            logger.warning("Text generation returned an unexpected payload shape")
            return None
        return content or None

    async def health_check(self, timeout: float = 2.0) -> bool:
        """Calls the /models endpoint with a short timeout."""
        try:
            async with self._client_context() as client:
                resp = await client.get(
                    f"{self.base_url}/models", headers=self.headers, timeout=timeout
                )
                return resp.status_code == 200
        except httpx.HTTPError:
            return False


def build_text_generator(
    config: Settings, http_client: Optional[httpx.AsyncClient] = None
) -> Optional[TextGenerator]:
    """Return a generator when an API key is configured, otherwise None."""
    if not config.openai_api_key:
        return None
    return OpenAITextGenerator(
        base_url=config.openai_base_url,
        api_key=config.openai_api_key,
        model=config.openai_model,
        http_client=http_client,
        timeout=config.openai_timeout,
        max_tokens=config.openai_max_tokens,
    )
