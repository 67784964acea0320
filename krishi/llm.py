"""
LLM Client - Gemini generative-text API
Single attempt per question, no retries
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional

import aiohttp

from .errors import BackendError, MalformedResponse

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = (
    "https://generativelanguage.googleapis.com/v1beta/models/gemini-pro:generateContent"
)

SAFETY_CATEGORIES = [
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
]


def build_payload(
    prompt: str,
    temperature: float = 0.7,
    top_k: int = 40,
    top_p: float = 0.95,
    max_output_tokens: int = 200,
    safety_threshold: str = "BLOCK_MEDIUM_AND_ABOVE",
) -> Dict[str, Any]:
    """Request body for generateContent"""
    return {
        "contents": [{"parts": [{"text": prompt}]}],
        "generationConfig": {
            "temperature": temperature,
            "topK": top_k,
            "topP": top_p,
            "maxOutputTokens": max_output_tokens,
        },
        "safetySettings": [
            {"category": category, "threshold": safety_threshold}
            for category in SAFETY_CATEGORIES
        ],
    }


def extract_answer(data: Any) -> str:
    """
    Pull candidates[0].content.parts[0].text out of a response payload.

    Raises:
        MalformedResponse: if the field is missing, not a string or blank
    """
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        raise MalformedResponse("Invalid response format from Gemini API")

    if not isinstance(text, str) or not text.strip():
        raise MalformedResponse("Gemini API returned an empty answer")

    return text.strip()


class GeminiClient:
    """
    Async HTTP client for the Gemini generateContent endpoint
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        endpoint: str = DEFAULT_ENDPOINT,
        model: str = "gemini-pro",
        timeout: float = 30.0,
        temperature: float = 0.7,
        top_k: int = 40,
        top_p: float = 0.95,
        max_output_tokens: int = 200,
    ):
        self.api_key = api_key
        self.endpoint = endpoint
        self.model = model
        self.timeout = timeout
        self.generation = {
            "temperature": temperature,
            "top_k": top_k,
            "top_p": top_p,
            "max_output_tokens": max_output_tokens,
        }
        self.session: Optional[aiohttp.ClientSession] = None

    @classmethod
    def from_config(cls, backend_config: Dict[str, Any]) -> "GeminiClient":
        """Build a client from KrishiConfig.get_backend_config()"""
        return cls(
            api_key=backend_config.get("api_key"),
            endpoint=backend_config.get("endpoint", DEFAULT_ENDPOINT),
            model=backend_config.get("model", "gemini-pro"),
            timeout=backend_config.get("timeout", 30.0),
            temperature=backend_config.get("temperature", 0.7),
            top_k=backend_config.get("top_k", 40),
            top_p=backend_config.get("top_p", 0.95),
            max_output_tokens=backend_config.get("max_output_tokens", 200),
        )

    async def __aenter__(self):
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_session(self):
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession()

    async def close(self):
        """Close the session"""
        if self.session:
            await self.session.close()
            self.session = None

    async def query(self, prompt: str) -> str:
        """
        Send a composed prompt and return the answer text.

        Raises:
            BackendError: on transport failure, non-2xx status or timeout
            MalformedResponse: if the payload has no answer text
        """
        await self._ensure_session()

        params = {"key": self.api_key} if self.api_key else None
        payload = build_payload(prompt, **self.generation)

        try:
            start_time = time.time()
            async with self.session.post(
                self.endpoint,
                params=params,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                elapsed = time.time() - start_time

                if response.status < 200 or response.status >= 300:
                    error_text = await response.text()
                    logger.error("Gemini API error %s: %s", response.status, error_text[:200])
                    raise BackendError(
                        f"API request failed: {response.status}",
                        kind=BackendError.STATUS,
                        status=response.status,
                    )

                try:
                    data = await response.json(content_type=None)
                except ValueError:
                    raise MalformedResponse("Response body is not JSON")

                logger.info("[Gemini] Response time: %.2fs (model: %s)", elapsed, self.model)
                return extract_answer(data)

        except asyncio.TimeoutError:
            raise BackendError(
                f"{self.model} timeout ({self.timeout:g}s)", kind=BackendError.TIMEOUT
            )
        except aiohttp.ClientError as e:
            raise BackendError(f"Cannot reach Gemini API: {e}", kind=BackendError.NETWORK)

