"""
OpenRouter judge client
Single-turn chat completion against an OpenAI compatible endpoint.
No retries and no internal timeout: the caller owns the deadline.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from dsa_practice.core.config import Settings
from dsa_practice.core.errors import DecodeError, ProviderError, TransportError

logger = logging.getLogger(__name__)


class JudgeClient(ABC):
    @abstractmethod
    async def evaluate(self, prompt: str, credential: str = "") -> Optional[str]:
        """
        Return the judge's raw answer, or None when the provider returned
        no completion choices.
        """


class OpenRouterJudgeClient(JudgeClient):
    def __init__(
        self,
        url: str,
        model: str,
        default_credential: str = "",
        referer: str = "",
        title: str = "",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.model = model
        self.default_credential = default_credential
        self.referer = referer
        self.title = title
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "OpenRouterJudgeClient":
        return cls(
            url=settings.openrouter_url,
            model=settings.openrouter_model,
            default_credential=settings.openrouter_api_key,
            referer=settings.openrouter_referer,
            title=settings.openrouter_title,
            **kwargs,
        )

    def build_headers(self, credential: str) -> dict:
        # A user key wins, otherwise the system key is used
        token = credential or self.default_credential
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
            "HTTP-Referer": self.referer,
            "X-Title": self.title,
        }

    def build_payload(self, prompt: str) -> dict:
        return {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
        }

    async def evaluate(self, prompt: str, credential: str = "") -> Optional[str]:
        try:
            async with httpx.AsyncClient(timeout=None, transport=self._transport) as client:
                response = await client.post(
                    self.url,
                    json=self.build_payload(prompt),
                    headers=self.build_headers(credential),
                )
        except httpx.HTTPError as e:
            raise TransportError(f"Failed to reach judge service: {e}") from e

        body = response.text
        if response.status_code != 200:
            logger.error("OpenRouter API error - Status: %d, Body: %s", response.status_code, body)
            raise ProviderError(
                f"openrouter api returned status: {response.status_code}, body: {body}",
                status=response.status_code,
                body=body,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise DecodeError(f"Invalid judge response: {e}") from e

        if not isinstance(data, dict):
            raise DecodeError("Invalid judge response: expected a JSON object")

        error = data.get("error")
        if error:
            message = error.get("message", "unknown error") if isinstance(error, dict) else str(error)
            raise ProviderError(f"openrouter api error: {message}", status=response.status_code, body=body)

        choices = data.get("choices") or []
        if not isinstance(choices, list):
            raise DecodeError("Invalid judge response: choices is not a list")
        if not choices:
            return None

        try:
            content = choices[0]["message"].get("content")
        except (KeyError, TypeError, AttributeError) as e:
            raise DecodeError("Invalid judge response: missing message content") from e

        return content or ""
