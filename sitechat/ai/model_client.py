"""
Gemini Model Client

Calls the Generative Language REST API over aiohttp. Every failure mode
(missing key, transport error, timeout, non-2xx status, unexpected payload)
surfaces as ModelInvocationError.
"""

import asyncio
import os
from typing import Dict, Any, Optional

import aiohttp

from sitechat.core.base import ModelClientInterface, ModelInvocationError
from sitechat.core.config import ModelConfig
from sitechat.core.logging import get_logger


class GeminiClient(ModelClientInterface):
    """
    Implementation of the model client for Gemini models
    """

    def __init__(self, config: Dict[str, Any]):
        super().__init__(config)
        self.logger = get_logger('model')
        self.model_config = ModelConfig(**config.get('model', {}))
        self.model_id = self.model_config.model_id
        self.api_key: Optional[str] = None
        self.session: Optional[aiohttp.ClientSession] = None

    @property
    def endpoint(self) -> str:
        return f"{self.model_config.api_url.rstrip('/')}/models/{self.model_id}:generateContent"

    async def initialize(self) -> None:
        """Create the HTTP session"""
        if self._initialized:
            return

        self.api_key = os.getenv(self.model_config.api_key_env)
        if not self.api_key:
            raise ModelInvocationError(
                f"API key not found in environment variable: {self.model_config.api_key_env}"
            )

        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.model_config.timeout),
            headers={
                'Content-Type': 'application/json',
                'x-goog-api-key': self.api_key,
            }
        )
        self._initialized = True
        self.logger.info(f"Model client ready for {self.model_id}")

    async def cleanup(self) -> None:
        """Clean up resources"""
        if self.session:
            await self.session.close()
            self.session = None
        self._initialized = False

    async def generate(self, prompt: str) -> str:
        """
        Generate a completion for a prompt

        Args:
            prompt: Full prompt text

        Returns:
            Generated text

        Raises:
            ModelInvocationError: on any failure
        """
        if not self._initialized:
            await self.initialize()

        payload = {'contents': [{'role': 'user', 'parts': [{'text': prompt}]}]}

        try:
            async with self.session.post(self.endpoint, json=payload) as response:
                if response.status not in (200, 201):
                    error_text = await response.text()
                    raise ModelInvocationError(
                        f"Model request failed: {response.status} - {error_text[:500]}"
                    )
                data = await response.json()
        except asyncio.TimeoutError:
            raise ModelInvocationError(f"Model request timed out after {self.model_config.timeout}s")
        except aiohttp.ClientError as e:
            raise ModelInvocationError(f"Network error during model request: {e}") from e
        except ValueError as e:
            raise ModelInvocationError(f"Model returned invalid JSON: {e}") from e

        return self._parse_text(data)

    def _parse_text(self, data: Any) -> str:
        try:
            parts = data['candidates'][0]['content']['parts']
            text = "".join(part.get('text', '') for part in parts)
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise ModelInvocationError(f"Unexpected model response: {e}") from e

        if not text.strip():
            reason = (data.get('candidates') or [{}])[0].get('finishReason', 'unknown')
            raise ModelInvocationError(f"Model returned no text (finish reason: {reason})")
        return text
