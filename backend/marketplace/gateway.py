from __future__ import annotations
import logging
from typing import List, Mapping, Optional, Protocol, Sequence

from openai import OpenAI, OpenAIError

from .config import Settings
from .errors import ConfigurationError, ModelCallError

logger = logging.getLogger(__name__)


class ChatGateway(Protocol):
    """Anything that can turn a system prompt plus messages into text"""

    def complete(
        self,
        prompt: str,
        messages: Sequence[Mapping[str, str]],
        max_tokens: int,
        temperature: Optional[float] = None,
    ) -> str: ...


class OpenAIGateway:
    # Talks to any OpenAI compatible chat completions endpoint with a bearer token
    def __init__(self, settings: Settings, client: Optional[OpenAI] = None):
        if client is None:
            if not settings.ai_api_key:
                raise ConfigurationError("AI gateway API key missing (set AI_GATEWAY_API_KEY).")
            client = OpenAI(
                api_key=settings.ai_api_key,
                base_url=settings.ai_base_url,
                timeout=settings.ai_timeout,
            )
        self.client = client
        self.model = settings.ai_model

    def complete(
        self,
        prompt: str,
        messages: Sequence[Mapping[str, str]],
        max_tokens: int,
        temperature: Optional[float] = None,
    ) -> str:
        payload: List[dict] = [{"role": "system", "content": prompt}]
        payload.extend({"role": m["role"], "content": m["content"]} for m in messages)
        extra = {} if temperature is None else {"temperature": temperature}
        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                messages=payload,
                max_tokens=max_tokens,
                **extra,
            )
        except OpenAIError as e:
            logger.error("Chat completion failed: %s", e)
            raise ModelCallError("AI gateway request failed") from e
        content = resp.choices[0].message.content if resp.choices else None
        if not content or not content.strip():
            raise ModelCallError("AI gateway returned no content")
        return content
