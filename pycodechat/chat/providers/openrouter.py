"""OpenRouter provider (OpenAI-compatible API)."""

from typing import Any, Dict, List

from .base import ChatMessage, ChatProvider, ChatResponse
from .openai import parse_openai_usage

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
OPENROUTER_REFERER = "https://github.com/pycodechat/pycodechat"
OPENROUTER_TITLE = "PyCodeChat"


class OpenRouterProvider(ChatProvider):
    name = "openrouter"
    display_name = "OpenRouter"
    default_model = "anthropic/claude-3-sonnet"

    def _build_request(self, messages: List[ChatMessage]) -> Dict[str, Any]:
        return {
            "url": f"{self.base_url or OPENROUTER_BASE_URL}/chat/completions",
            "headers": {
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
                "HTTP-Referer": OPENROUTER_REFERER,
                "X-Title": OPENROUTER_TITLE,
            },
            "json": {
                "model": self.model,
                "messages": [message.to_dict() for message in messages],
                "max_tokens": self.max_tokens,
                "temperature": self.temperature,
            },
        }

    def _parse_response(self, data: Dict[str, Any]) -> ChatResponse:
        choices = data.get("choices") or [{}]
        content = (choices[0].get("message") or {}).get("content") or ""
        return ChatResponse(content=content, usage=parse_openai_usage(data))
