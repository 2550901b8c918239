"""OpenAI chat completions provider."""

from typing import Any, Dict, List

from .base import ChatMessage, ChatProvider, ChatResponse, ChatUsage

OPENAI_BASE_URL = "https://api.openai.com/v1"


def parse_openai_usage(data: Dict[str, Any]):
    usage = data.get("usage")
    if not usage:
        return None
    return ChatUsage(
        prompt_tokens=usage.get("prompt_tokens", 0),
        completion_tokens=usage.get("completion_tokens", 0),
        total_tokens=usage.get("total_tokens", 0),
    )


class OpenAIProvider(ChatProvider):
    name = "openai"
    display_name = "OpenAI"
    default_model = "gpt-4"

    def _build_request(self, messages: List[ChatMessage]) -> Dict[str, Any]:
        return {
            "url": f"{self.base_url or OPENAI_BASE_URL}/chat/completions",
            "headers": {
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
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
