"""Anthropic messages API provider."""

from typing import Any, Dict, List

from .base import ChatMessage, ChatProvider, ChatResponse, ChatUsage

ANTHROPIC_BASE_URL = "https://api.anthropic.com/v1"
ANTHROPIC_VERSION = "2023-06-01"


class AnthropicProvider(ChatProvider):
    """Anthropic provider.

    The messages API takes the system prompt as a top-level field, so the
    first system message is split out of the conversation.
    """

    name = "anthropic"
    display_name = "Anthropic"
    default_model = "claude-3-sonnet-20240229"

    def _build_request(self, messages: List[ChatMessage]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": [m.to_dict() for m in messages if m.role != "system"],
        }
        system = next((m.content for m in messages if m.role == "system"), None)
        if system is not None:
            payload["system"] = system

        return {
            "url": f"{self.base_url or ANTHROPIC_BASE_URL}/messages",
            "headers": {
                "x-api-key": self.api_key,
                "anthropic-version": ANTHROPIC_VERSION,
                "Content-Type": "application/json",
            },
            "json": payload,
        }

    def _parse_response(self, data: Dict[str, Any]) -> ChatResponse:
        blocks = data.get("content") or [{}]
        usage = data.get("usage")
        return ChatResponse(
            content=blocks[0].get("text") or "",
            usage=(
                ChatUsage(
                    prompt_tokens=usage["input_tokens"],
                    completion_tokens=usage["output_tokens"],
                    total_tokens=usage["input_tokens"] + usage["output_tokens"],
                )
                if usage
                else None
            ),
        )
