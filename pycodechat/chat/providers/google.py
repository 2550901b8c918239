"""Google Generative Language API provider."""

from typing import Any, Dict, List

from .base import ChatMessage, ChatProvider, ChatResponse, ChatUsage, ProviderError

GOOGLE_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GoogleProvider(ChatProvider):
    name = "google"
    display_name = "Google AI"
    default_model = "gemini-pro"

    def _build_request(self, messages: List[ChatMessage]) -> Dict[str, Any]:
        # The API only knows "user" and "model"; system text is sent as user
        contents = [
            {
                "role": "model" if message.role == "assistant" else "user",
                "parts": [{"text": message.content}],
            }
            for message in messages
        ]
        return {
            "url": (
                f"{self.base_url or GOOGLE_BASE_URL}/models/{self.model}:generateContent"
            ),
            "params": {"key": self.api_key},
            "headers": {"Content-Type": "application/json"},
            "json": {
                "contents": contents,
                "generationConfig": {
                    "temperature": self.temperature,
                    "maxOutputTokens": self.max_tokens,
                },
            },
        }

    def _parse_response(self, data: Dict[str, Any]) -> ChatResponse:
        candidates = data.get("candidates") or []
        if not candidates:
            raise ProviderError("No response from Google AI", self.name)

        parts = (candidates[0].get("content") or {}).get("parts") or [{}]
        metadata = data.get("usageMetadata")
        return ChatResponse(
            content=parts[0].get("text") or "",
            usage=(
                ChatUsage(
                    prompt_tokens=metadata.get("promptTokenCount", 0),
                    completion_tokens=metadata.get("candidatesTokenCount", 0),
                    total_tokens=metadata.get("totalTokenCount", 0),
                )
                if metadata
                else None
            ),
        )
