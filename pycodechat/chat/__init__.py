"""Retrieval-augmented project chat."""

from .service import ChatService, build_fallback_response, build_system_message

__all__ = ["ChatService", "build_fallback_response", "build_system_message"]
