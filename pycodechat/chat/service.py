"""Project chat service.

Answers a question about a project by retrieving code context, asking the
preferred (or first configured) LLM provider, and falling back to canned
answers when no provider is usable. Every exchange is stored in the
project's latest chat session.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from ..search.models import EnhancedSearchResults
from ..search.retriever import MultiStrategyRetriever
from ..storage.records import ProjectRecord, ProjectStore
from ..types import SearchResult
from .providers import ChatMessage, ChatProvider, ProviderError, ProviderFactory

logger = logging.getLogger(__name__)

SESSION_TITLE_LENGTH = 50
HISTORY_ROLES = ("user", "assistant")
FALLBACK_PROVIDER = "fallback"


def session_title(message: str) -> str:
    title = message[:SESSION_TITLE_LENGTH]
    return title + "..." if len(message) > SESSION_TITLE_LENGTH else title


def build_system_message(project: ProjectRecord, context: str = "") -> str:
    lines = [
        "You are a helpful AI assistant that helps developers understand their codebase.",
        f'You have access to the project "{project.name}" located at "{project.path}".',
    ]
    if project.description:
        lines.append(f"Project description: {project.description}")
    if project.language:
        lines.append(f"Primary language: {project.language}")
    if project.framework:
        lines.append(f"Framework: {project.framework}")
    lines.append("")
    lines.append(
        "When answering questions about the code, be specific and reference "
        "the actual code when possible."
    )
    if context:
        lines.append("")
        lines.append("Relevant code context:")
        lines.append(context)
    return "\n".join(lines)


def build_fallback_response(
    message: str, project: ProjectRecord, results: Sequence[SearchResult]
) -> str:
    """Canned answer used when no LLM provider can respond."""
    lower = message.lower()
    name = project.name

    if "function" in lower or "method" in lower:
        if results:
            files = "\n".join(
                f"- {result.file_path}: Contains code related to your query"
                for result in results
            )
            return (
                f"I found some relevant functions in your {name} project. Based on "
                f"the code I can see, here are the functions that might be relevant "
                f"to your question:\n\n{files}\n\n"
                f"Would you like me to explain any specific function in detail?"
            )
        return (
            f"I'd be happy to help you understand the functions in your {name} "
            f"project. However, it looks like the project hasn't been fully indexed "
            f"yet. Once indexing is complete, I'll be able to provide detailed "
            f"information about specific functions, their parameters, return values, "
            f"and usage examples."
        )

    if "class" in lower or "component" in lower:
        if project.language in ("javascript", "typescript"):
            detail = (
                "Since this is a JavaScript/TypeScript project, I can explain React "
                "components, ES6 classes, and their relationships."
            )
        else:
            detail = (
                f"Since this is a {project.language or 'code'} project, I can explain "
                f"the class structure and inheritance patterns."
            )
        return (
            f"I can help you understand the classes and components in your {name} "
            f"project. {detail}"
        )

    if "how" in lower and "work" in lower:
        return (
            f"I can explain how different parts of your {name} project work together. "
            f"This includes:\n\n"
            f"- Code architecture and structure\n"
            f"- Function and class relationships\n"
            f"- Data flow and dependencies\n"
            f"- Best practices and potential improvements\n\n"
            f"What specific part would you like me to explain?"
        )

    if "bug" in lower or "error" in lower or "issue" in lower:
        return (
            f"I can help you debug issues in your {name} project. To provide the "
            f"best assistance, please:\n\n"
            f"1. Describe the specific error or unexpected behavior\n"
            f"2. Share the relevant code section\n"
            f"3. Mention when the issue occurs\n\n"
            f"I'll analyze your codebase and suggest potential solutions."
        )

    return (
        f"I'm here to help you understand your {name} project! I can assist with:\n\n"
        f"- Explaining how functions and classes work\n"
        f"- Understanding code architecture\n"
        f"- Finding specific code patterns\n"
        f"- Debugging issues\n"
        f"- Suggesting improvements\n\n"
        f"What would you like to know about your codebase?"
    )


class ChatService:
    """Retrieval-augmented chat over an indexed project."""

    def __init__(
        self,
        store: ProjectStore,
        retriever: MultiStrategyRetriever,
        config,
        provider_factory=ProviderFactory,
    ) -> None:
        self.store = store
        self.retriever = retriever
        self.config = config
        self.provider_factory = provider_factory

    def select_provider(self) -> Optional[ChatProvider]:
        """Preferred provider when configured, else the first configured one."""
        preferred = self.config.chat_provider
        if preferred:
            provider = self.provider_factory.create_provider(
                preferred, self.config.get_provider_config(preferred)
            )
            if provider.is_configured():
                return provider
            logger.warning(f"Preferred chat provider {preferred} has no API key")

        for info in self.provider_factory.get_available_providers():
            provider = self.provider_factory.create_provider(
                info["name"], self.config.get_provider_config(info["name"])
            )
            if provider.is_configured():
                return provider
        return None

    def _build_messages(
        self,
        project: ProjectRecord,
        message: str,
        search: EnhancedSearchResults,
        history: Optional[List[Dict[str, str]]],
    ) -> List[ChatMessage]:
        context = search.context_summary if search.success and search.results else ""
        messages = [ChatMessage("system", build_system_message(project, context))]
        for entry in history or []:
            if entry.get("role") in HISTORY_ROLES:
                messages.append(ChatMessage(entry["role"], entry.get("content", "")))
        messages.append(ChatMessage("user", message))
        return messages

    async def chat(
        self,
        project_id: str,
        message: str,
        history: Optional[List[Dict[str, str]]] = None,
    ) -> Dict[str, Any]:
        """Answer a question about a project.

        Args:
            project_id: Project to chat about
            message: The user's question
            history: Prior ``{"role", "content"}`` turns; only user and
                assistant roles are forwarded

        Returns:
            ``{"success", "response", "provider", "session_id", "search"}``
            or ``{"success": False, "error"}`` for an unknown project
        """
        project = self.store.get_project(project_id)
        if project is None:
            return {"success": False, "error": f"Project not found: {project_id}"}

        search = await self.retriever.enhanced_search(message, project_id)
        if not search.success:
            logger.warning(f"Context search failed for chat on {project_id}: {search.error}")

        provider = self.select_provider()
        provider_name = FALLBACK_PROVIDER
        response: Optional[str] = None
        if provider is not None:
            messages = self._build_messages(project, message, search, history)
            try:
                reply = await asyncio.to_thread(provider.chat, messages)
                response = reply.content
                provider_name = provider.name
            except ProviderError as e:
                logger.error(f"Chat provider {provider.name} failed: {e}")
        else:
            logger.info("No chat provider configured, using fallback responses")

        if response is None:
            response = build_fallback_response(message, project, search.results)

        session = self.store.get_latest_chat_session(project_id)
        if session is None:
            session = self.store.create_chat_session(project_id, session_title(message))
        self.store.add_chat_message(session.id, "user", message)
        self.store.add_chat_message(session.id, "assistant", response)

        return {
            "success": True,
            "response": response,
            "provider": provider_name,
            "session_id": session.id,
            "search": {
                "success": search.success,
                "search_strategy": search.search_strategy,
                "total_searches": search.total_searches,
                "results": len(search.results),
            },
        }

    def get_history(self, project_id: str) -> List[Dict[str, str]]:
        """Messages of the project's latest chat session, oldest first."""
        session = self.store.get_latest_chat_session(project_id)
        if session is None:
            return []
        return [
            {"role": m.role, "content": m.content}
            for m in self.store.list_chat_messages(session.id)
        ]
