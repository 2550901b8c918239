"""Retrieval models for PyCodeChat.

This module defines the query analysis structures and the standardized
enhanced search response returned by the multi-strategy retriever.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..types import IntentType, Priority, SearchResult, SearchStrategy


class SearchErrorCode(Enum):
    """Standardized error codes for retrieval operations."""

    NOT_CONFIGURED = "NOT_CONFIGURED"
    SEARCH_ERROR = "SEARCH_ERROR"


@dataclass(frozen=True)
class QueryIntent:
    """Classified intent of a free-text query.

    Entities, keywords and search terms are ordered sets kept as tuples so
    the intent stays immutable once derived.
    """

    type: IntentType
    confidence: float
    entities: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()
    search_terms: Tuple[str, ...] = ()
    context: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "confidence": self.confidence,
            "entities": list(self.entities),
            "keywords": list(self.keywords),
            "search_terms": list(self.search_terms),
            "context": self.context,
        }


@dataclass(frozen=True)
class QueryAnalysis:
    """Intent plus the derived expansion queries and retrieval hints."""

    intent: QueryIntent
    expanded_queries: Tuple[str, ...]
    search_strategy: SearchStrategy
    priority: Priority

    def to_dict(self) -> Dict[str, Any]:
        return {
            "intent": self.intent.to_dict(),
            "expanded_queries": list(self.expanded_queries),
            "search_strategy": self.search_strategy.value,
            "priority": self.priority.value,
        }


@dataclass
class SearchOptions:
    """Tuning knobs for a single enhanced search."""

    max_results: int = 10
    search_depth: int = 3
    include_related: bool = True
    context_window: int = 4000

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SearchOptions":
        """Create options from a partial dictionary, ignoring unknown keys."""
        data = data or {}
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass
class EnhancedSearchResults:
    """Outcome of one multi-strategy retrieval."""

    success: bool
    results: List[SearchResult] = field(default_factory=list)
    search_strategy: str = ""
    total_searches: int = 0
    context_summary: str = ""
    error: Optional[str] = None
    error_code: Optional[str] = None
    query_analysis: Optional[QueryAnalysis] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            "success": self.success,
            "results": [r.to_dict() for r in self.results],
            "search_strategy": self.search_strategy,
            "total_searches": self.total_searches,
            "context_summary": self.context_summary,
        }
        if self.error is not None:
            result["error"] = self.error
        if self.error_code is not None:
            result["error_code"] = self.error_code
        if self.query_analysis is not None:
            result["query_analysis"] = self.query_analysis.to_dict()
        return result

    @classmethod
    def create_error(
        cls,
        error: str,
        search_strategy: str,
        error_code: Optional[str] = None,
        context_summary: str = "",
    ) -> "EnhancedSearchResults":
        """Create a failed response; failed responses never carry results."""
        return cls(
            success=False,
            results=[],
            search_strategy=search_strategy,
            total_searches=0,
            context_summary=context_summary,
            error=error,
            error_code=error_code,
        )
