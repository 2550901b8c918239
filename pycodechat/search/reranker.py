"""Heuristic re-ranking and deduplication of code search results.

Results collected by several retrieval strategies are collapsed by a
file-and-content-prefix key, scored by fusing the raw similarity with
intent-specific content heuristics and term frequencies, and sorted.
"""

import logging
import re
from dataclasses import dataclass, replace
from typing import Dict, List, Optional

from ..types import IntentType, SearchResult
from .models import QueryAnalysis
from .symbols import unique

logger = logging.getLogger(__name__)

DEDUP_PREFIX_LENGTH = 100

FUNCTION_MARKER = re.compile(r"\b(?:function|def|const)\b", re.IGNORECASE)
CLASS_MARKER = re.compile(r"\b(?:class|component)\b", re.IGNORECASE)
DEBUG_MARKER = re.compile(r"\b(?:try|catch|except|error)\b", re.IGNORECASE)
DECLARATION_MARKER = re.compile(
    r"\b(?:function|def|class|const|let|var|interface)\b", re.IGNORECASE
)

UNKNOWN_LANGUAGES = frozenset({"", "text", "unknown"})


@dataclass(frozen=True)
class RerankWeights:
    """Bonus constants used by score fusion."""

    function_bonus: float = 0.3
    class_bonus: float = 0.3
    debug_bonus: float = 0.25
    entity_weight: float = 0.15
    query_word_weight: float = 0.1
    declaration_bonus: float = 0.2
    language_bonus: float = 0.05


def dedup_key(result: SearchResult) -> str:
    return f"{result.file_path}:{result.content[:DEDUP_PREFIX_LENGTH]}"


def count_whole_word(term: str, content: str) -> int:
    """Count case-insensitive whole-word occurrences of ``term``."""
    if not term:
        return 0
    pattern = re.compile(rf"(?<!\w){re.escape(term)}(?!\w)", re.IGNORECASE)
    return len(pattern.findall(content))


def deduplicate(results: List[SearchResult]) -> List[SearchResult]:
    """Collapse results sharing a dedup key.

    The higher base score wins; the surviving entry keeps the position
    where the key was first seen.
    """
    best: Dict[str, SearchResult] = {}
    for result in results:
        key = dedup_key(result)
        current = best.get(key)
        if current is None or result.score > current.score:
            best[key] = result
    return list(best.values())


class HeuristicReranker:
    """Score-fusion re-ranker for multi-strategy retrieval output."""

    def __init__(self, weights: Optional[RerankWeights] = None):
        self.weights = weights or RerankWeights()

    def score(
        self,
        result: SearchResult,
        query_words: List[str],
        analysis: Optional[QueryAnalysis] = None,
    ) -> float:
        """Compute the fused relevance score for one result."""
        weights = self.weights
        content = result.content
        fused = result.score

        if analysis is not None:
            intent = analysis.intent
            if intent.type is IntentType.FUNCTION and FUNCTION_MARKER.search(content):
                fused += weights.function_bonus
            elif intent.type is IntentType.CLASS and CLASS_MARKER.search(content):
                fused += weights.class_bonus
            elif intent.type is IntentType.DEBUG and DEBUG_MARKER.search(content):
                fused += weights.debug_bonus

            for entity in intent.entities:
                fused += weights.entity_weight * count_whole_word(entity, content)
        elif DECLARATION_MARKER.search(content):
            fused += weights.declaration_bonus

        for word in query_words:
            fused += weights.query_word_weight * count_whole_word(word, content)

        language = (result.language or "").lower()
        if language not in UNKNOWN_LANGUAGES:
            fused += weights.language_bonus

        return fused

    def rerank(
        self,
        results: List[SearchResult],
        original_query: str,
        query_analysis: Optional[QueryAnalysis] = None,
        max_results: Optional[int] = None,
    ) -> List[SearchResult]:
        """Deduplicate, fuse scores and sort results.

        Args:
            results: Accumulated results from all retrieval strategies
            original_query: The user's raw query
            query_analysis: Analysis of the query; when absent a generic
                declaration bonus is used instead of intent bonuses
            max_results: Truncation limit (None keeps everything)

        Returns:
            New SearchResult objects carrying ``enhanced_score``, sorted by
            descending fused score with ties in input order
        """
        query_words = unique(
            word.lower() for word in original_query.split() if len(word) > 2
        )

        scored = [
            replace(result, enhanced_score=self.score(result, query_words, query_analysis))
            for result in deduplicate(results)
        ]
        scored.sort(key=lambda result: result.enhanced_score, reverse=True)

        if max_results is not None:
            scored = scored[:max_results]

        logger.debug(
            f"Reranked {len(results)} results into {len(scored)} "
            f"(query words: {query_words})"
        )
        return scored


def rerank(
    results: List[SearchResult],
    original_query: str,
    query_analysis: Optional[QueryAnalysis] = None,
    max_results: Optional[int] = None,
) -> List[SearchResult]:
    """Re-rank with the default weights."""
    return HeuristicReranker().rerank(results, original_query, query_analysis, max_results)
