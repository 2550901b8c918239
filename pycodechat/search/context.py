"""Token-budgeted context assembly for LLM prompts."""

import logging
from typing import Dict, List, Optional

from ..types import SearchResult
from .models import QueryAnalysis

logger = logging.getLogger(__name__)

NO_RESULTS_SUMMARY = "No relevant code found for this query."
TOKENS_PER_CHAR = 0.25
MIN_TRUNCATED_CHARS = 100
TRUNCATION_MARKER = "\n... (truncated)\n"


def estimate_tokens(text: str) -> float:
    return len(text) * TOKENS_PER_CHAR


def group_by_file(results: List[SearchResult]) -> Dict[str, List[SearchResult]]:
    """Group results by file path in first-seen file order."""
    groups: Dict[str, List[SearchResult]] = {}
    for result in results:
        groups.setdefault(result.file_path, []).append(result)
    return groups


class ContextAssembler:
    """Builds the context summary injected into the chat system message.

    Text is appended block by block while the running token estimate stays
    within ``max_tokens``. The first block that does not fit is cut down to
    the remaining budget when enough room is left, and assembly stops.
    """

    def format_header(self, analysis: QueryAnalysis) -> str:
        intent = analysis.intent
        entities = ", ".join(intent.entities) if intent.entities else "none"
        return (
            f"Query intent: {intent.type.value} "
            f"(confidence: {intent.confidence:.0%})\n"
            f"Context: {intent.context}\n"
            f"Entities: {entities}\n\n"
        )

    def format_block(self, result: SearchResult, content: Optional[str] = None) -> str:
        start = result.metadata.get("startLine")
        end = result.metadata.get("endLine")
        block = ""
        if start is not None and end is not None:
            block += f"Lines {start}-{end}:\n"
        block += (content if content is not None else result.content) + "\n"
        if result.relevance_reason:
            block += f"Relevance: {result.relevance_reason}\n"
        return block + "\n"

    def build_summary(
        self,
        results: List[SearchResult],
        query_analysis: Optional[QueryAnalysis],
        max_tokens: int,
    ) -> str:
        """Assemble a bounded context summary.

        Args:
            results: Ranked results
            query_analysis: Analysis used for the summary header
            max_tokens: Budget measured with the chars x 0.25 estimate

        Returns:
            Summary text, or the no-results sentinel when ``results`` is empty
        """
        if not results:
            return NO_RESULTS_SUMMARY

        max_chars = int(max_tokens / TOKENS_PER_CHAR)
        parts: List[str] = []
        used = 0

        def fits(text: str) -> bool:
            return used + len(text) <= max_chars

        if query_analysis is not None:
            header = self.format_header(query_analysis)
            if fits(header):
                parts.append(header)
                used += len(header)

        exhausted = False
        for file_path, file_results in group_by_file(results).items():
            section = f"=== {file_path} ===\n"
            if not fits(section):
                break
            parts.append(section)
            used += len(section)

            for result in file_results:
                block = self.format_block(result)
                if fits(block):
                    parts.append(block)
                    used += len(block)
                    continue

                overhead = len(self.format_block(result, "")) + len(TRUNCATION_MARKER)
                remaining = max_chars - used - overhead
                if remaining > MIN_TRUNCATED_CHARS:
                    truncated = result.content[:remaining] + TRUNCATION_MARKER.rstrip("\n")
                    parts.append(self.format_block(result, truncated))
                exhausted = True
                break

            if exhausted:
                break

        summary = "".join(parts)
        logger.debug(
            f"Built context summary: {len(summary)} chars, "
            f"~{estimate_tokens(summary):.0f}/{max_tokens} tokens"
        )
        return summary


def build_summary(
    results: List[SearchResult],
    query_analysis: Optional[QueryAnalysis],
    max_tokens: int,
) -> str:
    return ContextAssembler().build_summary(results, query_analysis, max_tokens)
