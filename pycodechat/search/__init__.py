"""Retrieval engine: query analysis, multi-strategy search, re-ranking
and context assembly."""

from .context import NO_RESULTS_SUMMARY, ContextAssembler, build_summary
from .models import (
    EnhancedSearchResults,
    QueryAnalysis,
    QueryIntent,
    SearchErrorCode,
    SearchOptions,
)
from .query_analysis import QueryAnalyzer, analyze_query
from .reranker import HeuristicReranker, RerankWeights, rerank
from .retriever import MultiStrategyRetriever
from .symbols import (
    extract_code_identifiers,
    extract_imports,
    extract_references,
    extract_symbols,
)

__all__ = [
    "ContextAssembler",
    "EnhancedSearchResults",
    "HeuristicReranker",
    "MultiStrategyRetriever",
    "NO_RESULTS_SUMMARY",
    "QueryAnalysis",
    "QueryAnalyzer",
    "QueryIntent",
    "RerankWeights",
    "SearchErrorCode",
    "SearchOptions",
    "analyze_query",
    "build_summary",
    "extract_code_identifiers",
    "extract_imports",
    "extract_references",
    "extract_symbols",
    "rerank",
]
