"""Multi-strategy retrieval for PyCodeChat.

A single question fans out into a fixed sequence of vector searches
(direct, expanded, entity, symbol fallback, related files). Every step adds
to one accumulated result list, which is then re-ranked and turned into a
token-bounded context summary.
"""

import logging
import math
from dataclasses import dataclass, field, replace
from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional, Union

from ..storage.vector import NOT_CONFIGURED_ERROR, VectorSearchGateway
from ..types import Priority, SearchResult, SearchStrategy
from .context import ContextAssembler
from .models import (
    EnhancedSearchResults,
    QueryAnalysis,
    SearchErrorCode,
    SearchOptions,
)
from .query_analysis import QueryAnalyzer
from .reranker import HeuristicReranker, count_whole_word
from .symbols import extract_code_identifiers, extract_imports, unique

logger = logging.getLogger(__name__)

SYMBOL_PROBE_SUFFIX = "function method class variable property"
MAX_ENTITY_SEARCHES = 3
MAX_FALLBACK_SYMBOLS = 2
RELATED_SOURCE_RESULTS = 5
MAX_IMPORTS_PER_RESULT = 3
FAILED_SEARCH_SUMMARY = "Search failed"


@dataclass
class _RetrievalRun:
    """Mutable state of one retrieval call."""

    project_id: str
    results: List[SearchResult] = field(default_factory=list)
    strategies: List[str] = field(default_factory=list)
    total_searches: int = 0


class MultiStrategyRetriever:
    """Orchestrates the retrieval strategies against a vector gateway."""

    def __init__(
        self,
        gateway: VectorSearchGateway,
        analyzer: Optional[QueryAnalyzer] = None,
        reranker: Optional[HeuristicReranker] = None,
        assembler: Optional[ContextAssembler] = None,
        default_options: Optional[SearchOptions] = None,
    ):
        self.gateway = gateway
        self.analyzer = analyzer or QueryAnalyzer()
        self.reranker = reranker or HeuristicReranker()
        self.assembler = assembler or ContextAssembler()
        self.default_options = default_options or SearchOptions()

    def _resolve_options(
        self, options: Optional[Union[SearchOptions, Dict[str, Any]]]
    ) -> SearchOptions:
        if options is None:
            return self.default_options
        if isinstance(options, SearchOptions):
            return options
        merged = {**self.default_options.__dict__, **options}
        return SearchOptions.from_dict(merged)

    async def _search(
        self,
        run: _RetrievalRun,
        text: str,
        top_k: int,
        reason: Optional[str] = None,
    ) -> List[SearchResult]:
        """One vector round trip; failures are logged and yield nothing."""
        outcome = await self.gateway.query(text, run.project_id, top_k)
        if not outcome.success:
            logger.warning(f"Search probe {text!r} failed: {outcome.error}")
            return []

        run.total_searches += 1
        if reason:
            return [replace(result, relevance_reason=reason) for result in outcome.results]
        return list(outcome.results)

    async def symbol_search(
        self,
        run: _RetrievalRun,
        symbol: str,
        top_k: int,
        reason: Optional[str] = None,
    ) -> List[SearchResult]:
        """Probe for a symbol and keep hits containing it as a whole word."""
        hits = await self._search(run, f"{symbol} {SYMBOL_PROBE_SUFFIX}", top_k, reason)
        return [hit for hit in hits if count_whole_word(symbol, hit.content) > 0]

    async def retrieve(
        self,
        query: str,
        project_id: str,
        options: Optional[Union[SearchOptions, Dict[str, Any]]] = None,
    ) -> EnhancedSearchResults:
        """Run all retrieval strategies for one question.

        Args:
            query: The user's question
            project_id: Project whose vectors are searched
            options: SearchOptions or a partial dict overriding the defaults

        Returns:
            EnhancedSearchResults; never raises
        """
        if not self.gateway.is_configured():
            return EnhancedSearchResults.create_error(
                NOT_CONFIGURED_ERROR,
                search_strategy="none",
                error_code=SearchErrorCode.NOT_CONFIGURED.value,
            )

        run = _RetrievalRun(project_id=project_id)
        try:
            return await self._retrieve(query, self._resolve_options(options), run)
        except Exception as e:
            # TODO: decide whether partial results should be returned with success=False
            logger.error(
                f"Enhanced search failed for {query!r}, discarding "
                f"{len(run.results)} partial results: {e}"
            )
            return EnhancedSearchResults.create_error(
                str(e),
                search_strategy="error",
                error_code=SearchErrorCode.SEARCH_ERROR.value,
                context_summary=FAILED_SEARCH_SUMMARY,
            )

    enhanced_search = retrieve

    async def _retrieve(
        self, query: str, options: SearchOptions, run: _RetrievalRun
    ) -> EnhancedSearchResults:
        analysis = self.analyzer.analyze(query)
        intent = analysis.intent
        intent_name = intent.type.value

        adjusted_max = options.max_results
        if analysis.priority is Priority.HIGH:
            adjusted_max = options.max_results * 1.5
        adjusted_depth = options.search_depth
        if analysis.search_strategy is SearchStrategy.PRECISE:
            adjusted_depth += 2

        run.strategies.append("direct")
        run.results.extend(await self._search(run, query, math.ceil(adjusted_max)))

        expansions = analysis.expanded_queries[: max(adjusted_depth - 1, 0)]
        if expansions:
            run.strategies.append("smart-expansion")
            for expanded in expansions:
                run.results.extend(
                    await self._search(
                        run,
                        expanded,
                        math.ceil(adjusted_max / 2),
                        f"Expanded query '{expanded}' ({intent_name} intent)",
                    )
                )

        entities = intent.entities[:MAX_ENTITY_SEARCHES]
        if entities:
            run.strategies.append("entity")
            for entity in entities:
                run.results.extend(
                    await self.symbol_search(
                        run,
                        entity,
                        math.ceil(adjusted_max / 3),
                        f"Matches entity '{entity}' ({intent_name} intent)",
                    )
                )

        if len(run.results) < options.max_results / 2:
            symbols = extract_code_identifiers(query)[:MAX_FALLBACK_SYMBOLS]
            if symbols:
                run.strategies.append("symbol-fallback")
                for symbol in symbols:
                    run.results.extend(
                        await self.symbol_search(
                            run,
                            symbol,
                            math.ceil(options.max_results / 3),
                            f"Contains symbol '{symbol}'",
                        )
                    )

        if options.include_related and run.results:
            probes = self._related_probes(run.results[:RELATED_SOURCE_RESULTS])
            if probes:
                run.strategies.append("related")
                for probe in probes:
                    run.results.extend(
                        await self._search(
                            run,
                            probe,
                            math.ceil(adjusted_max / 3),
                            f"Related dependency: {probe}",
                        )
                    )

        ranked = self.reranker.rerank(run.results, query, analysis, options.max_results)
        summary = self.assembler.build_summary(ranked, analysis, options.context_window)

        logger.info(
            f"Enhanced search for {query!r}: {len(ranked)} results from "
            f"{len(run.results)} hits in {run.total_searches} searches "
            f"({' + '.join(run.strategies)})"
        )
        return EnhancedSearchResults(
            success=True,
            results=ranked,
            search_strategy=" + ".join(run.strategies),
            total_searches=run.total_searches,
            context_summary=summary,
            query_analysis=analysis,
        )

    def _related_probes(self, sources: List[SearchResult]) -> List[str]:
        """Build dependency probes from imports and file base names."""
        probes = []
        for result in sources:
            for module in extract_imports(result.content, result.language)[
                :MAX_IMPORTS_PER_RESULT
            ]:
                probes.append(f"file:{module}")
            if result.file_path:
                probes.append(f"import {PurePosixPath(result.file_path).stem}")
        return unique(probes)
