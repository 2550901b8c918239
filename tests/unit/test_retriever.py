"""Tests for the multi-strategy retriever."""

import asyncio
from unittest.mock import Mock

import pytest

from pycodechat.search.context import NO_RESULTS_SUMMARY
from pycodechat.search.models import QueryAnalysis, QueryIntent, SearchOptions
from pycodechat.search.retriever import MultiStrategyRetriever
from pycodechat.storage.vector import VectorSearchGateway
from pycodechat.types import IntentType, Priority, SearchStrategy

AUTH_JS = (
    "import { hash } from './crypto'\n"
    "function login(user, password) {\n"
    "  return hash(password)\n"
    "}"
)
CRYPTO_JS = "export function hash(value) { return value }"


def js_metadata(file_path, project_id="p1"):
    return {"projectId": project_id, "filePath": file_path, "language": "javascript"}


@pytest.fixture
def populated_backend(fake_backend):
    fake_backend.upsert("auth", AUTH_JS, js_metadata("src/auth.js"))
    fake_backend.upsert("crypto", CRYPTO_JS, js_metadata("src/crypto.js"))
    return fake_backend


@pytest.fixture
def retriever(populated_backend):
    return MultiStrategyRetriever(VectorSearchGateway(populated_backend))


def search(retriever, query, project_id="p1", options=None):
    return asyncio.run(retriever.enhanced_search(query, project_id, options))


class TestStrategies:
    def test_function_question_runs_all_applicable_strategies(self, retriever):
        result = search(retriever, "how does the login function work")

        assert result.success is True
        assert result.search_strategy == "direct + smart-expansion + entity + related"
        # direct + 4 expansions + 3 entity probes + 3 related probes
        assert result.total_searches == 11
        assert [r.id for r in result.results] == ["auth", "crypto"]
        assert all(r.enhanced_score is not None for r in result.results)
        assert "=== src/auth.js ===" in result.context_summary
        assert result.query_analysis.intent.type.value == "function"

    def test_related_probes_use_imports_and_file_stems(self, retriever, populated_backend):
        search(retriever, "how does the login function work")

        assert "file:./crypto" in populated_backend.queries
        assert "import auth" in populated_backend.queries
        assert "import crypto" in populated_backend.queries

    def test_related_step_can_be_disabled(self, retriever):
        result = search(
            retriever, "how does the login function work", options={"include_related": False}
        )

        assert result.search_strategy == "direct + smart-expansion + entity"
        assert result.total_searches == 8

    def test_failed_probe_is_not_counted(self, retriever, populated_backend):
        populated_backend.fail_on = "implementation"

        result = search(retriever, "how does the login function work")

        assert result.success is True
        assert result.total_searches == 10
        assert "how does the login function work implementation" in populated_backend.queries

    def test_symbol_fallback_when_results_are_scarce(self, fake_backend):
        retriever = MultiStrategyRetriever(VectorSearchGateway(fake_backend))

        result = search(retriever, "where is parseConfig")

        assert result.success is True
        assert result.search_strategy == "direct + smart-expansion + entity + symbol-fallback"
        assert result.total_searches == 5
        assert result.results == []
        assert result.context_summary == NO_RESULTS_SUMMARY
        assert "parseConfig function method class variable property" in fake_backend.queries

    def test_entity_hits_must_contain_the_entity(self, retriever):
        result = search(retriever, "how does the login function work")

        reasons = {r.relevance_reason for r in result.results}
        assert "Matches entity 'does' (function intent)" not in reasons

    def test_other_projects_are_invisible(self, retriever):
        result = search(retriever, "how does the login function work", project_id="p2")

        assert result.success is True
        assert result.results == []


class TestErrors:
    def test_unconfigured_gateway(self):
        result = search(MultiStrategyRetriever(VectorSearchGateway()), "login")

        assert result.success is False
        assert result.search_strategy == "none"
        assert result.total_searches == 0
        assert result.results == []
        assert result.error_code == "NOT_CONFIGURED"

    def test_unexpected_error_discards_partial_results(self, populated_backend):
        analyzer = Mock()
        analyzer.analyze.side_effect = RuntimeError("analyzer exploded")
        retriever = MultiStrategyRetriever(
            VectorSearchGateway(populated_backend), analyzer=analyzer
        )

        result = search(retriever, "login")

        assert result.success is False
        assert result.results == []
        assert result.search_strategy == "error"
        assert result.context_summary == "Search failed"
        assert result.error == "analyzer exploded"
        assert result.to_dict()["error_code"] == "SEARCH_ERROR"


class TestOptions:
    def test_partial_dict_is_merged_with_defaults(self, populated_backend):
        retriever = MultiStrategyRetriever(
            VectorSearchGateway(populated_backend),
            default_options=SearchOptions(max_results=4, search_depth=2),
        )

        options = retriever._resolve_options({"context_window": 100, "unknown": True})

        assert options == SearchOptions(
            max_results=4, search_depth=2, include_related=True, context_window=100
        )

    def test_none_and_instances_pass_through(self, retriever):
        explicit = SearchOptions(max_results=1)

        assert retriever._resolve_options(None) is retriever.default_options
        assert retriever._resolve_options(explicit) is explicit

    def test_max_results_limits_output(self, retriever):
        result = search(retriever, "how does the login function work", options={"max_results": 1})

        assert [r.id for r in result.results] == ["auth"]


def fixed_analyzer(intent_type, confidence, strategy, priority):
    analyzer = Mock()
    analyzer.analyze.return_value = QueryAnalysis(
        intent=QueryIntent(type=intent_type, confidence=confidence, entities=("login",)),
        expanded_queries=("e1", "e2", "e3", "e4", "e5"),
        search_strategy=strategy,
        priority=priority,
    )
    return analyzer


class TestProbeSizes:
    def test_high_priority_precise_query(self, fake_backend):
        retriever = MultiStrategyRetriever(
            VectorSearchGateway(fake_backend),
            analyzer=fixed_analyzer(
                IntentType.FUNCTION, 0.9, SearchStrategy.PRECISE, Priority.HIGH
            ),
        )

        result = search(
            retriever,
            "parseConfig",
            options={"max_results": 10, "search_depth": 3, "include_related": False},
        )

        assert result.search_strategy == "direct + smart-expansion + entity + symbol-fallback"
        assert fake_backend.searches == [
            ("parseConfig", 15),
            ("e1", 8),
            ("e2", 8),
            ("e3", 8),
            ("e4", 8),
            ("login function method class variable property", 5),
            ("parseConfig function method class variable property", 4),
        ]

    def test_low_priority_broad_query(self, fake_backend):
        retriever = MultiStrategyRetriever(
            VectorSearchGateway(fake_backend),
            analyzer=fixed_analyzer(
                IntentType.GENERAL, 0.5, SearchStrategy.BROAD, Priority.LOW
            ),
        )

        result = search(
            retriever,
            "parseConfig",
            options={"max_results": 7, "search_depth": 3, "include_related": False},
        )

        assert result.total_searches == 5
        assert fake_backend.searches == [
            ("parseConfig", 7),
            ("e1", 4),
            ("e2", 4),
            ("login function method class variable property", 3),
            ("parseConfig function method class variable property", 3),
        ]
