"""Query intent analysis for PyCodeChat.

Classifies a free-text question about a codebase into an intent, extracts
entities and keywords, and derives expansion queries plus retrieval hints.
Analysis is a pure function of the query text.
"""

import logging
import re
from typing import List, Optional, Sequence, Tuple

from ..types import IntentType, Priority, SearchStrategy
from .models import QueryAnalysis, QueryIntent
from .symbols import extract_code_identifiers, unique

logger = logging.getLogger(__name__)

MAX_EXPANDED_QUERIES = 5

FILE_REFERENCE_PATTERN = re.compile(
    r"\b[\w-]+\.(?:js|ts|jsx|tsx|py|java|cpp|c|cs|php|rb|go|rs)\b"
)
CONCEPT_PATTERN = re.compile(
    r"\b(?:singleton|factory|observer|mvc|mvvm|rest|api|database|auth|cache|queue)\b",
    re.IGNORECASE,
)

# (intent, trigger pattern, confidence, keywords, context), in priority order
INTENT_RULES = [
    (
        IntentType.FUNCTION,
        re.compile(r"\b(?:function|method|procedure|def|func)\b"),
        0.9,
        ("function", "method", "implementation"),
        "Looking for function definitions or implementations",
    ),
    (
        IntentType.CLASS,
        re.compile(r"\b(?:class|component|object|interface|type)\b"),
        0.9,
        ("class", "component", "structure"),
        "Looking for class or component definitions",
    ),
    (
        IntentType.VARIABLE,
        re.compile(r"\b(?:variable|property|field|attribute|const|let|var)\b"),
        0.8,
        ("variable", "property", "declaration"),
        "Looking for variable or property definitions",
    ),
    (
        IntentType.FILE,
        re.compile(r"\b(?:file|import|export|module|package)\b"),
        0.8,
        ("file", "module", "import"),
        "Looking for file or module information",
    ),
    (
        IntentType.DEBUG,
        re.compile(r"\b(?:error|bug|issue|problem|fix|debug|broken|fail)\b"),
        0.8,
        ("error", "debug", "issue", "fix"),
        "Looking for debugging or error-related code",
    ),
    (
        IntentType.EXPLAIN,
        re.compile(r"\b(?:how|what|why|explain|understand|work|does)\b"),
        0.7,
        ("explanation", "understanding", "logic"),
        "Looking for explanations or understanding",
    ),
    (
        IntentType.CONCEPT,
        re.compile(r"\b(?:algorithm|pattern|design|architecture|structure|flow)\b"),
        0.7,
        ("concept", "pattern", "architecture"),
        "Looking for conceptual or architectural information",
    ),
]

GENERAL_CONFIDENCE = 0.5
GENERAL_CONTEXT = "General code search"


def extract_file_references(text: str) -> List[str]:
    return unique(match.group(0) for match in FILE_REFERENCE_PATTERN.finditer(text))


def extract_concept_terms(text: str) -> List[str]:
    return unique(match.group(0) for match in CONCEPT_PATTERN.finditer(text))


def _extract_entities(intent_type: IntentType, lower_query: str) -> List[str]:
    if intent_type is IntentType.FILE:
        return extract_file_references(lower_query)
    if intent_type is IntentType.CONCEPT:
        return extract_concept_terms(lower_query)
    return extract_code_identifiers(lower_query)


def detect_intent(query: str, words: Optional[Sequence[str]] = None) -> QueryIntent:
    """Classify the query against the intent rules, first match wins."""
    lower_query = query.lower()
    if words is None:
        words = query.split()
    search_terms = tuple(unique(w for w in words if len(w) > 2))

    for intent_type, pattern, confidence, keywords, context in INTENT_RULES:
        if pattern.search(lower_query):
            return QueryIntent(
                type=intent_type,
                confidence=confidence,
                entities=tuple(_extract_entities(intent_type, lower_query)),
                keywords=keywords,
                search_terms=search_terms,
                context=context,
            )

    return QueryIntent(
        type=IntentType.GENERAL,
        confidence=GENERAL_CONFIDENCE,
        entities=tuple(extract_code_identifiers(lower_query)),
        keywords=tuple(unique(w for w in words if len(w) > 3)),
        search_terms=search_terms,
        context=GENERAL_CONTEXT,
    )


def generate_expanded_queries(query: str, intent: QueryIntent) -> Tuple[str, ...]:
    """Derive up to five alternative phrasings for the query."""
    if intent.type is IntentType.FUNCTION:
        queries = [f"{query} implementation", f"{query} definition", f"{query} usage example"]
        for entity in intent.entities:
            queries.extend([f"function {entity}", f"method {entity}"])
    elif intent.type is IntentType.CLASS:
        queries = [f"{query} definition", f"{query} constructor", f"{query} methods"]
        for entity in intent.entities:
            queries.extend([f"class {entity}", f"component {entity}"])
    elif intent.type is IntentType.DEBUG:
        queries = [
            f"{query} solution",
            f"{query} fix",
            f"error handling {query}",
            f"try catch {query}",
        ]
    elif intent.type is IntentType.EXPLAIN:
        queries = [f"{query} logic", f"{query} algorithm", f"{query} flow", f"{query} process"]
    else:
        queries = [f"{query} example", f"{query} usage", f"{query} implementation"]

    return tuple(queries[:MAX_EXPANDED_QUERIES])


def determine_search_strategy(intent: QueryIntent, query_length: int) -> SearchStrategy:
    if intent.confidence > 0.8 and intent.entities:
        return SearchStrategy.PRECISE
    if intent.type in (IntentType.EXPLAIN, IntentType.CONCEPT):
        return SearchStrategy.BROAD
    if query_length < 20 or intent.confidence < 0.6:
        return SearchStrategy.EXPLORATORY
    return SearchStrategy.BROAD


def determine_priority(intent: QueryIntent, word_count: int) -> Priority:
    if intent.confidence > 0.8 and intent.entities:
        return Priority.HIGH
    if intent.type is IntentType.DEBUG or word_count > 5:
        return Priority.HIGH
    if intent.confidence > 0.6:
        return Priority.MEDIUM
    return Priority.LOW


def analyze_query(query: str) -> QueryAnalysis:
    """Analyze a free-text query.

    Args:
        query: Raw user question; empty or whitespace-only text is
            classified as a general query

    Returns:
        QueryAnalysis with intent, expansions, strategy and priority
    """
    query = query or ""
    words = query.split()
    intent = detect_intent(query, words)

    analysis = QueryAnalysis(
        intent=intent,
        expanded_queries=generate_expanded_queries(query, intent),
        search_strategy=determine_search_strategy(intent, len(query)),
        priority=determine_priority(intent, len(words)),
    )
    logger.debug(
        "Analyzed query %r: intent=%s confidence=%.2f strategy=%s priority=%s",
        query,
        intent.type.value,
        intent.confidence,
        analysis.search_strategy.value,
        analysis.priority.value,
    )
    return analysis


class QueryAnalyzer:
    """Object wrapper around :func:`analyze_query` for dependency injection."""

    def analyze(self, query: str) -> QueryAnalysis:
        return analyze_query(query)
