"""Symbol and reference extraction for PyCodeChat.

This module provides pluggable, per-language regex extractors for declared
symbols and imports, plus language-neutral helpers for call references and
code-like identifiers in free-text queries.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Pattern, Tuple

logger = logging.getLogger(__name__)

IDENTIFIER_PATTERN = re.compile(r"\b[a-zA-Z_][a-zA-Z0-9_-]*[a-zA-Z0-9]\b")

QUERY_STOPWORDS = frozenset(
    {
        "the", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with",
        "how", "what", "when", "where", "why", "which", "function", "class",
        "method", "variable", "property", "component", "file", "import", "export",
    }
)

REFERENCE_PATTERN = re.compile(r"(?<![\w$.])([A-Za-z_$][\w$]*)\s*\(")

CONTROL_KEYWORDS = frozenset(
    {
        "if", "else", "elif", "for", "while", "do", "switch", "case", "catch",
        "try", "except", "return", "function", "def", "class", "typeof",
        "sizeof", "with", "assert", "yield", "await", "async", "lambda", "not",
        "and", "or", "in", "new", "super", "print",
    }
)


def unique(items: Iterable[str]) -> List[str]:
    """Deduplicate while keeping first-seen order."""
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def _find_all(patterns: Iterable[Pattern], content: str) -> List[str]:
    """Collect first-group matches of all patterns ordered by text position."""
    hits: List[Tuple[int, str]] = []
    for pattern in patterns:
        for match in pattern.finditer(content):
            hits.append((match.start(1), match.group(1)))
    hits.sort(key=lambda hit: hit[0])
    return unique(value for _, value in hits)


class SymbolExtractor(ABC):
    """Abstract base class for per-language symbol extractors."""

    language: str = ""
    aliases: Tuple[str, ...] = ()
    extensions: Tuple[str, ...] = ()

    @abstractmethod
    def symbol_patterns(self) -> List[Pattern]:
        """Patterns whose first group is a declared symbol name."""
        pass

    @abstractmethod
    def import_patterns(self) -> List[Pattern]:
        """Patterns whose first group is an imported module path."""
        pass

    def extract_symbols(self, content: str) -> List[str]:
        return _find_all(self.symbol_patterns(), content)

    def extract_imports(self, content: str) -> List[str]:
        return _find_all(self.import_patterns(), content)


class JavaScriptExtractor(SymbolExtractor):
    """Extractor for JavaScript and TypeScript sources."""

    language = "javascript"
    aliases = ("typescript",)
    extensions = ("js", "jsx", "ts", "tsx", "mjs", "cjs")

    _symbols = [
        re.compile(r"function\s+([a-zA-Z_$][a-zA-Z0-9_$]*)"),
        re.compile(r"class\s+([a-zA-Z_$][a-zA-Z0-9_$]*)"),
        re.compile(r"const\s+([a-zA-Z_$][a-zA-Z0-9_$]*)\s*="),
        re.compile(r"let\s+([a-zA-Z_$][a-zA-Z0-9_$]*)\s*="),
        re.compile(r"var\s+([a-zA-Z_$][a-zA-Z0-9_$]*)\s*="),
        re.compile(r"([a-zA-Z_$][a-zA-Z0-9_$]*)\s*:\s*function"),
        re.compile(r"([a-zA-Z_$][a-zA-Z0-9_$]*)\s*=>"),
    ]
    _imports = [
        re.compile(r"\bimport\s+(?:[\w*{}\s,$]+?\s+from\s+)?['\"]([^'\"]+)['\"]"),
        re.compile(r"\brequire\(\s*['\"]([^'\"]+)['\"]\s*\)"),
    ]

    def symbol_patterns(self) -> List[Pattern]:
        return self._symbols

    def import_patterns(self) -> List[Pattern]:
        return self._imports


class PythonExtractor(SymbolExtractor):
    """Extractor for Python sources."""

    language = "python"
    extensions = ("py", "pyi")

    _symbols = [
        re.compile(r"def\s+([a-zA-Z_][a-zA-Z0-9_]*)"),
        re.compile(r"class\s+([a-zA-Z_][a-zA-Z0-9_]*)"),
    ]
    _imports = [
        re.compile(r"^\s*from\s+([\w.]+)\s+import\b", re.MULTILINE),
        re.compile(
            r"^\s*import\s+([\w.]+)\s*(?:as\s+\w+\s*)?(?:,[^\n]*)?$", re.MULTILINE
        ),
    ]

    def symbol_patterns(self) -> List[Pattern]:
        return self._symbols

    def import_patterns(self) -> List[Pattern]:
        return self._imports


class JavaExtractor(SymbolExtractor):
    """Extractor for Java sources."""

    language = "java"
    extensions = ("java",)

    _symbols = [
        re.compile(r"class\s+([a-zA-Z_][a-zA-Z0-9_]*)"),
        re.compile(r"interface\s+([a-zA-Z_][a-zA-Z0-9_]*)"),
        re.compile(r"public\s+\w+\s+([a-zA-Z_][a-zA-Z0-9_]*)\s*\("),
        re.compile(r"private\s+\w+\s+([a-zA-Z_][a-zA-Z0-9_]*)\s*\("),
        re.compile(r"protected\s+\w+\s+([a-zA-Z_][a-zA-Z0-9_]*)\s*\("),
    ]
    _imports = [
        re.compile(r"^\s*import\s+(?:static\s+)?([\w.]+(?:\.\*)?)\s*;", re.MULTILINE),
    ]

    def symbol_patterns(self) -> List[Pattern]:
        return self._symbols

    def import_patterns(self) -> List[Pattern]:
        return self._imports


_extractors: Dict[str, SymbolExtractor] = {}
_default_extractor: SymbolExtractor = JavaScriptExtractor()


def register_extractor(extractor: SymbolExtractor) -> None:
    """Register an extractor under its language name and file extensions."""
    if not isinstance(extractor, SymbolExtractor):
        raise ValueError("Extractor must inherit from SymbolExtractor")

    keys = [extractor.language, *extractor.aliases, *extractor.extensions]
    for key in keys:
        _extractors[key.lower()] = extractor
    logger.debug(f"Registered symbol extractor for: {keys}")


for _extractor in (_default_extractor, PythonExtractor(), JavaExtractor()):
    register_extractor(_extractor)


def get_extractor(language: Optional[str]) -> SymbolExtractor:
    """Get the extractor for a language name or extension.

    Unknown languages fall back to the JavaScript extractor.
    """
    if not language:
        return _default_extractor
    return _extractors.get(language.lower().lstrip("."), _default_extractor)


def extract_symbols(content: str, language: Optional[str]) -> List[str]:
    """Extract declared symbol names from source content."""
    return get_extractor(language).extract_symbols(content)


def extract_imports(content: str, language: Optional[str] = None) -> List[str]:
    """Extract imported module paths.

    Without a language, every registered extractor's import syntax is tried.
    """
    if language:
        return get_extractor(language).extract_imports(content)

    patterns: List[Pattern] = []
    for extractor in unique_extractors():
        patterns.extend(extractor.import_patterns())
    return _find_all(patterns, content)


def extract_references(content: str) -> List[str]:
    """Extract call-like references (``name(``), excluding control keywords."""
    return unique(
        match.group(1)
        for match in REFERENCE_PATTERN.finditer(content)
        if match.group(1) not in CONTROL_KEYWORDS
    )


def extract_code_identifiers(text: str) -> List[str]:
    """Extract identifier-like tokens from free text.

    Common English and code-vocabulary words and tokens of two characters
    or fewer are dropped.
    """
    return unique(
        token
        for token in IDENTIFIER_PATTERN.findall(text)
        if len(token) > 2 and token.lower() not in QUERY_STOPWORDS
    )


def unique_extractors() -> List[SymbolExtractor]:
    """Registered extractors, once each, in registration order."""
    result: List[SymbolExtractor] = []
    for extractor in _extractors.values():
        if not any(extractor is seen for seen in result):
            result.append(extractor)
    return result
