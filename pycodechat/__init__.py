"""PyCodeChat - an MCP server for chatting with and searching codebases."""

import os
import warnings
from importlib import metadata as _metadata

# Suppress SWIG-related deprecation warnings from FAISS bindings.
# Set PYCODECHAT_SHOW_SWIG_WARNINGS=1 to see them.
if not os.getenv("PYCODECHAT_SHOW_SWIG_WARNINGS"):
    warnings.filterwarnings(
        "ignore",
        message="builtin type .* has no __module__ attribute",
        category=DeprecationWarning,
    )
    warnings.filterwarnings(
        "ignore",
        message=".*SwigPy.*",
        category=DeprecationWarning,
    )
    warnings.filterwarnings(
        "ignore",
        message=".*swigvarlink.*",
        category=DeprecationWarning,
    )

from .config import Config
from .manager import CodeChatManager
from .search import EnhancedSearchResults, MultiStrategyRetriever, SearchOptions

try:  # pragma: no cover - exercised when installed as a package
    __version__ = _metadata.version("pycodechat")
except _metadata.PackageNotFoundError:  # pragma: no cover - local editable installs
    __version__ = "0.1.0"

__all__ = [
    "CodeChatManager",
    "Config",
    "EnhancedSearchResults",
    "MultiStrategyRetriever",
    "SearchOptions",
    "__version__",
]
