"""FastMCP server for PyCodeChat.

This module implements the MCP server exposing project registration,
background indexing, multi-strategy code search and retrieval-augmented
chat over indexed projects.
"""

import argparse
import asyncio
import logging
import signal
import sys
import time
from threading import Lock
from typing import Any, Dict, List, Optional

from fastmcp import FastMCP

from .config import SUPPORTED_CHAT_PROVIDERS, Config
from .indexer.jobs import IndexingAlreadyRunningError
from .manager import CodeChatManager

logger = logging.getLogger(__name__)

ASYNC_TOOL_TIMEOUT = 120.0
MAX_SEARCH_RESULTS = 50
MAX_SEARCH_DEPTH = 5

MCP_FUNCTIONS = [
    "create_project",
    "list_projects",
    "index_project",
    "indexing_progress",
    "search",
    "chat",
    "status",
]

# Thread-safe singleton manager
_manager_lock = Lock()
_manager_instance: Optional[CodeChatManager] = None


def validate_string_param(
    value: Any, param_name: str, allow_empty: bool = False
) -> str:
    """Validate string parameter for MCP functions.

    Raises:
        ValueError: If validation fails
    """
    if not isinstance(value, str):
        raise ValueError(f"{param_name} must be a string")

    if not allow_empty and not value.strip():
        raise ValueError(f"{param_name} cannot be empty")

    return value.strip() if not allow_empty else value


def validate_optional_string_param(value: Any, param_name: str) -> Optional[str]:
    if value is None:
        return None
    value = validate_string_param(value, param_name, allow_empty=True).strip()
    return value or None


def validate_int_param(
    value: Any, param_name: str, min_val: int = None, max_val: int = None
) -> int:
    """Validate integer parameter for MCP functions.

    Raises:
        ValueError: If validation fails
    """
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{param_name} must be an integer")

    if min_val is not None and value < min_val:
        raise ValueError(f"{param_name} must be at least {min_val}")

    if max_val is not None and value > max_val:
        raise ValueError(f"{param_name} must be at most {max_val}")

    return value


def validate_bool_param(value: Any, param_name: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{param_name} must be a boolean")
    return value


def validate_history_param(value: Any) -> List[Dict[str, str]]:
    """Validate chat history as a list of ``{"role", "content"}`` dicts."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError("history must be a list")

    history = []
    for entry in value:
        if not isinstance(entry, dict) or not isinstance(entry.get("content"), str):
            raise ValueError("history entries must be objects with role and content")
        if entry.get("role") not in ("user", "assistant"):
            raise ValueError("history roles must be 'user' or 'assistant'")
        history.append({"role": entry["role"], "content": entry["content"]})
    return history


def handle_mcp_errors(operation_name: str, func_impl, *args):
    """Common error handling for MCP functions.

    Returns:
        Result from function or structured error dict
    """
    try:
        return func_impl(*args)
    except ValueError as e:
        error_msg = str(e)
        logger.warning(f"{operation_name} validation error: {error_msg}")
        return {"success": False, "error": error_msg}
    except Exception as e:
        error_msg = f"{operation_name} failed: {str(e)}"
        logger.error(error_msg)
        return {"success": False, "error": error_msg}


async def handle_mcp_errors_async(operation_name: str, func_impl, *args):
    """Common error handling for async MCP functions, with a timeout.

    Returns:
        Result from function or structured error dict
    """
    start_time = time.time()

    try:
        logger.info(f"{operation_name} started")
        try:
            result = await asyncio.wait_for(func_impl(*args), timeout=ASYNC_TOOL_TIMEOUT)
        except asyncio.TimeoutError:
            elapsed = time.time() - start_time
            timeout_msg = (
                f"{operation_name} timed out after {elapsed:.2f}s "
                f"(exceeded {ASYNC_TOOL_TIMEOUT:.0f}s limit)"
            )
            logger.error(timeout_msg)
            return {
                "success": False,
                "error": timeout_msg,
                "operation": operation_name,
                "elapsed_seconds": elapsed,
            }

        elapsed = time.time() - start_time
        logger.info(f"{operation_name} completed in {elapsed:.2f}s")
        return result
    except ValueError as e:
        elapsed = time.time() - start_time
        error_msg = str(e)
        logger.warning(
            f"{operation_name} validation error after {elapsed:.2f}s: {error_msg}"
        )
        return {
            "success": False,
            "error": error_msg,
            "operation": operation_name,
            "elapsed_seconds": elapsed,
        }
    except Exception as e:
        elapsed = time.time() - start_time
        error_msg = f"{operation_name} failed: {str(e)}"
        logger.error(f"{operation_name} failed after {elapsed:.2f}s: {error_msg}")
        return {
            "success": False,
            "error": error_msg,
            "operation": operation_name,
            "elapsed_seconds": elapsed,
        }


def initialize_manager(
    config_overrides: Optional[Dict[str, Any]] = None,
) -> CodeChatManager:
    """Initialize the CodeChatManager with thread-safe singleton pattern.

    Args:
        config_overrides: Optional dictionary of configuration overrides from CLI args
    """
    global _manager_instance

    with _manager_lock:
        if _manager_instance is None:
            try:
                config = Config(config_overrides=config_overrides)
                _manager_instance = CodeChatManager(config)
                logger.info("CodeChatManager initialized successfully")
                if config_overrides:
                    logger.info(
                        f"Applied CLI configuration overrides: {list(config_overrides.keys())}"
                    )
            except Exception as e:
                logger.error(f"Failed to initialize CodeChatManager: {e}")
                _manager_instance = None
                raise

    return _manager_instance


def get_manager() -> Optional[CodeChatManager]:
    """Get the current manager instance without initialization."""
    with _manager_lock:
        return _manager_instance


def set_manager(manager: Optional[CodeChatManager]) -> None:
    """Install a manager instance, primarily for testing."""
    global _manager_instance
    with _manager_lock:
        _manager_instance = manager


def reset_manager() -> None:
    """Reset the manager singleton - primarily for testing."""
    global _manager_instance
    with _manager_lock:
        manager = _manager_instance
        _manager_instance = None
    if manager is not None:
        manager.__exit__(None, None, None)


# Create FastMCP application
mcp = FastMCP("PyCodeChat")


def _create_project_impl(
    name: str,
    path: str,
    description: Optional[str],
    language: Optional[str],
    framework: Optional[str],
) -> Dict[str, Any]:
    name = validate_string_param(name, "name")
    path = validate_string_param(path, "path")

    mgr = initialize_manager()
    project = mgr.create_project(
        name,
        path,
        description=validate_optional_string_param(description, "description"),
        language=validate_optional_string_param(language, "language"),
        framework=validate_optional_string_param(framework, "framework"),
    )
    return {"success": True, "project": project}


@mcp.tool
def create_project(
    name: str,
    path: str,
    description: Optional[str] = None,
    language: Optional[str] = None,
    framework: Optional[str] = None,
) -> Dict[str, Any]:
    """Register a code project rooted at a local directory.

    Args:
        name: Display name of the project
        path: Existing directory containing the project's source
        description: Optional description used in chat prompts
        language: Optional primary language
        framework: Optional framework name

    Returns:
        Dictionary with the created project record
    """
    return handle_mcp_errors(
        "Project creation",
        _create_project_impl,
        name,
        path,
        description,
        language,
        framework,
    )


def _list_projects_impl() -> Dict[str, Any]:
    projects = initialize_manager().list_projects()
    return {"success": True, "projects": projects, "count": len(projects)}


@mcp.tool
def list_projects() -> Dict[str, Any]:
    """List registered projects with their indexing state."""
    return handle_mcp_errors("Listing projects", _list_projects_impl)


async def _index_project_impl(project_id: str, incremental: bool) -> Dict[str, Any]:
    project_id = validate_string_param(project_id, "project_id")
    incremental = validate_bool_param(incremental, "incremental")

    mgr = initialize_manager()
    try:
        return mgr.start_indexing(project_id, incremental)
    except IndexingAlreadyRunningError as e:
        logger.info(f"Rejected indexing request for {project_id}: {e}")
        return {"success": False, "error": str(e)}


@mcp.tool
async def index_project(project_id: str, incremental: bool = False) -> Dict[str, Any]:
    """Start indexing a project in the background.

    Poll ``indexing_progress`` to follow the run.

    Args:
        project_id: Project to index
        incremental: Only index files not yet marked as indexed

    Returns:
        Dictionary confirming the start, or an error when the project is
        already being indexed
    """
    return await handle_mcp_errors_async(
        "Project indexing", _index_project_impl, project_id, incremental
    )


def _indexing_progress_impl(project_id: str) -> Dict[str, Any]:
    project_id = validate_string_param(project_id, "project_id")
    progress = initialize_manager().get_indexing_progress(project_id)
    return {"success": True, "project_id": project_id, "progress": progress}


@mcp.tool
def indexing_progress(project_id: str) -> Dict[str, Any]:
    """Get the indexing progress of a project.

    Live progress is kept for a short time after a run finishes; after that
    the stored project status is reported.
    """
    return handle_mcp_errors("Indexing progress", _indexing_progress_impl, project_id)


async def _search_impl(
    query: str,
    project_id: str,
    max_results: int,
    search_depth: int,
    include_related: bool,
    context_window: Optional[int],
) -> Dict[str, Any]:
    query = validate_string_param(query, "query")
    project_id = validate_string_param(project_id, "project_id")
    options: Dict[str, Any] = {
        "max_results": validate_int_param(
            max_results, "max_results", min_val=1, max_val=MAX_SEARCH_RESULTS
        ),
        "search_depth": validate_int_param(
            search_depth, "search_depth", min_val=1, max_val=MAX_SEARCH_DEPTH
        ),
        "include_related": validate_bool_param(include_related, "include_related"),
    }
    if context_window is not None:
        options["context_window"] = validate_int_param(
            context_window, "context_window", min_val=1
        )

    mgr = initialize_manager()
    mgr.store.require_project(project_id)
    results = await mgr.enhanced_search(query, project_id, options)
    logger.info(
        f"Search completed for '{query}': {len(results.results)} results "
        f"via {results.search_strategy}"
    )
    return results.to_dict()


@mcp.tool
async def search(
    query: str,
    project_id: str,
    max_results: int = 10,
    search_depth: int = 3,
    include_related: bool = True,
    context_window: Optional[int] = None,
) -> Dict[str, Any]:
    """Search a project's code with query analysis and multi-strategy retrieval.

    Args:
        query: Natural-language question or identifier
        project_id: Project to search
        max_results: Maximum results after re-ranking (1-50)
        search_depth: Number of expanded queries to run (1-5)
        include_related: Follow imports of the top results
        context_window: Token budget of the context summary

    Returns:
        Dictionary with ranked results, strategy label, search count,
        context summary and query analysis
    """
    return await handle_mcp_errors_async(
        "Search",
        _search_impl,
        query,
        project_id,
        max_results,
        search_depth,
        include_related,
        context_window,
    )


async def _chat_impl(
    project_id: str, message: str, history: Optional[List[Dict[str, str]]]
) -> Dict[str, Any]:
    project_id = validate_string_param(project_id, "project_id")
    message = validate_string_param(message, "message")
    history = validate_history_param(history)
    return await initialize_manager().chat(project_id, message, history)


@mcp.tool
async def chat(
    project_id: str,
    message: str,
    history: Optional[List[Dict[str, str]]] = None,
) -> Dict[str, Any]:
    """Ask a question about a project.

    Relevant code is retrieved and passed to the configured LLM provider;
    without a usable provider a built-in answer is returned.

    Args:
        project_id: Project to chat about
        message: The question
        history: Optional prior turns as ``{"role", "content"}`` objects

    Returns:
        Dictionary with the response, provider name and chat session id
    """
    return await handle_mcp_errors_async("Chat", _chat_impl, project_id, message, history)


@mcp.tool
def status() -> Dict[str, Any]:
    """Get system status: records, vector index, running jobs and providers."""
    try:
        current_manager = get_manager()
        if current_manager is not None:
            result = current_manager.get_status()
        else:
            try:
                result = initialize_manager().get_status()
            except Exception as init_error:
                return {
                    "status": "error",
                    "error": f"Failed to initialize system: {str(init_error)}",
                    "manager_initialized": False,
                }

        result["manager_initialized"] = get_manager() is not None
        result["mcp_server"] = {
            "name": "PyCodeChat",
            "mcp_functions": MCP_FUNCTIONS,
        }
        return result

    except Exception as e:
        error_msg = f"Failed to get system status: {str(e)}"
        logger.error(error_msg)
        return {
            "status": "error",
            "error": error_msg,
            "manager_initialized": get_manager() is not None,
        }


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments for the MCP server."""
    parser = argparse.ArgumentParser(
        prog="pycodechat",
        description="PyCodeChat MCP Server - Chat with and search your codebases",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Examples:
  # Start server with a custom data directory
  pycodechat --data-dir ./codechat_data

  # Prefer a chat provider (API key from ANTHROPIC_API_KEY)
  pycodechat --chat-provider anthropic

Configuration priority: CLI arguments > Environment variables > Defaults
        """,
    )

    parser.add_argument(
        "--data-dir",
        type=str,
        help="Directory for records and vector index files (overrides PYCODECHAT_DATA_DIR)",
    )
    parser.add_argument(
        "--index-name",
        type=str,
        help="Custom index name (overrides PYCODECHAT_INDEX_NAME, default: code_index)",
    )
    parser.add_argument(
        "--no-auto-persist",
        action="store_true",
        help="Disable automatic persistence (overrides PYCODECHAT_AUTO_PERSIST)",
    )
    parser.add_argument(
        "--no-auto-load",
        action="store_true",
        help="Disable loading saved data on startup (overrides PYCODECHAT_AUTO_LOAD)",
    )
    parser.add_argument(
        "--embedding-model",
        type=str,
        help="Embedding model name (overrides PYCODECHAT_EMBEDDING_MODEL)",
    )
    parser.add_argument(
        "--chat-provider",
        choices=SUPPORTED_CHAT_PROVIDERS,
        help="Preferred chat provider (overrides PYCODECHAT_CHAT_PROVIDER)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Minimize logging output (WARNING level only)",
    )

    return parser.parse_args(argv)


def args_to_config_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Convert CLI arguments to configuration overrides dictionary."""
    overrides = {}

    if args.data_dir:
        overrides["data_dir"] = args.data_dir
    if args.index_name:
        overrides["index_name"] = args.index_name
    if args.no_auto_persist:
        overrides["auto_persist"] = False
    if args.no_auto_load:
        overrides["auto_load"] = False
    if args.embedding_model:
        overrides["embedding_model"] = args.embedding_model
    if args.chat_provider:
        overrides["chat_provider"] = args.chat_provider

    return overrides


def setup_logging(args: argparse.Namespace) -> None:
    """Setup logging level based on CLI arguments."""
    if args.quiet:
        level = logging.WARNING
    elif args.verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        force=True,
    )


def cleanup_handler(signum, frame):
    """Handle graceful shutdown signals."""
    logger.info("Received shutdown signal, cleaning up...")

    current_manager = get_manager()
    if current_manager:
        try:
            current_manager.__exit__(None, None, None)
            logger.info("Manager cleanup completed successfully")
        except Exception as e:
            logger.error(f"Error during manager cleanup: {e}")
    else:
        logger.info("No manager instance found, skipping cleanup")

    sys.exit(0)


def main():
    """Main entry point for the MCP server."""
    try:
        args = parse_args()
        setup_logging(args)

        signal.signal(signal.SIGINT, cleanup_handler)
        signal.signal(signal.SIGTERM, cleanup_handler)

        logger.info("Starting PyCodeChat MCP Server...")
        logger.info(f"Server provides MCP functions: {', '.join(MCP_FUNCTIONS)}")

        config_overrides = args_to_config_overrides(args)
        if config_overrides:
            logger.info(
                f"Using CLI configuration overrides: {list(config_overrides.keys())}"
            )

        initialize_manager(config_overrides)

        logger.info("MCP server ready and listening for requests...")
        mcp.run()

    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
        cleanup_handler(signal.SIGINT, None)
    except Exception as e:
        logger.error(f"Server startup failed: {e}")
        raise


if __name__ == "__main__":
    main()
