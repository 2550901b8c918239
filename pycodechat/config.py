"""Configuration management for PyCodeChat.

This module handles all environment variable configuration and validation
for the server, including the vector backend, embedding provider, indexing
limits, retrieval defaults and chat provider credentials.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

SUPPORTED_VECTOR_BACKENDS = ["faiss", "none"]
SUPPORTED_EMBEDDING_PROVIDERS = ["sentence_transformers"]
SUPPORTED_CHAT_PROVIDERS = ["openai", "anthropic", "google", "openrouter"]

# Provider credentials keep their conventional, unprefixed variable names
PROVIDER_API_KEY_ENV = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "google": "GOOGLE_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
}


class Config:
    """Configuration manager for the PyCodeChat server.

    Loads and validates environment variables for all system components.
    Values passed through ``config_overrides`` (usually from CLI arguments)
    take priority over environment variables, which take priority over the
    built-in defaults.
    """

    def __init__(
        self,
        env_file: Optional[str] = None,
        config_overrides: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize configuration from environment variables with optional overrides.

        Args:
            env_file: Optional path to .env file to load
            config_overrides: Optional dictionary of configuration overrides from CLI arguments
        """
        self.config_overrides = config_overrides or {}
        if env_file:
            load_dotenv(env_file)
        else:
            env_path = Path(".env")
            if env_path.exists():
                load_dotenv(env_path)

        # Storage
        self.data_dir = self._get_path_config(
            "PYCODECHAT_DATA_DIR", "./codechat_data", override_key="data_dir"
        )
        self.index_name = self._get_config(
            "PYCODECHAT_INDEX_NAME", "code_index", override_key="index_name"
        )
        self.auto_persist = self._get_bool_config(
            "PYCODECHAT_AUTO_PERSIST", True, override_key="auto_persist"
        )
        self.auto_load = self._get_bool_config(
            "PYCODECHAT_AUTO_LOAD", True, override_key="auto_load"
        )

        # Vector backend and embeddings
        self.vector_backend = self._get_config(
            "PYCODECHAT_VECTOR_BACKEND", "faiss", override_key="vector_backend"
        )
        self.embedding_provider = self._get_config(
            "PYCODECHAT_EMBEDDING_PROVIDER",
            "sentence_transformers",
            override_key="embedding_provider",
        )
        self.embedding_model = self._get_config(
            "PYCODECHAT_EMBEDDING_MODEL",
            "all-MiniLM-L6-v2",
            override_key="embedding_model",
        )
        self.embedding_device = self._get_config("PYCODECHAT_EMBEDDING_DEVICE", "auto")
        self.embedding_batch_size = self._get_int_config(
            "PYCODECHAT_EMBEDDING_BATCH_SIZE", 32
        )
        # Asymmetric models (e5, bge) expect different prompts for code and queries
        self.embedding_query_prefix = self._get_config(
            "PYCODECHAT_EMBEDDING_QUERY_PREFIX", ""
        )
        self.embedding_document_prefix = self._get_config(
            "PYCODECHAT_EMBEDDING_DOCUMENT_PREFIX", ""
        )

        # Indexing
        self.chunk_size = self._get_int_config(
            "PYCODECHAT_CHUNK_SIZE", 1000, override_key="chunk_size"
        )
        self.max_stored_content_bytes = self._get_int_config(
            "PYCODECHAT_MAX_STORED_CONTENT_BYTES", 100000
        )
        self.progress_ttl_seconds = self._get_float_config(
            "PYCODECHAT_PROGRESS_TTL_SECONDS", 30.0
        )

        # Retrieval defaults
        self.max_results = self._get_int_config(
            "PYCODECHAT_MAX_RESULTS", 10, override_key="max_results"
        )
        self.search_depth = self._get_int_config(
            "PYCODECHAT_SEARCH_DEPTH", 3, override_key="search_depth"
        )
        self.include_related = self._get_bool_config(
            "PYCODECHAT_INCLUDE_RELATED", True, override_key="include_related"
        )
        self.context_window = self._get_int_config(
            "PYCODECHAT_CONTEXT_WINDOW", 4000, override_key="context_window"
        )

        # Chat
        self.chat_provider = self._get_config(
            "PYCODECHAT_CHAT_PROVIDER", None, override_key="chat_provider"
        )
        self.chat_model = self._get_config(
            "PYCODECHAT_CHAT_MODEL", None, override_key="chat_model"
        )
        self.chat_max_tokens = self._get_int_config("PYCODECHAT_CHAT_MAX_TOKENS", 4000)
        self.chat_temperature = self._get_float_config(
            "PYCODECHAT_CHAT_TEMPERATURE", 0.7
        )
        self.request_timeout = self._get_float_config(
            "PYCODECHAT_REQUEST_TIMEOUT", 60.0
        )
        self.api_keys = {
            name: self._get_config(env_key, None, override_key=f"{name}_api_key")
            for name, env_key in PROVIDER_API_KEY_ENV.items()
        }

        self._validate_config()

    def _get_config(
        self, env_key: str, default: Any, override_key: Optional[str] = None
    ) -> Any:
        """Get configuration value with CLI override priority.

        Priority: CLI override > Environment variable > Default
        """
        if override_key and override_key in self.config_overrides:
            return self.config_overrides[override_key]
        return os.getenv(env_key, default)

    def _get_bool_config(
        self, key: str, default: bool, override_key: Optional[str] = None
    ) -> bool:
        """Get boolean configuration value with CLI override priority."""
        if override_key and override_key in self.config_overrides:
            return bool(self.config_overrides[override_key])

        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() in ("true", "1", "yes", "on")

    def _get_int_config(
        self, key: str, default: int, override_key: Optional[str] = None
    ) -> int:
        """Get integer configuration value with CLI override priority."""
        if override_key and override_key in self.config_overrides:
            try:
                return int(self.config_overrides[override_key])
            except (ValueError, TypeError):
                return default

        value = os.getenv(key)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            return default

    def _get_float_config(
        self, key: str, default: float, override_key: Optional[str] = None
    ) -> float:
        """Get float configuration value with CLI override priority."""
        if override_key and override_key in self.config_overrides:
            try:
                return float(self.config_overrides[override_key])
            except (ValueError, TypeError):
                return default

        value = os.getenv(key)
        if value is None:
            return default
        try:
            return float(value)
        except ValueError:
            return default

    def _get_path_config(
        self, key: str, default: str, override_key: Optional[str] = None
    ) -> Path:
        """Get path configuration value with CLI override priority."""
        if override_key and override_key in self.config_overrides:
            value = str(self.config_overrides[override_key])
        else:
            value = os.getenv(key, default)
        return Path(value).resolve()

    def _validate_config(self) -> None:
        """Validate configuration values."""
        if self.vector_backend not in SUPPORTED_VECTOR_BACKENDS:
            raise ValueError(f"Unsupported vector backend: {self.vector_backend}")

        if self.embedding_provider not in SUPPORTED_EMBEDDING_PROVIDERS:
            raise ValueError(
                f"Unsupported embedding provider: {self.embedding_provider}"
            )
        if self.embedding_batch_size <= 0:
            raise ValueError("Embedding batch size must be positive")

        if self.chunk_size <= 0:
            raise ValueError("Chunk size must be positive")
        if self.max_stored_content_bytes < 0:
            raise ValueError("Max stored content bytes cannot be negative")
        if self.progress_ttl_seconds < 0:
            raise ValueError("Progress TTL cannot be negative")

        if self.max_results <= 0:
            raise ValueError("Max results must be positive")
        if self.search_depth < 1:
            raise ValueError("Search depth must be at least 1")
        if self.context_window <= 0:
            raise ValueError("Context window must be positive")

        if self.chat_provider and self.chat_provider not in SUPPORTED_CHAT_PROVIDERS:
            raise ValueError(f"Unsupported chat provider: {self.chat_provider}")
        if self.chat_max_tokens <= 0:
            raise ValueError("Chat max tokens must be positive")
        if not (0.0 <= self.chat_temperature <= 2.0):
            raise ValueError("Chat temperature must be between 0.0 and 2.0")
        if self.request_timeout <= 0:
            raise ValueError("Request timeout must be positive")

    def get_index_paths(self) -> Dict[str, Path]:
        """Get all persistence file paths."""
        base_path = self.data_dir / self.index_name
        return {
            "index": base_path.with_suffix(".faiss"),
            "vectors": base_path.with_name(f"{base_path.name}_vectors.pkl"),
            "records": base_path.with_name(f"{base_path.name}_records.pkl"),
        }

    def ensure_data_directory(self) -> None:
        """Ensure data directory exists."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def get_search_defaults(self) -> Dict[str, Any]:
        """Get default enhanced search options."""
        return {
            "max_results": self.max_results,
            "search_depth": self.search_depth,
            "include_related": self.include_related,
            "context_window": self.context_window,
        }

    def get_embedding_config(self) -> Dict[str, Any]:
        """Get embedding-specific configuration."""
        return {
            "provider": self.embedding_provider,
            "model": self.embedding_model,
            "device": self.embedding_device,
            "batch_size": self.embedding_batch_size,
            "query_prefix": self.embedding_query_prefix,
            "document_prefix": self.embedding_document_prefix,
        }

    def get_provider_config(self, provider: str) -> Dict[str, Any]:
        """Get chat provider configuration.

        The model override only applies to the preferred provider, since
        model names are not portable between vendors.
        """
        config = {
            "api_key": self.api_keys.get(provider),
            "max_tokens": self.chat_max_tokens,
            "temperature": self.chat_temperature,
            "timeout": self.request_timeout,
        }
        if self.chat_model and provider == self.chat_provider:
            config["model"] = self.chat_model
        return config

    def get_config_summary(self) -> Dict[str, Any]:
        """Get configuration summary for logging and status reporting."""
        return {
            "data_dir": str(self.data_dir),
            "index_name": self.index_name,
            "auto_persist": self.auto_persist,
            "auto_load": self.auto_load,
            "vector_backend": self.vector_backend,
            "embedding_provider": self.embedding_provider,
            "embedding_model": self.embedding_model,
            "chunk_size": self.chunk_size,
            "max_stored_content_bytes": self.max_stored_content_bytes,
            "progress_ttl_seconds": self.progress_ttl_seconds,
            "search_defaults": self.get_search_defaults(),
            "chat_provider": self.chat_provider,
            "configured_chat_providers": [
                name for name, key in self.api_keys.items() if key
            ],
        }
