"""Tests for the configuration system."""

import os
import unittest
from pathlib import Path
from unittest.mock import patch

from pycodechat.config import Config


def make_config(env=None, overrides=None):
    with patch.dict(os.environ, env or {}, clear=True):
        with patch("pycodechat.config.load_dotenv"):
            return Config(config_overrides=overrides)


class TestConfig(unittest.TestCase):
    """Test the configuration management system."""

    def test_default_configuration(self):
        """Test default configuration values."""
        config = make_config()

        self.assertEqual(config.vector_backend, "faiss")
        self.assertEqual(config.embedding_provider, "sentence_transformers")
        self.assertEqual(config.embedding_model, "all-MiniLM-L6-v2")
        self.assertEqual(config.chunk_size, 1000)
        self.assertEqual(config.max_stored_content_bytes, 100000)
        self.assertEqual(config.progress_ttl_seconds, 30.0)
        self.assertTrue(config.auto_persist)
        self.assertTrue(config.auto_load)
        self.assertIsNone(config.chat_provider)
        self.assertEqual(
            config.get_search_defaults(),
            {
                "max_results": 10,
                "search_depth": 3,
                "include_related": True,
                "context_window": 4000,
            },
        )
        self.assertTrue(all(key is None for key in config.api_keys.values()))

    def test_environment_variable_loading(self):
        """Test loading configuration from environment variables."""
        config = make_config(
            {
                "PYCODECHAT_CHUNK_SIZE": "500",
                "PYCODECHAT_AUTO_PERSIST": "false",
                "PYCODECHAT_MAX_RESULTS": "20",
                "PYCODECHAT_INCLUDE_RELATED": "no",
                "PYCODECHAT_CHAT_PROVIDER": "anthropic",
                "ANTHROPIC_API_KEY": "sk-ant-test",
            }
        )

        self.assertEqual(config.chunk_size, 500)
        self.assertFalse(config.auto_persist)
        self.assertEqual(config.max_results, 20)
        self.assertFalse(config.include_related)
        self.assertEqual(config.chat_provider, "anthropic")
        self.assertEqual(config.api_keys["anthropic"], "sk-ant-test")

    def test_overrides_take_priority(self):
        """CLI overrides win over environment variables."""
        config = make_config(
            {"PYCODECHAT_INDEX_NAME": "from_env", "PYCODECHAT_AUTO_LOAD": "true"},
            {"index_name": "from_cli", "auto_load": False, "openai_api_key": "sk-cli"},
        )

        self.assertEqual(config.index_name, "from_cli")
        self.assertFalse(config.auto_load)
        self.assertEqual(config.api_keys["openai"], "sk-cli")

    def test_invalid_numbers_fall_back_to_defaults(self):
        config = make_config({"PYCODECHAT_CHUNK_SIZE": "large"}, {"max_results": "many"})

        self.assertEqual(config.chunk_size, 1000)
        self.assertEqual(config.max_results, 10)

    def test_validation(self):
        """Test configuration validation."""
        invalid = [
            {"PYCODECHAT_VECTOR_BACKEND": "pinecone"},
            {"PYCODECHAT_EMBEDDING_PROVIDER": "openai"},
            {"PYCODECHAT_CHUNK_SIZE": "0"},
            {"PYCODECHAT_SEARCH_DEPTH": "0"},
            {"PYCODECHAT_CONTEXT_WINDOW": "-1"},
            {"PYCODECHAT_CHAT_PROVIDER": "cohere"},
            {"PYCODECHAT_CHAT_TEMPERATURE": "3.5"},
            {"PYCODECHAT_REQUEST_TIMEOUT": "0"},
            {"PYCODECHAT_EMBEDDING_BATCH_SIZE": "0"},
        ]
        for env in invalid:
            with self.subTest(env=env):
                with self.assertRaises(ValueError):
                    make_config(env)

    def test_embedding_config(self):
        """Test embedding settings passed to the embedder factory."""
        config = make_config(
            {
                "PYCODECHAT_EMBEDDING_MODEL": "intfloat/e5-small-v2",
                "PYCODECHAT_EMBEDDING_DEVICE": "cpu",
                "PYCODECHAT_EMBEDDING_BATCH_SIZE": "16",
                "PYCODECHAT_EMBEDDING_QUERY_PREFIX": "query: ",
                "PYCODECHAT_EMBEDDING_DOCUMENT_PREFIX": "passage: ",
            }
        )

        self.assertEqual(
            config.get_embedding_config(),
            {
                "provider": "sentence_transformers",
                "model": "intfloat/e5-small-v2",
                "device": "cpu",
                "batch_size": 16,
                "query_prefix": "query: ",
                "document_prefix": "passage: ",
            },
        )

    def test_index_paths(self):
        config = make_config(overrides={"data_dir": "/tmp/codechat", "index_name": "idx"})

        paths = config.get_index_paths()

        self.assertEqual(config.data_dir, Path("/tmp/codechat").resolve())
        self.assertEqual(paths["index"].name, "idx.faiss")
        self.assertEqual(paths["vectors"].name, "idx_vectors.pkl")
        self.assertEqual(paths["records"].name, "idx_records.pkl")

    def test_provider_config(self):
        config = make_config(
            {
                "OPENAI_API_KEY": "sk-openai",
                "PYCODECHAT_CHAT_PROVIDER": "openai",
                "PYCODECHAT_CHAT_MODEL": "gpt-4o",
                "PYCODECHAT_REQUEST_TIMEOUT": "15",
            }
        )

        openai = config.get_provider_config("openai")
        google = config.get_provider_config("google")

        self.assertEqual(openai["api_key"], "sk-openai")
        self.assertEqual(openai["model"], "gpt-4o")
        self.assertEqual(openai["timeout"], 15.0)
        self.assertIsNone(google["api_key"])
        self.assertNotIn("model", google)

    def test_config_summary_hides_keys(self):
        config = make_config({"GOOGLE_API_KEY": "secret"})

        summary = config.get_config_summary()

        self.assertEqual(summary["configured_chat_providers"], ["google"])
        self.assertNotIn("secret", str(summary))

    def test_env_file_is_loaded(self):
        with patch.dict(os.environ, {}, clear=True):
            with patch("pycodechat.config.load_dotenv") as mock_load:
                Config(env_file="custom.env")

        mock_load.assert_called_once_with("custom.env")


if __name__ == "__main__":
    unittest.main()
