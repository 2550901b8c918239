"""Test configuration and fixtures for PyCodeChat.

Heavy dependencies are mocked or replaced with small deterministic fakes so
the suite runs without downloading embedding models or calling LLM APIs.
"""

import os
import re
import tempfile
import zlib
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import Mock, patch

import numpy as np
import pytest

from pycodechat.embedders.base import BaseEmbedder
from pycodechat.storage.vector import VectorBackend, matches_filter, parse_filter

TOKEN_PATTERN = re.compile(r"\w+")


@pytest.fixture(autouse=True)
def mock_sentence_transformers(request):
    """Mock sentence-transformers to avoid model loading.

    Tests can use the marker @pytest.mark.no_mock_st to disable this mock.
    """
    if hasattr(request, "node") and request.node.get_closest_marker("no_mock_st"):
        yield None
        return

    with patch("sentence_transformers.SentenceTransformer") as mock_st:
        mock_model = Mock()

        def mock_encode(texts, *args, **kwargs):
            if isinstance(texts, str):
                texts = [texts]
            embeddings = np.random.randn(len(texts), 384).astype(np.float32)
            norms = np.linalg.norm(embeddings, axis=1, keepdims=True)
            return embeddings / norms

        mock_model.encode = mock_encode
        mock_model.get_sentence_embedding_dimension.return_value = 384
        mock_model.max_seq_length = 512
        mock_st.return_value = mock_model

        yield mock_model


class HashingEmbedder(BaseEmbedder):
    """Deterministic bag-of-words embedder for FAISS tests."""

    provider_name = "hashing"

    def __init__(self, model_name: str = "hashing-64", dimension: int = 64, **kwargs):
        super().__init__(model_name, **kwargs)
        self.dimension = dimension
        self.encode_calls: List[int] = []

    def _encode(self, texts: List[str]) -> np.ndarray:
        self.encode_calls.append(len(texts))
        vectors = np.zeros((len(texts), self.dimension), dtype=np.float32)
        for row, text in enumerate(texts):
            for token in TOKEN_PATTERN.findall(text.lower()):
                vectors[row, zlib.crc32(token.encode()) % self.dimension] += 1.0
        return vectors

    def get_dimension(self) -> int:
        return self.dimension

    def get_model_info(self) -> Dict[str, Any]:
        return {"provider": self.provider_name, "model": self.model_name}

    def cleanup(self) -> None:
        pass


class FakeVectorBackend(VectorBackend):
    """In-memory backend scoring by the share of query words in the content."""

    def __init__(self) -> None:
        self.records: Dict[str, Dict[str, Any]] = {}
        self.upserts: List[str] = []
        self.queries: List[str] = []
        self.searches: List[Tuple[str, int]] = []
        self.batches: List[List[str]] = []
        self.deletes: List[str] = []
        self.fail_on: Optional[str] = None
        self.fail_batches_for: Optional[str] = None

    def upsert(self, id: str, content: str, metadata: Dict[str, Any]) -> None:
        self.upserts.append(id)
        self.records[id] = {"id": id, "content": content, "metadata": dict(metadata)}

    def upsert_many(self, items):
        ids = [id for id, _, _ in items]
        if self.fail_batches_for is not None and any(
            metadata.get("filePath") == self.fail_batches_for for _, _, metadata in items
        ):
            raise RuntimeError(f"backend rejected batch {ids}")
        self.batches.append(ids)
        return super().upsert_many(items)

    def query(self, data, top_k, filter=None, include_metadata=True):
        self.queries.append(data)
        self.searches.append((data, top_k))
        if self.fail_on is not None and self.fail_on in data:
            raise RuntimeError(f"backend failure for {data}")

        conditions = parse_filter(filter)
        words = set(TOKEN_PATTERN.findall(data.lower()))
        hits = []
        for record in self.records.values():
            if not matches_filter(record["metadata"], conditions):
                continue
            tokens = set(TOKEN_PATTERN.findall(record["content"].lower()))
            overlap = len(words & tokens)
            if overlap:
                hits.append({**record, "score": overlap / len(words)})
        hits.sort(key=lambda hit: hit["score"], reverse=True)
        return hits[:top_k]

    def delete(self, ids: List[str]) -> int:
        self.deletes.extend(ids)
        removed = [self.records.pop(id) for id in ids if id in self.records]
        return len(removed)

    def info(self) -> Dict[str, Any]:
        return {"vectorCount": len(self.records)}


@pytest.fixture
def temp_index_dir():
    """Provide a temporary directory for index storage in tests."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def fake_backend():
    return FakeVectorBackend()


@pytest.fixture
def hashing_embedder():
    return HashingEmbedder()


@pytest.fixture
def sample_code_content():
    """Provide sample code content for testing."""
    return '''"""Sample Python module for testing."""

import os
from typing import List


def sample_function(param1, param2):
    """A sample function for testing code chunking."""
    result = param1 + param2
    return result


class SampleClass:
    """A sample class for testing."""

    def __init__(self, value):
        self.value = value

    def method(self):
        return self.value * 2
'''


@pytest.fixture
def sample_project(tmp_path):
    """A small project tree with source, docs and skipped directories."""
    files = {
        "src/auth.js": (
            "import { hash } from './crypto'\n"
            "function login(user, password) {\n"
            "  return hash(password) === user.passwordHash\n"
            "}\n"
        ),
        "src/crypto.js": "export function hash(value) {\n  return value.split('').reverse().join('')\n}\n",
        "app/models.py": "class User:\n    def __init__(self, name):\n        self.name = name\n",
        "README.md": "# Sample\n\nA sample project.\n",
        "node_modules/lib/index.js": "module.exports = {}\n",
        ".git/config": "[core]\n",
        "logo.png": "not really an image",
        "package-lock.json": "{}",
    }
    for rel_path, content in files.items():
        path = tmp_path / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return tmp_path


@pytest.fixture
def mock_config(temp_index_dir):
    """Provide a config rooted in a temporary directory."""
    from pycodechat.config import Config

    config_overrides = {
        "data_dir": str(temp_index_dir),
        "auto_persist": False,
        "auto_load": False,
        "index_name": "test_index",
    }
    with patch.dict(os.environ, {}, clear=True):
        with patch("pycodechat.config.load_dotenv"):
            return Config(config_overrides=config_overrides)


# Configure pytest markers
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (skipped only with --fast flag)"
    )
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line(
        "markers", "no_mock_st: disables the sentence-transformers mock"
    )


def pytest_addoption(parser):
    """Add command line options."""
    parser.addoption(
        "--fast",
        action="store_true",
        default=False,
        help="skip slow tests for faster execution",
    )


def pytest_collection_modifyitems(config, items):
    """Skip slow tests only when --fast is given."""
    if not config.getoption("--fast"):
        return

    skip_slow = pytest.mark.skip(
        reason="slow test skipped (use without --fast to include)"
    )
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)
