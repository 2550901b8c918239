"""Unit tests for the FileCrawler and indexing file filters."""

import pytest

from pycodechat.indexer.crawler import FileCrawler
from pycodechat.indexer.filters import (
    get_file_extension,
    get_language,
    is_skipped_dir,
    should_index_file,
)


class TestFileFilters:
    """Test file classification rules."""

    @pytest.mark.parametrize(
        "path",
        [
            "src/app.ts",
            "lib/models.py",
            "README",
            "docs/CHANGELOG",
            "Dockerfile",
            ".env.example",
            "config/settings.yaml",
            "scripts/combine.py",
            "tools/binary_search.go",
        ],
    )
    def test_indexable_files(self, path):
        assert should_index_file(path)

    @pytest.mark.parametrize(
        "path",
        [
            "node_modules/react/index.js",
            "app/.git/HEAD",
            "build/output.js",
            "src/__pycache__/mod.py",
            "assets/logo.png",
            "package-lock.json",
            ".env",
            "server.log",
            "archive.tar",
            "Makefile.bak",
        ],
    )
    def test_skipped_files(self, path):
        assert not should_index_file(path)

    def test_directory_match_is_exact(self):
        assert is_skipped_dir("bin")
        assert not is_skipped_dir("combine")
        assert not is_skipped_dir("binaries")

    def test_language_mapping(self):
        assert get_language("a/b/c.TSX") == "typescript"
        assert get_language("main.py") == "python"
        assert get_language("notes.txt") == "text"
        assert get_language("Dockerfile") == "text"
        assert get_file_extension("archive.tar.gz") == ".gz"


class TestFileCrawler:
    """Test FileCrawler functionality."""

    def test_crawl_sample_project(self, sample_project):
        files = FileCrawler().crawl(str(sample_project))

        assert files == ["README.md", "app/models.py", "src/auth.js", "src/crypto.js"]

    def test_results_are_sorted_posix_paths(self, tmp_path):
        (tmp_path / "b").mkdir()
        (tmp_path / "b" / "z.py").write_text("x = 1")
        (tmp_path / "a.py").write_text("y = 2")

        assert FileCrawler().crawl(str(tmp_path)) == ["a.py", "b/z.py"]

    def test_custom_exclude_dirs(self, sample_project):
        files = FileCrawler(exclude_dirs=["src", "node_modules", ".git"]).crawl(
            str(sample_project)
        )

        assert files == ["README.md", "app/models.py"]

    def test_custom_file_filter(self, sample_project):
        files = FileCrawler(file_filter=lambda path: path.endswith(".py")).crawl(
            str(sample_project)
        )

        assert files == ["app/models.py"]

    def test_nonexistent_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            FileCrawler().crawl(str(tmp_path / "missing"))

    def test_file_path_is_rejected(self, tmp_path):
        file_path = tmp_path / "single.py"
        file_path.write_text("print('hi')")

        with pytest.raises(NotADirectoryError):
            FileCrawler().crawl(str(file_path))
