"""Project directory crawler for PyCodeChat indexing.

Walks a project tree, prunes dependency/build/VCS/cache directories and
keeps the files accepted by the indexing filters.
"""

import fnmatch
import logging
import os
from pathlib import Path
from typing import Callable, List, Optional

from .filters import SKIP_DIRS, should_index_file

logger = logging.getLogger(__name__)


class FileCrawler:
    """Crawls a project tree and returns indexable files.

    Examples:
        >>> crawler = FileCrawler()
        >>> files = crawler.crawl("/path/to/project")
        >>> # Sorted project-relative POSIX paths, node_modules/.git/... pruned
    """

    def __init__(
        self,
        exclude_dirs: Optional[List[str]] = None,
        file_filter: Optional[Callable[[str], bool]] = None,
    ):
        """Initialize crawler.

        Args:
            exclude_dirs: Directory name patterns to skip entirely
                (defaults to the well-known non-source directories)
            file_filter: Predicate on the relative POSIX path
                (defaults to ``should_index_file``)
        """
        self.exclude_dirs = SKIP_DIRS if exclude_dirs is None else exclude_dirs
        self.file_filter = file_filter or should_index_file

    def crawl(self, base_path: str) -> List[str]:
        """Crawl directory tree and return matching relative file paths.

        Raises:
            FileNotFoundError: If base_path does not exist
            NotADirectoryError: If base_path is not a directory
        """
        base = Path(base_path).resolve()

        if not base.exists():
            raise FileNotFoundError(f"Base path does not exist: {base_path}")
        if not base.is_dir():
            raise NotADirectoryError(f"Base path is not a directory: {base_path}")

        logger.info(f"Starting crawl of: {base}")

        matched_files = []
        total_files = 0
        skipped_dirs = 0

        for root, dirs, files in os.walk(base, followlinks=False):
            original_dir_count = len(dirs)
            dirs[:] = [d for d in dirs if not self._should_exclude_dir(d)]
            skipped_dirs += original_dir_count - len(dirs)

            for filename in files:
                total_files += 1
                rel_path = (Path(root) / filename).relative_to(base).as_posix()
                if self.file_filter(rel_path):
                    matched_files.append(rel_path)

        matched_files.sort()

        logger.info(
            f"Crawl complete: {len(matched_files)} files matched, "
            f"{skipped_dirs} dirs skipped, {total_files} total files examined"
        )
        return matched_files

    def _should_exclude_dir(self, dirname: str) -> bool:
        return any(fnmatch.fnmatch(dirname, pattern) for pattern in self.exclude_dirs)


__all__ = ["FileCrawler"]
