"""File classification rules for indexing.

Maps file extensions to language tags and decides which files of a project
are worth indexing: source, configuration and documentation files are kept;
binaries, media, lock files, secrets and anything below dependency, build,
VCS or cache directories are skipped.
"""

import fnmatch
from pathlib import PurePosixPath
from typing import Iterable

LANGUAGE_BY_EXTENSION = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".py": "python",
    ".java": "java",
    ".cpp": "cpp",
    ".c": "c",
    ".cs": "csharp",
    ".php": "php",
    ".rb": "ruby",
    ".go": "go",
    ".rs": "rust",
    ".swift": "swift",
    ".kt": "kotlin",
    ".scala": "scala",
    ".sh": "bash",
    ".sql": "sql",
    ".html": "html",
    ".css": "css",
    ".scss": "scss",
    ".sass": "sass",
    ".less": "less",
    ".vue": "vue",
    ".svelte": "svelte",
    ".md": "markdown",
    ".json": "json",
    ".xml": "xml",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".toml": "toml",
    ".ini": "ini",
    ".cfg": "ini",
    ".conf": "ini",
}

# Directory names pruned by the crawler
SKIP_DIRS = [
    "node_modules", "vendor", "__pycache__", ".pytest_cache", ".git", ".svn",
    ".hg", ".next", ".nuxt", "dist", "build", "out", "target", "bin", "obj",
    ".vscode", ".idea", ".vs", "coverage", ".nyc_output", ".coverage",
    "htmlcov", "logs", ".cache", ".parcel-cache", ".webpack", ".rollup.cache",
]

SKIP_EXTENSIONS = frozenset(
    {
        ".png", ".jpg", ".jpeg", ".gif", ".svg", ".ico", ".webp", ".bmp",
        ".tiff", ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
        ".zip", ".tar", ".gz", ".rar", ".7z", ".bz2", ".xz", ".mp3", ".mp4",
        ".avi", ".mov", ".wmv", ".flv", ".mkv", ".wav", ".ogg", ".exe", ".dll",
        ".so", ".dylib", ".app", ".deb", ".rpm", ".msi", ".log", ".tmp",
        ".cache", ".lock", ".pid", ".swp", ".swo", ".bak", ".ttf", ".otf",
        ".woff", ".woff2", ".eot", ".db", ".sqlite", ".sqlite3",
    }
)

SKIP_FILENAMES = frozenset(
    {
        "package-lock.json", "yarn.lock", "pnpm-lock.yaml", "composer.lock",
        "Pipfile.lock", ".env", ".env.local", ".env.development",
        ".env.production", ".env.staging", ".DS_Store", "Thumbs.db",
        "desktop.ini", ".gitignore", ".gitattributes", ".editorconfig",
        ".sublime-project", ".sublime-workspace",
    }
)

SKIP_FILE_PATTERNS = ["*.log", "*.sublime-project", "*.sublime-workspace"]

CODE_EXTENSIONS = frozenset(
    {
        ".js", ".jsx", ".ts", ".tsx", ".vue", ".svelte", ".astro", ".html",
        ".htm", ".css", ".scss", ".sass", ".less", ".stylus", ".py", ".java",
        ".cpp", ".c", ".cs", ".php", ".rb", ".go", ".rs", ".swift", ".kt",
        ".scala", ".clj", ".cljs", ".hs", ".elm", ".dart", ".lua", ".perl",
        ".r", ".matlab", ".julia", ".f90", ".f95", ".sh", ".bash", ".zsh",
        ".fish", ".ps1", ".bat", ".cmd", ".json", ".xml", ".yaml", ".yml",
        ".toml", ".ini", ".cfg", ".conf", ".properties", ".sql", ".graphql",
        ".gql", ".md", ".mdx", ".txt", ".rst", ".adoc", ".dockerfile",
    }
)

# Extension-less or compound names that are still worth indexing
DOC_NAME_MARKERS = ("readme", "license", "changelog", "makefile")
SPECIAL_FILENAMES = frozenset(
    {
        "Dockerfile", "docker-compose.yml", "docker-compose.yaml",
        ".env.example", ".env.template",
    }
)


def get_file_extension(file_path: str) -> str:
    return PurePosixPath(file_path).suffix.lower()


def get_language(file_path: str) -> str:
    """Language tag for a file, ``text`` when unknown."""
    return LANGUAGE_BY_EXTENSION.get(get_file_extension(file_path), "text")


def is_skipped_dir(name: str, skip_dirs: Iterable[str] = SKIP_DIRS) -> bool:
    return any(fnmatch.fnmatch(name, pattern) for pattern in skip_dirs)


def should_index_file(rel_path: str) -> bool:
    """Decide whether a project-relative POSIX path should be indexed."""
    path = PurePosixPath(rel_path)
    name = path.name
    extension = path.suffix.lower()

    if any(is_skipped_dir(part) for part in path.parts[:-1]):
        return False
    if extension in SKIP_EXTENSIONS or name in SKIP_FILENAMES:
        return False
    if any(fnmatch.fnmatch(name, pattern) for pattern in SKIP_FILE_PATTERNS):
        return False

    if extension in CODE_EXTENSIONS or name in SPECIAL_FILENAMES:
        return True
    lower_name = name.lower()
    return any(marker in lower_name for marker in DOC_NAME_MARKERS)
