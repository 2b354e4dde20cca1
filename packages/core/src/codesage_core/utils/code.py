from __future__ import annotations

import fnmatch
from pathlib import PurePosixPath

from codesage_core.models import FileFilter

NON_CODE_EXTENSIONS = {
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".svg",
    ".ico",
    ".webp",
    ".bmp",
    ".pdf",
    ".woff",
    ".woff2",
    ".ttf",
    ".eot",
    ".otf",
    ".mp4",
    ".mp3",
    ".wav",
    ".ogg",
    ".zip",
    ".tar",
    ".gz",
    ".rar",
    ".7z",
    ".lock",  # e.g. Gemfile.lock, package-lock.json, Pipfile.lock
}


def is_code_file(file_name: str) -> bool:
    return not any(file_name.lower().endswith(ext) for ext in NON_CODE_EXTENSIONS)


def matches_pattern(path: str, pattern: str) -> bool:
    """Return True if path matches a glob on the full path, the basename, or a directory prefix.

    "src/gen/*.py" matches on the full path, "*.rb" and "Gemfile" on the
    basename, and "spec/" or "spec" matches every file inside any spec directory.
    """
    if fnmatch.fnmatch(path, pattern):
        return True
    if fnmatch.fnmatch(PurePosixPath(path).name, pattern):
        return True
    directory = pattern.rstrip("/")
    for suffix in ("/**/*", "/**"):
        if directory.endswith(suffix):
            directory = directory[: -len(suffix)]
    if directory and not any(c in directory for c in "*?["):
        prefix = directory + "/"
        if path.startswith(prefix) or ("/" + prefix) in path:
            return True
    return False


def matches_filter(path: str, file_filter: FileFilter) -> bool:
    """Return True if path should be reviewed under the given include/exclude patterns."""
    if not is_code_file(path):
        return False
    if any(matches_pattern(path, p) for p in file_filter.exclude):
        return False
    if not file_filter.include:
        return True
    return any(matches_pattern(path, p) for p in file_filter.include)


# Fence tags for prompts and markers for the auto-fix sanity check share this map.
LANGUAGES_BY_EXTENSION = {
    ".rb": "ruby",
    ".rake": "ruby",
    ".gemspec": "ruby",
    ".py": "python",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".go": "go",
    ".rs": "rust",
    ".java": "java",
    ".kt": "kotlin",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".hpp": "cpp",
    ".cs": "csharp",
    ".php": "php",
    ".swift": "swift",
    ".sh": "bash",
}

LANGUAGES_BY_FILENAME = {
    "Gemfile": "ruby",
    "Rakefile": "ruby",
    "Guardfile": "ruby",
}


def language_for(path: str) -> str:
    """Return a markdown fence tag for the file, or "" when the language is unknown."""
    p = PurePosixPath(path)
    if p.name in LANGUAGES_BY_FILENAME:
        return LANGUAGES_BY_FILENAME[p.name]
    return LANGUAGES_BY_EXTENSION.get(p.suffix.lower(), "")
