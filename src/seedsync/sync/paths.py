"""Path helpers: slash normalization, sanitization and destination mapping.

Remote paths are always "/"-separated strings. Directory prefixes are
compared after normalizing them to "/a/b/" so that "/tv" never matches
"/tvshows/".
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from seedsync.core.config import SyncConfig
    from seedsync.sync.types import DiscoveredFile

# Characters that are unsafe in file names on common filesystems
_UNSAFE_CHARS = re.compile(r'[<>:"\\|?*\x00-\x1f]')


def append_slash(path: str) -> str:
    """Return path with exactly one trailing slash.

    >>> append_slash("")
    '/'
    >>> append_slash("/tv")
    '/tv/'
    """
    return path.rstrip("/") + "/"


def normalize_prefix(path: str) -> str:
    """Normalize a directory prefix to "/a/b/" form ("/" for the root)."""
    stripped = path.strip().strip("/")
    return f"/{stripped}/" if stripped else "/"


def sanitize_segment(name: str) -> str:
    """Remove filesystem-unsafe characters from a single path segment.

    "." and ".." collapse to an empty string so they can never walk out of
    the destination root.
    """
    cleaned = _UNSAFE_CHARS.sub("", name).strip()
    if cleaned in (".", ".."):
        return ""
    return cleaned


def sanitize_path(path: str) -> str:
    """Sanitize every segment of a "/"-separated relative path.

    Empty segments are dropped, the result never starts with "/", and a
    trailing slash is kept when the input had one.

    >>> sanitize_path("/Some: Show/Season 1/")
    'Some Show/Season 1/'
    """
    segments = [s for s in (sanitize_segment(p) for p in path.split("/")) if s]
    result = "/".join(segments)
    if result and path.endswith("/"):
        result += "/"
    return result


def get_destination_directory(file: DiscoveredFile, config: SyncConfig) -> str:
    """Get the local directory a file should land in.

    The first path mapping whose remote prefix contains the file's relative
    directory wins; the matched prefix is replaced by the mapping's local
    path. Unmatched files land under config.local_sync_root.

    ex:
        mapping:   {"remote_path": "/tv", "local_path": "/library/tv"}
        file:      relative_directory "/tv/Some Show/"
        returns:   "/library/tv/Some Show/"

    Returns:
        Local directory path, always ending with "/".
    """
    remote_directory = file.relative_directory

    for mapping in config.path_mappings:
        prefix = normalize_prefix(mapping.remote_path)
        if remote_directory.startswith(prefix):
            remainder = remote_directory[len(prefix):]
            return append_slash(mapping.local_path) + sanitize_path(remainder)

    return append_slash(config.local_sync_root) + sanitize_path(remote_directory)


def local_file_name(name: str) -> str:
    """Get the sanitized local name of a file.

    Raises:
        ValueError: If nothing usable is left after sanitizing.
    """
    cleaned = sanitize_segment(name)
    if not cleaned:
        raise ValueError(f"No usable local file name for {name!r}")
    return cleaned


def get_destination_path(file: DiscoveredFile, config: SyncConfig) -> Path:
    """Get the final local path of a file.

    Raises:
        ValueError: If the file name sanitizes to nothing.
    """
    return Path(get_destination_directory(file, config)) / local_file_name(file.name)
