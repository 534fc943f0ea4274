"""Tree flattening for recursive remote listings.

This module provides:
- flatten_tree: Turn a nested listing into a flat list of DiscoveredFile
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from seedsync.core.config import DEFAULT_SCAN_DEPTH
from seedsync.remote.client import EntryType
from seedsync.sync.paths import append_slash
from seedsync.sync.types import DiscoveredFile

if TYPE_CHECKING:
    from seedsync.remote.client import RemoteEntry

logger = logging.getLogger(__name__)


def flatten_tree(
    entries: list[RemoteEntry],
    base_path: str,
    depth: int = DEFAULT_SCAN_DEPTH,
    include_plain_files: bool = False,
) -> list[DiscoveredFile]:
    """Flatten a nested listing depth-first.

    Only symlinks are kept, plus plain files when include_plain_files is
    set. Directories are followed until the depth budget runs out; deeper
    subtrees are dropped with a log line, never an error.

    Args:
        entries: Top-level entries of the scan root.
        base_path: The scan root the entries were listed from.
        depth: Depth budget; the root level consumes one unit.
        include_plain_files: Also keep entries of type FILE.

    Returns:
        Discovered files in traversal order.
    """
    out: list[DiscoveredFile] = []
    _walk(entries, base_path, depth, "", include_plain_files, out)
    return out


def _walk(
    entries: list[RemoteEntry],
    base_path: str,
    depth: int,
    relative_path: str,
    include_plain_files: bool,
    out: list[DiscoveredFile],
) -> None:
    relative_path = append_slash(relative_path)

    if depth <= 0:
        logger.info("Maximum scan depth reached, skipping %s", relative_path)
        return

    for entry in entries:
        if entry.type == EntryType.SYMLINK or (
            include_plain_files and entry.type == EntryType.FILE
        ):
            logger.debug("Scanner found: %s%s", relative_path, entry.name)
            out.append(DiscoveredFile.from_entry(base_path, relative_path, entry))
        elif entry.type == EntryType.DIRECTORY and entry.children is not None:
            _walk(
                entry.children,
                base_path,
                depth - 1,
                relative_path + entry.name.strip("/"),
                include_plain_files,
                out,
            )
