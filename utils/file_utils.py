"""
File operation utilities
"""

import logging
import os
from pathlib import Path
from typing import Iterable, List

logger = logging.getLogger(__name__)


def has_video_extension(name: str, extensions: Iterable[str]) -> bool:
    """Case-insensitive suffix check against the allow-list"""
    lowered = name.lower()
    return any(lowered.endswith(ext.lower()) for ext in extensions)


def list_video_files(directory: str, extensions: Iterable[str]) -> List[str]:
    """
    Recursively list video files below directory

    Symlinks and hidden entries (name starting with '.') are skipped, both
    files and directories. Entries are visited in sorted order so the
    result is stable between runs. Paths are absolute.
    """
    extensions = tuple(extensions)
    root = Path(directory).resolve()
    video_files = []
    _walk(root, extensions, video_files)
    return video_files


def _walk(directory: Path, extensions, video_files: List[str]):
    try:
        entries = sorted(os.scandir(directory), key=lambda e: e.name)
    except OSError as e:
        logger.warning("Cannot list %s: %s", directory, e)
        return

    for entry in entries:
        if entry.is_symlink() or entry.name.startswith('.'):
            continue

        if entry.is_dir(follow_symlinks=False):
            _walk(Path(entry.path), extensions, video_files)
        elif entry.is_file(follow_symlinks=False) and has_video_extension(entry.name, extensions):
            video_files.append(os.path.abspath(entry.path))


def format_file_size(size_bytes: int) -> str:
    """Format file size in human readable format"""
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if size_bytes < 1024.0:
            return f"{size_bytes:.2f} {unit}"
        size_bytes /= 1024.0
    return f"{size_bytes:.2f} PB"
