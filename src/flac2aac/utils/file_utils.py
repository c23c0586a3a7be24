"""
File utility functions for library reconciliation.
"""

import os
import re
import logging
from typing import List, Union

logger = logging.getLogger(__name__)


def natural_keys(text: str) -> List[Union[int, str]]:
    """
    Natural sorting key function.

    Args:
        text: Text to generate natural sort key for

    Returns:
        List of integers and strings for natural sorting
    """
    def atoi(text):
        return int(text) if text.isdigit() else text
    return [atoi(c) for c in re.split(r'(\d+)', text)]


def has_extension(file_path: str, extension: str) -> bool:
    """Case-sensitive check of a file name's extension, like find -name."""
    return file_path.endswith(extension)


def replace_extension(file_path: str, old_extension: str, new_extension: str) -> str:
    """
    Swap the trailing extension of a path.

    Args:
        file_path: Path ending in old_extension (any case)
        old_extension: Extension to strip, including the dot
        new_extension: Extension to append, including the dot

    Returns:
        str: The path with the extension replaced
    """
    if not has_extension(file_path, old_extension):
        raise ValueError(f"{file_path} does not end with {old_extension}")
    return file_path[:len(file_path) - len(old_extension)] + new_extension


def is_newer(path: str, reference: str) -> bool:
    """
    Check whether path exists as a file and was modified strictly after reference.

    Timestamps are compared as-is; filesystems with coarse mtime resolution
    (FAT keeps two seconds) can make a just-written file look equally old,
    in which case it is treated as not newer.
    """
    if not os.path.isfile(path):
        return False
    return os.stat(path).st_mtime_ns > os.stat(reference).st_mtime_ns


def ensure_directory_exists(directory: str):
    """
    Ensure that a directory exists, creating it if necessary.

    Args:
        directory: Path to the directory
    """
    if not os.path.isdir(directory):
        try:
            os.makedirs(directory, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create directory {directory}: {e}")
            raise


def is_non_empty_file(file_path: str) -> bool:
    """True when file_path is a regular file with at least one byte."""
    try:
        return os.path.isfile(file_path) and os.path.getsize(file_path) > 0
    except OSError:
        return False
