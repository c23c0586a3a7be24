"""
Discovery of lossless source files and their mirrored destinations.
"""

import os
import logging
from dataclasses import dataclass
from typing import Iterator

from ..utils.file_utils import natural_keys, has_extension, replace_extension, is_newer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversionTask:
    """One discovered source file and where its converted copy belongs."""
    source: str
    relative_path: str
    destination: str
    destination_dir: str

    @classmethod
    def from_source(cls, source: str, source_root: str, dest_root: str,
                    source_extension: str = ".flac",
                    target_extension: str = ".m4a") -> "ConversionTask":
        """
        Build the task for a source file.

        The destination mirrors the path relative to source_root under
        dest_root with the extension swapped, so it depends on nothing but
        the three arguments.
        """
        relative_path = os.path.relpath(source, source_root)
        destination = os.path.join(
            dest_root,
            replace_extension(relative_path, source_extension, target_extension),
        )
        return cls(
            source=source,
            relative_path=relative_path,
            destination=destination,
            destination_dir=os.path.dirname(destination),
        )

    def is_fresh(self) -> bool:
        """True when the destination exists and is strictly newer than the source."""
        return is_newer(self.destination, self.source)


def discover_tasks(source_root: str, dest_root: str,
                   source_extension: str = ".flac",
                   target_extension: str = ".m4a") -> Iterator[ConversionTask]:
    """
    Walk source_root recursively and yield a task per lossless file.

    Directories and files are visited in natural sort order so track 2
    comes before track 10. A destination root nested inside the source root
    is not descended into.
    """
    source_root = os.path.abspath(source_root)
    dest_root = os.path.abspath(dest_root)

    for dirpath, dirnames, filenames in os.walk(source_root):
        dirnames[:] = sorted(
            (d for d in dirnames if os.path.join(dirpath, d) != dest_root),
            key=natural_keys,
        )
        for filename in sorted(filenames, key=natural_keys):
            if not has_extension(filename, source_extension):
                continue
            source = os.path.join(dirpath, filename)
            if not os.path.isfile(source):
                logger.debug(f"Ignoring non-regular file {source}")
                continue
            yield ConversionTask.from_source(
                source, source_root, dest_root, source_extension, target_extension
            )
