"""
Utility modules for library reconciliation.
"""

from .progress_tracker import create_progress_tracker, ProcessingTimer
from .resource_manager import managed_temp_directory, SignalHandler
from .file_utils import natural_keys, is_newer, replace_extension

__all__ = [
    "create_progress_tracker",
    "ProcessingTimer",
    "managed_temp_directory",
    "SignalHandler",
    "natural_keys",
    "is_newer",
    "replace_extension",
]
