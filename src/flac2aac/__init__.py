"""
flac2aac - Mirror a FLAC library as AAC (.m4a) files

Walks a source tree for FLAC files, converts each one with FFmpeg while
keeping tags and cover art, and optionally cleans up converted sources and
copies the result to removable devices.
"""

__version__ = "1.1.0"

from .core.processor import ConversionProcessor, RunMode, RunOutcome
from .config import Settings, load_settings
from .exceptions import Flac2AacError

__all__ = [
    "ConversionProcessor",
    "RunMode",
    "RunOutcome",
    "Settings",
    "load_settings",
    "Flac2AacError",
    "__version__"
]
