"""
Core reconciliation modules.
"""

from .processor import ConversionProcessor, RunMode, RunOutcome
from .converter import FFmpegConverter, ConversionReport
from .tasks import ConversionTask, discover_tasks
from .device_sync import DeviceSync, find_removable_devices

__all__ = [
    "ConversionProcessor",
    "RunMode",
    "RunOutcome",
    "FFmpegConverter",
    "ConversionReport",
    "ConversionTask",
    "discover_tasks",
    "DeviceSync",
    "find_removable_devices",
]
