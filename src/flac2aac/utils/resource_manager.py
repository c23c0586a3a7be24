"""
Resource management for flac2aac: scoped temporary directories and
signal-driven cancellation.
"""

import os
import sys
import signal
import shutil
import tempfile
import logging
from contextlib import contextmanager

from ..exceptions import OperationInterrupted

logger = logging.getLogger(__name__)

TEMP_PREFIX = "flac2aac_"


@contextmanager
def managed_temp_directory(prefix: str = TEMP_PREFIX):
    """
    Context manager for a temporary directory with guaranteed cleanup.

    The directory is removed on every exit path, including exceptions and
    interrupts raised while the body runs.
    """
    temp_dir = None
    try:
        temp_dir = tempfile.mkdtemp(prefix=prefix)
        logger.debug(f"Created temporary directory: {temp_dir}")
        yield temp_dir
    finally:
        if temp_dir and os.path.exists(temp_dir):
            try:
                shutil.rmtree(temp_dir)
                logger.debug(f"Cleaned up temporary directory: {temp_dir}")
            except OSError as e:
                logger.error(f"Failed to cleanup temporary directory {temp_dir}: {e}")


class SignalHandler:
    """
    Turn SIGINT/SIGTERM into an OperationInterrupted exception.

    The flag stays set after the signal so cooperative checks between tasks
    also stop the run when the exception was raised somewhere it could not
    propagate from.
    """

    def __init__(self):
        self.shutdown_requested = False
        self._previous_handlers = {}

    def install(self):
        """Register the handlers for this process."""
        signums = [signal.SIGINT, signal.SIGTERM]
        if sys.platform == "win32":
            signums.append(signal.SIGBREAK)
        for signum in signums:
            self._previous_handlers[signum] = signal.signal(signum, self._signal_handler)
        return self

    def uninstall(self):
        """Restore the handlers that were active before install()."""
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers = {}

    def _signal_handler(self, signum: int, frame) -> None:
        """Handle shutdown signals."""
        signal_names = {
            signal.SIGINT: "SIGINT (Ctrl+C)",
            signal.SIGTERM: "SIGTERM",
        }
        signal_name = signal_names.get(signum, f"Signal {signum}")
        logger.info(f"Received {signal_name}, aborting")

        self.request_shutdown()
        raise OperationInterrupted(f"received {signal_name}")

    def request_shutdown(self):
        """Mark the run as cancelled."""
        self.shutdown_requested = True

    def raise_if_requested(self, stage: str) -> None:
        """Raise OperationInterrupted when a shutdown was requested."""
        if self.shutdown_requested:
            raise OperationInterrupted("shutdown requested", stage=stage)
