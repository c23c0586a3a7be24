"""
Tests for temporary directory management and the signal handler.
"""

import pytest
import os
import signal

from flac2aac.utils.resource_manager import managed_temp_directory, SignalHandler
from flac2aac.exceptions import OperationInterrupted


class TestManagedTempDirectory:
    """Test cases for managed_temp_directory."""

    def test_removed_after_use(self):
        with managed_temp_directory() as temp_dir:
            with open(os.path.join(temp_dir, 'cover.jpg'), 'wb') as f:
                f.write(b'\xff\xd8')
            assert os.path.isdir(temp_dir)

        assert not os.path.exists(temp_dir)

    def test_removed_after_exception(self):
        with pytest.raises(RuntimeError):
            with managed_temp_directory() as temp_dir:
                raise RuntimeError("boom")

        assert not os.path.exists(temp_dir)

    def test_prefix(self):
        with managed_temp_directory() as temp_dir:
            assert os.path.basename(temp_dir).startswith('flac2aac_')


class TestSignalHandler:
    """Test cases for SignalHandler."""

    def test_not_requested_initially(self):
        handler = SignalHandler()

        assert handler.shutdown_requested is False
        handler.raise_if_requested("reconcile")

    def test_request_shutdown(self):
        handler = SignalHandler()

        handler.request_shutdown()

        with pytest.raises(OperationInterrupted) as exc_info:
            handler.raise_if_requested("reconcile")
        assert exc_info.value.stage == "reconcile"

    def test_signal_raises(self):
        handler = SignalHandler()

        with pytest.raises(OperationInterrupted):
            handler._signal_handler(signal.SIGINT, None)
        assert handler.shutdown_requested is True

    def test_install_and_uninstall(self):
        previous = signal.getsignal(signal.SIGINT)
        handler = SignalHandler().install()
        try:
            assert signal.getsignal(signal.SIGINT) == handler._signal_handler
        finally:
            handler.uninstall()

        assert signal.getsignal(signal.SIGINT) == previous
