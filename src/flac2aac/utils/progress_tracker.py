"""
Progress tracking and console reporting for flac2aac.
"""

import time
from contextlib import contextmanager
from typing import Optional, Any

from tqdm import tqdm

# Statuses that are shown even in quiet mode
_ALWAYS_SHOWN = {"FAIL", "WARN", "ERROR"}


class ProgressTracker:
    """
    Per-file progress over one reconciliation pass.

    Progress is tracked at file granularity; FFmpeg's own output is not
    parsed.
    """

    def __init__(self, use_progress_bars: bool = True, quiet: bool = False):
        """
        Initialize progress tracker.

        Args:
            use_progress_bars: Whether to use visual progress bars
            quiet: Suppress most output except errors
        """
        self.use_progress_bars = use_progress_bars and not quiet
        self.quiet = quiet

    @contextmanager
    def conversion_progress(self, total_files: int, description: str = "Reconciling files"):
        """
        Context manager for the per-file progress bar of one pass.

        Args:
            total_files: Total number of files discovered
            description: Label shown left of the bar
        """
        if self.use_progress_bars:
            # disable=None turns the bar off when stdout is not a terminal
            with tqdm(
                total=total_files,
                desc=description,
                unit="file",
                colour="green",
                disable=None,
            ) as pbar:
                yield ProgressUpdate(pbar, self.quiet)
        else:
            yield ProgressUpdate(None, self.quiet, total_files)

    def print_step(self, message: str):
        """Print a processing step message unless quiet."""
        if not self.quiet:
            print(f"* {message}")

    def print_summary(self, outcome, duration_seconds: float):
        """
        Print the summary of one reconciliation pass.

        Args:
            outcome: RunOutcome of the pass
            duration_seconds: Wall-clock time of the pass
        """
        if self.quiet and not outcome.failed:
            return

        print("\n" + "=" * 50)
        print("RUN SUMMARY" + (" (dry run)" if outcome.dry_run else ""))
        print("=" * 50)
        print(f"Skipped (up to date): {len(outcome.skipped)}")
        print(f"Converted: {len(outcome.converted)}")
        deleted_label = "Would delete" if outcome.dry_run else "Deleted"
        print(f"{deleted_label}: {len(outcome.deleted)}")
        if outcome.planned:
            print(f"Would convert: {len(outcome.planned)}")
        if outcome.unconverted:
            print(f"Unconverted (kept): {len(outcome.unconverted)}")
            for rel_path in outcome.unconverted:
                print(f"   - {rel_path}")
        if outcome.cover_fallbacks:
            print(f"Converted without cover art: {len(outcome.cover_fallbacks)}")
        if outcome.failures:
            print(f"Failed: {len(outcome.failures)}")
            for rel_path in outcome.failures:
                print(f"   - {rel_path}")
        print(f"Processing time: {self._format_duration(duration_seconds)}")

        if not outcome.failed:
            print("* No conversion failed")
        else:
            print(f"! {len(outcome.failures)} files failed to convert")

    def _format_duration(self, seconds: float) -> str:
        """Format duration in a human-readable way."""
        if seconds < 60:
            return f"{seconds:.1f}s"
        elif seconds < 3600:
            minutes = int(seconds // 60)
            secs = seconds % 60
            return f"{minutes}m {secs:.1f}s"
        else:
            hours = int(seconds // 3600)
            minutes = int((seconds % 3600) // 60)
            secs = seconds % 60
            return f"{hours}h {minutes}m {secs:.1f}s"


class ProgressUpdate:
    """
    Helper class for updating progress during a pass.

    Abstracts whether we're using tqdm progress bars or plain text output.
    """

    def __init__(self, pbar: Optional[Any], quiet: bool, total: Optional[int] = None):
        self.pbar = pbar
        self.quiet = quiet
        self.total = total
        self.current = 0

    def update(self, increment: int = 1, description: Optional[str] = None):
        """
        Advance the counter.

        Args:
            increment: Amount to increment (default: 1)
            description: Optional description for this update
        """
        self.current += increment

        if self.pbar is not None:
            if description:
                self.pbar.set_postfix_str(description)
            self.pbar.update(increment)

    def report(self, status: str, message: str):
        """
        Print a status line for one file without breaking the bar.

        Args:
            status: Short status tag, e.g. "SKIP" or "FAIL"
            message: Text following the tag
        """
        if self.quiet and status not in _ALWAYS_SHOWN:
            return
        line = f"[{status}] {message}"
        if self.pbar is not None:
            tqdm.write(line)
        else:
            print(line)


class ProcessingTimer:
    """Simple timer for measuring processing duration."""

    def __init__(self):
        self.start_time = None
        self.end_time = None

    def start(self):
        """Start the timer."""
        self.start_time = time.time()
        self.end_time = None

    def stop(self):
        """Stop the timer and return duration."""
        self.end_time = time.time()
        return self.get_duration()

    def get_duration(self) -> float:
        """Get the current duration in seconds."""
        if self.start_time is None:
            return 0.0
        end_time = self.end_time or time.time()
        return end_time - self.start_time


def create_progress_tracker(quiet: bool = False) -> ProgressTracker:
    """
    Create a progress tracker with appropriate settings.

    Args:
        quiet: Suppress most output

    Returns:
        Configured ProgressTracker instance
    """
    return ProgressTracker(use_progress_bars=True, quiet=quiet)
