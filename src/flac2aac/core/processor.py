"""
Reconciliation driver: decides per source file whether to skip, convert,
delete or report it, then runs the post-run offers.
"""

import os
import logging
from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional

from .tasks import ConversionTask, discover_tasks
from .converter import FFmpegConverter
from .device_sync import DeviceSync
from ..config import Settings
from ..utils.file_utils import ensure_directory_exists
from ..utils.progress_tracker import ProgressTracker, ProcessingTimer
from ..utils.prompts import ask_yes_no
from ..exceptions import (
    ConversionError, FileProcessingError, ValidationError
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunMode:
    """Flags resolved once before any file is touched."""
    delete_after_convert: bool = False
    dry_run: bool = False
    cleanup_only: bool = False
    copy_after_success: bool = False

    def describe(self) -> str:
        flags = []
        if self.cleanup_only:
            flags.append("--cleanup-only")
        if self.delete_after_convert:
            flags.append("--with-delete")
        if self.copy_after_success:
            flags.append("--copy-to-device")
        if self.dry_run:
            flags.append("--dry-run")
        return " ".join(flags) or "(no flags)"


@dataclass
class RunOutcome:
    """Result of one reconciliation pass. Paths are relative to the source root."""
    mode: RunMode
    skipped: List[str] = field(default_factory=list)
    converted: List[str] = field(default_factory=list)
    planned: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    unconverted: List[str] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)
    cover_fallbacks: List[str] = field(default_factory=list)
    errors: List[Exception] = field(default_factory=list)
    warnings: List[Exception] = field(default_factory=list)
    copied_to: List[str] = field(default_factory=list)
    failed: bool = False

    @property
    def dry_run(self) -> bool:
        return self.mode.dry_run

    def record_failure(self, relative_path: str, error: Exception):
        self.failures.append(relative_path)
        self.errors.append(error)
        self.failed = True


class ConversionProcessor:
    """Mirrors a tree of lossless files into a tree of compressed files."""

    def __init__(self, source_dir: str, dest_dir: str, settings: Optional[Settings] = None,
                 converter: Optional[FFmpegConverter] = None,
                 confirm: Callable[[str], bool] = ask_yes_no,
                 progress_tracker: Optional[ProgressTracker] = None,
                 signal_handler=None,
                 device_sync: Optional[DeviceSync] = None):
        """
        Initialize the processor.

        Args:
            source_dir (str): Root folder containing the lossless files
            dest_dir (str): Root folder for the converted files
            settings (Settings): Extensions and encoder settings
            converter (FFmpegConverter): Runs the per-file FFmpeg steps
            confirm (callable): Yes/no decision used for every offer
            progress_tracker (ProgressTracker): Console reporting
            signal_handler (SignalHandler): Consulted between files and steps
            device_sync (DeviceSync): Copies the result to removable devices
        """
        self.source_dir = source_dir
        self.dest_dir = dest_dir
        self.settings = settings or Settings()
        self.converter = converter or FFmpegConverter(self.settings)
        self.confirm = confirm
        self.progress_tracker = progress_tracker or ProgressTracker(use_progress_bars=False)
        self.signal_handler = signal_handler
        self.device_sync = device_sync or DeviceSync(self.settings.device_music_dir)

    def validate(self, mode: RunMode):
        """
        Check the roots before any task runs.

        Raises:
            ValidationError: If the source directory is missing or the
                destination root cannot be created.
        """
        if not os.path.isdir(self.source_dir):
            raise ValidationError("Source directory not found", "source_dir", self.source_dir)
        if mode.dry_run:
            return
        try:
            ensure_directory_exists(self.dest_dir)
        except OSError as e:
            raise ValidationError(f"Cannot create destination directory: {e}",
                                  "dest_dir", self.dest_dir) from e

    def run(self, mode: RunMode) -> List[RunOutcome]:
        """
        Run one pass, the post-run actions and any accepted follow-up run.

        A follow-up is a recursive run with an adjusted mode, so a dry run
        followed by the real run returns two outcomes.

        Returns:
            List of RunOutcome, one per pass, in execution order
        """
        outcome = self.process(mode)
        self.copy_to_devices(mode, outcome)

        next_mode = self.next_mode(mode, outcome)
        if next_mode is None:
            return [outcome]
        print(f"\nRunning: {self.source_dir} -> {self.dest_dir} {next_mode.describe()}")
        return [outcome] + self.run(next_mode)

    def process(self, mode: RunMode) -> RunOutcome:
        """
        Reconcile every discovered file once.

        Returns:
            RunOutcome: What happened to each file

        Raises:
            ValidationError: Before any task, if the roots are unusable.
            DependencyError: If a conversion is due and FFmpeg is missing.
            OperationInterrupted: On user interrupt.
        """
        self.validate(mode)
        outcome = RunOutcome(mode=mode)
        timer = ProcessingTimer()
        timer.start()

        tasks = list(discover_tasks(
            self.source_dir, self.dest_dir,
            self.settings.source_extension, self.settings.target_extension,
        ))
        logger.info(f"Found {len(tasks)} {self.settings.source_extension} file(s) under "
                    f"{self.source_dir} ({mode.describe()})")
        self.progress_tracker.print_step(
            f"Found {len(tasks)} {self.settings.source_extension} file(s) in {self.source_dir}"
        )

        description = "Cleaning up" if mode.cleanup_only else "Converting"
        with self.progress_tracker.conversion_progress(len(tasks), description) as progress:
            for task in tasks:
                self._check_interrupt("reconcile")
                self._reconcile(task, mode, outcome, progress)
                progress.update(1, os.path.basename(task.relative_path))

        self.progress_tracker.print_summary(outcome, timer.stop())
        return outcome

    def _reconcile(self, task: ConversionTask, mode: RunMode, outcome: RunOutcome, progress):
        rel_path = task.relative_path

        if task.is_fresh():
            if mode.cleanup_only:
                self._delete_source(task, mode, outcome, progress)
            else:
                outcome.skipped.append(rel_path)
                progress.report("SKIP", f"Skipping up-to-date: {rel_path}")
            return

        if mode.cleanup_only:
            outcome.unconverted.append(rel_path)
            progress.report("UNCONVERTED", f"Unconverted {self.settings.source_extension}: {rel_path}")
            return

        if mode.dry_run:
            outcome.planned.append(rel_path)
            progress.report("DRY", "\n".join(self.converter.describe_steps(task)))
            return

        self._convert(task, mode, outcome, progress)

    def _convert(self, task: ConversionTask, mode: RunMode, outcome: RunOutcome, progress):
        self.converter.ensure_available()
        progress.report("CONVERT", f"Converting: {task.relative_path}")

        try:
            report = self.converter.convert(task, self.signal_handler)
        except ConversionError as e:
            logger.error(f"Conversion failed for {task.source}: {e}")
            outcome.record_failure(task.relative_path, e)
            progress.report("FAIL", f"Conversion failed: {task.relative_path}")
            return

        outcome.converted.append(task.relative_path)
        if report.cover_error is not None:
            outcome.cover_fallbacks.append(task.relative_path)
            outcome.warnings.append(report.cover_error)
            progress.report("WARN", f"Failed to embed album art: {task.relative_path}")

        if mode.delete_after_convert and os.path.isfile(task.destination):
            self._delete_source(task, mode, outcome, progress)

    def _delete_source(self, task: ConversionTask, mode: RunMode, outcome: RunOutcome, progress):
        if mode.dry_run:
            progress.report("DRY", f"Would delete: {task.source}")
            outcome.deleted.append(task.relative_path)
            return

        try:
            os.remove(task.source)
        except OSError as e:
            error = FileProcessingError(f"Could not delete source: {e}", task.source, "delete")
            logger.error(str(error))
            outcome.errors.append(error)
            progress.report("ERROR", f"Could not delete: {task.source}")
            return

        logger.info(f"Deleted {task.source}")
        outcome.deleted.append(task.relative_path)
        progress.report("DELETE", f"Deleting: {task.source}")

    def copy_to_devices(self, mode: RunMode, outcome: RunOutcome):
        """Copy the destination tree to removable devices after a clean run."""
        if not mode.copy_after_success or mode.cleanup_only:
            return
        if outcome.failed:
            print("\nSkipping device copy: some conversions failed.")
            return

        copied, errors = self.device_sync.sync(self.dest_dir, mode.dry_run, self.confirm)
        outcome.copied_to.extend(copied)
        outcome.errors.extend(errors)

    def next_mode(self, mode: RunMode, outcome: RunOutcome) -> Optional[RunMode]:
        """
        Offer the follow-up run that fits the pass just finished.

        Offers are made in order and the first accepted one wins.

        Returns:
            RunMode for the follow-up run, or None
        """
        ext = self.settings.source_extension

        if mode.cleanup_only and not mode.dry_run and outcome.unconverted:
            print(f"\nSome {ext} files were not deleted because they are unconverted.")
            if self.confirm("Would you like to dry-run a conversion to see what needs to be done?"):
                return RunMode(dry_run=True)

        if not mode.delete_after_convert and not mode.dry_run and not mode.cleanup_only:
            print()
            if self.confirm(f"Would you like to dry-run a cleanup to see which {ext} files can be deleted?"):
                return RunMode(cleanup_only=True, dry_run=True)

        if mode.dry_run and not mode.delete_after_convert:
            print()
            if self.confirm("Would you like to now perform the actual operation?"):
                return replace(mode, dry_run=False)
            print("Dry-run complete. No changes made.")

        return None

    def _check_interrupt(self, stage: str):
        if self.signal_handler is not None:
            self.signal_handler.raise_if_requested(stage)
