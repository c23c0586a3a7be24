"""
FFmpeg invocation for a single source file: cover extraction, audio
transcode, cover remux and installation of the result.
"""

import os
import shutil
import logging
import subprocess
from dataclasses import dataclass
from typing import List, Optional

from .tasks import ConversionTask
from ..config import Settings
from ..utils.file_utils import ensure_directory_exists, is_non_empty_file
from ..utils.resource_manager import managed_temp_directory
from ..exceptions import DependencyError, ConversionError, CoverArtError

logger = logging.getLogger(__name__)


@dataclass
class ConversionReport:
    """What happened while converting one file."""
    task: ConversionTask
    cover_found: bool = False
    cover_embedded: bool = False
    cover_error: Optional[CoverArtError] = None


class FFmpegConverter:
    """Runs the FFmpeg steps that turn one lossless file into its destination."""

    def __init__(self, settings: Optional[Settings] = None):
        """
        Initialize the converter.

        Args:
            settings (Settings): Encoder executable, codec and quality
        """
        self.settings = settings or Settings()
        self.ffmpeg_path = self.settings.ffmpeg_path
        self._dependency_checked = False

    def check_ffmpeg_dependency(self):
        """
        Check if FFmpeg is available and accessible.

        Returns:
            str: First line of the FFmpeg version banner

        Raises:
            DependencyError: If FFmpeg is not found or not working.
        """
        try:
            result = subprocess.run([self.ffmpeg_path, '-version'], capture_output=True,
                                    check=True, text=True, errors="replace",
                                    stdin=subprocess.DEVNULL)
        except FileNotFoundError:
            raise DependencyError(
                "ffmpeg",
                f"FFmpeg is not installed or not found: {self.ffmpeg_path}"
            )
        except subprocess.CalledProcessError as e:
            raise DependencyError(
                "ffmpeg",
                f"FFmpeg is installed but not working properly: {e}"
            )

        self._dependency_checked = True
        output = result.stdout or result.stderr or ""
        version_line = output.split('\n')[0]
        logger.info(f'FFmpeg dependency check passed: {version_line}')
        return version_line

    def ensure_available(self):
        """Run the dependency check once per converter."""
        if not self._dependency_checked:
            self.check_ffmpeg_dependency()

    def _run(self, arguments: List[str]) -> subprocess.CompletedProcess:
        """Run FFmpeg synchronously with stdin detached and output captured."""
        command = [self.ffmpeg_path, '-nostdin', '-y'] + arguments
        logger.debug(f"Running: {' '.join(command)}")
        try:
            return subprocess.run(
                command,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                errors="replace",
            )
        except FileNotFoundError:
            raise DependencyError(
                "ffmpeg",
                f"FFmpeg is not installed or not found: {self.ffmpeg_path}"
            )

    def _audio_codec_arguments(self) -> List[str]:
        arguments = ['-c:a', self.settings.audio_codec]
        if self.settings.audio_bitrate:
            arguments += ['-b:a', self.settings.audio_bitrate]
        elif self.settings.vbr_quality is not None:
            arguments += ['-vbr', str(self.settings.vbr_quality)]
        return arguments

    def extract_cover(self, source: str, cover_path: str) -> bool:
        """
        Copy the embedded picture stream of source into cover_path.

        Best effort: any failure just means there is no cover to embed.

        Returns:
            bool: True if a non-empty cover image was written
        """
        result = self._run(['-i', source, '-an', '-vcodec', 'copy', cover_path])
        if result.returncode != 0:
            logger.debug(f"No cover extracted from {source}: exit status {result.returncode}")
            return False
        if not is_non_empty_file(cover_path):
            logger.debug(f"Cover extracted from {source} is empty")
            return False
        return True

    def transcode_audio(self, source: str, output_path: str):
        """
        Encode only the audio stream of source into output_path.

        Tags are carried over and the moov atom is moved to the front.

        Raises:
            ConversionError: If FFmpeg fails or writes nothing.
        """
        arguments = ['-i', source, '-map', '0:a', '-vn']
        arguments += self._audio_codec_arguments()
        arguments += ['-map_metadata', '0', '-movflags', '+faststart', output_path]

        result = self._run(arguments)
        if result.returncode != 0:
            logger.error(f"FFmpeg transcode of {source} failed: {result.stderr.strip()}")
            raise ConversionError(f"FFmpeg exited with status {result.returncode}",
                                  source, stderr=result.stderr)
        if not is_non_empty_file(output_path):
            raise ConversionError("FFmpeg produced no output", source, stderr=result.stderr)

    def embed_cover(self, audio_path: str, cover_path: str, output_path: str):
        """
        Mux audio_path and cover_path into output_path without re-encoding,
        flagging the picture as attached cover art.

        Raises:
            CoverArtError: If the remux fails.
        """
        result = self._run([
            '-i', audio_path,
            '-i', cover_path,
            '-map', '0', '-map', '1',
            '-c', 'copy',
            '-disposition:v:0', 'attached_pic',
            output_path,
        ])
        if result.returncode != 0 or not is_non_empty_file(output_path):
            logger.debug(f"FFmpeg remux stderr: {result.stderr.strip()}")
            raise CoverArtError(f"FFmpeg exited with status {result.returncode}",
                                audio_path, stderr=result.stderr)

    def describe_steps(self, task: ConversionTask) -> List[str]:
        """Human-readable plan for a dry run."""
        codec = self.settings.audio_codec
        if self.settings.audio_bitrate:
            quality = f"{self.settings.audio_bitrate}"
        elif self.settings.vbr_quality is not None:
            quality = f"VBR {self.settings.vbr_quality}"
        else:
            quality = "default quality"
        target = self.settings.target_extension
        return [
            f"Would convert: {task.source}",
            f"   -> Encode audio to {target} using {codec} ({quality})",
            "   -> Extract and embed cover art (as attached picture)",
            f"   -> Use .mp4 muxer and rename output to {target}",
            f"   -> Output path: {task.destination}",
        ]

    def convert(self, task: ConversionTask, signal_handler=None) -> ConversionReport:
        """
        Convert one file into its destination.

        Temporary files live in a private directory that is removed on every
        exit path. The destination is only replaced once a complete output
        exists.

        Args:
            task: The file to convert
            signal_handler: Optional SignalHandler consulted between steps

        Returns:
            ConversionReport: Whether cover art was found and embedded

        Raises:
            ConversionError: If the audio transcode fails.
            OperationInterrupted: If a shutdown was requested mid-task.
        """
        report = ConversionReport(task=task)

        with managed_temp_directory() as temp_dir:
            cover_path = os.path.join(temp_dir, 'cover.jpg')
            audio_path = os.path.join(temp_dir, 'audio' + self.settings.target_extension)
            muxed_path = os.path.join(temp_dir, 'muxed.mp4')

            report.cover_found = self.extract_cover(task.source, cover_path)
            self._check_interrupt(signal_handler, "transcode")

            self.transcode_audio(task.source, audio_path)
            final_path = audio_path

            if report.cover_found:
                self._check_interrupt(signal_handler, "embed cover")
                try:
                    self.embed_cover(audio_path, cover_path, muxed_path)
                    final_path = muxed_path
                    report.cover_embedded = True
                except CoverArtError as e:
                    logger.warning(f"Keeping {task.relative_path} without cover art: {e}")
                    report.cover_error = e

            self._check_interrupt(signal_handler, "finalize")
            self._install(final_path, task)

        logger.info(f"Converted {task.source} -> {task.destination} "
                    f"(cover: {'embedded' if report.cover_embedded else 'none'})")
        return report

    def _install(self, temp_file: str, task: ConversionTask):
        """Move temp_file next to the destination, then rename it into place."""
        ensure_directory_exists(task.destination_dir)
        partial = os.path.join(task.destination_dir,
                               f".{os.path.basename(task.destination)}.partial")
        try:
            shutil.move(temp_file, partial)
            os.replace(partial, task.destination)
        finally:
            if os.path.exists(partial):
                os.remove(partial)

    @staticmethod
    def _check_interrupt(signal_handler, stage: str):
        if signal_handler is not None:
            signal_handler.raise_if_requested(stage)
