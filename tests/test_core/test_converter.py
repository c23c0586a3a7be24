"""
Tests for the FFmpegConverter.
"""

import pytest
import os
from unittest.mock import Mock

from conftest import make_file
from flac2aac.config import Settings
from flac2aac.core.converter import FFmpegConverter
from flac2aac.core.tasks import ConversionTask
from flac2aac.exceptions import ConversionError, DependencyError, OperationInterrupted


@pytest.fixture
def task(library):
    source_dir, dest_dir = library
    return ConversionTask.from_source(
        os.path.join(source_dir, 'album', 'track1.flac'), source_dir, dest_dir
    )


def temp_outputs(fake_ffmpeg):
    """Output paths FFmpeg was asked to write, excluding the version check."""
    return [cmd[-1] for cmd in fake_ffmpeg.calls if fake_ffmpeg.operation(cmd) != 'version']


class TestCommands:
    """The FFmpeg invocations themselves."""

    def test_every_call_is_non_interactive(self, task, fake_ffmpeg):
        fake_ffmpeg.cover_bytes = b'\xff\xd8'

        FFmpegConverter().convert(task)

        assert len(fake_ffmpeg.calls) == 3
        for cmd in fake_ffmpeg.calls:
            assert cmd[:3] == ['ffmpeg', '-nostdin', '-y']

    def test_transcode_command(self, task, fake_ffmpeg):
        FFmpegConverter().convert(task)

        cmd = fake_ffmpeg.calls_for('transcode')[0]
        assert cmd[cmd.index('-i') + 1] == task.source
        assert ['-map', '0:a', '-vn'] == cmd[cmd.index('-map'):cmd.index('-map') + 3]
        assert cmd[cmd.index('-c:a') + 1] == 'libfdk_aac'
        assert cmd[cmd.index('-vbr') + 1] == '5'
        assert cmd[cmd.index('-map_metadata') + 1] == '0'
        assert cmd[cmd.index('-movflags') + 1] == '+faststart'
        assert cmd[-1].endswith('.m4a')

    def test_bitrate_replaces_vbr(self, task, fake_ffmpeg):
        settings = Settings(audio_codec='aac', audio_bitrate='256k')

        FFmpegConverter(settings).convert(task)

        cmd = fake_ffmpeg.calls_for('transcode')[0]
        assert cmd[cmd.index('-c:a') + 1] == 'aac'
        assert cmd[cmd.index('-b:a') + 1] == '256k'
        assert '-vbr' not in cmd

    def test_cover_commands(self, task, fake_ffmpeg):
        fake_ffmpeg.cover_bytes = b'\xff\xd8'

        FFmpegConverter().convert(task)

        extract = fake_ffmpeg.calls_for('cover')[0]
        assert ['-an', '-vcodec', 'copy'] == extract[-4:-1]
        remux = fake_ffmpeg.calls_for('remux')[0]
        assert remux.count('-i') == 2
        assert ['-map', '0', '-map', '1', '-c', 'copy', '-disposition:v:0', 'attached_pic'] == remux[-9:-1]
        assert remux[-1].endswith('.mp4')

    def test_custom_executable(self, task, fake_ffmpeg):
        FFmpegConverter(Settings(ffmpeg_path='/opt/ffmpeg/bin/ffmpeg')).convert(task)

        assert all(cmd[0] == '/opt/ffmpeg/bin/ffmpeg' for cmd in fake_ffmpeg.calls)


class TestConvert:
    """Outcomes and temporary file handling of a single conversion."""

    def test_success_without_cover(self, task, fake_ffmpeg):
        report = FFmpegConverter().convert(task)

        assert report.cover_found is False
        assert report.cover_embedded is False
        with open(task.destination, 'rb') as f:
            assert f.read() == b'audio'

    def test_success_with_cover(self, task, fake_ffmpeg):
        fake_ffmpeg.cover_bytes = b'\xff\xd8'

        report = FFmpegConverter().convert(task)

        assert report.cover_embedded is True
        with open(task.destination, 'rb') as f:
            assert f.read() == b'muxed'

    def test_failed_cover_extraction_is_not_an_error(self, task, fake_ffmpeg):
        fake_ffmpeg.failing.add('cover')

        report = FFmpegConverter().convert(task)

        assert report.cover_found is False
        assert os.path.isfile(task.destination)

    def test_remux_failure_falls_back(self, task, fake_ffmpeg):
        fake_ffmpeg.cover_bytes = b'\xff\xd8'
        fake_ffmpeg.failing.add('remux')

        report = FFmpegConverter().convert(task)

        assert report.cover_found is True
        assert report.cover_embedded is False
        assert report.cover_error is not None
        with open(task.destination, 'rb') as f:
            assert f.read() == b'audio'

    def test_transcode_failure_raises(self, task, fake_ffmpeg):
        fake_ffmpeg.failing.add('transcode')

        with pytest.raises(ConversionError) as exc_info:
            FFmpegConverter().convert(task)

        assert exc_info.value.stderr == "transcode failed"
        assert not os.path.exists(task.destination)
        assert fake_ffmpeg.calls_for('remux') == []

    def test_existing_destination_untouched_on_failure(self, task, fake_ffmpeg):
        make_file(task.destination, content=b'previous', age_seconds=5000)
        fake_ffmpeg.failing.add('transcode')

        with pytest.raises(ConversionError):
            FFmpegConverter().convert(task)

        with open(task.destination, 'rb') as f:
            assert f.read() == b'previous'

    @pytest.mark.parametrize('failing', [set(), {'remux'}, {'transcode'}])
    def test_temporary_files_removed(self, task, fake_ffmpeg, failing):
        fake_ffmpeg.cover_bytes = b'\xff\xd8'
        fake_ffmpeg.failing.update(failing)

        try:
            FFmpegConverter().convert(task)
        except ConversionError:
            pass

        outputs = temp_outputs(fake_ffmpeg)
        assert outputs
        for path in outputs:
            assert not os.path.exists(os.path.dirname(path))

    def test_no_partial_file_left(self, task, fake_ffmpeg):
        FFmpegConverter().convert(task)

        assert os.listdir(task.destination_dir) == ['track1.m4a']

    def test_interrupt_before_install(self, task, fake_ffmpeg):
        signal_handler = Mock()

        def raise_at_finalize(stage):
            if stage == 'finalize':
                raise OperationInterrupted("shutdown requested", stage=stage)

        signal_handler.raise_if_requested.side_effect = raise_at_finalize

        with pytest.raises(OperationInterrupted):
            FFmpegConverter().convert(task, signal_handler)

        assert not os.path.exists(task.destination)
        for path in temp_outputs(fake_ffmpeg):
            assert not os.path.exists(os.path.dirname(path))

    def test_describe_steps(self, task):
        steps = FFmpegConverter().describe_steps(task)

        assert steps[0] == f"Would convert: {task.source}"
        assert any('libfdk_aac (VBR 5)' in step for step in steps)
        assert steps[-1].endswith(task.destination)


class TestDependencyCheck:
    """Test cases for the FFmpeg availability check."""

    def test_check_passes(self, fake_ffmpeg):
        converter = FFmpegConverter()

        version = converter.check_ffmpeg_dependency()

        assert version.startswith('ffmpeg version')

    def test_missing_executable(self, fake_ffmpeg):
        fake_ffmpeg.failing.add('version')

        with pytest.raises(DependencyError) as exc_info:
            FFmpegConverter().check_ffmpeg_dependency()

        assert exc_info.value.dependency_name == 'ffmpeg'

    def test_checked_once(self, fake_ffmpeg):
        converter = FFmpegConverter()

        converter.ensure_available()
        converter.ensure_available()

        assert len(fake_ffmpeg.calls_for('version')) == 1
