"""
Pytest configuration and fixtures for flac2aac tests.
"""

import pytest
import os
import time
import tempfile
import shutil


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir)


def make_file(path, content=b'fLaC' + b'\x00' * 64, age_seconds=None):
    """Write a placeholder file, optionally back-dating its mtime."""
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'wb') as f:
        f.write(content)
    if age_seconds is not None:
        stamp = time.time() - age_seconds
        os.utime(path, (stamp, stamp))
    return path


@pytest.fixture
def library(temp_dir):
    """A source tree with one album and an empty destination root path."""
    source_dir = os.path.join(temp_dir, 'flac')
    dest_dir = os.path.join(temp_dir, 'aac')
    make_file(os.path.join(source_dir, 'album', 'track1.flac'), age_seconds=1000)
    return source_dir, dest_dir


@pytest.fixture
def larger_library(temp_dir):
    """A source tree with two albums, a nested disc folder and files that are not converted."""
    source_dir = os.path.join(temp_dir, 'flac')
    dest_dir = os.path.join(temp_dir, 'aac')
    for rel_path in ('A/track2.flac', 'A/track10.flac', 'B/Disc 1/01 Intro.flac'):
        make_file(os.path.join(source_dir, rel_path), age_seconds=1000)
    make_file(os.path.join(source_dir, 'A', 'cover.jpg'), content=b'\xff\xd8')
    make_file(os.path.join(source_dir, 'A', 'notes.txt'), content=b'liner notes')
    make_file(os.path.join(source_dir, 'A', 'bonus.FLAC'), age_seconds=1000)
    return source_dir, dest_dir


class MockResult:
    """Stand-in for subprocess.CompletedProcess."""

    def __init__(self, returncode=0, stdout="", stderr=""):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class FakeFFmpeg:
    """
    Replacement for subprocess.run that understands the converter's FFmpeg
    invocations and writes plausible output files.
    """

    def __init__(self):
        self.calls = []
        self.failing = set()
        self.cover_bytes = None  # None: the source has no picture stream

    def operation(self, cmd):
        if '-version' in cmd:
            return 'version'
        if 'attached_pic' in cmd:
            return 'remux'
        if '-an' in cmd:
            return 'cover'
        if '0:a' in cmd:
            return 'transcode'
        return 'unknown'

    def calls_for(self, operation):
        return [cmd for cmd in self.calls if self.operation(cmd) == operation]

    def __call__(self, cmd, **kwargs):
        self.calls.append(list(cmd))
        operation = self.operation(cmd)

        if operation == 'version':
            if 'version' in self.failing:
                raise FileNotFoundError(cmd[0])
            return MockResult(stdout="ffmpeg version 6.1 Copyright (c) 2000-2023")

        if operation in self.failing:
            return MockResult(returncode=1, stderr=f"{operation} failed")

        output = cmd[-1]
        if operation == 'cover':
            if self.cover_bytes is None:
                return MockResult(returncode=1, stderr="Output file #0 does not contain any stream")
            content = self.cover_bytes
        elif operation == 'transcode':
            content = b'audio'
        elif operation == 'remux':
            content = b'muxed'
        else:
            return MockResult(returncode=1, stderr="unexpected command")

        with open(output, 'wb') as f:
            f.write(content)
        return MockResult()


@pytest.fixture
def fake_ffmpeg(monkeypatch):
    """Route the converter's FFmpeg calls through FakeFFmpeg."""
    fake = FakeFFmpeg()
    monkeypatch.setattr('flac2aac.core.converter.subprocess.run', fake)
    return fake


@pytest.fixture
def isolated_config(temp_dir, monkeypatch):
    """Point the settings lookup at a file that does not exist."""
    monkeypatch.setenv('FLAC2AAC_CONFIG', os.path.join(temp_dir, 'no-such-config.json'))
    return temp_dir
