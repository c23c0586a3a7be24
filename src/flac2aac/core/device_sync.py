"""
Copying the converted library onto removable devices.
"""

import os
import re
import sys
import shutil
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

import psutil
from tqdm import tqdm

from ..exceptions import DeviceSyncError

logger = logging.getLogger(__name__)

SYSFS_BLOCK = "/sys/block"


@dataclass(frozen=True)
class RemovableDevice:
    """A mounted partition that lives on removable media."""
    device: str
    mountpoint: str
    fstype: str = ""


def _linux_block_name(device: str) -> Optional[str]:
    """Map /dev/sdb1 or /dev/mmcblk0p1 to the sysfs disk name (sdb, mmcblk0)."""
    if not device.startswith("/dev/"):
        return None
    name = os.path.basename(os.path.realpath(device))
    partition_link = os.path.join("/sys/class/block", name)
    if os.path.exists(os.path.join(partition_link, "partition")):
        return os.path.basename(os.path.dirname(os.path.realpath(partition_link)))
    return name


def _darwin_disk_name(device: str) -> str:
    """Map /dev/disk3s1s1 or /dev/disk3s5 to the whole disk, disk3."""
    name = os.path.basename(device)
    match = re.match(r"disk\d+", name)
    return match.group(0) if match else name


def _is_removable(partition, boot_disk: Optional[str] = None) -> bool:
    if "removable" in partition.opts.split(","):
        return True
    if sys.platform.startswith("linux"):
        block_name = _linux_block_name(partition.device)
        if not block_name:
            return False
        flag_path = os.path.join(SYSFS_BLOCK, block_name, "removable")
        try:
            with open(flag_path) as f:
                return f.read().strip() == "1"
        except OSError:
            return False
    if sys.platform == "darwin":
        # /Volumes/Macintosh HD links back to the root volume
        if not partition.mountpoint.startswith("/Volumes/"):
            return False
        if os.path.realpath(partition.mountpoint) == "/":
            return False
        return boot_disk is None or _darwin_disk_name(partition.device) != boot_disk
    return False


def find_removable_devices() -> List[RemovableDevice]:
    """
    Enumerate mounted removable partitions.

    Returns:
        List of RemovableDevice, one per mount point
    """
    partitions = psutil.disk_partitions(all=False)
    boot_disk = None
    if sys.platform == "darwin":
        boot_disk = next(
            (_darwin_disk_name(p.device) for p in partitions if p.mountpoint == "/"), None
        )

    devices = []
    for partition in partitions:
        if _is_removable(partition, boot_disk):
            devices.append(RemovableDevice(partition.device, partition.mountpoint, partition.fstype))
    logger.info(f"Found {len(devices)} removable device(s)")
    return devices


def copy_tree(source_dir: str, target_dir: str, show_progress: bool = True) -> int:
    """
    Recursively copy source_dir into target_dir, preserving timestamps.

    Files whose size and modification time already match are left alone.

    Returns:
        int: Number of files copied
    """
    pending = []
    for dirpath, dirnames, filenames in os.walk(source_dir):
        dirnames.sort()
        rel_dir = os.path.relpath(dirpath, source_dir)
        for filename in sorted(filenames):
            src = os.path.join(dirpath, filename)
            dst = os.path.normpath(os.path.join(target_dir, rel_dir, filename))
            if _same_file_state(src, dst):
                continue
            pending.append((src, dst))

    with tqdm(total=len(pending), desc="Copying", unit="file",
              disable=None if show_progress else True) as pbar:
        for src, dst in pending:
            os.makedirs(os.path.dirname(dst), exist_ok=True)
            shutil.copy2(src, dst)
            pbar.update(1)

    return len(pending)


def _same_file_state(src: str, dst: str) -> bool:
    try:
        src_stat = os.stat(src)
        dst_stat = os.stat(dst)
    except FileNotFoundError:
        return False
    # FAT-formatted players store mtimes with two second resolution
    return (src_stat.st_size == dst_stat.st_size
            and abs(src_stat.st_mtime - dst_stat.st_mtime) < 2)


class DeviceSync:
    """Offers and performs the copy of the destination tree to devices."""

    def __init__(self, music_dir_name: str = "Music",
                 device_finder: Callable[[], List[RemovableDevice]] = find_removable_devices,
                 show_progress: bool = True):
        self.music_dir_name = music_dir_name
        self.device_finder = device_finder
        self.show_progress = show_progress

    def music_targets(self) -> List[str]:
        """Music directories at the root of every removable device."""
        targets = []
        for device in self.device_finder():
            music_dir = os.path.join(device.mountpoint, self.music_dir_name)
            if os.path.isdir(music_dir):
                targets.append(music_dir)
            else:
                logger.info(f"Skipping {device.mountpoint}: no {self.music_dir_name} directory")
        return targets

    def sync(self, library_dir: str, dry_run: bool, confirm: Callable[[str], bool]):
        """
        Copy library_dir into each device's music directory.

        Args:
            library_dir: The converted destination root
            dry_run: Only report what would be copied
            confirm: Asked once per device before a real copy

        Returns:
            tuple: (copied target directories, list of DeviceSyncError)
        """
        copied = []
        errors = []
        targets = self.music_targets()
        if not targets:
            print(f"No removable device with a {self.music_dir_name} directory found.")
            return copied, errors

        for target in targets:
            if dry_run:
                print(f"Would copy {library_dir} -> {target}")
                continue
            if not confirm(f"Copy {library_dir} to {target}?"):
                logger.info(f"Copy to {target} declined")
                continue
            try:
                count = copy_tree(library_dir, target, show_progress=self.show_progress)
            except OSError as e:
                error = DeviceSyncError(str(e), target)
                logger.error(str(error))
                errors.append(error)
                continue
            print(f"Copied {count} file(s) to {target}")
            copied.append(target)

        return copied, errors
