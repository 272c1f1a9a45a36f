"""List and classify the entries of a discovery directory."""

import posixpath

from local_volume.exceptions import UnknownMediaError
from local_volume.models.config import MountConfig
from local_volume.models.volume import BackingEntry, VolumeType
from local_volume.util.volume import VolumeUtil


def list_entries(util: VolumeUtil, mount_dir: str) -> list[str]:
    """Return the entries found in the mount directory.

    Raises:
        DirectoryListError when the directory can't be read.

    """
    return util.read_dir(mount_dir)


def get_volume_type(util: VolumeUtil, path: str) -> VolumeType:
    """Classify a path as filesystem or block media.

    The directory check runs first. A failing probe counts as a negative answer.

    Raises:
        UnknownMediaError if neither check recognizes the path.

    """
    dir_error = None
    block_error = None
    try:
        if util.is_dir(path):
            return VolumeType.FILESYSTEM
    except OSError as e:
        dir_error = e
    try:
        if util.is_block(path):
            return VolumeType.BLOCK
    except OSError as e:
        block_error = e
    raise UnknownMediaError(path, dir_error=dir_error, block_error=block_error)


def get_capacity(util: VolumeUtil, path: str, volume_type: VolumeType) -> int:
    """Return the capacity of the media in bytes.

    Raises:
        CapacityProbeError if the capacity can't be read.

    """
    if volume_type == VolumeType.BLOCK:
        return util.get_block_capacity_byte(path)
    return util.get_fs_capacity_byte(path)


def probe_entry(util: VolumeUtil, mount_config: MountConfig, name: str) -> BackingEntry:
    """Classify the entry and read its capacity.

    Raises:
        UnknownMediaError or CapacityProbeError.

    """
    path = posixpath.join(mount_config.mount_dir, name)
    volume_type = get_volume_type(util, path)
    capacity = get_capacity(util, path, volume_type)
    return BackingEntry(
        name=name, path=path, volume_type=volume_type, capacity=capacity
    )
