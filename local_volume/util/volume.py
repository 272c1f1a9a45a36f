"""Filesystem and block device probing primitives."""

import os
import stat

from local_volume.exceptions import CapacityProbeError, DirectoryListError


class VolumeUtil:
    """Read-only access to the discovery directories."""

    def read_dir(self, path: str) -> list[str]:
        """Return the names of the entries of a directory.

        Args:
            path (str): directory to list.

        Returns:
            list of str: sorted entry names.

        Raises:
            DirectoryListError if the directory is missing or not readable.

        """
        try:
            return sorted(os.listdir(path))
        except OSError as e:
            raise DirectoryListError(
                f"Error reading directory {path!r}: {e!s}", path=path
            ) from e

    def is_dir(self, path: str) -> bool:
        """Return True if the path is a directory. Symlinks are followed."""
        return stat.S_ISDIR(os.stat(path).st_mode)

    def is_block(self, path: str) -> bool:
        """Return True if the path is a block special file. Symlinks are followed."""
        return stat.S_ISBLK(os.stat(path).st_mode)

    def get_fs_capacity_byte(self, path: str) -> int:
        """Return the size of the filesystem holding the path.

        Raises:
            CapacityProbeError if statvfs fails.

        """
        try:
            st = os.statvfs(path)
        except OSError as e:
            raise CapacityProbeError(
                f"Path {path!r} fs stats error: {e!s}", path=path
            ) from e
        return st.f_blocks * st.f_frsize

    def get_block_capacity_byte(self, path: str) -> int:
        """Return the size of a block device.

        Raises:
            CapacityProbeError if the device can't be opened or sought.

        """
        try:
            fd = os.open(path, os.O_RDONLY)
            try:
                return os.lseek(fd, 0, os.SEEK_END)
            finally:
                os.close(fd)
        except OSError as e:
            raise CapacityProbeError(
                f"Path {path!r} block stats error: {e!s}", path=path
            ) from e
