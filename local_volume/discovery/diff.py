"""Compare the discovered entries with the registered volumes."""

from dataclasses import dataclass, field

from kubernetes import client
from local_volume.cache import VolumeSnapshot
from local_volume.common import is_bound


@dataclass
class VolumeDiff:
    """Actions needed to align a storage class with its discovery directory.

    Attributes:
    ----------
        to_create (list of str): discovered names without a registered volume.
        to_delete (list of V1PersistentVolume): unbound volumes without media.
        orphaned (list of V1PersistentVolume): bound volumes without media.
    """

    to_create: list[str] = field(default_factory=list)
    to_delete: list[client.V1PersistentVolume] = field(default_factory=list)
    orphaned: list[client.V1PersistentVolume] = field(default_factory=list)


def diff_volumes(names: list[str], snapshot: VolumeSnapshot) -> VolumeDiff:
    """Split discovered names and registered volumes into the required actions.

    Args:
        names (list of str): volume names computed from the listed entries.
        snapshot (VolumeSnapshot): registered volumes of the storage class.

    Returns:
        VolumeDiff: names to create, volumes to delete and bound orphans.

    """
    result = VolumeDiff()
    backed = set()
    for name in names:
        if name not in snapshot and name not in backed:
            result.to_create.append(name)
        backed.add(name)
    for pv in snapshot.list_pvs():
        if pv.metadata.name in backed:
            continue
        if is_bound(pv):
            result.orphaned.append(pv)
        else:
            result.to_delete.append(pv)
    return result
