"""Point-in-time view of the volumes registered for one storage class."""

from collections.abc import Iterable

from kubernetes import client
from local_volume.common import provisioned_by


class VolumeSnapshot:
    """Volumes created by this provisioner for a single storage class.

    The snapshot is built at the beginning of a pass and owned by the unit
    scanning that storage class; it is never updated while the unit runs.
    """

    def __init__(
        self, storage_class: str, pvs: Iterable[client.V1PersistentVolume] = ()
    ) -> None:
        self.storage_class = storage_class
        self._pvs = {pv.metadata.name: pv for pv in pvs}

    @classmethod
    def from_volumes(
        cls,
        pvs: Iterable[client.V1PersistentVolume],
        *,
        storage_class: str,
        provisioner: str,
    ) -> "VolumeSnapshot":
        """Keep only the volumes of the storage class created by the provisioner."""
        return cls(
            storage_class,
            (
                pv
                for pv in pvs
                if pv.spec is not None
                and pv.spec.storage_class_name == storage_class
                and provisioned_by(pv) == provisioner
            ),
        )

    def get_pv(self, name: str) -> client.V1PersistentVolume | None:
        return self._pvs.get(name)

    def list_pvs(self) -> list[client.V1PersistentVolume]:
        return list(self._pvs.values())

    def names(self) -> set[str]:
        return set(self._pvs)

    def __contains__(self, name: object) -> bool:
        return name in self._pvs

    def __len__(self) -> int:
        return len(self._pvs)
