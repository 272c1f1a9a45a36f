"""Constants and helpers shared by the discoverer components."""

from kubernetes import client
from local_volume.models.volume import LocalPVConfig, VolumeType

NODE_LABEL_KEY = "kubernetes.io/hostname"
ANNOTATION_PROVISIONED_BY = "pv.kubernetes.io/provisioned-by"
ANNOTATION_NODE_AFFINITY = "volume.alpha.kubernetes.io/node-affinity"
EVENT_VOLUME_FAILED_DELETE = "VolumeFailedDelete"
PHASE_BOUND = "Bound"
PV_NAME_PREFIX = "local-pv"


def create_local_pv_spec(config: LocalPVConfig) -> client.V1PersistentVolume:
    """Build the persistent volume object to submit to the API server.

    Args:
        config (LocalPVConfig): volume parameters.

    Returns:
        V1PersistentVolume: the volume specification.

    """
    if config.volume_type == VolumeType.BLOCK:
        volume_mode = "Block"
    else:
        volume_mode = "Filesystem"
    return client.V1PersistentVolume(
        api_version="v1",
        kind="PersistentVolume",
        metadata=client.V1ObjectMeta(
            name=config.name,
            labels=dict(config.labels) or None,
            annotations={
                ANNOTATION_PROVISIONED_BY: config.provisioner_name,
                ANNOTATION_NODE_AFFINITY: config.affinity_ann,
            },
        ),
        spec=client.V1PersistentVolumeSpec(
            capacity={"storage": str(config.capacity)},
            local=client.V1LocalVolumeSource(path=config.host_path),
            access_modes=["ReadWriteOnce"],
            persistent_volume_reclaim_policy="Delete",
            storage_class_name=config.storage_class,
            volume_mode=volume_mode,
        ),
    )


def provisioned_by(pv: client.V1PersistentVolume) -> str | None:
    """Return the provisioner that created the volume, if any."""
    annotations = pv.metadata.annotations or {}
    return annotations.get(ANNOTATION_PROVISIONED_BY)


def is_bound(pv: client.V1PersistentVolume) -> bool:
    """Return True when the volume is claimed by a consumer."""
    return pv.status is not None and pv.status.phase == PHASE_BOUND
