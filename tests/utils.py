import string
from random import choices, randint

from kubernetes import client
from local_volume.common import ANNOTATION_PROVISIONED_BY

GIB = 1024**3


def random_lower_string() -> str:
    """Return a generic random string."""
    return "".join(choices(string.ascii_lowercase, k=32))


def random_abs_path() -> str:
    """Return a random absolute path."""
    return "/" + "/".join(random_lower_string()[: randint(1, 16)] for _ in range(3))


def pv_object(
    name: str,
    *,
    storage_class: str,
    provisioner: str | None,
    phase: str = "Available",
) -> client.V1PersistentVolume:
    """Return a persistent volume as returned by the API server."""
    annotations = {}
    if provisioner is not None:
        annotations[ANNOTATION_PROVISIONED_BY] = provisioner
    return client.V1PersistentVolume(
        metadata=client.V1ObjectMeta(
            name=name, annotations=annotations, uid=random_lower_string()
        ),
        spec=client.V1PersistentVolumeSpec(storage_class_name=storage_class),
        status=client.V1PersistentVolumeStatus(phase=phase),
    )
