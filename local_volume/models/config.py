"""Models to validate the discovery configuration."""

import posixpath
from typing import Annotated, Any

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from local_volume.utils import find_duplicates


def absolute_path(v: str) -> str:
    """Discovery directories must be absolute paths.

    Args:
        v (str): input path.

    Returns:
        str: the normalized path.

    """
    if not posixpath.isabs(v):
        raise ValueError(f"Path {v!r} is not absolute")
    return posixpath.normpath(v)


class MountConfig(BaseModel):
    """Where the volumes of a storage class live.

    The host directory is the path recorded in the created volumes, the mount
    directory is the same tree as seen by this process. All the listing and stat
    operations use the mount directory.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    host_dir: Annotated[
        str,
        Field(alias="hostDir", description="Directory path as seen by the host"),
        AfterValidator(absolute_path),
    ]
    mount_dir: Annotated[
        str,
        Field(
            alias="mountDir",
            description="Directory path as seen by the discoverer. Defaults to the "
            "host directory.",
        ),
        AfterValidator(absolute_path),
    ]

    @model_validator(mode="before")
    @classmethod
    def default_mount_dir(cls, data: Any) -> Any:
        """When the mount dir is missing, the process sees the host dir directly."""
        if isinstance(data, dict):
            host_dir = data.get("hostDir", data.get("host_dir"))
            if data.get("mountDir", data.get("mount_dir")) is None:
                data = {**data, "mountDir": host_dir}
        return data


class UserConfig(BaseModel):
    """Discovery configuration provided by the cluster administrator."""

    model_config = ConfigDict(populate_by_name=True)

    discovery_map: Annotated[
        dict[str, MountConfig],
        Field(
            alias="storageClassMap",
            description="Map between storage class names and discovery directories",
        ),
    ]
    node_labels_for_pv: Annotated[
        list[str],
        Field(
            default_factory=list,
            alias="nodeLabelsForPV",
            description="Node labels to copy on every created volume",
        ),
    ]

    @field_validator("discovery_map", mode="after")
    @classmethod
    def validate_discovery_map(
        cls, v: dict[str, MountConfig]
    ) -> dict[str, MountConfig]:
        """Two storage classes can't share the same mount directory."""
        find_duplicates(list(v.values()), "mount_dir")
        return v

    @model_validator(mode="before")
    @classmethod
    def wrap_flat_map(cls, data: Any) -> Any:
        """Accept a bare storage class map as well as the wrapped form."""
        if isinstance(data, dict) and not (
            {"storageClassMap", "discovery_map"} & data.keys()
        ):
            return {"storageClassMap": data}
        return data
