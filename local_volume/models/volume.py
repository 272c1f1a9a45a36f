"""Models for the local volumes handled by the discoverer."""

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, Field


class VolumeType(str, Enum):
    """Kind of backing media."""

    BLOCK = "block"
    FILESYSTEM = "file"


class BackingEntry(BaseModel):
    """A directory or block device found in a discovery directory.

    Recomputed at every pass and never persisted.
    """

    name: Annotated[str, Field(description="Base name of the entry")]
    path: Annotated[str, Field(description="Full path as seen by the discoverer")]
    volume_type: Annotated[VolumeType, Field(description="Backing media type")]
    capacity: Annotated[int, Field(ge=0, description="Capacity in bytes")]


class NodeInfo(BaseModel):
    """Identity of the node the discoverer runs on."""

    name: Annotated[str, Field(description="Node name")]
    uid: Annotated[str, Field(default="", description="Node UID")]
    labels: Annotated[
        dict[str, str] | None,
        Field(default=None, description="Node labels. None when the node has none"),
    ]


class LocalPVConfig(BaseModel):
    """Parameters used to build a local persistent volume."""

    name: Annotated[str, Field(description="Volume name")]
    host_path: Annotated[str, Field(description="Backing path as seen by the host")]
    capacity: Annotated[int, Field(ge=0, description="Capacity in bytes")]
    storage_class: Annotated[str, Field(description="Storage class name")]
    provisioner_name: Annotated[
        str, Field(description="Value of the provisioned-by annotation")
    ]
    affinity_ann: Annotated[str, Field(description="Node affinity annotation value")]
    volume_type: Annotated[
        VolumeType,
        Field(default=VolumeType.FILESYSTEM, description="Backing media type"),
    ]
    labels: Annotated[
        dict[str, str],
        Field(default_factory=dict, description="Labels copied from the node"),
    ]
