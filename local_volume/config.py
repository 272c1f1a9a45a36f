"""Application settings."""

from functools import lru_cache
from pathlib import Path
from typing import Annotated

from pydantic import AfterValidator, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def invalid_empty(v: str | None) -> str | None:
    """An empty string is not a valid input.

    Args:
        v (str | None): input string.

    Returns:
        str: the input string

    """
    if v == "":
        raise ValueError("Empty string is not a valid value")
    return v


class Settings(BaseSettings):
    """Settings for the application."""

    APP_NAME: Annotated[
        str, Field(default="local-volume-discoverer", description="Application name.")
    ]
    MY_NODE_NAME: Annotated[
        str,
        Field(description="Name of the node this discoverer is running on."),
        AfterValidator(invalid_empty),
    ]
    PROVISIONER_NAME: Annotated[
        str | None,
        Field(
            default=None,
            description="Name written in the provisioned-by annotation. When not set "
            "it is built from the node name and UID.",
        ),
        AfterValidator(invalid_empty),
    ]
    DISCOVERY_CONFIG: Annotated[
        Path,
        Field(
            default=Path("/etc/provisioner/config/storageClassMap"),
            description="Path to the YAML file with the storage class to discovery "
            "directories map.",
        ),
    ]
    DISCOVERY_PERIOD: Annotated[
        float,
        Field(
            default=10,
            gt=0,
            description="Seconds to wait between two reconciliation passes.",
        ),
    ]
    MULTITHREADING: Annotated[
        bool,
        Field(
            default=False,
            description="Scan the storage classes of a pass in parallel threads",
        ),
    ]
    KUBECONFIG: Annotated[
        Path | None,
        Field(
            default=None,
            description="Path to a kubeconfig file. When not set the in-cluster "
            "configuration is used.",
        ),
    ]
    EVENTS_NAMESPACE: Annotated[
        str,
        Field(
            default="default",
            description="Namespace where warning events about volumes are written.",
        ),
    ]
    API_TIMEOUT: Annotated[
        int, Field(default=10, gt=0, description="API server request timeout (s).")
    ]

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Retrieve cached settings.

    Returns:
        Settings: Cached settings value.

    """
    return Settings()
