import os
from logging import getLogger
from unittest.mock import Mock

import pytest

from local_volume.common import NODE_LABEL_KEY
from local_volume.discovery.discoverer import Discoverer, RuntimeConfig
from local_volume.events import EventRecorder
from local_volume.models.config import UserConfig
from local_volume.models.volume import NodeInfo
from local_volume.util.api import APIUtil
from local_volume.util.volume import VolumeUtil
from tests.utils import random_lower_string


@pytest.fixture(autouse=True)
def clear_os_environment() -> None:
    """Clear the OS environment."""
    os.environ.clear()


@pytest.fixture
def node_info() -> NodeInfo:
    """Fixture with a node having the hostname label."""
    name = random_lower_string()
    return NodeInfo(name=name, uid=random_lower_string(), labels={NODE_LABEL_KEY: name})


@pytest.fixture
def user_config() -> UserConfig:
    """Fixture with a single storage class."""
    return UserConfig(
        storageClassMap={
            "local-storage": {"hostDir": "/mnt/disks", "mountDir": "/local-disks"}
        }
    )


@pytest.fixture
def vol_util() -> Mock:
    return Mock(spec=VolumeUtil)


@pytest.fixture
def api_util() -> Mock:
    mock = Mock(spec=APIUtil)
    mock.list_pvs.return_value = []
    return mock


@pytest.fixture
def recorder() -> Mock:
    return Mock(spec=EventRecorder)


@pytest.fixture
def runtime_config(
    user_config: UserConfig,
    node_info: NodeInfo,
    vol_util: Mock,
    api_util: Mock,
    recorder: Mock,
) -> RuntimeConfig:
    """Fixture with mocked collaborators."""
    return RuntimeConfig(
        user_config=user_config,
        name=random_lower_string(),
        node=node_info,
        vol_util=vol_util,
        api_util=api_util,
        recorder=recorder,
        logger=getLogger(random_lower_string()),
    )


@pytest.fixture
def discoverer(runtime_config: RuntimeConfig) -> Discoverer:
    return Discoverer(runtime_config)
