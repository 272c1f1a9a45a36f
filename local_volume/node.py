"""Retrieve the identity of the node the discoverer runs on."""

import urllib3
from kubernetes.client.exceptions import ApiException

from kubernetes import client
from local_volume.exceptions import ConfigurationError
from local_volume.models.volume import NodeInfo


def get_node(corev1: client.CoreV1Api, name: str, *, timeout: int = 10) -> NodeInfo:
    """Read the node object once, at startup.

    Args:
        corev1 (CoreV1Api): API client.
        name (str): node name.
        timeout (int): request timeout.

    Returns:
        NodeInfo: node name, UID and labels.

    Raises:
        ConfigurationError if the node can't be retrieved.

    """
    try:
        node = corev1.read_node(name=name, _request_timeout=timeout)
    except (ApiException, urllib3.exceptions.HTTPError) as e:
        raise ConfigurationError(f"Could not get node {name!r}: {e!s}") from e
    return NodeInfo(
        name=node.metadata.name,
        uid=node.metadata.uid or "",
        labels=node.metadata.labels,
    )


def default_provisioner_name(node: NodeInfo) -> str:
    """Provisioner name unique to this node."""
    return f"local-volume-provisioner-{node.name}-{node.uid}"
