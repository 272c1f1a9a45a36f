"""Build the node affinity stored in every created volume."""

import json

from kubernetes import client
from local_volume.common import NODE_LABEL_KEY
from local_volume.exceptions import ConfigurationError
from local_volume.models.volume import NodeInfo


def generate_node_affinity(
    node: NodeInfo, *, label_key: str = NODE_LABEL_KEY
) -> client.V1NodeAffinity:
    """Require the volume consumers to be scheduled on the given node.

    The selector matches only the node's identity label value.

    Args:
        node (NodeInfo): node the discoverer runs on.
        label_key (str): identity label key.

    Returns:
        V1NodeAffinity: the required node affinity.

    Raises:
        ConfigurationError if the node has no labels or misses the identity one.

    """
    if not node.labels:
        raise ConfigurationError("Node does not have labels")
    node_value = node.labels.get(label_key)
    if node_value is None:
        raise ConfigurationError(f"Node does not have expected label {label_key}")

    return client.V1NodeAffinity(
        required_during_scheduling_ignored_during_execution=client.V1NodeSelector(
            node_selector_terms=[
                client.V1NodeSelectorTerm(
                    match_expressions=[
                        client.V1NodeSelectorRequirement(
                            key=label_key, operator="In", values=[node_value]
                        )
                    ]
                )
            ]
        )
    )


def node_affinity_annotation(affinity: client.V1NodeAffinity) -> str:
    """Serialize the affinity the way the API server expects it in annotations."""
    data = client.ApiClient().sanitize_for_serialization(affinity)
    return json.dumps(data, separators=(",", ":"))
