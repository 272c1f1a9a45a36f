"""Record events about persistent volumes, visible to cluster operators."""

from datetime import datetime, timezone
from logging import Logger

import urllib3
from kubernetes.client.exceptions import ApiException

from kubernetes import client

EVENT_TYPE_WARNING = "Warning"


class EventRecorder:
    """Write core/v1 events attached to persistent volumes."""

    def __init__(
        self,
        corev1: client.CoreV1Api,
        *,
        component: str,
        host: str,
        namespace: str,
        logger: Logger,
        timeout: int = 10,
    ) -> None:
        self.corev1 = corev1
        self.component = component
        self.host = host
        self.namespace = namespace
        self.logger = logger
        self.timeout = timeout

    def record_warning(
        self, pv: client.V1PersistentVolume, reason: str, message: str
    ) -> None:
        """Create a warning event for the given volume.

        A failure while recording is only logged: events are best effort.
        """
        now = datetime.now(timezone.utc)
        event = client.CoreV1Event(
            metadata=client.V1ObjectMeta(
                generate_name=f"{pv.metadata.name}.", namespace=self.namespace
            ),
            involved_object=client.V1ObjectReference(
                api_version="v1",
                kind="PersistentVolume",
                name=pv.metadata.name,
                uid=pv.metadata.uid,
                resource_version=pv.metadata.resource_version,
            ),
            reason=reason,
            message=message,
            type=EVENT_TYPE_WARNING,
            source=client.V1EventSource(component=self.component, host=self.host),
            first_timestamp=now,
            last_timestamp=now,
            count=1,
        )
        self.logger.warning("Event(%s): %s %s", pv.metadata.name, reason, message)
        try:
            self.corev1.create_namespaced_event(
                namespace=self.namespace, body=event, _request_timeout=self.timeout
            )
        except (ApiException, urllib3.exceptions.HTTPError) as e:
            self.logger.error(
                "Failed to record event %s for pv %s: %s", reason, pv.metadata.name, e
            )
