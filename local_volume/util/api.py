"""Thin wrapper around the persistent volume endpoints of the API server."""

import json

import urllib3
from kubernetes.client.exceptions import ApiException

from kubernetes import client
from local_volume.exceptions import AlreadyExistsError, ApiError


def _error_message(e: ApiException) -> str:
    """Extract the message sent by the API server, if any."""
    try:
        data = json.loads(e.body)
        return data["message"]
    except (TypeError, ValueError, KeyError):
        return e.reason or str(e)


class APIUtil:
    """Create, delete and list persistent volumes."""

    def __init__(self, corev1: client.CoreV1Api, *, timeout: int = 10) -> None:
        self.corev1 = corev1
        self.timeout = timeout

    def create_pv(self, pv: client.V1PersistentVolume) -> client.V1PersistentVolume:
        """Submit a new persistent volume.

        Raises:
            AlreadyExistsError if a volume with the same name already exists.
            ApiError for any other failure.

        """
        try:
            return self.corev1.create_persistent_volume(
                body=pv, _request_timeout=self.timeout
            )
        except ApiException as e:
            if e.status == 409:
                raise AlreadyExistsError(_error_message(e), status=e.status) from e
            raise ApiError(_error_message(e), status=e.status) from e
        except urllib3.exceptions.HTTPError as e:
            raise ApiError(str(e)) from e

    def delete_pv(self, name: str) -> None:
        """Delete a persistent volume by name.

        A volume already gone is not an error.

        Raises:
            ApiError when the API server rejects the request.

        """
        try:
            self.corev1.delete_persistent_volume(
                name=name, _request_timeout=self.timeout
            )
        except ApiException as e:
            if e.status == 404:
                return
            raise ApiError(_error_message(e), status=e.status) from e
        except urllib3.exceptions.HTTPError as e:
            raise ApiError(str(e)) from e

    def list_pvs(self) -> list[client.V1PersistentVolume]:
        """Return every persistent volume of the cluster.

        Raises:
            ApiError when the API server can't be reached.

        """
        try:
            pvs = self.corev1.list_persistent_volume(_request_timeout=self.timeout)
        except ApiException as e:
            raise ApiError(_error_message(e), status=e.status) from e
        except urllib3.exceptions.HTTPError as e:
            raise ApiError(str(e)) from e
        return pvs.items
