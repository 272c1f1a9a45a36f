"""Discover local volumes and keep the persistent volumes aligned with them."""

import posixpath
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from logging import Logger

from kubernetes import client
from local_volume.cache import VolumeSnapshot
from local_volume.common import EVENT_VOLUME_FAILED_DELETE, create_local_pv_spec
from local_volume.discovery.affinity import (
    generate_node_affinity,
    node_affinity_annotation,
)
from local_volume.discovery.diff import diff_volumes
from local_volume.discovery.naming import generate_pv_name
from local_volume.discovery.scanner import list_entries, probe_entry
from local_volume.events import EventRecorder
from local_volume.exceptions import (
    AlreadyExistsError,
    ApiError,
    CapacityProbeError,
    ConfigurationError,
    DirectoryListError,
    UnknownMediaError,
)
from local_volume.logger import get_class_logger
from local_volume.models.config import MountConfig, UserConfig
from local_volume.models.volume import LocalPVConfig, NodeInfo, VolumeType
from local_volume.util.api import APIUtil
from local_volume.util.volume import VolumeUtil
from local_volume.utils import format_capacity


@dataclass
class RuntimeConfig:
    """Collaborators and settings used by the discoverer."""

    user_config: UserConfig
    name: str
    node: NodeInfo
    vol_util: VolumeUtil
    api_util: APIUtil
    recorder: EventRecorder
    logger: Logger
    multithreading: bool = False


class EntryAction(str, Enum):
    CREATED = "created"
    EXISTS = "exists"
    DELETED = "deleted"
    ORPHANED = "orphaned"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class EntryResult:
    """Outcome of the processing of a single entry or volume."""

    action: EntryAction
    name: str
    path: str | None = None
    error: Exception | None = None


@dataclass
class ClassReport:
    """Outcome of a storage class unit.

    Entry results are accumulated as they come; no failure interrupts the unit.
    """

    storage_class: str
    results: list[EntryResult] = field(default_factory=list)
    listing_error: Exception | None = None
    error: Exception | None = None

    def add(self, result: EntryResult) -> None:
        self.results.append(result)

    def names(self, action: EntryAction) -> list[str]:
        return [r.name for r in self.results if r.action == action]

    @property
    def created(self) -> list[str]:
        return self.names(EntryAction.CREATED)

    @property
    def deleted(self) -> list[str]:
        return self.names(EntryAction.DELETED)

    @property
    def orphaned(self) -> list[str]:
        return self.names(EntryAction.ORPHANED)

    @property
    def skipped(self) -> list[str]:
        return self.names(EntryAction.SKIPPED)

    @property
    def failed(self) -> list[str]:
        return self.names(EntryAction.FAILED)

    @property
    def has_errors(self) -> bool:
        return (
            self.listing_error is not None
            or self.error is not None
            or len(self.orphaned) > 0
            or len(self.skipped) > 0
            or len(self.failed) > 0
        )


@dataclass
class PassReport:
    """Outcome of a reconciliation pass over all the storage classes."""

    classes: dict[str, ClassReport] = field(default_factory=dict)
    error: Exception | None = None

    @property
    def has_errors(self) -> bool:
        return self.error is not None or any(
            r.has_errors for r in self.classes.values()
        )


class Discoverer:
    """Scan the discovery directories and create or delete local volumes.

    The node affinity annotation is computed once, when the object is created,
    and shared by every volume this instance creates.
    """

    def __init__(self, config: RuntimeConfig) -> None:
        self.config = config
        self.logger = config.logger
        try:
            affinity = generate_node_affinity(config.node)
        except ConfigurationError as e:
            raise ConfigurationError(
                f"Failed to generate node affinity: {e.message}"
            ) from e
        self.node_affinity_ann = node_affinity_annotation(affinity)
        self.pv_labels = self._get_pv_labels()

    def _get_pv_labels(self) -> dict[str, str]:
        """Node labels to copy on the created volumes."""
        labels = {}
        node_labels = self.config.node.labels or {}
        for key in self.config.user_config.node_labels_for_pv:
            value = node_labels.get(key)
            if value is None:
                msg = f"Node does not have label {key}. It won't be set on the volumes"
                self.logger.warning(msg)
                continue
            labels[key] = value
        return labels

    def discover_local_volumes(self) -> PassReport:
        """Run one discovery-and-reconciliation pass.

        Registered volumes are listed once and split in one snapshot per storage
        class. Each storage class is processed as an independent unit, in parallel
        threads if multithreading is enabled. The method returns once every unit
        completed.

        Returns:
            PassReport: the outcome of each storage class unit.

        """
        report = PassReport()
        try:
            pvs = self.config.api_util.list_pvs()
        except ApiError as e:
            self.logger.error("Error listing persistent volumes: %s", e.message)
            self.logger.error("Pass aborted. It will be retried on the next one")
            report.error = e
            return report

        discovery_map = self.config.user_config.discovery_map
        snapshots = {
            storage_class: VolumeSnapshot.from_volumes(
                pvs, storage_class=storage_class, provisioner=self.config.name
            )
            for storage_class in discovery_map
        }

        if self.config.multithreading:
            self.logger.debug("Multithreading mode enabled")
            with ThreadPoolExecutor() as executor:
                futures = {
                    executor.submit(
                        self._discover_unit,
                        storage_class,
                        mount_config,
                        snapshots[storage_class],
                    ): storage_class
                    for storage_class, mount_config in discovery_map.items()
                }
                for future, storage_class in futures.items():
                    report.classes[storage_class] = future.result()
        else:
            self.logger.debug("Sequential mode enabled")
            for storage_class, mount_config in discovery_map.items():
                report.classes[storage_class] = self._discover_unit(
                    storage_class, mount_config, snapshots[storage_class]
                )
        return report

    def _discover_unit(
        self, storage_class: str, mount_config: MountConfig, snapshot: VolumeSnapshot
    ) -> ClassReport:
        """Process a storage class without letting its failures reach the others."""
        try:
            return self.discover_volumes_at_path(storage_class, mount_config, snapshot)
        except Exception as e:
            self.logger.exception(
                "Unexpected error discovering storage class %s", storage_class
            )
            return ClassReport(storage_class=storage_class, error=e)

    def discover_volumes_at_path(
        self, storage_class: str, mount_config: MountConfig, snapshot: VolumeSnapshot
    ) -> ClassReport:
        """Create volumes for the new entries and delete the ones without media.

        Args:
            storage_class (str): storage class name.
            mount_config (MountConfig): discovery directories of the class.
            snapshot (VolumeSnapshot): registered volumes of the class.

        Returns:
            ClassReport: the outcome of each entry and volume.

        """
        logger = get_class_logger(self.logger, storage_class)
        report = ClassReport(storage_class=storage_class)
        msg = f"Discovering volumes at hostpath {mount_config.host_dir!r}, "
        msg += f"mount path {mount_config.mount_dir!r} "
        msg += f"for storage class {storage_class!r}"
        logger.debug(msg)

        try:
            files = list_entries(self.config.vol_util, mount_config.mount_dir)
        except DirectoryListError as e:
            logger.error("Error reading directory: %s", e.message)
            report.listing_error = e
            return report

        pv_names = {
            file: generate_pv_name(file, self.config.node.name, storage_class)
            for file in files
        }
        diff = diff_volumes(list(pv_names.values()), snapshot)

        # check for new disk/dir
        to_create = set(diff.to_create)
        for file, pv_name in pv_names.items():
            if pv_name not in to_create:
                continue
            report.add(
                self._discover_entry(file, storage_class, mount_config, logger=logger)
            )

        # cleanup removed disk/dir
        for pv in diff.to_delete:
            report.add(self.delete_pv(pv, logger=logger))
        for pv in diff.orphaned:
            logger.error("Missing backend storage media for pv %s", pv.metadata.name)
            report.add(EntryResult(action=EntryAction.ORPHANED, name=pv.metadata.name))

        return report

    def _discover_entry(
        self,
        file: str,
        storage_class: str,
        mount_config: MountConfig,
        *,
        logger: Logger,
    ) -> EntryResult:
        """Probe a new entry and create its volume."""
        try:
            entry = probe_entry(self.config.vol_util, mount_config, file)
        except (UnknownMediaError, CapacityProbeError) as e:
            logger.error(e.message)
            return EntryResult(
                action=EntryAction.SKIPPED,
                name=generate_pv_name(file, self.config.node.name, storage_class),
                path=posixpath.join(mount_config.mount_dir, file),
                error=e,
            )
        return self.create_pv(
            file,
            storage_class,
            mount_config,
            entry.capacity,
            entry.volume_type,
            logger=logger,
        )

    def create_pv(
        self,
        file: str,
        storage_class: str,
        mount_config: MountConfig,
        capacity_byte: int,
        volume_type: VolumeType,
        *,
        logger: Logger | None = None,
    ) -> EntryResult:
        """Submit a new local volume.

        A volume with the same name created in the meantime is a success.
        """
        logger = logger or self.logger
        pv_name = generate_pv_name(file, self.config.node.name, storage_class)
        outside_path = posixpath.join(mount_config.host_dir, file)

        msg = f"Found new volume of volumeType {volume_type.value!r} at host path "
        msg += f"{outside_path!r} with capacity {capacity_byte} "
        msg += f"({format_capacity(capacity_byte)}), creating Local PV {pv_name!r}"
        logger.info(msg)

        pv_spec = create_local_pv_spec(
            LocalPVConfig(
                name=pv_name,
                host_path=outside_path,
                capacity=capacity_byte,
                storage_class=storage_class,
                provisioner_name=self.config.name,
                affinity_ann=self.node_affinity_ann,
                volume_type=volume_type,
                labels=self.pv_labels,
            )
        )

        try:
            self.config.api_util.create_pv(pv_spec)
        except AlreadyExistsError:
            logger.info("PV %r for volume at %r already exists", pv_name, outside_path)
            return EntryResult(
                action=EntryAction.EXISTS, name=pv_name, path=outside_path
            )
        except ApiError as e:
            msg = f"Error creating PV {pv_name!r} for volume at {outside_path!r}: "
            msg += e.message
            logger.error(msg)
            return EntryResult(
                action=EntryAction.FAILED, name=pv_name, path=outside_path, error=e
            )
        logger.info("Created PV %r for volume at %r", pv_name, outside_path)
        return EntryResult(action=EntryAction.CREATED, name=pv_name, path=outside_path)

    def delete_pv(
        self, pv: client.V1PersistentVolume, *, logger: Logger | None = None
    ) -> EntryResult:
        """Delete a volume whose media disappeared.

        On failure a warning event is recorded against the volume.
        """
        logger = logger or self.logger
        name = pv.metadata.name
        try:
            self.config.api_util.delete_pv(name)
        except ApiError as e:
            msg = f"Error deleting PV {name!r}: {e.message}"
            logger.error(msg)
            self.config.recorder.record_warning(pv, EVENT_VOLUME_FAILED_DELETE, msg)
            return EntryResult(action=EntryAction.FAILED, name=name, error=e)
        logger.info("Deleted PV %r", name)
        return EntryResult(action=EntryAction.DELETED, name=name)
