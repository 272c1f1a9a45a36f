import json
import logging
import os
from unittest.mock import Mock

import pytest
from pytest_cases import parametrize

from kubernetes import client
from local_volume.common import (
    ANNOTATION_NODE_AFFINITY,
    ANNOTATION_PROVISIONED_BY,
    EVENT_VOLUME_FAILED_DELETE,
    NODE_LABEL_KEY,
)
from local_volume.discovery.discoverer import (
    Discoverer,
    EntryAction,
    RuntimeConfig,
)
from local_volume.discovery.naming import generate_pv_name
from local_volume.exceptions import (
    AlreadyExistsError,
    ApiError,
    CapacityProbeError,
    ConfigurationError,
    DirectoryListError,
)
from local_volume.models.config import UserConfig
from local_volume.models.volume import NodeInfo, VolumeType
from local_volume.util.volume import VolumeUtil
from tests.utils import GIB, pv_object, random_lower_string

SC = "local-storage"


def setup_disks(vol_util: Mock) -> None:
    """disk1 is a 100GiB directory, disk2 a 50GiB block device."""
    vol_util.read_dir.return_value = ["disk1", "disk2"]
    vol_util.is_dir.side_effect = lambda path: path.endswith("disk1")
    vol_util.is_block.side_effect = lambda path: path.endswith("disk2")
    vol_util.get_fs_capacity_byte.return_value = 100 * GIB
    vol_util.get_block_capacity_byte.return_value = 50 * GIB


def registered_pv(
    runtime_config: RuntimeConfig, file: str, phase: str = "Available"
) -> client.V1PersistentVolume:
    return pv_object(
        generate_pv_name(file, runtime_config.node.name, SC),
        storage_class=SC,
        provisioner=runtime_config.name,
        phase=phase,
    )


def created_specs(api_util: Mock) -> dict:
    return {
        c.args[0].metadata.name: c.args[0] for c in api_util.create_pv.call_args_list
    }


def test_node_affinity_built_once(runtime_config: RuntimeConfig) -> None:
    discoverer = Discoverer(runtime_config)
    data = json.loads(discoverer.node_affinity_ann)
    selector = data["requiredDuringSchedulingIgnoredDuringExecution"]
    expression = selector["nodeSelectorTerms"][0]["matchExpressions"][0]
    assert expression["values"] == [runtime_config.node.labels[NODE_LABEL_KEY]]


@parametrize("labels", [None, {"foo": "bar"}])
def test_node_without_hostname_label(
    runtime_config: RuntimeConfig, labels: dict[str, str] | None
) -> None:
    runtime_config.node = NodeInfo(name=random_lower_string(), labels=labels)
    with pytest.raises(ConfigurationError, match="Failed to generate node affinity"):
        Discoverer(runtime_config)


def test_create_new_volumes(
    discoverer: Discoverer,
    runtime_config: RuntimeConfig,
    vol_util: Mock,
    api_util: Mock,
) -> None:
    setup_disks(vol_util)

    report = discoverer.discover_local_volumes()

    node = runtime_config.node.name
    name1 = generate_pv_name("disk1", node, SC)
    name2 = generate_pv_name("disk2", node, SC)
    assert api_util.create_pv.call_count == 2
    specs = created_specs(api_util)
    assert set(specs) == {name1, name2}

    assert specs[name1].spec.capacity == {"storage": str(100 * GIB)}
    assert specs[name1].spec.local.path == "/mnt/disks/disk1"
    assert specs[name1].spec.volume_mode == "Filesystem"
    assert specs[name2].spec.capacity == {"storage": str(50 * GIB)}
    assert specs[name2].spec.local.path == "/mnt/disks/disk2"
    assert specs[name2].spec.volume_mode == "Block"
    for spec in specs.values():
        assert spec.spec.storage_class_name == SC
        annotations = spec.metadata.annotations
        assert annotations[ANNOTATION_PROVISIONED_BY] == runtime_config.name
        assert annotations[ANNOTATION_NODE_AFFINITY] == discoverer.node_affinity_ann

    vol_util.get_fs_capacity_byte.assert_called_once_with("/local-disks/disk1")
    vol_util.get_block_capacity_byte.assert_called_once_with("/local-disks/disk2")
    assert sorted(report.classes[SC].created) == sorted([name1, name2])
    assert not report.has_errors
    api_util.delete_pv.assert_not_called()


def test_no_duplicate_create(
    discoverer: Discoverer,
    runtime_config: RuntimeConfig,
    vol_util: Mock,
    api_util: Mock,
) -> None:
    setup_disks(vol_util)
    api_util.list_pvs.return_value = [
        registered_pv(runtime_config, "disk1"),
        registered_pv(runtime_config, "disk2"),
    ]

    report = discoverer.discover_local_volumes()

    api_util.create_pv.assert_not_called()
    api_util.delete_pv.assert_not_called()
    vol_util.is_dir.assert_not_called()
    assert report.classes[SC].results == []


def test_delete_vanished_unbound(
    discoverer: Discoverer,
    runtime_config: RuntimeConfig,
    vol_util: Mock,
    api_util: Mock,
    recorder: Mock,
) -> None:
    vol_util.read_dir.return_value = []
    pv = registered_pv(runtime_config, "disk1")
    api_util.list_pvs.return_value = [pv]

    report = discoverer.discover_local_volumes()

    api_util.delete_pv.assert_called_once_with(pv.metadata.name)
    api_util.create_pv.assert_not_called()
    recorder.record_warning.assert_not_called()
    assert report.classes[SC].deleted == [pv.metadata.name]


def test_keep_vanished_bound(
    discoverer: Discoverer,
    runtime_config: RuntimeConfig,
    vol_util: Mock,
    api_util: Mock,
    caplog,
) -> None:
    vol_util.read_dir.return_value = []
    pv = registered_pv(runtime_config, "disk1", phase="Bound")
    api_util.list_pvs.return_value = [pv]

    for _ in range(3):
        caplog.clear()
        with caplog.at_level(logging.ERROR):
            report = discoverer.discover_local_volumes()
        assert report.classes[SC].orphaned == [pv.metadata.name]
        assert report.has_errors
        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert len(errors) == 1
        assert f"Missing backend storage media for pv {pv.metadata.name}" in (
            errors[0].getMessage()
        )

    api_util.delete_pv.assert_not_called()


def test_create_already_exists(
    discoverer: Discoverer, vol_util: Mock, api_util: Mock
) -> None:
    setup_disks(vol_util)
    api_util.create_pv.side_effect = [
        AlreadyExistsError(random_lower_string(), status=409),
        Mock(),
    ]

    report = discoverer.discover_local_volumes()

    assert api_util.create_pv.call_count == 2
    class_report = report.classes[SC]
    assert len(class_report.names(EntryAction.EXISTS)) == 1
    assert len(class_report.created) == 1
    assert not report.has_errors


def test_create_failure_does_not_stop_siblings(
    discoverer: Discoverer, vol_util: Mock, api_util: Mock
) -> None:
    setup_disks(vol_util)
    api_util.create_pv.side_effect = [
        ApiError(random_lower_string(), status=500),
        Mock(),
    ]

    report = discoverer.discover_local_volumes()

    assert api_util.create_pv.call_count == 2
    assert len(report.classes[SC].failed) == 1
    assert len(report.classes[SC].created) == 1
    assert report.has_errors


def test_unknown_media_skipped(
    discoverer: Discoverer, vol_util: Mock, api_util: Mock
) -> None:
    vol_util.read_dir.return_value = ["file"]
    vol_util.is_dir.return_value = False
    vol_util.is_block.return_value = False

    report = discoverer.discover_local_volumes()

    api_util.create_pv.assert_not_called()
    api_util.delete_pv.assert_not_called()
    vol_util.get_fs_capacity_byte.assert_not_called()
    vol_util.get_block_capacity_byte.assert_not_called()
    assert len(report.classes[SC].skipped) == 1
    assert report.classes[SC].results[0].path == "/local-disks/file"


def test_capacity_error_skipped(
    discoverer: Discoverer, vol_util: Mock, api_util: Mock
) -> None:
    setup_disks(vol_util)
    vol_util.get_fs_capacity_byte.side_effect = CapacityProbeError(
        random_lower_string(), path="/local-disks/disk1"
    )

    report = discoverer.discover_local_volumes()

    assert api_util.create_pv.call_count == 1
    assert len(report.classes[SC].skipped) == 1
    assert len(report.classes[SC].created) == 1


def test_unclassifiable_registered_entry_is_not_deleted(
    discoverer: Discoverer,
    runtime_config: RuntimeConfig,
    vol_util: Mock,
    api_util: Mock,
) -> None:
    """A listed entry keeps its volume even if it can't be probed anymore."""
    vol_util.read_dir.return_value = ["disk1"]
    vol_util.is_dir.side_effect = OSError("stat failed")
    vol_util.is_block.side_effect = OSError("stat failed")
    api_util.list_pvs.return_value = [registered_pv(runtime_config, "disk1")]

    discoverer.discover_local_volumes()

    api_util.delete_pv.assert_not_called()
    api_util.create_pv.assert_not_called()


def test_delete_failure_records_event(
    discoverer: Discoverer,
    runtime_config: RuntimeConfig,
    vol_util: Mock,
    api_util: Mock,
    recorder: Mock,
) -> None:
    vol_util.read_dir.return_value = []
    pv1 = registered_pv(runtime_config, "disk1")
    pv2 = registered_pv(runtime_config, "disk2")
    api_util.list_pvs.return_value = [pv1, pv2]
    api_util.delete_pv.side_effect = [ApiError("forbidden", status=403), None]

    report = discoverer.discover_local_volumes()

    assert api_util.delete_pv.call_count == 2
    recorder.record_warning.assert_called_once()
    args = recorder.record_warning.call_args.args
    assert args[0] is pv1
    assert args[1] == EVENT_VOLUME_FAILED_DELETE
    assert f"Error deleting PV {pv1.metadata.name!r}: forbidden" == args[2]
    assert report.classes[SC].failed == [pv1.metadata.name]
    assert report.classes[SC].deleted == [pv2.metadata.name]


def test_foreign_volumes_ignored(
    discoverer: Discoverer,
    runtime_config: RuntimeConfig,
    vol_util: Mock,
    api_util: Mock,
) -> None:
    vol_util.read_dir.return_value = []
    api_util.list_pvs.return_value = [
        pv_object(random_lower_string(), storage_class=SC, provisioner=None),
        pv_object(
            random_lower_string(), storage_class=SC, provisioner=random_lower_string()
        ),
        pv_object(
            random_lower_string(),
            storage_class=random_lower_string(),
            provisioner=runtime_config.name,
        ),
    ]

    report = discoverer.discover_local_volumes()

    api_util.delete_pv.assert_not_called()
    assert report.classes[SC].results == []


def test_list_pvs_failure_aborts_pass(
    discoverer: Discoverer, vol_util: Mock, api_util: Mock
) -> None:
    api_util.list_pvs.side_effect = ApiError(random_lower_string())

    report = discoverer.discover_local_volumes()

    assert report.has_errors
    assert report.error is not None
    assert report.classes == {}
    vol_util.read_dir.assert_not_called()


@parametrize("multithreading", [False, True])
def test_listing_error_does_not_stop_other_classes(
    runtime_config: RuntimeConfig,
    vol_util: Mock,
    api_util: Mock,
    multithreading: bool,
) -> None:
    runtime_config.user_config = UserConfig(
        storageClassMap={
            "broken": {"hostDir": "/mnt/broken"},
            SC: {"hostDir": "/mnt/disks", "mountDir": "/local-disks"},
        }
    )
    runtime_config.multithreading = multithreading

    def read_dir(path: str) -> list[str]:
        if path == "/mnt/broken":
            raise DirectoryListError("no such directory", path=path)
        return ["disk1", "disk2"]

    setup_disks(vol_util)
    vol_util.read_dir.side_effect = read_dir

    report = Discoverer(runtime_config).discover_local_volumes()

    assert isinstance(report.classes["broken"].listing_error, DirectoryListError)
    assert report.classes["broken"].results == []
    assert len(report.classes[SC].created) == 2
    assert api_util.create_pv.call_count == 2


@parametrize("multithreading", [False, True])
def test_unexpected_error_does_not_stop_other_classes(
    runtime_config: RuntimeConfig,
    vol_util: Mock,
    api_util: Mock,
    multithreading: bool,
) -> None:
    runtime_config.user_config = UserConfig(
        storageClassMap={
            "broken": {"hostDir": "/mnt/broken"},
            SC: {"hostDir": "/mnt/disks", "mountDir": "/local-disks"},
        }
    )
    runtime_config.multithreading = multithreading

    def read_dir(path: str) -> list[str]:
        if path == "/mnt/broken":
            raise RuntimeError("unexpected")
        return ["disk1", "disk2"]

    setup_disks(vol_util)
    vol_util.read_dir.side_effect = read_dir

    report = Discoverer(runtime_config).discover_local_volumes()

    assert isinstance(report.classes["broken"].error, RuntimeError)
    assert report.classes["broken"].has_errors
    assert len(report.classes[SC].created) == 2
    assert not report.classes[SC].has_errors
    assert report.has_errors
    assert api_util.create_pv.call_count == 2


def test_entry_name_not_valid_utf8(
    runtime_config: RuntimeConfig, api_util: Mock, tmp_path
) -> None:
    """Entries whose name is not valid UTF-8 get a volume like the others."""
    os.mkdir(os.path.join(tmp_path, "disk1"))
    try:
        os.mkdir(os.path.join(os.fsencode(tmp_path), b"disk\xff"))
    except OSError:
        pytest.skip("filesystem does not accept non UTF-8 names")
    runtime_config.user_config = UserConfig(
        storageClassMap={SC: {"hostDir": str(tmp_path)}}
    )
    runtime_config.vol_util = VolumeUtil()

    report = Discoverer(runtime_config).discover_local_volumes()

    node = runtime_config.node.name
    assert api_util.create_pv.call_count == 2
    assert set(report.classes[SC].created) == {
        generate_pv_name("disk1", node, SC),
        generate_pv_name(os.fsdecode(b"disk\xff"), node, SC),
    }


@parametrize("multithreading", [False, True])
def test_classes_use_their_own_snapshot(
    runtime_config: RuntimeConfig,
    vol_util: Mock,
    api_util: Mock,
    multithreading: bool,
) -> None:
    """A volume of a class is never deleted while scanning another class."""
    runtime_config.user_config = UserConfig(
        storageClassMap={
            SC: {"hostDir": "/mnt/disks", "mountDir": "/local-disks"},
            "fast-disks": {"hostDir": "/mnt/fast"},
        }
    )
    runtime_config.multithreading = multithreading
    vol_util.read_dir.side_effect = lambda path: (
        ["disk1"] if path == "/local-disks" else []
    )
    vol_util.is_dir.return_value = True
    vol_util.get_fs_capacity_byte.return_value = GIB
    api_util.list_pvs.return_value = [registered_pv(runtime_config, "disk1")]

    report = Discoverer(runtime_config).discover_local_volumes()

    api_util.delete_pv.assert_not_called()
    api_util.create_pv.assert_not_called()
    assert set(report.classes) == {SC, "fast-disks"}
    assert not report.has_errors


def test_node_labels_for_pv(
    runtime_config: RuntimeConfig, vol_util: Mock, api_util: Mock
) -> None:
    zone = random_lower_string()
    runtime_config.node = NodeInfo(
        name="node1",
        labels={NODE_LABEL_KEY: "node1", "topology.kubernetes.io/zone": zone},
    )
    runtime_config.user_config = UserConfig(
        storageClassMap={SC: {"hostDir": "/mnt/disks", "mountDir": "/local-disks"}},
        nodeLabelsForPV=["topology.kubernetes.io/zone", "missing-label"],
    )
    setup_disks(vol_util)

    discoverer = Discoverer(runtime_config)
    discoverer.discover_local_volumes()

    assert discoverer.pv_labels == {"topology.kubernetes.io/zone": zone}
    for spec in created_specs(api_util).values():
        assert spec.metadata.labels == {"topology.kubernetes.io/zone": zone}


def test_create_pv_uses_host_path(
    discoverer: Discoverer, runtime_config: RuntimeConfig, api_util: Mock
) -> None:
    mount_config = runtime_config.user_config.discovery_map[SC]

    result = discoverer.create_pv("disk1", SC, mount_config, GIB, VolumeType.BLOCK)

    assert result.action == EntryAction.CREATED
    assert result.path == "/mnt/disks/disk1"
    pv = api_util.create_pv.call_args.args[0]
    assert pv.spec.local.path == "/mnt/disks/disk1"
    assert pv.metadata.labels is None
