import json
import os

import pytest

from longhornctl.replica_getter import Getter, ReplicaInfo, volume_name_of

VOLUME = "pvc-48a6457d-585e-423b-b530-bbc68a5f948a"
REPLICA = VOLUME + "-0e2603a7"
META = {"Size": 10737418240, "Head": "volume-head-000.img", "Dirty": True}


def _make_replica(replicas, name, meta=META):
    directory = replicas / name
    directory.mkdir(parents=True)
    if meta is not None:
        (directory / "volume.meta").write_text(json.dumps(meta))
    else:
        (directory / "volume-head-000.img").write_text("data")
    return directory


@pytest.fixture
def host(tmp_path):
    host_dir = tmp_path / "host"
    replicas = host_dir / "var" / "lib" / "longhorn" / "replicas"
    replicas.mkdir(parents=True)
    proc = tmp_path / "proc"
    proc.mkdir()
    return host_dir, replicas, proc


def _getter(host_dir, proc, **kwargs):
    getter = Getter(
        host_directory=str(host_dir),
        proc_directory=str(proc),
        longhorn_data_directory="/var/lib/longhorn",
        current_node_id="node-1",
        **kwargs,
    )
    getter.prepare()
    return getter


def test_volume_name_of():
    assert volume_name_of(REPLICA) == VOLUME


def test_volume_name_of_without_dash():
    with pytest.raises(ValueError):
        volume_name_of("nodash")


def test_prepare_missing_data_directory(tmp_path):
    getter = Getter(host_directory=str(tmp_path), longhorn_data_directory="/missing")
    with pytest.raises(FileNotFoundError):
        getter.prepare()


def test_run_before_prepare():
    with pytest.raises(RuntimeError):
        Getter().run()


def test_collects_replica_not_in_use(host):
    host_dir, replicas, proc = host
    _make_replica(replicas, REPLICA)
    getter = _getter(host_dir, proc)
    getter.run()
    [info] = getter.collection[REPLICA]
    assert info.node == "node-1"
    assert info.directory == "/var/lib/longhorn/replicas/" + REPLICA
    assert info.volume_name == VOLUME
    assert info.metadata == META
    assert info.is_in_use is False
    assert info.error == ""


def test_replica_in_use(host):
    host_dir, replicas, proc = host
    directory = _make_replica(replicas, REPLICA)
    fd_dir = proc / "42" / "fd"
    fd_dir.mkdir(parents=True)
    os.symlink(str(directory / "volume.meta"), str(fd_dir / "3"))
    getter = _getter(host_dir, proc)
    getter.run()
    assert getter.collection[REPLICA][0].is_in_use is True


def test_empty_replica_directory_skipped(host):
    host_dir, replicas, proc = host
    (replicas / REPLICA).mkdir()
    getter = _getter(host_dir, proc)
    getter.run()
    assert getter.replica_names == [REPLICA]
    assert getter.collection == {}


def test_missing_metadata_reports_error(host):
    host_dir, replicas, proc = host
    _make_replica(replicas, REPLICA, meta=None)
    getter = _getter(host_dir, proc)
    getter.run()
    [info] = getter.collection[REPLICA]
    assert info.error.startswith(f"failed to get volume metadata for {REPLICA}")
    assert info.is_in_use is None


def test_filters_by_name_and_volume(host):
    host_dir, replicas, proc = host
    _make_replica(replicas, REPLICA)
    _make_replica(replicas, "pvc-other-11111111")
    (replicas / "stray-file").write_text("x")

    getter = _getter(host_dir, proc, replica_name=REPLICA)
    getter.run()
    assert list(getter.collection) == [REPLICA]

    getter = _getter(host_dir, proc, volume_name="pvc-other")
    getter.run()
    assert list(getter.collection) == ["pvc-other-11111111"]

    getter = _getter(host_dir, proc)
    getter.run()
    assert getter.replica_names == sorted([REPLICA, "pvc-other-11111111"])


def test_output_writes_json(host, tmp_path):
    host_dir, replicas, proc = host
    _make_replica(replicas, REPLICA)
    out = tmp_path / "out" / "result.json"
    getter = _getter(host_dir, proc, output_file_path=str(out))
    getter.run()
    data = getter.output()
    assert json.loads(out.read_text()) == json.loads(data)
    entry = json.loads(data)["replicas"][REPLICA][0]
    assert entry["volumeName"] == VOLUME
    assert entry["isInUse"] is False
    assert entry["metadata"] == META


def test_replica_info_to_dict_omits_unknown():
    info = ReplicaInfo(node="n", directory="/d")
    assert info.to_dict() == {"node": "n", "directory": "/d"}
    info.error = "boom"
    assert info.to_dict()["error"] == "boom"