"""Gathering information about the replica data directories on a node."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .consts import VOLUME_MOUNT_HOST_DIRECTORY
from .report import write_result

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIRECTORY = "/var/lib/longhorn"
HOST_PROC_DIRECTORY = "/host/proc"
_VOLUME_META_FILE = "volume.meta"


def volume_name_of(replica_name: str) -> str:
    """Return the volume name of a replica data directory name.

    The volume name is everything before the last dash. Raises ValueError
    when the name holds no dash.
    """
    head, sep, _ = replica_name.rpartition("-")
    if not sep:
        raise ValueError(f"replica name {replica_name!r} holds no volume name")
    return head


@dataclass
class ReplicaInfo:
    """What is known about one replica data directory."""

    node: str = ""
    directory: str = ""
    is_in_use: bool | None = None
    volume_name: str = ""
    metadata: dict[str, Any] | None = None
    error: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the information as a JSON-ready mapping, leaving out unknown parts."""
        result: dict[str, Any] = {"node": self.node, "directory": self.directory}
        if self.is_in_use is not None:
            result["isInUse"] = self.is_in_use
        if self.volume_name:
            result["volumeName"] = self.volume_name
        if self.metadata is not None:
            result["metadata"] = self.metadata
        if self.error:
            result["error"] = self.error
        return result


def _list_open_files(proc_directory: Path, directory: str) -> list[str]:
    """Return the paths under directory held open by any process."""
    prefix = directory.rstrip("/") + "/"
    opened: list[str] = []
    for entry in os.scandir(proc_directory):
        if not entry.name.isdigit():
            continue
        fd_directory = Path(entry.path) / "fd"
        try:
            descriptors = list(os.scandir(fd_directory))
        except OSError:
            continue
        for descriptor in descriptors:
            try:
                target = os.readlink(descriptor.path)
            except OSError:
                continue
            if target == directory or target.startswith(prefix):
                opened.append(target)
    return opened


def _read_volume_meta(path: Path) -> dict[str, Any]:
    with path.open(encoding="utf-8") as meta:
        return json.load(meta)


@dataclass
class Getter:
    """Collects information about the replicas stored in the data directory."""

    replica_name: str = ""
    volume_name: str = ""
    longhorn_data_directory: str = ""
    output_file_path: str = ""
    current_node_id: str = ""
    log_level: str = "info"
    host_directory: str = VOLUME_MOUNT_HOST_DIRECTORY
    proc_directory: str = HOST_PROC_DIRECTORY

    collection: dict[str, list[ReplicaInfo]] = field(default_factory=dict, init=False)
    replica_names: list[str] = field(default_factory=list, init=False)
    _replicas_directory: Path | None = field(default=None, init=False, repr=False)

    def prepare(self) -> None:
        """Resolve the data directory on the host.

        Raises FileNotFoundError when it does not exist.
        """
        data_directory = self.longhorn_data_directory or DEFAULT_DATA_DIRECTORY
        resolved = Path(self.host_directory) / data_directory.lstrip("/")
        if not resolved.is_dir():
            raise FileNotFoundError(
                f"failed to get Longhorn data directory: {resolved} does not exist"
            )
        self.longhorn_data_directory = str(resolved)
        self._replicas_directory = resolved / "replicas"
        self.collection = {}
        logger.debug(
            "Replica getter writes to %s, data directory %s",
            self.output_file_path or "stdout",
            resolved,
        )

    @property
    def _replicas(self) -> Path:
        if self._replicas_directory is None:
            raise RuntimeError("replica getter is not prepared")
        return self._replicas_directory

    def run(self) -> None:
        """Collect the information of every matching replica."""
        self.replica_names = self._replica_names_in_directory()
        for replica_name in self.replica_names:
            info = self._replica_info(replica_name)
            if info is None:
                continue
            self.collection.setdefault(replica_name, []).append(info)

    def output(self) -> str:
        """Write the collection as JSON and return that JSON."""
        logger.debug("Outputting replica getter results")
        data = json.dumps(
            {
                "replicas": {
                    name: [info.to_dict() for info in infos]
                    for name, infos in self.collection.items()
                }
            }
        )
        write_result(data, self.output_file_path)
        return data

    def _replica_names_in_directory(self) -> list[str]:
        directory = self._replicas
        logger.info("Searching for replicas in %s", directory)

        names: list[str] = []
        for entry in sorted(os.scandir(directory), key=lambda e: e.name):
            if not entry.is_dir():
                continue
            name = entry.name
            if self.replica_name and self.replica_name != name:
                continue
            if self.volume_name and self.volume_name != volume_name_of(name):
                continue
            names.append(name)
        return names

    def _replica_info(self, replica_name: str) -> ReplicaInfo | None:
        logger.info("Getting replica info for %s", replica_name)

        replica_directory = self._replicas / replica_name
        info = ReplicaInfo(node=self.current_node_id)
        info.directory = str(replica_directory).removeprefix(str(Path(self.host_directory)))

        try:
            is_empty = not any(replica_directory.iterdir())
        except OSError as err:
            info.error = f"failed to check if directory {info.directory} is empty: {err}"
            return info

        if is_empty:
            logger.warning("Replica directory %s is empty", info.directory)
            return None

        info.volume_name = volume_name_of(replica_name)
        try:
            info.metadata = _read_volume_meta(replica_directory / _VOLUME_META_FILE)
        except (OSError, ValueError) as err:
            info.error = f"failed to get volume metadata for {replica_name}: {err}"
            return info

        try:
            info.is_in_use = self._is_replica_in_use(replica_name)
        except OSError as err:
            info.error = f"failed to check if replica {replica_name} is in use: {err}"
        return info

    def _is_replica_in_use(self, name: str) -> bool:
        replica_directory = self._replicas / name
        if not replica_directory.exists():
            raise FileNotFoundError(f"replica directory {replica_directory} does not exist")

        logger.debug("Listing open files in %s", replica_directory)
        try:
            opened = _list_open_files(Path(self.proc_directory), str(replica_directory))
        except OSError as err:
            raise OSError(f"failed to list open files in {replica_directory}: {err}") from err
        return bool(opened)