"""Checking that a node meets the host requirements."""

from __future__ import annotations

import json
import logging
import platform
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from .consts import (
    APP_NAME_PREFLIGHT_CONTAINER_OPTIMIZED_OS,
    KUBE_APP_LABEL,
    KUBE_APP_VALUE_DNS,
    VOLUME_MOUNT_HOST_DIRECTORY,
    OperatingSystem,
)
from .pkgmgr_base import (
    EXECUTE_NO_TIMEOUT,
    ExecutionError,
    PackageManager,
    PackageManagerType,
)
from .report import LogCollection, write_result

logger = logging.getLogger(__name__)

_SYS_BOOT_DIRECTORY = "boot"
_SYS_ETC_DIRECTORY = "etc"
_NFS_MOUNT_CONFIG = "nfsmount.conf"
_NFS_VERSION_KEYS = ("defaultvers", "nfsvers")

_NFS_KERNEL_CONFIGS = {
    "CONFIG_NFS_V4_2": "nfs",
    "CONFIG_NFS_V4_1": "nfs",
    "CONFIG_NFS_V4": "nfs",
}

_SPDK_INSTRUCTION_SETS: dict[str, list[str]] = {"amd64": ["sse4_2"]}

_ARCH_NAMES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
}

_SPDK_MODULES = ("nvme_tcp", "uio_pci_generic", "vfio_pci")


class NotConfiguredError(Exception):
    """A setting the check looks for is not configured on the host."""


@dataclass
class Deployment:
    """The parts of a Kubernetes Deployment the DNS check looks at."""

    name: str
    replicas: int | None = None
    ready_replicas: int = 0


def _current_arch() -> str:
    machine = platform.machine().lower()
    return _ARCH_NAMES.get(machine, machine)


def _kernel_version() -> str:
    return platform.release()


def _read_boot_kernel_config(boot_directory: str, kernel_version: str) -> dict[str, str]:
    """Parse the KEY=value lines of the kernel build configuration."""
    path = Path(boot_directory) / f"config-{kernel_version}"
    config: dict[str, str] = {}
    for line in path.read_text(encoding="utf-8", errors="replace").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        config[key.strip()] = value.strip()
    return config


def _is_module_loaded(module: str) -> bool:
    with open("/proc/modules", encoding="utf-8") as modules:
        return any(line.split(" ", 1)[0] == module for line in modules)


def _read_default_nfs_version(etc_directory: str) -> tuple[int, int]:
    """Return the default NFS protocol version from nfsmount.conf.

    Raises NotConfiguredError when no default version is set.
    """
    path = Path(etc_directory) / _NFS_MOUNT_CONFIG
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError:
        raise NotConfiguredError(f"{path} does not exist") from None

    version = None
    for line in text.splitlines():
        line = line.split("#", 1)[0].strip()
        if not line or line.startswith("[") or "=" not in line:
            continue
        key, value = (part.strip() for part in line.split("=", 1))
        if key.lower() in _NFS_VERSION_KEYS:
            version = value
    if not version:
        raise NotConfiguredError("default NFS version is not configured")

    major, _, minor = version.partition(".")
    return int(major), int(minor or 0)


@dataclass
class Checker:
    """Checks services, packages, kernel modules and settings needed on a node."""

    enable_spdk: bool = False
    huge_page_size: int = 2048
    userspace_driver: str = ""
    output_file_path: str = ""
    log_level: str = "info"
    host_directory: str = VOLUME_MOUNT_HOST_DIRECTORY
    arch: str = field(default_factory=_current_arch)

    list_dns_deployments: Callable[[], Sequence[Deployment]] | None = None
    daemon_set_ready: Callable[[], bool] | None = None
    kernel_version_reader: Callable[[], str] = _kernel_version
    kernel_config_reader: Callable[[str, str], Mapping[str, str]] = _read_boot_kernel_config
    module_loaded_reader: Callable[[str], bool] = _is_module_loaded
    nfs_version_reader: Callable[[str], tuple[int, int]] = _read_default_nfs_version

    collection: LogCollection = field(default_factory=LogCollection, init=False)
    os_release: str = field(default="", init=False)
    packages: list[str] = field(default_factory=list, init=False)
    modules: list[str] = field(default_factory=list, init=False)
    services: list[str] = field(default_factory=list, init=False)
    spdk_dep_packages: list[str] = field(default_factory=list, init=False)
    spdk_dep_modules: list[str] = field(default_factory=list, init=False)
    _package_manager: PackageManager | None = field(default=None, init=False, repr=False)

    def prepare(
        self,
        os_release: str,
        manager_type: PackageManagerType | str,
        package_manager: PackageManager | None,
    ) -> None:
        """Choose what to check for the host's operating system and package manager.

        Raises ValueError when the package manager is not supported.
        """
        self.collection = LogCollection()
        self.os_release = os_release
        if os_release == OperatingSystem.CONTAINER_OPTIMIZED_OS.value:
            return

        try:
            kind = PackageManagerType(manager_type)
        except ValueError:
            kind = None

        if kind is PackageManagerType.APT:
            self.packages = ["nfs-common", "open-iscsi", "cryptsetup", "dmsetup"]
        elif kind is PackageManagerType.YUM:
            self.packages = ["nfs-utils", "iscsi-initiator-utils", "cryptsetup", "device-mapper"]
        elif kind in (PackageManagerType.ZYPPER, PackageManagerType.TRANSACTIONAL_UPDATE):
            self.packages = ["nfs-client", "open-iscsi", "cryptsetup", "device-mapper"]
        elif kind is PackageManagerType.PACMAN:
            self.packages = ["nfs-utils", "open-iscsi", "cryptsetup", "device-mapper"]
        else:
            value = getattr(manager_type, "value", manager_type)
            raise ValueError(
                f"operating system ({os_release}) package manager ({value}) is not supported"
            )

        self.modules = ["dm_crypt"]
        self.services = ["multipathd.service"]
        self.spdk_dep_packages = []
        self.spdk_dep_modules = list(_SPDK_MODULES)
        self._package_manager = package_manager

    @property
    def _manager(self) -> PackageManager:
        if self._package_manager is None:
            raise RuntimeError("checker is not prepared")
        return self._package_manager

    def run(self) -> None:
        """Run every check, recording findings in the collection."""
        self._check_kube_dns()

        if self.os_release == OperatingSystem.CONTAINER_OPTIMIZED_OS.value:
            logger.info("Checking preflight for %s", OperatingSystem.CONTAINER_OPTIMIZED_OS.value)
            self._check_container_optimized_os()
            return

        self._check_iscsid_service()
        self._check_multipath_service()
        self._check_nfsv4_support()
        self._check_packages_installed(spdk_dependent=False)
        self._check_modules_loaded(spdk_dependent=False)

        if self.enable_spdk:
            self._check_cpu_instruction_set(_SPDK_INSTRUCTION_SETS)
            self._check_huge_pages()
            self._check_packages_installed(spdk_dependent=True)
            self._check_modules_loaded(spdk_dependent=True)

    def output(self) -> str:
        """Write the collected messages as JSON and return that JSON."""
        logger.debug("Outputting preflight checks results")
        data = json.dumps({"log": self.collection.to_dict()})
        write_result(data, self.output_file_path)
        return data

    def _check_container_optimized_os(self) -> None:
        name = APP_NAME_PREFLIGHT_CONTAINER_OPTIMIZED_OS
        if self.daemon_set_ready is None:
            raise RuntimeError(f"failed to get DaemonSet {name}: no Kubernetes client configured")
        try:
            ready = self.daemon_set_ready()
        except Exception as err:
            raise RuntimeError(f"failed to get DaemonSet {name}: {err}") from err
        if not ready:
            raise RuntimeError(f"DaemonSet {name} is not ready")

    def _service_running(self, name: str) -> bool:
        try:
            self._manager.get_service_status(name)
        except ExecutionError:
            return False
        return True

    def _check_multipath_service(self) -> None:
        logger.info("Checking multipathd service status")
        if self._service_running("multipathd.service"):
            self.collection.warn.append(
                "multipathd.service is running. Please refer to "
                "https://longhorn.io/kb/troubleshooting-volume-with-multipath/ for more information."
            )
        elif self._service_running("multipathd.socket"):
            self.collection.warn.append(
                "multipathd.service is inactive, but it can still be activated by multipathd.socket"
            )

    def _check_iscsid_service(self) -> None:
        logger.info("Checking iscsid service status")
        if self._service_running("iscsid.service"):
            self.collection.info.append("Service iscsid is running")
        elif self._service_running("iscsid.socket"):
            self.collection.info.append(
                "Service iscsid is inactive, but it can still be activated by iscsid.socket"
            )
        else:
            self.collection.error.append("Neither iscsid.service nor iscsid.socket is running")

    def _check_huge_pages(self) -> None:
        logger.info("Checking if HugePages is enabled")
        if self.huge_page_size == 0:
            logger.error("HUGEMEM environment variable is not set")
            return

        required = self.huge_page_size >> 1
        total = self._huge_pages_total()
        if total < required:
            self.collection.error.append(
                "HugePages is insufficient. Required 2MiB HugePages: "
                f"{required} pages, Total 2MiB HugePages: {total} pages"
            )
            return
        self.collection.info.append("HugePages is enabled")

    def _huge_pages_total(self) -> int:
        try:
            output = self._manager.execute(
                [], "grep", ["HugePages_Total", "/proc/meminfo"], EXECUTE_NO_TIMEOUT
            )
        except ExecutionError as err:
            raise ExecutionError(
                f"failed to check HugePages: failed to get total number of HugePages: {err}"
            ) from err
        line = output.split("\n")[0]
        try:
            return int(line.split(":")[1].strip())
        except (IndexError, ValueError) as err:
            raise ValueError(
                f"failed to check HugePages: failed to convert HugePages total to a number: {err}"
            ) from err

    def _check_cpu_instruction_set(self, instruction_sets: Mapping[str, Sequence[str]]) -> None:
        logger.info("Checking CPU instruction set")
        logger.info("Detected CPU architecture: %s", self.arch)

        sets = instruction_sets.get(self.arch)
        if sets is None:
            self.collection.error.append(f"CPU model is not supported: {self.arch}")
            return

        for instruction_set in sets:
            try:
                self._manager.execute(
                    [], "grep", [instruction_set, "/proc/cpuinfo"], EXECUTE_NO_TIMEOUT
                )
            except ExecutionError as err:
                self.collection.error.append(
                    f"CPU instruction set {instruction_set} is not supported: {err}"
                )
            else:
                self.collection.info.append(f"CPU instruction set {instruction_set} is supported")

    def _check_packages_installed(self, spdk_dependent: bool) -> None:
        packages = self.spdk_dep_packages if spdk_dependent else self.packages
        if not packages:
            return

        logger.info("Checking if required packages are installed")
        for package in packages:
            try:
                self._manager.check_package_installed(package)
            except ExecutionError as err:
                self.collection.error.append(f"Package {package} is not installed: {err}")
            else:
                self.collection.info.append(f"Package {package} is installed")

    def _check_modules_loaded(self, spdk_dependent: bool) -> None:
        if spdk_dependent:
            modules = list(self.spdk_dep_modules)
            if self.userspace_driver:
                modules.append(self.userspace_driver)
        else:
            modules = list(self.modules)
        if not modules:
            return

        logger.info("Checking if required modules are loaded")
        for module in modules:
            logger.info("Checking if module %s is loaded", module)
            try:
                self._manager.check_mod_loaded(module)
            except ExecutionError as err:
                self.collection.error.append(f"Module {module} is not loaded: {err}")
            else:
                self.collection.info.append(f"Module {module} is loaded")

    def _kernel_supports_nfsv4(self) -> bool:
        kernel_version = self.kernel_version_reader()
        boot_directory = str(Path(self.host_directory) / _SYS_BOOT_DIRECTORY)
        config = self.kernel_config_reader(boot_directory, kernel_version)

        for item, module in _NFS_KERNEL_CONFIGS.items():
            value = config.get(item)
            if value == "y":
                return True
            if value == "m":
                try:
                    if self.module_loaded_reader(module):
                        return True
                except OSError:
                    continue
        return False

    def _check_nfsv4_support(self) -> None:
        logger.info("Checking if NFS4 (either 4.0, 4.1 or 4.2) is supported")

        if not self._kernel_supports_nfsv4():
            self.collection.error.append("NFS4 is not supported")
            return

        etc_directory = str(Path(self.host_directory) / _SYS_ETC_DIRECTORY)
        try:
            major, minor = self.nfs_version_reader(etc_directory)
        except NotConfiguredError:
            supported = True  # NFSv4 is the default
        except Exception:
            self.collection.error.append("Failed to read NFS mount config")
            raise
        else:
            supported = major == 4 and minor in (0, 1, 2)

        if not supported:
            self.collection.warn.append(
                "NFS4 is supported, but default protocol version is not 4, 4.1, or 4.2. "
                "Please refer to the NFS mount configuration manual page for more "
                "information: man 5 nfsmount.conf"
            )
        self.collection.info.append("NFS4 is supported")

    def _check_kube_dns(self) -> None:
        logger.info("Checking if CoreDNS has multiple replicas")
        label = f"{KUBE_APP_LABEL}={KUBE_APP_VALUE_DNS}"

        if self.list_dns_deployments is None:
            self.collection.error.append(
                f"Failed to list Kube DNS with label {label}: no Kubernetes client configured"
            )
            return
        try:
            deployments = list(self.list_dns_deployments())
        except Exception as err:
            self.collection.error.append(f"Failed to list Kube DNS with label {label}: {err}")
            return

        if len(deployments) != 1:
            self.collection.warn.append(
                f"Found {len(deployments)} deployments with label {label}; expected 1"
            )
            return

        deployment = deployments[0]
        if deployment.replicas is None or deployment.replicas < 2:
            self.collection.warn.append(
                f'Kube DNS "{deployment.name}" is set with fewer than 2 replicas; '
                "consider increasing replica count for high availability"
            )
            return

        if deployment.ready_replicas < 2:
            self.collection.warn.append(
                f'Kube DNS "{deployment.name}" has fewer than 2 ready replicas; '
                "some replicas may not be running or ready"
            )
            return

        self.collection.info.append(
            f'Kube DNS "{deployment.name}" is set with {deployment.replicas} replicas '
            f"and {deployment.ready_replicas} ready replicas"
        )