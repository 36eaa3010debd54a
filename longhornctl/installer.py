"""Installing and setting up the host dependencies on a node."""

from __future__ import annotations

import json
import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from .consts import (
    CMD_OPT_SEPARATOR,
    SPDK_PATH,
    VOLUME_MOUNT_HOST_DIRECTORY,
    DependencyModuleType,
)
from .pkgmgr_base import (
    EXECUTE_NO_TIMEOUT,
    ExecutionError,
    PackageManager,
    PackageManagerType,
)
from .report import LogCollection, write_result

logger = logging.getLogger(__name__)

_REBOOT_MESSAGE = "Need to reboot the system and execute longhornctl install preflight again"

_SPDK_MODULES = ("nvme_tcp", "uio_pci_generic", "vfio_pci")


def get_args_for_configuring_spdk_env(options: str) -> list[str]:
    """Return the arguments to bash that run the SPDK setup script with options."""
    args = [str(Path(SPDK_PATH) / "scripts/setup.sh")]
    if options:
        logger.info("Configuring SPDK environment with custom options: %s", options)
        args.extend(options.split(CMD_OPT_SEPARATOR))
    return args


@dataclass
class Installer:
    """Installs packages, loads modules and starts services needed on a node."""

    update_packages: bool = True
    enable_spdk: bool = False
    spdk_options: str = ""
    huge_page_size: int = 2048
    allow_pci: str = ""
    driver_override: str = ""
    output_file_path: str = ""
    log_level: str = "info"
    host_directory: str = VOLUME_MOUNT_HOST_DIRECTORY
    spdk_source_directory: str = "/spdk"

    collection: LogCollection = field(default_factory=LogCollection, init=False)
    packages: list[str] = field(default_factory=list, init=False)
    modules: list[str] = field(default_factory=list, init=False)
    services: list[str] = field(default_factory=list, init=False)
    spdk_dep_packages: list[str] = field(default_factory=list, init=False)
    spdk_dep_modules: list[str] = field(default_factory=list, init=False)
    _package_manager: PackageManager | None = field(default=None, init=False, repr=False)

    def prepare(
        self,
        manager_type: PackageManagerType | str,
        package_manager: PackageManager,
        kernel_release: str,
    ) -> None:
        """Choose the dependencies for the host's package manager.

        Raises ValueError when the package manager is not supported.
        """
        self.collection = LogCollection()
        try:
            kind = PackageManagerType(manager_type)
        except ValueError:
            kind = None
        kernel_release = kernel_release.rstrip("\n")

        if kind is PackageManagerType.APT:
            self.packages = ["nfs-common", "open-iscsi", "cryptsetup"]
            self.modules = ["nfs", "dm_crypt"]
            self.spdk_dep_packages = ["linux-modules-extra-" + kernel_release]
        elif kind is PackageManagerType.YUM:
            self.packages = ["nfs-utils", "iscsi-initiator-utils", "cryptsetup"]
            self.modules = ["nfs", "iscsi_tcp", "dm_crypt"]
            self.spdk_dep_packages = []
        elif kind in (PackageManagerType.ZYPPER, PackageManagerType.TRANSACTIONAL_UPDATE):
            self.packages = ["nfs-client", "open-iscsi", "cryptsetup"]
            self.modules = ["nfs", "iscsi_tcp", "dm_crypt"]
            self.spdk_dep_packages = []
        elif kind is PackageManagerType.PACMAN:
            self.packages = ["nfs-utils", "open-iscsi", "cryptsetup"]
            self.modules = ["nfs", "iscsi_tcp", "dm_crypt"]
            self.spdk_dep_packages = []
        else:
            value = getattr(manager_type, "value", manager_type)
            raise ValueError(f"package manager ({value}) is not supported")

        self.services = ["iscsid"]
        self.spdk_dep_modules = list(_SPDK_MODULES)
        self._package_manager = package_manager

    @property
    def _manager(self) -> PackageManager:
        if self._package_manager is None:
            raise RuntimeError("installer is not prepared")
        return self._package_manager

    def run(self) -> None:
        """Install and set up every dependency, stopping early if a reboot is needed."""
        if self.update_packages:
            self._update_package_list()

        if self._check_and_install_packages(self.enable_spdk):
            logger.warning(_REBOOT_MESSAGE)
            self.collection.warn.append(_REBOOT_MESSAGE)
            return

        self._probe_modules(DependencyModuleType.DEFAULT)
        self._start_services()

        if self.enable_spdk:
            self._probe_modules(DependencyModuleType.SPDK)
            self._configure_spdk_env()

    def output(self) -> str:
        """Write the collected messages as JSON and return that JSON."""
        logger.debug("Outputting preflight installer results")
        data = json.dumps({"log": self.collection.to_dict()})
        write_result(data, self.output_file_path)
        return data

    def _start_services(self) -> None:
        for service in self.services:
            logger.info("Starting service %s", service)
            try:
                self._manager.start_service(service)
            except ExecutionError as err:
                raise ExecutionError(f"failed to start service {service}: {err}") from err
            logger.info("Successfully started service %s", service)
            self.collection.info.append(f"Successfully started service {service}")

    def _probe_modules(self, module_type: DependencyModuleType) -> None:
        if module_type == DependencyModuleType.SPDK:
            modules = self.spdk_dep_modules
        elif module_type == DependencyModuleType.DEFAULT:
            modules = self.modules
        else:
            raise ValueError(f"dependency module type ({int(module_type)}) is not supported")

        for module in modules:
            logger.info("Probing module %s", module)
            try:
                self._manager.modprobe(module)
            except ExecutionError as err:
                raise ExecutionError(f"failed to probe module {module}: {err}") from err
            logger.info("Successfully probed module %s", module)
            self.collection.info.append(f"Successfully probed module {module}")

    def _check_and_install_packages(self, spdk_dependent: bool) -> bool:
        manager = self._manager
        try:
            manager.start_package_session()
        except ExecutionError as err:
            raise ExecutionError(f"failed to start package session: {err}") from err

        packages = list(self.packages)
        if spdk_dependent:
            packages.extend(self.spdk_dep_packages)

        reboot_required = False
        for package in packages:
            logger.info("Checking package %s", package)
            try:
                manager.check_package_installed(package)
            except ExecutionError:
                logger.info("Installing package %s", package)
                try:
                    manager.install_package(package)
                except ExecutionError as err:
                    raise ExecutionError(
                        f"failed to install package {package}: {err}"
                    ) from err
                logger.info("Successfully installed package %s", package)
                self.collection.info.append(f"Successfully installed package {package}")
                if manager.need_reboot():
                    reboot_required = True
            else:
                logger.info("Package %s already installed", package)
        return reboot_required

    def _update_package_list(self) -> None:
        logger.info("Updating package list")
        try:
            self._manager.update_package_list()
        except ExecutionError as err:
            raise ExecutionError(f"failed to update package list: {err}") from err
        logger.info("Successfully updated package list")

    def _configure_spdk_env(self) -> None:
        spdk_path = Path(self.host_directory) / SPDK_PATH.lstrip("/")
        shutil.rmtree(spdk_path, ignore_errors=False) if spdk_path.exists() else None
        shutil.copytree(self.spdk_source_directory, spdk_path)
        try:
            logger.info("Configuring SPDK environment")
            args = get_args_for_configuring_spdk_env(self.spdk_options)
            try:
                self._manager.execute([], "bash", args, EXECUTE_NO_TIMEOUT)
            except ExecutionError as err:
                logger.error("Failed to configure SPDK environment: %s", err)
            else:
                logger.info("Successfully configured SPDK environment")
                self.collection.info.append("Successfully configured SPDK environment")
        finally:
            shutil.rmtree(spdk_path, ignore_errors=True)