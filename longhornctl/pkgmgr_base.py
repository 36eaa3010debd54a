"""Common ground for the host package managers."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from collections.abc import Sequence

# Passed as the timeout when a command may run as long as it needs.
EXECUTE_NO_TIMEOUT = None


class PackageManagerType(str, enum.Enum):
    """Package managers known to the preflight tools."""

    UNKNOWN = ""
    APT = "apt"
    YUM = "yum"
    ZYPPER = "zypper"
    TRANSACTIONAL_UPDATE = "transactional-update"
    PACMAN = "pacman"


class ExecutionError(Exception):
    """A command run on the host failed."""

    def __init__(self, message: str, *, command: Sequence[str] = (), output: str = "") -> None:
        super().__init__(message)
        self.command = list(command)
        self.output = output


class PackageNotInstalledError(ExecutionError):
    """The package query ran but the package is not installed."""

    def __init__(self, name: str, output: str = "") -> None:
        super().__init__("package not installed", output=output)
        self.name = name


class Executor(ABC):
    """Runs commands on the host and returns their output."""

    @abstractmethod
    def execute(
        self,
        envs: Sequence[str],
        binary: str,
        args: Sequence[str],
        timeout: float | None = EXECUTE_NO_TIMEOUT,
    ) -> str:
        """Run binary with args and extra environment entries; return its output.

        Implementations raise ExecutionError when the command fails.
        """


class PackageManager(ABC):
    """Operations the preflight tools need from a host package manager."""

    def __init__(self, executor: Executor) -> None:
        self._executor = executor

    def _run(self, binary: str, *args: str) -> str:
        return self._executor.execute([], binary, list(args), EXECUTE_NO_TIMEOUT)

    @abstractmethod
    def update_package_list(self) -> str:
        """Refresh the list of available packages."""

    def start_package_session(self) -> str:
        """Open a transaction for installs; most managers need none."""
        return ""

    @abstractmethod
    def install_package(self, name: str) -> str:
        """Install a package."""

    @abstractmethod
    def uninstall_package(self, name: str) -> str:
        """Remove a package."""

    def execute(
        self,
        envs: Sequence[str],
        binary: str,
        args: Sequence[str],
        timeout: float | None = EXECUTE_NO_TIMEOUT,
    ) -> str:
        """Run an arbitrary command through the executor."""
        return self._executor.execute(list(envs), binary, list(args), timeout)

    def modprobe(self, module: str) -> str:
        """Load a kernel module."""
        return self._run("modprobe", module)

    def check_mod_loaded(self, module: str) -> None:
        """Raise ExecutionError unless the module appears in /proc/modules."""
        self._run("grep", module, "/proc/modules")

    def start_service(self, name: str) -> str:
        """Enable and then start a systemd unit."""
        self._run("systemctl", "-q", "enable", name)
        return self._run("systemctl", "start", name)

    def get_service_status(self, name: str) -> str:
        """Return the status of a systemd unit; raises if it is not running."""
        return self._run("systemctl", "status", "--no-pager", name)

    @abstractmethod
    def check_package_installed(self, name: str) -> str:
        """Return query output; raise if the package is not installed."""

    def need_reboot(self) -> bool:
        """Whether installing packages requires a reboot."""
        return False