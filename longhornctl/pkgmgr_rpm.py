"""Package management on RPM-based hosts: yum, zypper and transactional-update."""

from __future__ import annotations

from .pkgmgr_base import PackageManager

_TRANSACTIONAL_UPDATE = "transactional-update"


class _RpmQueryMixin(PackageManager):
    """Answers package queries through the RPM database."""

    def check_package_installed(self, name: str) -> str:
        return self._run("rpm", "-q", name)


class YumPackageManager(_RpmQueryMixin):
    """Red Hat, CentOS, Fedora and related hosts."""

    def update_package_list(self) -> str:
        return self._run("yum", "update", "-y")

    def install_package(self, name: str) -> str:
        return self._run("yum", "install", name, "-y")

    def uninstall_package(self, name: str) -> str:
        return self._run("yum", "remove", name, "-y")

    def check_package_installed(self, name: str) -> str:
        return super().check_package_installed(name)


class ZypperPackageManager(_RpmQueryMixin):
    """openSUSE and SUSE Linux Enterprise hosts."""

    def update_package_list(self) -> str:
        return self._run("zypper", "update", "-y")

    def install_package(self, name: str) -> str:
        return self._run("zypper", "--non-interactive", "install", name)

    def uninstall_package(self, name: str) -> str:
        return self._run("zypper", "--non-interactive", "remove", name)

    def check_package_installed(self, name: str) -> str:
        return super().check_package_installed(name)


class TransactionalUpdatePackageManager(_RpmQueryMixin):
    """Immutable SUSE hosts such as SLE Micro.

    Installs go into a new snapshot, so a reboot is always needed before
    the packages take effect.
    """

    def update_package_list(self) -> str:
        return self._run(_TRANSACTIONAL_UPDATE, "pkg", "update", "-y")

    def start_package_session(self) -> str:
        """Create a snapshot layer that later installs continue with --continue."""
        return self._run(_TRANSACTIONAL_UPDATE, "--drop-if-no-change")

    def install_package(self, name: str) -> str:
        return self._run(
            _TRANSACTIONAL_UPDATE, "--continue", "--non-interactive", "pkg", "install", name
        )

    def uninstall_package(self, name: str) -> str:
        return self._run(
            _TRANSACTIONAL_UPDATE, "--continue", "--non-interactive", "pkg", "remove", name
        )

    def check_package_installed(self, name: str) -> str:
        return super().check_package_installed(name)

    def need_reboot(self) -> bool:
        return True