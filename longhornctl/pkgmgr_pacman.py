"""Package management through pacman."""

from __future__ import annotations

from .pkgmgr_base import PackageManager


class PacmanPackageManager(PackageManager):
    """Arch Linux hosts."""

    def update_package_list(self) -> str:
        return self._run("pacman", "-Syu", "--noconfirm")

    def install_package(self, name: str) -> str:
        return self._run("pacman", "-S", "--noconfirm", name)

    def uninstall_package(self, name: str) -> str:
        return self._run("pacman", "-R", "--noconfirm", name)

    def check_package_installed(self, name: str) -> str:
        return self._run("pacman", "-Q", name)