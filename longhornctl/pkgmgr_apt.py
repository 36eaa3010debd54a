"""Package management through apt and dpkg."""

from __future__ import annotations

from .pkgmgr_base import PackageManager, PackageNotInstalledError


class AptPackageManager(PackageManager):
    """Debian and Ubuntu hosts."""

    def update_package_list(self) -> str:
        return self._run("apt", "update", "-y")

    def install_package(self, name: str) -> str:
        return self._run("apt", "install", name, "-y")

    def uninstall_package(self, name: str) -> str:
        return self._run("apt", "remove", name, "-y")

    def check_package_installed(self, name: str) -> str:
        # An installed package prints "<name> ii"; see dpkg-query(1) for the flags.
        output = self._run(
            "dpkg-query", "-f=${binary:Package} ${db:Status-Abbrev}", "-W", name
        )
        fields = output.split()
        if fields == [name, "ii"]:
            return output
        raise PackageNotInstalledError(name, output=output)