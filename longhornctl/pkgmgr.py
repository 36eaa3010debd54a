"""Choosing a package manager implementation by its type."""

from __future__ import annotations

from .pkgmgr_apt import AptPackageManager
from .pkgmgr_base import Executor, PackageManager, PackageManagerType
from .pkgmgr_pacman import PacmanPackageManager
from .pkgmgr_rpm import (
    TransactionalUpdatePackageManager,
    YumPackageManager,
    ZypperPackageManager,
)

_MANAGERS: dict[PackageManagerType, type[PackageManager]] = {
    PackageManagerType.APT: AptPackageManager,
    PackageManagerType.YUM: YumPackageManager,
    PackageManagerType.ZYPPER: ZypperPackageManager,
    PackageManagerType.TRANSACTIONAL_UPDATE: TransactionalUpdatePackageManager,
    PackageManagerType.PACMAN: PacmanPackageManager,
}


def new_package_manager(
    manager_type: PackageManagerType | str, executor: Executor
) -> PackageManager:
    """Return the package manager for manager_type, running commands through executor.

    Raises ValueError for an unknown type.
    """
    try:
        cls = _MANAGERS[PackageManagerType(manager_type)]
    except (ValueError, KeyError):
        value = getattr(manager_type, "value", manager_type)
        raise ValueError(f"unknown package manager type: {value}") from None
    return cls(executor)