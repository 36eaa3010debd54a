import pytest

from longhornctl.pkgmgr_apt import AptPackageManager
from longhornctl.pkgmgr_base import (
    EXECUTE_NO_TIMEOUT,
    ExecutionError,
    Executor,
    PackageManager,
    PackageNotInstalledError,
)

QUERY_FORMAT = "-f=${binary:Package} ${db:Status-Abbrev}"


class FakeExecutor(Executor):
    def __init__(self, responses=None):
        self.responses = responses or {}
        self.calls = []

    def execute(self, envs, binary, args, timeout=EXECUTE_NO_TIMEOUT):
        self.calls.append((list(envs), binary, list(args), timeout))
        result = self.responses.get((binary, tuple(args)), "")
        if isinstance(result, Exception):
            raise result
        return result


def query_key(name):
    return ("dpkg-query", (QUERY_FORMAT, "-W", name))


def test_is_a_package_manager():
    manager = AptPackageManager(FakeExecutor())
    assert isinstance(manager, PackageManager)
    assert manager.need_reboot() is False


def test_update_package_list_command():
    executor = FakeExecutor({("apt", ("update", "-y")): "done"})
    assert AptPackageManager(executor).update_package_list() == "done"
    assert executor.calls == [([], "apt", ["update", "-y"], EXECUTE_NO_TIMEOUT)]


def test_install_package_command():
    executor = FakeExecutor()
    AptPackageManager(executor).install_package("open-iscsi")
    assert executor.calls[0][1:3] == ("apt", ["install", "open-iscsi", "-y"])


def test_uninstall_package_command():
    executor = FakeExecutor()
    AptPackageManager(executor).uninstall_package("open-iscsi")
    assert executor.calls[0][1:3] == ("apt", ["remove", "open-iscsi", "-y"])


def test_installed_package_returns_output():
    executor = FakeExecutor({query_key("nfs-common"): "nfs-common ii"})
    assert AptPackageManager(executor).check_package_installed("nfs-common") == "nfs-common ii"
    assert executor.calls[0][1:3] == ("dpkg-query", [QUERY_FORMAT, "-W", "nfs-common"])


def test_installed_package_tolerates_surrounding_whitespace():
    output = "  nfs-common ii\n"
    executor = FakeExecutor({query_key("nfs-common"): output})
    assert AptPackageManager(executor).check_package_installed("nfs-common") == output


def test_removed_package_is_not_installed():
    executor = FakeExecutor({query_key("nfs-common"): "nfs-common rc"})
    with pytest.raises(PackageNotInstalledError) as info:
        AptPackageManager(executor).check_package_installed("nfs-common")
    assert info.value.output == "nfs-common rc"
    assert info.value.name == "nfs-common"


def test_other_package_name_is_not_installed():
    executor = FakeExecutor({query_key("cryptsetup"): "cryptsetup-bin ii"})
    with pytest.raises(PackageNotInstalledError):
        AptPackageManager(executor).check_package_installed("cryptsetup")


def test_unexpected_field_count_is_not_installed():
    executor = FakeExecutor({query_key("dmsetup"): ""})
    with pytest.raises(PackageNotInstalledError):
        AptPackageManager(executor).check_package_installed("dmsetup")


def test_query_failure_propagates():
    failure = ExecutionError("no packages found")
    executor = FakeExecutor({query_key("dmsetup"): failure})
    with pytest.raises(ExecutionError) as info:
        AptPackageManager(executor).check_package_installed("dmsetup")
    assert info.value is failure