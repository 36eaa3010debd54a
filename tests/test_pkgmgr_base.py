import pytest

from longhornctl.pkgmgr_base import (
    EXECUTE_NO_TIMEOUT,
    ExecutionError,
    Executor,
    PackageManager,
    PackageManagerType,
    PackageNotInstalledError,
)


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


class MinimalManager(PackageManager):
    def update_package_list(self):
        return self._run("refresh")

    def install_package(self, name):
        return self._run("add", name)

    def uninstall_package(self, name):
        return self._run("del", name)

    def check_package_installed(self, name):
        return self._run("query", name)


def test_package_manager_is_abstract():
    with pytest.raises(TypeError):
        PackageManager(FakeExecutor())


def test_executor_is_abstract():
    with pytest.raises(TypeError):
        Executor()


def test_package_manager_type_from_string():
    assert PackageManagerType("transactional-update") is PackageManagerType.TRANSACTIONAL_UPDATE
    assert PackageManagerType("") is PackageManagerType.UNKNOWN


def test_package_manager_type_rejects_unknown():
    with pytest.raises(ValueError):
        PackageManagerType("qlist")


def test_start_package_session_runs_nothing():
    executor = FakeExecutor()
    manager = MinimalManager(executor)
    assert PackageManager.start_package_session(manager) == ""
    assert executor.calls == []


def test_need_reboot_defaults_false():
    manager = MinimalManager(FakeExecutor())
    assert PackageManager.need_reboot(manager) is False


def test_modprobe_command():
    executor = FakeExecutor({("modprobe", ("dm_crypt",)): "loaded"})
    manager = MinimalManager(executor)
    assert PackageManager.modprobe(manager, "dm_crypt") == "loaded"
    assert executor.calls == [([], "modprobe", ["dm_crypt"], EXECUTE_NO_TIMEOUT)]


def test_check_mod_loaded_greps_proc_modules():
    executor = FakeExecutor()
    manager = MinimalManager(executor)
    assert PackageManager.check_mod_loaded(manager, "nvme_tcp") is None
    assert executor.calls[0][1:3] == ("grep", ["nvme_tcp", "/proc/modules"])


def test_check_mod_loaded_raises_when_missing():
    failure = ExecutionError("exit status 1")
    executor = FakeExecutor({("grep", ("vfio_pci", "/proc/modules")): failure})
    manager = MinimalManager(executor)
    with pytest.raises(ExecutionError) as info:
        PackageManager.check_mod_loaded(manager, "vfio_pci")
    assert info.value is failure


def test_start_service_enables_then_starts():
    executor = FakeExecutor({("systemctl", ("start", "iscsid")): "started"})
    manager = MinimalManager(executor)
    assert PackageManager.start_service(manager, "iscsid") == "started"
    assert [call[2] for call in executor.calls] == [
        ["-q", "enable", "iscsid"],
        ["start", "iscsid"],
    ]


def test_start_service_stops_after_failed_enable():
    executor = FakeExecutor(
        {("systemctl", ("-q", "enable", "iscsid")): ExecutionError("no such unit")}
    )
    manager = MinimalManager(executor)
    with pytest.raises(ExecutionError):
        PackageManager.start_service(manager, "iscsid")
    assert len(executor.calls) == 1


def test_get_service_status_command():
    executor = FakeExecutor({("systemctl", ("status", "--no-pager", "multipathd.service")): "active"})
    manager = MinimalManager(executor)
    assert PackageManager.get_service_status(manager, "multipathd.service") == "active"
    assert executor.calls[0][1:3] == (
        "systemctl",
        ["status", "--no-pager", "multipathd.service"],
    )


def test_execute_passes_everything_through():
    executor = FakeExecutor({("bash", ("setup.sh",)): "ok"})
    manager = MinimalManager(executor)
    assert PackageManager.execute(manager, ["A=1"], "bash", ["setup.sh"], 30) == "ok"
    assert executor.calls == [(["A=1"], "bash", ["setup.sh"], 30)]


def test_execution_error_keeps_command_and_output():
    error = ExecutionError("boom", command=["rpm", "-q", "x"], output="partial")
    assert str(error) == "boom"
    assert error.command == ["rpm", "-q", "x"]
    assert error.output == "partial"


def test_package_not_installed_error_is_execution_error():
    error = PackageNotInstalledError("open-iscsi", output="open-iscsi rc")
    assert isinstance(error, ExecutionError)
    assert str(error) == "package not installed"
    assert error.name == "open-iscsi"
    assert error.output == "open-iscsi rc"