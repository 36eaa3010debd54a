# longhornctl

A library for the work done on each node of a Longhorn storage cluster. It
checks the host's requirements, installs missing dependencies and inspects
replica data directories.

## Modules

- `longhornctl.checker` provides `Checker`. It checks the iSCSI daemon, the
  multipath service, NFSv4 support (kernel configuration and the default NFS
  version in `nfsmount.conf`), the required packages and kernel modules, and
  the Kube DNS replica count. When `enable_spdk` is set, it also checks CPU
  instruction sets, huge pages and the SPDK kernel modules. Call
  `prepare(os_release, manager_type, package_manager)`, then `run()`, then
  `output()`.
- `longhornctl.installer` provides `Installer`. It refreshes the package list
  (`update_packages`), installs missing packages, probes kernel modules, starts
  `iscsid` and, when `enable_spdk` is set, runs the SPDK setup script. If a
  package manager reports that a reboot is needed after installing, the run
  stops and records a warning. Call
  `prepare(manager_type, package_manager, kernel_release)`, `run()` and
  `output()`. `get_args_for_configuring_spdk_env(options)` builds the
  arguments for the setup script.
- `longhornctl.replica_getter` provides `Getter`. It lists the replica
  directories under `<host_directory>/<data directory>/replicas`; the data
  directory defaults to `/var/lib/longhorn` and `host_directory` to `/host`.
  For each replica it reports the volume name, the `volume.meta` contents and
  whether a process under `proc_directory` holds files open in that directory.
  Results can be filtered by `replica_name` and `volume_name`. Empty replica
  directories are skipped. `volume_name_of(name)` returns everything before
  the last dash.
- `longhornctl.pkgmgr` provides `new_package_manager(manager_type, executor)`,
  which picks one of `AptPackageManager` (`pkgmgr_apt`),
  `PacmanPackageManager` (`pkgmgr_pacman`), `YumPackageManager`,
  `ZypperPackageManager` or `TransactionalUpdatePackageManager`
  (`pkgmgr_rpm`). For an unknown type it raises `ValueError`.
- `longhornctl.pkgmgr_base` holds `PackageManager`, `PackageManagerType`,
  `Executor`, `ExecutionError` and `PackageNotInstalledError`.
- `longhornctl.report` holds `LogCollection`, which collects `info`, `warn` and
  `error` messages, and `write_result(data, output_file_path)`. That function
  writes to the given file, or to standard output when the path is empty.
- `longhornctl.consts` holds option, environment variable, container and mount
  names, `OperatingSystem`, `DependencyModuleType`, and the
  `engine_image(version)` and `cli_image(version)` helpers.

`output()` of `Checker` and `Installer` writes `{"log": {...}}` as JSON.
`Getter.output()` writes `{"replicas": {...}}`. Each of them also returns the
JSON it wrote.

## Running commands on the host

The package never starts processes itself. Every command a package manager
issues goes through an `Executor` that you supply. If the command fails, the
executor raises `ExecutionError`.

```python
from longhornctl.pkgmgr_base import Executor, PackageManagerType
from longhornctl.pkgmgr import new_package_manager


class RecordingExecutor(Executor):
    """Records commands instead of running them."""

    def __init__(self):
        self.calls = []

    def execute(self, envs, binary, args, timeout=None):
        self.calls.append((binary, list(args)))
        return ""


executor = RecordingExecutor()
manager = new_package_manager(PackageManagerType("zypper"), executor)

manager.install_package("open-iscsi")
manager.start_service("iscsid")
print(executor.calls)
print(manager.need_reboot())  # False; True for transactional-update
```

If a package is missing, `check_package_installed` raises
`PackageNotInstalledError` (apt) or the executor's `ExecutionError`.

## Cluster information

`Checker` does not talk to Kubernetes itself. You pass in callables:

- `list_dns_deployments` returns a sequence of `Deployment(name, replicas,
  ready_replicas)`. If it is not set, the DNS check records an error.
- `daemon_set_ready` returns whether the node agent DaemonSet is ready on
  Container-Optimized OS (`os_release == "cos"`). If it is not set, or the
  DaemonSet is not ready, that check raises `RuntimeError`.

## What this package does not do

- It has no command-line program. It is used as a library.
- It has no Kubernetes client. It does not deploy DaemonSets and does not run
  checks across a cluster.
- It does not trim volumes and does not export replicas.
- It does not detect the host's operating system or package manager. It does
  not enter host namespaces. The caller passes these in through `prepare` and
  the `Executor`.

## Tests

Install the `test` extra and run `pytest` from the project root.