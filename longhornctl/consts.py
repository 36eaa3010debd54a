"""Names, defaults and fixed values shared across the command-line tools."""

from __future__ import annotations

import enum

# Build metadata; filled in by the release process.
VERSION = ""
GIT_COMMIT = ""
BUILD_DATE = ""

# Binary names
CMD_LONGHORNCTL_LOCAL = "longhornctl-local"
CMD_LONGHORNCTL_REMOTE = "longhornctl"

# The first layer of subcommands (verb)
SUB_CMD_CHECK = "check"
SUB_CMD_EXPORT = "export"
SUB_CMD_GET = "get"
SUB_CMD_INSTALL = "install"
SUB_CMD_TRIM = "trim"

# The second layer of subcommands (noun)
SUB_CMD_PREFLIGHT = "preflight"
SUB_CMD_REPLICA = "replica"
SUB_CMD_VOLUME = "volume"

# The third layer of subcommands (action to the previous layers)
SUB_CMD_STOP = "stop"

# Other subcommands
SUB_CMD_VERSION = "version"

# Global options
CMD_OPT_KUBE_CONFIG_PATH = "kube-config"
CMD_OPT_LOG_LEVEL = "log-level"
CMD_OPT_IMAGE = "image"

# General options
CMD_OPT_NAME = "name"
CMD_OPT_NODE_ID = "node-id"
CMD_OPT_OPERATING_SYSTEM = "operating-system"
CMD_OPT_OUTPUT_FILE = "output-file"
CMD_OPT_TARGET_DIRECTORY = "target-dir"
CMD_OPT_UPDATE_PACKAGES = "update-packages"
CMD_OPT_NODE_SELECTOR = "node-selector"

# SPDK options
CMD_OPT_ALLOW_PCI = "allow-pci"
CMD_OPT_DRIVER_OVERRIDE = "driver-override"
CMD_OPT_ENABLE_SPDK = "enable-spdk"
CMD_OPT_HUGE_PAGE_SIZE = "huge-page-size"
CMD_OPT_SPDK_OPTIONS = "spdk-options"
CMD_OPT_USERSPACE_DRIVER = "userspace-driver"

# Longhorn options
CMD_OPT_LONGHORN_DATA_DIRECTORY = "data-dir"
CMD_OPT_LONGHORN_ENGINE_IMAGE = "engine-image"
CMD_OPT_LONGHORN_NAMESPACE = "longhorn-namespace"
CMD_OPT_LONGHORN_VOLUME_NAME = "volume-name"

CMD_OPT_SEPARATOR = ","


class OperatingSystem(str, enum.Enum):
    """Operating systems that need special handling."""

    CONTAINER_OPTIMIZED_OS = "cos"


ENV_CURRENT_NODE_ID = "CURRENT_NODE_ID"
ENV_KUBE_CONFIG_PATH = "KUBECONFIG"
ENV_LOG_LEVEL = "LOG_LEVEL"
ENV_OUTPUT_FILE_PATH = "OUTPUT_FILE_PATH"

ENV_LONGHORN_DATA_DIRECTORY = "LONGHORN_DATA_DIRECTORY"
ENV_LONGHORN_NAMESPACE = "LONGHORN_NAMESPACE"
ENV_LONGHORN_REPLICA_NAME = "REPLICA_NAME"
ENV_LONGHORN_VOLUME_NAME = "VOLUME_NAME"

# SPDK related environment variables
ENV_DRIVER_OVERRIDE = "DRIVER_OVERRIDE"
ENV_ENABLE_SPDK = "ENABLE_SPDK"
ENV_HUGE_PAGE_SIZE = "HUGEMEM"
ENV_PCI_ALLOWED = "PCI_ALLOWED"
ENV_USERSPACE_DRIVER = "USERSPACE_DRIVER"
ENV_UPDATE_PACKAGE_LIST = "UPDATE_PACKAGE_LIST"
ENV_SPDK_OPTIONS = "SPDK_OPTIONS"

LONGHORN_DISK_CONFIG_FILE = "longhorn-disk.cfg"
LONGHORN_SERVICE_ACCOUNT_NAME = "longhorn-service-account"

IMAGE_BCI_BASE = "registry.suse.com/bci/bci-base:15.6"
IMAGE_PAUSE = "registry.k8s.io/pause:3.1"


def engine_image(version: str) -> str:
    """Return the engine image reference for a release version."""
    return f"longhornio/longhorn-engine:{version}"


def cli_image(version: str) -> str:
    """Return the CLI image reference for a release version."""
    return f"longhornio/longhorn-cli:{version}"


IMAGE_ENGINE = engine_image(VERSION)
IMAGE_LONGHORN_CLI = cli_image(VERSION)

CONTAINER_NAME = "longhornctl"
CONTAINER_NAME_ENGINE = "engine"
CONTAINER_NAME_INIT = "init-longhornctl"
CONTAINER_NAME_OUTPUT = "output-longhornctl"
CONTAINER_NAME_PAUSE = "pause"

# Seconds a container may stay in a bad condition before giving up.
CONTAINER_CONDITION_MAX_TOLERATION_LONG = 60 * 10  # e.g. package installation
CONTAINER_CONDITION_MAX_TOLERATION_MEDIUM = 60 * 5  # e.g. replica export
CONTAINER_CONDITION_MAX_TOLERATION_SHORT = 60  # e.g. printing file contents

VOLUME_MOUNT_HOST_NAME = "host"
VOLUME_MOUNT_HOST_DIRECTORY = "/host"

VOLUME_MOUNT_SHARED_NAME = "shared"
VOLUME_MOUNT_SHARED_DIRECTORY = "/shared"

VOLUME_MOUNT_HOST_EXPORTER_NAME = "host-exporter"
VOLUME_MOUNT_HOST_EXPORTER_DIRECTORY = "/host-exporter"

VOLUME_MOUNT_ENTRYPOINT_NAME = "entrypoint"
VOLUME_MOUNT_ENTRYPOINT_DIRECTORY = "/scripts"

VOLUME_MOUNT_VOLUME_NAME = "volume"
VOLUME_MOUNT_VOLUME_DIRECTORY = "/volume"

FILE_NAME_PRE_STOP_SCRIPT = "pre-stop.sh"
FILE_NAME_OUTPUT_JSON = "output.json"

LOG_PREFIX_ERROR = "ERROR: "
LOG_PREFIX_WARN = "WARN: "

APP_NAME_PREFLIGHT_CHECKER = "longhorn-preflight-checker"
APP_NAME_PREFLIGHT_CONTAINER_OPTIMIZED_OS = "longhorn-gke-cos-node-agent"
APP_NAME_PREFLIGHT_INSTALLER = "longhorn-preflight-installer"

KUBE_APP_LABEL = "k8s-app"
KUBE_APP_VALUE_DNS = "kube-dns"


class DependencyModuleType(enum.IntEnum):
    """Which set of kernel modules a step deals with."""

    DEFAULT = 0
    SPDK = 1


APP_NAME_REPLICA_EXPORTER = "longhorn-replica-exporter"
APP_NAME_REPLICA_GETTER = "longhorn-replica-getter"

SPDK_PATH = "/tmp/longhorn-spdk"

APP_NAME_VOLUME_TRIMMER = "longhorn-volume-trimmer"