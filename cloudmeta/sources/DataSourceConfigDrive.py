# This file is part of cloudmeta. See LICENSE file for license information.
"""Config drive source.

The config drive is an iso9660 or (deprecated) vfat filesystem labeled
"config-2" that OpenStack attaches to the instance. It carries the same
documents the metadata service serves, under the same relative paths.
"""

import contextlib
import logging
import os
from typing import Optional

from cloudmeta import sources, subp, util
from cloudmeta.sources.helpers import openstack

LOG = logging.getLogger(__name__)

CONFIG_DRIVE_LABEL = "config-2"
BY_LABEL_DIR = "/dev/disk/by-label"
FS_TYPES = ("iso9660", "vfat")
MOUNT_OPTIONS = ("ro",)


class ConfigDriveError(sources.MetadataSourceError):
    """Raised when instance data cannot be read from the config drive."""


class DeviceNotFoundError(ConfigDriveError):
    """Raised when no block device carries the config drive label."""

    step = "locate-device"


class MountFailedError(ConfigDriveError):
    """Raised when the config drive mounts under no filesystem type."""

    step = "mount"


class InstanceFileMissingError(ConfigDriveError):
    """Raised when the instance metadata file cannot be opened."""

    step = "open-files"


def find_candidate_device(label: str = CONFIG_DRIVE_LABEL) -> str:
    """Return the block device path of the config drive.

    The udev by-label alias is preferred; blkid is asked otherwise.

    :raises DeviceNotFoundError: if neither yields a device path.
    """
    dev = os.path.join(BY_LABEL_DIR, label)
    if os.path.exists(dev):
        return dev

    try:
        devices = util.find_devs_with(label)
    except subp.ProcessExecutionError as e:
        LOG.debug("Unable to run blkid: %s", e)
        raise DeviceNotFoundError(
            "No device labeled %s found by blkid" % label
        ) from e
    if not devices:
        raise DeviceNotFoundError("No device labeled %s found" % label)
    return devices[0]


def _read_optional(path: str) -> Optional[bytes]:
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        LOG.warning("Error reading %s on config drive: %s", path, e)
        return None


def read_config_drive_dir(source_dir: str) -> openstack.InstanceData:
    """Read and decode the metadata documents under a mounted drive.

    :raises InstanceFileMissingError: if meta_data.json cannot be read.
    :raises ConfigDriveError: if meta_data.json cannot be decoded.
    """
    md_path = os.path.join(source_dir, openstack.METADATA_PATH)
    try:
        with open(md_path, "rb") as f:
            md_blob = f.read()
    except OSError as e:
        LOG.error("Error reading %s on config drive: %s", md_path, e)
        raise InstanceFileMissingError(
            "Error reading %s on config drive: %s"
            % (openstack.METADATA_PATH, e)
        ) from e
    nd_blob = _read_optional(
        os.path.join(source_dir, openstack.NETWORK_DATA_PATH)
    )

    try:
        return openstack.read_documents(md_blob, nd_blob)
    except openstack.DecodeError as e:
        raise ConfigDriveError(
            "Invalid %s on config drive: %s" % (openstack.METADATA_PATH, e),
            step="decode",
        ) from e


def read_config_drive(device: str) -> openstack.InstanceData:
    """Mount device read-only and read its metadata documents.

    The device is unmounted and the temporary mount point removed before
    returning, on success and on every error.
    """
    with contextlib.ExitStack() as stack:
        try:
            mountpoint = stack.enter_context(
                util.TemporaryMount(
                    device, FS_TYPES, opts=MOUNT_OPTIONS, prefix="configdrive"
                )
            )
        except util.TemporaryMountError as e:
            LOG.error(
                "Error mounting configdrive %s: %s", device, e.__cause__
            )
            raise MountFailedError(
                "Error mounting configdrive %s: %s" % (device, e.__cause__)
            ) from e.__cause__
        LOG.debug("Configdrive mounted on %s", mountpoint)
        return read_config_drive_dir(mountpoint)


class DataSourceConfigDrive(sources.MetadataSource):

    dsname = "ConfigDrive"

    def __init__(self, label: str = CONFIG_DRIVE_LABEL):
        self.label = label

    def attempt(self) -> openstack.InstanceData:
        dev = find_candidate_device(self.label)
        LOG.debug("Attempting to read config drive %s", dev)
        return read_config_drive(dev)
