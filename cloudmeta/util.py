# This file is part of cloudmeta. See LICENSE file for license information.

import logging
import os
import tempfile
from typing import List, Optional, Sequence

import yaml

from cloudmeta import subp

LOG = logging.getLogger(__name__)


class TemporaryMountError(Exception):
    pass


def logexc(log, msg, *args):
    """Log msg at WARNING and the active exception's traceback at DEBUG."""
    log.warning(msg, *args)
    log.debug(msg, exc_info=True, *args)


def read_conf(fname) -> dict:
    """Load a YAML config mapping, returning {} when fname is absent."""
    try:
        with open(fname, "r") as f:
            cfg = yaml.safe_load(f)
    except FileNotFoundError:
        LOG.debug("Config file %s not found, using defaults", fname)
        return {}
    if cfg is None:
        return {}
    if not isinstance(cfg, dict):
        raise ValueError(
            "Config file %s must contain a mapping, got %s"
            % (fname, type(cfg).__name__)
        )
    return cfg


def generate_blkid_command(label):
    """
    Generate the blkid command which finds the device with a label.

    The command stops at the first matching device.

    :param label: The label of the partition.
    :return: A list representing the blkid command.
    """

    if not label:
        raise ValueError("A label must be specified")

    return ["blkid", "-l", "-o", "device", "-t", f"LABEL={label}"]


def find_devs_with(label: str) -> List[str]:
    """Return the device paths blkid reports for a filesystem label.

    :raises ProcessExecutionError: if blkid fails, which includes the
        no-match case (blkid exits 2).
    """
    out = subp.subp(generate_blkid_command(label)).stdout
    return [line.strip() for line in out.splitlines() if line.strip()]


def mount(device: str, mountpoint: str, mtype: str, opts: Sequence[str]):
    subp.subp(
        ["mount", "-o", ",".join(opts), "-t", mtype, device, mountpoint]
    )


def unmount(mountpoint: str):
    subp.subp(["umount", mountpoint])


class TemporaryMount:
    """Context manager which mounts a device on a fresh temporary directory.

    Each filesystem type in mtypes is tried in order until one mounts.
    Upon context exit the device is unmounted and the directory removed,
    whatever happened inside the block. Cleanup failures are logged and
    never raised.
    """

    def __init__(
        self,
        device: str,
        mtypes: Sequence[str],
        opts: Sequence[str] = ("ro",),
        prefix: str = "cloudmeta",
    ):
        if not mtypes:
            raise ValueError("At least one filesystem type is required")
        self.device = device
        self.mtypes = list(mtypes)
        self.opts = list(opts)
        self.prefix = prefix
        self.mountpoint: Optional[str] = None
        self.mounted = False

    def __enter__(self) -> str:
        self.mountpoint = tempfile.mkdtemp(prefix=self.prefix)
        last_error = None
        for mtype in self.mtypes:
            LOG.debug(
                "Attempting to mount %s on %s as %s",
                self.device,
                self.mountpoint,
                mtype,
            )
            try:
                mount(self.device, self.mountpoint, mtype, self.opts)
            except subp.ProcessExecutionError as e:
                LOG.debug(
                    "Failed to mount %s as %s: %s", self.device, mtype, e
                )
                last_error = e
                continue
            self.mounted = True
            LOG.debug("Mounted %s on %s", self.device, self.mountpoint)
            return self.mountpoint

        self._remove_mountpoint()
        raise TemporaryMountError(
            "Failed mounting %s using mount types %s"
            % (self.device, self.mtypes)
        ) from last_error

    def __exit__(self, excp_type, excp_value, excp_traceback):
        """Unmount and remove the temporary mount point."""
        if self.mounted:
            try:
                unmount(self.mountpoint)
            except subp.ProcessExecutionError as e:
                LOG.warning("Failed to unmount %s: %s", self.mountpoint, e)
            else:
                self.mounted = False
        self._remove_mountpoint()

    def _remove_mountpoint(self):
        if self.mountpoint is None:
            return
        try:
            os.rmdir(self.mountpoint)
        except OSError as e:
            LOG.warning(
                "Failed to remove mount point %s: %s", self.mountpoint, e
            )
        else:
            self.mountpoint = None
