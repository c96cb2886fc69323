# This file is part of cloudmeta. See LICENSE file for license information.
"""Common utility functions for running external commands."""

import logging
import subprocess
from collections import namedtuple
from typing import List, Optional, Sequence

LOG = logging.getLogger(__name__)

SubpResult = namedtuple("SubpResult", ["stdout", "stderr"])


class ProcessExecutionError(IOError):
    MESSAGE_TMPL = (
        "%(description)s\n"
        "Command: %(cmd)s\n"
        "Exit code: %(exit_code)s\n"
        "Reason: %(reason)s\n"
        "Stdout: %(stdout)s\n"
        "Stderr: %(stderr)s"
    )
    empty_attr = "-"

    def __init__(
        self,
        stdout=None,
        stderr=None,
        exit_code=None,
        cmd=None,
        description=None,
        reason=None,
    ):
        self.cmd = cmd
        self.stdout = stdout if stdout is not None else ""
        self.stderr = stderr if stderr is not None else ""
        self.exit_code = exit_code
        self.reason = reason

        if not description:
            if not exit_code and reason:
                description = "Unexpected error while running command."
            else:
                description = "Unexpected exit code while running command."
        self.description = description

        message = self.MESSAGE_TMPL % {
            "description": description,
            "cmd": " ".join(cmd) if cmd else self.empty_attr,
            "exit_code": (
                exit_code if exit_code is not None else self.empty_attr
            ),
            "reason": reason or self.empty_attr,
            "stdout": self.stdout.strip() or self.empty_attr,
            "stderr": self.stderr.strip() or self.empty_attr,
        }
        IOError.__init__(self, message)


def subp(
    args: Sequence[str],
    capture: bool = True,
    rcs: Optional[List[int]] = None,
) -> SubpResult:
    """Run a command and return its decoded output.

    :param args: command and arguments, never run through a shell.
    :param capture: when False, stdout and stderr go to the parent's.
    :param rcs: list of acceptable exit codes, defaults to [0].
    :raises ProcessExecutionError: if the command exits with a code not
        in rcs or cannot be executed at all.
    """
    if rcs is None:
        rcs = [0]
    args = [str(arg) for arg in args]
    LOG.debug("Running command %s with allowed return codes %s", args, rcs)

    stdout = subprocess.PIPE if capture else None
    stderr = subprocess.PIPE if capture else None
    try:
        proc = subprocess.run(
            args, stdout=stdout, stderr=stderr, check=False
        )
    except OSError as e:
        raise ProcessExecutionError(cmd=args, reason=e) from e

    out = proc.stdout.decode("utf-8", errors="replace") if capture else ""
    err = proc.stderr.decode("utf-8", errors="replace") if capture else ""
    if proc.returncode not in rcs:
        raise ProcessExecutionError(
            stdout=out, stderr=err, exit_code=proc.returncode, cmd=args
        )
    return SubpResult(out, err)
