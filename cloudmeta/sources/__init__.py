# This file is part of cloudmeta. See LICENSE file for license information.

import abc
import logging
import threading
from typing import Callable, Dict, Optional

from cloudmeta.sources.helpers.openstack import InstanceData

LOG = logging.getLogger(__name__)

DS_PREFIX = "DataSource"


class MetadataSourceError(Exception):
    """Raised when a metadata source cannot produce instance data."""

    # Name of the retrieval step that failed, subclasses set a default.
    step: Optional[str] = None

    def __init__(self, message, step=None):
        super().__init__(message)
        if step is not None:
            self.step = step


class RetrievalError(Exception):
    """Raised when no metadata source produced instance data."""

    def __init__(self, errors: Dict[str, Exception]):
        self.errors = dict(errors)
        if self.errors:
            details = "; ".join(
                "%s (%s): %s" % (name, getattr(err, "step", None), err)
                for name, err in self.errors.items()
            )
        else:
            details = "no sources configured"
        super().__init__(
            "Did not find any metadata source, tried: %s" % details
        )


class MetadataSource(metaclass=abc.ABCMeta):

    # Short name used in logs and error reports, e.g. "ConfigDrive"
    dsname = "_undef"

    @abc.abstractmethod
    def attempt(self) -> InstanceData:
        """Retrieve instance data exactly once.

        :raises MetadataSourceError: describing the step that failed.
        """

    def __str__(self):
        return "%s%s" % (DS_PREFIX, self.dsname)


class MetadataCache:
    """Holds the instance data for the remainder of the process.

    The slot is filled at most once. Readers of a filled slot take no
    lock; loading is serialized so only one loader runs at a time.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._value: Optional[InstanceData] = None

    @property
    def value(self) -> Optional[InstanceData]:
        return self._value

    def get_or_load(
        self, loader: Callable[[], InstanceData]
    ) -> InstanceData:
        value = self._value
        if value is not None:
            return value
        with self._lock:
            if self._value is None:
                self._value = loader()
            return self._value

    def reset(self):
        with self._lock:
            self._value = None
