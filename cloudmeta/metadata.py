# This file is part of cloudmeta. See LICENSE file for license information.
"""Process-wide access to the instance metadata.

Metadata is fixed for the lifetime of an instance, so the first successful
retrieval is cached for the remainder of the process and never refreshed.
"""

import logging
from typing import List, Optional, Sequence

from cloudmeta import sources, util
from cloudmeta.sources.DataSourceConfigDrive import DataSourceConfigDrive
from cloudmeta.sources.DataSourceOpenStack import DataSourceOpenStack
from cloudmeta.sources.helpers.openstack import InstanceData

LOG = logging.getLogger(__name__)

_CACHE = sources.MetadataCache()


def list_sources() -> List[sources.MetadataSource]:
    """Return the metadata sources in the order they are tried."""
    return [DataSourceConfigDrive(), DataSourceOpenStack()]


def find_metadata(
    source_list: Sequence[sources.MetadataSource],
) -> InstanceData:
    """Return the instance data of the first source that succeeds.

    :raises RetrievalError: listing every source's failure.
    """
    names = [str(s) for s in source_list]
    LOG.debug("Searching for metadata in: %s", names)
    errors = {}
    for source in source_list:
        try:
            data = source.attempt()
        except Exception as e:
            util.logexc(LOG, "Getting data from %s failed: %s", source, e)
            errors[source.dsname] = e
            continue
        LOG.debug("Found metadata from %s", source)
        return data
    raise sources.RetrievalError(errors)


def get_metadata(
    source_list: Optional[Sequence[sources.MetadataSource]] = None,
) -> InstanceData:
    """Return the cached instance data, retrieving it on first use.

    Sources are only consulted while the cache is empty; concurrent first
    callers wait for a single retrieval.

    :raises RetrievalError: if every source failed. Nothing is cached and
        the next call tries all sources again.
    """

    def load():
        return find_metadata(
            list_sources() if source_list is None else source_list
        )

    return _CACHE.get_or_load(load)


def reset_for_testing():
    _CACHE.reset()
