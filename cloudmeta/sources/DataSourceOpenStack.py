# This file is part of cloudmeta. See LICENSE file for license information.
"""OpenStack metadata service source.

The metadata service is reached on the documented link-local address, see
https://docs.openstack.org/nova/latest/user/metadata.html
"""

import logging
from typing import Optional

from cloudmeta import sources, url_helper
from cloudmeta.sources.helpers import openstack

LOG = logging.getLogger(__name__)

METADATA_URL = "http://169.254.169.254/"


class MetadataServiceError(sources.MetadataSourceError):
    """Raised when instance metadata cannot be read from the service."""

    step = "fetch-instance-metadata"


def _get(url: str) -> bytes:
    response = url_helper.readurl(url)
    if response.code != 200:
        raise url_helper.UrlError(
            "Unexpected status code when reading metadata from %s: %s"
            % (url, response.code),
            code=response.code,
            headers=response.headers,
            url=url,
        )
    return response.contents


def _get_optional(url: str) -> Optional[bytes]:
    LOG.debug("Attempting to fetch network data from %s", url)
    try:
        return _get(url)
    except url_helper.UrlError as e:
        LOG.warning("Cannot read %s: %s", url, e)
        return None


def read_metadata_service(
    base_url: str = METADATA_URL,
) -> openstack.InstanceData:
    """Fetch and decode the metadata documents from the service.

    Network data is fetched independently and is optional.

    :raises MetadataServiceError: if instance metadata cannot be fetched
        or decoded.
    """
    url = url_helper.combine_url(base_url, openstack.METADATA_PATH)
    LOG.debug("Attempting to fetch metadata from %s", url)
    try:
        md_blob = _get(url)
    except url_helper.UrlError as e:
        LOG.debug("Cannot read %s: %s", url, e)
        raise MetadataServiceError("Cannot read %s: %s" % (url, e)) from e

    nd_blob = _get_optional(
        url_helper.combine_url(base_url, openstack.NETWORK_DATA_PATH)
    )

    try:
        return openstack.read_documents(md_blob, nd_blob)
    except openstack.DecodeError as e:
        raise MetadataServiceError(
            "Invalid metadata from %s: %s" % (url, e), step="decode"
        ) from e


class DataSourceOpenStack(sources.MetadataSource):

    dsname = "OpenStack"

    def attempt(self) -> openstack.InstanceData:
        return read_metadata_service(METADATA_URL)
