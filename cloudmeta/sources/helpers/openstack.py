# This file is part of cloudmeta. See LICENSE file for license information.
"""Parsing of OpenStack meta_data.json and network_data.json documents.

Both documents are JSON objects. Unknown keys are ignored so that newer
metadata schemas keep decoding.
"""

import json
import logging
from typing import Iterable, NamedTuple, Optional, Tuple

LOG = logging.getLogger(__name__)

# Both the config drive and the metadata service serve these paths.
METADATA_PATH = "openstack/2012-08-10/meta_data.json"
NETWORK_DATA_PATH = "openstack/2015-10-15/network_data.json"


class DecodeError(ValueError):
    """Raised when a metadata document cannot be decoded."""


class MalformedDocumentError(DecodeError):
    """Raised when a document is not valid JSON of the expected shape."""


class MissingIdentityError(DecodeError):
    """Raised when instance metadata carries no uuid."""


class InstanceMetadata(NamedTuple):
    id: str
    name: str
    availability_zone: str


class LinkRecord(NamedTuple):
    mac_address: str
    type: str
    id: str


class NetworkInterfaceRecord(NamedTuple):
    network_id: str
    ip_address: Optional[str]
    link_id: str
    type: str
    resolved_link: Optional[LinkRecord] = None


class ServiceRecord(NamedTuple):
    type: str
    address: str


class NetworkTopology(NamedTuple):
    links: Tuple[LinkRecord, ...] = ()
    interfaces: Tuple[NetworkInterfaceRecord, ...] = ()
    services: Tuple[ServiceRecord, ...] = ()


class InstanceData(NamedTuple):
    metadata: InstanceMetadata
    network: Optional[NetworkTopology]


def _load_json_object(blob, what: str) -> dict:
    if hasattr(blob, "read"):
        blob = blob.read()
    if blob is None:
        raise MalformedDocumentError("No %s document to decode" % what)
    try:
        doc = json.loads(blob)
    except (ValueError, RecursionError) as e:
        raise MalformedDocumentError(
            "Invalid JSON in %s: %s" % (what, e)
        ) from e
    if not isinstance(doc, dict):
        raise MalformedDocumentError(
            "Expected a JSON object for %s, got %s"
            % (what, type(doc).__name__)
        )
    return doc


def _get_str(obj: dict, key: str, what: str) -> str:
    value = obj.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise MalformedDocumentError(
            "Expected a string for %s '%s', got %s"
            % (what, key, type(value).__name__)
        )
    return value


def _get_objects(doc: dict, key: str) -> list:
    items = doc.get(key)
    if items is None:
        return []
    if not isinstance(items, list):
        raise MalformedDocumentError(
            "Expected a list for network data '%s', got %s"
            % (key, type(items).__name__)
        )
    for item in items:
        if not isinstance(item, dict):
            raise MalformedDocumentError(
                "Expected objects in network data '%s', got %s"
                % (key, type(item).__name__)
            )
    return items


def decode_instance_metadata(blob) -> InstanceMetadata:
    """Decode a meta_data.json document.

    :param blob: bytes, str or a readable binary file object.
    :raises MalformedDocumentError: on invalid JSON or a wrong shape.
    :raises MissingIdentityError: if uuid is missing or empty.
    """
    doc = _load_json_object(blob, "instance metadata")
    md = InstanceMetadata(
        id=_get_str(doc, "uuid", "instance metadata"),
        name=_get_str(doc, "name", "instance metadata"),
        availability_zone=_get_str(
            doc, "availability_zone", "instance metadata"
        ),
    )
    if not md.id:
        raise MissingIdentityError(
            "Invalid OpenStack metadata, got empty uuid"
        )
    return md


def join_links(
    interfaces: Iterable[NetworkInterfaceRecord],
    links: Iterable[LinkRecord],
) -> Tuple[NetworkInterfaceRecord, ...]:
    """Attach to each interface the link whose id matches its link_id.

    The first link with a given id wins. Interfaces without a matching
    link keep resolved_link unset.
    """
    by_id = {}
    for link in links:
        by_id.setdefault(link.id, link)
    return tuple(
        iface._replace(resolved_link=by_id.get(iface.link_id))
        for iface in interfaces
    )


def decode_network_topology(blob) -> NetworkTopology:
    """Decode a network_data.json document and resolve interface links.

    A document without links, networks or services is valid and yields
    an empty topology.

    :raises MalformedDocumentError: on invalid JSON or a wrong shape.
    """
    what = "network data"
    doc = _load_json_object(blob, what)
    links = tuple(
        LinkRecord(
            mac_address=_get_str(link, "ethernet_mac_address", what),
            type=_get_str(link, "type", what),
            id=_get_str(link, "id", what),
        )
        for link in _get_objects(doc, "links")
    )
    interfaces = tuple(
        NetworkInterfaceRecord(
            network_id=_get_str(network, "network_id", what),
            # not available when the network type is *_dhcp
            ip_address=_get_str(network, "ip_address", what) or None,
            link_id=_get_str(network, "link", what),
            type=_get_str(network, "type", what),
        )
        for network in _get_objects(doc, "networks")
    )
    services = tuple(
        ServiceRecord(
            type=_get_str(service, "type", what),
            address=_get_str(service, "address", what),
        )
        for service in _get_objects(doc, "services")
    )
    return NetworkTopology(
        links=links,
        interfaces=join_links(interfaces, links),
        services=services,
    )


def read_documents(md_blob, nd_blob=None) -> InstanceData:
    """Decode instance metadata and, best effort, network data.

    A missing or undecodable network document degrades the result to no
    network topology.

    :raises DecodeError: if the instance metadata cannot be decoded.
    """
    md = decode_instance_metadata(md_blob)
    network = None
    if nd_blob is not None:
        try:
            network = decode_network_topology(nd_blob)
        except DecodeError as e:
            LOG.debug("Can't parse network metadata: %s", e)
    return InstanceData(md, network)
