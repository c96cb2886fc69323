#!/usr/bin/env python3

# This file is part of cloudmeta. See LICENSE file for license information.
"""Query instance metadata from the config drive or the metadata service."""
import argparse
import json
import logging
import sys

from cloudmeta import log, metadata, sources, util
from cloudmeta.sources.helpers.openstack import InstanceData

LOG = logging.getLogger(__name__)
NAME = "query"


def instance_data_to_dict(data: InstanceData) -> dict:
    """Render instance data with the original document key names."""
    md, network = data
    result = {
        "meta_data": {
            "uuid": md.id,
            "name": md.name,
            "availability_zone": md.availability_zone,
        },
        "network_data": None,
    }
    if network is None:
        return result

    def link_dict(link):
        return {
            "ethernet_mac_address": link.mac_address,
            "type": link.type,
            "id": link.id,
        }

    result["network_data"] = {
        "links": [link_dict(link) for link in network.links],
        "networks": [
            {
                "network_id": iface.network_id,
                "ip_address": iface.ip_address,
                "link": iface.link_id,
                "type": iface.type,
                "link_record": (
                    link_dict(iface.resolved_link)
                    if iface.resolved_link
                    else None
                ),
            }
            for iface in network.interfaces
        ],
        "services": [
            {"type": service.type, "address": service.address}
            for service in network.services
        ],
    }
    return result


def handle_args(name, args):
    """
    Handle the parsed command-line arguments.

    :param name: The name of the utility.
    :param args: The parsed arguments.
    :return: The process exit code.
    """
    cfg = util.read_conf(args.config) if args.config else {}
    if args.debug:
        cfg["log_level"] = "DEBUG"
    log.setup_logging(cfg)

    LOG.debug("%s called with config: %s", name, args.config)
    try:
        data = metadata.get_metadata()
    except sources.RetrievalError as e:
        LOG.error("%s", e)
        return 1

    sys.stdout.write(
        json.dumps(instance_data_to_dict(data), indent=1, sort_keys=True)
    )
    sys.stdout.write("\n")
    return 0


def get_parser(parser=None):
    """
    Build or extend an arg parser for the query utility.

    :param parser: Optional existing ArgumentParser instance representing
        the subcommand.
    :return: ArgumentParser with proper argument configuration.
    """
    if not parser:
        parser = argparse.ArgumentParser(prog=NAME, description=__doc__)

    parser.add_argument(
        "-c",
        "--config",
        help="YAML config file with log_level and log_format",
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        default=False,
        help="Log debug messages to stderr",
    )
    return parser


def main():
    args = get_parser().parse_args()
    return handle_args(NAME, args)


if __name__ == "__main__":
    sys.exit(main())
