# -*- coding: utf-8 -*-
# © Copyright EnterpriseDB UK Limited 2025
#
# This file is part of Kubesnap.
#
# Kubesnap is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# Kubesnap is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with Kubesnap.  If not, see <http://www.gnu.org/licenses/>.

import json
import logging
import sys

from kubesnap.clients.cloud_cli import (
    GeneralErrorExit,
    OperationErrorExit,
    add_tag_argument,
    build_plugin_config,
    create_argument_parser,
)
from kubesnap.cloud_providers import get_volume_snapshotter
from kubesnap.config import (
    CREDENTIALS_FILE_KEY,
    CSI_DRIVERS_KEY,
    PROJECT_KEY,
    SNAPSHOT_LOCATION_KEY,
    SNAPSHOT_TYPE_KEY,
    VOLUME_PROJECT_KEY,
)
from kubesnap.exceptions import KubesnapException
from kubesnap.utils import check_positive, configure_logging, force_str

SNAPSHOTTER_OPTIONS = {
    "credentials_file": CREDENTIALS_FILE_KEY,
    "project": PROJECT_KEY,
    "volume_project": VOLUME_PROJECT_KEY,
    "snapshot_location": SNAPSHOT_LOCATION_KEY,
    "snapshot_type": SNAPSHOT_TYPE_KEY,
}


def main(args=None):
    """
    The main script entry point
    :param list[str] args: the raw arguments list. When not provided
        it defaults to sys.args[1:]
    """
    config = parse_arguments(args)
    configure_logging(config)

    try:
        plugin_config = build_plugin_config(config, SNAPSHOTTER_OPTIONS)
        if config.csi_driver:
            plugin_config[CSI_DRIVERS_KEY] = ",".join(config.csi_driver)
        snapshotter = get_volume_snapshotter(plugin_config)
        config.func(snapshotter, config)
    except KubesnapException as exc:
        logging.error("Kubesnap volume operation failed: %s", force_str(exc))
        logging.debug("Exception details:", exc_info=exc)
        raise OperationErrorExit()
    except Exception as exc:
        logging.error("Kubesnap volume exception: %s", force_str(exc))
        logging.debug("Exception details:", exc_info=exc)
        raise GeneralErrorExit()


def _read_pv(path):
    """
    Load a persistent volume from a JSON file, or from stdin if path is "-"
    """
    if path == "-":
        return json.load(sys.stdin)
    with open(path, "r") as pv_file:
        return json.load(pv_file)


def create_snapshot(snapshotter, config):
    tags = dict(config.tags) if config.tags else None
    print(snapshotter.create_snapshot(config.volume_id, config.volume_az, tags))


def delete_snapshot(snapshotter, config):
    snapshotter.delete_snapshot(config.snapshot_id)


def restore(snapshotter, config):
    print(
        snapshotter.create_volume_from_snapshot(
            config.snapshot_id, config.volume_type, config.volume_az, config.iops
        )
    )


def volume_info(snapshotter, config):
    volume_type, iops = snapshotter.get_volume_info(config.volume_id, config.volume_az)
    print("Type: %s" % volume_type)
    if iops is not None:
        print("IOPS: %s" % iops)


def get_volume_id(snapshotter, config):
    print(snapshotter.get_volume_id(_read_pv(config.pv_file)))


def set_volume_id(snapshotter, config):
    updated_pv = snapshotter.set_volume_id(_read_pv(config.pv_file), config.volume_id)
    print(json.dumps(updated_pv, indent=2, sort_keys=True))


def parse_arguments(args=None):
    """
    Parse command line arguments

    :return: The options parsed
    """
    parser = create_argument_parser(
        description="This script can be used to snapshot the Compute Engine "
        "persistent disks backing Kubernetes persistent volumes, restore them "
        "and translate persistent volumes to disk names.",
    )
    parser.add_argument(
        "--project",
        help="The project in which snapshots are stored "
        "(defaults to the volume project)",
    )
    parser.add_argument(
        "--volume-project",
        help="The project in which disks are read and restored "
        "(defaults to the project of the credentials)",
    )
    parser.add_argument(
        "--snapshot-location",
        help="The storage location of new snapshots",
    )
    parser.add_argument(
        "--snapshot-type",
        help="The type of new snapshots: STANDARD (default) or ARCHIVE",
    )
    parser.add_argument(
        "--csi-driver",
        action="append",
        help="Name of a CSI driver provisioning persistent disks. Can be "
        "repeated, replaces the default drivers.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    create_parser = subparsers.add_parser(
        "create-snapshot", help="take a snapshot of a disk"
    )
    create_parser.add_argument("volume_id", help="the name of the disk")
    create_parser.add_argument(
        "volume_az", help="the availability zone tag of the disk"
    )
    add_tag_argument(
        create_parser,
        name="tags",
        help="Tags to add to the snapshot. Tags must be specified as "
        "key,value pairs.",
    )
    create_parser.set_defaults(func=create_snapshot)

    delete_parser = subparsers.add_parser(
        "delete-snapshot", help="delete a snapshot"
    )
    delete_parser.add_argument("snapshot_id", help="the name of the snapshot")
    delete_parser.set_defaults(func=delete_snapshot)

    restore_parser = subparsers.add_parser(
        "restore", help="create a disk from a snapshot"
    )
    restore_parser.add_argument("snapshot_id", help="the name of the snapshot")
    restore_parser.add_argument("volume_type", help="the type of the new disk")
    restore_parser.add_argument(
        "volume_az", help="the availability zone tag of the new disk"
    )
    restore_parser.add_argument(
        "--iops",
        type=check_positive,
        help="provisioned IOPS, ignored by persistent disks",
    )
    restore_parser.set_defaults(func=restore)

    info_parser = subparsers.add_parser("volume-info", help="show the type of a disk")
    info_parser.add_argument("volume_id", help="the name of the disk")
    info_parser.add_argument("volume_az", help="the availability zone tag of the disk")
    info_parser.set_defaults(func=volume_info)

    get_id_parser = subparsers.add_parser(
        "get-volume-id", help="print the disk name of a persistent volume"
    )
    get_id_parser.add_argument(
        "pv_file", help="JSON file holding the persistent volume, - for stdin"
    )
    get_id_parser.set_defaults(func=get_volume_id)

    set_id_parser = subparsers.add_parser(
        "set-volume-id",
        help="print a persistent volume updated to reference another disk",
    )
    set_id_parser.add_argument(
        "pv_file", help="JSON file holding the persistent volume, - for stdin"
    )
    set_id_parser.add_argument("volume_id", help="the name of the new disk")
    set_id_parser.set_defaults(func=set_volume_id)

    return parser.parse_args(args=args)


if __name__ == "__main__":
    main()
