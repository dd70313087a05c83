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

"""
Kubernetes uses the description field of Compute Engine disks to store a JSON
document containing tags. Snapshots carry the same kind of document, built
from the tags of the source disk plus the tags supplied for the snapshot, so
that a disk restored from the snapshot gets its tags back.
"""

import json
import logging

from kubesnap.utils import force_str

_logger = logging.getLogger(__name__)


def _decode_tags(description):
    """
    Decode a JSON description into a dict of string tags.

    :param str description: A JSON document
    :rtype: dict[str,str]
    :raise ValueError: if the document is not a JSON object of strings
    """
    tags = json.loads(description)
    if not isinstance(tags, dict):
        raise ValueError("expected a JSON object, got %s" % type(tags).__name__)
    for key, value in tags.items():
        if not isinstance(value, str):
            raise ValueError("value of tag %s is not a string" % key)
    return tags


def merge_snapshot_tags(new_tags, disk_description):
    """
    Build the description of a snapshot from the description of its disk.

    The tags found in the disk description are kept, unless the description
    cannot be decoded in which case only new_tags are used. Tags in new_tags
    overwrite disk tags with the same key, so that the current tags replace
    any older version left there by previous snapshots and restores.

    :param dict[str,str]|None new_tags: Tags supplied for the snapshot
    :param str|None disk_description: The description of the source disk
    :rtype: str
    :return: The JSON encoded tags, or an empty string if there are no tags
        or they cannot be encoded
    """
    snapshot_tags = {}
    if disk_description:
        try:
            snapshot_tags.update(_decode_tags(disk_description))
        except ValueError as exc:
            _logger.warning(
                "Unable to decode disk's description as JSON, so only applying "
                "snapshot tags: %s",
                force_str(exc),
            )
    if new_tags:
        snapshot_tags.update(new_tags)

    if not snapshot_tags:
        return ""

    try:
        return json.dumps(snapshot_tags, sort_keys=True, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        _logger.error(
            "Unable to encode snapshot's tags to JSON, so not tagging snapshot: %s",
            force_str(exc),
        )
        return ""
