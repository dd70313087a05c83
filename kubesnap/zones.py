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
Helpers for availability zone tags of persistent volumes.

A volume provisioned by a storage class which spans several zones carries a
failure-domain tag listing every zone, separated by a double underscore. For
example::

    us-central1-a__us-central1-b

Such a volume is a regional persistent disk and must be addressed through the
regional Compute Engine API, while a volume with a single zone is addressed
through the zonal API.
"""

from kubesnap.exceptions import ZoneParseException

ZONE_SEPARATOR = "__"


def is_multi_zone(volume_az):
    """
    Return True if the failure-domain tag lists more than one zone.

    :param str volume_az: The availability zone tag of the volume
    :rtype: bool
    """
    return ZONE_SEPARATOR in volume_az


def split_zones(volume_az):
    """
    Return the zones listed in the failure-domain tag.

    :param str volume_az: The availability zone tag of the volume
    :rtype: list[str]
    """
    return volume_az.split(ZONE_SEPARATOR)


def parse_region(volume_az):
    """
    Parse a failure-domain tag and return the region of its zones.

    Only the first zone is inspected, all zones of a multi-zone tag are
    expected to belong to the same region. For example::

        input: us-central1-a__us-central1-b
        return: us-central1

    :param str volume_az: The availability zone tag of the volume
    :rtype: str
    :raise ZoneParseException: if the zone is not in the
        <prefix>-<suffix>-<letter> form
    """
    zone = split_zones(volume_az)[0]
    parts = zone.split("-", 2)
    if len(parts) < 2:
        raise ZoneParseException(
            'failed to parse region from zone: "%s"' % volume_az
        )
    return "%s-%s" % (parts[0], parts[1])


def dispatch_by_location(volume_az, zonal, regional):
    """
    Call the zonal or the regional variant of an operation.

    :param str volume_az: The availability zone tag of the volume
    :param callable zonal: Called with the zone when the tag has a single zone
    :param callable regional: Called with the region when the tag lists
        multiple zones
    :return: whatever the called variant returns
    """
    if is_multi_zone(volume_az):
        return regional(parse_region(volume_az))
    return zonal(volume_az)
