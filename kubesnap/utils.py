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
This module contains utility functions used in Kubesnap.
"""

import logging
from argparse import ArgumentTypeError

_logger = logging.getLogger(__name__)

LOGGING_FORMAT = "%(asctime)s [%(process)s] %(levelname)s: %(message)s"

# Compute Engine resource names must comply with RFC1035
MAX_RESOURCE_NAME_LENGTH = 63


def configure_logging(config):
    """
    Get a nicer output from the Python logging package

    :param argparse.Namespace config: options with verbose and quiet counters
    """
    verbosity = config.verbose - config.quiet
    log_level = max(logging.WARNING - verbosity * 10, logging.DEBUG)
    logging.basicConfig(format=LOGGING_FORMAT, level=log_level)


def force_str(obj, encoding="utf-8", errors="replace"):
    """
    Force any object to an unicode string.

    Code inspired by Django's force_text function
    """
    # Handle the common case first for performance reasons.
    if isinstance(obj, str):
        return obj
    try:
        if isinstance(obj, bytes):
            return str(obj, encoding, errors)
        return str(obj)
    except (UnicodeDecodeError, TypeError):
        if isinstance(obj, Exception):
            return " ".join(force_str(arg, encoding, errors) for arg in obj.args)
        # As last resort, use a repr call to avoid any exception
        return repr(obj)


def build_snapshot_name(volume_id, uniqueness_token):
    """
    Build the name of a new snapshot of the disk volume_id.

    The name is the volume id followed by a dash and the uniqueness token. If
    the result exceeds MAX_RESOURCE_NAME_LENGTH the volume id is truncated, the
    token is always kept in full so that names stay unique.

    :param str volume_id: The name of the source disk
    :param uuid.UUID|str uniqueness_token: A token unique to this snapshot
    :rtype: str
    :raise ValueError: if the token alone does not fit in a resource name
    """
    suffix = "-%s" % uniqueness_token
    available = MAX_RESOURCE_NAME_LENGTH - len(suffix)
    if available < 1:
        raise ValueError(
            "uniqueness token %s is too long for a snapshot name" % uniqueness_token
        )
    return volume_id[:available] + suffix


def check_positive(value):
    """
    Check for a positive integer option

    :param value: str containing the value to check
    """
    if value is None:
        return None
    try:
        int_value = int(value)
    except Exception:
        raise ArgumentTypeError("'%s' is not a valid input" % value)
    if int_value < 1:
        raise ArgumentTypeError("'%s' is not a valid positive integer" % value)
    return int_value
