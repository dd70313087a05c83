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

import argparse
import csv
import logging

import kubesnap
from kubesnap.utils import force_str


class OperationErrorExit(SystemExit):
    """
    Dedicated exit code for errors where the request reached the cloud provider
    but the operation still failed.
    """

    def __init__(self):
        super(OperationErrorExit, self).__init__(1)


class CLIErrorExit(SystemExit):
    """Dedicated exit code for CLI level errors."""

    def __init__(self):
        super(CLIErrorExit, self).__init__(3)


class GeneralErrorExit(SystemExit):
    """Dedicated exit code for general kubesnap errors."""

    def __init__(self):
        super(GeneralErrorExit, self).__init__(4)


def __parse_tag(tag):
    """Parse key,value tag with csv reader"""
    try:
        rows = list(csv.reader([tag], delimiter=","))
    except csv.Error as exc:
        logging.error(
            "Error parsing tag %s: %s",
            tag,
            force_str(exc),
        )
        raise CLIErrorExit()
    if len(rows) != 1 or len(rows[0]) != 2:
        logging.error(
            "Invalid tag format: %s",
            tag,
        )
        raise CLIErrorExit()

    return tuple(rows[0])


def add_tag_argument(parser, name, help):
    parser.add_argument(
        "--%s" % name,
        type=__parse_tag,
        nargs="*",
        help=help,
    )


class CloudArgumentParser(argparse.ArgumentParser):
    """ArgumentParser which exits with CLIErrorExit on errors."""

    def error(self, message):
        try:
            super(CloudArgumentParser, self).error(message)
        except SystemExit:
            raise CLIErrorExit()


def create_argument_parser(description):
    """
    Create a kubesnap argument parser with the given description.

    Returns an `argparse.ArgumentParser` object which parses the options common
    to all kubesnap commands.
    """
    parser = CloudArgumentParser(
        description=description,
        add_help=False,
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version="%%(prog)s %s" % kubesnap.__version__,
    )
    parser.add_argument("--help", action="help", help="show this help message and exit")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="increase output verbosity (e.g., -vv is more than -v)",
    )
    verbosity.add_argument(
        "-q",
        "--quiet",
        action="count",
        default=0,
        help="decrease output verbosity (e.g., -qq is less than -q)",
    )
    parser.add_argument(
        "--credentials-file",
        help="Path to a JSON credentials file. If omitted the application "
        "default credentials are used.",
    )
    return parser


def build_plugin_config(config, options):
    """
    Build a plugin config mapping from parsed command line options.

    :param argparse.Namespace config: The parsed options
    :param dict[str,str] options: Maps attribute names of config to plugin
        config keys
    :rtype: dict[str,str]
    :return: The plugin config, holding only the options which were set
    """
    plugin_config = {}
    for attr, key in options.items():
        value = getattr(config, attr, None)
        if value is not None:
            plugin_config[key] = value
    return plugin_config
