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
This module is responsible for the plugin configuration.

Both the volume snapshotter and the object store are configured through a
flat mapping of string keys to string values, as found in the config section
of a snapshot or backup storage location.
"""

import logging

from kubesnap.exceptions import ConfigurationException
from kubesnap.utils import force_str

try:
    import google.auth
    from google.auth.exceptions import DefaultCredentialsError
except ImportError:
    raise SystemExit("Missing required python module: google-auth")

_logger = logging.getLogger(__name__)

CREDENTIALS_FILE_KEY = "credentialsFile"
CSI_DRIVERS_KEY = "csiDrivers"
KMS_KEY_NAME_KEY = "kmsKeyName"
PROJECT_KEY = "project"
SERVICE_ACCOUNT_KEY = "serviceAccount"
SNAPSHOT_LOCATION_KEY = "snapshotLocation"
SNAPSHOT_TYPE_KEY = "snapshotType"
VOLUME_PROJECT_KEY = "volumeProject"

VOLUME_SNAPSHOTTER_CONFIG_KEYS = (
    SNAPSHOT_LOCATION_KEY,
    SNAPSHOT_TYPE_KEY,
    PROJECT_KEY,
    CREDENTIALS_FILE_KEY,
    VOLUME_PROJECT_KEY,
    CSI_DRIVERS_KEY,
)

OBJECT_STORE_CONFIG_KEYS = (
    KMS_KEY_NAME_KEY,
    SERVICE_ACCOUNT_KEY,
    CREDENTIALS_FILE_KEY,
)

SNAPSHOT_TYPES = ("STANDARD", "ARCHIVE")
DEFAULT_SNAPSHOT_TYPE = "STANDARD"

COMPUTE_SCOPE = "https://www.googleapis.com/auth/compute"
STORAGE_SCOPE = "https://www.googleapis.com/auth/devstorage.read_write"


def validate_config_keys(config, valid_keys):
    """
    Check that config only contains known keys.

    :param dict[str,str] config: The plugin configuration
    :param tuple[str] valid_keys: The keys the plugin understands
    :raise ConfigurationException: if any key is not in valid_keys
    """
    invalid_keys = sorted(set(config) - set(valid_keys))
    if invalid_keys:
        raise ConfigurationException(
            "config has invalid keys %s; valid keys are %s"
            % (", ".join(invalid_keys), ", ".join(valid_keys))
        )


def parse_snapshot_type(value):
    """
    Parse the snapshotType option, which is case insensitive.

    :param str|None value: The raw option value
    :rtype: str
    :return: STANDARD or ARCHIVE, STANDARD if value is empty
    """
    snapshot_type = (value or "").upper()
    if snapshot_type == "":
        return DEFAULT_SNAPSHOT_TYPE
    if snapshot_type not in SNAPSHOT_TYPES:
        raise ConfigurationException('unsupported snapshot type: "%s"' % snapshot_type)
    return snapshot_type


def parse_csi_drivers(value):
    """
    Parse the csiDrivers option, a comma separated list of CSI driver names.

    :param str|None value: The raw option value
    :rtype: frozenset[str]|None
    :return: The driver names, or None if the option is empty
    """
    if not value:
        return None
    drivers = frozenset(driver.strip() for driver in value.split(",") if driver.strip())
    return drivers or None


def load_credentials(credentials_file=None, scopes=None):
    """
    Load the Google Cloud credentials for the plugin.

    When credentials_file is provided the credentials are read from it,
    otherwise the application default credentials are used.

    :param str|None credentials_file: Path to a JSON credentials file
    :param list[str]|None scopes: The OAuth2 scopes to request
    :rtype: tuple[google.auth.credentials.Credentials,str|None]
    :return: The credentials and the project they belong to, if known
    """
    try:
        if credentials_file is not None:
            _logger.debug("Loading credentials from %s", credentials_file)
            return google.auth.load_credentials_from_file(
                credentials_file, scopes=scopes
            )
        return google.auth.default(scopes=scopes)
    except DefaultCredentialsError as exc:
        if credentials_file is not None:
            raise ConfigurationException(
                "error reading provided credentials file %s: %s"
                % (credentials_file, force_str(exc))
            )
        raise ConfigurationException(
            "unable to find default credentials: %s" % force_str(exc)
        )
