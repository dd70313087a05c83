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

from kubesnap.config import (
    COMPUTE_SCOPE,
    CREDENTIALS_FILE_KEY,
    CSI_DRIVERS_KEY,
    KMS_KEY_NAME_KEY,
    OBJECT_STORE_CONFIG_KEYS,
    PROJECT_KEY,
    SERVICE_ACCOUNT_KEY,
    SNAPSHOT_LOCATION_KEY,
    SNAPSHOT_TYPE_KEY,
    STORAGE_SCOPE,
    VOLUME_PROJECT_KEY,
    VOLUME_SNAPSHOTTER_CONFIG_KEYS,
    load_credentials,
    parse_csi_drivers,
    parse_snapshot_type,
    validate_config_keys,
)
from kubesnap.exceptions import ConfigurationException


def get_volume_snapshotter(config):
    """
    Factory function that creates a VolumeSnapshotter from the config of a
    volume snapshot location.

    The volume project defaults to the project of the credentials and the
    snapshot project defaults to the volume project.

    :param dict[str,str] config: The volume snapshot location config
    :rtype: kubesnap.cloud.VolumeSnapshotter
    """
    validate_config_keys(config, VOLUME_SNAPSHOTTER_CONFIG_KEYS)
    snapshot_type = parse_snapshot_type(config.get(SNAPSHOT_TYPE_KEY))
    csi_drivers = parse_csi_drivers(config.get(CSI_DRIVERS_KEY))

    from kubesnap.cloud_providers.google_cloud_storage import GcpVolumeSnapshotter

    credentials, credentials_project = load_credentials(
        config.get(CREDENTIALS_FILE_KEY), scopes=[COMPUTE_SCOPE]
    )
    volume_project = config.get(VOLUME_PROJECT_KEY) or credentials_project
    if not volume_project:
        raise ConfigurationException(
            "%s option must be set when the credentials do not specify a project"
            % VOLUME_PROJECT_KEY
        )
    return GcpVolumeSnapshotter(
        volume_project,
        snapshot_project=config.get(PROJECT_KEY) or volume_project,
        snapshot_location=config.get(SNAPSHOT_LOCATION_KEY) or None,
        snapshot_type=snapshot_type,
        csi_drivers=csi_drivers,
        credentials=credentials,
    )


def get_object_store(config):
    """
    Factory function that creates an ObjectStore from the config of a backup
    storage location.

    :param dict[str,str] config: The backup storage location config
    :rtype: kubesnap.cloud.ObjectStore
    """
    validate_config_keys(config, OBJECT_STORE_CONFIG_KEYS)

    from kubesnap.cloud_providers.google_cloud_storage import (
        GoogleCloudObjectStore,
        resolve_signing_identity,
    )

    credentials, project = load_credentials(
        config.get(CREDENTIALS_FILE_KEY), scopes=[STORAGE_SCOPE]
    )
    google_access_id, sign_with_credentials = resolve_signing_identity(
        credentials, config.get(SERVICE_ACCOUNT_KEY)
    )
    return GoogleCloudObjectStore(
        credentials=credentials,
        project=project,
        kms_key_name=config.get(KMS_KEY_NAME_KEY) or None,
        google_access_id=google_access_id,
        sign_with_credentials=sign_with_credentials,
    )
