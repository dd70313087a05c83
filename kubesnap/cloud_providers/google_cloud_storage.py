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

import logging
import uuid
from contextlib import contextmanager

from kubesnap.cloud import (
    CloudProviderError,
    CloudResourceNotFound,
    ObjectStore,
    VolumeSnapshotter,
)
from kubesnap.config import DEFAULT_SNAPSHOT_TYPE, SNAPSHOT_TYPES
from kubesnap.exceptions import (
    ConfigurationException,
    ObjectStoreException,
    QuotaExceededException,
)
from kubesnap.tags import merge_snapshot_tags
from kubesnap.utils import build_snapshot_name, force_str
from kubesnap.volumes import VolumeHandleCodec
from kubesnap.zones import dispatch_by_location, split_zones

try:
    from google.api_core.exceptions import GoogleAPIError, NotFound
    from google.auth.compute_engine import Credentials as ComputeEngineCredentials
    from google.auth.exceptions import GoogleAuthError
    from google.auth.transport.requests import Request
    from google.cloud import storage
    from google.oauth2.service_account import Credentials as ServiceAccountCredentials
except ImportError:
    raise SystemExit("Missing required python module: google-cloud-storage")

_logger = logging.getLogger(__name__)

SNAPSHOTS_QUOTA_METRIC = "SNAPSHOTS"

RESTORED_DISK_PREFIX = "restore-"


def import_google_cloud_compute():
    """
    Import and return the google.cloud.compute module.

    This particular import happens in a function so that it can be deferred until
    needed while still allowing tests to easily mock the library.
    """
    try:
        from google.cloud import compute
    except ImportError:
        raise SystemExit("Missing required python module: google-cloud-compute")
    return compute


@contextmanager
def _provider_errors(description):
    """
    Re-raise errors from the Google Cloud client libraries as CloudProviderError.

    :param str description: What was being attempted, used as the error prefix
    """
    try:
        yield
    except NotFound as exc:
        raise CloudResourceNotFound("%s: %s" % (description, force_str(exc)))
    except GoogleAPIError as exc:
        raise CloudProviderError("%s: %s" % (description, force_str(exc)))


def _wait_for_operation(resp, description):
    """
    Wait for a Compute Engine operation and check its outcome.

    :param google.api_core.extended_operation.ExtendedOperation resp: The
        operation returned by an insert or delete call
    :param str description: The operation, as in "creation of disk foo"
    """
    resp.result()

    if resp.error_code:
        raise CloudProviderError(
            "Error during %s, error code %s: %s"
            % (description, resp.error_code, resp.error_message)
        )

    if resp.warnings:
        prefix = "Warnings encountered during %s: " % description
        _logger.warning(
            prefix
            + ", ".join(
                "%s:%s" % (warning.code, warning.message) for warning in resp.warnings
            )
        )


class GcpVolumeSnapshotter(VolumeSnapshotter):
    """
    Implementation of VolumeSnapshotter for persistent disk snapshots as
    implemented in Google Cloud Platform as documented at:

        https://cloud.google.com/compute/docs/disks/create-snapshots

    Zonal disks are addressed through the disks API while regional disks, whose
    availability zone tag lists multiple zones, are addressed through the
    region disks API.
    """

    def __init__(
        self,
        volume_project,
        snapshot_project=None,
        snapshot_location=None,
        snapshot_type=DEFAULT_SNAPSHOT_TYPE,
        csi_drivers=None,
        credentials=None,
    ):
        """
        Imports the google cloud compute library and creates the clients necessary for
        creating and managing snapshots.

        :param str volume_project: The name of the GCP project in which disks are
            read and restored.
        :param str|None snapshot_project: The name of the GCP project in which
            snapshots are stored. Defaults to volume_project.
        :param str|None snapshot_location: The storage location of new snapshots.
            If not set GCP picks the multi-region closest to the source disk.
        :param str snapshot_type: Either STANDARD or ARCHIVE.
        :param collections.abc.Iterable[str]|None csi_drivers: The names of the CSI
            drivers provisioning persistent disks.
        :param google.auth.credentials.Credentials|None credentials: The
            credentials for the compute clients, if None the application default
            credentials are used.
        """
        if volume_project is None:
            raise TypeError("volume_project cannot be None")
        if snapshot_type not in SNAPSHOT_TYPES:
            raise ConfigurationException(
                'unsupported snapshot type: "%s"' % snapshot_type
            )
        self.volume_project = volume_project
        self.snapshot_project = snapshot_project or volume_project
        self.snapshot_location = snapshot_location
        self.snapshot_type = snapshot_type
        self.codec = VolumeHandleCodec(volume_project, csi_drivers)

        compute = import_google_cloud_compute()

        self.client = compute.SnapshotsClient(credentials=credentials)
        self.disks_client = compute.DisksClient(credentials=credentials)
        self.region_disks_client = compute.RegionDisksClient(credentials=credentials)
        self.zones_client = compute.ZonesClient(credentials=credentials)
        self.projects_client = compute.ProjectsClient(credentials=credentials)

    def _get_snapshot(self, snapshot_id):
        """
        Retrieve the metadata for the named snapshot.

        :rtype: google.cloud.compute_v1.types.Snapshot
        """
        with _provider_errors(
            "Cannot get snapshot %s for project %s"
            % (snapshot_id, self.snapshot_project)
        ):
            return self.client.get(project=self.snapshot_project, snapshot=snapshot_id)

    def _get_disk(self, volume_id, volume_az):
        """
        Retrieve the metadata for the named zonal or regional disk.

        :rtype: google.cloud.compute_v1.types.Disk
        """

        def get_zonal_disk(zone):
            with _provider_errors(
                "Cannot get disk %s in zone %s for project %s"
                % (volume_id, zone, self.volume_project)
            ):
                return self.disks_client.get(
                    project=self.volume_project, zone=zone, disk=volume_id
                )

        def get_regional_disk(region):
            with _provider_errors(
                "Cannot get disk %s in region %s for project %s"
                % (volume_id, region, self.volume_project)
            ):
                return self.region_disks_client.get(
                    project=self.volume_project, region=region, disk=volume_id
                )

        return dispatch_by_location(volume_az, get_zonal_disk, get_regional_disk)

    def _get_zone_urls(self, volume_az):
        """
        Retrieve the URLs of the zones listed in the availability zone tag.

        :rtype: list[str]
        """
        zone_urls = []
        for zone in split_zones(volume_az):
            with _provider_errors(
                "Cannot get zone %s for project %s" % (zone, self.volume_project)
            ):
                zone_metadata = self.zones_client.get(
                    project=self.volume_project, zone=zone
                )
            zone_urls.append(zone_metadata.self_link)
        return zone_urls

    def _check_snapshot_quota(self):
        """
        Fail if the SNAPSHOTS quota of the volume project has been reached, so
        that no snapshot creation is attempted.
        """
        with _provider_errors("Cannot get project %s" % self.volume_project):
            project = self.projects_client.get(project=self.volume_project)
        for quota in project.quotas:
            if quota.metric == SNAPSHOTS_QUOTA_METRIC:
                if quota.usage >= quota.limit:
                    raise QuotaExceededException(
                        "snapshots quota on Google Cloud Platform has been reached"
                    )
                break

    def create_volume_from_snapshot(
        self, snapshot_id, volume_type, volume_az, iops=None
    ):
        """
        Create a new disk from a snapshot.

        The snapshot description, which contains the tags of the snapshotted disk,
        is copied to the new disk. The iops argument is ignored since persistent
        disks have no provisioned IOPS.

        :param str snapshot_id: The name of the source snapshot
        :param str volume_type: The URL of the disk type of the new disk
        :param str volume_az: The availability zone tag of the new disk
        :param int|None iops: Ignored
        :rtype: str
        :return: The name of the new disk
        """
        snapshot = self._get_snapshot(snapshot_id)
        disk_name = RESTORED_DISK_PREFIX + str(uuid.uuid4())
        disk_resource = {
            "name": disk_name,
            "source_snapshot": snapshot.self_link,
            "type_": volume_type,
            "description": snapshot.description,
        }

        def insert_zonal_disk(zone):
            _logger.info(
                "Creating disk '%s' in zone %s from snapshot '%s'",
                disk_name,
                zone,
                snapshot_id,
            )
            with _provider_errors(
                "Cannot create disk %s in zone %s for project %s"
                % (disk_name, zone, self.volume_project)
            ):
                resp = self.disks_client.insert(
                    {
                        "project": self.volume_project,
                        "zone": zone,
                        "disk_resource": disk_resource,
                    }
                )
                _wait_for_operation(resp, "creation of disk %s" % disk_name)

        def insert_regional_disk(region):
            # URLs for zones that the volume is replicated to within GCP
            disk_resource["replica_zones"] = self._get_zone_urls(volume_az)
            _logger.info(
                "Creating disk '%s' in region %s from snapshot '%s'",
                disk_name,
                region,
                snapshot_id,
            )
            with _provider_errors(
                "Cannot create disk %s in region %s for project %s"
                % (disk_name, region, self.volume_project)
            ):
                resp = self.region_disks_client.insert(
                    {
                        "project": self.volume_project,
                        "region": region,
                        "disk_resource": disk_resource,
                    }
                )
                _wait_for_operation(resp, "creation of disk %s" % disk_name)

        dispatch_by_location(volume_az, insert_zonal_disk, insert_regional_disk)
        _logger.info("Disk '%s' created", disk_name)
        return disk_name

    def get_volume_info(self, volume_id, volume_az):
        """
        Return the disk type of a disk. Persistent disks have no IOPS value.

        :param str volume_id: The name of the disk
        :param str volume_az: The availability zone tag of the disk
        :rtype: tuple[str,None]
        """
        disk = self._get_disk(volume_id, volume_az)
        return disk.type_, None

    def create_snapshot(self, volume_id, volume_az, tags):
        """
        Take a snapshot of a zonal or regional disk.

        The snapshot description holds the tags of the disk merged with tags.

        :param str volume_id: The name of the source disk
        :param str volume_az: The availability zone tag of the source disk
        :param dict[str,str]|None tags: Tags to apply to the snapshot
        :rtype: str
        :return: The name of the new snapshot
        """
        self._check_snapshot_quota()

        snapshot_name = build_snapshot_name(volume_id, uuid.uuid4())
        disk = self._get_disk(volume_id, volume_az)
        snapshot_resource = {
            "name": snapshot_name,
            "description": merge_snapshot_tags(tags, disk.description),
            "source_disk": disk.self_link,
            "snapshot_type": self.snapshot_type,
        }
        if self.snapshot_location:
            snapshot_resource["storage_locations"] = [self.snapshot_location]

        _logger.info("Taking snapshot '%s' of disk '%s'", snapshot_name, volume_id)
        with _provider_errors(
            "Cannot create snapshot %s for project %s"
            % (snapshot_name, self.snapshot_project)
        ):
            resp = self.client.insert(
                {
                    "project": self.snapshot_project,
                    "snapshot_resource": snapshot_resource,
                }
            )
            _logger.info("Waiting for snapshot '%s' completion", snapshot_name)
            _wait_for_operation(resp, "snapshot %s" % snapshot_name)

        _logger.info("Snapshot '%s' completed", snapshot_name)
        return snapshot_name

    def delete_snapshot(self, snapshot_id):
        """
        Delete the specified snapshot.

        :param str snapshot_id: The short name used to reference the snapshot within GCP.
        """
        try:
            resp = self.client.delete(
                {
                    "project": self.snapshot_project,
                    "snapshot": snapshot_id,
                }
            )
            _wait_for_operation(resp, "deletion of %s" % snapshot_id)
        except NotFound:
            # If the snapshot cannot be found then deletion is considered successful
            _logger.info("Snapshot %s not found, nothing to delete", snapshot_id)
            return
        except GoogleAPIError as exc:
            raise CloudProviderError(
                "Cannot delete snapshot %s for project %s: %s"
                % (snapshot_id, self.snapshot_project, force_str(exc))
            )

        _logger.info("Snapshot %s deleted", snapshot_id)

    def get_volume_id(self, pv):
        return self.codec.get_volume_id(pv)

    def set_volume_id(self, pv, volume_id):
        return self.codec.set_volume_id(pv, volume_id)

    def is_volume_created_cross_projects(self, volume_handle):
        return self.codec.is_volume_created_cross_projects(volume_handle)


def resolve_signing_identity(credentials, service_account=None):
    """
    Determine how signed URLs are created for the supplied credentials.

    Service account keys sign URLs locally. Compute engine credentials cannot
    sign, so the IAM signBlob API is used on behalf of service_account. Any
    other kind of credentials, such as external accounts, cannot create signed
    URLs at all.

    :param google.auth.credentials.Credentials credentials: The loaded credentials
    :param str|None service_account: The serviceAccount configuration option
    :rtype: tuple[str|None,bool]
    :return: The signing service account email, if any, and whether the
        credentials themselves are able to sign
    """
    if isinstance(credentials, ServiceAccountCredentials):
        return credentials.service_account_email, True
    if isinstance(credentials, ComputeEngineCredentials):
        if not service_account:
            raise ConfigurationException(
                "serviceAccount is expected to be provided as an item in the "
                "backup storage location config"
            )
        return service_account, False
    return None, False


class GoogleCloudObjectStore(ObjectStore):
    """
    This class implements ObjectStore for GCS with the scope of using JSON API

    storage client documentation:  https://googleapis.dev/python/storage/latest/client.html
    JSON API documentation: https://cloud.google.com/storage/docs/json_api/v1/objects
    """

    def __init__(
        self,
        credentials=None,
        project=None,
        kms_key_name=None,
        google_access_id=None,
        sign_with_credentials=False,
    ):
        """
        Create a new Google Cloud Storage object store

        :param google.auth.credentials.Credentials|None credentials: The
            credentials for the storage client
        :param str|None project: The project used by the storage client
        :param str|None kms_key_name: the name of the KMS key which should be used for
            encrypting the uploaded data in GCS
        :param str|None google_access_id: The service account email used to sign URLs
        :param bool sign_with_credentials: Whether credentials can sign URLs
            locally, rather than through the IAM signBlob API
        """
        self.credentials = credentials
        self.project = project
        self.kms_key_name = kms_key_name
        self.google_access_id = google_access_id
        self.sign_with_credentials = sign_with_credentials
        self._reinit_session()

    def _reinit_session(self):
        """
        Create a new session
        """
        self.client = storage.Client(project=self.project, credentials=self.credentials)

    def put_object(self, bucket, key, body):
        extra_args = {}
        if self.kms_key_name is not None:
            extra_args["kms_key_name"] = self.kms_key_name
        blob = self.client.bucket(bucket).blob(key, **extra_args)
        logging.debug("put_object to %s/%s", bucket, key)
        with _provider_errors("Cannot upload object %s to bucket %s" % (key, bucket)):
            blob.upload_from_file(body)

    def object_exists(self, bucket, key):
        blob = self.client.bucket(bucket).blob(key)
        try:
            blob.reload()
        except NotFound:
            return False
        except GoogleAPIError as exc:
            raise CloudProviderError(
                "Cannot get object %s in bucket %s: %s" % (key, bucket, force_str(exc))
            )
        return True

    def get_object(self, bucket, key):
        """
        Open an object for reading

        :rtype: google.cloud.storage.fileio.BlobReader
        """
        with _provider_errors("Cannot get object %s in bucket %s" % (key, bucket)):
            blob = self.client.bucket(bucket).get_blob(key)
        if blob is None:
            raise CloudResourceNotFound(
                "Object %s not found in bucket %s" % (key, bucket)
            )
        return blob.open("rb")

    def list_common_prefixes(self, bucket, prefix, delimiter):
        logging.debug("list_common_prefixes: %s, %s", prefix, delimiter)
        with _provider_errors("Cannot list bucket %s" % bucket):
            blobs = self.client.list_blobs(bucket, prefix=prefix, delimiter=delimiter)
            # The prefixes are only known once all the pages have been read
            for _ in blobs:
                pass
            return sorted(blobs.prefixes)

    def list_objects(self, bucket, prefix):
        logging.debug("list_objects: %s", prefix)
        with _provider_errors("Cannot list bucket %s" % bucket):
            return [blob.name for blob in self.client.list_blobs(bucket, prefix=prefix)]

    def delete_object(self, bucket, key):
        with _provider_errors("error deleting object %s" % key):
            self.client.bucket(bucket).blob(key).delete()

    def create_signed_url(self, bucket, key, ttl):
        # The access id comes from a service account key file or from the
        # serviceAccount option, external accounts have none
        if not self.google_access_id:
            raise ObjectStoreException(
                "GoogleAccessID is empty, perhaps using external_account "
                "credentials, cannot create signed URL"
            )
        signing_args = {
            "version": "v4",
            "expiration": ttl,
            "method": "GET",
        }
        if self.sign_with_credentials:
            signing_args["credentials"] = self.credentials
        else:
            # Passing an access token makes the library sign through IAM signBlob
            try:
                if not self.credentials.valid:
                    self.credentials.refresh(Request())
            except GoogleAuthError as exc:
                raise CloudProviderError(
                    "Cannot refresh credentials for signing: %s" % force_str(exc)
                )
            signing_args["service_account_email"] = self.google_access_id
            signing_args["access_token"] = self.credentials.token
        blob = self.client.bucket(bucket).blob(key)
        with _provider_errors("Cannot sign URL for object %s" % key):
            return blob.generate_signed_url(**signing_args)
