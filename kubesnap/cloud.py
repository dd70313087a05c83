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

from abc import ABCMeta, abstractmethod

from kubesnap.exceptions import KubesnapException


class CloudProviderError(KubesnapException):
    """
    This exception is raised when we get an error in the response from the
    cloud provider
    """


class CloudResourceNotFound(CloudProviderError):
    """
    This exception is raised when the cloud provider cannot find a resource
    """


class VolumeSnapshotter(metaclass=ABCMeta):
    """
    Defines a common interface for snapshotting the disks backing persistent
    volumes and restoring them.
    """

    @abstractmethod
    def create_volume_from_snapshot(
        self, snapshot_id, volume_type, volume_az, iops=None
    ):
        """
        Create a new volume in the specified availability zone, initialized
        from the provided snapshot.

        :param str snapshot_id: The identifier of the source snapshot
        :param str volume_type: The type of the new volume
        :param str volume_az: The availability zone tag of the new volume
        :param int|None iops: The provisioned IOPS of the new volume, for
            providers which support it
        :rtype: str
        :return: The identifier of the new volume
        """

    @abstractmethod
    def get_volume_info(self, volume_id, volume_az):
        """
        Return the type and IOPS (if applicable) of the specified volume.

        :param str volume_id: The identifier of the volume
        :param str volume_az: The availability zone tag of the volume
        :rtype: tuple[str,int|None]
        """

    @abstractmethod
    def create_snapshot(self, volume_id, volume_az, tags):
        """
        Create a snapshot of the specified volume, applying the provided tags.

        :param str volume_id: The identifier of the source volume
        :param str volume_az: The availability zone tag of the source volume
        :param dict[str,str]|None tags: Tags to apply to the snapshot
        :rtype: str
        :return: The identifier of the new snapshot
        """

    @abstractmethod
    def delete_snapshot(self, snapshot_id):
        """
        Delete the specified snapshot.

        Deleting a snapshot which does not exist is not an error.

        :param str snapshot_id: The identifier of the snapshot
        """

    @abstractmethod
    def get_volume_id(self, pv):
        """
        Return the cloud provider specific identifier of the volume backing a
        persistent volume.

        :param dict pv: The persistent volume in its unstructured form
        :rtype: str
        :return: The volume identifier, or an empty string if the persistent
            volume is not backed by a volume of this provider
        """

    @abstractmethod
    def set_volume_id(self, pv, volume_id):
        """
        Return a copy of the persistent volume updated to reference volume_id.

        :param dict pv: The persistent volume in its unstructured form
        :param str volume_id: The identifier of the volume
        :rtype: dict
        """


class ObjectStore(metaclass=ABCMeta):
    """
    Defines a common interface for the object storage holding backup data.
    """

    @abstractmethod
    def put_object(self, bucket, key, body):
        """
        Upload the content of a file-like object.

        :param str bucket: The name of the bucket
        :param str key: The key of the object
        :param IOBase body: File-like object to upload
        """

    @abstractmethod
    def object_exists(self, bucket, key):
        """
        :param str bucket: The name of the bucket
        :param str key: The key of the object
        :rtype: bool
        """

    @abstractmethod
    def get_object(self, bucket, key):
        """
        Open an object for reading.

        :param str bucket: The name of the bucket
        :param str key: The key of the object
        :return: A readable file-like object
        """

    @abstractmethod
    def list_common_prefixes(self, bucket, prefix, delimiter):
        """
        Return the common prefixes found right under prefix.

        :param str bucket: The name of the bucket
        :param str prefix: The prefix under which to look
        :param str delimiter: The delimiter emulating a hierarchy
        :rtype: list[str]
        """

    @abstractmethod
    def list_objects(self, bucket, prefix):
        """
        Return the keys of all objects under prefix.

        :param str bucket: The name of the bucket
        :param str prefix: The prefix under which to look
        :rtype: list[str]
        """

    @abstractmethod
    def delete_object(self, bucket, key):
        """
        :param str bucket: The name of the bucket
        :param str key: The key of the object
        """

    @abstractmethod
    def create_signed_url(self, bucket, key, ttl):
        """
        Create a URL granting temporary read access to an object.

        :param str bucket: The name of the bucket
        :param str key: The key of the object
        :param datetime.timedelta ttl: How long the URL stays valid
        :rtype: str
        """
