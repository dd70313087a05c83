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
Translation between Kubernetes persistent volumes and persistent disk names.

Persistent volumes are handled in their generic (unstructured) form, that is
the mapping obtained by decoding the JSON representation of a
PersistentVolume object. Two volume sources are understood:

* ``spec.csi``, when the volume is provisioned by a Compute Engine persistent
  disk CSI driver. The disk is referenced through the ``volumeHandle`` field,
  which has the form ``projects/{project}/zones/{zone}/disks/{name}`` (or
  ``regions/{region}`` for regional disks).
* ``spec.gcePersistentDisk``, when the volume is provisioned by the in-tree
  driver. The disk is referenced by name through the ``pdName`` field.
"""

import copy
import logging
import re
from abc import ABCMeta, abstractmethod

from kubesnap.exceptions import (
    UnsupportedDriverException,
    VolumeHandleFormatException,
    VolumeIdentityException,
)

_logger = logging.getLogger(__name__)

DEFAULT_PD_CSI_DRIVERS = frozenset(
    (
        "pd.csi.storage.gke.io",
        "gcp.csi.confidential.cloud",
    )
)

PD_VOLUME_HANDLE_RE = re.compile(r"projects/[^/]+/(zones|regions)/[^/]+/disks/[^/]+")

EXPECTED_HANDLE_FORMAT = "projects/{project}/zones/{zone}/disks/{name}"


def is_volume_created_cross_projects(volume_handle, volume_project):
    """
    Determine whether a volume handle references a disk in another project.

    :param str volume_handle: The volumeHandle of a CSI persistent volume
    :param str volume_project: The project the snapshotter manages disks in
    :rtype: bool
    :return: True if the project segment of the handle is not volume_project.
        A handle without a project segment is never considered cross project.
    """
    parts = volume_handle.split("/")
    if len(parts) < 2:
        return False
    return parts[1] != volume_project


class VolumeSource(metaclass=ABCMeta):
    """
    The disk identity carried by a persistent volume.

    Each specialization wraps the relevant block of the persistent volume
    spec and knows how to read and replace the disk identity it contains.
    """

    def __init__(self, block=None):
        """
        :param dict|None block: The spec block holding the disk identity. It is
            updated in place by set_volume_id.
        """
        self.block = block

    @abstractmethod
    def get_volume_id(self):
        """
        Return the disk name referenced by this volume source.

        :rtype: str
        :return: The disk name, or an empty string if this source does not
            reference a disk known to this snapshotter.
        """

    @abstractmethod
    def set_volume_id(self, volume_id, volume_project):
        """
        Make this volume source reference the disk volume_id.

        :param str volume_id: The name of the disk
        :param str volume_project: The project in which the disk was created
        """


class CsiVolumeSource(VolumeSource):
    """A volume provisioned by a supported persistent disk CSI driver."""

    @property
    def driver(self):
        return self.block.get("driver")

    def _check_handle(self, purpose):
        handle = self.block.get("volumeHandle")
        if not isinstance(handle, str) or not PD_VOLUME_HANDLE_RE.fullmatch(handle):
            raise VolumeHandleFormatException(
                "invalid volumeHandle %sCSI driver:%s, expected %s, got %s"
                % (purpose, self.driver, EXPECTED_HANDLE_FORMAT, handle)
            )
        return handle

    def get_volume_id(self):
        handle = self._check_handle("for ")
        return handle.split("/")[-1]

    def set_volume_id(self, volume_id, volume_project):
        # The restored disk lives in the same location as the original one
        parts = self._check_handle("for restore with ").split("/")
        if is_volume_created_cross_projects("/".join(parts), volume_project):
            _logger.debug(
                "Moving volumeHandle from project %s to project %s",
                parts[1],
                volume_project,
            )
            parts[1] = volume_project
        parts[-1] = volume_id
        self.block["volumeHandle"] = "/".join(parts)


class UnsupportedCsiVolumeSource(VolumeSource):
    """A volume provisioned by a CSI driver this snapshotter does not handle."""

    @property
    def driver(self):
        return self.block.get("driver")

    def get_volume_id(self):
        # The volume belongs to somebody else, the caller skips it
        _logger.info("Unable to handle CSI driver: %s", self.driver)
        return ""

    def set_volume_id(self, volume_id, volume_project):
        raise UnsupportedDriverException(
            "unable to handle CSI driver: %s" % self.driver
        )


class GcePersistentDiskSource(VolumeSource):
    """A volume provisioned by the in-tree GCE persistent disk driver."""

    def get_volume_id(self):
        pd_name = self.block.get("pdName")
        if not pd_name:
            raise VolumeIdentityException("spec.gcePersistentDisk.pdName not found")
        return pd_name

    def set_volume_id(self, volume_id, volume_project):
        self.block["pdName"] = volume_id


class MissingVolumeSource(VolumeSource):
    """A volume which is neither a CSI nor an in-tree persistent disk."""

    def get_volume_id(self):
        return ""

    def set_volume_id(self, volume_id, volume_project):
        raise VolumeIdentityException("spec.csi and spec.gcePersistentDisk not found")


def classify_volume_source(pv, csi_drivers=DEFAULT_PD_CSI_DRIVERS):
    """
    Return the VolumeSource describing the disk identity of a persistent volume.

    The returned object wraps the blocks of pv itself, so setting the volume id
    through it modifies pv.

    :param dict pv: The persistent volume in its unstructured form
    :param collections.abc.Container[str] csi_drivers: The names of the CSI
        drivers provisioning persistent disks
    :rtype: VolumeSource
    """
    spec = pv.get("spec") or {}
    csi = spec.get("csi")
    if csi is not None:
        if csi.get("driver") in csi_drivers:
            return CsiVolumeSource(csi)
        return UnsupportedCsiVolumeSource(csi)
    gce_pd = spec.get("gcePersistentDisk")
    if gce_pd is not None:
        return GcePersistentDiskSource(gce_pd)
    return MissingVolumeSource()


class VolumeHandleCodec(object):
    """
    Reads and rewrites the disk identity of persistent volumes.
    """

    def __init__(self, volume_project, csi_drivers=None):
        """
        :param str volume_project: The project in which restored disks are
            created
        :param collections.abc.Iterable[str]|None csi_drivers: The names of the
            CSI drivers provisioning persistent disks. Defaults to
            DEFAULT_PD_CSI_DRIVERS.
        """
        self.volume_project = volume_project
        if csi_drivers is None:
            csi_drivers = DEFAULT_PD_CSI_DRIVERS
        self.csi_drivers = frozenset(csi_drivers)

    def classify(self, pv):
        return classify_volume_source(pv, self.csi_drivers)

    def get_volume_id(self, pv):
        """
        Return the name of the disk backing a persistent volume.

        :param dict pv: The persistent volume in its unstructured form
        :rtype: str
        :return: The disk name, or an empty string if the volume is not
            backed by a persistent disk this codec handles
        """
        return self.classify(pv).get_volume_id()

    def set_volume_id(self, pv, volume_id):
        """
        Return a copy of a persistent volume referencing another disk.

        :param dict pv: The persistent volume in its unstructured form. It is
            not modified.
        :param str volume_id: The name of the disk the volume must reference
        :rtype: dict
        :return: The updated persistent volume
        """
        updated_pv = copy.deepcopy(pv)
        self.classify(updated_pv).set_volume_id(volume_id, self.volume_project)
        return updated_pv

    def is_volume_created_cross_projects(self, volume_handle):
        return is_volume_created_cross_projects(volume_handle, self.volume_project)
