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


class KubesnapException(Exception):
    """
    The base class of all other kubesnap exceptions
    """


class ConfigurationException(KubesnapException):
    """
    Base exception for all the Configuration errors
    """


class VolumeIdentityException(ConfigurationException):
    """
    A persistent volume does not carry the fields needed to identify its disk
    """


class FormatException(KubesnapException):
    """
    Base exception for all the errors related to malformed identifiers
    """


class VolumeHandleFormatException(FormatException):
    """
    The volumeHandle of a CSI persistent volume does not have the expected shape
    """


class ZoneParseException(FormatException):
    """
    A region cannot be derived from an availability zone tag
    """


class UnsupportedDriverException(KubesnapException):
    """
    The CSI driver of a persistent volume is not handled by this snapshotter
    """


class QuotaExceededException(KubesnapException):
    """
    The cloud provider quota for a resource has been reached
    """


class ObjectStoreException(KubesnapException):
    """
    Base exception for all the errors related to the object store
    """
