#!/usr/bin/env python
# -*- coding: utf-8 -*-
#
# kubesnap - Persistent disk snapshots for Kubernetes volumes
#
# © Copyright EnterpriseDB UK Limited 2025
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <http://www.gnu.org/licenses/>.

"""Persistent disk snapshots for Kubernetes volumes

Kubesnap maps Kubernetes persistent volumes to Google Compute Engine
persistent disks and manages the snapshots taken of those disks on behalf
of a backup and restore tool. It also provides access to the Google Cloud
Storage buckets holding the backups.

Kubesnap is distributed under GNU GPL 3 and maintained by EnterpriseDB.
"""

import sys

from setuptools import find_packages, setup

if sys.version_info < (3, 7):
    raise SystemExit("ERROR: Kubesnap needs at least python 3.7 to work")

install_requires = [
    "google-auth",
    "google-cloud-compute",
    "grpcio",
    "google-cloud-storage",
]

kubesnap = {}
with open("kubesnap/version.py", "r", encoding="utf-8") as fversion:
    exec(fversion.read(), kubesnap)

setup(
    name="kubesnap",
    version=kubesnap["__version__"],
    author="EnterpriseDB",
    author_email="barman@enterprisedb.com",
    packages=find_packages(exclude=["tests"]),
    entry_points={
        "console_scripts": [
            "kubesnap-volume=kubesnap.clients.volume_snapshot:main",
            "kubesnap-object=kubesnap.clients.object_store:main",
        ],
    },
    license="GPL-3.0",
    description=__doc__.split("\n")[0],
    long_description="\n".join(__doc__.split("\n")[2:]),
    install_requires=install_requires,
    extras_require={
        "test": ["mock", "pytest"],
    },
    platforms=["Linux", "Mac OS X"],
    classifiers=[
        "Environment :: Console",
        "Development Status :: 5 - Production/Stable",
        "Topic :: System :: Archiving :: Backup",
        "Topic :: System :: Recovery Tools",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: GNU General Public License v3 or later (GPLv3+)",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3.7",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
    ],
)
