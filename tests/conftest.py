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

import mock
import pytest
from google.auth.exceptions import DefaultCredentialsError


@pytest.fixture(scope="session", autouse=True)
def default_session_fixture(request):
    """
    Make sure that any real lookup of the default credentials results in an error

    :type request: _pytest.python.SubRequest
    :return:
    """
    logging.info("Patching kubesnap.config.google.auth.default")
    default_patch = mock.patch("kubesnap.config.google.auth.default")
    default_mock = default_patch.__enter__()
    default_mock.side_effect = DefaultCredentialsError("no credentials in tests")

    def unpatch():
        default_patch.__exit__(None, None, None)
        logging.info("Unpatching kubesnap.config.google.auth.default")

    request.addfinalizer(unpatch)
