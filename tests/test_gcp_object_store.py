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

import datetime
import io

import mock
import pytest
from google.api_core.exceptions import Forbidden, NotFound
from google.auth.compute_engine import Credentials as ComputeEngineCredentials
from google.auth.exceptions import RefreshError
from google.oauth2.service_account import Credentials as ServiceAccountCredentials

from kubesnap.cloud import CloudProviderError, CloudResourceNotFound
from kubesnap.cloud_providers.google_cloud_storage import (
    GoogleCloudObjectStore,
    resolve_signing_identity,
)
from kubesnap.exceptions import ConfigurationException, ObjectStoreException


def _mock_blob(name):
    blob = mock.Mock()
    blob.name = name
    return blob


class TestGoogleCloudObjectStore(object):
    """
    Verify behaviour of the GoogleCloudObjectStore class.
    """

    @pytest.fixture
    def mock_storage(self):
        with mock.patch(
            "kubesnap.cloud_providers.google_cloud_storage.storage"
        ) as mock_storage:
            yield mock_storage

    def test_init(self, mock_storage):
        credentials = mock.Mock()
        object_store = GoogleCloudObjectStore(
            credentials=credentials, project="my-project"
        )
        mock_storage.Client.assert_called_once_with(
            project="my-project", credentials=credentials
        )
        assert object_store.client == mock_storage.Client.return_value

    def test_put_object(self, mock_storage):
        # GIVEN an object store
        object_store = GoogleCloudObjectStore()
        body = io.BytesIO(b"contents")

        # WHEN an object is uploaded
        object_store.put_object("bucket", "backups/key", body)

        # THEN the file-like object is uploaded to the blob
        mock_bucket = mock_storage.Client.return_value.bucket
        mock_bucket.assert_called_once_with("bucket")
        mock_bucket.return_value.blob.assert_called_once_with("backups/key")
        mock_blob = mock_bucket.return_value.blob.return_value
        mock_blob.upload_from_file.assert_called_once_with(body)

    def test_put_object_with_kms_key(self, mock_storage):
        # GIVEN an object store with a KMS key
        object_store = GoogleCloudObjectStore(kms_key_name="projects/p/keys/k")

        # WHEN an object is uploaded
        object_store.put_object("bucket", "key", io.BytesIO(b"contents"))

        # THEN the blob is encrypted with the key
        mock_bucket = mock_storage.Client.return_value.bucket.return_value
        mock_bucket.blob.assert_called_once_with(
            "key", kms_key_name="projects/p/keys/k"
        )

    def test_put_object_failed(self, mock_storage):
        object_store = GoogleCloudObjectStore()
        mock_bucket = mock_storage.Client.return_value.bucket.return_value
        mock_bucket.blob.return_value.upload_from_file.side_effect = Forbidden(
            "denied"
        )

        with pytest.raises(CloudProviderError) as exc:
            object_store.put_object("bucket", "key", io.BytesIO(b"contents"))
        assert str(exc.value) == "Cannot upload object key to bucket bucket: 403 denied"

    def test_object_exists(self, mock_storage):
        object_store = GoogleCloudObjectStore()
        assert object_store.object_exists("bucket", "key") is True
        mock_bucket = mock_storage.Client.return_value.bucket.return_value
        mock_bucket.blob.return_value.reload.assert_called_once_with()

    def test_object_does_not_exist(self, mock_storage):
        # GIVEN a blob which does not exist
        object_store = GoogleCloudObjectStore()
        mock_bucket = mock_storage.Client.return_value.bucket.return_value
        mock_bucket.blob.return_value.reload.side_effect = NotFound("not found")

        # THEN object_exists returns False without raising
        assert object_store.object_exists("bucket", "key") is False

    def test_object_exists_failed(self, mock_storage):
        # GIVEN a blob which cannot be checked
        object_store = GoogleCloudObjectStore()
        mock_bucket = mock_storage.Client.return_value.bucket.return_value
        mock_bucket.blob.return_value.reload.side_effect = Forbidden("bad")

        # THEN the error is raised
        with pytest.raises(CloudProviderError) as exc:
            object_store.object_exists("bucket", "key")
        assert str(exc.value) == "Cannot get object key in bucket bucket: 403 bad"

    def test_get_object(self, mock_storage):
        object_store = GoogleCloudObjectStore()
        mock_bucket = mock_storage.Client.return_value.bucket.return_value

        reader = object_store.get_object("bucket", "key")

        mock_bucket.get_blob.assert_called_once_with("key")
        mock_bucket.get_blob.return_value.open.assert_called_once_with("rb")
        assert reader == mock_bucket.get_blob.return_value.open.return_value

    def test_get_missing_object(self, mock_storage):
        object_store = GoogleCloudObjectStore()
        mock_bucket = mock_storage.Client.return_value.bucket.return_value
        mock_bucket.get_blob.return_value = None

        with pytest.raises(CloudResourceNotFound) as exc:
            object_store.get_object("bucket", "key")
        assert str(exc.value) == "Object key not found in bucket bucket"

    def test_list_common_prefixes(self, mock_storage):
        # GIVEN a bucket with objects under two prefixes
        object_store = GoogleCloudObjectStore()
        mock_blobs = mock.MagicMock()
        mock_blobs.__iter__.return_value = iter([_mock_blob("backups/file")])
        mock_blobs.prefixes = {"backups/b/", "backups/a/"}
        mock_storage.Client.return_value.list_blobs.return_value = mock_blobs

        # WHEN the common prefixes are listed
        prefixes = object_store.list_common_prefixes("bucket", "backups/", "/")

        # THEN the prefixes are returned sorted
        assert prefixes == ["backups/a/", "backups/b/"]
        # AND the listing used the delimiter
        mock_storage.Client.return_value.list_blobs.assert_called_once_with(
            "bucket", prefix="backups/", delimiter="/"
        )

    def test_list_objects(self, mock_storage):
        object_store = GoogleCloudObjectStore()
        mock_storage.Client.return_value.list_blobs.return_value = [
            _mock_blob("backups/a"),
            _mock_blob("backups/b"),
        ]

        assert object_store.list_objects("bucket", "backups/") == [
            "backups/a",
            "backups/b",
        ]
        mock_storage.Client.return_value.list_blobs.assert_called_once_with(
            "bucket", prefix="backups/"
        )

    def test_list_objects_failed(self, mock_storage):
        object_store = GoogleCloudObjectStore()
        mock_storage.Client.return_value.list_blobs.side_effect = NotFound(
            "no such bucket"
        )

        with pytest.raises(CloudResourceNotFound):
            object_store.list_objects("bucket", "backups/")

    def test_delete_object(self, mock_storage):
        object_store = GoogleCloudObjectStore()
        object_store.delete_object("bucket", "key")
        mock_bucket = mock_storage.Client.return_value.bucket.return_value
        mock_bucket.blob.assert_called_once_with("key")
        mock_bucket.blob.return_value.delete.assert_called_once_with()

    def test_delete_object_failed(self, mock_storage):
        object_store = GoogleCloudObjectStore()
        mock_bucket = mock_storage.Client.return_value.bucket.return_value
        mock_bucket.blob.return_value.delete.side_effect = Forbidden("denied")

        with pytest.raises(CloudProviderError) as exc:
            object_store.delete_object("bucket", "key")
        assert str(exc.value) == "error deleting object key: 403 denied"

    def test_create_signed_url_without_access_id(self, mock_storage):
        # GIVEN an object store without a signing identity
        object_store = GoogleCloudObjectStore(credentials=mock.Mock())

        # WHEN a signed URL is requested
        # THEN an ObjectStoreException is raised
        with pytest.raises(ObjectStoreException) as exc:
            object_store.create_signed_url(
                "bucket", "key", datetime.timedelta(minutes=10)
            )
        assert str(exc.value) == (
            "GoogleAccessID is empty, perhaps using external_account credentials, "
            "cannot create signed URL"
        )

    def test_create_signed_url_with_credentials(self, mock_storage):
        # GIVEN an object store whose credentials can sign
        credentials = mock.Mock()
        object_store = GoogleCloudObjectStore(
            credentials=credentials,
            google_access_id="sa@my-project.iam.gserviceaccount.com",
            sign_with_credentials=True,
        )
        ttl = datetime.timedelta(minutes=10)

        # WHEN a signed URL is requested
        url = object_store.create_signed_url("bucket", "key", ttl)

        # THEN the blob signs a v4 GET URL with the credentials
        mock_blob = mock_storage.Client.return_value.bucket.return_value.blob
        mock_blob.return_value.generate_signed_url.assert_called_once_with(
            version="v4", expiration=ttl, method="GET", credentials=credentials
        )
        assert url == mock_blob.return_value.generate_signed_url.return_value

    @mock.patch("kubesnap.cloud_providers.google_cloud_storage.Request")
    def test_create_signed_url_with_access_token(self, mock_request, mock_storage):
        # GIVEN an object store with credentials which cannot sign
        credentials = mock.Mock(valid=False, token="access-token")
        object_store = GoogleCloudObjectStore(
            credentials=credentials,
            google_access_id="sa@my-project.iam.gserviceaccount.com",
        )
        ttl = datetime.timedelta(minutes=10)

        # WHEN a signed URL is requested
        object_store.create_signed_url("bucket", "key", ttl)

        # THEN the expired credentials are refreshed
        credentials.refresh.assert_called_once_with(mock_request.return_value)
        # AND the URL is signed on behalf of the service account
        mock_blob = mock_storage.Client.return_value.bucket.return_value.blob
        mock_blob.return_value.generate_signed_url.assert_called_once_with(
            version="v4",
            expiration=ttl,
            method="GET",
            service_account_email="sa@my-project.iam.gserviceaccount.com",
            access_token="access-token",
        )

    @mock.patch("kubesnap.cloud_providers.google_cloud_storage.Request")
    def test_create_signed_url_refresh_failed(self, _mock_request, mock_storage):
        credentials = mock.Mock(valid=False)
        credentials.refresh.side_effect = RefreshError("metadata server unavailable")
        object_store = GoogleCloudObjectStore(
            credentials=credentials, google_access_id="sa@p.iam.gserviceaccount.com"
        )

        with pytest.raises(CloudProviderError) as exc:
            object_store.create_signed_url(
                "bucket", "key", datetime.timedelta(minutes=10)
            )
        assert str(exc.value) == (
            "Cannot refresh credentials for signing: metadata server unavailable"
        )


class TestResolveSigningIdentity(object):
    def test_service_account_credentials(self):
        credentials = mock.Mock(spec=ServiceAccountCredentials)
        credentials.service_account_email = "sa@p.iam.gserviceaccount.com"
        assert resolve_signing_identity(credentials) == (
            "sa@p.iam.gserviceaccount.com",
            True,
        )

    def test_compute_engine_credentials(self):
        credentials = mock.Mock(spec=ComputeEngineCredentials)
        assert resolve_signing_identity(
            credentials, "sa@p.iam.gserviceaccount.com"
        ) == ("sa@p.iam.gserviceaccount.com", False)

    def test_compute_engine_credentials_without_service_account(self):
        credentials = mock.Mock(spec=ComputeEngineCredentials)
        with pytest.raises(ConfigurationException) as exc:
            resolve_signing_identity(credentials)
        assert str(exc.value) == (
            "serviceAccount is expected to be provided as an item in the backup "
            "storage location config"
        )

    def test_external_account_credentials(self):
        # Credentials which cannot sign URLs in any way
        assert resolve_signing_identity(mock.Mock(), "ignored") == (None, False)
