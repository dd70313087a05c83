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
import logging
import shutil
import sys
from contextlib import closing

from kubesnap.clients.cloud_cli import (
    GeneralErrorExit,
    OperationErrorExit,
    build_plugin_config,
    create_argument_parser,
)
from kubesnap.cloud_providers import get_object_store
from kubesnap.config import (
    CREDENTIALS_FILE_KEY,
    KMS_KEY_NAME_KEY,
    SERVICE_ACCOUNT_KEY,
)
from kubesnap.exceptions import KubesnapException
from kubesnap.utils import check_positive, configure_logging, force_str

OBJECT_STORE_OPTIONS = {
    "credentials_file": CREDENTIALS_FILE_KEY,
    "kms_key_name": KMS_KEY_NAME_KEY,
    "service_account": SERVICE_ACCOUNT_KEY,
}

DEFAULT_SIGNED_URL_TTL = 600


def main(args=None):
    """
    The main script entry point
    :param list[str] args: the raw arguments list. When not provided
        it defaults to sys.args[1:]
    """
    config = parse_arguments(args)
    configure_logging(config)

    try:
        object_store = get_object_store(
            build_plugin_config(config, OBJECT_STORE_OPTIONS)
        )
        if config.func(object_store, config) is False:
            raise OperationErrorExit()
    except KubesnapException as exc:
        logging.error("Kubesnap object operation failed: %s", force_str(exc))
        logging.debug("Exception details:", exc_info=exc)
        raise OperationErrorExit()
    except Exception as exc:
        logging.error("Kubesnap object exception: %s", force_str(exc))
        logging.debug("Exception details:", exc_info=exc)
        raise GeneralErrorExit()


def put(object_store, config):
    with open(config.file, "rb") as body:
        object_store.put_object(config.bucket, config.key, body)


def get(object_store, config):
    with closing(object_store.get_object(config.bucket, config.key)) as reader:
        if config.file == "-":
            shutil.copyfileobj(reader, sys.stdout.buffer)
        else:
            with open(config.file, "wb") as dest_file:
                shutil.copyfileobj(reader, dest_file)


def exists(object_store, config):
    """Exit with a non-zero code when the object does not exist"""
    if object_store.object_exists(config.bucket, config.key):
        return True
    logging.info("Object %s does not exist in bucket %s", config.key, config.bucket)
    return False


def ls(object_store, config):
    for key in object_store.list_objects(config.bucket, config.prefix):
        print(key)


def prefixes(object_store, config):
    for prefix in object_store.list_common_prefixes(
        config.bucket, config.prefix, config.delimiter
    ):
        print(prefix)


def rm(object_store, config):
    object_store.delete_object(config.bucket, config.key)


def sign(object_store, config):
    ttl = datetime.timedelta(seconds=config.ttl)
    print(object_store.create_signed_url(config.bucket, config.key, ttl))


def parse_arguments(args=None):
    """
    Parse command line arguments

    :return: The options parsed
    """
    parser = create_argument_parser(
        description="This script can be used to manage the objects of a backup "
        "storage location in Google Cloud Storage.",
    )
    parser.add_argument(
        "--kms-key-name",
        help="The name of the KMS key used to encrypt uploaded objects",
    )
    parser.add_argument(
        "--service-account",
        help="The service account used to sign URLs when running with "
        "compute engine credentials",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    put_parser = subparsers.add_parser("put", help="upload a file")
    put_parser.add_argument("bucket", help="the name of the bucket")
    put_parser.add_argument("key", help="the key of the object")
    put_parser.add_argument("file", help="the file to upload")
    put_parser.set_defaults(func=put)

    get_parser = subparsers.add_parser("get", help="download an object")
    get_parser.add_argument("bucket", help="the name of the bucket")
    get_parser.add_argument("key", help="the key of the object")
    get_parser.add_argument("file", help="the destination file, - for stdout")
    get_parser.set_defaults(func=get)

    exists_parser = subparsers.add_parser(
        "exists", help="check whether an object exists"
    )
    exists_parser.add_argument("bucket", help="the name of the bucket")
    exists_parser.add_argument("key", help="the key of the object")
    exists_parser.set_defaults(func=exists)

    ls_parser = subparsers.add_parser("ls", help="list the objects under a prefix")
    ls_parser.add_argument("bucket", help="the name of the bucket")
    ls_parser.add_argument("prefix", nargs="?", default="", help="the key prefix")
    ls_parser.set_defaults(func=ls)

    prefixes_parser = subparsers.add_parser(
        "prefixes", help="list the common prefixes right under a prefix"
    )
    prefixes_parser.add_argument("bucket", help="the name of the bucket")
    prefixes_parser.add_argument(
        "prefix", nargs="?", default="", help="the key prefix"
    )
    prefixes_parser.add_argument(
        "--delimiter", default="/", help="the hierarchy delimiter (default: /)"
    )
    prefixes_parser.set_defaults(func=prefixes)

    rm_parser = subparsers.add_parser("rm", help="delete an object")
    rm_parser.add_argument("bucket", help="the name of the bucket")
    rm_parser.add_argument("key", help="the key of the object")
    rm_parser.set_defaults(func=rm)

    sign_parser = subparsers.add_parser(
        "sign", help="create a signed URL to download an object"
    )
    sign_parser.add_argument("bucket", help="the name of the bucket")
    sign_parser.add_argument("key", help="the key of the object")
    sign_parser.add_argument(
        "--ttl",
        type=check_positive,
        default=DEFAULT_SIGNED_URL_TTL,
        help="validity of the URL in seconds (default: %(default)s)",
    )
    sign_parser.set_defaults(func=sign)

    return parser.parse_args(args=args)


if __name__ == "__main__":
    main()
