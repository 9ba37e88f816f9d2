import json
import logging

from minio import Minio, S3Error
from urllib3.exceptions import HTTPError

from yaymon.configs.settings import Settings
from yaymon.errors import StorageUnavailable

logger = logging.getLogger(__name__)


def make_storage_client(settings: Settings) -> Minio:
    return Minio(
        endpoint=settings.STORAGE_ENDPOINT,
        access_key=settings.STORAGE_ACCESS_KEY,
        secret_key=settings.STORAGE_SECRET_KEY,
        secure=settings.STORAGE_SECURE,
        region=settings.STORAGE_REGION,
    )


def public_read_policy(bucket: str) -> str:
    return json.dumps({
        "Version": "2012-10-17",
        "Statement": [{
            "Effect": "Allow",
            "Principal": {"AWS": ["*"]},
            "Action": ["s3:GetObject"],
            "Resource": [f"arn:aws:s3:::{bucket}/*"],
        }],
    })


def ensure_bucket(client: Minio, bucket: str) -> None:
    """Creates the media bucket if needed and makes its objects publicly readable."""
    try:
        if not client.bucket_exists(bucket_name=bucket):
            client.make_bucket(bucket_name=bucket)
            logger.info(f"Created storage bucket '{bucket}'")
        client.set_bucket_policy(bucket_name=bucket, policy=public_read_policy(bucket))
    except (S3Error, HTTPError) as e:
        raise StorageUnavailable(f"MinIO bucket setup error: {str(e)}") from e
