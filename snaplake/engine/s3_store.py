"""S3-compatible object store (AWS S3, MinIO) backed by boto3."""

from __future__ import annotations

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from snaplake.core.errors import DelegateFailure
from snaplake.core.logging import get_logger
from snaplake.engine.base import ObjectStore
from snaplake.schemas.api import StorageConfig

log = get_logger("engine.s3")

PARQUET_CONTENT_TYPE = "application/octet-stream"


class S3ObjectStore(ObjectStore):
    remote = True

    def __init__(self, config: StorageConfig, client=None):
        self.config = config
        self.bucket = config.bucket
        self._client = client or self._build_client(config)

    @staticmethod
    def _build_client(config: StorageConfig):
        session = boto3.Session(region_name=config.effective_region)
        return session.client(
            "s3",
            endpoint_url=config.endpoint,
            region_name=config.effective_region,
            aws_access_key_id=config.access_key_id,
            aws_secret_access_key=config.secret_access_key,
            config=BotoConfig(
                s3={"addressing_style": "path" if config.path_style else "auto"},
                retries={"max_attempts": 3, "mode": "standard"},
            ),
        )

    def put_object(self, key: str, body: bytes) -> None:
        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=body,
                ContentType=PARQUET_CONTENT_TYPE,
            )
        except (ClientError, BotoCoreError) as exc:
            raise DelegateFailure(f"Failed to upload s3://{self.bucket}/{key}: {exc}") from exc
        log.info(f"Uploaded s3://{self.bucket}/{key} ({len(body)} bytes)")

    def get_object(self, key: str) -> bytes:
        try:
            resp = self._client.get_object(Bucket=self.bucket, Key=key)
            return resp["Body"].read()
        except (ClientError, BotoCoreError) as exc:
            raise DelegateFailure(f"Failed to read s3://{self.bucket}/{key}: {exc}") from exc

    def uri_for(self, key: str) -> str:
        return f"s3://{self.bucket}/{key.lstrip('/')}"
