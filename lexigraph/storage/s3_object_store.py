from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from lexigraph.config.settings import Settings
from lexigraph.exceptions import StorageError
from lexigraph.logging.logger import Log
from lexigraph.storage.base import BaseObjectStore, CompletedPart, ObjectInfo

_STORAGE_ERRORS = (BotoCoreError, ClientError)


class S3ObjectStore(BaseObjectStore):
    """Multipart object storage on any S3-compatible service (AWS S3, MinIO)."""

    def __init__(self, client: Any, bucket_name: str) -> None:
        self._client = client
        self._bucket = bucket_name

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3ObjectStore":
        # One attempt per call: a timeout surfaces as StorageError instead of a retry.
        config = Config(
            connect_timeout=settings.object_store_timeout_seconds,
            read_timeout=settings.object_store_timeout_seconds,
            retries={"total_max_attempts": 1},
        )
        client = boto3.client(
            "s3",
            endpoint_url=settings.object_store_endpoint or None,
            aws_access_key_id=settings.object_store_access_key or None,
            aws_secret_access_key=settings.object_store_secret_key or None,
            region_name=settings.object_store_region,
            config=config,
        )
        return cls(client, settings.object_store_bucket)

    def ensure_bucket(self) -> None:
        """Create the bucket if it does not exist yet."""
        try:
            self._client.head_bucket(Bucket=self._bucket)
            return
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") not in ("404", "NoSuchBucket"):
                raise StorageError(f"Failed to check bucket {self._bucket}: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"Failed to check bucket {self._bucket}: {exc}") from exc

        try:
            self._client.create_bucket(Bucket=self._bucket)
        except _STORAGE_ERRORS as exc:
            raise StorageError(f"Failed to create bucket {self._bucket}: {exc}") from exc
        Log.info(f"Created bucket {self._bucket}")

    def open_multipart(self, key: str, content_type: str, metadata: dict[str, str]) -> str:
        try:
            response = self._client.create_multipart_upload(
                Bucket=self._bucket,
                Key=key,
                ContentType=content_type,
                Metadata=metadata,
            )
        except _STORAGE_ERRORS as exc:
            raise StorageError(f"Failed to initiate multipart upload for {key}: {exc}") from exc
        return str(response["UploadId"])

    def upload_part(self, upload_id: str, key: str, part_number: int, data: bytes) -> str:
        try:
            response = self._client.upload_part(
                Bucket=self._bucket,
                Key=key,
                UploadId=upload_id,
                PartNumber=part_number,
                Body=data,
            )
        except _STORAGE_ERRORS as exc:
            raise StorageError(f"Failed to upload chunk {part_number} of {key}: {exc}") from exc
        return str(response["ETag"])

    def complete_multipart(
        self, upload_id: str, key: str, parts: list[CompletedPart]
    ) -> ObjectInfo:
        try:
            response = self._client.complete_multipart_upload(
                Bucket=self._bucket,
                Key=key,
                UploadId=upload_id,
                MultipartUpload={
                    "Parts": [{"PartNumber": p.part_number, "ETag": p.etag} for p in parts]
                },
            )
        except _STORAGE_ERRORS as exc:
            raise StorageError(f"Failed to complete multipart upload for {key}: {exc}") from exc

        # The object exists from here on; a failed HEAD only costs the stored size.
        try:
            head = self._client.head_object(Bucket=self._bucket, Key=key)
            size = int(head["ContentLength"])
        except (*_STORAGE_ERRORS, KeyError, TypeError, ValueError) as exc:
            Log.warning(f"Could not read size of {key}, using part sizes: {exc}")
            head = {}
            size = sum(part.size for part in parts)
        return ObjectInfo(
            key=key,
            size=size,
            etag=str(response.get("ETag") or head.get("ETag", "")),
            content_type=str(head.get("ContentType", "")),
        )

    def abort_multipart(self, upload_id: str, key: str) -> None:
        try:
            self._client.abort_multipart_upload(Bucket=self._bucket, Key=key, UploadId=upload_id)
        except _STORAGE_ERRORS as exc:
            raise StorageError(f"Failed to abort multipart upload for {key}: {exc}") from exc

    def put_object(self, key: str, data: bytes, content_type: str) -> ObjectInfo:
        try:
            response = self._client.put_object(
                Bucket=self._bucket, Key=key, Body=data, ContentType=content_type
            )
        except _STORAGE_ERRORS as exc:
            raise StorageError(f"Failed to upload {key}: {exc}") from exc
        return ObjectInfo(
            key=key,
            size=len(data),
            etag=str(response.get("ETag", "")),
            content_type=content_type,
        )

    def get_object(self, key: str) -> tuple[bytes, int]:
        try:
            response = self._client.get_object(Bucket=self._bucket, Key=key)
            data = response["Body"].read()
        except _STORAGE_ERRORS as exc:
            raise StorageError(f"Failed to get object {key}: {exc}") from exc
        return data, int(response.get("ContentLength", len(data)))
